"""Tests for poller configuration.

Covers:
- Default values
- Loading from environment variables
- Type coercion (string env vars -> numeric fields)
- Fail-fast range validation
- Default policy sections handed to ingress
"""

from __future__ import annotations

import os
from unittest.mock import patch

import pytest

from durable_poller.core.config import ConfigValidationError, PollerConfig
from durable_poller.models.request import HttpRetryOptions, RetryPolicy


class TestPollerConfigDefaults:
    """Verify default configuration values."""

    def test_default_schedule(self) -> None:
        cfg = PollerConfig()
        assert cfg.initial_delay_seconds == 5.0
        assert cfg.max_delay_seconds == 60.0
        assert cfg.start_delay_seconds == 0.0
        assert cfg.backoff_coefficient == 1.2
        assert cfg.max_retries == 10

    def test_default_http_retry(self) -> None:
        cfg = PollerConfig()
        assert cfg.http_first_retry_interval_seconds == 5.0
        assert cfg.http_max_attempts == 3
        assert cfg.http_backoff_coefficient == 2.0
        assert cfg.http_max_retry_interval_seconds == 60.0
        assert cfg.http_timeout_seconds == 30.0

    def test_frozen(self) -> None:
        cfg = PollerConfig()
        with pytest.raises(AttributeError):
            cfg.max_retries = 3  # type: ignore[misc]


class TestPollerConfigFromEnv:
    """Verify loading from environment variables."""

    def test_loads_from_environment(self) -> None:
        """All env vars are read and coerced to correct types."""
        env = {
            "POLL_INITIAL_DELAY_SECONDS": "2.5",
            "POLL_MAX_DELAY_SECONDS": "120",
            "POLL_START_DELAY_SECONDS": "30",
            "POLL_BACKOFF_COEFFICIENT": "1.5",
            "POLL_MAX_RETRIES": "7",
            "HTTP_RETRY_FIRST_INTERVAL_SECONDS": "1",
            "HTTP_RETRY_MAX_ATTEMPTS": "5",
            "HTTP_RETRY_BACKOFF_COEFFICIENT": "3",
            "HTTP_RETRY_MAX_INTERVAL_SECONDS": "45",
            "HTTP_TIMEOUT_SECONDS": "12",
        }
        with patch.dict(os.environ, env, clear=False):
            cfg = PollerConfig.from_env()

        assert cfg.initial_delay_seconds == 2.5
        assert cfg.max_delay_seconds == 120.0
        assert cfg.start_delay_seconds == 30.0
        assert cfg.backoff_coefficient == 1.5
        assert cfg.max_retries == 7
        assert cfg.http_first_retry_interval_seconds == 1.0
        assert cfg.http_max_attempts == 5
        assert cfg.http_backoff_coefficient == 3.0
        assert cfg.http_max_retry_interval_seconds == 45.0
        assert cfg.http_timeout_seconds == 12.0

    def test_defaults_when_env_missing(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            cfg = PollerConfig.from_env()
        assert cfg == PollerConfig()

    def test_sample_start_settings(self) -> None:
        env = {
            "POLL_SAMPLE_STATUS_CHECK_URL": "https://target.example.com/status/1",
            "POLL_SAMPLE_ACTION_URL": "https://hooks.example.com/api/action",
            "POLL_SAMPLE_CONTENT": "wappa",
        }
        with patch.dict(os.environ, env, clear=True):
            cfg = PollerConfig.from_env()

        assert cfg.sample_configured
        assert cfg.sample_status_check_url == "https://target.example.com/status/1"
        assert cfg.sample_content == "wappa"

    def test_sample_start_disabled_by_default(self) -> None:
        env = {"POLL_SAMPLE_ACTION_URL": "https://hooks.example.com/api/action"}
        with patch.dict(os.environ, env, clear=True):
            cfg = PollerConfig.from_env()
        assert not cfg.sample_configured

    def test_unparseable_number_raises_value_error(self) -> None:
        with (
            patch.dict(os.environ, {"POLL_MAX_RETRIES": "abc"}, clear=True),
            pytest.raises(ValueError),
        ):
            PollerConfig.from_env()


class TestPollerConfigValidation:
    """Out-of-range values fail at load time, naming the offending key."""

    @pytest.mark.parametrize(
        ("key", "value"),
        [
            ("POLL_INITIAL_DELAY_SECONDS", "0"),
            ("POLL_MAX_DELAY_SECONDS", "-1"),
            ("POLL_START_DELAY_SECONDS", "-5"),
            ("POLL_BACKOFF_COEFFICIENT", "0.9"),
            ("POLL_MAX_RETRIES", "-1"),
            ("HTTP_RETRY_FIRST_INTERVAL_SECONDS", "0"),
            ("HTTP_RETRY_MAX_ATTEMPTS", "0"),
            ("HTTP_RETRY_BACKOFF_COEFFICIENT", "0.5"),
            ("HTTP_RETRY_MAX_INTERVAL_SECONDS", "-2"),
            ("HTTP_TIMEOUT_SECONDS", "0"),
        ],
    )
    def test_out_of_range_rejected(self, key: str, value: str) -> None:
        with (
            patch.dict(os.environ, {key: value}, clear=True),
            pytest.raises(ConfigValidationError) as exc_info,
        ):
            PollerConfig.from_env()

        exc = exc_info.value
        assert exc.key == key
        assert key in str(exc)
        assert exc.code == "CONFIG_VALIDATION_FAILED"
        assert exc.stage == "config"

    def test_zero_max_retries_allowed(self) -> None:
        with patch.dict(os.environ, {"POLL_MAX_RETRIES": "0"}, clear=True):
            cfg = PollerConfig.from_env()
        assert cfg.max_retries == 0

    def test_zero_max_delay_means_uncapped(self) -> None:
        with patch.dict(os.environ, {"POLL_MAX_DELAY_SECONDS": "0"}, clear=True):
            cfg = PollerConfig.from_env()
        assert cfg.max_delay_seconds == 0.0


class TestDefaultSections:
    """The default sections validate as the request sub-models."""

    def test_retry_policy_section(self) -> None:
        cfg = PollerConfig(max_retries=4, start_delay_seconds=10)
        policy = RetryPolicy.model_validate(cfg.default_retry_policy())
        assert policy.max_retries == 4
        assert policy.start_delay_seconds == 10.0

    def test_http_retry_section(self) -> None:
        cfg = PollerConfig(http_max_attempts=6)
        options = HttpRetryOptions.model_validate(cfg.default_http_retry())
        assert options.max_attempts == 6
        assert options.timeout_seconds == 30.0
