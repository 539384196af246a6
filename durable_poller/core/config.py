"""Poller configuration loaded from environment variables.

Azure Functions app settings (or ``local.settings.json`` for local dev)
are the source of truth.  Values here are the defaults applied to a
``PollRequest`` that omits its ``retry_policy`` or ``http_retry`` section.

Fail-fast validation:
    ``from_env()`` raises ``ConfigValidationError`` if any numeric
    value is out of its valid range, so bad configuration surfaces at
    startup instead of inside a running orchestration.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

from durable_poller.core.exceptions import PollerError


class ConfigValidationError(PollerError):
    """Raised when configuration values are out of valid range.

    Attributes:
        key: The configuration key that failed validation.
        value: The invalid value.
        message: Human-readable description of the valid range.
    """

    default_stage = "config"
    default_code = "CONFIG_VALIDATION_FAILED"

    def __init__(self, key: str, value: object, message: str) -> None:
        self.key = key
        self.value = value
        self.message = message
        super().__init__(f"Invalid configuration {key}={value!r}: {message}")


@dataclass(frozen=True, slots=True)
class PollerConfig:
    """Immutable poller configuration.

    Attributes:
        initial_delay_seconds: Default base wait between polls.
        max_delay_seconds: Default cap on a single wait (``0`` = uncapped).
        start_delay_seconds: Default one-time wait before the first poll.
        backoff_coefficient: Default exponent applied to the attempt number.
        max_retries: Default bound on regular poll attempts.
        http_first_retry_interval_seconds: Wait before the first transport retry.
        http_max_attempts: Total tries per outbound call.
        http_backoff_coefficient: Multiplier per transport retry.
        http_max_retry_interval_seconds: Cap on a transport retry wait.
        http_timeout_seconds: Per-request timeout.
        sample_status_check_url: Status URL used by a bodiless sample start
            (``GET /api/SetTimer``).  Empty disables sample starts.
        sample_action_url: Action URL used by a sample start.
        sample_content: Content posted by a sample start.
    """

    initial_delay_seconds: float = 5.0
    max_delay_seconds: float = 60.0
    start_delay_seconds: float = 0.0
    backoff_coefficient: float = 1.2
    max_retries: int = 10
    http_first_retry_interval_seconds: float = 5.0
    http_max_attempts: int = 3
    http_backoff_coefficient: float = 2.0
    http_max_retry_interval_seconds: float = 60.0
    http_timeout_seconds: float = 30.0
    sample_status_check_url: str = ""
    sample_action_url: str = ""
    sample_content: str = ""

    @classmethod
    def from_env(cls) -> PollerConfig:
        """Load and validate configuration from environment variables.

        Raises:
            ConfigValidationError: If a numeric value is out of range.
            ValueError: If a numeric environment variable cannot be
                parsed (e.g. ``POLL_MAX_RETRIES=abc``).
        """
        config = cls(
            initial_delay_seconds=float(os.getenv("POLL_INITIAL_DELAY_SECONDS", "5")),
            max_delay_seconds=float(os.getenv("POLL_MAX_DELAY_SECONDS", "60")),
            start_delay_seconds=float(os.getenv("POLL_START_DELAY_SECONDS", "0")),
            backoff_coefficient=float(os.getenv("POLL_BACKOFF_COEFFICIENT", "1.2")),
            max_retries=int(os.getenv("POLL_MAX_RETRIES", "10")),
            http_first_retry_interval_seconds=float(
                os.getenv("HTTP_RETRY_FIRST_INTERVAL_SECONDS", "5")
            ),
            http_max_attempts=int(os.getenv("HTTP_RETRY_MAX_ATTEMPTS", "3")),
            http_backoff_coefficient=float(os.getenv("HTTP_RETRY_BACKOFF_COEFFICIENT", "2")),
            http_max_retry_interval_seconds=float(
                os.getenv("HTTP_RETRY_MAX_INTERVAL_SECONDS", "60")
            ),
            http_timeout_seconds=float(os.getenv("HTTP_TIMEOUT_SECONDS", "30")),
            sample_status_check_url=os.getenv("POLL_SAMPLE_STATUS_CHECK_URL", ""),
            sample_action_url=os.getenv("POLL_SAMPLE_ACTION_URL", ""),
            sample_content=os.getenv("POLL_SAMPLE_CONTENT", ""),
        )
        _validate(config)
        return config

    def default_retry_policy(self) -> dict[str, Any]:
        """Return the ``retry_policy`` section used when a request omits it."""
        return {
            "initial_delay_seconds": self.initial_delay_seconds,
            "max_delay_seconds": self.max_delay_seconds,
            "start_delay_seconds": self.start_delay_seconds,
            "backoff_coefficient": self.backoff_coefficient,
            "max_retries": self.max_retries,
        }

    @property
    def sample_configured(self) -> bool:
        return bool(self.sample_status_check_url and self.sample_action_url)

    def default_http_retry(self) -> dict[str, Any]:
        """Return the ``http_retry`` section used when a request omits it."""
        return {
            "first_retry_interval_seconds": self.http_first_retry_interval_seconds,
            "max_attempts": self.http_max_attempts,
            "backoff_coefficient": self.http_backoff_coefficient,
            "max_retry_interval_seconds": self.http_max_retry_interval_seconds,
            "timeout_seconds": self.http_timeout_seconds,
        }


def _validate(config: PollerConfig) -> None:
    """Validate configuration ranges.  Raises ``ConfigValidationError``."""
    if config.initial_delay_seconds <= 0:
        raise ConfigValidationError(
            "POLL_INITIAL_DELAY_SECONDS",
            config.initial_delay_seconds,
            "must be > 0 (seconds)",
        )

    for key, value in (
        ("POLL_MAX_DELAY_SECONDS", config.max_delay_seconds),
        ("POLL_START_DELAY_SECONDS", config.start_delay_seconds),
        ("HTTP_RETRY_MAX_INTERVAL_SECONDS", config.http_max_retry_interval_seconds),
    ):
        if value < 0:
            raise ConfigValidationError(key, value, "must be >= 0 (seconds)")

    if config.backoff_coefficient < 1:
        raise ConfigValidationError(
            "POLL_BACKOFF_COEFFICIENT",
            config.backoff_coefficient,
            "must be >= 1",
        )

    if config.max_retries < 0:
        raise ConfigValidationError(
            "POLL_MAX_RETRIES",
            config.max_retries,
            "must be >= 0",
        )

    if config.http_first_retry_interval_seconds <= 0:
        raise ConfigValidationError(
            "HTTP_RETRY_FIRST_INTERVAL_SECONDS",
            config.http_first_retry_interval_seconds,
            "must be > 0 (seconds)",
        )

    if config.http_max_attempts < 1:
        raise ConfigValidationError(
            "HTTP_RETRY_MAX_ATTEMPTS",
            config.http_max_attempts,
            "must be >= 1",
        )

    if config.http_backoff_coefficient < 1:
        raise ConfigValidationError(
            "HTTP_RETRY_BACKOFF_COEFFICIENT",
            config.http_backoff_coefficient,
            "must be >= 1",
        )

    if config.http_timeout_seconds <= 0:
        raise ConfigValidationError(
            "HTTP_TIMEOUT_SECONDS",
            config.http_timeout_seconds,
            "must be > 0 (seconds)",
        )
