"""Shared pytest fixtures for the Durable Poller test suite."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import httpx
import pytest

STATUS_URL = "https://target.example.com/runtime/webhooks/durabletask/instances/abc"
ACTION_URL = "https://hooks.example.com/api/action"


# ---------------------------------------------------------------------------
# Request fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def poll_request_dict() -> dict[str, Any]:
    """A complete, valid snake_case poll request."""
    return {
        "status_check_url": STATUS_URL,
        "action_url": ACTION_URL,
        "content": {"job_id": "42", "note": "ready"},
        "retry_policy": {
            "initial_delay_seconds": 5,
            "max_delay_seconds": 60,
            "start_delay_seconds": 0,
            "backoff_coefficient": 1,
            "max_retries": 3,
        },
        "http_retry": {
            "first_retry_interval_seconds": 2,
            "max_attempts": 3,
            "backoff_coefficient": 2,
            "max_retry_interval_seconds": 60,
            "timeout_seconds": 10,
        },
        "mode": "RawCheck",
    }


# ---------------------------------------------------------------------------
# HTTP fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_http_client() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.Client]:
    """Return a factory building an ``httpx.Client`` backed by a mock handler."""

    def _factory(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(handler))

    return _factory
