"""Validated request schema for starting a polling run.

A ``PollRequest`` is built once at the HTTP boundary, serialised into the
orchestration input, and re-validated when the orchestrator starts (and on
every replay, which is deterministic because validation is pure).

All durations are seconds.  Field names are snake_case; camelCase aliases
(``statusCheckUrl``, ``initialDelaySeconds``, ...) are accepted on input so
callers can post the same JSON shape the status-check endpoints speak.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from typing import Any

import httpx
import pydantic
from pydantic import BaseModel, ConfigDict, Field, JsonValue, field_validator
from pydantic.alias_generators import to_camel, to_snake

from durable_poller.core.exceptions import RequestValidationError

_MODEL_CONFIG = ConfigDict(
    frozen=True,
    extra="forbid",
    populate_by_name=True,
    alias_generator=to_camel,
)


class PollMode(enum.Enum):
    """How a status-check response is interpreted.

    Values:
        RAW_CHECK:    Generic HTTP codes only (200 ready, 202 pending).
        STATUS_AWARE: A 200 carries a status document whose
                      ``runtimeStatus`` decides readiness.
    """

    RAW_CHECK = "RawCheck"
    STATUS_AWARE = "StatusAware"


class RetryPolicy(BaseModel):
    """Orchestration-level polling schedule.

    Attributes:
        initial_delay_seconds: Base wait between polls.
        max_delay_seconds: Upper bound on any single wait (``0`` = uncapped).
        start_delay_seconds: One-time wait before the first poll
            (``0`` = use ``initial_delay_seconds`` straight away).
        backoff_coefficient: Exponent applied to the attempt number.
        max_retries: Upper bound on regular poll attempts.
    """

    model_config = _MODEL_CONFIG

    initial_delay_seconds: float = Field(default=5.0, gt=0)
    max_delay_seconds: float = Field(default=60.0, ge=0)
    start_delay_seconds: float = Field(default=0.0, ge=0)
    backoff_coefficient: float = Field(default=1.2, ge=1.0)
    max_retries: int = Field(default=10, ge=0)

    @property
    def has_start_delay(self) -> bool:
        return self.start_delay_seconds > 0


class HttpRetryOptions(BaseModel):
    """Transport-level retry budget applied to each outbound call.

    Attributes:
        first_retry_interval_seconds: Wait before the first retry.
        max_attempts: Total tries per call, including the first.
        backoff_coefficient: Multiplier applied per subsequent retry.
        max_retry_interval_seconds: Cap on a single retry wait (``0`` = uncapped).
        timeout_seconds: Per-request timeout handed to ``httpx``.
    """

    model_config = _MODEL_CONFIG

    first_retry_interval_seconds: float = Field(default=5.0, gt=0)
    max_attempts: int = Field(default=3, ge=1)
    backoff_coefficient: float = Field(default=2.0, ge=1.0)
    max_retry_interval_seconds: float = Field(default=60.0, ge=0)
    timeout_seconds: float = Field(default=30.0, gt=0)


class PollRequest(BaseModel):
    """Everything a polling run needs, immutable for the run's duration."""

    model_config = _MODEL_CONFIG

    status_check_url: str
    action_url: str
    content: JsonValue = None
    retry_policy: RetryPolicy = Field(default_factory=RetryPolicy)
    http_retry: HttpRetryOptions = Field(default_factory=HttpRetryOptions)
    mode: PollMode = PollMode.RAW_CHECK

    @field_validator("status_check_url", "action_url")
    @classmethod
    def _absolute_http_url(cls, value: str) -> str:
        value = value.strip()
        try:
            url = httpx.URL(value)
        except httpx.InvalidURL as exc:
            msg = f"invalid URL: {exc}"
            raise ValueError(msg) from exc
        if url.scheme not in ("http", "https") or not url.host:
            msg = "must be an absolute http or https URL"
            raise ValueError(msg)
        return value


def parse_poll_request(
    raw: Mapping[str, Any],
    *,
    correlation_id: str = "",
) -> PollRequest:
    """Validate *raw* into a ``PollRequest``.

    Raises:
        RequestValidationError: If the payload does not match the schema.
            The pydantic error list is kept on ``errors``, with locations
            reported by snake_case field name whichever key style was posted.
    """
    if not isinstance(raw, Mapping):
        msg = f"Poll request must be a JSON object, got {type(raw).__name__}"
        raise RequestValidationError(msg, correlation_id=correlation_id)

    try:
        return PollRequest.model_validate(dict(raw))
    except pydantic.ValidationError as exc:
        errors = [
            {
                "loc": ".".join(to_snake(str(part)) for part in err.get("loc", ())),
                "msg": str(err.get("msg", "")),
                "type": str(err.get("type", "")),
            }
            for err in exc.errors()
        ]
        fields = ", ".join(e["loc"] for e in errors) or "<root>"
        msg = f"Invalid poll request ({exc.error_count()} error(s)): {fields}"
        raise RequestValidationError(
            msg,
            errors=errors,
            correlation_id=correlation_id,
        ) from exc
