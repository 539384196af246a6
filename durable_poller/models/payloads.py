"""Typed payload schemas for Durable Functions activity contracts.

Every activity receives and returns a JSON-serialisable dict.  These
``TypedDict`` definitions make the contracts explicit so that pyright
catches key mismatches at analysis time and ``validate_payload`` catches
them at runtime.

Usage::

    from durable_poller.models.payloads import CheckStatusInput, validate_payload

    def check_status_activity(raw: dict) -> ...:
        validate_payload(raw, CheckStatusInput, activity="check_status")
"""

from __future__ import annotations

from typing import Any, NotRequired, TypedDict

from durable_poller.core.exceptions import ContractError

# ---------------------------------------------------------------------------
# check_status
# ---------------------------------------------------------------------------


class CheckStatusInput(TypedDict):
    """Orchestrator → ``check_status`` activity."""

    status_check_url: str
    mode: str
    timeout_seconds: NotRequired[float]
    instance_id: NotRequired[str]


class CheckStatusOutput(TypedDict):
    """``check_status`` activity → orchestrator."""

    status_code: int
    outcome: str
    runtime_status: str
    reason: str


# ---------------------------------------------------------------------------
# fire_action
# ---------------------------------------------------------------------------


class FireActionInput(TypedDict):
    """Orchestrator → ``fire_action`` activity."""

    action_url: str
    content: Any
    timeout_seconds: NotRequired[float]
    instance_id: NotRequired[str]


class FireActionOutput(TypedDict):
    """``fire_action`` activity → orchestrator."""

    status_code: int
    delivered: bool


# ---------------------------------------------------------------------------
# Orchestration result
# ---------------------------------------------------------------------------


class PollRunResult(TypedDict):
    """Final output of a polling run that ended ``Done``."""

    state: str
    reason: str
    instance_id: str
    mode: str
    attempt: int
    poll_count: int
    trigger_count: int
    last_status_code: int | None
    last_outcome: str
    transitions: list[str]
    message: str


# ---------------------------------------------------------------------------
# Required-key registrations (used by validate_payload)
# ---------------------------------------------------------------------------

_REQUIRED_KEYS: dict[type, frozenset[str]] = {
    CheckStatusInput: frozenset({"status_check_url", "mode"}),
    FireActionInput: frozenset({"action_url", "content"}),
}


# ---------------------------------------------------------------------------
# Runtime validation
# ---------------------------------------------------------------------------


def validate_payload(
    raw: dict[str, Any],
    schema: type,
    *,
    activity: str,
) -> None:
    """Validate that *raw* contains the required keys for *schema*.

    Raises:
        ContractError: If required keys are missing from the payload.
    """
    required = _REQUIRED_KEYS.get(schema)
    if required is None:
        return

    missing = required - raw.keys()
    if missing:
        msg = f"{activity}: missing required payload key(s): {', '.join(sorted(missing))}"
        raise ContractError(msg, stage=activity, code="PAYLOAD_MISSING_KEYS")
