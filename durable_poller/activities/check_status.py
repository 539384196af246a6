"""Check status activity: one status-check call, classified.

Called by the orchestrator once per poll attempt.  Performs a single GET
against the target's status URL and maps the response to a
``PollOutcome`` the orchestrator uses to decide whether to keep polling,
fire the action, or stop.

Transport failures raise ``TransientTransportError``; the orchestrator
owns the retry budget for those, so a retried call is still one poll
attempt from the state machine's point of view.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from durable_poller.core.constants import (
    CHECK_STATUS_ACTIVITY,
    HTTP_STATUS_PENDING,
    HTTP_STATUS_READY,
    RUNTIME_STATUS_FIELD,
    RUNTIME_STATUS_PENDING,
    RUNTIME_STATUS_RUNNING,
)
from durable_poller.core.exceptions import ContractError
from durable_poller.models.outcome import PollOutcome
from durable_poller.models.request import PollMode
from durable_poller.utils.http import DEFAULT_TIMEOUT_SECONDS, build_client, send_request

if TYPE_CHECKING:
    import httpx

    from durable_poller.models.payloads import CheckStatusOutput

logger = logging.getLogger("durable_poller.activities.check_status")


def classify_response(
    mode: PollMode,
    status_code: int,
    body: bytes | str = b"",
) -> tuple[PollOutcome, str, str]:
    """Map a status-check response to a ``PollOutcome``.

    Args:
        mode: Interpretation mode for the run.
        status_code: HTTP status of the response.
        body: Raw response body (only read in ``StatusAware`` mode on 200).

    Returns:
        ``(outcome, runtime_status, reason)``.  ``runtime_status`` is the
        parsed ``runtimeStatus`` value, or ``""`` when not applicable.
    """
    if status_code == HTTP_STATUS_PENDING:
        return PollOutcome.KEEP_POLLING, "", "pending"

    if status_code != HTTP_STATUS_READY:
        return PollOutcome.STOP, "", f"unexpected status code {status_code}"

    if mode is PollMode.RAW_CHECK:
        return PollOutcome.TRIGGER_AND_STOP, "", "ready"

    runtime_status = _read_runtime_status(body)
    if runtime_status is None:
        return PollOutcome.STOP, "", "unparseable status document"
    if runtime_status == RUNTIME_STATUS_RUNNING:
        return PollOutcome.TRIGGER_AND_STOP, runtime_status, "ready"
    if runtime_status == RUNTIME_STATUS_PENDING:
        return PollOutcome.KEEP_POLLING, runtime_status, "pending"
    return PollOutcome.STOP, runtime_status, f"unexpected runtime status {runtime_status!r}"


def _read_runtime_status(body: bytes | str) -> str | None:
    """Return ``runtimeStatus`` from a JSON status document, or ``None``."""
    try:
        document = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError, ValueError, TypeError):
        return None
    if not isinstance(document, dict):
        return None
    value = document.get(RUNTIME_STATUS_FIELD)
    return value if isinstance(value, str) else None


def check_status(
    payload: dict[str, Any],
    *,
    client: httpx.Client | None = None,
) -> CheckStatusOutput:
    """Perform one status-check call and classify the response.

    Args:
        payload: Dict with ``status_check_url``, ``mode`` and optionally
            ``timeout_seconds`` and ``instance_id``.
        client: Optional pre-built ``httpx.Client`` (a fresh one is
            created and closed otherwise).

    Returns:
        A dict containing ``status_code``, ``outcome`` (``PollOutcome``
        value), ``runtime_status`` and ``reason``.

    Raises:
        ContractError: If the URL or mode is missing or unknown.
        TransientTransportError: If the request fails at the transport level.
    """
    url = str(payload.get("status_check_url", ""))
    if not url:
        msg = "check_status: status_check_url is missing from payload"
        raise ContractError(msg, stage=CHECK_STATUS_ACTIVITY, code="MISSING_URL")

    try:
        mode = PollMode(payload.get("mode", PollMode.RAW_CHECK.value))
    except ValueError as exc:
        msg = f"check_status: unknown mode {payload.get('mode')!r}"
        raise ContractError(msg, stage=CHECK_STATUS_ACTIVITY, code="UNKNOWN_MODE") from exc

    instance_id = str(payload.get("instance_id", ""))
    timeout = float(payload.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS))

    logger.info(
        "check_status started | url=%s | mode=%s | instance=%s",
        url,
        mode.value,
        instance_id,
    )

    owns_client = client is None
    http = client or build_client(timeout)
    try:
        response = send_request(
            http,
            "GET",
            url,
            stage=CHECK_STATUS_ACTIVITY,
            correlation_id=instance_id,
        )
    finally:
        if owns_client:
            http.close()

    outcome, runtime_status, reason = classify_response(
        mode, response.status_code, response.content
    )

    logger.info(
        "check_status completed | url=%s | status=%d | runtime_status=%s | outcome=%s | "
        "instance=%s",
        url,
        response.status_code,
        runtime_status or "-",
        outcome.value,
        instance_id,
    )

    return {
        "status_code": response.status_code,
        "outcome": outcome.value,
        "runtime_status": runtime_status,
        "reason": reason,
    }
