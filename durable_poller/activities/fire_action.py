"""Fire action activity: the one-shot follow-up call.

Posts the run's opaque ``content`` to ``action_url``.  The orchestrator
calls this at most once per run, only after a status check classified
the target as ready.

Result handling:
- 2xx: delivered.
- Transport error, 429 or 5xx: ``TransientTransportError`` so the
  orchestrator's transport retry budget applies.
- Any other status: returned with ``delivered=False``; the orchestrator
  fails the run without retrying.

Redirects are never followed: a 3xx means the POST handler did not
accept the content, so it counts as not delivered.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from durable_poller.core.constants import FIRE_ACTION_ACTIVITY, HTTP_STATUS_TOO_MANY_REQUESTS
from durable_poller.core.exceptions import ContractError, TransientTransportError
from durable_poller.utils.http import DEFAULT_TIMEOUT_SECONDS, build_client, send_request

if TYPE_CHECKING:
    import httpx

    from durable_poller.models.payloads import FireActionOutput

logger = logging.getLogger("durable_poller.activities.fire_action")


def fire_action(
    payload: dict[str, Any],
    *,
    client: httpx.Client | None = None,
) -> FireActionOutput:
    """POST the run's content to the action URL.

    Args:
        payload: Dict with ``action_url``, ``content`` and optionally
            ``timeout_seconds`` and ``instance_id``.
        client: Optional pre-built ``httpx.Client``.

    Returns:
        ``{"status_code": int, "delivered": bool}``.

    Raises:
        ContractError: If ``action_url`` is missing.
        TransientTransportError: On transport failure, 429 or 5xx.
    """
    url = str(payload.get("action_url", ""))
    if not url:
        msg = "fire_action: action_url is missing from payload"
        raise ContractError(msg, stage=FIRE_ACTION_ACTIVITY, code="MISSING_URL")

    instance_id = str(payload.get("instance_id", ""))
    timeout = float(payload.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS))

    logger.info("fire_action started | url=%s | instance=%s", url, instance_id)

    owns_client = client is None
    http = client or build_client(timeout)
    try:
        response = send_request(
            http,
            "POST",
            url,
            content=payload.get("content"),
            follow_redirects=False,
            stage=FIRE_ACTION_ACTIVITY,
            correlation_id=instance_id,
        )
    finally:
        if owns_client:
            http.close()

    status = response.status_code
    if status == HTTP_STATUS_TOO_MANY_REQUESTS or status >= 500:
        msg = f"POST {url} returned retryable status {status}"
        raise TransientTransportError(
            msg,
            url=url,
            status_code=status,
            stage=FIRE_ACTION_ACTIVITY,
            correlation_id=instance_id,
        )

    delivered = response.is_success
    if delivered:
        logger.info(
            "fire_action completed | url=%s | status=%d | instance=%s",
            url,
            status,
            instance_id,
        )
    else:
        logger.error(
            "fire_action rejected | url=%s | status=%d | instance=%s",
            url,
            status,
            instance_id,
        )

    return {"status_code": status, "delivered": delivered}
