"""Shared outbound HTTP helpers for the status-check and action activities.

Each activity invocation sends exactly one request.  Transport-level
failures are normalised to ``TransientTransportError`` so the orchestrator
can apply its per-call retry budget without knowing about ``httpx``.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from durable_poller.core.exceptions import TransientTransportError

logger = logging.getLogger("durable_poller.utils.http")

DEFAULT_TIMEOUT_SECONDS = 30.0


def build_client(timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS) -> httpx.Client:
    """Return a new ``httpx.Client`` for a single activity invocation."""
    return httpx.Client(timeout=timeout_seconds, follow_redirects=True)


def send_request(
    client: httpx.Client,
    method: str,
    url: str,
    *,
    content: Any = None,
    follow_redirects: bool | None = None,
    stage: str = "",
    correlation_id: str = "",
) -> httpx.Response:
    """Send one request and return the response, whatever its status.

    ``content`` is sent as a raw body when it is ``str``/``bytes``, as
    JSON for any other non-``None`` value, and omitted when ``None``.
    ``follow_redirects`` overrides the client's setting for this request
    when given.

    Raises:
        TransientTransportError: On any ``httpx.TransportError``
            (connect failure, timeout, protocol error, ...).
    """
    kwargs: dict[str, Any] = {}
    if isinstance(content, str | bytes):
        kwargs["content"] = content
    elif content is not None:
        kwargs["json"] = content
    if follow_redirects is not None:
        kwargs["follow_redirects"] = follow_redirects

    try:
        return client.request(method, url, **kwargs)
    except httpx.TransportError as exc:
        logger.warning(
            "Transport error | stage=%s | method=%s | url=%s | error=%s | correlation_id=%s",
            stage,
            method,
            url,
            exc,
            correlation_id,
        )
        msg = f"{method} {url} failed: {type(exc).__name__}: {exc}"
        raise TransientTransportError(
            msg,
            url=url,
            stage=stage,
            correlation_id=correlation_id,
        ) from exc
