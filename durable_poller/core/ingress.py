"""Thin ingress boundary helpers for Azure Functions entrypoints.

Centralises the transport concerns so that ``function_app.py`` contains
only trigger bindings and handoff:

- **deserialize_activity_input**: normalises the JSON-string-or-dict
  payload that Durable Functions passes to activities (idempotent on
  replays).
- **build_orchestrator_input**: decodes an HTTP start body, fills in
  configured policy defaults, and validates it into the canonical
  ``PollRequest`` dict the orchestrator consumes.  Malformed input is
  rejected here, before any orchestration starts.
- **build_sample_input**: the canned request started by a bodiless
  ``GET /api/SetTimer``.
- **start_poll_run** / **get_run_status**: the HTTP handler bodies behind
  the ``SetTimer`` and ``poller/{instance_id}`` routes.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

import azure.functions as func
from pydantic.alias_generators import to_snake

from durable_poller.core.config import PollerConfig
from durable_poller.core.constants import ORCHESTRATOR_NAME
from durable_poller.core.exceptions import ContractError, RequestValidationError
from durable_poller.models.request import parse_poll_request

if TYPE_CHECKING:
    import azure.durable_functions as df

logger = logging.getLogger("durable_poller.core.ingress")


# ---------------------------------------------------------------------------
# Activity input deserialisation
# ---------------------------------------------------------------------------


def deserialize_activity_input(raw: str | dict[str, Any] | object) -> dict[str, Any]:
    """Normalise Durable Functions activity input to a plain dict.

    During initial execution the activity input arrives as a JSON
    string; on orchestrator replay it may already be a ``dict``.  This
    function handles both cases and raises ``ContractError`` for
    unexpected types.

    Raises:
        ContractError: If *raw* is neither a JSON object string nor a dict.
    """
    if isinstance(raw, str):
        try:
            parsed = json.loads(raw)
        except (json.JSONDecodeError, ValueError) as exc:
            msg = f"Activity input is not valid JSON: {exc}"
            raise ContractError(msg, stage="ingress", code="INVALID_JSON") from exc
        if not isinstance(parsed, dict):
            msg = f"Activity input JSON must be an object, got {type(parsed).__name__}"
            raise ContractError(msg, stage="ingress", code="INVALID_INPUT_TYPE")
        return parsed
    if isinstance(raw, dict):
        return raw
    msg = f"Unexpected activity input type: {type(raw).__name__}"
    raise ContractError(msg, stage="ingress", code="INVALID_INPUT_TYPE")


# ---------------------------------------------------------------------------
# Canonical orchestrator input builder
# ---------------------------------------------------------------------------

_POLICY_SECTIONS = ("retry_policy", "http_retry")

# Older request shape: ``RetryOptions { DelaySeconds, ... }``.
_SECTION_ALIASES = {"retry_options": "retry_policy"}
_FIELD_ALIASES: dict[str, dict[str, str]] = {
    "retry_policy": {"delay_seconds": "initial_delay_seconds"},
}


def build_orchestrator_input(
    body: bytes | str | dict[str, Any] | None,
    *,
    config: PollerConfig | None = None,
    correlation_id: str = "",
) -> dict[str, Any]:
    """Build the canonical orchestration input from an HTTP start body.

    Keys may be snake_case, camelCase or PascalCase.  A ``RetryOptions``
    section is read as ``retry_policy`` (its ``DelaySeconds`` as
    ``initial_delay_seconds``) unless ``retry_policy`` is also given.  A missing
    ``retry_policy`` / ``http_retry`` section, or missing fields inside
    one, are filled from *config* (``PollerConfig.from_env()`` when
    omitted).

    Args:
        body: Raw request body (bytes or str) or an already-parsed dict.
        config: Defaults source.
        correlation_id: Identifier threaded into validation errors.

    Returns:
        ``PollRequest.model_dump(mode="json")``: plain, JSON-safe dict.

    Raises:
        RequestValidationError: If the body is not a JSON object or does
            not validate as a ``PollRequest``.
    """
    cfg = config or PollerConfig.from_env()
    raw = _decode_body(body, correlation_id=correlation_id)

    normalised: dict[str, Any] = {to_snake(str(k)): v for k, v in raw.items()}
    for alias, section in _SECTION_ALIASES.items():
        if alias in normalised and section not in normalised:
            normalised[section] = normalised.pop(alias)

    defaults = {
        "retry_policy": cfg.default_retry_policy(),
        "http_retry": cfg.default_http_retry(),
    }
    for section in _POLICY_SECTIONS:
        provided = normalised.get(section)
        if provided is None:
            normalised[section] = defaults[section]
        elif isinstance(provided, dict):
            fields = {to_snake(str(k)): v for k, v in provided.items()}
            for alias, name in _FIELD_ALIASES.get(section, {}).items():
                if alias in fields and name not in fields:
                    fields[name] = fields.pop(alias)
            normalised[section] = {**defaults[section], **fields}

    request = parse_poll_request(normalised, correlation_id=correlation_id)
    payload = request.model_dump(mode="json")

    logger.debug(
        "Built orchestrator input | status_check_url=%s | action_url=%s | mode=%s | "
        "max_retries=%d | correlation_id=%s",
        request.status_check_url,
        request.action_url,
        request.mode.value,
        request.retry_policy.max_retries,
        correlation_id,
    )

    return payload


def build_sample_input(config: PollerConfig) -> dict[str, Any]:
    """Build the canned orchestration input for a bodiless sample start.

    Uses the ``POLL_SAMPLE_*`` settings and the configured policy defaults.

    Raises:
        RequestValidationError: If no sample URLs are configured, or they
            do not validate.
    """
    if not config.sample_configured:
        msg = (
            "Sample start is not configured; set POLL_SAMPLE_STATUS_CHECK_URL and "
            "POLL_SAMPLE_ACTION_URL or POST a poll request"
        )
        raise RequestValidationError(msg, code="SAMPLE_NOT_CONFIGURED")

    body = {
        "status_check_url": config.sample_status_check_url,
        "action_url": config.sample_action_url,
        "content": config.sample_content,
    }
    return build_orchestrator_input(body, config=config)


# ---------------------------------------------------------------------------
# HTTP handlers
# ---------------------------------------------------------------------------


async def start_poll_run(
    req: func.HttpRequest,
    client: df.DurableOrchestrationClient,
    *,
    config: PollerConfig | None = None,
) -> func.HttpResponse:
    """Validate a start request and start the polling orchestrator.

    ``POST`` starts a run from the JSON body; ``GET`` starts the configured
    sample run.  Returns the Durable Functions check-status response (202
    with status query URLs) on success, or 400 with a structured error
    payload when the request is rejected.
    """
    cfg = config or PollerConfig.from_env()
    try:
        if req.method.upper() == "GET":
            orchestrator_input = build_sample_input(cfg)
        else:
            orchestrator_input = build_orchestrator_input(req.get_body(), config=cfg)
    except RequestValidationError as exc:
        logger.warning("Rejected poll request | code=%s | error=%s", exc.code, exc.message)
        return func.HttpResponse(
            json.dumps(exc.to_error_dict()),
            status_code=400,
            mimetype="application/json",
        )

    try:
        instance_id = await client.start_new(ORCHESTRATOR_NAME, client_input=orchestrator_input)
    except Exception:
        logger.exception(
            "Failed to start orchestrator | status_url=%s",
            orchestrator_input["status_check_url"],
        )
        raise

    logger.info(
        "Orchestrator started | instance_id=%s | status_url=%s | action_url=%s | mode=%s",
        instance_id,
        orchestrator_input["status_check_url"],
        orchestrator_input["action_url"],
        orchestrator_input["mode"],
    )

    return client.create_check_status_response(req, instance_id)


async def get_run_status(
    req: func.HttpRequest,
    client: df.DurableOrchestrationClient,
) -> func.HttpResponse:
    """Return the check-status response for a polling run."""
    instance_id = req.route_params.get("instance_id", "")
    if not instance_id:
        return func.HttpResponse("Missing instance_id", status_code=400)

    status = await client.get_status(instance_id)
    if not status:
        return func.HttpResponse("Instance not found", status_code=404)

    return client.create_check_status_response(req, instance_id)


def _decode_body(
    body: bytes | str | dict[str, Any] | None,
    *,
    correlation_id: str,
) -> dict[str, Any]:
    if isinstance(body, dict):
        return body
    if body is None or not body:
        msg = "Request body is empty; expected a JSON poll request"
        raise RequestValidationError(msg, code="EMPTY_BODY", correlation_id=correlation_id)

    try:
        parsed = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError, ValueError) as exc:
        msg = f"Request body is not valid JSON: {exc}"
        raise RequestValidationError(
            msg, code="INVALID_JSON", correlation_id=correlation_id
        ) from exc

    if not isinstance(parsed, dict):
        msg = f"Request body must be a JSON object, got {type(parsed).__name__}"
        raise RequestValidationError(
            msg, code="INVALID_INPUT_TYPE", correlation_id=correlation_id
        )
    return parsed
