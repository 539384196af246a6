"""Azure Functions entry point: Durable Poller.

This module registers all Azure Functions (triggers, orchestrator, activities)
using the Python v2 programming model.

All business logic lives in the durable_poller package. This file is purely
the wiring layer between Azure Functions bindings and application code.
"""

from __future__ import annotations

import azure.durable_functions as df
import azure.functions as func

from durable_poller.core.constants import (
    CHECK_STATUS_ACTIVITY,
    FIRE_ACTION_ACTIVITY,
    ORCHESTRATOR_NAME,
)
from durable_poller.core.ingress import (
    deserialize_activity_input,
    get_run_status,
    start_poll_run,
)
from durable_poller.models.payloads import (
    CheckStatusInput,
    FireActionInput,
    validate_payload,
)

app = df.DFApp(http_auth_level=func.AuthLevel.ANONYMOUS)


# ---------------------------------------------------------------------------
# HTTP: Start a polling run
# ---------------------------------------------------------------------------


@app.function_name("start_poller")
@app.route(route="SetTimer", methods=["GET", "POST"])
@app.durable_client_input(client_name="client")
async def start_poller(
    req: func.HttpRequest,
    client: df.DurableOrchestrationClient,
) -> func.HttpResponse:
    """Start a polling run.

    See ``durable_poller.core.ingress.start_poll_run`` for implementation.
    """
    return await start_poll_run(req, client)


# ---------------------------------------------------------------------------
# Orchestrator: polling state machine
# ---------------------------------------------------------------------------


@app.function_name(ORCHESTRATOR_NAME)
@app.orchestration_trigger(context_name="context")
def poll_orchestrator(context: df.DurableOrchestrationContext) -> object:
    """Durable Functions orchestrator for one polling run.

    See ``durable_poller.orchestrators.poll_pipeline`` for implementation.
    """
    from durable_poller.orchestrators.poll_pipeline import orchestrator_function

    return orchestrator_function(context)


# ---------------------------------------------------------------------------
# HTTP: Orchestrator Status Endpoint
# ---------------------------------------------------------------------------


@app.function_name("poller_status")
@app.route(route="poller/{instance_id}", methods=["GET"])
@app.durable_client_input(client_name="client")
async def poller_status(
    req: func.HttpRequest,
    client: df.DurableOrchestrationClient,
) -> func.HttpResponse:
    """Return the check-status response for a polling run."""
    return await get_run_status(req, client)


# ---------------------------------------------------------------------------
# Activities
# ---------------------------------------------------------------------------


@app.function_name(CHECK_STATUS_ACTIVITY)
@app.activity_trigger(input_name="activityInput")
def check_status_activity(activityInput: str) -> dict[str, object]:  # noqa: N803
    """Durable Functions activity: one status-check GET, classified.

    Input:
        JSON string (or dict when replaying) with ``status_check_url``,
        ``mode``, ``timeout_seconds`` and ``instance_id``.

    Returns:
        Dict with ``status_code``, ``outcome``, ``runtime_status``, ``reason``.

    Raises:
        TransientTransportError: If the request fails at the transport level.
    """
    from durable_poller.activities.check_status import check_status

    payload = deserialize_activity_input(activityInput)
    validate_payload(payload, CheckStatusInput, activity=CHECK_STATUS_ACTIVITY)

    return dict(check_status(payload))


@app.function_name(FIRE_ACTION_ACTIVITY)
@app.activity_trigger(input_name="activityInput")
def fire_action_activity(activityInput: str) -> dict[str, object]:  # noqa: N803
    """Durable Functions activity: POST the run's content to the action URL.

    Input:
        JSON string (or dict when replaying) with ``action_url``,
        ``content``, ``timeout_seconds`` and ``instance_id``.

    Returns:
        Dict with ``status_code`` and ``delivered``.

    Raises:
        TransientTransportError: On transport failure, 429 or 5xx.
    """
    from durable_poller.activities.fire_action import fire_action

    payload = deserialize_activity_input(activityInput)
    validate_payload(payload, FireActionInput, activity=FIRE_ACTION_ACTIVITY)

    return dict(fire_action(payload))
