"""Tests for the HTTP handlers behind the start and status routes.

The decorated functions in ``function_app.py`` need the Functions
runtime, so these tests call the handler bodies they delegate to with a
mocked durable client and real ``func.HttpRequest`` objects.
"""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import azure.functions as func
import pytest

from durable_poller.core.config import PollerConfig
from durable_poller.core.constants import ORCHESTRATOR_NAME
from durable_poller.core.ingress import get_run_status, start_poll_run

STATUS_URL = "https://target.example.com/runtime/webhooks/durabletask/instances/abc"
ACTION_URL = "https://hooks.example.com/api/action"


def _make_client(*, status: object = None) -> MagicMock:
    """Create a mock DurableOrchestrationClient."""
    client = MagicMock()
    client.start_new = AsyncMock(return_value="instance-123")
    client.get_status = AsyncMock(return_value=status)
    client.create_check_status_response.return_value = func.HttpResponse(
        '{"id": "instance-123"}', status_code=202, mimetype="application/json"
    )
    return client


def _start_request(body: bytes, *, method: str = "POST") -> func.HttpRequest:
    return func.HttpRequest(method=method, url="/api/SetTimer", body=body)


def _status_request(instance_id: str) -> func.HttpRequest:
    return func.HttpRequest(
        method="GET",
        url=f"/api/poller/{instance_id}",
        body=b"",
        route_params={"instance_id": instance_id},
    )


class TestStartPollRun:
    """POST /api/SetTimer validates the body and starts the orchestrator."""

    @pytest.mark.asyncio()
    async def test_valid_body_starts_orchestrator(
        self, poll_request_dict: dict[str, Any]
    ) -> None:
        client = _make_client()
        req = _start_request(json.dumps(poll_request_dict).encode())

        resp = await start_poll_run(req, client, config=PollerConfig())

        client.start_new.assert_awaited_once()
        args, kwargs = client.start_new.call_args
        assert args == (ORCHESTRATOR_NAME,)
        orchestrator_input = kwargs["client_input"]
        assert orchestrator_input["status_check_url"] == STATUS_URL
        assert orchestrator_input["action_url"] == ACTION_URL
        assert orchestrator_input["retry_policy"]["max_retries"] == 3
        assert orchestrator_input["mode"] == "RawCheck"

        client.create_check_status_response.assert_called_once_with(req, "instance-123")
        assert resp.status_code == 202

    @pytest.mark.asyncio()
    async def test_original_wire_shape_starts_orchestrator(self) -> None:
        client = _make_client()
        body = {
            "StatusCheckUrl": STATUS_URL,
            "ActionUrl": ACTION_URL,
            "Content": "wappa",
            "RetryOptions": {
                "DelaySeconds": 5,
                "MaxDelaySeconds": 60,
                "StartDelaySeconds": 0,
                "MaxRetries": 10.0,
                "BackoffCoefficient": 1.2,
            },
        }

        resp = await start_poll_run(
            _start_request(json.dumps(body).encode()), client, config=PollerConfig()
        )

        assert resp.status_code == 202
        orchestrator_input = client.start_new.call_args.kwargs["client_input"]
        assert orchestrator_input["content"] == "wappa"
        assert orchestrator_input["retry_policy"]["initial_delay_seconds"] == 5.0
        assert orchestrator_input["retry_policy"]["max_retries"] == 10

    @pytest.mark.asyncio()
    async def test_invalid_body_returns_structured_400(self) -> None:
        client = _make_client()
        req = _start_request(b'{"content": 1}')

        resp = await start_poll_run(req, client, config=PollerConfig())

        assert resp.status_code == 400
        assert resp.mimetype == "application/json"
        payload = json.loads(resp.get_body())
        assert payload["category"] == "validation"
        assert payload["code"] == "INVALID_POLL_REQUEST"
        assert payload["stage"] == "ingress"
        assert payload["retryable"] is False
        assert {e["loc"] for e in payload["errors"]} == {"status_check_url", "action_url"}
        client.start_new.assert_not_called()
        client.create_check_status_response.assert_not_called()

    @pytest.mark.asyncio()
    @pytest.mark.parametrize(
        ("body", "code"),
        [(b"", "EMPTY_BODY"), (b"{oops", "INVALID_JSON"), (b"[]", "INVALID_INPUT_TYPE")],
    )
    async def test_malformed_body_never_starts(self, body: bytes, code: str) -> None:
        client = _make_client()

        resp = await start_poll_run(_start_request(body), client, config=PollerConfig())

        assert resp.status_code == 400
        assert json.loads(resp.get_body())["code"] == code
        client.start_new.assert_not_called()

    @pytest.mark.asyncio()
    async def test_start_failure_propagates(self, poll_request_dict: dict[str, Any]) -> None:
        client = _make_client()
        client.start_new.side_effect = RuntimeError("task hub unavailable")
        req = _start_request(json.dumps(poll_request_dict).encode())

        with pytest.raises(RuntimeError, match="task hub unavailable"):
            await start_poll_run(req, client, config=PollerConfig())
        client.create_check_status_response.assert_not_called()


class TestSampleStart:
    """GET /api/SetTimer starts the configured sample run."""

    @pytest.mark.asyncio()
    async def test_configured_sample_starts(self) -> None:
        client = _make_client()
        cfg = PollerConfig(
            sample_status_check_url=STATUS_URL,
            sample_action_url=ACTION_URL,
            sample_content="wappa",
            max_retries=4,
        )

        resp = await start_poll_run(_start_request(b"", method="GET"), client, config=cfg)

        assert resp.status_code == 202
        orchestrator_input = client.start_new.call_args.kwargs["client_input"]
        assert orchestrator_input["status_check_url"] == STATUS_URL
        assert orchestrator_input["action_url"] == ACTION_URL
        assert orchestrator_input["content"] == "wappa"
        assert orchestrator_input["retry_policy"]["max_retries"] == 4

    @pytest.mark.asyncio()
    async def test_unconfigured_sample_rejected(self) -> None:
        client = _make_client()

        resp = await start_poll_run(
            _start_request(b"", method="GET"), client, config=PollerConfig()
        )

        assert resp.status_code == 400
        assert json.loads(resp.get_body())["code"] == "SAMPLE_NOT_CONFIGURED"
        client.start_new.assert_not_called()


class TestGetRunStatus:
    """GET /api/poller/{instance_id}."""

    @pytest.mark.asyncio()
    async def test_known_instance_returns_check_status_response(self) -> None:
        client = _make_client(status=MagicMock(runtime_status="Running"))
        req = _status_request("instance-123")

        resp = await get_run_status(req, client)

        client.get_status.assert_awaited_once_with("instance-123")
        client.create_check_status_response.assert_called_once_with(req, "instance-123")
        assert resp.status_code == 202

    @pytest.mark.asyncio()
    async def test_missing_instance_id_returns_400(self) -> None:
        client = _make_client()
        req = func.HttpRequest(method="GET", url="/api/poller/", body=b"", route_params={})

        resp = await get_run_status(req, client)

        assert resp.status_code == 400
        client.get_status.assert_not_called()

    @pytest.mark.asyncio()
    async def test_unknown_instance_returns_404(self) -> None:
        client = _make_client(status=None)

        resp = await get_run_status(_status_request("nope"), client)

        assert resp.status_code == 404
        client.create_check_status_response.assert_not_called()
