"""Durable Functions orchestrator for the polling state machine.

Receives a ``PollRequest`` dict from the start trigger and drives the loop:

1. Wait on a durable timer until the next deadline (start delay first,
   when configured, then ``next_delay(attempt)``).
2. Poll the status URL via the ``check_status`` activity.
3. Keep polling while attempts remain, stop on an unexpected status, or
   fire the ``fire_action`` activity exactly once when the target is ready.

Each outbound call gets its own transport retry budget
(``HttpRetryOptions``).  Transport retries wait on durable timers too and
never consume an orchestration attempt.

Outcomes:
    ``Done``   : returned as a ``PollRunResult`` dict (reason
                 ``triggered``, ``retries_exhausted`` or ``stopped``).
    ``Failed`` : the originating error is raised so the instance's runtime
                 status becomes Failed (reason ``transport_failed``,
                 ``trigger_failed`` or ``contract_violation``).

Every value that feeds a decision comes from the durable history
(``context.current_utc_datetime``, activity results), so a replay reaches
the same deadlines and outcomes.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from durable_poller.core.backoff import next_delay, transport_retry_delay
from durable_poller.core.constants import CHECK_STATUS_ACTIVITY, FIRE_ACTION_ACTIVITY
from durable_poller.core.exceptions import (
    ContractError,
    TransientTransportError,
    TriggerFailedError,
)
from durable_poller.core.ingress import deserialize_activity_input
from durable_poller.models.outcome import PollOutcome, RunState, TerminalReason
from durable_poller.models.request import parse_poll_request
from durable_poller.orchestrators.state import PollRun

if TYPE_CHECKING:
    from collections.abc import Generator

    import azure.durable_functions as df

    from durable_poller.models.payloads import PollRunResult
    from durable_poller.models.request import HttpRetryOptions, PollRequest

logger = logging.getLogger("durable_poller.orchestrators.poll_pipeline")

# Activity failures that retrying cannot fix.
_CONTRACT_MARKERS = (
    "ContractError",
    "PAYLOAD_MISSING_KEYS",
    "MISSING_URL",
    "UNKNOWN_MODE",
    "INVALID_INPUT_TYPE",
)


def orchestrator_function(
    context: df.DurableOrchestrationContext,
) -> Generator[Any, Any, PollRunResult]:
    """Polling orchestrator.

    Args:
        context: Durable Functions orchestration context.

    Returns:
        ``PollRunResult`` for runs that end ``Done``.

    Raises:
        RequestValidationError: If the input is not a valid ``PollRequest``.
        TransientTransportError: If a status check exhausts its transport
            retries.
        TriggerFailedError: If the action could not be confirmed delivered.
        ContractError: If an activity rejects its input as malformed.
    """
    instance_id = context.instance_id
    request = _load_request(context)
    policy = request.retry_policy

    run = PollRun(
        instance_id=instance_id,
        max_retries=policy.max_retries,
        attempt=0 if policy.has_start_delay else 1,
    )

    if not context.is_replaying:
        logger.info(
            "Orchestrator started | instance=%s | mode=%s | status_url=%s | "
            "max_retries=%d | start_delay=%.1fs | initial_delay=%.1fs | coefficient=%.2f",
            instance_id,
            request.mode.value,
            request.status_check_url,
            policy.max_retries,
            policy.start_delay_seconds,
            policy.initial_delay_seconds,
            policy.backoff_coefficient,
        )

    if run.attempt > policy.max_retries:
        run.transition(RunState.DONE, reason=TerminalReason.RETRIES_EXHAUSTED)
        return _finish(context, run, request)

    while True:
        # Waiting
        delay = next_delay(run.attempt, policy)
        deadline = context.current_utc_datetime + timedelta(seconds=delay)
        run.schedule(deadline)
        context.set_custom_status(run.custom_status())

        if not context.is_replaying:
            logger.info(
                "Waiting | instance=%s | attempt=%d/%d | delay=%.1fs | deadline=%s",
                instance_id,
                run.attempt,
                policy.max_retries,
                delay,
                deadline.isoformat(),
            )

        yield context.create_timer(deadline)

        # Polling
        run.transition(RunState.POLLING)
        try:
            poll_result = yield from _call_with_transport_retry(
                context,
                CHECK_STATUS_ACTIVITY,
                {
                    "status_check_url": request.status_check_url,
                    "mode": request.mode.value,
                    "timeout_seconds": request.http_retry.timeout_seconds,
                    "instance_id": instance_id,
                },
                request.http_retry,
            )
        except TransientTransportError as exc:
            run.transition(RunState.FAILED, reason=TerminalReason.TRANSPORT_FAILED)
            _fail(context, run, exc)
            raise
        except ContractError as exc:
            run.transition(RunState.FAILED, reason=TerminalReason.CONTRACT_VIOLATION)
            _fail(context, run, exc)
            raise

        outcome = _coerce_outcome(poll_result)
        status_code = int(poll_result.get("status_code", 0))
        run.record_poll(status_code, outcome)

        if not context.is_replaying:
            logger.info(
                "Poll result | instance=%s | attempt=%d | status=%d | runtime_status=%s | "
                "outcome=%s | reason=%s",
                instance_id,
                run.attempt,
                status_code,
                poll_result.get("runtime_status", "") or "-",
                outcome.value,
                poll_result.get("reason", ""),
            )

        if outcome is PollOutcome.KEEP_POLLING:
            if run.has_retries_left:
                run.advance()
                continue
            if not context.is_replaying:
                logger.warning(
                    "Retries exhausted while pending | instance=%s | attempts=%d | polls=%d",
                    instance_id,
                    run.attempt,
                    run.poll_count,
                )
            run.transition(RunState.DONE, reason=TerminalReason.RETRIES_EXHAUSTED)
            break

        if outcome is PollOutcome.STOP:
            if not context.is_replaying:
                logger.warning(
                    "Unexpected status, stopping | instance=%s | status=%d | reason=%s",
                    instance_id,
                    status_code,
                    poll_result.get("reason", ""),
                )
            run.transition(RunState.DONE, reason=TerminalReason.STOPPED)
            break

        # Triggering
        run.transition(RunState.TRIGGERING)
        context.set_custom_status(run.custom_status())
        run.record_trigger()
        try:
            fire_result = yield from _call_with_transport_retry(
                context,
                FIRE_ACTION_ACTIVITY,
                {
                    "action_url": request.action_url,
                    "content": request.content,
                    "timeout_seconds": request.http_retry.timeout_seconds,
                    "instance_id": instance_id,
                },
                request.http_retry,
            )
        except TransientTransportError as exc:
            run.transition(RunState.FAILED, reason=TerminalReason.TRIGGER_FAILED)
            error = TriggerFailedError(
                f"Action call to {request.action_url} failed: {exc.message}",
                correlation_id=instance_id,
            )
            _fail(context, run, error)
            raise error from exc
        except ContractError as exc:
            run.transition(RunState.FAILED, reason=TerminalReason.CONTRACT_VIOLATION)
            _fail(context, run, exc)
            raise

        if not fire_result.get("delivered", False):
            run.transition(RunState.FAILED, reason=TerminalReason.TRIGGER_FAILED)
            error = TriggerFailedError(
                f"Action call to {request.action_url} was rejected with status "
                f"{fire_result.get('status_code')}",
                correlation_id=instance_id,
            )
            _fail(context, run, error)
            raise error

        if not context.is_replaying:
            logger.info(
                "Action fired | instance=%s | url=%s | status=%s",
                instance_id,
                request.action_url,
                fire_result.get("status_code"),
            )
        run.transition(RunState.DONE, reason=TerminalReason.TRIGGERED)
        break

    return _finish(context, run, request)


# ---------------------------------------------------------------------------
# Transport retry
# ---------------------------------------------------------------------------


def _call_with_transport_retry(
    context: df.DurableOrchestrationContext,
    activity: str,
    payload: dict[str, Any],
    options: HttpRetryOptions,
) -> Generator[Any, Any, dict[str, Any]]:
    """Call *activity*, retrying failures on durable timers.

    Makes at most ``options.max_attempts`` calls.  The wait before retry
    ``n`` is ``transport_retry_delay(n, options)``.  A failure that is a contract
    violation is not retried.

    Yields:
        Durable activity and timer tasks.

    Returns:
        The activity result dict.

    Raises:
        TransientTransportError: Once all attempts have failed.
        ContractError: On the first contract-violation failure.
    """
    instance_id = context.instance_id
    call = 1
    while True:
        try:
            result = yield context.call_activity(activity, payload)
        except Exception as exc:
            if _is_contract_failure(exc):
                if not context.is_replaying:
                    logger.error(
                        "Activity rejected its input, not retrying | instance=%s | "
                        "activity=%s | attempt=%d | error=%s",
                        instance_id,
                        activity,
                        call,
                        exc,
                    )
                msg = f"{activity} rejected its input: {exc}"
                raise ContractError(
                    msg,
                    stage=activity,
                    code="ACTIVITY_CONTRACT_VIOLATION",
                    correlation_id=instance_id,
                ) from exc

            if call >= options.max_attempts:
                if not context.is_replaying:
                    logger.error(
                        "Transport retries exhausted | instance=%s | activity=%s | "
                        "attempts=%d | error=%s",
                        instance_id,
                        activity,
                        call,
                        exc,
                    )
                msg = f"{activity} failed after {call} attempt(s): {exc}"
                raise TransientTransportError(
                    msg,
                    stage=activity,
                    correlation_id=instance_id,
                ) from exc

            backoff = transport_retry_delay(call, options)
            if not context.is_replaying:
                logger.warning(
                    "Transport error (attempt %d/%d) | instance=%s | activity=%s | "
                    "backoff=%.1fs | error=%s",
                    call,
                    options.max_attempts,
                    instance_id,
                    activity,
                    backoff,
                    exc,
                )
            fire_at = context.current_utc_datetime + timedelta(seconds=backoff)
            yield context.create_timer(fire_at)
            call += 1
            continue

        return result if isinstance(result, dict) else {}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_request(context: df.DurableOrchestrationContext) -> PollRequest:
    raw = context.get_input()
    if isinstance(raw, str):
        raw = deserialize_activity_input(raw)
    try:
        return parse_poll_request(raw or {}, correlation_id=context.instance_id)
    except Exception as exc:
        if not context.is_replaying:
            logger.error(
                "Rejected orchestration input | instance=%s | error=%s",
                context.instance_id,
                exc,
            )
        raise


def _is_contract_failure(exc: Exception) -> bool:
    """Whether an activity failure is a contract violation rather than transport.

    The Durable runtime re-raises activity failures as plain exceptions
    whose message carries the original exception type and text.
    """
    if isinstance(exc, ContractError):
        return True
    text = f"{type(exc).__name__}: {exc}"
    return any(marker in text for marker in _CONTRACT_MARKERS)


def _coerce_outcome(poll_result: dict[str, Any]) -> PollOutcome:
    """Read the activity's outcome; anything unrecognised means stop."""
    try:
        return PollOutcome(poll_result.get("outcome"))
    except ValueError:
        return PollOutcome.STOP


def _fail(
    context: df.DurableOrchestrationContext,
    run: PollRun,
    error: Exception,
) -> None:
    context.set_custom_status(run.custom_status())
    if not context.is_replaying:
        logger.error(
            "Orchestrator failed | instance=%s | reason=%s | attempt=%d | polls=%d | "
            "triggers=%d | error=%s",
            run.instance_id,
            run.reason.value if run.reason else "",
            run.attempt,
            run.poll_count,
            run.trigger_count,
            error,
        )


def _finish(
    context: df.DurableOrchestrationContext,
    run: PollRun,
    request: PollRequest,
) -> PollRunResult:
    context.set_custom_status(run.custom_status())
    result = run.to_result(mode=request.mode.value)
    if not context.is_replaying:
        logger.info(
            "Orchestrator completed | instance=%s | state=%s | reason=%s | attempt=%d | "
            "polls=%d | triggers=%d",
            run.instance_id,
            run.state.value,
            result["reason"],
            run.attempt,
            run.poll_count,
            run.trigger_count,
        )
    return result
