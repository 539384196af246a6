"""In-memory record of one polling run's state machine.

``PollRun`` is rebuilt from scratch on every orchestrator replay: it is
mutated only by the orchestrator generator, from values that come out of
the durable history (activity results, ``current_utc_datetime``), so a
replay walks through the same transitions in the same order.

Allowed transitions::

    Idle       -> Waiting | Done
    Waiting    -> Polling | Failed
    Polling    -> Waiting | Triggering | Done | Failed
    Triggering -> Done | Failed
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from durable_poller.core.exceptions import InvalidTransitionError
from durable_poller.models.outcome import PollOutcome, RunState, TerminalReason

if TYPE_CHECKING:
    from datetime import datetime

    from durable_poller.models.payloads import PollRunResult

_ALLOWED_TRANSITIONS: dict[RunState, frozenset[RunState]] = {
    RunState.IDLE: frozenset({RunState.WAITING, RunState.DONE}),
    RunState.WAITING: frozenset({RunState.POLLING, RunState.FAILED}),
    RunState.POLLING: frozenset(
        {RunState.WAITING, RunState.TRIGGERING, RunState.DONE, RunState.FAILED}
    ),
    RunState.TRIGGERING: frozenset({RunState.DONE, RunState.FAILED}),
    RunState.DONE: frozenset(),
    RunState.FAILED: frozenset(),
}


@dataclass(slots=True)
class PollRun:
    """Mutable state of a single polling run.

    Attributes:
        instance_id: Orchestration instance ID.
        max_retries: Bound on regular poll attempts.
        attempt: Current attempt number (``0`` = start-delay attempt).
        state: Current ``RunState``.
        deadline: Deadline of the most recent wait.
        poll_count: Status-check calls completed.
        trigger_count: Action calls made (at most one).
        last_status_code: HTTP status of the latest status check.
        last_outcome: Classification of the latest status check.
        reason: Terminal reason once the run is ``Done`` or ``Failed``.
        transitions: Ordered ``"From->To"`` log of every transition.
    """

    instance_id: str
    max_retries: int
    attempt: int = 1
    state: RunState = RunState.IDLE
    deadline: datetime | None = None
    poll_count: int = 0
    trigger_count: int = 0
    last_status_code: int | None = None
    last_outcome: PollOutcome | None = None
    reason: TerminalReason | None = None
    transitions: list[str] = field(default_factory=list)

    def transition(self, target: RunState, *, reason: TerminalReason | None = None) -> None:
        """Move to *target*, enforcing the allowed-transition table.

        Raises:
            InvalidTransitionError: If the move is not allowed, or a
                terminal state is entered without a reason.
        """
        if target not in _ALLOWED_TRANSITIONS[self.state]:
            msg = f"Illegal transition {self.state.value} -> {target.value}"
            raise InvalidTransitionError(msg, correlation_id=self.instance_id)
        if target.is_terminal and reason is None:
            msg = f"Terminal state {target.value} requires a reason"
            raise InvalidTransitionError(msg, correlation_id=self.instance_id)

        self.transitions.append(f"{self.state.value}->{target.value}")
        self.state = target
        if reason is not None:
            self.reason = reason

    def schedule(self, deadline: datetime) -> None:
        """Record the next wake-up deadline and enter ``Waiting``."""
        self.deadline = deadline
        self.transition(RunState.WAITING)

    def record_poll(self, status_code: int, outcome: PollOutcome) -> None:
        self.poll_count += 1
        self.last_status_code = status_code
        self.last_outcome = outcome

    def record_trigger(self) -> None:
        """Count the action call.

        Raises:
            InvalidTransitionError: If the action was already fired in this run.
        """
        if self.trigger_count:
            msg = "Action already fired for this run"
            raise InvalidTransitionError(msg, correlation_id=self.instance_id)
        self.trigger_count += 1

    @property
    def has_retries_left(self) -> bool:
        return self.attempt < self.max_retries

    def advance(self) -> None:
        self.attempt += 1

    def custom_status(self) -> dict[str, object]:
        """The ``(state, attempt, deadline)`` snapshot published to the substrate."""
        return {
            "state": self.state.value,
            "attempt": self.attempt,
            "deadline": self.deadline.isoformat() if self.deadline else "",
            "poll_count": self.poll_count,
            "reason": self.reason.value if self.reason else "",
        }

    def to_result(self, *, mode: str) -> PollRunResult:
        reason = self.reason.value if self.reason else ""
        return {
            "state": self.state.value,
            "reason": reason,
            "instance_id": self.instance_id,
            "mode": mode,
            "attempt": self.attempt,
            "poll_count": self.poll_count,
            "trigger_count": self.trigger_count,
            "last_status_code": self.last_status_code,
            "last_outcome": self.last_outcome.value if self.last_outcome else "",
            "transitions": list(self.transitions),
            "message": (
                f"Run {self.state.value} ({reason}) after {self.poll_count} poll(s) "
                f"and {self.trigger_count} trigger(s)."
            ),
        }
