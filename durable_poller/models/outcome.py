"""Outcome and state enums shared by the activities and the orchestrator."""

from __future__ import annotations

import enum


class PollOutcome(enum.Enum):
    """Classification of a single status-check response.

    Values:
        KEEP_POLLING:     Target still pending; wait and poll again.
        TRIGGER_AND_STOP: Target ready; fire the action once, then finish.
        STOP:             Target reported an unexpected or terminal state.
    """

    KEEP_POLLING = "KeepPolling"
    TRIGGER_AND_STOP = "TriggerAndStop"
    STOP = "Stop"


class RunState(enum.Enum):
    """States of the polling state machine."""

    IDLE = "Idle"
    WAITING = "Waiting"
    POLLING = "Polling"
    TRIGGERING = "Triggering"
    DONE = "Done"
    FAILED = "Failed"

    @property
    def is_terminal(self) -> bool:
        return self in (RunState.DONE, RunState.FAILED)


class TerminalReason(enum.Enum):
    """Why a run reached ``Done`` or ``Failed``."""

    TRIGGERED = "triggered"
    RETRIES_EXHAUSTED = "retries_exhausted"
    STOPPED = "stopped"
    TRANSPORT_FAILED = "transport_failed"
    TRIGGER_FAILED = "trigger_failed"
    CONTRACT_VIOLATION = "contract_violation"
