"""Data models and schemas.

Defines the data structures used throughout the poller:
- PollRequest: Validated start request (URLs, content, policies, mode)
- RetryPolicy / HttpRetryOptions: Orchestration and transport schedules
- PollOutcome / RunState / TerminalReason: State-machine vocabulary
- Activity payload contracts (TypedDicts)
"""

from durable_poller.models.outcome import PollOutcome, RunState, TerminalReason
from durable_poller.models.request import (
    HttpRetryOptions,
    PollMode,
    PollRequest,
    RetryPolicy,
    parse_poll_request,
)

__all__ = [
    "HttpRetryOptions",
    "PollMode",
    "PollOutcome",
    "PollRequest",
    "RetryPolicy",
    "RunState",
    "TerminalReason",
    "parse_poll_request",
]
