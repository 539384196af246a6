"""Deterministic wait-interval calculations.

Both functions are pure: the orchestrator recomputes them on every replay
and must get the same deadline each time.

Every returned delay is finite and at most ``MAX_WAIT_SECONDS``, so it can
always be added to the orchestration clock.  A growth term too large for a
float resolves to the configured cap (or ``MAX_WAIT_SECONDS`` when uncapped)
instead of raising.
"""

from __future__ import annotations

import math
from datetime import timedelta
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from durable_poller.models.request import HttpRetryOptions, RetryPolicy

#: Ceiling on any single wait, cap or no cap (ten years).
MAX_WAIT_SECONDS = timedelta(days=3650).total_seconds()


def next_delay(attempt: int, policy: RetryPolicy) -> float:
    """Return the wait in seconds before poll *attempt*.

    Attempt ``0`` is reserved for the optional start delay.  Regular
    attempts grow as ``initial_delay * attempt ** backoff_coefficient``,
    capped at ``max_delay_seconds`` when a cap is configured.

    Args:
        attempt: Poll attempt number (``0`` = start-delay attempt).
        policy: The run's retry policy.

    Returns:
        Delay in seconds, never above ``MAX_WAIT_SECONDS``.

    Raises:
        ValueError: If *attempt* is negative.
    """
    if attempt < 0:
        msg = f"attempt must be >= 0, got {attempt}"
        raise ValueError(msg)

    if attempt == 0:
        if policy.start_delay_seconds > 0:
            return _bounded(policy.start_delay_seconds, 0.0)
        attempt = 1

    delay = _scaled(policy.initial_delay_seconds, float(attempt), policy.backoff_coefficient)
    return _bounded(delay, policy.max_delay_seconds)


def transport_retry_delay(retry_number: int, options: HttpRetryOptions) -> float:
    """Return the wait in seconds before transport retry *retry_number* (1-based).

    ``first_retry_interval * backoff_coefficient ** (retry_number - 1)``,
    capped at ``max_retry_interval_seconds`` when a cap is configured.
    """
    if retry_number < 1:
        msg = f"retry_number must be >= 1, got {retry_number}"
        raise ValueError(msg)

    delay = _scaled(
        options.first_retry_interval_seconds,
        options.backoff_coefficient,
        float(retry_number - 1),
    )
    return _bounded(delay, options.max_retry_interval_seconds)


def _scaled(base: float, value: float, exponent: float) -> float:
    """``base * value ** exponent``, or ``inf`` when that overflows a float."""
    try:
        return base * value**exponent
    except OverflowError:
        return math.inf


def _bounded(delay: float, cap: float) -> float:
    if cap > 0:
        delay = min(delay, cap)
    return float(min(delay, MAX_WAIT_SECONDS))
