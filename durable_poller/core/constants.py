"""Shared poller constants: single source of truth.

Centralises function names, HTTP status codes, and status-document
strings used by the entry points, activities, and the orchestrator.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Durable Functions names
# ---------------------------------------------------------------------------

ORCHESTRATOR_NAME: str = "poll_orchestrator"
"""Registered name of the polling orchestrator."""

CHECK_STATUS_ACTIVITY: str = "check_status"
"""Activity that performs one status-check GET."""

FIRE_ACTION_ACTIVITY: str = "fire_action"
"""Activity that performs the one-shot action POST."""

# ---------------------------------------------------------------------------
# Status-check interpretation
# ---------------------------------------------------------------------------

HTTP_STATUS_READY: int = 200
"""Status code meaning the target is ready."""

HTTP_STATUS_PENDING: int = 202
"""Status code meaning the target accepted the work and is still pending."""

HTTP_STATUS_TOO_MANY_REQUESTS: int = 429

RUNTIME_STATUS_FIELD: str = "runtimeStatus"
"""Field read from the status document in ``StatusAware`` mode."""

RUNTIME_STATUS_RUNNING: str = "Running"
RUNTIME_STATUS_PENDING: str = "Pending"
