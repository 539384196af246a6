"""Unified exception taxonomy for the poller.

Every domain exception inherits from ``PollerError`` and carries
structured context fields that enable consistent retry decisions,
alerting, and operator diagnostics.

Taxonomy categories
-------------------
- ``ValidationError``   : input/contract violations, never retryable.
- ``TransientError``    : temporary failures (network, throttle), retryable.
- ``PermanentError``    : unrecoverable failures, not retryable.
- ``ContractError``     : payload/schema drift between stages, never retryable.

Every exception exposes ``to_error_dict()`` for a stable structured
error payload suitable for orchestration history, logging, and HTTP
error responses.
"""

from __future__ import annotations

from typing import Any


class PollerError(Exception):
    """Base exception for all poller-domain errors.

    Attributes:
        message: Human-readable error description.
        stage: Stage where the error occurred
            (e.g. ``"check_status"``, ``"fire_action"``).
        code: Machine-readable error code (e.g. ``"TRANSPORT_FAILED"``).
        retryable: Whether the caller may retry the operation.
        correlation_id: Orchestration instance or request identifier.
    """

    #: Default stage for subclasses (override via class attribute or kwarg).
    default_stage: str = ""
    #: Default code for subclasses (override via class attribute or kwarg).
    default_code: str = ""

    def __init__(
        self,
        message: str = "",
        *,
        stage: str = "",
        code: str = "",
        retryable: bool = False,
        correlation_id: str = "",
    ) -> None:
        self.message = message
        self.stage = stage or self.default_stage
        self.code = code or self.default_code
        self.retryable = retryable
        self.correlation_id = correlation_id
        super().__init__(message)

    @property
    def category(self) -> str:
        """Return the error category based on concrete class."""
        if isinstance(self, ContractError):
            return "contract"
        if isinstance(self, ValidationError):
            return "validation"
        if isinstance(self, TransientError):
            return "transient"
        if isinstance(self, PermanentError):
            return "permanent"
        return "transient" if self.retryable else "permanent"

    def to_error_dict(self) -> dict[str, object]:
        """Return a structured error payload with stable keys."""
        return {
            "category": self.category,
            "code": self.code,
            "stage": self.stage,
            "message": self.message,
            "retryable": self.retryable,
            "correlation_id": self.correlation_id,
        }


# ---------------------------------------------------------------------------
# Category base classes
# ---------------------------------------------------------------------------


class ValidationError(PollerError):
    """Input or domain-model validation failure. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class TransientError(PollerError):
    """Temporary failure that may succeed on retry."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", True)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class PermanentError(PollerError):
    """Unrecoverable failure. Not retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class ContractError(PollerError):
    """Payload or schema drift between stages. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Concrete errors
# ---------------------------------------------------------------------------


class TransientTransportError(TransientError):
    """An outbound HTTP call failed at the transport level.

    Raised by activities for a single failed call, and by the orchestrator
    once the per-call transport retry budget is spent.  In the latter case
    the run ends ``Failed``; the polling loop never reschedules on top of
    an exhausted transport budget.

    Attributes:
        url: Target URL of the failed call.
        status_code: HTTP status when the failure was a retryable status
            (429/5xx), else ``None``.
    """

    default_code = "TRANSPORT_FAILED"

    def __init__(
        self,
        message: str = "",
        *,
        url: str = "",
        status_code: int | None = None,
        **kwargs: object,
    ) -> None:
        self.url = url
        self.status_code = status_code
        super().__init__(message, **kwargs)


class TriggerFailedError(PermanentError):
    """The follow-up action could not be confirmed delivered."""

    default_stage = "fire_action"
    default_code = "TRIGGER_FAILED"


class RequestValidationError(ValidationError):
    """A ``PollRequest`` payload failed schema validation.

    Attributes:
        errors: Field-level error details (pydantic ``errors()`` shape).
    """

    default_stage = "ingress"
    default_code = "INVALID_POLL_REQUEST"

    def __init__(
        self,
        message: str = "",
        *,
        errors: list[dict[str, Any]] | None = None,
        **kwargs: object,
    ) -> None:
        self.errors = errors or []
        super().__init__(message, **kwargs)

    def to_error_dict(self) -> dict[str, object]:
        payload = super().to_error_dict()
        payload["errors"] = self.errors
        return payload


class InvalidTransitionError(ContractError):
    """The polling state machine was asked to make an illegal transition."""

    default_stage = "poll_orchestrator"
    default_code = "INVALID_TRANSITION"
