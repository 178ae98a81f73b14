"""Unified monitor exception taxonomy.

Provides a shared base exception hierarchy for the polling loop, the
step controller and the collaborator adapters.  Every domain exception
inherits from ``MonitorError`` and carries structured context fields
that enable consistent retry decisions, alerting, and operator
diagnostics.

Taxonomy categories
-------------------
- ``ValidationError``:   programmer/configuration errors, never retryable.
- ``TransientError``:    temporary conditions recovered locally, retryable.
- ``PermanentError``:    fatal to the monitoring session, not retryable.
- ``ContractError``:     remote document drift, never retryable.

Session-level failures
----------------------
``StatusUnknownError`` subclasses (timeout, exhausted not-found budget,
cancellation) mean the remote outcome was never observed, so the entity
state is left untouched.  ``RemoteTaskFailed`` means the remote task
itself reported failure and the entity was moved to ``ERROR``.

Every exception exposes ``to_error_dict()`` for a stable structured
error payload suitable for task history and logging.
"""

from __future__ import annotations


class MonitorError(Exception):
    """Base exception for all monitor-domain errors.

    Attributes:
        message: Human-readable error description.
        stage: Component where the error occurred
            (e.g. ``"poll_loop"``, ``"controller"``).
        code: Machine-readable error code (e.g. ``"POLL_TIMEOUT"``).
        retryable: Whether the caller may retry the operation.
        correlation_id: Request/task correlation identifier.
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


class ValidationError(MonitorError):
    """Input or domain-model validation failure. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class TransientError(MonitorError):
    """Temporary failure that may succeed on retry."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", True)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class PermanentError(MonitorError):
    """Unrecoverable failure. Not retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class ContractError(MonitorError):
    """Remote document or payload drift. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Session start and configuration errors
# ---------------------------------------------------------------------------


class InvalidSessionStart(ValidationError):
    """A monitoring session was started without a handle or an entity."""

    default_stage = "controller"
    default_code = "INVALID_SESSION_START"


class SessionStateError(ValidationError):
    """``start`` was called on a controller that is not in its initial state."""

    default_stage = "controller"
    default_code = "SESSION_ALREADY_STARTED"


class UnsupportedOperationKind(ValidationError):
    """No substage is registered for the requested operation kind.

    Attributes:
        kind: The operation kind that missed the lookup.
    """

    default_stage = "substage_resolver"
    default_code = "UNSUPPORTED_OPERATION_KIND"

    def __init__(self, kind: object) -> None:
        self.kind = kind
        super().__init__(f"unexpected operation {kind}")


# ---------------------------------------------------------------------------
# Polling errors
# ---------------------------------------------------------------------------


class TransientNotFound(TransientError):
    """The remote task record is not visible yet.

    Adapters may raise this instead of returning ``TaskNotFound``; the
    poll loop treats both the same way.
    """

    default_stage = "status_query"
    default_code = "REMOTE_TASK_NOT_FOUND"


class StatusUnknownError(PermanentError):
    """The session ended without observing the remote outcome.

    The entity state is left as it was so an operator (or a fresh
    monitoring session) can investigate.

    Attributes:
        handle: Remote task handle being monitored.
        poll_count: Number of status queries issued.
        elapsed_seconds: Wall-clock time spent in the session.
    """

    default_stage = "poll_loop"
    status_known = False

    def __init__(
        self,
        message: str,
        *,
        handle: str = "",
        poll_count: int = 0,
        elapsed_seconds: float = 0.0,
    ) -> None:
        self.handle = handle
        self.poll_count = poll_count
        self.elapsed_seconds = elapsed_seconds
        super().__init__(message)


class ExceededRetryBudget(StatusUnknownError):
    """Too many consecutive "not found" responses."""

    default_code = "EXCEEDED_NOT_FOUND_RETRIES"


class PollTimeout(StatusUnknownError):
    """The total wall-clock budget was exhausted before a terminal state."""

    default_code = "POLL_TIMEOUT"


class PollCancelled(StatusUnknownError):
    """The owning session was torn down while waiting between polls."""

    default_code = "POLL_CANCELLED"


# ---------------------------------------------------------------------------
# Terminal outcome errors
# ---------------------------------------------------------------------------


class RemoteTaskFailed(PermanentError):
    """The remote task reported failure.

    ``message`` is the remote failure message, unchanged.

    Attributes:
        entity_id: Identifier of the monitored entity (empty when unset).
        remote_message: Failure message reported by the remote task.
    """

    default_stage = "controller"
    default_code = "REMOTE_TASK_FAILED"
    status_known = True

    def __init__(self, entity_id: str, remote_message: str) -> None:
        self.entity_id = entity_id
        self.remote_message = remote_message
        super().__init__(remote_message)


class PersistenceFailure(PermanentError):
    """An entity or task state write was rejected by the persistence layer."""

    default_stage = "persistence"
    default_code = "PERSISTENCE_FAILED"
