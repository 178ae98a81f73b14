"""Collaborator contracts consumed by the monitor.

The step controller interacts exclusively with these interfaces; it
never knows which remote service or persistence layer is behind them.

- ``StatusQuery``: read the current state of a remote task.
- ``EntityStateUpdater``: persist an entity lifecycle transition.
- ``TaskContextStore``: persist the caller's task record.

Concrete adapters live in ``providers.http`` (remote services over
HTTP) and ``providers.memory`` (in-process, for local runs and tests).
"""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING

from remote_task_monitor.core.exceptions import MonitorError

if TYPE_CHECKING:
    from remote_task_monitor.models.entity import EntityState, TaskContext
    from remote_task_monitor.models.task_state import PollResult


class StatusQuery(abc.ABC):
    """Reads the state of a remote task.

    Implementations must be safe to call repeatedly and must not have
    side effects beyond the remote system's own progression.
    """

    @abc.abstractmethod
    def query(self, handle: str) -> PollResult:
        """Return the current state of the task behind *handle*.

        Returns:
            A ``RemoteTaskState`` snapshot, or ``TaskNotFound`` when the
            remote record is not visible yet.

        Raises:
            TransientNotFound: Alternative way of signalling "not found".
            ProviderError: On any other remote failure.
        """


class EntityStateUpdater(abc.ABC):
    """Persists lifecycle transitions of monitored entities."""

    @abc.abstractmethod
    def set_state(self, entity_id: str, new_state: EntityState) -> None:
        """Move entity *entity_id* to *new_state*.

        Raises:
            PersistenceFailure: If the write is rejected.
        """


class TaskContextStore(abc.ABC):
    """Persists the caller's task record."""

    @abc.abstractmethod
    def update(self, task: TaskContext) -> None:
        """Write *task* back to the task store.

        Raises:
            PersistenceFailure: If the write is rejected.
        """


# ---------------------------------------------------------------------------
# Provider exceptions
# ---------------------------------------------------------------------------


class ProviderError(MonitorError):
    """Base exception for remote status adapter errors.

    Attributes:
        provider: Name of the adapter that raised the error.
        message: Human-readable error description.
        retryable: Whether the caller should retry the operation.
    """

    default_stage = "provider"
    default_code = "PROVIDER_ERROR"

    def __init__(
        self,
        provider: str,
        message: str,
        *,
        retryable: bool = False,
    ) -> None:
        self.provider = provider
        super().__init__(
            message,
            retryable=retryable,
            code=self.default_code,
            stage=self.default_stage,
        )

    def __str__(self) -> str:
        return f"[{self.provider}] {self.message}"


class StatusQueryError(ProviderError):
    """Error while reading a remote task document."""

    default_code = "STATUS_QUERY_FAILED"
