"""In-process collaborator adapters.

Used for local runs and as test doubles:

- ``ScriptedStatusQuery`` replays a fixed sequence of poll results.
- ``InMemoryEntityStore`` keeps entity states in a dict and records
  every transition it was asked to persist.
- ``InMemoryTaskContextStore`` keeps the latest copy of each task record.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from dataclasses import replace
from typing import TYPE_CHECKING

from remote_task_monitor.core.exceptions import PersistenceFailure
from remote_task_monitor.providers.base import (
    EntityStateUpdater,
    StatusQuery,
    TaskContextStore,
)

if TYPE_CHECKING:
    from remote_task_monitor.models.entity import EntityState, MonitoredEntity, TaskContext
    from remote_task_monitor.models.task_state import PollResult

logger = logging.getLogger(__name__)


class ScriptedStatusQuery(StatusQuery):
    """Returns pre-recorded poll results in order.

    Each element of *script* is either a ``PollResult`` to return or an
    exception instance to raise.  Once the script is exhausted the last
    element is repeated.
    """

    name = "scripted"

    def __init__(self, script: Iterable[PollResult | BaseException]) -> None:
        self._script = list(script)
        if not self._script:
            msg = "ScriptedStatusQuery needs at least one result"
            raise ValueError(msg)
        self._index = 0
        self._lock = threading.Lock()
        self.handles: list[str] = []

    @property
    def call_count(self) -> int:
        """Number of queries served so far."""
        return len(self.handles)

    def query(self, handle: str) -> PollResult:
        with self._lock:
            self.handles.append(handle)
            item = self._script[min(self._index, len(self._script) - 1)]
            self._index += 1
        if isinstance(item, BaseException):
            raise item
        return item


class InMemoryEntityStore(EntityStateUpdater):
    """Dict-backed entity store.

    Attributes:
        transitions: Every ``(entity_id, state)`` pair persisted, in order.
    """

    def __init__(self, entities: Iterable[MonitoredEntity] = ()) -> None:
        self._entities: dict[str, MonitoredEntity] = {e.id: e for e in entities}
        self._lock = threading.Lock()
        self.transitions: list[tuple[str, EntityState]] = []

    def add(self, entity: MonitoredEntity) -> None:
        """Register *entity* with the store."""
        with self._lock:
            self._entities[entity.id] = entity

    def get(self, entity_id: str) -> MonitoredEntity:
        """Return the stored entity.

        Raises:
            PersistenceFailure: If the entity is unknown.
        """
        with self._lock:
            entity = self._entities.get(entity_id)
        if entity is None:
            msg = f"Entity {entity_id!r} not found"
            raise PersistenceFailure(msg)
        return entity

    def set_state(self, entity_id: str, new_state: EntityState) -> None:
        with self._lock:
            entity = self._entities.get(entity_id)
            if entity is None:
                msg = f"Cannot set state of unknown entity {entity_id!r}"
                raise PersistenceFailure(msg)
            entity.state = new_state
            self.transitions.append((entity_id, new_state))
        logger.debug("Entity state set | entity=%s | state=%s", entity_id, new_state.value)


class InMemoryTaskContextStore(TaskContextStore):
    """Keeps a snapshot of each task record it is given."""

    def __init__(self) -> None:
        self._tasks: dict[str, TaskContext] = {}
        self._lock = threading.Lock()

    def update(self, task: TaskContext) -> None:
        with self._lock:
            self._tasks[task.task_id] = replace(task, resources=dict(task.resources))

    def get(self, task_id: str) -> TaskContext | None:
        """Return the last stored snapshot of *task_id*, if any."""
        with self._lock:
            return self._tasks.get(task_id)
