"""Local entity and task models.

- ``EntityState``: Lifecycle states of a monitored entity
- ``OperationKind``: Category of remote operation being monitored
- ``MonitoredEntity``: The local entity whose state the remote task governs
- ``TaskContext``: The caller's broader task record
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from remote_task_monitor.core.constants import DEPLOYMENT_KIND
from remote_task_monitor.models.task_state import ModelValidationError


class EntityState(enum.Enum):
    """Lifecycle state of a monitored entity (a deployment)."""

    CREATING = "CREATING"
    READY = "READY"
    PAUSED = "PAUSED"
    ERROR = "ERROR"
    NOT_DEPLOYED = "NOT_DEPLOYED"
    DELETED = "DELETED"


class OperationKind(enum.Enum):
    """Remote operation being monitored.

    Only selects the expected substage; polling mechanics are identical
    for every kind.
    """

    PERFORM_DELETE_DEPLOYMENT = "PERFORM_DELETE_DEPLOYMENT"
    DEPROVISION_HOSTS = "DEPROVISION_HOSTS"


@dataclass(slots=True)
class MonitoredEntity:
    """A local entity driven by a remote task.

    The persistence layer owns the record; a monitoring session only
    holds this reference for its own duration.

    Attributes:
        id: Entity identifier.
        kind: Entity kind (e.g. ``"deployment"``).
        state: Last known lifecycle state.
        operation_id: Link of the remote task currently operating on the
            entity, if any.
    """

    id: str
    kind: str = DEPLOYMENT_KIND
    state: EntityState = EntityState.READY
    operation_id: str = ""

    def __post_init__(self) -> None:
        if not self.id or not self.id.strip():
            raise ModelValidationError("MonitoredEntity", "id", self.id, "must not be empty")


@dataclass(slots=True)
class TaskContext:
    """The caller's task record that a monitoring step belongs to.

    Attributes:
        task_id: Identifier of the task.
        entity_id: Entity the task ultimately produced or acted on.
        entity_kind: Kind of that entity.
        resources: Transient resources recorded by steps
            (e.g. the remote task link).
    """

    task_id: str
    entity_id: str = ""
    entity_kind: str = ""
    resources: dict[str, str] = field(default_factory=dict)
