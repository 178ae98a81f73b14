"""Data models and schemas.

Defines the data structures used throughout the monitor:
- RemoteTaskState / TaskNotFound: Results of a single status query
- PollSettings / PollSession: Per-session policy and bookkeeping
- MonitoredEntity / TaskContext: Local records driven by the remote task
- RemoteTaskDocument: Wire schema of the remote task document
"""

from remote_task_monitor.models.entity import (
    EntityState,
    MonitoredEntity,
    OperationKind,
    TaskContext,
)
from remote_task_monitor.models.task_state import (
    ModelValidationError,
    PollResult,
    PollSession,
    PollSettings,
    RemoteTaskState,
    TaskNotFound,
    TaskStage,
)

__all__ = [
    "EntityState",
    "ModelValidationError",
    "MonitoredEntity",
    "OperationKind",
    "PollResult",
    "PollSession",
    "PollSettings",
    "RemoteTaskState",
    "TaskContext",
    "TaskNotFound",
    "TaskStage",
]
