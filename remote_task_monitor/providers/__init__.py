"""Collaborator adapters.

Implements the ports the step controller depends on:
- StatusQuery: Reads remote task state (HTTP or scripted)
- EntityStateUpdater: Persists entity lifecycle transitions
- TaskContextStore: Persists the caller's task record
"""

from remote_task_monitor.providers.base import (
    EntityStateUpdater,
    ProviderError,
    StatusQuery,
    StatusQueryError,
    TaskContextStore,
)
from remote_task_monitor.providers.http import HttpEntityStateUpdater, HttpStatusQuery
from remote_task_monitor.providers.memory import (
    InMemoryEntityStore,
    InMemoryTaskContextStore,
    ScriptedStatusQuery,
)

__all__ = [
    "EntityStateUpdater",
    "HttpEntityStateUpdater",
    "HttpStatusQuery",
    "InMemoryEntityStore",
    "InMemoryTaskContextStore",
    "ProviderError",
    "ScriptedStatusQuery",
    "StatusQuery",
    "StatusQueryError",
    "TaskContextStore",
]
