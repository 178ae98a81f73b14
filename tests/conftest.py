"""Shared pytest fixtures for the remote task monitor test suite."""

from __future__ import annotations

import pytest

from remote_task_monitor.models.entity import EntityState, MonitoredEntity, TaskContext
from remote_task_monitor.models.task_state import RemoteTaskState, TaskNotFound, TaskStage
from remote_task_monitor.providers.memory import InMemoryEntityStore, InMemoryTaskContextStore

HANDLE = "/deployer/remove-deployment/7f3a"

# ---------------------------------------------------------------------------
# Poll result builders
# ---------------------------------------------------------------------------


def running(substage: int | None = None) -> RemoteTaskState:
    return RemoteTaskState(stage=TaskStage.RUNNING, substage=substage)


def finished(result_id: str | None = None, substage: int | None = None) -> RemoteTaskState:
    return RemoteTaskState(stage=TaskStage.FINISHED, substage=substage, result_entity_id=result_id)


def failed(message: str | None = "boom") -> RemoteTaskState:
    return RemoteTaskState(stage=TaskStage.FAILED, failure_reason=message)


def not_found(handle: str = HANDLE) -> TaskNotFound:
    return TaskNotFound(handle=handle)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def entity() -> MonitoredEntity:
    """A deployment being removed."""
    return MonitoredEntity(
        id="dep-1",
        kind="deployment",
        state=EntityState.READY,
        operation_id=HANDLE,
    )


@pytest.fixture()
def entity_store(entity: MonitoredEntity) -> InMemoryEntityStore:
    return InMemoryEntityStore([entity])


@pytest.fixture()
def task_store() -> InMemoryTaskContextStore:
    return InMemoryTaskContextStore()


@pytest.fixture()
def task_context() -> TaskContext:
    return TaskContext(task_id="task-42")


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()
