"""Tests for SessionRunner background execution."""

from __future__ import annotations

import time
from collections.abc import Iterator

import pytest

from remote_task_monitor.core.exceptions import (
    InvalidSessionStart,
    PollCancelled,
    RemoteTaskFailed,
)
from remote_task_monitor.models.entity import EntityState, MonitoredEntity, OperationKind
from remote_task_monitor.models.task_state import PollSettings
from remote_task_monitor.orchestrators.controller import PollingStepController
from remote_task_monitor.orchestrators.runner import SessionRunner
from remote_task_monitor.orchestrators.substages import (
    REMOVE_DEPLOYMENT_SUBSTAGES,
    SubstageResolver,
)
from remote_task_monitor.providers.memory import InMemoryEntityStore, ScriptedStatusQuery
from tests.conftest import HANDLE, failed, finished, running

DELETE = OperationKind.PERFORM_DELETE_DEPLOYMENT
FAST = PollSettings(poll_interval_s=0.0, timeout_s=60.0, max_not_found_count=10)
SLOW = PollSettings(poll_interval_s=30.0, timeout_s=600.0, max_not_found_count=10)
WAIT = 5.0


def _wait_for_first_poll(query: ScriptedStatusQuery) -> None:
    deadline = time.monotonic() + WAIT
    while query.call_count == 0 and time.monotonic() < deadline:
        time.sleep(0.01)


def _controller(
    script: list[object],
    store: InMemoryEntityStore,
    settings: PollSettings = FAST,
) -> PollingStepController:
    return PollingStepController(
        ScriptedStatusQuery(script),  # type: ignore[arg-type]
        store,
        SubstageResolver(REMOVE_DEPLOYMENT_SUBSTAGES),
        success_state=EntityState.NOT_DEPLOYED,
        settings=settings,
    )


@pytest.fixture()
def runner() -> Iterator[SessionRunner]:
    runner = SessionRunner(max_workers=4)
    yield runner
    runner.shutdown(cancel_active=True, wait=True)


class TestSubmit:
    def test_session_result_delivered(self, runner, entity, entity_store) -> None:
        controller = _controller([running(), finished("dep-1")], entity_store)
        future = runner.submit(controller, HANDLE, entity, DELETE)

        result = future.result(timeout=WAIT)

        assert result.result_entity_id == "dep-1"
        assert entity.state is EntityState.NOT_DEPLOYED
        assert runner.active_entities() == []

    def test_failure_delivered_through_future(self, runner, entity, entity_store) -> None:
        controller = _controller([failed("disk full")], entity_store)
        future = runner.submit(controller, HANDLE, entity, DELETE)

        with pytest.raises(RemoteTaskFailed, match="disk full"):
            future.result(timeout=WAIT)
        assert runner.active_entities() == []

    def test_entity_released_after_failure(self, runner, entity, entity_store) -> None:
        first = runner.submit(_controller([failed("x")], entity_store), HANDLE, entity, DELETE)
        with pytest.raises(RemoteTaskFailed):
            first.result(timeout=WAIT)

        second = runner.submit(_controller([finished()], entity_store), HANDLE, entity, DELETE)
        second.result(timeout=WAIT)
        assert entity.state is EntityState.NOT_DEPLOYED

    def test_none_entity_rejected(self, runner, entity_store) -> None:
        controller = _controller([finished()], entity_store)
        with pytest.raises(InvalidSessionStart):
            runner.submit(controller, HANDLE, None, DELETE)  # type: ignore[arg-type]


class TestOneSessionPerEntity:
    def test_duplicate_entity_rejected_while_active(self, runner, entity, entity_store) -> None:
        controller = _controller([running()], entity_store, SLOW)
        future = runner.submit(controller, HANDLE, entity, DELETE)

        with pytest.raises(InvalidSessionStart, match="already being monitored"):
            runner.submit(_controller([finished()], entity_store), HANDLE, entity, DELETE)

        assert runner.cancel("dep-1") is True
        with pytest.raises(PollCancelled):
            future.result(timeout=WAIT)
        assert entity.state is EntityState.READY
        assert runner.active_entities() == []

    def test_distinct_entities_run_concurrently(self, runner, entity, entity_store) -> None:
        other = MonitoredEntity(id="dep-2", operation_id=HANDLE)
        entity_store.add(other)

        futures = [
            runner.submit(_controller([running()], entity_store, SLOW), HANDLE, e, DELETE)
            for e in (entity, other)
        ]

        assert runner.active_entities() == ["dep-1", "dep-2"]

        runner.shutdown(cancel_active=True, wait=True)
        for future in futures:
            with pytest.raises(PollCancelled):
                future.result(timeout=WAIT)
        assert entity_store.transitions == []

    def test_cancel_unknown_entity(self, runner) -> None:
        assert runner.cancel("nope") is False


class TestCancel:
    def test_cancel_active_session(self, runner, entity, entity_store) -> None:
        query = ScriptedStatusQuery([running()])
        controller = PollingStepController(
            query,
            entity_store,
            SubstageResolver(REMOVE_DEPLOYMENT_SUBSTAGES),
            success_state=EntityState.NOT_DEPLOYED,
            settings=SLOW,
        )
        future = runner.submit(controller, HANDLE, entity, DELETE)
        _wait_for_first_poll(query)

        assert runner.cancel("dep-1") is True
        with pytest.raises(PollCancelled) as exc_info:
            future.result(timeout=WAIT)

        assert exc_info.value.handle == HANDLE
        assert query.call_count == 1
        assert entity_store.transitions == []
        assert entity.state is EntityState.READY
        assert runner.active_entities() == []

    def test_entity_can_be_resubmitted_after_cancel(self, runner, entity, entity_store) -> None:
        first = runner.submit(_controller([running()], entity_store, SLOW), HANDLE, entity, DELETE)
        runner.cancel("dep-1")
        with pytest.raises(PollCancelled):
            first.result(timeout=WAIT)

        second = runner.submit(_controller([finished()], entity_store), HANDLE, entity, DELETE)

        assert second.result(timeout=WAIT).entity_id == "dep-1"
        assert entity_store.transitions == [("dep-1", EntityState.NOT_DEPLOYED)]


class TestShutdown:
    def test_submit_after_shutdown(self, entity, entity_store) -> None:
        runner = SessionRunner(max_workers=1)
        runner.shutdown()

        with pytest.raises(RuntimeError):
            runner.submit(_controller([finished()], entity_store), HANDLE, entity, DELETE)
        assert runner.active_entities() == []

    def test_shutdown_cancels_active_session(self, entity, entity_store) -> None:
        runner = SessionRunner(max_workers=1)
        future = runner.submit(_controller([running()], entity_store, SLOW), HANDLE, entity, DELETE)

        runner.shutdown(cancel_active=True, wait=True)

        with pytest.raises(PollCancelled):
            future.result(timeout=WAIT)
        assert entity_store.transitions == []
        assert runner.active_entities() == []

    def test_shutdown_without_cancel_lets_session_finish(self, entity, entity_store) -> None:
        runner = SessionRunner(max_workers=1)
        script = [running(), running(), finished("dep-1")]
        future = runner.submit(_controller(script, entity_store), HANDLE, entity, DELETE)

        runner.shutdown(cancel_active=False, wait=True)

        assert future.result(timeout=WAIT).result_entity_id == "dep-1"
        assert entity.state is EntityState.NOT_DEPLOYED
