"""Background execution of monitoring sessions.

``PollingStepController.start`` blocks its caller for the whole session
(up to the timeout budget).  ``SessionRunner`` runs each session on a
worker thread so the orchestrator and other sessions keep going, and
keeps at most one active session per entity: a second session would
race on the entity's lifecycle state.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import TYPE_CHECKING

from remote_task_monitor.core.exceptions import InvalidSessionStart

if TYPE_CHECKING:
    from remote_task_monitor.models.entity import MonitoredEntity, OperationKind, TaskContext
    from remote_task_monitor.models.task_state import PollSettings
    from remote_task_monitor.orchestrators.controller import (
        PollingStepController,
        SessionResult,
    )

logger = logging.getLogger("remote_task_monitor.orchestrators.runner")

DEFAULT_MAX_WORKERS = 8


class SessionRunner:
    """Runs controller sessions on a bounded thread pool."""

    def __init__(self, max_workers: int = DEFAULT_MAX_WORKERS) -> None:
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="poll-session",
        )
        self._active: dict[str, PollingStepController] = {}
        self._lock = threading.Lock()

    def submit(
        self,
        controller: PollingStepController,
        handle: str,
        entity: MonitoredEntity,
        kind: OperationKind,
        *,
        task_context: TaskContext | None = None,
        settings: PollSettings | None = None,
    ) -> Future[SessionResult]:
        """Start *controller* on a worker thread.

        Returns:
            A future resolving to the ``SessionResult`` or raising the
            session's failure.

        Raises:
            InvalidSessionStart: *entity* is missing or already monitored.
        """
        if entity is None:
            msg = f"Cannot monitor remote task {handle!r}: entity is not set"
            raise InvalidSessionStart(msg)

        entity_id = entity.id
        with self._lock:
            if entity_id in self._active:
                msg = f"Entity {entity_id!r} is already being monitored"
                raise InvalidSessionStart(msg)
            self._active[entity_id] = controller

        def _run() -> SessionResult:
            try:
                return controller.start(
                    handle, entity, kind, task_context=task_context, settings=settings
                )
            finally:
                self._release(entity_id)

        try:
            future = self._executor.submit(_run)
        except RuntimeError:
            self._release(entity_id)
            raise

        logger.info("Session submitted | entity=%s | handle=%s", entity_id, handle)
        return future

    def cancel(self, entity_id: str) -> bool:
        """Cancel the active session of *entity_id*.

        Returns:
            ``True`` if a session was active.
        """
        with self._lock:
            controller = self._active.get(entity_id)
        if controller is None:
            return False
        logger.info("Cancelling session | entity=%s", entity_id)
        controller.cancel()
        return True

    def active_entities(self) -> list[str]:
        """Return the ids of entities with a running session."""
        with self._lock:
            return sorted(self._active)

    def shutdown(self, *, cancel_active: bool = True, wait: bool = True) -> None:
        """Stop accepting sessions; optionally cancel the running ones."""
        if cancel_active:
            with self._lock:
                controllers = list(self._active.values())
            for controller in controllers:
                controller.cancel()
        self._executor.shutdown(wait=wait)

    def _release(self, entity_id: str) -> None:
        with self._lock:
            self._active.pop(entity_id, None)
