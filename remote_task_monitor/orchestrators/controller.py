"""Polling step controller: binds remote task outcomes to entity state.

The controller starts one monitoring session for a remote task tied to
a local entity, lets ``PollLoop`` drive the status queries, and turns
the outcome into exactly one entity-state transition:

==============================  =======================================
Outcome                         Effect
==============================  =======================================
``FINISHED``                    entity → success state, result id
                                recorded on the task, ``SessionResult``
``FAILED`` / ``CANCELLED``      entity → ``ERROR`` (best effort),
                                ``RemoteTaskFailed`` raised
timeout / miss budget /         entity untouched, ``StatusUnknownError``
cancellation                    raised
==============================  =======================================

Controller state machine::

    INITIAL ──start()──▶ POLLING ──▶ SUCCEEDED
                                 └──▶ FAILED

A controller monitors a single session; calling ``start`` again is
rejected and a fresh controller must be used to re-observe a task.
"""

from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, NoReturn

from remote_task_monitor.activities.poll_status import poll_status
from remote_task_monitor.core.exceptions import (
    InvalidSessionStart,
    RemoteTaskFailed,
    SessionStateError,
)
from remote_task_monitor.models.entity import EntityState
from remote_task_monitor.models.task_state import PollSession, PollSettings, TaskStage
from remote_task_monitor.orchestrators.poll_loop import PollLoop

if TYPE_CHECKING:
    from collections.abc import Callable

    from remote_task_monitor.models.entity import MonitoredEntity, OperationKind, TaskContext
    from remote_task_monitor.models.task_state import RemoteTaskState
    from remote_task_monitor.orchestrators.substages import SubstageResolver
    from remote_task_monitor.providers.base import (
        EntityStateUpdater,
        StatusQuery,
        TaskContextStore,
    )

logger = logging.getLogger("remote_task_monitor.orchestrators.controller")


class ControllerState(enum.Enum):
    """Lifecycle of a ``PollingStepController``."""

    INITIAL = "initial"
    POLLING = "polling"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ControllerState.SUCCEEDED, ControllerState.FAILED)


@dataclass(frozen=True, slots=True)
class ProgressReport:
    """Read-only progress telemetry emitted on every observed snapshot.

    Attributes:
        handle: Remote task handle.
        substage: Substage ordinal reported by the remote task, if any.
        target_substage: Ordinal closing the monitored operation's scope.
        poll_count: Status queries issued so far.
    """

    handle: str
    substage: int | None
    target_substage: int
    poll_count: int

    @property
    def scope_complete(self) -> bool:
        """Whether the remote workflow has moved past this operation's scope."""
        return self.substage is not None and self.substage > self.target_substage


@dataclass(frozen=True, slots=True)
class SessionResult:
    """Successful outcome of a monitoring session."""

    handle: str
    entity_id: str
    stage: TaskStage
    result_entity_id: str | None
    poll_count: int
    elapsed_seconds: float
    last_substage: int | None

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-serialisable summary."""
        return {
            "handle": self.handle,
            "entity_id": self.entity_id,
            "stage": self.stage.value,
            "result_entity_id": self.result_entity_id,
            "poll_count": self.poll_count,
            "elapsed_seconds": self.elapsed_seconds,
            "last_substage": self.last_substage,
        }


class PollingStepController:
    """Monitors one remote task and drives its entity's lifecycle.

    Args:
        status_query: Adapter reading the remote task state.
        entity_updater: Adapter persisting entity transitions.
        resolver: Operation kind → target substage lookup.
        success_state: State the entity reaches when the task finishes.
        error_state: State the entity reaches when the task fails.
        settings: Default polling policy; ``start`` may override it.
        task_store: Persists the task record after a result id is
            recorded on it.
        progress_callback: Receives a ``ProgressReport`` per snapshot.
        poll_loop: Loop instance (injected in tests for a fake clock).
    """

    def __init__(
        self,
        status_query: StatusQuery,
        entity_updater: EntityStateUpdater,
        resolver: SubstageResolver,
        *,
        success_state: EntityState,
        error_state: EntityState = EntityState.ERROR,
        settings: PollSettings | None = None,
        task_store: TaskContextStore | None = None,
        progress_callback: Callable[[ProgressReport], None] | None = None,
        poll_loop: PollLoop | None = None,
    ) -> None:
        self._status_query = status_query
        self._entity_updater = entity_updater
        self._resolver = resolver
        self._success_state = success_state
        self._error_state = error_state
        self._settings = settings or PollSettings()
        self._task_store = task_store
        self._progress_callback = progress_callback
        self._loop = poll_loop or PollLoop()

        self._state = ControllerState.INITIAL
        self._state_lock = threading.Lock()
        self._cancel_event = threading.Event()
        self._session: PollSession | None = None
        self._target_substage = 0
        self._last_substage: int | None = None

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def session(self) -> PollSession | None:
        """The active (or last) session, ``None`` before ``start``."""
        return self._session

    @property
    def last_substage(self) -> int | None:
        """Last substage ordinal reported by the remote task."""
        return self._last_substage

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def start(
        self,
        handle: str,
        entity: MonitoredEntity | None,
        kind: OperationKind,
        *,
        task_context: TaskContext | None = None,
        settings: PollSettings | None = None,
    ) -> SessionResult:
        """Monitor *handle* until it reaches a terminal outcome.

        Blocks the calling thread; use ``SessionRunner`` to run sessions
        in the background.

        Args:
            handle: Remote task handle.
            entity: Entity whose state the remote task governs.
            kind: Operation being monitored (selects the target substage).
            task_context: Caller's task record; receives the result
                entity id when the task finishes.
            settings: Per-session override of the polling policy.

        Returns:
            ``SessionResult`` when the remote task finished.

        Raises:
            SessionStateError: The controller already ran a session.
            InvalidSessionStart: *entity* is ``None`` or *handle* empty.
            UnsupportedOperationKind: *kind* has no registered substage.
            RemoteTaskFailed: The remote task failed or was cancelled.
            StatusUnknownError: Timeout, not-found budget or cancellation.
            PersistenceFailure: An entity or task write failed.
        """
        with self._state_lock:
            if self._state is not ControllerState.INITIAL:
                msg = (
                    f"Controller is {self._state.value}; "
                    "a new controller is required to monitor another session"
                )
                raise SessionStateError(msg)
            if entity is None:
                msg = f"Cannot monitor remote task {handle!r}: entity is not set"
                raise InvalidSessionStart(msg)
            if not handle or not handle.strip():
                msg = f"Cannot monitor entity {entity.id!r}: remote task handle is empty"
                raise InvalidSessionStart(msg)

            self._target_substage = self._resolver.resolve(kind)
            session = PollSession(
                handle=handle,
                entity=entity,
                settings=settings or self._settings,
                cancel_event=self._cancel_event,
            )
            self._session = session
            self._state = ControllerState.POLLING

        logger.info(
            "Monitoring started | handle=%s | entity=%s | kind=%s | target_substage=%d",
            handle,
            entity.id,
            kind.value,
            self._target_substage,
        )

        try:
            final = self._loop.run(
                lambda: poll_status(self._status_query, handle),
                session,
                on_state=self._observe,
            )
        except Exception:
            self._state = ControllerState.FAILED
            raise

        if final.stage is TaskStage.FINISHED:
            return self._succeed(session, entity, final, task_context)
        self._fail_remote(entity, final)

    def cancel(self) -> None:
        """Tear the session down; the entity is left in its current state."""
        self._cancel_event.set()

    # ------------------------------------------------------------------
    # Outcome handling
    # ------------------------------------------------------------------

    def _observe(self, state: RemoteTaskState) -> None:
        if state.substage is not None:
            self._last_substage = state.substage
        if self._progress_callback is None or self._session is None:
            return
        self._progress_callback(
            ProgressReport(
                handle=self._session.handle,
                substage=state.substage,
                target_substage=self._target_substage,
                poll_count=self._session.poll_count,
            )
        )

    def _succeed(
        self,
        session: PollSession,
        entity: MonitoredEntity,
        final: RemoteTaskState,
        task_context: TaskContext | None,
    ) -> SessionResult:
        try:
            self._entity_updater.set_state(entity.id, self._success_state)
            entity.state = self._success_state
            if final.result_entity_id and task_context is not None:
                task_context.entity_id = final.result_entity_id
                task_context.entity_kind = entity.kind
                if self._task_store is not None:
                    self._task_store.update(task_context)
        except Exception:
            self._state = ControllerState.FAILED
            raise

        self._state = ControllerState.SUCCEEDED
        elapsed = self._loop.elapsed(session)
        logger.info(
            "Monitoring succeeded | handle=%s | entity=%s | state=%s | result_entity=%s",
            session.handle,
            entity.id,
            self._success_state.value,
            final.result_entity_id,
        )
        return SessionResult(
            handle=session.handle,
            entity_id=entity.id,
            stage=final.stage,
            result_entity_id=final.result_entity_id,
            poll_count=session.poll_count,
            elapsed_seconds=elapsed,
            last_substage=self._last_substage,
        )

    def _fail_remote(self, entity: MonitoredEntity | None, final: RemoteTaskState) -> NoReturn:
        """Mark *entity* as errored (if set) and raise ``RemoteTaskFailed``."""
        self._state = ControllerState.FAILED
        message = final.failure_reason
        if message is None:
            message = f"Remote task ended in stage {final.stage.value}"

        if entity is not None:
            logger.error(
                "Remote task failed, marking entity as %s | entity=%s | error=%s",
                self._error_state.value,
                entity.id,
                message,
            )
            self._entity_updater.set_state(entity.id, self._error_state)
            entity.state = self._error_state
        else:
            logger.error("Remote task failed with no entity to update | error=%s", message)

        raise RemoteTaskFailed(entity.id if entity is not None else "", message)
