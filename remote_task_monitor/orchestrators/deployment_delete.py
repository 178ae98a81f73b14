"""Deployment delete status step.

Monitors the remote deployment removal workflow after the delete has
been handed to the remote task service.  The deployment's
``operation_id`` holds the link of the removal task; the step records it
on the caller's task record, then polls it with the deployment delete
policy (10 s interval, 2 h timeout, 100 consecutive misses):

- workflow finished → deployment becomes ``NOT_DEPLOYED`` and the task
  record is pointed at the deployment;
- workflow failed   → deployment becomes ``ERROR`` and
  ``RemoteTaskFailed`` carries the remote failure message.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

from remote_task_monitor.core.constants import (
    DEFAULT_MAX_NOT_FOUND_COUNT,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_POLL_TIMEOUT_SECONDS,
    REMOTE_TASK_LINK_RESOURCE_KEY,
)
from remote_task_monitor.core.exceptions import InvalidSessionStart
from remote_task_monitor.models.entity import EntityState, OperationKind
from remote_task_monitor.models.task_state import PollSettings
from remote_task_monitor.orchestrators.controller import PollingStepController
from remote_task_monitor.orchestrators.substages import (
    REMOVE_DEPLOYMENT_SUBSTAGES,
    SubstageResolver,
)
from remote_task_monitor.providers.factory import build_entity_updater, build_status_query

if TYPE_CHECKING:
    from collections.abc import Callable

    import httpx

    from remote_task_monitor.core.config import MonitorConfig
    from remote_task_monitor.models.entity import MonitoredEntity, TaskContext
    from remote_task_monitor.orchestrators.controller import ProgressReport, SessionResult
    from remote_task_monitor.orchestrators.poll_loop import PollLoop
    from remote_task_monitor.providers.base import (
        EntityStateUpdater,
        StatusQuery,
        TaskContextStore,
    )

logger = logging.getLogger("remote_task_monitor.orchestrators.deployment_delete")

DELETE_DEPLOYMENT_SETTINGS = PollSettings(
    poll_interval_s=DEFAULT_POLL_INTERVAL_SECONDS,
    timeout_s=DEFAULT_POLL_TIMEOUT_SECONDS,
    max_not_found_count=DEFAULT_MAX_NOT_FOUND_COUNT,
)


class DeploymentDeleteStatusStep:
    """Step that waits for a remote deployment removal to finish.

    Each ``execute`` call runs a fresh ``PollingStepController``, so a
    step instance can be re-executed to re-observe a task after a
    timeout.
    """

    def __init__(
        self,
        status_query: StatusQuery,
        entity_updater: EntityStateUpdater,
        *,
        task_store: TaskContextStore | None = None,
        settings: PollSettings = DELETE_DEPLOYMENT_SETTINGS,
        progress_callback: Callable[[ProgressReport], None] | None = None,
        poll_loop: PollLoop | None = None,
    ) -> None:
        self._status_query = status_query
        self._entity_updater = entity_updater
        self._task_store = task_store
        self._settings = settings
        self._progress_callback = progress_callback
        self._poll_loop = poll_loop
        self._resolver = SubstageResolver(REMOVE_DEPLOYMENT_SUBSTAGES)
        self._controller: PollingStepController | None = None

    @classmethod
    def from_config(
        cls,
        config: MonitorConfig,
        *,
        task_store: TaskContextStore | None = None,
        progress_callback: Callable[[ProgressReport], None] | None = None,
        client: httpx.Client | None = None,
    ) -> DeploymentDeleteStatusStep:
        """Build a step talking HTTP to ``config.status_service_url``.

        The polling policy comes from ``config.poll_settings()``.

        Raises:
            ConfigValidationError: If ``status_service_url`` is empty.
        """
        return cls(
            build_status_query(config, client=client),
            build_entity_updater(config, client=client),
            task_store=task_store,
            settings=config.poll_settings(),
            progress_callback=progress_callback,
        )

    @property
    def settings(self) -> PollSettings:
        return self._settings

    def set_timeout(self, timeout_s: float) -> None:
        self._settings = replace(self._settings, timeout_s=timeout_s)

    def set_poll_interval(self, poll_interval_s: float) -> None:
        self._settings = replace(self._settings, poll_interval_s=poll_interval_s)

    def set_max_not_found_count(self, count: int) -> None:
        self._settings = replace(self._settings, max_not_found_count=count)

    def execute(
        self,
        entity: MonitoredEntity,
        task_context: TaskContext,
        kind: OperationKind = OperationKind.PERFORM_DELETE_DEPLOYMENT,
    ) -> SessionResult:
        """Monitor the removal task recorded on *entity*.

        Raises:
            InvalidSessionStart: *entity* carries no operation link.
            RemoteTaskFailed: The removal workflow failed.
            StatusUnknownError: Timeout, not-found budget or cancellation.
        """
        handle = entity.operation_id
        if not handle:
            msg = f"Deployment {entity.id!r} has no remote operation to monitor"
            raise InvalidSessionStart(msg)

        task_context.resources[REMOTE_TASK_LINK_RESOURCE_KEY] = handle
        logger.info(
            "Deployment delete status step | deployment=%s | task=%s | link=%s",
            entity.id,
            task_context.task_id,
            handle,
        )

        self._controller = PollingStepController(
            self._status_query,
            self._entity_updater,
            self._resolver,
            success_state=EntityState.NOT_DEPLOYED,
            settings=self._settings,
            task_store=self._task_store,
            progress_callback=self._progress_callback,
            poll_loop=self._poll_loop,
        )
        return self._controller.start(handle, entity, kind, task_context=task_context)

    def cancel(self) -> None:
        """Cancel the session currently being executed, if any."""
        if self._controller is not None:
            self._controller.cancel()
