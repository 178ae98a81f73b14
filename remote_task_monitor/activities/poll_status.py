"""Poll status activity: one status query against the remote task.

Called by the poll loop on every tick.  It invokes the ``StatusQuery``
adapter once and normalises its answer into the closed ``PollResult``
union, so the loop only ever branches on ``RemoteTaskState`` vs
``TaskNotFound``.

Adapters may signal "not found" either by returning ``TaskNotFound`` or
by raising ``TransientNotFound``; both become ``TaskNotFound`` here.
Every other adapter error propagates unchanged; the poll loop decides
whether a retryable one is retried.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from remote_task_monitor.core.exceptions import ContractError, TransientNotFound
from remote_task_monitor.models.task_state import RemoteTaskState, TaskNotFound

if TYPE_CHECKING:
    from remote_task_monitor.models.task_state import PollResult
    from remote_task_monitor.providers.base import StatusQuery

logger = logging.getLogger("remote_task_monitor.activities.poll_status")


def poll_status(query: StatusQuery, handle: str) -> PollResult:
    """Query the current state of the remote task behind *handle*.

    Args:
        query: Status query adapter.
        handle: Remote task handle.

    Returns:
        A ``RemoteTaskState`` snapshot or ``TaskNotFound``.

    Raises:
        ContractError: If the adapter returns anything else.
        ProviderError: Propagated from the adapter.
    """
    try:
        result = query.query(handle)
    except TransientNotFound as exc:
        logger.debug("poll_status not found (raised) | handle=%s | detail=%s", handle, exc)
        return TaskNotFound(handle=handle, detail=exc.message)

    if isinstance(result, TaskNotFound):
        logger.debug("poll_status not found | handle=%s | detail=%s", handle, result.detail)
        return result

    if not isinstance(result, RemoteTaskState):
        msg = f"Status query returned unexpected result {type(result).__name__} for {handle!r}"
        raise ContractError(msg, stage="poll_status", code="UNEXPECTED_POLL_RESULT")

    logger.debug(
        "poll_status completed | handle=%s | stage=%s | substage=%s",
        handle,
        result.stage.value,
        result.substage,
    )
    return result
