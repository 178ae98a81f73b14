"""Timed retry engine around a single-shot status query.

``PollLoop`` enforces the timing and retry policy of one monitoring
session, independent of what the polled status means:

- A ``RUNNING`` snapshot resets the not-found streak and schedules the
  next poll after ``poll_interval_s``.
- A terminal snapshot (``FINISHED`` / ``FAILED`` / ``CANCELLED``) stops
  the loop and is returned to the caller.
- ``TaskNotFound`` grows the not-found streak; a streak longer than
  ``max_not_found_count`` fails with ``ExceededRetryBudget``.
- A query error marked ``retryable`` (service unavailable, transport
  failure) counts as a miss against the same streak, and the last such
  error is chained as the cause when the budget runs out.  Any other
  error propagates at once.
- Once more than ``timeout_s`` has elapsed since the session started,
  the loop fails with ``PollTimeout`` whatever the streak is.

The two budgets are independent safety nets: the not-found budget
tolerates eventual-consistency lag in the remote store, the timeout
bounds the total wall-clock wait.

Waits between ticks block on the session's cancel event rather than
sleeping, so tearing the session down interrupts them immediately with
``PollCancelled``.  A reply that arrives after the session was torn
down is discarded, terminal or not.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from remote_task_monitor.core.exceptions import (
    ExceededRetryBudget,
    MonitorError,
    PollCancelled,
    PollTimeout,
)
from remote_task_monitor.models.task_state import TaskNotFound

if TYPE_CHECKING:
    from collections.abc import Callable

    from remote_task_monitor.models.task_state import PollResult, PollSession, RemoteTaskState

logger = logging.getLogger("remote_task_monitor.orchestrators.poll_loop")


class PollLoop:
    """Drives repeated status queries until a terminal condition.

    The loop keeps no state of its own; all counters live on the
    ``PollSession`` passed to ``run``, so one loop instance can serve
    any number of concurrent sessions.

    Args:
        clock: Monotonic clock returning seconds.  Injected in tests.
    """

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock

    def run(
        self,
        query: Callable[[], PollResult],
        session: PollSession,
        *,
        on_state: Callable[[RemoteTaskState], None] | None = None,
    ) -> RemoteTaskState:
        """Poll until the remote task reaches a terminal stage.

        Args:
            query: Zero-argument single-shot status query for the
                session's handle.
            session: Session carrying the policy and the counters.
            on_state: Called with every found snapshot, terminal ones
                included, before the loop decides what to do next.

        Returns:
            The terminal ``RemoteTaskState``.

        Raises:
            ExceededRetryBudget: Too many consecutive ``TaskNotFound`` or
                retryable query errors.
            PollTimeout: The timeout budget elapsed first.
            PollCancelled: The session was torn down.
            MonitorError: A non-retryable query error, unchanged.
        """
        settings = session.settings
        if session.started_at is None:
            session.started_at = self._clock()

        logger.info(
            "Polling started | handle=%s | interval=%.1fs | timeout=%.0fs | max_not_found=%d",
            session.handle,
            settings.poll_interval_s,
            settings.timeout_s,
            settings.max_not_found_count,
        )

        while True:
            self._check_cancelled(session)
            self._check_deadline(session)

            session.poll_count += 1
            try:
                result = query()
            except MonitorError as exc:
                if not exc.retryable:
                    raise
                self._check_cancelled(session)
                logger.warning(
                    "Status query failed (%d/%d) | handle=%s | poll_count=%d | error=%s",
                    session.not_found_count + 1,
                    settings.max_not_found_count,
                    session.handle,
                    session.poll_count,
                    exc,
                )
                self._record_miss(session, cause=exc)
                self._wait(session)
                continue

            self._check_cancelled(session)

            if isinstance(result, TaskNotFound):
                logger.warning(
                    "Remote task not found (%d/%d) | handle=%s | poll_count=%d",
                    session.not_found_count + 1,
                    settings.max_not_found_count,
                    session.handle,
                    session.poll_count,
                )
                self._record_miss(session)
            else:
                session.not_found_count = 0
                session.last_state = result
                logger.debug(
                    "Poll result | handle=%s | stage=%s | substage=%s | poll_count=%d",
                    session.handle,
                    result.stage.value,
                    result.substage,
                    session.poll_count,
                )
                if on_state is not None:
                    on_state(result)
                if result.is_terminal:
                    logger.info(
                        "Polling finished | handle=%s | stage=%s | poll_count=%d | elapsed=%.1fs",
                        session.handle,
                        result.stage.value,
                        session.poll_count,
                        self.elapsed(session),
                    )
                    return result

            self._wait(session)

    def elapsed(self, session: PollSession) -> float:
        """Seconds since *session* started (0 before the first tick)."""
        if session.started_at is None:
            return 0.0
        return self._clock() - session.started_at

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _record_miss(self, session: PollSession, cause: MonitorError | None = None) -> None:
        """Grow the consecutive miss streak; fail once it exceeds the budget."""
        session.not_found_count += 1
        budget = session.settings.max_not_found_count
        if session.not_found_count <= budget:
            return
        elapsed = self.elapsed(session)
        logger.error(
            "Not-found retries exhausted | handle=%s | retries=%d | elapsed=%.1fs",
            session.handle,
            session.not_found_count,
            elapsed,
        )
        outcome = "not found" if cause is None else "unavailable"
        msg = (
            f"Remote task {session.handle!r} {outcome} after "
            f"{session.not_found_count} consecutive polls (max {budget})"
        )
        raise ExceededRetryBudget(
            msg,
            handle=session.handle,
            poll_count=session.poll_count,
            elapsed_seconds=elapsed,
        ) from cause

    def _check_deadline(self, session: PollSession) -> None:
        elapsed = self.elapsed(session)
        if elapsed <= session.settings.timeout_s:
            return
        logger.warning(
            "Poll timeout | handle=%s | timeout=%.0fs | poll_count=%d",
            session.handle,
            session.settings.timeout_s,
            session.poll_count,
        )
        msg = (
            f"Polling remote task {session.handle!r} timed out after "
            f"{session.settings.timeout_s:.0f}s ({session.poll_count} polls)"
        )
        raise PollTimeout(
            msg,
            handle=session.handle,
            poll_count=session.poll_count,
            elapsed_seconds=elapsed,
        )

    def _check_cancelled(self, session: PollSession) -> None:
        if not session.cancelled:
            return
        logger.info(
            "Polling cancelled | handle=%s | poll_count=%d",
            session.handle,
            session.poll_count,
        )
        msg = f"Polling remote task {session.handle!r} was cancelled"
        raise PollCancelled(
            msg,
            handle=session.handle,
            poll_count=session.poll_count,
            elapsed_seconds=self.elapsed(session),
        )

    def _wait(self, session: PollSession) -> None:
        """Block until the next tick, or until the session is cancelled."""
        remaining = session.settings.timeout_s - self.elapsed(session)
        delay = max(0.0, min(session.settings.poll_interval_s, remaining))
        if session.cancel_event.wait(delay):
            self._check_cancelled(session)
