"""Typed models for remote task polling.

Defines the data exchanged between the status query adapters, the poll
loop and the step controller:

- ``TaskStage``: Coarse lifecycle stage of a remote task
- ``RemoteTaskState``: Snapshot returned by one successful status query
- ``TaskNotFound``: The "record not visible yet" poll result
- ``PollSettings``: Per-session timing and retry policy
- ``PollSession``: Mutable, process-local bookkeeping of one session

A status query returns ``PollResult``, the closed union
``RemoteTaskState | TaskNotFound``.  Callers branch on the type, never on
sentinel values.

Design notes:
- Snapshots are frozen dataclasses; every poll produces a new one.
- Counters (not-found streak, poll count) live on ``PollSession`` only,
  so concurrent sessions never share mutable state.
"""

from __future__ import annotations

import enum
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from remote_task_monitor.core.constants import (
    DEFAULT_MAX_NOT_FOUND_COUNT,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_POLL_TIMEOUT_SECONDS,
)
from remote_task_monitor.core.exceptions import MonitorError

if TYPE_CHECKING:
    from remote_task_monitor.models.entity import MonitoredEntity


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class ModelValidationError(ValueError, MonitorError):
    """Raised when a domain model is constructed with invalid field values.

    Attributes:
        model: Name of the model class that failed validation.
        field_name: The field that violated the invariant.
        value: The invalid value.
    """

    default_stage = "model_validation"
    default_code = "MODEL_VALIDATION_FAILED"

    def __init__(self, model: str, field_name: str, value: object, message: str) -> None:
        self.model = model
        self.field_name = field_name
        self.value = value
        formatted = f"{model}.{field_name}={value!r}: {message}"
        MonitorError.__init__(self, formatted)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class TaskStage(enum.Enum):
    """Lifecycle stage of a remote task.

    Values:
        RUNNING:   The remote workflow is still progressing.
        FINISHED:  The workflow completed successfully.
        FAILED:    The workflow reported a failure.
        CANCELLED: The workflow was cancelled remotely.
    """

    RUNNING = "running"
    FINISHED = "finished"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        """Whether no further polling should follow this stage."""
        return self is not TaskStage.RUNNING


# ---------------------------------------------------------------------------
# Poll results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RemoteTaskState:
    """Snapshot of a remote task returned by one status query.

    Attributes:
        stage: Current lifecycle stage.
        substage: Ordinal of the workflow substage, if reported.
        failure_reason: Remote failure message (set for failed tasks).
        result_entity_id: Identifier of the entity the task produced or
            operated on, reported once the task finishes.
    """

    stage: TaskStage
    substage: int | None = None
    failure_reason: str | None = None
    result_entity_id: str | None = None

    def __post_init__(self) -> None:
        if self.substage is not None and self.substage < 0:
            raise ModelValidationError(
                "RemoteTaskState", "substage", self.substage, "must be >= 0"
            )

    @property
    def is_terminal(self) -> bool:
        """Whether this snapshot ends the polling session."""
        return self.stage.is_terminal


@dataclass(frozen=True, slots=True)
class TaskNotFound:
    """The remote task record has not materialised yet.

    A legitimate transient condition: the remote store may lag behind
    the submission that created the task.

    Attributes:
        handle: The handle that was queried.
        detail: Optional diagnostic text from the adapter.
    """

    handle: str
    detail: str = ""


PollResult = RemoteTaskState | TaskNotFound
"""Result of a single status query."""


# ---------------------------------------------------------------------------
# Session policy and bookkeeping
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PollSettings:
    """Timing and retry policy for one monitoring session.

    Attributes:
        poll_interval_s: Pause between status queries in seconds.
        timeout_s: Total wall-clock budget in seconds, measured from
            session start.
        max_not_found_count: Consecutive "not found" responses tolerated;
            one more fails the session.
    """

    poll_interval_s: float = DEFAULT_POLL_INTERVAL_SECONDS
    timeout_s: float = DEFAULT_POLL_TIMEOUT_SECONDS
    max_not_found_count: int = DEFAULT_MAX_NOT_FOUND_COUNT

    def __post_init__(self) -> None:
        if self.poll_interval_s < 0:
            raise ModelValidationError(
                "PollSettings", "poll_interval_s", self.poll_interval_s, "must be >= 0"
            )
        if self.timeout_s <= 0:
            raise ModelValidationError("PollSettings", "timeout_s", self.timeout_s, "must be > 0")
        if self.max_not_found_count < 0:
            raise ModelValidationError(
                "PollSettings",
                "max_not_found_count",
                self.max_not_found_count,
                "must be >= 0",
            )


@dataclass(slots=True)
class PollSession:
    """Process-local state of one monitoring session.

    Created when monitoring starts and discarded once a terminal outcome
    is reached.  Only the poll loop mutates the counters.

    Attributes:
        handle: Remote task handle, fixed for the session.
        entity: The entity whose lifecycle the remote task governs.
        settings: Timing and retry policy.
        started_at: Monotonic clock reading at the first tick.
        not_found_count: Current streak of consecutive "not found" results.
        poll_count: Total status queries issued.
        last_state: Most recent found snapshot.
        cancel_event: Set to tear the session down.
    """

    handle: str
    entity: MonitoredEntity | None
    settings: PollSettings = field(default_factory=PollSettings)
    started_at: float | None = None
    not_found_count: int = 0
    poll_count: int = 0
    last_state: RemoteTaskState | None = None
    cancel_event: threading.Event = field(default_factory=threading.Event)

    @property
    def cancelled(self) -> bool:
        """Whether the session has been torn down."""
        return self.cancel_event.is_set()

    def cancel(self) -> None:
        """Interrupt the session at its next wait or tick."""
        self.cancel_event.set()
