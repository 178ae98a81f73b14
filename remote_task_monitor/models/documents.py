"""Pydantic model of the remote workflow's task document.

The remote task service persists one document per workflow run and
serves it at the task link.  Only the fields the monitor needs are
modelled; everything else in the document is ignored.

Example document::

    {
        "taskState": {
            "stage": "STARTED",
            "subStage": "DEPROVISION_HOSTS",
            "failure": null
        },
        "deploymentId": "dep-1",
        "documentSelfLink": "/deployer/remove-deployment/7f3a"
    }

``to_state()`` converts the wire document into the ``RemoteTaskState``
snapshot consumed by the poll loop.  Any drift between the document and
this schema surfaces as ``ContractError``.
"""

from __future__ import annotations

from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from remote_task_monitor.core.exceptions import ContractError
from remote_task_monitor.models.task_state import RemoteTaskState, TaskStage

# Remote stage names → local stage.  CREATED is a task that has been
# accepted but not scheduled yet; the monitor treats it as running.
_STAGE_MAP: dict[str, TaskStage] = {
    "CREATED": TaskStage.RUNNING,
    "STARTED": TaskStage.RUNNING,
    "FINISHED": TaskStage.FINISHED,
    "FAILED": TaskStage.FAILED,
    "CANCELLED": TaskStage.CANCELLED,
}


class TaskFailureDocument(BaseModel):
    """Failure section of the task state."""

    model_config = ConfigDict(extra="ignore")

    message: str = ""


class TaskStateDocument(BaseModel):
    """``taskState`` section of the remote task document.

    Attributes:
        stage: Remote stage name (``CREATED``, ``STARTED``, ``FINISHED``,
            ``FAILED`` or ``CANCELLED``).
        sub_stage: Substage name or ordinal, if the workflow reports one.
        failure: Failure details for failed tasks.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    stage: str
    sub_stage: str | int | None = Field(default=None, alias="subStage")
    failure: TaskFailureDocument | None = None


class RemoteTaskDocument(BaseModel):
    """Top-level remote task document."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    task_state: TaskStateDocument = Field(alias="taskState")
    deployment_id: str | None = Field(default=None, alias="deploymentId")

    def to_state(self, substage_names: Sequence[str] = ()) -> RemoteTaskState:
        """Convert the document into a ``RemoteTaskState`` snapshot.

        Args:
            substage_names: Ordered substage names of the remote workflow,
                used to turn a named substage into its ordinal.

        Raises:
            ContractError: If the stage or a named substage is unknown.
        """
        stage_name = self.task_state.stage.upper()
        stage = _STAGE_MAP.get(stage_name)
        if stage is None:
            msg = f"Unknown remote task stage {self.task_state.stage!r}"
            raise ContractError(msg, stage="status_query", code="UNKNOWN_TASK_STAGE")

        failure = self.task_state.failure
        return RemoteTaskState(
            stage=stage,
            substage=_substage_ordinal(self.task_state.sub_stage, substage_names),
            failure_reason=failure.message if failure is not None else None,
            result_entity_id=self.deployment_id or None,
        )


def parse_task_document(
    payload: object,
    *,
    substage_names: Sequence[str] = (),
) -> RemoteTaskState:
    """Validate a raw JSON payload and convert it into a snapshot.

    Raises:
        ContractError: If the payload does not match the document schema.
    """
    try:
        document = RemoteTaskDocument.model_validate(payload)
    except PydanticValidationError as exc:
        msg = f"Malformed remote task document: {exc.error_count()} validation error(s)"
        raise ContractError(msg, stage="status_query", code="MALFORMED_TASK_DOCUMENT") from exc
    return document.to_state(substage_names)


def _substage_ordinal(raw: str | int | None, names: Sequence[str]) -> int | None:
    """Resolve a substage name or ordinal to its ordinal."""
    if raw is None or isinstance(raw, int):
        return raw
    try:
        return list(names).index(raw)
    except ValueError:
        msg = f"Unknown remote task substage {raw!r}"
        raise ContractError(msg, stage="status_query", code="UNKNOWN_TASK_SUBSTAGE") from None
