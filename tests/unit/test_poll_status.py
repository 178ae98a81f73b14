"""Tests for the poll_status activity."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from remote_task_monitor.activities.poll_status import poll_status
from remote_task_monitor.core.exceptions import ContractError, TransientNotFound
from remote_task_monitor.models.task_state import TaskNotFound, TaskStage
from remote_task_monitor.providers.base import StatusQueryError
from tests.conftest import HANDLE, not_found, running


def _query(result: object = None, *, error: Exception | None = None) -> MagicMock:
    query = MagicMock()
    if error is not None:
        query.query.side_effect = error
    else:
        query.query.return_value = result
    return query


class TestPollStatus:
    def test_returns_state_snapshot(self) -> None:
        query = _query(running(1))
        result = poll_status(query, HANDLE)
        assert result.stage is TaskStage.RUNNING  # type: ignore[union-attr]
        query.query.assert_called_once_with(HANDLE)

    def test_returns_not_found(self) -> None:
        result = poll_status(_query(not_found()), HANDLE)
        assert isinstance(result, TaskNotFound)

    def test_raised_not_found_is_normalised(self) -> None:
        query = _query(error=TransientNotFound("document not replicated"))

        result = poll_status(query, HANDLE)

        assert isinstance(result, TaskNotFound)
        assert result.handle == HANDLE
        assert result.detail == "document not replicated"

    def test_provider_error_propagates(self) -> None:
        query = _query(error=StatusQueryError("http", "HTTP 503", retryable=True))
        with pytest.raises(StatusQueryError) as exc_info:
            poll_status(query, HANDLE)
        assert exc_info.value.retryable is True

    @pytest.mark.parametrize("bogus", [None, "FINISHED", {"stage": "FINISHED"}])
    def test_unexpected_result_is_contract_error(self, bogus: object) -> None:
        with pytest.raises(ContractError) as exc_info:
            poll_status(_query(bogus), HANDLE)
        assert exc_info.value.code == "UNEXPECTED_POLL_RESULT"
