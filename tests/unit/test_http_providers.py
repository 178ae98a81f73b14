"""Tests for the httpx-backed adapters.

Requests are served by ``httpx.MockTransport``; no network access.
The last class runs whole controller sessions over the mocked service.
"""

from __future__ import annotations

import json
from collections.abc import Callable

import httpx
import pytest

from remote_task_monitor.core.exceptions import (
    ContractError,
    ExceededRetryBudget,
    PersistenceFailure,
)
from remote_task_monitor.models.entity import EntityState, OperationKind
from remote_task_monitor.models.task_state import (
    PollSettings,
    RemoteTaskState,
    TaskNotFound,
    TaskStage,
)
from remote_task_monitor.orchestrators.controller import PollingStepController
from remote_task_monitor.orchestrators.substages import (
    REMOVE_DEPLOYMENT_SUBSTAGES,
    SubstageResolver,
)
from remote_task_monitor.providers.base import StatusQueryError
from remote_task_monitor.providers.http import HttpEntityStateUpdater, HttpStatusQuery
from remote_task_monitor.providers.memory import InMemoryEntityStore
from tests.conftest import HANDLE

BASE_URL = "http://deployer:18000"
SUBSTAGES = ("REMOVE_FROM_API_FE", "DEPROVISION_HOSTS")


def _client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def _document(stage: str, **extra: object) -> dict[str, object]:
    task_state: dict[str, object] = {"stage": stage}
    task_state.update(extra)
    return {"taskState": task_state, "documentSelfLink": HANDLE}


class TestHttpStatusQuery:
    def test_requests_task_link(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_document("STARTED"))

        HttpStatusQuery(BASE_URL, client=_client(handler)).query(HANDLE)

        assert seen[0].method == "GET"
        assert str(seen[0].url) == f"{BASE_URL}{HANDLE}"

    def test_running_document(self) -> None:
        payload = _document("STARTED", subStage="DEPROVISION_HOSTS")
        query = HttpStatusQuery(
            BASE_URL,
            substage_names=SUBSTAGES,
            client=_client(lambda _: httpx.Response(200, json=payload)),
        )

        result = query.query(HANDLE)

        assert isinstance(result, RemoteTaskState)
        assert result.stage is TaskStage.RUNNING
        assert result.substage == 1

    def test_named_substage_resolved_by_default(self) -> None:
        payload = _document("STARTED", subStage="DEPROVISION_HOSTS")
        query = HttpStatusQuery(
            BASE_URL, client=_client(lambda _: httpx.Response(200, json=payload))
        )

        result = query.query(HANDLE)

        assert result.substage == 1  # type: ignore[union-attr]

    def test_finished_document_carries_deployment_id(self) -> None:
        payload = _document("FINISHED")
        payload["deploymentId"] = "dep-1"
        query = HttpStatusQuery(
            BASE_URL, client=_client(lambda _: httpx.Response(200, json=payload))
        )

        result = query.query(HANDLE)

        assert result.stage is TaskStage.FINISHED  # type: ignore[union-attr]
        assert result.result_entity_id == "dep-1"  # type: ignore[union-attr]

    def test_failed_document_carries_message(self) -> None:
        payload = _document("FAILED", failure={"message": "host unreachable"})
        query = HttpStatusQuery(
            BASE_URL, client=_client(lambda _: httpx.Response(200, json=payload))
        )

        result = query.query(HANDLE)

        assert result.stage is TaskStage.FAILED  # type: ignore[union-attr]
        assert result.failure_reason == "host unreachable"  # type: ignore[union-attr]

    def test_404_is_not_found(self) -> None:
        query = HttpStatusQuery(BASE_URL, client=_client(lambda _: httpx.Response(404)))

        result = query.query(HANDLE)

        assert isinstance(result, TaskNotFound)
        assert result.handle == HANDLE
        assert "404" in result.detail

    def test_5xx_is_retryable_error(self) -> None:
        query = HttpStatusQuery(BASE_URL, client=_client(lambda _: httpx.Response(503)))

        with pytest.raises(StatusQueryError) as exc_info:
            query.query(HANDLE)

        assert exc_info.value.retryable is True
        assert exc_info.value.provider == "http"
        assert "503" in str(exc_info.value)

    def test_4xx_is_not_retryable(self) -> None:
        query = HttpStatusQuery(BASE_URL, client=_client(lambda _: httpx.Response(403)))
        with pytest.raises(StatusQueryError) as exc_info:
            query.query(HANDLE)
        assert exc_info.value.retryable is False

    def test_transport_error_is_retryable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        query = HttpStatusQuery(BASE_URL, client=_client(handler))
        with pytest.raises(StatusQueryError) as exc_info:
            query.query(HANDLE)
        assert exc_info.value.retryable is True

    def test_invalid_json_is_contract_error(self) -> None:
        query = HttpStatusQuery(
            BASE_URL, client=_client(lambda _: httpx.Response(200, content=b"<html>"))
        )
        with pytest.raises(ContractError) as exc_info:
            query.query(HANDLE)
        assert exc_info.value.code == "MALFORMED_TASK_DOCUMENT"

    def test_unknown_stage_is_contract_error(self) -> None:
        query = HttpStatusQuery(
            BASE_URL,
            client=_client(lambda _: httpx.Response(200, json=_document("PAUSED"))),
        )
        with pytest.raises(ContractError) as exc_info:
            query.query(HANDLE)
        assert exc_info.value.code == "UNKNOWN_TASK_STAGE"

    def test_absolute_link_used_as_is(self) -> None:
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(200, json=_document("CREATED"))

        HttpStatusQuery(BASE_URL, client=_client(handler)).query("http://other:8000/tasks/1")

        assert seen == ["http://other:8000/tasks/1"]

    def test_injected_client_not_closed(self) -> None:
        client = _client(lambda _: httpx.Response(404))
        with HttpStatusQuery(BASE_URL, client=client):
            pass
        assert client.is_closed is False

    def test_owned_client_closed(self) -> None:
        query = HttpStatusQuery(BASE_URL)
        query.close()
        assert query._client.is_closed is True


class TestHttpEntityStateUpdater:
    def test_patches_entity_state(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={})

        HttpEntityStateUpdater(BASE_URL, client=_client(handler)).set_state(
            "dep-1", EntityState.NOT_DEPLOYED
        )

        assert seen[0].method == "PATCH"
        assert str(seen[0].url) == f"{BASE_URL}/deployments/dep-1"
        assert json.loads(seen[0].content) == {"state": "NOT_DEPLOYED"}

    def test_custom_collection(self) -> None:
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.path)
            return httpx.Response(204)

        HttpEntityStateUpdater(
            BASE_URL, collection="/resources/clusters/", client=_client(handler)
        ).set_state("c-1", EntityState.ERROR)

        assert seen == ["/resources/clusters/c-1"]

    def test_http_error_is_persistence_failure(self) -> None:
        updater = HttpEntityStateUpdater(
            BASE_URL, client=_client(lambda _: httpx.Response(409))
        )
        with pytest.raises(PersistenceFailure) as exc_info:
            updater.set_state("dep-1", EntityState.ERROR)
        assert exc_info.value.retryable is False

    def test_transport_error_is_persistence_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(PersistenceFailure):
            HttpEntityStateUpdater(BASE_URL, client=_client(handler)).set_state(
                "dep-1", EntityState.ERROR
            )


class TestHttpSession:
    """HTTP replies drive a full controller session."""

    def _serve(self, *responses: httpx.Response) -> httpx.Client:
        replies = iter(responses)
        return _client(lambda _: next(replies))

    def _controller(
        self, client: httpx.Client, store: InMemoryEntityStore
    ) -> PollingStepController:
        return PollingStepController(
            HttpStatusQuery(BASE_URL, client=client),
            store,
            SubstageResolver(REMOVE_DEPLOYMENT_SUBSTAGES),
            success_state=EntityState.NOT_DEPLOYED,
            settings=PollSettings(poll_interval_s=0.0, timeout_s=60.0, max_not_found_count=3),
        )

    def test_named_substage_then_finished(self, entity, entity_store) -> None:
        finished_payload = _document("FINISHED", subStage="DEPROVISION_HOSTS")
        finished_payload["deploymentId"] = "dep-1"
        client = self._serve(
            httpx.Response(200, json=_document("STARTED", subStage="DEPROVISION_HOSTS")),
            httpx.Response(200, json=finished_payload),
        )

        result = self._controller(client, entity_store).start(
            HANDLE, entity, OperationKind.DEPROVISION_HOSTS
        )

        assert result.last_substage == 1
        assert entity.state is EntityState.NOT_DEPLOYED
        assert entity_store.transitions == [("dep-1", EntityState.NOT_DEPLOYED)]

    def test_service_unavailable_is_retried(self, entity, entity_store) -> None:
        client = self._serve(
            httpx.Response(503),
            httpx.Response(200, json=_document("STARTED")),
            httpx.Response(200, json=_document("FINISHED")),
        )

        result = self._controller(client, entity_store).start(
            HANDLE, entity, OperationKind.PERFORM_DELETE_DEPLOYMENT
        )

        assert result.poll_count == 3
        assert entity.state is EntityState.NOT_DEPLOYED

    def test_persistent_unavailability_exceeds_budget(self, entity, entity_store) -> None:
        client = _client(lambda _: httpx.Response(503))

        with pytest.raises(ExceededRetryBudget) as exc_info:
            self._controller(client, entity_store).start(
                HANDLE, entity, OperationKind.PERFORM_DELETE_DEPLOYMENT
            )

        assert isinstance(exc_info.value.__cause__, StatusQueryError)
        assert exc_info.value.poll_count == 4
        assert entity_store.transitions == []
