"""HTTP adapters for the remote task service and the entity store.

``HttpStatusQuery`` reads task documents from the remote workflow
service; ``HttpEntityStateUpdater`` patches entity documents in the
persistence service.  Both use ``httpx`` and accept an injected
``httpx.Client`` so callers can share connection pools (and tests can
mount an ``httpx.MockTransport``).

Status mapping:
    - ``404``                  → ``TaskNotFound`` (record not visible yet)
    - other ``4xx``            → ``StatusQueryError`` (not retryable)
    - ``5xx`` / transport error → ``StatusQueryError`` (retryable)
    - ``2xx``                  → parsed ``RemoteTaskState``
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

import httpx

from remote_task_monitor.core.constants import DEFAULT_STATUS_REQUEST_TIMEOUT_SECONDS
from remote_task_monitor.core.exceptions import ContractError, PersistenceFailure
from remote_task_monitor.models.documents import parse_task_document
from remote_task_monitor.models.task_state import TaskNotFound
from remote_task_monitor.orchestrators.substages import REMOVE_DEPLOYMENT_SUBSTAGE_NAMES
from remote_task_monitor.providers.base import (
    EntityStateUpdater,
    StatusQuery,
    StatusQueryError,
)
from remote_task_monitor.utils.helpers import build_task_url

if TYPE_CHECKING:
    from remote_task_monitor.models.entity import EntityState
    from remote_task_monitor.models.task_state import PollResult

logger = logging.getLogger(__name__)

_NOT_FOUND = 404


class HttpStatusQuery(StatusQuery):
    """Reads remote task documents over HTTP.

    Args:
        base_url: Root URL of the remote task service.
        timeout_s: Per-request timeout when the adapter owns its client.
        substage_names: Ordered substage names of the remote workflow,
            used to resolve named substages to ordinals.  Defaults to
            the deployment removal workflow.
        client: Optional shared ``httpx.Client``.
    """

    name = "http"

    def __init__(
        self,
        base_url: str,
        *,
        timeout_s: float = DEFAULT_STATUS_REQUEST_TIMEOUT_SECONDS,
        substage_names: Sequence[str] = REMOVE_DEPLOYMENT_SUBSTAGE_NAMES,
        client: httpx.Client | None = None,
    ) -> None:
        self._base_url = base_url
        self._substage_names = tuple(substage_names)
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout_s, follow_redirects=True)

    def query(self, handle: str) -> PollResult:
        url = build_task_url(self._base_url, handle)
        try:
            response = self._client.get(url)
        except httpx.HTTPError as exc:
            msg = f"Status request failed for {handle!r}: {exc}"
            raise StatusQueryError(self.name, msg, retryable=True) from exc

        if response.status_code == _NOT_FOUND:
            logger.debug("Remote task not found | handle=%s | url=%s", handle, url)
            return TaskNotFound(handle=handle, detail=f"HTTP 404 from {url}")

        if response.is_error:
            msg = f"Status request for {handle!r} returned HTTP {response.status_code}"
            raise StatusQueryError(self.name, msg, retryable=response.status_code >= 500)

        try:
            payload = response.json()
        except ValueError as exc:
            msg = f"Remote task document for {handle!r} is not valid JSON"
            raise ContractError(msg, stage="status_query", code="MALFORMED_TASK_DOCUMENT") from exc

        return parse_task_document(payload, substage_names=self._substage_names)

    def close(self) -> None:
        """Close the underlying client if this adapter created it."""
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> HttpStatusQuery:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class HttpEntityStateUpdater(EntityStateUpdater):
    """Patches entity documents in the persistence service.

    Sends ``PATCH {base_url}/{collection}/{entity_id}`` with body
    ``{"state": "<STATE>"}``.  Every failure, transport or HTTP, is
    surfaced as ``PersistenceFailure``; retries belong to the
    persistence service, not to this adapter.
    """

    def __init__(
        self,
        base_url: str,
        *,
        collection: str = "deployments",
        timeout_s: float = DEFAULT_STATUS_REQUEST_TIMEOUT_SECONDS,
        client: httpx.Client | None = None,
    ) -> None:
        self._base_url = base_url
        self._collection = collection.strip("/")
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout_s, follow_redirects=True)

    def set_state(self, entity_id: str, new_state: EntityState) -> None:
        url = build_task_url(self._base_url, f"{self._collection}/{entity_id}")
        try:
            response = self._client.patch(url, json={"state": new_state.value})
            response.raise_for_status()
        except httpx.HTTPError as exc:
            msg = f"Failed to set {self._collection}/{entity_id} to {new_state.value}: {exc}"
            raise PersistenceFailure(msg) from exc

        logger.info(
            "Entity state persisted | entity=%s | state=%s",
            entity_id,
            new_state.value,
        )

    def close(self) -> None:
        """Close the underlying client if this adapter created it."""
        if self._owns_client:
            self._client.close()
