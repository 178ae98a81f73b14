"""Adapter factory: builds the HTTP collaborators from ``MonitorConfig``.

Usage::

    from remote_task_monitor.core.config import MonitorConfig
    from remote_task_monitor.providers.factory import build_status_query

    config = MonitorConfig.from_env()
    with build_status_query(config) as query:
        result = query.query(handle)

The base URL comes from ``STATUS_SERVICE_URL`` and the per-request
timeout from ``STATUS_REQUEST_TIMEOUT_SECONDS``.  Passing a shared
``httpx.Client`` makes both adapters reuse one connection pool; the
caller then owns and closes it.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from remote_task_monitor.core.config import ConfigValidationError
from remote_task_monitor.orchestrators.substages import REMOVE_DEPLOYMENT_SUBSTAGE_NAMES
from remote_task_monitor.providers.http import HttpEntityStateUpdater, HttpStatusQuery

if TYPE_CHECKING:
    import httpx

    from remote_task_monitor.core.config import MonitorConfig

logger = logging.getLogger(__name__)

DEFAULT_ENTITY_COLLECTION = "deployments"


def _require_service_url(config: MonitorConfig) -> str:
    url = config.status_service_url.strip()
    if not url:
        raise ConfigValidationError(
            "STATUS_SERVICE_URL",
            config.status_service_url,
            "required to build HTTP adapters",
        )
    return url


def build_status_query(
    config: MonitorConfig,
    *,
    substage_names: Sequence[str] = REMOVE_DEPLOYMENT_SUBSTAGE_NAMES,
    client: httpx.Client | None = None,
) -> HttpStatusQuery:
    """Create the status query adapter for the configured task service.

    Raises:
        ConfigValidationError: If ``status_service_url`` is empty.
    """
    url = _require_service_url(config)
    logger.info(
        "Creating status query | url=%s | timeout=%.1fs",
        url,
        config.status_request_timeout_seconds,
    )
    return HttpStatusQuery(
        url,
        timeout_s=config.status_request_timeout_seconds,
        substage_names=substage_names,
        client=client,
    )


def build_entity_updater(
    config: MonitorConfig,
    *,
    collection: str = DEFAULT_ENTITY_COLLECTION,
    client: httpx.Client | None = None,
) -> HttpEntityStateUpdater:
    """Create the entity state adapter for the configured service.

    Raises:
        ConfigValidationError: If ``status_service_url`` is empty.
    """
    url = _require_service_url(config)
    logger.info("Creating entity updater | url=%s | collection=%s", url, collection)
    return HttpEntityStateUpdater(
        url,
        collection=collection,
        timeout_s=config.status_request_timeout_seconds,
        client=client,
    )
