"""Shared monitor constants.

Centralises polling defaults and the resource keys written onto the
caller's task record, so the config layer, the step controller and the
deployment delete step agree on them.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Polling defaults
# ---------------------------------------------------------------------------

DEFAULT_POLL_INTERVAL_SECONDS: float = 10.0
"""Pause between two status queries."""

DEFAULT_POLL_TIMEOUT_SECONDS: float = 2 * 60 * 60.0
"""Total wall-clock budget of one monitoring session (2 hours)."""

DEFAULT_MAX_NOT_FOUND_COUNT: int = 100
"""Consecutive "not found" responses tolerated before giving up."""

DEFAULT_STATUS_REQUEST_TIMEOUT_SECONDS: float = 30.0
"""Per-request timeout for HTTP status queries."""

# ---------------------------------------------------------------------------
# Task record keys
# ---------------------------------------------------------------------------

REMOTE_TASK_LINK_RESOURCE_KEY: str = "remote-task-link"
"""Resource key under which the monitored remote task link is recorded."""

DEPLOYMENT_KIND: str = "deployment"
"""Default kind of a monitored entity."""
