"""Monitor configuration loaded from environment variables.

All configuration values have defaults matching the deployment delete
status step (10 s interval, 2 h timeout, 100 consecutive misses).
Every value can still be overridden per session through
``PollSettings``.

Fail-fast validation:
    ``from_env()`` raises ``ConfigValidationError`` if any numeric
    value is out of its valid range.  This catches bad configuration at
    startup instead of in the middle of a two-hour polling session.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from remote_task_monitor.core.constants import (
    DEFAULT_MAX_NOT_FOUND_COUNT,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_POLL_TIMEOUT_SECONDS,
    DEFAULT_STATUS_REQUEST_TIMEOUT_SECONDS,
)
from remote_task_monitor.core.exceptions import MonitorError
from remote_task_monitor.models.task_state import PollSettings


class ConfigValidationError(MonitorError):
    """Raised when configuration values are out of valid range.

    Attributes:
        key: The configuration key that failed validation.
        value: The invalid value.
        message: Human-readable description of the valid range.
    """

    default_stage = "config"
    default_code = "CONFIG_VALIDATION_FAILED"

    def __init__(self, key: str, value: object, message: str) -> None:
        self.key = key
        self.value = value
        self.message = message
        super().__init__(f"Invalid configuration {key}={value!r}: {message}")


@dataclass(frozen=True, slots=True)
class MonitorConfig:
    """Immutable monitor configuration.

    Attributes:
        poll_interval_seconds: Pause between status queries.
        poll_timeout_seconds: Total wall-clock budget per session.
        max_not_found_count: Consecutive "not found" responses tolerated.
        status_service_url: Base URL of the remote task service (empty
            when only in-process adapters are used).
        status_request_timeout_seconds: Per-request HTTP timeout.
    """

    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    poll_timeout_seconds: float = DEFAULT_POLL_TIMEOUT_SECONDS
    max_not_found_count: int = DEFAULT_MAX_NOT_FOUND_COUNT
    status_service_url: str = ""
    status_request_timeout_seconds: float = DEFAULT_STATUS_REQUEST_TIMEOUT_SECONDS

    @classmethod
    def from_env(cls) -> MonitorConfig:
        """Load and validate configuration from environment variables.

        Raises:
            ConfigValidationError: If a numeric value is out of range.
            ValueError: If a numeric environment variable cannot be
                parsed (e.g. ``POLL_INTERVAL_SECONDS=abc``).
        """
        config = cls(
            poll_interval_seconds=float(
                os.getenv("POLL_INTERVAL_SECONDS", str(DEFAULT_POLL_INTERVAL_SECONDS))
            ),
            poll_timeout_seconds=float(
                os.getenv("POLL_TIMEOUT_SECONDS", str(DEFAULT_POLL_TIMEOUT_SECONDS))
            ),
            max_not_found_count=int(
                os.getenv("MAX_NOT_FOUND_COUNT", str(DEFAULT_MAX_NOT_FOUND_COUNT))
            ),
            status_service_url=os.getenv("STATUS_SERVICE_URL", ""),
            status_request_timeout_seconds=float(
                os.getenv(
                    "STATUS_REQUEST_TIMEOUT_SECONDS",
                    str(DEFAULT_STATUS_REQUEST_TIMEOUT_SECONDS),
                )
            ),
        )
        _validate(config)
        return config

    def poll_settings(self) -> PollSettings:
        """Return the per-session polling policy derived from this config."""
        return PollSettings(
            poll_interval_s=self.poll_interval_seconds,
            timeout_s=self.poll_timeout_seconds,
            max_not_found_count=self.max_not_found_count,
        )


def _validate(config: MonitorConfig) -> None:
    """Validate configuration ranges.  Raises ``ConfigValidationError``."""
    if config.poll_interval_seconds < 0:
        raise ConfigValidationError(
            "POLL_INTERVAL_SECONDS",
            config.poll_interval_seconds,
            "must be >= 0 (seconds)",
        )

    if config.poll_timeout_seconds <= 0:
        raise ConfigValidationError(
            "POLL_TIMEOUT_SECONDS",
            config.poll_timeout_seconds,
            "must be > 0 (seconds)",
        )

    if config.max_not_found_count < 0:
        raise ConfigValidationError(
            "MAX_NOT_FOUND_COUNT",
            config.max_not_found_count,
            "must be >= 0",
        )

    if config.status_request_timeout_seconds <= 0:
        raise ConfigValidationError(
            "STATUS_REQUEST_TIMEOUT_SECONDS",
            config.status_request_timeout_seconds,
            "must be > 0 (seconds)",
        )
