"""Service configuration loaded from environment variables.

All configuration values have defaults matching the values the service
has always used. Azure Functions app settings (or
``local.settings.json`` for local dev) are the source of truth.

Fail-fast validation:
    ``from_env()`` raises ``ConfigValidationError`` if any value is out
    of its valid range, so bad configuration surfaces at startup rather
    than on the first background fetch.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import date

from sentinel_preview.core.constants import (
    DEFAULT_AUTH_TIMEOUT_S,
    DEFAULT_DATE_END,
    DEFAULT_DATE_START,
    DEFAULT_MAX_CLOUD_COVER_PCT,
    MODE_ASYNC,
    MODE_SYNC,
)
from sentinel_preview.core.exceptions import ServiceError


class ConfigValidationError(ServiceError):
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
        super().__init__(f"Invalid configuration {key}={value!r}: {message}")


@dataclass(frozen=True, slots=True)
class ServiceConfig:
    """Immutable service configuration.

    Loaded once when the function app module is imported.

    Attributes:
        ee_project_id: Google Cloud project that owns the Earth Engine quota.
        ee_client_email: Service-account email.
        ee_private_key: Service-account private key (PEM, real newlines).
        imagery_provider: Active imagery provider registry key.
        processing_mode: ``"async"`` (acknowledge, then poll) or ``"sync"``.
        auth_timeout_s: Bounded wait for session establishment, in seconds.
        max_cloud_cover_pct: Cloud cover threshold (exclusive), percentage.
        date_start: Start of the archive date window (ISO date, inclusive).
        date_end: End of the archive date window (ISO date, exclusive).
        job_workers: Size of the background task thread pool.
    """

    ee_project_id: str = ""
    ee_client_email: str = ""
    ee_private_key: str = ""
    imagery_provider: str = "earth_engine"
    processing_mode: str = MODE_ASYNC
    auth_timeout_s: float = DEFAULT_AUTH_TIMEOUT_S
    max_cloud_cover_pct: float = DEFAULT_MAX_CLOUD_COVER_PCT
    date_start: str = DEFAULT_DATE_START
    date_end: str = DEFAULT_DATE_END
    job_workers: int = 4

    @property
    def is_sync(self) -> bool:
        """True when POST requests should wait for the fetch."""
        return self.processing_mode == MODE_SYNC

    @classmethod
    def from_env(cls) -> ServiceConfig:
        """Load and validate configuration from environment variables.

        Raises:
            ConfigValidationError: If a value is out of range.
            ValueError: If a numeric environment variable cannot be
                parsed (e.g. ``JOB_WORKERS=abc``).
        """
        config = cls(
            ee_project_id=os.getenv("EE_PROJECT_ID", ""),
            ee_client_email=os.getenv("EE_CLIENT_EMAIL", ""),
            ee_private_key=unescape_private_key(os.getenv("EE_PRIVATE_KEY", "")),
            imagery_provider=os.getenv("IMAGERY_PROVIDER", "earth_engine"),
            processing_mode=os.getenv("PROCESSING_MODE", MODE_ASYNC).strip().lower(),
            auth_timeout_s=float(os.getenv("EE_AUTH_TIMEOUT_S", str(DEFAULT_AUTH_TIMEOUT_S))),
            max_cloud_cover_pct=float(
                os.getenv("IMAGERY_MAX_CLOUD_COVER_PCT", str(DEFAULT_MAX_CLOUD_COVER_PCT))
            ),
            date_start=os.getenv("IMAGERY_DATE_START", DEFAULT_DATE_START),
            date_end=os.getenv("IMAGERY_DATE_END", DEFAULT_DATE_END),
            job_workers=int(os.getenv("JOB_WORKERS", "4")),
        )
        _validate(config)
        return config


def unescape_private_key(raw: str) -> str:
    """Turn literal ``\\n`` sequences from an app setting into newlines.

    App settings cannot hold multi-line values, so the PEM key is stored
    with escaped newlines.
    """
    return raw.replace("\\n", "\n")


def _validate(config: ServiceConfig) -> None:
    """Validate configuration ranges.  Raises ``ConfigValidationError``."""
    if config.processing_mode not in (MODE_ASYNC, MODE_SYNC):
        raise ConfigValidationError(
            "PROCESSING_MODE",
            config.processing_mode,
            f"must be {MODE_ASYNC!r} or {MODE_SYNC!r}",
        )

    if config.auth_timeout_s <= 0:
        raise ConfigValidationError(
            "EE_AUTH_TIMEOUT_S",
            config.auth_timeout_s,
            "must be > 0 (seconds)",
        )

    if not 0.0 <= config.max_cloud_cover_pct <= 100.0:
        raise ConfigValidationError(
            "IMAGERY_MAX_CLOUD_COVER_PCT",
            config.max_cloud_cover_pct,
            "must be between 0 and 100 (percentage)",
        )

    if config.job_workers < 1:
        raise ConfigValidationError(
            "JOB_WORKERS",
            config.job_workers,
            "must be >= 1",
        )

    if not config.imagery_provider:
        raise ConfigValidationError(
            "IMAGERY_PROVIDER",
            config.imagery_provider,
            "must not be empty",
        )

    start = _parse_date("IMAGERY_DATE_START", config.date_start)
    end = _parse_date("IMAGERY_DATE_END", config.date_end)
    if start > end:
        raise ConfigValidationError(
            "IMAGERY_DATE_START",
            config.date_start,
            f"must be <= IMAGERY_DATE_END ({config.date_end})",
        )


def _parse_date(key: str, value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise ConfigValidationError(key, value, "must be an ISO date (YYYY-MM-DD)") from exc
