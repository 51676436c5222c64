"""Typed models for the imagery provider adapter layer.

Defines the data structures exchanged between the job tracker and the
provider adapters:

- ``ImageryFilters``: Archive search criteria (date window, cloud cover)
- ``RenderParams``: How the selected scene is rendered (bands, stretch, size)
- ``ImageReference``: Opaque handle to the rendered thumbnail
- ``ProviderConfig``: Configuration (and credentials) for one provider

Design notes:
- All models are frozen dataclasses for immutability.
- Explicit units on every numeric field.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING

from sentinel_preview.core.constants import (
    DEFAULT_AUTH_TIMEOUT_S,
    DEFAULT_DATE_END,
    DEFAULT_DATE_START,
    DEFAULT_MAX_CLOUD_COVER_PCT,
    RGB_BANDS,
    STRETCH_MAX,
    STRETCH_MIN,
    THUMBNAIL_DIMENSIONS,
    THUMBNAIL_FORMAT,
)
from sentinel_preview.core.exceptions import ServiceError

if TYPE_CHECKING:
    from sentinel_preview.core.config import ServiceConfig


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class ModelValidationError(ValueError, ServiceError):
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
        ServiceError.__init__(self, formatted)


# ---------------------------------------------------------------------------
# Search and render models
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ImageryFilters:
    """Criteria for searching a provider's imagery archive.

    Attributes:
        date_start: Earliest acquisition date (inclusive), ISO ``YYYY-MM-DD``.
        date_end: Latest acquisition date (exclusive), ISO ``YYYY-MM-DD``.
        max_cloud_cover_pct: Scenes must have cloud cover strictly below
            this percentage (0-100).
        collection: Provider-specific collection identifier. Empty means
            the adapter's default collection.
    """

    date_start: str = DEFAULT_DATE_START
    date_end: str = DEFAULT_DATE_END
    max_cloud_cover_pct: float = DEFAULT_MAX_CLOUD_COVER_PCT
    collection: str = ""

    def __post_init__(self) -> None:
        _check_range("ImageryFilters", "max_cloud_cover_pct", self.max_cloud_cover_pct, 0, 100)
        start = _check_iso_date("ImageryFilters", "date_start", self.date_start)
        end = _check_iso_date("ImageryFilters", "date_end", self.date_end)
        if start > end:
            raise ModelValidationError(
                "ImageryFilters",
                "date_start",
                self.date_start,
                f"must be <= date_end ({self.date_end})",
            )

    @classmethod
    def from_config(cls, config: ServiceConfig) -> ImageryFilters:
        """Build the archive filters from the service configuration."""
        return cls(
            date_start=config.date_start,
            date_end=config.date_end,
            max_cloud_cover_pct=config.max_cloud_cover_pct,
        )


@dataclass(frozen=True, slots=True)
class RenderParams:
    """Rendering request for the selected scene.

    Attributes:
        bands: Three band names mapped to red, green, blue.
        stretch_min: Reflectance value mapped to black.
        stretch_max: Reflectance value mapped to white.
        dimensions: Output size as ``"WIDTHxHEIGHT"`` pixels.
        fmt: Output image format (e.g. ``"png"``).
    """

    bands: tuple[str, str, str] = RGB_BANDS
    stretch_min: int = STRETCH_MIN
    stretch_max: int = STRETCH_MAX
    dimensions: str = THUMBNAIL_DIMENSIONS
    fmt: str = THUMBNAIL_FORMAT

    def __post_init__(self) -> None:
        if len(self.bands) != 3:
            raise ModelValidationError("RenderParams", "bands", self.bands, "must name exactly 3 bands")
        if self.stretch_min >= self.stretch_max:
            raise ModelValidationError(
                "RenderParams",
                "stretch_min",
                self.stretch_min,
                f"must be < stretch_max ({self.stretch_max})",
            )
        self.size()

    def size(self) -> tuple[int, int]:
        """Return ``(width, height)`` parsed from ``dimensions``."""
        try:
            width, height = (int(part) for part in self.dimensions.lower().split("x"))
        except ValueError as exc:
            raise ModelValidationError(
                "RenderParams", "dimensions", self.dimensions, "must look like '512x512'"
            ) from exc
        if width <= 0 or height <= 0:
            raise ModelValidationError(
                "RenderParams", "dimensions", self.dimensions, "must be positive"
            )
        return width, height


@dataclass(frozen=True, slots=True)
class ImageReference:
    """Opaque handle to a rendered thumbnail.

    Attributes:
        url: URL a client can GET to retrieve the rendered image.
        provider: Name of the provider that produced it.
        scene_id: Identifier of the selected scene, when known.
        cloud_cover_pct: Cloud cover of the selected scene, when known.
    """

    url: str
    provider: str = ""
    scene_id: str = ""
    cloud_cover_pct: float | None = None

    def __post_init__(self) -> None:
        _check_non_empty("ImageReference", "url", self.url)


# ---------------------------------------------------------------------------
# Provider configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ProviderConfig:
    """Configuration for a specific imagery provider.

    Attributes:
        name: Provider identifier (must match the adapter registry key).
        api_base_url: Base URL for the provider's API (empty = adapter default).
        project_id: Cloud project that owns the provider quota.
        client_email: Service-account email.
        private_key: Service-account PEM key. Excluded from ``repr``.
        auth_timeout_s: Bounded wait for session establishment, in seconds.
        extra_params: Provider-specific configuration parameters.
    """

    name: str
    api_base_url: str = ""
    project_id: str = ""
    client_email: str = ""
    private_key: str = field(default="", repr=False)
    auth_timeout_s: float = DEFAULT_AUTH_TIMEOUT_S
    extra_params: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _check_non_empty("ProviderConfig", "name", self.name)
        if self.auth_timeout_s <= 0:
            raise ModelValidationError(
                "ProviderConfig", "auth_timeout_s", self.auth_timeout_s, "must be > 0"
            )

    @classmethod
    def from_config(cls, config: ServiceConfig) -> ProviderConfig:
        """Build the active provider's configuration from the service config."""
        return cls(
            name=config.imagery_provider,
            project_id=config.ee_project_id,
            client_email=config.ee_client_email,
            private_key=config.ee_private_key,
            auth_timeout_s=config.auth_timeout_s,
        )


# ---------------------------------------------------------------------------
# Validation helpers (module-private)
# ---------------------------------------------------------------------------


def _check_range(model: str, field_name: str, value: float, lo: float, hi: float) -> None:
    """Raise `ModelValidationError` if *value* falls outside [lo, hi]."""
    if value < lo or value > hi:
        raise ModelValidationError(model, field_name, value, f"must be between {lo} and {hi}")


def _check_non_empty(model: str, field_name: str, value: str) -> None:
    """Raise `ModelValidationError` if *value* is empty or blank."""
    if not value or not value.strip():
        raise ModelValidationError(model, field_name, value, "must not be empty")


def _check_iso_date(model: str, field_name: str, value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise ModelValidationError(model, field_name, value, "must be an ISO date") from exc
