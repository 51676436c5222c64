"""Google Earth Engine adapter.

Concrete ``ImageryProvider`` implementation using the Earth Engine
Python API. Searches the Sentinel-2 surface reflectance collection
(``COPERNICUS/S2_SR``) and asks Earth Engine to render a true-colour
thumbnail of the least-cloudy match.

Authentication uses a service account (email + PEM private key) and
``ee.Initialize``. The Earth Engine library keeps the initialised
session in module state, so the ``Session`` handle is ``None``.

Configuration:
    ``ProviderConfig.client_email`` / ``private_key`` / ``project_id``
    come from ``EE_CLIENT_EMAIL`` / ``EE_PRIVATE_KEY`` / ``EE_PROJECT_ID``.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import ee
from ee.ee_exception import EEException

from sentinel_preview.core.constants import (
    EARTH_ENGINE_CLOUD_PROPERTY,
    EARTH_ENGINE_COLLECTION,
    MSG_NO_IMAGES,
)
from sentinel_preview.models.imagery import ImageReference
from sentinel_preview.providers.base import (
    AuthenticationError,
    ImageryProvider,
    NoResultsError,
    RemoteServiceError,
)
from sentinel_preview.providers.session import Session

if TYPE_CHECKING:
    from sentinel_preview.models.imagery import ProviderConfig
    from sentinel_preview.models.region import Region

logger = logging.getLogger("sentinel_preview.providers.earth_engine")


class EarthEngineAuthenticator:
    """Service-account authenticator for Earth Engine."""

    def __init__(self, config: ProviderConfig) -> None:
        self._config = config

    def authenticate(self) -> Session:
        """Initialise Earth Engine with the configured service account.

        Raises:
            AuthenticationError: If credentials are missing or rejected.
        """
        email = self._config.client_email
        key = self._config.private_key
        if not email or not key:
            msg = "Earth Engine service-account email and private key are required"
            raise AuthenticationError(self._config.name, msg)

        try:
            credentials = ee.ServiceAccountCredentials(email, key_data=key)
            ee.Initialize(credentials, project=self._config.project_id or None)
        except (EEException, ValueError) as exc:
            msg = f"Earth Engine rejected service account {email}: {exc}"
            raise AuthenticationError(self._config.name, msg) from exc

        logger.info(
            "Earth Engine initialised | project=%s | account=%s",
            self._config.project_id,
            email,
        )
        return Session(provider=self._config.name, established_at=datetime.now(UTC))


class EarthEngineAdapter(ImageryProvider):
    """Earth Engine thumbnail adapter.

    The archive query is fixed: Sentinel-2 SR scenes intersecting the
    region, inside the configured date window, with cloud cover below
    the threshold, sorted ascending by cloud cover. Only the first scene
    is rendered.
    """

    def create_authenticator(self) -> EarthEngineAuthenticator:
        return EarthEngineAuthenticator(self.config)

    @property
    def collection_id(self) -> str:
        return self.filters.collection or EARTH_ENGINE_COLLECTION

    def fetch_thumbnail(self, region: Region) -> ImageReference:
        """Render the least-cloudy Sentinel-2 scene over *region*.

        Raises:
            AuthenticationError / SessionTimeoutError: From ``ensure_session``.
            NoResultsError: If the filtered collection is empty.
            RemoteServiceError: On any Earth Engine or transport failure.
        """
        self.ensure_session()

        try:
            collection = self._build_collection(region)
            count = int(collection.size().getInfo() or 0)
        except Exception as exc:
            msg = f"Earth Engine search failed: {exc}"
            raise RemoteServiceError(self.name, msg, retryable=True) from exc

        if count == 0:
            logger.warning(
                "No Earth Engine scenes | collection=%s | window=%s/%s | max_cloud=%.1f",
                self.collection_id,
                self.filters.date_start,
                self.filters.date_end,
                self.filters.max_cloud_cover_pct,
            )
            raise NoResultsError(self.name, MSG_NO_IMAGES)

        image = ee.Image(collection.first())
        try:
            url = image.getThumbURL(self._thumbnail_params())
        except Exception as exc:
            msg = f"Earth Engine thumbnail request failed: {exc}"
            raise RemoteServiceError(self.name, msg, retryable=True) from exc

        logger.info(
            "Earth Engine thumbnail ready | collection=%s | candidates=%d | url=%s",
            self.collection_id,
            count,
            url,
        )
        return ImageReference(url=str(url), provider=self.name)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _build_collection(self, region: Region) -> Any:
        aoi = ee.Geometry.Polygon([region.as_ring()])
        return (
            ee.ImageCollection(self.collection_id)
            .filterBounds(aoi)
            .filterDate(self.filters.date_start, self.filters.date_end)
            .filter(ee.Filter.lt(EARTH_ENGINE_CLOUD_PROPERTY, self.filters.max_cloud_cover_pct))
            .sort(EARTH_ENGINE_CLOUD_PROPERTY)
        )

    def _thumbnail_params(self) -> dict[str, Any]:
        return {
            "bands": list(self.render.bands),
            "min": self.render.stretch_min,
            "max": self.render.stretch_max,
            "dimensions": self.render.dimensions,
            "format": self.render.fmt,
        }
