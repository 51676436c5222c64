"""Microsoft Planetary Computer adapter (STAC API).

Concrete ``ImageryProvider`` implementation using the free Microsoft
Planetary Computer STAC API and its data API. Searches Sentinel-2 L2A
(``sentinel-2-l2a``) and returns a data API ``item/preview`` URL that
renders the least-cloudy match with the same bands, stretch, and size
as the Earth Engine adapter.

The catalogue is anonymous: the "session" is the opened
``pystac_client.Client``, established once and reused.

Configuration:
    The STAC catalogue URL defaults to
    ``https://planetarycomputer.microsoft.com/api/stac/v1``.
    Override via ``ProviderConfig.api_base_url`` if needed. The data API
    root can be overridden with ``extra_params["data_api_url"]``.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any
from urllib.parse import urlencode

import pystac_client

from sentinel_preview.core.constants import MSG_NO_IMAGES, STAC_COLLECTION
from sentinel_preview.models.imagery import ImageReference
from sentinel_preview.providers.base import (
    ImageryProvider,
    NoResultsError,
    RemoteServiceError,
)
from sentinel_preview.providers.session import Session

if TYPE_CHECKING:
    import pystac

    from sentinel_preview.models.imagery import ImageryFilters, ProviderConfig, RenderParams
    from sentinel_preview.models.region import Region

logger = logging.getLogger("sentinel_preview.providers.planetary_computer")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_DEFAULT_STAC_URL = "https://planetarycomputer.microsoft.com/api/stac/v1"
_DEFAULT_DATA_API_URL = "https://planetarycomputer.microsoft.com/api/data/v1"

# Upper bound on candidates pulled back before the client-side sort.
_MAX_ITEMS = 50


class StacCatalogueAuthenticator:
    """Opens the STAC catalogue once; no credentials involved."""

    def __init__(self, config: ProviderConfig) -> None:
        self._config = config

    @property
    def stac_url(self) -> str:
        return self._config.api_base_url or _DEFAULT_STAC_URL

    def authenticate(self) -> Session:
        """Open the catalogue landing page.

        Raises:
            RemoteServiceError: If the catalogue cannot be reached.
        """
        try:
            catalogue = pystac_client.Client.open(self.stac_url)
        except Exception as exc:
            msg = f"Failed to open STAC catalogue {self.stac_url}: {exc}"
            raise RemoteServiceError(self._config.name, msg, retryable=True) from exc

        logger.info("STAC catalogue opened | url=%s", self.stac_url)
        return Session(
            provider=self._config.name,
            established_at=datetime.now(UTC),
            handle=catalogue,
        )


class PlanetaryComputerAdapter(ImageryProvider):
    """Planetary Computer STAC adapter.

    Uses ``pystac-client`` for the catalogue search. Rendering is
    delegated to the data API by URL, so no imagery bytes pass through
    this process.
    """

    def create_authenticator(self) -> StacCatalogueAuthenticator:
        return StacCatalogueAuthenticator(self.config)

    @property
    def collection_id(self) -> str:
        return self.filters.collection or STAC_COLLECTION

    @property
    def data_api_url(self) -> str:
        return self.config.extra_params.get("data_api_url", _DEFAULT_DATA_API_URL).rstrip("/")

    def fetch_thumbnail(self, region: Region) -> ImageReference:
        """Render the least-cloudy Sentinel-2 L2A item over *region*.

        Raises:
            AuthenticationError / SessionTimeoutError / RemoteServiceError:
                From ``ensure_session``.
            NoResultsError: If no item matches the filters.
            RemoteServiceError: On STAC API errors.
        """
        session = self.ensure_session()
        catalogue: Any = session.handle

        try:
            stac_search = catalogue.search(
                collections=[self.collection_id],
                intersects={"type": "Polygon", "coordinates": [region.as_ring()]},
                datetime=_build_date_range(self.filters),
                query={"eo:cloud_cover": {"lt": self.filters.max_cloud_cover_pct}},
                max_items=_MAX_ITEMS,
            )
            items = list(stac_search.items())
        except Exception as exc:
            msg = f"STAC search failed: {exc}"
            raise RemoteServiceError(self.name, msg, retryable=True) from exc

        best = _least_cloudy(items)
        if best is None:
            logger.warning(
                "No STAC items | collection=%s | vertices=%d | max_cloud=%.1f",
                self.collection_id,
                len(region),
                self.filters.max_cloud_cover_pct,
            )
            raise NoResultsError(self.name, MSG_NO_IMAGES)

        cloud_cover = _cloud_cover(best)
        url = build_preview_url(self.data_api_url, self.collection_id, best.id, self.render)

        logger.info(
            "Planetary Computer preview ready | item=%s | cloud=%.1f%% | candidates=%d",
            best.id,
            cloud_cover,
            len(items),
        )
        return ImageReference(
            url=url,
            provider=self.name,
            scene_id=best.id,
            cloud_cover_pct=cloud_cover,
        )


# ---------------------------------------------------------------------------
# Module-level helpers
# ---------------------------------------------------------------------------


def build_preview_url(
    data_api_url: str,
    collection: str,
    item_id: str,
    render: RenderParams,
) -> str:
    """Build a data API ``item/preview`` URL for one STAC item.

    Example::

        .../item/preview.png?collection=sentinel-2-l2a&item=S2A_...
            &assets=B04&assets=B03&assets=B02&rescale=0,3000&width=512&height=512
    """
    width, height = render.size()
    params: list[tuple[str, str]] = [("collection", collection), ("item", item_id)]
    params.extend(("assets", _stac_band_name(band)) for band in render.bands)
    params.extend(
        [
            ("rescale", f"{render.stretch_min},{render.stretch_max}"),
            ("width", str(width)),
            ("height", str(height)),
        ]
    )
    return f"{data_api_url}/item/preview.{render.fmt}?{urlencode(params, safe=',')}"


def _stac_band_name(band: str) -> str:
    """Map Earth Engine band names (``B4``) to STAC asset keys (``B04``)."""
    if len(band) == 2 and band[0] == "B" and band[1].isdigit():
        return f"B0{band[1]}"
    return band


def _build_date_range(filters: ImageryFilters) -> str:
    """Convert the filter window to a STAC datetime interval."""
    return f"{filters.date_start}/{filters.date_end}"


def _cloud_cover(item: pystac.Item) -> float:
    properties = item.properties or {}
    try:
        return float(properties.get("eo:cloud_cover", 100.0))
    except (TypeError, ValueError):
        return 100.0


def _least_cloudy(items: list[pystac.Item]) -> pystac.Item | None:
    """Pick the item with the lowest cloud cover, or ``None`` if empty."""
    if not items:
        return None
    return min(items, key=_cloud_cover)
