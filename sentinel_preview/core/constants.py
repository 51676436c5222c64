"""Shared service constants.

Centralises the archive query parameters, rendering parameters, and the
user-facing wire messages. The messages are kept verbatim (Spanish) for
compatibility with existing clients of the HTTP endpoints.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Archive query
# ---------------------------------------------------------------------------

EARTH_ENGINE_COLLECTION: str = "COPERNICUS/S2_SR"
"""Earth Engine Sentinel-2 surface reflectance collection."""

EARTH_ENGINE_CLOUD_PROPERTY: str = "CLOUDY_PIXEL_PERCENTAGE"
"""Per-image cloud cover property used for filtering and sorting."""

STAC_COLLECTION: str = "sentinel-2-l2a"
"""Planetary Computer Sentinel-2 L2A collection."""

DEFAULT_DATE_START: str = "2024-01-01"
DEFAULT_DATE_END: str = "2024-06-01"
DEFAULT_MAX_CLOUD_COVER_PCT: float = 20.0

# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

RGB_BANDS: tuple[str, str, str] = ("B4", "B3", "B2")
"""True-colour band triplet (Earth Engine naming)."""

STRETCH_MIN: int = 0
STRETCH_MAX: int = 3000
THUMBNAIL_DIMENSIONS: str = "512x512"
THUMBNAIL_FORMAT: str = "png"

# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

DEFAULT_AUTH_TIMEOUT_S: float = 120.0
"""Ceiling on the wait for session establishment."""

# ---------------------------------------------------------------------------
# Processing modes
# ---------------------------------------------------------------------------

MODE_ASYNC: str = "async"
MODE_SYNC: str = "sync"

# ---------------------------------------------------------------------------
# Wire messages
# ---------------------------------------------------------------------------

MSG_MISSING_COORDINATES: str = "Faltan coordenadas"
MSG_ACCEPTED: str = "El procesamiento ha comenzado. Verifica el estado en 2 minutos."
MSG_STILL_PROCESSING: str = "Aún procesando. Espera 2 minutos."
MSG_IDLE: str = "No hay procesamiento activo"
MSG_NO_IMAGES: str = "No se encontraron imágenes"
MSG_INTERNAL_ERROR: str = "Error interno"
MSG_ROUTE_NOT_FOUND: str = "Ruta no encontrada"
MSG_BACKEND_UP: str = "Backend funcionando"
