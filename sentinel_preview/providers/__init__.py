"""Imagery provider adapters.

Implements the provider-agnostic adapter pattern (Strategy pattern):
- ImageryProvider: Abstract base class defining the interface
- EarthEngineAdapter: Google Earth Engine (service account, default)
- PlanetaryComputerAdapter: Microsoft Planetary Computer (STAC, anonymous)

The active provider is selected via configuration, enabling zero-code-change
provider switching. Concrete adapters are imported lazily by the factory.
"""

from sentinel_preview.providers.base import (
    AuthenticationError,
    ImageryProvider,
    NoResultsError,
    ProviderError,
    RemoteServiceError,
    SessionTimeoutError,
)
from sentinel_preview.providers.factory import (
    EARTH_ENGINE,
    PLANETARY_COMPUTER,
    clear_provider_cache,
    get_provider,
    list_providers,
    register_provider,
)

__all__ = [
    "EARTH_ENGINE",
    "PLANETARY_COMPUTER",
    "AuthenticationError",
    "ImageryProvider",
    "NoResultsError",
    "ProviderError",
    "RemoteServiceError",
    "SessionTimeoutError",
    "clear_provider_cache",
    "get_provider",
    "list_providers",
    "register_provider",
]
