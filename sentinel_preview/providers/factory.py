"""Provider factory: selects the active imagery provider by name.

The factory maintains a registry of known adapters. New adapters are
registered by adding an entry to ``_ADAPTER_REGISTRY``.

Usage::

    from sentinel_preview.providers.factory import get_provider

    provider = get_provider("earth_engine", config)
    reference = provider.fetch_thumbnail(region)

The provider name is read from the ``IMAGERY_PROVIDER`` environment
variable via ``ServiceConfig.imagery_provider``.

Instances are cached per name, so every caller in the process shares
one adapter and therefore one authenticated session.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from sentinel_preview.models.imagery import ProviderConfig
from sentinel_preview.providers.base import ImageryProvider, ProviderError

if TYPE_CHECKING:
    from collections.abc import Callable

    from sentinel_preview.models.imagery import ImageryFilters, RenderParams

logger = logging.getLogger("sentinel_preview.providers.factory")

# ---------------------------------------------------------------------------
# Provider name constants
# ---------------------------------------------------------------------------

EARTH_ENGINE = "earth_engine"
PLANETARY_COMPUTER = "planetary_computer"

# ---------------------------------------------------------------------------
# Lazy-import adapter registry
# ---------------------------------------------------------------------------

# Each entry maps a provider name to a callable that returns the adapter
# *class*. We use a lazy import so that heavyweight provider dependencies
# (earthengine-api, pystac-client) are only loaded when that adapter is
# selected.

_ADAPTER_REGISTRY: dict[str, Callable[[], type[ImageryProvider]]] = {}

_INSTANCE_CACHE: dict[str, ImageryProvider] = {}
_CACHE_LOCK = threading.Lock()


def _register_builtin_adapters() -> None:
    """Register the built-in provider adapters."""

    def _earth_engine() -> type[ImageryProvider]:
        from sentinel_preview.providers.earth_engine import EarthEngineAdapter

        return EarthEngineAdapter

    def _planetary_computer() -> type[ImageryProvider]:
        from sentinel_preview.providers.planetary_computer import (
            PlanetaryComputerAdapter,
        )

        return PlanetaryComputerAdapter

    _ADAPTER_REGISTRY[EARTH_ENGINE] = _earth_engine
    _ADAPTER_REGISTRY[PLANETARY_COMPUTER] = _planetary_computer


def _ensure_registry() -> None:
    """Initialise the adapter registry once (idempotent)."""
    if not _ADAPTER_REGISTRY:
        _register_builtin_adapters()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def register_provider(
    name: str,
    loader: Callable[[], type[ImageryProvider]],
) -> None:
    """Register a custom provider adapter.

    This allows test adapters to be plugged in without modifying the
    factory.

    Args:
        name: Provider name (e.g. ``"fake"``).
        loader: A zero-argument callable that returns the adapter class.

    Raises:
        ValueError: If the name is empty.
    """
    if not name:
        msg = "Provider name must be non-empty"
        raise ValueError(msg)
    _ensure_registry()
    _ADAPTER_REGISTRY[name] = loader
    with _CACHE_LOCK:
        _INSTANCE_CACHE.pop(name, None)
    logger.debug("Registered provider adapter: %s", name)


def get_provider(
    name: str,
    config: ProviderConfig | None = None,
    *,
    filters: ImageryFilters | None = None,
    render: RenderParams | None = None,
) -> ImageryProvider:
    """Return the process-wide imagery provider instance for *name*.

    The first call constructs the adapter; later calls return the cached
    instance and ignore *config*, *filters* and *render*.

    Args:
        name: Provider identifier (e.g. ``"earth_engine"``).
        config: Optional ``ProviderConfig``. If ``None``, a default config
                with just the provider name is used.
        filters: Optional archive filters (adapter defaults otherwise).
        render: Optional render parameters (adapter defaults otherwise).

    Raises:
        ProviderError: If the named provider is not registered, or the
            config name does not match.
    """
    _ensure_registry()

    loader = _ADAPTER_REGISTRY.get(name)
    if loader is None:
        available = ", ".join(sorted(_ADAPTER_REGISTRY))
        msg = f"Unknown imagery provider: {name!r}. Available: {available}"
        raise ProviderError(provider=name, message=msg)

    if config is None:
        config = ProviderConfig(name=name)
    elif config.name != name:
        msg = f"ProviderConfig.name {config.name!r} does not match requested provider {name!r}"
        raise ProviderError(provider=name, message=msg)

    with _CACHE_LOCK:
        cached = _INSTANCE_CACHE.get(name)
        if cached is not None:
            return cached

        adapter_cls = loader()
        logger.info("Creating imagery provider: %s", name)
        provider = adapter_cls(config, filters=filters, render=render)
        _INSTANCE_CACHE[name] = provider
        return provider


def list_providers() -> list[str]:
    """Return the names of all registered provider adapters."""
    _ensure_registry()
    return sorted(_ADAPTER_REGISTRY)


def clear_provider_cache() -> None:
    """Drop cached provider instances (and with them, their sessions)."""
    with _CACHE_LOCK:
        _INSTANCE_CACHE.clear()
