"""Tests for the imagery provider factory.

Covers: get_provider, list_providers, register_provider, error handling,
config-driven switching, and per-name instance caching.
"""

from __future__ import annotations

import os
import unittest
from unittest.mock import patch

from sentinel_preview.models.imagery import ImageryFilters, ProviderConfig
from sentinel_preview.providers.base import ImageryProvider, ProviderError
from sentinel_preview.providers.factory import (
    _ADAPTER_REGISTRY,
    EARTH_ENGINE,
    PLANETARY_COMPUTER,
    _ensure_registry,
    clear_provider_cache,
    get_provider,
    list_providers,
    register_provider,
)
from tests.fakes import FakeProvider


class TestListProviders(unittest.TestCase):
    """list_providers returns known adapters."""

    def test_includes_builtin_providers(self) -> None:
        providers = list_providers()
        assert EARTH_ENGINE in providers
        assert PLANETARY_COMPUTER in providers

    def test_returns_sorted(self) -> None:
        providers = list_providers()
        assert providers == sorted(providers)


class TestGetProvider(unittest.TestCase):
    """get_provider creates the correct adapter instance."""

    def setUp(self) -> None:
        clear_provider_cache()

    def tearDown(self) -> None:
        clear_provider_cache()

    def test_earth_engine(self) -> None:
        from sentinel_preview.providers.earth_engine import EarthEngineAdapter

        provider = get_provider(EARTH_ENGINE)
        assert isinstance(provider, EarthEngineAdapter)
        assert provider.name == EARTH_ENGINE

    def test_planetary_computer(self) -> None:
        from sentinel_preview.providers.planetary_computer import PlanetaryComputerAdapter

        provider = get_provider(PLANETARY_COMPUTER)
        assert isinstance(provider, PlanetaryComputerAdapter)

    def test_construction_does_not_authenticate(self) -> None:
        provider = get_provider(EARTH_ENGINE)
        assert provider.sessions.attempts == 0

    def test_filters_passed_through(self) -> None:
        filters = ImageryFilters(max_cloud_cover_pct=7.5)
        provider = get_provider(EARTH_ENGINE, filters=filters)
        assert provider.filters is filters

    def test_unknown_provider_raises(self) -> None:
        with self.assertRaises(ProviderError) as ctx:
            get_provider("sentinel_hub")
        assert "Unknown imagery provider" in ctx.exception.message
        assert "Available:" in ctx.exception.message

    def test_config_name_mismatch_raises(self) -> None:
        cfg = ProviderConfig(name=PLANETARY_COMPUTER)
        with self.assertRaises(ProviderError) as ctx:
            get_provider(EARTH_ENGINE, config=cfg)
        assert "does not match" in str(ctx.exception)


class TestRegisterProvider(unittest.TestCase):
    """register_provider adds custom adapters."""

    def setUp(self) -> None:
        _ensure_registry()
        clear_provider_cache()
        _ADAPTER_REGISTRY.pop("test_custom", None)

    def tearDown(self) -> None:
        _ADAPTER_REGISTRY.pop("test_custom", None)
        clear_provider_cache()

    def test_register_and_get(self) -> None:
        register_provider("test_custom", lambda: FakeProvider)
        assert "test_custom" in list_providers()

        provider = get_provider("test_custom")
        assert isinstance(provider, FakeProvider)
        assert provider.name == "test_custom"

    def test_re_register_drops_cached_instance(self) -> None:
        register_provider("test_custom", lambda: FakeProvider)
        first = get_provider("test_custom")
        register_provider("test_custom", lambda: FakeProvider)
        assert get_provider("test_custom") is not first

    def test_register_empty_name_raises(self) -> None:
        with self.assertRaises(ValueError):
            register_provider("", lambda: ImageryProvider)  # type: ignore[arg-type]


class TestProviderSwitching(unittest.TestCase):
    """Provider switching via ``IMAGERY_PROVIDER``."""

    def setUp(self) -> None:
        clear_provider_cache()

    def tearDown(self) -> None:
        clear_provider_cache()

    @patch.dict(os.environ, {"IMAGERY_PROVIDER": PLANETARY_COMPUTER})
    def test_env_driven_selection(self) -> None:
        from sentinel_preview.core.config import ServiceConfig

        cfg = ServiceConfig.from_env()
        provider = get_provider(cfg.imagery_provider, ProviderConfig.from_config(cfg))
        assert provider.name == PLANETARY_COMPUTER


class TestProviderInstanceCache(unittest.TestCase):
    """One adapter (and so one session) per provider name."""

    def setUp(self) -> None:
        clear_provider_cache()

    def tearDown(self) -> None:
        clear_provider_cache()

    def test_repeated_calls_return_cached_instance(self) -> None:
        a = get_provider(EARTH_ENGINE)
        b = get_provider(EARTH_ENGINE)
        assert a is b

    def test_later_config_ignored_once_cached(self) -> None:
        first = get_provider(EARTH_ENGINE)
        again = get_provider(EARTH_ENGINE, ProviderConfig(name=EARTH_ENGINE, project_id="other"))
        assert again is first
        assert again.config.project_id == ""

    def test_clear_cache_forces_new_instance(self) -> None:
        first = get_provider(EARTH_ENGINE)
        clear_provider_cache()
        second = get_provider(EARTH_ENGINE)
        assert first is not second
