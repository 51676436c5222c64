"""Shared pytest fixtures for the Sentinel preview test suite."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from sentinel_preview.jobs.spawner import TaskSpawner
from sentinel_preview.jobs.tracker import JobTracker
from sentinel_preview.models.region import Region
from sentinel_preview.providers.factory import clear_provider_cache
from tests.fakes import UNIT_SQUARE, FakeProvider


@pytest.fixture(autouse=True)
def _isolated_provider_cache() -> Iterator[None]:
    """Every test starts and ends with an empty provider instance cache."""
    clear_provider_cache()
    yield
    clear_provider_cache()


@pytest.fixture()
def square_region() -> Region:
    """The unit square as a closed ring."""
    return Region.from_payload(UNIT_SQUARE)


@pytest.fixture()
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture()
def spawner() -> Iterator[TaskSpawner]:
    spawner = TaskSpawner(max_workers=2, name="test-job")
    yield spawner
    spawner.shutdown(wait=True)


@pytest.fixture()
def tracker(fake_provider: FakeProvider, spawner: TaskSpawner) -> JobTracker:
    return JobTracker(fake_provider, spawner=spawner)
