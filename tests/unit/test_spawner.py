"""Tests for the background task spawner."""

from __future__ import annotations

import logging
import threading

import pytest

from sentinel_preview.jobs.spawner import TaskSpawner
from tests.fakes import wait_for


class TestTaskSpawner:
    def test_spawn_runs_task(self, spawner: TaskSpawner) -> None:
        future = spawner.spawn(lambda a, b: a + b, 2, 3)
        assert future.result(timeout=5) == 5

    def test_kwargs_forwarded(self, spawner: TaskSpawner) -> None:
        future = spawner.spawn(dict, region="r", mode="async")
        assert future.result(timeout=5) == {"region": "r", "mode": "async"}

    def test_spawn_does_not_wait(self, spawner: TaskSpawner) -> None:
        gate = threading.Event()
        future = spawner.spawn(gate.wait, 5)
        assert not future.done()
        assert spawner.in_flight == 1
        gate.set()
        assert spawner.wait_idle(timeout=5) is True
        assert wait_for(lambda: spawner.in_flight == 0)

    def test_wait_idle_times_out(self, spawner: TaskSpawner) -> None:
        gate = threading.Event()
        spawner.spawn(gate.wait, 5)
        try:
            assert spawner.wait_idle(timeout=0.05) is False
        finally:
            gate.set()
        assert spawner.wait_idle(timeout=5) is True

    def test_wait_idle_with_nothing_spawned(self, spawner: TaskSpawner) -> None:
        assert spawner.wait_idle(timeout=0) is True

    def test_escaped_exception_logged_and_kept(
        self, spawner: TaskSpawner, caplog: pytest.LogCaptureFixture
    ) -> None:
        def _explode() -> None:
            msg = "unhandled"
            raise RuntimeError(msg)

        with caplog.at_level(logging.ERROR, logger="sentinel_preview.jobs.spawner"):
            future = spawner.spawn(_explode)
            assert isinstance(future.exception(timeout=5), RuntimeError)
            assert wait_for(
                lambda: any("escaped its error handling" in r.message for r in caplog.records)
            )

    def test_shutdown_lets_running_tasks_finish(self) -> None:
        spawner = TaskSpawner(max_workers=1)
        gate = threading.Event()
        future = spawner.spawn(gate.wait, 5)
        gate.set()
        spawner.shutdown(wait=True)
        assert future.result(timeout=0) is True
