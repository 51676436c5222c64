"""Background task spawning.

``TaskSpawner`` is the one place the service starts work that outlives
the HTTP request that triggered it.

Ownership contract:
    - The spawner owns its worker threads. Callers get a ``Future`` back
      for observation only (tests wait on it; request handlers drop it).
    - Cancellation is not supported: ``spawn`` exposes no way to cancel,
      and a spawned task always runs to completion (success, failure, or
      the provider's own timeout).
    - The spawned callable is expected to handle its own errors. Anything
      it lets escape is logged here and stored on the ``Future``.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger("sentinel_preview.jobs.spawner")


class TaskSpawner:
    """Thread-pool backed fire-and-observe task launcher."""

    def __init__(self, max_workers: int = 4, *, name: str = "job") -> None:
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=name)
        self._lock = threading.Lock()
        self._in_flight: set[Future[Any]] = set()

    @property
    def in_flight(self) -> int:
        """Number of spawned tasks that have not finished yet."""
        with self._lock:
            return len(self._in_flight)

    def spawn(self, fn: Callable[..., Any], /, *args: Any, **kwargs: Any) -> Future[Any]:
        """Start ``fn(*args, **kwargs)`` without waiting for it."""
        future = self._executor.submit(fn, *args, **kwargs)
        with self._lock:
            self._in_flight.add(future)
        future.add_done_callback(self._on_done)
        return future

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until every task spawned so far has finished.

        Returns:
            ``True`` if all tasks finished within *timeout*.
        """
        with self._lock:
            pending = set(self._in_flight)
        _, not_done = wait_futures(pending, timeout=timeout)
        return not not_done

    def shutdown(self, *, wait: bool = True) -> None:
        """Stop accepting tasks; optionally wait for running ones to finish."""
        self._executor.shutdown(wait=wait, cancel_futures=False)

    def _on_done(self, future: Future[Any]) -> None:
        with self._lock:
            self._in_flight.discard(future)
        exc = future.exception()
        if exc is not None:
            logger.error("Background task escaped its error handling | error=%s", exc, exc_info=exc)
