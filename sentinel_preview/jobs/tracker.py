"""Job tracker: accept a region, fetch it out-of-band, record the outcome.

``JobTracker.submit`` validates the region, resets the single job slot
to ``processing``, spawns the fetch-and-record task, and returns an
acknowledgement without waiting. ``JobTracker.query_status`` reads the
slot. The spawned task is the only writer of terminal states.

Every error raised by the fetch is caught at the task boundary and
turned into a failure record; nothing escapes to crash the worker, and
nothing is retried. The ``finally`` clause guarantees the slot leaves
``processing`` even if recording the outcome itself goes wrong.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import TYPE_CHECKING

from sentinel_preview.core.constants import MSG_ACCEPTED
from sentinel_preview.core.exceptions import ServiceError
from sentinel_preview.jobs.spawner import TaskSpawner
from sentinel_preview.jobs.store import JobStore
from sentinel_preview.models.job import Acknowledgement, JobSnapshot, JobState
from sentinel_preview.models.region import RegionValidationError

if TYPE_CHECKING:
    from collections.abc import Callable

    from sentinel_preview.models.imagery import ImageReference
    from sentinel_preview.models.region import Region
    from sentinel_preview.providers.base import ImageryProvider

logger = logging.getLogger("sentinel_preview.jobs.tracker")


def _epoch_ms() -> int:
    return time.time_ns() // 1_000_000


class JobTracker:
    """Single-slot asynchronous job tracker.

    Args:
        provider: Imagery provider performing the fetch.
        store: Job slot (a fresh ``JobStore`` by default).
        spawner: Background task launcher (a 4-worker pool by default).
        clock_ms: Source of millisecond epoch timestamps for request ids.
    """

    def __init__(
        self,
        provider: ImageryProvider,
        *,
        store: JobStore | None = None,
        spawner: TaskSpawner | None = None,
        clock_ms: Callable[[], int] = _epoch_ms,
    ) -> None:
        self._provider = provider
        self._store = store or JobStore()
        self._spawner = spawner or TaskSpawner()
        self._clock_ms = clock_ms
        self._id_lock = threading.Lock()
        self._last_request_id = 0

    @property
    def provider(self) -> ImageryProvider:
        return self._provider

    @property
    def store(self) -> JobStore:
        return self._store

    @property
    def spawner(self) -> TaskSpawner:
        return self._spawner

    def submit(self, region: Region | None) -> Acknowledgement:
        """Accept *region* and start fetching it in the background.

        Raises:
            RegionValidationError: If *region* is absent or empty. The
                job slot is left untouched.
            RuntimeError: If the spawner no longer accepts tasks. The
                slot is marked failed before this propagates.
        """
        if region is None or not region.coordinates:
            raise RegionValidationError()

        request_id = self._next_request_id()
        self._store.begin(request_id)
        logger.info(
            "Job submitted | request_id=%s | vertices=%d | provider=%s",
            request_id,
            len(region),
            self._provider.name,
        )

        try:
            self._spawner.spawn(self._fetch_and_record, request_id, region)
        except Exception as exc:
            self._store.record_failure(request_id, str(exc) or type(exc).__name__)
            raise
        return Acknowledgement(
            request_id=request_id,
            state=JobState.PROCESSING,
            message=MSG_ACCEPTED,
        )

    def query_status(self) -> JobSnapshot:
        """Return a read-only snapshot of the job slot."""
        return self._store.snapshot()

    def fetch_now(self, region: Region | None) -> ImageReference:
        """Fetch on the caller's thread (synchronous mode).

        The job slot is not touched.

        Raises:
            RegionValidationError: If *region* is absent or empty.
            ProviderError: Whatever the provider raises.
        """
        if region is None or not region.coordinates:
            raise RegionValidationError()
        logger.info("Synchronous fetch | vertices=%d | provider=%s", len(region), self._provider.name)
        return self._provider.fetch_thumbnail(region)

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until all spawned fetches have resolved."""
        return self._spawner.wait_idle(timeout)

    # ------------------------------------------------------------------
    # Background task
    # ------------------------------------------------------------------

    def _fetch_and_record(self, request_id: int, region: Region) -> None:
        recorded = False
        try:
            reference = self._provider.fetch_thumbnail(region)
            self._store.record_success(request_id, reference.url)
            recorded = True
        except ServiceError as exc:
            exc.correlation_id = str(request_id)
            logger.warning("Fetch failed | request_id=%s | error=%s", request_id, exc.to_error_dict())
            self._store.record_failure(request_id, exc.message or str(exc))
            recorded = True
        except Exception as exc:
            logger.exception("Unexpected fetch error | request_id=%s", request_id)
            self._store.record_failure(request_id, str(exc) or type(exc).__name__)
            recorded = True
        finally:
            if not recorded:
                self._store.record_failure(request_id, "Processing interrupted")

    def _next_request_id(self) -> int:
        """Millisecond timestamp token, strictly increasing per tracker."""
        with self._id_lock:
            candidate = self._clock_ms()
            if candidate <= self._last_request_id:
                candidate = self._last_request_id + 1
            self._last_request_id = candidate
            return candidate
