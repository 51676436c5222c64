"""Single-slot job store.

Holds the one job record the service tracks. Every read and write goes
through a lock, so readers always see a consistent snapshot.

Write policy: last-resolved-wins. A new submission resets the slot to
``processing`` even if an earlier fetch is still running, and every
fetch records its outcome when it resolves, regardless of later
submissions. With overlapping submissions the slot ends up holding the
outcome of whichever fetch resolved last, not the one submitted last.
``JobSnapshot.request_id`` says which submission that was.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sentinel_preview.models.job import JobSnapshot, JobState

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger("sentinel_preview.jobs.store")


def _utc_now() -> datetime:
    return datetime.now(UTC)


class JobStore:
    """Owns the single job record."""

    def __init__(self, clock: Callable[[], datetime] = _utc_now) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._job = JobSnapshot()

    def snapshot(self) -> JobSnapshot:
        """Return the current record. Snapshots are immutable."""
        with self._lock:
            return self._job

    def begin(self, request_id: int) -> JobSnapshot:
        """Reset the slot to ``processing`` for a new submission."""
        with self._lock:
            self._job = JobSnapshot(
                state=JobState.PROCESSING,
                submitted_at=self._clock(),
                request_id=request_id,
            )
            return self._job

    def record_success(self, request_id: int, result: str) -> JobSnapshot:
        """Record a resolved fetch that produced *result*."""
        with self._lock:
            self._job = replace(
                self._job,
                state=JobState.COMPLETED,
                result=result,
                error_message=None,
                finished_at=self._finished_at(),
                request_id=request_id,
            )
            snapshot = self._job
        logger.info("Job completed | request_id=%s | result=%s", request_id, result)
        return snapshot

    def record_failure(self, request_id: int, message: str) -> JobSnapshot:
        """Record a resolved fetch that failed with *message*."""
        with self._lock:
            self._job = replace(
                self._job,
                state=JobState.FAILED,
                result=None,
                error_message=message,
                finished_at=self._finished_at(),
                request_id=request_id,
            )
            snapshot = self._job
        logger.warning("Job failed | request_id=%s | error=%s", request_id, message)
        return snapshot

    def _finished_at(self) -> datetime:
        """Completion time, never earlier than the current submission time."""
        now = self._clock()
        submitted = self._job.submitted_at
        if submitted is not None and now < submitted:
            return submitted
        return now
