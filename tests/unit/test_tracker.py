"""Tests for the single-slot job tracker.

Covers:
- Validation failures leave the job slot untouched
- Success and failure records after the background fetch resolves
- Resubmission resets the slot
- Overlapping submissions: last-resolved-wins
- End-to-end acknowledgement then completed status
"""

from __future__ import annotations

import logging
import threading

import pytest

from sentinel_preview.core.constants import MSG_ACCEPTED, MSG_NO_IMAGES
from sentinel_preview.jobs.spawner import TaskSpawner
from sentinel_preview.jobs.tracker import JobTracker
from sentinel_preview.models.job import JobSnapshot, JobState
from sentinel_preview.models.region import Region, RegionValidationError
from sentinel_preview.providers.base import AuthenticationError, NoResultsError
from tests.fakes import UNIT_SQUARE, FakeAuthenticator, FakeProvider, GatedOutcome, wait_for


class _WorkerInterrupted(BaseException):
    """Escapes ``except Exception`` the way an interpreter shutdown would."""


class TestSubmitValidation:
    def test_absent_region_rejected(self, tracker: JobTracker) -> None:
        before = tracker.query_status()
        with pytest.raises(RegionValidationError):
            tracker.submit(None)
        assert tracker.query_status() is before
        assert tracker.query_status() == JobSnapshot()

    def test_empty_payload_never_becomes_a_region(self) -> None:
        with pytest.raises(RegionValidationError):
            Region.from_payload({}.get("coordinates"))

    def test_rejection_keeps_previous_outcome(
        self, tracker: JobTracker, square_region: Region
    ) -> None:
        tracker.submit(square_region)
        assert tracker.wait_idle(timeout=5)
        completed = tracker.query_status()

        with pytest.raises(RegionValidationError):
            tracker.submit(None)

        assert tracker.query_status() == completed
        assert tracker.query_status().state is JobState.COMPLETED


class TestSubmitOutcomes:
    def test_acknowledges_immediately(self, square_region: Region, spawner: TaskSpawner) -> None:
        outcome = GatedOutcome({(0.0, 0.0): "ref-123"})
        tracker = JobTracker(FakeProvider(outcome=outcome), spawner=spawner)
        try:
            ack = tracker.submit(square_region)
            assert ack.state is JobState.PROCESSING
            assert ack.message == MSG_ACCEPTED
            assert tracker.query_status().state is JobState.PROCESSING
            assert tracker.query_status().request_id == ack.request_id
        finally:
            outcome.release_all()
        assert tracker.wait_idle(timeout=5)

    def test_success_recorded(self, tracker: JobTracker, square_region: Region) -> None:
        ack = tracker.submit(square_region)
        assert tracker.wait_idle(timeout=5)

        snapshot = tracker.query_status()
        assert snapshot.state is JobState.COMPLETED
        assert snapshot.result == "ref-123"
        assert snapshot.error_message is None
        assert snapshot.request_id == ack.request_id
        assert snapshot.finished_at is not None
        assert snapshot.submitted_at is not None
        assert snapshot.finished_at >= snapshot.submitted_at

    def test_authentication_failure_recorded(
        self, square_region: Region, spawner: TaskSpawner
    ) -> None:
        auth = FakeAuthenticator(failures=[AuthenticationError("fake", "invalid_grant")])
        tracker = JobTracker(FakeProvider(authenticator=auth), spawner=spawner)

        tracker.submit(square_region)
        assert tracker.wait_idle(timeout=5)

        snapshot = tracker.query_status()
        assert snapshot.state is JobState.FAILED
        assert snapshot.error_message == "invalid_grant"
        assert snapshot.result is None

    def test_empty_archive_recorded(self, square_region: Region, spawner: TaskSpawner) -> None:
        provider = FakeProvider(outcome=NoResultsError("fake", MSG_NO_IMAGES))
        tracker = JobTracker(provider, spawner=spawner)

        tracker.submit(square_region)
        assert tracker.wait_idle(timeout=5)

        snapshot = tracker.query_status()
        assert snapshot.state is JobState.FAILED
        assert snapshot.error_message == MSG_NO_IMAGES
        assert snapshot.result is None

    def test_unexpected_error_recorded(self, square_region: Region, spawner: TaskSpawner) -> None:
        tracker = JobTracker(FakeProvider(outcome=RuntimeError("kaboom")), spawner=spawner)

        tracker.submit(square_region)
        assert tracker.wait_idle(timeout=5)

        snapshot = tracker.query_status()
        assert snapshot.state is JobState.FAILED
        assert snapshot.error_message == "kaboom"

    def test_failure_tagged_with_request_id(
        self, square_region: Region, spawner: TaskSpawner, caplog: pytest.LogCaptureFixture
    ) -> None:
        error = NoResultsError("fake", MSG_NO_IMAGES)
        tracker = JobTracker(FakeProvider(outcome=error), spawner=spawner)

        with caplog.at_level(logging.WARNING, logger="sentinel_preview.jobs.tracker"):
            ack = tracker.submit(square_region)
            assert tracker.wait_idle(timeout=5)

        assert error.correlation_id == str(ack.request_id)
        records = [r for r in caplog.records if r.getMessage().startswith("Fetch failed")]
        assert len(records) == 1
        payload = records[0].args[1]
        assert payload == error.to_error_dict()
        assert payload["correlation_id"] == str(ack.request_id)
        assert payload["code"] == "PROVIDER_NO_RESULTS"

    def test_interrupted_fetch_still_leaves_processing(
        self, square_region: Region, spawner: TaskSpawner
    ) -> None:
        tracker = JobTracker(FakeProvider(outcome=_WorkerInterrupted()), spawner=spawner)

        tracker.submit(square_region)
        assert tracker.wait_idle(timeout=5)

        snapshot = tracker.query_status()
        assert snapshot.state is JobState.FAILED
        assert snapshot.error_message == "Processing interrupted"
        assert snapshot.result is None
        assert snapshot.finished_at is not None

    def test_process_usable_after_session_failure(
        self, square_region: Region, spawner: TaskSpawner
    ) -> None:
        auth = FakeAuthenticator(failures=[AuthenticationError("fake", "transient outage")])
        tracker = JobTracker(FakeProvider(authenticator=auth), spawner=spawner)

        tracker.submit(square_region)
        assert tracker.wait_idle(timeout=5)
        assert tracker.query_status().state is JobState.FAILED

        tracker.submit(square_region)
        assert tracker.wait_idle(timeout=5)
        snapshot = tracker.query_status()
        assert snapshot.state is JobState.COMPLETED
        assert snapshot.result == "ref-123"
        assert auth.calls == 2

    def test_resubmission_resets_slot(self, square_region: Region, spawner: TaskSpawner) -> None:
        provider = FakeProvider()
        tracker = JobTracker(provider, spawner=spawner)
        tracker.submit(square_region)
        assert tracker.wait_idle(timeout=5)
        assert tracker.query_status().state is JobState.COMPLETED

        outcome = GatedOutcome({(0.0, 0.0): "ref-456"})
        provider.outcome = outcome
        try:
            tracker.submit(square_region)
            snapshot = tracker.query_status()
            assert snapshot.state is JobState.PROCESSING
            assert snapshot.result is None
        finally:
            outcome.release_all()
        assert tracker.wait_idle(timeout=5)
        assert tracker.query_status().result == "ref-456"


class TestOverlappingSubmissions:
    """Two submissions in flight at once share one slot."""

    def test_last_resolved_wins(self, spawner: TaskSpawner) -> None:
        first_region = Region.from_payload([[10, 10], [10, 11], [11, 11]])
        second_region = Region.from_payload([[20, 20], [20, 21], [21, 21]])
        outcome = GatedOutcome({(10.0, 10.0): "ref-first", (20.0, 20.0): "ref-second"})
        tracker = JobTracker(FakeProvider(outcome=outcome), spawner=spawner)

        try:
            first = tracker.submit(first_region)
            second = tracker.submit(second_region)
            assert first.request_id < second.request_id

            # The later submission resolves first...
            outcome.release((20.0, 20.0))
            assert wait_for(lambda: tracker.query_status().result == "ref-second")

            # ...and the earlier one resolves last, so it owns the slot.
            outcome.release((10.0, 10.0))
        finally:
            outcome.release_all()
        assert tracker.wait_idle(timeout=5)

        snapshot = tracker.query_status()
        assert snapshot.state is JobState.COMPLETED
        assert snapshot.result == "ref-first"
        assert snapshot.request_id == first.request_id

    def test_failure_resolving_last_wins_over_success(self, spawner: TaskSpawner) -> None:
        gate = threading.Event()

        def _outcome(region: Region) -> object:
            if region.coordinates[0] == [10, 10]:
                gate.wait(timeout=10)
                return NoResultsError("fake", MSG_NO_IMAGES)
            return "ref-second"

        tracker = JobTracker(FakeProvider(outcome=_outcome), spawner=spawner)
        try:
            tracker.submit(Region.from_payload([[10, 10], [10, 11], [11, 11]]))
            tracker.submit(Region.from_payload([[20, 20], [20, 21], [21, 21]]))
            assert wait_for(lambda: tracker.query_status().result == "ref-second")
        finally:
            gate.set()
        assert tracker.wait_idle(timeout=5)

        snapshot = tracker.query_status()
        assert snapshot.state is JobState.FAILED
        assert snapshot.error_message == MSG_NO_IMAGES
        assert snapshot.result is None


class TestRequestIds:
    def test_strictly_increasing_with_frozen_clock(
        self, fake_provider: FakeProvider, spawner: TaskSpawner, square_region: Region
    ) -> None:
        tracker = JobTracker(fake_provider, spawner=spawner, clock_ms=lambda: 1_000)
        ids = [tracker.submit(square_region).request_id for _ in range(3)]
        assert ids == [1_000, 1_001, 1_002]
        assert tracker.wait_idle(timeout=5)


class TestFetchNow:
    def test_returns_reference_without_touching_slot(
        self, tracker: JobTracker, square_region: Region
    ) -> None:
        reference = tracker.fetch_now(square_region)
        assert reference.url == "ref-123"
        assert tracker.query_status() == JobSnapshot()

    def test_rejects_absent_region(self, tracker: JobTracker) -> None:
        with pytest.raises(RegionValidationError):
            tracker.fetch_now(None)

    def test_provider_errors_propagate(self, square_region: Region, spawner: TaskSpawner) -> None:
        provider = FakeProvider(outcome=NoResultsError("fake", MSG_NO_IMAGES))
        tracker = JobTracker(provider, spawner=spawner)
        with pytest.raises(NoResultsError):
            tracker.fetch_now(square_region)


class TestEndToEnd:
    def test_unit_square_completes_with_reference(self, tracker: JobTracker) -> None:
        ack = tracker.submit(Region.from_payload(UNIT_SQUARE))
        assert ack.state is JobState.PROCESSING

        assert tracker.wait_idle(timeout=5)

        snapshot = tracker.query_status()
        assert snapshot.state is JobState.COMPLETED
        assert snapshot.result == "ref-123"

    def test_empty_submission_leaves_status_unchanged(self, tracker: JobTracker) -> None:
        before = tracker.query_status()
        with pytest.raises(RegionValidationError):
            tracker.submit(Region.from_payload({}.get("coordinates")))
        assert tracker.query_status() == before
