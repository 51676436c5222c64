"""Typed models for the single-slot job tracker.

- ``JobState``: lifecycle state of the tracked job.
- ``JobSnapshot``: immutable copy of the slot handed to readers.
- ``Acknowledgement``: what a submission returns before the fetch runs.

Lifecycle::

    idle --submit--> processing --success--> completed
                     processing --failure--> failed
    completed|failed --submit--> processing

There is no cancel transition.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime


class JobState(enum.Enum):
    """Lifecycle state of the tracked job.

    Values:
        IDLE:       Nothing submitted since process start.
        PROCESSING: A submission was accepted; its fetch has not resolved.
        COMPLETED:  The last resolved fetch produced an image reference.
        FAILED:     The last resolved fetch raised an error.
    """

    IDLE = "idle"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class JobSnapshot:
    """Read-only copy of the job slot.

    Attributes:
        state: Current lifecycle state.
        result: Image reference URL (only when ``COMPLETED``).
        error_message: Failure description (only when ``FAILED``).
        submitted_at: When the most recent submission was accepted.
        finished_at: When the last fetch resolved (terminal states only).
        request_id: Token of the submission that last wrote the slot.
    """

    state: JobState = JobState.IDLE
    result: str | None = None
    error_message: str | None = None
    submitted_at: datetime | None = None
    finished_at: datetime | None = None
    request_id: int | None = None

    @property
    def timestamp(self) -> datetime | None:
        """Time of the last transition (finish time, else submission time)."""
        return self.finished_at or self.submitted_at


@dataclass(frozen=True, slots=True)
class Acknowledgement:
    """Immediate response to an accepted submission.

    Attributes:
        request_id: Millisecond epoch token identifying the submission.
        state: Always ``PROCESSING`` at acknowledgement time.
        message: Human-readable hint for the polling client.
    """

    request_id: int
    state: JobState
    message: str
