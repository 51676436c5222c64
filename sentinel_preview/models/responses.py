"""Pydantic wire models for the HTTP endpoints.

Field names and shapes match what existing clients of
``POST /api/sentinel2`` and ``GET /api/status`` already consume, hence
the camelCase ``requestId`` alias. Optional fields are dropped from the
JSON body rather than sent as ``null``.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from sentinel_preview.core.constants import MSG_IDLE, MSG_STILL_PROCESSING
from sentinel_preview.models.job import Acknowledgement, JobSnapshot, JobState


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_dict(self) -> dict[str, Any]:
        """Serialise for the response body (aliases applied, ``None`` dropped)."""
        return self.model_dump(by_alias=True, exclude_none=True)


class SubmitRequest(BaseModel):
    """Body of ``POST /api/sentinel2``.

    ``coordinates`` is typed loosely: the presence check happens in
    ``Region.from_payload`` and the value is otherwise forwarded as sent.
    """

    model_config = ConfigDict(extra="ignore")

    coordinates: Any = None


class AcceptedResponse(_WireModel):
    """Immediate acknowledgement in asynchronous mode."""

    status: str = JobState.PROCESSING.value
    message: str
    request_id: int = Field(alias="requestId")

    @classmethod
    def from_ack(cls, ack: Acknowledgement) -> AcceptedResponse:
        return cls(status=ack.state.value, message=ack.message, request_id=ack.request_id)


class ThumbnailResponse(_WireModel):
    """Synchronous-mode success body."""

    url: str


class ErrorResponse(_WireModel):
    """Error body for 4xx/5xx responses."""

    error: str
    details: str | None = None


class StatusResponse(_WireModel):
    """Body of ``GET /api/status``.

    Attributes:
        status: ``completed``, ``error``, ``processing`` or ``idle``.
        result: ``{"url": ...}`` when completed.
        error: Failure message when the last fetch failed.
        message: Hint for the client while processing or idle.
        timestamp: UTC time the terminal state was recorded, as
            ``YYYY-MM-DDTHH:MM:SS.mmmZ``.
    """

    status: str
    result: dict[str, str] | None = None
    error: str | None = None
    message: str | None = None
    timestamp: str | None = None

    @classmethod
    def from_snapshot(cls, snapshot: JobSnapshot) -> StatusResponse:
        """Map a job snapshot to the status body clients poll for."""
        timestamp = _utc_millis(snapshot.timestamp) if snapshot.timestamp else None

        if snapshot.state is JobState.COMPLETED:
            return cls(
                status="completed",
                result={"url": snapshot.result or ""},
                timestamp=timestamp,
            )
        if snapshot.state is JobState.FAILED:
            return cls(status="error", error=snapshot.error_message or "", timestamp=timestamp)
        if snapshot.state is JobState.PROCESSING:
            return cls(status="processing", message=MSG_STILL_PROCESSING)
        return cls(status="idle", message=MSG_IDLE)


def _utc_millis(moment: datetime) -> str:
    """Format *moment* in UTC with millisecond precision and a ``Z`` suffix."""
    utc = moment.astimezone(UTC)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"
