"""Data model for a caller-supplied Region.

A Region is the closed polygon boundary that defines the area of
interest for an imagery search. The service performs a presence check
only; geometric validity is left to the remote imagery service, which
rejects malformed rings with its own error. That error ends up in the
job's failure record rather than in a ``400``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sentinel_preview.core.constants import MSG_MISSING_COORDINATES
from sentinel_preview.core.exceptions import ValidationError


class RegionValidationError(ValidationError):
    """Raised when a submission carries no usable region."""

    default_stage = "submit"
    default_code = "REGION_MISSING"

    def __init__(self, message: str = MSG_MISSING_COORDINATES) -> None:
        super().__init__(message)


@dataclass(frozen=True, slots=True)
class Region:
    """A polygon boundary as an ordered sequence of vertices.

    Vertices are kept exactly as supplied (pairs, triples, or bare
    numbers) and forwarded to the provider in that order.

    Attributes:
        coordinates: Ring vertices, untouched.
    """

    coordinates: tuple[Any, ...]

    def __post_init__(self) -> None:
        if not self.coordinates:
            raise RegionValidationError()

    @classmethod
    def from_payload(cls, raw: Any) -> Region:
        """Build a Region from the JSON ``coordinates`` value.

        Any non-empty JSON array is accepted; its elements are not
        inspected.

        Raises:
            RegionValidationError: If *raw* is absent, empty, or not an
                array.
        """
        if not isinstance(raw, list | tuple) or not raw:
            raise RegionValidationError()
        return cls(coordinates=tuple(raw))

    def as_ring(self) -> list[Any]:
        """Return the vertices as a list, the shape remote APIs expect."""
        return list(self.coordinates)

    def __len__(self) -> int:
        return len(self.coordinates)
