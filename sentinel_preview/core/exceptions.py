"""Unified exception taxonomy.

Provides a shared base exception hierarchy for the job tracker, the
imagery providers, and the HTTP ingress. Every domain exception inherits
from ``ServiceError`` and carries structured context fields so that the
background task boundary and the ingress layer can report failures
consistently.

Taxonomy categories
-------------------
- ``validation``: input violations (``ValidationError``), never retryable.
- ``transient``: temporary failures (network, throttle), ``retryable=True``.
- ``permanent``: everything else.

``retryable`` is informational only: nothing in the service retries
automatically. Every exception exposes ``to_error_dict()`` for a stable
structured payload that the task boundary and the synchronous ingress
path log on failure, tagged with the submission's ``correlation_id``.
"""

from __future__ import annotations


class ServiceError(Exception):
    """Base exception for all service-domain errors.

    Attributes:
        message: Human-readable error description.
        stage: Stage where the error occurred
            (e.g. ``"session"``, ``"fetch_thumbnail"``).
        code: Machine-readable error code (e.g. ``"REGION_MISSING"``).
        retryable: Whether a later attempt could succeed.
        correlation_id: Request identifier of the submission involved.
            Set by the job tracker when the error reaches the task
            boundary.
    """

    #: Default stage for subclasses (override via class attribute or kwarg).
    default_stage: str = ""
    #: Default code for subclasses (override via class attribute or kwarg).
    default_code: str = ""

    def __init__(
        self,
        message: str = "",
        *,
        stage: str = "",
        code: str = "",
        retryable: bool = False,
        correlation_id: str = "",
    ) -> None:
        self.message = message
        self.stage = stage or self.default_stage
        self.code = code or self.default_code
        self.retryable = retryable
        self.correlation_id = correlation_id
        super().__init__(message)

    @property
    def category(self) -> str:
        """Return the error category based on class and retry hint."""
        if isinstance(self, ValidationError):
            return "validation"
        return "transient" if self.retryable else "permanent"

    def to_error_dict(self) -> dict[str, object]:
        """Return a structured error payload with stable keys."""
        return {
            "category": self.category,
            "code": self.code,
            "stage": self.stage,
            "message": self.message,
            "retryable": self.retryable,
            "correlation_id": self.correlation_id,
        }


class ValidationError(ServiceError):
    """Input or domain-model validation failure. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]
