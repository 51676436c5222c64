"""Thin ingress boundary helpers for the HTTP entrypoints.

Keeps ``function_app.py`` down to route bindings and response wrapping.
Every handler returns ``(status_code, body)`` where *body* is a plain
JSON-serialisable dict, so the mapping from domain outcomes to HTTP
responses is testable without the Functions runtime:

- **parse_submit_body** turns the raw request body into a ``Region``,
  folding every malformed shape into ``RegionValidationError``.
- **handle_submit** accepts the region (async mode) or fetches it on
  the spot (sync mode).
- **handle_status** renders the job slot.
- **handle_fallback** answers the liveness probe and unmatched routes.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError

from sentinel_preview.core.constants import (
    MSG_BACKEND_UP,
    MSG_INTERNAL_ERROR,
    MSG_NO_IMAGES,
    MSG_ROUTE_NOT_FOUND,
)
from sentinel_preview.models.region import Region, RegionValidationError
from sentinel_preview.models.responses import (
    AcceptedResponse,
    ErrorResponse,
    StatusResponse,
    SubmitRequest,
    ThumbnailResponse,
)
from sentinel_preview.providers.base import NoResultsError, ProviderError

if TYPE_CHECKING:
    from sentinel_preview.core.config import ServiceConfig
    from sentinel_preview.jobs.tracker import JobTracker

logger = logging.getLogger("sentinel_preview.core.ingress")

HandlerResult = tuple[int, dict[str, Any]]


# ---------------------------------------------------------------------------
# Request parsing
# ---------------------------------------------------------------------------


def parse_submit_body(raw: bytes | str | dict[str, Any] | None) -> Region:
    """Parse a ``POST /api/sentinel2`` body into a ``Region``.

    Args:
        raw: Request body as bytes or text, or an already-decoded dict.

    Raises:
        RegionValidationError: If the body is not JSON, not an object,
            or carries no usable ``coordinates``.
    """
    if isinstance(raw, bytes | str):
        if not raw:
            raise RegionValidationError()
        try:
            raw = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError, ValueError) as exc:
            raise RegionValidationError() from exc

    try:
        request = SubmitRequest.model_validate(raw)
    except PydanticValidationError as exc:
        raise RegionValidationError() from exc

    return Region.from_payload(request.coordinates)


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def handle_submit(
    raw: bytes | str | dict[str, Any] | None,
    tracker: JobTracker,
    config: ServiceConfig,
) -> HandlerResult:
    """Handle ``POST /api/sentinel2``."""
    try:
        region = parse_submit_body(raw)
    except RegionValidationError as exc:
        logger.info("Submission rejected | code=%s", exc.code)
        return 400, ErrorResponse(error=exc.message).to_dict()

    if config.is_sync:
        return _fetch_synchronously(region, tracker)

    try:
        ack = tracker.submit(region)
    except RegionValidationError as exc:
        return 400, ErrorResponse(error=exc.message).to_dict()
    except Exception as exc:
        logger.exception("Failed to accept submission")
        return 500, ErrorResponse(error=MSG_INTERNAL_ERROR, details=str(exc)).to_dict()

    return 200, AcceptedResponse.from_ack(ack).to_dict()


def handle_status(tracker: JobTracker) -> HandlerResult:
    """Handle ``GET /api/status``."""
    return 200, StatusResponse.from_snapshot(tracker.query_status()).to_dict()


def handle_fallback(method: str, path: str) -> HandlerResult:
    """Answer the liveness probe on ``GET /``; 404 for anything else."""
    if method.upper() == "GET" and path.strip("/") == "":
        return 200, {"message": MSG_BACKEND_UP}
    logger.info("Route not found | method=%s | path=%s", method, path)
    return 404, ErrorResponse(error=MSG_ROUTE_NOT_FOUND).to_dict()


def _fetch_synchronously(region: Region, tracker: JobTracker) -> HandlerResult:
    try:
        reference = tracker.fetch_now(region)
    except NoResultsError:
        return 404, ErrorResponse(error=MSG_NO_IMAGES).to_dict()
    except ProviderError as exc:
        logger.warning(
            "Synchronous fetch failed | provider=%s | error=%s", exc.provider, exc.to_error_dict()
        )
        return 500, ErrorResponse(error=MSG_INTERNAL_ERROR, details=exc.message).to_dict()
    except Exception as exc:
        logger.exception("Unexpected error during synchronous fetch")
        return 500, ErrorResponse(error=MSG_INTERNAL_ERROR, details=str(exc)).to_dict()

    return 200, ThumbnailResponse(url=reference.url).to_dict()
