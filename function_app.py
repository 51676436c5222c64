"""Azure Functions entry point: Sentinel-2 thumbnail preview service.

This module registers the HTTP triggers using the Python v2 programming
model. ``host.json`` sets an empty ``routePrefix`` so the routes below
are served exactly as written.

All business logic lives in the sentinel_preview package. This file is
purely the wiring layer between Azure Functions bindings and
application code.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import azure.functions as func

from sentinel_preview.core.config import ServiceConfig
from sentinel_preview.core.ingress import handle_fallback, handle_status, handle_submit
from sentinel_preview.jobs.spawner import TaskSpawner
from sentinel_preview.jobs.tracker import JobTracker
from sentinel_preview.models.imagery import ImageryFilters, ProviderConfig
from sentinel_preview.providers.factory import get_provider

app = func.FunctionApp(http_auth_level=func.AuthLevel.ANONYMOUS)

logger = logging.getLogger("sentinel_preview.function_app")

config = ServiceConfig.from_env()
provider = get_provider(
    config.imagery_provider,
    ProviderConfig.from_config(config),
    filters=ImageryFilters.from_config(config),
)
tracker = JobTracker(provider, spawner=TaskSpawner(config.job_workers))

logger.info(
    "Function app loaded | provider=%s | mode=%s | workers=%d",
    provider.name,
    config.processing_mode,
    config.job_workers,
)


def _json_response(status_code: int, body: dict[str, Any]) -> func.HttpResponse:
    return func.HttpResponse(
        json.dumps(body, ensure_ascii=False),
        status_code=status_code,
        mimetype="application/json",
        charset="utf-8",
    )


# ---------------------------------------------------------------------------
# HTTP: Submit region
# ---------------------------------------------------------------------------


@app.function_name("sentinel2_submit")
@app.route(route="api/sentinel2", methods=["POST"])
def sentinel2_submit(req: func.HttpRequest) -> func.HttpResponse:
    """Accept a polygon and start (or, in sync mode, perform) the fetch."""
    status_code, body = handle_submit(req.get_body(), tracker, config)
    return _json_response(status_code, body)


# ---------------------------------------------------------------------------
# HTTP: Job status
# ---------------------------------------------------------------------------


@app.function_name("sentinel2_status")
@app.route(route="api/status", methods=["GET"])
def sentinel2_status(req: func.HttpRequest) -> func.HttpResponse:
    """Report the state of the single job slot."""
    status_code, body = handle_status(tracker)
    return _json_response(status_code, body)


# ---------------------------------------------------------------------------
# HTTP: Liveness and unmatched routes
# ---------------------------------------------------------------------------


@app.function_name("fallback")
@app.route(route="{*path}")
def fallback(req: func.HttpRequest) -> func.HttpResponse:
    status_code, body = handle_fallback(req.method, req.route_params.get("path", ""))
    return _json_response(status_code, body)
