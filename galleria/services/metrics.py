"""
Prometheus metrics for Galleria

Request metrics are labelled by route template (`/api/images`, not the raw
URL) so ids and query strings cannot blow up label cardinality.
"""

import time

from fastapi import Request
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

from galleria.config import settings

ENABLED = settings.METRICS_ENABLED

HTTP_REQUESTS = Counter("galleria_http_requests_total", "HTTP requests served", ["method", "route", "status"])
HTTP_LATENCY = Histogram("galleria_http_request_seconds", "HTTP request latency", ["method", "route"])
UPLOADS = Counter("galleria_uploads_total", "Upload attempts by outcome", ["status"])
RECONCILE_RUNS = Counter("galleria_reconcile_runs_total", "Reconciliation operations started", ["operation"])
RECONCILE_ITEMS = Counter(
    "galleria_reconcile_items_total",
    "Per-record reconciliation outcomes",
    ["operation", "status"],
)


def _route_label(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


async def metrics_endpoint():
    if not ENABLED:
        return Response(b"metrics disabled", media_type="text/plain")
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


def metrics_middleware(app):
    """Install the request counter/latency middleware when METRICS_ENABLED is set."""
    if not ENABLED:
        return

    @app.middleware("http")
    async def _observe(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        route = _route_label(request)
        HTTP_REQUESTS.labels(request.method, route, str(response.status_code)).inc()
        HTTP_LATENCY.labels(request.method, route).observe(time.perf_counter() - started)
        return response


def record_upload(status: str):
    if ENABLED:
        UPLOADS.labels(status=status).inc()


def record_reconcile_run(operation: str):
    if ENABLED:
        RECONCILE_RUNS.labels(operation=operation).inc()


def record_reconcile_item(operation: str, status: str):
    if ENABLED:
        RECONCILE_ITEMS.labels(operation=operation, status=status).inc()
