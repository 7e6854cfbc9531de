# SecurityHeadersMiddleware, ErrorEnvelopeMiddleware
import logging
import time
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from galleria.config import settings
from galleria.core.responses import fail

log = logging.getLogger(__name__)

BASE_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "same-origin",
}

API_CSP = "default-src 'none'; img-src 'self' data: blob: https:; frame-ancestors 'none'; base-uri 'none'"
# Swagger UI and ReDoc pull their bundles from jsDelivr
DOCS_CSP = (
    "default-src 'self'; img-src 'self' data: https:; "
    "script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
    "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; frame-ancestors 'none'"
)
DOCS_PATHS = ("/docs", "/redoc")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint):
        response: Response = await call_next(request)
        response.headers.update(BASE_HEADERS)
        response.headers["Content-Security-Policy"] = DOCS_CSP if request.url.path in DOCS_PATHS else API_CSP
        if settings.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=63072000; includeSubDomains"
        return response


class ErrorEnvelopeMiddleware(BaseHTTPMiddleware):
    """Turns anything unhandled into a 500 envelope and stamps request id and timing."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint):
        started = time.perf_counter()
        rid = request.headers.get("x-request-id") or uuid.uuid4().hex[:8]
        try:
            response: Response = await call_next(request)
        except Exception:
            log.exception("Unhandled error on %s %s (rid=%s)", request.method, request.url.path, rid)
            response = fail("Internal server error", 500)
        response.headers.setdefault("x-request-id", rid)
        response.headers["server-timing"] = f"app;dur={(time.perf_counter() - started) * 1000:.1f}"
        return response
