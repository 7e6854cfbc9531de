# Top imports
import logging
from contextlib import asynccontextmanager
from datetime import datetime

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from galleria.config import settings
from galleria.core.errors import GalleryError
from galleria.core.middleware import ErrorEnvelopeMiddleware, SecurityHeadersMiddleware
from galleria.core.rate_limit import limiter
from galleria.core.responses import fail
from galleria.routers import router
from galleria.services.blob_store import BlobStoreError, LocalBlobStore, build_blob_store
from galleria.services.index_store import IndexStore, IndexStoreUnavailable
from galleria.services.metrics import metrics_endpoint, metrics_middleware
from galleria.services.observability import init_observability

# Logging setup
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
log = logging.getLogger("galleria")


def mount_blobs(app: FastAPI, blob_store) -> None:
    """Serve local-driver blobs under /blobs; remote drivers hand out their own URLs."""
    if not isinstance(blob_store, LocalBlobStore):
        return
    if any(getattr(r, "name", None) == "blobs" for r in app.routes):
        return
    app.mount("/blobs", StaticFiles(directory=str(blob_store.base)), name="blobs")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    log.info("Starting Galleria...")
    if settings.is_production:
        secret = settings.JWT_SECRET or ""
        if len(secret) < 32 or secret.startswith("dev-"):
            raise RuntimeError("Insecure JWT_SECRET; set a real secret in production")
    init_observability("galleria")

    app.state.index_store = await IndexStore.connect(
        settings.REDIS_URL,
        max_retries=settings.REDIS_CONNECT_RETRIES,
        delay_seconds=settings.REDIS_RETRY_DELAY,
    )
    app.state.blob_store = build_blob_store(settings)
    mount_blobs(app, app.state.blob_store)
    app.state.http_client = httpx.AsyncClient(
        timeout=settings.REUPLOAD_FETCH_TIMEOUT,
        follow_redirects=True,
    )

    yield

    # Shutdown
    log.info("Shutting down Galleria...")
    await app.state.http_client.aclose()
    await app.state.index_store.close()


app = FastAPI(
    title="Galleria API",
    description="Image upload gallery with index/blob reconciliation",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)

app.state.limiter = limiter


# --- error envelope ---

@app.exception_handler(GalleryError)
async def gallery_error_handler(request: Request, exc: GalleryError):
    if exc.status_code >= 500:
        log.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.__cause__ or exc)
    return fail(exc.message, exc.status_code)


@app.exception_handler(IndexStoreUnavailable)
@app.exception_handler(BlobStoreError)
async def upstream_error_handler(request: Request, exc: Exception):
    log.error("Storage backend failure on %s: %s", request.url.path, exc)
    return fail("Storage backend unavailable", 500)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return fail(str(exc.detail), exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        message = str(first.get("msg", message)).removeprefix("Value error, ")
    return fail(message, 400)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return fail(f"Rate limit exceeded: {exc.detail}", 429)


app.include_router(router)

# Middleware setup
app.add_middleware(GZipMiddleware, minimum_size=1024)
app.add_middleware(ErrorEnvelopeMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(SecurityHeadersMiddleware)

# Enable Prometheus metrics if METRICS_ENABLED=1
metrics_middleware(app)


def custom_openapi():
    """OpenAPI schema with a BearerAuth scheme so /docs can send tokens."""
    if not app.openapi_schema:
        schema = get_openapi(title=app.title, version=app.version, description=app.description, routes=app.routes)
        schema.setdefault("components", {}).setdefault("securitySchemes", {})["BearerAuth"] = {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
        }
        app.openapi_schema = schema
    return app.openapi_schema


app.openapi = custom_openapi


@app.get("/metrics")
async def prometheus_metrics():
    return await metrics_endpoint()


@app.get("/health")
async def health():
    return {"status": "healthy", "timestamp": datetime.now().isoformat()}
