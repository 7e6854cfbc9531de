# Request-scoped access to the handles the lifespan puts on app.state
import httpx
from fastapi import Depends, Request

from galleria.config import settings
from galleria.core.errors import UpstreamUnavailable
from galleria.services.blob_store import BlobStore
from galleria.services.index_store import IndexStore
from galleria.services.reconcile import Reconciler
from galleria.services.upload import UploadPipeline


def _state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise UpstreamUnavailable(f"{name} is not configured")
    return value


def get_index_store(request: Request) -> IndexStore:
    return _state(request, "index_store")


def get_blob_store(request: Request) -> BlobStore:
    return _state(request, "blob_store")


def get_http_client(request: Request) -> httpx.AsyncClient:
    return _state(request, "http_client")


def get_uploader(
    index: IndexStore = Depends(get_index_store),
    blobs: BlobStore = Depends(get_blob_store),
) -> UploadPipeline:
    return UploadPipeline(index, blobs, keep_original_filename=settings.KEEP_ORIGINAL_FILENAME)


def get_reconciler(
    index: IndexStore = Depends(get_index_store),
    blobs: BlobStore = Depends(get_blob_store),
    http: httpx.AsyncClient = Depends(get_http_client),
) -> Reconciler:
    return Reconciler(index, blobs, http, list_limit=settings.BLOB_LIST_LIMIT)
