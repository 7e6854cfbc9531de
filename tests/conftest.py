"""
Pytest configuration and fixtures for Galleria tests
"""

import os
import tempfile

# Test-friendly environment before any galleria module reads settings
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("RATE_LIMIT_ENABLED", "0")
os.environ.setdefault("METRICS_ENABLED", "1")
os.environ.setdefault("STORAGE_DIR", tempfile.mkdtemp(prefix="galleria-blobs-"))

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from galleria.services.blob_store import LocalBlobStore  # noqa: E402
from galleria.services.security import create_token  # noqa: E402
from tests.fakes import PUBLIC_BASE, InMemoryIndexStore  # noqa: E402


@pytest.fixture
def index():
    return InMemoryIndexStore()


@pytest.fixture
def blob_store(tmp_path):
    return LocalBlobStore(str(tmp_path / "blobs"), PUBLIC_BASE)


@pytest.fixture
def remote():
    """Bodies served to reupload fetches, keyed by URL; anything else is a 404."""
    return {}


@pytest.fixture
def http_client(remote):
    def handler(request: httpx.Request) -> httpx.Response:
        body = remote.get(str(request.url))
        if body is None:
            return httpx.Response(404)
        return httpx.Response(200, content=body, headers={"content-type": "image/jpeg"})

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def client(index, blob_store, http_client):
    from galleria.main import app

    app.state.index_store = index
    app.state.blob_store = blob_store
    app.state.http_client = http_client
    try:
        yield TestClient(app)
    finally:
        for name in ("index_store", "blob_store", "http_client"):
            if hasattr(app.state, name):
                delattr(app.state, name)


@pytest.fixture
def user_headers():
    return {"Authorization": f"Bearer {create_token('a@example.com', 'user')}"}


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {create_token('admin@example.com', 'admin')}"}
