import asyncio

import fakeredis.aioredis
from fastapi.testclient import TestClient

from galleria.main import app
from galleria.services import index_store
from galleria.services.blob_store import LocalBlobStore


def test_health_endpoint(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert "status" in data
    assert data["status"] in ("healthy", "ok")


def test_index_health(client):
    resp = client.get("/ops/index-health")
    assert resp.status_code == 200
    assert resp.json() == {"index_ok": True}


def test_index_health_reports_outage(client, index):
    index.down = True
    resp = client.get("/ops/index-health")
    assert resp.json()["index_ok"] is False


def test_openapi_json(client):
    resp = client.get("/openapi.json")
    assert resp.status_code == 200
    data = resp.json()
    assert "openapi" in data
    assert "/api/check-images" in data["paths"]
    assert "BearerAuth" in data["components"]["securitySchemes"]


def test_docs_page(client):
    resp = client.get("/docs")
    assert resp.status_code == 200
    assert "text/html" in resp.headers.get("content-type", "")


def test_security_headers(client):
    resp = client.get("/health")
    assert resp.headers["X-Frame-Options"] == "DENY"
    assert resp.headers["X-Content-Type-Options"] == "nosniff"
    assert "x-request-id" in resp.headers


def test_metrics_endpoint(client, user_headers):
    client.post("/api/check-images", headers=user_headers)
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "text" in resp.headers.get("content-type", "").lower()
    assert "galleria_reconcile_runs_total" in resp.text


def test_lifespan_builds_stores_and_serves_local_blobs(monkeypatch):
    monkeypatch.setattr(index_store.aioredis, "from_url", lambda url, **kwargs: fakeredis.aioredis.FakeRedis())
    try:
        with TestClient(app) as client:
            store = app.state.blob_store
            assert isinstance(store, LocalBlobStore)
            blob = asyncio.run(store.put("images/lifespan.png", b"\x89PNG", "image/png"))
            resp = client.get(f"/blobs/{blob.pathname}")
            assert resp.status_code == 200
            assert resp.content == b"\x89PNG"
            assert client.get("/ops/index-health").json() == {"index_ok": True}
    finally:
        for name in ("index_store", "blob_store", "http_client"):
            if hasattr(app.state, name):
                delattr(app.state, name)
