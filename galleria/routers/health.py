import os
import time

import psutil
from fastapi import APIRouter, Request

from galleria.services.index_store import IndexStoreUnavailable

router = APIRouter(prefix="/ops", tags=["ops"])

# Store startup time for uptime calculation
startup_time = time.time()


@router.get("/index-health")
async def index_health(request: Request):
    """Ping the index store."""
    index = getattr(request.app.state, "index_store", None)
    if index is None:
        return {"index_ok": False, "error": "not connected"}
    try:
        return {"index_ok": await index.ping()}
    except IndexStoreUnavailable as e:
        return {"index_ok": False, "error": str(e)}


@router.get("/status")
async def status():
    memory_info = psutil.virtual_memory()
    return {
        "status": "healthy",
        "uptime_seconds": round(time.time() - startup_time, 2),
        "memory_usage_percent": memory_info.percent,
        "memory_available_mb": round(memory_info.available / 1024 / 1024, 2),
        "process_id": os.getpid(),
        "timestamp": time.time(),
    }
