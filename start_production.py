#!/usr/bin/env python3
"""
Galleria Production Startup Script
Starts the API server with production settings
"""

import os

import uvicorn

from galleria.config import settings


def start_production_server():
    """Start the production server with proper configuration"""
    port = int(os.getenv("PORT", "8000"))
    print("Starting Galleria production server...")
    print(f"Storage driver: {settings.STORAGE_DRIVER}")
    print(f"API Documentation: http://localhost:{port}/docs")
    print("=" * 60)

    uvicorn.run(
        "galleria.main:app",
        host="0.0.0.0",
        port=port,
        reload=False,
        workers=int(os.getenv("WEB_CONCURRENCY", "2")),
        log_level=settings.LOG_LEVEL.lower(),
        access_log=True
    )


if __name__ == "__main__":
    start_production_server()
