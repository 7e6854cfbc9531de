from fastapi import APIRouter
import logging

from .admin import router as admin_router
from .auth import router as auth_router
from .health import router as health_router
from .images import router as images_router


def build_router() -> APIRouter:
    router = APIRouter()
    log = logging.getLogger("routers")

    for name, sub in (
        ("auth", auth_router),
        ("images", images_router),
        ("admin", admin_router),
        ("health", health_router),
    ):
        router.include_router(sub)
        log.info("Loaded router: %s", name)
    return router


# Export module-level router so galleria.main can import it
router = build_router()
