# galleria/routers/images.py
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile

from galleria.config import settings
from galleria.core.deps import get_index_store, get_uploader
from galleria.core.errors import InvalidInput
from galleria.core.responses import ok
from galleria.services import gallery
from galleria.services.index_store import IndexStore
from galleria.services.security import AuthUser, require_admin, require_user
from galleria.services.upload import UploadPipeline

router = APIRouter(prefix="/api", tags=["images"])


@router.post("/upload")
async def upload_image(
    auth: AuthUser = Depends(require_user),
    file: Optional[UploadFile] = File(default=None),
    uploader: UploadPipeline = Depends(get_uploader),
):
    if file is None:
        raise InvalidInput("No file uploaded")
    record = await uploader.upload(
        auth.email,
        file,
        file.content_type,
        file.filename,
        settings.MAX_UPLOAD_BYTES,
    )
    return ok(record)


@router.get("/images")
async def list_images(
    auth: AuthUser = Depends(require_user),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    index: IndexStore = Depends(get_index_store),
):
    return ok(await gallery.list_images(index, skip=skip, limit=limit))


@router.get("/images/calendar")
async def calendar(
    year: int = Query(..., ge=1970, le=9999),
    month: int = Query(..., ge=1, le=12),
    _: AuthUser = Depends(require_admin),
    index: IndexStore = Depends(get_index_store),
):
    """Images uploaded during one month, keyed by day of month."""
    return ok(await gallery.calendar_month(index, year, month))
