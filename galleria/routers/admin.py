"""
Reconciliation endpoints: audit and repair the image index against the blob store.

Each returns 200 with per-record outcomes even when individual records fail;
only an unreachable index or blob store turns into a 500.
"""

import logging

from fastapi import APIRouter, Depends

from galleria.core.deps import get_reconciler
from galleria.core.responses import ok
from galleria.services.reconcile import Reconciler
from galleria.services.security import AuthUser, require_user

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["reconciliation"])


@router.post("/check-images")
async def check_images(auth: AuthUser = Depends(require_user), reconciler: Reconciler = Depends(get_reconciler)):
    """Report index entries whose URL is absent from the blob store listing."""
    log.info("check-images requested by %s", auth.email)
    return ok(await reconciler.check())


@router.post("/fix-images")
async def fix_images(auth: AuthUser = Depends(require_user), reconciler: Reconciler = Depends(get_reconciler)):
    """Strip `-undefined-` segments from stored URLs and filenames."""
    log.info("fix-images requested by %s", auth.email)
    return ok(await reconciler.fix())


@router.post("/reupload-images")
async def reupload_images(auth: AuthUser = Depends(require_user), reconciler: Reconciler = Depends(get_reconciler)):
    """Refetch missing images from their recorded URL and store them again."""
    log.info("reupload-images requested by %s", auth.email)
    return ok(await reconciler.reupload())


@router.post("/delete-all-images")
async def delete_all_images(auth: AuthUser = Depends(require_user), reconciler: Reconciler = Depends(get_reconciler)):
    """Remove every record and the list itself from the index. Blobs are left alone."""
    log.warning("delete-all-images requested by %s", auth.email)
    return ok(await reconciler.delete_all())
