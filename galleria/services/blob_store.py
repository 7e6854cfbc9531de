# galleria/services/blob_store.py
import logging
import posixpath
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import List, Protocol

import cloudinary
import cloudinary.api
import cloudinary.uploader
from fastapi.concurrency import run_in_threadpool

from galleria.config import Settings

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredBlob:
    url: str
    pathname: str


class BlobStoreError(Exception):
    pass


class BlobStore(Protocol):
    async def put(self, pathname: str, data: bytes, content_type: str) -> StoredBlob: ...

    async def list(self, prefix: str, limit: int) -> List[StoredBlob]: ...


class LocalBlobStore:
    """Filesystem blob store; objects are served by the app under /blobs."""

    def __init__(self, base_dir: str, public_base_url: str):
        self.base = Path(base_dir).resolve()
        self.base.mkdir(parents=True, exist_ok=True)
        self.public_base_url = public_base_url.rstrip("/")

    def url_for(self, pathname: str) -> str:
        return f"{self.public_base_url}/blobs/{pathname}"

    def _path(self, pathname: str) -> Path:
        path = (self.base / pathname).resolve()
        if path == self.base or self.base not in path.parents:
            raise BlobStoreError(f"Invalid pathname: {pathname}")
        return path

    async def put(self, pathname: str, data: bytes, content_type: str) -> StoredBlob:
        path = self._path(pathname)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "wb") as f:
                f.write(data)
        except OSError as e:
            raise BlobStoreError(f"Failed to store {pathname}: {e}") from e
        return StoredBlob(url=self.url_for(pathname), pathname=pathname)

    async def list(self, prefix: str, limit: int) -> List[StoredBlob]:
        try:
            names = sorted(
                p.relative_to(self.base).as_posix()
                for p in self.base.rglob("*")
                if p.is_file()
            )
        except OSError as e:
            raise BlobStoreError(f"Failed to list blobs: {e}") from e
        matching = [n for n in names if n.startswith(prefix)]
        return [StoredBlob(url=self.url_for(n), pathname=n) for n in matching[:limit]]


class CloudinaryBlobStore:
    """Cloudinary-backed blob store; public_id is the pathname without extension."""

    def __init__(self, cloud_name: str, api_key: str, api_secret: str):
        cloudinary.config(
            cloud_name=cloud_name,
            api_key=api_key,
            api_secret=api_secret,
            secure=True,
        )

    @staticmethod
    def _to_blob(resource: dict) -> StoredBlob:
        pathname = resource["public_id"]
        if resource.get("format"):
            pathname = f"{pathname}.{resource['format']}"
        return StoredBlob(url=resource["secure_url"], pathname=pathname)

    def _upload(self, pathname: str, data: bytes) -> StoredBlob:
        public_id, _ = posixpath.splitext(pathname)
        result = cloudinary.uploader.upload(
            BytesIO(data),
            public_id=public_id,
            resource_type="image",
            type="upload",
            overwrite=False,
        )
        return self._to_blob(result)

    def _resources(self, prefix: str, limit: int) -> List[StoredBlob]:
        result = cloudinary.api.resources(
            type="upload",
            resource_type="image",
            prefix=prefix,
            max_results=limit,
        )
        return [self._to_blob(r) for r in result.get("resources", [])]

    async def put(self, pathname: str, data: bytes, content_type: str) -> StoredBlob:
        try:
            return await run_in_threadpool(self._upload, pathname, data)
        except Exception as e:
            raise BlobStoreError(f"Cloudinary upload failed for {pathname}: {e}") from e

    async def list(self, prefix: str, limit: int) -> List[StoredBlob]:
        try:
            return await run_in_threadpool(self._resources, prefix, limit)
        except Exception as e:
            raise BlobStoreError(f"Cloudinary listing failed: {e}") from e


def build_blob_store(settings: Settings) -> BlobStore:
    """Pick the driver named by STORAGE_DRIVER."""
    driver = (settings.STORAGE_DRIVER or "local").strip().lower()
    if driver == "cloudinary":
        if not (settings.CLOUDINARY_CLOUD_NAME and settings.CLOUDINARY_API_KEY):
            raise RuntimeError("STORAGE_DRIVER=cloudinary requires CLOUDINARY_* settings")
        log.info("Blob store: cloudinary")
        return CloudinaryBlobStore(
            settings.CLOUDINARY_CLOUD_NAME,
            settings.CLOUDINARY_API_KEY,
            settings.CLOUDINARY_API_SECRET,
        )
    if driver != "local":
        raise RuntimeError(f"Unknown STORAGE_DRIVER: {settings.STORAGE_DRIVER}")
    log.info("Blob store: local (%s)", settings.STORAGE_DIR)
    return LocalBlobStore(settings.STORAGE_DIR, settings.PUBLIC_BASE_URL)
