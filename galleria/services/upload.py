# galleria/services/upload.py
import datetime as dt
import inspect
import logging
import os
import secrets
import string
import time
from typing import Optional, Union

from slugify import slugify

from galleria.core.errors import InvalidInput, Unauthorized, UpstreamUnavailable
from galleria.schemas.image import ImageRecord
from galleria.services import codec
from galleria.services.blob_store import BlobStore, BlobStoreError
from galleria.services.index_store import IndexStore, IndexStoreUnavailable
from galleria.services.metrics import record_upload
from galleria.services.observability import trace_operation

log = logging.getLogger(__name__)

IMAGES_PREFIX = "images/"
CHUNK_SIZE = 1024 * 1024

EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
}
DEFAULT_EXTENSION = "jpg"

_BASE36 = string.digits + string.ascii_lowercase


def normalize_mime_type(mime_type: Optional[str]) -> str:
    return (mime_type or "").split(";", 1)[0].strip().lower()


def extension_for(mime_type: Optional[str]) -> str:
    return EXTENSIONS.get(normalize_mime_type(mime_type), DEFAULT_EXTENSION)


def generate_object_name(mime_type: Optional[str]) -> str:
    """`<random-id>.<ext>`; never derived from what the client called the file."""
    return f"{secrets.token_urlsafe(15)}.{extension_for(mime_type)}"


def new_record_id() -> str:
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"image:{int(time.time() * 1000)}:{suffix}"


def display_filename(declared: Optional[str], generated: str) -> str:
    stem, ext = os.path.splitext(os.path.basename(declared or ""))
    slug = slugify(stem)
    if not slug or slug in ("undefined", "null"):
        return generated
    if not ext:
        ext = os.path.splitext(generated)[1]
    return f"{slug}{ext.lower()}"


async def read_limited(stream, limit: int) -> bytes:
    """Read a buffer or a (sync or async) file-like object, refusing more than `limit` bytes."""
    too_large = InvalidInput(f"File too large (max {limit} bytes)")
    if isinstance(stream, (bytes, bytearray, memoryview)):
        data = bytes(stream)
        if len(data) > limit:
            raise too_large
        return data

    buf = bytearray()
    while True:
        chunk = stream.read(CHUNK_SIZE)
        if inspect.isawaitable(chunk):
            chunk = await chunk
        if not chunk:
            break
        buf.extend(chunk)
        if len(buf) > limit:
            raise too_large
    return bytes(buf)


class UploadPipeline:
    def __init__(self, index: IndexStore, blobs: BlobStore, keep_original_filename: bool = False):
        self.index = index
        self.blobs = blobs
        self.keep_original_filename = keep_original_filename

    async def upload(
        self,
        identity: Optional[str],
        file_stream: Union[bytes, object],
        declared_mime_type: Optional[str],
        declared_filename: Optional[str],
        size_limit_bytes: int,
    ) -> ImageRecord:
        if not identity:
            raise Unauthorized("Authentication required")

        mime_type = normalize_mime_type(declared_mime_type)
        if not mime_type.startswith("image/"):
            record_upload("rejected")
            raise InvalidInput("Invalid file type. Only image files are allowed.")

        with trace_operation("upload", mime_type=mime_type):
            try:
                data = await read_limited(file_stream, size_limit_bytes)
            except InvalidInput:
                record_upload("rejected")
                raise
            if not data:
                record_upload("rejected")
                raise InvalidInput("Empty file")

            name = generate_object_name(mime_type)
            try:
                blob = await self.blobs.put(f"{IMAGES_PREFIX}{name}", data, mime_type)
            except BlobStoreError as e:
                log.exception("Blob store write failed: %s", e)
                record_upload("error")
                raise UpstreamUnavailable("Error uploading image")

            record = ImageRecord(
                id=new_record_id(),
                url=blob.url,
                pathname=blob.pathname,
                filename=display_filename(declared_filename, name) if self.keep_original_filename else name,
                mime_type=mime_type,
                size=len(data),
                uploaded_by=identity,
                uploaded_at=dt.datetime.now(dt.timezone.utc),
            )
            try:
                await self.index.add_to_list(record.id, codec.encode(record))
            except IndexStoreUnavailable as e:
                # the blob stays behind as an orphan; reconciliation never deletes blobs
                log.error("Index write failed after storing %s; blob orphaned: %s", blob.pathname, e)
                record_upload("error")
                raise UpstreamUnavailable("Error uploading image")

        log.info("Stored %s (%s, %d bytes) for %s", record.id, record.pathname, record.size, identity)
        record_upload("success")
        return record
