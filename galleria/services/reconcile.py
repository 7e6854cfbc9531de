"""
Reconciliation between the image index (redis) and the blob store.

Every operation walks the whole `images:list`. A failure to read the list or
to enumerate the blob store fails the operation (UpstreamUnavailable); a
failure on a single record never does, it is folded into that operation's
counters and per-record results instead.
"""

import logging
import os
import posixpath
import re
from contextlib import contextmanager
from typing import List, Set, Tuple

import httpx

from galleria.core.errors import UpstreamUnavailable
from galleria.schemas.image import (
    CheckReport,
    DeleteReport,
    DeleteResult,
    FixReport,
    ImageRecord,
    MissingImage,
    ReuploadReport,
    ReuploadResult,
)
from galleria.services import codec
from galleria.services.blob_store import BlobStore, BlobStoreError
from galleria.services.index_store import IMAGES_LIST_KEY, IndexStore, IndexStoreUnavailable
from galleria.services.metrics import record_reconcile_item, record_reconcile_run
from galleria.services.observability import trace_operation
from galleria.services.upload import IMAGES_PREFIX, generate_object_name

log = logging.getLogger(__name__)

DEFECT_MARKER = "-undefined-"
PARSE_ERROR_URL = "Error parsing image data"
NO_DATA_URL = "No data found"
UNKNOWN_URL = "unknown"


def repair_url(url: str) -> str:
    """Drop every `-undefined-` segment left by the old filename builder."""
    while DEFECT_MARKER in url:
        url = url.replace(DEFECT_MARKER, "-")
    return url


def repair_filename(filename: str, fallback: str = "") -> str:
    if "undefined" not in filename:
        return filename
    stem, ext = os.path.splitext(filename)
    if "undefined" in ext:
        ext = ""
    stem = repair_url(stem)
    while "undefined" in stem:
        stem = re.sub(r"[-_]?undefined", "", stem)
    stem = stem.strip("-_. ")
    if stem:
        return f"{stem}{ext}"
    if fallback and "undefined" not in fallback:
        return fallback
    return f"image{ext or '.jpg'}"


@contextmanager
def _upstream(message: str):
    try:
        yield
    except (IndexStoreUnavailable, BlobStoreError) as e:
        log.exception("%s: %s", message, e)
        raise UpstreamUnavailable(message) from e


class Reconciler:
    def __init__(
        self,
        index: IndexStore,
        blobs: BlobStore,
        http: httpx.AsyncClient,
        list_limit: int = 100,
        prefix: str = IMAGES_PREFIX,
    ):
        self.index = index
        self.blobs = blobs
        self.http = http
        self.list_limit = list_limit
        self.prefix = prefix

    async def _entries(self) -> List[Tuple[str, codec.DecodeResult]]:
        ids = await self.index.list_range(IMAGES_LIST_KEY, 0, -1)
        raws = await self.index.get_many(ids)
        return [(key, codec.decode(raw)) for key, raw in zip(ids, raws)]

    async def _known_urls(self) -> Set[str]:
        # bounded listing: objects past `list_limit` are invisible to this pass
        blobs = await self.blobs.list(self.prefix, self.list_limit)
        log.info("Found %d blobs under %r", len(blobs), self.prefix)
        return {b.url for b in blobs}

    # --- check ---

    async def check(self) -> CheckReport:
        record_reconcile_run("check")
        with trace_operation("reconcile.check"), _upstream("Error checking images"):
            entries = await self._entries()
            known = await self._known_urls()

        report = CheckReport(total=len(entries))
        for key, result in entries:
            if isinstance(result, codec.Ok) and result.record.url in known:
                report.found += 1
                record_reconcile_item("check", "found")
                continue

            if isinstance(result, codec.Ok):
                url = result.record.url
                log.info("Image missing from storage: %s (%s)", key, url)
            elif isinstance(result, codec.NotFound):
                url = NO_DATA_URL
                log.warning("No data found for image ID: %s", key)
            else:
                url = PARSE_ERROR_URL
                log.warning("Malformed record %s: %s", key, result.reason)
            report.missing += 1
            report.missing_images.append(MissingImage(id=key, url=url))
            record_reconcile_item("check", "missing")

        log.info("Check: total=%d found=%d missing=%d", report.total, report.found, report.missing)
        return report

    # --- fix ---

    async def fix(self) -> FixReport:
        record_reconcile_run("fix")
        with trace_operation("reconcile.fix"), _upstream("Error fixing images"):
            entries = await self._entries()

        report = FixReport(total=len(entries))
        for key, result in entries:
            if not isinstance(result, codec.Ok):
                log.warning("Skipping unreadable image ID %s", key)
                report.skipped += 1
                record_reconcile_item("fix", "skipped")
                continue

            record = result.record
            repaired = record.model_copy(update={
                "url": repair_url(record.url),
                "filename": repair_filename(record.filename, posixpath.basename(record.pathname)),
            })
            if repaired == record:
                report.skipped += 1
                record_reconcile_item("fix", "skipped")
                continue

            try:
                await self.index.set(key, codec.encode(repaired))
            except IndexStoreUnavailable as e:
                log.error("Error fixing image ID %s: %s", key, e)
                report.skipped += 1
                record_reconcile_item("fix", "skipped")
                continue
            log.info("Fixed image %s: %s -> %s", key, record.url, repaired.url)
            report.fixed += 1
            record_reconcile_item("fix", "fixed")

        log.info("Fix: total=%d fixed=%d skipped=%d", report.total, report.fixed, report.skipped)
        return report

    # --- reupload ---

    async def _reupload_one(self, key: str, record: ImageRecord) -> ReuploadResult:
        def failed(reason: str) -> ReuploadResult:
            return ReuploadResult(id=key, old_url=record.url, status="failed", reason=reason)

        try:
            response = await self.http.get(record.url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            return failed(f"Failed to fetch image: {e}")
        if not response.is_success:
            return failed(f"Failed to fetch image: {response.status_code} {response.reason_phrase}")

        name = generate_object_name(record.mime_type)
        try:
            blob = await self.blobs.put(f"{self.prefix}{name}", response.content, record.mime_type or "image/jpeg")
        except BlobStoreError as e:
            return failed(f"Failed to store image: {e}")

        updated = record.model_copy(update={"url": blob.url, "pathname": blob.pathname, "filename": name})
        try:
            await self.index.set(key, codec.encode(updated))
        except IndexStoreUnavailable as e:
            return failed(f"Stored {blob.pathname} but index update failed: {e}")

        return ReuploadResult(id=key, old_url=record.url, new_url=blob.url, status="re-uploaded")

    async def reupload(self) -> ReuploadReport:
        record_reconcile_run("reupload")
        with trace_operation("reconcile.reupload"), _upstream("Error re-uploading images"):
            entries = await self._entries()
            known = await self._known_urls()

        report = ReuploadReport(total=len(entries))
        for key, result in entries:
            if isinstance(result, codec.NotFound):
                outcome = ReuploadResult(id=key, status="skipped", reason="no record data")
            elif isinstance(result, codec.Malformed):
                outcome = ReuploadResult(id=key, status="failed", reason=result.reason)
            elif result.record.url in known:
                outcome = ReuploadResult(
                    id=key, old_url=result.record.url, status="skipped", reason="already exists"
                )
            else:
                # one fetch at a time
                outcome = await self._reupload_one(key, result.record)

            if outcome.status == "re-uploaded":
                report.reuploaded += 1
                log.info("Re-uploaded %s: %s -> %s", key, outcome.old_url, outcome.new_url)
            elif outcome.status == "skipped":
                report.skipped += 1
            else:
                report.failed += 1
                log.warning("Failed to re-upload image %s: %s", key, outcome.reason)
            report.results.append(outcome)
            record_reconcile_item("reupload", outcome.status)

        log.info(
            "Reupload: total=%d reuploaded=%d skipped=%d failed=%d",
            report.total, report.reuploaded, report.skipped, report.failed,
        )
        return report

    # --- delete-all ---

    async def delete_all(self) -> DeleteReport:
        record_reconcile_run("delete_all")
        with trace_operation("reconcile.delete_all"), _upstream("Error deleting images"):
            ids = await self.index.list_range(IMAGES_LIST_KEY, 0, -1)

        report = DeleteReport(total=len(ids))
        for key in ids:
            url = UNKNOWN_URL
            try:
                result = codec.decode(await self.index.get(key))
            except Exception as e:
                # the url is only reported; an unreadable record is still deleted
                log.warning("Could not read image ID %s before delete: %s", key, e)
            else:
                if isinstance(result, codec.Ok):
                    url = result.record.url

            try:
                removed = await self.index.delete(key)
            except Exception as e:
                outcome = DeleteResult(id=key, status="failed", reason=str(e), url=url)
            else:
                if removed:
                    outcome = DeleteResult(id=key, status="deleted", url=url)
                else:
                    outcome = DeleteResult(id=key, status="failed", reason="Index delete removed nothing", url=url)

            if outcome.status == "deleted":
                report.deleted += 1
            else:
                report.failed += 1
                log.warning("Failed to delete image ID %s: %s", key, outcome.reason)
            report.results.append(outcome)
            record_reconcile_item("delete_all", outcome.status)

        # the list goes even when some records could not be removed
        with _upstream("Error deleting images"):
            await self.index.delete(IMAGES_LIST_KEY)
        log.info("Delete-all: total=%d deleted=%d failed=%d", report.total, report.deleted, report.failed)
        return report
