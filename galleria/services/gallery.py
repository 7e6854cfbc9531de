import datetime as dt
import logging
from collections import defaultdict

from galleria.schemas.image import CalendarEntry, CalendarMonth, ImagePage, Pagination
from galleria.services import codec
from galleria.services.index_store import IMAGES_LIST_KEY, IndexStore

log = logging.getLogger(__name__)


async def list_images(index: IndexStore, skip: int = 0, limit: int = 20) -> ImagePage:
    """One page of the index, newest first. Unreadable entries are left out of `images`."""
    total = await index.list_length(IMAGES_LIST_KEY)
    ids = await index.list_range(IMAGES_LIST_KEY, skip, skip + limit - 1)
    raws = await index.get_many(ids)

    images = []
    for key, raw in zip(ids, raws):
        result = codec.decode(raw)
        if isinstance(result, codec.Ok):
            images.append(result.record)
        else:
            log.warning("Skipping unreadable image %s in listing", key)

    return ImagePage(
        images=images,
        total=total,
        pagination=Pagination(has_more=skip + len(ids) < total, total=total, skip=skip, limit=limit),
    )


def _as_utc(value: dt.datetime) -> dt.datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc)


async def calendar_month(index: IndexStore, year: int, month: int) -> CalendarMonth:
    """Readable records uploaded during year/month (UTC), grouped by day of month."""
    ids = await index.list_range(IMAGES_LIST_KEY, 0, -1)
    raws = await index.get_many(ids)

    days = defaultdict(list)
    for raw in raws:
        result = codec.decode(raw)
        if not isinstance(result, codec.Ok) or result.record.uploaded_at is None:
            continue
        record = result.record
        uploaded_at = _as_utc(record.uploaded_at)
        if uploaded_at.year != year or uploaded_at.month != month:
            continue
        days[str(uploaded_at.day)].append(CalendarEntry(
            id=record.id,
            url=record.url,
            filename=record.filename,
            uploaded_by=record.uploaded_by,
            uploaded_at=uploaded_at,
        ))

    return {
        day: sorted(entries, key=lambda e: e.uploaded_at)
        for day, entries in sorted(days.items(), key=lambda kv: int(kv[0]))
    }
