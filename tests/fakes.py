"""In-memory doubles shared by the test modules."""

import datetime as dt

from galleria.schemas.image import ImageRecord
from galleria.services import codec
from galleria.services.index_store import IMAGES_LIST_KEY, IndexStoreUnavailable

PUBLIC_BASE = "http://blobs.test"


class InMemoryIndexStore:
    """Same surface as IndexStore, backed by dicts; keys in `fail_keys` raise on write/delete."""

    def __init__(self):
        self.values = {}
        self.lists = {}
        self.fail_keys = set()
        self.down = False

    def _check(self, key=None):
        if self.down or (key is not None and key in self.fail_keys):
            raise IndexStoreUnavailable(f"simulated failure for {key}")

    async def ping(self):
        self._check()
        return True

    async def close(self):
        pass

    async def get(self, key):
        self._check()
        return self.values.get(key)

    async def get_many(self, keys):
        self._check()
        return [self.values.get(k) for k in keys]

    async def set(self, key, value):
        self._check(key)
        self.values[key] = value

    async def set_if_absent(self, key, value):
        self._check(key)
        if key in self.values:
            return False
        self.values[key] = value
        return True

    async def delete(self, key):
        self._check(key)
        removed = 0
        if key in self.values:
            del self.values[key]
            removed += 1
        if key in self.lists:
            del self.lists[key]
            removed += 1
        return removed

    async def list_push(self, key, value):
        self._check(key)
        self.lists.setdefault(key, []).insert(0, value)
        return len(self.lists[key])

    async def list_range(self, key, start=0, stop=-1):
        self._check()
        items = self.lists.get(key, [])
        n = len(items)
        if start < 0:
            start = max(n + start, 0)
        if stop < 0:
            stop = n + stop
        return list(items[start:stop + 1])

    async def list_length(self, key):
        self._check()
        return len(self.lists.get(key, []))

    async def add_to_list(self, record_key, raw, list_key=IMAGES_LIST_KEY):
        self._check(record_key)
        self.values[record_key] = raw
        self.lists.setdefault(list_key, []).insert(0, record_key)

    # helpers for tests
    def put_record(self, record: ImageRecord):
        self.values[record.id] = codec.encode(record)
        self.lists.setdefault(IMAGES_LIST_KEY, []).append(record.id)

    def record(self, key) -> ImageRecord:
        return codec.decode(self.values[key]).record


def make_record(n: int, url: str = None, **overrides) -> ImageRecord:
    fields = dict(
        id=f"image:1700000000000:rec{n:06d}",
        url=url or f"{PUBLIC_BASE}/blobs/images/img{n}.jpg",
        pathname=f"images/img{n}.jpg",
        filename=f"img{n}.jpg",
        mime_type="image/jpeg",
        size=1024,
        uploaded_by="a@example.com",
        uploaded_at=dt.datetime(2024, 3, 1 + n % 28, 12, 0, tzinfo=dt.timezone.utc),
    )
    fields.update(overrides)
    return ImageRecord(**fields)

