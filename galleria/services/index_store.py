import asyncio
import logging
from typing import List, Optional, Sequence, Union

from redis import asyncio as aioredis
from redis.exceptions import RedisError

_logger = logging.getLogger("index_store")

IMAGES_LIST_KEY = "images:list"


class IndexStoreUnavailable(Exception):
    pass


class IndexStore:
    """Redis-backed index: one key per serialized record plus the `images:list` list.

    Build it with `await IndexStore.connect(...)`; every method raises
    `IndexStoreUnavailable` when redis cannot be reached. Record values come
    back as raw bytes so the codec decides whether they are readable.
    """

    def __init__(self, client: aioredis.Redis):
        self._client = client

    @classmethod
    async def connect(
        cls,
        url: str,
        max_retries: int = 3,
        delay_seconds: float = 0.5,
    ) -> "IndexStore":
        """Ping redis until it answers, doubling the delay between attempts."""
        client = aioredis.from_url(url, decode_responses=False)
        delay = delay_seconds
        for attempt in range(1, max_retries + 1):
            try:
                await client.ping()
                _logger.info("Connected to index store")
                return cls(client)
            except RedisError as exc:
                if attempt == max_retries:
                    await client.aclose()
                    raise IndexStoreUnavailable(
                        f"Failed to connect to redis after {attempt} attempts: {exc}"
                    ) from exc
                _logger.info(
                    "Index store connect failed (attempt %s/%s): %s; retrying in %.1fs",
                    attempt,
                    max_retries,
                    exc,
                    delay,
                )
                await asyncio.sleep(delay)
                delay *= 2
        raise IndexStoreUnavailable("max_retries must be at least 1")

    async def close(self) -> None:
        await self._client.aclose()

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except RedisError as exc:
            raise IndexStoreUnavailable(str(exc)) from exc

    async def get(self, key: str) -> Optional[bytes]:
        try:
            return await self._client.get(key)
        except RedisError as exc:
            raise IndexStoreUnavailable(str(exc)) from exc

    async def get_many(self, keys: Sequence[str]) -> List[Optional[bytes]]:
        if not keys:
            return []
        try:
            return await self._client.mget(list(keys))
        except RedisError as exc:
            raise IndexStoreUnavailable(str(exc)) from exc

    async def set(self, key: str, value: Union[str, bytes]) -> None:
        try:
            await self._client.set(key, value)
        except RedisError as exc:
            raise IndexStoreUnavailable(str(exc)) from exc

    async def set_if_absent(self, key: str, value: Union[str, bytes]) -> bool:
        try:
            return bool(await self._client.set(key, value, nx=True))
        except RedisError as exc:
            raise IndexStoreUnavailable(str(exc)) from exc

    async def delete(self, key: str) -> int:
        """Returns the number of keys actually removed."""
        try:
            return int(await self._client.delete(key))
        except RedisError as exc:
            raise IndexStoreUnavailable(str(exc)) from exc

    async def list_push(self, key: str, value: str) -> int:
        # newest ids sit at the head of the list
        try:
            return int(await self._client.lpush(key, value))
        except RedisError as exc:
            raise IndexStoreUnavailable(str(exc)) from exc

    async def list_range(self, key: str, start: int = 0, stop: int = -1) -> List[str]:
        try:
            items = await self._client.lrange(key, start, stop)
        except RedisError as exc:
            raise IndexStoreUnavailable(str(exc)) from exc
        # ids are written as ascii record keys
        return [i.decode("utf-8", "replace") if isinstance(i, bytes) else i for i in items]

    async def list_length(self, key: str) -> int:
        try:
            return int(await self._client.llen(key))
        except RedisError as exc:
            raise IndexStoreUnavailable(str(exc)) from exc

    async def add_to_list(self, record_key: str, raw: str, list_key: str = IMAGES_LIST_KEY) -> None:
        """Write a record and push its key onto the list in one MULTI/EXEC."""
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.set(record_key, raw)
                pipe.lpush(list_key, record_key)
                await pipe.execute()
        except RedisError as exc:
            raise IndexStoreUnavailable(str(exc)) from exc
