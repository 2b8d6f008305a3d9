"""Fast cache for short-code lookups.

The cache is an accelerator only. It maps ``<prefix>:<short_code>`` to the raw
long URL and is never consulted for stats. Every Redis failure, and a stored
value that is not valid UTF-8, is re-raised as ``CacheError`` so the
resolution service can treat it as a miss on reads and as a warning on writes.

How to Use
===========
**Step 1 — Wrap the shared client**::
    cache = RedisLinkCache(await get_redis(), prefix="url")

**Step 2 — Read and populate**::
    long_url = await cache.get("Ab3dE9")
    await cache.set("Ab3dE9", "https://example.com", ttl=3600)

Classes:
    LinkCache:  Abstract contract the resolution service depends on.
    RedisLinkCache:  Implementation on ``redis.asyncio``.
"""

from abc import ABC, abstractmethod

import redis.asyncio as redis
from redis.exceptions import RedisError

from shortlink.exceptions import CacheError

__all__ = ["LinkCache", "RedisLinkCache"]


class LinkCache(ABC):
    """Interface for the fast cache. Every method raises ``CacheError`` on failure."""

    @abstractmethod
    async def get(self, short_code: str) -> str | None:
        """Return the cached long URL, or None on a miss."""

    @abstractmethod
    async def set(self, short_code: str, long_url: str, ttl: int | None = None) -> None:
        """Cache ``long_url``; ``ttl=None`` keeps it until the cache evicts it."""

    @abstractmethod
    async def delete(self, short_code: str) -> None:
        """Drop the entry if present."""

    @abstractmethod
    async def ping(self) -> None:
        """Round-trip to the cache."""


class RedisLinkCache(LinkCache):
    def __init__(self, client: redis.Redis, prefix: str = "url"):
        self._client = client
        self._prefix = prefix

    def key(self, short_code: str) -> str:
        return f"{self._prefix}:{short_code}"

    async def get(self, short_code: str) -> str | None:
        try:
            value = await self._client.get(self.key(short_code))
        except (RedisError, UnicodeDecodeError) as exc:
            raise CacheError(f"Cache get failed for {short_code}: {exc}") from exc
        return value or None

    async def set(self, short_code: str, long_url: str, ttl: int | None = None) -> None:
        try:
            if ttl:
                await self._client.set(self.key(short_code), long_url, ex=ttl)
            else:
                await self._client.set(self.key(short_code), long_url)
        except RedisError as exc:
            raise CacheError(f"Cache set failed for {short_code}: {exc}") from exc

    async def delete(self, short_code: str) -> None:
        try:
            await self._client.delete(self.key(short_code))
        except RedisError as exc:
            raise CacheError(f"Cache delete failed for {short_code}: {exc}") from exc

    async def ping(self) -> None:
        try:
            await self._client.ping()
        except RedisError as exc:
            raise CacheError(f"Cache ping failed: {exc}") from exc
