"""Link resolution service - cache-aside coordination between Redis and PostgreSQL.

This module holds the core of the shortlink service: creating links with
idempotent semantics, resolving short codes through the cache with a store
fallback, counting clicks and reading stats.

Architecture Overview
=====================
::
    ┌─────────────────────────────────────────────────────────────┐
    │                  LinkResolutionService                      │
    │   create()            resolve_url()          get_stats()    │
    └─────────────────────────────────────────────────────────────┘
           │                     │                      │
           ▼                     ▼                      ▼
    ┌─────────────┐     ┌─────────────────┐     ┌─────────────┐
    │ ShortCode   │     │   LinkCache     │     │  LinkStore  │
    │ Generator   │     │   (Redis)       │     │ (PostgreSQL)│
    └─────────────┘     └─────────────────┘     └─────────────┘

Link Creation Flow
------------------
::
    ┌─────────────┐
    │ create(url) │
    └──────┬──────┘
           ▼
    ┌─────────────┐   FOUND   ┌─────────────┐
    │ Store: find │──────────▶│ Return      │
    │ by long URL │           │ existing    │
    └──────┬──────┘           └─────────────┘
           ▼ NONE
    ┌─────────────┐
    │ Generate    │
    │ short code  │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Store:      │  (failure => StorageError)
    │ insert      │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Cache: set  │  (failure => logged only)
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Return link │
    └─────────────┘

Resolution Flow
---------------
::
    ┌─────────────┐
    │ resolve_url │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Cache: get  │  (CacheError => miss)
    └──────┬──────┘
    HIT?  │
    ┌─────┴──────┐
    │ NO          │ YES
    ▼             │
┌──────────┐      │
│ Store:   │      │
│ find code│      │
└────┬─────┘      │
     │ NONE => LinkNotFoundError
     ▼            │
┌──────────┐      │
│ Cache:   │      │
│ warm     │      │
└────┬─────┘      │
     ▼            ▼
    ┌─────────────┐
    │ Store: atomic│
    │ increment    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Return URL  │
    └─────────────┘

Key Behaviours
===============
- Cache read failures are misses; cache write failures are warnings.
- Store failures always propagate as ``StorageError``.
- A ``CacheError`` is never reported as ``LinkNotFoundError``.
- Every successful resolution increments exactly once, before returning.
- Stats read the store only and never increment.
- The service keeps no mutable state, one instance may serve any number of
  concurrent requests.
"""

import logging
import time

from prometheus_client import Counter, Histogram

from shortlink.cache import LinkCache
from shortlink.enums import CacheStatus, RequestStatus
from shortlink.exceptions import CacheError, LinkNotFoundError, StorageError
from shortlink.models import ShortLink
from shortlink.shortcode import ShortCodeGenerator
from shortlink.store import LinkStore

__all__ = ["LinkResolutionService"]


# ============================================================================
# PROMETHEUS METRICS
# ============================================================================

LINK_CREATIONS_TOTAL = Counter(
    "shortlink_creations_total",
    "Total link creation requests",
    ["status"],
)
LINK_RESOLUTIONS_TOTAL = Counter(
    "shortlink_resolutions_total",
    "Total short code resolutions",
    ["status", "cache"],
)
CACHE_ERRORS_TOTAL = Counter(
    "shortlink_cache_errors_total",
    "Cache operations that failed and were downgraded",
    ["operation"],
)
STORE_READS_TOTAL = Counter(
    "shortlink_store_reads_total",
    "Total durable store read operations",
)
STORE_WRITES_TOTAL = Counter(
    "shortlink_store_writes_total",
    "Total durable store write operations",
)
LINK_CREATION_DURATION = Histogram(
    "shortlink_creation_duration_seconds",
    "Time taken to create short links",
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)
LINK_RESOLUTION_DURATION = Histogram(
    "shortlink_resolution_duration_seconds",
    "Time taken to resolve short codes",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25],
)


# ============================================================================
# CORE SERVICE CLASS
# ============================================================================


class LinkResolutionService:
    """Coordinates link creation, resolution and stats across cache and store.

    Example:
        >>> service = LinkResolutionService(store, cache, ShortCodeGenerator())
        >>> link = await service.create("https://a.example/x")
        >>> await service.resolve_url(link.short_code)
        'https://a.example/x'
    """

    def __init__(
        self,
        store: LinkStore,
        cache: LinkCache,
        generator: ShortCodeGenerator,
        *,
        cache_ttl: int | None = None,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ):
        self._store = store
        self._cache = cache
        self._generator = generator
        self._cache_ttl = cache_ttl
        self._logger = logger or logging.getLogger("shortlink.service")

    @classmethod
    def from_context(cls, ctx: "RequestContext") -> "LinkResolutionService":
        """Build a service from the shared resources carried by a request context."""
        return cls(
            ctx.store,
            ctx.cache,
            ctx.generator,
            cache_ttl=ctx.settings.CACHE_TTL_SECONDS,
            logger=ctx.logger,
        )

    # ========================================================================
    # PUBLIC API METHODS
    # ========================================================================

    async def create(self, long_url: str) -> ShortLink:
        """Return the link for ``long_url``, minting one if none exists yet.

        An existing link is returned unchanged, with its current click count.
        A new link is persisted first and cached second; a cache failure is
        logged and does not fail the call.

        Raises:
            StorageError: If the store lookup or insert fails. A
                ``ShortCodeCollisionError`` is retryable.
        """
        start_time = time.perf_counter()
        try:
            existing = await self._store.find_by_long_url(long_url)
            STORE_READS_TOTAL.inc()
            if existing is not None:
                LINK_CREATIONS_TOTAL.labels(status=RequestStatus.EXISTING).inc()
                self._logger.info(f"Reusing short code {existing.short_code} for {long_url}")
                return existing

            link = ShortLink.new(self._generator.next(), long_url)
            await self._store.insert(link)
            STORE_WRITES_TOTAL.inc()

            await self._populate_cache(link.short_code, link.long_url, operation="create")

            LINK_CREATIONS_TOTAL.labels(status=RequestStatus.SUCCESS).inc()
            self._logger.info(f"Created short code {link.short_code} for {long_url}")
            return link

        except StorageError as exc:
            LINK_CREATIONS_TOTAL.labels(status=RequestStatus.ERROR).inc()
            self._logger.error(f"Link creation failed for {long_url}: {exc}")
            raise

        finally:
            LINK_CREATION_DURATION.observe(time.perf_counter() - start_time)

    async def resolve_url(self, short_code: str) -> str:
        """Resolve ``short_code`` to its long URL and count the click.

        Raises:
            LinkNotFoundError: If the store holds no link for ``short_code``.
            StorageError: If the store lookup or increment fails.
        """
        start_time = time.perf_counter()
        cache_status = CacheStatus.MISS
        try:
            cached = await self._read_cache(short_code)
            if cached is not None:
                cache_status = CacheStatus.HIT
                await self._count_click_for_cached(short_code)
                self._logger.debug(f"Cache hit for {short_code}")
                long_url = cached
            else:
                link = await self._store.find_by_code(short_code)
                STORE_READS_TOTAL.inc()
                if link is None:
                    raise LinkNotFoundError(short_code)

                await self._populate_cache(short_code, link.long_url, operation="warm")
                await self._count_click(short_code)
                self._logger.debug(f"Store hit and cache warmed for {short_code}")
                long_url = link.long_url

            LINK_RESOLUTIONS_TOTAL.labels(status=RequestStatus.SUCCESS, cache=cache_status).inc()
            return long_url

        except LinkNotFoundError:
            LINK_RESOLUTIONS_TOTAL.labels(status=RequestStatus.NOT_FOUND, cache=cache_status).inc()
            self._logger.info(f"Short code not found: {short_code}")
            raise

        except StorageError as exc:
            LINK_RESOLUTIONS_TOTAL.labels(status=RequestStatus.ERROR, cache=cache_status).inc()
            self._logger.error(f"Resolution failed for {short_code}: {exc}")
            raise

        finally:
            LINK_RESOLUTION_DURATION.observe(time.perf_counter() - start_time)

    async def get_stats(self, short_code: str) -> ShortLink:
        """Return the authoritative record for ``short_code``.

        Raises:
            LinkNotFoundError: If the store holds no link for ``short_code``.
            StorageError: If the store lookup fails.
        """
        link = await self._store.find_by_code(short_code)
        STORE_READS_TOTAL.inc()
        if link is None:
            self._logger.info(f"Stats not found for {short_code}")
            raise LinkNotFoundError(short_code)
        return link

    # ========================================================================
    # PRIVATE HELPER METHODS
    # ========================================================================

    async def _read_cache(self, short_code: str) -> str | None:
        try:
            return await self._cache.get(short_code)
        except CacheError as exc:
            CACHE_ERRORS_TOTAL.labels(operation="get").inc()
            self._logger.warning(f"Cache read failed for {short_code}, falling back to store: {exc}")
            return None

    async def _populate_cache(self, short_code: str, long_url: str, *, operation: str) -> None:
        try:
            await self._cache.set(short_code, long_url, ttl=self._cache_ttl)
        except CacheError as exc:
            CACHE_ERRORS_TOTAL.labels(operation=operation).inc()
            self._logger.warning(f"Cache {operation} failed for {short_code}: {exc}")

    async def _count_click(self, short_code: str) -> None:
        await self._store.increment_clicks(short_code)
        STORE_WRITES_TOTAL.inc()

    async def _count_click_for_cached(self, short_code: str) -> None:
        # A cached code missing from the store is a stale entry, drop it.
        try:
            await self._count_click(short_code)
        except LinkNotFoundError:
            try:
                await self._cache.delete(short_code)
            except CacheError as exc:
                CACHE_ERRORS_TOTAL.labels(operation="delete").inc()
                self._logger.warning(f"Cache delete failed for {short_code}: {exc}")
            raise
