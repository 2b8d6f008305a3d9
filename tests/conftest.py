"""Shared pytest fixtures: in-memory store and cache doubles plus an API client."""

import logging
from collections.abc import AsyncGenerator, Iterable
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from shortlink.cache import LinkCache
from shortlink.config import Settings
from shortlink.dependencies import get_service_manager
from shortlink.exceptions import CacheError, LinkNotFoundError, ShortCodeCollisionError, StorageError
from shortlink.main import app
from shortlink.models import ShortLink
from shortlink.service import LinkResolutionService
from shortlink.shortcode import ShortCodeGenerator
from shortlink.store import LinkStore, SQLAlchemyLinkStore


def _copy(link: ShortLink) -> ShortLink:
    return ShortLink(
        short_code=link.short_code,
        long_url=link.long_url,
        click_count=link.click_count,
        created_at=link.created_at,
    )


class InMemoryLinkStore(LinkStore):
    """Dict-backed store; hands out copies the way a real session would."""

    def __init__(self) -> None:
        self.rows: dict[str, ShortLink] = {}
        self.fail = False
        self.calls: list[str] = []

    def _check(self, operation: str) -> None:
        self.calls.append(operation)
        if self.fail:
            raise StorageError(f"Store {operation} failed: connection refused")

    async def find_by_code(self, short_code: str) -> ShortLink | None:
        self._check("find_by_code")
        row = self.rows.get(short_code)
        return _copy(row) if row else None

    async def find_by_long_url(self, long_url: str) -> ShortLink | None:
        self._check("find_by_long_url")
        matches = [row for row in self.rows.values() if row.long_url == long_url]
        if not matches:
            return None
        return _copy(min(matches, key=lambda row: (row.created_at, row.short_code)))

    async def insert(self, link: ShortLink) -> None:
        self._check("insert")
        if link.short_code in self.rows:
            raise ShortCodeCollisionError(link.short_code)
        self.rows[link.short_code] = _copy(link)

    async def increment_clicks(self, short_code: str, delta: int = 1) -> None:
        self._check("increment_clicks")
        if short_code not in self.rows:
            raise LinkNotFoundError(short_code)
        self.rows[short_code].click_count += delta

    async def ping(self) -> None:
        self._check("ping")


class InMemoryLinkCache(LinkCache):
    def __init__(self) -> None:
        self.entries: dict[str, str] = {}
        self.ttls: dict[str, int | None] = {}
        self.fail_reads = False
        self.fail_writes = False

    async def get(self, short_code: str) -> str | None:
        if self.fail_reads:
            raise CacheError(f"Cache get failed for {short_code}: timeout")
        return self.entries.get(short_code)

    async def set(self, short_code: str, long_url: str, ttl: int | None = None) -> None:
        if self.fail_writes:
            raise CacheError(f"Cache set failed for {short_code}: timeout")
        self.entries[short_code] = long_url
        self.ttls[short_code] = ttl

    async def delete(self, short_code: str) -> None:
        if self.fail_writes:
            raise CacheError(f"Cache delete failed for {short_code}: timeout")
        self.entries.pop(short_code, None)
        self.ttls.pop(short_code, None)

    async def ping(self) -> None:
        if self.fail_reads:
            raise CacheError("Cache ping failed: timeout")


class ScriptedCodeGenerator(ShortCodeGenerator):
    """Hands out a fixed sequence of codes before falling back to random ones."""

    def __init__(self, codes: Iterable[str] = ()):
        super().__init__()
        self._codes = list(codes)

    def push(self, *codes: str) -> None:
        self._codes.extend(codes)

    def next(self) -> str:
        if self._codes:
            return self._codes.pop(0)
        return super().next()


@pytest.fixture
def settings() -> Settings:
    return Settings(BASE_URL="http://test", CACHE_TTL_SECONDS=3600)


@pytest.fixture
def store() -> InMemoryLinkStore:
    return InMemoryLinkStore()


@pytest.fixture
def cache() -> InMemoryLinkCache:
    return InMemoryLinkCache()


@pytest.fixture
def generator() -> ScriptedCodeGenerator:
    return ScriptedCodeGenerator()


@pytest.fixture
def service(store, cache, generator, settings) -> LinkResolutionService:
    return LinkResolutionService(
        store,
        cache,
        generator,
        cache_ttl=settings.CACHE_TTL_SECONDS,
        logger=logging.getLogger("shortlink.tests"),
    )


@pytest.fixture
def unreachable_store() -> SQLAlchemyLinkStore:
    """SQLAlchemy store whose connection checkout is refused, the way asyncpg reports it."""
    session_cm = MagicMock()
    session_cm.__aenter__ = AsyncMock(
        side_effect=ConnectionRefusedError(111, "Connect call failed ('127.0.0.1', 5432)")
    )
    session_cm.__aexit__ = AsyncMock(return_value=False)
    return SQLAlchemyLinkStore(MagicMock(return_value=session_cm))


@pytest.fixture
def manager(store, cache, generator, settings) -> SimpleNamespace:
    return SimpleNamespace(
        settings=settings,
        logger=logging.getLogger("shortlink.tests"),
        store=store,
        cache=cache,
        generator=generator,
    )


@pytest_asyncio.fixture
async def client(manager) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_service_manager():
        return manager

    app.dependency_overrides[get_service_manager] = override_get_service_manager

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
