"""Durable link store: the authoritative record of every short link.

The service only talks to the ``LinkStore`` contract below. The PostgreSQL
implementation runs every call in its own short-lived session taken from the
shared session factory, so one store instance is safe to share across
concurrent requests.

Flow Diagram — increment_clicks()
=================================
::
    ┌─────────────┐
    │ UPDATE      │
    │ short_links │
    │ SET clicks= │
    │ clicks + n  │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ rowcount?   │
    └──────┬──────┘
    ┌─────┴─────┐
    │ 0          │ 1
    ▼            ▼
┌─────────┐  ┌─────────┐
│ LinkNot │  │ Commit  │
│ Found   │  │ done    │
└─────────┘  └─────────┘

Key Behaviours
===============
- Any ``SQLAlchemyError``, and any driver-level ``OSError`` or ``TimeoutError``
  (refused or timed-out connections), leaves the store as ``StorageError``.
- A primary-key violation on insert is ``ShortCodeCollisionError`` (retryable).
- The click increment is a single UPDATE evaluated by the database, never a
  read followed by a write, so concurrent increments are never lost.
- ``find_by_long_url`` breaks ties by earliest ``created_at`` then by
  ``short_code`` so repeated creates keep returning the same link.

Classes:
    LinkStore:  Abstract contract the resolution service depends on.
    SQLAlchemyLinkStore:  PostgreSQL implementation on SQLAlchemy asyncio.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import select, text, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shortlink.exceptions import LinkNotFoundError, ShortCodeCollisionError, StorageError
from shortlink.models import ShortLink

__all__ = ["LinkStore", "SQLAlchemyLinkStore"]


class LinkStore(ABC):
    """Interface for the durable link store.

    Methods:
        find_by_code(short_code) -> ShortLink | None
        find_by_long_url(long_url) -> ShortLink | None
        insert(link) -> None
        increment_clicks(short_code, delta) -> None
        ping() -> None

    Every method raises ``StorageError`` when the store cannot be reached or
    rejects the operation.
    """

    @abstractmethod
    async def find_by_code(self, short_code: str) -> ShortLink | None:
        """Point lookup by primary key."""

    @abstractmethod
    async def find_by_long_url(self, long_url: str) -> ShortLink | None:
        """Return the oldest link for ``long_url``, or None."""

    @abstractmethod
    async def insert(self, link: ShortLink) -> None:
        """Persist a new link.

        Raises:
            ShortCodeCollisionError: If ``link.short_code`` already exists.
        """

    @abstractmethod
    async def increment_clicks(self, short_code: str, delta: int = 1) -> None:
        """Atomically add ``delta`` to the click counter.

        Raises:
            LinkNotFoundError: If no link exists for ``short_code``.
        """

    @abstractmethod
    async def ping(self) -> None:
        """Round-trip to the store; raises ``StorageError`` when unhealthy."""


class SQLAlchemyLinkStore(LinkStore):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                yield session
        except (SQLAlchemyError, OSError, TimeoutError) as exc:
            raise StorageError(f"Store {operation} failed: {exc}") from exc

    async def find_by_code(self, short_code: str) -> ShortLink | None:
        async with self._session("find_by_code") as session:
            return await session.get(ShortLink, short_code)

    async def find_by_long_url(self, long_url: str) -> ShortLink | None:
        stmt = (
            select(ShortLink)
            .where(ShortLink.long_url == long_url)
            .order_by(ShortLink.created_at, ShortLink.short_code)
            .limit(1)
        )
        async with self._session("find_by_long_url") as session:
            result = await session.execute(stmt)
            return result.scalars().first()

    async def insert(self, link: ShortLink) -> None:
        async with self._session("insert") as session:
            session.add(link)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise ShortCodeCollisionError(link.short_code) from exc

    async def increment_clicks(self, short_code: str, delta: int = 1) -> None:
        if delta < 1:
            raise ValueError(f"delta must be a positive integer, got {delta!r}")

        stmt = (
            update(ShortLink)
            .where(ShortLink.short_code == short_code)
            .values(click_count=ShortLink.click_count + delta)
        )
        async with self._session("increment_clicks") as session:
            result = await session.execute(stmt)
            await session.commit()
        if result.rowcount == 0:
            raise LinkNotFoundError(short_code)

    async def ping(self) -> None:
        async with self._session("ping") as session:
            await session.execute(text("SELECT 1"))
