"""Unit tests for the SQLAlchemy link store against a mocked session."""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from shortlink.exceptions import LinkNotFoundError, ShortCodeCollisionError, StorageError
from shortlink.models import ShortLink
from shortlink.store import SQLAlchemyLinkStore


@pytest.fixture
def session() -> MagicMock:
    """Mock database session."""
    db = MagicMock()
    db.get = AsyncMock(return_value=None)
    db.execute = AsyncMock()
    db.add = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    return db


@pytest.fixture
def store(session) -> SQLAlchemyLinkStore:
    @asynccontextmanager
    async def session_factory():
        yield session

    return SQLAlchemyLinkStore(session_factory)


def _db_error(cls=OperationalError):
    return cls("SELECT 1", {}, Exception("connection refused"))


@pytest.mark.asyncio
async def test_find_by_code(store, session):
    link = ShortLink.new("abc123", "https://example.com")
    session.get.return_value = link

    assert await store.find_by_code("abc123") is link
    session.get.assert_awaited_once_with(ShortLink, "abc123")


@pytest.mark.asyncio
async def test_find_by_code_missing(store):
    assert await store.find_by_code("nope") is None


@pytest.mark.asyncio
async def test_find_by_long_url_orders_oldest_first(store, session):
    link = ShortLink.new("abc123", "https://example.com")
    result = MagicMock()
    result.scalars.return_value.first.return_value = link
    session.execute.return_value = result

    assert await store.find_by_long_url("https://example.com") is link

    stmt = str(session.execute.call_args.args[0])
    assert "WHERE short_links.long_url = " in stmt
    assert "ORDER BY short_links.created_at, short_links.short_code" in stmt
    assert "LIMIT" in stmt


@pytest.mark.asyncio
async def test_insert_commits(store, session):
    link = ShortLink.new("abc123", "https://example.com")

    await store.insert(link)

    session.add.assert_called_once_with(link)
    session.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_insert_duplicate_code_is_collision(store, session):
    session.commit.side_effect = _db_error(IntegrityError)

    with pytest.raises(ShortCodeCollisionError) as exc_info:
        await store.insert(ShortLink.new("abc123", "https://example.com"))

    assert exc_info.value.short_code == "abc123"
    assert exc_info.value.retryable is True
    session.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_insert_connection_failure(store, session):
    session.commit.side_effect = _db_error()

    with pytest.raises(StorageError) as exc_info:
        await store.insert(ShortLink.new("abc123", "https://example.com"))

    assert not isinstance(exc_info.value, ShortCodeCollisionError)
    assert exc_info.value.retryable is False


@pytest.mark.asyncio
async def test_increment_is_single_update(store, session):
    session.execute.return_value = MagicMock(rowcount=1)

    await store.increment_clicks("abc123")

    stmt = str(session.execute.call_args.args[0])
    assert stmt.startswith("UPDATE short_links SET click_count=")
    assert "short_links.click_count + " in stmt
    assert "WHERE short_links.short_code = " in stmt
    session.commit.assert_awaited_once()
    session.get.assert_not_awaited()


@pytest.mark.asyncio
async def test_increment_missing_code(store, session):
    session.execute.return_value = MagicMock(rowcount=0)

    with pytest.raises(LinkNotFoundError):
        await store.increment_clicks("nope")


@pytest.mark.asyncio
async def test_increment_rejects_non_positive_delta(store, session):
    with pytest.raises(ValueError):
        await store.increment_clicks("abc123", delta=0)

    session.execute.assert_not_awaited()


@pytest.mark.asyncio
async def test_read_failure_is_storage_error(store, session):
    session.get.side_effect = _db_error()

    with pytest.raises(StorageError):
        await store.find_by_code("abc123")


@pytest.mark.asyncio
async def test_ping(store, session):
    await store.ping()
    assert str(session.execute.call_args.args[0]) == "SELECT 1"


@pytest.mark.asyncio
async def test_ping_failure(store, session):
    session.execute.side_effect = _db_error()

    with pytest.raises(StorageError):
        await store.ping()


@pytest.mark.asyncio
async def test_session_open_failure():
    @asynccontextmanager
    async def broken_factory():
        raise _db_error()
        yield

    with pytest.raises(StorageError):
        await SQLAlchemyLinkStore(broken_factory).find_by_code("abc123")


@pytest.mark.asyncio
async def test_connection_refused_is_storage_error(unreachable_store):
    with pytest.raises(StorageError) as exc_info:
        await unreachable_store.find_by_code("abc123")

    assert isinstance(exc_info.value.__cause__, ConnectionRefusedError)
    assert exc_info.value.retryable is False


@pytest.mark.asyncio
async def test_connect_timeout_is_storage_error(store, session):
    session.execute.side_effect = TimeoutError()

    with pytest.raises(StorageError):
        await store.ping()


@pytest.mark.asyncio
async def test_dropped_connection_is_storage_error(store, session):
    session.get.side_effect = ConnectionResetError(104, "Connection reset by peer")

    with pytest.raises(StorageError):
        await store.find_by_code("abc123")
