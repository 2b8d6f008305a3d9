"""Database engine and session management for the shortlink service.

This module owns the process-wide SQLAlchemy async engine and session factory
used by the durable link store, plus the table lifecycle helpers.

Flow Diagram — Store Call
=========================
::
    ┌─────────────┐
    │ LinkStore   │
    │ operation   │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ async_session│
    │ () context   │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Execute /    │
    │ commit       │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Auto-close   │
    │ (finally)    │
    └─────────────┘

How to Use
===========
**Step 1 — Initialize on startup**::
    await init_db()  # Creates tables

**Step 2 — Hand the factory to the store**::
    store = SQLAlchemyLinkStore(async_session)

**Step 3 — Cleanup on shutdown**::
    await close_db()

Key Behaviours
===============
- One engine and one session factory are shared by every request.
- Sessions are short-lived, opened per store call.
- Tables are created automatically on application startup.
- The engine is disposed on application shutdown.

Classes:
    Base:  SQLAlchemy declarative base for all models.

Functions:
    init_db():  Creates all tables on startup.
    close_db():  Disposes the engine on shutdown.
"""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from shortlink.config import get_settings

__all__ = ["Base", "async_session", "engine", "init_db", "close_db"]

settings = get_settings()

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=False,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    pool_pre_ping=True,
)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


async def init_db() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    await engine.dispose()
