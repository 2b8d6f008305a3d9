"""Redis client management for the shortlink service.

This module provides the process-wide Redis client backing the link cache.

Flow Diagram — get_redis()
==========================
::
    ┌─────────────┐
    │ get_redis() │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Check global │
    │ client var   │
    └──────┬──────┘
    EXISTS?  │
    ┌─────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  ┌─────────┐
│ Create  │  │ Return  │
│ Redis   │  │ existing│
│ client  │  │ client  │
└─────────┘  └─────────┘

Key Behaviours
===============
- The client is created lazily on first access and reused by every request.
- UTF-8 encoding with decode_responses for string values.
- The connection pool is closed on application shutdown.

Functions:
    get_redis():  Shared Redis client.
    close_redis():  Cleanup function for shutdown.
"""

import redis.asyncio as redis

from shortlink.config import get_settings

__all__ = ["close_redis", "get_redis"]

settings = get_settings()

redis_client: redis.Redis | None = None


async def get_redis() -> redis.Redis:
    global redis_client
    if redis_client is None:
        redis_client = redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
        )
    return redis_client


async def close_redis() -> None:
    global redis_client
    if redis_client is not None:
        await redis_client.aclose()
        redis_client = None
