"""Dependency injection with a singleton service manager.

This module wires the shared store, cache and code generator into every API
endpoint. Shared resources are created once per process by the singleton
``ServiceManager``; each request only gets a lightweight ``RequestContext``.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

import redis.asyncio as redis
from fastapi import Depends, Request

from shortlink.cache import LinkCache, RedisLinkCache
from shortlink.config import Settings, get_settings
from shortlink.database import async_session
from shortlink.redis import close_redis, get_redis
from shortlink.service import LinkResolutionService
from shortlink.shortcode import ShortCodeGenerator
from shortlink.store import LinkStore, SQLAlchemyLinkStore

__all__ = [
    "RequestContext",
    "ServiceManager",
    "get_link_service",
    "get_request_context",
    "get_service_manager",
]


# ============================================================================
# SINGLETON SERVICE MANAGER
# ============================================================================


class ServiceManager:
    """Singleton service manager for shared resources.

    Holds the settings, the root logger, the Redis client and the store,
    cache and generator built on top of them. All of them are safe to share
    between concurrent requests.
    """

    _instance: Optional["ServiceManager"] = None
    _initialized: bool = False

    def __new__(cls) -> "ServiceManager":
        """Implement singleton pattern."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    async def initialize(self) -> None:
        """Initialize shared resources once at startup."""
        if not self._initialized:
            self.settings: Settings = get_settings()
            self.logger = self._setup_logger()
            self.redis_client: redis.Redis = await get_redis()
            self.store: LinkStore = SQLAlchemyLinkStore(async_session)
            self.cache: LinkCache = RedisLinkCache(self.redis_client, prefix=self.settings.CACHE_KEY_PREFIX)
            self.generator = ShortCodeGenerator.from_settings(self.settings)
            self._initialized = True
            self.logger.info(f"{self.settings.APP_NAME} resources initialized ({self.settings.APP_ENV})")

    def _setup_logger(self) -> logging.Logger:
        """Setup logger once."""
        logger = logging.getLogger("shortlink")
        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            handler.setFormatter(formatter)
            logger.addHandler(handler)
        logger.setLevel(self.settings.LOG_LEVEL.upper())
        return logger

    async def cleanup(self) -> None:
        """Cleanup shared resources at shutdown."""
        if self._initialized:
            await close_redis()
        self._initialized = False


# Global singleton instance
_service_manager = ServiceManager()


# ============================================================================
# LIGHTWEIGHT REQUEST CONTEXT
# ============================================================================


@dataclass
class RequestContext:
    """Per-request view over the shared resources.

    Attributes:
        service_manager: Singleton service manager with shared resources
        request_id: Unique identifier for this request
        trace_id: Correlation ID for distributed tracing
        user_agent: Client user agent string
        client_ip: Client IP address
        start_time: Request start timestamp
    """

    service_manager: ServiceManager
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    trace_id: Optional[str] = None
    user_agent: Optional[str] = None
    client_ip: Optional[str] = None
    start_time: float = field(default_factory=time.time)

    @property
    def store(self) -> LinkStore:
        return self.service_manager.store

    @property
    def cache(self) -> LinkCache:
        return self.service_manager.cache

    @property
    def generator(self) -> ShortCodeGenerator:
        return self.service_manager.generator

    @property
    def settings(self) -> Settings:
        return self.service_manager.settings

    @property
    def logger(self) -> logging.LoggerAdapter:
        """Shared logger carrying the request identifiers."""
        return logging.LoggerAdapter(
            self.service_manager.logger,
            {
                "request_id": self.request_id,
                "trace_id": self.trace_id or self.request_id,
                "client_ip": self.client_ip,
                "user_agent": self.user_agent,
            },
        )

    def get_duration(self) -> float:
        """Get request duration in milliseconds."""
        return (time.time() - self.start_time) * 1000


# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


async def get_service_manager() -> ServiceManager:
    """Get the singleton service manager, initializing it on first use."""
    if not _service_manager._initialized:
        await _service_manager.initialize()
    return _service_manager


async def get_request_context(
    request: Request,
    manager: ServiceManager = Depends(get_service_manager),
) -> RequestContext:
    return RequestContext(
        service_manager=manager,
        trace_id=request.headers.get("x-trace-id"),
        user_agent=request.headers.get("user-agent"),
        client_ip=request.client.host if request.client else None,
    )


def get_link_service(ctx: RequestContext = Depends(get_request_context)) -> LinkResolutionService:
    return LinkResolutionService.from_context(ctx)
