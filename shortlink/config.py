"""Configuration management for the shortlink service.

This module provides centralized configuration management using Pydantic BaseSettings
with environment variable support and caching for performance.

Flow Diagram — get_settings()
=============================
::
    ┌─────────────┐
    │  Call get_  │
    │  settings() │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Check cache  │
    │ (lru_cache)  │
    └──────┬──────┘
    HIT?  │
    ┌─────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  ┌─────────┐
│ Create  │  │ Return  │
│ Settings│  │ cached  │
│ instance│  │ value   │
└─────────┘  └─────────┘

How to Use
===========
**Step 1 — Import**::
    from shortlink.config import get_settings

**Step 2 — Read values**::
    settings = get_settings()
    ttl = settings.CACHE_TTL_SECONDS

Key Behaviours
===============
- Settings are cached after first access.
- Environment variables (and a local ``.env``) override defaults.
- Invalid values raise ``pydantic.ValidationError`` at startup, which is fatal.
- ``CACHE_TTL_SECONDS=None`` (the literal string in the environment) stores
  cache entries without expiry.

Classes:
    Settings:  Pydantic model for all configuration values.
"""

__all__ = ["DEFAULT_ALPHABET", "Settings", "get_settings"]

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"


class Settings(BaseSettings):
    APP_NAME: str = "shortlink"
    APP_ENV: str = "development"
    APP_VERSION: str = "1.0.0"
    BASE_URL: str = "http://localhost:8080"
    LOG_LEVEL: str = "INFO"

    # PostgreSQL
    DATABASE_URL: str = "postgresql+asyncpg://shortlink:shortlink@db:5432/shortlink"
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10

    # Redis
    REDIS_URL: str = "redis://redis:6379/0"
    CACHE_KEY_PREFIX: str = "url"
    CACHE_TTL_SECONDS: int | None = 3600

    # Short code generation
    SHORT_CODE_LENGTH: int = Field(default=6, ge=1, le=20)
    SHORT_CODE_ALPHABET: str = Field(default=DEFAULT_ALPHABET, min_length=2)

    # HTTP surface
    MAX_URL_LENGTH: int = 2048
    REDIRECT_STATUS_CODE: int = 302

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        env_parse_none_str="None",
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
