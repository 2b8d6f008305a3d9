"""Pydantic schemas for request/response validation in the shortlink service.

Schema Hierarchy
=================
::
    ShortenRequest (Input)
    └─ url: str (validated URL, length-capped)

    ShortLinkResponse (Output)
    ├─ short_code: str
    ├─ long_url: str
    ├─ short_url: str (computed)
    ├─ click_count: int
    └─ created_at: datetime

    ShortLinkStats (Output)
    └─ Same as ShortLinkResponse

    HealthResponse (Output)
    ├─ status: HealthStatus
    ├─ database: HealthStatus
    ├─ cache: HealthStatus
    └─ timestamp: datetime

    ApiInfo (Output)
    ├─ name: str
    ├─ version: str
    └─ description: str

Key Behaviours
===============
- URL validation uses the validators library; invalid input is a 422 before
  the resolution service is called.
- All datetime fields are timezone-aware.
- Output models read ORM attributes directly.
"""

import datetime

import validators
from pydantic import BaseModel, field_validator

from shortlink.config import get_settings
from shortlink.enums import HealthStatus
from shortlink.models import ShortLink

__all__ = [
    "ApiInfo",
    "HealthResponse",
    "ShortLinkResponse",
    "ShortLinkStats",
    "ShortenRequest",
]


class ShortenRequest(BaseModel):
    url: str

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        v = v.strip()
        if len(v) > get_settings().MAX_URL_LENGTH:
            raise ValueError("URL is too long")
        if not validators.url(v):
            raise ValueError("Invalid URL provided")
        return v


class ShortLinkResponse(BaseModel):
    short_code: str
    long_url: str
    short_url: str
    click_count: int
    created_at: datetime.datetime

    model_config = {"from_attributes": True}

    @classmethod
    def from_link(cls, link: ShortLink, base_url: str) -> "ShortLinkResponse":
        return cls(
            short_code=link.short_code,
            long_url=link.long_url,
            short_url=f"{base_url.rstrip('/')}/{link.short_code}",
            click_count=link.click_count,
            created_at=link.created_at,
        )


class ShortLinkStats(ShortLinkResponse):
    pass


class HealthResponse(BaseModel):
    status: HealthStatus
    database: HealthStatus
    cache: HealthStatus
    timestamp: datetime.datetime


class ApiInfo(BaseModel):
    name: str
    version: str
    description: str
