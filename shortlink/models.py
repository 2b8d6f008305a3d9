"""SQLAlchemy ORM models for the shortlink service.

This module defines the single persisted entity: a short code mapped to the
long URL it stands for, plus its raw click counter.

Data Model Layout
=================
::
    short_links table
    ├─ short_code (VARCHAR(20) PRIMARY KEY)
    ├─ long_url (TEXT NOT NULL, INDEXED)
    ├─ click_count (BIGINT NOT NULL DEFAULT 0)
    └─ created_at (TIMESTAMPTZ NOT NULL)

How to Use
===========
**Step 1 — Import**::
    from shortlink.models import ShortLink

**Step 2 — Build a new link**::
    link = ShortLink.new("Ab3dE9", "https://example.com")

**Step 3 — Persist through the store**::
    await store.insert(link)

Key Behaviours
===============
- short_code is the primary key, so a colliding code fails the insert.
- long_url is indexed but not unique; lookups by it pick the oldest row.
- click_count starts at 0 and is only changed by an atomic UPDATE.
- created_at is set once, in UTC, when the link is built.

Classes:
    ShortLink:  A short code mapped to a long URL with click tracking.
"""

import datetime

from sqlalchemy import BigInteger, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from shortlink.database import Base

__all__ = ["ShortLink", "utcnow"]


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class ShortLink(Base):
    __tablename__ = "short_links"

    short_code: Mapped[str] = mapped_column(String(20), primary_key=True)
    long_url: Mapped[str] = mapped_column(Text, index=True, nullable=False)
    click_count: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    @classmethod
    def new(cls, short_code: str, long_url: str) -> "ShortLink":
        """Build an unsaved link with a zero counter and a creation timestamp."""
        return cls(short_code=short_code, long_url=long_url, click_count=0, created_at=utcnow())

    def __repr__(self) -> str:
        return f"<ShortLink(short_code='{self.short_code}', clicks={self.click_count})>"
