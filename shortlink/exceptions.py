"""Error taxonomy for link resolution.

``LinkNotFoundError`` and ``StorageError`` reach the caller of the service;
``CacheError`` never does, the service downgrades it to a miss or a warning.
"""

__all__ = [
    "CacheError",
    "LinkNotFoundError",
    "ShortCodeCollisionError",
    "ShortLinkError",
    "StorageError",
]


class ShortLinkError(Exception):
    """Base class for every error raised by the shortlink core."""


class LinkNotFoundError(ShortLinkError):
    """No link exists for the requested short code."""

    def __init__(self, short_code: str):
        self.short_code = short_code
        super().__init__(f"Short code '{short_code}' not found")


class StorageError(ShortLinkError):
    """The durable store could not complete an operation."""

    retryable: bool = False


class ShortCodeCollisionError(StorageError):
    """Insert rejected because the generated short code is already taken.

    Callers may retry the create; a fresh code is minted on every attempt.
    """

    retryable = True

    def __init__(self, short_code: str):
        self.short_code = short_code
        super().__init__(f"Short code '{short_code}' collision detected")


class CacheError(ShortLinkError):
    """The fast cache could not complete an operation."""
