"""Random short-code generation.

Codes are drawn with ``nanoid`` from a fixed alphabet at a fixed length; with
the defaults (62 characters, length 6) there are 62**6, about 5.68e10,
possible codes. The generator keeps no state and never checks uniqueness, the
durable store's primary key does that.
"""

from nanoid import generate

from shortlink.config import DEFAULT_ALPHABET

__all__ = ["DEFAULT_CODE_LENGTH", "ShortCodeGenerator"]

DEFAULT_CODE_LENGTH = 6


class ShortCodeGenerator:
    def __init__(self, alphabet: str = DEFAULT_ALPHABET, length: int = DEFAULT_CODE_LENGTH):
        if len(set(alphabet)) != len(alphabet) or len(alphabet) < 2:
            raise ValueError(f"alphabet must hold at least 2 distinct characters, got {alphabet!r}")
        if length <= 0:
            raise ValueError(f"length must be a positive integer, got {length!r}")
        self.alphabet = alphabet
        self.length = length

    @classmethod
    def from_settings(cls, settings) -> "ShortCodeGenerator":
        return cls(alphabet=settings.SHORT_CODE_ALPHABET, length=settings.SHORT_CODE_LENGTH)

    @property
    def keyspace(self) -> int:
        """Number of distinct codes this generator can produce."""
        return len(self.alphabet) ** self.length

    def next(self) -> str:
        return generate(self.alphabet, self.length)
