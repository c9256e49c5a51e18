"""Fixed-width SHA-256 digest.

A Digest is only ever produced by hashing byte content or by combining
two existing digests. Equality is byte-exact.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass


DIGEST_SIZE = 32


@dataclass(frozen=True)
class Digest:
    """An immutable 32-byte SHA-256 value.

    Usage:
        leaf = Digest.hash_text("alice:1000")
        parent = leaf.combine(other)
        parent.to_hex()
    """
    value: bytes

    def __post_init__(self) -> None:
        if len(self.value) != DIGEST_SIZE:
            raise ValueError(
                f"Digest must be {DIGEST_SIZE} bytes, got {len(self.value)}"
            )

    @classmethod
    def hash_bytes(cls, data: bytes) -> Digest:
        """Hash arbitrary bytes."""
        return cls(hashlib.sha256(data).digest())

    @classmethod
    def hash_text(cls, text: str) -> Digest:
        """Hash the UTF-8 encoding of a string."""
        return cls.hash_bytes(text.encode("utf-8"))

    @classmethod
    def from_hex(cls, text: str) -> Digest:
        """Parse the hex rendering of an existing digest.

        Raises ValueError on malformed or wrong-length input.
        """
        return cls(bytes.fromhex(text))

    def combine(self, other: Digest) -> Digest:
        """Hash self || other. Order matters."""
        return Digest.hash_bytes(self.value + other.value)

    def to_hex(self) -> str:
        return self.value.hex()

    def __str__(self) -> str:
        return self.to_hex()
