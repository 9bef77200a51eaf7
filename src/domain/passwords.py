"""
Password hashing - bcrypt with a fixed cost factor.

bcrypt comparison is constant-time. Hashing runs in a worker thread so
the async services suspend instead of blocking the event loop.
"""

import asyncio
from dataclasses import dataclass

import bcrypt

# bcrypt only reads the first 72 bytes of its input
_BCRYPT_MAX_BYTES = 72


def _encode(plain: str) -> bytes:
    return plain.encode("utf-8")[:_BCRYPT_MAX_BYTES]


@dataclass(frozen=True)
class PasswordHasher:
    """One-way salted hashing and verification of credentials."""

    rounds: int = 10

    def hash(self, plain: str) -> str:
        return bcrypt.hashpw(_encode(plain), bcrypt.gensalt(rounds=self.rounds)).decode()

    def verify(self, plain: str, digest: str | None) -> bool:
        """Return True if ``plain`` matches ``digest``; False for malformed digests."""
        if not digest:
            return False
        try:
            return bcrypt.checkpw(_encode(plain), digest.encode())
        except (ValueError, TypeError):
            return False

    async def hash_async(self, plain: str) -> str:
        return await asyncio.to_thread(self.hash, plain)

    async def verify_async(self, plain: str, digest: str | None) -> bool:
        return await asyncio.to_thread(self.verify, plain, digest)
