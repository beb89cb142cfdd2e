# =============================================================================
# Password Hashing (bcrypt)
# =============================================================================
#
# Hashes are standard $2b$ strings, so digests produced by other bcrypt
# implementations at the same cost verify unchanged. bcrypt is CPU-bound and
# runs in the default executor to keep the event loop free.
#
# bcrypt only reads the first 72 bytes of its input, and current releases
# refuse longer input outright. Flows reject such passwords up front with
# exceeds_limit(); the hasher raises PasswordTooLong as a last guard.
#
# =============================================================================

from __future__ import annotations

import asyncio
import logging

import bcrypt

logger = logging.getLogger(__name__)

MAX_PASSWORD_BYTES = 72


class PasswordTooLong(ValueError):
    """Password is longer than bcrypt accepts."""


def exceeds_limit(password: str) -> bool:
    """Whether the UTF-8 encoding of a password is over the bcrypt limit."""
    return len(password.encode("utf-8")) > MAX_PASSWORD_BYTES


def too_long_message(period: bool = True) -> str:
    return f"Password must be at most {MAX_PASSWORD_BYTES} bytes long" + ("." if period else "")


class PasswordHasher:
    """Salted bcrypt hashing with a fixed cost factor."""

    def __init__(self, rounds: int = 10):
        self.rounds = rounds

    def hash_sync(self, password: str) -> str:
        if exceeds_limit(password):
            raise PasswordTooLong(f"Password is longer than {MAX_PASSWORD_BYTES} bytes")
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    def compare_sync(self, password: str, password_hash: str) -> bool:
        # Nothing stored can match input bcrypt would have refused to hash
        if exceeds_limit(password):
            return False
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError:
            # Stored value is not a bcrypt digest
            logger.warning("Password comparison against an invalid hash")
            return False

    async def hash(self, password: str) -> str:
        """Hash a password with a fresh salt."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.hash_sync, password)

    async def compare(self, password: str, password_hash: str) -> bool:
        """Check a password against a stored hash."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.compare_sync, password, password_hash)
