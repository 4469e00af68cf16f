"""
Password hashing with bcrypt.
"""
import asyncio

import bcrypt

from storefront.base_service import BaseService


# bcrypt only reads the first 72 bytes and newer releases refuse longer input
MAX_PASSWORD_BYTES = 72


class HashingError(Exception):
    """bcrypt failed to hash or check a password."""


class PasswordHasher(BaseService):
    """Salted one-way password hashing with a configurable cost factor."""

    def __init__(self, rounds: int = 12):
        super().__init__("hashing")
        self.rounds = rounds

    def hash(self, password: str) -> str:
        """Generate password hash using bcrypt."""
        try:
            digest = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds))
        except (ValueError, TypeError) as exc:
            self.log_error(exc, context="Password hashing")
            raise HashingError("Failed to hash password") from exc
        return digest.decode("utf-8")

    def verify(self, password: str, digest: str) -> bool:
        """Check if provided password matches the stored hash."""
        try:
            return bcrypt.checkpw(password.encode("utf-8"), digest.encode("utf-8"))
        except (ValueError, TypeError) as exc:
            self.log_error(exc, context="Password verification")
            raise HashingError("Failed to verify password") from exc

    async def hash_async(self, password: str) -> str:
        return await asyncio.to_thread(self.hash, password)

    async def verify_async(self, password: str, digest: str) -> bool:
        return await asyncio.to_thread(self.verify, password, digest)
