"""Password hashing backed by passlib's bcrypt scheme."""
from __future__ import annotations

from passlib.context import CryptContext

BCRYPT_MAX_BYTES = 72


class PasswordHasher:
    def __init__(self, rounds: int = 12) -> None:
        self._context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=int(rounds))

    def hash(self, password: str) -> str:
        return self._context.hash(password)

    def verify(self, password: str, hashed: str) -> bool:
        try:
            return self._context.verify(password, hashed)
        except ValueError:
            # malformed stored hash or over-long secret
            return False


__all__ = ["BCRYPT_MAX_BYTES", "PasswordHasher"]
