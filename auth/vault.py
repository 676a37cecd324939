"""Credential vault enforcing the single local user account."""
from __future__ import annotations

import logging
import sqlite3
from typing import Optional

from core.db import StoreHandle
from core.errors import (
    AlreadyProvisioned,
    IncorrectCurrentPassword,
    InvalidCredentials,
    InvalidUsername,
    NoAccount,
    PasswordTooLong,
    StorageError,
    WeakPassword,
)
from core.timefmt import format_utc
from core.timers import Clock, utc_now

from .passwords import BCRYPT_MAX_BYTES, PasswordHasher
from .sessions import SessionManager
from .types import USER_ID, AuthConfig, UserIdentity

LOGGER = logging.getLogger("bizdesk.auth.vault")


def normalize_username(username: Optional[str]) -> str:
    return (username or "").strip().lower()


class CredentialVault:
    def __init__(
        self,
        store: StoreHandle,
        sessions: SessionManager,
        *,
        config: Optional[AuthConfig] = None,
        hasher: Optional[PasswordHasher] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._store = store
        self._sessions = sessions
        self._config = config or AuthConfig()
        self._hasher = hasher or PasswordHasher(self._config.hash_rounds)
        self._clock = clock or utc_now

    # ------------------------------------------------------------------
    def _check_password(self, password: Optional[str]) -> str:
        pwd = password or ""
        if len(pwd) < self._config.min_password_length:
            raise WeakPassword(f"Password must be at least {self._config.min_password_length} characters")
        if len(pwd.encode("utf-8")) > BCRYPT_MAX_BYTES:
            raise PasswordTooLong()
        return pwd

    def _load_user(self) -> Optional[sqlite3.Row]:
        with self._store.read() as conn:
            return conn.execute(
                "SELECT id, username, password_hash, created_at, last_login FROM auth_user WHERE id = ?",
                (USER_ID,),
            ).fetchone()

    # ------------------------------------------------------------------
    def is_provisioned(self) -> bool:
        with self._store.read() as conn:
            row = conn.execute("SELECT 1 FROM auth_user WHERE id = ?", (USER_ID,)).fetchone()
        return row is not None

    def provision(self, username: str, password: str) -> UserIdentity:
        if self.is_provisioned():
            raise AlreadyProvisioned()
        name = normalize_username(username)
        if len(name) < self._config.min_username_length:
            raise InvalidUsername(f"Username must be at least {self._config.min_username_length} characters")
        pwd = self._check_password(password)
        password_hash = self._hasher.hash(pwd)
        created = format_utc(self._clock())
        try:
            with self._store.transaction() as conn:
                # re-check under the write lock; the hash above runs unlocked
                if conn.execute("SELECT 1 FROM auth_user WHERE id = ?", (USER_ID,)).fetchone():
                    raise AlreadyProvisioned()
                conn.execute(
                    "INSERT INTO auth_user (id, username, password_hash, created_at) VALUES (?, ?, ?, ?)",
                    (USER_ID, name, password_hash, created),
                )
        except StorageError as exc:
            if isinstance(exc.__cause__, sqlite3.IntegrityError):
                raise AlreadyProvisioned() from exc
            raise
        LOGGER.info("User account created")
        return UserIdentity(id=USER_ID, username=name, created_at=created, last_login=None)

    def verify(self, username: str, password: str) -> UserIdentity:
        user = self._load_user()
        if user is None:
            raise NoAccount()
        password_ok = self._hasher.verify(password or "", user["password_hash"])
        name_ok = normalize_username(username) == normalize_username(user["username"])
        if not (password_ok and name_ok):
            LOGGER.warning("Login rejected")
            raise InvalidCredentials()
        with self._store.read() as conn:
            conn.execute(
                "UPDATE auth_user SET last_login = ? WHERE id = ?",
                (format_utc(self._clock()), USER_ID),
            )
        return UserIdentity(
            id=int(user["id"]),
            username=user["username"],
            created_at=user["created_at"],
            last_login=user["last_login"],
        )

    def change_password(self, current_password: str, new_password: str) -> None:
        user = self._load_user()
        if user is None:
            raise NoAccount("No account exists")
        if not self._hasher.verify(current_password or "", user["password_hash"]):
            raise IncorrectCurrentPassword()
        pwd = self._check_password(new_password)
        new_hash = self._hasher.hash(pwd)
        with self._store.transaction() as conn:
            conn.execute("UPDATE auth_user SET password_hash = ? WHERE id = ?", (new_hash, USER_ID))
            self._sessions.revoke_all(USER_ID, conn=conn)
        LOGGER.info("Password changed; sessions invalidated")


__all__ = ["CredentialVault", "normalize_username"]
