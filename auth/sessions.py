"""Remember-me session tokens for the single local user."""
from __future__ import annotations

import logging
import secrets
import sqlite3
import threading
from datetime import timedelta
from typing import Optional

from core.db import StoreHandle
from core.errors import SessionExpired, SessionNotFound, StorageError, ValidationError
from core.logging_utils import redact_secret
from core.timefmt import format_utc, parse_utc
from core.timers import Clock, TaskHandle, ThreadTimers, TimerFactory, utc_now

from .types import AuthConfig, UserIdentity

LOGGER = logging.getLogger("bizdesk.auth.sessions")

_TOKEN_BYTES = 32


class SessionManager:
    """Issue, validate and expire session tokens.

    Expired rows disappear two ways: lazily when :meth:`validate` meets
    one, and in bulk through :meth:`sweep_expired`, which the manager runs
    on its own repeating task once :meth:`start_sweeper` is called.
    """

    def __init__(
        self,
        store: StoreHandle,
        *,
        config: Optional[AuthConfig] = None,
        clock: Optional[Clock] = None,
        timers: Optional[TimerFactory] = None,
    ) -> None:
        self._store = store
        self._config = config or AuthConfig()
        self._clock = clock or utc_now
        self._timers = timers or ThreadTimers()
        self._sweeper: Optional[TaskHandle] = None
        self._sweeper_lock = threading.Lock()

    # ------------------------------------------------------------------
    def issue(self, user_id: int, expiry_days: Optional[int] = None) -> str:
        days = self._config.session_expiry_days if expiry_days is None else int(expiry_days)
        if days <= 0:
            raise ValidationError("Session expiry must be at least one day")
        token = secrets.token_urlsafe(_TOKEN_BYTES)
        now = self._clock()
        expires = now + timedelta(days=days)
        with self._store.transaction() as conn:
            if self._config.single_session:
                conn.execute("DELETE FROM auth_sessions WHERE user_id = ?", (user_id,))
            conn.execute(
                "INSERT INTO auth_sessions (id, user_id, created_at, expires_at) VALUES (?, ?, ?, ?)",
                (token, user_id, format_utc(now), format_utc(expires)),
            )
        LOGGER.info("Session issued token=%s expires=%s", redact_secret(token), format_utc(expires))
        return token

    def validate(self, token: str) -> UserIdentity:
        if not token:
            raise SessionNotFound()
        with self._store.read() as conn:
            row = conn.execute(
                """
                SELECT s.id, s.expires_at, u.id AS user_id, u.username, u.created_at, u.last_login
                FROM auth_sessions s
                JOIN auth_user u ON s.user_id = u.id
                WHERE s.id = ?
                """,
                (token,),
            ).fetchone()
            if row is None:
                raise SessionNotFound()
            expires = parse_utc(row["expires_at"])
            if expires is None or expires <= self._clock():
                conn.execute("DELETE FROM auth_sessions WHERE id = ?", (token,))
                LOGGER.info("Expired session removed token=%s", redact_secret(token))
                raise SessionExpired()
        return UserIdentity(
            id=int(row["user_id"]),
            username=row["username"],
            created_at=row["created_at"],
            last_login=row["last_login"],
        )

    def revoke(self, token: str) -> None:
        if not token:
            return
        with self._store.read() as conn:
            conn.execute("DELETE FROM auth_sessions WHERE id = ?", (token,))

    def revoke_all(self, user_id: int, *, conn: Optional[sqlite3.Connection] = None) -> int:
        """Delete every session of *user_id*.

        With *conn* the delete joins the caller's open transaction.
        """

        if conn is not None:
            removed = conn.execute("DELETE FROM auth_sessions WHERE user_id = ?", (user_id,)).rowcount
        else:
            with self._store.read() as own:
                removed = own.execute("DELETE FROM auth_sessions WHERE user_id = ?", (user_id,)).rowcount
        if removed:
            LOGGER.info("Revoked %d session(s) for user %d", removed, user_id)
        return removed

    def sweep_expired(self) -> int:
        now = format_utc(self._clock())
        with self._store.read() as conn:
            removed = conn.execute("DELETE FROM auth_sessions WHERE expires_at <= ?", (now,)).rowcount
        if removed:
            LOGGER.info("Cleaned up %d expired session(s)", removed)
        return removed

    # ------------------------------------------------------------------
    def start_sweeper(self, interval_minutes: Optional[int] = None) -> None:
        minutes = interval_minutes or self._config.sweep_interval_minutes
        with self._sweeper_lock:
            if self._sweeper is not None:
                self._sweeper.cancel()
            self._sweeper = self._timers.every(minutes * 60, self._sweep_tick, name="session-sweeper")
        LOGGER.info("Session sweeper started (every %d minutes)", minutes)

    def stop_sweeper(self) -> None:
        with self._sweeper_lock:
            sweeper, self._sweeper = self._sweeper, None
        if sweeper is not None:
            sweeper.cancel()
            LOGGER.info("Session sweeper stopped")

    @property
    def sweeper_active(self) -> bool:
        sweeper = self._sweeper
        return sweeper is not None and sweeper.active

    def _sweep_tick(self) -> None:
        try:
            self.sweep_expired()
        except StorageError as exc:
            LOGGER.error("Session cleanup failed: %s", exc)


__all__ = ["SessionManager"]
