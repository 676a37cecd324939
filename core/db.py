from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Set

from .errors import StorageError

__all__ = [
    "DEFAULT_BUSY_TIMEOUT_MS",
    "StoreHandle",
    "connect",
    "configure_connection",
    "transaction",
]

LOGGER = logging.getLogger("bizdesk.db")

DEFAULT_BUSY_TIMEOUT_MS = 5000

_LIVE_PATHS: Set[str] = set()
_LIVE_LOCK = threading.Lock()


def connect(
    db_path: str | Path,
    *,
    timeout: float = 5.0,
    isolation_level: Optional[str] = None,
    check_same_thread: bool = False,
) -> sqlite3.Connection:
    """Return a configured SQLite connection with sane defaults."""

    path = Path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(
        str(path),
        timeout=timeout,
        isolation_level=isolation_level,
        check_same_thread=check_same_thread,
    )
    conn.row_factory = sqlite3.Row
    configure_connection(conn)
    return conn


def configure_connection(conn: sqlite3.Connection, *, enable_wal: bool = True) -> None:
    conn.execute(f"PRAGMA busy_timeout={int(DEFAULT_BUSY_TIMEOUT_MS)}")
    if enable_wal:
        try:
            conn.execute("PRAGMA journal_mode=WAL")
        except sqlite3.DatabaseError:
            pass
    conn.execute("PRAGMA foreign_keys=ON")


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    try:
        conn.execute("BEGIN IMMEDIATE")
        yield conn
    except Exception:
        conn.rollback()
        raise
    else:
        conn.commit()


class StoreHandle:
    """Process-wide owner of the single connection to the store file.

    The connection is opened on first use and closed exactly once by
    :meth:`close`. Every access is serialized through a re-entrant lock so
    background timer threads and request handlers never interleave
    statements. Only one live handle per database file is allowed.
    """

    def __init__(self, db_path: str | Path, *, timeout: float = 5.0) -> None:
        self._path = Path(db_path)
        self._timeout = timeout
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()
        self._key = str(self._path.resolve())

    # ------------------------------------------------------------------
    @property
    def path(self) -> Path:
        return self._path

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def open(self) -> sqlite3.Connection:
        with self._lock:
            if self._conn is not None:
                return self._conn
            with _LIVE_LOCK:
                if self._key in _LIVE_PATHS:
                    raise StorageError(f"Database {self._path} is already open in this process")
                try:
                    self._conn = connect(self._path, timeout=self._timeout)
                except (sqlite3.Error, OSError) as exc:
                    raise StorageError(f"Failed to open database: {exc}") from exc
                _LIVE_PATHS.add(self._key)
            LOGGER.info("Database opened at %s", self._path)
            return self._conn

    def close(self) -> None:
        with self._lock:
            conn = self._conn
            if conn is None:
                return
            self._conn = None
            try:
                conn.execute("PRAGMA wal_checkpoint(TRUNCATE)")
            except sqlite3.Error as exc:
                LOGGER.warning("Checkpoint before close failed: %s", exc)
            finally:
                conn.close()
                with _LIVE_LOCK:
                    _LIVE_PATHS.discard(self._key)
            LOGGER.info("Database closed")

    def __enter__(self) -> "StoreHandle":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    @contextmanager
    def read(self) -> Iterator[sqlite3.Connection]:
        """Yield the connection for autocommit reads and single statements."""

        with self._lock:
            conn = self.open()
            try:
                yield conn
            except sqlite3.Error as exc:
                raise StorageError(f"Database error: {exc}") from exc

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Yield the connection inside ``BEGIN IMMEDIATE`` ... ``COMMIT``."""

        with self._lock:
            conn = self.open()
            try:
                with transaction(conn):
                    yield conn
            except sqlite3.Error as exc:
                raise StorageError(f"Database error: {exc}") from exc

    @contextmanager
    def paused(self) -> Iterator[Path]:
        """Hold the store still with the WAL merged into the main file.

        While the context is active no statement runs on the handle, so a
        byte copy of :attr:`path` captures every committed write.
        """

        with self._lock:
            if self._conn is not None:
                try:
                    row = self._conn.execute("PRAGMA wal_checkpoint(TRUNCATE)").fetchone()
                except sqlite3.Error as exc:
                    raise StorageError(f"Checkpoint failed: {exc}") from exc
                if row is not None and int(row[0]) != 0:
                    raise StorageError("Checkpoint could not complete; database is busy")
            yield self._path
