"""Application context: owns the store handle and every component built on it."""
from __future__ import annotations

import atexit
import logging
import signal
import sys
import threading
from pathlib import Path
from typing import Any, Dict, Optional

from auth import AuthConfig, CredentialVault, SessionManager
from backup import BackupConfig, BackupLogger, BackupOutcome, BackupScheduler, SnapshotEngine
from backup.prompt import DestinationPrompt
from core.db import StoreHandle
from core.migrations import apply_schema
from core.paths import ensure_working_dir_structure, get_backup_dir, get_store_path
from core.settings import load_settings
from core.timers import Clock, ThreadTimers, TimerFactory, utc_now
from inventory import InventoryRepository

LOGGER = logging.getLogger("bizdesk.context")


class AppContext:
    """Wire components around a single :class:`StoreHandle`.

    :meth:`start` opens the store, applies the schema and starts the
    background tasks. :meth:`shutdown` is the only teardown path: it takes
    the close snapshot first, then stops the timers, then closes the store.
    It runs at most once however many hooks reach it.
    """

    def __init__(
        self,
        working_dir: Path,
        *,
        settings: Optional[Dict[str, Any]] = None,
        timers: Optional[TimerFactory] = None,
        prompt: Optional[DestinationPrompt] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.working_dir = Path(working_dir)
        ensure_working_dir_structure(self.working_dir)
        self.settings = settings if settings is not None else load_settings(self.working_dir)
        clock = clock or utc_now
        timers = timers or ThreadTimers()

        database = self.settings.get("database") or {}
        self.store = StoreHandle(get_store_path(self.working_dir, str(database.get("name") or "app-data.db")))

        self.auth_config = AuthConfig.from_settings(self.settings)
        self.sessions = SessionManager(self.store, config=self.auth_config, clock=clock, timers=timers)
        self.vault = CredentialVault(self.store, self.sessions, config=self.auth_config, clock=clock)

        self.backup_config = BackupConfig.from_settings(self.settings)
        self.backup_logger = BackupLogger(self.working_dir)
        self.snapshots = SnapshotEngine(
            self.store,
            get_backup_dir(self.working_dir),
            config=self.backup_config,
            logger=self.backup_logger,
            clock=clock,
        )
        self.backups = BackupScheduler(
            self.snapshots,
            config=self.backup_config,
            logger=self.backup_logger,
            timers=timers,
            prompt=prompt,
            clock=clock,
        )
        self.inventory = InventoryRepository(self.store, clock=clock)

        self._started = False
        self._closed = False
        self._lifecycle_lock = threading.RLock()
        self.startup_outcome: Optional[BackupOutcome] = None
        self.close_outcome: Optional[BackupOutcome] = None

    # ------------------------------------------------------------------
    def start(self) -> "AppContext":
        with self._lifecycle_lock:
            if self._closed:
                raise RuntimeError("Application context already shut down")
            if self._started:
                return self
            self.store.open()
            apply_schema(self.store)
            self.startup_outcome = self.backups.check_on_startup()
            LOGGER.info("Startup backup: %s", self.startup_outcome.message)
            if self.backup_config.enable_periodic:
                self.backups.start_periodic()
            self.sessions.start_sweeper()
            atexit.register(self.shutdown)
            self._started = True
        return self

    def shutdown(self) -> Optional[BackupOutcome]:
        # re-entrant: a signal handled mid-shutdown on this thread returns here at once
        with self._lifecycle_lock:
            if self._closed:
                return self.close_outcome
            self._closed = True
            if self._started:
                self.close_outcome = self.backups.on_close()
                LOGGER.info("Close backup: %s", self.close_outcome.message)
            self.backups.stop_periodic()
            self.sessions.stop_sweeper()
            self.store.close()
            atexit.unregister(self.shutdown)
        return self.close_outcome

    @property
    def running(self) -> bool:
        return self._started and not self._closed

    def handle_signal(self, signum: int, _frame=None) -> None:
        """Shut down and exit, unless a shutdown is already under way.

        A signal arriving during the close snapshot is ignored so the
        snapshot finishes; the process then exits through the shutdown
        already in progress.
        """

        if self._closed:
            LOGGER.info("Received signal %s during shutdown, ignoring", signum)
            return
        LOGGER.info("Received signal %s, shutting down", signum)
        self.shutdown()
        sys.exit(128 + int(signum))

    def install_signal_handlers(self) -> None:
        """Make SIGINT/SIGTERM run :meth:`shutdown` before the process exits."""

        for name in ("SIGINT", "SIGTERM"):
            signum = getattr(signal, name, None)
            if signum is not None:
                signal.signal(signum, self.handle_signal)

    def __enter__(self) -> "AppContext":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()


__all__ = ["AppContext"]
