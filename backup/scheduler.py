"""Decide when snapshots are taken: startup, periodic, close and manual."""
from __future__ import annotations

import threading
from datetime import timedelta
from typing import Optional

from core.errors import AppError, CancelledByUser, StorageError
from core.timers import Clock, TaskHandle, ThreadTimers, TimerFactory, utc_now

from .engine import SnapshotEngine
from .logs import BackupLogger
from .prompt import DestinationPrompt, NoPrompt
from .types import (
    STATUS_CANCELLED,
    STATUS_CREATED,
    STATUS_FAILED,
    STATUS_SKIPPED,
    BackupConfig,
    BackupOutcome,
)


class BackupScheduler:
    """Trigger snapshots through :class:`SnapshotEngine`.

    The startup check, the periodic timer and the close hook overlap on
    purpose. None of the triggers raise: failures come back as a
    ``failed`` :class:`BackupOutcome`, and periodic failures are only
    logged so later ticks still run.
    """

    def __init__(
        self,
        engine: SnapshotEngine,
        *,
        config: Optional[BackupConfig] = None,
        logger: BackupLogger,
        timers: Optional[TimerFactory] = None,
        prompt: Optional[DestinationPrompt] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._engine = engine
        self._config = config or BackupConfig()
        self._logger = logger
        self._timers = timers or ThreadTimers()
        self._prompt = prompt or NoPrompt()
        self._clock = clock or utc_now
        self._periodic: Optional[TaskHandle] = None
        self._periodic_lock = threading.Lock()

    # ------------------------------------------------------------------
    def _snapshot(self, trigger: str) -> BackupOutcome:
        try:
            path = self._engine.create_snapshot()
        except StorageError as exc:
            self._logger.error("backup_trigger_failed", trigger=trigger, error=exc.message)
            return BackupOutcome(STATUS_FAILED, exc.message)
        self._logger.info("backup_trigger", trigger=trigger, path=str(path))
        return BackupOutcome(STATUS_CREATED, "Backup created successfully", path)

    def create_now(self) -> BackupOutcome:
        return self._snapshot("manual_internal")

    def check_on_startup(self) -> BackupOutcome:
        try:
            last = self._engine.last_snapshot_time()
        except StorageError as exc:
            self._logger.error("startup_check_failed", error=exc.message)
            return BackupOutcome(STATUS_FAILED, exc.message)
        if last is None:
            self._logger.info("startup_check", reason="no_backups")
            return self._snapshot("startup")
        age = self._clock() - last
        threshold = timedelta(hours=self._config.startup_threshold_hours)
        if age > threshold:
            self._logger.info("startup_check", reason="stale", age_hours=round(age.total_seconds() / 3600, 1))
            return self._snapshot("startup")
        self._logger.info("startup_check", reason="recent", age_minutes=int(age.total_seconds() // 60))
        return BackupOutcome(STATUS_SKIPPED, "Recent backup exists, skipping")

    # ------------------------------------------------------------------
    def start_periodic(self, interval_hours: Optional[float] = None) -> None:
        hours = float(interval_hours or self._config.periodic_interval_hours)
        with self._periodic_lock:
            if self._periodic is not None:
                self._periodic.cancel()
            self._periodic = self._timers.every(hours * 3600, self._periodic_tick, name="periodic-backup")
        self._logger.info("periodic_started", interval_hours=hours)

    def stop_periodic(self) -> None:
        with self._periodic_lock:
            task, self._periodic = self._periodic, None
        if task is not None:
            task.cancel()
            self._logger.info("periodic_stopped")

    @property
    def periodic_active(self) -> bool:
        task = self._periodic
        return task is not None and task.active

    def _periodic_tick(self) -> None:
        try:
            self._snapshot("periodic")
        except Exception as exc:  # pragma: no cover - a tick must never escape
            self._logger.error("periodic_tick_failed", error=str(exc))

    # ------------------------------------------------------------------
    def on_close(self) -> BackupOutcome:
        return self._snapshot("close")

    def manual_backup(self) -> BackupOutcome:
        try:
            destination = self._prompt(self._engine.default_file_name())
        except CancelledByUser:
            destination = None
        if destination is None:
            self._logger.info("manual_backup", cancelled=True)
            return BackupOutcome(STATUS_CANCELLED, "Backup cancelled")
        try:
            path = self._engine.export_to(destination)
        except AppError as exc:
            self._logger.error("manual_backup_failed", dest=str(destination), error=exc.message)
            return BackupOutcome(STATUS_FAILED, exc.message)
        return BackupOutcome(STATUS_CREATED, f"Backup saved to {path}", path)


__all__ = ["BackupScheduler"]
