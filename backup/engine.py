"""Create consistent snapshot copies of the application store."""
from __future__ import annotations

import os
import shutil
import threading
import uuid
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from core.db import StoreHandle
from core.errors import ValidationError
from core.timers import Clock, utc_now

from .errors import BackupError, SourceMissing
from .logs import BackupLogger
from .retention import SnapshotNaming, apply_retention, list_snapshots
from .types import BackupConfig, BackupInfo, RetentionSummary, SnapshotInfo

_MAX_NAME_ATTEMPTS = 1000


class SnapshotEngine:
    """Copy the store file into the backup directory and enforce retention.

    Copies are taken while the store handle is paused with its write-ahead
    log merged, so every commit made before the call is in the snapshot.
    File names come from the injected clock; a name already taken within
    the same second gets a ``-<n>`` suffix.
    """

    def __init__(
        self,
        store: StoreHandle,
        backup_dir: Path,
        *,
        config: Optional[BackupConfig] = None,
        logger: BackupLogger,
        clock: Optional[Clock] = None,
    ) -> None:
        self._store = store
        self._backup_dir = Path(backup_dir)
        self._config = config or BackupConfig()
        self._naming = SnapshotNaming(self._config.prefix, self._config.extension)
        self._logger = logger
        self._clock = clock or utc_now
        self._name_lock = threading.Lock()

    # ------------------------------------------------------------------
    @property
    def backup_dir(self) -> Path:
        return self._backup_dir

    @property
    def naming(self) -> SnapshotNaming:
        return self._naming

    def default_file_name(self) -> str:
        return self._naming.name_for(self._clock())

    # ------------------------------------------------------------------
    def _ensure_source(self) -> Path:
        source = self._store.path
        if not source.is_file():
            raise SourceMissing(f"Database file not found at {source}")
        return source

    def _copy_store(self, staging: Path) -> None:
        with self._store.paused() as db_path:
            shutil.copyfile(db_path, staging)

    def _reserve_name(self, moment: datetime) -> Path:
        # next counter after the highest same-second sibling, so a pruned base name is never reused
        stamp, _ = self._naming.order_key(self._naming.name_for(moment))
        taken = [
            counter
            for other_stamp, counter in (self._naming.order_key(meta.name) for meta in self.list_snapshots())
            if other_stamp == stamp
        ]
        start = max(taken) + 1 if taken else 0
        for counter in range(start, start + _MAX_NAME_ATTEMPTS):
            candidate = self._backup_dir / self._naming.name_for(moment, counter)
            if not candidate.exists():
                return candidate
        raise BackupError("Could not find a free backup file name")

    # ------------------------------------------------------------------
    def create_snapshot(self) -> Path:
        self._ensure_source()
        moment = self._clock()
        try:
            self._backup_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise BackupError(f"Cannot create backup directory {self._backup_dir}: {exc}") from exc

        self._logger.event(event="backup_start", phase="create", ok=True)
        staging = self._backup_dir / f".{uuid.uuid4().hex}.partial"
        try:
            self._copy_store(staging)
            with self._name_lock:
                target = self._reserve_name(moment)
                os.replace(staging, target)
            stamp = moment.timestamp()
            os.utime(target, (stamp, stamp))
        except OSError as exc:
            staging.unlink(missing_ok=True)
            self._logger.error("backup_failed", phase="create", error=str(exc))
            raise BackupError(f"Backup failed: {exc}") from exc

        size = target.stat().st_size
        self._logger.event(event="backup_complete", phase="create", ok=True, path=str(target), size=size)
        self.prune_retention()
        return target

    def export_to(self, destination: Path) -> Path:
        """Copy the store to an arbitrary user-chosen *destination*."""

        self._ensure_source()
        destination = Path(destination)
        staging = destination.with_name(f".{destination.name}.{uuid.uuid4().hex[:8]}.partial")
        try:
            self._copy_store(staging)
            os.replace(staging, destination)
        except OSError as exc:
            staging.unlink(missing_ok=True)
            self._logger.error("export_failed", phase="export", dest=str(destination), error=str(exc))
            raise BackupError(f"Backup failed: {exc}") from exc
        self._logger.event(event="export_complete", phase="export", ok=True, path=str(destination))
        return destination

    # ------------------------------------------------------------------
    def prune_retention(self, max_count: Optional[int] = None) -> RetentionSummary:
        limit = self._config.max_backups if max_count is None else int(max_count)
        if limit < 1:
            raise ValidationError("Retention must keep at least one backup")
        return apply_retention(self._backup_dir, self._naming, limit, logger=self._logger)

    def list_snapshots(self) -> List[SnapshotInfo]:
        return list_snapshots(self._backup_dir, self._naming)

    def last_snapshot_time(self) -> Optional[datetime]:
        snapshots = self.list_snapshots()
        return snapshots[0].modified if snapshots else None

    def get_info(self) -> BackupInfo:
        snapshots = self.list_snapshots()
        return BackupInfo(
            backup_dir=self._backup_dir,
            last_backup_time=snapshots[0].modified if snapshots else None,
            backup_count=len(snapshots),
        )


__all__ = ["SnapshotEngine"]
