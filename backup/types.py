"""Common dataclasses shared across backup modules."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, List, Mapping, Optional

STATUS_CREATED = "created"
STATUS_SKIPPED = "skipped"
STATUS_CANCELLED = "cancelled"
STATUS_FAILED = "failed"


def _positive(value: Any, default: float, cast=int):
    try:
        number = cast(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


@dataclass(slots=True)
class BackupConfig:
    """Settings controlling snapshot naming, retention and scheduling."""

    prefix: str = "app-backup"
    extension: str = "db"
    max_backups: int = 7
    periodic_interval_hours: float = 6
    startup_threshold_hours: float = 24
    enable_periodic: bool = True

    @classmethod
    def from_settings(cls, settings: Optional[Mapping[str, Any]]) -> "BackupConfig":
        settings = settings if isinstance(settings, Mapping) else {}
        database = settings.get("database") if isinstance(settings.get("database"), Mapping) else {}
        raw = settings.get("backup") if isinstance(settings.get("backup"), Mapping) else {}
        defaults = cls()
        prefix = str(database.get("backup_prefix") or defaults.prefix).strip() or defaults.prefix
        extension = str(database.get("backup_extension") or defaults.extension).strip().lstrip(".")
        return cls(
            prefix=prefix,
            extension=extension or defaults.extension,
            max_backups=_positive(raw.get("max_backups"), defaults.max_backups),
            periodic_interval_hours=_positive(
                raw.get("periodic_interval_hours"), defaults.periodic_interval_hours, float
            ),
            startup_threshold_hours=_positive(
                raw.get("startup_threshold_hours"), defaults.startup_threshold_hours, float
            ),
            enable_periodic=bool(raw.get("enable_periodic", defaults.enable_periodic)),
        )


@dataclass(slots=True)
class SnapshotInfo:
    """Single snapshot file found in the backup directory."""

    name: str
    path: Path
    modified: datetime
    size_bytes: int


@dataclass(slots=True)
class RetentionSummary:
    removed: List[str]
    kept: List[str]
    freed_bytes: int


@dataclass(slots=True)
class BackupInfo:
    backup_dir: Path
    last_backup_time: Optional[datetime]
    backup_count: int


@dataclass(slots=True)
class BackupOutcome:
    """Result of a scheduler trigger; never carries a raw exception."""

    status: str
    message: str
    path: Optional[Path] = None

    @property
    def ok(self) -> bool:
        return self.status in (STATUS_CREATED, STATUS_SKIPPED)

    @property
    def cancelled(self) -> bool:
        return self.status == STATUS_CANCELLED


__all__ = [
    "BackupConfig",
    "BackupInfo",
    "BackupOutcome",
    "RetentionSummary",
    "STATUS_CANCELLED",
    "STATUS_CREATED",
    "STATUS_FAILED",
    "STATUS_SKIPPED",
    "SnapshotInfo",
]
