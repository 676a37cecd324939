"""Snapshot backups of the BizDesk store."""
from __future__ import annotations

from .engine import SnapshotEngine
from .errors import BackupError, SourceMissing
from .logs import BackupLogger
from .prompt import DestinationPrompt, NoPrompt, TkSaveDialogPrompt
from .scheduler import BackupScheduler
from .types import BackupConfig, BackupInfo, BackupOutcome, RetentionSummary, SnapshotInfo

__all__ = [
    "BackupConfig",
    "BackupError",
    "BackupInfo",
    "BackupLogger",
    "BackupOutcome",
    "BackupScheduler",
    "DestinationPrompt",
    "NoPrompt",
    "RetentionSummary",
    "SnapshotEngine",
    "SnapshotInfo",
    "SourceMissing",
    "TkSaveDialogPrompt",
]
