"""Error hierarchy for backup operations."""
from __future__ import annotations

from core.errors import StorageError


class BackupError(StorageError):
    """Base exception for backup related failures."""

    default_message = "Backup failed"


class SourceMissing(BackupError):
    """Raised when the live database file does not exist."""

    default_message = "Database file not found"


__all__ = ["BackupError", "SourceMissing"]
