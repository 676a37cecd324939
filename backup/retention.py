"""Snapshot naming, enumeration and count-based retention."""
from __future__ import annotations

import re
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Protocol, Tuple

from .errors import BackupError
from .types import RetentionSummary, SnapshotInfo

_STAMP_FORMAT = "%Y-%m-%d_%H%M%S"


class _EventLogger(Protocol):
    def warning(self, event: str, **extra) -> None: ...

    def event(self, *, event: str, phase: str, ok: bool, **extra) -> None: ...


class SnapshotNaming:
    """``<prefix>_<YYYY-MM-DD>_<HHMMSS>[-<n>].<ext>`` file names."""

    def __init__(self, prefix: str, extension: str) -> None:
        self.prefix = prefix
        self.extension = extension.lstrip(".")
        self._pattern = re.compile(
            rf"^{re.escape(self.prefix)}_(?P<stamp>\d{{4}}-\d{{2}}-\d{{2}}_\d{{6}})(?:-(?P<counter>\d+))?"
            rf"\.{re.escape(self.extension)}$"
        )

    def name_for(self, moment: datetime, counter: int = 0) -> str:
        stamp = moment.astimezone(timezone.utc).strftime(_STAMP_FORMAT)
        suffix = f"-{counter}" if counter else ""
        return f"{self.prefix}_{stamp}{suffix}.{self.extension}"

    def matches(self, name: str) -> bool:
        return bool(self._pattern.match(name))

    def order_key(self, name: str) -> Tuple[str, int]:
        """``(stamp, counter)``; a later ``-<n>`` sibling sorts after its base name."""

        match = self._pattern.match(name)
        if match is None:
            raise ValueError(f"Not a snapshot name: {name}")
        return match.group("stamp"), int(match.group("counter") or 0)


def list_snapshots(backup_dir: Path, naming: SnapshotNaming) -> List[SnapshotInfo]:
    """Return pattern-matching snapshots, newest first.

    Ordering is by modification time, then by the name's stamp and numeric
    suffix, all descending. Same-second snapshots with equal mtimes thus
    rank ``-2`` above ``-1`` above the base name, and ``-10`` above ``-9``.
    """

    items: List[SnapshotInfo] = []
    if not backup_dir.exists():
        return items
    try:
        children = list(backup_dir.iterdir())
    except OSError as exc:
        raise BackupError(f"Cannot list backups in {backup_dir}: {exc}") from exc
    for child in children:
        if not naming.matches(child.name):
            continue
        try:
            stat = child.stat()
        except FileNotFoundError:
            continue
        except OSError as exc:
            raise BackupError(f"Cannot stat {child}: {exc}") from exc
        if not child.is_file():
            continue
        items.append(
            SnapshotInfo(
                name=child.name,
                path=child,
                modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                size_bytes=stat.st_size,
            )
        )
    items.sort(key=lambda meta: (meta.modified, naming.order_key(meta.name)), reverse=True)
    return items


def apply_retention(
    backup_dir: Path,
    naming: SnapshotNaming,
    max_count: int,
    *,
    logger: Optional[_EventLogger] = None,
) -> RetentionSummary:
    if max_count < 1:
        raise ValueError("max_count must be at least 1")
    items = list_snapshots(backup_dir, naming)
    keep, drop = items[:max_count], items[max_count:]

    removed: List[str] = []
    freed = 0
    for meta in drop:
        try:
            meta.path.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            raise BackupError(f"Failed to delete old backup {meta.name}: {exc}") from exc
        removed.append(meta.name)
        freed += meta.size_bytes
        if logger is not None:
            logger.warning("backup_removed", name=meta.name, reason="retention")

    if logger is not None:
        logger.event(event="retention_applied", phase="retention", ok=True, removed=len(removed), kept=len(keep))
    return RetentionSummary(removed=removed, kept=[meta.name for meta in keep], freed_bytes=freed)


__all__ = ["SnapshotNaming", "apply_retention", "list_snapshots"]
