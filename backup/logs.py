"""JSONL event log for snapshot, retention and scheduler activity."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Optional

from core.paths import get_logs_dir
from core.timefmt import format_utc
from core.timers import Clock, utc_now

LOGGER = logging.getLogger("bizdesk.backup")

LOG_FILE_NAME = "backup.jsonl"


class BackupLogger:
    """Append one JSON object per backup event to ``logs/backup.jsonl``.

    Every entry is mirrored to the ``bizdesk.backup`` logger. A failing
    write to the JSONL file is reported there and never interrupts the
    backup that produced the event.
    """

    def __init__(self, working_dir: Path, *, clock: Optional[Clock] = None) -> None:
        self._path = get_logs_dir(Path(working_dir)) / LOG_FILE_NAME
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._clock = clock or utc_now
        self._lock = Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _emit(self, level: int, record: Dict[str, Any]) -> None:
        record.setdefault("ts", format_utc(self._clock()))
        line = json.dumps(record, sort_keys=True, default=str)
        with self._lock:
            try:
                with self._path.open("a", encoding="utf-8") as handle:
                    handle.write(line + "\n")
            except OSError as exc:
                LOGGER.warning("Could not append to %s: %s", self._path, exc)
        LOGGER.log(level, "%s", line)

    def event(self, *, event: str, phase: str, ok: bool, **extra: Any) -> None:
        record: Dict[str, Any] = dict(extra)
        record.update(event=event, phase=phase, ok=bool(ok))
        self._emit(logging.INFO if ok else logging.ERROR, record)

    def info(self, event: str, **extra: Any) -> None:
        self._emit(logging.INFO, {**extra, "event": event, "ok": True})

    def warning(self, event: str, **extra: Any) -> None:
        self._emit(logging.WARNING, {**extra, "event": event, "ok": False})

    def error(self, event: str, **extra: Any) -> None:
        self._emit(logging.ERROR, {**extra, "event": event, "ok": False})


__all__ = ["BackupLogger", "LOG_FILE_NAME"]
