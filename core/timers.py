"""Cancellable repeating tasks used for periodic backups and session sweeps."""
from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol

__all__ = [
    "Clock",
    "RepeatingTask",
    "TaskHandle",
    "ThreadTimers",
    "TimerFactory",
    "utc_now",
]

LOGGER = logging.getLogger("bizdesk.timers")

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TaskHandle(Protocol):
    @property
    def active(self) -> bool: ...

    def cancel(self) -> None: ...


class TimerFactory(Protocol):
    def every(self, interval_s: float, callback: Callable[[], object], *, name: str) -> TaskHandle: ...


class RepeatingTask:
    """Run *callback* every *interval_s* seconds on a daemon thread.

    The first run happens one full interval after :meth:`start`. Exceptions
    raised by the callback are logged and never stop later runs.
    """

    def __init__(self, interval_s: float, callback: Callable[[], object], *, name: str) -> None:
        if interval_s <= 0:
            raise ValueError("interval must be positive")
        self._interval = float(interval_s)
        self._callback = callback
        self._name = name
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return self._name

    @property
    def interval_s(self) -> float:
        return self._interval

    @property
    def active(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive() and not self._stop_event.is_set()

    def start(self) -> "RepeatingTask":
        with self._lock:
            if self._thread and self._thread.is_alive():
                return self
            self._stop_event.clear()
            self._thread = threading.Thread(target=self._run_loop, name=self._name, daemon=True)
            self._thread.start()
        return self

    def cancel(self, timeout: float = 2.0) -> None:
        self._stop_event.set()
        with self._lock:
            thread = self._thread
            self._thread = None
        if thread and thread is not threading.current_thread():
            thread.join(timeout=timeout)

    def _run_loop(self) -> None:
        while not self._stop_event.wait(self._interval):
            try:
                self._callback()
            except Exception:  # pragma: no cover - callbacks log their own failures
                LOGGER.exception("Repeating task %s failed", self._name)


class ThreadTimers:
    """Default :class:`TimerFactory` backed by :class:`RepeatingTask`."""

    def every(self, interval_s: float, callback: Callable[[], object], *, name: str) -> RepeatingTask:
        return RepeatingTask(interval_s, callback, name=name).start()
