from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, List

import pytest

from auth import AuthConfig, CredentialVault, PasswordHasher, SessionManager
from core.db import StoreHandle
from core.migrations import apply_schema


class FakeClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


class ManualTask:
    def __init__(self, interval_s: float, callback: Callable[[], object], name: str) -> None:
        self.interval_s = interval_s
        self.callback = callback
        self.name = name
        self.cancelled = False

    @property
    def active(self) -> bool:
        return not self.cancelled

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        self.callback()


class ManualTimers:
    """Timer factory whose tasks only run when a test calls ``fire``."""

    def __init__(self) -> None:
        self.tasks: List[ManualTask] = []

    def every(self, interval_s: float, callback: Callable[[], object], *, name: str) -> ManualTask:
        task = ManualTask(interval_s, callback, name)
        self.tasks.append(task)
        return task

    def active(self, name: str) -> List[ManualTask]:
        return [task for task in self.tasks if task.name == name and task.active]


class StubLogger:
    def __init__(self) -> None:
        self.events = []

    def event(self, *, event: str, phase: str, ok: bool, **extra):
        self.events.append(("event", event, phase, ok, extra))

    def info(self, event: str, **extra):
        self.events.append(("info", event, extra))

    def warning(self, event: str, **extra):
        self.events.append(("warning", event, extra))

    def error(self, event: str, **extra):
        self.events.append(("error", event, extra))

    def names(self, level: str | None = None) -> List[str]:
        return [entry[1] for entry in self.events if level is None or entry[0] == level]


FAST_AUTH = AuthConfig(hash_rounds=4)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def timers() -> ManualTimers:
    return ManualTimers()


@pytest.fixture
def stub_logger() -> StubLogger:
    return StubLogger()


@pytest.fixture
def store(tmp_path: Path):
    handle = StoreHandle(tmp_path / "data" / "app-data.db")
    handle.open()
    apply_schema(handle)
    yield handle
    handle.close()


@pytest.fixture
def sessions(store: StoreHandle, clock: FakeClock, timers: ManualTimers) -> SessionManager:
    return SessionManager(store, config=FAST_AUTH, clock=clock, timers=timers)


@pytest.fixture
def vault(store: StoreHandle, sessions: SessionManager, clock: FakeClock) -> CredentialVault:
    return CredentialVault(
        store,
        sessions,
        config=FAST_AUTH,
        hasher=PasswordHasher(FAST_AUTH.hash_rounds),
        clock=clock,
    )
