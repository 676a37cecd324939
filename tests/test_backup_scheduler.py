import pytest

from backup import BackupConfig, BackupScheduler, SnapshotEngine
from backup.errors import BackupError
from core.errors import CancelledByUser


@pytest.fixture
def config():
    return BackupConfig(max_backups=5, periodic_interval_hours=6, startup_threshold_hours=24)


@pytest.fixture
def engine(store, tmp_path, stub_logger, clock, config):
    return SnapshotEngine(store, tmp_path / "backups", config=config, logger=stub_logger, clock=clock)


def _scheduler(engine, config, stub_logger, timers, clock, prompt=None):
    return BackupScheduler(engine, config=config, logger=stub_logger, timers=timers, prompt=prompt, clock=clock)


@pytest.fixture
def scheduler(engine, config, stub_logger, timers, clock):
    return _scheduler(engine, config, stub_logger, timers, clock)


def test_startup_with_empty_directory_creates_then_skips(scheduler, engine, clock):
    first = scheduler.check_on_startup()
    assert first.status == "created"
    assert first.path is not None and first.path.exists()

    clock.advance(hours=1)
    second = scheduler.check_on_startup()
    assert second.status == "skipped"
    assert second.message == "Recent backup exists, skipping"
    assert engine.get_info().backup_count == 1


def test_startup_with_stale_backup_creates_new_one(scheduler, engine, clock):
    scheduler.check_on_startup()
    clock.advance(hours=25)

    outcome = scheduler.check_on_startup()

    assert outcome.status == "created"
    assert engine.get_info().backup_count == 2


def test_periodic_start_is_idempotent(scheduler, timers, engine):
    scheduler.start_periodic()
    scheduler.start_periodic(interval_hours=2)

    live = timers.active("periodic-backup")
    assert len(live) == 1
    assert live[0].interval_s == 2 * 3600
    assert scheduler.periodic_active

    live[0].fire()
    assert engine.get_info().backup_count == 1

    scheduler.stop_periodic()
    scheduler.stop_periodic()
    assert not scheduler.periodic_active
    assert timers.active("periodic-backup") == []


def test_periodic_failure_is_swallowed(scheduler, timers, engine, monkeypatch, stub_logger):
    def broken():
        raise BackupError("disk full")

    monkeypatch.setattr(engine, "create_snapshot", broken)
    scheduler.start_periodic()
    task = timers.active("periodic-backup")[0]

    task.fire()
    task.fire()

    assert task.active
    assert stub_logger.names("error").count("backup_trigger_failed") == 2


def test_close_backup_failure_returns_outcome(scheduler, engine, monkeypatch):
    def broken():
        raise BackupError("disk full")

    monkeypatch.setattr(engine, "create_snapshot", broken)

    outcome = scheduler.on_close()

    assert outcome.status == "failed"
    assert outcome.message == "disk full"
    assert not outcome.ok


def test_create_now(scheduler):
    outcome = scheduler.create_now()
    assert outcome.status == "created"
    assert outcome.message == "Backup created successfully"


def test_manual_backup_without_prompt_is_cancelled(scheduler):
    outcome = scheduler.manual_backup()
    assert outcome.status == "cancelled"
    assert outcome.cancelled
    assert outcome.message == "Backup cancelled"


def test_manual_backup_prompt_cancel_exception(engine, config, stub_logger, timers, clock):
    def prompt(default_name):
        raise CancelledByUser()

    outcome = _scheduler(engine, config, stub_logger, timers, clock, prompt=prompt).manual_backup()
    assert outcome.cancelled


def test_manual_backup_success(engine, config, stub_logger, timers, clock, tmp_path):
    seen = []
    target = tmp_path / "chosen.db"

    def prompt(default_name):
        seen.append(default_name)
        return target

    outcome = _scheduler(engine, config, stub_logger, timers, clock, prompt=prompt).manual_backup()

    assert seen == ["app-backup_2024-03-01_120000.db"]
    assert outcome.status == "created"
    assert outcome.message == f"Backup saved to {target}"
    assert target.exists()
    assert engine.get_info().backup_count == 0


def test_manual_backup_failure(engine, config, stub_logger, timers, clock, tmp_path):
    target = tmp_path / "missing-dir" / "chosen.db"
    outcome = _scheduler(engine, config, stub_logger, timers, clock, prompt=lambda name: target).manual_backup()

    assert outcome.status == "failed"
    assert not outcome.cancelled
