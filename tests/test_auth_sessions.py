import pytest

from auth import AuthConfig, SessionManager
from core.errors import SessionExpired, SessionNotFound, StorageError, ValidationError


def _count_sessions(store) -> int:
    with store.read() as conn:
        return conn.execute("SELECT COUNT(*) FROM auth_sessions").fetchone()[0]


@pytest.fixture
def user(vault):
    return vault.provision("alice", "secret1")


def test_issue_and_validate(sessions, user):
    token = sessions.issue(user.id)

    assert len(token) >= 40
    identity = sessions.validate(token)
    assert identity.username == "alice"


def test_unknown_token(sessions, user):
    with pytest.raises(SessionNotFound):
        sessions.validate("not-a-token")
    with pytest.raises(SessionNotFound):
        sessions.validate("")


def test_expired_session_is_deleted_on_validate(sessions, store, clock, user):
    token = sessions.issue(user.id, expiry_days=1)
    clock.advance(days=1)

    with pytest.raises(SessionExpired):
        sessions.validate(token)
    assert _count_sessions(store) == 0

    # a second look finds nothing; the row is already gone
    with pytest.raises(SessionNotFound):
        sessions.validate(token)


def test_non_positive_expiry_rejected(sessions, user):
    with pytest.raises(ValidationError):
        sessions.issue(user.id, expiry_days=0)


def test_single_session_replaces_previous(sessions, user):
    first = sessions.issue(user.id)
    second = sessions.issue(user.id)

    with pytest.raises(SessionNotFound):
        sessions.validate(first)
    assert sessions.validate(second).id == user.id


def test_multiple_sessions_when_policy_disabled(store, clock, timers, user):
    manager = SessionManager(store, config=AuthConfig(single_session=False, hash_rounds=4), clock=clock, timers=timers)
    first = manager.issue(user.id)
    second = manager.issue(user.id)

    assert manager.validate(first).id == manager.validate(second).id == 1
    assert manager.revoke_all(user.id) == 2


def test_revoke_is_idempotent(sessions, store, user):
    token = sessions.issue(user.id)
    sessions.revoke(token)
    sessions.revoke(token)
    assert _count_sessions(store) == 0


def test_sweep_removes_only_expired(store, clock, timers, user):
    manager = SessionManager(store, config=AuthConfig(single_session=False, hash_rounds=4), clock=clock, timers=timers)
    short = manager.issue(user.id, expiry_days=1)
    long = manager.issue(user.id, expiry_days=30)
    clock.advance(days=2)

    assert manager.sweep_expired() == 1
    assert manager.sweep_expired() == 0
    with pytest.raises(SessionNotFound):
        manager.validate(short)
    assert manager.validate(long).id == 1


def test_sweeper_start_stop(sessions, timers, clock, store, user):
    sessions.issue(user.id, expiry_days=1)
    sessions.start_sweeper()
    sessions.start_sweeper(interval_minutes=5)

    live = timers.active("session-sweeper")
    assert len(live) == 1
    assert live[0].interval_s == 300
    assert sessions.sweeper_active

    clock.advance(days=3)
    live[0].fire()
    assert _count_sessions(store) == 0

    sessions.stop_sweeper()
    sessions.stop_sweeper()
    assert not sessions.sweeper_active
    assert timers.active("session-sweeper") == []


def test_sweep_tick_swallows_storage_errors(sessions, monkeypatch):
    def broken():
        raise StorageError("disk gone")

    monkeypatch.setattr(sessions, "sweep_expired", broken)
    sessions._sweep_tick()
