import pytest

from core.errors import (
    AlreadyProvisioned,
    IncorrectCurrentPassword,
    InvalidCredentials,
    InvalidUsername,
    NoAccount,
    PasswordTooLong,
    SessionNotFound,
    StorageError,
    WeakPassword,
)


def test_not_provisioned_initially(vault):
    assert vault.is_provisioned() is False
    with pytest.raises(NoAccount):
        vault.verify("alice", "secret1")


def test_provision_then_verify(vault, clock):
    identity = vault.provision("  Alice ", "secret1")

    assert identity.id == 1
    assert identity.username == "alice"
    assert identity.last_login is None
    assert vault.is_provisioned()

    clock.advance(minutes=5)
    first = vault.verify("ALICE", "secret1")
    assert first.username == "alice"
    assert first.last_login is None

    clock.advance(minutes=5)
    second = vault.verify("alice", "secret1")
    assert second.last_login == "2024-03-01T12:05:00Z"


def test_only_one_account(vault):
    vault.provision("alice", "secret1")
    with pytest.raises(AlreadyProvisioned):
        vault.provision("bob", "secret2")


@pytest.mark.parametrize(
    "username, password, error",
    [
        ("ab", "secret1", InvalidUsername),
        ("   ab   ", "secret1", InvalidUsername),
        ("alice", "12345", WeakPassword),
        ("alice", "x" * 73, PasswordTooLong),
        ("alice", "é" * 37, PasswordTooLong),
    ],
)
def test_provision_rejects_bad_input(vault, username, password, error):
    with pytest.raises(error):
        vault.provision(username, password)
    assert not vault.is_provisioned()


def test_bad_username_and_bad_password_look_the_same(vault):
    vault.provision("alice", "secret1")

    with pytest.raises(InvalidCredentials) as wrong_user:
        vault.verify("bob", "secret1")
    with pytest.raises(InvalidCredentials) as wrong_password:
        vault.verify("alice", "nope-nope")

    assert wrong_user.value.message == wrong_password.value.message == "Invalid username or password"


def test_change_password_revokes_sessions(vault, sessions):
    vault.provision("alice", "secret1")
    token = sessions.issue(1)

    vault.change_password("secret1", "better-secret")

    with pytest.raises(SessionNotFound):
        sessions.validate(token)
    with pytest.raises(InvalidCredentials):
        vault.verify("alice", "secret1")
    assert vault.verify("alice", "better-secret").username == "alice"


def test_change_password_checks_current_first(vault):
    with pytest.raises(NoAccount):
        vault.change_password("secret1", "whatever")

    vault.provision("alice", "secret1")
    with pytest.raises(IncorrectCurrentPassword):
        vault.change_password("wrong-one", "123")
    with pytest.raises(WeakPassword):
        vault.change_password("secret1", "123")
    assert vault.verify("alice", "secret1").id == 1


def test_failed_session_revocation_keeps_old_password(vault, sessions, monkeypatch):
    vault.provision("alice", "secret1")
    token = sessions.issue(1)

    def broken(user_id, *, conn=None):
        raise StorageError("disk I/O error")

    monkeypatch.setattr(sessions, "revoke_all", broken)
    with pytest.raises(StorageError):
        vault.change_password("secret1", "better-secret")

    assert vault.verify("alice", "secret1").id == 1
    assert sessions.validate(token).id == 1
