import sqlite3

import pytest

from core.db import StoreHandle
from core.errors import StorageError
from core.migrations import DEFAULT_CATEGORIES, apply_schema


def test_second_live_handle_is_refused(tmp_path):
    path = tmp_path / "app.db"
    first = StoreHandle(path)
    first.open()
    try:
        with pytest.raises(StorageError):
            StoreHandle(path).open()
    finally:
        first.close()

    # released on close
    second = StoreHandle(path)
    second.open()
    second.close()


def test_close_is_idempotent(tmp_path):
    handle = StoreHandle(tmp_path / "app.db")
    handle.open()
    handle.close()
    handle.close()
    assert not handle.is_open


def test_transaction_rolls_back_on_error(store):
    with pytest.raises(RuntimeError):
        with store.transaction() as conn:
            conn.execute("INSERT INTO categories (id, name) VALUES ('c-x', 'Temp')")
            raise RuntimeError("boom")

    with store.read() as conn:
        assert conn.execute("SELECT COUNT(*) FROM categories WHERE id = 'c-x'").fetchone()[0] == 0


def test_sqlite_errors_surface_as_storage_error(store):
    with pytest.raises(StorageError) as excinfo:
        with store.read() as conn:
            conn.execute("SELECT * FROM no_such_table")
    assert isinstance(excinfo.value.__cause__, sqlite3.Error)


def test_paused_copy_contains_committed_rows(store, tmp_path):
    with store.transaction() as conn:
        conn.execute("INSERT INTO categories (id, name) VALUES ('c-1', 'Tools')")

    copy = tmp_path / "copy.db"
    with store.paused() as path:
        copy.write_bytes(path.read_bytes())

    conn = sqlite3.connect(copy)
    try:
        names = {row[0] for row in conn.execute("SELECT name FROM categories")}
    finally:
        conn.close()
    assert "Tools" in names


def test_schema_is_idempotent_and_seeds_once(store):
    apply_schema(store)
    apply_schema(store)

    with store.read() as conn:
        rows = conn.execute("SELECT id FROM categories ORDER BY id").fetchall()
    assert [row["id"] for row in rows] == [cat_id for cat_id, _ in DEFAULT_CATEGORIES]


def test_schema_allows_a_single_user_row(store):
    with store.transaction() as conn:
        conn.execute(
            "INSERT INTO auth_user (id, username, password_hash, created_at) VALUES (1, 'a', 'h', 't')"
        )
    with pytest.raises(StorageError):
        with store.transaction() as conn:
            conn.execute(
                "INSERT INTO auth_user (id, username, password_hash, created_at) VALUES (2, 'b', 'h', 't')"
            )
