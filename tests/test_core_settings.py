"""Tests for core.settings helpers."""

from __future__ import annotations

import json
from pathlib import Path

from core.settings import load_settings, merge_defaults, save_settings, update_settings


def test_merge_defaults_includes_backup_and_auth_blocks() -> None:
    merged = merge_defaults({})

    assert merged["database"]["name"] == "app-data.db"
    assert merged["database"]["backup_prefix"] == "app-backup"
    assert merged["backup"]["max_backups"] == 7
    assert merged["backup"]["periodic_interval_hours"] == 6
    assert merged["backup"]["startup_threshold_hours"] == 24
    assert merged["auth"]["session_expiry_days"] == 30
    assert merged["auth"]["single_session"] is True
    assert merged["api"]["host"] == "127.0.0.1"


def test_load_settings_keeps_overrides_and_fills_gaps(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"backup": {"max_backups": 3}}), encoding="utf-8")

    loaded = load_settings(tmp_path)

    assert loaded["backup"]["max_backups"] == 3
    assert loaded["backup"]["enable_periodic"] is True
    assert loaded["auth"]["remember_me_enabled"] is True


def test_load_settings_ignores_malformed_file(tmp_path: Path) -> None:
    (tmp_path / "settings.json").write_text("{not json", encoding="utf-8")

    loaded = load_settings(tmp_path)

    assert loaded == merge_defaults({})


def test_unknown_keys_are_reported(tmp_path: Path) -> None:
    (tmp_path / "settings.json").write_text(
        json.dumps({"backup": {"max_backups": 2, "compress": True}, "theme": "dark"}),
        encoding="utf-8",
    )

    load_settings(tmp_path)

    report = json.loads((tmp_path / "logs" / "settings_unknown.json").read_text(encoding="utf-8"))
    assert report["unknown"] == ["backup.compress", "theme"]


def test_save_and_update_round_trip(tmp_path: Path) -> None:
    save_settings({"auth": {"single_session": False}, "version": 0}, tmp_path)
    stored = json.loads((tmp_path / "settings.json").read_text(encoding="utf-8"))
    assert stored["auth"]["single_session"] is False
    assert stored["auth"]["session_expiry_days"] == 30
    assert stored["version"] == 1

    update_settings(tmp_path, api={"host": "127.0.0.1", "port": 9000})
    assert load_settings(tmp_path)["api"]["port"] == 9000
