from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

__all__ = [
    "APP_DIR_NAME",
    "ensure_working_dir_structure",
    "get_backup_dir",
    "get_data_dir",
    "get_default_settings_paths",
    "get_logs_dir",
    "get_store_path",
    "resolve_working_dir",
]

APP_DIR_NAME = "BizDesk"
_IS_WINDOWS = os.name == "nt"


def _expand_path(value: str) -> Path:
    expanded = os.path.expandvars(os.path.expanduser(value))
    return Path(expanded).resolve()


def _ensure_writable_dir(path: Path) -> bool:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError:
        return False
    test_file = path / f".write_test_{os.getpid()}"
    try:
        with open(test_file, "w", encoding="utf-8") as handle:
            handle.write("ok")
        test_file.unlink(missing_ok=True)
        return True
    except OSError:
        try:
            test_file.unlink(missing_ok=True)
        except OSError:  # pragma: no cover - cleanup
            pass
        return False


def _prepare_working_dir(candidate: Path) -> Optional[Path]:
    if not _ensure_writable_dir(candidate):
        return None
    try:
        get_data_dir(candidate).mkdir(parents=True, exist_ok=True)
        return candidate
    except OSError:
        return None


def _user_data_base() -> Optional[Path]:
    if _IS_WINDOWS:
        for var in ("APPDATA", "LOCALAPPDATA"):
            value = os.environ.get(var)
            if value:
                try:
                    return _expand_path(value)
                except (OSError, RuntimeError):
                    continue
        return None
    xdg = os.environ.get("XDG_DATA_HOME")
    if xdg:
        try:
            return _expand_path(xdg)
        except (OSError, RuntimeError):
            pass
    return Path.home() / ".local" / "share"


def resolve_working_dir() -> Path:
    """Resolve the BizDesk user-data directory, creating it if required."""

    env_home = os.environ.get("BIZDESK_HOME")
    if env_home:
        prepared = _prepare_working_dir(_expand_path(env_home))
        if prepared is not None:
            return prepared

    base = _user_data_base()
    if base is not None:
        prepared = _prepare_working_dir(base / APP_DIR_NAME)
        if prepared is not None:
            return prepared

    fallback = Path.home() / APP_DIR_NAME
    fallback.mkdir(parents=True, exist_ok=True)
    get_data_dir(fallback).mkdir(parents=True, exist_ok=True)
    return fallback


def get_data_dir(working_dir: Path) -> Path:
    return working_dir / "data"


def get_store_path(working_dir: Path, name: str = "app-data.db") -> Path:
    return get_data_dir(working_dir) / name


def get_backup_dir(working_dir: Path) -> Path:
    return working_dir / "backups"


def get_logs_dir(working_dir: Path) -> Path:
    return working_dir / "logs"


def ensure_working_dir_structure(working_dir: Path) -> None:
    for directory in (
        working_dir,
        get_data_dir(working_dir),
        get_backup_dir(working_dir),
        get_logs_dir(working_dir),
    ):
        directory.mkdir(parents=True, exist_ok=True)


def get_default_settings_paths(working_dir: Path) -> list[Path]:
    """Return the search order for settings.json files."""

    return [working_dir / "settings.json"]
