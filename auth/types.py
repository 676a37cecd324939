"""Dataclasses shared by the credential vault and session manager."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

USER_ID = 1


def _coerce_int(value: Any, default: int, *, minimum: int = 1) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number >= minimum else default


@dataclass(slots=True)
class AuthConfig:
    session_expiry_days: int = 30
    remember_me_enabled: bool = True
    single_session: bool = True
    sweep_interval_minutes: int = 60
    hash_rounds: int = 12
    min_username_length: int = 3
    min_password_length: int = 6

    @classmethod
    def from_settings(cls, settings: Optional[Mapping[str, Any]]) -> "AuthConfig":
        raw = settings.get("auth") if isinstance(settings, Mapping) else None
        if not isinstance(raw, Mapping):
            raw = {}
        defaults = cls()
        return cls(
            session_expiry_days=_coerce_int(raw.get("session_expiry_days"), defaults.session_expiry_days),
            remember_me_enabled=bool(raw.get("remember_me_enabled", defaults.remember_me_enabled)),
            single_session=bool(raw.get("single_session", defaults.single_session)),
            sweep_interval_minutes=_coerce_int(raw.get("sweep_interval_minutes"), defaults.sweep_interval_minutes),
            hash_rounds=_coerce_int(raw.get("hash_rounds"), defaults.hash_rounds, minimum=4),
        )


@dataclass(slots=True)
class UserIdentity:
    id: int
    username: str
    created_at: str
    last_login: Optional[str]

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "created_at": self.created_at,
            "last_login": self.last_login,
        }


__all__ = ["AuthConfig", "USER_ID", "UserIdentity"]
