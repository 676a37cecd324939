"""Single-user authentication and remember-me sessions for BizDesk."""
from __future__ import annotations

from .passwords import PasswordHasher
from .sessions import SessionManager
from .types import USER_ID, AuthConfig, UserIdentity
from .vault import CredentialVault

__all__ = [
    "AuthConfig",
    "CredentialVault",
    "PasswordHasher",
    "SessionManager",
    "USER_ID",
    "UserIdentity",
]
