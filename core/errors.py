"""Error taxonomy shared by the auth, backup and inventory layers."""
from __future__ import annotations

__all__ = [
    "AlreadyProvisioned",
    "AppError",
    "AuthenticationError",
    "CancelledByUser",
    "ConflictError",
    "IncorrectCurrentPassword",
    "InvalidCredentials",
    "InvalidUsername",
    "NoAccount",
    "NotFoundError",
    "PasswordTooLong",
    "SessionExpired",
    "SessionNotFound",
    "StorageError",
    "ValidationError",
    "WeakPassword",
]


class AppError(RuntimeError):
    """Base exception carrying a user-facing message."""

    kind = "error"
    default_message = "Operation failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class ValidationError(AppError):
    kind = "validation"
    default_message = "Invalid input"


class AuthenticationError(AppError):
    kind = "authentication"
    default_message = "Authentication required"


class ConflictError(AppError):
    kind = "conflict"
    default_message = "Conflicting state"


class NotFoundError(AppError):
    kind = "not_found"
    default_message = "Not found"


class StorageError(AppError):
    kind = "storage"
    default_message = "Storage failure"


class CancelledByUser(AppError):
    """Raised when the user dismisses an interactive prompt."""

    kind = "cancelled"
    default_message = "Cancelled"


class InvalidUsername(ValidationError):
    default_message = "Username must be at least 3 characters"


class WeakPassword(ValidationError):
    default_message = "Password must be at least 6 characters"


class PasswordTooLong(ValidationError):
    default_message = "Password must be at most 72 bytes"


class NoAccount(AuthenticationError):
    default_message = "No account exists. Please set up your account first."


class InvalidCredentials(AuthenticationError):
    default_message = "Invalid username or password"


class IncorrectCurrentPassword(AuthenticationError):
    default_message = "Current password is incorrect"


class SessionNotFound(AuthenticationError):
    default_message = "Session not found"


class SessionExpired(AuthenticationError):
    default_message = "Session expired"


class AlreadyProvisioned(ConflictError):
    default_message = "User already exists"
