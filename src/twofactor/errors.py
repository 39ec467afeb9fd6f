"""Error taxonomy for enrollment and login challenges.

Every error carries a stable message that is safe to show to the end user.
None of them ever include secret material.
"""

from __future__ import annotations


class TwoFactorError(Exception):
    """Base class for all two-factor errors."""

    message = "Two-factor authentication failed."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)

    @property
    def user_message(self) -> str:
        return str(self)


class ConfigurationError(TwoFactorError):
    """No usable secret on file; the user must enroll first."""

    message = "2FA not configured."


NotConfigured = ConfigurationError


class SessionExpired(TwoFactorError):
    """The pending challenge slot is missing or stale."""

    message = "User not found."


class InvalidCode(TwoFactorError):
    """Submitted code did not verify. Recoverable: the caller may retry."""

    message = "Invalid TOTP code."

    def __init__(self, message: str | None = None, *, attempts_remaining: int | None = None) -> None:
        super().__init__(message)
        self.attempts_remaining = attempts_remaining


class TooManyAttempts(TwoFactorError):
    message = "Too many invalid codes. Please sign in again."


class PersistenceError(TwoFactorError):
    """The secret store is unreachable or a write failed."""

    message = "Two-factor storage is unavailable."


class RenderError(TwoFactorError):
    message = "QR code could not be generated."


class NotAuthenticated(TwoFactorError):
    message = "User not found."


class InvalidCredentials(TwoFactorError):
    message = "Invalid login attempt."


class RegistrationFailed(TwoFactorError):
    message = "Registration failed."

    def __init__(self, errors: list[str] | None = None) -> None:
        self.errors = list(errors or [])
        super().__init__("; ".join(self.errors) if self.errors else None)


class CodePreviewDisabled(TwoFactorError):
    message = "Code preview is not available."
