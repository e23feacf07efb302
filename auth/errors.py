"""
auth/errors.py -- Domain exceptions raised by the auth and admin services.

Each error carries the HTTP status it maps to and a client-safe message. The
API layer installs one exception handler for AuthError that renders
{"message": ...} with that status, so services stay free of FastAPI imports.

Layer rule: no imports from api/, admin/, or kv/.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for errors that map directly to an HTTP response."""

    status_code: int = 400
    default_message: str = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthorized(AuthError):
    """Missing, malformed, unknown, or expired bearer token."""

    status_code = 401
    default_message = "Unauthorized"


class Forbidden(AuthError):
    """Authenticated, but the role is not allowed to perform the action."""

    status_code = 403
    default_message = "Forbidden - Moderator access required"


class InvalidCredentials(AuthError):
    """Login failed. Same message whether the email or the password was wrong."""

    status_code = 401
    default_message = "Invalid credentials"


class UserAlreadyExists(AuthError):
    status_code = 400
    default_message = "User already exists"


class NotFound(AuthError):
    status_code = 404
    default_message = "Not found"


class InvalidPassword(AuthError):
    """The password cannot be hashed, e.g. it is longer than bcrypt accepts."""

    status_code = 400
    default_message = "Password must be at most 72 bytes"
