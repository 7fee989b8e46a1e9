"""
auth/exceptions.py -- Error taxonomy for the auth core.

Every failure the auth service can report is one of these classes. The route
layer maps each to a fixed HTTP status and error code; nothing here knows
about HTTP.

Two kinds are deliberately coarse:
  InvalidCredentials covers both "no such email" and "wrong password" so a
      login response never reveals whether an account exists.
  TokenInvalid covers missing, malformed, badly signed and expired tokens so
      a 401 never reveals which validation step failed.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for expected, client-attributable auth failures."""

    default_message = "Authentication failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class InvalidCredentials(AuthError):
    default_message = "Invalid credentials"


class TokenInvalid(AuthError):
    default_message = "Invalid or expired token"


class InsufficientPermissions(AuthError):
    default_message = "Insufficient permissions"


class InvalidCurrentPassword(AuthError):
    default_message = "Current password incorrect"


class NotFound(AuthError):
    default_message = "User not found"
