"""
auth/errors.py -- Exception taxonomy for the auth core and user management.

Token failures all share one external message. A client learns that its token
was rejected, never whether it was truncated, forged or merely stale.

Route handlers map these to HTTP responses; nothing here knows about HTTP
beyond the status_code hint each class carries.
"""

from __future__ import annotations

INVALID_TOKEN_MESSAGE = "Invalid authentication token"


class AuthError(Exception):
    """Base class for every failure the auth core can report."""

    status_code: int = 401
    message: str = "Authentication failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        self.message = message or self.message


# ---------------------------------------------------------------------------
# Token verification
# ---------------------------------------------------------------------------


class TokenError(AuthError):
    message = INVALID_TOKEN_MESSAGE


class MalformedToken(TokenError):
    """The bearer value does not decompose into a well-formed token."""


class TamperedToken(TokenError):
    """The integrity tag does not match the payload."""


class ExpiredToken(TokenError):
    """The token was valid once but its expiry has passed."""


class IssuanceError(Exception):
    """The identity handed to the issuer is missing required fields."""


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


class InvalidCredentials(AuthError):
    message = "Invalid username or password"


# ---------------------------------------------------------------------------
# Authorization
# ---------------------------------------------------------------------------


class Forbidden(AuthError):
    """Valid identity, insufficient role. 403, never 401: logging in again will not help."""

    status_code = 403
    message = "Forbidden"


# ---------------------------------------------------------------------------
# User management business rules
# ---------------------------------------------------------------------------


class UserError(Exception):
    status_code: int = 400
    message: str = "Invalid user operation"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        self.message = message or self.message


class UserNotFound(UserError):
    status_code = 404
    message = "User not found"


class UsernameTaken(UserError):
    status_code = 409
    message = "Username is already taken"


class LastAdminDeletion(UserError):
    message = "Cannot delete the last admin user"


class LastAdminDemotion(UserError):
    message = "Cannot remove the admin role from the last admin user"
