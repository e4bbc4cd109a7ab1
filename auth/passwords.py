"""
auth/passwords.py -- Password hashing and credential verification.

Passwords: bcrypt, used directly (no passlib wrapper). passlib's internal
    wrap-bug detection creates a password longer than 72 bytes, which
    bcrypt 4.x rejects with an explicit error.

Timing: authenticate_user() always runs one bcrypt check, against the real
    hash or against _DUMMY_HASH, so response time does not reveal whether a
    username exists.

Layer rule: no imports from api/ or directory/.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import bcrypt

from auth.errors import InvalidCredentials

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import CredentialStore

logger = logging.getLogger("advocates.auth")


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt only looks at the first 72 bytes. The API layer caps passwords at
    128 characters; anything past byte 72 is ignored rather than rejected.
    """
    return bcrypt.hashpw(plain.encode("utf-8")[:72], bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    A malformed stored hash is a mismatch, not an error.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8")[:72], hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


_DUMMY_HASH: str = hash_password("advocate-directory-timing-dummy")


def authenticate_user(store: CredentialStore, username: str, password: str) -> User:
    """Check a username/password pair against the store.

    Returns the User on success. Raises InvalidCredentials on any failure,
    with the same message whether the username was unknown or the password
    was wrong.
    """
    user = store.find_by_username(username)
    if user is None or not user.hashed_password:
        verify_password(password, _DUMMY_HASH)
        # Unknown names stay out of the log: they are often mistyped passwords.
        logger.info("Login failed: unknown user")
        raise InvalidCredentials()
    if not verify_password(password, user.hashed_password):
        logger.info("Login failed for %r: bad password", username)
        raise InvalidCredentials()
    return user
