"""
auth/models.py -- Domain types for authentication entities.

Pattern: Data class (pure data container, zero logic). Dataclasses own domain
shape; stores, the token codec and routes do the work.

Layer rule: no imports from api/, directory/, or core/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    """Closed set of roles. ADMIN is a strict superset of USER's capabilities.

    Adding a role means extending the permission table in auth/policy.py;
    the gate denies anything the table does not name.
    """

    ADMIN = "admin"
    USER = "user"


@dataclass
class User:
    """A user record as held by the credential store.

    hashed_password is the bcrypt credential; it never leaves the server.
    Use auth.users.user_info() to build the client-safe view.
    """

    username: str
    role: str  # Role value: "admin" | "user"
    name: str
    id: int | None = None
    hashed_password: str | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class Identity:
    """The authenticated subject carried inside a bearer token."""

    user_id: int
    username: str
    role: Role
