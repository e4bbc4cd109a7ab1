"""
auth/store.py -- SQLAlchemy Core persistence layer for user records.

Pattern: Repository + Data Mapper. UserStore is the repository; _row_to_user
is the mapper. Route and service code never touches SQL directly.

CredentialStore is the one interface the rest of the code depends on. There
is exactly one implementation, chosen when the application starts (see the
lifespan in api/main.py) and handed down explicitly -- nothing branches on
the store's type at call time.

Security:
  All queries use bound parameters. No f-strings in SQL.

Layer rule: no imports from api/ or directory/.
"""

from __future__ import annotations

from typing import Protocol

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, func, or_, select
from sqlalchemy.engine import Engine

from auth.models import Role, User
from core.db import make_engine, now_iso

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(50), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("role", String(20), nullable=False, server_default="user"),
    Column("name", String(100), nullable=False),
    Column("created_at", String(32), nullable=False),
)

# Columns update_user() may touch. id and created_at are immutable.
_MUTABLE_FIELDS = frozenset({"username", "hashed_password", "role", "name"})


# ---------------------------------------------------------------------------
# Interface
# ---------------------------------------------------------------------------


class CredentialStore(Protocol):
    def find_by_username(self, username: str) -> User | None: ...

    def find_by_id(self, user_id: int) -> User | None: ...

    def insert(self, user: User) -> int: ...

    def update(self, user_id: int, **fields) -> bool: ...

    def update_unless_last_admin(self, user_id: int, **fields) -> bool: ...

    def delete_unless_last_admin(self, user_id: int) -> bool: ...

    def list_users(self, search: str = "", offset: int = 0, limit: int | None = None) -> list[User]: ...

    def count_users(self, search: str = "") -> int: ...

    def count_by_role(self, role: str) -> int: ...


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """SQL-backed CredentialStore.

    Usage:
        store = UserStore("sqlite:///advocates.db")
        uid = store.insert(User(username="admin", role="admin", name="Admin", hashed_password=hash_password("secret")))
        user = store.find_by_username("admin")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find_by_username(self, username: str) -> User | None:
        """Look up a user by exact username (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.username == username)).fetchone()
        return _row_to_user(row) if row is not None else None

    def find_by_id(self, user_id: int) -> User | None:
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def list_users(self, search: str = "", offset: int = 0, limit: int | None = None) -> list[User]:
        """Return users ordered by id, optionally filtered and sliced.

        search matches a case-insensitive substring of username or name.
        """
        query = _filtered(_users.select(), search).order_by(_users.c.id).offset(offset)
        if limit is not None:
            query = query.limit(limit)
        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [_row_to_user(r) for r in rows]

    def count_users(self, search: str = "") -> int:
        query = _filtered(select(func.count()).select_from(_users), search)
        with self.engine.connect() as conn:
            return conn.execute(query).scalar() or 0

    def count_by_role(self, role: str) -> int:
        """Number of users holding `role`. Used by the last-admin guards."""
        query = select(func.count()).select_from(_users).where(_users.c.role == role)
        with self.engine.connect() as conn:
            return conn.execute(query).scalar() or 0

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(self, user: User) -> int:
        """Insert a new user and return its assigned ID.

        Raises sqlalchemy.exc.IntegrityError if the username already exists.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.insert().values(
                    username=user.username,
                    hashed_password=user.hashed_password,
                    role=user.role,
                    name=user.name,
                    created_at=user.created_at or now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def update(self, user_id: int, **fields) -> bool:
        """Update mutable fields on an existing user.

        Accepted fields: username, hashed_password, role, name. Unknown field
        names raise ValueError rather than being silently dropped.

        Returns True if a row was updated, False if user_id was not found.
        Raises sqlalchemy.exc.IntegrityError on a username collision.
        """
        unknown = set(fields) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown user fields: {sorted(unknown)!r}")
        if not fields:
            return self.find_by_id(user_id) is not None
        with self.engine.connect() as conn:
            result = conn.execute(_users.update().where(_users.c.id == user_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Guarded writes
    #
    # The last-admin check and the write run as one statement, so two
    # admins removing each other concurrently cannot both succeed.
    # ------------------------------------------------------------------

    def update_unless_last_admin(self, user_id: int, **fields) -> bool:
        """Like update(), but matches no row if user_id is the only admin left.

        Returns False both when the user is missing and when the guard held;
        callers tell the two apart with find_by_id().
        """
        unknown = set(fields) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown user fields: {sorted(unknown)!r}")
        stmt = _users.update().where(_users.c.id == user_id, _not_last_admin()).values(**fields)
        with self.engine.begin() as conn:
            result = conn.execute(stmt)
        return result.rowcount > 0

    def delete_unless_last_admin(self, user_id: int) -> bool:
        """Permanently delete a user unless it is the only admin left.

        Returns False when user_id is missing or the guard held.
        """
        stmt = _users.delete().where(_users.c.id == user_id, _not_last_admin())
        with self.engine.begin() as conn:
            result = conn.execute(stmt)
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _filtered(query, search: str):
    if not search:
        return query
    pattern = f"%{search.lower()}%"
    return query.where(or_(func.lower(_users.c.username).like(pattern), func.lower(_users.c.name).like(pattern)))


def _not_last_admin():
    """WHERE clause: the row is not an admin, or another admin exists."""
    admins = select(func.count()).select_from(_users).where(_users.c.role == Role.ADMIN.value).scalar_subquery()
    return or_(_users.c.role != Role.ADMIN.value, admins > 1)


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        hashed_password=row.hashed_password,
        role=row.role,
        name=row.name,
        created_at=row.created_at,
    )
