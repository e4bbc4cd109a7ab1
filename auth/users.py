"""
auth/users.py -- User management business rules.

Runs only after the access gate has said ALLOW, so every function here may
assume an authorized admin caller. What the gate cannot know -- how many
admins exist, whether a username is free -- is checked here.

Last-admin rules:
  - Deleting the only remaining admin raises LastAdminDeletion.
  - Changing the only remaining admin's role raises LastAdminDemotion.
  Both compare against Role.ADMIN.value ("admin"), the value actually stored.
  The count and the write happen in one statement in the store, so two admins
  removing each other at once leave exactly one behind.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError

from auth.errors import LastAdminDeletion, LastAdminDemotion, UsernameTaken, UserNotFound
from auth.models import Role, User
from auth.passwords import hash_password
from auth.store import CredentialStore

logger = logging.getLogger("advocates.users")


@dataclass
class UserPage:
    users: list[User]
    total: int
    page: int
    limit: int


def user_info(user: User) -> dict:
    """Client-safe view of a user record (no credential)."""
    return {"id": user.id, "username": user.username, "name": user.name, "role": user.role}


def list_users(store: CredentialStore, page: int = 1, limit: int = 10, search: str = "") -> UserPage:
    page = max(page, 1)
    limit = max(limit, 1)
    users = store.list_users(search=search, offset=(page - 1) * limit, limit=limit)
    return UserPage(users=users, total=store.count_users(search=search), page=page, limit=limit)


def get_user(store: CredentialStore, user_id: int) -> User:
    user = store.find_by_id(user_id)
    if user is None:
        raise UserNotFound()
    return user


def create_user(store: CredentialStore, username: str, password: str, name: str, role: Role) -> User:
    """Hash the password and insert the record. Raises UsernameTaken on collision."""
    if store.find_by_username(username) is not None:
        raise UsernameTaken(f"Username {username} is already taken")
    new_user = User(username=username, role=Role(role).value, name=name, hashed_password=hash_password(password))
    try:
        user_id = store.insert(new_user)
    except IntegrityError as exc:
        # A concurrent request took the name between our check and the insert.
        raise UsernameTaken(f"Username {username} is already taken") from exc
    logger.info("Created user %r (id=%d, role=%s)", username, user_id, new_user.role)
    return get_user(store, user_id)


def update_user(
    store: CredentialStore,
    user_id: int,
    *,
    username: str | None = None,
    password: str | None = None,
    name: str | None = None,
    role: Role | None = None,
) -> User:
    """Apply a partial update. Fields left as None are not touched."""
    current = get_user(store, user_id)

    updates: dict = {}
    if username and username != current.username:
        if store.find_by_username(username) is not None:
            raise UsernameTaken(f"Username {username} is already taken")
        updates["username"] = username
    if name:
        updates["name"] = name
    if password:
        updates["hashed_password"] = hash_password(password)
    demoting = False
    if role is not None and Role(role).value != current.role:
        demoting = current.role == Role.ADMIN.value
        updates["role"] = Role(role).value

    if updates:
        try:
            if demoting:
                if not store.update_unless_last_admin(user_id, **updates):
                    if store.find_by_id(user_id) is None:
                        raise UserNotFound()
                    raise LastAdminDemotion()
            else:
                store.update(user_id, **updates)
        except IntegrityError as exc:
            raise UsernameTaken(f"Username {username} is already taken") from exc
        logger.info("Updated user id=%d fields=%s", user_id, sorted(updates))
    return get_user(store, user_id)


def delete_user(store: CredentialStore, user_id: int) -> None:
    """Delete a user unless it is the last admin.

    Raises UserNotFound if the id is unknown, LastAdminDeletion if the target
    is the only admin left.
    """
    user = get_user(store, user_id)
    if not store.delete_unless_last_admin(user_id):
        if store.find_by_id(user_id) is None:
            raise UserNotFound()
        raise LastAdminDeletion()
    logger.info("Deleted user %r (id=%d)", user.username, user_id)
