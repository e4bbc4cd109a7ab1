"""Unit tests for user management business rules in auth/users.py.

Covers:
- Create: hashing, role normalization, duplicate usernames
- Update: partial fields, password rotation, username collisions
- Last-admin rules: the only admin can be neither deleted nor demoted,
  including when two admins remove each other from separate threads
- Listing: pagination totals and case-insensitive search
"""

import threading

import pytest

from auth import users as user_service
from auth.errors import LastAdminDeletion, LastAdminDemotion, UserError, UsernameTaken, UserNotFound
from auth.models import Role
from auth.passwords import verify_password
from auth.store import UserStore


def _admin(store, username="admin"):
    return user_service.create_user(store, username, "admin123", "Site Admin", Role.ADMIN)


def _user(store, username="viewer"):
    return user_service.create_user(store, username, "viewer123", "Regular Viewer", Role.USER)


# ---------------------------------------------------------------------------
# Create / read
# ---------------------------------------------------------------------------


def test_create_user_hashes_password(user_store):
    user = _user(user_store)
    assert user.id is not None
    assert user.role == "user"
    assert user.hashed_password != "viewer123"
    assert verify_password("viewer123", user.hashed_password)


def test_create_accepts_role_string(user_store):
    user = user_service.create_user(user_store, "bob", "pw", "Bob", "admin")
    assert user.role == "admin"


def test_create_duplicate_username(user_store):
    _user(user_store)
    with pytest.raises(UsernameTaken) as exc:
        _user(user_store)
    assert exc.value.status_code == 409


def test_user_info_has_no_credential(user_store):
    info = user_service.user_info(_admin(user_store))
    assert set(info) == {"id", "username", "name", "role"}


def test_get_missing_user(user_store):
    with pytest.raises(UserNotFound):
        user_service.get_user(user_store, 999)


# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------


def test_partial_update_leaves_other_fields(user_store):
    user = _user(user_store)
    updated = user_service.update_user(user_store, user.id, name="Renamed")
    assert updated.name == "Renamed"
    assert updated.username == "viewer"
    assert updated.hashed_password == user.hashed_password


def test_update_rotates_password(user_store):
    user = _user(user_store)
    updated = user_service.update_user(user_store, user.id, password="new-password")
    assert verify_password("new-password", updated.hashed_password)
    assert not verify_password("viewer123", updated.hashed_password)


def test_update_to_taken_username(user_store):
    _admin(user_store)
    user = _user(user_store)
    with pytest.raises(UsernameTaken):
        user_service.update_user(user_store, user.id, username="admin")


def test_update_missing_user(user_store):
    with pytest.raises(UserNotFound):
        user_service.update_user(user_store, 42, name="Ghost")


def test_promote_user(user_store):
    user = _user(user_store)
    assert user_service.update_user(user_store, user.id, role=Role.ADMIN).role == "admin"


# ---------------------------------------------------------------------------
# Last-admin rules
# ---------------------------------------------------------------------------


def test_cannot_delete_only_admin(user_store):
    admin = _admin(user_store)
    _user(user_store)
    with pytest.raises(LastAdminDeletion) as exc:
        user_service.delete_user(user_store, admin.id)
    assert exc.value.status_code == 400
    assert exc.value.message == "Cannot delete the last admin user"
    assert user_store.find_by_id(admin.id) is not None


def test_can_delete_one_of_two_admins(user_store):
    first = _admin(user_store, "admin")
    _admin(user_store, "admin2")
    user_service.delete_user(user_store, first.id)
    assert user_store.find_by_id(first.id) is None
    assert user_store.count_by_role("admin") == 1


def test_can_delete_regular_user_with_single_admin(user_store):
    _admin(user_store)
    user = _user(user_store)
    user_service.delete_user(user_store, user.id)
    assert user_store.find_by_id(user.id) is None


def test_cannot_demote_only_admin(user_store):
    admin = _admin(user_store)
    with pytest.raises(LastAdminDemotion):
        user_service.update_user(user_store, admin.id, role=Role.USER)
    assert user_store.find_by_id(admin.id).role == "admin"


def test_can_demote_admin_when_another_remains(user_store):
    admin = _admin(user_store)
    _admin(user_store, "admin2")
    assert user_service.update_user(user_store, admin.id, role=Role.USER).role == "user"


def test_delete_missing_user(user_store):
    with pytest.raises(UserNotFound):
        user_service.delete_user(user_store, 999)


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


def test_list_users_paginates(user_store):
    for i in range(5):
        user_service.create_user(user_store, f"user{i}", "pw", f"User {i}", Role.USER)
    page = user_service.list_users(user_store, page=2, limit=2)
    assert [u.username for u in page.users] == ["user2", "user3"]
    assert page.total == 5
    assert page.page == 2
    assert page.limit == 2


def test_list_users_search_is_case_insensitive(user_store):
    user_service.create_user(user_store, "alice", "pw", "Alice Smith", Role.USER)
    user_service.create_user(user_store, "bob", "pw", "Bob Jones", Role.USER)
    page = user_service.list_users(user_store, search="SMITH")
    assert [u.username for u in page.users] == ["alice"]
    assert page.total == 1


# ---------------------------------------------------------------------------
# Concurrent admin removal
# ---------------------------------------------------------------------------


@pytest.fixture
def file_store(tmp_path):
    # A file DB: shared-cache memory DBs fail fast on concurrent writers
    # instead of waiting for the lock.
    store = UserStore(f"sqlite:///{tmp_path / 'users.db'}")
    yield store
    store.close()


def _race(monkeypatch, store, method, calls):
    """Run each call on its own thread, released together just before `method` writes."""
    barrier = threading.Barrier(len(calls), timeout=5)
    write = getattr(store, method)

    def gated(*args, **kwargs):
        barrier.wait()
        return write(*args, **kwargs)

    monkeypatch.setattr(store, method, gated)
    errors = []

    def run(call):
        try:
            call()
        except UserError as exc:
            errors.append(exc)

    threads = [threading.Thread(target=run, args=(call,)) for call in calls]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)
    return errors


def test_two_admins_deleting_each_other_leave_one(monkeypatch, file_store):
    first = _admin(file_store, "admin")
    second = _admin(file_store, "admin2")

    errors = _race(
        monkeypatch,
        file_store,
        "delete_unless_last_admin",
        [
            lambda: user_service.delete_user(file_store, first.id),
            lambda: user_service.delete_user(file_store, second.id),
        ],
    )

    assert [type(e) for e in errors] == [LastAdminDeletion]
    assert file_store.count_by_role("admin") == 1


def test_two_admins_demoting_each_other_leave_one(monkeypatch, file_store):
    first = _admin(file_store, "admin")
    second = _admin(file_store, "admin2")

    errors = _race(
        monkeypatch,
        file_store,
        "update_unless_last_admin",
        [
            lambda: user_service.update_user(file_store, first.id, role=Role.USER),
            lambda: user_service.update_user(file_store, second.id, role=Role.USER),
        ],
    )

    assert [type(e) for e in errors] == [LastAdminDemotion]
    assert file_store.count_by_role("admin") == 1
