"""
tests/conftest.py -- Shared test fixtures for advocate directory tests.

This module provides:
  - make_test_stores(): creates isolated in-memory DBs for users + advocates
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: TestClient plus admin and user tokens for integration tests
  - user_store: a fresh private UserStore for service-level tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process.

Environment variables must be set before any api/auth/core import:
get_settings() is cached on first call and several modules read it at import.
"""

from __future__ import annotations

import itertools
import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from typing import NamedTuple

# CRITICAL: set before any application import.
os.environ["APP_ENV"] = "test"
os.environ["JWT_SECRET"] = "test-secret-key-that-is-at-least-32-characters-long"
os.environ["JWT_EXPIRES_IN"] = "24h"
# High enough that no test trips the login limiter by accident.
os.environ["LOGIN_RATE_LIMIT"] = "1000/minute"
# TestClient sends Host: testserver.
os.environ["ALLOWED_HOSTS"] = '["testserver"]'

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import Identity, Role, User
from auth.passwords import hash_password
from auth.store import UserStore
from auth.tokens import create_access_token
from directory.store import AdvocateStore

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "admin123"
USER_USERNAME = "viewer"
USER_PASSWORD = "viewer123"

_db_counter = itertools.count()


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def make_test_stores(db_suffix: str) -> tuple[UserStore, AdvocateStore]:
    """Create stores on one named shared-memory SQLite database.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state.
    """
    db_url = f"sqlite:///file:test_advocates_{db_suffix}?mode=memory&cache=shared&uri=true"
    return UserStore(db_url=db_url), AdvocateStore(db_url=db_url)


def _patch_lifespan(user_store: UserStore, advocate_store: AdvocateStore):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores into app.state so TestClient routes see
    isolated test DBs rather than the configured database.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.advocate_store = advocate_store
        yield

    return test_lifespan


def _seed_user(store: UserStore, username: str, password: str, role: Role, name: str) -> int:
    return store.insert(User(username=username, role=role.value, name=name, hashed_password=hash_password(password)))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


class ApiClient(NamedTuple):
    client: TestClient
    admin_token: str
    user_token: str
    admin_id: int
    user_id: int


@pytest.fixture(scope="module")
def api_client(request) -> Generator[ApiClient, None, None]:
    """Yield an ApiClient for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so
    tests hit real route handlers but use isolated in-memory stores. One
    admin ("admin"/"admin123") and one user ("viewer"/"viewer123") exist
    before the client starts; their tokens go in Authorization headers.
    """
    suffix = f"{request.module.__name__.rsplit('.', 1)[-1]}_{next(_db_counter)}"
    user_store, advocate_store = make_test_stores(suffix)

    admin_id = _seed_user(user_store, ADMIN_USERNAME, ADMIN_PASSWORD, Role.ADMIN, "Site Admin")
    user_id = _seed_user(user_store, USER_USERNAME, USER_PASSWORD, Role.USER, "Regular Viewer")

    admin_token = create_access_token(Identity(user_id=admin_id, username=ADMIN_USERNAME, role=Role.ADMIN))
    user_token = create_access_token(Identity(user_id=user_id, username=USER_USERNAME, role=Role.USER))

    app.router.lifespan_context = _patch_lifespan(user_store, advocate_store)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield ApiClient(client, admin_token, user_token, admin_id, user_id)

    advocate_store.close()
    user_store.close()


@pytest.fixture(autouse=True)
def _clear_cookies(request) -> None:
    """Cookies set by one test's login must not authenticate the next test."""
    if "api_client" in request.fixturenames:
        request.getfixturevalue("api_client").client.cookies.clear()


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    """A private, empty UserStore on its own in-memory database."""
    store = UserStore(f"sqlite:///file:test_users_{next(_db_counter)}?mode=memory&cache=shared&uri=true")
    yield store
    store.close()
