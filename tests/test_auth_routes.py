"""
tests/test_auth_routes.py -- Integration tests for /api/auth/* and the gate's HTTP mapping.

These tests exercise the full stack: FastAPI routing -> rate limiter ->
auth dependency -> UserStore -> response serialization.

Coverage:
  - Login: 200 + cookie, 400 on missing fields, 401 on bad credentials
  - Check: 200 with the stored user, 401 {"authenticated": false} otherwise
  - Logout: idempotent, expires the cookie
  - Gate denials: 401 "Authentication required", 401 "Invalid authentication
    token", 403 "Forbidden: Admin access required"
  - End to end: login -> check -> admin route -> token past its TTL -> 401

Fixtures used (from conftest.py):
  - api_client: ApiClient(client, admin_token, user_token, admin_id, user_id)
"""

from __future__ import annotations

import time

import pytest

from auth.models import Identity, Role
from auth.tokens import create_access_token
from core.config import get_settings

TTL = get_settings().token_ttl_seconds


def _auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class TestLogin:
    def test_login_success_sets_cookie(self, api_client) -> None:
        client = api_client.client
        resp = client.post("/api/auth/login", json={"username": "admin", "password": "admin123"})
        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert data["success"] is True
        assert data["user"] == {"id": api_client.admin_id, "username": "admin", "name": "Site Admin", "role": "admin"}

        set_cookie = resp.headers["set-cookie"]
        assert set_cookie.startswith("auth-token=")
        assert "HttpOnly" in set_cookie
        assert "SameSite=lax" in set_cookie
        assert f"Max-Age={TTL}" in set_cookie
        assert resp.headers["cache-control"] == "no-store"

    def test_login_response_never_contains_hash(self, api_client) -> None:
        resp = api_client.client.post("/api/auth/login", json={"username": "viewer", "password": "viewer123"})
        assert resp.status_code == 200
        assert "hashed_password" not in resp.text
        assert "$2" not in resp.text

    @pytest.mark.parametrize(
        "body",
        [
            {},
            {"username": "admin"},
            {"password": "admin123"},
            {"username": "", "password": "admin123"},
            {"username": "admin", "password": ""},
            {"username": 5, "password": "admin123"},
            {"username": "admin", "password": ["admin123"]},
            ["admin", "admin123"],
            "admin",
        ],
    )
    def test_login_missing_fields(self, api_client, body) -> None:
        resp = api_client.client.post("/api/auth/login", json=body)
        assert resp.status_code == 400
        assert resp.json() == {"message": "Username and password are required"}

    def test_login_without_body(self, api_client) -> None:
        resp = api_client.client.post("/api/auth/login")
        assert resp.status_code == 400
        assert resp.json() == {"message": "Username and password are required"}

    def test_login_overlong_username_is_bad_credentials(self, api_client) -> None:
        resp = api_client.client.post("/api/auth/login", json={"username": "a" * 200, "password": "admin123"})
        assert resp.status_code == 401
        assert resp.json() == {"message": "Invalid username or password"}

    @pytest.mark.parametrize(
        "username, password",
        [("admin", "wrong-password"), ("nobody", "admin123"), ("ADMIN", "admin123")],
    )
    def test_login_bad_credentials(self, api_client, username, password) -> None:
        resp = api_client.client.post("/api/auth/login", json={"username": username, "password": password})
        assert resp.status_code == 401
        assert resp.json() == {"message": "Invalid username or password"}
        assert "set-cookie" not in resp.headers


class TestCheck:
    def test_check_without_token(self, api_client) -> None:
        resp = api_client.client.get("/api/auth/check")
        assert resp.status_code == 401
        assert resp.json() == {"authenticated": False}

    def test_check_with_bearer_header(self, api_client) -> None:
        resp = api_client.client.get("/api/auth/check", headers=_auth(api_client.user_token))
        assert resp.status_code == 200
        data = resp.json()
        assert data["authenticated"] is True
        assert data["user"]["username"] == "viewer"
        assert data["user"]["role"] == "user"

    def test_check_with_garbage_token(self, api_client) -> None:
        resp = api_client.client.get("/api/auth/check", headers=_auth("not.a.token"))
        assert resp.status_code == 401
        assert resp.json() == {"authenticated": False}

    def test_check_for_deleted_user(self, api_client) -> None:
        ghost = create_access_token(Identity(user_id=99999, username="ghost", role=Role.ADMIN))
        resp = api_client.client.get("/api/auth/check", headers=_auth(ghost))
        assert resp.status_code == 401
        assert resp.json() == {"authenticated": False}


class TestLogout:
    def test_logout_clears_cookie(self, api_client) -> None:
        client = api_client.client
        client.post("/api/auth/login", json={"username": "admin", "password": "admin123"})
        assert client.get("/api/auth/check").status_code == 200

        resp = client.post("/api/auth/logout")
        assert resp.status_code == 200
        assert resp.json() == {"success": True, "message": "Logged out successfully"}
        assert "Max-Age=0" in resp.headers["set-cookie"]
        assert client.get("/api/auth/check").status_code == 401

    def test_logout_is_idempotent(self, api_client) -> None:
        client = api_client.client
        first = client.post("/api/auth/logout")
        second = client.post("/api/auth/logout")
        assert first.status_code == second.status_code == 200
        assert first.json() == second.json() == {"success": True, "message": "Logged out successfully"}


class TestGateResponses:
    def test_no_token(self, api_client) -> None:
        resp = api_client.client.get("/api/users")
        assert resp.status_code == 401
        assert resp.json() == {"error": "Authentication required"}

    @pytest.mark.parametrize("token", ["garbage", "a.b.c"])
    def test_rejected_token(self, api_client, token) -> None:
        resp = api_client.client.get("/api/users", headers=_auth(token))
        assert resp.status_code == 401
        assert resp.json() == {"error": "Invalid authentication token"}

    def test_expired_admin_token(self, api_client) -> None:
        stale = create_access_token(
            Identity(user_id=api_client.admin_id, username="admin", role=Role.ADMIN),
            now=time.time() - TTL - 10,
        )
        resp = api_client.client.get("/api/users", headers=_auth(stale))
        assert resp.status_code == 401
        assert resp.json() == {"error": "Invalid authentication token"}

    def test_user_role_forbidden(self, api_client) -> None:
        resp = api_client.client.get("/api/users", headers=_auth(api_client.user_token))
        assert resp.status_code == 403
        assert resp.json() == {"error": "Forbidden: Admin access required"}

    def test_cookie_wins_over_header(self, api_client) -> None:
        """A logged-in browser session is not overridden by a stray header."""
        client = api_client.client
        client.post("/api/auth/login", json={"username": "admin", "password": "admin123"})
        resp = client.get("/api/users", headers=_auth(api_client.user_token))
        assert resp.status_code == 200


def test_end_to_end_session(api_client) -> None:
    client = api_client.client

    login = client.post("/api/auth/login", json={"username": "admin", "password": "admin123"})
    assert login.status_code == 200
    assert login.json()["user"]["role"] == "admin"
    assert "auth-token=" in login.headers["set-cookie"]

    check = client.get("/api/auth/check")
    assert check.status_code == 200
    assert check.json()["user"]["username"] == "admin"

    assert client.get("/api/users").status_code == 200

    # Same identity, issued one TTL and a bit ago.
    client.cookies.clear()
    stale = create_access_token(
        Identity(user_id=api_client.admin_id, username="admin", role=Role.ADMIN),
        now=time.time() - TTL - 1,
    )
    expired = client.get("/api/auth/check", headers=_auth(stale))
    assert expired.status_code == 401
    assert expired.json() == {"authenticated": False}
