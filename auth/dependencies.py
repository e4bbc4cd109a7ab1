"""
auth/dependencies.py -- FastAPI Depends() helpers: the HTTP side of the gate.

Token sources, in priority order:
  1. The "auth-token" cookie -- set by POST /api/auth/login.
  2. Authorization: Bearer <token> header -- non-browser API clients.

require_action(resource, action) looks the permitted roles up in
auth/policy.py, asks auth.gate.authorize() for a decision, and either returns
the caller's Identity or raises HTTPException:

  no token                -> 401 "Authentication required"
  rejected token          -> 401 "Invalid authentication token"
  valid token, wrong role -> 403 "Forbidden: Admin access required"

No auth failure reaches a route body. Handlers that declare one of these
dependencies may assume a verified identity.

Layer rule: no imports from api/ or directory/.
  This module may import from fastapi because it is part of the FastAPI
  dependency injection system.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from fastapi import HTTPException, Request

from auth.errors import AuthError, Forbidden, TokenError
from auth.gate import Decision, DenyKind, authorize_action
from auth.models import Identity, Role
from core.config import get_settings

logger = logging.getLogger("advocates.auth")

_settings = get_settings()

AUTH_REQUIRED_MESSAGE = "Authentication required"
ADMIN_REQUIRED_MESSAGE = "Forbidden: Admin access required"


def get_bearer_token(request: Request) -> str | None:
    """Return the raw bearer token from the cookie or Authorization header."""
    token = request.cookies.get(_settings.cookie_name)
    if token:
        return token
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    return None


def _denial(decision: Decision) -> AuthError:
    if decision.kind is DenyKind.UNAUTHENTICATED:
        if decision.reason is None:
            return AuthError(AUTH_REQUIRED_MESSAGE)
        return TokenError()
    if decision.required == frozenset({Role.ADMIN}):
        return Forbidden(ADMIN_REQUIRED_MESSAGE)
    return Forbidden()


def _enforce(decision: Decision, request: Request) -> Identity:
    """Turn a gate Decision into an Identity or an HTTPException."""
    if decision.allowed:
        return decision.identity
    if decision.reason is not None:
        logger.info("Rejected %s token on %s %s", decision.reason.value, request.method, request.url.path)
    elif decision.kind is DenyKind.FORBIDDEN:
        logger.info(
            "Forbidden: user %r (%s) on %s %s",
            decision.identity.username,
            decision.identity.role.value,
            request.method,
            request.url.path,
        )
    exc = _denial(decision)
    raise HTTPException(status_code=exc.status_code, detail=exc.message)


def require_action(resource: str, action: str) -> Callable[[Request], Identity]:
    """Build a dependency gating a route on the permission table entry.

    Use as a FastAPI dependency:
        @router.delete("/users/{user_id}")
        async def route(identity: Identity = Depends(require_action("users", "delete"))): ...
    """

    def dependency(request: Request) -> Identity:
        return _enforce(authorize_action(get_bearer_token(request), resource, action), request)

    return dependency
