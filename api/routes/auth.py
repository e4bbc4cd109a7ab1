"""
api/routes/auth.py -- Login, logout and session check.

Routes:
  POST /api/auth/login   -- password login; sets the auth-token cookie
  POST /api/auth/logout  -- clears the cookie; always 200
  GET  /api/auth/check   -- who am I, according to the cookie

Security:
  POST /login is rate-limited per client IP (LOGIN_RATE_LIMIT).
  authenticate_user() equalizes timing -- use it, never inline the lookup.
  Unknown username and wrong password produce the same 401 body.
  Cache-Control: no-store on login responses.
  Logout does not revoke the token: there is no server-side session to end.
  A copied token keeps working until its exp claim passes.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from api.limiter import limiter
from api.models import AuthCheckResponse, LoginRequest, LoginResponse, LogoutResponse, UserInfo
from auth.dependencies import get_bearer_token
from auth.errors import InvalidCredentials
from auth.models import Identity, Role
from auth.passwords import authenticate_user
from auth.store import CredentialStore
from auth.tokens import clear_auth_cookie, create_access_token, set_auth_cookie, verify_access_token
from auth.users import user_info
from core.config import get_settings

logger = logging.getLogger("advocates.api")

_settings = get_settings()

# Auth policy:
# - POST /api/auth/login:   public -- login endpoint must be unauthenticated
# - POST /api/auth/logout:  public -- clearing a cookie needs no prior auth
# - GET  /api/auth/check:   public -- answers 401 itself when unauthenticated
router = APIRouter()


@limiter.limit(_settings.login_rate_limit)  # must be ABOVE @router to preserve FastAPI introspection
@router.post(
    "/auth/login",
    response_model=LoginResponse,
    openapi_extra={"requestBody": {"content": {"application/json": {"schema": LoginRequest.model_json_schema()}}}},
)
def login(request: Request, payload: Any = Body(default=None)) -> JSONResponse:
    """Authenticate with username and password; set the auth cookie.

    The body is validated here rather than by FastAPI so that an absent body,
    a non-object body and non-string fields all get the same 400 as empty ones.
    """
    try:
        body = LoginRequest.model_validate(payload if payload is not None else {})
    except ValidationError:
        body = LoginRequest()
    if not body.username or not body.password:
        return JSONResponse(status_code=400, content={"message": "Username and password are required"})

    user_store: CredentialStore = request.app.state.user_store
    try:
        user = authenticate_user(user_store, body.username, body.password)
    except InvalidCredentials as exc:
        resp = JSONResponse(status_code=401, content={"message": exc.message})
        resp.headers["Cache-Control"] = "no-store"
        return resp

    token = create_access_token(Identity(user_id=user.id, username=user.username, role=Role(user.role)))
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(user=UserInfo(**user_info(user))).model_dump(),
    )
    set_auth_cookie(resp, token)
    resp.headers["Cache-Control"] = "no-store"
    logger.info("User %r logged in", user.username)
    return resp


@router.post("/auth/logout", response_model=LogoutResponse)
async def logout() -> JSONResponse:
    """Clear the auth cookie. Safe to call repeatedly, with or without a session."""
    resp = JSONResponse(content=LogoutResponse().model_dump())
    clear_auth_cookie(resp)
    return resp


@router.get("/auth/check", response_model=AuthCheckResponse)
def check(request: Request) -> JSONResponse:
    """Report the current user, re-read from the store.

    The token proves who the caller is; name and role come from the store so
    a role change takes effect here without waiting for a new login.
    """
    unauthenticated = JSONResponse(
        status_code=401,
        content=AuthCheckResponse(authenticated=False).model_dump(exclude_none=True),
    )
    token = get_bearer_token(request)
    if not token:
        return unauthenticated
    result = verify_access_token(token)
    if not result.valid:
        return unauthenticated

    user_store: CredentialStore = request.app.state.user_store
    user = user_store.find_by_id(result.identity.user_id)
    if user is None:
        return unauthenticated
    return JSONResponse(
        content=AuthCheckResponse(authenticated=True, user=UserInfo(**user_info(user))).model_dump(),
    )
