"""
api/routes/users.py -- User management REST endpoints (admin only).

Routes:
  GET    /api/users           -- list users (page, limit, search)
  POST   /api/users           -- create user
  GET    /api/users/{id}      -- fetch one user
  PATCH  /api/users/{id}      -- partial update
  DELETE /api/users/{id}      -- delete user

Every route is gated by require_action("users", <action>); the permission
table grants all four actions to ADMIN only. The gate says nothing about
data-dependent rules -- those are enforced in auth/users.py and surface
here as 400/404/409 responses.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from api.models import SuccessResponse, UserCreate, UserInfo, UserListResponse, UserPatch
from auth import users as user_service
from auth.dependencies import require_action
from auth.errors import UserError
from auth.models import Identity
from auth.store import CredentialStore

router = APIRouter()


def _store(request: Request) -> CredentialStore:
    return request.app.state.user_store


def _http_error(exc: UserError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.message)


@router.get("/users", response_model=UserListResponse)
def list_users(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: str = Query("", max_length=100),
    identity: Identity = Depends(require_action("users", "read")),
) -> UserListResponse:
    result = user_service.list_users(_store(request), page=page, limit=limit, search=search)
    return UserListResponse(
        users=[UserInfo(**user_service.user_info(u)) for u in result.users],
        total=result.total,
        page=result.page,
        limit=result.limit,
    )


@router.post("/users", response_model=UserInfo, status_code=201)
def create_user(
    request: Request,
    body: UserCreate,
    identity: Identity = Depends(require_action("users", "create")),
) -> UserInfo:
    """Create a user account. All four fields are required."""
    if not (body.username and body.password and body.name and body.role):
        raise HTTPException(status_code=400, detail="Missing required fields: username, password, name, role")
    try:
        user = user_service.create_user(_store(request), body.username, body.password, body.name, body.role)
    except UserError as exc:
        raise _http_error(exc) from exc
    return UserInfo(**user_service.user_info(user))


@router.get("/users/{user_id}", response_model=UserInfo)
def get_user(
    request: Request,
    user_id: int,
    identity: Identity = Depends(require_action("users", "read")),
) -> UserInfo:
    try:
        user = user_service.get_user(_store(request), user_id)
    except UserError as exc:
        raise _http_error(exc) from exc
    return UserInfo(**user_service.user_info(user))


@router.patch("/users/{user_id}", response_model=UserInfo)
def update_user(
    request: Request,
    user_id: int,
    body: UserPatch,
    identity: Identity = Depends(require_action("users", "update")),
) -> UserInfo:
    """Partial update. Demoting the last admin is rejected with 400."""
    try:
        user = user_service.update_user(
            _store(request),
            user_id,
            username=body.username,
            password=body.password,
            name=body.name,
            role=body.role,
        )
    except UserError as exc:
        raise _http_error(exc) from exc
    return UserInfo(**user_service.user_info(user))


@router.delete("/users/{user_id}", response_model=SuccessResponse)
def delete_user(
    request: Request,
    user_id: int,
    identity: Identity = Depends(require_action("users", "delete")),
) -> SuccessResponse:
    """Delete a user. The last remaining admin cannot be deleted (400)."""
    try:
        user_service.delete_user(_store(request), user_id)
    except UserError as exc:
        raise _http_error(exc) from exc
    return SuccessResponse()
