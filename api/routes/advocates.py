"""
api/routes/advocates.py -- Advocate directory REST endpoints.

Routes:
  GET    /api/advocates        -- list (any signed-in role)
  GET    /api/advocates/{id}   -- detail (any signed-in role)
  POST   /api/advocates        -- create (admin)
  PATCH  /api/advocates/{id}   -- partial update (admin)
  DELETE /api/advocates/{id}   -- delete (admin)

Which role may do what is decided by the "advocates" row of the permission
table in auth/policy.py; nothing in this module names a role.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from api.models import (
    AdvocateCreate,
    AdvocateListResponse,
    AdvocatePatch,
    AdvocateResponse,
    Pagination,
    SuccessResponse,
)
from auth.dependencies import require_action
from auth.models import Identity
from directory.models import Advocate
from directory.store import AdvocateStore

router = APIRouter()


def _store(request: Request) -> AdvocateStore:
    return request.app.state.advocate_store


def _not_found(advocate_id: int) -> HTTPException:
    return HTTPException(status_code=404, detail=f"Advocate with ID {advocate_id} not found")


def _to_response(advocate: Advocate) -> AdvocateResponse:
    return AdvocateResponse(
        id=advocate.id,
        first_name=advocate.first_name,
        last_name=advocate.last_name,
        city=advocate.city,
        degree=advocate.degree,
        specialties=advocate.specialties,
        years_of_experience=advocate.years_of_experience,
        phone_number=advocate.phone_number,
        created_at=advocate.created_at,
    )


@router.get("/advocates", response_model=AdvocateListResponse)
def list_advocates(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    identity: Identity = Depends(require_action("advocates", "read")),
) -> AdvocateListResponse:
    store = _store(request)
    advocates = store.list_advocates(offset=(page - 1) * limit, limit=limit)
    return AdvocateListResponse(
        data=[_to_response(a) for a in advocates],
        pagination=Pagination(total=store.count_advocates(), page=page, limit=limit),
    )


@router.get("/advocates/{advocate_id}", response_model=AdvocateResponse)
def get_advocate(
    request: Request,
    advocate_id: int,
    identity: Identity = Depends(require_action("advocates", "read")),
) -> AdvocateResponse:
    advocate = _store(request).get_advocate(advocate_id)
    if advocate is None:
        raise _not_found(advocate_id)
    return _to_response(advocate)


@router.post("/advocates", response_model=AdvocateResponse, status_code=201)
def create_advocate(
    request: Request,
    body: AdvocateCreate,
    identity: Identity = Depends(require_action("advocates", "create")),
) -> AdvocateResponse:
    store = _store(request)
    advocate_id = store.create_advocate(Advocate(**body.model_dump()))
    return _to_response(store.get_advocate(advocate_id))


@router.patch("/advocates/{advocate_id}", response_model=AdvocateResponse)
def update_advocate(
    request: Request,
    advocate_id: int,
    body: AdvocatePatch,
    identity: Identity = Depends(require_action("advocates", "update")),
) -> AdvocateResponse:
    store = _store(request)
    if not store.update_advocate(advocate_id, **body.model_dump(exclude_none=True)):
        raise _not_found(advocate_id)
    return _to_response(store.get_advocate(advocate_id))


@router.delete("/advocates/{advocate_id}", response_model=SuccessResponse)
def delete_advocate(
    request: Request,
    advocate_id: int,
    identity: Identity = Depends(require_action("advocates", "delete")),
) -> SuccessResponse:
    if not _store(request).delete_advocate(advocate_id):
        raise _not_found(advocate_id)
    return SuccessResponse()
