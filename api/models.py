"""
API request and response models for the advocate directory REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
directory/models.py, which own the internal domain representation. Route
handlers map between the two.

Field presence for login and user creation is checked in the route handlers,
not here, because a missing field is a 400 with a human message in this API
rather than FastAPI's default 422 validation payload.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from auth.models import Role

# ---------------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------------


class ErrorResponse(BaseModel):
    """Body of every gate denial and business-rule rejection."""

    error: str


class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class UserInfo(BaseModel):
    """Client-safe user view. Never carries the credential."""

    id: int
    username: str
    name: str
    role: str


class LoginResponse(BaseModel):
    success: bool = True
    user: UserInfo


class LogoutResponse(BaseModel):
    success: bool = True
    message: str = "Logged out successfully"


class AuthCheckResponse(BaseModel):
    authenticated: bool
    user: Optional[UserInfo] = None


# ---------------------------------------------------------------------------
# Users (admin only)
# ---------------------------------------------------------------------------


class UserCreate(BaseModel):
    username: Optional[str] = Field(default=None, max_length=50)
    password: Optional[str] = Field(default=None, max_length=128)
    name: Optional[str] = Field(default=None, max_length=100)
    role: Optional[Role] = None


class UserPatch(BaseModel):
    username: Optional[str] = Field(default=None, min_length=1, max_length=50)
    password: Optional[str] = Field(default=None, min_length=1, max_length=128)
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    role: Optional[Role] = None


class UserListResponse(BaseModel):
    users: list[UserInfo]
    total: int
    page: int
    limit: int


class SuccessResponse(BaseModel):
    success: bool = True


# ---------------------------------------------------------------------------
# Advocates
#
# The wire format is camelCase (firstName, yearsOfExperience, ...) to match
# the existing web client; Python attributes stay snake_case.
# ---------------------------------------------------------------------------


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)


class AdvocateCreate(_CamelModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    city: str = Field(min_length=1, max_length=100)
    degree: str = Field(min_length=1, max_length=50)
    specialties: list[str] = Field(default_factory=list, max_length=50)
    years_of_experience: int = Field(ge=0, le=80)
    phone_number: int = Field(gt=0)


class AdvocatePatch(_CamelModel):
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    city: Optional[str] = Field(default=None, min_length=1, max_length=100)
    degree: Optional[str] = Field(default=None, min_length=1, max_length=50)
    specialties: Optional[list[str]] = Field(default=None, max_length=50)
    years_of_experience: Optional[int] = Field(default=None, ge=0, le=80)
    phone_number: Optional[int] = Field(default=None, gt=0)


class AdvocateResponse(_CamelModel):
    id: int
    first_name: str
    last_name: str
    city: str
    degree: str
    specialties: list[str]
    years_of_experience: int
    phone_number: int
    created_at: str


class Pagination(BaseModel):
    total: int
    page: int
    limit: int


class AdvocateListResponse(BaseModel):
    data: list[AdvocateResponse]
    pagination: Pagination
