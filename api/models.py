"""
API request and response models for the Blackpot auth REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Wire format is camelCase (accessToken, tenantId, ...). Python attributes stay
snake_case; the alias generator does the translation in both directions.
Serialize with model_dump(mode="json", by_alias=True).
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from auth.models import LoginResult, Role, TokenClaims, User

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True)
_CAMEL_FROZEN = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    email: str = Field(max_length=255, pattern=EMAIL_PATTERN)
    # Not stripped: whitespace in a password is significant.
    password: str = Field(min_length=6, max_length=128, json_schema_extra={"format": "password"})


class PasswordChangeRequest(BaseModel):
    """Request body for PUT /api/v1/auth/password."""

    model_config = _CAMEL

    current_password: str = Field(min_length=1, max_length=128)
    new_password: str = Field(min_length=8, max_length=128)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserSummaryModel(BaseModel):
    """Client-safe user view embedded in the login response. No password hash."""

    model_config = _CAMEL_FROZEN

    id: str
    email: str
    name: str
    role: Role
    tenant_id: str
    location_id: str


class LoginData(BaseModel):
    model_config = _CAMEL_FROZEN

    access_token: str
    refresh_token: str
    user: UserSummaryModel

    @classmethod
    def from_result(cls, result: LoginResult) -> LoginData:
        """Build the response payload from a service LoginResult."""
        u = result.user
        return cls(
            access_token=result.access_token,
            refresh_token=result.refresh_token,
            user=UserSummaryModel(
                id=u.id,
                email=u.email,
                name=u.name,
                role=u.role,
                tenant_id=u.tenant_id,
                location_id=u.location_id,
            ),
        )


class LoginResponse(BaseModel):
    model_config = _CAMEL_FROZEN

    status: str = "success"
    code: int = 200
    data: LoginData


class MessageResponse(BaseModel):
    model_config = _CAMEL_FROZEN

    status: str = "success"
    code: int = 200
    message: str


class ClaimsModel(BaseModel):
    """The identity snapshot carried by the caller's access token."""

    model_config = _CAMEL_FROZEN

    user_id: str
    tenant_id: str
    location_id: str
    role: Role
    email: str

    @classmethod
    def from_claims(cls, claims: TokenClaims) -> ClaimsModel:
        return cls(
            user_id=claims.user_id,
            tenant_id=claims.tenant_id,
            location_id=claims.location_id,
            role=claims.role,
            email=claims.email,
        )


class MeResponse(BaseModel):
    model_config = _CAMEL_FROZEN

    status: str = "success"
    code: int = 200
    data: ClaimsModel


class StaffMember(BaseModel):
    """One row in GET /api/v1/auth/users."""

    model_config = _CAMEL_FROZEN

    id: str
    email: str
    name: str
    role: Role
    tenant_id: str
    location_id: str
    is_active: bool

    @classmethod
    def from_user(cls, user: User) -> StaffMember:
        return cls(
            id=user.id,
            email=user.email,
            name=user.name,
            role=user.role,
            tenant_id=user.tenant_id,
            location_id=user.location_id or "",
            is_active=user.is_active,
        )


class StaffListResponse(BaseModel):
    model_config = _CAMEL_FROZEN

    status: str = "success"
    code: int = 200
    data: list[StaffMember]


class ErrorResponse(BaseModel):
    """Error envelope returned on every 4xx/5xx response.

    error is a machine-readable code (e.g. INVALID_TOKEN); message is for
    humans; detail is only populated for request validation failures.
    """

    model_config = _CAMEL_FROZEN

    status: str = "error"
    code: int
    error: str
    message: str
    detail: Optional[list[str]] = None


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = _CAMEL_FROZEN

    status: str = "OK"
    timestamp: str
    version: str
    components: dict[str, str]
