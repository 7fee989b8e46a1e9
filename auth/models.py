"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, almost no logic). Stores and the
service do the work; these types only own the domain shape and the mapping
between snake_case attributes and the camelCase claim names carried inside
tokens.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    """Closed set of staff job functions used for authorization checks."""

    OWNER = "OWNER"
    MANAGER = "MANAGER"
    SERVER = "SERVER"
    HOST = "HOST"
    CHEF = "CHEF"
    SOMMELIER = "SOMMELIER"


@dataclass
class Tenant:
    """Top-level organizational owner of all data (a restaurant group)."""

    name: str
    id: str | None = None
    is_active: bool = True
    created_at: str | None = None


@dataclass
class Location:
    """A physical site belonging to a tenant."""

    tenant_id: str
    name: str
    address: str | None = None
    id: str | None = None
    is_active: bool = True
    created_at: str | None = None


@dataclass
class User:
    """A staff member who can sign in.

    password_hash is the bcrypt digest. It never leaves the auth layer: the
    login summary and every API response model omit it.

    location_id is None for staff not assigned to a specific site.
    """

    email: str
    name: str
    role: Role
    tenant_id: str
    password_hash: str
    location_id: str | None = None
    id: str | None = None
    is_active: bool = True
    created_at: str | None = None


@dataclass(frozen=True)
class TokenClaims:
    """Identity snapshot embedded in an access token.

    The snapshot is taken at login; later role or location changes on the
    User record do not affect tokens already issued.
    """

    user_id: str
    tenant_id: str
    location_id: str
    role: Role
    email: str

    @classmethod
    def from_user(cls, user: User) -> TokenClaims:
        return cls(
            user_id=user.id,
            tenant_id=user.tenant_id,
            # Unassigned staff carry "" rather than null in tokens.
            location_id=user.location_id or "",
            role=user.role,
            email=user.email,
        )

    def to_payload(self) -> dict:
        return {
            "userId": self.user_id,
            "tenantId": self.tenant_id,
            "locationId": self.location_id,
            "role": self.role.value,
            "email": self.email,
        }

    @classmethod
    def from_payload(cls, payload: dict) -> TokenClaims:
        """Rebuild claims from a verified token payload.

        Raises KeyError or ValueError if a claim is missing or the role is
        not a known Role -- callers treat both as an invalid token.
        """
        return cls(
            user_id=str(payload["userId"]),
            tenant_id=str(payload["tenantId"]),
            location_id=str(payload["locationId"]),
            role=Role(payload["role"]),
            email=str(payload["email"]),
        )

    def refresh_payload(self) -> dict:
        """Claim subset carried by a refresh token: no role, no email."""
        return {"userId": self.user_id, "tenantId": self.tenant_id}


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class UserSummary:
    """Client-safe view of a User returned on login."""

    id: str
    email: str
    name: str
    role: Role
    tenant_id: str
    location_id: str

    @classmethod
    def from_user(cls, user: User) -> UserSummary:
        return cls(
            id=user.id,
            email=user.email,
            name=user.name,
            role=user.role,
            tenant_id=user.tenant_id,
            location_id=user.location_id or "",
        )


@dataclass(frozen=True)
class LoginResult:
    access_token: str
    refresh_token: str
    user: UserSummary
