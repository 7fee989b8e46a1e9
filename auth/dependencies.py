"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication and
authorization.

get_current_claims() is the Authentication Gate: it reads the
Authorization: Bearer <token> header, verifies the token, and hands the
decoded TokenClaims to the handler as an ordinary parameter. It never reads
the credential store; the token's embedded snapshot is the identity.

require_role(*roles) is the Authorization Gate: a dependency factory, one per
protected route, layered on get_current_claims() so a missing or invalid
token is still a 401 before the role check runs.

Both gates raise HTTPException with a structured detail dict; the exception
handler in api/main.py wraps it in the standard error envelope.

Layer rule: auth/dependencies.py may import from fastapi (for
Depends/HTTPException/Request) because this module is part of the FastAPI
dependency injection system.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Depends, HTTPException, Request

from auth.exceptions import InsufficientPermissions, TokenInvalid
from auth.models import Role, TokenClaims
from auth.service import AuthService


def get_auth_service(request: Request) -> AuthService:
    """Return the AuthService built in the app lifespan."""
    return request.app.state.auth_service


def _bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def get_current_claims(
    request: Request,
    service: AuthService = Depends(get_auth_service),
) -> TokenClaims:
    """Require a valid bearer token. Raises HTTP 401 INVALID_TOKEN otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(claims: TokenClaims = Depends(get_current_claims)): ...
    """
    token = _bearer_token(request)
    if token is None:
        raise HTTPException(
            status_code=401,
            detail={"error": "INVALID_TOKEN", "message": "No authentication token provided"},
        )
    try:
        return service.verify_token(token)
    except TokenInvalid as exc:
        raise HTTPException(
            status_code=401,
            detail={"error": "INVALID_TOKEN", "message": "Invalid or expired token"},
        ) from exc


def require_role(*roles: Role) -> Callable[..., TokenClaims]:
    """Build a dependency that admits only the given roles.

    Raises HTTP 403 INSUFFICIENT_PERMISSIONS naming the accepted roles.

    Use as a FastAPI dependency:
        @router.get("/staff")
        def route(claims: TokenClaims = Depends(require_role(Role.OWNER, Role.MANAGER))): ...
    """
    allowed = tuple(Role(r) for r in roles)

    def dependency(claims: TokenClaims = Depends(get_current_claims)) -> TokenClaims:
        try:
            return AuthService.authorize(claims, allowed)
        except InsufficientPermissions as exc:
            raise HTTPException(
                status_code=403,
                detail={"error": "INSUFFICIENT_PERMISSIONS", "message": exc.message},
            ) from exc

    return dependency
