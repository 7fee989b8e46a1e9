"""
api/routes/v1/auth.py -- Authentication REST endpoints.

Routes:
  POST /api/v1/auth/login      -- password login; returns access + refresh tokens
  PUT  /api/v1/auth/password   -- change own password (requires auth)
  GET  /api/v1/auth/me         -- claims of the current token (requires auth)
  GET  /api/v1/auth/users      -- staff of the caller's tenant (OWNER/MANAGER only)

Security:
  [H2] POST /login is rate-limited to 10 requests/minute per IP. The aggregate
       per-client limit still counts on this route (override_defaults=False);
       SlowAPIMiddleware itself skips routes that carry their own limit.
  [C1] AuthService.login() provides timing equalization -- use it, never inline
       get_by_email() + verify().
  [M5] Cache-Control: no-store on login responses.
  Error collapsing: every login failure is 401 INVALID_CREDENTIALS with the
       same message, whether the email exists or not.

Handlers are plain `def` so FastAPI runs them in its thread pool; bcrypt and
the SQLAlchemy calls never block the event loop.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import LOGIN_RATE_LIMIT, limiter
from api.models import (
    ClaimsModel,
    ErrorResponse,
    LoginData,
    LoginRequest,
    LoginResponse,
    MeResponse,
    MessageResponse,
    PasswordChangeRequest,
    StaffListResponse,
    StaffMember,
)
from auth.dependencies import get_auth_service, get_current_claims, require_role
from auth.exceptions import AuthError, InvalidCredentials
from auth.models import Role, TokenClaims
from auth.service import AuthService

# Auth policy:
# - POST /api/v1/auth/login:     public -- login endpoint must be unauthenticated
# - PUT  /api/v1/auth/password:  requires auth (get_current_claims)
# - GET  /api/v1/auth/me:        requires auth (get_current_claims)
# - GET  /api/v1/auth/users:     requires OWNER or MANAGER (require_role)
router = APIRouter()


def _json(model, status_code: int = 200) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=model.model_dump(mode="json", by_alias=True, exclude_none=True),
    )


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


# [H2] @limiter.limit goes BELOW @router: the registered endpoint must be the
# rate-limited wrapper. No postponed annotations in this module, FastAPI reads
# them through the wrapper via __wrapped__.
@router.post("/auth/login", response_model=LoginResponse, responses={401: {"model": ErrorResponse}})
@limiter.limit(LOGIN_RATE_LIMIT, override_defaults=False)
def login(
    request: Request,
    body: LoginRequest,
    service: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    """Authenticate with email and password; return an access/refresh token pair."""
    try:
        result = service.login(body.email, body.password)
    except InvalidCredentials as exc:
        resp = _json(ErrorResponse(code=401, error="INVALID_CREDENTIALS", message=exc.message), 401)
        resp.headers["Cache-Control"] = "no-store"  # [M5]
        return resp

    resp = _json(LoginResponse(data=LoginData.from_result(result)))
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.put("/auth/password", response_model=MessageResponse, responses={400: {"model": ErrorResponse}})
def change_password(
    body: PasswordChangeRequest,
    claims: TokenClaims = Depends(get_current_claims),
    service: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    """Change the caller's password. The user id comes from the token, never the body.

    Tokens issued before the change remain valid until they expire.
    """
    try:
        service.change_password(claims.user_id, body.current_password, body.new_password)
    except AuthError as exc:
        return _json(ErrorResponse(code=400, error="PASSWORD_UPDATE_FAILED", message=exc.message), 400)
    return _json(MessageResponse(message="Password updated successfully"))


@router.get("/auth/me", response_model=MeResponse)
def me(claims: TokenClaims = Depends(get_current_claims)) -> JSONResponse:
    """Return the identity snapshot embedded in the caller's access token."""
    return _json(MeResponse(data=ClaimsModel.from_claims(claims)))


@router.get("/auth/users", response_model=StaffListResponse, responses={403: {"model": ErrorResponse}})
def list_staff(
    claims: TokenClaims = Depends(require_role(Role.OWNER, Role.MANAGER)),
    service: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    """List staff accounts of the caller's own tenant. OWNER and MANAGER only."""
    users = service.store.list_users(claims.tenant_id)
    return _json(StaffListResponse(data=[StaffMember.from_user(u) for u in users]))
