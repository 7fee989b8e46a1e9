"""
api/main.py -- FastAPI application entry point for the Blackpot auth service.

Run with:  python main.py serve
           uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware    -- adds CORS headers for the configured browser origin
  2. SlowAPIMiddleware -- enforces the aggregate and per-route rate limits
  3. log_requests      -- one log line per request with status and latency

Lifespan builds the collaborators once (UserStore, PasswordHasher,
TokenCodec) and wires them into a single AuthService on app.state. Route
handlers reach it through auth.dependencies.get_auth_service -- there is no
module-level service instance.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from auth.exceptions import InvalidCredentials
from auth.passwords import PasswordHasher
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import TokenCodec
from core.config import get_settings

API_VERSION = "1.0.0"
API_PREFIX = "/api/v1"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

_settings = get_settings()

logging.basicConfig(
    level=_settings.log_level,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("blackpot.api")


def _error(status_code: int, error: str, message: str, detail: list[str] | None = None) -> JSONResponse:
    body = ErrorResponse(code=status_code, error=error, message=message, detail=detail)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", exclude_none=True))


# ---------------------------------------------------------------------------
# Lifespan -- modern startup / shutdown pattern (replaces @app.on_event)
# ---------------------------------------------------------------------------


def build_auth_service(store: UserStore) -> AuthService:
    """Wire an AuthService from settings around an existing store.

    TokenCodec raises ConfigError here if the signing secret is missing, so a
    misconfigured process fails at startup, not on the first request.
    """
    settings = get_settings()
    return AuthService(
        store=store,
        hasher=PasswordHasher(rounds=settings.bcrypt_rounds),
        codec=TokenCodec(settings.jwt_secret),
        access_ttl=settings.access_token_ttl,
        refresh_ttl=settings.refresh_token_ttl,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Everything before yield runs on startup; everything after yield runs on
    shutdown.
    """
    logger.info("Blackpot auth API starting up")
    store = UserStore(_settings.database_url)
    app.state.auth_service = build_auth_service(store)
    logger.info("Auth initialized (%d users)", store.count_users())

    yield

    store.close()
    logger.info("Blackpot auth API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Blackpot Auth API",
    description="Staff authentication for the Blackpot restaurant management system.",
    version=API_VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# add_middleware() wraps the current stack, so the LAST call is outermost.
# Register innermost first: SlowAPI, then CORS on the outside so even 429
# responses carry CORS headers.
# ---------------------------------------------------------------------------

app.add_middleware(SlowAPIMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[_settings.cors_origin],
    allow_methods=["GET", "POST", "PUT"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


# ---------------------------------------------------------------------------
# Request logging middleware
#
# Pattern: Interceptor / Chain of Responsibility. Every request passes through
# this coroutine before reaching any route handler. Wall-clock time is taken
# before and after call_next to report latency on every response.
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix=API_PREFIX, tags=["Auth"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope
# {status: "error", code, error, message} so API clients can parse errors
# uniformly.
# ---------------------------------------------------------------------------


# Route-specific envelopes for malformed bodies. A login body that fails
# validation is a failed login and must look exactly like one.
_VALIDATION_ENVELOPES: dict[str, tuple[int, str, str]] = {
    f"{API_PREFIX}/auth/login": (401, "INVALID_CREDENTIALS", InvalidCredentials.default_message),
    f"{API_PREFIX}/auth/password": (400, "PASSWORD_UPDATE_FAILED", "Request validation failed."),
}


# Plain def: SlowAPIMiddleware calls this handler synchronously and falls back
# to slowapi's own bare {"error": ...} body when given a coroutine function.
@app.exception_handler(RateLimitExceeded)
def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded."""
    response = _error(429, "RATE_LIMITED", "Too many requests from this IP, please try again later.")
    item = getattr(getattr(exc, "limit", None), "limit", None)
    response.headers["Retry-After"] = str(item.get_expiry() if item is not None else 60)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 listing each invalid field. Submitted values are never echoed.

    Login and password-change bodies use their routes' failure envelopes
    instead (401 INVALID_CREDENTIALS without detail, 400 PASSWORD_UPDATE_FAILED).
    """
    problems = [f"{'.'.join(str(p) for p in err['loc'][1:]) or 'body'}: {err['msg']}" for err in exc.errors()]
    envelope = _VALIDATION_ENVELOPES.get(request.url.path)
    if envelope is None:
        return _error(422, "VALIDATION_ERROR", "Request validation failed.", problems)
    status_code, error, message = envelope
    if status_code == 401:
        response = _error(status_code, error, message)
        response.headers["Cache-Control"] = "no-store"  # [M5]
        return response
    return _error(status_code, error, message, problems)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions.

    The auth gates raise HTTPException with detail={"error": ..., "message": ...}.
    Anything else (e.g. Starlette's 404 for unknown paths) gets a code derived
    from the status.
    """
    if isinstance(exc.detail, dict):
        response = _error(exc.status_code, exc.detail["error"], exc.detail.get("message", ""))
    elif exc.status_code == 404:
        response = _error(404, "NOT_FOUND", "Route not found")
    else:
        response = _error(exc.status_code, f"HTTP_{exc.status_code}", str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The exception and stack trace go to the log only, never to the response
    body. The client receives only a generic message.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(500, "INTERNAL_ERROR", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable
# regardless of router registration state. Exempt from rate limiting --
# health checks from load balancers must not be throttled.
# ---------------------------------------------------------------------------


@limiter.exempt  # must be ABOVE @app.get so FastAPI registers the undecorated function
@app.get("/health", tags=["Health"], response_model=HealthResponse)
def health(request: Request) -> JSONResponse:
    """Return liveness, version and database reachability."""
    try:
        db_ok = request.app.state.auth_service.store.ping()
    except Exception:
        logger.exception("Health check database ping failed")
        db_ok = False
    body = HealthResponse(
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=API_VERSION,
        components={"app": "ok", "database": "ok" if db_ok else "error"},
    )
    return JSONResponse(content=body.model_dump(mode="json"))
