"""
tests/conftest.py -- Shared test fixtures for the Blackpot auth tests.

This module provides:
  - FrozenClock: a settable clock for deterministic token expiry tests
  - store / hasher / codec / service: unit-level collaborators on a private
    in-memory DB
  - staff: a seeded tenant with OWNER, MANAGER, SERVER and HOST accounts plus
    one user in a second tenant
  - api_client: TestClient over the real app with a patched lifespan

Design: Named shared-memory SQLite URIs (not plain :memory:) are used for the
API fixture because TestClient runs route handlers in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread.

JWT_SECRET and DATABASE_URL must be set before any api/ or core/ import so
get_settings() succeeds. BCRYPT_ROUNDS=4 keeps hashing fast; the limiter is
disabled so repeated logins across tests are not throttled.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

# CRITICAL: Set required config before any app import.
TEST_SECRET = "test-signing-secret-0123456789abcdef"
os.environ.setdefault("JWT_SECRET", TEST_SECRET)
os.environ.setdefault("DATABASE_URL", "sqlite:///file:blackpot_default?mode=memory&cache=shared&uri=true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "warning")

import pytest
from fastapi.testclient import TestClient

from auth.models import Location, Role, Tenant, User
from auth.passwords import PasswordHasher
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import TokenCodec


class FrozenClock:
    """Callable clock whose time only moves when a test moves it."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2026, 1, 15, 18, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, delta: timedelta) -> None:
        self.current += delta


@dataclass
class Staff:
    """Ids and plaintext passwords of the seeded accounts."""

    tenant_id: str
    other_tenant_id: str
    location_id: str
    ids: dict[str, str]  # email -> id
    passwords: dict[str, str]  # email -> plaintext


def seed_test_staff(store: UserStore, hasher: PasswordHasher) -> Staff:
    tenant_id = store.create_tenant(Tenant(name="Test Group"))
    other_tenant_id = store.create_tenant(Tenant(name="Other Group"))
    location_id = store.create_location(Location(tenant_id=tenant_id, name="Test Bistro"))

    accounts = [
        ("owner@x.com", "correct", "Olive Owner", Role.OWNER, tenant_id, location_id),
        ("manager@x.com", "manager-pass", "Max Manager", Role.MANAGER, tenant_id, location_id),
        ("server@x.com", "server-pass", "Sid Server", Role.SERVER, tenant_id, location_id),
        # Unassigned to any location.
        ("host@x.com", "host-pass-1", "Hana Host", Role.HOST, tenant_id, None),
        ("chef@other.com", "chef-pass", "Other Chef", Role.CHEF, other_tenant_id, None),
    ]
    ids: dict[str, str] = {}
    passwords: dict[str, str] = {}
    for email, password, name, role, tid, lid in accounts:
        ids[email] = store.create_user(
            User(
                email=email,
                name=name,
                role=role,
                tenant_id=tid,
                location_id=lid,
                password_hash=hasher.hash(password),
            )
        )
        passwords[email] = password
    return Staff(tenant_id, other_tenant_id, location_id, ids, passwords)


# ---------------------------------------------------------------------------
# Unit-level fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    s = UserStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture(scope="session")
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def codec(clock: FrozenClock) -> TokenCodec:
    return TokenCodec(TEST_SECRET, now=clock)


@pytest.fixture
def service(store: UserStore, hasher: PasswordHasher, codec: TokenCodec) -> AuthService:
    return AuthService(store, hasher, codec)


@pytest.fixture
def staff(store: UserStore, hasher: PasswordHasher) -> Staff:
    return seed_test_staff(store, hasher)


# ---------------------------------------------------------------------------
# API fixture -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, Staff], None, None]:
    """Yield (client, staff) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan, so tests
    hit real middleware, gates and handlers but an isolated in-memory store.
    The service uses the real wall clock and the default token lifetimes.
    """
    from api.main import app

    db_name = f"blackpot_{request.module.__name__.rsplit('.', 1)[-1]}"
    user_store = UserStore(f"sqlite:///file:{db_name}?mode=memory&cache=shared&uri=true")
    pw_hasher = PasswordHasher(rounds=4)
    seeded = seed_test_staff(user_store, pw_hasher)
    auth_service = AuthService(user_store, pw_hasher, TokenCodec(TEST_SECRET))

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.auth_service = auth_service
        yield

    original_lifespan = app.router.lifespan_context
    app.router.lifespan_context = test_lifespan

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, seeded

    app.router.lifespan_context = original_lifespan
    user_store.close()
