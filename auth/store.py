"""
auth/store.py -- SQLAlchemy Core persistence layer for staff credentials.

Pattern: Repository + Data Mapper. UserStore is the repository; _row_to_user
is the mapper. Route, service and seed code never touch SQL directly.

The auth core needs exactly three operations from this store:
get_by_email(), get_by_id() and update_password_hash(). The remaining methods
exist for provisioning (the seed command) and for the staff listing.

Security:
  All queries use bound parameters. No f-strings in SQL.
  Emails are normalized to lower case on write and on lookup, so uniqueness
  and login are case-insensitive.

Schema: tenants -> locations -> users. Ids are uuid4 hex strings so they are
opaque to clients and portable between SQLite and PostgreSQL.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, ForeignKey, Integer, MetaData, String, Table, Text, create_engine, event, text
from sqlalchemy.engine import Engine

from auth.models import Location, Role, Tenant, User

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_tenants = Table(
    "tenants",
    _metadata,
    Column("id", String(32), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("is_active", Integer, nullable=False, server_default="1"),
    Column("created_at", String(32), nullable=False),
)

_locations = Table(
    "locations",
    _metadata,
    Column("id", String(32), primary_key=True),
    Column("tenant_id", String(32), ForeignKey("tenants.id"), nullable=False),
    Column("name", String(255), nullable=False),
    Column("address", Text),
    Column("is_active", Integer, nullable=False, server_default="1"),
    Column("created_at", String(32), nullable=False),
)

_users = Table(
    "users",
    _metadata,
    Column("id", String(32), primary_key=True),
    Column("tenant_id", String(32), ForeignKey("tenants.id"), nullable=False),
    Column("location_id", String(32), ForeignKey("locations.id")),  # NULL = unassigned
    Column("email", String(255), nullable=False, unique=True),
    Column("name", String(255), nullable=False),
    Column("password_hash", Text, nullable=False),
    Column("role", String(30), nullable=False),
    Column("is_active", Integer, nullable=False, server_default="1"),
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# SQLite pragmas
# ---------------------------------------------------------------------------


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode and foreign keys on every SQLite connection.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_id() -> str:
    return uuid.uuid4().hex


def _normalize_email(email: str) -> str:
    return email.strip().lower()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for Tenant, Location and User records.

    Usage:
        store = UserStore(settings.database_url)
        tenant_id = store.create_tenant(Tenant(name="Michelin Restaurant Group"))
        store.create_user(User(email="owner@blackpot.com", ..., tenant_id=tenant_id))
        user = store.get_by_email("owner@blackpot.com")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_sqlite_pragmas)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Provisioning
    # ------------------------------------------------------------------

    def create_tenant(self, tenant: Tenant) -> str:
        """Insert a tenant and return its id."""
        tenant_id = tenant.id or _new_id()
        with self.engine.connect() as conn:
            conn.execute(
                _tenants.insert().values(
                    id=tenant_id,
                    name=tenant.name,
                    is_active=1 if tenant.is_active else 0,
                    created_at=_now_iso(),
                )
            )
            conn.commit()
        return tenant_id

    def create_location(self, location: Location) -> str:
        """Insert a location under an existing tenant and return its id."""
        location_id = location.id or _new_id()
        with self.engine.connect() as conn:
            conn.execute(
                _locations.insert().values(
                    id=location_id,
                    tenant_id=location.tenant_id,
                    name=location.name,
                    address=location.address,
                    is_active=1 if location.is_active else 0,
                    created_at=_now_iso(),
                )
            )
            conn.commit()
        return location_id

    def create_user(self, user: User) -> str:
        """Insert a user and return its id.

        Raises sqlalchemy.exc.IntegrityError if the email already exists.
        """
        user_id = user.id or _new_id()
        with self.engine.connect() as conn:
            conn.execute(
                _users.insert().values(
                    id=user_id,
                    tenant_id=user.tenant_id,
                    location_id=user.location_id,
                    email=_normalize_email(user.email),
                    name=user.name,
                    password_hash=user.password_hash,
                    role=Role(user.role).value,
                    is_active=1 if user.is_active else 0,
                    created_at=_now_iso(),
                )
            )
            conn.commit()
        return user_id

    def clear(self) -> None:
        """Delete every row, children before parents. Development seeding only."""
        with self.engine.connect() as conn:
            for table in (_users, _locations, _tenants):
                conn.execute(table.delete())
            conn.commit()

    # ------------------------------------------------------------------
    # User queries
    # ------------------------------------------------------------------

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by email (case-insensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == _normalize_email(email))).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: str) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def update_password_hash(self, user_id: str, password_hash: str) -> bool:
        """Replace a user's password hash. Returns False if user_id was not found.

        A single-row UPDATE; concurrent changes for the same user resolve as
        last writer wins.
        """
        with self.engine.connect() as conn:
            result = conn.execute(_users.update().where(_users.c.id == user_id).values(password_hash=password_hash))
            conn.commit()
        return result.rowcount > 0

    def list_users(self, tenant_id: str) -> list[User]:
        """Return all users of one tenant ordered by name."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _users.select().where(_users.c.tenant_id == tenant_id).order_by(_users.c.name)
            ).fetchall()
        return [_row_to_user(r) for r in rows]

    def count_users(self) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(text("SELECT COUNT(*) FROM users")).scalar()
        return result or 0

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            return conn.execute(text("SELECT 1")).scalar() == 1

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        name=row.name,
        role=Role(row.role),
        tenant_id=row.tenant_id,
        location_id=row.location_id,
        password_hash=row.password_hash,
        is_active=bool(row.is_active),
        created_at=row.created_at,
    )
