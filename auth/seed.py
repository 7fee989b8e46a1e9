"""
auth/seed.py -- Development data for the credential store.

Creates one restaurant group, one location and the standard front- and
back-of-house staff roster. Every account gets a real bcrypt hash of the
supplied password so the seeded users can actually sign in.

Menus, tables, inventory and orders belong to the wider restaurant schema and
are not created here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from auth.models import Location, Role, Tenant, User
from auth.passwords import PasswordHasher
from auth.store import UserStore

logger = logging.getLogger("blackpot.seed")

DEFAULT_PASSWORD = "changeme123"

TENANT_NAME = "Michelin Restaurant Group"
LOCATION_NAME = "Downtown Fine Dining"
LOCATION_ADDRESS = "123 Main Street, San Francisco, CA 94102"

# (email, display name, role)
STAFF: list[tuple[str, str, Role]] = [
    ("owner@blackpot.com", "Owner", Role.OWNER),
    ("manager1@blackpot.com", "Manager 1", Role.MANAGER),
    ("manager2@blackpot.com", "Manager 2", Role.MANAGER),
    ("server1@blackpot.com", "Alex Johnson (Server)", Role.SERVER),
    ("server2@blackpot.com", "Jordan Williams (Server)", Role.SERVER),
    ("server3@blackpot.com", "Casey Lee (Server)", Role.SERVER),
    ("server4@blackpot.com", "Morgan Davis (Server)", Role.SERVER),
    ("server5@blackpot.com", "Riley Martinez (Server)", Role.SERVER),
    ("host@blackpot.com", "Sam Taylor (Host)", Role.HOST),
    ("chef@blackpot.com", "Executive Chef", Role.CHEF),
    ("sous1@blackpot.com", "Sous Chef 1", Role.CHEF),
    ("sous2@blackpot.com", "Sous Chef 2", Role.CHEF),
    ("sommelier@blackpot.com", "Wine Sommelier", Role.SOMMELIER),
]


@dataclass
class SeedResult:
    tenant_id: str
    location_id: str
    user_ids: dict[str, str] = field(default_factory=dict)  # email -> id


def seed_staff(
    store: UserStore,
    hasher: PasswordHasher,
    password: str = DEFAULT_PASSWORD,
    reset: bool = False,
) -> SeedResult:
    """Populate the store with the demo tenant, location and staff.

    With reset=True all existing tenants, locations and users are deleted
    first. Without it, seeding into a store that already holds one of the
    roster emails raises sqlalchemy.exc.IntegrityError.
    """
    if reset:
        logger.info("Clearing existing tenants, locations and users")
        store.clear()

    tenant_id = store.create_tenant(Tenant(name=TENANT_NAME))
    location_id = store.create_location(Location(tenant_id=tenant_id, name=LOCATION_NAME, address=LOCATION_ADDRESS))
    result = SeedResult(tenant_id=tenant_id, location_id=location_id)

    # All seeded accounts share one password; hash once.
    password_hash = hasher.hash(password)
    for email, name, role in STAFF:
        result.user_ids[email] = store.create_user(
            User(
                email=email,
                name=name,
                role=role,
                tenant_id=tenant_id,
                location_id=location_id,
                password_hash=password_hash,
            )
        )
    logger.info("Seeded %d staff accounts for %s", len(result.user_ids), TENANT_NAME)
    return result
