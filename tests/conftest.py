"""
tests/conftest.py -- Shared test fixtures for Oil Union tests.

This module provides:
  - make_database(): an isolated named shared-memory SQLite Database
  - seed_world(): one admin and two dealers (A and B) with known passwords
  - db / services / seed: function-scoped fixtures for store and service tests
  - api_client: module-scoped TestClient wired to its own seeded Database

Design: TestClient runs route handlers in a worker thread pool, so every
thread must see the same in-memory database. Database gives memory URLs a
StaticPool (one shared connection). The uuid-named URI
(file:name?mode=memory&cache=shared&uri=true) keeps each Database isolated
from the others created in the same process.

DEBUG must be set before any auth/core import so get_settings() can
auto-generate signing keys instead of raising ValueError. BCRYPT_ROUNDS=4
keeps the many hash_password() calls fast.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

# CRITICAL: Set before any auth/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app
from auth.models import ROLE_ADMIN, Identity, User
from auth.tokens import create_access_token, hash_password
from core.database import Database
from registry.models import Dealer
from services import Services

ADMIN_EMAIL = "admin@union.example"
ADMIN_PASSWORD = "adminpass123"
DEALER_PASSWORD = "dealerpass123"

# Rate limits are exercised by slowapi's own tests; here they would only
# make the login-heavy suites flaky.
limiter.enabled = False


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def make_database(label: str) -> Database:
    """Create a Database on a fresh named shared-memory SQLite instance."""
    name = f"test_{label}_{uuid.uuid4().hex[:8]}"
    return Database(f"sqlite:///file:{name}?mode=memory&cache=shared&uri=true")


@dataclass
class Seed:
    admin: User
    admin_identity: Identity
    admin_token: str
    dealer_a: Dealer
    dealer_a_user: User
    dealer_a_identity: Identity
    dealer_a_token: str
    dealer_b: Dealer
    dealer_b_user: User
    dealer_b_identity: Identity
    dealer_b_token: str
    admin_password: str = ADMIN_PASSWORD
    dealer_password: str = DEALER_PASSWORD


def _make_dealer(services: Services, actor: Identity, tag: str) -> tuple[Dealer, User]:
    dealer, _temp = services.dealers.create_dealer(
        actor,
        name=f"Dealer {tag}",
        username=f"dealer_{tag.lower()}",
        email=f"dealer.{tag.lower()}@union.example",
        company_name=f"{tag} Fuels",
        primary_contact_name=f"Contact {tag}",
        primary_contact_phone=f"90000000{len(tag)}",
        primary_contact_email=f"contact.{tag.lower()}@union.example",
        address=f"{tag} Road, Srinagar",
    )
    # Replace the temporary password with a known one, as if the dealer had changed it.
    services.users.set_password(dealer.user_id, hash_password(DEALER_PASSWORD), temp=False)
    return dealer, services.users.get_by_id(dealer.user_id)


def seed_world(services: Services) -> Seed:
    """Create an admin and two dealers, and mint a one-hour token for each."""
    admin_id = services.users.create_user(
        User(
            role=ROLE_ADMIN,
            name="Union Admin",
            username="admin",
            email=ADMIN_EMAIL,
            password_hash=hash_password(ADMIN_PASSWORD),
        )
    )
    admin = services.users.get_by_id(admin_id)
    admin_identity = Identity.for_user(admin)

    dealer_a, user_a = _make_dealer(services, admin_identity, "Alpha")
    dealer_b, user_b = _make_dealer(services, admin_identity, "Beta")
    ident_a = Identity.for_user(user_a)
    ident_b = Identity.for_user(user_b)

    return Seed(
        admin=admin,
        admin_identity=admin_identity,
        admin_token=create_access_token(admin_identity, expire_seconds=3600),
        dealer_a=dealer_a,
        dealer_a_user=user_a,
        dealer_a_identity=ident_a,
        dealer_a_token=create_access_token(ident_a, expire_seconds=3600),
        dealer_b=dealer_b,
        dealer_b_user=user_b,
        dealer_b_identity=ident_b,
        dealer_b_token=create_access_token(ident_b, expire_seconds=3600),
    )


def _patch_lifespan(db: Database, services: Services):
    """Return an async context manager that replaces the real lifespan.

    Wires the pre-built test Database and services into app.state so
    TestClient routes see the isolated test DB rather than the configured one.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.db = db
        app.state.services = services
        app.state.user_store = services.users
        app.state.purge_task = None
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Function-scoped fixtures -- stores and services
# ---------------------------------------------------------------------------


@pytest.fixture
def db() -> Generator[Database, None, None]:
    database = make_database("unit")
    yield database
    database.close()


@pytest.fixture
def services(db: Database) -> Services:
    return Services.build(db)


@pytest.fixture
def seed(services: Services) -> Seed:
    return seed_world(services)


# ---------------------------------------------------------------------------
# Module-scoped fixture -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client() -> Generator[tuple[TestClient, Seed, Services], None, None]:
    """Yield (client, seed, services) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so
    tests hit real route handlers but use an isolated in-memory store.
    """
    database = make_database("api")
    svc = Services.build(database)
    world = seed_world(svc)

    app.router.lifespan_context = _patch_lifespan(database, svc)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, world, svc

    database.close()
