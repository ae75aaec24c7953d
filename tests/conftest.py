"""
tests/conftest.py -- Shared test fixtures for library integration tests.

This module provides:
  - make_test_engine(): isolated named in-memory database
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: TestClient plus bearer tokens for an admin and a reader
  - catalog / rentals: services over a fresh database for unit tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process.

Environment variables must be set before any api/auth/core import so
get_settings() picks them up: DEBUG lets it auto-generate SECRET_KEY, and
"testserver" is the Host header TestClient sends.
"""

from __future__ import annotations

import itertools
import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

# CRITICAL: set before any api/auth/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost"]')
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine

from api.main import app, wire_state
from auth.models import Caller, User
from auth.store import UserStore
from auth.tokens import create_access_token, hash_password
from catalog.service import CatalogService
from catalog.store import CatalogStore
from core.db import create_db_engine
from rentals.service import RentalService
from rentals.store import RentalStore

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "adminpass123"
READER_EMAIL = "reader@example.com"
READER_PASSWORD = "readerpass123"

_db_counter = itertools.count()


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def make_test_engine(db_suffix: str) -> Engine:
    """Create an engine on a named shared-memory SQLite database.

    A process-wide counter is appended so two fixtures never share a DB.
    """
    name = f"test_library_{db_suffix}_{next(_db_counter)}"
    return create_db_engine(f"sqlite:///file:{name}?mode=memory&cache=shared&uri=true")


def _patch_lifespan(engine: Engine):
    """Return an async context manager that replaces the real lifespan.

    Wires the test engine into app.state so TestClient routes see an
    isolated in-memory DB rather than the production database.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        wire_state(app, engine)
        yield

    return test_lifespan


def _create_user(store: UserStore, email: str, name: str, password: str, is_admin: bool = False) -> int:
    return store.create_user(
        User(email=email, name=name, hashed_password=hash_password(password), is_admin=is_admin)
    )


# ---------------------------------------------------------------------------
# API fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@dataclass
class ApiContext:
    client: TestClient
    admin_headers: dict[str, str]
    reader_headers: dict[str, str]
    admin_id: int
    reader_id: int


@pytest.fixture(scope="module")
def api_client() -> Generator[ApiContext, None, None]:
    """Yield an ApiContext for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so
    tests hit real route handlers but use an isolated in-memory store.
    An admin and a regular reader are created before the client starts.
    """
    engine = make_test_engine("api")
    user_store = UserStore(engine)
    admin_id = _create_user(user_store, ADMIN_EMAIL, "Admin", ADMIN_PASSWORD, is_admin=True)
    reader_id = _create_user(user_store, READER_EMAIL, "Reader", READER_PASSWORD)

    admin_token = create_access_token(admin_id, ADMIN_EMAIL, expire_seconds=3600)
    reader_token = create_access_token(reader_id, READER_EMAIL, expire_seconds=3600)

    app.router.lifespan_context = _patch_lifespan(engine)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield ApiContext(
            client=client,
            admin_headers={"Authorization": f"Bearer {admin_token}"},
            reader_headers={"Authorization": f"Bearer {reader_token}"},
            admin_id=admin_id,
            reader_id=reader_id,
        )

    engine.dispose()


# ---------------------------------------------------------------------------
# Service fixtures -- fresh database per test
# ---------------------------------------------------------------------------


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    eng = make_test_engine("unit")
    UserStore(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def users(engine: Engine) -> UserStore:
    return UserStore(engine)


@pytest.fixture
def catalog_store(engine: Engine) -> CatalogStore:
    return CatalogStore(engine)


@pytest.fixture
def catalog(catalog_store: CatalogStore) -> CatalogService:
    return CatalogService(catalog_store, page_size=5)


@pytest.fixture
def rentals(engine: Engine, catalog_store: CatalogStore) -> RentalService:
    return RentalService(RentalStore(engine), catalog_store, rental_days=7)


@pytest.fixture
def admin(users: UserStore) -> Caller:
    uid = _create_user(users, ADMIN_EMAIL, "Admin", ADMIN_PASSWORD, is_admin=True)
    return Caller(id=uid, name="Admin", is_admin=True)


@pytest.fixture
def reader(users: UserStore) -> Caller:
    uid = _create_user(users, READER_EMAIL, "Reader", READER_PASSWORD)
    return Caller(id=uid, name="Reader")


@pytest.fixture
def other_reader(users: UserStore) -> Caller:
    uid = _create_user(users, "other@example.com", "Other", "otherpass123")
    return Caller(id=uid, name="Other")
