"""
tests/conftest.py -- Shared test fixtures for Alumni Connect.

This module provides:
  - make_store(): an isolated in-memory KVStore
  - store / sessions / auth_service: unit-level fixtures
  - client: TestClient over the real app with a patched lifespan that wires
    an isolated store and seeds the demo accounts
  - login_token(): helper that logs in through the API and returns the token

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. Each store gets a unique name so tests never share state.

DEBUG and RATE_LIMIT_ENABLED must be set before any app import: get_settings()
is cached on first use, and the limiter reads it at import time.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# Set before any core/auth/api import so get_settings() auto-generates
# SECRET_KEY and the limiter starts disabled.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest
from fastapi.testclient import TestClient

from api.main import app, build_services
from auth.service import AuthService, seed_demo_users
from auth.sessions import SessionManager
from kv.store import KVStore

ADMIN_EMAIL = "admin@alumni.edu"
ADMIN_PASSWORD = "admin123"
USER_EMAIL = "user@alumni.edu"
USER_PASSWORD = "user123"


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def make_store() -> KVStore:
    """Create an isolated named shared-memory SQLite store."""
    return KVStore(f"sqlite:///file:test_kv_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true")


def _patch_lifespan(store: KVStore):
    """Return a lifespan that wires the test store into app.state and seeds demo users."""

    @asynccontextmanager
    async def test_lifespan(app):
        build_services(app, store)
        seed_demo_users(store)
        yield

    return test_lifespan


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def login_token(client: TestClient, email: str, password: str) -> str:
    resp = client.post("/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, f"Login for {email} failed: {resp.status_code} {resp.text}"
    return resp.json()["token"]


# ---------------------------------------------------------------------------
# Unit fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> Generator[KVStore, None, None]:
    s = make_store()
    yield s
    s.close()


@pytest.fixture
def sessions(store: KVStore) -> SessionManager:
    return SessionManager(store)


@pytest.fixture
def auth_service(store: KVStore, sessions: SessionManager) -> AuthService:
    return AuthService(store, sessions)


# ---------------------------------------------------------------------------
# Integration fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def client(store: KVStore) -> Generator[TestClient, None, None]:
    """TestClient over the real app, backed by the isolated store fixture.

    The demo admin (admin@alumni.edu / admin123) and regular user
    (user@alumni.edu / user123) exist when the client starts.
    """
    app.router.lifespan_context = _patch_lifespan(store)
    with TestClient(app, raise_server_exceptions=True) as c:
        yield c


@pytest.fixture
def admin_token(client: TestClient) -> str:
    return login_token(client, ADMIN_EMAIL, ADMIN_PASSWORD)


@pytest.fixture
def user_token(client: TestClient) -> str:
    return login_token(client, USER_EMAIL, USER_PASSWORD)
