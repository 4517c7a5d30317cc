"""
tests/conftest.py -- Shared test fixtures for BuildTrack tests.

This module provides:
  - FakeClock: a settable clock for SessionAuthority so expiry is tested
    without sleeping
  - credentials: a cheap CredentialManager (few KDF rounds)
  - auth_store / sessions: isolated in-memory store + authority for unit tests
  - client: TestClient wired to isolated stores through a patched lifespan

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
for the TestClient stores because TestClient runs sync route handlers in a
thread pool. Plain :memory: DBs are per-connection and would present a blank
schema to each worker thread. The named URI format
(file:name?mode=memory&cache=shared&uri=true) shares one in-memory instance
across all connections in the same process.

Environment variables must be set before any api/auth/core import so
get_settings() picks them up: DEBUG allows a low KDF round count, and the
rate limits are raised so the suite does not trip them.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set env before any api/auth/core import so get_settings() sees it.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("KDF_ROUNDS", "2")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")
os.environ.setdefault("SIGNUP_RATE_LIMIT", "1000/minute")
os.environ.setdefault("DATABASE_URL", "sqlite:///file:buildtrack_auth_default?mode=memory&cache=shared&uri=true")
os.environ.setdefault(
    "TRACKER_DATABASE_URL", "sqlite:///file:buildtrack_tracker_default?mode=memory&cache=shared&uri=true"
)

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app
from auth.credentials import CredentialManager
from auth.sessions import SessionAuthority
from auth.store import AuthStore
from tracker.store import TrackerStore

SESSION_TTL = 7 * 24 * 60 * 60
START_TIME = 1_767_225_600.0  # 2026-01-01T00:00:00Z

SIGNUP_PAYLOAD = {
    "name": "Alex Builder",
    "email": "alex@buildtrack.com",
    "password": "securepass1",
}


class FakeClock:
    """Callable clock returning a controllable UNIX timestamp."""

    def __init__(self, now: float = START_TIME) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ---------------------------------------------------------------------------
# Unit-level fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def credentials() -> CredentialManager:
    """A CredentialManager with minimal rounds -- fast, deterministic, weak."""
    return CredentialManager(rounds=2, key_bytes=64, salt_bytes=16)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def auth_store() -> Generator[AuthStore, None, None]:
    """Fresh in-memory AuthStore per test (single-threaded use only)."""
    store = AuthStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def sessions(auth_store: AuthStore, clock: FakeClock) -> SessionAuthority:
    return SessionAuthority(auth_store, ttl_seconds=SESSION_TTL, clock=clock)


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(
    auth_store: AuthStore,
    tracker: TrackerStore,
    credentials: CredentialManager,
    clock: FakeClock,
):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores into app.state so TestClient routes see
    isolated test DBs rather than the configured databases. The session
    authority uses the test clock so expiry can be driven from tests.

    The purge_task is a long-sleeping coroutine that keeps asyncio happy
    (a real asyncio.Task is required; MagicMock would fail on .cancel()).
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.auth_store = auth_store
        app.state.credentials = credentials
        app.state.sessions = SessionAuthority(auth_store, ttl_seconds=SESSION_TTL, clock=clock)
        app.state.tracker = tracker
        app.state.purge_task = asyncio.create_task(asyncio.sleep(99999))
        yield
        app.state.purge_task.cancel()

    return test_lifespan


@pytest.fixture(scope="session")
def api_stores() -> Generator[tuple[AuthStore, TrackerStore], None, None]:
    """Named shared-memory stores, created once and reset per test."""
    auth_store = AuthStore("sqlite:///file:test_auth_api?mode=memory&cache=shared&uri=true")
    tracker = TrackerStore("sqlite:///file:test_tracker_api?mode=memory&cache=shared&uri=true")
    yield auth_store, tracker
    auth_store.close()
    tracker.close()


@pytest.fixture
def client(
    api_stores: tuple[AuthStore, TrackerStore],
    credentials: CredentialManager,
    clock: FakeClock,
) -> Generator[TestClient, None, None]:
    """TestClient over the real app with empty auth tables and a freshly seeded tracker."""
    auth_store, tracker = api_stores
    auth_store.reset()
    tracker.reset()
    tracker.ensure_company()
    tracker.seed()
    limiter.reset()

    app.router.lifespan_context = _patch_lifespan(auth_store, tracker, credentials, clock)

    with TestClient(app, raise_server_exceptions=True) as test_client:
        yield test_client


@pytest.fixture
def signed_up(client: TestClient) -> tuple[TestClient, str, dict]:
    """Sign up the default user; yield (client, token, user)."""
    resp = client.post("/api/v1/auth/signup", json=SIGNUP_PAYLOAD)
    assert resp.status_code == 201, resp.text
    body = resp.json()
    return client, body["token"], body["user"]


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
