"""
tests/conftest.py -- Shared test fixtures for credential service tests.

This module provides:
  - store: a fresh InMemoryCredentialStore per test
  - client: TestClient over the real app with a patched lifespan that wires a
    fresh in-memory store into app.state
  - register / login: small helpers that post credential bodies

The env vars must be set before any app import: get_settings() is cached on
first call, and api/limiter.py reads RATE_LIMIT_ENABLED at import time.
BCRYPT_ROUNDS=4 is the minimum bcrypt accepts and keeps the suite fast; the
hashing code path is identical at any cost.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager

# CRITICAL: Set before any api/auth/core import.
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import httpx
import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.store import InMemoryCredentialStore

# ---------------------------------------------------------------------------
# Store fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> Generator[InMemoryCredentialStore, None, None]:
    s = InMemoryCredentialStore()
    yield s
    s.close()


def _patch_lifespan(store):
    """Return a lifespan that installs the given store instead of building one."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.store = store
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# HTTP fixtures -- one fresh store per test so scenarios do not leak users
# ---------------------------------------------------------------------------


@pytest.fixture
def client(store: InMemoryCredentialStore) -> Generator[TestClient, None, None]:
    """Yield a TestClient hitting real routes backed by the `store` fixture."""
    original = app.router.lifespan_context
    app.router.lifespan_context = _patch_lifespan(store)
    with TestClient(app, raise_server_exceptions=True) as c:
        yield c
    app.router.lifespan_context = original


@pytest.fixture
def register(client: TestClient) -> Callable[[str, str], httpx.Response]:
    def _register(username: str, password: str) -> httpx.Response:
        return client.post("/register", json={"username": username, "password": password})

    return _register


@pytest.fixture
def login(client: TestClient) -> Callable[[str, str], httpx.Response]:
    def _login(username: str, password: str) -> httpx.Response:
        return client.post("/login", json={"username": username, "password": password})

    return _login
