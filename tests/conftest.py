"""
tests/conftest.py -- Shared test fixtures for Summit Auth.

This module provides:
  - store / hasher / tokens / authenticator: unit-level collaborators backed
    by a fresh in-memory SQLite database per test
  - _patch_lifespan(): wires a test authenticator into app.state, bypassing
    the real startup
  - api_client: TestClient over the real FastAPI app with isolated stores

Design: Named shared-memory SQLite URIs (not plain :memory:) are used for the
API client because TestClient runs sync route handlers in a thread pool.
Plain :memory: DBs are per-connection and would present a blank schema to
each worker thread.

The DEBUG env var must be set before any api/ import so get_settings()
auto-generates SECRET_KEY in dev mode rather than raising ValueError.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set DEBUG before any api/core import so get_settings() can
# auto-generate SECRET_KEY in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from auth.passwords import PasswordHasher
from auth.resolver import AccountResolver
from auth.service import SessionAuthenticator
from auth.store import UserStore
from auth.tokens import TokenService

TEST_SECRET = "test-secret-key-that-is-long-enough-0123456789"
WRONG_SECRET = "wrong-secret-key-that-is-also-long-enough-98765"

# bcrypt's minimum cost -- keeps the suite fast.
TEST_ROUNDS = 4


def _memory_url() -> str:
    return f"sqlite:///file:test_auth_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"


# ---------------------------------------------------------------------------
# Unit-level fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    s = UserStore(_memory_url())
    yield s
    s.close()


@pytest.fixture(scope="session")
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=TEST_ROUNDS)


@pytest.fixture
def tokens() -> TokenService:
    return TokenService(TEST_SECRET)


@pytest.fixture
def authenticator(store: UserStore, hasher: PasswordHasher, tokens: TokenService) -> SessionAuthenticator:
    return SessionAuthenticator(store=store, hasher=hasher, tokens=tokens, resolver=AccountResolver(store))


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(user_store: UserStore, authenticator: SessionAuthenticator):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.authenticator = authenticator
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client() -> Generator[tuple[TestClient, UserStore, TokenService], None, None]:
    """Yield (client, store, tokens) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so tests
    hit real route handlers, validation and exception handlers, but use an
    isolated in-memory store and a known signing secret.
    """
    from api.main import app

    user_store = UserStore(_memory_url())
    tokens = TokenService(TEST_SECRET)
    hasher = PasswordHasher(rounds=TEST_ROUNDS)
    authenticator = SessionAuthenticator(
        store=user_store, hasher=hasher, tokens=tokens, resolver=AccountResolver(user_store)
    )

    app.router.lifespan_context = _patch_lifespan(user_store, authenticator)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, user_store, tokens

    user_store.close()


# ---------------------------------------------------------------------------
# Raw JWT helpers -- craft tokens the service itself would never issue
# ---------------------------------------------------------------------------


@pytest.fixture
def sign_token():
    """Return sign(payload, secret=TEST_SECRET, algorithm="HS256") -> str."""

    def sign(payload: dict, secret: str = TEST_SECRET, algorithm: str = "HS256") -> str:
        return jwt.encode(payload, secret, algorithm=algorithm)

    return sign


@pytest.fixture
def decode_token():
    """Return decode(token) -> payload, verified against the test secret."""

    def decode(token: str) -> dict:
        return jwt.decode(token, TEST_SECRET, algorithms=["HS256"])

    return decode


@pytest.fixture
def wrong_secret_tokens() -> TokenService:
    return TokenService(WRONG_SECRET)
