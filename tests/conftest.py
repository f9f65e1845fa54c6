"""
tests/conftest.py -- Shared test fixtures for Quill unit and integration tests.

This module provides:
  - hasher, tokens: fast auth services (bcrypt cost 4, fixed secret)
  - user_store, post_store: isolated in-memory stores, one pair per test
  - client: TestClient over the real app, wired by init_state() against the
    test stores through a patched lifespan
  - register_user: factory that registers an account over HTTP and returns
    (user_json, token)

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process.

Environment variables must be set before any api/auth/core import:
get_settings() is cached on first call and the limiter and middleware read
it at import time.
"""

from __future__ import annotations

import asyncio
import os
import uuid
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager

# CRITICAL: set before any core/auth/api import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("SESSION_COOKIES_ENABLED", "true")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost"]')

import pytest
from fastapi.testclient import TestClient

from api.main import app, init_state
from auth.passwords import PasswordHasher
from auth.store import UserStore
from auth.tokens import TokenService
from blog.store import PostStore
from core.config import get_settings

TEST_SECRET = "test-secret-key-that-is-at-least-32-characters"
DEFAULT_PASSWORD = "correct horse battery"


def _memory_url(prefix: str) -> str:
    return f"sqlite:///file:{prefix}_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"


# ---------------------------------------------------------------------------
# Unit fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def tokens() -> TokenService:
    return TokenService(TEST_SECRET, expire_seconds=3600)


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    store = UserStore(db_url=_memory_url("test_users"))
    yield store
    store.close()


@pytest.fixture
def post_store() -> Generator[PostStore, None, None]:
    store = PostStore(db_url=_memory_url("test_posts"))
    yield store
    store.close()


# ---------------------------------------------------------------------------
# Integration fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(user_store: UserStore, post_store: PostStore):
    """Return an async context manager that replaces the real lifespan.

    Runs the real wiring (init_state) against the test stores. The purge_task
    is a long-sleeping coroutine so shutdown can cancel a real asyncio.Task.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        init_state(app, get_settings(), user_store, post_store)
        app.state.purge_task = asyncio.create_task(asyncio.sleep(99999))
        yield
        app.state.purge_task.cancel()

    return test_lifespan


@pytest.fixture
def client(user_store: UserStore, post_store: PostStore) -> Generator[TestClient, None, None]:
    """TestClient over the real app with fresh stores for every test."""
    app.router.lifespan_context = _patch_lifespan(user_store, post_store)
    with TestClient(app, raise_server_exceptions=True) as c:
        yield c


@pytest.fixture
def register_user(client: TestClient) -> Callable[..., tuple[dict, str]]:
    """Register an account over HTTP; return (user_json, bearer_token).

    The session cookie set by registration is cleared so each test decides
    explicitly which transport it exercises.
    """

    def _register(
        name: str = "Ada Lovelace",
        email: str = "ada@example.com",
        password: str = DEFAULT_PASSWORD,
        username: str | None = None,
    ) -> tuple[dict, str]:
        body = {"name": name, "email": email, "password": password}
        if username is not None:
            body["username"] = username
        resp = client.post("/api/v1/auth/register", json=body)
        assert resp.status_code == 200, resp.text
        client.cookies.clear()
        data = resp.json()
        return data["user"], data["token"]

    return _register