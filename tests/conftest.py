#  Voice Tutor - Test Fixtures
#
#  Shared fixtures for the test suite.
#  Uses DI container overrides instead of monkey-patching singletons.
#
#  Depends on: backend/db/connection.py, backend/container.py, backend/app.py
#  Used by:    all test files

import os

# Config constants are read at import time; the secret must exist before
# anything under backend/ is imported.
os.environ.setdefault("JWT_SECRET", "test-secret-key-that-is-at-least-32-characters")

import httpx
import pytest
from dependency_injector import providers

TEST_SECRET = os.environ["JWT_SECRET"]


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------

class FakeClock:
    """Callable clock for RateLimiter; advance() moves time forward."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


# ---------------------------------------------------------------------------
# Database fixture
# ---------------------------------------------------------------------------

@pytest.fixture
async def tmp_db(tmp_path):
    """Create a fresh async database with schema applied."""
    from backend.db.connection import Database

    test_db = Database()
    db_path = tmp_path / "test.db"
    await test_db.init(str(db_path))

    yield test_db

    await test_db.close()


# ---------------------------------------------------------------------------
# Security fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def passwords():
    """bcrypt at the minimum cost factor so the suite stays fast."""
    from backend.services.passwords import PasswordHasher
    return PasswordHasher(rounds=4)


@pytest.fixture
def tokens():
    from backend.services.tokens import SessionTokenService
    return SessionTokenService(secret=TEST_SECRET)


@pytest.fixture
async def auth_service(tmp_db, passwords, tokens):
    """AuthService wired to the test database."""
    from backend.services.auth import AuthService
    return AuthService(db=tmp_db, passwords=passwords, tokens=tokens)


@pytest.fixture
def rate_limiter(clock):
    """Limiter with the production policy table, a fake clock and no sweeping."""
    from backend.config import RATE_LIMIT_POLICIES
    from backend.services.rate_limiter import RateLimiter
    return RateLimiter.from_config(
        RATE_LIMIT_POLICIES, sweep={"strategy": "interval"}, clock=clock,
    )


# ---------------------------------------------------------------------------
# Realtime API stub
# ---------------------------------------------------------------------------

class RealtimeStub:
    """httpx.MockTransport handler standing in for /realtime/sessions."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.status_code = 200
        self.payload: dict = {"client_secret": {"value": "ek_test_secret"}}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.payload)


@pytest.fixture
def realtime_stub():
    return RealtimeStub()


@pytest.fixture
async def realtime_client(realtime_stub):
    from backend.services.realtime import RealtimeSessionClient

    http = httpx.AsyncClient(transport=httpx.MockTransport(realtime_stub))
    yield RealtimeSessionClient(http_client=http, api_key="sk-test")
    await http.aclose()


# ---------------------------------------------------------------------------
# FastAPI client fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
async def app_client(tmp_db, passwords, tokens, rate_limiter, realtime_client):
    """HTTP client against the app with a fresh database and limiter.

    Uses explicit try/finally with reset_override() so DI state is fully
    cleaned up between tests.
    """
    from httpx import ASGITransport, AsyncClient
    from backend.app import app, container
    from backend.services.auth import AuthService
    from backend.services.authenticator import RequestAuthenticator
    from backend.services.conversations import ConversationService
    from backend.services.profile import ProfileService

    auth = AuthService(db=tmp_db, passwords=passwords, tokens=tokens)
    authenticator = RequestAuthenticator(tokens=tokens, users=auth)
    profiles = ProfileService(db=tmp_db, users=auth)
    conversations = ConversationService(db=tmp_db, realtime=realtime_client, daily_limit=20)

    overrides = {
        container.db: tmp_db,
        container.passwords: passwords,
        container.tokens: tokens,
        container.rate_limiter: rate_limiter,
        container.auth: auth,
        container.authenticator: authenticator,
        container.profiles: profiles,
        container.realtime: realtime_client,
        container.conversations: conversations,
    }
    for provider, obj in overrides.items():
        provider.override(providers.Object(obj))

    try:
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
    finally:
        for provider in overrides:
            provider.reset_override()


@pytest.fixture
async def authed_client(app_client):
    """app_client with a registered learner and Authorization header set."""
    resp = await app_client.post("/api/auth/register", json={
        "email": "katie@example.com",
        "password": "testpass123",
        "display_name": "Katie",
        "age": 11,
    })
    assert resp.status_code == 201
    token = resp.json()["token"]

    app_client.headers["Authorization"] = f"Bearer {token}"
    yield app_client
