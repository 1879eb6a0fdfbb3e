"""
Noteful Backend — Test Configuration (conftest.py)
===================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Every test gets its own SQLite file under tmp_path, so tests never
       share rows and never need a running PostgreSQL.

Fixture Hierarchy (all function-scoped):
    test_settings
    ├── database ── db_session ── owner_id / other_owner_id
    └── app ── test_client ── register (signup + login → auth headers)
"""

import os

# Override settings for testing BEFORE any noteful import
# Why: `noteful.main` builds a module-level app from the environment
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-secret-not-for-production-use"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOG_LEVEL"] = "WARNING"

from typing import AsyncGenerator, Awaitable, Callable, Dict  # noqa: E402
from uuid import UUID  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from noteful.config import Settings  # noqa: E402
from noteful.database import Database  # noqa: E402
from noteful.models.user import User  # noqa: E402

TEST_PASSWORD = "correct-horse-battery"


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'noteful-test.db'}",
        jwt_secret="test-secret-not-for-production-use",
        bcrypt_rounds=4,
        login_rate_limit_attempts=5,
        login_rate_limit_window=60,
        log_level="WARNING",
    )


# ══════════════════════════════════════════════════════════════════════════
# Service-level fixtures (direct session, no HTTP)
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def database(test_settings) -> AsyncGenerator[Database, None]:
    db = Database(test_settings)
    await db.create_all()
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def db_session(database) -> AsyncGenerator[AsyncSession, None]:
    """
    A session the test drives directly. Services only flush, so everything
    a test writes is visible to its later calls without committing.
    """
    async with database.session_factory() as session:
        yield session
        await session.rollback()


async def _add_user(session: AsyncSession, username: str) -> UUID:
    # Services never read the digest, so any string will do here
    user = User(username=username, password="not-a-real-digest")
    session.add(user)
    await session.flush()
    return user.id


@pytest_asyncio.fixture
async def owner_id(db_session) -> UUID:
    return await _add_user(db_session, "alice")


@pytest_asyncio.fixture
async def other_owner_id(db_session) -> UUID:
    return await _add_user(db_session, "mallory")


# ══════════════════════════════════════════════════════════════════════════
# API fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def app(test_settings):
    from noteful.main import create_app

    application = create_app(test_settings)
    await application.state.database.create_all()
    yield application
    await application.state.database.dispose()


@pytest_asyncio.fixture
async def test_client(app) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTPX AsyncClient routed straight into the ASGI app.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def register(test_client) -> Callable[[str], Awaitable[Dict[str, str]]]:
    """Signs a user up, logs them in and returns their Authorization header."""

    async def _register(username: str, password: str = TEST_PASSWORD) -> Dict[str, str]:
        signup = await test_client.post(
            "/api/users", json={"username": username, "password": password}
        )
        assert signup.status_code == 201, signup.text
        login = await test_client.post(
            "/api/login", json={"username": username, "password": password}
        )
        assert login.status_code == 200, login.text
        return {"Authorization": f"Bearer {login.json()['authToken']}"}

    return _register
