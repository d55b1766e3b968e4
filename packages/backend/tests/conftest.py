"""Test fixtures — a fresh in-memory SQLite database per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets its own in-memory SQLite engine (StaticPool keeps the
   single connection alive) with the schema created from the models.
2. get_db is overridden so every request opens a session on that engine,
   just like production opens one per request.
3. Tests that need to look at the database directly use `session_factory`.

Google is never contacted: tests that hit /auth/google/* install a
GoogleOAuthClient backed by httpx.MockTransport.
"""

import os

# Must be set before strengths.config is imported anywhere
os.environ.setdefault("STRENGTHS_DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("STRENGTHS_CREATE_SCHEMA_ON_STARTUP", "false")

import uuid

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from strengths.db.engine import create_schema, get_db
from strengths.main import app


@pytest_asyncio.fixture()
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture()
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture()
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture()
async def client(session_factory):
    """HTTP client against the app with get_db pointed at the test engine."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


def unique_email(prefix: str = "user") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}@example.com"


async def register(client, email: str, password: str = "password_123", name: str = "Test User"):
    r = await client.post(
        "/auth/register",
        json={"email": email, "password": password, "name": name},
    )
    assert r.status_code == 201, r.text
    return r.json()


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
