"""Test fixtures — a fresh in-memory database per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets its own in-memory SQLite engine (aiosqlite) with a
   StaticPool, so every session in the test shares one connection and
   therefore one database. Tables come straight from the ORM metadata.
2. The app's get_db / get_session_factory dependencies are overridden to
   use that engine, so HTTP tests and direct service calls see the
   same data.
3. The engine is disposed after the test — nothing leaks across tests.

Settings are forced through env vars BEFORE deepresearch is imported:
cheap bcrypt rounds and a zero-delay research stream.
"""

import os

os.environ["DEEPRESEARCH_DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["DEEPRESEARCH_BCRYPT_ROUNDS"] = "4"
os.environ["DEEPRESEARCH_RESEARCH_STREAM_INTERVAL_SECONDS"] = "0"
os.environ["DEEPRESEARCH_AUTO_CREATE_SCHEMA"] = "false"

import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from deepresearch.db.engine import get_db, get_session_factory
from deepresearch.db.models import Base
from deepresearch.main import app


@pytest_asyncio.fixture()
async def session_factory():
    """Session factory bound to a fresh in-memory database."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture()
async def db_session(session_factory):
    """A session for calling services directly."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture()
async def client(session_factory):
    """HTTP client with the app's database dependencies overridden.

    Learn: Auth is NOT overridden — tests register and log in for real,
    so the full bearer-token pipeline runs on every protected request.
    """
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def _reset_sse_app_status():
    """sse-starlette keeps a module-level exit event bound to the first
    event loop it saw; each test runs on a new loop."""
    from sse_starlette import sse

    status = getattr(sse, "AppStatus", None)
    if status is not None and hasattr(status, "should_exit_event"):
        status.should_exit_event = None
    yield


@pytest.fixture()
def register_user(client):
    """Factory: register a user over HTTP, return (auth headers, response body)."""
    async def _register(email=None, password="secure_password_123", name="Test User"):
        email = email or f"user-{uuid.uuid4().hex[:8]}@example.com"
        r = await client.post(
            "/auth/register",
            json={"email": email, "password": password, "name": name},
        )
        assert r.status_code == 201, r.text
        body = r.json()
        return {"Authorization": f"Bearer {body['token']}"}, body

    return _register
