"""
Top-level pytest configuration.

Provides:
  - A test SQLite database (aiosqlite) with all tables created fresh per test.
  - A db_session fixture that rolls back each test in a transaction.
  - An async_client fixture wired to the FastAPI app with Redis replaced by
    fakeredis and the realtime channel kept in-process.
  - Seeded users, a deal and auth token fixtures for two users who will match.
"""

from __future__ import annotations

import os
from datetime import date
from typing import AsyncGenerator

# ---------------------------------------------------------------------------
# Environment must be set BEFORE any app module is imported so that
# pydantic-settings picks up the test values.
# ---------------------------------------------------------------------------
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("POSTGRES_HOST", "localhost")
os.environ.setdefault("POSTGRES_USER", "test")
os.environ.setdefault("POSTGRES_PASSWORD", "test")
os.environ.setdefault("POSTGRES_DB", "test")
os.environ.setdefault("JWT_SECRET", "test-secret-key-that-is-long-enough-32c")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("REALTIME_BACKEND", "memory")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

TEST_DATABASE_URL = os.getenv(
    "TEST_DATABASE_URL",
    "sqlite+aiosqlite:///:memory:",
)


def _enable_sqlite_savepoints(test_engine) -> None:
    """
    Let the driver leave transaction control to SQLAlchemy.

    pysqlite opens transactions lazily and ignores SAVEPOINT bookkeeping,
    which breaks the begin_nested() blocks repositories use around inserts.
    Emitting BEGIN ourselves makes SAVEPOINT / ROLLBACK TO behave as on
    PostgreSQL.
    """

    @event.listens_for(test_engine.sync_engine, "connect")
    def _do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(test_engine.sync_engine, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql("BEGIN")


# ---------------------------------------------------------------------------
# Per-test engine (SQLite in-memory, shared via StaticPool so all connections
# of one test see the same data).
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def engine():
    """Create the SQLite test engine and all tables."""
    # Import Base here (after env vars are set) to ensure models register.
    from dealmatch.core.database import Base

    # Force all model modules to load so their tables register on Base.metadata
    import dealmatch.models.user      # noqa: F401
    import dealmatch.models.deal      # noqa: F401
    import dealmatch.models.swipe     # noqa: F401
    import dealmatch.models.match     # noqa: F401
    import dealmatch.models.message   # noqa: F401

    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    _enable_sqlite_savepoints(test_engine)

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


# ---------------------------------------------------------------------------
# Per-test DB session that rolls back after each test for isolation.
#
# Endpoint code calls session.commit(); here commit() only flushes so every
# write stays inside the outer transaction, which is rolled back at teardown.
# Savepoints opened by repositories still work inside that transaction.
# ---------------------------------------------------------------------------
class _NonCommittingSession(AsyncSession):
    """AsyncSession subclass where commit() becomes flush()."""

    async def commit(self) -> None:  # type: ignore[override]
        await self.flush()


@pytest_asyncio.fixture
async def db_session(engine) -> AsyncGenerator[AsyncSession, None]:
    """Provide a per-test database session that is fully rolled back on teardown."""
    async with engine.connect() as conn:
        await conn.begin()  # outer real transaction

        session = _NonCommittingSession(
            bind=conn,
            expire_on_commit=False,
        )

        try:
            yield session
        finally:
            await session.close()
            await conn.rollback()


# ---------------------------------------------------------------------------
# Redis mock: fakeredis so the compatibility cache works without a server.
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture(autouse=True)
async def mock_redis(monkeypatch):
    """Replace the Redis client with an in-process fakeredis instance."""
    import fakeredis
    import fakeredis.aioredis as fakeredis_async

    fake_server = fakeredis.FakeServer()
    fake_redis = fakeredis_async.FakeRedis(server=fake_server, decode_responses=True)

    async def _get_redis():
        return fake_redis

    monkeypatch.setattr("dealmatch.core.cache.get_redis", _get_redis)
    yield fake_redis
    await fake_redis.aclose()


# ---------------------------------------------------------------------------
# Fresh in-process chat channel per test.
# ---------------------------------------------------------------------------
@pytest.fixture(autouse=True)
def chat_channel(monkeypatch):
    """Swap the global ChatChannel for an empty, relay-less one."""
    from dealmatch.core.chat_channel import ChatChannel
    import dealmatch.api.v1.matches.endpoints as matches_ep
    import dealmatch.api.v1.websocket.endpoints as ws_ep
    import dealmatch.main as main_mod

    channel = ChatChannel()
    monkeypatch.setattr(matches_ep, "chat_channel", channel)
    monkeypatch.setattr(ws_ep, "chat_channel", channel)
    monkeypatch.setattr(main_mod, "chat_channel", channel)
    return channel


# ---------------------------------------------------------------------------
# Override FastAPI database dependency to use the test session.
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def async_client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    Provide an httpx AsyncClient backed by the FastAPI app.

    The app's get_db dependency is overridden to yield the test session so all
    requests in a test share the same transactional session and thus see any
    data seeded in that test.
    """
    from dealmatch.core.database import get_db
    from dealmatch.main import app

    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://testserver",
    ) as client:
        yield client

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Seeded fixtures
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def alice(db_session: AsyncSession):
    """Persisted user who is open to anyone nearby."""
    from tests.factories import UserFactory

    return await UserFactory.create_async(
        db_session,
        display_name="Alice",
        gender="female",
        date_of_birth=date(1995, 5, 1),
    )


@pytest_asyncio.fixture
async def bob(db_session: AsyncSession):
    """Persisted user compatible with alice."""
    from tests.factories import UserFactory

    return await UserFactory.create_async(
        db_session,
        display_name="Bob",
        gender="male",
        date_of_birth=date(1993, 2, 14),
    )


@pytest_asyncio.fixture
async def test_deal(db_session: AsyncSession):
    """Persisted active deal."""
    from tests.factories import DealFactory

    return await DealFactory.create_async(db_session, merchant_name="Blue Bottle Coffee")


def _token_for(user) -> str:
    from dealmatch.core.security import create_access_token
    return create_access_token(data={"sub": str(user.id)})


@pytest.fixture
def alice_token(alice) -> str:
    return _token_for(alice)


@pytest.fixture
def bob_token(bob) -> str:
    return _token_for(bob)


@pytest.fixture
def alice_headers(alice_token: str) -> dict[str, str]:
    """Authorization headers for alice."""
    return {"Authorization": f"Bearer {alice_token}"}


@pytest.fixture
def bob_headers(bob_token: str) -> dict[str, str]:
    """Authorization headers for bob."""
    return {"Authorization": f"Bearer {bob_token}"}

