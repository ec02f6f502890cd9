"""
Pytest configuration and fixtures.
"""

import os
from typing import AsyncGenerator

# Settings require a signing key; set one before the app is imported
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-access-grants")

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from backend.app.main import app
from backend.app.core.database import Base, enable_sqlite_savepoints, get_db
from backend.app.services.access_service import AccessGrants, AccessSessionManager

# Import all models to register them with Base.metadata
from backend.app.models import AccessLogORM, BriefingORM, IncidentORM  # noqa: F401

# Use in-memory SQLite for testing
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(scope="function")
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """A fresh in-memory database per test, created on the test's own loop."""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Returns the session factory for testing."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture(scope="function")
async def db_session(engine: AsyncEngine, session_factory) -> AsyncGenerator[AsyncSession, None]:
    """
    Creates a fresh database session for a test, with all tables present.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with session_factory() as session:
        yield session


@pytest.fixture(scope="function")
async def bare_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """A session on a database with no tables at all."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def grants() -> AccessGrants:
    """Grants of a client that has sent no cookies yet."""
    return AccessGrants({})


@pytest.fixture
def access(db_session: AsyncSession, grants: AccessGrants) -> AccessSessionManager:
    return AccessSessionManager(db_session, grants)


@pytest.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    Test client with database dependency overridden.
    """
    async def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
