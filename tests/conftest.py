"""
Pytest configuration and fixtures for testing.
"""
import os

# Settings are read at import time, so the environment must be ready first
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_gowra.db")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
import pytest_asyncio
from typing import AsyncGenerator
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from gowra.main import app
from gowra.db.session import Base, get_session, enable_sqlite_foreign_keys
from gowra.core.security import hash_password
from gowra.services.token_service import access_token_for
from gowra.db.models import User, RoleEnum, Event, EventStatusEnum
from gowra.cache.redis_client import cache
from datetime import datetime, timedelta, timezone


# Test database URL - point at Postgres with TEST_DATABASE_URL if needed
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", os.environ["DATABASE_URL"])

# Create test engine
test_engine = create_async_engine(
    TEST_DATABASE_URL,
    poolclass=NullPool,  # Disable connection pooling for tests
    echo=False,
)
if TEST_DATABASE_URL.startswith("sqlite"):
    enable_sqlite_foreign_keys(test_engine)


# Create test session factory
TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

TEST_PASSWORD = "Test123!@#"


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Create a fresh database session for each test.
    Tables are recreated and cached event reads dropped (a no-op without
    Redis) so every test starts empty.
    """
    await cache.delete_pattern("events:*")
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def other_session(db_session: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    """A second session on its own connection, for interleaving two callers."""
    async with TestSessionLocal() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    Create an async HTTP client for testing API endpoints.
    Overrides the database session dependency.
    """
    async def override_get_session():
        yield db_session

    app.dependency_overrides[get_session] = override_get_session

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Create a test user with the 'regular' role."""
    user = User(
        email="testuser@example.com",
        hashed_password=hash_password(TEST_PASSWORD),
        name="Test User",
        role=RoleEnum.regular
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture
async def test_organizer(db_session: AsyncSession) -> User:
    """Create a test user with the 'organizer' role."""
    user = User(
        email="organizer@example.com",
        hashed_password=hash_password(TEST_PASSWORD),
        name="Test Organizer",
        role=RoleEnum.organizer,
        organization_name="Test Org",
        event_types=["tech"],
        organizer_since=datetime.now(timezone.utc),
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture
async def test_admin(db_session: AsyncSession) -> User:
    """Create a test user with the 'admin' role."""
    user = User(
        email="admin@example.com",
        hashed_password=hash_password(TEST_PASSWORD),
        name="Test Admin",
        role=RoleEnum.admin
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
def user_token(test_user: User) -> str:
    """Generate a valid access token for test_user."""
    return access_token_for(test_user)


@pytest.fixture
def organizer_token(test_organizer: User) -> str:
    """Generate a valid access token for test_organizer."""
    return access_token_for(test_organizer)


@pytest.fixture
def admin_token(test_admin: User) -> str:
    """Generate a valid access token for test_admin."""
    return access_token_for(test_admin)


@pytest_asyncio.fixture
async def test_event(db_session: AsyncSession, test_organizer: User) -> Event:
    """Create a published event a week from now."""
    event = Event(
        name="Test Event",
        details="A test event description",
        venue="Test Venue",
        date=datetime.now(timezone.utc) + timedelta(days=7),
        capacity=50,
        price=0,
        status=EventStatusEnum.published,
        organizer_id=test_organizer.id
    )
    db_session.add(event)
    await db_session.commit()
    await db_session.refresh(event)
    return event


@pytest_asyncio.fixture
async def test_events(db_session: AsyncSession, test_organizer: User) -> list:
    """Create five published events on consecutive days."""
    events = []
    for i in range(5):
        event = Event(
            name=f"Event {i+1}",
            details=f"Details for event {i+1}",
            venue=f"Venue {i+1}",
            date=datetime.now(timezone.utc) + timedelta(days=i+1),
            capacity=10 * (i+1),
            price=0,
            status=EventStatusEnum.published,
            organizer_id=test_organizer.id
        )
        db_session.add(event)
        events.append(event)

    await db_session.commit()
    for event in events:
        await db_session.refresh(event)
    return events


@pytest.fixture(autouse=True)
def mock_password_hashing(monkeypatch):
    """
    Replace bcrypt with a cheap reversible scheme so tests stay fast.
    """
    class MockPasswordContext:
        def hash(self, password: str) -> str:
            return f"$2b$12$mockedhash{password}"

        def verify(self, plain: str, hashed: str) -> bool:
            return hashed == f"$2b$12$mockedhash{plain}"

    from gowra.core import security
    monkeypatch.setattr(security, "pwd_context", MockPasswordContext())
