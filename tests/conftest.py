"""
Pytest configuration and fixtures.
"""

import os
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import AsyncGenerator
from unittest.mock import patch

# Settings are read once at import time
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["REDIS_URL"] = ""
os.environ["CASHFREE_CLIENT_ID"] = "test-client-id"
os.environ["CASHFREE_CLIENT_SECRET"] = "test-client-secret"
os.environ["CASHFREE_WEBHOOK_SECRET"] = "test-webhook-secret"
os.environ["NOTIFICATION_WEBHOOK_URL"] = ""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
import app.models  # noqa: F401
from app.models.event import Event
from app.models.package import SubscriptionPackage
from app.models.user import User

# Use in-memory SQLite for tests
TEST_DB_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def test_engine():
    """Create a fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DB_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for a test."""
    async_session = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def client(db) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client over the app, sharing the test session."""
    from app.main import app

    async def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def notifications():
    """Capture queued notifications instead of talking to a broker."""
    from app.workers.notifications import deliver_notification

    with patch.object(deliver_notification, "delay") as delay:
        yield delay


@pytest_asyncio.fixture
async def make_user(db):
    async def _make_user(**kwargs) -> User:
        suffix = uuid.uuid4().hex[:8]
        kwargs.setdefault("name", f"User {suffix}")
        kwargs.setdefault("email", f"{suffix}@example.com")
        kwargs.setdefault("phone", "+919876543210")
        user = User(**kwargs)
        db.add(user)
        await db.commit()
        return user

    return _make_user


@pytest_asyncio.fixture
async def package(db) -> SubscriptionPackage:
    package = SubscriptionPackage(
        name="Gold",
        price=Decimal("499.00"),
        duration="MONTHLY",
        daily_swipe_limit=25,
        is_active=True,
    )
    db.add(package)
    await db.commit()
    return package


@pytest_asyncio.fixture
async def make_subscriber(make_user, package):
    """Users with an active package and a reset earlier today."""

    async def _make_subscriber(**kwargs) -> User:
        now = datetime.now(timezone.utc)
        kwargs.setdefault("active_package_id", package.id)
        kwargs.setdefault("subscription_end_date", now + timedelta(days=30))
        kwargs.setdefault("daily_swipe_remaining", package.daily_swipe_limit)
        kwargs.setdefault("last_swipe_reset", now)
        return await make_user(**kwargs)

    return _make_subscriber


@pytest_asyncio.fixture
async def host(make_user) -> User:
    return await make_user(name="Host", wallet_balance=Decimal("0"))


@pytest_asyncio.fixture
async def event(db, host) -> Event:
    event = Event(title="Rooftop Jazz Night", host_id=host.id)
    db.add(event)
    await db.commit()
    return event
