"""
Pytest fixtures for test database, client, and authentication.

Each test gets a fresh SQLite file schema (create_all / drop_all) and every
HTTP request gets its own session, the same way production requests do, so
concurrent requests in one test really run in separate transactions.
"""

import os
import tempfile
from datetime import date, timedelta
from decimal import Decimal
from typing import AsyncGenerator

# Must be set before the app (and its settings) are imported
_TEST_DB_DIR = tempfile.mkdtemp(prefix="eventpass-tests-")
TEST_DATABASE_URL = f"sqlite+aiosqlite:///{_TEST_DB_DIR}/test.db"
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["BOOKING_LOCK_BACKEND"] = "local"

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from app.main import app
from app.db.base import Base
from app.db.session import build_engine, get_db
from app.core.security import create_access_token, hash_password
from app.models.user import User, UserRole
from app.models.event import Event, Section
from app.services.interfaces.local_lock import LocalSectionLock
from app.services.strategy_factory import get_section_lock


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create tables, yield engine, then drop tables for isolation."""
    # NullPool: no connection outlives the test's event loop
    engine = build_engine(TEST_DATABASE_URL, poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session for arranging data and calling services directly."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def section_lock() -> LocalSectionLock:
    return LocalSectionLock(timeout=5.0)


@pytest_asyncio.fixture(scope="function")
async def client(session_factory, section_lock) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client with a per-request test session and a fresh lock registry."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_section_lock] = lambda: section_lock

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def _create_user(db_session: AsyncSession, email: str, username: str, role: str) -> User:
    user = User(
        email=email,
        username=username,
        hashed_password=hash_password("testpassword123"),
        role=role,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    """A customer account."""
    return await _create_user(db_session, "test@example.com", "testuser", UserRole.CUSTOMER)


@pytest_asyncio.fixture
async def manager_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "manager@example.com", "manager", UserRole.MANAGER)


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    """Authorization headers for the customer."""
    token = create_access_token(data={"sub": str(test_user.id), "role": test_user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def manager_headers(manager_user: User) -> dict:
    token = create_access_token(data={"sub": str(manager_user.id), "role": manager_user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def test_event(db_session: AsyncSession) -> Event:
    """An active event with a 10-seat GA section and a 4-seat VIP section."""
    event = Event(
        title="Summer Concert",
        date=date.today() + timedelta(days=30),
        time="19:30",
        location="Main Hall",
        description="An evening of live music",
        sections=[
            Section(name="GA", price=Decimal("50.00"), total_capacity=10, position=0),
            Section(name="VIP", price=Decimal("120.00"), total_capacity=4, position=1),
        ],
    )
    db_session.add(event)
    await db_session.commit()
    return event


@pytest_asyncio.fixture
async def inactive_event(db_session: AsyncSession) -> Event:
    event = Event(
        title="Cancelled Tour",
        date=date.today() + timedelta(days=60),
        time="20:00",
        location="Arena",
        description="Postponed indefinitely",
        is_active=False,
        sections=[Section(name="GA", price=Decimal("40.00"), total_capacity=50, position=0)],
    )
    db_session.add(event)
    await db_session.commit()
    return event


@pytest.fixture
def booking_payload():
    """Build a booking request body; keyword arguments override defaults."""

    def build(event_id: int, section_name: str = "GA", quantity: int = 1, **overrides) -> dict:
        payload = {
            "event_id": event_id,
            "section_name": section_name,
            "customer_name": "Ada Guest",
            "customer_email": "ada@example.com",
            "customer_phone": "+1 555 0100",
            "quantity": quantity,
        }
        payload.update(overrides)
        return payload

    return build


@pytest.fixture
def section_available():
    """Read a section's available_capacity through the public event endpoint."""

    async def read(client: AsyncClient, event_id: int, section_name: str = "GA") -> int:
        response = await client.get(f"/api/v1/events/{event_id}")
        assert response.status_code == 200
        for section in response.json()["sections"]:
            if section["name"] == section_name:
                return section["available_capacity"]
        raise AssertionError(f"section {section_name} missing from event {event_id}")

    return read
