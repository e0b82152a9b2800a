"""
Pytest fixtures for test database, client, payments and seed data.

Tests run against a throwaway SQLite file through aiosqlite. Tables are
created and dropped per test for isolation.

The pool holds a single connection, so concurrent operations issued with
asyncio.gather are serialized by the database layer the same way row locks
would serialize them in PostgreSQL. Every fixture and helper uses its own
short-lived session and never leaves a transaction open.
"""

import os
import tempfile
import uuid

TEST_DB_PATH = os.path.join(tempfile.gettempdir(), f"venue_booking_test_{uuid.uuid4().hex[:8]}.db")
TEST_DATABASE_URL = f"sqlite+aiosqlite:///{TEST_DB_PATH}"

os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["REDIS_ENABLED"] = "false"
os.environ["PAYMENT_PROVIDER"] = "sandbox"
os.environ["HOLD_SWEEP_INTERVAL_SECONDS"] = "0"
os.environ["ADMIN_TOKEN"] = "test-admin-token"

from datetime import date, timedelta
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from venue_booking.main import app
from venue_booking.db.base import Base
from venue_booking.db.session import get_db
from venue_booking.models import Booth
from venue_booking.schemas.booking import CustomerDetails
from venue_booking.schemas.occasion import OccasionCreate
from venue_booking.services.booking_service import create_occasion
from venue_booking.services.interfaces.sandbox_payment import SandboxPayments
from venue_booking.services.strategy_factory import get_payments

ADMIN_HEADERS = {"Authorization": "Bearer test-admin-token"}

test_engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    pool_size=1,
    max_overflow=0,
    pool_timeout=10,
)
TestSessionLocal = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


def future_date(days: int = 7) -> date:
    return date.today() + timedelta(days=days)


def customer(name: str = "Jane", email: str = "jane@example.com") -> CustomerDetails:
    return CustomerDetails(name=name, email=email)


ADULT_DOB = date(1990, 5, 17)


@pytest_asyncio.fixture(scope="function", autouse=True)
async def database() -> AsyncGenerator[None, None]:
    """Create tables before each test and drop them afterwards."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_factory() -> async_sessionmaker:
    return TestSessionLocal


@pytest.fixture
def payments() -> SandboxPayments:
    """Fresh sandbox provider per test so charges and refunds can be inspected."""
    return SandboxPayments()


@pytest_asyncio.fixture(scope="function")
async def client(payments: SandboxPayments) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client with one test session per request, like production."""

    async def override_get_db():
        async with TestSessionLocal() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payments] = lambda: payments

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def _add_booth(name: str, capacity: int, venue: str = "manor", rate: int = 5000) -> Booth:
    async with TestSessionLocal() as session:
        booth = Booth(venue=venue, name=name, capacity=capacity, hourly_rate_cents=rate, is_active=True)
        session.add(booth)
        await session.commit()
        return booth


@pytest_asyncio.fixture
async def booth() -> Booth:
    """A 6-person booth at 50.00 per hour."""
    return await _add_booth("Booth A", capacity=6)


@pytest_asyncio.fixture
async def small_booth() -> Booth:
    return await _add_booth("Booth B", capacity=2, rate=3000)


@pytest_asyncio.fixture
async def occasion():
    """An occasion with 10 tickets at 15.00 each."""
    async with TestSessionLocal() as session:
        return await create_occasion(
            session,
            OccasionCreate(
                occasion_name="Halloween Night",
                venue="hippie",
                booking_date=future_date(14),
                capacity=10,
                ticket_price_cents=1500,
                organiser=CustomerDetails(name="Venue Staff", email="staff@example.com"),
            ),
        )

