"""
Shared fixtures: a throwaway SQLite database per test, the FastAPI app wired to it,
Redis replaced by an AsyncMock, and bearer tokens for customers and workers.
"""
from datetime import date, time
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

import app.models  # noqa: F401  (registers tables on Base.metadata)
from app import redis_client
from app.database import Base, get_db
from app.main import app
from app.middleware.auth import create_access_token
from app.models.booking import Booking
from app.models.worker import WorkerProfile

CUSTOMER_ID = 101
OTHER_CUSTOMER_ID = 102
WORKER_ID = 201
OTHER_WORKER_ID = 202
OUTSIDER_ID = 999


def auth_headers(user_id: int, role: str) -> dict:
    token = create_access_token({"sub": str(user_id), "role": role})
    return {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}


@pytest.fixture
def customer_headers():
    return auth_headers(CUSTOMER_ID, "customer")


@pytest.fixture
def worker_headers():
    return auth_headers(WORKER_ID, "worker")


@pytest.fixture
def outsider_headers():
    return auth_headers(OUTSIDER_ID, "customer")


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'bookings.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(bind=engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def fake_redis(monkeypatch):
    mock_redis = AsyncMock()
    mock_redis.get = AsyncMock(return_value=None)
    monkeypatch.setattr(redis_client, "_redis_pool", mock_redis)
    return mock_redis


@pytest_asyncio.fixture
async def client(session_factory, fake_redis):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def worker(session_factory):
    async with session_factory() as db:
        profile = WorkerProfile(user_id=WORKER_ID, hourly_rate=Decimal("100.00"), availability=True)
        db.add(profile)
        db.add(WorkerProfile(user_id=OTHER_WORKER_ID, hourly_rate=Decimal("80.00"), availability=False))
        await db.commit()
        return profile


@pytest.fixture
def make_booking(session_factory, worker):
    """Insert a booking directly in the given status."""

    async def _make(status: str = "pending", customer_id: int = CUSTOMER_ID, worker_id: int = WORKER_ID) -> int:
        async with session_factory() as db:
            booking = Booking(
                customer_id=customer_id,
                worker_id=worker_id,
                service_type="plumbing",
                booking_date=date(2026, 11, 2),
                start_time=time(9, 0),
                end_time=time(11, 0),
                total_amount=Decimal("200.00"),
                platform_fee=Decimal("80.00"),
                status=status,
            )
            db.add(booking)
            await db.commit()
            return booking.id

    return _make
