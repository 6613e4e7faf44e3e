"""
Centralized Test Configuration.
"""

from datetime import date

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from backend.app.main import app
from backend.app.db.session import get_db, Base, enable_sqlite_foreign_keys
from backend.app.models.driver import Driver
from backend.app.models.trip import Trip
from backend.app.models.dispatch import Dispatch

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def engine():
    """Fresh in-memory database per test."""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(test_engine)

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    """Shared session for fixture data creation and domain tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    """Async client for testing, bound to the test database."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# Data builders

@pytest.fixture
def make_driver(db_session):
    async def _make(name="Kim Driver", phone="010-1234-5678", vehicle_number="서울12가3456", is_active=True):
        driver = Driver(name=name, phone=phone, vehicle_number=vehicle_number, is_active=is_active)
        db_session.add(driver)
        await db_session.commit()
        return driver
    return _make


@pytest.fixture
def make_trip(db_session):
    async def _make(trip_date=date(2024, 3, 5), regions=None, **fields):
        regions = regions or ["강남"]
        values = {
            "center_name": "쿠팡",
            "loading_point_id": "LP-001",
            "vehicle_type": "5t",
            "vehicle_tonnage": "5",
            "stop_count": len(regions),
        }
        values.update(fields)
        trip = Trip(trip_date=trip_date, regions=regions, **values)
        db_session.add(trip)
        await db_session.commit()
        return trip
    return _make


@pytest.fixture
def make_dispatch(db_session):
    async def _make(trip, driver, driver_fee=100000, extra_fare=0, deduction_amount=0, notes=None):
        dispatch = Dispatch(
            trip_id=trip.id,
            driver_id=driver.id,
            driver_fee=driver_fee,
            extra_fare=extra_fare,
            deduction_amount=deduction_amount,
            driver_name=driver.name,
            driver_phone=driver.phone,
            driver_vehicle_number=driver.vehicle_number,
            notes=notes
        )
        db_session.add(dispatch)
        await db_session.commit()
        return dispatch
    return _make


@pytest.fixture
async def driver(make_driver):
    return await make_driver()
