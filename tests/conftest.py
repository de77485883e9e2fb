"""
Shared fixtures: a throwaway SQLite database per test, a seeded business with
one 60-minute service, and a fixed clock.
"""
from datetime import datetime

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlmodel import SQLModel

import booking_crm.models  # noqa: F401 - register tables
from booking_crm.api.deps import get_clock, get_session
from booking_crm.core.db import create_engine_for, create_session_maker
from booking_crm.models.business import Business, Service

# Monday
FIXED_NOW = datetime(2024, 11, 25, 0, 0)

WEEKDAY_HOURS = {"isOpen": True, "from": "09:00", "to": "18:00"}
WORKING_HOURS = {
    "monday": WEEKDAY_HOURS,
    "tuesday": WEEKDAY_HOURS,
    "wednesday": WEEKDAY_HOURS,
    "thursday": WEEKDAY_HOURS,
    "friday": WEEKDAY_HOURS,
    "saturday": {"isOpen": True, "from": "10:00", "to": "16:00"},
    "sunday": {"isOpen": False, "from": "10:00", "to": "16:00"},
}


@pytest.fixture
def working_hours() -> dict:
    return {day: dict(hours) for day, hours in WORKING_HOURS.items()}


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_engine_for(f"sqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return create_session_maker(engine)


@pytest_asyncio.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def business(session_maker, working_hours) -> Business:
    async with session_maker() as session:
        business = Business(name="Salon Aru", category="beauty", working_hours=working_hours)
        session.add(business)
        await session.commit()
        return business


@pytest_asyncio.fixture
async def service(session_maker, business) -> Service:
    async with session_maker() as session:
        service = Service(business_id=business.id, name="Haircut", duration=60, price=5000)
        session.add(service)
        await session.commit()
        return service


@pytest_asyncio.fixture
async def client(session_maker):
    from booking_crm.main import app

    async def _get_session():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = _get_session
    app.dependency_overrides[get_clock] = lambda: (lambda: FIXED_NOW)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
