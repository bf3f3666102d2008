"""Test configuration and fixtures"""

from datetime import datetime, time, timedelta
from zoneinfo import ZoneInfo

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool
from uuid import uuid4

from booking_engine.main import app
from booking_engine.database import Base, get_db
from booking_engine.models.restaurant import Restaurant, RestaurantSettings, DEFAULT_HOURS
from booking_engine.models.slot import TimeSlot
from booking_engine.models.user import User, UserRole
from booking_engine.api.auth import get_password_hash, create_access_token
from booking_engine.services.policy import BookingPolicy


# Test database URL (use in-memory SQLite for tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

RESTAURANT_TZ = "America/New_York"


def next_weekday(weekday: int, weeks_ahead: int = 0):
    """Restaurant-local date of the next given weekday strictly after today"""
    today = datetime.now(ZoneInfo(RESTAURANT_TZ)).date()
    days = (weekday - today.weekday()) % 7 or 7
    return today + timedelta(days=days + 7 * weeks_ahead)


def local_at(day, hour: int, minute: int = 0) -> datetime:
    """Naive restaurant-local wall-clock time"""
    return datetime.combine(day, time(hour, minute))


@pytest.fixture
def friday():
    return next_weekday(4)


@pytest.fixture
async def test_db():
    """Create test database"""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)
    
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    
    async with session_factory() as session:
        yield session
    
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    
    await engine.dispose()


@pytest.fixture
async def test_restaurant(test_db):
    """Restaurant open Fri 17:00-23:00 with last seating an hour before close"""
    restaurant = Restaurant(
        id=uuid4(),
        name="Test Restaurant",
        timezone=RESTAURANT_TZ,
    )
    test_db.add(restaurant)
    await test_db.flush()
    
    settings = RestaurantSettings(
        restaurant_id=restaurant.id,
        hours_json=dict(DEFAULT_HOURS),
        max_party_size=20,
        large_party_threshold=8,
        last_seating_offset_minutes=60,
        max_future_booking_days=30,
        default_slot_capacity=10,
        seating_areas=["indoor", "outdoor"],
    )
    test_db.add(settings)
    restaurant.settings = settings
    await test_db.commit()
    
    return restaurant


@pytest.fixture
def policy(test_restaurant):
    return BookingPolicy.for_restaurant(test_restaurant)


@pytest.fixture
def make_slot(test_db, test_restaurant, policy):
    """Factory for ledger rows at a restaurant-local time"""
    async def _make_slot(local: datetime, seating_type: str = "indoor", total: int = 4, booked: int = 0, **extra):
        slot = TimeSlot(
            restaurant_id=test_restaurant.id,
            start_at=policy.to_utc(local),
            seating_type=seating_type,
            total_capacity=total,
            booked_capacity=booked,
            **extra,
        )
        test_db.add(slot)
        await test_db.commit()
        return slot
    return _make_slot


@pytest.fixture
async def test_user(test_db, test_restaurant):
    """Create a restaurant admin"""
    user = User(
        id=uuid4(),
        restaurant_id=test_restaurant.id,
        email="test@example.com",
        hashed_password=get_password_hash("testpass123"),
        full_name="Test User",
        role=UserRole.RESTAURANT_ADMIN,
        is_active=True,
    )
    test_db.add(user)
    await test_db.commit()
    
    return user


@pytest.fixture
async def other_restaurant_user(test_db):
    """Staff member of a different restaurant"""
    other = Restaurant(id=uuid4(), name="Other Restaurant", timezone=RESTAURANT_TZ)
    test_db.add(other)
    await test_db.flush()
    
    user = User(
        id=uuid4(),
        restaurant_id=other.id,
        email="other@example.com",
        hashed_password=get_password_hash("otherpass123"),
        full_name="Other User",
        role=UserRole.STAFF,
        is_active=True,
    )
    test_db.add(user)
    await test_db.commit()
    
    return user


@pytest.fixture
async def client(test_db):
    """Create test client with overridden database"""
    async def override_get_db():
        yield test_db
    
    app.dependency_overrides[get_db] = override_get_db
    
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    
    app.dependency_overrides.clear()


@pytest.fixture
async def authenticated_client(client, test_user):
    """Create authenticated test client"""
    token = create_access_token(test_user)
    client.headers["Authorization"] = f"Bearer {token}"
    
    return client
