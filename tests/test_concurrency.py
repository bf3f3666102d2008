"""Concurrent bookings against one slot

SQLite ignores SELECT ... FOR UPDATE, so these tests use a file database
with immediate transactions: writers serialize on the database lock the way
row locks serialize them on PostgreSQL.
"""

import asyncio
from uuid import uuid4

import pytest
from sqlalchemy import event, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from booking_engine.database import Base
from booking_engine.models.reservation import Reservation
from booking_engine.models.restaurant import DEFAULT_HOURS, Restaurant, RestaurantSettings
from booking_engine.models.slot import TimeSlot
from booking_engine.schemas.booking import BookingFields, CreateBookingRequest, CustomerFields
from booking_engine.services.booking import create_booking
from booking_engine.services.policy import BookingPolicy

from conftest import RESTAURANT_TZ, local_at, next_weekday


@pytest.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'concurrency.db'}",
        connect_args={"timeout": 30},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _autocommit_driver(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
async def contested_slot(session_factory):
    """Friday 19:00 indoor slot with room for exactly one party of four"""
    async with session_factory() as db:
        restaurant = Restaurant(id=uuid4(), name="Busy Bistro", timezone=RESTAURANT_TZ)
        db.add(restaurant)
        await db.flush()
        settings = RestaurantSettings(restaurant_id=restaurant.id, hours_json=dict(DEFAULT_HOURS))
        db.add(settings)
        restaurant.settings = settings

        policy = BookingPolicy(timezone=RESTAURANT_TZ)
        slot = TimeSlot(
            restaurant_id=restaurant.id,
            start_at=policy.to_utc(local_at(next_weekday(4), 19, 0)),
            seating_type="indoor",
            total_capacity=4,
            booked_capacity=0,
        )
        db.add(slot)
        await db.commit()
        return restaurant.id, slot.id


async def _book(session_factory, restaurant_id, slot_id, caller: int):
    async with session_factory() as db:
        request = CreateBookingRequest(
            restaurant_id=restaurant_id,
            customer=CustomerFields(name=f"Caller {caller}", phone=f"+1555000{caller:04d}"),
            booking=BookingFields(slot_id=slot_id, party_size=4),
        )
        return await create_booking(db, request)


@pytest.mark.asyncio
async def test_only_one_concurrent_booking_wins(session_factory, contested_slot):
    restaurant_id, slot_id = contested_slot

    results = await asyncio.gather(
        *(_book(session_factory, restaurant_id, slot_id, caller) for caller in range(6))
    )

    statuses = sorted(result.status for result in results)
    assert statuses.count("booked") == 1
    assert statuses.count("conflict") == 5
    assert {result.error_code for result in results if result.status == "conflict"} == {"SLOT_UNAVAILABLE"}

    async with session_factory() as db:
        slot = await db.get(TimeSlot, slot_id)
        assert slot.booked_capacity == 4
        reservations = await db.execute(select(Reservation).where(Reservation.slot_id == slot_id))
        assert len(reservations.scalars().all()) == 1


@pytest.mark.asyncio
async def test_concurrent_small_parties_fill_without_overbooking(session_factory, contested_slot):
    restaurant_id, slot_id = contested_slot

    async def book_two(caller):
        async with session_factory() as db:
            request = CreateBookingRequest(
                restaurant_id=restaurant_id,
                customer=CustomerFields(name=f"Caller {caller}", phone=f"+1555100{caller:04d}"),
                booking=BookingFields(slot_id=slot_id, party_size=2),
            )
            return await create_booking(db, request)

    results = await asyncio.gather(*(book_two(caller) for caller in range(5)))

    assert [result.status for result in results].count("booked") == 2

    async with session_factory() as db:
        slot = await db.get(TimeSlot, slot_id)
        assert slot.booked_capacity == slot.total_capacity
