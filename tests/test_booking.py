"""Tests for the booking transaction"""

import re

import pytest
from sqlalchemy import select

from booking_engine.database import utcnow
from booking_engine.models.analytics import DailyAggregate
from booking_engine.models.call import Call
from booking_engine.models.customer import Customer
from booking_engine.models.reservation import Reservation
from booking_engine.schemas.booking import BookingFields, CreateBookingRequest, CustomerFields
from booking_engine.services import booking as booking_service, confirmation
from booking_engine.services.booking import create_booking

from conftest import local_at

CODE_PATTERN = re.compile(r"^[ABCDEFGHJKMNPQRSTUVWXYZ2-9]{6}$")


def _booking(restaurant, when=None, party_size=4, phone="+15551234567", name="John Doe", **extra):
    call_id = extra.pop("call_id", None)
    customer = {
        "name": name,
        "phone": phone,
        "email": extra.pop("email", None),
        "sms_consent": extra.pop("sms_consent", False),
    }
    return CreateBookingRequest(
        restaurant_id=restaurant.id,
        call_id=call_id,
        customer=CustomerFields(**customer),
        booking=BookingFields(date_time=when, party_size=party_size, **extra),
    )


@pytest.mark.asyncio
async def test_create_booking(test_db, test_restaurant, make_slot, friday):
    """Booking claims capacity and returns a speakable confirmation code"""
    slot = await make_slot(local_at(friday, 19, 0), total=4)

    result = await create_booking(
        test_db,
        _booking(test_restaurant, local_at(friday, 19, 0), seating_type="indoor", special_requests="Window seat"),
    )

    assert result.status == "booked"
    assert result.error_code is None
    assert CODE_PATTERN.match(result.confirmation_code)
    assert result.confirmation_code in result.message
    assert "07:00 PM" in result.message

    await test_db.refresh(slot)
    assert slot.booked_capacity == 4
    assert slot.available_capacity == 0

    reservation = await test_db.get(Reservation, result.booking_id)
    assert reservation.status == "confirmed"
    assert reservation.slot_id == slot.id
    assert reservation.reservation_datetime == slot.start_at
    assert reservation.customer_phone == "+15551234567"
    assert reservation.special_requests == "Window seat"
    assert reservation.source == "voice_ai"


@pytest.mark.asyncio
async def test_second_booking_for_full_slot_conflicts(test_db, test_restaurant, make_slot, friday):
    slot = await make_slot(local_at(friday, 19, 0), total=4)

    first = await create_booking(test_db, _booking(test_restaurant, local_at(friday, 19, 0)))
    second = await create_booking(
        test_db,
        _booking(test_restaurant, local_at(friday, 19, 0), phone="+15559876543", name="Jane Roe"),
    )

    assert first.status == "booked"
    assert second.status == "conflict"
    assert second.error_code == "SLOT_UNAVAILABLE"

    await test_db.refresh(slot)
    assert slot.booked_capacity == 4
    count = await test_db.execute(select(Reservation).where(Reservation.slot_id == slot.id))
    assert len(count.scalars().all()) == 1


@pytest.mark.asyncio
async def test_booking_by_slot_id(test_db, test_restaurant, make_slot, friday):
    await make_slot(local_at(friday, 19, 0), "indoor", total=6)
    outdoor = await make_slot(local_at(friday, 19, 0), "outdoor", total=6)

    result = await create_booking(
        test_db,
        _booking(test_restaurant, party_size=2, slot_id=outdoor.id),
    )

    assert result.status == "booked"
    reservation = await test_db.get(Reservation, result.booking_id)
    assert reservation.seating_type == "outdoor"


@pytest.mark.asyncio
async def test_booking_rounds_to_grid(test_db, test_restaurant, make_slot, friday):
    slot = await make_slot(local_at(friday, 19, 30), total=6)

    result = await create_booking(test_db, _booking(test_restaurant, local_at(friday, 19, 20), party_size=2))

    assert result.status == "booked"
    reservation = await test_db.get(Reservation, result.booking_id)
    assert reservation.slot_id == slot.id


@pytest.mark.asyncio
async def test_repeat_caller_reuses_customer(test_db, test_restaurant, make_slot, friday):
    """Differently formatted numbers resolve to one customer record"""
    await make_slot(local_at(friday, 19, 0), total=10)

    first = await create_booking(
        test_db,
        _booking(test_restaurant, local_at(friday, 19, 0), party_size=2, phone="(555) 123-4567"),
    )
    second = await create_booking(
        test_db,
        _booking(
            test_restaurant,
            local_at(friday, 19, 0),
            party_size=2,
            phone="+1 555 123 4567",
            email="john@example.com",
            sms_consent=True,
        ),
    )

    assert first.status == second.status == "booked"
    assert first.customer_id == second.customer_id
    assert first.confirmation_code != second.confirmation_code

    result = await test_db.execute(
        select(Customer)
        .where(Customer.restaurant_id == test_restaurant.id)
        .execution_options(populate_existing=True)
    )
    customers = result.scalars().all()
    assert len(customers) == 1
    assert customers[0].total_reservations == 2
    assert customers[0].email == "john@example.com"
    assert customers[0].sms_consent is True


@pytest.mark.asyncio
async def test_booking_links_call_and_counts_booking(test_db, test_restaurant, policy, make_slot, friday):
    await make_slot(local_at(friday, 19, 0), total=6)
    call = Call(
        restaurant_id=test_restaurant.id,
        external_call_id="CA-link-test",
        started_at=utcnow(),
        status="completed",
    )
    test_db.add(call)
    await test_db.commit()

    result = await create_booking(
        test_db,
        _booking(test_restaurant, local_at(friday, 19, 0), party_size=3, call_id=call.id),
    )

    assert result.status == "booked"
    await test_db.refresh(call)
    assert call.reservation_id == result.booking_id

    aggregate = await test_db.execute(
        select(DailyAggregate).where(
            DailyAggregate.restaurant_id == test_restaurant.id,
            DailyAggregate.date == policy.local_date(utcnow()),
        )
    )
    row = aggregate.scalar_one()
    assert row.bookings_made == 1
    assert row.total_covers == 3


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides, error_code",
    [
        ({"name": "  "}, "MISSING_NAME"),
        ({"phone": None}, "MISSING_PHONE"),
        ({"phone": "not a number"}, "INVALID_PHONE"),
        ({"when": None}, "MISSING_DATETIME"),
        ({"party_size": None}, "INVALID_PARTY_SIZE"),
        ({"party_size": 0}, "INVALID_PARTY_SIZE"),
        ({"party_size": 25}, "INVALID_PARTY_SIZE"),
    ],
)
async def test_booking_validation(test_db, test_restaurant, make_slot, friday, overrides, error_code):
    slot = await make_slot(local_at(friday, 19, 0), total=4)
    fields = {"when": local_at(friday, 19, 0), **overrides}

    result = await create_booking(test_db, _booking(test_restaurant, **fields))

    assert result.status == "error"
    assert result.error_code == error_code
    await test_db.refresh(slot)
    assert slot.booked_capacity == 0


@pytest.mark.asyncio
async def test_booking_blocked_slot_unavailable(test_db, test_restaurant, make_slot, friday):
    await make_slot(local_at(friday, 19, 0), total=4, is_blocked=True)

    result = await create_booking(test_db, _booking(test_restaurant, local_at(friday, 19, 0), party_size=2))

    assert result.status == "conflict"
    assert result.error_code == "SLOT_UNAVAILABLE"


async def _hold_code(test_db, restaurant_id, code):
    test_db.add(
        Reservation(
            restaurant_id=restaurant_id,
            confirmation_code=code,
            reservation_datetime=utcnow(),
            party_size=2,
            customer_name="Earlier Guest",
            customer_phone="+15550001111",
            status="confirmed",
        )
    )
    await test_db.commit()


@pytest.mark.asyncio
async def test_confirmation_code_redrawn_when_taken(test_db, test_restaurant, make_slot, friday, monkeypatch):
    """A drawn code already held by a reservation is skipped"""
    await make_slot(local_at(friday, 19, 0), total=4)
    await _hold_code(test_db, test_restaurant.id, "TAKEN2")
    draws = iter(["TAKEN2", "FRESH3"])
    monkeypatch.setattr(confirmation, "generate_confirmation_code", lambda: next(draws))

    result = await create_booking(test_db, _booking(test_restaurant, local_at(friday, 19, 0), party_size=2))

    assert result.status == "booked"
    assert result.confirmation_code == "FRESH3"


@pytest.mark.asyncio
async def test_booking_retried_after_unique_violation(test_db, test_restaurant, make_slot, friday, monkeypatch):
    """A code taken between the check and the insert fails the flush; the booking is retried once"""
    restaurant_id = test_restaurant.id
    slot = await make_slot(local_at(friday, 19, 0), total=4)
    await _hold_code(test_db, restaurant_id, "TAKEN2")
    codes = iter(["TAKEN2", "FRESH3"])

    async def racing_code(db):
        return next(codes)

    monkeypatch.setattr(booking_service, "unused_confirmation_code", racing_code)
    request = _booking(test_restaurant, local_at(friday, 19, 0), party_size=2)

    result = await create_booking(test_db, request)

    assert result.status == "booked"
    assert result.confirmation_code == "FRESH3"

    await test_db.refresh(slot)
    assert slot.booked_capacity == 2

    reservations = await test_db.execute(
        select(Reservation).where(Reservation.restaurant_id == restaurant_id, Reservation.slot_id == slot.id)
    )
    assert [r.confirmation_code for r in reservations.scalars().all()] == ["FRESH3"]


@pytest.mark.asyncio
async def test_same_day_booking_disabled(test_db, test_restaurant, policy, make_slot, friday, monkeypatch):
    test_restaurant.settings.allow_same_day_booking = False
    await test_db.commit()
    slot = await make_slot(local_at(friday, 19, 0), total=4)
    monkeypatch.setattr(booking_service, "utcnow", lambda: policy.to_utc(local_at(friday, 12, 0)))

    result = await create_booking(test_db, _booking(test_restaurant, local_at(friday, 19, 0), party_size=2))

    assert result.status == "error"
    assert result.error_code == "SAME_DAY_NOT_ALLOWED"

    await test_db.refresh(slot)
    assert slot.booked_capacity == 0
