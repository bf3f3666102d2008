"""Booking transaction

Slot lock, capacity check, customer upsert, reservation insert and the
capacity claim run in one database transaction. Any failure rolls the whole
unit back.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from booking_engine.database import utcnow
from booking_engine.errors import (
    ConflictError,
    EngineError,
    INTERNAL_ERROR,
    ValidationFailed,
)
from booking_engine.models.call import Call
from booking_engine.models.reservation import Reservation, ReservationStatus
from booking_engine.schemas.booking import BookingResult, CreateBookingRequest
from booking_engine.services.analytics import bump_daily
from booking_engine.services.confirmation import unused_confirmation_code
from booking_engine.services.customers import upsert_customer
from booking_engine.services.ledger import acquire_slot, claim_capacity
from booking_engine.services.phone import mask_phone, normalize_phone
from booking_engine.services.policy import format_day, format_time, round_to_grid
from booking_engine.services.restaurants import load_restaurant

logger = structlog.get_logger()

DEFAULT_SEATING = "indoor"

# A unique violation on insert is almost always a confirmation code drawn by
# a concurrent booking; the whole unit is retried once with a fresh code
BOOKING_ATTEMPTS = 2

BOOKING_FALLBACK_MESSAGE = (
    "I'm having trouble completing your booking. "
    "Can I take your number and have a manager call you back?"
)


async def create_booking(db: AsyncSession, request: CreateBookingRequest) -> BookingResult:
    """Turn a chosen slot into a confirmed reservation"""
    log = logger.bind(
        restaurant_id=str(request.restaurant_id),
        party_size=request.booking.party_size,
        slot_id=str(request.booking.slot_id) if request.booking.slot_id else None,
        phone=mask_phone(request.customer.phone),
    )
    
    for attempt in range(1, BOOKING_ATTEMPTS + 1):
        try:
            result = await _book(db, request)
            await db.commit()
        except EngineError as exc:
            await db.rollback()
            log.info("Booking rejected", status=exc.status, error_code=exc.code)
            return BookingResult(status=exc.status, message=exc.message, error_code=exc.code)
        except IntegrityError:
            await db.rollback()
            if attempt < BOOKING_ATTEMPTS:
                log.warning("Booking hit a unique violation, retrying", attempt=attempt)
                continue
            log.exception("Booking failed")
            return BookingResult(status="error", message=BOOKING_FALLBACK_MESSAGE, error_code=INTERNAL_ERROR)
        except Exception:
            await db.rollback()
            log.exception("Booking failed")
            return BookingResult(status="error", message=BOOKING_FALLBACK_MESSAGE, error_code=INTERNAL_ERROR)
        
        log.info(
            "Booking created",
            booking_id=str(result.booking_id),
            confirmation_code=result.confirmation_code,
        )
        return result


def _validate(request: CreateBookingRequest):
    """Field checks that need no database access; returns (name, phone)"""
    customer = request.customer
    booking = request.booking
    
    name = (customer.name or "").strip()
    if not name:
        raise ValidationFailed("MISSING_NAME", "Customer name is required.")
    
    phone = normalize_phone(customer.phone)
    
    if booking.slot_id is None and booking.date_time is None:
        raise ValidationFailed("MISSING_DATETIME", "Reservation datetime is required.")
    
    if booking.party_size is None or booking.party_size < 1:
        raise ValidationFailed("INVALID_PARTY_SIZE", "Valid party size is required.")
    
    return name, phone


async def _linked_call(db: AsyncSession, request: CreateBookingRequest) -> Optional[Call]:
    if request.call_id is None:
        return None
    result = await db.execute(
        select(Call).where(
            Call.id == request.call_id,
            Call.restaurant_id == request.restaurant_id,
        )
    )
    call = result.scalar_one_or_none()
    if call is None:
        logger.warning("Booking references an unknown call", call_id=str(request.call_id))
    return call


async def _book(db: AsyncSession, request: CreateBookingRequest) -> BookingResult:
    name, phone = _validate(request)
    booking = request.booking
    party_size = booking.party_size
    
    restaurant, policy = await load_restaurant(db, request.restaurant_id)
    if party_size > policy.max_party_size:
        raise ValidationFailed(
            "INVALID_PARTY_SIZE",
            f"Party size must be between 1 and {policy.max_party_size} guests.",
        )
    
    seating_type = (booking.seating_type or DEFAULT_SEATING).lower()
    start_at = None
    if booking.slot_id is None:
        local = round_to_grid(policy.to_local(policy.coerce_utc(booking.date_time)))
        start_at = policy.to_utc(local)
    
    slot = await acquire_slot(
        db,
        restaurant.id,
        party_size,
        slot_id=booking.slot_id,
        start_at=start_at,
        seating_type=seating_type,
    )
    if slot is None:
        raise ConflictError(
            "SLOT_UNAVAILABLE",
            "That time slot was just taken. Let me check for the next available time.",
        )
    if slot.available_capacity < party_size:
        raise ConflictError(
            "INSUFFICIENT_CAPACITY",
            "That slot no longer has enough capacity. Let me find an alternative.",
        )
    if policy.rejects_same_day(slot.start_at, utcnow()):
        raise ValidationFailed(
            "SAME_DAY_NOT_ALLOWED",
            "We don't take same-day reservations by phone. Would another day work?",
        )
    
    customer_id = await upsert_customer(
        db,
        restaurant.id,
        phone,
        name=name,
        email=request.customer.email,
        sms_consent=request.customer.sms_consent,
    )
    
    call = await _linked_call(db, request)
    
    reservation = Reservation(
        restaurant_id=restaurant.id,
        customer_id=customer_id,
        slot_id=slot.id,
        call_id=call.id if call else None,
        confirmation_code=await unused_confirmation_code(db),
        reservation_datetime=slot.start_at,
        party_size=party_size,
        seating_type=slot.seating_type,
        special_requests=booking.special_requests,
        customer_name=name,
        customer_phone=phone,
        customer_email=request.customer.email or None,
        status=ReservationStatus.CONFIRMED.value,
        source="voice_ai",
    )
    db.add(reservation)
    await db.flush()
    
    await claim_capacity(db, slot.id, party_size)
    
    if call is not None and call.reservation_id is None:
        call.reservation_id = reservation.id
    
    await bump_daily(
        db,
        restaurant.id,
        policy.local_date(utcnow()),
        bookings_made=1,
        total_covers=party_size,
    )
    
    local_start = policy.to_local(slot.start_at)
    return BookingResult(
        status="booked",
        message=(
            f"I've booked a table for {party_size} on {format_day(local_start)} "
            f"at {format_time(local_start)}. Your confirmation code is "
            f"{reservation.confirmation_code}."
        ),
        booking_id=reservation.id,
        confirmation_code=reservation.confirmation_code,
        customer_id=customer_id,
    )
