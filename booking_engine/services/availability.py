"""Availability search over the time-slot ledger

Read-only: no locks are taken and nothing is written, so the voice agent can
repeat the same question as often as the conversation needs.
"""

from datetime import timedelta

from sqlalchemy import case, select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from booking_engine.database import utcnow
from booking_engine.errors import EngineError, FALLBACK_MESSAGE, INTERNAL_ERROR, ValidationFailed
from booking_engine.models.restaurant import BlockedDate
from booking_engine.models.slot import TimeSlot
from booking_engine.schemas.availability import AlternativeSlot, AvailabilityResult, CheckAvailabilityRequest
from booking_engine.services.policy import WEEKDAYS, format_time, round_to_grid
from booking_engine.services.restaurants import load_restaurant

logger = structlog.get_logger()

MAX_PARTY_SIZE = 20
ALTERNATIVE_WINDOW = timedelta(hours=2)
MAX_ALTERNATIVES = 3
CLOSING_BLOCK_TYPES = ("closed", "private_event")


def _unavailable(code: str, message: str, requested: dict, reason: str) -> AvailabilityResult:
    return AvailabilityResult(
        status="unavailable",
        error_code=code,
        message=message,
        requested_slot={**requested, "available": False, "reason": reason},
    )


async def check_availability(db: AsyncSession, request: CheckAvailabilityRequest) -> AvailabilityResult:
    """Exact slot for the requested time, or up to three nearby alternatives"""
    log = logger.bind(
        restaurant_id=str(request.restaurant_id),
        party_size=request.party_size,
        seating_preference=request.seating_preference,
    )
    
    try:
        result = await _search(db, request)
    except EngineError as exc:
        log.info("Availability rejected", error_code=exc.code)
        return AvailabilityResult(status=exc.status, message=exc.message, error_code=exc.code)
    except Exception:
        log.exception("Availability search failed")
        await db.rollback()
        return AvailabilityResult(
            status="error",
            message=FALLBACK_MESSAGE,
            error_code=INTERNAL_ERROR,
        )
    
    log.info(
        "Availability checked",
        status=result.status,
        error_code=result.error_code,
        alternatives=len(result.alternative_slots),
    )
    return result


async def _search(db: AsyncSession, request: CheckAvailabilityRequest) -> AvailabilityResult:
    party_size = request.party_size
    preference = (request.seating_preference or "any").lower()
    
    if party_size < 1 or party_size > MAX_PARTY_SIZE:
        raise ValidationFailed(
            "INVALID_PARTY_SIZE",
            f"Party size must be between 1 and {MAX_PARTY_SIZE} guests.",
        )
    
    restaurant, policy = await load_restaurant(db, request.restaurant_id)
    
    now = utcnow()
    requested_at = policy.coerce_utc(request.date_time)
    if requested_at <= now:
        raise ValidationFailed("INVALID_DATE", "Reservation date must be in the future.")
    if requested_at > now + timedelta(days=policy.max_future_booking_days):
        raise ValidationFailed(
            "DATE_TOO_FAR",
            f"Reservations can only be made up to {policy.max_future_booking_days} days in advance.",
        )
    if policy.rejects_same_day(requested_at, now):
        raise ValidationFailed(
            "SAME_DAY_NOT_ALLOWED",
            "We don't take same-day reservations by phone. Would another day work?",
        )
    if party_size > policy.max_party_size:
        raise ValidationFailed(
            "INVALID_PARTY_SIZE",
            f"Party size must be between 1 and {policy.max_party_size} guests.",
        )
    
    local = policy.to_local(requested_at)
    day = policy.service_day(local)
    requested = {
        "datetime": local.isoformat(),
        "party_size": party_size,
        "seating_preference": preference,
        "large_party": party_size >= policy.large_party_threshold,
    }
    
    # Business hours, in the restaurant's own calendar
    window = policy.seating_window(day)
    if window is None:
        day_name = WEEKDAYS[day.weekday()].capitalize()
        return _unavailable(
            "RESTAURANT_CLOSED",
            f"We are closed on {day_name}s. Would you like to try a different day?",
            requested,
            "closed",
        )
    first_seating, last_seating = window
    if local < first_seating or local > last_seating:
        day_name = WEEKDAYS[day.weekday()].capitalize()
        return _unavailable(
            "OUTSIDE_HOURS",
            "That time is outside our hours. We accept reservations between "
            f"{format_time(first_seating)} and {format_time(last_seating)} on {day_name}s.",
            requested,
            "outside_hours",
        )
    
    blocked = await db.execute(
        select(BlockedDate)
        .where(
            BlockedDate.restaurant_id == restaurant.id,
            BlockedDate.start_date <= day,
            BlockedDate.end_date >= day,
            BlockedDate.block_type.in_(CLOSING_BLOCK_TYPES),
        )
        .limit(1)
    )
    block = blocked.scalar_one_or_none()
    if block is not None:
        return _unavailable(
            "DATE_BLOCKED",
            block.public_message or "We are closed on that date. Would you like to try a different day?",
            requested,
            "blocked",
        )
    
    # Exact match on the 30 minute grid
    slot_local = round_to_grid(local)
    slot_at = policy.to_utc(slot_local)
    requested["datetime"] = slot_local.isoformat()
    
    preference_rank = case((TimeSlot.seating_type == preference, 0), else_=1)
    query = (
        select(TimeSlot)
        .where(
            TimeSlot.restaurant_id == restaurant.id,
            TimeSlot.start_at == slot_at,
            TimeSlot.start_at > now,
            TimeSlot.is_blocked.is_(False),
            TimeSlot.available_capacity >= party_size,
        )
        .order_by(preference_rank, TimeSlot.available_capacity.desc(), TimeSlot.id)
        .limit(1)
        .execution_options(populate_existing=True)
    )
    if preference != "any":
        query = query.where(TimeSlot.seating_type == preference)
    exact = (await db.execute(query)).scalar_one_or_none()
    
    if exact is not None:
        requested.update(
            available=True,
            slot_id=str(exact.id),
            seating_type=exact.seating_type,
            available_capacity=exact.available_capacity,
        )
        return AvailabilityResult(
            status="available",
            message=f"Great news! I have {format_time(slot_local)} available for a party of {party_size}.",
            requested_slot=requested,
        )
    requested["available"] = False
    
    # Nearby alternatives, clipped to the seating window
    search_start = max(slot_local - ALTERNATIVE_WINDOW, first_seating)
    search_end = min(slot_local + ALTERNATIVE_WINDOW, last_seating)
    candidates = await db.execute(
        select(TimeSlot).where(
            TimeSlot.restaurant_id == restaurant.id,
            TimeSlot.start_at.between(policy.to_utc(search_start), policy.to_utc(search_end)),
            TimeSlot.start_at != slot_at,
            TimeSlot.start_at > now,
            TimeSlot.is_blocked.is_(False),
            TimeSlot.available_capacity >= party_size,
        ).execution_options(populate_existing=True)
    )
    ranked = sorted(
        candidates.scalars().all(),
        key=lambda slot: (
            abs((slot.start_at - slot_at).total_seconds()),
            0 if slot.seating_type == preference else 1,
            slot.start_at,
            str(slot.id),
        ),
    )[:MAX_ALTERNATIVES]
    
    alternatives = [
        AlternativeSlot(
            slot_id=slot.id,
            slot_datetime=policy.to_local(slot.start_at),
            time_display=format_time(policy.to_local(slot.start_at)),
            seating_type=slot.seating_type,
            available_capacity=slot.available_capacity,
        )
        for slot in ranked
    ]
    
    if alternatives:
        options = " or ".join(alt.time_display for alt in alternatives)
        return AvailabilityResult(
            status="partial_match",
            message=f"That time isn't available, but I do have {options}. Would any of those work?",
            requested_slot=requested,
            alternative_slots=alternatives,
        )
    
    return AvailabilityResult(
        status="unavailable",
        message=(
            "I'm sorry, I don't have any tables available around that time. "
            "Would you like to try a different date?"
        ),
        requested_slot=requested,
    )
