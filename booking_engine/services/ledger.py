"""Time-slot ledger

``booked_capacity`` only ever moves through ``claim_capacity`` and
``release_capacity``, always inside the caller's transaction and always
together with the reservation row that justifies the change.
"""

import uuid
from datetime import date, datetime, time, timedelta
from typing import List, Optional
from uuid import UUID

from sqlalchemy import case, select, update
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from booking_engine.database import utcnow
from booking_engine.errors import ConflictError, InvalidTransition, NotFoundError, ValidationFailed
from booking_engine.models.customer import Customer
from booking_engine.models.reservation import Reservation, ReservationStatus
from booking_engine.models.restaurant import BlockedDate, Restaurant
from booking_engine.models.slot import SeatingType, TimeSlot
from booking_engine.services.policy import SLOT_GRID_MINUTES, BookingPolicy
from booking_engine.services.upsert import upsert_insert

logger = structlog.get_logger()

HOLDING_STATUSES = {ReservationStatus.CONFIRMED.value, ReservationStatus.SEATED.value}

ALLOWED_TRANSITIONS = {
    ReservationStatus.CONFIRMED.value: {
        ReservationStatus.SEATED.value,
        ReservationStatus.CANCELLED.value,
        ReservationStatus.NO_SHOW.value,
    },
    ReservationStatus.SEATED.value: {ReservationStatus.COMPLETED.value},
    ReservationStatus.CANCELLED.value: {ReservationStatus.CONFIRMED.value},
    ReservationStatus.NO_SHOW.value: {
        ReservationStatus.CONFIRMED.value,
        ReservationStatus.SEATED.value,
    },
    ReservationStatus.COMPLETED.value: set(),
}

BLOCK_TYPES = ("closed", "private_event")

# Rows per multi-VALUES insert, well under the bind parameter limits
INSERT_CHUNK = 500


async def acquire_slot(
    db: AsyncSession,
    restaurant_id: UUID,
    party_size: int,
    slot_id: Optional[UUID] = None,
    start_at: Optional[datetime] = None,
    seating_type: Optional[str] = None,
) -> Optional[TimeSlot]:
    """Lock a bookable slot without waiting

    Rows already locked by a concurrent booking are skipped, so contention
    shows up as ``None`` instead of a queued transaction.
    """
    query = select(TimeSlot).where(
        TimeSlot.restaurant_id == restaurant_id,
        TimeSlot.is_blocked.is_(False),
        TimeSlot.start_at > utcnow(),
        TimeSlot.available_capacity >= party_size,
    )
    if slot_id is not None:
        query = query.where(TimeSlot.id == slot_id)
    else:
        query = query.where(TimeSlot.start_at == start_at)
        if seating_type and seating_type != "any":
            query = query.where(TimeSlot.seating_type == seating_type)
        query = query.order_by(TimeSlot.available_capacity.desc(), TimeSlot.id)
    query = (
        query.limit(1)
        .with_for_update(skip_locked=True)
        .execution_options(populate_existing=True)
    )
    
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def claim_capacity(db: AsyncSession, slot_id: UUID, seats: int):
    """Atomically add seats to a slot, failing if it would overfill"""
    result = await db.execute(
        update(TimeSlot)
        .where(
            TimeSlot.id == slot_id,
            TimeSlot.total_capacity - TimeSlot.booked_capacity >= seats,
        )
        .values(booked_capacity=TimeSlot.booked_capacity + seats, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise ConflictError(
            "INSUFFICIENT_CAPACITY",
            "That slot no longer has enough capacity. Let me find an alternative.",
        )


async def release_capacity(db: AsyncSession, slot_id: UUID, seats: int):
    """Atomically return seats to a slot, never going below zero"""
    remaining = TimeSlot.booked_capacity - seats
    await db.execute(
        update(TimeSlot)
        .where(TimeSlot.id == slot_id)
        .values(
            booked_capacity=case((remaining < 0, 0), else_=remaining),
            updated_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )


async def transition_reservation(
    db: AsyncSession,
    restaurant_id: UUID,
    reservation_id: UUID,
    new_status: str,
    changed_by: str,
    reason: Optional[str] = None,
    policy: Optional[BookingPolicy] = None,
) -> tuple:
    """Move a reservation along its lifecycle, adjusting slot capacity with it

    Returns (reservation, previous_status). The caller owns the commit.
    """
    try:
        target = ReservationStatus(new_status).value
    except ValueError:
        raise ValidationFailed("INVALID_STATUS", f"Unknown reservation status '{new_status}'.")
    
    result = await db.execute(
        select(Reservation)
        .where(
            Reservation.id == reservation_id,
            Reservation.restaurant_id == restaurant_id,
        )
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    reservation = result.scalar_one_or_none()
    if reservation is None:
        raise NotFoundError("NOT_FOUND", "Reservation not found.")
    
    previous = reservation.status
    if target == previous:
        return reservation, previous
    if target not in ALLOWED_TRANSITIONS.get(previous, set()):
        raise InvalidTransition(
            "INVALID_TRANSITION",
            f"Cannot change a {previous} reservation to {target}.",
        )
    
    if reservation.slot_id is not None:
        was_holding = previous in HOLDING_STATUSES
        will_hold = target in HOLDING_STATUSES
        if was_holding and not will_hold:
            await release_capacity(db, reservation.slot_id, reservation.party_size)
        elif will_hold and not was_holding:
            await claim_capacity(db, reservation.slot_id, reservation.party_size)
    
    now = utcnow()
    reservation.status = target
    reservation.status_changed_at = now
    reservation.status_changed_by = changed_by
    
    if target == ReservationStatus.CANCELLED.value:
        reservation.cancelled_at = now
        reservation.cancellation_reason = reason
        reservation.cancellation_source = "staff" if changed_by.startswith("staff:") else changed_by
    elif target == ReservationStatus.SEATED.value:
        reservation.seated_at = now
    
    if reservation.customer_id is not None:
        if target == ReservationStatus.COMPLETED.value:
            visit_date = policy.local_date(reservation.reservation_datetime) if policy else now.date()
            await db.execute(
                update(Customer)
                .where(Customer.id == reservation.customer_id)
                .values(
                    completed_visits=Customer.completed_visits + 1,
                    last_visit_date=visit_date,
                    updated_at=now,
                )
            )
        elif target == ReservationStatus.NO_SHOW.value:
            await db.execute(
                update(Customer)
                .where(Customer.id == reservation.customer_id)
                .values(no_show_count=Customer.no_show_count + 1, updated_at=now)
            )
    
    await db.flush()
    logger.info(
        "Reservation status changed",
        reservation_id=str(reservation.id),
        previous_status=previous,
        status=target,
        changed_by=changed_by,
    )
    return reservation, previous


def _grid_times(window_start: datetime, window_end: datetime) -> List[datetime]:
    times = []
    current = window_start
    while current <= window_end:
        times.append(current)
        current += timedelta(minutes=SLOT_GRID_MINUTES)
    return times


async def generate_slots(
    db: AsyncSession,
    restaurant: Restaurant,
    policy: BookingPolicy,
    days: int,
    start: Optional[date] = None,
) -> int:
    """Create missing slots on the grid for each open day; returns rows created"""
    start = start or policy.local_date(utcnow())
    known = {seating.value for seating in SeatingType}
    seating_areas = [area for area in policy.seating_areas if area in known]
    
    rows = []
    for offset in range(days):
        day = start + timedelta(days=offset)
        window = policy.seating_window(day)
        if window is None:
            continue
        for local in _grid_times(*window):
            for area in seating_areas:
                rows.append({
                    "id": uuid.uuid4(),
                    "restaurant_id": restaurant.id,
                    "start_at": policy.to_utc(local),
                    "duration_minutes": policy.slot_duration_minutes,
                    "seating_type": area,
                    "total_capacity": policy.default_slot_capacity,
                    "booked_capacity": 0,
                    "is_blocked": False,
                })
    
    if not rows:
        return 0
    
    created = 0
    for chunk_start in range(0, len(rows), INSERT_CHUNK):
        stmt = (
            upsert_insert(db, TimeSlot)
            .values(rows[chunk_start:chunk_start + INSERT_CHUNK])
            .on_conflict_do_nothing(index_elements=["restaurant_id", "start_at", "seating_type"])
            .returning(TimeSlot.id)
        )
        result = await db.execute(stmt)
        created += len(result.all())
    
    logger.info(
        "Generated slots",
        restaurant_id=str(restaurant.id),
        days=days,
        candidates=len(rows),
        created=created,
    )
    return created


async def _slot_for_restaurant(db: AsyncSession, restaurant_id: UUID, slot_id: UUID) -> TimeSlot:
    result = await db.execute(
        select(TimeSlot).where(
            TimeSlot.id == slot_id,
            TimeSlot.restaurant_id == restaurant_id,
        )
    )
    slot = result.scalar_one_or_none()
    if slot is None:
        raise NotFoundError("NOT_FOUND", "Slot not found.")
    return slot


async def block_slot(db: AsyncSession, restaurant_id: UUID, slot_id: UUID, reason: str, actor: str) -> TimeSlot:
    slot = await _slot_for_restaurant(db, restaurant_id, slot_id)
    slot.is_blocked = True
    slot.block_reason = reason
    slot.blocked_by = actor
    slot.blocked_at = utcnow()
    await db.flush()
    logger.info("Slot blocked", slot_id=str(slot.id), blocked_by=actor)
    return slot


async def unblock_slot(db: AsyncSession, restaurant_id: UUID, slot_id: UUID, actor: str) -> TimeSlot:
    slot = await _slot_for_restaurant(db, restaurant_id, slot_id)
    slot.is_blocked = False
    slot.block_reason = None
    slot.blocked_by = None
    slot.blocked_at = None
    await db.flush()
    logger.info("Slot unblocked", slot_id=str(slot.id), unblocked_by=actor)
    return slot


async def list_slots(db: AsyncSession, restaurant_id: UUID, policy: BookingPolicy, day: date) -> List[TimeSlot]:
    """Slots whose local start falls on the given restaurant-local date"""
    day_start = policy.to_utc(datetime.combine(day, time()))
    day_end = policy.to_utc(datetime.combine(day + timedelta(days=1), time()))
    result = await db.execute(
        select(TimeSlot)
        .where(
            TimeSlot.restaurant_id == restaurant_id,
            TimeSlot.start_at >= day_start,
            TimeSlot.start_at < day_end,
        )
        .order_by(TimeSlot.start_at, TimeSlot.seating_type)
    )
    return list(result.scalars().all())


async def block_date(
    db: AsyncSession,
    restaurant_id: UUID,
    start_date: date,
    end_date: date,
    reason: str,
    actor: str,
    block_type: str = "closed",
    public_message: Optional[str] = None,
) -> BlockedDate:
    if end_date < start_date:
        raise ValidationFailed("INVALID_DATE_RANGE", "End date must be on or after start date.")
    if block_type not in BLOCK_TYPES:
        raise ValidationFailed("INVALID_BLOCK_TYPE", f"Block type must be one of {', '.join(BLOCK_TYPES)}.")
    
    block = BlockedDate(
        restaurant_id=restaurant_id,
        start_date=start_date,
        end_date=end_date,
        block_type=block_type,
        reason=reason,
        public_message=public_message,
        created_by=actor,
    )
    db.add(block)
    await db.flush()
    logger.info(
        "Date blocked",
        restaurant_id=str(restaurant_id),
        start_date=start_date.isoformat(),
        end_date=end_date.isoformat(),
        block_type=block_type,
    )
    return block


async def list_blocked_dates(db: AsyncSession, restaurant_id: UUID, from_date: Optional[date] = None) -> List[BlockedDate]:
    query = select(BlockedDate).where(BlockedDate.restaurant_id == restaurant_id)
    if from_date is not None:
        query = query.where(BlockedDate.end_date >= from_date)
    result = await db.execute(query.order_by(BlockedDate.start_date))
    return list(result.scalars().all())
