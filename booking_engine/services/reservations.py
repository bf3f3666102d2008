"""Reservation lifecycle and the host-stand view"""

from datetime import datetime, time, timedelta
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
import structlog

from booking_engine.database import utcnow
from booking_engine.models.reservation import Reservation
from booking_engine.schemas.reservation import (
    HostStandReservation,
    ReservationStatusResult,
    ReservationStatusUpdate,
    TodaysReservationsResponse,
)
from booking_engine.services.ledger import HOLDING_STATUSES, transition_reservation
from booking_engine.services.operation import run_operation
from booking_engine.services.phone import mask_phone
from booking_engine.services.policy import format_time
from booking_engine.services.restaurants import load_restaurant

logger = structlog.get_logger()


async def update_reservation_status(
    db: AsyncSession,
    restaurant_id: UUID,
    reservation_id: UUID,
    change: ReservationStatusUpdate,
    changed_by: str,
) -> ReservationStatusResult:
    """Apply a lifecycle change; slot capacity follows in the same transaction"""
    log = logger.bind(
        restaurant_id=str(restaurant_id),
        reservation_id=str(reservation_id),
        requested_status=change.status,
    )
    
    async def _update():
        _, policy = await load_restaurant(db, restaurant_id, active_only=False)
        reservation, previous = await transition_reservation(
            db,
            restaurant_id,
            reservation_id,
            change.status,
            changed_by,
            reason=change.reason,
            policy=policy,
        )
        return ReservationStatusResult(
            status="updated",
            message=f"Reservation is now {reservation.status}.",
            reservation_id=reservation.id,
            previous_status=previous,
            reservation_status=reservation.status,
        )
    
    return await run_operation(db, _update, ReservationStatusResult, log, "Reservation status updated")


async def todays_reservations(db: AsyncSession, restaurant_id: UUID) -> TodaysReservationsResponse:
    """Confirmed and seated reservations for the restaurant's current local day"""
    restaurant, policy = await load_restaurant(db, restaurant_id, active_only=False)
    
    today = policy.local_date(utcnow())
    day_start = policy.to_utc(datetime.combine(today, time()))
    day_end = policy.to_utc(datetime.combine(today + timedelta(days=1), time()))
    
    result = await db.execute(
        select(Reservation)
        .where(
            Reservation.restaurant_id == restaurant.id,
            Reservation.reservation_datetime >= day_start,
            Reservation.reservation_datetime < day_end,
            Reservation.status.in_(HOLDING_STATUSES),
        )
        .options(selectinload(Reservation.customer))
        .order_by(Reservation.reservation_datetime, Reservation.created_at)
    )
    
    items = []
    for reservation in result.scalars().all():
        customer = reservation.customer
        items.append(
            HostStandReservation(
                id=reservation.id,
                confirmation_code=reservation.confirmation_code,
                reservation_datetime=reservation.reservation_datetime,
                time_display=format_time(policy.to_local(reservation.reservation_datetime)),
                party_size=reservation.party_size,
                customer_name=reservation.customer_name,
                customer_phone_masked=mask_phone(reservation.customer_phone),
                seating_type=reservation.seating_type,
                special_requests=reservation.special_requests,
                status=reservation.status,
                is_vip=bool(customer.is_vip) if customer else False,
                visit_count=customer.total_reservations if customer else 0,
                no_show_count=customer.no_show_count if customer else 0,
            )
        )
    
    return TodaysReservationsResponse(
        date=today.isoformat(),
        timezone=policy.timezone,
        count=len(items),
        reservations=items,
    )
