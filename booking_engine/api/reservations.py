"""Reservation management API endpoints"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.database import get_db
from booking_engine.errors import EngineError
from booking_engine.models.reservation import Reservation
from booking_engine.models.user import User
from booking_engine.schemas.reservation import (
    ReservationListResponse,
    ReservationResponse,
    ReservationStatusResult,
    ReservationStatusUpdate,
    TodaysReservationsResponse,
)
from booking_engine.services.reservations import todays_reservations, update_reservation_status
from booking_engine.api.auth import restaurant_staff
from booking_engine.api.errors import http_error, raise_for_result

router = APIRouter()


@router.get("", response_model=ReservationListResponse)
async def list_reservations(
    restaurant_id: UUID,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    status: Optional[str] = None,
    from_date: Optional[datetime] = None,
    to_date: Optional[datetime] = None,
    current_user: User = Depends(restaurant_staff),
    db: AsyncSession = Depends(get_db),
):
    """List reservations for a restaurant with pagination"""
    query = select(Reservation).where(Reservation.restaurant_id == restaurant_id)
    count_query = select(func.count(Reservation.id)).where(Reservation.restaurant_id == restaurant_id)
    
    if status:
        query = query.where(Reservation.status == status)
        count_query = count_query.where(Reservation.status == status)
    
    if from_date:
        query = query.where(Reservation.reservation_datetime >= from_date)
        count_query = count_query.where(Reservation.reservation_datetime >= from_date)
    
    if to_date:
        query = query.where(Reservation.reservation_datetime <= to_date)
        count_query = count_query.where(Reservation.reservation_datetime <= to_date)
    
    # Get total
    total_result = await db.execute(count_query)
    total = total_result.scalar()
    
    # Get paginated results
    offset = (page - 1) * page_size
    query = query.order_by(Reservation.reservation_datetime.desc()).offset(offset).limit(page_size)
    
    result = await db.execute(query)
    reservations = result.scalars().all()
    
    return ReservationListResponse(
        items=reservations,
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/today", response_model=TodaysReservationsResponse)
async def list_todays_reservations(
    restaurant_id: UUID,
    current_user: User = Depends(restaurant_staff),
    db: AsyncSession = Depends(get_db),
):
    """Host-stand view of today's confirmed and seated reservations"""
    try:
        return await todays_reservations(db, restaurant_id)
    except EngineError as exc:
        raise http_error(exc)


@router.get("/{reservation_id}", response_model=ReservationResponse)
async def get_reservation(
    restaurant_id: UUID,
    reservation_id: UUID,
    current_user: User = Depends(restaurant_staff),
    db: AsyncSession = Depends(get_db),
):
    """Get reservation details"""
    result = await db.execute(
        select(Reservation).where(
            Reservation.id == reservation_id,
            Reservation.restaurant_id == restaurant_id,
        )
    )
    reservation = result.scalar_one_or_none()
    
    if not reservation:
        raise HTTPException(status_code=404, detail="Reservation not found")
    
    return reservation


@router.post("/{reservation_id}/status", response_model=ReservationStatusResult)
async def change_reservation_status(
    restaurant_id: UUID,
    reservation_id: UUID,
    change: ReservationStatusUpdate,
    current_user: User = Depends(restaurant_staff),
    db: AsyncSession = Depends(get_db),
):
    """Seat, complete, cancel, mark no-show or reinstate a reservation"""
    result = await update_reservation_status(
        db,
        restaurant_id,
        reservation_id,
        change,
        current_user.actor,
    )
    return raise_for_result(result)
