"""Time-slot ledger and blocked-date API endpoints"""

from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.database import get_db
from booking_engine.errors import EngineError
from booking_engine.models.user import User
from booking_engine.schemas.slot import (
    BlockedDateCreate,
    BlockedDateResponse,
    GenerateSlotsRequest,
    GenerateSlotsResponse,
    SlotBlockRequest,
    SlotListResponse,
    SlotResponse,
)
from booking_engine.services import ledger
from booking_engine.services.restaurants import load_restaurant
from booking_engine.api.auth import restaurant_admin, restaurant_staff
from booking_engine.api.errors import http_error

router = APIRouter()
blocked_dates_router = APIRouter()


@router.get("", response_model=SlotListResponse)
async def list_slots(
    restaurant_id: UUID,
    day: date,
    current_user: User = Depends(restaurant_staff),
    db: AsyncSession = Depends(get_db),
):
    """Slots starting on a restaurant-local date"""
    try:
        _, policy = await load_restaurant(db, restaurant_id, active_only=False)
    except EngineError as exc:
        raise http_error(exc)
    
    slots = await ledger.list_slots(db, restaurant_id, policy, day)
    return SlotListResponse(date=day, items=slots)


@router.post("/generate", response_model=GenerateSlotsResponse)
async def generate_slots(
    restaurant_id: UUID,
    request: GenerateSlotsRequest,
    current_user: User = Depends(restaurant_admin),
    db: AsyncSession = Depends(get_db),
):
    """Extend the ledger to the given number of days"""
    try:
        restaurant, policy = await load_restaurant(db, restaurant_id)
    except EngineError as exc:
        raise http_error(exc)
    
    created = await ledger.generate_slots(db, restaurant, policy, request.days)
    await db.commit()
    return GenerateSlotsResponse(created=created)


@router.post("/{slot_id}/block", response_model=SlotResponse)
async def block_slot(
    restaurant_id: UUID,
    slot_id: UUID,
    request: SlotBlockRequest,
    current_user: User = Depends(restaurant_staff),
    db: AsyncSession = Depends(get_db),
):
    """Take a slot out of availability search"""
    try:
        slot = await ledger.block_slot(db, restaurant_id, slot_id, request.reason, current_user.actor)
    except EngineError as exc:
        raise http_error(exc)
    
    await db.commit()
    return slot


@router.post("/{slot_id}/unblock", response_model=SlotResponse)
async def unblock_slot(
    restaurant_id: UUID,
    slot_id: UUID,
    current_user: User = Depends(restaurant_staff),
    db: AsyncSession = Depends(get_db),
):
    """Return a blocked slot to availability search"""
    try:
        slot = await ledger.unblock_slot(db, restaurant_id, slot_id, current_user.actor)
    except EngineError as exc:
        raise http_error(exc)
    
    await db.commit()
    return slot


@blocked_dates_router.get("", response_model=List[BlockedDateResponse])
async def list_blocked_dates(
    restaurant_id: UUID,
    from_date: Optional[date] = None,
    current_user: User = Depends(restaurant_staff),
    db: AsyncSession = Depends(get_db),
):
    """Closures and private events, optionally only those still ahead"""
    return await ledger.list_blocked_dates(db, restaurant_id, from_date=from_date)


@blocked_dates_router.post("", response_model=BlockedDateResponse, status_code=201)
async def create_blocked_date(
    restaurant_id: UUID,
    request: BlockedDateCreate,
    current_user: User = Depends(restaurant_admin),
    db: AsyncSession = Depends(get_db),
):
    """Close the restaurant for a date range"""
    try:
        await load_restaurant(db, restaurant_id, active_only=False)
        block = await ledger.block_date(
            db,
            restaurant_id,
            request.start_date,
            request.end_date,
            request.reason,
            current_user.actor,
            block_type=request.block_type,
            public_message=request.public_message,
        )
    except EngineError as exc:
        raise http_error(exc)
    
    await db.commit()
    return block
