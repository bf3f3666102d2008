"""Callback queue API endpoints"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.database import get_db
from booking_engine.models.user import User
from booking_engine.schemas.callback import (
    CallbackActionResult,
    FailCallbackRequest,
    PendingCallbacksResult,
    ResolveCallbackRequest,
)
from booking_engine.services import callbacks as queue
from booking_engine.api.auth import restaurant_staff
from booking_engine.api.errors import raise_for_result

router = APIRouter()


@router.get("", response_model=PendingCallbacksResult)
async def list_pending_callbacks(
    restaurant_id: UUID,
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(restaurant_staff),
    db: AsyncSession = Depends(get_db),
):
    """Open callbacks, most urgent and oldest first"""
    result = await queue.list_pending_callbacks(db, restaurant_id, limit=limit)
    return raise_for_result(result)


@router.post("/{callback_id}/claim", response_model=CallbackActionResult)
async def claim_callback(
    restaurant_id: UUID,
    callback_id: UUID,
    current_user: User = Depends(restaurant_staff),
    db: AsyncSession = Depends(get_db),
):
    """Assign a pending callback to the current staff member"""
    result = await queue.claim_callback(db, callback_id, current_user.actor, restaurant_id=restaurant_id)
    return raise_for_result(result)


@router.post("/{callback_id}/resolve", response_model=CallbackActionResult)
async def resolve_callback(
    restaurant_id: UUID,
    callback_id: UUID,
    resolution: ResolveCallbackRequest,
    current_user: User = Depends(restaurant_staff),
    db: AsyncSession = Depends(get_db),
):
    """Close a callback with its outcome"""
    result = await queue.resolve_callback(
        db,
        callback_id,
        current_user.actor,
        resolution,
        restaurant_id=restaurant_id,
    )
    return raise_for_result(result)


@router.post("/{callback_id}/fail", response_model=CallbackActionResult)
async def fail_callback(
    restaurant_id: UUID,
    callback_id: UUID,
    body: FailCallbackRequest,
    current_user: User = Depends(restaurant_staff),
    db: AsyncSession = Depends(get_db),
):
    """Give up on a callback"""
    result = await queue.fail_callback(
        db,
        callback_id,
        current_user.actor,
        notes=body.notes,
        restaurant_id=restaurant_id,
    )
    return raise_for_result(result)
