"""Tool execution API endpoints for the voice agent

Every route answers 200 with a result body; callers branch on ``status`` and
``error_code``. A store call that outlives ``store_timeout_seconds`` is
reported as INTERNAL_ERROR so the agent can fall back to a callback.
"""

import asyncio
from typing import Awaitable, Type

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from booking_engine.config import settings
from booking_engine.database import get_db
from booking_engine.errors import FALLBACK_MESSAGE, INTERNAL_ERROR
from booking_engine.schemas.availability import AvailabilityResult, CheckAvailabilityRequest
from booking_engine.schemas.booking import BookingResult, CreateBookingRequest
from booking_engine.schemas.call import CallLogResult, LogCallOutcomeRequest
from booking_engine.schemas.callback import CallbackResult, CreateCallbackRequest
from booking_engine.schemas.common import EngineResult
from booking_engine.services.availability import check_availability as run_check_availability
from booking_engine.services.booking import create_booking as run_create_booking
from booking_engine.services.callbacks import create_callback as run_create_callback
from booking_engine.services.calls import log_call_outcome as run_log_call_outcome

router = APIRouter()
logger = structlog.get_logger()


async def _bounded(db: AsyncSession, operation: Awaitable, result_type: Type[EngineResult], tool: str):
    """Run an engine operation within the store timeout"""
    try:
        return await asyncio.wait_for(operation, timeout=settings.store_timeout_seconds)
    except asyncio.TimeoutError:
        logger.error("Tool timed out", tool=tool, timeout=settings.store_timeout_seconds)
        await db.rollback()
        return result_type(status="error", message=FALLBACK_MESSAGE, error_code=INTERNAL_ERROR)


@router.post("/check_availability", response_model=AvailabilityResult)
async def check_availability(
    request: CheckAvailabilityRequest,
    db: AsyncSession = Depends(get_db),
):
    """Check whether a time, party size and seating preference can be booked"""
    logger.info(
        "Tool: check_availability",
        restaurant_id=str(request.restaurant_id),
        party_size=request.party_size,
    )
    return await _bounded(db, run_check_availability(db, request), AvailabilityResult, "check_availability")


@router.post("/create_booking", response_model=BookingResult)
async def create_booking(
    request: CreateBookingRequest,
    db: AsyncSession = Depends(get_db),
):
    """Book a slot for the caller"""
    logger.info(
        "Tool: create_booking",
        restaurant_id=str(request.restaurant_id),
        party_size=request.booking.party_size,
    )
    return await _bounded(db, run_create_booking(db, request), BookingResult, "create_booking")


@router.post("/log_call_outcome", response_model=CallLogResult)
async def log_call_outcome(
    request: LogCallOutcomeRequest,
    db: AsyncSession = Depends(get_db),
):
    """Record or update the call record"""
    logger.info(
        "Tool: log_call_outcome",
        restaurant_id=str(request.restaurant_id),
        external_call_id=request.external_call_id,
    )
    return await _bounded(db, run_log_call_outcome(db, request), CallLogResult, "log_call_outcome")


@router.post("/create_callback", response_model=CallbackResult)
async def create_callback(
    request: CreateCallbackRequest,
    db: AsyncSession = Depends(get_db),
):
    """Queue a request staff must call back about"""
    logger.info(
        "Tool: create_callback",
        restaurant_id=str(request.restaurant_id),
        failure_reason=request.failure_reason,
    )
    result = await _bounded(db, run_create_callback(db, request), CallbackResult, "create_callback")
    if result.urgent:
        logger.warning(
            "Urgent callback queued",
            restaurant_id=str(request.restaurant_id),
            callback_id=str(result.callback_id),
        )
    return result
