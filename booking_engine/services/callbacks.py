"""Callback (escalation) queue

Booking attempts that could not complete are queued here for staff, most
urgent first. Priority comes from the cause code, the part of the failure
reason before any colon.
"""

from typing import Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from booking_engine.database import utcnow
from booking_engine.errors import NotFoundError, ValidationFailed
from booking_engine.models.call import Call
from booking_engine.models.callback import OPEN_CALLBACK_STATUSES, Callback, CallbackStatus
from booking_engine.schemas.callback import (
    CallbackActionResult,
    CallbackResult,
    CreateCallbackRequest,
    PendingCallback,
    PendingCallbacksResult,
    ResolveCallbackRequest,
)
from booking_engine.services.analytics import bump_daily
from booking_engine.services.operation import run_operation
from booking_engine.services.phone import mask_phone
from booking_engine.services.restaurants import load_restaurant

logger = structlog.get_logger()

URGENT_PRIORITY = 1
DEFAULT_PRIORITY = 5
DEFAULT_PENDING_LIMIT = 20

CAUSE_PRIORITIES = {
    # Safety first
    "SAFETY_TRIGGER": 1,
    "ALLERGY_SAFETY": 1,
    "SEVERE_ALLERGY": 1,
    "LARGE_PARTY": 2,
    # Store or upstream failures
    "CRM_TIMEOUT": 3,
    "SYSTEM_TIMEOUT": 3,
    "SYSTEM_ERROR": 3,
    "INTERNAL_ERROR": 3,
    # Capacity contention
    "BOOKING_CONFLICT": 4,
    "SLOT_UNAVAILABLE": 4,
    "INSUFFICIENT_CAPACITY": 4,
    "NO_AVAILABILITY": 4,
}

RESOLUTION_OUTCOMES = ("booked", "no_availability", "customer_declined", "no_answer")


def cause_code(failure_reason: str) -> str:
    """'ALLERGY_SAFETY: peanut allergy' -> 'ALLERGY_SAFETY'"""
    return (failure_reason or "").split(":", 1)[0].strip().upper().replace(" ", "_")


def priority_for(failure_reason: str) -> int:
    return CAUSE_PRIORITIES.get(cause_code(failure_reason), DEFAULT_PRIORITY)


async def create_callback(db: AsyncSession, request: CreateCallbackRequest) -> CallbackResult:
    """Queue a failed booking for staff follow-up"""
    log = logger.bind(
        restaurant_id=str(request.restaurant_id),
        failure_reason=cause_code(request.failure_reason),
        phone=mask_phone(request.customer_phone),
    )
    
    async def _create():
        restaurant, policy = await load_restaurant(db, request.restaurant_id, active_only=False)
        
        phone = (request.customer_phone or "").strip()
        if not phone:
            raise ValidationFailed("MISSING_PHONE", "Customer phone is required.")
        
        call_id = None
        if request.call_id is not None:
            found = await db.execute(
                select(Call.id).where(Call.id == request.call_id, Call.restaurant_id == restaurant.id)
            )
            call_id = found.scalar_one_or_none()
            if call_id is None:
                log.warning("Callback references an unknown call", call_id=str(request.call_id))
        
        priority = priority_for(request.failure_reason)
        callback = Callback(
            restaurant_id=restaurant.id,
            call_id=call_id,
            customer_phone=phone,
            customer_name=request.customer_name,
            requested_datetime=(
                policy.coerce_utc(request.requested_datetime)
                if request.requested_datetime else None
            ),
            party_size=request.party_size,
            seating_preference=request.seating_preference,
            special_requests=request.special_requests,
            failure_reason=request.failure_reason,
            error_code=cause_code(request.failure_reason),
            error_details=request.error_details or {},
            priority=priority,
            status=CallbackStatus.PENDING.value,
        )
        db.add(callback)
        await db.flush()
        
        if call_id is not None:
            await db.execute(
                update(Call)
                .where(Call.id == call_id)
                .values(callback_id=callback.id, updated_at=utcnow())
            )
        
        await bump_daily(db, restaurant.id, policy.local_date(utcnow()), callbacks_created=1)
        
        return CallbackResult(
            status="created",
            message="Callback created successfully",
            callback_id=callback.id,
            priority=priority,
            urgent=priority == URGENT_PRIORITY,
        )
    
    return await run_operation(db, _create, CallbackResult, log, "Callback created")


async def _locked_callback(db: AsyncSession, callback_id: UUID, restaurant_id: Optional[UUID]) -> Callback:
    query = select(Callback).where(Callback.id == callback_id).with_for_update()
    if restaurant_id is not None:
        query = query.where(Callback.restaurant_id == restaurant_id)
    result = await db.execute(query)
    callback = result.scalar_one_or_none()
    if callback is None:
        raise NotFoundError("NOT_FOUND", "Callback not found.")
    return callback


async def resolve_callback(
    db: AsyncSession,
    callback_id: UUID,
    resolved_by: str,
    request: ResolveCallbackRequest,
    restaurant_id: Optional[UUID] = None,
) -> CallbackActionResult:
    """Close an open callback with the staff member's outcome"""
    log = logger.bind(callback_id=str(callback_id), resolved_by=resolved_by, outcome=request.outcome)
    
    async def _resolve():
        callback = await _locked_callback(db, callback_id, restaurant_id)
        if callback.status == CallbackStatus.RESOLVED.value:
            raise ValidationFailed("ALREADY_RESOLVED", "Callback already resolved.")
        if callback.status not in OPEN_CALLBACK_STATUSES:
            raise ValidationFailed(
                "INVALID_STATUS",
                f"A {callback.status} callback cannot be resolved.",
            )
        if request.outcome not in RESOLUTION_OUTCOMES:
            raise ValidationFailed(
                "INVALID_OUTCOME",
                f"Outcome must be one of {', '.join(RESOLUTION_OUTCOMES)}.",
            )
        
        now = utcnow()
        callback.status = CallbackStatus.RESOLVED.value
        callback.resolved_at = now
        callback.resolved_by = resolved_by
        callback.resolution_outcome = request.outcome
        callback.resolution_notes = request.notes
        callback.resulting_reservation_id = request.reservation_id
        
        _, policy = await load_restaurant(db, callback.restaurant_id, active_only=False)
        await bump_daily(db, callback.restaurant_id, policy.local_date(now), callbacks_resolved=1)
        
        return CallbackActionResult(
            status="resolved",
            message="Callback resolved successfully",
            callback_id=callback.id,
            callback_status=callback.status,
            outcome=request.outcome,
        )
    
    return await run_operation(db, _resolve, CallbackActionResult, log, "Callback resolved")


async def claim_callback(
    db: AsyncSession,
    callback_id: UUID,
    staff: str,
    restaurant_id: Optional[UUID] = None,
) -> CallbackActionResult:
    """Staff member starts working a pending callback"""
    log = logger.bind(callback_id=str(callback_id), assigned_to=staff)
    
    async def _claim():
        callback = await _locked_callback(db, callback_id, restaurant_id)
        if callback.status != CallbackStatus.PENDING.value:
            raise ValidationFailed(
                "INVALID_STATUS",
                f"Only pending callbacks can be claimed; this one is {callback.status}.",
            )
        
        now = utcnow()
        callback.status = CallbackStatus.IN_PROGRESS.value
        callback.assigned_to = staff
        callback.assigned_at = now
        callback.attempt_count = (callback.attempt_count or 0) + 1
        callback.last_attempt_at = now
        
        return CallbackActionResult(
            status="claimed",
            message="Callback claimed",
            callback_id=callback.id,
            callback_status=callback.status,
        )
    
    return await run_operation(db, _claim, CallbackActionResult, log, "Callback claimed")


async def fail_callback(
    db: AsyncSession,
    callback_id: UUID,
    staff: str,
    notes: Optional[str] = None,
    restaurant_id: Optional[UUID] = None,
) -> CallbackActionResult:
    """Give up on an open callback"""
    log = logger.bind(callback_id=str(callback_id), resolved_by=staff)
    
    async def _fail():
        callback = await _locked_callback(db, callback_id, restaurant_id)
        if callback.status == CallbackStatus.RESOLVED.value:
            raise ValidationFailed("ALREADY_RESOLVED", "Callback already resolved.")
        if callback.status not in OPEN_CALLBACK_STATUSES:
            raise ValidationFailed("INVALID_STATUS", f"Callback is already {callback.status}.")
        
        now = utcnow()
        callback.status = CallbackStatus.FAILED.value
        callback.resolved_at = now
        callback.resolved_by = staff
        callback.resolution_notes = notes
        callback.last_attempt_at = now
        
        return CallbackActionResult(
            status="failed",
            message="Callback marked as failed",
            callback_id=callback.id,
            callback_status=callback.status,
        )
    
    return await run_operation(db, _fail, CallbackActionResult, log, "Callback failed")


async def list_pending_callbacks(
    db: AsyncSession,
    restaurant_id: UUID,
    limit: int = DEFAULT_PENDING_LIMIT,
) -> PendingCallbacksResult:
    """Open callbacks, most urgent first, then oldest first"""
    log = logger.bind(restaurant_id=str(restaurant_id), limit=limit)
    
    async def _list():
        await load_restaurant(db, restaurant_id, active_only=False)
        
        result = await db.execute(
            select(Callback)
            .where(
                Callback.restaurant_id == restaurant_id,
                Callback.status.in_(OPEN_CALLBACK_STATUSES),
            )
            .order_by(Callback.priority, Callback.created_at, Callback.id)
            .limit(max(1, limit))
        )
        now = utcnow()
        callbacks = [
            PendingCallback(
                id=callback.id,
                customer_phone=callback.customer_phone,
                customer_phone_masked=mask_phone(callback.customer_phone),
                customer_name=callback.customer_name,
                requested_datetime=callback.requested_datetime,
                party_size=callback.party_size,
                seating_preference=callback.seating_preference,
                special_requests=callback.special_requests,
                failure_reason=callback.failure_reason,
                priority=callback.priority,
                status=callback.status,
                assigned_to=callback.assigned_to,
                attempt_count=callback.attempt_count or 0,
                created_at=callback.created_at,
                minutes_waiting=round((now - callback.created_at).total_seconds() / 60, 1),
            )
            for callback in result.scalars().all()
        ]
        return PendingCallbacksResult(status="ok", count=len(callbacks), callbacks=callbacks)
    
    return await run_operation(db, _list, PendingCallbacksResult, log, "Pending callbacks listed")
