"""Call log, idempotent on the voice platform's call id"""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from booking_engine.database import utcnow
from booking_engine.errors import ValidationFailed
from booking_engine.models.call import Call, CallOutcome, CallStatus
from booking_engine.schemas.call import CallLogResult, LogCallOutcomeRequest
from booking_engine.services.analytics import record_call
from booking_engine.services.operation import run_operation
from booking_engine.services.phone import mask_phone, phone_fingerprint
from booking_engine.services.restaurants import load_restaurant
from booking_engine.services.upsert import upsert_insert

logger = structlog.get_logger()

CALL_STATUSES = {status.value for status in CallStatus}
CALL_OUTCOMES = {outcome.value for outcome in CallOutcome}

# Fields copied onto an existing record only when the new report carries them
MERGED_FIELDS = (
    "ended_at",
    "outcome",
    "transcript",
    "recording_url",
    "reservation_id",
    "callback_id",
    "safety_trigger_type",
    "tool_calls_count",
    "avg_tool_latency_ms",
)


def _normalized_status(value):
    if value is None:
        return None
    value = value.lower()
    return value if value in CALL_STATUSES else CallStatus.COMPLETED.value


def _normalized_outcome(value):
    if value is None:
        return None
    value = value.lower()
    return value if value in CALL_OUTCOMES else None


async def log_call_outcome(db: AsyncSession, request: LogCallOutcomeRequest) -> CallLogResult:
    """Create the call record on first report, merge later reports into it

    The daily aggregate counts a call once, when its record is created.
    """
    log = logger.bind(
        restaurant_id=str(request.restaurant_id),
        external_call_id=request.external_call_id,
        caller=mask_phone(request.caller_phone),
    )
    
    async def _log():
        external_id = (request.external_call_id or "").strip()
        if not external_id:
            raise ValidationFailed("MISSING_CALL_ID", "external_call_id is required.")
        
        restaurant, policy = await load_restaurant(db, request.restaurant_id, active_only=False)
        
        fields = {
            "ended_at": policy.coerce_utc(request.ended_at) if request.ended_at else None,
            "outcome": _normalized_outcome(request.outcome),
            "transcript": request.transcript,
            "recording_url": request.recording_url,
            "reservation_id": request.reservation_id,
            "callback_id": request.callback_id,
            "safety_trigger_type": request.safety_type,
            "tool_calls_count": request.tool_calls_count,
            "avg_tool_latency_ms": request.avg_tool_latency_ms,
        }
        status = _normalized_status(request.status)
        safety = bool(request.safety_trigger)
        
        caller_phone = request.caller_phone or None
        stmt = upsert_insert(db, Call).values(
            id=uuid.uuid4(),
            restaurant_id=restaurant.id,
            external_call_id=external_id,
            caller_phone=caller_phone,
            caller_phone_fingerprint=phone_fingerprint(caller_phone) if caller_phone else None,
            started_at=policy.coerce_utc(request.started_at) if request.started_at else utcnow(),
            status=status or CallStatus.COMPLETED.value,
            safety_trigger_activated=safety,
            metadata_json=request.metadata or {},
            created_at=utcnow(),
            updated_at=utcnow(),
            **fields,
        )
        stmt = stmt.on_conflict_do_nothing(index_elements=["external_call_id"]).returning(Call.id)
        inserted = (await db.execute(stmt)).scalar_one_or_none()
        
        if inserted is not None:
            call = await db.get(Call, inserted)
            await record_call(db, policy, call)
            return CallLogResult(status="created", message="Call record created", call_id=call.id, is_new=True)
        
        result = await db.execute(
            select(Call).where(Call.external_call_id == external_id).with_for_update()
        )
        call = result.scalar_one()
        if call.restaurant_id != restaurant.id:
            raise ValidationFailed(
                "CALL_RESTAURANT_MISMATCH",
                "That call is already logged for a different restaurant.",
            )
        
        for name in MERGED_FIELDS:
            value = fields[name]
            if value is not None:
                setattr(call, name, value)
        if status is not None:
            call.status = status
        if safety:
            call.safety_trigger_activated = True
        if request.metadata:
            call.metadata_json = {**(call.metadata_json or {}), **request.metadata}
        if caller_phone and not call.caller_phone:
            call.caller_phone = caller_phone
            call.caller_phone_fingerprint = phone_fingerprint(caller_phone)
        
        return CallLogResult(status="updated", message="Call record updated", call_id=call.id, is_new=False)
    
    return await run_operation(db, _log, CallLogResult, log, "Call logged")
