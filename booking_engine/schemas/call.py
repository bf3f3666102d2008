"""Call log schemas"""

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID
from pydantic import BaseModel

from booking_engine.schemas.common import EngineResult


class LogCallOutcomeRequest(BaseModel):
    """End-of-call (or mid-call) report from the voice platform"""
    restaurant_id: UUID
    external_call_id: Optional[str] = None
    caller_phone: Optional[str] = None
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    status: Optional[str] = None
    outcome: Optional[str] = None
    transcript: Optional[str] = None
    recording_url: Optional[str] = None
    reservation_id: Optional[UUID] = None
    callback_id: Optional[UUID] = None
    safety_trigger: Optional[bool] = None
    safety_type: Optional[str] = None
    tool_calls_count: Optional[int] = None
    avg_tool_latency_ms: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None


class CallLogResult(EngineResult):
    """created | updated | error"""
    call_id: Optional[UUID] = None
    is_new: bool = False
