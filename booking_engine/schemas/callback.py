"""Callback queue schemas"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID
from pydantic import BaseModel

from booking_engine.schemas.common import EngineResult


class CreateCallbackRequest(BaseModel):
    """Booking attempt that could not complete synchronously"""
    restaurant_id: UUID
    call_id: Optional[UUID] = None
    customer_phone: Optional[str] = None
    customer_name: Optional[str] = None
    requested_datetime: Optional[datetime] = None
    party_size: Optional[int] = None
    seating_preference: Optional[str] = None
    special_requests: Optional[str] = None
    failure_reason: str
    error_details: Optional[Dict[str, Any]] = None


class CallbackResult(EngineResult):
    """created | error"""
    callback_id: Optional[UUID] = None
    priority: Optional[int] = None
    urgent: bool = False


class ResolveCallbackRequest(BaseModel):
    """Staff resolution of a queued callback"""
    outcome: str  # booked, no_availability, customer_declined, no_answer
    notes: Optional[str] = None
    reservation_id: Optional[UUID] = None


class FailCallbackRequest(BaseModel):
    notes: Optional[str] = None


class CallbackActionResult(EngineResult):
    """Outcome of claim/resolve/fail"""
    callback_id: Optional[UUID] = None
    callback_status: Optional[str] = None
    outcome: Optional[str] = None


class PendingCallback(BaseModel):
    """Open queue item as shown to staff"""
    id: UUID
    customer_phone: str
    customer_phone_masked: str
    customer_name: Optional[str]
    requested_datetime: Optional[datetime]
    party_size: Optional[int]
    seating_preference: Optional[str]
    special_requests: Optional[str]
    failure_reason: str
    priority: int
    status: str
    assigned_to: Optional[str]
    attempt_count: int
    created_at: datetime
    minutes_waiting: float


class PendingCallbacksResult(EngineResult):
    count: int = 0
    callbacks: List[PendingCallback] = []
