"""Availability schemas"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID
from pydantic import BaseModel

from booking_engine.schemas.common import EngineResult


class CheckAvailabilityRequest(BaseModel):
    """Availability lookup from the voice agent"""
    restaurant_id: UUID
    date_time: datetime
    party_size: int
    seating_preference: Optional[str] = "any"


class AlternativeSlot(BaseModel):
    """Bookable slot offered instead of the requested time"""
    slot_id: UUID
    slot_datetime: datetime
    time_display: str
    seating_type: str
    available_capacity: int


class AvailabilityResult(EngineResult):
    """available | partial_match | unavailable | error"""
    requested_slot: Dict[str, Any] = {}
    alternative_slots: List[AlternativeSlot] = []
