"""Booking schemas"""

from datetime import datetime
from typing import Optional
from uuid import UUID
from pydantic import BaseModel

from booking_engine.schemas.common import EngineResult


class CustomerFields(BaseModel):
    """Caller details collected in conversation"""
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    sms_consent: bool = False


class BookingFields(BaseModel):
    """Requested booking; slot_id wins over date_time when both are given"""
    date_time: Optional[datetime] = None
    slot_id: Optional[UUID] = None
    party_size: Optional[int] = None
    seating_type: Optional[str] = None
    special_requests: Optional[str] = None


class CreateBookingRequest(BaseModel):
    """Booking request from the voice agent"""
    restaurant_id: UUID
    call_id: Optional[UUID] = None
    customer: CustomerFields
    booking: BookingFields


class BookingResult(EngineResult):
    """booked | conflict | error"""
    booking_id: Optional[UUID] = None
    confirmation_code: Optional[str] = None
    customer_id: Optional[UUID] = None
