"""Reservation schemas"""

from datetime import datetime
from typing import Optional, List
from uuid import UUID
from pydantic import BaseModel

from booking_engine.schemas.common import EngineResult


class ReservationResponse(BaseModel):
    """Reservation response"""
    id: UUID
    restaurant_id: UUID
    customer_id: Optional[UUID]
    slot_id: Optional[UUID]
    call_id: Optional[UUID]
    confirmation_code: str
    reservation_datetime: datetime
    party_size: int
    seating_type: Optional[str]
    special_requests: Optional[str]
    customer_name: str
    customer_phone: str
    customer_email: Optional[str]
    status: str
    status_changed_at: Optional[datetime]
    status_changed_by: Optional[str]
    cancelled_at: Optional[datetime]
    cancellation_reason: Optional[str]
    source: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ReservationListResponse(BaseModel):
    """Paginated reservation list"""
    items: List[ReservationResponse]
    total: int
    page: int
    page_size: int


class ReservationStatusUpdate(BaseModel):
    """Lifecycle change requested by staff"""
    status: str
    reason: Optional[str] = None


class ReservationStatusResult(EngineResult):
    reservation_id: Optional[UUID] = None
    previous_status: Optional[str] = None
    reservation_status: Optional[str] = None


class HostStandReservation(BaseModel):
    """Today's reservation as shown at the host stand"""
    id: UUID
    confirmation_code: str
    reservation_datetime: datetime
    time_display: str
    party_size: int
    customer_name: str
    customer_phone_masked: str
    seating_type: Optional[str]
    special_requests: Optional[str]
    status: str
    is_vip: bool = False
    visit_count: int = 0
    no_show_count: int = 0


class TodaysReservationsResponse(BaseModel):
    date: str
    timezone: str
    count: int
    reservations: List[HostStandReservation]
