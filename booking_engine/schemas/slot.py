"""Ledger schemas"""

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID
from pydantic import BaseModel, Field


class SlotResponse(BaseModel):
    """Time slot with derived availability"""
    id: UUID
    restaurant_id: UUID
    start_at: datetime
    duration_minutes: int
    seating_type: str
    total_capacity: int
    booked_capacity: int
    available_capacity: int
    is_blocked: bool
    block_reason: Optional[str]

    class Config:
        from_attributes = True


class SlotListResponse(BaseModel):
    date: date
    items: List[SlotResponse]


class SlotBlockRequest(BaseModel):
    reason: str


class GenerateSlotsRequest(BaseModel):
    days: int = Field(default=30, ge=1, le=180)


class GenerateSlotsResponse(BaseModel):
    created: int


class BlockedDateCreate(BaseModel):
    """Restaurant-wide closure"""
    start_date: date
    end_date: date
    block_type: str = "closed"  # closed, private_event
    reason: str
    public_message: Optional[str] = None


class BlockedDateResponse(BaseModel):
    id: UUID
    restaurant_id: UUID
    start_date: date
    end_date: date
    block_type: str
    reason: str
    public_message: Optional[str]
    created_by: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True
