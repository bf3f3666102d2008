"""Callback (escalation queue) model"""

import enum
import uuid
from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, JSON, String, Text, Uuid

from booking_engine.database import Base, utcnow


class CallbackStatus(str, enum.Enum):
    """Callback queue states"""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    FAILED = "failed"


OPEN_CALLBACK_STATUSES = (CallbackStatus.PENDING.value, CallbackStatus.IN_PROGRESS.value)


class Callback(Base):
    """Booking request that staff must follow up on"""
    __tablename__ = "callbacks"
    __table_args__ = (
        Index("idx_callbacks_pending", "restaurant_id", "status", "priority", "created_at"),
    )
    
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    restaurant_id = Column(Uuid(as_uuid=True), ForeignKey("restaurants.id"), nullable=False)
    call_id = Column(Uuid(as_uuid=True), ForeignKey("calls.id"))
    resulting_reservation_id = Column(Uuid(as_uuid=True), ForeignKey("reservations.id"))
    
    # Customer
    customer_phone = Column(String(20), nullable=False)
    customer_name = Column(String(255))
    
    # Requested booking
    requested_datetime = Column(DateTime)
    party_size = Column(Integer)
    seating_preference = Column(String(20))
    special_requests = Column(Text)
    
    # Failure context
    failure_reason = Column(Text, nullable=False)
    error_code = Column(String(50))
    error_details = Column(JSON, default=dict)
    
    # 1 = most urgent
    priority = Column(Integer, nullable=False, default=5)
    
    status = Column(String(20), nullable=False, default=CallbackStatus.PENDING.value)
    assigned_to = Column(String(255))
    assigned_at = Column(DateTime)
    
    resolved_at = Column(DateTime)
    resolved_by = Column(String(255))
    resolution_notes = Column(Text)
    resolution_outcome = Column(String(50))  # booked, no_availability, customer_declined, no_answer
    
    attempt_count = Column(Integer, nullable=False, default=0)
    last_attempt_at = Column(DateTime)
    
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
