"""Reservation model"""

import enum
import uuid
from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import relationship

from booking_engine.database import Base, utcnow


class ReservationStatus(str, enum.Enum):
    """Reservation lifecycle"""
    CONFIRMED = "confirmed"
    SEATED = "seated"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class Reservation(Base):
    """Table reservations"""
    __tablename__ = "reservations"
    __table_args__ = (
        CheckConstraint("party_size >= 1 AND party_size <= 100", name="valid_party_size"),
        Index("idx_reservations_datetime", "restaurant_id", "reservation_datetime"),
        Index("idx_reservations_status", "restaurant_id", "status", "reservation_datetime"),
    )
    
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    restaurant_id = Column(Uuid(as_uuid=True), ForeignKey("restaurants.id"), nullable=False)
    customer_id = Column(Uuid(as_uuid=True), ForeignKey("customers.id"), index=True)
    slot_id = Column(Uuid(as_uuid=True), ForeignKey("time_slots.id"), index=True)
    call_id = Column(Uuid(as_uuid=True), ForeignKey("calls.id"))
    
    # Human-readable code read back to the caller
    confirmation_code = Column(String(10), unique=True, nullable=False)
    
    # Reservation details
    reservation_datetime = Column(DateTime, nullable=False)
    party_size = Column(Integer, nullable=False)
    seating_type = Column(String(20))
    special_requests = Column(Text)
    
    # Customer information (denormalized for the historical record)
    customer_name = Column(String(255), nullable=False)
    customer_phone = Column(String(20), nullable=False)
    customer_email = Column(String(255))
    
    # Status
    status = Column(String(20), nullable=False, default=ReservationStatus.CONFIRMED.value)
    status_changed_at = Column(DateTime)
    status_changed_by = Column(String(255))  # system, staff:<email>, customer
    
    # Cancellation
    cancelled_at = Column(DateTime)
    cancellation_reason = Column(Text)
    cancellation_source = Column(String(50))
    
    source = Column(String(50), nullable=False, default="voice_ai")
    seated_at = Column(DateTime)
    internal_notes = Column(Text)
    
    # Metadata
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    
    # Relationships
    slot = relationship("TimeSlot")
    customer = relationship("Customer")
