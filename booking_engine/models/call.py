"""Call log model"""

import enum
import uuid
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, JSON, String, Text, Uuid
from sqlalchemy.ext.hybrid import hybrid_property

from booking_engine.database import Base, utcnow


class CallStatus(str, enum.Enum):
    """Final state of a call"""
    COMPLETED = "completed"
    TRANSFERRED = "transferred"
    ABANDONED = "abandoned"
    ERROR = "error"


class CallOutcome(str, enum.Enum):
    """What the call accomplished"""
    BOOKING_MADE = "booking_made"
    CALLBACK_REQUESTED = "callback_requested"
    FAQ_ANSWERED = "faq_answered"
    TRANSFERRED_SAFETY = "transferred_safety"
    TRANSFERRED_LARGE_PARTY = "transferred_large_party"
    TRANSFERRED_CUSTOMER = "transferred_customer"
    NO_AVAILABILITY = "no_availability"
    CALLER_HANGUP = "caller_hangup"
    SYSTEM_ERROR = "system_error"


class Call(Base):
    """Call records, one per external (voice platform) call id"""
    __tablename__ = "calls"
    __table_args__ = (
        Index("idx_calls_restaurant_date", "restaurant_id", "started_at"),
    )
    
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    restaurant_id = Column(Uuid(as_uuid=True), ForeignKey("restaurants.id"), nullable=False)
    
    external_call_id = Column(String(100), unique=True, nullable=False)
    
    # Caller
    caller_phone = Column(String(20))
    caller_phone_fingerprint = Column(String(64), index=True)
    
    # Timing
    started_at = Column(DateTime, nullable=False, default=utcnow)
    ended_at = Column(DateTime)
    
    # Status and outcome
    status = Column(String(20), nullable=False, default=CallStatus.COMPLETED.value)
    outcome = Column(String(50))
    
    # References to the voice platform
    transcript = Column(Text)
    recording_url = Column(String(500))
    
    # Links to resulting records
    reservation_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("reservations.id", use_alter=True, name="fk_calls_reservation_id"),
    )
    callback_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("callbacks.id", use_alter=True, name="fk_calls_callback_id"),
    )
    
    # Safety tracking
    safety_trigger_activated = Column(Boolean, nullable=False, default=False)
    safety_trigger_type = Column(String(50))  # allergy, large_party, legal, customer_request
    
    tool_calls_count = Column(Integer)
    avg_tool_latency_ms = Column(Integer)
    
    metadata_json = Column(JSON, default=dict)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    
    @hybrid_property
    def duration_seconds(self):
        if self.ended_at is None or self.started_at is None:
            return None
        return int((self.ended_at - self.started_at).total_seconds())
