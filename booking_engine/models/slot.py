"""Time-slot ledger model"""

import enum
import uuid
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    case,
)
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import relationship

from booking_engine.database import Base, utcnow


class SeatingType(str, enum.Enum):
    """Seating areas"""
    INDOOR = "indoor"
    OUTDOOR = "outdoor"
    BAR = "bar"
    PRIVATE = "private"


class TimeSlot(Base):
    """Bookable (start time, seating area) unit with finite capacity"""
    __tablename__ = "time_slots"
    __table_args__ = (
        UniqueConstraint("restaurant_id", "start_at", "seating_type", name="unique_slot"),
        CheckConstraint("total_capacity > 0", name="valid_capacity"),
        CheckConstraint("booked_capacity >= 0", name="valid_booked"),
        Index("idx_slots_restaurant_start", "restaurant_id", "start_at"),
    )
    
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    restaurant_id = Column(Uuid(as_uuid=True), ForeignKey("restaurants.id"), nullable=False)
    
    # Slot timing (naive UTC)
    start_at = Column(DateTime, nullable=False)
    duration_minutes = Column(Integer, nullable=False, default=90)
    
    seating_type = Column(String(20), nullable=False, default=SeatingType.INDOOR.value)
    
    # Capacity counters; available capacity is always derived
    total_capacity = Column(Integer, nullable=False)
    booked_capacity = Column(Integer, nullable=False, default=0)
    
    # Manual blocking for special events or maintenance
    is_blocked = Column(Boolean, nullable=False, default=False)
    block_reason = Column(Text)
    blocked_by = Column(String(255))
    blocked_at = Column(DateTime)
    
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    
    # Relationships
    restaurant = relationship("Restaurant")
    
    @hybrid_property
    def available_capacity(self) -> int:
        return max(0, self.total_capacity - (self.booked_capacity or 0))
    
    @available_capacity.inplace.expression
    @classmethod
    def _available_capacity_expression(cls):
        remaining = cls.total_capacity - cls.booked_capacity
        return case((remaining < 0, 0), else_=remaining)
