"""Restaurant (tenant) models"""

import uuid
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import relationship

from booking_engine.database import Base, utcnow

DEFAULT_HOURS = {
    "monday": None,
    "tuesday": {"open": "17:00", "close": "22:00"},
    "wednesday": {"open": "17:00", "close": "22:00"},
    "thursday": {"open": "17:00", "close": "22:00"},
    "friday": {"open": "17:00", "close": "23:00"},
    "saturday": {"open": "17:00", "close": "23:00"},
    "sunday": {"open": "16:00", "close": "21:00"},
}


class Restaurant(Base):
    """Restaurant tenant"""
    __tablename__ = "restaurants"
    
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    phone = Column(String(20))
    timezone = Column(String(50), nullable=False, default="America/New_York")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    
    # Relationships
    settings = relationship("RestaurantSettings", back_populates="restaurant", uselist=False)
    blocked_dates = relationship("BlockedDate", back_populates="restaurant")


class RestaurantSettings(Base):
    """Booking rules for a restaurant"""
    __tablename__ = "restaurant_settings"
    
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    restaurant_id = Column(Uuid(as_uuid=True), ForeignKey("restaurants.id"), unique=True, nullable=False)
    
    # Operating hours (JSON: {"monday": {"open": "17:00", "close": "22:00"}, "tuesday": null, ...})
    hours_json = Column(JSON, default=lambda: dict(DEFAULT_HOURS))
    
    # Reservation rules
    max_party_size = Column(Integer, nullable=False, default=20)
    large_party_threshold = Column(Integer, nullable=False, default=8)
    last_seating_offset_minutes = Column(Integer, nullable=False, default=60)
    max_future_booking_days = Column(Integer, nullable=False, default=30)
    allow_same_day_booking = Column(Boolean, nullable=False, default=True)
    
    # Ledger generation
    slot_duration_minutes = Column(Integer, nullable=False, default=90)
    default_slot_capacity = Column(Integer, nullable=False, default=20)
    seating_areas = Column(JSON, default=lambda: ["indoor"])
    
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    
    # Relationships
    restaurant = relationship("Restaurant", back_populates="settings")


class BlockedDate(Base):
    """Restaurant-wide closures and private events"""
    __tablename__ = "blocked_dates"
    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="valid_date_range"),
    )
    
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    restaurant_id = Column(Uuid(as_uuid=True), ForeignKey("restaurants.id"), nullable=False, index=True)
    
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    block_type = Column(String(50), nullable=False, default="closed")  # closed, private_event
    
    reason = Column(Text, nullable=False)
    public_message = Column(Text)  # Read to callers trying to book this date
    
    created_by = Column(String(255))
    created_at = Column(DateTime, default=utcnow)
    
    # Relationships
    restaurant = relationship("Restaurant", back_populates="blocked_dates")
