"""Daily aggregate models"""

import uuid
from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, UniqueConstraint, Uuid

from booking_engine.database import Base, utcnow


class DailyAggregate(Base):
    """Per-restaurant, per-day counters; only ever incremented"""
    __tablename__ = "analytics_daily"
    __table_args__ = (
        UniqueConstraint("restaurant_id", "date", name="unique_daily_analytics"),
    )
    
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    restaurant_id = Column(Uuid(as_uuid=True), ForeignKey("restaurants.id"), nullable=False)
    date = Column(Date, nullable=False)
    
    # Calls
    total_calls = Column(Integer, nullable=False, default=0)
    completed_calls = Column(Integer, nullable=False, default=0)
    transferred_calls = Column(Integer, nullable=False, default=0)
    abandoned_calls = Column(Integer, nullable=False, default=0)
    error_calls = Column(Integer, nullable=False, default=0)
    safety_triggers = Column(Integer, nullable=False, default=0)
    
    # Bookings
    bookings_made = Column(Integer, nullable=False, default=0)
    total_covers = Column(Integer, nullable=False, default=0)
    
    # Callbacks
    callbacks_created = Column(Integer, nullable=False, default=0)
    callbacks_resolved = Column(Integer, nullable=False, default=0)
    
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class DailyAggregateBucket(Base):
    """Keyed counters for a day: dimension "hour" (0-23) or "outcome" """
    __tablename__ = "analytics_daily_buckets"
    __table_args__ = (
        UniqueConstraint("restaurant_id", "date", "dimension", "key", name="unique_daily_bucket"),
    )
    
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    restaurant_id = Column(Uuid(as_uuid=True), ForeignKey("restaurants.id"), nullable=False)
    date = Column(Date, nullable=False)
    dimension = Column(String(20), nullable=False)
    key = Column(String(50), nullable=False)
    count = Column(Integer, nullable=False, default=0)
