"""Customer directory model"""

import uuid
from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid

from booking_engine.database import Base, utcnow


class Customer(Base):
    """Caller profile, one per restaurant and phone fingerprint"""
    __tablename__ = "customers"
    __table_args__ = (
        UniqueConstraint("restaurant_id", "phone_fingerprint", name="unique_customer_phone"),
    )
    
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    restaurant_id = Column(Uuid(as_uuid=True), ForeignKey("restaurants.id"), nullable=False)
    
    # Contact; lookups only ever go through the fingerprint
    phone = Column(String(20), nullable=False)
    phone_fingerprint = Column(String(64), nullable=False)
    name = Column(String(255))
    email = Column(String(255))
    
    # Consent to contact
    sms_consent = Column(Boolean, nullable=False, default=False)
    sms_consent_at = Column(DateTime)
    sms_consent_source = Column(String(50))  # voice_ai, web, in_person, import
    
    # Visit statistics
    total_reservations = Column(Integer, nullable=False, default=0)
    completed_visits = Column(Integer, nullable=False, default=0)
    no_show_count = Column(Integer, nullable=False, default=0)
    last_visit_date = Column(Date)
    
    is_vip = Column(Boolean, nullable=False, default=False)
    notes = Column(Text)
    
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
