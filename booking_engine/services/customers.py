"""Customer directory keyed by phone fingerprint"""

import uuid
from typing import Optional
from uuid import UUID

from sqlalchemy import case, func
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.database import utcnow
from booking_engine.models.customer import Customer
from booking_engine.services.phone import phone_fingerprint
from booking_engine.services.upsert import upsert_insert

CONSENT_SOURCE = "voice_ai"


async def upsert_customer(
    db: AsyncSession,
    restaurant_id: UUID,
    phone: str,
    name: Optional[str] = None,
    email: Optional[str] = None,
    sms_consent: bool = False,
) -> UUID:
    """Create the customer on first sighting, otherwise count another reservation

    One statement against the (restaurant, fingerprint) unique constraint, so
    two first-time bookings from the same caller cannot create two rows. Name
    and email are only overwritten by non-empty values; consent, once given,
    is kept.
    """
    now = utcnow()
    stmt = upsert_insert(db, Customer).values(
        id=uuid.uuid4(),
        restaurant_id=restaurant_id,
        phone=phone,
        phone_fingerprint=phone_fingerprint(phone),
        name=name or None,
        email=email or None,
        sms_consent=sms_consent,
        sms_consent_at=now if sms_consent else None,
        sms_consent_source=CONSENT_SOURCE if sms_consent else None,
        total_reservations=1,
        completed_visits=0,
        no_show_count=0,
        is_vip=False,
        created_at=now,
        updated_at=now,
    )
    incoming = stmt.excluded
    newly_consented = (incoming.sms_consent.is_(True)) & (Customer.sms_consent.is_(False))
    stmt = stmt.on_conflict_do_update(
        index_elements=["restaurant_id", "phone_fingerprint"],
        set_={
            "name": func.coalesce(incoming.name, Customer.name),
            "email": func.coalesce(incoming.email, Customer.email),
            "sms_consent": case((newly_consented, True), else_=Customer.sms_consent),
            "sms_consent_at": case((newly_consented, incoming.sms_consent_at), else_=Customer.sms_consent_at),
            "sms_consent_source": case(
                (newly_consented, incoming.sms_consent_source),
                else_=Customer.sms_consent_source,
            ),
            "total_reservations": Customer.total_reservations + 1,
            "updated_at": now,
        },
    ).returning(Customer.id)
    
    result = await db.execute(stmt)
    return result.scalar_one()
