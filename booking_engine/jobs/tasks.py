"""Background job tasks"""

from typing import Optional
from uuid import UUID
import asyncio
import structlog

from booking_engine.jobs.celery_app import celery_app
from booking_engine.config import settings

logger = structlog.get_logger()


def run_async(coro):
    """Helper to run async functions in sync context"""
    return asyncio.run(coro)


async def extend_ledgers(session_factory, days: int, restaurant_id: Optional[str] = None) -> dict:
    """Generate missing slots for every active restaurant (or just one)

    Each restaurant commits separately so one bad configuration does not
    hold back the others.
    """
    from sqlalchemy import select
    from booking_engine.models.restaurant import Restaurant
    from booking_engine.services.ledger import generate_slots
    from booking_engine.services.restaurants import load_restaurant
    
    async with session_factory() as db:
        query = select(Restaurant.id).where(Restaurant.is_active.is_(True))
        if restaurant_id:
            query = query.where(Restaurant.id == UUID(str(restaurant_id)))
        result = await db.execute(query)
        restaurant_ids = list(result.scalars().all())
    
    created = {}
    for rid in restaurant_ids:
        async with session_factory() as db:
            try:
                restaurant, policy = await load_restaurant(db, rid)
                created[str(rid)] = await generate_slots(db, restaurant, policy, days)
                await db.commit()
            except Exception as e:
                await db.rollback()
                logger.error(
                    "Failed to generate slots",
                    restaurant_id=str(rid),
                    error=str(e),
                )
    
    return created


@celery_app.task(name="generate_availability_slots")
def generate_availability_slots(restaurant_id: Optional[str] = None, days: Optional[int] = None):
    """Extend every active restaurant's ledger to the booking horizon"""
    days = days or settings.slot_generation_days
    logger.info("Generating availability slots", days=days, restaurant_id=restaurant_id)
    
    async def _generate():
        from booking_engine.database import SessionLocal
        
        created = await extend_ledgers(SessionLocal, days, restaurant_id)
        logger.info(
            "Availability slots generated",
            restaurants=len(created),
            created=sum(created.values()),
        )
        return created
    
    return run_async(_generate())
