"""Restaurant lookup shared by the engine operations"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from booking_engine.errors import NotFoundError
from booking_engine.models.restaurant import Restaurant
from booking_engine.services.policy import BookingPolicy


async def load_restaurant(db: AsyncSession, restaurant_id: UUID, active_only: bool = True):
    """Return (restaurant, policy) or raise RESTAURANT_NOT_FOUND"""
    query = (
        select(Restaurant)
        .where(Restaurant.id == restaurant_id)
        .options(selectinload(Restaurant.settings))
    )
    if active_only:
        query = query.where(Restaurant.is_active.is_(True))
    
    result = await db.execute(query)
    restaurant = result.scalar_one_or_none()
    
    if restaurant is None:
        raise NotFoundError("RESTAURANT_NOT_FOUND", "Restaurant not found or inactive.")
    
    return restaurant, BookingPolicy.for_restaurant(restaurant)
