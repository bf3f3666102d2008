"""Daily analytics API endpoints"""

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.database import get_db, utcnow
from booking_engine.errors import EngineError
from booking_engine.models.user import User
from booking_engine.schemas.analytics import DailyAnalyticsResponse
from booking_engine.services.analytics import get_daily_analytics
from booking_engine.services.restaurants import load_restaurant
from booking_engine.api.auth import restaurant_staff
from booking_engine.api.errors import http_error

router = APIRouter()


@router.get("/daily", response_model=DailyAnalyticsResponse)
async def daily_analytics(
    restaurant_id: UUID,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    current_user: User = Depends(restaurant_staff),
    db: AsyncSession = Depends(get_db),
):
    """Per-day counters and totals; defaults to the restaurant's current day"""
    try:
        _, policy = await load_restaurant(db, restaurant_id, active_only=False)
        today = policy.local_date(utcnow())
        return await get_daily_analytics(
            db,
            restaurant_id,
            start_date or end_date or today,
            end_date or today,
        )
    except EngineError as exc:
        raise http_error(exc)
