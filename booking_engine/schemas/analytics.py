"""Daily analytics schemas"""

from datetime import date
from typing import Dict, List
from uuid import UUID
from pydantic import BaseModel


class DailyAnalytics(BaseModel):
    """One day of aggregated counters"""
    date: date
    total_calls: int
    completed_calls: int
    transferred_calls: int
    abandoned_calls: int
    error_calls: int
    safety_triggers: int
    bookings_made: int
    total_covers: int
    callbacks_created: int
    callbacks_resolved: int
    completion_rate: float
    calls_by_hour: Dict[str, int] = {}
    outcomes: Dict[str, int] = {}


class AnalyticsSummary(BaseModel):
    days: int
    totals: Dict[str, int]
    rates: Dict[str, float]


class DailyAnalyticsResponse(BaseModel):
    restaurant_id: UUID
    start_date: date
    end_date: date
    summary: AnalyticsSummary
    daily: List[DailyAnalytics]
