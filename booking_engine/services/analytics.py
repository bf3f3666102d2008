"""Daily aggregate counters

Counters are only ever incremented, with a single INSERT ... ON CONFLICT DO
UPDATE per bump so concurrent writers never lose updates.
"""

import uuid
from datetime import date, timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from booking_engine.database import utcnow
from booking_engine.errors import ValidationFailed
from booking_engine.models.analytics import DailyAggregate, DailyAggregateBucket
from booking_engine.models.call import Call, CallStatus
from booking_engine.schemas.analytics import AnalyticsSummary, DailyAnalytics, DailyAnalyticsResponse
from booking_engine.services.policy import BookingPolicy
from booking_engine.services.upsert import upsert_insert

logger = structlog.get_logger()

MAX_RANGE_DAYS = 90

COUNTER_COLUMNS = (
    "total_calls",
    "completed_calls",
    "transferred_calls",
    "abandoned_calls",
    "error_calls",
    "safety_triggers",
    "bookings_made",
    "total_covers",
    "callbacks_created",
    "callbacks_resolved",
)

STATUS_COUNTERS = {
    CallStatus.COMPLETED.value: "completed_calls",
    CallStatus.TRANSFERRED.value: "transferred_calls",
    CallStatus.ABANDONED.value: "abandoned_calls",
    CallStatus.ERROR.value: "error_calls",
}


async def bump_daily(db: AsyncSession, restaurant_id: UUID, day: date, **increments):
    """Add increments to the (restaurant, day) row, creating it if needed"""
    unknown = set(increments) - set(COUNTER_COLUMNS)
    if unknown:
        raise ValueError(f"Unknown daily counters: {sorted(unknown)}")
    
    stmt = upsert_insert(db, DailyAggregate).values(
        id=uuid.uuid4(),
        restaurant_id=restaurant_id,
        date=day,
        **increments,
    )
    updates = {
        name: getattr(DailyAggregate, name) + stmt.excluded[name]
        for name in increments
    }
    updates["updated_at"] = utcnow()
    stmt = stmt.on_conflict_do_update(
        index_elements=["restaurant_id", "date"],
        set_=updates,
    )
    await db.execute(stmt)


async def bump_bucket(db: AsyncSession, restaurant_id: UUID, day: date, dimension: str, key: str):
    stmt = upsert_insert(db, DailyAggregateBucket).values(
        id=uuid.uuid4(),
        restaurant_id=restaurant_id,
        date=day,
        dimension=dimension,
        key=key,
        count=1,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["restaurant_id", "date", "dimension", "key"],
        set_={"count": DailyAggregateBucket.count + 1},
    )
    await db.execute(stmt)


async def record_call(db: AsyncSession, policy: BookingPolicy, call: Call):
    """Count a newly logged call against its local calendar day"""
    local_start = policy.to_local(call.started_at)
    day = local_start.date()
    
    increments = {"total_calls": 1}
    counter = STATUS_COUNTERS.get(call.status)
    if counter:
        increments[counter] = 1
    if call.safety_trigger_activated:
        increments["safety_triggers"] = 1
    
    await bump_daily(db, call.restaurant_id, day, **increments)
    await bump_bucket(db, call.restaurant_id, day, "hour", str(local_start.hour))
    if call.outcome:
        await bump_bucket(db, call.restaurant_id, day, "outcome", call.outcome)


def _rate(part: int, whole: int) -> float:
    if not whole:
        return 0.0
    return round(part * 100.0 / whole, 1)


async def get_daily_analytics(
    db: AsyncSession,
    restaurant_id: UUID,
    start_date: date,
    end_date: Optional[date] = None,
) -> DailyAnalyticsResponse:
    """Per-day counters and period totals; ranges longer than 90 days keep the latest 90"""
    end_date = end_date or start_date
    if start_date > end_date:
        raise ValidationFailed(
            "INVALID_DATE_RANGE",
            "Start date must be before or equal to end date.",
        )
    if (end_date - start_date).days > MAX_RANGE_DAYS:
        start_date = end_date - timedelta(days=MAX_RANGE_DAYS)
    
    result = await db.execute(
        select(DailyAggregate)
        .where(
            DailyAggregate.restaurant_id == restaurant_id,
            DailyAggregate.date.between(start_date, end_date),
        )
        .order_by(DailyAggregate.date)
        .execution_options(populate_existing=True)
    )
    rows = result.scalars().all()
    
    bucket_result = await db.execute(
        select(DailyAggregateBucket).where(
            DailyAggregateBucket.restaurant_id == restaurant_id,
            DailyAggregateBucket.date.between(start_date, end_date),
        ).execution_options(populate_existing=True)
    )
    buckets = {}
    for bucket in bucket_result.scalars().all():
        per_day = buckets.setdefault(bucket.date, {"hour": {}, "outcome": {}})
        per_day.setdefault(bucket.dimension, {})[bucket.key] = bucket.count
    
    daily = []
    totals = {name: 0 for name in COUNTER_COLUMNS}
    for row in rows:
        day_buckets = buckets.get(row.date, {})
        for name in COUNTER_COLUMNS:
            totals[name] += getattr(row, name) or 0
        daily.append(
            DailyAnalytics(
                date=row.date,
                **{name: getattr(row, name) or 0 for name in COUNTER_COLUMNS},
                completion_rate=_rate(row.bookings_made, row.total_calls),
                calls_by_hour=day_buckets.get("hour", {}),
                outcomes=day_buckets.get("outcome", {}),
            )
        )
    
    summary = AnalyticsSummary(
        days=(end_date - start_date).days + 1,
        totals=totals,
        rates={
            "completion_rate": _rate(totals["bookings_made"], totals["total_calls"]),
            "transfer_rate": _rate(totals["transferred_calls"], totals["total_calls"]),
            "abandonment_rate": _rate(totals["abandoned_calls"], totals["total_calls"]),
            "callback_resolution_rate": _rate(
                totals["callbacks_resolved"], totals["callbacks_created"]
            ),
        },
    )
    
    return DailyAnalyticsResponse(
        restaurant_id=restaurant_id,
        start_date=start_date,
        end_date=end_date,
        summary=summary,
        daily=daily,
    )
