"""Tests for call logging and the daily aggregate"""

from datetime import timedelta
from uuid import uuid4

import pytest

from booking_engine.database import utcnow
from booking_engine.errors import ValidationFailed
from booking_engine.models.call import Call
from booking_engine.models.restaurant import Restaurant
from booking_engine.schemas.call import LogCallOutcomeRequest
from booking_engine.services.analytics import bump_daily, get_daily_analytics
from booking_engine.services.calls import log_call_outcome


@pytest.mark.asyncio
async def test_call_logged_once_and_merged(test_db, test_restaurant, policy):
    """Repeat reports update one record and count the call once"""
    restaurant_id = test_restaurant.id
    today = policy.local_date(utcnow())

    first = await log_call_outcome(
        test_db,
        LogCallOutcomeRequest(
            restaurant_id=restaurant_id,
            external_call_id="CA-0001",
            caller_phone="+15551234567",
            status="completed",
            outcome="booking_made",
            safety_trigger=True,
            safety_type="allergy",
            metadata={"agent_version": "1"},
        ),
    )
    second = await log_call_outcome(
        test_db,
        LogCallOutcomeRequest(
            restaurant_id=restaurant_id,
            external_call_id="CA-0001",
            transcript="Caller booked a table for four.",
            safety_trigger=False,
            tool_calls_count=3,
            metadata={"language": "en"},
        ),
    )

    assert first.status == "created"
    assert first.is_new is True
    assert second.status == "updated"
    assert second.is_new is False
    assert second.call_id == first.call_id

    call = await test_db.get(Call, first.call_id)
    await test_db.refresh(call)
    assert call.transcript == "Caller booked a table for four."
    assert call.outcome == "booking_made"
    assert call.safety_trigger_activated is True
    assert call.tool_calls_count == 3
    assert call.metadata_json == {"agent_version": "1", "language": "en"}

    analytics = await get_daily_analytics(test_db, restaurant_id, today)
    totals = analytics.summary.totals
    assert totals["total_calls"] == 1
    assert totals["completed_calls"] == 1
    assert totals["safety_triggers"] == 1
    assert analytics.daily[0].outcomes == {"booking_made": 1}
    assert sum(analytics.daily[0].calls_by_hour.values()) == 1


@pytest.mark.asyncio
async def test_call_status_normalized(test_db, test_restaurant):
    restaurant_id = test_restaurant.id

    result = await log_call_outcome(
        test_db,
        LogCallOutcomeRequest(
            restaurant_id=restaurant_id,
            external_call_id="CA-0002",
            status="Something Odd",
            outcome="not-a-known-outcome",
        ),
    )
    transferred = await log_call_outcome(
        test_db,
        LogCallOutcomeRequest(restaurant_id=restaurant_id, external_call_id="CA-0002", status="TRANSFERRED"),
    )

    assert result.status == "created"
    assert transferred.status == "updated"
    call = await test_db.get(Call, result.call_id)
    assert call.status == "transferred"
    assert call.outcome is None


@pytest.mark.asyncio
async def test_call_requires_external_id(test_db, test_restaurant):
    result = await log_call_outcome(
        test_db,
        LogCallOutcomeRequest(restaurant_id=test_restaurant.id, external_call_id="  "),
    )

    assert result.status == "error"
    assert result.error_code == "MISSING_CALL_ID"


@pytest.mark.asyncio
async def test_call_id_owned_by_one_restaurant(test_db, test_restaurant):
    restaurant_id = test_restaurant.id
    other = Restaurant(id=uuid4(), name="Other Restaurant", timezone="America/Chicago")
    test_db.add(other)
    await test_db.commit()
    other_id = other.id

    await log_call_outcome(
        test_db,
        LogCallOutcomeRequest(restaurant_id=restaurant_id, external_call_id="CA-0003"),
    )
    clash = await log_call_outcome(
        test_db,
        LogCallOutcomeRequest(restaurant_id=other_id, external_call_id="CA-0003", outcome="faq_answered"),
    )

    assert clash.status == "error"
    assert clash.error_code == "CALL_RESTAURANT_MISMATCH"


@pytest.mark.asyncio
async def test_daily_analytics_rates(test_db, test_restaurant, policy):
    restaurant_id = test_restaurant.id
    today = policy.local_date(utcnow())
    await bump_daily(test_db, restaurant_id, today, total_calls=4, transferred_calls=1, bookings_made=2)
    await bump_daily(test_db, restaurant_id, today, callbacks_created=2, callbacks_resolved=1)
    await bump_daily(test_db, restaurant_id, today - timedelta(days=1), total_calls=1)
    await test_db.commit()

    analytics = await get_daily_analytics(test_db, restaurant_id, today - timedelta(days=1), today)

    assert analytics.summary.days == 2
    assert [day.date for day in analytics.daily] == [today - timedelta(days=1), today]
    assert analytics.daily[1].completion_rate == 50.0
    assert analytics.summary.totals["total_calls"] == 5
    assert analytics.summary.rates["transfer_rate"] == 20.0
    assert analytics.summary.rates["callback_resolution_rate"] == 50.0


@pytest.mark.asyncio
async def test_daily_analytics_range_checks(test_db, test_restaurant, policy):
    today = policy.local_date(utcnow())

    with pytest.raises(ValidationFailed) as backwards:
        await get_daily_analytics(test_db, test_restaurant.id, today, today - timedelta(days=1))
    assert backwards.value.code == "INVALID_DATE_RANGE"

    clamped = await get_daily_analytics(test_db, test_restaurant.id, today - timedelta(days=365), today)
    assert clamped.start_date == today - timedelta(days=90)


@pytest.mark.asyncio
async def test_unknown_counter_rejected(test_db, test_restaurant):
    with pytest.raises(ValueError):
        await bump_daily(test_db, test_restaurant.id, utcnow().date(), walk_ins=1)
