"""Tests for tool execution endpoints"""

import asyncio
from uuid import uuid4

import pytest
from httpx import AsyncClient

from booking_engine.config import settings

from conftest import local_at


@pytest.mark.asyncio
async def test_check_availability(client: AsyncClient, test_restaurant, make_slot, friday):
    """Test checking an open slot"""
    await make_slot(local_at(friday, 19, 0), total=6)

    response = await client.post(
        "/tools/check_availability",
        json={
            "restaurant_id": str(test_restaurant.id),
            "date_time": local_at(friday, 19, 0).isoformat(),
            "party_size": 4,
            "seating_preference": "indoor",
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "available"
    assert data["requested_slot"]["seating_type"] == "indoor"


@pytest.mark.asyncio
async def test_check_availability_errors_are_results(client: AsyncClient, test_restaurant, friday):
    """Business failures still answer 200 with an error code"""
    response = await client.post(
        "/tools/check_availability",
        json={
            "restaurant_id": str(uuid4()),
            "date_time": local_at(friday, 19, 0).isoformat(),
            "party_size": 2,
        },
    )

    assert response.status_code == 200
    assert response.json()["status"] == "error"
    assert response.json()["error_code"] == "RESTAURANT_NOT_FOUND"


@pytest.mark.asyncio
async def test_create_booking_then_conflict(client: AsyncClient, test_restaurant, make_slot, friday):
    """Test booking a slot twice"""
    await make_slot(local_at(friday, 19, 0), total=4)
    payload = {
        "restaurant_id": str(test_restaurant.id),
        "customer": {"name": "John Doe", "phone": "555-123-4567", "sms_consent": True},
        "booking": {
            "date_time": local_at(friday, 19, 0).isoformat(),
            "party_size": 4,
            "seating_type": "indoor",
            "special_requests": "Birthday",
        },
    }

    first = await client.post("/tools/create_booking", json=payload)
    second = await client.post("/tools/create_booking", json=payload)

    assert first.status_code == 200
    assert first.json()["status"] == "booked"
    assert len(first.json()["confirmation_code"]) == 6
    assert second.status_code == 200
    assert second.json()["status"] == "conflict"
    assert second.json()["error_code"] == "SLOT_UNAVAILABLE"


@pytest.mark.asyncio
async def test_create_booking_validation(client: AsyncClient, test_restaurant, friday):
    response = await client.post(
        "/tools/create_booking",
        json={
            "restaurant_id": str(test_restaurant.id),
            "customer": {"name": "John Doe", "phone": "12ab"},
            "booking": {"date_time": local_at(friday, 19, 0).isoformat(), "party_size": 2},
        },
    )

    assert response.status_code == 200
    assert response.json()["error_code"] == "INVALID_PHONE"


@pytest.mark.asyncio
async def test_log_call_outcome(client: AsyncClient, test_restaurant):
    """Test logging the same call twice"""
    payload = {
        "restaurant_id": str(test_restaurant.id),
        "external_call_id": "CA-tools-1",
        "caller_phone": "+15551234567",
        "status": "completed",
        "outcome": "faq_answered",
    }

    created = await client.post("/tools/log_call_outcome", json=payload)
    updated = await client.post(
        "/tools/log_call_outcome",
        json={**payload, "transcript": "Asked about parking."},
    )

    assert created.json()["status"] == "created"
    assert created.json()["is_new"] is True
    assert updated.json()["status"] == "updated"
    assert updated.json()["call_id"] == created.json()["call_id"]


@pytest.mark.asyncio
async def test_create_callback(client: AsyncClient, test_restaurant, friday):
    """Test queueing an urgent callback"""
    response = await client.post(
        "/tools/create_callback",
        json={
            "restaurant_id": str(test_restaurant.id),
            "customer_phone": "+15551234567",
            "customer_name": "John Doe",
            "requested_datetime": local_at(friday, 19, 0).isoformat(),
            "party_size": 4,
            "failure_reason": "ALLERGY_SAFETY: shellfish anaphylaxis",
            "error_details": {"transcript_excerpt": "my son carries an epipen"},
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "created"
    assert data["priority"] == 1
    assert data["urgent"] is True


@pytest.mark.asyncio
async def test_store_timeout_becomes_internal_error(client: AsyncClient, test_restaurant, friday, monkeypatch):
    """A store call that outlives the timeout answers INTERNAL_ERROR"""
    async def slow_check(db, request):
        await asyncio.sleep(1)

    monkeypatch.setattr(settings, "store_timeout_seconds", 0.05)
    monkeypatch.setattr("booking_engine.tools.router.run_check_availability", slow_check)

    response = await client.post(
        "/tools/check_availability",
        json={
            "restaurant_id": str(test_restaurant.id),
            "date_time": local_at(friday, 19, 0).isoformat(),
            "party_size": 2,
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "error"
    assert data["error_code"] == "INTERNAL_ERROR"
    assert "call you back" in data["message"]


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
