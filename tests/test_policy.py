"""Tests for booking policy, grid rounding and phone handling"""

from datetime import date, datetime

import pytest

from booking_engine.errors import ValidationFailed
from booking_engine.services.callbacks import cause_code, priority_for
from booking_engine.services.confirmation import CODE_ALPHABET, generate_confirmation_code
from booking_engine.services.phone import mask_phone, normalize_phone, phone_fingerprint
from booking_engine.services.policy import BookingPolicy, round_to_grid


@pytest.mark.parametrize(
    "minute, expected_hour, expected_minute",
    [
        (0, 19, 0),
        (14, 19, 0),
        (15, 19, 30),
        (44, 19, 30),
        (45, 20, 0),
    ],
)
def test_round_to_grid(minute, expected_hour, expected_minute):
    rounded = round_to_grid(datetime(2030, 3, 1, 19, minute))
    assert (rounded.hour, rounded.minute) == (expected_hour, expected_minute)


def test_seating_window_ends_before_close():
    policy = BookingPolicy(hours={"Friday": {"open": "17:00", "close": "23:00"}})
    friday = date(2030, 3, 1)

    first, last = policy.seating_window(friday)

    assert first == datetime(2030, 3, 1, 17, 0)
    assert last == datetime(2030, 3, 1, 22, 0)


def test_seating_window_past_midnight():
    policy = BookingPolicy(
        hours={"saturday": {"open": "18:00", "close": "01:00"}},
        last_seating_offset_minutes=30,
    )

    first, last = policy.seating_window(date(2030, 3, 2))

    assert first == datetime(2030, 3, 2, 18, 0)
    assert last == datetime(2030, 3, 3, 0, 30)


def test_closed_day_has_no_window():
    policy = BookingPolicy(hours={"monday": None})
    assert policy.seating_window(date(2030, 3, 4)) is None


def test_naive_input_is_restaurant_local():
    policy = BookingPolicy(timezone="America/New_York")

    utc = policy.coerce_utc(datetime(2030, 7, 5, 19, 0))

    assert utc == datetime(2030, 7, 5, 23, 0)
    assert policy.to_local(utc) == datetime(2030, 7, 5, 19, 0)


def test_unknown_timezone_rejected():
    with pytest.raises(Exception):
        BookingPolicy(timezone="Mars/Olympus_Mons")


def test_normalize_phone():
    assert normalize_phone("(555) 123-4567") == "+15551234567"
    assert normalize_phone("+44 20 7946 0958") == "+442079460958"


def test_normalize_phone_errors():
    with pytest.raises(ValidationFailed) as missing:
        normalize_phone("   ")
    assert missing.value.code == "MISSING_PHONE"

    with pytest.raises(ValidationFailed) as invalid:
        normalize_phone("call me maybe")
    assert invalid.value.code == "INVALID_PHONE"


def test_phone_fingerprint_ignores_formatting():
    assert phone_fingerprint("+15551234567") == phone_fingerprint(normalize_phone("555.123.4567"))
    assert phone_fingerprint("+15551234567") != phone_fingerprint("+15551234568")


def test_mask_phone():
    assert mask_phone("+15551234567") == "+1***-***-4567"
    assert mask_phone(None) == "***-***-****"


def test_confirmation_code_alphabet():
    for _ in range(50):
        code = generate_confirmation_code()
        assert len(code) == 6
        assert set(code) <= set(CODE_ALPHABET)
        assert not set(code) & set("01OIL")


def test_callback_priority_from_cause():
    assert cause_code("allergy safety: peanuts") == "ALLERGY_SAFETY"
    assert priority_for("ALLERGY_SAFETY: severe peanut allergy") == 1
    assert priority_for("LARGE_PARTY") == 2
    assert priority_for("SYSTEM_TIMEOUT: store did not answer") == 3
    assert priority_for("SLOT_UNAVAILABLE") == 4
    assert priority_for("GENERAL_INQUIRY") == 5
