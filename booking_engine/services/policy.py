"""Typed booking rules and restaurant-local time handling

All timestamps are stored as naive UTC. Everything that depends on the
restaurant's calendar (weekday, opening hours, grid rounding, aggregate
dates) is computed in the restaurant's own timezone.
"""

import math
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, List, Optional
from zoneinfo import ZoneInfo

from pydantic import BaseModel, Field, field_validator

from booking_engine.models.restaurant import DEFAULT_HOURS, Restaurant

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]
SLOT_GRID_MINUTES = 30


class DayHours(BaseModel):
    """Opening window for one weekday"""
    open: time
    close: time

    @property
    def open_minutes(self) -> int:
        return self.open.hour * 60 + self.open.minute

    @property
    def close_minutes(self) -> int:
        # A close at or before the open time means closing after midnight
        minutes = self.close.hour * 60 + self.close.minute
        if minutes <= self.open_minutes:
            minutes += 24 * 60
        return minutes


class BookingPolicy(BaseModel):
    """Validated per-restaurant booking configuration"""
    timezone: str = "America/New_York"
    hours: Dict[str, Optional[DayHours]] = Field(default_factory=dict)
    max_party_size: int = Field(default=20, ge=1, le=100)
    large_party_threshold: int = Field(default=8, ge=1)
    last_seating_offset_minutes: int = Field(default=60, ge=0)
    max_future_booking_days: int = Field(default=30, ge=1)
    allow_same_day_booking: bool = True
    slot_duration_minutes: int = Field(default=90, ge=15)
    default_slot_capacity: int = Field(default=20, ge=1)
    seating_areas: List[str] = Field(default_factory=lambda: ["indoor"])

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        ZoneInfo(value)
        return value

    @field_validator("hours", mode="before")
    @classmethod
    def _lowercase_days(cls, value):
        return {str(day).lower(): hours for day, hours in (value or {}).items()}

    @classmethod
    def for_restaurant(cls, restaurant: Restaurant) -> "BookingPolicy":
        """Build the policy from a restaurant row and its settings row"""
        row = restaurant.settings
        if row is None:
            return cls(timezone=restaurant.timezone, hours=DEFAULT_HOURS)
        return cls(
            timezone=restaurant.timezone,
            hours=row.hours_json or {},
            max_party_size=row.max_party_size,
            large_party_threshold=row.large_party_threshold,
            last_seating_offset_minutes=row.last_seating_offset_minutes,
            max_future_booking_days=row.max_future_booking_days,
            allow_same_day_booking=row.allow_same_day_booking,
            slot_duration_minutes=row.slot_duration_minutes,
            default_slot_capacity=row.default_slot_capacity,
            seating_areas=row.seating_areas or ["indoor"],
        )

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def hours_for(self, day: date) -> Optional[DayHours]:
        return self.hours.get(WEEKDAYS[day.weekday()])

    def seating_window(self, day: date) -> Optional[tuple]:
        """(first, last) local seating times for a day, or None when closed"""
        hours = self.hours_for(day)
        if hours is None:
            return None
        start = datetime.combine(day, time()) + timedelta(minutes=hours.open_minutes)
        end = datetime.combine(day, time()) + timedelta(
            minutes=hours.close_minutes - self.last_seating_offset_minutes
        )
        return start, end

    def service_day(self, local: datetime) -> date:
        """Day whose opening hours cover a local time

        Times after midnight belong to the previous day while its hours run
        past midnight.
        """
        previous = local.date() - timedelta(days=1)
        hours = self.hours_for(previous)
        if hours is not None and local < datetime.combine(previous, time()) + timedelta(minutes=hours.close_minutes):
            return previous
        return local.date()

    def rejects_same_day(self, at: datetime, now: datetime) -> bool:
        """True when same-day booking is off and a UTC time falls on today's local date"""
        return not self.allow_same_day_booking and self.local_date(at) == self.local_date(now)

    def to_local(self, value: datetime) -> datetime:
        """Naive local wall-clock time for a UTC (naive) or aware datetime"""
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(self.zone).replace(tzinfo=None)

    def to_utc(self, local: datetime) -> datetime:
        """Naive UTC for a naive local wall-clock time"""
        return local.replace(tzinfo=self.zone).astimezone(timezone.utc).replace(tzinfo=None)

    def coerce_utc(self, value: datetime) -> datetime:
        """Naive UTC for caller input; naive input is read as restaurant-local"""
        if value.tzinfo is None:
            return self.to_utc(value)
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def local_date(self, value: datetime) -> date:
        return self.to_local(value).date()


def round_to_grid(local: datetime, minutes: int = SLOT_GRID_MINUTES) -> datetime:
    """Nearest grid point within the hour; exact ties round up"""
    hour_start = local.replace(minute=0, second=0, microsecond=0)
    offset = (local - hour_start).total_seconds()
    step = minutes * 60
    steps = math.floor(offset / step + 0.5)
    return hour_start + timedelta(seconds=steps * step)


def format_time(local: datetime) -> str:
    return local.strftime("%I:%M %p")


def format_day(local: datetime) -> str:
    return local.strftime("%A, %B %d")
