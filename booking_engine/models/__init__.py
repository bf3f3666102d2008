"""Database models"""

from booking_engine.models.restaurant import Restaurant, RestaurantSettings, BlockedDate
from booking_engine.models.slot import TimeSlot, SeatingType
from booking_engine.models.customer import Customer
from booking_engine.models.reservation import Reservation, ReservationStatus
from booking_engine.models.call import Call, CallStatus, CallOutcome
from booking_engine.models.callback import Callback, CallbackStatus
from booking_engine.models.analytics import DailyAggregate, DailyAggregateBucket
from booking_engine.models.user import User, UserRole

__all__ = [
    "Restaurant",
    "RestaurantSettings",
    "BlockedDate",
    "TimeSlot",
    "SeatingType",
    "Customer",
    "Reservation",
    "ReservationStatus",
    "Call",
    "CallStatus",
    "CallOutcome",
    "Callback",
    "CallbackStatus",
    "DailyAggregate",
    "DailyAggregateBucket",
    "User",
    "UserRole",
]
