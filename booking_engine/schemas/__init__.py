"""Pydantic schemas for request/response validation"""

from booking_engine.schemas.common import EngineResult
from booking_engine.schemas.auth import Token, RefreshRequest, UserResponse
from booking_engine.schemas.availability import (
    CheckAvailabilityRequest,
    AlternativeSlot,
    AvailabilityResult,
)
from booking_engine.schemas.booking import (
    CustomerFields,
    BookingFields,
    CreateBookingRequest,
    BookingResult,
)
from booking_engine.schemas.call import LogCallOutcomeRequest, CallLogResult
from booking_engine.schemas.callback import (
    CreateCallbackRequest,
    CallbackResult,
    ResolveCallbackRequest,
    FailCallbackRequest,
    CallbackActionResult,
    PendingCallback,
    PendingCallbacksResult,
)
from booking_engine.schemas.reservation import (
    ReservationResponse,
    ReservationListResponse,
    ReservationStatusUpdate,
    ReservationStatusResult,
    HostStandReservation,
    TodaysReservationsResponse,
)
from booking_engine.schemas.slot import (
    SlotResponse,
    SlotListResponse,
    SlotBlockRequest,
    GenerateSlotsRequest,
    GenerateSlotsResponse,
    BlockedDateCreate,
    BlockedDateResponse,
)
from booking_engine.schemas.analytics import DailyAnalytics, AnalyticsSummary, DailyAnalyticsResponse

__all__ = [
    "EngineResult",
    "Token",
    "RefreshRequest",
    "UserResponse",
    "CheckAvailabilityRequest",
    "AlternativeSlot",
    "AvailabilityResult",
    "CustomerFields",
    "BookingFields",
    "CreateBookingRequest",
    "BookingResult",
    "LogCallOutcomeRequest",
    "CallLogResult",
    "CreateCallbackRequest",
    "CallbackResult",
    "ResolveCallbackRequest",
    "FailCallbackRequest",
    "CallbackActionResult",
    "PendingCallback",
    "PendingCallbacksResult",
    "ReservationResponse",
    "ReservationListResponse",
    "ReservationStatusUpdate",
    "ReservationStatusResult",
    "HostStandReservation",
    "TodaysReservationsResponse",
    "SlotResponse",
    "SlotListResponse",
    "SlotBlockRequest",
    "GenerateSlotsRequest",
    "GenerateSlotsResponse",
    "BlockedDateCreate",
    "BlockedDateResponse",
    "DailyAnalytics",
    "AnalyticsSummary",
    "DailyAnalyticsResponse",
]
