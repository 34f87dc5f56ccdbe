"""
Domain layer - Pure business logic without external dependencies.
"""

from .business_hours import get_available_days
from .conflict_detector import ConflictDetector
from .eligibility import eligible_staff
from .models import (
    ANY_STAFF,
    Booking,
    BookingDraft,
    BookingStatus,
    BusinessHours,
    CustomerInfo,
    DayHours,
    Employee,
    SalonConfig,
    Service,
    TimeRange,
)
from .slot_generator import SlotSequence, get_time_slots_for_day
from .workflow import BookingSession, Step

__all__ = [
    "ANY_STAFF",
    "Booking",
    "BookingDraft",
    "BookingSession",
    "BookingStatus",
    "BusinessHours",
    "ConflictDetector",
    "CustomerInfo",
    "DayHours",
    "Employee",
    "SalonConfig",
    "Service",
    "SlotSequence",
    "Step",
    "TimeRange",
    "eligible_staff",
    "get_available_days",
    "get_time_slots_for_day",
]
