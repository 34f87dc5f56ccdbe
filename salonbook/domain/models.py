"""
Domain models for salon services, staff, business hours and bookings.
"""

import re
from dataclasses import dataclass, field
from datetime import time
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Mapping

import pendulum
from pendulum import Date, DateTime

# Sentinel for "no preference" staff selection and unassigned bookings
ANY_STAFF = "any"

# Index matches date.weekday(): 0=Monday, 6=Sunday
WEEKDAY_NAMES = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)

_CLOCK_PATTERN = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")
_FIRST_INTEGER = re.compile(r"\d+")


def parse_clock(value: str) -> time:
    """
    Parse an ``"HH:MM"`` string into a time object.

    Raises:
        ValueError: If the value is not a valid 24h clock time
    """
    match = _CLOCK_PATTERN.match(value or "")
    if not match:
        raise ValueError(f"Invalid clock time: {value!r} (expected HH:MM)")

    hour, minute = int(match.group(1)), int(match.group(2))
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError(f"Invalid clock time: {value!r}")

    return time(hour=hour, minute=minute)


def format_clock(value: time) -> str:
    """Format a time object as ``"HH:MM"``."""
    return f"{value.hour:02d}:{value.minute:02d}"


def parse_date(value: str) -> Date:
    """Parse an ISO ``YYYY-MM-DD`` string into a pendulum Date."""
    return pendulum.from_format(value, "YYYY-MM-DD").date()


def parse_duration_minutes(value: Any) -> int:
    """
    Resolve a service duration to a lower-bound minute count.

    Durations are stored either as integers or as free text such as
    ``"30-45"`` or ``"60 min"``; the first integer found is used.

    Raises:
        ValueError: If no positive minute count can be derived
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")

    if isinstance(value, (int, float)):
        minutes = int(value)
    else:
        match = _FIRST_INTEGER.search(str(value or ""))
        if not match:
            raise ValueError(f"Invalid duration: {value!r}")
        minutes = int(match.group(0))

    if minutes <= 0:
        raise ValueError(f"Duration must be positive, got {value!r}")

    return minutes


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable half-open time range ``[start, end)``.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    @classmethod
    def from_duration(cls, start: DateTime, minutes: int) -> "TimeRange":
        """Build a range starting at ``start`` lasting ``minutes``."""
        return cls(start=start, end=start.add(minutes=minutes))

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeRange") -> bool:
        """Check if this range overlaps with another."""
        return self.start < other.end and self.end > other.start

    def __str__(self) -> str:
        return f"{self.start.format('DD.MM.YYYY HH:mm')} - {self.end.format('HH:mm')}"


@dataclass(frozen=True)
class DayHours:
    """
    Opening hours for a single weekday.
    """
    open: time
    close: time
    is_open: bool = True

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DayHours":
        """Build from the stored ``{open, close, isOpen}`` shape."""
        return cls(
            open=parse_clock(data.get("open", "")),
            close=parse_clock(data.get("close", "")),
            is_open=bool(data.get("isOpen", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "open": format_clock(self.open),
            "close": format_clock(self.close),
            "isOpen": self.is_open,
        }


@dataclass(frozen=True)
class BusinessHours:
    """
    Weekly operating hours keyed by lowercase weekday name.

    Weekdays missing from the mapping are treated as closed.
    """
    days: Mapping[str, DayHours]

    @classmethod
    def from_dict(cls, data: Mapping[str, Mapping[str, Any]]) -> "BusinessHours":
        """
        Build from a ``{weekday: {open, close, isOpen}}`` mapping.

        Raises:
            ValueError: If a key is not a weekday name or an entry is malformed
        """
        days: Dict[str, DayHours] = {}
        for name, entry in data.items():
            key = str(name).strip().lower()
            if key not in WEEKDAY_NAMES:
                raise ValueError(f"Unknown weekday in business hours: {name!r}")
            days[key] = DayHours.from_dict(entry)
        return cls(days=days)

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        return {name: hours.to_dict() for name, hours in self.days.items()}

    def for_date(self, day: Date) -> DayHours | None:
        """Get the configured hours for the weekday of ``day``."""
        return self.days.get(WEEKDAY_NAMES[day.weekday()])

    def is_open_on(self, day: Date) -> bool:
        hours = self.for_date(day)
        return hours is not None and hours.is_open


@dataclass(frozen=True)
class SalonConfig:
    """Per-salon settings relevant to the booking workflow."""
    business_hours: BusinessHours | None = None
    hide_staff_selection: bool = False
    brand_colors: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Service:
    """
    A bookable service from the salon catalog.

    ``duration`` may be an integer or free text (e.g. ``"30-45"``); scheduling
    always uses its lower bound.
    """
    id: str
    name: str
    duration: int | str
    price: int | float | str = 0
    active: bool = True

    def __post_init__(self):
        # Fail early on durations the scheduler cannot use
        parse_duration_minutes(self.duration)

    @property
    def duration_minutes(self) -> int:
        return parse_duration_minutes(self.duration)


@dataclass(frozen=True)
class Employee:
    """
    A staff member and the services (by name) they are qualified for.
    """
    id: str
    name: str
    services: FrozenSet[str] = frozenset()

    def __post_init__(self):
        object.__setattr__(self, "services", frozenset(self.services))

    def can_perform(self, service_name: str) -> bool:
        return service_name in self.services

    def with_services(self, services: Iterable[str]) -> "Employee":
        return Employee(id=self.id, name=self.name, services=frozenset(services))


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


@dataclass(frozen=True)
class Booking:
    """
    An appointment already placed with the salon.

    ``service`` is the service name; ``staff_assigned`` is a staff id or
    ``ANY_STAFF`` when the customer had no preference.
    """
    id: str
    name: str
    phone: str
    service: str
    time: DateTime
    staff_assigned: str = ANY_STAFF
    status: BookingStatus = BookingStatus.PENDING

    @property
    def is_unassigned(self) -> bool:
        return not self.staff_assigned or self.staff_assigned == ANY_STAFF

    def interval(self, duration_minutes: int) -> TimeRange:
        return TimeRange.from_duration(self.time, duration_minutes)


@dataclass(frozen=True)
class CustomerInfo:
    name: str = ""
    phone: str = ""

    def is_complete(self) -> bool:
        return bool(self.name.strip()) and bool(self.phone.strip())


@dataclass(frozen=True)
class BookingDraft:
    """
    The in-progress selections for one booking session.
    """
    service: str | None = None
    date: Date | None = None
    time: str | None = None
    staff: str | None = None
    customer: CustomerInfo = field(default_factory=CustomerInfo)

    def slot_start(self, timezone: str) -> DateTime:
        """Absolute start instant of the selected slot."""
        if self.date is None or self.time is None:
            raise ValueError("Draft has no date/time selected")
        clock = parse_clock(self.time)
        return pendulum.datetime(
            self.date.year, self.date.month, self.date.day,
            clock.hour, clock.minute, tz=timezone
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "selectedService": self.service,
            "selectedDate": self.date.isoformat() if self.date else None,
            "selectedTime": self.time,
            "selectedStaff": self.staff,
            "customerInfo": {
                "name": self.customer.name,
                "phone": self.customer.phone,
            },
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BookingDraft":
        """
        Rebuild a draft from its serialized form.

        Raises:
            ValueError: If a field is structurally invalid
        """
        if not isinstance(data, Mapping):
            raise ValueError("Draft must be a mapping")

        raw_date = data.get("selectedDate")
        raw_time = data.get("selectedTime")
        if raw_time is not None:
            parse_clock(raw_time)

        customer = data.get("customerInfo") or {}
        if not isinstance(customer, Mapping):
            raise ValueError("customerInfo must be a mapping")

        return cls(
            service=data.get("selectedService"),
            date=parse_date(raw_date) if raw_date else None,
            time=raw_time,
            staff=data.get("selectedStaff"),
            customer=CustomerInfo(
                name=str(customer.get("name", "")),
                phone=str(customer.get("phone", "")),
            ),
        )
