"""
Conversion between backend records and domain models.

Records use the stored document shape (camelCase keys, ISO timestamps).
Individual malformed records are skipped with a warning; a payload that is
not even a list of records is a ``BackendError``.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, TypeVar

import pendulum
from pendulum import DateTime

from ..domain.exceptions import BackendError
from ..domain.models import (
    ANY_STAFF,
    Booking,
    BookingDraft,
    BookingStatus,
    BusinessHours,
    Employee,
    SalonConfig,
    Service,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def parse_service(record: Mapping[str, Any]) -> Service:
    return Service(
        id=str(record["id"]),
        name=str(record["name"]),
        duration=record["duration"],
        price=record.get("price", 0),
        active=bool(record.get("isActive", True)),
    )


def parse_employee(record: Mapping[str, Any]) -> Employee:
    services = record.get("services") or []
    if not isinstance(services, list):
        raise ValueError("services must be a list of service names")
    return Employee(
        id=str(record["id"]),
        name=str(record.get("name", "")),
        services=frozenset(str(name) for name in services),
    )


def parse_booking(record: Mapping[str, Any], timezone: str) -> Booking:
    start = pendulum.parse(str(record["time"]))
    if not isinstance(start, DateTime):
        raise ValueError(f"Booking time is not a timestamp: {record['time']!r}")

    return Booking(
        id=str(record["id"]),
        name=str(record.get("name", "")),
        phone=str(record.get("phone", "")),
        service=str(record["service"]),
        time=start.in_timezone(timezone),
        staff_assigned=str(record.get("staffAssigned") or ANY_STAFF),
        status=BookingStatus(record.get("status", BookingStatus.PENDING.value)),
    )


def parse_salon_config(record: Mapping[str, Any]) -> SalonConfig:
    """
    Raises:
        BackendError: If the business hours cannot be interpreted
    """
    if not isinstance(record, Mapping):
        raise BackendError("Salon document must be an object")

    hours = record.get("businessHours")
    try:
        business_hours = BusinessHours.from_dict(hours) if hours else None
    except (ValueError, AttributeError, TypeError) as exc:
        raise BackendError(f"Invalid business hours: {exc}") from exc

    brand_colors = {
        key: str(record[key])
        for key in ("brandPrimaryColor", "brandSecondaryColor")
        if record.get(key)
    }

    return SalonConfig(
        business_hours=business_hours,
        hide_staff_selection=bool(record.get("hideStaffSelection", False)),
        brand_colors=brand_colors,
    )


def parse_records(
    records: Any,
    parser: Callable[[Mapping[str, Any]], T],
    kind: str,
) -> List[T]:
    """
    Parse a list of records, skipping the ones that cannot be read.

    Raises:
        BackendError: If ``records`` is not a list
    """
    if not isinstance(records, list):
        raise BackendError(f"Expected a list of {kind} records")

    parsed: List[T] = []
    for record in records:
        try:
            parsed.append(parser(record))
        except (KeyError, ValueError, TypeError) as exc:
            logger.warning("Skipping invalid %s record: %s", kind, exc)
    return parsed


def booking_payload(draft: BookingDraft, start: DateTime) -> Dict[str, Any]:
    """Body for creating a pending booking from a draft."""
    return {
        "name": draft.customer.name,
        "phone": draft.customer.phone,
        "service": draft.service,
        "time": start.to_iso8601_string(),
        "staffAssigned": draft.staff or ANY_STAFF,
        "status": BookingStatus.PENDING.value,
    }


def booking_from_payload(booking_id: str, payload: Mapping[str, Any], timezone: str) -> Booking:
    return parse_booking({"id": booking_id, **payload}, timezone)


def booking_record(booking: Booking) -> Dict[str, Any]:
    return {
        "id": booking.id,
        "name": booking.name,
        "phone": booking.phone,
        "service": booking.service,
        "time": booking.time.to_iso8601_string(),
        "staffAssigned": booking.staff_assigned,
        "status": booking.status.value,
    }


def on_day(bookings: Iterable[Booking], day, timezone: str) -> List[Booking]:
    """Bookings whose start falls on ``day`` in the salon's timezone, by time."""
    return sorted(
        (booking for booking in bookings if booking.time.in_timezone(timezone).date() == day),
        key=lambda booking: booking.time,
    )
