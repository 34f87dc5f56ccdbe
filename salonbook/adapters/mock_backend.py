"""
In-memory salon backend for testing and demos without a hosted backend.
"""

import asyncio
import json
import uuid
from pathlib import Path
from typing import Any, Dict, List

from pendulum import Date, DateTime

from ..domain.exceptions import BackendError
from ..domain.models import Booking, BookingDraft, Employee, SalonConfig, Service
from .parsing import (
    booking_from_payload,
    booking_payload,
    on_day,
    parse_booking,
    parse_employee,
    parse_records,
    parse_salon_config,
    parse_service,
)

DEFAULT_DATA_FILE = Path(__file__).parent / "mock_salon_data.json"


class MockSalonBackend:
    """
    Backend that serves salons from a JSON document kept in memory.

    The document maps salon ids to ``{salon, services, employees, bookings}``
    in the same record shape the hosted backend uses. Created bookings are
    only kept for the lifetime of the instance.
    """

    def __init__(
        self,
        data: Dict[str, Any] | None = None,
        data_file: Path | None = None,
        timezone: str = "Europe/Berlin",
        latency: float = 0.0,
    ):
        """
        Initialize the mock backend.

        Args:
            data: Salon document; loaded from ``data_file`` when omitted
            data_file: JSON file to load (defaults to the bundled sample salon)
            timezone: Timezone used to interpret booking timestamps
            latency: Seconds every call sleeps before answering
        """
        self.timezone = timezone
        self.latency = latency
        self.salons = data if data is not None else self._load_data(data_file or DEFAULT_DATA_FILE)
        self._bookings: Dict[str, List[Booking]] = {
            salon_id: parse_records(
                salon.get("bookings", []),
                lambda record: parse_booking(record, timezone),
                "booking",
            )
            for salon_id, salon in self.salons.items()
        }
        self.submitted: List[Booking] = []

    @staticmethod
    def _load_data(data_file: Path) -> Dict[str, Any]:
        """Load mock salon data from JSON file."""
        if not data_file.exists():
            return {}
        with open(data_file, "r", encoding="utf-8") as f:
            return json.load(f)

    def _salon(self, salon_id: str) -> Dict[str, Any]:
        salon = self.salons.get(salon_id)
        if salon is None:
            raise BackendError(f"Salon with ID {salon_id} does not exist")
        return salon

    async def _wait(self) -> None:
        if self.latency:
            await asyncio.sleep(self.latency)

    async def fetch_services(self, salon_id: str) -> List[Service]:
        await self._wait()
        return parse_records(self._salon(salon_id).get("services", []), parse_service, "service")

    async def fetch_staff(self, salon_id: str) -> List[Employee]:
        await self._wait()
        return parse_records(self._salon(salon_id).get("employees", []), parse_employee, "employee")

    async def fetch_bookings_for_day(self, salon_id: str, day: Date, timezone: str) -> List[Booking]:
        await self._wait()
        self._salon(salon_id)
        return on_day(self._bookings[salon_id], day, timezone)

    async def fetch_salon_config(self, salon_id: str) -> SalonConfig:
        await self._wait()
        return parse_salon_config(self._salon(salon_id).get("salon", {}))

    async def submit_booking(self, salon_id: str, draft: BookingDraft, start: DateTime) -> str:
        await self._wait()
        self._salon(salon_id)

        existing_ids = {booking.id for booking in self._bookings[salon_id]}
        booking_id = uuid.uuid4().hex
        while booking_id in existing_ids:
            booking_id = uuid.uuid4().hex

        booking = booking_from_payload(booking_id, booking_payload(draft, start), self.timezone)
        self.add_booking(salon_id, booking)
        self.submitted.append(booking)
        return booking_id

    def add_booking(self, salon_id: str, booking: Booking) -> None:
        """Place a booking directly, e.g. one made by another customer."""
        self._salon(salon_id)
        self._bookings[salon_id].append(booking)

    def bookings(self, salon_id: str) -> List[Booking]:
        return list(self._bookings.get(salon_id, []))
