"""
Availability service: loads salon data and answers slot questions.

The service coordinates fetching the catalog, roster, salon settings and the
per-day booking sets via a backend adapter and delegates the actual decisions
to the domain-level resolver, slot generator and ``ConflictDetector``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Protocol

import pendulum
from pendulum import Date, DateTime

from ..domain.business_hours import DEFAULT_LOOKAHEAD_DAYS, get_available_days
from ..domain.conflict_detector import DEFAULT_DURATION_MINUTES, ConflictDetector
from ..domain.models import (
    ANY_STAFF,
    Booking,
    BookingDraft,
    Employee,
    SalonConfig,
    Service,
)
from ..domain.slot_generator import DEFAULT_SLOT_MINUTES, SlotSequence

logger = logging.getLogger(__name__)


class SalonBackendProtocol(Protocol):
    """Protocol describing the backend behaviour needed by the booking engine."""

    async def fetch_services(self, salon_id: str) -> List[Service]:
        """Return the salon's service catalog."""

    async def fetch_staff(self, salon_id: str) -> List[Employee]:
        """Return the salon's staff roster."""

    async def fetch_bookings_for_day(self, salon_id: str, day: Date, timezone: str) -> List[Booking]:
        """Return every booking starting on ``day`` (salon local time)."""

    async def fetch_salon_config(self, salon_id: str) -> SalonConfig:
        """Return business hours and booking widget settings."""

    async def submit_booking(self, salon_id: str, draft: BookingDraft, start: DateTime) -> str:
        """Create a pending booking and return its id."""


@dataclass(frozen=True)
class AvailabilitySettings:
    """Knobs for slot generation and conflict checks."""
    timezone: str = "Europe/Berlin"
    slot_minutes: int = DEFAULT_SLOT_MINUTES
    lookahead_days: int = DEFAULT_LOOKAHEAD_DAYS
    default_duration_minutes: int = DEFAULT_DURATION_MINUTES
    count_cancelled_bookings: bool = False
    slots_must_end_by_close: bool = False


class AvailabilityService:
    """
    Keeps the salon data for one booking session and answers availability.

    Booking sets are held per calendar day. Every fetch for a day supersedes
    the previous one: a response that arrives after a newer request (or after
    ``invalidate``) is discarded instead of overwriting fresher data.
    """

    def __init__(
        self,
        backend: SalonBackendProtocol,
        salon_id: str,
        settings: AvailabilitySettings | None = None,
        today: Callable[[], Date] | None = None,
    ) -> None:
        self._backend = backend
        self.salon_id = salon_id
        self.settings = settings or AvailabilitySettings()
        self._today = today

        self.services: List[Service] = []
        self.staff: List[Employee] = []
        self.salon_config = SalonConfig()
        self.detector = self._build_detector()

        self._day_bookings: Dict[Date, List[Booking]] = {}
        self._day_generation: Dict[Date, int] = {}

    async def load(self) -> None:
        """Fetch catalog, roster and salon settings."""
        services, staff, salon_config = await asyncio.gather(
            self._backend.fetch_services(self.salon_id),
            self._backend.fetch_staff(self.salon_id),
            self._backend.fetch_salon_config(self.salon_id),
        )

        self.services = list(services)
        self.staff = list(staff)
        self.salon_config = salon_config
        self.detector = self._build_detector()
        for day in list(self._day_generation):
            self.invalidate(day)

        logger.debug(
            "Loaded salon %s: %d services, %d staff",
            self.salon_id,
            len(self.services),
            len(self.staff),
        )

    @property
    def active_services(self) -> List[Service]:
        return [service for service in self.services if service.active]

    def find_service(self, name: str | None) -> Service | None:
        for service in self.services:
            if service.name == name:
                return service
        return None

    def today(self) -> Date:
        if self._today is not None:
            return self._today()
        return pendulum.today(self.settings.timezone).date()

    def get_available_days(self, week_offset: int = 0) -> List[Date]:
        """Open days in the lookahead window shifted by ``week_offset`` weeks."""
        return get_available_days(
            self.salon_config.business_hours,
            self.today(),
            week_offset=week_offset,
            lookahead_days=self.settings.lookahead_days,
        )

    def is_bookable_day(self, day: Date) -> bool:
        hours = self.salon_config.business_hours
        return hours is not None and hours.is_open_on(day) and day >= self.today()

    def get_time_slots_for_day(self, day: Date, service_name: str | None = None) -> List[str]:
        """
        Candidate slot starts for ``day``.

        The service duration is only consulted when slots must end by closing.
        """
        hours = self.salon_config.business_hours
        day_hours = hours.for_date(day) if hours is not None else None
        service = self.find_service(service_name)

        return list(
            SlotSequence(
                day_hours,
                slot_minutes=self.settings.slot_minutes,
                service_minutes=service.duration_minutes if service else None,
                must_end_by_close=self.settings.slots_must_end_by_close,
            )
        )

    def invalidate(self, day: Date) -> None:
        """Forget the bookings of ``day`` and supersede any fetch in flight."""
        self._day_generation[day] = self._day_generation.get(day, 0) + 1
        self._day_bookings.pop(day, None)

    async def load_day(self, day: Date) -> List[Booking] | None:
        """
        Fetch the current booking set for ``day``.

        Returns:
            The bookings, or None when a newer request superseded this one
        """
        self.invalidate(day)
        generation = self._day_generation[day]

        bookings = await self._backend.fetch_bookings_for_day(
            self.salon_id,
            day,
            self.settings.timezone,
        )

        if self._day_generation.get(day) != generation:
            logger.debug("Discarding superseded booking fetch for %s", day.isoformat())
            return None

        self._day_bookings[day] = list(bookings)
        return self._day_bookings[day]

    def bookings_for(self, day: Date) -> List[Booking] | None:
        """Loaded bookings of ``day``, or None if not (or no longer) loaded."""
        return self._day_bookings.get(day)

    def is_slot_available(
        self,
        draft: BookingDraft,
        day: Date,
        time: str,
        staff_id: str | None = None,
    ) -> bool:
        """
        Check a slot for the draft's service against the loaded bookings.

        A day whose bookings are not loaded is reported unavailable.
        """
        if not draft.service:
            return False

        bookings = self.bookings_for(day)
        if bookings is None:
            logger.debug("No booking set loaded for %s, treating slot as unavailable", day.isoformat())
            return False

        if staff_id == ANY_STAFF:
            staff_id = None

        slot_start = BookingDraft(date=day, time=time).slot_start(self.settings.timezone)
        return self.detector.is_slot_available(draft.service, slot_start, bookings, staff_id)

    def available_time_slots(
        self,
        draft: BookingDraft,
        day: Date,
        staff_id: str | None = None,
    ) -> List[str]:
        """Slot starts of ``day`` that can still be booked for the draft's service."""
        return [
            time for time in self.get_time_slots_for_day(day, draft.service)
            if self.is_slot_available(draft, day, time, staff_id)
        ]

    def available_staff(self, draft: BookingDraft, day: Date, time: str) -> List[Employee]:
        """Staff who could take the draft's service at ``time`` on ``day``."""
        bookings = self.bookings_for(day)
        if not draft.service or bookings is None:
            return []

        slot_start = BookingDraft(date=day, time=time).slot_start(self.settings.timezone)
        return self.detector.available_staff(draft.service, slot_start, bookings)

    def _build_detector(self) -> ConflictDetector:
        return ConflictDetector(
            services=self.services,
            staff=self.staff,
            default_duration_minutes=self.settings.default_duration_minutes,
            count_cancelled=self.settings.count_cancelled_bookings,
        )
