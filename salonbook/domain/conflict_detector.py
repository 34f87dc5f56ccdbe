"""
Core business logic for deciding whether a slot can still be booked.

Pure domain logic: the detector only looks at the catalog, the roster and
the booking set it is given (no API calls, no database, no I/O).
"""

from typing import Dict, List, Sequence

from pendulum import DateTime

from .eligibility import eligible_staff
from .models import Booking, BookingStatus, Employee, Service, TimeRange

DEFAULT_DURATION_MINUTES = 30


class ConflictDetector:
    """
    Checks candidate slots against existing bookings for the eligible staff.

    Algorithm:
    1. Build the candidate range ``[slot_start, slot_start + duration)``
    2. Collect the staff eligible for the service (narrowed to one staff
       member when the customer picked someone)
    3. Drop every staff member who holds an overlapping booking assigned to
       them directly
    4. Bookings made for "any" staff that overlap the slot still need a
       staff member each; a candidate stays free only if taking them does
       not reduce how many of those bookings can be placed on other
       eligible, unoccupied staff
    5. The slot is available if at least one candidate survives
    """

    def __init__(
        self,
        services: Sequence[Service],
        staff: Sequence[Employee],
        default_duration_minutes: int = DEFAULT_DURATION_MINUTES,
        count_cancelled: bool = False,
    ):
        self.services: Dict[str, Service] = {service.name: service for service in services}
        self.staff = list(staff)
        self.default_duration_minutes = default_duration_minutes
        self.count_cancelled = count_cancelled

    def is_slot_available(
        self,
        service_name: str,
        slot_start: DateTime,
        bookings: Sequence[Booking],
        staff_id: str | None = None,
    ) -> bool:
        """
        Check whether at least one eligible staff member is free for the slot.

        Args:
            service_name: Name of the service being booked
            slot_start: Absolute start of the candidate slot
            bookings: Existing bookings for the day
            staff_id: Restrict the check to this staff member

        Returns:
            True if the slot can be booked
        """
        return bool(self.available_staff(service_name, slot_start, bookings, staff_id))

    def available_staff(
        self,
        service_name: str,
        slot_start: DateTime,
        bookings: Sequence[Booking],
        staff_id: str | None = None,
    ) -> List[Employee]:
        """
        Return the eligible staff members who could take the slot.
        """
        service = self.services.get(service_name)
        if service is None:
            return []

        slot = TimeRange.from_duration(slot_start, service.duration_minutes)

        candidates = eligible_staff(service_name, self.staff)
        if staff_id is not None:
            candidates = [employee for employee in candidates if employee.id == staff_id]

        if not candidates:
            return []

        active = self._active_bookings(bookings)
        unassigned = [
            booking for booking in active
            if booking.is_unassigned and self.booking_range(booking).overlaps(slot)
        ]
        placeable = self._max_matching(unassigned, active)

        free: List[Employee] = []
        for employee in candidates:
            if self.conflicts_for(employee, slot, active):
                continue
            if not unassigned or self._max_matching(unassigned, active, excluded_id=employee.id) == placeable:
                free.append(employee)

        return free

    def booking_range(self, booking: Booking) -> TimeRange:
        """Time occupied by an existing booking, from its own service duration."""
        service = self.services.get(booking.service)
        minutes = service.duration_minutes if service else self.default_duration_minutes
        return booking.interval(minutes)

    def conflicts_for(
        self,
        employee: Employee,
        slot: TimeRange,
        bookings: Sequence[Booking],
    ) -> List[Booking]:
        """Bookings assigned to ``employee`` that overlap ``slot``."""
        return [
            booking for booking in self._active_bookings(bookings)
            if booking.staff_assigned == employee.id
            and self.booking_range(booking).overlaps(slot)
        ]

    def _active_bookings(self, bookings: Sequence[Booking]) -> List[Booking]:
        if self.count_cancelled:
            return list(bookings)
        return [booking for booking in bookings if booking.status != BookingStatus.CANCELLED]

    def _max_matching(
        self,
        unassigned: Sequence[Booking],
        bookings: Sequence[Booking],
        excluded_id: str | None = None,
    ) -> int:
        """
        Size of the largest assignment of unassigned bookings to staff.

        Bipartite matching (augmenting paths) of bookings onto staff other
        than ``excluded_id`` who are eligible for the booking's service and
        not directly booked during it. Each staff member takes one booking.
        """
        options: List[List[str]] = []
        for booking in unassigned:
            occupied = self.booking_range(booking)
            options.append([
                employee.id for employee in self.staff
                if employee.id != excluded_id
                and employee.can_perform(booking.service)
                and not self.conflicts_for(employee, occupied, bookings)
            ])

        matched: Dict[str, int] = {}

        def assign(index: int, seen: set) -> bool:
            for employee_id in options[index]:
                if employee_id in seen:
                    continue
                seen.add(employee_id)
                holder = matched.get(employee_id)
                if holder is None or assign(holder, seen):
                    matched[employee_id] = index
                    return True
            return False

        return sum(1 for index in range(len(unassigned)) if assign(index, set()))
