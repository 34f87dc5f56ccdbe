"""
Tests for the AvailabilityService orchestration layer.
"""

import asyncio
from typing import List

import pendulum

from salonbook.adapters.mock_backend import MockSalonBackend
from salonbook.domain.models import Booking, BookingDraft, BookingStatus
from salonbook.services.availability import AvailabilityService, AvailabilitySettings

TZ = "Europe/Berlin"
MONDAY = pendulum.date(2024, 11, 25)


def _salon_data(staff: List[dict], bookings: List[dict] = (), business_hours=None) -> dict:
    if business_hours is None:
        business_hours = {"monday": {"open": "09:00", "close": "18:00", "isOpen": True}}
    return {
        "salon-1": {
            "salon": {"businessHours": business_hours},
            "services": [{"id": "s1", "name": "Gel Manicure", "duration": 45, "price": 25}],
            "employees": staff,
            "bookings": list(bookings),
        }
    }


ANNA = {"id": "e1", "name": "Anna", "services": ["Gel Manicure"]}
MIA = {"id": "e2", "name": "Mia", "services": ["Gel Manicure"]}


def _booking(clock: str, staff: str, status: str = "confirmed", booking_id: str = "b1") -> dict:
    return {
        "id": booking_id,
        "name": "Customer",
        "phone": "0151",
        "service": "Gel Manicure",
        "time": f"2024-11-25T{clock}:00+01:00",
        "staffAssigned": staff,
        "status": status,
    }


def _service(data: dict, **settings) -> AvailabilityService:
    service = AvailabilityService(
        backend=MockSalonBackend(data=data, timezone=TZ),
        salon_id="salon-1",
        settings=AvailabilitySettings(timezone=TZ, **settings),
        today=lambda: MONDAY,
    )

    async def load():
        await service.load()
        await service.load_day(MONDAY)

    asyncio.run(load())
    return service


DRAFT = BookingDraft(service="Gel Manicure")


class TestAvailabilityService:
    """Slot availability end to end over the mock backend."""

    def test_free_day(self):
        """Test one 45-minute service, one eligible staff member, no bookings."""
        service = _service(_salon_data([ANNA]))

        assert service.is_slot_available(DRAFT, MONDAY, "09:00")
        # Starts before closing, ends at 18:30
        assert service.is_slot_available(DRAFT, MONDAY, "17:45")
        assert service.available_time_slots(DRAFT, MONDAY)[-1] == "17:30"

    def test_booked_staff_member(self):
        """Test a confirmed 09:00-09:45 booking for the only staff member."""
        service = _service(_salon_data([ANNA], [_booking("09:00", "e1")]))

        assert not service.is_slot_available(DRAFT, MONDAY, "09:00")
        assert not service.is_slot_available(DRAFT, MONDAY, "09:30")
        assert service.is_slot_available(DRAFT, MONDAY, "09:45")

        slots = service.available_time_slots(DRAFT, MONDAY)
        assert "09:00" not in slots
        assert "09:30" not in slots
        assert slots[0] == "10:00"

    def test_second_staff_member_keeps_slot(self):
        """Test two eligible staff with one of them booked at 10:00."""
        service = _service(_salon_data([ANNA, MIA], [_booking("10:00", "e1")]))

        assert service.is_slot_available(DRAFT, MONDAY, "10:00")
        assert not service.is_slot_available(DRAFT, MONDAY, "10:00", staff_id="e1")
        assert [employee.id for employee in service.available_staff(DRAFT, MONDAY, "10:00")] == ["e2"]

    def test_cancelled_booking_does_not_block(self):
        service = _service(_salon_data([ANNA], [_booking("09:00", "e1", status="cancelled")]))

        assert service.is_slot_available(DRAFT, MONDAY, "09:00")

    def test_cancelled_booking_blocks_when_configured(self):
        service = _service(
            _salon_data([ANNA], [_booking("09:00", "e1", status="cancelled")]),
            count_cancelled_bookings=True,
        )

        assert not service.is_slot_available(DRAFT, MONDAY, "09:00")

    def test_slots_must_end_by_close(self):
        service = _service(_salon_data([ANNA]), slots_must_end_by_close=True)

        assert service.get_time_slots_for_day(MONDAY, "Gel Manicure")[-1] == "17:00"
        # Without a known duration only the start is checked
        assert service.get_time_slots_for_day(MONDAY)[-1] == "17:30"

    def test_unloaded_day_is_unavailable(self):
        service = _service(_salon_data([ANNA]))

        assert not service.is_slot_available(DRAFT, MONDAY.add(days=7), "09:00")

    def test_repeated_checks_agree(self):
        service = _service(_salon_data([ANNA], [_booking("11:00", "e1")]))

        answers = {service.is_slot_available(DRAFT, MONDAY, "10:30") for _ in range(3)}

        assert answers == {False}

    def test_available_days_without_business_hours(self):
        data = _salon_data([ANNA])
        data["salon-1"]["salon"] = {}
        service = _service(data)

        assert service.get_available_days() == []
        assert service.get_time_slots_for_day(MONDAY) == []

    def test_available_days_use_today(self):
        service = _service(_salon_data([ANNA]))

        assert service.get_available_days() == [MONDAY, MONDAY.add(weeks=1)]
        assert service.get_available_days(week_offset=1) == [MONDAY.add(weeks=1), MONDAY.add(weeks=2)]
        assert service.is_bookable_day(MONDAY)
        assert not service.is_bookable_day(MONDAY.subtract(weeks=1))


class GatedBackend(MockSalonBackend):
    """Mock backend whose first booking fetch waits for a signal."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.gate = asyncio.Event()
        self.fetches = 0

    async def fetch_bookings_for_day(self, salon_id, day, timezone):
        self.fetches += 1
        snapshot = await super().fetch_bookings_for_day(salon_id, day, timezone)
        if self.fetches == 1:
            await self.gate.wait()
        return snapshot


def test_superseded_fetch_is_discarded():
    """A slow fetch that finishes after a newer one must not overwrite it."""

    async def scenario():
        backend = GatedBackend(data=_salon_data([ANNA]), timezone=TZ)
        service = AvailabilityService(
            backend=backend,
            salon_id="salon-1",
            settings=AvailabilitySettings(timezone=TZ),
            today=lambda: MONDAY,
        )
        await service.load()

        slow = asyncio.create_task(service.load_day(MONDAY))
        await asyncio.sleep(0)

        backend.add_booking("salon-1", Booking(
            id="late",
            name="Other customer",
            phone="0151",
            service="Gel Manicure",
            time=pendulum.datetime(2024, 11, 25, 9, 0, tz=TZ),
            staff_assigned="e1",
            status=BookingStatus.PENDING,
        ))
        fresh = await service.load_day(MONDAY)

        backend.gate.set()
        stale = await slow
        return service, fresh, stale

    service, fresh, stale = asyncio.run(scenario())

    assert stale is None
    assert [booking.id for booking in fresh] == ["late"]
    assert service.bookings_for(MONDAY) == fresh
    assert not service.is_slot_available(DRAFT, MONDAY, "09:00")


def test_reload_supersedes_day_fetch_in_flight():
    """A day fetch started before a reload must not repopulate the cache."""

    async def scenario():
        backend = GatedBackend(data=_salon_data([ANNA]), timezone=TZ)
        service = AvailabilityService(
            backend=backend,
            salon_id="salon-1",
            settings=AvailabilitySettings(timezone=TZ),
            today=lambda: MONDAY,
        )
        await service.load()

        slow = asyncio.create_task(service.load_day(MONDAY))
        await asyncio.sleep(0)
        await service.load()

        backend.gate.set()
        return service, await slow

    service, stale = asyncio.run(scenario())

    assert stale is None
    assert service.bookings_for(MONDAY) is None
