"""
Tests for domain models.
"""

import pendulum
import pytest
from datetime import time

from salonbook.domain.models import (
    ANY_STAFF,
    Booking,
    BookingDraft,
    BusinessHours,
    CustomerInfo,
    DayHours,
    Employee,
    Service,
    TimeRange,
    parse_clock,
    parse_duration_minutes,
)


class TestTimeRange:
    """Tests for TimeRange model."""

    def test_create_valid_time_range(self):
        """Test creating a valid time range."""
        start = pendulum.parse("2024-11-25 09:00", tz="Europe/Berlin")
        end = pendulum.parse("2024-11-25 17:00", tz="Europe/Berlin")

        tr = TimeRange(start=start, end=end)

        assert tr.start == start
        assert tr.end == end
        assert tr.duration_minutes() == 480  # 8 hours

    def test_invalid_time_range_raises_error(self):
        """Test that creating an invalid time range raises ValueError."""
        start = pendulum.parse("2024-11-25 17:00", tz="Europe/Berlin")
        end = pendulum.parse("2024-11-25 09:00", tz="Europe/Berlin")

        with pytest.raises(ValueError, match="Start time .* must be before end time"):
            TimeRange(start=start, end=end)

    def test_overlaps(self):
        """Test overlap detection."""
        tr1 = TimeRange.from_duration(pendulum.parse("2024-11-25 09:00", tz="Europe/Berlin"), 45)
        tr2 = TimeRange.from_duration(pendulum.parse("2024-11-25 09:30", tz="Europe/Berlin"), 45)
        tr3 = TimeRange.from_duration(pendulum.parse("2024-11-25 09:45", tz="Europe/Berlin"), 45)

        assert tr1.overlaps(tr2)
        assert tr2.overlaps(tr1)
        # Touching ranges do not overlap
        assert not tr1.overlaps(tr3)

    def test_overlap_across_midnight(self):
        """Test that a late booking running past midnight overlaps the next morning."""
        late = TimeRange.from_duration(pendulum.parse("2024-11-25 23:30", tz="Europe/Berlin"), 60)
        early = TimeRange.from_duration(pendulum.parse("2024-11-26 00:00", tz="Europe/Berlin"), 30)

        assert late.overlaps(early)


class TestDurations:
    """Tests for service duration parsing."""

    @pytest.mark.parametrize(
        "value, expected",
        [(45, 45), ("30", 30), ("30-45", 30), ("60 min", 60), (" 90 ", 90)],
    )
    def test_lower_bound(self, value, expected):
        """Test that ranges and text resolve to their lower bound."""
        assert parse_duration_minutes(value) == expected

    @pytest.mark.parametrize("value", ["", "about an hour", 0, -15, None, True])
    def test_invalid_duration(self, value):
        """Test that durations without a positive minute count are rejected."""
        with pytest.raises(ValueError):
            parse_duration_minutes(value)

    def test_service_rejects_unusable_duration(self):
        """Test that a service cannot be built with an unparseable duration."""
        with pytest.raises(ValueError):
            Service(id="s1", name="Mystery", duration="tbd")

    def test_service_duration_minutes(self):
        service = Service(id="s1", name="Nail Art", duration="30-45", price="15-25")
        assert service.duration_minutes == 30


class TestBusinessHours:
    """Tests for BusinessHours and DayHours."""

    def test_parse_clock(self):
        assert parse_clock("09:00") == time(9, 0)
        assert parse_clock("9:30") == time(9, 30)

        with pytest.raises(ValueError):
            parse_clock("25:00")
        with pytest.raises(ValueError):
            parse_clock("nine")

    def test_from_dict_normalizes_weekday_names(self):
        """Test that weekday keys are matched case-insensitively."""
        hours = BusinessHours.from_dict({
            "Monday": {"open": "09:00", "close": "18:00", "isOpen": True},
        })

        monday = pendulum.date(2024, 11, 25)
        tuesday = pendulum.date(2024, 11, 26)

        assert hours.is_open_on(monday)
        assert hours.for_date(monday).close == time(18, 0)
        # Missing weekdays are closed
        assert not hours.is_open_on(tuesday)

    def test_unknown_weekday_rejected(self):
        with pytest.raises(ValueError, match="Unknown weekday"):
            BusinessHours.from_dict({"funday": {"open": "09:00", "close": "18:00", "isOpen": True}})

    def test_closed_weekday(self):
        """Test that a weekday flagged closed is not open even with hours."""
        hours = BusinessHours(days={"monday": DayHours(open=time(9, 0), close=time(18, 0), is_open=False)})

        assert not hours.is_open_on(pendulum.date(2024, 11, 25))

    def test_round_trip_dict(self):
        data = {"monday": {"open": "09:00", "close": "18:00", "isOpen": True}}
        assert BusinessHours.from_dict(data).to_dict() == data


class TestBookingModels:
    """Tests for Employee, Booking and BookingDraft."""

    def test_employee_services_are_frozen(self):
        employee = Employee(id="e1", name="Anna", services=["Gel Manicure"])

        assert employee.services == frozenset({"Gel Manicure"})
        assert employee.can_perform("Gel Manicure")
        assert not employee.can_perform("gel manicure")

    def test_booking_without_staff_is_unassigned(self):
        start = pendulum.parse("2024-11-25 10:00", tz="Europe/Berlin")

        assert Booking(id="b1", name="A", phone="1", service="X", time=start).is_unassigned
        assert not Booking(
            id="b2", name="A", phone="1", service="X", time=start, staff_assigned="e1"
        ).is_unassigned

    def test_draft_round_trip(self):
        """Test that a serialized draft restores to an equal draft."""
        draft = BookingDraft(
            service="Gel Manicure",
            date=pendulum.date(2024, 11, 25),
            time="10:30",
            staff=ANY_STAFF,
            customer=CustomerInfo(name="Sarah", phone="+49 151 1234567"),
        )

        assert BookingDraft.from_dict(draft.to_dict()) == draft

    def test_draft_rejects_bad_date(self):
        with pytest.raises(ValueError):
            BookingDraft.from_dict({"selectedDate": "25.11.2024"})

    def test_slot_start(self):
        draft = BookingDraft(date=pendulum.date(2024, 11, 25), time="09:30")

        start = draft.slot_start("Europe/Berlin")

        assert start == pendulum.datetime(2024, 11, 25, 9, 30, tz="Europe/Berlin")
