"""
Tests for the pure workflow transitions.
"""

import pendulum
import pytest

from salonbook.domain.exceptions import BookingValidationError, InvalidTransitionError
from salonbook.domain.models import ANY_STAFF, BookingDraft, CustomerInfo
from salonbook.domain.workflow import (
    BookingSession,
    DateSelected,
    InfoSubmitted,
    ServiceSelected,
    StaffSelected,
    Step,
    TimeSelected,
    apply_event,
    check_commit_ready,
    go_back,
    mark_success,
    move_to,
    previous_step,
)

MONDAY = pendulum.date(2024, 11, 25)


def _walk(session, event):
    transition = apply_event(session, event)
    return move_to(transition.session, transition.advance_to)


def _confirm_session(hide_staff: bool = False) -> BookingSession:
    session = BookingSession(salon_id="salon-1", hide_staff_selection=hide_staff)
    session = _walk(session, ServiceSelected("Gel Manicure"))
    session = _walk(session, DateSelected(MONDAY))
    session = _walk(session, TimeSelected("10:00"))
    if not hide_staff:
        session = _walk(session, StaffSelected("e1"))
    return _walk(session, InfoSubmitted(name="Sarah", phone="0151 1234567"))


class TestForwardTransitions:
    """Tests for apply_event."""

    def test_full_forward_path(self):
        session = _confirm_session()

        assert session.step == Step.CONFIRM
        assert session.draft == BookingDraft(
            service="Gel Manicure",
            date=MONDAY,
            time="10:00",
            staff="e1",
            customer=CustomerInfo(name="Sarah", phone="0151 1234567"),
        )

    def test_selection_does_not_move_step_by_itself(self):
        """Test that the step only changes when the owner applies advance_to."""
        transition = apply_event(BookingSession(salon_id="salon-1"), ServiceSelected("Gel Manicure"))

        assert transition.session.step == Step.SERVICE
        assert transition.advance_to == Step.DATE
        assert not transition.immediate

    def test_service_selection_clears_time_and_staff(self):
        session = BookingSession(
            salon_id="salon-1",
            draft=BookingDraft(service="Nail Art", date=MONDAY, time="10:00", staff="e1"),
        )

        draft = apply_event(session, ServiceSelected("Gel Manicure")).session.draft

        assert draft.service == "Gel Manicure"
        assert draft.date == MONDAY
        assert draft.time is None
        assert draft.staff is None

    def test_date_selection_clears_time(self):
        session = BookingSession(
            salon_id="salon-1",
            step=Step.DATE,
            draft=BookingDraft(service="Gel Manicure", date=MONDAY, time="10:00"),
        )

        draft = apply_event(session, DateSelected(MONDAY.add(days=1))).session.draft

        assert draft.date == MONDAY.add(days=1)
        assert draft.time is None

    def test_hidden_staff_step_goes_straight_to_info(self):
        """Test that with staff selection hidden, time leads to info with "any" staff."""
        session = BookingSession(
            salon_id="salon-1",
            step=Step.TIME,
            draft=BookingDraft(service="Gel Manicure", date=MONDAY),
            hide_staff_selection=True,
        )

        transition = apply_event(session, TimeSelected("10:00"))

        assert transition.advance_to == Step.INFO
        assert transition.session.draft.staff == ANY_STAFF

    def test_info_requires_name_and_phone(self):
        session = BookingSession(salon_id="salon-1", step=Step.INFO)

        with pytest.raises(BookingValidationError):
            apply_event(session, InfoSubmitted(name="Sarah", phone="   "))
        with pytest.raises(BookingValidationError):
            apply_event(session, InfoSubmitted(name="", phone="0151"))

    def test_info_advances_immediately(self):
        session = BookingSession(salon_id="salon-1", step=Step.INFO)

        transition = apply_event(session, InfoSubmitted(name=" Sarah ", phone="0151"))

        assert transition.immediate
        assert transition.advance_to == Step.CONFIRM
        assert transition.session.draft.customer.name == "Sarah"

    def test_events_outside_their_step_are_rejected(self):
        """Test that skipping ahead is not possible."""
        session = BookingSession(salon_id="salon-1")

        with pytest.raises(InvalidTransitionError):
            apply_event(session, TimeSelected("10:00"))
        with pytest.raises(InvalidTransitionError):
            apply_event(session, InfoSubmitted(name="Sarah", phone="0151"))

    def test_malformed_time_is_a_validation_error(self):
        session = BookingSession(salon_id="salon-1", step=Step.TIME)

        with pytest.raises(BookingValidationError):
            apply_event(session, TimeSelected("ten"))

    def test_success_is_terminal(self):
        session = mark_success(_confirm_session(), "booking-1")

        assert session.is_terminal
        with pytest.raises(InvalidTransitionError):
            apply_event(session, ServiceSelected("Gel Manicure"))
        with pytest.raises(InvalidTransitionError):
            go_back(session)


class TestBackNavigation:
    """Tests for go_back and previous_step."""

    def test_previous_step_order(self):
        assert previous_step(Step.CONFIRM) == Step.INFO
        assert previous_step(Step.INFO) == Step.STAFF
        assert previous_step(Step.STAFF) == Step.TIME
        assert previous_step(Step.DATE) == Step.SERVICE
        assert previous_step(Step.SERVICE) is None

    def test_back_skips_hidden_staff_step(self):
        assert previous_step(Step.INFO, hide_staff_selection=True) == Step.TIME

    def test_back_keeps_selections(self):
        session = _confirm_session()

        back = go_back(session)

        assert back.step == Step.INFO
        assert back.draft == session.draft

    def test_back_from_first_step_exits(self):
        session = go_back(BookingSession(salon_id="salon-1"))

        assert session.exited
        with pytest.raises(InvalidTransitionError):
            apply_event(session, ServiceSelected("Gel Manicure"))


class TestCommitReadiness:
    """Tests for check_commit_ready."""

    def test_ready_at_confirm(self):
        check_commit_ready(_confirm_session())
        check_commit_ready(_confirm_session(hide_staff=True))

    def test_not_at_confirm(self):
        with pytest.raises(InvalidTransitionError):
            check_commit_ready(BookingSession(salon_id="salon-1", step=Step.INFO))

    def test_missing_selection(self):
        session = BookingSession(salon_id="salon-1", step=Step.CONFIRM, draft=BookingDraft(service="X"))

        with pytest.raises(BookingValidationError, match="Missing selection"):
            check_commit_ready(session)


class TestProgressShape:
    """Tests for BookingSession.to_progress / from_progress."""

    def test_round_trip(self):
        session = _confirm_session()

        restored = BookingSession.from_progress("salon-1", session.to_progress())

        assert restored.step == session.step
        assert restored.draft == session.draft

    def test_unknown_step_rejected(self):
        with pytest.raises(ValueError):
            BookingSession.from_progress("salon-1", {"draft": {}, "step": "payment"})

    def test_step_without_required_selections_rejected(self):
        with pytest.raises(ValueError, match="requires"):
            BookingSession.from_progress("salon-1", {"draft": {"selectedService": "X"}, "step": "time"})

    def test_success_is_not_resumable(self):
        progress = mark_success(_confirm_session(), "booking-1").to_progress()

        with pytest.raises(ValueError):
            BookingSession.from_progress("salon-1", progress)
