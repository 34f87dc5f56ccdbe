"""
Booking workflow state machine.

The workflow walks a customer through seven ordered steps. All functions in
this module are pure: they take a ``BookingSession`` and return a new one,
so the owner of the session decides when (and whether) to apply a result.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Mapping

from pendulum import Date

from .exceptions import BookingValidationError, InvalidTransitionError
from .models import ANY_STAFF, BookingDraft, CustomerInfo, parse_clock


class Step(str, Enum):
    SERVICE = "service"
    DATE = "date"
    TIME = "time"
    STAFF = "staff"
    INFO = "info"
    CONFIRM = "confirm"
    SUCCESS = "success"


FORWARD_ORDER = tuple(Step)


@dataclass(frozen=True)
class ServiceSelected:
    service: str


@dataclass(frozen=True)
class DateSelected:
    date: Date


@dataclass(frozen=True)
class TimeSelected:
    time: str


@dataclass(frozen=True)
class StaffSelected:
    staff_id: str


@dataclass(frozen=True)
class InfoSubmitted:
    name: str
    phone: str


WorkflowEvent = ServiceSelected | DateSelected | TimeSelected | StaffSelected | InfoSubmitted

# Step at which each event is accepted
EVENT_STEPS = {
    ServiceSelected: Step.SERVICE,
    DateSelected: Step.DATE,
    TimeSelected: Step.TIME,
    StaffSelected: Step.STAFF,
    InfoSubmitted: Step.INFO,
}


@dataclass(frozen=True)
class BookingSession:
    """
    Explicit owner of one customer's workflow state.
    """
    salon_id: str
    step: Step = Step.SERVICE
    draft: BookingDraft = field(default_factory=BookingDraft)
    hide_staff_selection: bool = False
    exited: bool = False
    booking_id: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.step == Step.SUCCESS

    def to_progress(self) -> Dict[str, Any]:
        """Serialized ``{draft, step}`` shape kept by the progress store."""
        return {"draft": self.draft.to_dict(), "step": self.step.value}

    @classmethod
    def from_progress(
        cls,
        salon_id: str,
        data: Mapping[str, Any],
        hide_staff_selection: bool = False,
    ) -> "BookingSession":
        """
        Rebuild a session from stored progress.

        Raises:
            ValueError: If the data is malformed, names an unknown step, or
                the step is not reachable with the stored selections
        """
        if not isinstance(data, Mapping):
            raise ValueError("Progress must be a mapping")

        step = Step(data.get("step"))
        if step == Step.SUCCESS:
            raise ValueError("A finished booking cannot be resumed")

        session = cls(
            salon_id=salon_id,
            step=step,
            draft=BookingDraft.from_dict(data.get("draft") or {}),
            hide_staff_selection=hide_staff_selection,
        )

        missing = missing_selections(session.draft, step, hide_staff_selection)
        if missing:
            raise ValueError(f"Step {step.value!r} requires {', '.join(missing)}")

        return session


@dataclass(frozen=True)
class Transition:
    """
    Result of applying an event.

    ``advance_to`` is the step the session should move to next;
    ``immediate`` tells whether that happens now or after the auto-advance
    delay.
    """
    session: BookingSession
    advance_to: Step | None = None
    immediate: bool = False


def apply_event(session: BookingSession, event: WorkflowEvent) -> Transition:
    """
    Record a user decision on the draft.

    Raises:
        InvalidTransitionError: If the event does not belong to the current step
        BookingValidationError: If contact details are incomplete
    """
    expected = EVENT_STEPS.get(type(event))
    if expected is None:
        raise InvalidTransitionError(f"Unknown event: {event!r}")
    if session.exited or session.step != expected:
        raise InvalidTransitionError(
            f"{type(event).__name__} is not accepted at step {session.step.value!r}"
        )

    draft = session.draft

    if isinstance(event, ServiceSelected):
        draft = replace(draft, service=event.service, time=None, staff=None)
        return Transition(replace(session, draft=draft), advance_to=Step.DATE)

    if isinstance(event, DateSelected):
        draft = replace(draft, date=event.date, time=None)
        return Transition(replace(session, draft=draft), advance_to=Step.TIME)

    if isinstance(event, TimeSelected):
        try:
            parse_clock(event.time)
        except ValueError as exc:
            raise BookingValidationError(str(exc)) from exc
        if session.hide_staff_selection:
            draft = replace(draft, time=event.time, staff=ANY_STAFF)
            return Transition(replace(session, draft=draft), advance_to=Step.INFO)
        draft = replace(draft, time=event.time)
        return Transition(replace(session, draft=draft), advance_to=Step.STAFF)

    if isinstance(event, StaffSelected):
        draft = replace(draft, staff=event.staff_id or ANY_STAFF)
        return Transition(replace(session, draft=draft), advance_to=Step.INFO)

    customer = CustomerInfo(name=event.name.strip(), phone=event.phone.strip())
    if not customer.is_complete():
        raise BookingValidationError("Please enter your name and phone number.")
    draft = replace(draft, customer=customer)
    return Transition(replace(session, draft=draft), advance_to=Step.CONFIRM, immediate=True)


def move_to(session: BookingSession, step: Step) -> BookingSession:
    return replace(session, step=step)


def previous_step(step: Step, hide_staff_selection: bool = False) -> Step | None:
    """Step before ``step`` in forward order; None means leaving the workflow."""
    index = FORWARD_ORDER.index(step)
    if index == 0:
        return None

    previous = FORWARD_ORDER[index - 1]
    if previous == Step.STAFF and hide_staff_selection:
        previous = Step.TIME
    return previous


def go_back(session: BookingSession) -> BookingSession:
    """
    Move the step pointer back; selections are kept.

    Raises:
        InvalidTransitionError: From the terminal step or after exiting
    """
    if session.is_terminal or session.exited:
        raise InvalidTransitionError(f"Cannot go back from step {session.step.value!r}")

    previous = previous_step(session.step, session.hide_staff_selection)
    if previous is None:
        return replace(session, exited=True)
    return replace(session, step=previous)


def missing_selections(draft: BookingDraft, step: Step, hide_staff_selection: bool = False) -> list:
    """Names of the selections a session at ``step`` should already have."""
    position = FORWARD_ORDER.index(step)
    required = [
        (Step.DATE, "service", draft.service),
        (Step.TIME, "date", draft.date),
        (Step.STAFF, "time", draft.time),
        (Step.INFO, "staff", draft.staff),
    ]

    missing = [
        name for needed_from, name, value in required
        if position >= FORWARD_ORDER.index(needed_from) and not value
    ]
    if position >= FORWARD_ORDER.index(Step.CONFIRM) and not draft.customer.is_complete():
        missing.append("customer info")

    if hide_staff_selection and step == Step.STAFF:
        missing.append("visible staff step")

    return missing


def check_commit_ready(session: BookingSession) -> None:
    """
    Raises:
        InvalidTransitionError: If the session is not at the confirm step
        BookingValidationError: If a selection is missing
    """
    if session.step != Step.CONFIRM or session.exited:
        raise InvalidTransitionError(f"Cannot commit from step {session.step.value!r}")

    missing = missing_selections(session.draft, Step.CONFIRM, session.hide_staff_selection)
    if missing:
        raise BookingValidationError(f"Missing selection: {', '.join(missing)}")


def mark_success(session: BookingSession, booking_id: str) -> BookingSession:
    return replace(session, step=Step.SUCCESS, booking_id=booking_id)
