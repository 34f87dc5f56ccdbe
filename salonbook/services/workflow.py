"""
Booking workflow service: drives one customer's booking session.

``BookingWorkflow`` owns the ``BookingSession`` and applies the pure
transitions from ``domain.workflow`` to it. Around them it adds what needs
collaborators: catalog and availability checks, auto-advance timers,
progress persistence and the final commit against a fresh booking set.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from ..domain.exceptions import (
    BackendError,
    BookingValidationError,
    CommitInProgressError,
    InvalidTransitionError,
    SalonBookingError,
    SlotUnavailableError,
)
from ..domain.models import ANY_STAFF
from ..domain.workflow import (
    BookingSession,
    DateSelected,
    ServiceSelected,
    StaffSelected,
    Step,
    TimeSelected,
    Transition,
    WorkflowEvent,
    apply_event,
    check_commit_ready,
    go_back,
    mark_success,
    move_to,
)
from .availability import AvailabilityService, SalonBackendProtocol
from .progress_store import ProgressStore
from .scheduler import CancellationToken, SchedulerProtocol

logger = logging.getLogger(__name__)

DEFAULT_AUTO_ADVANCE_DELAY = 0.3
DEFAULT_COMMIT_TIMEOUT = 15.0


@dataclass(frozen=True)
class CommitResult:
    """Outcome of a commit attempt."""
    booking_id: str | None = None
    error: SalonBookingError | None = None

    @property
    def succeeded(self) -> bool:
        return self.booking_id is not None and self.error is None

    @property
    def retryable(self) -> bool:
        return self.error is not None and self.error.retryable


class BookingWorkflow:
    """
    Orchestrates the booking steps for a single session.

    Steps advance on their own after a selection; the delay runs on the
    injected scheduler so tests can drive it with a virtual clock. While a
    commit is in flight no transition is accepted.
    """

    def __init__(
        self,
        availability: AvailabilityService,
        backend: SalonBackendProtocol,
        progress_store: ProgressStore,
        scheduler: SchedulerProtocol,
        auto_advance_delay: float = DEFAULT_AUTO_ADVANCE_DELAY,
        commit_timeout: float = DEFAULT_COMMIT_TIMEOUT,
    ) -> None:
        self.availability = availability
        self._backend = backend
        self._progress_store = progress_store
        self._scheduler = scheduler
        self.auto_advance_delay = auto_advance_delay
        self.commit_timeout = commit_timeout

        self.session = BookingSession(salon_id=availability.salon_id)
        self._pending_advance: CancellationToken | None = None
        self._commit_task: asyncio.Future | None = None
        self._result: CommitResult | None = None

    @property
    def salon_id(self) -> str:
        return self.availability.salon_id

    @property
    def committing(self) -> bool:
        return self._commit_task is not None and not self._commit_task.done()

    @property
    def has_pending_advance(self) -> bool:
        return self._pending_advance is not None and not self._pending_advance.cancelled

    async def start(self) -> BookingSession:
        """
        Load salon data and resume stored progress when it is still usable.
        """
        await self.availability.load()
        hide_staff = self.availability.salon_config.hide_staff_selection

        restored = self._progress_store.restore(self.salon_id, hide_staff_selection=hide_staff)
        if restored is not None and not self._is_resumable(restored):
            logger.info("Stored booking progress for salon %s no longer matches the catalog", self.salon_id)
            restored = None

        self.session = restored or BookingSession(
            salon_id=self.salon_id,
            hide_staff_selection=hide_staff,
        )
        self._result = None

        if self.session.draft.date is not None and self.session.step != Step.DATE:
            await self.availability.load_day(self.session.draft.date)

        return self.session

    async def advance(self, event: WorkflowEvent) -> BookingSession:
        """
        Apply a user selection and schedule the next step.

        Raises:
            CommitInProgressError: While a commit is running
            InvalidTransitionError: If the event does not belong to the current step
            BookingValidationError: If the selection is not allowed
            SlotUnavailableError: If the chosen time or staff member is taken
            BackendError: If the bookings of a selected date cannot be fetched
        """
        self._ensure_not_committing()
        transition = apply_event(self.session, event)
        self._check_selection(event)

        self._cancel_pending_advance()
        self._set_session(transition.session)

        if isinstance(event, DateSelected):
            await self.availability.load_day(event.date)
            if self.session.step != Step.DATE or self.session.draft.date != event.date:
                # User moved on while the day was loading
                return self.session

        self._schedule_advance(transition)
        return self.session

    def go_back(self) -> BookingSession:
        """
        Move to the previous step; from the first step this exits the workflow.

        Raises:
            CommitInProgressError: While a commit is running
            InvalidTransitionError: From the terminal step
        """
        self._ensure_not_committing()
        self._cancel_pending_advance()

        session = go_back(self.session)
        if session.exited:
            # Abandoned progress is left to expire
            self.session = session
        else:
            self._set_session(session)
        return self.session

    def available_time_slots(self) -> list:
        """Bookable slot starts for the selected date (empty until one is chosen)."""
        draft = self.session.draft
        if draft.date is None:
            return []
        return self.availability.available_time_slots(draft, draft.date)

    async def commit(self) -> CommitResult:
        """
        Re-check the chosen slot against fresh bookings and submit it.

        Concurrent calls share the attempt in flight; after success the
        stored result is returned without submitting again.

        Raises:
            InvalidTransitionError: If the session is not at the confirm step
        """
        if self._result is not None and self._result.succeeded:
            return self._result

        if self.committing:
            return await self._commit_task

        if self.session.step != Step.CONFIRM or self.session.exited:
            raise InvalidTransitionError(f"Cannot commit from step {self.session.step.value!r}")

        self._cancel_pending_advance()
        self._commit_task = asyncio.ensure_future(self._run_commit())
        return await self._commit_task

    async def _run_commit(self) -> CommitResult:
        session = self.session

        try:
            check_commit_ready(session)
            booking_id = await asyncio.wait_for(
                self._recheck_and_submit(session),
                timeout=self.commit_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Booking commit for salon %s timed out", self.salon_id)
            return CommitResult(error=BackendError("Submitting the booking timed out. Please try again."))
        except SalonBookingError as exc:
            logger.warning("Booking commit for salon %s failed: %s", self.salon_id, exc)
            return CommitResult(error=exc)

        self.session = mark_success(session, booking_id)
        self._result = CommitResult(booking_id=booking_id)
        logger.info("Created booking %s for salon %s", booking_id, self.salon_id)
        self._progress_store.clear(self.salon_id)
        return self._result

    async def _recheck_and_submit(self, session: BookingSession) -> str:
        draft = session.draft
        await self.availability.load_day(draft.date)

        staff_id = None if draft.staff == ANY_STAFF else draft.staff
        if not self.availability.is_slot_available(draft, draft.date, draft.time, staff_id):
            raise SlotUnavailableError(
                "This time is no longer available. Please choose another slot."
            )

        start = draft.slot_start(self.availability.settings.timezone)
        return await self._backend.submit_booking(self.salon_id, draft, start)

    def _check_selection(self, event: WorkflowEvent) -> None:
        draft = self.session.draft

        if isinstance(event, ServiceSelected):
            service = self.availability.find_service(event.service)
            if service is None or not service.active:
                raise BookingValidationError(f"Unknown service: {event.service}")

        elif isinstance(event, DateSelected):
            if not self.availability.is_bookable_day(event.date):
                raise BookingValidationError(f"The salon is closed on {event.date.isoformat()}")

        elif isinstance(event, TimeSelected):
            if event.time not in self.availability.get_time_slots_for_day(draft.date, draft.service):
                raise BookingValidationError(f"{event.time} is outside opening hours")
            if not self.availability.is_slot_available(draft, draft.date, event.time):
                raise SlotUnavailableError(f"{event.time} is no longer available")

        elif isinstance(event, StaffSelected):
            staff_id = event.staff_id or ANY_STAFF
            if staff_id != ANY_STAFF and not any(
                employee.id == staff_id and employee.can_perform(draft.service)
                for employee in self.availability.staff
            ):
                raise BookingValidationError("This staff member does not offer the selected service")
            if not self.availability.is_slot_available(draft, draft.date, draft.time, staff_id):
                raise SlotUnavailableError("This staff member is not available at the selected time")

    def _schedule_advance(self, transition: Transition) -> None:
        target = transition.advance_to
        if target is None:
            return

        if transition.immediate or self.auto_advance_delay <= 0:
            self._set_session(move_to(self.session, target))
            return

        expected_step = self.session.step

        def fire() -> None:
            self._pending_advance = None
            if self.committing or self.session.exited or self.session.step != expected_step:
                return
            self._set_session(move_to(self.session, target))

        self._pending_advance = self._scheduler.call_later(self.auto_advance_delay, fire)

    def _cancel_pending_advance(self) -> None:
        if self._pending_advance is not None:
            self._pending_advance.cancel()
            self._pending_advance = None

    def _set_session(self, session: BookingSession) -> None:
        self.session = session
        if not session.exited and not session.is_terminal:
            self._progress_store.save(session)

    def _ensure_not_committing(self) -> None:
        if self.committing:
            raise CommitInProgressError("A booking is being submitted, please wait.")

    def _is_resumable(self, session: BookingSession) -> bool:
        draft = session.draft
        if draft.service is not None:
            service = self.availability.find_service(draft.service)
            if service is None or not service.active:
                return False
        if draft.staff not in (None, ANY_STAFF):
            return any(employee.id == draft.staff for employee in self.availability.staff)
        return True
