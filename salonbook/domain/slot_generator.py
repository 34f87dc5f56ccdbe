"""
Generate candidate appointment start times for a single day.
"""

from datetime import time
from typing import Iterator, List

from .models import DayHours, format_clock

DEFAULT_SLOT_MINUTES = 30


class SlotSequence:
    """
    Lazy, finite and restartable sequence of ``"HH:MM"`` slot starts.

    Starts run from ``open`` in steps of ``slot_minutes`` while the start is
    strictly before ``close``. When ``service_minutes`` is given together with
    ``must_end_by_close``, a slot is only produced if it also finishes by
    ``close``. A closed day yields nothing.
    """

    def __init__(
        self,
        hours: DayHours | None,
        slot_minutes: int = DEFAULT_SLOT_MINUTES,
        service_minutes: int | None = None,
        must_end_by_close: bool = False,
    ):
        if slot_minutes <= 0:
            raise ValueError(f"slot_minutes must be positive, got {slot_minutes}")

        self.hours = hours
        self.slot_minutes = slot_minutes
        self.service_minutes = service_minutes
        self.must_end_by_close = must_end_by_close

    def __iter__(self) -> Iterator[str]:
        if self.hours is None or not self.hours.is_open:
            return

        current = _minutes_of(self.hours.open)
        close = _minutes_of(self.hours.close)
        last_end = close if (self.must_end_by_close and self.service_minutes) else None

        while current < close:
            if last_end is not None and current + self.service_minutes > last_end:
                break
            yield format_clock(time(hour=current // 60, minute=current % 60))
            current += self.slot_minutes

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __bool__(self) -> bool:
        return any(True for _ in self)


def get_time_slots_for_day(
    hours: DayHours | None,
    slot_minutes: int = DEFAULT_SLOT_MINUTES,
    service_minutes: int | None = None,
    must_end_by_close: bool = False,
) -> List[str]:
    """Materialize the slot starts for a day's hours."""
    return list(
        SlotSequence(
            hours,
            slot_minutes=slot_minutes,
            service_minutes=service_minutes,
            must_end_by_close=must_end_by_close,
        )
    )


def _minutes_of(value: time) -> int:
    return value.hour * 60 + value.minute
