"""
Resolve weekly business hours into concrete bookable calendar days.
"""

from typing import List

from pendulum import Date

from .models import BusinessHours

DEFAULT_LOOKAHEAD_DAYS = 14


def get_available_days(
    business_hours: BusinessHours | None,
    window_start: Date,
    week_offset: int = 0,
    lookahead_days: int = DEFAULT_LOOKAHEAD_DAYS,
) -> List[Date]:
    """
    List the open days inside a rolling lookahead window.

    The window starts ``week_offset`` weeks after ``window_start`` and spans
    ``lookahead_days`` days. Days whose weekday is missing or marked closed
    are skipped. Without a configuration no day is bookable.

    Args:
        business_hours: Weekly hours, or None when the salon has none
        window_start: First day of the unshifted window
        week_offset: Number of weeks to shift the window forward (or back)
        lookahead_days: Length of the window in days

    Returns:
        Ordered list of open dates
    """
    if business_hours is None:
        return []

    first_day = window_start.add(weeks=week_offset)

    days: List[Date] = []
    for offset in range(lookahead_days):
        day = first_day.add(days=offset)
        if business_hours.is_open_on(day):
            days.append(day)

    return days
