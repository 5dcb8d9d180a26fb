"""
Calendar-day helpers.

All engine date math is day-granular; time of day never matters. Missing
dates are treated as infinitely far away so comparisons stay total.
"""

from __future__ import annotations

import math
from datetime import date, datetime, timedelta


def _as_date(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def days_since(when: date | None, today: date) -> float:
    """
    Days elapsed since a past date.

    Args:
        when: Past date, or None if the event never happened
        today: Reference day

    Returns:
        Whole days as float, math.inf when `when` is None
    """
    if when is None:
        return math.inf
    return float((_as_date(today) - _as_date(when)).days)


def days_until(when: date | None, today: date) -> float:
    """Days until a future date (negative if it has passed), inf if None."""
    if when is None:
        return math.inf
    return float((_as_date(when) - _as_date(today)).days)


def tomorrow_weekday(today: date) -> int:
    """Day-of-week index of tomorrow, Monday = 0."""
    return (_as_date(today) + timedelta(days=1)).weekday()
