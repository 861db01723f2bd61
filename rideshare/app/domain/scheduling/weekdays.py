"""
Weekday scheduling helpers.

Used to materialize subscription rides, to bulk-create assignments and to
roll recurring assignments forward. All ranges are calendar days (UTC).
"""

import calendar
from datetime import date, datetime, timedelta
from typing import Iterable, Iterator, List, Optional

from rideshare.app.models.subscription_enums import PlanType

WEEKDAY_NAMES = [name.lower() for name in calendar.day_name]  # monday .. sunday

_ABBREVIATIONS = {name[:3]: name for name in WEEKDAY_NAMES}


def normalize_weekdays(days: Iterable[str]) -> List[str]:
    """
    Normalize weekday names to lowercase full names in Monday-first order.
    
    Accepts "Monday", "mon", " TUESDAY ". Duplicates are dropped.
    
    Raises:
        ValueError: for anything that is not a weekday
    """
    normalized = set()
    for raw in days:
        key = str(raw).strip().lower()
        if key in WEEKDAY_NAMES:
            normalized.add(key)
        elif key in _ABBREVIATIONS:
            normalized.add(_ABBREVIATIONS[key])
        else:
            raise ValueError(f"Unknown weekday: {raw!r}")
    return [name for name in WEEKDAY_NAMES if name in normalized]


def weekday_name(day: date) -> str:
    return WEEKDAY_NAMES[day.weekday()]


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every day in the half-open range [start, end)."""
    current = start
    while current < end:
        yield current
        current += timedelta(days=1)


def matching_days(start: date, end: date, days: Iterable[str]) -> List[date]:
    """Days in [start, end) whose weekday is in `days`; every day when `days` is empty."""
    wanted = set(normalize_weekdays(days))
    return [day for day in iter_days(start, end) if not wanted or weekday_name(day) in wanted]


def next_matching_day(after: date, days: Iterable[str], until: Optional[date] = None) -> Optional[date]:
    """
    First day strictly after `after` whose weekday is in `days`.
    
    Returns None when `days` is empty or the day would fall after `until`
    (inclusive bound).
    """
    wanted = set(normalize_weekdays(days))
    if not wanted:
        return None
    candidate = after + timedelta(days=1)
    # A match always exists within a week
    for _ in range(7):
        if until is not None and candidate > until:
            return None
        if weekday_name(candidate) in wanted:
            return candidate
        candidate += timedelta(days=1)
    return None


def add_months(day: date, months: int) -> date:
    """Add calendar months, clamping the day to the target month's length."""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def plan_end_date(start: date, plan_type: PlanType) -> date:
    """Exclusive end of a subscription period starting on `start`."""
    if plan_type == PlanType.DAILY:
        return start + timedelta(days=1)
    if plan_type == PlanType.WEEKLY:
        return start + timedelta(days=7)
    return add_months(start, 1)


def normalize_clock_time(value: str) -> str:
    """
    Normalize a wall-clock time to zero-padded 24h "HH:MM".
    
    Accepts "7:05", "07:05", "08:00 AM", "8:30pm".
    
    Raises:
        ValueError: for anything else
    """
    text = str(value).strip().upper().replace(" ", "")
    for fmt in ("%H:%M", "%I:%M%p"):
        try:
            return datetime.strptime(text, fmt).strftime("%H:%M")
        except ValueError:
            continue
    raise ValueError(f"Invalid time: {value!r} (expected HH:MM or HH:MM AM/PM)")
