"""
Unit tests for weekday and plan period helpers.
"""

from datetime import date

import pytest

from rideshare.app.domain.scheduling.weekdays import (
    add_months, matching_days, next_matching_day, normalize_clock_time,
    normalize_weekdays, plan_end_date
)
from rideshare.app.models.subscription_enums import PlanType


def test_normalize_weekdays_accepts_abbreviations_and_orders():
    assert normalize_weekdays(["Fri", " MONDAY ", "wed", "monday"]) == ["monday", "wednesday", "friday"]


def test_normalize_weekdays_rejects_unknown():
    with pytest.raises(ValueError):
        normalize_weekdays(["funday"])


def test_matching_days_half_open():
    # 2024-01-01 is a Monday
    days = matching_days(date(2024, 1, 1), date(2024, 1, 8), ["monday", "wednesday"])
    assert days == [date(2024, 1, 1), date(2024, 1, 3)]


def test_matching_days_empty_means_every_day():
    assert len(matching_days(date(2024, 1, 1), date(2024, 1, 4), [])) == 3


def test_next_matching_day_respects_until():
    assert next_matching_day(date(2024, 1, 1), ["wednesday"]) == date(2024, 1, 3)
    assert next_matching_day(date(2024, 1, 1), ["wednesday"], until=date(2024, 1, 3)) == date(2024, 1, 3)
    assert next_matching_day(date(2024, 1, 1), ["wednesday"], until=date(2024, 1, 2)) is None
    assert next_matching_day(date(2024, 1, 1), []) is None


def test_plan_periods():
    start = date(2024, 1, 31)
    assert plan_end_date(start, PlanType.DAILY) == date(2024, 2, 1)
    assert plan_end_date(start, PlanType.WEEKLY) == date(2024, 2, 7)
    # Clamped to the end of February in a leap year
    assert plan_end_date(start, PlanType.MONTHLY) == date(2024, 2, 29)


def test_add_months_rolls_year():
    assert add_months(date(2023, 12, 15), 1) == date(2024, 1, 15)


@pytest.mark.parametrize("raw,expected", [
    ("8:05", "08:05"),
    ("08:00 AM", "08:00"),
    ("8:30pm", "20:30"),
    ("12:00 AM", "00:00"),
    ("17:45", "17:45"),
])
def test_normalize_clock_time(raw, expected):
    assert normalize_clock_time(raw) == expected


def test_normalize_clock_time_rejects_garbage():
    with pytest.raises(ValueError):
        normalize_clock_time("25:00")
