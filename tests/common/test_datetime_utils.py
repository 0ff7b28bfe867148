from __future__ import annotations

from datetime import datetime

from hall_pass.common.datetime_utils import format_mm_ss, week_start


def test_week_starts_monday_midnight():
    assert week_start(datetime(2026, 3, 11, 10, 0)) == datetime(2026, 3, 9, 0, 0)


def test_monday_midnight_is_its_own_week_start():
    assert week_start(datetime(2026, 3, 9, 0, 0)) == datetime(2026, 3, 9, 0, 0)


def test_sunday_late_evening_belongs_to_previous_monday():
    assert week_start(datetime(2026, 3, 15, 23, 59)) == datetime(2026, 3, 9, 0, 0)


def test_next_monday_opens_new_week():
    assert week_start(datetime(2026, 3, 16, 0, 0, 1)) == datetime(2026, 3, 16, 0, 0)


def test_format_mm_ss():
    assert format_mm_ss(0) == "0:00"
    assert format_mm_ss(65) == "1:05"
    assert format_mm_ss(3725) == "62:05"
    assert format_mm_ss(-4) == "0:00"
