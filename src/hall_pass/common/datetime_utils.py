from __future__ import annotations

from datetime import date, datetime, timedelta


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def week_start(now: datetime) -> datetime:
    """Most recent Monday 00:00 (local, inclusive) at or before ``now``.

    Sunday counts as the last day of the week, so Sunday 23:59 still belongs
    to the week that started six days earlier.
    """
    monday = now.date() - timedelta(days=now.weekday())
    return datetime.combine(monday, datetime.min.time())


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """``[00:00, next day 00:00)`` of a calendar day."""
    start = datetime.combine(day, datetime.min.time())
    return start, start + timedelta(days=1)


def format_mm_ss(seconds: int) -> str:
    """Format a duration as ``m:ss`` (minutes are not wrapped into hours)."""
    seconds = max(0, int(seconds))
    return f"{seconds // 60}:{seconds % 60:02d}"
