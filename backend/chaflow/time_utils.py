# Overview: UTC clock and ISO-8601 helpers shared by models, validation and reporting.

from __future__ import annotations

import calendar
from datetime import date, datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string into a UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DD" is midnight UTC of that day
    - an offset or trailing "Z" is converted to UTC and dropped

    Raises ValueError for anything else.
    """
    s = (value or "").strip()
    if not s:
        return None
    if s[-1] in "zZ":
        s = f"{s[:-1]}+00:00"

    parsed = datetime.fromisoformat(s)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """Parse "YYYY-MM-DD" (or a full datetime) into a date; None/blank -> None."""
    s = (value or "").strip()
    if not s:
        return None
    if len(s) == 10:
        return date.fromisoformat(s)
    return parse_iso_datetime(s).date()


def month_bounds(day: date) -> tuple[date, date]:
    """First and last calendar day of the month containing `day`."""
    last = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """ISO-8601 at second precision with a trailing 'Z'; naive values are UTC."""
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.strftime("%Y-%m-%dT%H:%M:%SZ")
