from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DD" is midnight UTC
    - "YYYY-MM-DDTHH:MM" (naive) is interpreted as UTC
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    # Accept trailing Z
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)

    if dt.tzinfo is None:
        return dt

    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def day_window(
    start: Optional[str | date | datetime],
    end: Optional[str | date | datetime],
) -> tuple[Optional[datetime], Optional[datetime]]:
    """
    Resolve a reporting window to inclusive UTC-naive bounds.

    Date-only bounds cover whole days: the start is pulled back to 00:00 and
    the end is pushed to the last microsecond of its day. Full datetimes are
    used as given.
    """
    return _bound(start, is_end=False), _bound(end, is_end=True)


def _bound(value, *, is_end: bool) -> Optional[datetime]:
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        return parse_iso_datetime(value.isoformat()) if value.tzinfo else value

    if isinstance(value, date):
        day = value
    else:
        s = value.strip()
        if "T" in s or " " in s:
            return parse_iso_datetime(s)
        day = date.fromisoformat(s)

    if is_end:
        return datetime.combine(day, time.max)
    return datetime.combine(day, time.min)


def days_between(earlier: datetime, later: datetime) -> float:
    return (later - earlier) / timedelta(days=1)
