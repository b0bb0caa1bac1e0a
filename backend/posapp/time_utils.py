from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

# All timestamps are stored as naive UTC; the API renders them with a trailing Z.


def utcnow() -> datetime:
    """Current time as naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _as_naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    ISO-8601 text -> naive UTC datetime; blank input gives None.

    Offsets (including a Z suffix) are converted to UTC; text without an
    offset is taken to be UTC already. Raises ValueError on malformed input.
    """
    text = (value or "").strip()
    if not text:
        return None
    if text[-1] in "zZ":
        text = text[:-1] + "+00:00"
    return _as_naive_utc(datetime.fromisoformat(text))


def parse_date(value: Optional[str | date]) -> Optional[date]:
    """Accept 'YYYY-MM-DD' (or a full ISO datetime) and return the calendar date."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = value.strip()
    if not text:
        return None
    if len(text) == 10:
        return date.fromisoformat(text)
    return parse_iso_datetime(text).date()


def day_bounds(start: date, end: date) -> tuple[datetime, datetime]:
    """
    Inclusive calendar-day range -> half-open datetime range [start 00:00, end+1 00:00).
    """
    return (
        datetime.combine(start, time.min),
        datetime.combine(end + timedelta(days=1), time.min),
    )


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Render as 'YYYY-MM-DDTHH:MM:SSZ' (seconds precision); naive input counts as UTC."""
    if dt is None:
        return None
    stamp = _as_naive_utc(dt).replace(microsecond=0)
    return stamp.isoformat() + "Z"
