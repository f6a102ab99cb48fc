from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


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


def to_iso_date(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """
    Parse "YYYY-MM-DD" into a date.

    - None / "" -> None
    - Raises ValueError for anything else that is not a calendar date
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None
    return date.fromisoformat(s)


def format_note_time(dt: datetime) -> str:
    """Timestamp prefix used by the append-only stage and job note logs."""
    return dt.strftime("%Y-%m-%d %H:%M:%S")


def minutes_between(start: Optional[datetime], end: datetime) -> Optional[int]:
    """
    Whole minutes elapsed from start to end (floored), None without a start.

    Aware datetimes are normalized to naive UTC so values read back from
    SQLite compare with values produced by utcnow().
    """
    if start is None:
        return None
    if start.tzinfo is not None:
        start = start.astimezone(timezone.utc).replace(tzinfo=None)
    if end.tzinfo is not None:
        end = end.astimezone(timezone.utc).replace(tzinfo=None)
    return max(0, int((end - start).total_seconds() // 60))
