# src/taskion/timestamps.py

from __future__ import annotations

from datetime import date, datetime, timezone


def utc_now_iso() -> str:
    """Current time as an RFC3339 string in UTC (what the store writes)."""
    return datetime.now(timezone.utc).isoformat()


def local_today_iso() -> str:
    return date.today().isoformat()


def parse_timestamp(raw: str | None) -> datetime | None:
    """
    Parse an RFC3339-like string into an aware UTC datetime.

    Returns None when the value is empty, unparsable, or carries no offset:
    a naive value is not an absolute instant and cannot be ordered against
    one written by another clock.
    """
    if not raw:
        return None
    try:
        dt = datetime.fromisoformat(raw.strip())
    except ValueError:
        return None
    if dt.tzinfo is None or dt.utcoffset() is None:
        return None
    return dt.astimezone(timezone.utc)
