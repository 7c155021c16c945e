"""Timestamp helpers shared by the models and the legacy importer."""

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (SQLite stores no offset)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_iso(dt: Optional[datetime]) -> Optional[str]:
    """Render a naive UTC datetime as e.g. 2024-05-01T10:00:00.000Z."""
    if dt is None:
        return None
    return dt.isoformat(timespec="milliseconds") + "Z"


def parse_timestamp(ts_str) -> Optional[datetime]:
    """
    Parse an ISO 8601 timestamp into a naive UTC datetime.
    Returns None if the value is missing or unparseable.
    """
    if not ts_str or not isinstance(ts_str, str):
        return None
    try:
        if ts_str.endswith("Z"):
            ts_str = ts_str[:-1] + "+00:00"
        dt = datetime.fromisoformat(ts_str)
        if dt.tzinfo is not None:
            dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
        return dt
    except ValueError:
        return None
