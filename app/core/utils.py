"""General utility functions."""
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_utc(dt: datetime) -> datetime:
    """Convert datetime to UTC timezone."""
    if dt.tzinfo is None:
        # Assume UTC if no timezone (SQLite drops tzinfo on round-trip)
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def has_passed(deadline: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """True if deadline is set and lies strictly before now."""
    if deadline is None:
        return False
    now = to_utc(now) if now else utcnow()
    return to_utc(deadline) < now


def isoformat(dt: Optional[datetime]) -> Optional[str]:
    return to_utc(dt).isoformat() if dt else None
