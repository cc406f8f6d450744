"""
Per-recipient throttle for outbound push notifications.

Two counters per recipient bound message volume:
- a floor between consecutive sends (burst control)
- a ceiling on sends per UTC calendar day

State lives in process memory only. Losing it on restart is acceptable;
the worst case is a recipient receiving a few extra notifications.

Design decisions:
- Fixed floor plus daily ceiling instead of a sliding window: O(1) per check
- Daily counter rolls over lazily on the next send, no background timer
- One coarse threading.Lock guards both maps; it is never held across I/O
"""

import threading
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Optional

from app.core.config import settings


@dataclass
class _RecipientState:
    last_sent_at: Optional[datetime] = None
    day: Optional[date] = None
    day_count: int = 0


def _as_utc(now: datetime) -> datetime:
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


class NotificationRateLimiter:
    """
    Burst and daily limits keyed by recipient.

    ``allow`` and ``record`` are separate calls so that only successful
    deliveries count against the limits. Two dispatches racing between
    ``allow`` and ``record`` may both go out; that only softens the limit.
    """

    def __init__(self, interval_seconds: int = 30, daily_cap: int = 100):
        self._interval = timedelta(seconds=interval_seconds)
        self._daily_cap = daily_cap
        self._recipients: Dict[Any, _RecipientState] = {}
        self._lock = threading.Lock()

    @property
    def interval(self) -> timedelta:
        return self._interval

    @property
    def daily_cap(self) -> int:
        return self._daily_cap

    def allow(self, recipient_key, now: Optional[datetime] = None) -> bool:
        """Return True if a notification may be sent to the recipient now."""
        now = _as_utc(now or datetime.now(timezone.utc))
        with self._lock:
            state = self._recipients.get(recipient_key)
            if state is None:
                return True

            if state.last_sent_at is not None and now - state.last_sent_at < self._interval:
                return False

            if state.day == now.date() and state.day_count >= self._daily_cap:
                return False

            return True

    def record(self, recipient_key, now: Optional[datetime] = None) -> None:
        """Count a delivered notification against the recipient's limits."""
        now = _as_utc(now or datetime.now(timezone.utc))
        with self._lock:
            state = self._recipients.setdefault(recipient_key, _RecipientState())
            state.last_sent_at = now
            if state.day == now.date():
                state.day_count += 1
            else:
                state.day = now.date()
                state.day_count = 1

    def daily_count(self, recipient_key, on: date) -> int:
        """Sends recorded for the recipient on the given UTC date."""
        with self._lock:
            state = self._recipients.get(recipient_key)
            if state is None or state.day != on:
                return 0
            return state.day_count

    def reset(self) -> None:
        """Forget all recipients (process shutdown, tests)."""
        with self._lock:
            self._recipients.clear()

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "tracked_recipients": len(self._recipients),
                "interval_seconds": self._interval.total_seconds(),
                "daily_cap": self._daily_cap,
            }


# Process-wide limiter shared by every dispatcher
notification_limiter = NotificationRateLimiter(
    interval_seconds=settings.NOTIFICATION_INTERVAL_SECONDS,
    daily_cap=settings.NOTIFICATION_DAILY_CAP,
)
