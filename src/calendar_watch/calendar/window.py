"""Rolling time window and snapshot retention policy.

All civil-time arithmetic uses a fixed UTC offset, so results never depend
on the host timezone database.

## Window vs. retention

``window()`` bounds only the one-time full scan (local midnight today up to
``window_days`` later). Snapshot membership is decided by ``is_future``
alone: an event that entered the snapshot through incremental sync stays
until its end passes, even if it starts beyond the original horizon.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from calendar_watch.calendar.normalizer import parse_event_time
from calendar_watch.models.event import NormalizedEvent


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class TimeWindowPolicy:
    """Civil-time helpers for a single fixed UTC offset.

    Example:
        ```python
        policy = TimeWindowPolicy(utc_offset_hours=9, window_days=14)
        window_start, window_end = policy.window(utc_now())
        policy.is_future(event, utc_now())
        ```
    """

    def __init__(self, utc_offset_hours: float = 9, window_days: int = 14):
        self.utc_offset = timedelta(hours=utc_offset_hours)
        self.tz = timezone(self.utc_offset)
        self.window_days = window_days

    def today_start(self, now: datetime) -> datetime:
        """Local midnight of the civil day containing ``now``."""
        local = now.astimezone(self.tz)
        return local.replace(hour=0, minute=0, second=0, microsecond=0)

    def window(self, now: datetime) -> tuple[datetime, datetime]:
        """Full-scan range: (local midnight today, +window_days)."""
        window_start = self.today_start(now)
        return window_start, window_start + timedelta(days=self.window_days)

    def resolve(self, value: str) -> datetime:
        """Resolve an event boundary string to an aware datetime."""
        return parse_event_time(value, self.tz)

    def to_civil(self, value: str) -> datetime:
        """Resolve a boundary string and express it in the civil offset."""
        return self.resolve(value).astimezone(self.tz)

    def is_future(self, event: NormalizedEvent, now: datetime) -> bool:
        """Whether the event has not ended yet. Sole snapshot criterion."""
        return self.resolve(event.end) > now

    def starts_before(self, event: NormalizedEvent, bound: datetime) -> bool:
        return self.resolve(event.start) < bound
