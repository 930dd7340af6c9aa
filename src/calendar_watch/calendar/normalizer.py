"""Convert raw Google Calendar event resources into ``NormalizedEvent``.

Records that cannot be normalized are dropped silently: they never reach
the snapshot and never produce a user-visible error.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timezone, tzinfo
from typing import Any

from calendar_watch.models.event import NormalizedEvent

logger = logging.getLogger(__name__)

UNTITLED = "(untitled)"


def parse_event_time(value: str, tz: tzinfo) -> datetime:
    """Resolve a provider time string to an aware datetime.

    Date-only values (all-day events) resolve to midnight of that date in
    ``tz``. Naive timestamps are read in ``tz`` as well.

    Raises:
        ValueError: If the value is neither a date nor a timestamp
    """
    value = value.strip()
    if len(value) == 10:
        return datetime.combine(date.fromisoformat(value), time(), tzinfo=tz)

    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


def _boundary(data: dict[str, Any], key: str) -> str | None:
    boundary = data.get(key)
    if not isinstance(boundary, dict):
        return None
    # Prefer the precise timestamp over the all-day date
    value = boundary.get("dateTime") or boundary.get("date")
    if not isinstance(value, str) or not value.strip():
        return None
    return value


def _resolvable(value: str) -> bool:
    try:
        parse_event_time(value, timezone.utc)
    except ValueError:
        return False
    return True


def normalize_event(data: dict[str, Any]) -> NormalizedEvent | None:
    """Normalize a raw event record.

    Args:
        data: Event resource as returned by ``events.list``

    Returns:
        NormalizedEvent, or None if the record is not normalizable
    """
    event_id = data.get("id")
    if not isinstance(event_id, str) or not event_id:
        return None

    start = _boundary(data, "start")
    end = _boundary(data, "end")
    if start is None or end is None:
        logger.debug(f"Dropping event {event_id}: missing start or end")
        return None

    if not (_resolvable(start) and _resolvable(end)):
        logger.debug(f"Dropping event {event_id}: unparseable start or end")
        return None

    title = data.get("summary")
    if not isinstance(title, str) or not title:
        title = UNTITLED

    return NormalizedEvent(id=event_id, title=title, start=start, end=end)


def is_cancelled(data: dict[str, Any]) -> bool:
    """Check whether a raw record represents a removed event."""
    return data.get("status") == "cancelled"
