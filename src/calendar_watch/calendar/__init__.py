"""Calendar synchronization module.

Maintains a snapshot of a Google Calendar's future events and keeps it
current through push notifications and incremental sync.

## Components

- Normalizer: raw event resource -> ``NormalizedEvent``
- Time window policy: civil "today", full-scan window, ``is_future``
- Full rebuild: exhaustive paginated scan -> snapshot + sync token
- Incremental sync: change feed -> updated snapshot + classified changes
- Watch channel manager: push subscription lifecycle and validation
- Service: the initialize / push / renew triggers

## Google Calendar API

Uses the Google Calendar API v3:
- https://developers.google.com/calendar/api/v3/sync
- https://developers.google.com/calendar/api/guides/push
"""

from calendar_watch.calendar.errors import (
    FetchError,
    MissingContinuationToken,
    StaleTokenError,
    SyncError,
    TransientFetchError,
)
from calendar_watch.calendar.google_calendar import EventPage, GoogleCalendarClient
from calendar_watch.calendar.normalizer import normalize_event
from calendar_watch.calendar.service import (
    CalendarWatchService,
    InitializeResult,
    PushOutcome,
    create_service,
)
from calendar_watch.calendar.sync import (
    IncrementalResult,
    RebuildResult,
    apply_incremental,
    rebuild_snapshot,
)
from calendar_watch.calendar.watch import PushNotification, WatchChannelManager
from calendar_watch.calendar.window import TimeWindowPolicy

__all__ = [
    "FetchError",
    "MissingContinuationToken",
    "StaleTokenError",
    "SyncError",
    "TransientFetchError",
    "EventPage",
    "GoogleCalendarClient",
    "normalize_event",
    "CalendarWatchService",
    "InitializeResult",
    "PushOutcome",
    "create_service",
    "IncrementalResult",
    "RebuildResult",
    "apply_incremental",
    "rebuild_snapshot",
    "PushNotification",
    "WatchChannelManager",
    "TimeWindowPolicy",
]
