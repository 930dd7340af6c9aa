"""Domain models for calendar synchronization."""

from calendar_watch.models.event import (
    ChangeEntry,
    ChangeKind,
    EventUpdate,
    NormalizedEvent,
    Snapshot,
    WatchChannel,
)

__all__ = [
    "ChangeEntry",
    "ChangeKind",
    "EventUpdate",
    "NormalizedEvent",
    "Snapshot",
    "WatchChannel",
]
