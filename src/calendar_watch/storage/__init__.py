"""Persisted state: key-value stores and the calendar state repository."""

from calendar_watch.storage.base import KeyValueStore
from calendar_watch.storage.memory import InMemoryKeyValueStore
from calendar_watch.storage.sql import SqlKeyValueStore
from calendar_watch.storage.state import CalendarStateRepository

__all__ = [
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "SqlKeyValueStore",
    "CalendarStateRepository",
]
