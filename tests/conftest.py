"""Pytest fixtures for calendar watch tests.

This module provides test fixtures that ensure:
1. No external API calls are made (Google APIs, Discord)
2. No real database connections in unit tests
3. Isolated test environment with controlled configuration
"""

import os
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

# Set test environment BEFORE importing application modules
# This ensures no real services are contacted during test collection
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("GOOGLE_CLIENT_ID", "test-client-id")
os.environ.setdefault("GOOGLE_CLIENT_SECRET", "test-client-secret")
os.environ.setdefault("GOOGLE_REFRESH_TOKEN", "test-refresh-token")
os.environ.setdefault("CALENDAR_ID", "room@example.com")
os.environ.setdefault("PUBLIC_BASE_URL", "https://watch.example.com")
os.environ.setdefault("DEBUG", "true")

from calendar_watch.calendar.google_calendar import EventPage
from calendar_watch.calendar.window import TimeWindowPolicy
from calendar_watch.models.event import NormalizedEvent, Snapshot, WatchChannel
from calendar_watch.storage.memory import InMemoryKeyValueStore
from calendar_watch.storage.state import CalendarStateRepository


# =============================================================================
# Test Isolation Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """Reset settings cache before each test to ensure clean state."""
    from calendar_watch.config import get_settings
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# =============================================================================
# Fakes
# =============================================================================


class FakeCalendarClient:
    """Scripted stand-in for ``GoogleCalendarClient``.

    ``pages`` is consumed one entry per ``list_events_page`` call; an
    exception instance in the list is raised instead of returned.
    """

    def __init__(
        self,
        pages: list[Any] | None = None,
        watch_response: Any = None,
    ):
        self.pages = list(pages or [])
        self.watch_response = watch_response
        self.list_calls: list[dict[str, Any]] = []
        self.watch_calls: list[dict[str, Any]] = []

    def list_events_page(
        self,
        sync_token=None,
        page_token=None,
        time_min=None,
        time_max=None,
    ) -> EventPage:
        self.list_calls.append(
            {
                "sync_token": sync_token,
                "page_token": page_token,
                "time_min": time_min,
                "time_max": time_max,
            }
        )
        if not self.pages:
            raise AssertionError("unexpected list_events_page call")
        page = self.pages.pop(0)
        if isinstance(page, Exception):
            raise page
        return page

    def watch_calendar(self, channel_id, webhook_url, token=None, ttl_seconds=None):
        self.watch_calls.append(
            {
                "channel_id": channel_id,
                "webhook_url": webhook_url,
                "token": token,
                "ttl_seconds": ttl_seconds,
            }
        )
        if isinstance(self.watch_response, Exception):
            raise self.watch_response
        if self.watch_response is not None:
            return self.watch_response
        return {
            "kind": "api#channel",
            "id": channel_id,
            "resourceId": "resource-1",
            # 2025-11-13T03:00:00Z, one week after the reference time
            "expiration": "1763002800000",
        }


def raw_event(
    event_id: str,
    start: str,
    end: str,
    summary: str | None = "Meeting",
    status: str = "confirmed",
    all_day: bool = False,
) -> dict[str, Any]:
    """Build a raw ``events.list`` item."""
    key = "date" if all_day else "dateTime"
    data: dict[str, Any] = {
        "id": event_id,
        "status": status,
        "start": {key: start},
        "end": {key: end},
    }
    if summary is not None:
        data["summary"] = summary
    return data


def cancelled(event_id: str) -> dict[str, Any]:
    """Build a cancelled change-feed record (no times, as Google sends it)."""
    return {"id": event_id, "status": "cancelled"}


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def now() -> datetime:
    """Reference time: 2025-11-06 12:00 at UTC+9."""
    return datetime(2025, 11, 6, 3, 0, tzinfo=timezone.utc)


@pytest.fixture
def policy() -> TimeWindowPolicy:
    """UTC+9 policy with a 14 day scan window."""
    return TimeWindowPolicy(utc_offset_hours=9, window_days=14)


@pytest.fixture
def make_client():
    """Factory for scripted calendar clients."""
    return FakeCalendarClient


@pytest.fixture
def make_raw_event():
    """Factory for raw event records."""
    return raw_event


@pytest.fixture
def make_cancelled():
    """Factory for cancelled change-feed records."""
    return cancelled


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    """Empty in-memory key-value store."""
    return InMemoryKeyValueStore()


@pytest.fixture
def repository(store: InMemoryKeyValueStore) -> CalendarStateRepository:
    """State repository over the in-memory store."""
    return CalendarStateRepository(store, "room@example.com")


@pytest.fixture
def lesson() -> NormalizedEvent:
    """A future event on 2025-11-07 10:00-11:00 (UTC+9)."""
    return NormalizedEvent(
        id="evt-lesson",
        title="Piano lesson",
        start="2025-11-07T10:00:00+09:00",
        end="2025-11-07T11:00:00+09:00",
    )


@pytest.fixture
def practice() -> NormalizedEvent:
    """A future event on 2025-11-08 18:00-20:00 (UTC+9)."""
    return NormalizedEvent(
        id="evt-practice",
        title="Band practice",
        start="2025-11-08T18:00:00+09:00",
        end="2025-11-08T20:00:00+09:00",
    )


@pytest.fixture
def prior_snapshot(lesson: NormalizedEvent, practice: NormalizedEvent) -> Snapshot:
    """Snapshot holding the lesson and the practice."""
    return Snapshot(events={lesson.id: lesson, practice.id: practice})


@pytest.fixture
def active_channel(now: datetime) -> WatchChannel:
    """Channel with a week of lifetime left."""
    return WatchChannel(
        channel_id="chan-1",
        resource_id="resource-1",
        expiration=now + timedelta(days=7),
    )
