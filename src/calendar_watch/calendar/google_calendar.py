"""Google Calendar API client.

Provides the two provider calls the synchronizer needs:
- List one page of events (full scan or incremental via sync token)
- Watch the calendar for changes (push notifications)

## API Documentation

https://developers.google.com/calendar/api/v3/reference

## Timeouts

Every request goes through an ``httplib2.Http`` instance with a socket
timeout, so a hung provider call fails instead of stalling a background
task forever.

## Sync tokens

A full scan that exhausts pagination returns ``nextSyncToken``. Passing it
back as ``syncToken`` lists only what changed since. When Google no longer
accepts the token it answers ``410 Gone``; that is translated into
``StaleTokenError`` so callers can fall back to a full scan.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import httplib2
from google.oauth2.credentials import Credentials
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from calendar_watch.calendar.errors import (
    FetchError,
    StaleTokenError,
    TransientFetchError,
)

logger = logging.getLogger(__name__)


@dataclass
class EventPage:
    """One page of an ``events.list`` response."""

    items: list[dict[str, Any]] = field(default_factory=list)
    next_page_token: str | None = None
    next_sync_token: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> EventPage:
        """Create from Google Calendar API response."""
        return cls(
            items=data.get("items") or [],
            next_page_token=data.get("nextPageToken") or None,
            next_sync_token=data.get("nextSyncToken") or None,
        )


def _is_stale_token(error: HttpError) -> bool:
    status = error.resp.status
    if status == 410:
        return True
    # Malformed or foreign tokens come back as 400 instead of 410
    reason = str(getattr(error, "reason", "") or "")
    return status == 400 and ("syncToken" in reason or "sync token" in reason.lower())


def _translate_error(error: HttpError, operation: str) -> FetchError:
    status = error.resp.status
    body = error.content.decode("utf-8", "replace") if error.content else None
    if _is_stale_token(error):
        return StaleTokenError(
            f"{operation} rejected the sync token: {status}",
            status_code=status,
            response_body=body,
        )
    return TransientFetchError(
        f"{operation} failed: {status}",
        status_code=status,
        response_body=body,
    )


class GoogleCalendarClient:
    """Client for the Google Calendar events API of a single calendar.

    Example:
        ```python
        client = GoogleCalendarClient(access_token, "primary", timeout=30)

        page = client.list_events_page(sync_token=token)
        channel = client.watch_calendar(channel_id, "https://example.com/hook")
        ```
    """

    MAX_RESULTS = 2500

    def __init__(
        self,
        access_token: str,
        calendar_id: str,
        timeout: float = 30.0,
        service: Any = None,
    ):
        """Initialize the client.

        Args:
            access_token: OAuth bearer token
            calendar_id: Calendar ID (use 'primary' for primary calendar)
            timeout: Socket timeout in seconds for every request
            service: Pre-built discovery service (tests)
        """
        self.calendar_id = calendar_id
        self.timeout = timeout

        if service is None:
            credentials = Credentials(token=access_token)
            http = AuthorizedHttp(credentials, http=httplib2.Http(timeout=timeout))
            service = build("calendar", "v3", http=http, cache_discovery=False)

        self._service = service

    def list_events_page(
        self,
        sync_token: str | None = None,
        page_token: str | None = None,
        time_min: datetime | None = None,
        time_max: datetime | None = None,
    ) -> EventPage:
        """List one page of events, cancelled ones and recurring instances included.

        Args:
            sync_token: Token for incremental sync (excludes time bounds)
            page_token: Cursor of the page to fetch
            time_min: Lower bound (exclusive) for an event's end time
            time_max: Upper bound (exclusive) for an event's start time

        Returns:
            EventPage with raw items and continuation cursors

        Raises:
            StaleTokenError: If the sync token is no longer valid
            TransientFetchError: On any other failure
        """
        params: dict[str, Any] = {
            "calendarId": self.calendar_id,
            "maxResults": self.MAX_RESULTS,
            "singleEvents": True,  # Expand recurring events
            "showDeleted": True,
        }

        if sync_token:
            params["syncToken"] = sync_token
        else:
            if time_min:
                params["timeMin"] = time_min.isoformat()
            if time_max:
                params["timeMax"] = time_max.isoformat()

        if page_token:
            params["pageToken"] = page_token

        try:
            result = self._service.events().list(**params).execute()
        except HttpError as e:
            raise _translate_error(e, "events.list") from e
        except (httplib2.HttpLib2Error, OSError) as e:
            raise TransientFetchError(f"events.list failed: {e}") from e

        return EventPage.from_api(result)

    def watch_calendar(
        self,
        channel_id: str,
        webhook_url: str,
        token: str | None = None,
        ttl_seconds: int | None = None,
    ) -> dict[str, Any]:
        """Set up push notifications for the calendar.

        Args:
            channel_id: Unique channel identifier
            webhook_url: URL to receive notifications
            token: Optional verification token
            ttl_seconds: Requested channel lifetime (provider may shorten it)

        Returns:
            Watch response with id, resourceId and expiration (ms since epoch)
        """
        body: dict[str, Any] = {
            "id": channel_id,
            "type": "web_hook",
            "address": webhook_url,
        }

        if token:
            body["token"] = token

        if ttl_seconds:
            body["params"] = {"ttl": str(ttl_seconds)}

        try:
            return (
                self._service.events()
                .watch(calendarId=self.calendar_id, body=body)
                .execute()
            )
        except HttpError as e:
            raise _translate_error(e, "events.watch") from e
        except (httplib2.HttpLib2Error, OSError) as e:
            raise TransientFetchError(f"events.watch failed: {e}") from e


def parse_expiration(value: Any) -> datetime | None:
    """Convert the watch ``expiration`` (ms since epoch, as string) to a datetime."""
    if value in (None, ""):
        return None
    return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)
