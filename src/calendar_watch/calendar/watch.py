"""Watch channel lifecycle.

A watch channel is Google's push subscription for a calendar. At most one
channel is active at a time; it is replaced (never patched) once its
remaining lifetime drops under the renewal margin.

## States

```
NoChannel --ensure--> Active --(time passes)--> NearExpiry --ensure--> Active
```

Inbound pushes are only trusted when they name the persisted channel id
and resource id. Anything else is noise from a stale or foreign channel
and is dropped without raising.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Protocol

from calendar_watch.calendar.errors import TransientFetchError
from calendar_watch.calendar.google_calendar import parse_expiration
from calendar_watch.calendar.window import utc_now
from calendar_watch.models.event import WatchChannel
from calendar_watch.storage.state import CalendarStateRepository

logger = logging.getLogger(__name__)

RENEWAL_MARGIN = timedelta(minutes=5)


class ChannelRegistrar(Protocol):
    """The part of the provider client the manager depends on."""

    def watch_calendar(
        self,
        channel_id: str,
        webhook_url: str,
        token: str | None = None,
        ttl_seconds: int | None = None,
    ) -> dict[str, Any]: ...


@dataclass(frozen=True)
class PushNotification:
    """Identifiers carried by a Google push callback."""

    channel_id: str
    resource_id: str
    resource_state: str | None = None
    channel_token: str | None = None
    message_number: str | None = None

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> PushNotification:
        """Create from the ``X-Goog-*`` request headers."""
        lowered = {k.lower(): v for k, v in headers.items()}
        return cls(
            channel_id=lowered.get("x-goog-channel-id", ""),
            resource_id=lowered.get("x-goog-resource-id", ""),
            resource_state=lowered.get("x-goog-resource-state"),
            channel_token=lowered.get("x-goog-channel-token"),
            message_number=lowered.get("x-goog-message-number"),
        )

    @property
    def is_sync_handshake(self) -> bool:
        """Google sends ``state=sync`` once when a channel starts."""
        return self.resource_state == "sync"


class WatchChannelManager:
    """Creates, reuses and renews the calendar's watch channel.

    Example:
        ```python
        manager = WatchChannelManager(repository, webhook_url)
        channel = await manager.ensure(client)

        if await manager.validate_inbound(PushNotification.from_headers(headers)):
            ...
        ```
    """

    def __init__(
        self,
        repository: CalendarStateRepository,
        webhook_url: str | None,
        channel_token: str | None = None,
        ttl_seconds: int | None = None,
        renewal_margin: timedelta = RENEWAL_MARGIN,
    ):
        self.repository = repository
        self.webhook_url = webhook_url
        self.channel_token = channel_token
        self.ttl_seconds = ttl_seconds
        self.renewal_margin = renewal_margin

    def needs_renewal(self, channel: WatchChannel | None, now: datetime) -> bool:
        """Whether ``channel`` is missing, past or near its expiration."""
        if channel is None:
            return True
        remaining = channel.remaining(now)
        if remaining is None:
            return True
        return remaining <= self.renewal_margin.total_seconds()

    async def ensure(
        self,
        client: ChannelRegistrar,
        now: datetime | None = None,
    ) -> WatchChannel:
        """Return the active channel, registering a replacement when needed.

        Args:
            client: Provider client used to register a new channel
            now: Reference time (defaults to the current time)

        Returns:
            The reused or newly registered channel

        Raises:
            FetchError: If registration fails or the provider omits resourceId
        """
        now = now or utc_now()
        saved = await self.repository.load_channel()

        if not self.needs_renewal(saved, now):
            logger.info(
                f"Reusing watch channel {saved.channel_id} "
                f"(expires in {saved.remaining(now):.0f}s)"
            )
            return saved

        if not self.webhook_url:
            raise RuntimeError("PUBLIC_BASE_URL is not configured")

        logger.info("Watch channel renewal required")
        channel_id = uuid.uuid4().hex
        response = await asyncio.to_thread(
            client.watch_calendar,
            channel_id,
            self.webhook_url,
            token=self.channel_token,
            ttl_seconds=self.ttl_seconds,
        )

        resource_id = response.get("resourceId")
        if not resource_id:
            raise TransientFetchError("events.watch returned no resourceId")

        channel = WatchChannel(
            channel_id=response.get("id") or channel_id,
            resource_id=resource_id,
            expiration=parse_expiration(response.get("expiration")),
        )
        await self.repository.save_channel(channel)

        logger.info(
            f"Registered watch channel {channel.channel_id} "
            f"(resource {channel.resource_id}, expires {channel.expiration})"
        )
        return channel

    async def validate_inbound(self, notification: PushNotification) -> bool:
        """Check that a push belongs to the currently persisted channel."""
        saved = await self.repository.load_channel()
        if saved is None:
            logger.info("Push ignored: no channel stored")
            return False

        if (
            saved.channel_id != notification.channel_id
            or saved.resource_id != notification.resource_id
        ):
            logger.info(
                f"Push ignored: channel mismatch "
                f"(got {notification.channel_id}/{notification.resource_id}, "
                f"expected {saved.channel_id}/{saved.resource_id})"
            )
            return False

        if self.channel_token and notification.channel_token != self.channel_token:
            logger.warning(f"Push ignored: bad channel token on {notification.channel_id}")
            return False

        return True
