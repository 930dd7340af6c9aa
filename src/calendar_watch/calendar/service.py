"""Trigger handling for the calendar watcher.

Three triggers drive the system:

- **initialize**: register the watch channel and seed the snapshot with a
  full rebuild
- **push**: Google reported a change; validate the channel, apply the
  incremental feed, notify, commit. Any sync failure falls back to a full
  rebuild; if that fails too, operators get an error report
- **renew**: periodic tick that keeps the watch channel alive

Each trigger is independent. Nothing here holds state between calls: the
snapshot, sync token and channel live in the key-value store and are
read-modify-written per invocation. Duplicate pushes may therefore produce
duplicate notifications, but a snapshot is only ever committed together
with the sync token issued alongside it.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Protocol

from calendar_watch.auth.google import GoogleOAuth
from calendar_watch.calendar.errors import MissingContinuationToken, SyncError
from calendar_watch.calendar.google_calendar import GoogleCalendarClient
from calendar_watch.calendar.sync import (
    EventLister,
    RebuildResult,
    apply_incremental,
    rebuild_snapshot,
)
from calendar_watch.calendar.watch import (
    ChannelRegistrar,
    PushNotification,
    WatchChannelManager,
)
from calendar_watch.calendar.window import TimeWindowPolicy, utc_now
from calendar_watch.config import Settings
from calendar_watch.models.event import WatchChannel
from calendar_watch.notifications.discord import DiscordNotifier
from calendar_watch.notifications.formatter import build_change_entries, render_report
from calendar_watch.storage.base import KeyValueStore
from calendar_watch.storage.sql import SqlKeyValueStore
from calendar_watch.storage.state import CalendarStateRepository

logger = logging.getLogger(__name__)


class CalendarClient(EventLister, ChannelRegistrar, Protocol):
    """Provider client used by the service."""


ClientFactory = Callable[[str], CalendarClient]


class PushOutcome(str, Enum):
    """What a push trigger ended up doing."""

    IGNORED = "ignored"  # Unknown channel or bad token
    ACKNOWLEDGED = "acknowledged"  # state=sync handshake
    SYNCED = "synced"  # Incremental pass committed
    REBUILT = "rebuilt"  # Incremental failed, full rebuild committed
    FAILED = "failed"  # Error report sent to operators


@dataclass
class InitializeResult:
    """Result of the initialize trigger."""

    channel: WatchChannel
    events: int
    has_sync_token: bool


class CalendarWatchService:
    """Runs the initialize / push / renew triggers for one calendar.

    Example:
        ```python
        service = create_service(get_settings())

        await service.initialize()
        outcome = await service.handle_push(PushNotification.from_headers(headers))
        await service.renew()
        ```
    """

    def __init__(
        self,
        settings: Settings,
        repository: CalendarStateRepository,
        oauth: GoogleOAuth,
        notifier: DiscordNotifier | None = None,
        client_factory: ClientFactory | None = None,
        policy: TimeWindowPolicy | None = None,
    ):
        self.settings = settings
        self.repository = repository
        self.oauth = oauth
        self.notifier = notifier
        self.client_factory = client_factory or self._default_client
        self.policy = policy or TimeWindowPolicy(
            utc_offset_hours=settings.civil_utc_offset_hours,
            window_days=settings.window_days,
        )
        self.watch = WatchChannelManager(
            repository,
            settings.webhook_url if settings.public_base_url else None,
            channel_token=settings.channel_token,
            ttl_seconds=settings.watch_ttl_seconds,
            renewal_margin=timedelta(seconds=settings.renewal_margin_seconds),
        )

    def _default_client(self, access_token: str) -> GoogleCalendarClient:
        return GoogleCalendarClient(
            access_token,
            self.settings.calendar_id,
            timeout=self.settings.http_timeout_seconds,
        )

    async def _client(self) -> CalendarClient:
        tokens = await self.oauth.refresh_access_token()
        return self.client_factory(tokens.access_token)

    async def initialize(self, now: datetime | None = None) -> InitializeResult:
        """Ensure the watch channel and seed the snapshot from a full scan.

        Raises:
            Exception: Any failure; nothing is committed in that case
        """
        logger.info("Initialize invoked")
        client = await self._client()
        channel = await self.watch.ensure(client, now)
        result = await self._rebuild(client, now)

        logger.info(
            f"Initialize succeeded: {len(result.snapshot.events)} events, "
            f"sync token {'present' if result.sync_token else 'absent'}"
        )
        return InitializeResult(
            channel=channel,
            events=len(result.snapshot.events),
            has_sync_token=bool(result.sync_token),
        )

    async def renew(self, now: datetime | None = None) -> WatchChannel:
        """Periodic tick: keep the watch channel alive."""
        logger.info("Renew invoked")
        client = await self._client()
        return await self.watch.ensure(client, now)

    async def handle_push(
        self,
        notification: PushNotification,
        now: datetime | None = None,
    ) -> PushOutcome:
        """Process one push notification. Never raises.

        Args:
            notification: Identifiers from the push request headers
            now: Reference time (defaults to the current time)

        Returns:
            PushOutcome describing what happened
        """
        logger.info(
            f"Push received: state={notification.resource_state} "
            f"channel={notification.channel_id} resource={notification.resource_id}"
        )

        try:
            if not await self.watch.validate_inbound(notification):
                return PushOutcome.IGNORED

            if notification.is_sync_handshake:
                logger.info("Push is a sync handshake; nothing to do")
                return PushOutcome.ACKNOWLEDGED

            client = await self._client()
            try:
                await self._sync_incremental(client, now)
                return PushOutcome.SYNCED
            except SyncError as e:
                logger.warning(f"Incremental sync failed ({type(e).__name__}: {e}); rebuilding")

            await self._rebuild(client, now)
            return PushOutcome.REBUILT

        except Exception as e:
            logger.exception(f"Push processing failed: {e}")
            await self._report_error(f"{type(e).__name__}: {e}")
            return PushOutcome.FAILED

    async def _sync_incremental(self, client: CalendarClient, now: datetime | None) -> None:
        now = now or utc_now()
        prior = await self.repository.load_snapshot()
        sync_token = await self.repository.load_sync_token()
        if prior is None:
            raise MissingContinuationToken("no snapshot stored")

        result = await asyncio.to_thread(
            apply_incremental, client, self.policy, prior, sync_token, now
        )

        entries = build_change_entries(result.created, result.updated, result.deleted)
        report = render_report(entries, self.policy, self.settings.notification_subject)
        if report is not None:
            if self.notifier is None:
                logger.warning(f"No notifier configured; dropping report '{report.title}'")
            else:
                await self.notifier.post_report(report)

        await self.repository.commit(result.snapshot, result.sync_token)
        logger.info(
            f"Incremental sync committed: {len(result.created)} created, "
            f"{len(result.updated)} updated, {len(result.deleted)} deleted, "
            f"snapshot size {len(result.snapshot.events)}"
        )

    async def _rebuild(
        self, client: CalendarClient, now: datetime | None
    ) -> RebuildResult:
        now = now or utc_now()
        result = await asyncio.to_thread(rebuild_snapshot, client, self.policy, now)
        await self.repository.commit(result.snapshot, result.sync_token)
        return result

    async def _report_error(self, message: str) -> None:
        if self.notifier is None:
            return
        await self.notifier.post_error(message)


def create_service(settings: Settings, store: KeyValueStore | None = None) -> CalendarWatchService:
    """Wire a service from settings.

    Args:
        settings: Application settings
        store: Key-value store (defaults to the SQL store; the database must
            be initialized)
    """
    notifier = None
    if settings.discord_webhook_url:
        notifier = DiscordNotifier(
            settings.discord_webhook_url,
            timeout=settings.http_timeout_seconds,
        )

    return CalendarWatchService(
        settings=settings,
        repository=CalendarStateRepository(store or SqlKeyValueStore(), settings.calendar_id),
        oauth=GoogleOAuth(settings),
        notifier=notifier,
    )
