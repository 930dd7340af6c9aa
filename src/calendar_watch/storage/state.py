"""Typed access to the persisted synchronization state.

## Key layout

- ``channel``: the active ``WatchChannel`` as JSON
- ``snapshot:<calendarId>``: the ``Snapshot`` as JSON
- ``sync:<calendarId>``: the continuation token as a raw string

A snapshot and its sync token are always written together by ``commit``.
An empty token value means "no usable baseline" and sends the next push
down the rebuild path.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from calendar_watch.models.event import Snapshot, WatchChannel
from calendar_watch.storage.base import KeyValueStore

logger = logging.getLogger(__name__)

CHANNEL_KEY = "channel"


def snapshot_key(calendar_id: str) -> str:
    return f"snapshot:{calendar_id}"


def sync_key(calendar_id: str) -> str:
    return f"sync:{calendar_id}"


class CalendarStateRepository:
    """Reads and writes channel, snapshot and sync token for one calendar."""

    def __init__(self, store: KeyValueStore, calendar_id: str):
        self.store = store
        self.calendar_id = calendar_id

    async def load_channel(self) -> WatchChannel | None:
        raw = await self.store.get(CHANNEL_KEY)
        if not raw:
            return None
        try:
            return WatchChannel.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Ignoring unreadable channel record: {e}")
            return None

    async def save_channel(self, channel: WatchChannel) -> None:
        await self.store.put(CHANNEL_KEY, channel.model_dump_json())

    async def load_snapshot(self) -> Snapshot | None:
        """Load the stored snapshot; an unreadable record counts as absent."""
        raw = await self.store.get(snapshot_key(self.calendar_id))
        if not raw:
            return None
        try:
            return Snapshot.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Ignoring unreadable snapshot record: {e}")
            return None

    async def load_sync_token(self) -> str | None:
        token = await self.store.get(sync_key(self.calendar_id))
        return token or None

    async def commit(self, snapshot: Snapshot, sync_token: str | None) -> None:
        """Persist a snapshot together with the token issued alongside it."""
        await self.store.put(snapshot_key(self.calendar_id), snapshot.model_dump_json())
        await self.store.put(sync_key(self.calendar_id), sync_token or "")
        logger.info(
            f"Committed snapshot of {len(snapshot.events)} events "
            f"(sync token {'present' if sync_token else 'absent'})"
        )
