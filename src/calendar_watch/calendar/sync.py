"""Snapshot synchronization.

Builds and maintains the snapshot of future events for one calendar.

## Sync Process

1. **Full rebuild**: page through the whole (window-bounded) event list,
   keep normalizable events that are still future and start before the
   window end. The last page carries the sync token.
2. **Incremental**: page through the changes since the stored sync token
   and classify each record against a working copy of the prior snapshot.

Both operations are pure computations over provider responses: nothing is
persisted here, and a failure on any page aborts the whole pass so that a
snapshot and a sync token are only ever committed together.

## Classification

| incoming record               | known & future | action                      |
|-------------------------------|----------------|-----------------------------|
| cancelled                     | yes            | ``deleted``, drop from copy |
| cancelled                     | no             | drop from copy              |
| ended (not future)            | any            | drop from copy silently     |
| new id                        | -              | insert, nothing reported    |
| known id, title/start/end new | -              | ``updated``, overwrite      |
| known id, unchanged           | -              | nothing                     |

New ids are not reported as ``created``: expanded recurring instances show
up as "new" far too often for creation notices to be useful.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from calendar_watch.calendar.errors import MissingContinuationToken
from calendar_watch.calendar.google_calendar import EventPage
from calendar_watch.calendar.normalizer import is_cancelled, normalize_event
from calendar_watch.calendar.window import TimeWindowPolicy, utc_now
from calendar_watch.models.event import EventUpdate, NormalizedEvent, Snapshot

logger = logging.getLogger(__name__)


class EventLister(Protocol):
    """The part of the provider client the synchronizers depend on."""

    def list_events_page(
        self,
        sync_token: str | None = None,
        page_token: str | None = None,
        time_min: datetime | None = None,
        time_max: datetime | None = None,
    ) -> EventPage: ...


@dataclass
class RebuildResult:
    """Result of a full rebuild."""

    snapshot: Snapshot
    sync_token: str | None = None
    pages: int = 0
    records_seen: int = 0


@dataclass
class IncrementalResult:
    """Result of an incremental pass."""

    snapshot: Snapshot
    sync_token: str
    created: list[NormalizedEvent] = field(default_factory=list)
    updated: list[EventUpdate] = field(default_factory=list)
    deleted: list[NormalizedEvent] = field(default_factory=list)
    pages: int = 0

    @property
    def has_changes(self) -> bool:
        return bool(self.created or self.updated or self.deleted)


def rebuild_snapshot(
    client: EventLister,
    policy: TimeWindowPolicy,
    now: datetime | None = None,
) -> RebuildResult:
    """Build a fresh snapshot from an exhaustive paginated scan.

    Args:
        client: Provider client
        policy: Window and retention policy
        now: Reference time (defaults to the current time)

    Returns:
        RebuildResult with the new snapshot and the final page's sync token

    Raises:
        FetchError: If any page fails; no partial snapshot is returned
    """
    now = now or utc_now()
    window_start, window_end = policy.window(now)

    raw_items: list[dict] = []
    page_token: str | None = None
    sync_token: str | None = None
    pages = 0

    while True:
        page = client.list_events_page(
            page_token=page_token,
            time_min=window_start,
            time_max=window_end,
        )
        pages += 1
        raw_items.extend(page.items)
        sync_token = page.next_sync_token or sync_token

        page_token = page.next_page_token
        if not page_token:
            break

    events: dict[str, NormalizedEvent] = {}
    for item in raw_items:
        event = normalize_event(item)
        if event is None:
            continue
        if not policy.is_future(event, now):
            continue
        if not policy.starts_before(event, window_end):
            continue
        events[event.id] = event

    logger.info(
        f"Full rebuild: {len(events)} future events kept from "
        f"{len(raw_items)} records over {pages} page(s)"
    )

    return RebuildResult(
        snapshot=Snapshot(events=events, updated_at=now),
        sync_token=sync_token,
        pages=pages,
        records_seen=len(raw_items),
    )


def apply_incremental(
    client: EventLister,
    policy: TimeWindowPolicy,
    prior: Snapshot,
    sync_token: str | None,
    now: datetime | None = None,
) -> IncrementalResult:
    """Apply the change feed since ``sync_token`` to ``prior``.

    ``prior`` is never mutated; the result carries a new snapshot.

    Args:
        client: Provider client
        policy: Window and retention policy
        prior: Snapshot the sync token was issued alongside
        sync_token: Continuation token from the last successful pass
        now: Reference time (defaults to the current time)

    Returns:
        IncrementalResult with the next snapshot, classified changes and the
        last sync token seen (or the one passed in if none was issued)

    Raises:
        MissingContinuationToken: If ``sync_token`` is empty
        StaleTokenError: If the provider no longer accepts the token
        TransientFetchError: On any other fetch failure
    """
    if not sync_token:
        raise MissingContinuationToken()

    now = now or utc_now()
    working = dict(prior.events)
    result = IncrementalResult(snapshot=prior, sync_token=sync_token)

    page_token: str | None = None
    next_sync_token: str | None = None

    while True:
        page = client.list_events_page(sync_token=sync_token, page_token=page_token)
        result.pages += 1

        for item in page.items:
            _apply_record(item, working, result, policy, now)

        next_sync_token = page.next_sync_token or next_sync_token
        page_token = page.next_page_token
        if not page_token:
            break

    result.snapshot = Snapshot(events=working, updated_at=now)
    result.sync_token = next_sync_token or sync_token

    logger.info(
        f"Incremental sync: {len(result.updated)} updated, "
        f"{len(result.deleted)} deleted, snapshot size {len(working)}"
    )
    return result


def _apply_record(
    item: dict,
    working: dict[str, NormalizedEvent],
    result: IncrementalResult,
    policy: TimeWindowPolicy,
    now: datetime,
) -> None:
    """Classify one change-feed record against the working snapshot copy."""
    if is_cancelled(item):
        event_id = item.get("id")
        existing = working.pop(event_id, None) if event_id else None
        if existing is not None and policy.is_future(existing, now):
            result.deleted.append(existing)
        return

    event = normalize_event(item)
    if event is None:
        return

    existing = working.get(event.id)

    if not policy.is_future(event, now):
        # Ended events are retired, not reported
        working.pop(event.id, None)
        return

    if existing is None:
        working[event.id] = event
        return

    if event.differs_from(existing):
        result.updated.append(EventUpdate(previous=existing, current=event))
        working[event.id] = event
