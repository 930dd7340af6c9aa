"""Event and snapshot models for calendar synchronization."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class NormalizedEvent(BaseModel):
    """Canonical form of a provider event.

    ``start`` and ``end`` keep the provider strings verbatim (either an
    RFC 3339 timestamp or a ``YYYY-MM-DD`` date). Resolving them to a point
    in time is the job of ``TimeWindowPolicy.resolve``.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Stable provider event id")
    title: str = Field(..., description="Display title")
    start: str = Field(..., description="Start timestamp or date")
    end: str = Field(..., description="End timestamp or date")

    def differs_from(self, other: NormalizedEvent) -> bool:
        """Check whether title, start or end changed."""
        return (
            self.title != other.title
            or self.start != other.start
            or self.end != other.end
        )


class Snapshot(BaseModel):
    """All currently-known future events, keyed by event id."""

    events: dict[str, NormalizedEvent] = Field(default_factory=dict)
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class WatchChannel(BaseModel):
    """A push-notification subscription registered with the provider."""

    channel_id: str
    resource_id: str
    expiration: datetime | None = None

    def remaining(self, now: datetime) -> float | None:
        """Seconds until expiration, or None when the provider gave none."""
        if self.expiration is None:
            return None
        return (self.expiration - now).total_seconds()


class ChangeKind(str, Enum):
    """Classification of a snapshot change."""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


class EventUpdate(BaseModel):
    """An event whose title or times changed."""

    previous: NormalizedEvent
    current: NormalizedEvent


class ChangeEntry(BaseModel):
    """One line of a change report."""

    kind: ChangeKind
    current: NormalizedEvent
    previous: NormalizedEvent | None = None  # Only for updates
