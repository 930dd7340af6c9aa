"""Change report rendering.

Turns the classified created/updated/deleted lists into an ordered,
human-readable report:

```
- Piano lesson 🔔 (updated)
  - before: 2025/11/07 10:00 ~ 11:00
  - after: 2025/11/07 13:00 ~ 14:00
- Band practice 🗑️ (deleted)
  - 2025/11/08 18:00 ~ 20:00
```

Times are rendered in the policy's civil offset with minute precision.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from calendar_watch.models.event import (
    ChangeEntry,
    ChangeKind,
    EventUpdate,
    NormalizedEvent,
)

if TYPE_CHECKING:
    from calendar_watch.calendar.window import TimeWindowPolicy

DEFAULT_CHUNK_LIMIT = 4096

GLYPHS: dict[ChangeKind, tuple[str, str]] = {
    ChangeKind.CREATED: ("🆕", "added"),
    ChangeKind.UPDATED: ("🔔", "updated"),
    ChangeKind.DELETED: ("🗑️", "deleted"),
}


@dataclass
class Report:
    """A rendered change report: one block of lines per change entry."""

    title: str
    blocks: list[str] = field(default_factory=list)

    @property
    def body(self) -> str:
        return "\n".join(self.blocks)


def build_change_entries(
    created: Iterable[NormalizedEvent],
    updated: Iterable[EventUpdate],
    deleted: Iterable[NormalizedEvent],
) -> list[ChangeEntry]:
    """Order changes as creations, then updates, then deletions.

    Provider order is kept within each group.
    """
    entries = [ChangeEntry(kind=ChangeKind.CREATED, current=e) for e in created]
    entries.extend(
        ChangeEntry(kind=ChangeKind.UPDATED, current=u.current, previous=u.previous)
        for u in updated
    )
    entries.extend(ChangeEntry(kind=ChangeKind.DELETED, current=e) for e in deleted)
    return entries


def format_datetime(value: str, policy: TimeWindowPolicy) -> str:
    """``2025-11-07T10:00:00+09:00`` -> ``2025/11/07 10:00``"""
    return policy.to_civil(value).strftime("%Y/%m/%d %H:%M")


def format_time(value: str, policy: TimeWindowPolicy) -> str:
    """``2025-11-07T10:00:00+09:00`` -> ``10:00``"""
    return policy.to_civil(value).strftime("%H:%M")


def _span(event: NormalizedEvent, policy: TimeWindowPolicy) -> str:
    return f"{format_datetime(event.start, policy)} ~ {format_time(event.end, policy)}"


def format_entry(entry: ChangeEntry, policy: TimeWindowPolicy) -> str:
    """Render one entry as a headline plus indented time line(s)."""
    glyph, label = GLYPHS[entry.kind]
    headline = f"- {entry.current.title} {glyph} ({label})"

    if entry.kind == ChangeKind.UPDATED and entry.previous is not None:
        return (
            f"{headline}\n"
            f"  - before: {_span(entry.previous, policy)}\n"
            f"  - after: {_span(entry.current, policy)}"
        )

    return f"{headline}\n  - {_span(entry.current, policy)}"


def render_report(
    entries: list[ChangeEntry],
    policy: TimeWindowPolicy,
    subject: str = "Calendar",
) -> Report | None:
    """Render entries into a report.

    Returns:
        Report, or None when there is nothing to report (callers must not
        send an empty notification)
    """
    if not entries:
        return None

    _, label = GLYPHS[entries[0].kind]
    title = f"{subject}: event {label}"
    return Report(title=title, blocks=[format_entry(e, policy) for e in entries])


def _split_oversized(text: str, limit: int) -> list[str]:
    """Split on line boundaries; only a single over-long line is cut."""
    pieces: list[str] = []
    for line in text.split("\n"):
        if len(line) <= limit:
            pieces.append(line)
        else:
            pieces.extend(line[i:i + limit] for i in range(0, len(line), limit))
    return pieces


def _pack(pieces: list[str], limit: int) -> list[str]:
    chunks: list[str] = []
    current = ""
    for piece in pieces:
        if not current:
            current = piece
        elif len(current) + 1 + len(piece) <= limit:
            current = f"{current}\n{piece}"
        else:
            chunks.append(current)
            current = piece
    if current:
        chunks.append(current)
    return chunks


def chunk_report(report: Report, limit: int = DEFAULT_CHUNK_LIMIT) -> list[str]:
    """Split a report body into chunks of at most ``limit`` characters.

    Entries are never split across chunks unless a single entry exceeds
    the limit by itself, in which case it is split between lines.
    """
    pieces: list[str] = []
    for block in report.blocks:
        if len(block) <= limit:
            pieces.append(block)
        else:
            pieces.extend(_pack(_split_oversized(block, limit), limit))
    return _pack(pieces, limit)
