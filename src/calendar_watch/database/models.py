"""Database models for persisted synchronization state.

## Schema Overview

```
kv_entries
├── channel                  - active watch channel (JSON)
├── snapshot:<calendarId>    - snapshot of future events (JSON)
└── sync:<calendarId>        - continuation token (raw string)
```

The table is a plain key-value store; the layout of the keys is owned by
``calendar_watch.storage.state``.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all database models."""


class KeyValueEntry(Base):
    """One opaque state record."""

    __tablename__ = "kv_entries"

    key: Mapped[str] = mapped_column(String(512), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<KeyValueEntry {self.key}>"
