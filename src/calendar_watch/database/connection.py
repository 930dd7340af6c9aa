"""Async engine and session lifecycle for the state store.

One engine per process, created at startup (API lifespan or CLI run) and
disposed at shutdown. Sessions are short-lived: the key-value store opens
one per read or write.

## Backends

- ``postgresql+asyncpg://...``: production
- ``sqlite+aiosqlite:///path.db``: local runs
- ``sqlite+aiosqlite:///:memory:``: tests; a single shared connection is
  used so every session sees the same in-memory database

## Usage

```python
from calendar_watch.database import create_tables, get_db, init_db

await init_db()
await create_tables()

async with get_db() as session:
    entry = await session.get(KeyValueEntry, "channel")
```
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from calendar_watch.config import get_settings
from calendar_watch.database.models import Base

logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _engine_options(database_url: str) -> dict[str, Any]:
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return {"pool_pre_ping": True}

    options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
    if url.database in (None, "", ":memory:"):
        options["poolclass"] = StaticPool
    return options


async def init_db(database_url: str | None = None) -> None:
    """Create the engine and session factory.

    Calling it again replaces the previous engine.

    Args:
        database_url: Connection string (defaults to ``DATABASE_URL``)
    """
    global _engine, _session_factory

    if _engine is not None:
        await close_db()

    settings = get_settings()
    url = database_url or settings.database_url

    _engine = create_async_engine(
        url,
        echo=settings.database_echo,
        **_engine_options(url),
    )
    _session_factory = async_sessionmaker(
        _engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    logger.info(f"State store connected ({make_url(url).get_backend_name()})")


async def close_db() -> None:
    """Dispose the engine. Safe to call when not initialized."""
    global _engine, _session_factory

    if _engine is None:
        return

    await _engine.dispose()
    _engine = None
    _session_factory = None
    logger.info("State store connection closed")


async def create_tables() -> None:
    """Create the state tables if they do not exist."""
    if _engine is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")

    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.debug("State tables ensured")


@asynccontextmanager
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Open a session; callers commit explicitly, errors roll back."""
    if _session_factory is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")

    async with _session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
