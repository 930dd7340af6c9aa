"""SQLAlchemy-backed key-value store."""

from __future__ import annotations

import logging
from contextlib import AbstractAsyncContextManager
from typing import Callable

from sqlalchemy.ext.asyncio import AsyncSession

from calendar_watch.database.connection import get_db
from calendar_watch.database.models import KeyValueEntry

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


class SqlKeyValueStore:
    """``KeyValueStore`` persisted in the ``kv_entries`` table.

    Each call uses its own short-lived session, so concurrent triggers never
    share a transaction. Writes are upserts: the last writer wins.
    """

    def __init__(self, session_factory: SessionFactory = get_db):
        self._session_factory = session_factory

    async def get(self, key: str) -> str | None:
        async with self._session_factory() as session:
            entry = await session.get(KeyValueEntry, key)
            return entry.value if entry else None

    async def put(self, key: str, value: str) -> None:
        async with self._session_factory() as session:
            await session.merge(KeyValueEntry(key=key, value=value))
            await session.commit()
        logger.debug(f"Stored {key} ({len(value)} chars)")
