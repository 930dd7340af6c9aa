"""In-process key-value store (tests and ephemeral runs)."""

from __future__ import annotations


class InMemoryKeyValueStore:
    """Dictionary-backed ``KeyValueStore``."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def put(self, key: str, value: str) -> None:
        self.data[key] = value
