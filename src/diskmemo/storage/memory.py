"""In-memory implementation of the cache storage protocol.

Dictionary-based storage suitable for tests and short-lived processes.
Entries do not survive a restart.
"""

import asyncio
from typing import Any, Optional

from diskmemo.models import CacheEntry


class InMemoryStorage:
    """Thread-safe in-memory implementation of CacheStorage.

    Uses a dictionary for storage with an asyncio lock for safe concurrent
    access from coroutines.

    Attributes:
        _entries: Dictionary mapping cache key to CacheEntry
        _lock: Asyncio lock for thread-safe operations
    """

    def __init__(self) -> None:
        """Initialize an empty in-memory store."""
        self._entries: dict[str, CacheEntry] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Optional[CacheEntry]:
        async with self._lock:
            return self._entries.get(key)

    async def set(self, key: str, value: Any) -> None:
        async with self._lock:
            self._entries[key] = CacheEntry.create(value)

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._entries.pop(key, None)

    async def size(self) -> int:
        async with self._lock:
            return len(self._entries)

    async def keys(self) -> list[str]:
        """Return a snapshot of the stored keys."""
        async with self._lock:
            return list(self._entries)

    async def clear(self) -> None:
        """Remove every entry."""
        async with self._lock:
            self._entries.clear()
