"""Storage protocol for cache backends.

This module defines the interface every cache storage implementation must
follow to be pluggable into the memoization wrapper.
"""

from typing import Any, Optional, Protocol, runtime_checkable

from diskmemo.models import CacheEntry


@runtime_checkable
class CacheStorage(Protocol):
    """Protocol defining the key-value operations of a cache backend.

    All methods are async so that disk, database or network backends can
    be used interchangeably.
    """

    async def get(self, key: str) -> Optional[CacheEntry]:
        """Retrieve the entry stored under key.

        Args:
            key: Cache key to look up

        Returns:
            The entry if present, None otherwise
        """
        ...

    async def set(self, key: str, value: Any) -> None:
        """Store value under key with the current timestamp.

        Args:
            key: Cache key to store under
            value: Value to cache

        Raises:
            CacheStorageError: If the entry cannot be persisted
        """
        ...

    async def delete(self, key: str) -> None:
        """Remove the entry stored under key. Missing keys are ignored.

        Args:
            key: Cache key to remove
        """
        ...

    async def size(self) -> int:
        """Return the number of stored entries."""
        ...
