"""Core data model for cached values.

Defines CacheEntry, the unit persisted by every storage backend, and the
millisecond clock used for entry timestamps and TTL checks.
"""

import time
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


def now_ms() -> int:
    """Return the current wall-clock time in integer milliseconds since the epoch."""
    return time.time_ns() // 1_000_000


class CacheEntry(BaseModel):
    """A cached value together with the time it was computed.

    Entries are immutable; refreshing a key replaces the whole entry.

    Attributes:
        value: Any JSON-serializable value
        timestamp: Creation time in milliseconds since the Unix epoch
    """

    model_config = ConfigDict(frozen=True, ser_json_inf_nan="constants")

    value: Any = Field(description="Cached value")
    timestamp: int = Field(ge=0, description="Creation time (ms since epoch)")

    @classmethod
    def create(cls, value: Any) -> "CacheEntry":
        """Build an entry for value stamped with the current time."""
        return cls(value=value, timestamp=now_ms())

    def age_ms(self, now: Optional[int] = None) -> int:
        """Milliseconds elapsed since the entry was created."""
        return (now_ms() if now is None else now) - self.timestamp

    def is_expired(self, ttl_ms: Optional[int], now: Optional[int] = None) -> bool:
        """Check whether the entry is stale under the given TTL.

        Args:
            ttl_ms: Time-to-live in milliseconds, or None for no expiry
            now: Optional reference time (defaults to the current time)

        Returns:
            False when ttl_ms is None; otherwise True once age >= ttl_ms.
            A TTL of zero or less is always expired.
        """
        if ttl_ms is None:
            return False
        return self.age_ms(now) >= ttl_ms
