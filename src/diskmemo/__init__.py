"""diskmemo: persistent memoization for async functions.

Wrap an async function with cached() (or the memoize() decorator) to store
its results in a storage backend such as FileStorage, keyed by the call
arguments and optionally expiring after a TTL.
"""

from diskmemo.cached import CacheOptions, CacheStats, cached, memoize
from diskmemo.config import CacheSettings, load_settings_from_env
from diskmemo.errors import (
    CacheConfigError,
    CacheError,
    CacheKeyError,
    CacheSerializationError,
    CacheStorageError,
    StorageNotInitializedError,
)
from diskmemo.keys import generate_cache_key
from diskmemo.models import CacheEntry
from diskmemo.storage import CacheStorage, FileStorage, InMemoryStorage

__version__ = "0.1.0"

__all__ = [
    "cached",
    "memoize",
    "CacheOptions",
    "CacheStats",
    "CacheEntry",
    "CacheStorage",
    "FileStorage",
    "InMemoryStorage",
    "generate_cache_key",
    "CacheSettings",
    "load_settings_from_env",
    "CacheError",
    "CacheConfigError",
    "CacheKeyError",
    "CacheStorageError",
    "CacheSerializationError",
    "StorageNotInitializedError",
]
