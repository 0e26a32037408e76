"""Storage backends for cached entries.

- CacheStorage: protocol every backend implements
- FileStorage: persistent directory-backed storage
- InMemoryStorage: process-local storage
"""

from diskmemo.storage.base import CacheStorage
from diskmemo.storage.file import FileStorage, artifact_name
from diskmemo.storage.memory import InMemoryStorage

__all__ = ["CacheStorage", "FileStorage", "InMemoryStorage", "artifact_name"]
