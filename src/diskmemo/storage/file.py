"""Directory-backed implementation of the cache storage protocol.

Layout inside the configured directory:
- ``_keys.json``: JSON array of every key believed to be present (the index)
- ``<encoded-key>.json``: one ``{"value": ..., "timestamp": ...}`` file per key

The index is rewritten in full on every mutation. Both the index and the
entry files are written to a temporary file first and moved into place, so a
reader never observes a half-written document. Only one process should
write to a given directory at a time.
"""

import asyncio
import base64
import contextlib
import functools
import hashlib
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar, Union

from pydantic import TypeAdapter

from diskmemo.errors import CacheSerializationError, CacheStorageError, StorageNotInitializedError
from diskmemo.models import CacheEntry
from diskmemo.observability.logging import get_logger, short_key

logger = get_logger(__name__)

INDEX_FILENAME = "_keys.json"
ENTRY_SUFFIX = ".json"

# Longer stems fall back to a digest to stay under filesystem name limits
_MAX_STEM_LENGTH = 200

_INDEX_ADAPTER = TypeAdapter(list[str])

_R = TypeVar("_R")


def artifact_name(key: str) -> str:
    """Derive the entry filename for a cache key.

    The stem is the URL-safe base64 encoding of the key's UTF-8 bytes with
    padding stripped, which only uses ``A-Z a-z 0-9 - _``. Stems longer than
    200 characters are replaced by ``h_`` plus the SHA-256 hex digest.

    Args:
        key: Cache key

    Returns:
        Filename (without directory) for the key's entry artifact

    Example:
        >>> artifact_name('["a"]')
        'WyJhIl0.json'
    """
    raw = key.encode("utf-8", errors="surrogatepass")
    stem = base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")
    if len(stem) > _MAX_STEM_LENGTH:
        stem = "h_" + hashlib.sha256(raw).hexdigest()
    return stem + ENTRY_SUFFIX


def _write_atomic(path: Path, data: str) -> None:
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".tmp-", suffix=ENTRY_SUFFIX)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(data)
        os.replace(tmp_name, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_name)
        raise


def _read_entry(path: Path) -> CacheEntry:
    return CacheEntry.model_validate_json(path.read_bytes())


def _unlink(path: Path) -> None:
    path.unlink(missing_ok=True)


def _reject_non_finite(constant: str) -> Any:
    raise ValueError(f"{constant} is not representable in JSON")


class FileStorage:
    """Persistent cache storage backed by a directory of JSON files.

    Create instances with ``await FileStorage.open(directory)``, or construct
    directly and ``await storage.initialize()`` (or use ``async with``)
    before the first operation.

    Attributes:
        _directory: Resolved backing directory
        _index_path: Path of the index file
        _keys: In-memory index, an insertion-ordered set of keys
        _lock: Asyncio lock serializing index mutations
        _ready: Whether initialize() has completed

    Example:
        >>> storage = await FileStorage.open("./cache")
        >>> await storage.set("greeting", {"text": "hello"})
        >>> (await storage.get("greeting")).value
        {'text': 'hello'}
    """

    def __init__(self, directory: Union[str, os.PathLike]) -> None:
        """Prepare a storage engine for the given directory.

        No I/O happens here; call initialize() before use.

        Args:
            directory: Directory holding the index and entry files
        """
        self._directory = Path(directory).expanduser().resolve()
        self._index_path = self._directory / INDEX_FILENAME
        self._keys: dict[str, None] = {}
        self._lock = asyncio.Lock()
        self._ready = False

    @classmethod
    async def open(cls, directory: Union[str, os.PathLike]) -> "FileStorage":
        """Create and initialize a storage engine in one step.

        Args:
            directory: Directory holding the index and entry files

        Returns:
            A ready-to-use FileStorage

        Raises:
            CacheStorageError: If the directory or index cannot be created
        """
        storage = cls(directory)
        await storage.initialize()
        return storage

    async def __aenter__(self) -> "FileStorage":
        await self.initialize()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        return None

    @property
    def directory(self) -> Path:
        """Resolved backing directory."""
        return self._directory

    @property
    def index_path(self) -> Path:
        """Path of the index file."""
        return self._index_path

    @property
    def is_ready(self) -> bool:
        return self._ready

    async def initialize(self) -> None:
        """Create the backing directory and load the persisted index.

        A missing or unreadable index is replaced by an empty one, which is
        written immediately. Calling this more than once is a no-op.

        Raises:
            CacheStorageError: If the directory or the empty index cannot be written
        """
        if self._ready:
            return

        async with self._lock:
            if self._ready:
                return

            try:
                mkdir = functools.partial(self._directory.mkdir, parents=True, exist_ok=True)
                await self._run(mkdir)
            except OSError as e:
                raise CacheStorageError(str(e), operation="initialize") from e

            keys: Optional[list[str]] = None
            try:
                keys = await self._run(self._read_index)
            except FileNotFoundError:
                pass
            except (OSError, ValueError) as e:
                logger.warning(
                    "storage_index_reset", directory=str(self._directory), error=str(e)
                )

            if keys is None:
                self._keys = {}
                await self._persist_index()
            else:
                self._keys = dict.fromkeys(keys)

            self._ready = True
            logger.info(
                "storage_initialized", directory=str(self._directory), size=len(self._keys)
            )

    async def get(self, key: str) -> Optional[CacheEntry]:
        """Retrieve the entry stored under key.

        An indexed key whose file is missing or unreadable is treated as a
        miss and dropped from the index before returning.

        Args:
            key: Cache key to look up

        Returns:
            The entry if present and readable, None otherwise
        """
        self._ensure_ready()
        if key not in self._keys:
            return None

        path = self._artifact_path(key)
        try:
            return await self._run(functools.partial(_read_entry, path))
        except (OSError, ValueError) as e:
            read_error = e

        async with self._lock:
            if key not in self._keys:
                return None
            # A set() may have replaced the file while we were reading
            try:
                return await self._run(functools.partial(_read_entry, path))
            except (OSError, ValueError):
                pass

            self._keys.pop(key, None)
            try:
                await self._persist_index()
            except CacheStorageError as e:
                logger.error("storage_index_repair_failed", key=short_key(key), error=str(e))

        logger.warning("storage_read_repaired", key=short_key(key), error=str(read_error))
        return None

    async def set(self, key: str, value: Any) -> None:
        """Store value under key, replacing any existing entry.

        Args:
            key: Cache key to store under
            value: JSON-serializable value

        Raises:
            CacheSerializationError: If value cannot be serialized or contains
                NaN or infinite floats
            CacheStorageError: If the entry or index cannot be written
        """
        self._ensure_ready()
        entry = CacheEntry.create(value)
        try:
            payload = entry.model_dump_json()
            json.loads(payload, parse_constant=_reject_non_finite)
        except (TypeError, ValueError) as e:
            raise CacheSerializationError(key, str(e)) from e

        async with self._lock:
            try:
                await self._run(functools.partial(_write_atomic, self._artifact_path(key), payload))
            except OSError as e:
                raise CacheStorageError(str(e), key=key, operation="set") from e
            self._keys[key] = None
            await self._persist_index()

    async def delete(self, key: str) -> None:
        """Remove the entry stored under key. Missing entries are ignored.

        Args:
            key: Cache key to remove

        Raises:
            CacheStorageError: If an existing file or the index cannot be written
        """
        self._ensure_ready()
        async with self._lock:
            try:
                await self._run(functools.partial(_unlink, self._artifact_path(key)))
            except OSError as e:
                raise CacheStorageError(str(e), key=key, operation="delete") from e
            self._keys.pop(key, None)
            await self._persist_index()

    async def size(self) -> int:
        """Return the number of keys in the index."""
        self._ensure_ready()
        return len(self._keys)

    async def keys(self) -> list[str]:
        """Return a snapshot of the indexed keys in insertion order."""
        self._ensure_ready()
        return list(self._keys)

    async def clear(self) -> None:
        """Remove every indexed entry and persist an empty index.

        Raises:
            CacheStorageError: If a file or the index cannot be written
        """
        self._ensure_ready()
        async with self._lock:
            for key in list(self._keys):
                try:
                    await self._run(functools.partial(_unlink, self._artifact_path(key)))
                except OSError as e:
                    raise CacheStorageError(str(e), key=key, operation="clear") from e
                self._keys.pop(key, None)
            await self._persist_index()
            logger.info("storage_cleared", directory=str(self._directory))

    def _ensure_ready(self) -> None:
        if not self._ready:
            raise StorageNotInitializedError(str(self._directory))

    def _artifact_path(self, key: str) -> Path:
        return self._directory / artifact_name(key)

    def _read_index(self) -> list[str]:
        return _INDEX_ADAPTER.validate_json(self._index_path.read_bytes())

    async def _persist_index(self) -> None:
        """Rewrite the whole index file. Caller must hold the lock."""
        payload = json.dumps(list(self._keys))
        try:
            await self._run(functools.partial(_write_atomic, self._index_path, payload))
        except OSError as e:
            raise CacheStorageError(str(e), operation="write_index") from e

    @staticmethod
    async def _run(func: Callable[[], _R]) -> _R:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func)
