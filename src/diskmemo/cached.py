"""Memoization wrapper for async functions.

``cached()`` wraps an async function so that results are looked up in a
storage backend before the function runs, and stored after it succeeds.
Entries older than the configured TTL are deleted and recomputed.

Example:
    >>> storage = await FileStorage.open("./cache")
    >>> fetch_page = cached(fetch, storage=storage, ttl=24 * 60 * 60 * 1000)
    >>> body = await fetch_page("https://example.com")
"""

import asyncio
import functools
import inspect
from dataclasses import asdict, dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictInt,
    ValidationError,
    field_validator,
)

from diskmemo.errors import CacheConfigError
from diskmemo.keys import resolve_key
from diskmemo.models import now_ms
from diskmemo.observability.logging import get_logger, short_key
from diskmemo.storage.base import CacheStorage

logger = get_logger(__name__)

T = TypeVar("T")


class CacheOptions(BaseModel):
    """Configuration for a memoized function.

    Attributes:
        storage: Backend implementing the CacheStorage protocol
        key_generator: Optional function mapping call arguments to a key
        ttl: Optional time-to-live in milliseconds (None = never expires)
        coalesce: Share one in-flight computation between concurrent misses
        raise_on_storage_error: Propagate storage write failures instead of logging them
    """

    model_config = ConfigDict(frozen=True)

    storage: Any = Field(description="Cache storage backend")
    key_generator: Optional[Callable[..., Any]] = Field(
        default=None, description="Custom key generator (default: canonical JSON of args)"
    )
    ttl: Optional[StrictInt] = Field(default=None, description="TTL in milliseconds")
    coalesce: StrictBool = Field(default=False, description="Deduplicate concurrent misses")
    raise_on_storage_error: StrictBool = Field(
        default=False, description="Raise instead of logging storage write failures"
    )

    @field_validator("storage")
    @classmethod
    def validate_storage(cls, value: Any) -> Any:
        """Ensure the backend provides get/set/delete/size."""
        if not isinstance(value, CacheStorage):
            raise ValueError(
                f"{type(value).__name__} does not implement get/set/delete/size"
            )
        return value


@dataclass
class CacheStats:
    """Per-wrapper counters.

    Attributes:
        hits: Calls answered from storage
        misses: Calls that invoked the wrapped function (includes expired)
        expired: Entries found stale and deleted
        errors: Wrapped function failures
        storage_errors: Storage write or delete failures
    """

    hits: int = 0
    misses: int = 0
    expired: int = 0
    errors: int = 0
    storage_errors: int = 0

    def reset(self) -> None:
        self.hits = self.misses = self.expired = self.errors = self.storage_errors = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


def _build_options(**kwargs: Any) -> CacheOptions:
    try:
        return CacheOptions(**kwargs)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or None
        raise CacheConfigError(first["msg"], field=field) from e


def cached(
    fn: Callable[..., Awaitable[T]],
    *,
    storage: CacheStorage,
    key_generator: Optional[Callable[..., Any]] = None,
    ttl: Optional[int] = None,
    coalesce: bool = False,
    raise_on_storage_error: bool = False,
) -> Callable[..., Awaitable[T]]:
    """Create a cached version of an async function.

    On each call the key is computed from the arguments and looked up in
    storage. A fresh entry is returned without calling fn. A stale entry
    is deleted. On a miss fn runs with the original arguments and its
    result is stored. Exceptions from fn propagate and are never cached.

    If storing the result fails, the error is logged and the computed
    value is still returned, unless raise_on_storage_error is set.

    Args:
        fn: Async function to cache
        storage: Backend implementing the CacheStorage protocol
        key_generator: Optional function of the call arguments returning a
            string key (or an awaitable of one). Defaults to
            generate_cache_key.
        ttl: Optional time-to-live in milliseconds. Zero or negative
            values make every entry stale immediately.
        coalesce: If True, concurrent misses for the same key share a
            single call to fn. The shared call runs in its own task and
            completes even if the caller that started it is cancelled.
        raise_on_storage_error: If True, storage write failures propagate

    Returns:
        Async function with the same signature as fn. It exposes
        ``cache_options`` and ``cache_stats`` attributes.

    Raises:
        CacheConfigError: If fn is not async or an option is invalid
    """
    if not inspect.iscoroutinefunction(fn):
        raise CacheConfigError("must be an async function", field="fn")

    options = _build_options(
        storage=storage,
        key_generator=key_generator,
        ttl=ttl,
        coalesce=coalesce,
        raise_on_storage_error=raise_on_storage_error,
    )
    stats = CacheStats()
    fn_name = getattr(fn, "__qualname__", repr(fn))
    in_flight: dict[str, asyncio.Task] = {}

    async def guard_storage(operation: str, key: str, call: Callable[[], Awaitable[None]]) -> None:
        try:
            await call()
        except Exception as e:
            stats.storage_errors += 1
            if options.raise_on_storage_error:
                raise
            logger.error(
                "cache_store_failed",
                function=fn_name,
                operation=operation,
                key=short_key(key),
                error=str(e),
                exc_info=True,
            )

    async def compute(key: str, args: tuple[Any, ...], kwargs: dict[str, Any]) -> T:
        try:
            result = await fn(*args, **kwargs)
        except Exception:
            stats.errors += 1
            raise
        await guard_storage("set", key, lambda: options.storage.set(key, result))
        return result

    async def compute_shared(key: str, args: tuple[Any, ...], kwargs: dict[str, Any]) -> T:
        task = in_flight.get(key)
        if task is None or task.done():
            task = asyncio.ensure_future(compute(key, args, kwargs))
            in_flight[key] = task
            task.add_done_callback(functools.partial(settle, key))
        else:
            logger.debug("cache_join_in_flight", function=fn_name, key=short_key(key))
        # Cancelling one caller must not cancel the shared task
        return await asyncio.shield(task)

    def settle(key: str, task: asyncio.Task) -> None:
        if in_flight.get(key) is task:
            del in_flight[key]
        if not task.cancelled():
            # Mark retrieved so a failure nobody awaits is not reported by asyncio
            task.exception()

    @functools.wraps(fn)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        key = await resolve_key(options.key_generator, args, kwargs)

        entry = await options.storage.get(key)
        if entry is not None:
            age = now_ms() - entry.timestamp
            if options.ttl is None or age < options.ttl:
                stats.hits += 1
                logger.debug("cache_hit", function=fn_name, key=short_key(key), age_ms=age)
                return entry.value

            stats.expired += 1
            logger.debug(
                "cache_entry_expired", function=fn_name, key=short_key(key), age_ms=age
            )
            await guard_storage("delete", key, lambda: options.storage.delete(key))

        stats.misses += 1
        logger.debug("cache_miss", function=fn_name, key=short_key(key))

        if options.coalesce:
            return await compute_shared(key, args, kwargs)
        return await compute(key, args, kwargs)

    wrapper.cache_options = options  # type: ignore[attr-defined]
    wrapper.cache_stats = stats  # type: ignore[attr-defined]
    return wrapper


def memoize(
    *,
    storage: CacheStorage,
    key_generator: Optional[Callable[..., Any]] = None,
    ttl: Optional[int] = None,
    coalesce: bool = False,
    raise_on_storage_error: bool = False,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Decorator form of cached().

    Example:
        >>> @memoize(storage=storage, ttl=60_000)
        ... async def fetch_user(user_id: str) -> dict:
        ...     ...
    """

    def decorator(fn: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        return cached(
            fn,
            storage=storage,
            key_generator=key_generator,
            ttl=ttl,
            coalesce=coalesce,
            raise_on_storage_error=raise_on_storage_error,
        )

    return decorator
