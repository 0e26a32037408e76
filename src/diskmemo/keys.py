"""Cache key generation for memoized calls.

This module provides the default key generator, which turns a call's
arguments into a canonical JSON string, and the helper the wrapper uses to
run either the default or a caller-supplied generator.
"""

import dataclasses
import inspect
import json
from typing import Any, Callable, Optional

from pydantic import BaseModel

from diskmemo.errors import CacheKeyError


def _encode_default(obj: Any) -> Any:
    """Fallback encoder for values json cannot handle natively."""
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    if isinstance(obj, (set, frozenset)):
        # Set iteration order is not stable across processes
        return sorted(obj, key=lambda item: json.dumps(item, default=_encode_default))
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def generate_cache_key(*args: Any, **kwargs: Any) -> str:
    """Generate a deterministic cache key from call arguments.

    Positional arguments are serialized as a JSON array in call order.
    Dictionary keys keep their insertion order. When keyword arguments are
    present the key is an object instead, ``{"args": [...], "kwargs": {...}}``
    with kwargs sorted by parameter name, so it never matches an array key.

    Args:
        *args: Positional arguments of the call
        **kwargs: Keyword arguments of the call

    Returns:
        Canonical JSON string for the argument list

    Raises:
        CacheKeyError: If an argument cannot be serialized

    Example:
        >>> generate_cache_key("https://example.com", {"page": 1})
        '["https://example.com",{"page":1}]'
    """
    payload: Any = list(args)
    if kwargs:
        payload = {
            "args": list(args),
            "kwargs": {name: kwargs[name] for name in sorted(kwargs)},
        }

    try:
        return json.dumps(
            payload,
            default=_encode_default,
            ensure_ascii=False,
            separators=(",", ":"),
            allow_nan=False,
        )
    except (TypeError, ValueError) as e:
        raise CacheKeyError(str(e)) from e


async def resolve_key(
    key_generator: Optional[Callable[..., Any]],
    args: tuple[Any, ...],
    kwargs: dict[str, Any],
) -> str:
    """Compute the key for one call using the configured generator.

    Custom generators may be plain functions or return an awaitable.

    Raises:
        CacheKeyError: If the generator fails to produce a string
    """
    if key_generator is None:
        return generate_cache_key(*args, **kwargs)

    key = key_generator(*args, **kwargs)
    if inspect.isawaitable(key):
        key = await key
    if not isinstance(key, str):
        raise CacheKeyError(f"key generator returned {type(key).__name__}, expected str")
    return key
