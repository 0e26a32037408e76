"""Tests for cache key generation."""

from dataclasses import dataclass

import pytest
from pydantic import BaseModel

from diskmemo.errors import CacheKeyError
from diskmemo.keys import generate_cache_key, resolve_key


class Query(BaseModel):
    term: str
    page: int = 1


@dataclass
class Point:
    x: int
    y: int


class TestGenerateCacheKey:
    """Tests for generate_cache_key function."""

    def test_positional_args_serialize_as_json_array(self) -> None:
        """Positional arguments should produce a compact JSON array."""
        key = generate_cache_key("https://example.com", 3, None, True)

        assert key == '["https://example.com",3,null,true]'

    def test_no_args(self) -> None:
        """A call without arguments should have a stable key."""
        assert generate_cache_key() == "[]"

    def test_same_inputs_produce_same_key(self) -> None:
        """Structurally equal arguments should produce identical keys."""
        key1 = generate_cache_key({"a": [1, 2], "b": {"c": "d"}}, "x")
        key2 = generate_cache_key({"a": [1, 2], "b": {"c": "d"}}, "x")

        assert key1 == key2

    def test_different_args_produce_different_keys(self) -> None:
        """Changing any argument should change the key."""
        base = generate_cache_key("a", 1, {"k": "v"})

        assert generate_cache_key("b", 1, {"k": "v"}) != base
        assert generate_cache_key("a", 2, {"k": "v"}) != base
        assert generate_cache_key("a", 1, {"k": "w"}) != base
        assert generate_cache_key("a", 1) != base

    def test_argument_order_matters(self) -> None:
        """Positional order is part of the key."""
        assert generate_cache_key(1, 2) != generate_cache_key(2, 1)

    def test_string_and_number_are_distinct(self) -> None:
        """Type differences should not collapse to the same key."""
        assert generate_cache_key("1") != generate_cache_key(1)

    def test_tuples_and_lists_are_equivalent(self) -> None:
        """Tuples serialize the same way lists do."""
        assert generate_cache_key((1, 2)) == generate_cache_key([1, 2])

    def test_dict_insertion_order_is_preserved(self) -> None:
        """Dictionary keys are serialized in insertion order, not sorted."""
        assert generate_cache_key({"b": 1, "a": 2}) == '[{"b":1,"a":2}]'

    def test_keyword_arguments_sorted_by_name(self) -> None:
        """Keyword order at the call site should not affect the key."""
        key1 = generate_cache_key("u", page=1, limit=10)
        key2 = generate_cache_key("u", limit=10, page=1)

        assert key1 == key2
        assert key1 == '{"args":["u"],"kwargs":{"limit":10,"page":1}}'

    def test_keyword_and_positional_are_distinct(self) -> None:
        """Passing a value by keyword is a different call shape."""
        assert generate_cache_key(1) != generate_cache_key(x=1)

    def test_keyword_form_never_matches_list_and_dict_arguments(self) -> None:
        """A list plus a dict passed positionally must not look like kwargs."""
        assert generate_cache_key([1], {"a": 1}) != generate_cache_key(1, a=1)
        assert generate_cache_key([], {"a": 1}) != generate_cache_key(a=1)

    def test_unicode_is_kept_verbatim(self) -> None:
        """Non-ASCII text should not be escaped."""
        assert generate_cache_key("café") == '["café"]'

    def test_pydantic_model_argument(self) -> None:
        """pydantic models should serialize by their fields."""
        key1 = generate_cache_key(Query(term="python"))
        key2 = generate_cache_key(Query(term="python", page=1))

        assert key1 == key2
        assert key1 == '[{"term":"python","page":1}]'

    def test_dataclass_argument(self) -> None:
        """Dataclasses should serialize by their fields."""
        assert generate_cache_key(Point(1, 2)) == '[{"x":1,"y":2}]'

    def test_set_argument_is_order_independent(self) -> None:
        """Sets should serialize deterministically."""
        assert generate_cache_key({"b", "a", "c"}) == generate_cache_key({"c", "a", "b"})

    def test_unserializable_argument_raises(self) -> None:
        """Arguments JSON cannot represent should raise CacheKeyError."""
        with pytest.raises(CacheKeyError) as exc_info:
            generate_cache_key(object())

        assert exc_info.value.code == "cache_key_error"

    def test_nan_argument_raises(self) -> None:
        """NaN has no canonical JSON form."""
        with pytest.raises(CacheKeyError):
            generate_cache_key(float("nan"))


class TestResolveKey:
    """Tests for resolve_key helper."""

    @pytest.mark.asyncio
    async def test_default_generator(self) -> None:
        """Without a custom generator the canonical JSON key is used."""
        key = await resolve_key(None, ("a",), {"n": 1})

        assert key == generate_cache_key("a", n=1)

    @pytest.mark.asyncio
    async def test_custom_sync_generator(self) -> None:
        """A plain function generator should receive the call arguments."""
        key = await resolve_key(lambda url, **kw: f"url:{url}", ("https://x",), {"page": 2})

        assert key == "url:https://x"

    @pytest.mark.asyncio
    async def test_custom_async_generator(self) -> None:
        """An async generator should be awaited."""

        async def key_fn(user_id: str) -> str:
            return f"user:{user_id}"

        assert await resolve_key(key_fn, ("42",), {}) == "user:42"

    @pytest.mark.asyncio
    async def test_non_string_key_raises(self) -> None:
        """Generators must return strings."""
        with pytest.raises(CacheKeyError):
            await resolve_key(lambda *args: 123, (1,), {})
