"""Examples for caching HTTP fetches with diskmemo.

This file demonstrates wrapping an async fetch so repeated requests for the
same URL are served from a directory cache, across restarts, for one day.
"""

import asyncio

import httpx

from diskmemo import FileStorage, cached, load_settings_from_env
from diskmemo.observability import setup_logging


async def fetch_content_snapshot(url: str) -> dict:
    async with httpx.AsyncClient(follow_redirects=True, timeout=30.0) as client:
        response = await client.get(url)
        response.raise_for_status()
        return {"status": response.status_code, "content": response.text}


# =============================================================================
# Example 1: Cache by URL with a 24 hour TTL
# =============================================================================

async def example_1_ttl():
    """Second call is answered from disk."""
    print("=== Example 1: Cache by URL ===\n")

    storage = await FileStorage.open("./.cache/snapshots")
    fetch = cached(
        fetch_content_snapshot,
        storage=storage,
        key_generator=lambda url: url,
        ttl=24 * 60 * 60 * 1000,
    )

    for _ in range(2):
        snapshot = await fetch("https://example.com")
        print(f"status={snapshot['status']} bytes={len(snapshot['content'])}")

    print(f"Stats: {fetch.cache_stats.as_dict()}\n")


# =============================================================================
# Example 2: Settings from the environment
# =============================================================================

async def example_2_env():
    """Directory, TTL and logging from DISKMEMO_* variables."""
    print("=== Example 2: Settings from the environment ===\n")

    settings = load_settings_from_env()
    setup_logging(log_level=settings.log_level, json_logs=settings.json_logs)

    storage = await settings.open_storage()
    fetch = cached(fetch_content_snapshot, storage=storage, ttl=settings.ttl_ms)

    await fetch("https://example.com")
    print(f"Entries on disk: {await storage.size()}\n")


async def main():
    await example_1_ttl()
    await example_2_env()


if __name__ == "__main__":
    asyncio.run(main())
