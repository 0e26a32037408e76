"""Pytest configuration and shared fixtures for the test suite."""

from pathlib import Path
from typing import AsyncGenerator

import pytest

from diskmemo.storage.file import FileStorage
from diskmemo.storage.memory import InMemoryStorage


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    """Directory for a FileStorage under test (not created yet)."""
    return tmp_path / "cache"


@pytest.fixture
async def file_storage(cache_dir: Path) -> AsyncGenerator[FileStorage, None]:
    """Create an initialized FileStorage in a temporary directory.

    Yields:
        Ready FileStorage instance
    """
    storage = await FileStorage.open(cache_dir)
    yield storage


@pytest.fixture
def memory_storage() -> InMemoryStorage:
    """Create an empty in-memory storage."""
    return InMemoryStorage()
