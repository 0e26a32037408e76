"""Tests for cache settings and environment loading."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from diskmemo.config import CacheSettings, load_settings_from_env
from diskmemo.errors import CacheConfigError
from diskmemo.storage.file import FileStorage


def test_settings_default_values() -> None:
    """Test CacheSettings with default values."""
    settings = CacheSettings()

    assert settings.directory == ".cache/diskmemo"
    assert settings.ttl_ms is None
    assert settings.log_level == "INFO"
    assert settings.json_logs is True


def test_settings_immutable() -> None:
    """Test that CacheSettings is immutable."""
    settings = CacheSettings()

    with pytest.raises(ValidationError):
        settings.ttl_ms = 10  # type: ignore[misc]


def test_settings_log_level_normalized() -> None:
    """Log level names should be upper-cased."""
    assert CacheSettings(log_level="debug").log_level == "DEBUG"


def test_settings_unknown_log_level_rejected() -> None:
    """Unknown log level names should fail validation."""
    with pytest.raises(ValidationError):
        CacheSettings(log_level="verbose")


def test_settings_empty_directory_rejected() -> None:
    with pytest.raises(ValidationError):
        CacheSettings(directory="")


@pytest.mark.asyncio
async def test_open_storage(tmp_path: Path) -> None:
    """open_storage() should return a ready FileStorage in the directory."""
    settings = CacheSettings(directory=str(tmp_path / "c"))

    storage = await settings.open_storage()

    assert isinstance(storage, FileStorage)
    assert storage.is_ready
    assert storage.directory == (tmp_path / "c").resolve()


def test_load_settings_from_env_defaults() -> None:
    """Test loading settings when no variables are set."""
    with patch.dict(os.environ, {}, clear=True), patch("diskmemo.config.load_dotenv"):
        settings = load_settings_from_env()

    assert settings == CacheSettings()


def test_load_settings_from_env_values() -> None:
    """Test loading settings from DISKMEMO_* variables."""
    env = {
        "DISKMEMO_CACHE_DIR": "/var/cache/app",
        "DISKMEMO_TTL_MS": "86400000",
        "DISKMEMO_LOG_LEVEL": "warning",
        "DISKMEMO_JSON_LOGS": "false",
    }
    with patch.dict(os.environ, env, clear=True), patch("diskmemo.config.load_dotenv"):
        settings = load_settings_from_env()

    assert settings.directory == "/var/cache/app"
    assert settings.ttl_ms == 86_400_000
    assert settings.log_level == "WARNING"
    assert settings.json_logs is False


def test_load_settings_empty_ttl_means_unbounded() -> None:
    with patch.dict(os.environ, {"DISKMEMO_TTL_MS": "  "}, clear=True), patch(
        "diskmemo.config.load_dotenv"
    ):
        settings = load_settings_from_env()

    assert settings.ttl_ms is None


def test_load_settings_invalid_ttl() -> None:
    """A non-integer TTL should raise CacheConfigError."""
    with patch.dict(os.environ, {"DISKMEMO_TTL_MS": "soon"}, clear=True), patch(
        "diskmemo.config.load_dotenv"
    ):
        with pytest.raises(CacheConfigError) as exc_info:
            load_settings_from_env()

    assert exc_info.value.field == "DISKMEMO_TTL_MS"


def test_load_settings_invalid_log_level() -> None:
    """An unknown log level should raise CacheConfigError."""
    with patch.dict(os.environ, {"DISKMEMO_LOG_LEVEL": "loud"}, clear=True), patch(
        "diskmemo.config.load_dotenv"
    ):
        with pytest.raises(CacheConfigError) as exc_info:
            load_settings_from_env()

    assert exc_info.value.field == "log_level"
