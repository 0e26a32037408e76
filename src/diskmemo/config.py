"""Configuration models and environment loading for diskmemo.

Settings control where the file cache lives, the default TTL, and how
logging is set up. Values can be supplied directly or read from
DISKMEMO_* environment variables (a .env file is honoured).
"""

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from diskmemo.errors import CacheConfigError
from diskmemo.storage.file import FileStorage

_TRUE_VALUES = ("true", "1", "yes")
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class CacheSettings(BaseModel):
    """Process-level cache settings.

    Attributes:
        directory: Directory backing the FileStorage
        ttl_ms: Default time-to-live in milliseconds (None = never expires)
        log_level: Logging level name passed to setup_logging()
        json_logs: Emit JSON logs instead of console output

    Example:
        >>> settings = CacheSettings(directory="/tmp/cache", ttl_ms=60_000)
        >>> settings.ttl_ms
        60000
    """

    model_config = ConfigDict(frozen=True)

    directory: str = Field(default=".cache/diskmemo", min_length=1, description="Cache directory")
    ttl_ms: Optional[int] = Field(default=None, description="Default TTL in milliseconds")
    log_level: str = Field(default="INFO", description="Logging level name")
    json_logs: bool = Field(default=True, description="JSON log output")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Normalize and validate the logging level name.

        Raises:
            ValueError: If the name is not a standard logging level
        """
        level = value.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"unknown log level '{value}'")
        return level

    async def open_storage(self) -> FileStorage:
        """Open the FileStorage configured by these settings."""
        return await FileStorage.open(self.directory)


def load_settings_from_env() -> CacheSettings:
    """Load cache settings from environment variables.

    Automatically loads variables from a .env file if present.

    Reads:
    - DISKMEMO_CACHE_DIR: Cache directory
    - DISKMEMO_TTL_MS: Default TTL in milliseconds (empty = never expires)
    - DISKMEMO_LOG_LEVEL: Logging level name
    - DISKMEMO_JSON_LOGS: JSON log output (true/false)

    Returns:
        CacheSettings loaded from environment

    Raises:
        CacheConfigError: If a variable has an invalid value
    """
    load_dotenv()

    ttl_str = os.getenv("DISKMEMO_TTL_MS", "").strip()
    try:
        ttl_ms = int(ttl_str) if ttl_str else None
    except ValueError as e:
        raise CacheConfigError(f"'{ttl_str}' is not an integer", field="DISKMEMO_TTL_MS") from e

    json_logs = os.getenv("DISKMEMO_JSON_LOGS", "true").lower() in _TRUE_VALUES

    try:
        return CacheSettings(
            directory=os.getenv("DISKMEMO_CACHE_DIR", ".cache/diskmemo"),
            ttl_ms=ttl_ms,
            log_level=os.getenv("DISKMEMO_LOG_LEVEL", "INFO"),
            json_logs=json_logs,
        )
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or None
        raise CacheConfigError(first["msg"], field=field) from e
