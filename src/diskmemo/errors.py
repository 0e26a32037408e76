"""Custom exceptions for the diskmemo package.

This module defines the exception hierarchy for cache-related errors,
providing structured error handling with machine-readable error codes.
"""

from typing import Optional


class CacheError(Exception):
    """Base exception for all cache-related errors.

    Attributes:
        code: Machine-readable error code
        message: Human-readable error message
    """

    def __init__(self, message: str, code: str) -> None:
        """Initialize cache error.

        Args:
            message: Human-readable error description
            code: Machine-readable error code
        """
        super().__init__(message)
        self.message = message
        self.code = code


class CacheConfigError(CacheError):
    """Raised when wrapper options or settings are invalid."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        """Initialize cache config error.

        Args:
            message: Description of the configuration problem
            field: Optional name of the offending option
        """
        if field:
            full_message = f"Invalid cache option '{field}': {message}"
        else:
            full_message = f"Invalid cache configuration: {message}"

        super().__init__(message=full_message, code="cache_config_error")
        self.field = field


class CacheKeyError(CacheError):
    """Raised when call arguments cannot be turned into a cache key.

    This covers arguments the default key generator cannot serialize and
    custom key generators that return something other than a string.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message=f"Cannot build cache key: {message}", code="cache_key_error")


class CacheStorageError(CacheError):
    """Raised when a storage backend fails to persist or remove an entry.

    Attributes:
        key: Cache key involved, if any
        operation: Storage operation that failed (set, delete, ...)
    """

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        operation: Optional[str] = None,
        code: str = "cache_storage_error",
    ) -> None:
        """Initialize cache storage error.

        Args:
            message: Description of the storage failure
            key: Optional cache key involved in the failure
            operation: Optional name of the failed operation
            code: Machine-readable error code
        """
        if operation:
            full_message = f"Storage {operation} failed: {message}"
        else:
            full_message = f"Storage failure: {message}"

        super().__init__(message=full_message, code=code)
        self.key = key
        self.operation = operation


class CacheSerializationError(CacheStorageError):
    """Raised when a value cannot be serialized for persistence."""

    def __init__(self, key: str, reason: str) -> None:
        """Initialize cache serialization error.

        Args:
            key: Cache key whose value could not be serialized
            reason: Underlying serializer message
        """
        super().__init__(
            message=f"value is not JSON-serializable ({reason})",
            key=key,
            operation="set",
            code="cache_serialization_error",
        )
        self.reason = reason


class StorageNotInitializedError(CacheStorageError):
    """Raised when a storage engine is used before initialize() completed."""

    def __init__(self, directory: str) -> None:
        super().__init__(
            message=f"storage at '{directory}' is not initialized; "
            "await initialize() or use FileStorage.open()",
            code="storage_not_initialized",
        )
        self.directory = directory
