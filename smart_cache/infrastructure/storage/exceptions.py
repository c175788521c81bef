"""
Cache Store Exceptions

Domain-specific exceptions for cache storage operations.
The orchestrator catches these and degrades to a cache miss.
"""

from typing import Any, Dict, Optional


class CacheStoreException(Exception):
    """Base exception for cache storage errors.

    All store and repository operations should raise this or its subclasses.
    Always preserve the original error as the exception cause.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class StoreConnectionException(CacheStoreException):
    """Raised when the backing store cannot be reached."""

    def __init__(
        self,
        message: str = "Cache store connection failed",
        url: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        details = {}
        if url:
            details["url"] = url
        if original_error:
            details["original_error"] = str(original_error)
            details["original_error_type"] = type(original_error).__name__

        super().__init__(
            message=message, error_code="STORE_CONNECTION_ERROR", details=details
        )
        if original_error:
            self.__cause__ = original_error


class StoreOperationException(CacheStoreException):
    """Raised when a single store operation fails."""

    def __init__(
        self,
        operation: str,
        key: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        details: Dict[str, Any] = {"operation": operation}
        if key:
            details["key"] = key
        if original_error:
            details["original_error"] = str(original_error)
            details["original_error_type"] = type(original_error).__name__

        super().__init__(
            message=f"Cache store operation '{operation}' failed",
            error_code="STORE_OPERATION_ERROR",
            details=details,
        )
        if original_error:
            self.__cause__ = original_error


class CacheSerializationException(CacheStoreException):
    """Raised when an envelope cannot be encoded or decoded."""

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        details = {}
        if key:
            details["key"] = key
        if original_error:
            details["original_error"] = str(original_error)
            details["original_error_type"] = type(original_error).__name__

        super().__init__(
            message=message, error_code="CACHE_SERIALIZATION_ERROR", details=details
        )
        if original_error:
            self.__cause__ = original_error
