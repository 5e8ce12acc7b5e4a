"""Exceptions raised by external collaborators (object store, cache)."""

from .base import BaseAppException


class ObjectStoreError(BaseAppException):
    """Raised when an object store call fails after retries.

    The request may be retried; blobs left behind are collected by the orphan sweep.
    """

    def __init__(self, message: str = "Object store unavailable", reference_tokens=None):
        super().__init__(
            message=message,
            status_code=503,
            error_code="OBJECT_STORE_ERROR",
            details={"reference_tokens": list(reference_tokens or [])},
        )
        self.reference_tokens = list(reference_tokens or [])


class CacheUnavailableError(BaseAppException):
    """Raised when a cache key could not be purged after a write."""

    def __init__(self, message: str = "Cache unavailable"):
        super().__init__(message=message, status_code=503, error_code="CACHE_UNAVAILABLE")
