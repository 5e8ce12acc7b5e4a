"""
Unit tests for Exception classes.
"""

from fastapi import HTTPException

from app.exceptions.base import (
    AppPermissionError,
    BadRequestError,
    BaseAppException,
    ConflictError,
    NoContentError,
    NotFoundError,
    UnauthenticatedError,
)
from app.exceptions.infrastructure import CacheUnavailableError, ObjectStoreError


class TestBaseAppException:
    def test_base_exception_default_values(self):
        exc = BaseAppException("Test error")

        assert isinstance(exc, HTTPException)
        assert exc.message == "Test error"
        assert exc.status_code == 500
        assert exc.error_code == "INTERNAL_ERROR"
        assert exc.details == {}
        assert exc.detail["message"] == "Test error"


class TestTypedErrors:
    def test_status_codes(self):
        assert BadRequestError().status_code == 400
        assert UnauthenticatedError().status_code == 401
        assert AppPermissionError().status_code == 403
        assert NotFoundError().status_code == 404
        assert ConflictError().status_code == 409
        assert NoContentError().status_code == 204

    def test_unauthenticated_sets_bearer_header(self):
        assert UnauthenticatedError().headers == {"WWW-Authenticate": "Bearer"}

    def test_default_permission_message(self):
        assert AppPermissionError().message == "Not authorized to access this route"

    def test_object_store_error_carries_tokens(self):
        exc = ObjectStoreError("Could not delete", reference_tokens=["a", "b"])

        assert exc.status_code == 503
        assert exc.error_code == "OBJECT_STORE_ERROR"
        assert exc.reference_tokens == ["a", "b"]
        assert exc.detail["details"] == {"reference_tokens": ["a", "b"]}

    def test_cache_unavailable(self):
        exc = CacheUnavailableError()

        assert exc.status_code == 503
        assert exc.error_code == "CACHE_UNAVAILABLE"
