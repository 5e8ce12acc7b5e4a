# ruff: noqa: D107
"""Base exception classes."""

from typing import Any

from fastapi import HTTPException


class BaseAppException(HTTPException):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR",
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}

        super().__init__(
            status_code=status_code,
            detail={"message": message, "error_code": error_code, "details": details},
        )


class BadRequestError(BaseAppException):
    """Exception raised for a missing or malformed field, enum value or id."""

    def __init__(
        self,
        message: str = "Bad request",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message, status_code=400, error_code="BAD_REQUEST", details=details
        )


class UnauthenticatedError(BaseAppException):
    """Exception raised when the credential is missing, invalid or expired."""

    def __init__(
        self,
        message: str = "Authentication invalid",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            status_code=401,
            error_code="UNAUTHENTICATED",
            details=details,
        )
        self.headers = {"WWW-Authenticate": "Bearer"}


class NotFoundError(BaseAppException):
    """Exception raised when a resource is not found."""

    def __init__(
        self,
        message: str = "Resource not found",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message=message, status_code=404, error_code="NOT_FOUND", details=details)


class AppPermissionError(BaseAppException):
    """Exception raised when user doesn't have permission to access a resource."""

    def __init__(
        self,
        message: str = "Not authorized to access this route",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            status_code=403,
            error_code="PERMISSION_DENIED",
            details=details,
        )


class ConflictError(BaseAppException):
    """Exception raised on a uniqueness or duplicate-state violation."""

    def __init__(
        self,
        message: str = "Resource conflict",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message=message, status_code=409, error_code="CONFLICT", details=details)


class NoContentError(BaseAppException):
    """Signals a no-op such as "nothing to delete".

    Rendered as an empty 204 response so callers can tell a no-op from a failure.
    """

    def __init__(
        self,
        message: str = "Nothing to process",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message, status_code=204, error_code="NO_CONTENT", details=details
        )
