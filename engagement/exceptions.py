"""
Custom Exception Classes for the engagement service

This module defines custom exceptions for consistent error responses across
the tracking, stats and like endpoints.
"""

from enum import Enum
from typing import Any

from fastapi import status


class ErrorCode(str, Enum):
    """Machine-readable error codes returned in error responses."""

    AUTH_REQUIRED = "AUTH_REQUIRED"
    AUTH_FAILED = "AUTH_FAILED"
    AUTH_PERMISSION_DENIED = "AUTH_PERMISSION_DENIED"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    RESOURCE_POST_NOT_FOUND = "RESOURCE_POST_NOT_FOUND"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class EngagementError(Exception):
    """Base exception class for all engagement-related exceptions"""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


# ============================================================================
# Authentication & Authorization Exceptions
# ============================================================================


class UnauthorizedError(EngagementError):
    """Raised when an action needs a signed-in viewer and there is none.

    The UI treats this as a redirect-to-login signal, so the login URL is
    carried in the details.
    """

    def __init__(self, message: str = "Authentication required", login_url: str = "/login"):
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code=ErrorCode.AUTH_REQUIRED,
            details={"login_url": login_url},
        )


class AuthorizationError(EngagementError):
    """Raised when user lacks permission for an action"""

    def __init__(self, message: str = "You do not have permission to perform this action"):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            error_code=ErrorCode.AUTH_PERMISSION_DENIED,
        )


# ============================================================================
# Resource Not Found Exceptions
# ============================================================================


class ResourceNotFoundError(EngagementError):
    """Base class for resource not found errors"""

    def __init__(
        self,
        resource_type: str,
        resource_id: Any | None = None,
        error_code: ErrorCode = ErrorCode.RESOURCE_NOT_FOUND,
    ):
        message = f"{resource_type} not found"
        if resource_id is not None:
            message = f"{resource_type} '{resource_id}' not found"
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            error_code=error_code,
            details={"resource_type": resource_type, "resource_id": resource_id},
        )


class PostNotFoundError(ResourceNotFoundError):
    """Raised when no post matches the slug or id for the requested post type"""

    def __init__(self, post_id: Any | None = None, post_type: str = "Blog post"):
        super().__init__(resource_type=post_type, resource_id=post_id, error_code=ErrorCode.RESOURCE_POST_NOT_FOUND)


# ============================================================================
# Validation Exceptions
# ============================================================================


class ValidationError(EngagementError):
    """Raised when input validation fails"""

    def __init__(self, message: str, field: str | None = None, details: dict[str, Any] | None = None):
        error_details = details or {}
        if field:
            error_details["field"] = field
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code=ErrorCode.VALIDATION_FAILED,
            details=error_details,
        )


# ============================================================================
# Store Exceptions
# ============================================================================


class TransientStoreError(EngagementError):
    """Raised when the cache or the database times out or is unavailable"""

    def __init__(self, message: str = "Engagement data is temporarily unavailable", operation: str | None = None):
        details = {"operation": operation} if operation else {}
        super().__init__(
            message=message,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error_code=ErrorCode.SERVICE_UNAVAILABLE,
            details=details,
        )

