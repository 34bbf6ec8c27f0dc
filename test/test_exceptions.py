"""
Tests for custom exception classes and the standard error response
"""

import json

from fastapi import status

from engagement.exception_handlers import create_error_response, get_http_error_code
from engagement.exceptions import (
    AuthorizationError,
    EngagementError,
    ErrorCode,
    PostNotFoundError,
    TransientStoreError,
    UnauthorizedError,
    ValidationError,
)


class TestEngagementError:
    def test_defaults(self):
        exc = EngagementError("Test error")
        assert str(exc) == "Test error"
        assert exc.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert exc.error_code is ErrorCode.INTERNAL_ERROR
        assert exc.details == {}


class TestSubclasses:
    def test_unauthorized_carries_login_url(self):
        exc = UnauthorizedError(login_url="/auth/sign-in")
        assert exc.status_code == status.HTTP_401_UNAUTHORIZED
        assert exc.error_code is ErrorCode.AUTH_REQUIRED
        assert exc.details == {"login_url": "/auth/sign-in"}

    def test_authorization_error(self):
        assert AuthorizationError().status_code == status.HTTP_403_FORBIDDEN

    def test_post_not_found(self):
        exc = PostNotFoundError("my-testimony", "Community post")
        assert exc.status_code == status.HTTP_404_NOT_FOUND
        assert exc.message == "Community post 'my-testimony' not found"
        assert exc.details["resource_type"] == "Community post"

    def test_validation_error_field(self):
        exc = ValidationError("Invalid scroll depth", field="scrollDepth")
        assert exc.status_code == status.HTTP_400_BAD_REQUEST
        assert exc.details == {"field": "scrollDepth"}

    def test_transient_store_error(self):
        exc = TransientStoreError(operation="get_stats")
        assert exc.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert exc.details == {"operation": "get_stats"}
        assert TransientStoreError().details == {}


class TestErrorResponse:
    def test_full_body(self):
        response = create_error_response(
            status_code=401,
            message="Authentication required",
            error_code=ErrorCode.AUTH_REQUIRED,
            details={"login_url": "/login"},
            path="/api/blog/x/likes",
        )

        body = json.loads(response.body)
        assert body == {
            "error": {
                "status_code": 401,
                "message": "Authentication required",
                "type": "Unauthorized",
                "error_code": "AUTH_REQUIRED",
                "details": {"login_url": "/login"},
                "path": "/api/blog/x/likes",
            }
        }

    def test_optional_fields_are_omitted(self):
        body = json.loads(create_error_response(status_code=503, message="Down").body)
        assert body == {"error": {"status_code": 503, "message": "Down", "type": "Service Unavailable"}}

    def test_http_error_codes(self):
        assert get_http_error_code(404) == "RESOURCE_NOT_FOUND"
        assert get_http_error_code(418) == "UNKNOWN_ERROR"
