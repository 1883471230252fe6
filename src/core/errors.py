"""Application error taxonomy.

Services raise these; the exception handler registered in ``src.main`` maps
each ``code`` to an HTTP status and a structured error payload.
"""

from fastapi import status


class AppError(Exception):
    """Base application error."""

    code = "app_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, code: str | None = None) -> None:
        self.message = message or self.default_message
        if code:
            self.code = code
        super().__init__(self.message)


class ValidationError(AppError):
    """Missing or malformed input the caller can correct."""

    code = "validation_error"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class InvalidParent(ValidationError):
    """Reply references a comment that is missing or on another post."""

    code = "invalid_parent"
    default_message = "Parent comment does not exist on this post"


class Unauthorized(AppError):
    """Missing or invalid credential."""

    code = "unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"


class Forbidden(AppError):
    """Authenticated but not permitted."""

    code = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You are not allowed to perform this action"


class NotFound(AppError):
    """Referenced entity does not exist."""

    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class UpstreamFailure(AppError):
    """Document store or blob host unreachable or erroring."""

    code = "upstream_failure"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Upstream service failure"


class StoreUnavailable(UpstreamFailure):
    """Document store could not complete the operation."""

    code = "store_unavailable"
    default_message = "Document store unavailable"


def error_payload(
    status_code: int, message: str, code: str, request_id: str | None
) -> dict:
    """Build the JSON body returned for every failed request."""
    return {
        "error": True,
        "code": code,
        "message": message,
        "status_code": status_code,
        "request_id": request_id,
    }
