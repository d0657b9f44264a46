"""
HTTP package - Response envelope and error taxonomy.
"""
from shared.http.errors import (
    ApiError,
    AuthError,
    BadRequestError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    RateLimited,
    ValidationError,
    error_from_result,
    register_exception_handlers,
)
from shared.http.responses import error_response, success_response

__all__ = [
    "ApiError",
    "AuthError",
    "BadRequestError",
    "ForbiddenError",
    "InternalError",
    "NotFoundError",
    "RateLimited",
    "ValidationError",
    "error_from_result",
    "register_exception_handlers",
    "error_response",
    "success_response",
]
