"""
HTTP error taxonomy and the exception handlers that render it.

Handlers raise an ``ApiError`` subclass (directly, or via
``error_from_result`` for a service ``Err``); the registered handler turns it
into the standard envelope. Anything else becomes a generic 500.
"""
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from shared.http.responses import error_response
from shared.models.result import Err, ErrorKind
from shared.services.logger import get_logger


logger = get_logger(__name__)


class ApiError(Exception):
    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        errors: Optional[list] = None,
        data: Optional[Any] = None,
    ):
        self.message = message or self.default_message
        self.errors = errors
        self.data = data
        super().__init__(self.message)


class ValidationError(ApiError):
    status_code = 400
    default_message = "Validation failed"


class BadRequestError(ApiError):
    """A business rule refused the operation."""
    status_code = 400
    default_message = "Bad request"


class AuthError(ApiError):
    status_code = 401
    default_message = "Invalid token."


class ForbiddenError(ApiError):
    status_code = 403
    default_message = "Forbidden"


class NotFoundError(ApiError):
    status_code = 404
    default_message = "Not found"


class RateLimited(ApiError):
    """OTP throttling. The message carries the wait time."""
    status_code = 400
    default_message = "Too many attempts"


class InternalError(ApiError):
    status_code = 500
    default_message = "Internal server error"


_KIND_TO_ERROR = {
    ErrorKind.USER_NOT_FOUND: BadRequestError,
    ErrorKind.DELIVERY_FAILED: BadRequestError,
    ErrorKind.ALREADY_VERIFIED: BadRequestError,
    ErrorKind.INVALID_OR_EXPIRED: BadRequestError,
    ErrorKind.EXPIRED: BadRequestError,
    ErrorKind.INVALID_CODE: BadRequestError,
    ErrorKind.EMAIL_TAKEN: BadRequestError,
    ErrorKind.INVALID_CREDENTIALS: BadRequestError,
    ErrorKind.VERIFICATION_REQUIRED: BadRequestError,
    ErrorKind.TOO_MANY_ATTEMPTS: RateLimited,
    ErrorKind.RESEND_TOO_SOON: RateLimited,
    ErrorKind.TOKEN_EXPIRED: AuthError,
    ErrorKind.TOKEN_INVALID: AuthError,
    ErrorKind.NOTE_NOT_FOUND: NotFoundError,
    ErrorKind.OPERATION_FAILED: InternalError,
}


def error_from_result(err: Err, errors: Optional[list] = None, data: Optional[Any] = None) -> ApiError:
    """Map a service failure onto the HTTP taxonomy."""
    error_class = _KIND_TO_ERROR.get(err.kind, InternalError)
    return error_class(err.message, errors=errors, data=data)


def _field_name(loc: tuple) -> str:
    # ("body", "title") -> "title"; ("body",) -> "body"
    parts = [str(part) for part in loc if part not in ("body", "query", "path", "header")]
    return ".".join(parts) if parts else str(loc[0]) if loc else "unknown"


def _clean_message(msg: str) -> str:
    prefix = "Value error, "
    return msg[len(prefix):] if msg.startswith(prefix) else msg


# --- Handlers ---

async def api_error_handler(request: Request, exc: ApiError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return error_response(exc.status_code, exc.message, errors=exc.errors, data=exc.data)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": _field_name(tuple(error.get("loc", ()))), "message": _clean_message(error.get("msg", ""))}
        for error in exc.errors()
    ]
    return error_response(400, ValidationError.default_message, errors=errors)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return error_response(404, f"Route {request.url.path} not found")
    return error_response(exc.status_code, str(exc.detail))


def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    # slowapi's middleware calls this handler without awaiting it
    logger.warning(f"Rate limit exceeded for {request.client.host if request.client else 'unknown'}")
    return error_response(429, "Too many requests from this IP, please try again later.")


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return error_response(500, InternalError.default_message)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
