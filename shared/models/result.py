"""
Result types returned by service operations.

A service never raises for a business-rule failure: it returns ``Ok`` with
the payload or ``Err`` with a kind the HTTP layer maps to a status code.
"""
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict


class ErrorKind(str, Enum):
    USER_NOT_FOUND = "user_not_found"
    DELIVERY_FAILED = "delivery_failed"
    TOO_MANY_ATTEMPTS = "too_many_attempts"
    RESEND_TOO_SOON = "resend_too_soon"
    ALREADY_VERIFIED = "already_verified"
    INVALID_OR_EXPIRED = "invalid_or_expired"
    EXPIRED = "expired"
    INVALID_CODE = "invalid_code"
    EMAIL_TAKEN = "email_taken"
    INVALID_CREDENTIALS = "invalid_credentials"
    VERIFICATION_REQUIRED = "verification_required"
    TOKEN_EXPIRED = "token_expired"
    TOKEN_INVALID = "token_invalid"
    NOTE_NOT_FOUND = "note_not_found"
    OPERATION_FAILED = "operation_failed"


class Ok(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    value: Any = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return True


class Err(BaseModel):
    """
    Failed operation.

    ``data`` carries a payload for the rare failures that still hand the
    client something usable (login of an unverified account).
    ``retry_after_minutes`` is set for OTP throttling.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    kind: ErrorKind
    message: str
    data: Any = None
    retry_after_minutes: Optional[int] = None

    @property
    def ok(self) -> bool:
        return False


Result = Union[Ok, Err]
