"""
Auth HTTP Handler - Registration, login, Google sign-in and OTP routes.

Routes and dependencies are plain ``def``: the services block on pymongo and
SMTP, so FastAPI runs them in its threadpool.
"""
from datetime import datetime
from typing import Optional
import re

from email_validator import EmailNotValidError, validate_email
from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from modules.container import get_auth_service, get_otp_service
from modules.auth.http_handlers.dependencies import require_user
from modules.auth.services.auth_service import AuthService
from modules.auth.services.otp_service import OtpService
from shared.http.errors import error_from_result
from shared.http.responses import success_response
from shared.models.common import ensure_utc
from shared.models.result import ErrorKind
from shared.models.users_model import AuthProvider, UsersModel
from shared.services.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])

PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")
OTP_PATTERN = re.compile(r"^\d{6}$")
DATE_ONLY_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _normalize_email(value: str) -> str:
    try:
        return validate_email(value.strip(), check_deliverability=False).normalized.lower()
    except EmailNotValidError:
        raise ValueError("Please provide a valid email")


# --- Request Models ---

class AuthRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_validator("email", mode="before", check_fields=False)
    @classmethod
    def check_email(cls, v):
        if not isinstance(v, str):
            raise ValueError("Please provide a valid email")
        return _normalize_email(v)


class RegisterRequest(AuthRequest):
    """Request body for local registration."""
    name: str
    email: str
    password: Optional[str] = None
    date_of_birth: Optional[datetime] = None

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str) -> str:
        v = v.strip()
        if not 2 <= len(v) <= 100:
            raise ValueError("Name must be between 2 and 100 characters")
        return v

    @field_validator("password")
    @classmethod
    def check_password(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters long")
        if not PASSWORD_PATTERN.match(v):
            raise ValueError(
                "Password must contain at least one uppercase letter, one lowercase letter, and one number"
            )
        return v

    @field_validator("date_of_birth", mode="wrap")
    @classmethod
    def check_date_of_birth(cls, v, handler):
        if isinstance(v, str) and DATE_ONLY_PATTERN.match(v):
            v = f"{v}T00:00:00+00:00"
        try:
            return ensure_utc(handler(v))
        except ValidationError:
            raise ValueError("Please provide a valid date of birth")


class LoginRequest(AuthRequest):
    """Request body for password login."""
    email: str
    password: str

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        if not v:
            raise ValueError("Password is required")
        return v


class GoogleAuthRequest(AuthRequest):
    """Identity handed over by the frontend after Google sign-in."""
    google_id: str
    name: str
    email: str

    @field_validator("google_id", "name")
    @classmethod
    def check_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Field cannot be empty")
        return v


class VerifyOtpRequest(BaseModel):
    otp: str

    @field_validator("otp", mode="before")
    @classmethod
    def check_otp(cls, v):
        if not isinstance(v, str) or not OTP_PATTERN.match(v):
            raise ValueError("OTP must be a 6-digit number")
        return v


# --- Routes ---

@router.post("/register", status_code=201)
def register(
    body: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Register a local account; a verification code is emailed."""
    result = auth_service.register(
        name=body.name,
        email=body.email,
        password=body.password,
        date_of_birth=body.date_of_birth,
        provider=AuthProvider.LOCAL,
    )

    if not result.ok:
        raise error_from_result(result)

    return success_response(result.message, result.value.to_response(), status_code=201)


@router.post("/login")
def login(
    body: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Password login.

    An unverified account answers 400 but still carries the user and a
    token, both in ``data`` and as the first entry of ``errors``.
    """
    result = auth_service.login(body.email, body.password)

    if not result.ok:
        if result.kind == ErrorKind.VERIFICATION_REQUIRED and result.data is not None:
            payload = result.data
            user_with_token = {**payload.user.to_response(), "token": payload.token}
            raise error_from_result(result, errors=[user_with_token], data=payload.to_response())
        raise error_from_result(result)

    return success_response(result.message, result.value.to_response())


@router.post("/google")
def google_auth(
    body: GoogleAuthRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Sign in (or sign up) with a Google identity."""
    result = auth_service.federated_login(body.google_id, body.name, body.email)

    if not result.ok:
        raise error_from_result(result)

    status_code = 201 if result.value.is_new_user else 200
    return success_response(result.message, result.value.to_response(), status_code=status_code)


@router.get("/profile")
def get_profile(user: UsersModel = Depends(require_user)):
    """Current user's profile."""
    return success_response(
        "Profile retrieved successfully",
        {"user": user.to_public().to_response()},
    )


@router.post("/send-otp")
def send_otp(
    user: UsersModel = Depends(require_user),
    otp_service: OtpService = Depends(get_otp_service),
):
    """Issue a verification code to the current user."""
    result = otp_service.issue(user.user_id)

    if not result.ok:
        raise error_from_result(result)

    return success_response(result.message)


@router.post("/resend-otp")
def resend_otp(
    user: UsersModel = Depends(require_user),
    otp_service: OtpService = Depends(get_otp_service),
):
    """Issue a new code, subject to the resend cooldown."""
    result = otp_service.resend(user.user_id)

    if not result.ok:
        raise error_from_result(result)

    return success_response(result.message)


@router.post("/verify-otp")
def verify_otp(
    body: VerifyOtpRequest,
    user: UsersModel = Depends(require_user),
    otp_service: OtpService = Depends(get_otp_service),
):
    """Verify the current user's email with the submitted code."""
    result = otp_service.verify(user.user_id, body.otp)

    if not result.ok:
        raise error_from_result(result)

    return success_response(result.message)
