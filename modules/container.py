"""
Service Container - Builds every service once per application.

Handlers never construct services themselves; they resolve them from the
container stored on ``app.state`` (see the ``get_*`` dependencies below).
Tests build a container from mocks and pass it to ``create_app``.
"""
from typing import Optional

from fastapi import Request

from modules.auth.services.auth_service import AuthService
from modules.auth.services.otp_service import OtpService
from modules.auth.services.token_service import TokenService
from modules.notes.services.note_service import NoteService
from shared.services.email_service import EmailService
from shared.services.sms_service import SmsService


class Container:
    """Holds the application's long-lived services."""

    def __init__(
        self,
        auth_service: Optional[AuthService] = None,
        otp_service: Optional[OtpService] = None,
        token_service: Optional[TokenService] = None,
        note_service: Optional[NoteService] = None,
        email_service: Optional[EmailService] = None,
        sms_service: Optional[SmsService] = None,
    ):
        self.email_service = email_service or EmailService()
        self.sms_service = sms_service or SmsService()
        self.token_service = token_service or TokenService()
        self.otp_service = otp_service or OtpService(email_service=self.email_service)
        self.auth_service = auth_service or AuthService(
            otp_service=self.otp_service,
            token_service=self.token_service,
        )
        self.note_service = note_service or NoteService()

    def close(self) -> None:
        """Release clients held by the services."""
        self.sms_service.close()


# --- Dependencies ---

def get_container(request: Request) -> Container:
    """Dependency: Get the application's service container."""
    return request.app.state.container


def get_auth_service(request: Request) -> AuthService:
    """Dependency: Get auth service instance."""
    return get_container(request).auth_service


def get_otp_service(request: Request) -> OtpService:
    """Dependency: Get OTP service instance."""
    return get_container(request).otp_service


def get_token_service(request: Request) -> TokenService:
    """Dependency: Get token service instance."""
    return get_container(request).token_service


def get_note_service(request: Request) -> NoteService:
    """Dependency: Get note service instance."""
    return get_container(request).note_service
