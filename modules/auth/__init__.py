"""
Auth Module - Registration, login, Google sign-in and email verification.

Structure:
- services/: token issuing, OTP policy, auth orchestration
- http_handlers/: FastAPI routes and bearer-token dependencies

Routers are imported from ``http_handlers`` directly; they depend on
``modules.container``, which itself imports the services below.
"""
from modules.auth.services.auth_service import AuthService
from modules.auth.services.otp_service import OtpService
from modules.auth.services.token_service import TokenService

__all__ = [
    "AuthService",
    "OtpService",
    "TokenService",
]
