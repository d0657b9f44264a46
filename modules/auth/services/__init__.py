"""
Auth Services Package.
"""
from modules.auth.services.token_service import TokenPayload, TokenService
from modules.auth.services.otp_service import OtpService
from modules.auth.services.auth_service import AuthPayload, AuthService, FederatedAuthPayload

__all__ = [
    "TokenPayload",
    "TokenService",
    "OtpService",
    "AuthPayload",
    "AuthService",
    "FederatedAuthPayload",
]
