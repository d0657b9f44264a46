"""
Auth dependencies - Bearer token authentication for protected routes.
"""
from fastapi import Depends, Request

from modules.container import get_auth_service, get_token_service
from modules.auth.services.auth_service import AuthService
from modules.auth.services.token_service import TokenService
from shared.http.errors import AuthError, ForbiddenError
from shared.models.result import ErrorKind
from shared.models.users_model import UsersModel
from shared.services.logger import get_logger


logger = get_logger(__name__)

BEARER_PREFIX = "Bearer "


def _bearer_token(request: Request) -> str:
    header = request.headers.get("Authorization", "")
    if header.startswith(BEARER_PREFIX):
        return header[len(BEARER_PREFIX):].strip()
    return ""


def require_user(
    request: Request,
    auth_service: AuthService = Depends(get_auth_service),
    token_service: TokenService = Depends(get_token_service),
) -> UsersModel:
    """Require authenticated user or raise 401."""
    token = _bearer_token(request)
    if not token:
        logger.warning("Unauthorized access attempt - no token")
        raise AuthError("Access denied. No token provided.")

    result = token_service.validate(token)
    if not result.ok:
        logger.warning(f"Unauthorized access attempt - {result.kind.value}")
        if result.kind == ErrorKind.TOKEN_EXPIRED:
            raise AuthError("Token expired. Please log in again.")
        raise AuthError("Invalid token.")

    user = auth_service.get_user_by_id(result.value.user_id)
    if not user:
        logger.warning("Unauthorized access attempt - user not found")
        raise AuthError("Invalid token. User not found.")

    return user


def require_verified_user(
    user: UsersModel = Depends(require_user),
) -> UsersModel:
    """Require an authenticated user whose email is verified, else 403."""
    if not user.is_verified:
        raise ForbiddenError("Account not verified. Please verify your account.")
    return user
