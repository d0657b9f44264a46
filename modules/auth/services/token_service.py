"""
Token Service - Signed, time-limited bearer tokens (JWT).
"""
from datetime import datetime, timedelta
from typing import Callable, Optional

import jwt
from pydantic import BaseModel

from shared.models.common import utc_now
from shared.models.result import Err, ErrorKind, Ok, Result
from shared.services.logger import get_logger
from config.settings import settings


logger = get_logger(__name__)


class TokenPayload(BaseModel):
    """Identity carried by a bearer token."""
    user_id: str
    email: str


class TokenService:
    """Issues and validates HS256 tokens binding user id and email."""

    def __init__(
        self,
        secret: Optional[str] = None,
        expires_in: Optional[timedelta] = None,
        algorithm: Optional[str] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._secret = secret if secret is not None else settings.JWT_SECRET
        self._expires_in = (
            expires_in if expires_in is not None
            else timedelta(days=settings.JWT_EXPIRES_IN_DAYS)
        )
        self._algorithm = algorithm or settings.JWT_ALGORITHM
        self._clock = clock

    def issue(self, user_id: str, email: str) -> str:
        now = self._clock()
        payload = {
            "userId": user_id,
            "email": email,
            "iat": int(now.timestamp()),
            "exp": int((now + self._expires_in).timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def validate(self, token: str) -> Result:
        """Decode and verify signature and expiry."""
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError:
            return Err(kind=ErrorKind.TOKEN_EXPIRED, message="Token expired")
        except jwt.PyJWTError as e:
            logger.debug(f"Rejected token: {e}")
            return Err(kind=ErrorKind.TOKEN_INVALID, message="Invalid token")

        user_id = payload.get("userId")
        email = payload.get("email")
        if not isinstance(user_id, str) or not user_id or not isinstance(email, str):
            return Err(kind=ErrorKind.TOKEN_INVALID, message="Invalid token")

        return Ok(value=TokenPayload(user_id=user_id, email=email))
