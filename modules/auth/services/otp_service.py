"""
OTP Service - Email verification codes for local accounts.

Policy:
- a code is 6 digits and expires 10 minutes after issuance
- issuing is refused for 30 minutes once 3 wrong codes were submitted
- a resend is refused until 2 minutes after the previous issuance
- one pending code per user; issuing overwrites the previous one
"""
from datetime import datetime, timedelta
from typing import Callable, Optional
import math
import secrets

from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from shared.persistance.mongo_db import mongo_pool
from shared.models.users_model import OtpChallenge, UsersModel
from shared.models.common import utc_now
from shared.models.result import Err, ErrorKind, Ok, Result
from shared.services.email_service import EmailService
from shared.services.logger import get_logger
from config.settings import settings


logger = get_logger(__name__)


def _minutes_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 60


class OtpService:
    """
    Issues, throttles and verifies one-time codes stored on the user document.

    Concurrent issuances for the same user are last-write-wins, and a code
    may be accepted by two concurrent verifications; expiry and the attempt
    lock are the only bounds.
    """

    def __init__(
        self,
        collection: Optional[Collection] = None,
        email_service: Optional[EmailService] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize OTP service.

        Args:
            collection: Users collection (injected for testing, otherwise uses pool)
            email_service: Delivery collaborator for the code
            clock: Returns the current UTC time
        """
        self._collection = collection
        self._email_service = email_service
        self._clock = clock
        self.expiry_minutes = settings.OTP_EXPIRY_MINUTES
        self.max_attempts = settings.OTP_MAX_ATTEMPTS
        self.lockout_minutes = settings.OTP_LOCKOUT_MINUTES
        self.resend_cooldown_minutes = settings.OTP_RESEND_COOLDOWN_MINUTES

    @property
    def collection(self) -> Collection:
        """Get users collection (lazy-loaded from pool if not injected)."""
        if self._collection is None:
            self._collection = mongo_pool.get_collection(
                settings.USERS_COLLECTION,
                settings.MONGO_DB,
            )
        return self._collection

    @property
    def email_service(self) -> EmailService:
        if self._email_service is None:
            self._email_service = EmailService()
        return self._email_service

    def _generate_code(self) -> str:
        return str(100000 + secrets.randbelow(900000))

    def _load_user(self, user_id: str) -> Optional[UsersModel]:
        doc = self.collection.find_one({"user_id": user_id})
        if doc:
            return UsersModel.from_document(doc)
        return None

    def _issue_for(self, user: UsersModel) -> Result:
        now = self._clock()
        attempts = user.otp.attempts if user.otp else 0

        if user.otp and attempts >= self.max_attempts:
            elapsed = _minutes_between(user.otp.expires_at, now)
            if elapsed < self.lockout_minutes:
                wait = math.ceil(self.lockout_minutes - elapsed)
                logger.warning(f"OTP issuance locked for user {user.user_id} ({wait} min left)")
                return Err(
                    kind=ErrorKind.TOO_MANY_ATTEMPTS,
                    message=f"Too many attempts. Try again after {wait} minutes",
                    retry_after_minutes=wait,
                )
            attempts = 0

        otp = OtpChallenge(
            code=self._generate_code(),
            expires_at=now + timedelta(minutes=self.expiry_minutes),
            attempts=attempts,
        )
        self.collection.update_one(
            {"user_id": user.user_id},
            {"$set": {"otp": otp.to_document(), "updated_at": now}},
        )
        logger.info(f"OTP issued for user {user.user_id}")

        if not self.email_service.send_otp_email(user.email, otp.code, user.name):
            logger.error(f"OTP delivery failed for user {user.user_id}")
            return Err(
                kind=ErrorKind.DELIVERY_FAILED,
                message="Failed to send verification email",
            )

        return Ok(message="Verification code sent to your email")

    def issue(self, user_id: str) -> Result:
        """Generate, store and email a fresh code."""
        try:
            user = self._load_user(user_id)
            if not user:
                return Err(kind=ErrorKind.USER_NOT_FOUND, message="User not found")
            return self._issue_for(user)
        except PyMongoError:
            logger.exception(f"OTP issue failed for user {user_id}")
            return Err(kind=ErrorKind.OPERATION_FAILED, message="Internal server error")

    def resend(self, user_id: str) -> Result:
        """Issue again, unless verified or the last code is too recent."""
        try:
            user = self._load_user(user_id)
            if not user:
                return Err(kind=ErrorKind.USER_NOT_FOUND, message="User not found")

            if user.is_verified:
                return Err(kind=ErrorKind.ALREADY_VERIFIED, message="Email is already verified")

            if user.otp:
                issued_at = user.otp.issued_at(self.expiry_minutes)
                elapsed = _minutes_between(issued_at, self._clock())
                if elapsed < self.resend_cooldown_minutes:
                    wait = math.ceil(self.resend_cooldown_minutes - elapsed)
                    return Err(
                        kind=ErrorKind.RESEND_TOO_SOON,
                        message=f"Please wait {wait} minutes before requesting a new code",
                        retry_after_minutes=wait,
                    )

            return self._issue_for(user)
        except PyMongoError:
            logger.exception(f"OTP resend failed for user {user_id}")
            return Err(kind=ErrorKind.OPERATION_FAILED, message="Internal server error")

    def verify(self, user_id: str, code: str) -> Result:
        """
        Check a submitted code: existence, then expiry, then equality.

        A wrong code bumps the attempt counter; the caller is not told how
        many attempts remain.
        """
        try:
            user = self._load_user(user_id)
            if not user or not user.otp:
                return Err(
                    kind=ErrorKind.INVALID_OR_EXPIRED,
                    message="Invalid or expired verification code",
                )

            now = self._clock()
            if now > user.otp.expires_at:
                return Err(kind=ErrorKind.EXPIRED, message="Verification code has expired")

            if not secrets.compare_digest(user.otp.code.encode(), str(code).encode()):
                self.collection.update_one(
                    {"user_id": user_id},
                    {"$inc": {"otp.attempts": 1}, "$set": {"updated_at": now}},
                )
                logger.warning(f"Invalid OTP submitted for user {user_id}")
                return Err(kind=ErrorKind.INVALID_CODE, message="Invalid verification code")

            self.collection.update_one(
                {"user_id": user_id},
                {"$set": {"is_verified": True, "updated_at": now}, "$unset": {"otp": ""}},
            )
            logger.info(f"Email verified for user {user_id}")
            return Ok(message="Email verified successfully")
        except PyMongoError:
            logger.exception(f"OTP verification failed for user {user_id}")
            return Err(kind=ErrorKind.OPERATION_FAILED, message="Internal server error")
