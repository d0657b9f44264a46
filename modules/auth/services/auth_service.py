"""
Auth Service - Registration, password login and Google sign-in.

Account lifecycle: Unregistered -> PendingVerification -> Verified.
Local accounts start unverified and get an OTP; Google accounts start
verified. A password login against an unverified account issues a fresh OTP
and hands back a token so the client can go straight to code entry.
"""
from datetime import datetime
from typing import Callable, Optional

import bcrypt
from pydantic import BaseModel
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError, PyMongoError

from modules.auth.services.otp_service import OtpService
from modules.auth.services.token_service import TokenService
from shared.persistance.mongo_db import mongo_pool
from shared.models.users_model import AuthProvider, UserCreate, UserPublic, UsersModel
from shared.models.common import utc_now
from shared.models.result import Err, ErrorKind, Ok, Result
from shared.services.logger import get_logger
from config.settings import settings


logger = get_logger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"
VERIFY_FIRST = "Please verify your email first. A new verification code has been sent."


class AuthPayload(BaseModel):
    """Safe user projection plus a bearer token."""
    user: UserPublic
    token: str

    def to_response(self) -> dict:
        return {"user": self.user.to_response(), "token": self.token}


class FederatedAuthPayload(AuthPayload):
    is_new_user: bool = False

    def to_response(self) -> dict:
        data = super().to_response()
        data["isNewUser"] = self.is_new_user
        return data


class AuthService:
    """
    Authentication orchestrator.

    Persistence errors are logged and reduced to ``OPERATION_FAILED``; no
    token is handed out when the user could not be stored.
    """

    def __init__(
        self,
        collection: Optional[Collection] = None,
        otp_service: Optional[OtpService] = None,
        token_service: Optional[TokenService] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._collection = collection
        self._otp_service = otp_service
        self._token_service = token_service
        self._clock = clock

    @property
    def collection(self) -> Collection:
        """Get users collection."""
        if self._collection is None:
            self._collection = mongo_pool.get_collection(
                settings.USERS_COLLECTION,
                settings.MONGO_DB,
            )
        return self._collection

    @property
    def otp_service(self) -> OtpService:
        if self._otp_service is None:
            self._otp_service = OtpService(collection=self._collection)
        return self._otp_service

    @property
    def token_service(self) -> TokenService:
        if self._token_service is None:
            self._token_service = TokenService()
        return self._token_service

    def _hash_password(self, password: str) -> str:
        """Hash password with a per-password bcrypt salt."""
        # bcrypt only looks at the first 72 bytes
        password_bytes = password.encode("utf-8")[:72]
        salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
        return bcrypt.hashpw(password_bytes, salt).decode("utf-8")

    def _verify_password(self, password: str, password_hash: str) -> bool:
        try:
            return bcrypt.checkpw(
                password.encode("utf-8")[:72],
                password_hash.encode("utf-8"),
            )
        except ValueError:
            # Stored value is not a bcrypt hash
            return False

    def _issue_token(self, user: UsersModel) -> str:
        return self.token_service.issue(user.user_id, user.email)

    def register(
        self,
        name: str,
        email: str,
        password: Optional[str] = None,
        date_of_birth: Optional[datetime] = None,
        provider: AuthProvider = AuthProvider.LOCAL,
        google_id: Optional[str] = None,
    ) -> Result:
        """
        Register a new user.

        Local users get an OTP email; failing to deliver it does not fail
        the registration.
        """
        email = email.strip().lower()
        logger.info(f"Registering new user: {email}")

        try:
            if self.collection.find_one({"email": email}):
                logger.warning(f"Email already exists: {email}")
                return Err(kind=ErrorKind.EMAIL_TAKEN, message="User already exists with this email")

            password_hash = None
            if password and provider == AuthProvider.LOCAL:
                password_hash = self._hash_password(password)

            user = UserCreate(
                name=name,
                email=email,
                password=password_hash,
                date_of_birth=date_of_birth,
                auth_provider=provider,
                google_id=google_id,
            ).to_user(self._clock())

            self.collection.insert_one(user.to_document())
        except DuplicateKeyError:
            logger.warning(f"Email already exists (concurrent insert): {email}")
            return Err(kind=ErrorKind.EMAIL_TAKEN, message="User already exists with this email")
        except PyMongoError:
            logger.exception(f"Registration failed for {email}")
            return Err(kind=ErrorKind.OPERATION_FAILED, message="Registration failed")

        logger.info(f"User registered: {user.user_id}")
        token = self._issue_token(user)

        if provider == AuthProvider.LOCAL:
            otp_result = self.otp_service.issue(user.user_id)
            if not otp_result.ok:
                logger.warning(f"Registration OTP not delivered for {user.user_id}: {otp_result.message}")
            message = "Please check your email for verification code."
        else:
            message = "Registration successful"

        return Ok(value=AuthPayload(user=user.to_public(), token=token), message=message)

    def login(self, email: str, password: str) -> Result:
        """
        Password login.

        Unknown email, Google-only account and wrong password all answer
        with the same message.
        """
        email = email.strip().lower()
        logger.info(f"Login attempt for: {email}")

        try:
            doc = self.collection.find_one({"email": email})
        except PyMongoError:
            logger.exception(f"Login lookup failed for {email}")
            return Err(kind=ErrorKind.OPERATION_FAILED, message="Login failed")

        if not doc:
            logger.warning(f"Login failed - user not found: {email}")
            return Err(kind=ErrorKind.INVALID_CREDENTIALS, message=INVALID_CREDENTIALS)

        user = UsersModel.from_document(doc)

        if user.auth_provider != AuthProvider.LOCAL or not user.password:
            logger.warning(f"Login failed - no local password: {email}")
            return Err(kind=ErrorKind.INVALID_CREDENTIALS, message=INVALID_CREDENTIALS)

        if not self._verify_password(password, user.password):
            logger.warning(f"Login failed - wrong password: {email}")
            return Err(kind=ErrorKind.INVALID_CREDENTIALS, message=INVALID_CREDENTIALS)

        payload = AuthPayload(user=user.to_public(), token=self._issue_token(user))

        if not user.is_verified:
            otp_result = self.otp_service.issue(user.user_id)
            if not otp_result.ok:
                logger.warning(f"Login OTP not delivered for {user.user_id}: {otp_result.message}")
            logger.info(f"Login pending verification: {email}")
            return Err(kind=ErrorKind.VERIFICATION_REQUIRED, message=VERIFY_FIRST, data=payload)

        logger.info(f"Login successful: {email}")
        return Ok(value=payload, message="Login successful")

    def federated_login(self, google_id: str, name: str, email: str) -> Result:
        """
        Google sign-in.

        Matches on google id or email. An existing account without a google
        id is linked in place; its name and email are kept.
        """
        email = email.strip().lower()
        logger.info(f"Google sign-in for: {email}")
        is_new_user = False

        try:
            doc = self.collection.find_one({
                "$or": [{"google_id": google_id}, {"email": email}]
            })

            if not doc:
                user = UserCreate(
                    name=name,
                    email=email,
                    auth_provider=AuthProvider.GOOGLE,
                    google_id=google_id,
                ).to_user(self._clock())
                self.collection.insert_one(user.to_document())
                is_new_user = True
                logger.info(f"Google user created: {user.user_id}")
            else:
                user = UsersModel.from_document(doc)
                if not user.google_id:
                    now = self._clock()
                    linked = {
                        "google_id": google_id,
                        "auth_provider": AuthProvider.GOOGLE.value,
                        "is_verified": True,
                        "updated_at": now,
                    }
                    self.collection.update_one({"user_id": user.user_id}, {"$set": linked})
                    user = user.model_copy(update={
                        "google_id": google_id,
                        "auth_provider": AuthProvider.GOOGLE,
                        "is_verified": True,
                        "updated_at": now,
                    })
                    logger.info(f"Linked Google account to user {user.user_id}")
        except PyMongoError:
            logger.exception(f"Google sign-in failed for {email}")
            return Err(kind=ErrorKind.OPERATION_FAILED, message="Authentication failed")

        payload = FederatedAuthPayload(
            user=user.to_public(),
            token=self._issue_token(user),
            is_new_user=is_new_user,
        )
        message = "Account created successfully" if is_new_user else "Login successful"
        return Ok(value=payload, message=message)

    def get_user_by_id(self, user_id: str) -> Optional[UsersModel]:
        """Get user by ID."""
        doc = self.collection.find_one({"user_id": user_id})

        if not doc:
            return None

        return UsersModel.from_document(doc)
