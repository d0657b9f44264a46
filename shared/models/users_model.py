"""
Users Model - Pydantic models for user accounts and their pending OTP.
"""
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from shared.models.common import CamelModel, ensure_utc, generate_object_id, utc_now


class AuthProvider(str, Enum):
    LOCAL = "local"
    GOOGLE = "google"


class OtpChallenge(BaseModel):
    """
    Pending email verification code.

    Embedded in the user document; at most one exists per user and a new
    issuance overwrites it.
    """
    code: str = Field(min_length=6, max_length=6)
    expires_at: datetime
    attempts: int = 0

    @field_validator("expires_at", mode="after")
    @classmethod
    def as_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    def issued_at(self, expiry_minutes: int) -> datetime:
        """Issue time derived from the expiry."""
        return self.expires_at - timedelta(minutes=expiry_minutes)

    def to_document(self) -> dict:
        return {
            "code": self.code,
            "expires_at": self.expires_at,
            "attempts": self.attempts,
        }


class UserPublic(CamelModel):
    """Safe user projection returned to clients (no password, no OTP)."""
    id: str
    name: str
    email: str
    date_of_birth: Optional[datetime] = None
    is_verified: bool
    auth_provider: AuthProvider
    created_at: datetime
    updated_at: datetime


class UsersModel(BaseModel):
    """User model for MongoDB persistence."""
    user_id: str
    name: str
    email: EmailStr
    password: Optional[str] = None
    date_of_birth: Optional[datetime] = None
    auth_provider: AuthProvider = AuthProvider.LOCAL
    google_id: Optional[str] = None
    is_verified: bool = False
    otp: Optional[OtpChallenge] = None
    created_at: datetime
    updated_at: datetime

    @field_validator('email', mode='before')
    @classmethod
    def normalize_email(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("created_at", "updated_at", "date_of_birth", mode="after")
    @classmethod
    def as_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    def to_document(self) -> dict:
        """Convert to MongoDB document format. Unset optionals are omitted."""
        doc = {
            "_id": self.user_id,
            "user_id": self.user_id,
            "name": self.name,
            "email": self.email,
            "auth_provider": self.auth_provider.value,
            "is_verified": self.is_verified,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
        if self.password is not None:
            doc["password"] = self.password
        if self.date_of_birth is not None:
            doc["date_of_birth"] = self.date_of_birth
        # google_id has a sparse unique index: never store null
        if self.google_id is not None:
            doc["google_id"] = self.google_id
        if self.otp is not None:
            doc["otp"] = self.otp.to_document()
        return doc

    @classmethod
    def from_document(cls, doc: dict) -> "UsersModel":
        """Create model from MongoDB document."""
        return cls(
            user_id=doc.get("user_id") or str(doc.get("_id")),
            name=doc.get("name", ""),
            email=doc["email"],
            password=doc.get("password"),
            date_of_birth=doc.get("date_of_birth"),
            auth_provider=doc.get("auth_provider", AuthProvider.LOCAL.value),
            google_id=doc.get("google_id"),
            is_verified=doc.get("is_verified", False),
            otp=doc.get("otp") or None,
            created_at=doc["created_at"],
            updated_at=doc["updated_at"],
        )

    def to_public(self) -> UserPublic:
        return UserPublic(
            id=self.user_id,
            name=self.name,
            email=self.email,
            date_of_birth=self.date_of_birth,
            is_verified=self.is_verified,
            auth_provider=self.auth_provider,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class UserCreate(BaseModel):
    """Model for creating a new user. ``password`` is already hashed."""
    name: str
    email: EmailStr
    password: Optional[str] = None
    date_of_birth: Optional[datetime] = None
    auth_provider: AuthProvider = AuthProvider.LOCAL
    google_id: Optional[str] = None

    @field_validator('email', mode='before')
    @classmethod
    def normalize_email(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    def to_user(self, now: Optional[datetime] = None) -> UsersModel:
        """Convert to full user model with generated fields."""
        now = now or utc_now()
        return UsersModel(
            user_id=generate_object_id(),
            name=self.name.strip(),
            email=self.email,
            password=self.password,
            date_of_birth=self.date_of_birth,
            auth_provider=self.auth_provider,
            google_id=self.google_id,
            # Federated identities arrive already verified
            is_verified=self.auth_provider == AuthProvider.GOOGLE,
            created_at=now,
            updated_at=now,
        )
