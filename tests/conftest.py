import os
import pytest
from datetime import datetime, timezone, timedelta
from unittest.mock import MagicMock
from typing import Callable

os.environ.setdefault("MONGO_URI", "mongodb://localhost:27017")
os.environ.setdefault("MONGO_DB", "test_db")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("EMAIL_USER", "")

import bcrypt
from httpx import AsyncClient, ASGITransport

from config.settings import Settings
from shared.models.users_model import AuthProvider, OtpChallenge, UsersModel
from shared.models.notes_model import NotesModel
from shared.services.email_service import EmailService


FIXED_NOW = datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
PASSWORD = "Abc12345"


class FrozenClock:
    """Callable clock the services accept; tests move it forward explicitly."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: float = 0, seconds: float = 0) -> None:
        self.now = self.now + timedelta(minutes=minutes, seconds=seconds)


class MockCursor:
    def __init__(self, data: list):
        self._data = data
        self._sorted = False
        self.skipped = 0
        self.limited = 0

    def sort(self, field: str, direction: int):
        self._sorted = True
        return self

    def skip(self, count: int):
        self.skipped = count
        return self

    def limit(self, count: int):
        self.limited = count
        return self

    def __iter__(self):
        return iter(self._data)


def create_mock_find(data: list):
    def mock_find(*args, **kwargs):
        return MockCursor(data)
    return mock_find


@pytest.fixture
def mock_find() -> Callable[[list], Callable]:
    return create_mock_find


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def mock_mongo_collection() -> MagicMock:
    collection = MagicMock()
    collection.find_one = MagicMock(return_value=None)
    collection.insert_one = MagicMock()
    collection.update_one = MagicMock(return_value=MagicMock(modified_count=1))
    collection.find = MagicMock(return_value=MockCursor([]))
    collection.count_documents = MagicMock(return_value=0)
    collection.find_one_and_update = MagicMock(return_value=None)
    collection.delete_one = MagicMock(return_value=MagicMock(deleted_count=0))
    return collection


@pytest.fixture
def mock_mongo_client() -> MagicMock:
    client = MagicMock()
    client.admin.command = MagicMock(return_value={"ok": 1})
    return client


@pytest.fixture
def mock_email_service() -> MagicMock:
    service = MagicMock(spec=EmailService)
    service.send_otp_email.return_value = True
    service.send_email.return_value = True
    return service


@pytest.fixture
def password_hash() -> str:
    return bcrypt.hashpw(PASSWORD.encode(), bcrypt.gensalt(rounds=4)).decode()


@pytest.fixture
def sample_user(password_hash: str) -> UsersModel:
    return UsersModel(
        user_id="a1b2c3d4e5f6a1b2c3d4e5f6",
        name="Test User",
        email="test@example.com",
        password=password_hash,
        auth_provider=AuthProvider.LOCAL,
        is_verified=False,
        created_at=FIXED_NOW,
        updated_at=FIXED_NOW,
    )


@pytest.fixture
def sample_user_doc(sample_user: UsersModel) -> dict:
    return sample_user.to_document()


@pytest.fixture
def verified_user(sample_user: UsersModel) -> UsersModel:
    return sample_user.model_copy(update={"is_verified": True})


@pytest.fixture
def verified_user_doc(verified_user: UsersModel) -> dict:
    return verified_user.to_document()


@pytest.fixture
def google_user_doc() -> dict:
    return UsersModel(
        user_id="f6e5d4c3b2a1f6e5d4c3b2a1",
        name="Google User",
        email="google@example.com",
        auth_provider=AuthProvider.GOOGLE,
        google_id="google-sub-123",
        is_verified=True,
        created_at=FIXED_NOW,
        updated_at=FIXED_NOW,
    ).to_document()


@pytest.fixture
def pending_otp() -> OtpChallenge:
    return OtpChallenge(
        code="123456",
        expires_at=FIXED_NOW + timedelta(minutes=10),
        attempts=0,
    )


@pytest.fixture
def user_doc_with_otp(sample_user_doc: dict, pending_otp: OtpChallenge) -> dict:
    return {**sample_user_doc, "otp": pending_otp.to_document()}


@pytest.fixture
def sample_note() -> NotesModel:
    return NotesModel(
        note_id="0123456789abcdef01234567",
        user_id="a1b2c3d4e5f6a1b2c3d4e5f6",
        title="Groceries",
        content="Milk, eggs, bread",
        created_at=FIXED_NOW,
        updated_at=FIXED_NOW,
    )


@pytest.fixture
def sample_note_doc(sample_note: NotesModel) -> dict:
    return sample_note.to_document()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        MONGO_URI="mongodb://localhost:27017",
        MONGO_DB="test_db",
        JWT_SECRET="test-secret",
        RATE_LIMIT_ENABLED=False,
        API_PREFIX="/api",
    )


@pytest.fixture
def mock_container():
    """Container whose services are mocks; the token service is real."""
    from modules.container import Container
    from modules.auth.services.auth_service import AuthService
    from modules.auth.services.otp_service import OtpService
    from modules.auth.services.token_service import TokenService
    from modules.notes.services.note_service import NoteService

    return Container(
        auth_service=MagicMock(spec=AuthService),
        otp_service=MagicMock(spec=OtpService),
        token_service=TokenService(secret="test-secret"),
        note_service=MagicMock(spec=NoteService),
        email_service=MagicMock(spec=EmailService),
        sms_service=MagicMock(),
    )


@pytest.fixture
def test_app(test_settings: Settings, mock_container):
    from main import create_app
    return create_app(test_settings, mock_container)


@pytest.fixture
async def async_client(test_app):
    transport = ASGITransport(app=test_app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def auth_header(mock_container, sample_user: UsersModel) -> dict:
    token = mock_container.token_service.issue(sample_user.user_id, sample_user.email)
    return {"Authorization": f"Bearer {token}"}
