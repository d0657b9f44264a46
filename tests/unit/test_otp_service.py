import pytest
from datetime import timedelta
from unittest.mock import MagicMock
from pymongo.errors import PyMongoError

from modules.auth.services.otp_service import OtpService
from shared.models.result import ErrorKind


pytestmark = pytest.mark.unit


def _with_otp(user_doc: dict, code: str, expires_at, attempts: int = 0) -> dict:
    return {**user_doc, "otp": {"code": code, "expires_at": expires_at, "attempts": attempts}}


def _stored_otp(collection: MagicMock) -> dict:
    update = collection.update_one.call_args[0][1]
    return update["$set"]["otp"]


class TestOtpIssue:
    @pytest.fixture
    def otp_service(self, mock_mongo_collection, mock_email_service, clock) -> OtpService:
        return OtpService(
            collection=mock_mongo_collection,
            email_service=mock_email_service,
            clock=clock,
        )

    def test_user_not_found(self, otp_service: OtpService, mock_email_service: MagicMock):
        result = otp_service.issue("missing")

        assert result.kind == ErrorKind.USER_NOT_FOUND
        assert result.message == "User not found"
        mock_email_service.send_otp_email.assert_not_called()

    def test_issue_stores_and_sends_code(
        self,
        otp_service: OtpService,
        mock_mongo_collection: MagicMock,
        mock_email_service: MagicMock,
        sample_user_doc: dict,
        clock,
    ):
        mock_mongo_collection.find_one.return_value = sample_user_doc

        result = otp_service.issue(sample_user_doc["user_id"])

        assert result.ok
        assert result.message == "Verification code sent to your email"
        stored = _stored_otp(mock_mongo_collection)
        assert len(stored["code"]) == 6
        assert 100000 <= int(stored["code"]) <= 999999
        assert stored["expires_at"] == clock.now + timedelta(minutes=10)
        assert stored["attempts"] == 0
        mock_email_service.send_otp_email.assert_called_once_with(
            "test@example.com", stored["code"], "Test User"
        )

    def test_issue_overwrites_previous_code(
        self,
        otp_service: OtpService,
        mock_mongo_collection: MagicMock,
        sample_user_doc: dict,
        clock,
    ):
        mock_mongo_collection.find_one.return_value = _with_otp(
            sample_user_doc, "111111", clock.now + timedelta(minutes=5), attempts=1
        )

        otp_service.issue(sample_user_doc["user_id"])

        stored = _stored_otp(mock_mongo_collection)
        assert stored["expires_at"] == clock.now + timedelta(minutes=10)
        assert stored["attempts"] == 1

    def test_delivery_failure_keeps_code(
        self,
        otp_service: OtpService,
        mock_mongo_collection: MagicMock,
        mock_email_service: MagicMock,
        sample_user_doc: dict,
    ):
        mock_mongo_collection.find_one.return_value = sample_user_doc
        mock_email_service.send_otp_email.return_value = False

        result = otp_service.issue(sample_user_doc["user_id"])

        assert result.kind == ErrorKind.DELIVERY_FAILED
        assert result.message == "Failed to send verification email"
        mock_mongo_collection.update_one.assert_called_once()

    def test_locked_after_max_attempts(
        self,
        otp_service: OtpService,
        mock_mongo_collection: MagicMock,
        mock_email_service: MagicMock,
        sample_user_doc: dict,
        clock,
    ):
        mock_mongo_collection.find_one.return_value = _with_otp(
            sample_user_doc, "111111", clock.now - timedelta(minutes=10), attempts=3
        )

        result = otp_service.issue(sample_user_doc["user_id"])

        assert result.kind == ErrorKind.TOO_MANY_ATTEMPTS
        assert result.message == "Too many attempts. Try again after 20 minutes"
        assert result.retry_after_minutes == 20
        mock_mongo_collection.update_one.assert_not_called()
        mock_email_service.send_otp_email.assert_not_called()

    def test_lock_rounds_wait_up(
        self,
        otp_service: OtpService,
        mock_mongo_collection: MagicMock,
        sample_user_doc: dict,
        clock,
    ):
        mock_mongo_collection.find_one.return_value = _with_otp(
            sample_user_doc, "111111", clock.now - timedelta(minutes=29, seconds=30), attempts=3
        )

        result = otp_service.issue(sample_user_doc["user_id"])

        assert result.retry_after_minutes == 1

    def test_lock_lifts_and_resets_attempts(
        self,
        otp_service: OtpService,
        mock_mongo_collection: MagicMock,
        sample_user_doc: dict,
        clock,
    ):
        mock_mongo_collection.find_one.return_value = _with_otp(
            sample_user_doc, "111111", clock.now - timedelta(minutes=31), attempts=3
        )

        result = otp_service.issue(sample_user_doc["user_id"])

        assert result.ok
        assert _stored_otp(mock_mongo_collection)["attempts"] == 0

    def test_database_error(self, otp_service: OtpService, mock_mongo_collection: MagicMock):
        mock_mongo_collection.find_one.side_effect = PyMongoError("down")

        result = otp_service.issue("a1b2c3d4e5f6a1b2c3d4e5f6")

        assert result.kind == ErrorKind.OPERATION_FAILED


class TestOtpResend:
    @pytest.fixture
    def otp_service(self, mock_mongo_collection, mock_email_service, clock) -> OtpService:
        return OtpService(
            collection=mock_mongo_collection,
            email_service=mock_email_service,
            clock=clock,
        )

    def test_already_verified(
        self,
        otp_service: OtpService,
        mock_mongo_collection: MagicMock,
        verified_user_doc: dict,
    ):
        mock_mongo_collection.find_one.return_value = verified_user_doc

        result = otp_service.resend(verified_user_doc["user_id"])

        assert result.kind == ErrorKind.ALREADY_VERIFIED
        assert result.message == "Email is already verified"

    def test_too_soon(
        self,
        otp_service: OtpService,
        mock_mongo_collection: MagicMock,
        sample_user_doc: dict,
        clock,
    ):
        # issued one minute ago
        mock_mongo_collection.find_one.return_value = _with_otp(
            sample_user_doc, "111111", clock.now + timedelta(minutes=9)
        )

        result = otp_service.resend(sample_user_doc["user_id"])

        assert result.kind == ErrorKind.RESEND_TOO_SOON
        assert result.message == "Please wait 1 minutes before requesting a new code"
        assert result.retry_after_minutes == 1
        mock_mongo_collection.update_one.assert_not_called()

    def test_allowed_after_cooldown(
        self,
        otp_service: OtpService,
        mock_mongo_collection: MagicMock,
        sample_user_doc: dict,
        clock,
    ):
        mock_mongo_collection.find_one.return_value = _with_otp(
            sample_user_doc, "111111", clock.now + timedelta(minutes=8)
        )

        result = otp_service.resend(sample_user_doc["user_id"])

        assert result.ok
        assert _stored_otp(mock_mongo_collection)["expires_at"] == clock.now + timedelta(minutes=10)

    def test_without_pending_code(
        self,
        otp_service: OtpService,
        mock_mongo_collection: MagicMock,
        mock_email_service: MagicMock,
        sample_user_doc: dict,
    ):
        mock_mongo_collection.find_one.return_value = sample_user_doc

        result = otp_service.resend(sample_user_doc["user_id"])

        assert result.ok
        mock_email_service.send_otp_email.assert_called_once()

    def test_locked_user_cannot_resend(
        self,
        otp_service: OtpService,
        mock_mongo_collection: MagicMock,
        sample_user_doc: dict,
        clock,
    ):
        mock_mongo_collection.find_one.return_value = _with_otp(
            sample_user_doc, "111111", clock.now - timedelta(minutes=5), attempts=3
        )

        result = otp_service.resend(sample_user_doc["user_id"])

        assert result.kind == ErrorKind.TOO_MANY_ATTEMPTS


class TestOtpVerify:
    @pytest.fixture
    def otp_service(self, mock_mongo_collection, mock_email_service, clock) -> OtpService:
        return OtpService(
            collection=mock_mongo_collection,
            email_service=mock_email_service,
            clock=clock,
        )

    def test_no_pending_code(
        self,
        otp_service: OtpService,
        mock_mongo_collection: MagicMock,
        sample_user_doc: dict,
    ):
        mock_mongo_collection.find_one.return_value = sample_user_doc

        result = otp_service.verify(sample_user_doc["user_id"], "123456")

        assert result.kind == ErrorKind.INVALID_OR_EXPIRED
        assert result.message == "Invalid or expired verification code"

    def test_unknown_user(self, otp_service: OtpService):
        result = otp_service.verify("missing", "123456")

        assert result.kind == ErrorKind.INVALID_OR_EXPIRED

    def test_correct_code(
        self,
        otp_service: OtpService,
        mock_mongo_collection: MagicMock,
        user_doc_with_otp: dict,
        clock,
    ):
        mock_mongo_collection.find_one.return_value = user_doc_with_otp

        result = otp_service.verify(user_doc_with_otp["user_id"], "123456")

        assert result.ok
        assert result.message == "Email verified successfully"
        mock_mongo_collection.update_one.assert_called_once_with(
            {"user_id": user_doc_with_otp["user_id"]},
            {"$set": {"is_verified": True, "updated_at": clock.now}, "$unset": {"otp": ""}},
        )

    def test_wrong_code_counts_attempt(
        self,
        otp_service: OtpService,
        mock_mongo_collection: MagicMock,
        user_doc_with_otp: dict,
        clock,
    ):
        mock_mongo_collection.find_one.return_value = user_doc_with_otp

        result = otp_service.verify(user_doc_with_otp["user_id"], "654321")

        assert result.kind == ErrorKind.INVALID_CODE
        assert result.message == "Invalid verification code"
        mock_mongo_collection.update_one.assert_called_once_with(
            {"user_id": user_doc_with_otp["user_id"]},
            {"$inc": {"otp.attempts": 1}, "$set": {"updated_at": clock.now}},
        )

    def test_expired_code(
        self,
        otp_service: OtpService,
        mock_mongo_collection: MagicMock,
        user_doc_with_otp: dict,
        clock,
    ):
        mock_mongo_collection.find_one.return_value = user_doc_with_otp
        clock.advance(minutes=11)

        result = otp_service.verify(user_doc_with_otp["user_id"], "123456")

        assert result.kind == ErrorKind.EXPIRED
        assert result.message == "Verification code has expired"

    def test_expiry_checked_before_code(
        self,
        otp_service: OtpService,
        mock_mongo_collection: MagicMock,
        user_doc_with_otp: dict,
        clock,
    ):
        mock_mongo_collection.find_one.return_value = user_doc_with_otp
        clock.advance(minutes=11)

        result = otp_service.verify(user_doc_with_otp["user_id"], "000000")

        assert result.kind == ErrorKind.EXPIRED
        mock_mongo_collection.update_one.assert_not_called()

    def test_code_valid_until_expiry_instant(
        self,
        otp_service: OtpService,
        mock_mongo_collection: MagicMock,
        user_doc_with_otp: dict,
        clock,
    ):
        mock_mongo_collection.find_one.return_value = user_doc_with_otp
        clock.advance(minutes=10)

        result = otp_service.verify(user_doc_with_otp["user_id"], "123456")

        assert result.ok

    def test_database_error(
        self,
        otp_service: OtpService,
        mock_mongo_collection: MagicMock,
        user_doc_with_otp: dict,
    ):
        mock_mongo_collection.find_one.return_value = user_doc_with_otp
        mock_mongo_collection.update_one.side_effect = PyMongoError("down")

        result = otp_service.verify(user_doc_with_otp["user_id"], "123456")

        assert result.kind == ErrorKind.OPERATION_FAILED
        assert result.message == "Internal server error"
