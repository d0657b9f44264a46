"""
SMS Service - Outbound SMS through the Twilio REST API.

Configured but not used by any current flow.
"""
from typing import Optional

import httpx

from shared.services.logger import get_logger
from config.settings import settings


logger = get_logger(__name__)


class SmsService:
    """Minimal Twilio Messages API client."""

    BASE_URL = "https://api.twilio.com/2010-04-01"

    def __init__(
        self,
        account_sid: Optional[str] = None,
        auth_token: Optional[str] = None,
        from_number: Optional[str] = None,
        client: Optional[httpx.Client] = None,
    ):
        self.account_sid = account_sid if account_sid is not None else settings.TWILIO_ACCOUNT_SID
        self.auth_token = auth_token if auth_token is not None else settings.TWILIO_AUTH_TOKEN
        self.from_number = from_number if from_number is not None else settings.TWILIO_PHONE_NUMBER
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.from_number)

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=10.0)
        return self._client

    def close(self) -> None:
        """Close the HTTP client if one was opened."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def send_sms(self, to: str, message: str) -> bool:
        """Send a text message. Returns True when Twilio accepted it."""
        if not self.configured:
            logger.warning("SMS not sent - Twilio is not configured")
            return False

        url = f"{self.BASE_URL}/Accounts/{self.account_sid}/Messages.json"
        try:
            response = self.client.post(
                url,
                data={"To": to, "From": self.from_number, "Body": message},
                auth=(self.account_sid, self.auth_token),
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Twilio SMS error for {to}: {e}")
            return False

        logger.info(f"SMS sent to {to}")
        return True
