"""
Delivery channels for outbound notifications.

E-mail goes through a JSON HTTP e-mail API, SMS through the Twilio REST API.
Both are plain synchronous httpx calls made from the outbox dispatcher, never
from a request handler's transaction.
"""

import logging
from typing import Optional, Protocol

import httpx

from core.config import (
    EMAIL_API_KEY, EMAIL_API_URL, EMAIL_FROM,
    TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN, TWILIO_FROM_NUMBER,
)

logger = logging.getLogger(__name__)

CHANNEL_EMAIL = "email"
CHANNEL_SMS = "sms"

TWILIO_API_BASE_URL = "https://api.twilio.com/2010-04-01"
HTTP_TIMEOUT_SECONDS = 10.0


class NotificationChannel(Protocol):
    """A configured way of delivering a rendered message."""

    @property
    def is_configured(self) -> bool:
        ...

    def send(self, recipient: str, subject: str, body: str) -> None:
        ...


class EmailChannel:
    """Send e-mails through an HTTP e-mail API (bearer-token auth)."""

    def __init__(
        self,
        api_url: str = EMAIL_API_URL,
        api_key: str = EMAIL_API_KEY,
        sender: str = EMAIL_FROM
    ):
        self.api_url = api_url
        self.api_key = api_key
        self.sender = sender

    @property
    def is_configured(self) -> bool:
        return bool(self.api_url and self.api_key)

    def send(self, recipient: str, subject: str, body: str) -> None:
        """
        Raises:
            httpx.HTTPError: If the request fails or the API returns an error status
        """
        response = httpx.post(
            self.api_url,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self.api_key}"
            },
            json={
                "from": self.sender,
                "to": [recipient],
                "subject": subject,
                "text": body,
            },
            timeout=HTTP_TIMEOUT_SECONDS
        )
        response.raise_for_status()
        logger.debug(f"Sent e-mail to {recipient}: {subject}")


class SmsChannel:
    """Send SMS through the Twilio Messages API."""

    def __init__(
        self,
        account_sid: str = TWILIO_ACCOUNT_SID,
        auth_token: str = TWILIO_AUTH_TOKEN,
        from_number: str = TWILIO_FROM_NUMBER
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number

    @property
    def is_configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.from_number)

    def send(self, recipient: str, subject: str, body: str) -> None:
        """
        Raises:
            httpx.HTTPError: If the request fails or Twilio returns an error status
        """
        response = httpx.post(
            f"{TWILIO_API_BASE_URL}/Accounts/{self.account_sid}/Messages.json",
            auth=(self.account_sid, self.auth_token),
            data={
                "From": self.from_number,
                "To": recipient,
                "Body": body,
            },
            timeout=HTTP_TIMEOUT_SECONDS
        )
        response.raise_for_status()
        logger.debug(f"Sent SMS to {recipient[:4]}...")


def get_channel(channel: str) -> Optional[NotificationChannel]:
    """Channel implementation for a channel name, or None if unknown."""
    if channel == CHANNEL_EMAIL:
        return EmailChannel()
    if channel == CHANNEL_SMS:
        return SmsChannel()
    return None
