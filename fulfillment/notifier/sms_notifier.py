"""
SMS Notification Service

Delivers the "sms" channel through the Twilio Messages REST API.
"""

from __future__ import annotations

import logging
import os

import requests
from dotenv import load_dotenv

from fulfillment.shared import ChannelDeliveryError

from .base_notifier import BaseNotifier

logger = logging.getLogger(__name__)

load_dotenv()

TWILIO_API_BASE_URL = "https://api.twilio.com"
MAX_SMS_LENGTH = 1600


class SmsNotifier(BaseNotifier):
    """
    SMS notification service backed by Twilio.

    No automatic retries: a retried POST could deliver the same SMS twice.
    """

    channel = "sms"

    def __init__(
        self,
        account_sid: str | None = None,
        auth_token: str | None = None,
        from_number: str | None = None,
        base_url: str = TWILIO_API_BASE_URL,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ):
        """
        Initialize SMS notifier.

        Args:
            account_sid: Twilio account SID. If None, reads TWILIO_ACCOUNT_SID.
            auth_token: Twilio auth token. If None, reads TWILIO_AUTH_TOKEN.
            from_number: Sender phone number. If None, reads TWILIO_PHONE_NUMBER.
            base_url: Twilio API base URL
            timeout: Request timeout in seconds
            session: Optional requests session (injected in tests)
        """
        self.account_sid = account_sid or os.getenv("TWILIO_ACCOUNT_SID")
        self.auth_token = auth_token or os.getenv("TWILIO_AUTH_TOKEN")
        self.from_number = from_number or os.getenv("TWILIO_PHONE_NUMBER")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

        if not self.is_configured:
            logger.warning("Twilio not configured - SMS notifications will be disabled")

    @property
    def is_configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.from_number)

    def send_notification(self, recipient: str, subject: str, content: str, **kwargs) -> bool:
        """
        Send an SMS.

        Args:
            recipient: Phone number in E.164 format
            subject: Ignored (SMS has no subject)
            content: Message body, truncated to the provider limit

        Returns:
            True if Twilio accepted the message

        Raises:
            ChannelDeliveryError: If Twilio is not configured or rejected the message
        """
        if not self.is_configured:
            raise ChannelDeliveryError(self.channel, "SMS provider not configured")

        if not recipient:
            raise ChannelDeliveryError(self.channel, "No recipient phone number provided")

        url = f"{self.base_url}/2010-04-01/Accounts/{self.account_sid}/Messages.json"
        try:
            response = self.session.post(
                url,
                data={"To": recipient, "From": self.from_number, "Body": content[:MAX_SMS_LENGTH]},
                auth=(self.account_sid, self.auth_token),
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to reach SMS provider for {recipient}: {e}")
            raise ChannelDeliveryError(self.channel, f"SMS request failed: {e}") from e

        if not response.ok:
            try:
                reason = response.json().get("message", "Unknown error")
            except ValueError:
                reason = response.text or "Unknown error"
            logger.error(f"Twilio rejected SMS to {recipient}: {response.status_code} {reason}")
            raise ChannelDeliveryError(self.channel, f"Twilio error: {reason}")

        sid = response.json().get("sid")
        logger.info(f"SMS sent successfully to {recipient} (sid={sid})")
        return True
