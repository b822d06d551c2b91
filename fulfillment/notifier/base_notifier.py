"""
Base Notification Service

Abstract base class for channel senders (email, SMS, push).
"""

from abc import ABC, abstractmethod
import logging

logger = logging.getLogger(__name__)


class BaseNotifier(ABC):
    """
    Abstract base class for notification channel senders.

    Subclasses implement send_notification() for one delivery mechanism. A
    sender either returns True, returns False for an unspecified failure, or
    raises ChannelDeliveryError with the reason. Senders never know about the
    other channels.
    """

    channel = "unknown"

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """True when the sender has everything it needs to deliver."""

    @abstractmethod
    def send_notification(
        self,
        recipient: str,
        subject: str,
        content: str,
        **kwargs
    ) -> bool:
        """
        Send a notification to a recipient.

        Args:
            recipient: Recipient identifier (email address, phone number, user id)
            subject: Notification subject/title (ignored by channels without one)
            content: Notification content
            **kwargs: Additional channel-specific parameters

        Returns:
            True if notification was sent successfully

        Raises:
            ChannelDeliveryError: If delivery failed
        """
        pass
