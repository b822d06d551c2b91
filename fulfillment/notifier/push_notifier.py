"""
Push Notification Service

Delivers the "push" channel by writing to the realtime notifications feed the
client apps subscribe to.
"""

from __future__ import annotations

import logging

import psycopg2

from fulfillment.shared import ChannelDeliveryError, Database

from .base_notifier import BaseNotifier
from .queries import INSERT_REALTIME_NOTIFICATION

logger = logging.getLogger(__name__)


class PushNotifier(BaseNotifier):
    """Push notification service backed by the realtime_notifications table."""

    channel = "push"

    def __init__(self, database: Database):
        """
        Initialize push notifier.

        Args:
            database: Database connection interface
        """
        if not database:
            raise ValueError("Database is required")
        self.db = database

    @property
    def is_configured(self) -> bool:
        return True

    def send_notification(self, recipient: str, subject: str, content: str, **kwargs) -> bool:
        """
        Publish a push notification.

        Args:
            recipient: Recipient user id
            subject: Notification title
            content: Notification message
            **kwargs: event_type and priority, stored with the notification

        Returns:
            True once the notification is in the feed

        Raises:
            ChannelDeliveryError: If the feed write failed
        """
        if not recipient:
            raise ChannelDeliveryError(self.channel, "No recipient user id provided")

        try:
            with self.db.get_cursor() as cur:
                cur.execute(
                    INSERT_REALTIME_NOTIFICATION,
                    (
                        recipient,
                        kwargs.get("event_type"),
                        subject,
                        content,
                        kwargs.get("priority", "normal"),
                    ),
                )
        except psycopg2.Error as e:
            logger.error(f"Failed to publish push notification for {recipient}: {e}")
            raise ChannelDeliveryError(self.channel, f"Push feed write failed: {e}") from e

        logger.debug(f"Push notification published for {recipient}")
        return True
