"""
Notification Service

Multi-channel notification dispatch: fixed templates rendered into events,
fanned out to email, SMS and push senders with priority-based channel rules.
"""

from .base_notifier import BaseNotifier
from .email_notifier import EmailNotifier
from .models import (
    ChannelResult,
    Contact,
    DispatchResult,
    MessagePayload,
    NotificationEvent,
    NotificationPayloads,
    PushPayload,
    Recipient,
    SmsPayload,
)
from .notification_orchestrator import NotificationOrchestrator
from .push_notifier import PushNotifier
from .sms_notifier import SmsNotifier
from .templates import TEMPLATES, NotificationTemplate, get_template

__all__ = [
    "BaseNotifier",
    "EmailNotifier",
    "SmsNotifier",
    "PushNotifier",
    "NotificationOrchestrator",
    "NotificationEvent",
    "NotificationPayloads",
    "MessagePayload",
    "SmsPayload",
    "PushPayload",
    "Contact",
    "Recipient",
    "ChannelResult",
    "DispatchResult",
    "NotificationTemplate",
    "TEMPLATES",
    "get_template",
]
