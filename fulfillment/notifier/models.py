"""
Domain models for notification dispatch.

Defines:
- NotificationEvent (recipient, contact, event type, priority, per-channel payloads)
- ChannelResult / DispatchResult (aggregated per-channel outcome of one event)
- Recipient (who a template is rendered for)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from fulfillment.shared import ValidationError

PRIORITIES = ("normal", "high", "urgent")
CHANNELS = ("message", "sms", "push")

STATUS_SENT = "sent"
STATUS_FAILED = "failed"


@dataclass(frozen=True)
class Contact:
    email: str | None = None
    phone: str | None = None


@dataclass(frozen=True)
class MessagePayload:
    subject: str
    body: str


@dataclass(frozen=True)
class SmsPayload:
    body: str


@dataclass(frozen=True)
class PushPayload:
    title: str
    message: str


@dataclass(frozen=True)
class NotificationPayloads:
    message: MessagePayload | None = None
    sms: SmsPayload | None = None
    push: PushPayload | None = None


@dataclass(frozen=True)
class NotificationEvent:
    """
    One business event to fan out to the recipient's channels.
    """

    recipient_id: str
    event_type: str
    priority: str = "normal"
    contact: Contact = field(default_factory=Contact)
    payloads: NotificationPayloads = field(default_factory=NotificationPayloads)

    def validate(self) -> None:
        if not self.recipient_id:
            raise ValidationError("recipient_id is required")
        if not self.event_type:
            raise ValidationError("event_type is required")
        if self.priority not in PRIORITIES:
            raise ValidationError(f"Invalid priority. Must be one of: {', '.join(PRIORITIES)}")


@dataclass(frozen=True)
class Recipient:
    """
    The person a template is rendered for.
    """

    id: str
    name: str | None = None
    email: str | None = None
    phone: str | None = None

    @property
    def contact(self) -> Contact:
        return Contact(email=self.email, phone=self.phone)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Recipient:
        if not isinstance(data, dict) or not data.get("id"):
            raise ValidationError("recipient.id is required")
        return cls(
            id=str(data["id"]),
            name=data.get("name"),
            email=data.get("email") or None,
            phone=data.get("phone") or None,
        )


@dataclass(frozen=True)
class ChannelResult:
    attempted: bool = False
    succeeded: bool = False
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"attempted": self.attempted, "succeeded": self.succeeded, "error": self.error}


@dataclass(frozen=True)
class DispatchResult:
    """
    Aggregated outcome of one event: "sent" if at least one channel succeeded.
    """

    event_type: str
    recipient_id: str
    priority: str
    channels: dict[str, ChannelResult]

    @property
    def status(self) -> str:
        if any(result.succeeded for result in self.channels.values()):
            return STATUS_SENT
        return STATUS_FAILED

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_type": self.event_type,
            "recipient_id": self.recipient_id,
            "priority": self.priority,
            "status": self.status,
            "channels": {channel: result.to_dict() for channel, result in self.channels.items()},
        }
