"""
Fixed notification templates.

Each template pins its priority and the channels it produces payloads for.
Rendering validates the template's required data fields first.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from fulfillment.shared import ValidationError

from .models import (
    MessagePayload,
    NotificationEvent,
    NotificationPayloads,
    PushPayload,
    Recipient,
    SmsPayload,
)

SUPPORT_LINE = "Contact support if you have any questions."


class _TemplateData(dict):
    """Format mapping that renders absent optional fields as empty strings."""

    def __missing__(self, key: str) -> str:
        return ""


@dataclass(frozen=True)
class NotificationTemplate:
    name: str
    priority: str
    required_fields: tuple[str, ...]
    subject: str | None = None
    body: str | None = None
    sms: str | None = None
    push_title: str | None = None
    push_message: str | None = None

    @property
    def channels(self) -> tuple[str, ...]:
        channels = []
        if self.subject is not None and self.body is not None:
            channels.append("message")
        if self.sms is not None:
            channels.append("sms")
        if self.push_title is not None and self.push_message is not None:
            channels.append("push")
        return tuple(channels)

    def missing_fields(self, data: dict[str, Any]) -> list[str]:
        return [
            name for name in self.required_fields
            if data.get(name) is None or str(data.get(name)).strip() == ""
        ]

    def render(self, recipient: Recipient, data: dict[str, Any]) -> NotificationEvent:
        """
        Build the NotificationEvent for a recipient.

        Raises:
            ValidationError: If a required data field is missing
        """
        missing = self.missing_fields(data)
        if missing:
            raise ValidationError(
                f"Missing required fields for template '{self.name}': {', '.join(missing)}",
                template=self.name,
                missing=missing,
            )

        values = _TemplateData(data)
        values.setdefault("recipient_name", recipient.name or "there")
        values["replacement_line"] = _replacement_line(values)

        message = None
        if self.subject is not None and self.body is not None:
            message = MessagePayload(
                subject=self.subject.format_map(values),
                body=self.body.format_map(values),
            )
        sms = SmsPayload(body=self.sms.format_map(values)) if self.sms is not None else None
        push = None
        if self.push_title is not None and self.push_message is not None:
            push = PushPayload(
                title=self.push_title.format_map(values),
                message=self.push_message.format_map(values),
            )

        return NotificationEvent(
            recipient_id=recipient.id,
            event_type=self.name,
            priority=self.priority,
            contact=recipient.contact,
            payloads=NotificationPayloads(message=message, sms=sms, push=push),
        )


def _replacement_line(values: dict[str, Any]) -> str:
    replacement = values.get("replacement_provider_name")
    if replacement:
        return f"A replacement provider ({replacement}) is on the way."
    return "We are looking for a replacement provider."


TEMPLATES: dict[str, NotificationTemplate] = {
    template.name: template
    for template in (
        NotificationTemplate(
            name="emergency_cancellation",
            priority="urgent",
            required_fields=("service_name", "booking_date", "start_time", "reason"),
            subject="URGENT: your {service_name} on {booking_date} is cancelled",
            body=(
                "Hello {recipient_name},\n\n"
                "Your {service_name} booked for {booking_date} at {start_time} has been cancelled.\n"
                "Reason: {reason}\n\n" + SUPPORT_LINE
            ),
            sms=(
                "URGENT: your {service_name} on {booking_date} at {start_time} is cancelled.\n"
                "Reason: {reason}\n" + SUPPORT_LINE
            ),
        ),
        NotificationTemplate(
            name="provider_absence",
            priority="urgent",
            required_fields=("service_name", "booking_date", "start_time"),
            subject="URGENT: your provider is unavailable for {service_name}",
            body=(
                "Hello {recipient_name},\n\n"
                "Your provider can no longer handle your {service_name} on {booking_date} "
                "at {start_time}.\n{replacement_line}\n\n" + SUPPORT_LINE
            ),
            sms=(
                "URGENT: your provider cannot make your {service_name} on {booking_date} "
                "at {start_time}. {replacement_line}"
            ),
            push_title="Provider unavailable",
            push_message="Your {service_name} on {booking_date}: {replacement_line}",
        ),
        NotificationTemplate(
            name="urgent_replacement",
            priority="urgent",
            required_fields=("service_name", "booking_date", "start_time", "address"),
            subject="URGENT mission available: {service_name} on {booking_date}",
            body=(
                "Hello {recipient_name},\n\n"
                "An urgent replacement is needed for {service_name} on {booking_date} at "
                "{start_time}.\nAddress: {address}\n\nAccept the mission in your app now."
            ),
            sms=(
                "URGENT MISSION: {service_name}\n{booking_date} at {start_time}\n{address}\n"
                "Accept now in your app."
            ),
            push_title="Urgent mission",
            push_message="{service_name} on {booking_date} at {start_time} - {address}",
        ),
        NotificationTemplate(
            name="booking_confirmation",
            priority="normal",
            required_fields=("service_name", "booking_date"),
            subject="Booking confirmed: {service_name} on {booking_date}",
            body=(
                "Hello {recipient_name},\n\n"
                "Your {service_name} on {booking_date} is confirmed.\n"
                "Provider: {provider_name}\n\n" + SUPPORT_LINE
            ),
            push_title="Booking confirmed",
            push_message="Your {service_name} on {booking_date} is confirmed.",
        ),
        NotificationTemplate(
            name="booking_reminder",
            priority="high",
            required_fields=("service_name", "booking_date", "start_time"),
            subject="Reminder: {service_name} tomorrow at {start_time}",
            body=(
                "Hello {recipient_name},\n\n"
                "This is a reminder that your {service_name} is scheduled for {booking_date} "
                "at {start_time}.\n\n" + SUPPORT_LINE
            ),
            push_title="Booking reminder",
            push_message="{service_name} on {booking_date} at {start_time}",
        ),
        NotificationTemplate(
            name="mission_started",
            priority="normal",
            required_fields=("provider_name",),
            push_title="Mission started",
            push_message="{provider_name} has started your service.",
        ),
        NotificationTemplate(
            name="mission_completed",
            priority="normal",
            required_fields=("service_name",),
            subject="Your {service_name} is complete",
            body=(
                "Hello {recipient_name},\n\n"
                "Your {service_name} has been completed. Thank you for using our service.\n\n"
                "You can rate your provider from your account."
            ),
            push_title="Mission completed",
            push_message="Your {service_name} is complete.",
        ),
        NotificationTemplate(
            name="provider_new_mission",
            priority="high",
            required_fields=("service_name", "booking_id"),
            subject="New mission assigned: {service_name}",
            body=(
                "Hello {recipient_name},\n\n"
                "A new mission has been assigned to you.\n"
                "Service: {service_name}\nDate: {booking_date} {start_time}\n"
                "Location: {location}\nBooking: {booking_id}"
            ),
            push_title="New mission",
            push_message="{service_name} {booking_date} - booking {booking_id}",
        ),
        NotificationTemplate(
            name="provider_approved",
            priority="normal",
            required_fields=(),
            subject="Your provider application has been approved",
            body=(
                "Hello {recipient_name},\n\n"
                "Congratulations, your application has been approved and your provider "
                "account has been created.\n\nOur team will contact you about onboarding."
            ),
        ),
        NotificationTemplate(
            name="application_status_update",
            priority="normal",
            required_fields=("status",),
            subject="Update on your provider application",
            body=(
                "Hello {recipient_name},\n\n"
                "Your application status is now: {status}.\n{comment}\n\n" + SUPPORT_LINE
            ),
        ),
        NotificationTemplate(
            name="request_status_update",
            priority="normal",
            required_fields=("status", "service_name"),
            subject="Update on your {service_name} request",
            body=(
                "Hello {recipient_name},\n\n"
                "Your {service_name} request is now: {status}.\n{comment}\n\n" + SUPPORT_LINE
            ),
            push_title="Request update",
            push_message="Your {service_name} request is now {status}.",
        ),
    )
}


def get_template(name: str) -> NotificationTemplate:
    """
    Look up a template by name.

    Raises:
        ValidationError: If the template does not exist
    """
    template = TEMPLATES.get(name)
    if template is None:
        raise ValidationError(
            f"Unknown template '{name}'. Must be one of: {', '.join(sorted(TEMPLATES))}"
        )
    return template
