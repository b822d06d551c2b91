"""
Notification Orchestrator

Fans one notification event out to the recipient's channels (email message,
SMS, push) concurrently, each channel bounded by the same timeout, and records
one aggregated result per event.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any

import psycopg2

from fulfillment.shared import ChannelDeliveryError, Database, get_structured_logger
from fulfillment.shared.settings import (
    NOTIFICATION_CHANNEL_TIMEOUT_SECONDS,
    NOTIFICATION_MAX_WORKERS,
)

from .base_notifier import BaseNotifier
from .email_notifier import EmailNotifier
from .models import CHANNELS, ChannelResult, DispatchResult, NotificationEvent, Recipient
from .push_notifier import PushNotifier
from .queries import INSERT_NOTIFICATION_LOG
from .sms_notifier import SmsNotifier
from .templates import get_template

logger = logging.getLogger(__name__)


class NotificationOrchestrator:
    """
    Multi-channel notification dispatcher.

    Channel selection:
    - message: a message payload and an email address, any priority
    - sms: urgent priority, a phone number and an SMS payload
    - push: a push payload, any priority

    A channel failing or timing out is recorded on that channel only. The event
    is "sent" when at least one channel succeeded.
    """

    def __init__(
        self,
        database: Database,
        senders: dict[str, BaseNotifier | None] | None = None,
        channel_timeout_seconds: float | None = None,
        max_workers: int | None = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            database: Database connection interface, used for the notification log
            senders: Channel name to sender mapping. Defaults to SMTP email,
                Twilio SMS and the realtime push feed.
            channel_timeout_seconds: Per-event delivery deadline for every channel
                (default: NOTIFICATION_CHANNEL_TIMEOUT_SECONDS)
            max_workers: Size of the pool used by dispatch_async
                (default: NOTIFICATION_MAX_WORKERS)
        """
        if not database:
            raise ValueError("Database is required")

        self.db = database
        if senders is None:
            senders = {
                "message": EmailNotifier(),
                "sms": SmsNotifier(),
                "push": PushNotifier(database),
            }
        self.senders = senders
        self.channel_timeout_seconds = channel_timeout_seconds or NOTIFICATION_CHANNEL_TIMEOUT_SECONDS
        self.max_workers = max_workers or NOTIFICATION_MAX_WORKERS
        self._executor: ThreadPoolExecutor | None = None
        self._executor_lock = threading.Lock()

    def plan_channels(self, event: NotificationEvent) -> dict[str, dict[str, Any]]:
        """
        Decide which channels an event goes out on, and what each one sends.

        Returns:
            Channel name to send_notification() arguments
        """
        payloads = event.payloads
        contact = event.contact
        planned: dict[str, dict[str, Any]] = {}

        if payloads.message and contact.email:
            planned["message"] = {
                "recipient": contact.email,
                "subject": payloads.message.subject,
                "content": payloads.message.body,
            }

        if event.priority == "urgent" and contact.phone and payloads.sms:
            planned["sms"] = {
                "recipient": contact.phone,
                "subject": "",
                "content": payloads.sms.body,
            }

        if payloads.push:
            planned["push"] = {
                "recipient": event.recipient_id,
                "subject": payloads.push.title,
                "content": payloads.push.message,
                "event_type": event.event_type,
                "priority": event.priority,
            }

        return planned

    def dispatch(self, event: NotificationEvent) -> DispatchResult:
        """
        Deliver an event on every applicable channel and wait for the outcome.

        Blocks for at most channel_timeout_seconds on delivery.

        Raises:
            ValidationError: If the event is malformed
        """
        event.validate()
        log = get_structured_logger(
            __name__,
            event_type=event.event_type,
            recipient_id=event.recipient_id,
            priority=event.priority,
        )

        planned = self.plan_channels(event)
        results = {channel: ChannelResult() for channel in CHANNELS}

        runnable: dict[str, tuple[BaseNotifier, dict[str, Any]]] = {}
        for channel, arguments in planned.items():
            sender = self.senders.get(channel)
            if sender is None or not sender.is_configured:
                results[channel] = ChannelResult(
                    attempted=True, succeeded=False, error=f"{channel} sender not configured"
                )
                continue
            runnable[channel] = (sender, arguments)

        if runnable:
            results.update(self._run_channels(runnable, log))

        result = DispatchResult(
            event_type=event.event_type,
            recipient_id=event.recipient_id,
            priority=event.priority,
            channels=results,
        )

        attempted = [channel for channel, outcome in results.items() if outcome.attempted]
        if not attempted:
            log.info("No applicable channel for event")
        else:
            failed = {
                channel: outcome.error
                for channel, outcome in results.items()
                if outcome.attempted and not outcome.succeeded
            }
            if failed:
                log.warning(f"Notification {result.status}; failed channels: {failed}")
            else:
                log.info(f"Notification sent on {', '.join(attempted)}")

        self._record(result, log)
        return result

    def _run_channels(
        self,
        runnable: dict[str, tuple[BaseNotifier, dict[str, Any]]],
        log: logging.LoggerAdapter,
    ) -> dict[str, ChannelResult]:
        results: dict[str, ChannelResult] = {}
        executor = ThreadPoolExecutor(
            max_workers=len(runnable), thread_name_prefix="notification-channel"
        )
        try:
            futures = {
                channel: executor.submit(sender.send_notification, **arguments)
                for channel, (sender, arguments) in runnable.items()
            }
            deadline = time.monotonic() + self.channel_timeout_seconds

            for channel, future in futures.items():
                remaining = max(0.0, deadline - time.monotonic())
                try:
                    delivered = future.result(timeout=remaining)
                except FutureTimeoutError:
                    error = f"timed out after {self.channel_timeout_seconds:g}s"
                    log.warning(f"Channel {channel} {error}")
                    results[channel] = ChannelResult(attempted=True, succeeded=False, error=error)
                except ChannelDeliveryError as e:
                    results[channel] = ChannelResult(
                        attempted=True, succeeded=False, error=e.message
                    )
                except Exception as e:
                    log.error(f"Unexpected error on channel {channel}: {e}", exc_info=True)
                    results[channel] = ChannelResult(attempted=True, succeeded=False, error=str(e))
                else:
                    if delivered:
                        results[channel] = ChannelResult(attempted=True, succeeded=True)
                    else:
                        results[channel] = ChannelResult(
                            attempted=True, succeeded=False, error="delivery failed"
                        )
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        return results

    def _record(self, result: DispatchResult, log: logging.LoggerAdapter) -> None:
        """Write the notification log row. Failures are logged, never raised."""
        channel_results = json.dumps(
            {channel: outcome.to_dict() for channel, outcome in result.channels.items()}
        )
        try:
            with self.db.get_cursor() as cur:
                cur.execute(
                    INSERT_NOTIFICATION_LOG,
                    (
                        result.recipient_id,
                        result.event_type,
                        result.priority,
                        result.status,
                        channel_results,
                    ),
                )
        except psycopg2.Error as e:
            log.warning(f"Failed to record notification log: {e}")

    def dispatch_async(self, event: NotificationEvent) -> Future:
        """
        Accept an event for background delivery and return immediately.

        The event is validated before it is queued; delivery failures are
        logged by the worker and surface only through the returned future's
        DispatchResult.

        Raises:
            ValidationError: If the event is malformed
        """
        event.validate()
        return self._get_executor().submit(self._dispatch_in_background, event)

    def _dispatch_in_background(self, event: NotificationEvent) -> DispatchResult | None:
        try:
            return self.dispatch(event)
        except Exception as e:
            logger.error(
                f"Background dispatch of {event.event_type} to {event.recipient_id} failed: {e}",
                exc_info=True,
            )
            return None

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.max_workers, thread_name_prefix="notification-dispatch"
                )
            return self._executor

    def notify(
        self,
        template_name: str,
        recipient: Recipient | dict[str, Any],
        data: dict[str, Any] | None = None,
    ) -> DispatchResult:
        """
        Render a fixed template for a recipient and dispatch it.

        Args:
            template_name: Name of the template (e.g., "emergency_cancellation")
            recipient: Recipient, or a dict with id, name, email and phone
            data: Template fields

        Returns:
            DispatchResult for the event

        Raises:
            ValidationError: Unknown template, missing recipient id or missing
                required template field
        """
        return self.dispatch(self._render(template_name, recipient, data))

    def notify_async(
        self,
        template_name: str,
        recipient: Recipient | dict[str, Any],
        data: dict[str, Any] | None = None,
    ) -> Future:
        """Render a template and hand it to dispatch_async."""
        return self.dispatch_async(self._render(template_name, recipient, data))

    def _render(
        self,
        template_name: str,
        recipient: Recipient | dict[str, Any],
        data: dict[str, Any] | None,
    ) -> NotificationEvent:
        template = get_template(template_name)
        if not isinstance(recipient, Recipient):
            recipient = Recipient.from_dict(recipient)
        return template.render(recipient, data or {})

    def shutdown(self, wait: bool = True) -> None:
        """Stop the background pool, optionally waiting for queued events."""
        with self._executor_lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait)
