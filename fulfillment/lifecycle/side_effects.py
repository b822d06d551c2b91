"""
Side effects registered on status changes.

Handlers run after the status change has committed. A failing handler is
logged and never undoes the transition or stops the other handlers.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable

from fulfillment.shared import Database

from .models import StatusTransitionRecord
from .queries import (
    GET_APPLICATION_CONTACT,
    GET_REQUEST_CONTACT,
    PROVISION_PROVIDER_FROM_APPLICATION,
)
from .state_machine import ENTITY_APPLICATION, ENTITY_REQUEST

logger = logging.getLogger(__name__)

SideEffect = Callable[[StatusTransitionRecord], Any]

APPLICATION_UPDATE_STATUSES = ("under_review", "interview_scheduled", "rejected", "active")
REQUEST_UPDATE_STATUSES = ("rejected", "cancelled")


class SideEffectRegistry:
    """Handlers keyed by (entity_type, target status), run in registration order."""

    def __init__(self):
        self._handlers: dict[tuple[str, str], list[SideEffect]] = defaultdict(list)

    def register(self, entity_type: str, status: str, handler: SideEffect) -> None:
        self._handlers[(entity_type, status)].append(handler)

    def handlers_for(self, entity_type: str, status: str) -> list[SideEffect]:
        return list(self._handlers.get((entity_type, status), []))

    def run(self, record: StatusTransitionRecord) -> int:
        """
        Run every handler registered for the record's target status.

        Returns:
            Number of handlers that failed
        """
        failures = 0
        for handler in self.handlers_for(record.entity_type, record.to_status):
            name = getattr(handler, "__name__", repr(handler))
            try:
                handler(record)
            except Exception as e:
                failures += 1
                logger.error(
                    f"Side effect {name} failed for {record.entity_type} {record.entity_id} "
                    f"-> {record.to_status}: {e}",
                    exc_info=True,
                )
        return failures


class LifecycleHandlers:
    """
    Built-in handlers: provider provisioning and status notifications.

    Args:
        database: Database connection interface
        notifier: NotificationOrchestrator, or None to skip notifications
    """

    def __init__(self, database: Database, notifier=None):
        if not database:
            raise ValueError("Database is required")
        self.db = database
        self.notifier = notifier

    def provision_provider(self, record: StatusTransitionRecord) -> str | None:
        """Create the provider account of an approved application, once."""
        with self.db.transaction() as cur:
            cur.execute(PROVISION_PROVIDER_FROM_APPLICATION, (record.entity_id,))
            row = cur.fetchone()

        if row is None:
            logger.info(f"Provider already provisioned for application {record.entity_id}")
            return None

        provider_id = str(row[0])
        logger.info(f"Provisioned provider {provider_id} from application {record.entity_id}")
        return provider_id

    def on_application_approved(self, record: StatusTransitionRecord) -> None:
        """Provision the provider account, then tell the applicant."""
        self.provision_provider(record)
        if self.notifier is not None:
            self.notify_provider_approved(record)

    def notify_provider_approved(self, record: StatusTransitionRecord) -> None:
        recipient = self._application_recipient(record.entity_id)
        if recipient is not None:
            self.notifier.notify_async("provider_approved", recipient, {})

    def notify_application_status(self, record: StatusTransitionRecord) -> None:
        recipient = self._application_recipient(record.entity_id)
        if recipient is not None:
            self.notifier.notify_async(
                "application_status_update",
                recipient,
                {"status": record.to_status, "comment": record.comment or ""},
            )

    def notify_request_status(self, record: StatusTransitionRecord) -> None:
        contact = self._fetch_one(GET_REQUEST_CONTACT, record.entity_id)
        if contact is None:
            logger.warning(f"Request {record.entity_id} not found, skipping notification")
            return

        recipient_id = contact.get("client_user_id") or contact.get("client_email")
        if not recipient_id:
            logger.warning(f"Request {record.entity_id} has no client contact, skipping notification")
            return

        self.notifier.notify_async(
            "request_status_update",
            {
                "id": str(recipient_id),
                "name": contact.get("client_name"),
                "email": contact.get("client_email"),
                "phone": contact.get("client_phone"),
            },
            {
                "status": record.to_status,
                "service_name": contact.get("service_type"),
                "comment": record.comment or "",
            },
        )

    def _application_recipient(self, application_id: str) -> dict[str, Any] | None:
        applicant = self._fetch_one(GET_APPLICATION_CONTACT, application_id)
        if applicant is None:
            logger.warning(f"Application {application_id} not found, skipping notification")
            return None

        recipient_id = applicant.get("user_id") or applicant.get("email")
        if not recipient_id:
            logger.warning(f"Application {application_id} has no contact, skipping notification")
            return None

        name = " ".join(
            part for part in (applicant.get("first_name"), applicant.get("last_name")) if part
        )
        return {
            "id": str(recipient_id),
            "name": name or None,
            "email": applicant.get("email"),
            "phone": applicant.get("phone"),
        }

    def _fetch_one(self, query: str, entity_id: str) -> dict[str, Any] | None:
        with self.db.get_cursor() as cur:
            cur.execute(query, (entity_id,))
            columns = [desc[0] for desc in cur.description]
            row = cur.fetchone()
            if not row:
                return None
            return dict(zip(columns, row))


def build_default_registry(database: Database, notifier=None) -> SideEffectRegistry:
    """
    Registry with the built-in handlers.

    application -> approved: provision the provider, then notify the applicant.
    application -> under_review/interview_scheduled/rejected/active: notify the applicant.
    request -> rejected/cancelled: notify the client.
    """
    handlers = LifecycleHandlers(database, notifier)
    registry = SideEffectRegistry()

    registry.register(ENTITY_APPLICATION, "approved", handlers.on_application_approved)
    if notifier is None:
        return registry

    for status in APPLICATION_UPDATE_STATUSES:
        registry.register(ENTITY_APPLICATION, status, handlers.notify_application_status)
    for status in REQUEST_UPDATE_STATUSES:
        registry.register(ENTITY_REQUEST, status, handlers.notify_request_status)
    return registry
