"""
Conversion Service

Turns a matched client request into a confirmed booking. The booking insert
and the request's move to "converted" commit together; a partial unique index
on bookings guarantees at most one live booking per request.
"""

from __future__ import annotations

import logging
from typing import Any

from psycopg2 import errors as pg_errors

from fulfillment.directory import ProviderDirectory
from fulfillment.lifecycle import ENTITY_REQUEST, StatusTransitionService
from fulfillment.shared import (
    ConcurrencyConflictError,
    Database,
    InvalidStateError,
    NotFoundError,
    ProviderUnavailableError,
    ValidationError,
    get_structured_logger,
)
from fulfillment.shared.settings import DEFAULT_ESTIMATED_HOURS

from .models import (
    BOOKING_STATUS_CONFIRMED,
    CONVERTIBLE_STATUSES,
    Booking,
    ConversionResult,
)
from .queries import (
    GET_LIVE_BOOKING_FOR_REQUEST,
    GET_REQUEST_FOR_CONVERSION,
    INSERT_BOOKING,
    LOCK_REQUEST_FOR_CONVERSION,
)

logger = logging.getLogger(__name__)

CONVERTED_STATUS = "converted"
DATE_TO_BE_CONFIRMED = "date to be confirmed"


class ConversionService:
    """Service for converting client requests into bookings."""

    def __init__(
        self,
        database: Database,
        directory: ProviderDirectory | None = None,
        status_service: StatusTransitionService | None = None,
        notifier=None,
        default_estimated_hours: float | None = None,
    ):
        """
        Initialize the conversion service.

        Args:
            database: Database connection interface
            directory: Provider directory (default: one built on ``database``)
            status_service: Status transition service (default: one built on ``database``)
            notifier: NotificationOrchestrator for post-commit notifications, or None
            default_estimated_hours: Hours billed when the caller gives none
                (default: DEFAULT_ESTIMATED_HOURS)
        """
        if not database:
            raise ValueError("Database is required")

        self.db = database
        self.directory = directory or ProviderDirectory(database)
        self.status_service = status_service or StatusTransitionService(database)
        self.notifier = notifier
        self.default_estimated_hours = default_estimated_hours or DEFAULT_ESTIMATED_HOURS

    def convert(
        self,
        request_id: str,
        provider_id: str,
        service_id: str,
        actor: str,
        estimated_hours: float | None = None,
    ) -> ConversionResult:
        """
        Convert a request into a confirmed booking.

        Calling convert again for a request that already has a live booking
        returns that booking with ``created=False``.

        Args:
            request_id: Client request ID
            provider_id: Chosen provider ID
            service_id: The provider's service ID
            actor: Who is converting the request
            estimated_hours: Hours used to price the booking

        Returns:
            ConversionResult with the booking

        Raises:
            ValidationError: Missing argument or non-positive hours
            NotFoundError: Request does not exist
            InvalidStateError: Request is not in a convertible status
            ProviderUnavailableError: Provider does not actively offer the service
        """
        for name, value in (
            ("request_id", request_id),
            ("provider_id", provider_id),
            ("service_id", service_id),
            ("actor", actor),
        ):
            if not value or not str(value).strip():
                raise ValidationError(f"{name} is required")

        hours = self.default_estimated_hours if estimated_hours is None else estimated_hours
        try:
            hours = float(hours)
        except (TypeError, ValueError):
            raise ValidationError("estimated_hours must be a number") from None
        if hours <= 0:
            raise ValidationError("estimated_hours must be > 0")

        log = get_structured_logger(
            __name__, request_id=request_id, provider_id=provider_id, actor=actor
        )

        request = self._get_request(request_id)
        status = request["status"]

        if status == CONVERTED_STATUS:
            existing = self.get_live_booking(request_id)
            if existing is not None:
                log.info(f"Request already converted, returning booking {existing.id}")
                return ConversionResult(booking=existing, created=False)
        if status not in CONVERTIBLE_STATUSES:
            raise InvalidStateError(
                f"Request {request_id} cannot be converted from status '{status}'",
                request_id=str(request_id),
                status=status,
            )

        service = self.directory.get_provider_service(provider_id, service_id)
        if not service or not service.get("is_active"):
            raise ProviderUnavailableError(
                f"Provider {provider_id} does not actively offer service {service_id}",
                provider_id=str(provider_id),
                service_id=str(service_id),
            )

        existing = self.get_live_booking(request_id)
        if existing is not None:
            log.info(f"Request already has booking {existing.id}, returning it")
            return ConversionResult(booking=existing, created=False)

        price = round(float(service["hourly_rate"] or 0) * hours, 2)

        try:
            booking, records = self._create_booking(
                request, provider_id, service, price, actor, log
            )
        except pg_errors.UniqueViolation:
            # A concurrent convert committed first; its booking wins.
            existing = self.get_live_booking(request_id)
            if existing is None:
                raise ConcurrencyConflictError(
                    f"Concurrent conversion of request {request_id} could not be resolved",
                    request_id=str(request_id),
                ) from None
            log.info(f"Concurrent conversion detected, returning booking {existing.id}")
            return ConversionResult(booking=existing, created=False)

        if booking is None:
            existing = self.get_live_booking(request_id)
            if existing is None:
                raise InvalidStateError(
                    f"Request {request_id} is converted but has no live booking",
                    request_id=str(request_id),
                    status=CONVERTED_STATUS,
                )
            log.info(f"Request converted concurrently, returning booking {existing.id}")
            return ConversionResult(booking=existing, created=False)

        log = log.bind(booking_id=booking.id)
        log.info(f"Created booking (price={price})")

        for record in records:
            self.status_service.run_side_effects(record)
        self._notify(request, booking, log)
        return ConversionResult(booking=booking, created=True)

    def get_live_booking(self, request_id: str) -> Booking | None:
        """Get the non-cancelled booking of a request, or None."""
        with self.db.get_cursor() as cur:
            cur.execute(GET_LIVE_BOOKING_FOR_REQUEST, (request_id,))
            row = _fetch_one_dict(cur)

        return Booking.from_row(row) if row else None

    def _get_request(self, request_id: str) -> dict[str, Any]:
        with self.db.get_cursor() as cur:
            try:
                cur.execute(GET_REQUEST_FOR_CONVERSION, (request_id,))
                row = _fetch_one_dict(cur)
            except pg_errors.InvalidTextRepresentation:
                # Not a well-formed id, so no such request
                row = None

        if not row:
            raise NotFoundError(f"Request {request_id} not found", request_id=str(request_id))
        return row

    def _create_booking(self, request, provider_id, service, price, actor, log):
        """
        Insert the booking and drive the request to converted in one transaction.

        Returns (None, []) when the request turned out to be converted already
        once its row was locked.
        """
        request_id = request["id"]
        with self.db.transaction() as cur:
            cur.execute(LOCK_REQUEST_FOR_CONVERSION, (request_id,))
            locked = cur.fetchone()
            if not locked:
                raise NotFoundError(f"Request {request_id} not found", request_id=str(request_id))

            current = locked[1]
            if current == CONVERTED_STATUS:
                return None, []
            if current not in CONVERTIBLE_STATUSES:
                raise InvalidStateError(
                    f"Request {request_id} cannot be converted from status '{current}'",
                    request_id=str(request_id),
                    status=current,
                )

            cur.execute(
                INSERT_BOOKING,
                (
                    request_id,
                    provider_id,
                    service["service_id"],
                    service.get("service_type") or request.get("service_type"),
                    request.get("location"),
                    request.get("preferred_date"),
                    request.get("preferred_time"),
                    price,
                    BOOKING_STATUS_CONFIRMED,
                    actor,
                ),
            )
            booking = Booking.from_row(_fetch_one_dict(cur))

            records = self.status_service.advance_via_system_path(
                cur,
                request_id,
                ENTITY_REQUEST,
                CONVERTED_STATUS,
                actor,
                comment=f"Converted to booking {booking.id}",
            )
            log.debug(f"Request moved through {len(records)} status hop(s)")

        return booking, records

    def _notify(self, request: dict[str, Any], booking: Booking, log) -> None:
        """Queue client and provider notifications. Failures are only logged."""
        if self.notifier is None:
            return

        service_name = booking.service_type or request.get("service_type") or "service"
        booking_date = _display(booking.scheduled_date) or DATE_TO_BE_CONFIRMED
        start_time = _display(booking.scheduled_time) or ""

        provider = None
        try:
            provider = self.directory.get_provider(booking.provider_id)
        except Exception as e:
            log.warning(f"Could not load provider for notifications: {e}")

        client_id = request.get("client_user_id") or request.get("client_email")
        if client_id:
            try:
                self.notifier.notify_async(
                    "booking_confirmation",
                    {
                        "id": str(client_id),
                        "name": request.get("client_name"),
                        "email": request.get("client_email"),
                        "phone": request.get("client_phone"),
                    },
                    {
                        "service_name": service_name,
                        "booking_date": booking_date,
                        "start_time": start_time,
                        "provider_name": provider.business_name if provider else "",
                    },
                )
            except Exception as e:
                log.warning(f"Failed to queue booking confirmation: {e}")
        else:
            log.warning("Request has no client contact, booking confirmation skipped")

        if provider is None:
            log.warning("Provider not found, new mission notification skipped")
            return

        try:
            self.notifier.notify_async(
                "provider_new_mission",
                {
                    "id": provider.user_id or provider.id,
                    "name": provider.business_name,
                    "email": provider.email,
                    "phone": provider.phone,
                },
                {
                    "service_name": service_name,
                    "booking_id": booking.id,
                    "booking_date": booking_date,
                    "start_time": start_time,
                    "location": booking.location or "",
                },
            )
        except Exception as e:
            log.warning(f"Failed to queue new mission notification: {e}")


def _fetch_one_dict(cur) -> dict[str, Any] | None:
    columns = [desc[0] for desc in cur.description]
    row = cur.fetchone()
    if not row:
        return None
    return dict(zip(columns, row))


def _display(value: Any) -> str | None:
    if value is None:
        return None
    if hasattr(value, "strftime") and hasattr(value, "hour"):
        return value.strftime("%H:%M")
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)
