"""
Data models for request-to-booking conversion.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any

BOOKING_STATUS_CONFIRMED = "confirmed"
BOOKING_STATUS_CANCELLED = "cancelled"

CONVERTIBLE_STATUSES = frozenset({"new", "processing", "assigned"})


@dataclass(frozen=True)
class Booking:
    id: str
    request_id: str
    provider_id: str
    service_id: str
    service_type: str | None
    location: str | None
    scheduled_date: date | None
    scheduled_time: time | None
    price: float
    status: str
    created_by: str
    created_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Booking:
        price = row.get("price")
        return cls(
            id=str(row["id"]),
            request_id=str(row["request_id"]),
            provider_id=str(row["provider_id"]),
            service_id=str(row["service_id"]),
            service_type=row.get("service_type"),
            location=row.get("location"),
            scheduled_date=row.get("scheduled_date"),
            scheduled_time=row.get("scheduled_time"),
            price=float(price) if isinstance(price, (int, float, Decimal)) else 0.0,
            status=row.get("status") or BOOKING_STATUS_CONFIRMED,
            created_by=row.get("created_by") or "",
            created_at=row.get("created_at"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "request_id": self.request_id,
            "provider_id": self.provider_id,
            "service_id": self.service_id,
            "service_type": self.service_type,
            "location": self.location,
            "scheduled_date": _iso(self.scheduled_date),
            "scheduled_time": _iso(self.scheduled_time),
            "price": self.price,
            "status": self.status,
            "created_by": self.created_by,
            "created_at": _iso(self.created_at),
        }


def _iso(value: Any) -> Any:
    return value.isoformat() if hasattr(value, "isoformat") else value


@dataclass(frozen=True)
class ConversionResult:
    """
    Outcome of a convert call.

    ``created`` is False when an existing booking was returned instead.
    """

    booking: Booking
    created: bool

    def to_dict(self) -> dict[str, Any]:
        return {"booking": self.booking.to_dict(), "created": self.created}
