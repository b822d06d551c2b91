"""
Core data models for the provider directory.

Defines the structure of a Provider as the matching engine sees it, without
relying on any ORM.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Tuple

LatLon = Tuple[float, float]


@dataclass(frozen=True)
class Provider:
    """
    A read-only snapshot of a provider at query time.
    """

    id: str
    business_name: str
    location: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    rating_average: float = 0.0
    hourly_rate_by_service: dict[str, float] = field(default_factory=dict)
    active_service_types: frozenset[str] = frozenset()
    verified: bool = False
    availability_signal: bool = False

    # Contact details used when the provider is notified.
    email: str | None = None
    phone: str | None = None
    user_id: str | None = None

    @property
    def coordinates(self) -> LatLon | None:
        if self.latitude is None or self.longitude is None:
            return None
        return (self.latitude, self.longitude)

    def offers(self, service_type: str) -> bool:
        return service_type in self.active_service_types

    def hourly_rate(self, service_type: str) -> float | None:
        return self.hourly_rate_by_service.get(service_type)

    @classmethod
    def from_rows(cls, rows: list[dict[str, Any]]) -> Provider:
        """
        Build a Provider from the per-service rows returned by the directory query.

        All rows must belong to the same provider; each one contributes a
        service type and its hourly rate.
        """
        first = rows[0]
        rates: dict[str, float] = {}
        for row in rows:
            service_type = row.get("service_type")
            if service_type and row.get("hourly_rate") is not None:
                rates[service_type] = float(row["hourly_rate"])

        return cls(
            id=str(first["provider_id"]),
            business_name=first.get("business_name") or "",
            location=first.get("location"),
            latitude=_to_float(first.get("latitude")),
            longitude=_to_float(first.get("longitude")),
            rating_average=_to_float(first.get("rating_average")) or 0.0,
            hourly_rate_by_service=rates,
            active_service_types=frozenset(rates),
            verified=bool(first.get("is_verified")),
            availability_signal=bool(first.get("is_available")),
            email=first.get("email"),
            phone=first.get("phone"),
            user_id=_to_str(first.get("user_id")),
        )


def _to_float(value: Any) -> float | None:
    # NUMERIC columns arrive as Decimal
    return float(value) if value is not None else None


def _to_str(value: Any) -> str | None:
    return str(value) if value is not None else None
