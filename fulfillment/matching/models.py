"""
Domain models for the matching engine.

Defines:
- MatchCriteria: validated search input
- MatchCandidate: immutable scored provider, produced only by ProviderMatcher
- QualitySummary / SearchResult: the search output

Rule: No scoring logic here. Models and input validation only.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

from fulfillment.directory import LatLon
from fulfillment.shared import ValidationError

URGENCY_LEVELS = ("low", "normal", "high", "urgent")
AVAILABILITY_SENSITIVE_URGENCIES = frozenset({"high", "urgent"})
UNKNOWN_DISTANCE = "unknown"

# Accept the camelCase keys used by web clients alongside snake_case
_CRITERIA_ALIASES = {
    "serviceType": "service_type",
    "urgencyLevel": "urgency_level",
    "urgency": "urgency_level",
    "minRating": "min_rating",
    "maxPrice": "max_price",
    "useGeolocation": "use_geolocation",
    "recommendationLimit": "recommendation_limit",
    "lat": "latitude",
    "lng": "longitude",
    "lon": "longitude",
}


@dataclass(frozen=True)
class MatchCriteria:
    """
    Search criteria for one matching request.
    """

    service_type: str
    location: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    urgency_level: str = "normal"
    min_rating: float = 0.0
    max_price: float | None = None
    use_geolocation: bool = True
    area: str | None = None
    recommendation_limit: int | None = None

    @property
    def coordinates(self) -> LatLon | None:
        if self.latitude is None or self.longitude is None:
            return None
        return (self.latitude, self.longitude)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MatchCriteria:
        """
        Build and validate criteria from a loosely-typed mapping.

        Raises:
            ValidationError: If any field is missing or malformed
        """
        if not isinstance(data, dict):
            raise ValidationError("Search criteria must be an object")

        normalized = {_CRITERIA_ALIASES.get(key, key): value for key, value in data.items()}
        known = set(cls.__dataclass_fields__)
        unknown = sorted(set(normalized) - known)
        if unknown:
            raise ValidationError(f"Unknown search criteria: {', '.join(unknown)}")
        if "service_type" not in normalized:
            raise ValidationError("service_type is required")

        if "min_rating" in normalized and normalized["min_rating"] is None:
            del normalized["min_rating"]

        try:
            for key in ("latitude", "longitude", "min_rating", "max_price"):
                if normalized.get(key) is not None:
                    normalized[key] = float(normalized[key])
            if normalized.get("recommendation_limit") is not None:
                normalized["recommendation_limit"] = int(normalized["recommendation_limit"])
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Invalid numeric search criterion: {e}") from e

        criteria = cls(**normalized)
        criteria.validate()
        return criteria

    def validate(self) -> None:
        """
        Sanity checks on the criteria.

        Raises:
            ValidationError: If a field is out of range
        """
        if not isinstance(self.service_type, str) or not self.service_type.strip():
            raise ValidationError("service_type is required")

        if self.urgency_level not in URGENCY_LEVELS:
            raise ValidationError(
                f"Invalid urgency_level. Must be one of: {', '.join(URGENCY_LEVELS)}"
            )

        if not 0.0 <= self.min_rating <= 5.0:
            raise ValidationError("min_rating must be between 0 and 5")

        if self.max_price is not None and self.max_price <= 0:
            raise ValidationError("max_price must be > 0")

        if (self.latitude is None) != (self.longitude is None):
            raise ValidationError("latitude and longitude must be provided together")

        if self.latitude is not None and not -90.0 <= self.latitude <= 90.0:
            raise ValidationError("latitude must be between -90 and 90")

        if self.longitude is not None and not -180.0 <= self.longitude <= 180.0:
            raise ValidationError("longitude must be between -180 and 180")

        if self.recommendation_limit is not None and self.recommendation_limit < 0:
            raise ValidationError("recommendation_limit must be >= 0")


@dataclass(frozen=True)
class MatchCandidate:
    """
    A provider that passed the hard filters, with its derived scores.

    Never persisted and never mutated after the matcher builds it.
    """

    provider_id: str
    business_name: str
    rating: float
    hourly_rate: float
    distance_km: float | None
    rating_score: float
    distance_score: float
    price_score: float
    urgency_fit_score: float
    composite_score: int
    recommended: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class QualitySummary:
    score: float
    providers_found: int
    avg_distance: float | str
    competition_level: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SearchResult:
    candidates: tuple[MatchCandidate, ...] = ()
    recommended: tuple[MatchCandidate, ...] = ()
    quality: QualitySummary = field(
        default_factory=lambda: QualitySummary(0, 0, UNKNOWN_DISTANCE, "low")
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "candidates": [candidate.to_dict() for candidate in self.candidates],
            "recommended": [candidate.to_dict() for candidate in self.recommended],
            "quality": self.quality.to_dict(),
        }
