"""
Provider Matcher Service

Scores and ranks providers for a service request. Candidates come from the
provider directory; scores never leave this module as anything other than
immutable MatchCandidate values.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable, Iterable

from fulfillment.directory import LatLon, Provider, ProviderDirectory

from .geo import haversine_km
from .models import (
    AVAILABILITY_SENSITIVE_URGENCIES,
    UNKNOWN_DISTANCE,
    MatchCandidate,
    MatchCriteria,
    QualitySummary,
    SearchResult,
)

logger = logging.getLogger(__name__)

DistanceFunction = Callable[[LatLon, LatLon], float]

DEFAULT_SCORING_WEIGHTS = {
    "rating": 40.0,
    "distance": 25.0,
    "price": 20.0,
    "urgency_fit": 15.0,
}

DEFAULT_THRESHOLDS = {
    "zero_score_distance_km": 50.0,
    "max_distance_km": 50.0,
    "recommendation_min_score": 75,
    "recommendation_min_rating": 4.0,
    "recommendation_limit": 3,
}

NEUTRAL_SCORE = 50.0
URGENCY_FIT_AVAILABLE = 100.0
URGENCY_FIT_DEFAULT = 60.0


class ProviderMatcher:
    """
    Service for matching providers to a service request.

    Applies hard filters (service offered, minimum rating, maximum price,
    maximum distance), scores each remaining provider on rating, distance,
    price and urgency fit, and ranks them deterministically.
    """

    def __init__(
        self,
        directory: ProviderDirectory | None = None,
        config_path: str | None = None,
        distance_fn: DistanceFunction = haversine_km,
    ):
        """
        Initialize the provider matcher.

        Args:
            directory: Provider directory used by search(). Optional when only
                rank_providers() is used.
            config_path: Optional path to a matching config JSON file. If not
                provided, matching_config.json next to this module is used.
            distance_fn: Distance in km between two (lat, lon) pairs
        """
        self.directory = directory
        self.distance_fn = distance_fn
        self._scoring_weights, self._thresholds = self._load_matching_config(config_path)

    def search(self, criteria: MatchCriteria | dict[str, Any]) -> SearchResult:
        """
        Find, score and rank providers for the criteria.

        Zero candidates is not an error: the result is empty with a quality
        score of 0, and the caller decides whether to relax the filters.

        Args:
            criteria: MatchCriteria or a mapping accepted by MatchCriteria.from_dict

        Returns:
            SearchResult with ranked candidates, recommended subset and quality summary

        Raises:
            ValidationError: If the criteria are malformed
        """
        if not isinstance(criteria, MatchCriteria):
            criteria = MatchCriteria.from_dict(criteria)
        else:
            criteria.validate()

        if not self.directory:
            raise ValueError("Provider directory is required for search")

        providers = self.directory.query_providers(
            criteria.service_type, area=self._search_area(criteria), active_only=True
        )
        result = self.rank_providers(providers, criteria)

        logger.info(
            f"Matched {result.quality.providers_found} provider(s) for {criteria.service_type} "
            f"(urgency={criteria.urgency_level}, recommended={len(result.recommended)})"
        )
        return result

    def rank_providers(
        self, providers: Iterable[Provider], criteria: MatchCriteria
    ) -> SearchResult:
        """
        Score and rank an already-fetched provider pool.

        This is a pure calculation: identical inputs always produce the same
        ordering. Ties on composite score break by lower distance (unknown
        distance last), then by ascending provider id.
        """
        scored = []
        for provider in providers:
            distance = self._distance_for(provider, criteria)
            if not self._passes_hard_filters(provider, criteria, distance):
                continue
            scored.append(self.calculate_candidate_score(provider, criteria, distance))

        scored.sort(key=_ranking_key)

        recommended_ids = self._select_recommended_ids(scored, criteria)
        candidates = tuple(
            _with_recommendation(candidate, candidate.provider_id in recommended_ids)
            for candidate in scored
        )
        recommended = tuple(candidate for candidate in candidates if candidate.recommended)

        return SearchResult(
            candidates=candidates,
            recommended=recommended,
            quality=self._summarize_quality(candidates),
        )

    def calculate_candidate_score(
        self, provider: Provider, criteria: MatchCriteria, distance_km: float | None
    ) -> MatchCandidate:
        """
        Calculate the sub-scores and composite score for one provider.

        Every sub-score is on a 0-100 scale; the composite is the weighted sum
        (weights are percentages), rounded half-up and clamped to [0, 100].
        """
        hourly_rate = provider.hourly_rate(criteria.service_type) or 0.0
        rating_score = self._score_rating(provider)
        distance_score = self._score_distance(distance_km)
        price_score = self._score_price(hourly_rate, criteria.max_price)
        urgency_fit_score = self._score_urgency_fit(provider, criteria.urgency_level)

        weights = self._scoring_weights
        total = (
            rating_score * weights.get("rating", 0.0)
            + distance_score * weights.get("distance", 0.0)
            + price_score * weights.get("price", 0.0)
            + urgency_fit_score * weights.get("urgency_fit", 0.0)
        ) / 100.0
        composite = max(0, min(100, math.floor(total + 0.5)))

        return MatchCandidate(
            provider_id=provider.id,
            business_name=provider.business_name,
            rating=provider.rating_average,
            hourly_rate=hourly_rate,
            distance_km=round(distance_km, 2) if distance_km is not None else None,
            rating_score=round(rating_score, 2),
            distance_score=round(distance_score, 2),
            price_score=round(price_score, 2),
            urgency_fit_score=round(urgency_fit_score, 2),
            composite_score=composite,
        )

    def _search_area(self, criteria: MatchCriteria) -> str | None:
        """
        Area filter for the directory query.

        An explicit area wins. Otherwise the locality of the free-text location
        is used, but only when no distance can be computed: with coordinates
        the max distance filter already bounds the pool.
        """
        if criteria.area:
            return criteria.area
        if criteria.use_geolocation and criteria.coordinates is not None:
            return None
        return _locality(criteria.location)

    def _distance_for(self, provider: Provider, criteria: MatchCriteria) -> float | None:
        if not criteria.use_geolocation:
            return None
        origin = criteria.coordinates
        destination = provider.coordinates
        if origin is None or destination is None:
            return None
        return self.distance_fn(origin, destination)

    def _passes_hard_filters(
        self, provider: Provider, criteria: MatchCriteria, distance_km: float | None
    ) -> bool:
        if not provider.offers(criteria.service_type):
            return False

        hourly_rate = provider.hourly_rate(criteria.service_type)
        if hourly_rate is None:
            return False

        if provider.rating_average < criteria.min_rating:
            return False

        if criteria.max_price is not None and hourly_rate > criteria.max_price:
            return False

        max_distance = self._thresholds["max_distance_km"]
        if distance_km is not None and max_distance and distance_km > max_distance:
            return False

        return True

    def _score_rating(self, provider: Provider) -> float:
        """Rating on the 0-5 scale mapped to 0-100."""
        rating = max(0.0, min(5.0, provider.rating_average))
        return rating / 5.0 * 100.0

    def _score_distance(self, distance_km: float | None) -> float:
        """
        Linear decay from 100 at 0 km to 0 at zero_score_distance_km.

        Neutral when the distance is unknown (no geolocation, or a side has no
        coordinates).
        """
        if distance_km is None:
            return NEUTRAL_SCORE
        slope = 100.0 / self._thresholds["zero_score_distance_km"]
        return max(0.0, 100.0 - distance_km * slope)

    def _score_price(self, hourly_rate: float, max_price: float | None) -> float:
        """Share of the budget left over, neutral when the client gave no budget."""
        if not max_price:
            return NEUTRAL_SCORE
        return max(0.0, 100.0 * (max_price - hourly_rate) / max_price)

    def _score_urgency_fit(self, provider: Provider, urgency_level: str) -> float:
        if urgency_level in AVAILABILITY_SENSITIVE_URGENCIES and provider.availability_signal:
            return URGENCY_FIT_AVAILABLE
        return URGENCY_FIT_DEFAULT

    def _select_recommended_ids(
        self, ranked: list[MatchCandidate], criteria: MatchCriteria
    ) -> set[str]:
        """Top N candidates, in ranking order, clearing both recommendation bars."""
        limit = criteria.recommendation_limit
        if limit is None:
            limit = int(self._thresholds["recommendation_limit"])

        min_score = self._thresholds["recommendation_min_score"]
        min_rating = self._thresholds["recommendation_min_rating"]
        eligible = [
            candidate.provider_id
            for candidate in ranked
            if candidate.composite_score >= min_score and candidate.rating >= min_rating
        ]
        return set(eligible[:limit])

    def _summarize_quality(self, candidates: tuple[MatchCandidate, ...]) -> QualitySummary:
        count = len(candidates)
        if count == 0:
            return QualitySummary(
                score=0, providers_found=0, avg_distance=UNKNOWN_DISTANCE, competition_level="low"
            )

        score = round(sum(candidate.composite_score for candidate in candidates) / count, 2)

        distances = [c.distance_km for c in candidates if c.distance_km is not None]
        avg_distance: float | str = (
            round(sum(distances) / len(distances), 2) if distances else UNKNOWN_DISTANCE
        )

        if count < 3:
            competition_level = "low"
        elif count <= 8:
            competition_level = "medium"
        else:
            competition_level = "high"

        return QualitySummary(
            score=score,
            providers_found=count,
            avg_distance=avg_distance,
            competition_level=competition_level,
        )

    def _load_matching_config(
        self, config_path: str | None = None
    ) -> tuple[dict[str, float], dict[str, float]]:
        """
        Load scoring weights and thresholds from a configuration file.

        Weights are percentages and should sum to 100%. Missing keys fall back
        to the built-in defaults.

        Args:
            config_path: Optional path to config file. If not provided, looks in
                        standard locations.

        Returns:
            Tuple of (scoring weights, thresholds)
        """
        possible_paths = [
            config_path,
            Path(__file__).parent / "matching_config.json",
            Path("fulfillment/matching/matching_config.json"),
        ]

        for path in possible_paths:
            if not path:
                continue

            path_obj = Path(path) if isinstance(path, str) else path
            if not path_obj.exists():
                continue

            try:
                with open(path_obj, encoding="utf-8") as f:
                    data = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"Failed to load matching config from {path_obj}: {e}")
                continue

            weights = {**DEFAULT_SCORING_WEIGHTS, **data.get("scoring_weights", {})}
            thresholds = {**DEFAULT_THRESHOLDS, **data.get("thresholds", {})}

            total = sum(weights.values())
            if abs(total - 100.0) > 0.1:
                logger.warning(
                    f"Scoring weights sum to {total}, expected ~100.0. Using loaded weights anyway."
                )
            if thresholds["zero_score_distance_km"] <= 0:
                logger.warning("zero_score_distance_km must be > 0, using default")
                thresholds["zero_score_distance_km"] = DEFAULT_THRESHOLDS["zero_score_distance_km"]

            logger.info(f"Loaded matching config from {path_obj}")
            return weights, thresholds

        logger.info("Using default matching weights")
        return dict(DEFAULT_SCORING_WEIGHTS), dict(DEFAULT_THRESHOLDS)


def _locality(location: str | None) -> str | None:
    """Town part of a free-text location: "75015 Paris" and "Paris 15e" give "Paris"."""
    if not location:
        return None
    last_part = location.split(",")[-1]
    words = [word for word in last_part.split() if not any(ch.isdigit() for ch in word)]
    return " ".join(words) or None


def _ranking_key(candidate: MatchCandidate) -> tuple:
    distance = candidate.distance_km if candidate.distance_km is not None else math.inf
    return (-candidate.composite_score, distance, candidate.provider_id)


def _with_recommendation(candidate: MatchCandidate, recommended: bool) -> MatchCandidate:
    if candidate.recommended == recommended:
        return candidate
    # MatchCandidate is frozen; the flag is settled before the value leaves this module
    return replace(candidate, recommended=recommended)
