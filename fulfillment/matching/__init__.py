"""
Matching Service

Scores and ranks candidate providers for a service request.
"""

from .geo import haversine_km
from .models import MatchCandidate, MatchCriteria, QualitySummary, SearchResult
from .provider_matcher import ProviderMatcher

__all__ = [
    "MatchCandidate",
    "MatchCriteria",
    "ProviderMatcher",
    "QualitySummary",
    "SearchResult",
    "haversine_km",
]
