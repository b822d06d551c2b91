"""
Provider Directory

Read-only access to service providers and the services they offer.
"""

from .models import LatLon, Provider
from .provider_directory import ProviderDirectory

__all__ = ["LatLon", "Provider", "ProviderDirectory"]
