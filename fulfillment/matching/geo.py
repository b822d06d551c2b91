"""Great-circle distance between two coordinates."""

from __future__ import annotations

import math

from fulfillment.directory import LatLon

EARTH_RADIUS_KM = 6371.0


def haversine_km(origin: LatLon, destination: LatLon) -> float:
    """
    Distance in kilometres between two (lat, lon) pairs given in degrees.
    """
    lat1, lon1 = origin
    lat2, lon2 = destination
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
