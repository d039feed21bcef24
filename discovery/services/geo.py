"""Great-circle distance helpers."""

import math
from typing import Optional

from discovery.models.business import BusinessRecord
from discovery.models.query import GeoOrigin

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Distance between two points in kilometers using the haversine formula.

    The result is not rounded; callers round for presentation.
    """
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def distance_to(origin: GeoOrigin, business: BusinessRecord) -> Optional[float]:
    """Kilometers from origin to the business, or None without usable coordinates."""
    point = business.lat_lon()
    if point is None:
        return None
    latitude, longitude = point
    return haversine_km(origin.latitude, origin.longitude, latitude, longitude)
