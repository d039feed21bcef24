"""Pydantic models for the Business Discovery Engine."""

from discovery.models.business import (
    BusinessHoursEntry,
    BusinessLocation,
    BusinessMetrics,
    BusinessRecord,
    BusinessType,
    GeoPoint,
    PriceRange,
    Weekday,
)
from discovery.models.query import (
    ExploreQuery,
    GeoOrigin,
    NearbyQuery,
    OnTheRiseQuery,
    OpenedStatus,
    SortBy,
    TopPicksQuery,
    parse_query,
)
from discovery.models.results import DiscoveryResponse, Pagination, RankedResult

__all__ = [
    "BusinessHoursEntry",
    "BusinessLocation",
    "BusinessMetrics",
    "BusinessRecord",
    "BusinessType",
    "GeoPoint",
    "PriceRange",
    "Weekday",
    "ExploreQuery",
    "GeoOrigin",
    "NearbyQuery",
    "OnTheRiseQuery",
    "OpenedStatus",
    "SortBy",
    "TopPicksQuery",
    "parse_query",
    "DiscoveryResponse",
    "Pagination",
    "RankedResult",
]
