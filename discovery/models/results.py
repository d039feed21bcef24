"""Result models for the discovery operations."""

import math
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from discovery.models.business import BusinessRecord
from discovery.models.query import GeoOrigin


class RankedResult(BusinessRecord):
    """A business record plus the values computed for this query."""

    distance: Optional[float] = Field(default=None, description="Kilometers from the search center")
    distanceUnit: Optional[str] = None
    isCurrentlyOpen: bool = False
    topPickScore: Optional[float] = None
    riseScore: Optional[float] = None
    isNewBusiness: Optional[bool] = None


class Pagination(BaseModel):
    """Page metadata for paginated results."""

    currentPage: int
    totalPages: int
    totalBusinesses: int
    hasNextPage: bool
    hasPrevPage: bool
    limit: int

    @classmethod
    def build(cls, total: int, page: int, limit: int) -> "Pagination":
        total_pages = math.ceil(total / limit) if limit else 0
        return cls(
            currentPage=page,
            totalPages=total_pages,
            totalBusinesses=total,
            hasNextPage=page < total_pages,
            hasPrevPage=page > 1,
            limit=limit,
        )


class DiscoveryResponse(BaseModel):
    """Payload returned by every discovery operation."""

    businesses: List[RankedResult]
    searchCenter: Optional[GeoOrigin] = None
    totalFound: int = 0
    maxDistance: Optional[float] = Field(default=None, description="Search radius in kilometers")
    pagination: Optional[Pagination] = None
    sortedBy: str
    appliedFilters: Dict[str, Any] = Field(default_factory=dict)
    daysBack: Optional[int] = None

    class Config:
        json_schema_extra = {
            "example": {
                "businesses": [
                    {
                        "id": "biz-001",
                        "businessName": "Golden Fork Bistro",
                        "distance": 1.24,
                        "distanceUnit": "km",
                        "isCurrentlyOpen": True,
                    }
                ],
                "searchCenter": {"latitude": 30.2672, "longitude": -97.7431},
                "totalFound": 1,
                "maxDistance": 10.0,
                "sortedBy": "distance",
                "appliedFilters": {"category": "food"},
            }
        }
