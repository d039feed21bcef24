"""Query models for the discovery operations.

Each operation has its own model carrying that operation's bounds and
defaults. Validation happens once, when the model is built; everything
downstream consumes an already-valid query.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from discovery.exceptions import QueryValidationError
from discovery.models.business import BusinessType, PriceRange


class SortBy(str, Enum):
    """Sort keys accepted by the explore operation."""

    RELEVANCE = "relevance"
    DISTANCE = "distance"
    RATING = "rating"
    POPULARITY = "popularity"
    NEWEST = "newest"
    ALPHABETICAL = "alphabetical"


class OpenedStatus(str, Enum):
    """Open-state filter values."""

    OPEN = "open"
    CLOSED = "closed"
    ANY = "any"


class GeoOrigin(BaseModel):
    """Caller location that distances are measured from."""

    latitude: float
    longitude: float


def _blank_to_none(v):
    if isinstance(v, str) and not v.strip():
        return None
    return v.strip() if isinstance(v, str) else v


class DiscoveryQuery(BaseModel):
    """Fields shared by every discovery operation."""

    model_config = ConfigDict(extra="forbid")

    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    maxDistance: float = Field(default=10000, description="Radius in meters")
    limit: int = Field(default=20, ge=1)
    category: Optional[str] = Field(default=None, max_length=100)
    priceRange: Optional[List[PriceRange]] = Field(
        default=None,
        description='One tier or several, e.g. ["$", "$$"]',
    )

    @field_validator("category", mode="before")
    @classmethod
    def blank_category(cls, v):
        return _blank_to_none(v)

    @field_validator("priceRange", mode="before")
    @classmethod
    def split_price_range(cls, v):
        """Accept a single tier, a comma-separated string, or a list of tiers."""
        if v is None:
            return None
        if isinstance(v, str):
            v = [v]
        tiers = []
        for item in v:
            if isinstance(item, str):
                tiers.extend(part.strip() for part in item.split(",") if part.strip())
            else:
                tiers.append(item)
        return tiers or None

    @model_validator(mode="after")
    def coordinates_together(self):
        if (self.longitude is None) != (self.latitude is None):
            raise ValueError("longitude and latitude must be provided together")
        return self

    @property
    def origin(self) -> Optional[GeoOrigin]:
        if self.longitude is None or self.latitude is None:
            return None
        return GeoOrigin(latitude=self.latitude, longitude=self.longitude)

    @property
    def radius_km(self) -> float:
        return self.maxDistance / 1000

    def applied_filters(self) -> Dict[str, Any]:
        """Filter values echoed back to the caller."""
        price = [tier.value for tier in self.priceRange] if self.priceRange else None
        return {"category": self.category, "priceRange": price}


class AttributeFilterMixin(BaseModel):
    """Attribute filters available on nearby and explore."""

    rating: Optional[float] = Field(default=None, ge=1, le=5)
    openedStatus: OpenedStatus = OpenedStatus.ANY
    businessType: Optional[BusinessType] = None
    features: Optional[List[str]] = None

    @field_validator("features", mode="before")
    @classmethod
    def normalise_features(cls, v):
        if v is None:
            return None
        if isinstance(v, str):
            v = [v]
        features = [item.strip() for item in v if isinstance(item, str) and item.strip()]
        return features or None

    @field_validator("features")
    @classmethod
    def feature_length(cls, v):
        if v and any(len(item) > 100 for item in v):
            raise ValueError("each feature must be at most 100 characters")
        return v

    def attribute_filters(self) -> Dict[str, Any]:
        return {
            "rating": self.rating,
            "openedStatus": self.openedStatus.value,
            "businessType": self.businessType.value if self.businessType else None,
            "features": self.features,
        }


class NearbyQuery(AttributeFilterMixin, DiscoveryQuery):
    """Geo-required radius search sorted nearest first."""

    longitude: float = Field(..., ge=-180, le=180)
    latitude: float = Field(..., ge=-90, le=90)
    maxDistance: float = Field(default=10000, ge=100, le=100000, description="Radius in meters")
    limit: int = Field(default=20, ge=1, le=50)

    def applied_filters(self) -> Dict[str, Any]:
        return {**super().applied_filters(), **self.attribute_filters()}


class TopPicksQuery(DiscoveryQuery):
    """High-quality, popular businesses, optionally near a location."""

    maxDistance: float = Field(default=25000, ge=1000, le=100000, description="Radius in meters")
    limit: int = Field(default=15, ge=1, le=30)


class OnTheRiseQuery(DiscoveryQuery):
    """Recently created or updated businesses with growing engagement."""

    maxDistance: float = Field(default=25000, ge=1000, le=100000, description="Radius in meters")
    limit: int = Field(default=15, ge=1, le=30)
    daysBack: int = Field(default=30, ge=1, le=365, description="Lookback window in days")


class ExploreQuery(AttributeFilterMixin, DiscoveryQuery):
    """General-purpose paginated search."""

    maxDistance: float = Field(default=50000, ge=1000, le=200000, description="Radius in meters")
    limit: int = Field(default=20, ge=1, le=50)
    page: int = Field(default=1, ge=1)
    sortBy: SortBy = SortBy.RELEVANCE
    search: Optional[str] = Field(default=None, max_length=200)

    @field_validator("search", mode="before")
    @classmethod
    def blank_search(cls, v):
        return _blank_to_none(v)

    def applied_filters(self) -> Dict[str, Any]:
        return {**super().applied_filters(), **self.attribute_filters(), "search": self.search}


Q = TypeVar("Q", bound=DiscoveryQuery)


def parse_query(model: Type[Q], params: Dict[str, Any]) -> Q:
    """
    Build a query model from raw parameters.

    Unset (None) parameters are dropped so model defaults apply.

    Raises:
        QueryValidationError: with one message per invalid field
    """
    data = {key: value for key, value in params.items() if value is not None}
    try:
        return model(**data)
    except ValidationError as e:
        raise QueryValidationError.from_pydantic(e) from e
