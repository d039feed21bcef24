"""Business record models for the Business Discovery Engine.

These models describe documents as they are stored in the businesses index.
The engine only reads them, so every field is lenient: legacy documents with
missing or malformed values still load, and the enrichment steps decide how
to degrade.
"""

import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, Field, TypeAdapter, ValidationError, field_validator

_DATETIME = TypeAdapter(datetime)
_BOOL = TypeAdapter(bool)


def _text_or_none(v: Any) -> Optional[str]:
    """Strings pass through, numbers are stringified, anything else is dropped."""
    if isinstance(v, str):
        return v
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return str(v)
    return None


def _number_or_zero(v: Any) -> float:
    """Finite numbers (or numeric strings) pass through; anything else is 0."""
    if isinstance(v, bool) or v is None:
        return 0
    try:
        number = float(v)
    except (TypeError, ValueError):
        return 0
    return number if math.isfinite(number) else 0


def _flag(v: Any) -> bool:
    try:
        return _BOOL.validate_python(v)
    except ValidationError:
        return False


class PriceRange(str, Enum):
    """Price tier of a business."""

    BUDGET = "$"
    MODERATE = "$$"
    EXPENSIVE = "$$$"
    LUXURY = "$$$$"


class BusinessType(str, Enum):
    """Closed set of business types."""

    SMALL_BUSINESS = "Small business"
    MEDIUM_SIZED_BUSINESS = "Medium sized business"
    FRANCHISE = "Franchise"
    CORPORATION = "Corporation"
    NON_PROFIT = "Non profit organizations"
    STARTUP = "Startup"
    ONLINE_BUSINESS = "Online business"
    OTHERS = "Others"


class Weekday(str, Enum):
    """English weekday names, in datetime.weekday() order."""

    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"



class GeoPoint(BaseModel):
    """GeoJSON point, coordinates ordered [longitude, latitude]."""

    type: str = "Point"
    coordinates: Optional[List[float]] = None

    @field_validator("coordinates", mode="before")
    @classmethod
    def unusable_as_none(cls, v):
        """Anything but a pair of finite numbers means no coordinates."""
        if not isinstance(v, (list, tuple)) or len(v) != 2:
            return None
        if any(isinstance(c, bool) or not isinstance(c, (int, float)) for c in v):
            return None
        if not all(math.isfinite(c) for c in v):
            return None
        return list(v)

    def lat_lon(self) -> Optional[Tuple[float, float]]:
        """Return (latitude, longitude), or None if the point is unusable."""
        if not self.coordinates or len(self.coordinates) != 2:
            return None
        longitude, latitude = self.coordinates
        if not (-180 <= longitude <= 180 and -90 <= latitude <= 90):
            return None
        return latitude, longitude


class BusinessLocation(BaseModel):
    """Physical location of a business."""

    isOnlineOnly: bool = False
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    postalCode: Optional[str] = None
    coordinates: Optional[GeoPoint] = None

    @field_validator("isOnlineOnly", mode="before")
    @classmethod
    def online_flag(cls, v):
        return _flag(v)

    @field_validator("address", "city", "state", "country", "postalCode", mode="before")
    @classmethod
    def address_text(cls, v):
        return _text_or_none(v)

    @field_validator("coordinates", mode="before")
    @classmethod
    def point_or_none(cls, v):
        """Accept GeoJSON or {lat, lon} objects; anything else has no position."""
        if isinstance(v, GeoPoint):
            return v
        if not isinstance(v, dict):
            return None
        if "coordinates" not in v and "lat" in v and "lon" in v:
            return {"type": "Point", "coordinates": [v["lon"], v["lat"]]}
        return v


class BusinessHoursEntry(BaseModel):
    """Opening hours for a single weekday."""

    day: Optional[str] = None
    open: Optional[str] = Field(default=None, description="Opening time, HH:MM")
    close: Optional[str] = Field(default=None, description="Closing time, HH:MM")
    isClosed: bool = False

    @field_validator("day", "open", "close", mode="before")
    @classmethod
    def non_text_as_none(cls, v):
        # a day without usable times reads as closed
        return v if isinstance(v, str) else None

    @field_validator("isClosed", mode="before")
    @classmethod
    def closed_flag(cls, v):
        return _flag(v)


class BusinessDescription(BaseModel):
    short: Optional[str] = None
    full: Optional[str] = None

    @field_validator("short", "full", mode="before")
    @classmethod
    def description_text(cls, v):
        return v if isinstance(v, str) else None


class BusinessMetrics(BaseModel):
    """Engagement counters maintained outside the discovery engine."""

    viewCount: int = 0
    favoriteCount: int = 0
    ratingAverage: float = 0.0
    ratingCount: int = 0

    @field_validator("viewCount", "favoriteCount", "ratingCount", mode="before")
    @classmethod
    def counter_or_zero(cls, v):
        """Null or non-numeric counters count as zero."""
        return int(_number_or_zero(v))

    @field_validator("ratingAverage", mode="before")
    @classmethod
    def rating_or_zero(cls, v):
        return _number_or_zero(v)


class BusinessRecord(BaseModel):
    """A business document as read from the businesses index."""

    id: str = Field(..., description="Unique business identifier")
    businessName: Optional[str] = Field(default=None, description="Display name")
    username: Optional[str] = None
    logo: Optional[str] = None
    businessType: Optional[str] = None
    subBusinessType: Optional[str] = None
    industry: Optional[str] = None
    subIndustry: Optional[str] = None
    industryTags: List[str] = Field(default_factory=list)
    description: Optional[BusinessDescription] = None
    priceRange: Optional[str] = None
    location: Optional[BusinessLocation] = None
    businessHours: List[BusinessHoursEntry] = Field(default_factory=list)
    features: List[str] = Field(default_factory=list)
    metrics: BusinessMetrics = Field(default_factory=BusinessMetrics)
    completionPercentage: float = 0.0
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None
    class Config:
        extra = "allow"
        json_schema_extra = {
            "example": {
                "id": "biz-001",
                "businessName": "Golden Fork Bistro",
                "businessType": "Small business",
                "industry": "Food & Beverage",
                "subIndustry": "Restaurant",
                "industryTags": ["bistro", "brunch"],
                "priceRange": "$$",
                "location": {
                    "isOnlineOnly": False,
                    "city": "Austin",
                    "coordinates": {"type": "Point", "coordinates": [-97.7431, 30.2672]},
                },
                "businessHours": [
                    {"day": "Monday", "open": "09:00", "close": "17:00", "isClosed": False}
                ],
                "features": ["Free WiFi", "Outdoor seating"],
                "metrics": {
                    "viewCount": 420,
                    "favoriteCount": 37,
                    "ratingAverage": 4.6,
                    "ratingCount": 58,
                },
                "completionPercentage": 90,
                "createdAt": "2024-05-01T12:00:00Z",
                "updatedAt": "2024-06-10T08:30:00Z",
            }
        }


    @field_validator(
        "businessName", "username", "logo", "businessType", "subBusinessType",
        "industry", "subIndustry", "priceRange",
        mode="before",
    )
    @classmethod
    def text_fields(cls, v):
        return _text_or_none(v)

    @field_validator("description", mode="before")
    @classmethod
    def description_object(cls, v):
        """A bare string is the short description; other shapes are dropped."""
        if isinstance(v, str):
            return {"short": v}
        if isinstance(v, (dict, BusinessDescription)):
            return v
        return None

    @field_validator("location", mode="before")
    @classmethod
    def location_object(cls, v):
        return v if isinstance(v, (dict, BusinessLocation)) else None

    @field_validator("metrics", mode="before")
    @classmethod
    def missing_metrics(cls, v):
        return v if isinstance(v, (dict, BusinessMetrics)) else {}

    @field_validator("completionPercentage", mode="before")
    @classmethod
    def missing_completion(cls, v):
        return _number_or_zero(v)

    @field_validator("industryTags", "features", mode="before")
    @classmethod
    def coerce_tag_list(cls, v):
        """Accept a single tag or null for list-valued tag fields."""
        if isinstance(v, str):
            return [v]
        if not isinstance(v, (list, tuple)):
            return []
        return [tag for tag in v if isinstance(tag, str)]

    @field_validator("businessHours", mode="before")
    @classmethod
    def drop_malformed_hours(cls, v: Any):
        """Keep only dict-shaped hours entries; anything else means closed."""
        if not isinstance(v, list):
            return []
        return [entry for entry in v if isinstance(entry, (dict, BusinessHoursEntry))]

    @field_validator("createdAt", "updatedAt", mode="before")
    @classmethod
    def unparseable_as_none(cls, v):
        if v is None or isinstance(v, datetime):
            return v
        try:
            return _DATETIME.validate_python(v)
        except ValidationError:
            return None

    @field_validator("createdAt", "updatedAt")
    @classmethod
    def assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Stored timestamps without an offset are UTC."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def lat_lon(self) -> Optional[Tuple[float, float]]:
        """(latitude, longitude) of the business, or None without a physical location."""
        if self.location is None or self.location.coordinates is None:
            return None
        return self.location.coordinates.lat_lon()
