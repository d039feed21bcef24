"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List

import pytest
from fastapi.testclient import TestClient

from discovery.config import Settings
from discovery.dependencies import get_app_settings, get_clock, get_store
from discovery.main import app
from discovery.models.business import BusinessRecord
from discovery.services.orchestrator import DiscoveryService
from discovery.services.storage import InMemoryBusinessStore

# Monday 3 June 2024, noon UTC
NOW = datetime(2024, 6, 3, 12, 0, tzinfo=timezone.utc)

# Downtown Austin, TX
ORIGIN_LAT = 30.2672
ORIGIN_LON = -97.7431

# Kilometers per degree of latitude on a 6371 km sphere
KM_PER_DEGREE_LAT = 111.195

WEEKDAY_HOURS = [
    {"day": day, "open": "09:00", "close": "17:00", "isClosed": False}
    for day in ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]
] + [
    {"day": "Saturday", "isClosed": True},
    {"day": "Sunday", "isClosed": True},
]


def north_of_origin(km: float) -> List[float]:
    """GeoJSON [lon, lat] for a point the given distance due north of the origin."""
    return [ORIGIN_LON, ORIGIN_LAT + km / KM_PER_DEGREE_LAT]


def business_document(business_id: str, **overrides: Any) -> Dict[str, Any]:
    """A complete business document; keyword overrides replace top-level fields."""
    document = {
        "id": business_id,
        "businessName": f"Business {business_id}",
        "businessType": "Small business",
        "industry": "Food & Beverage",
        "subIndustry": "Cafe",
        "industryTags": ["coffee"],
        "description": {"short": "Neighbourhood spot", "full": "A neighbourhood spot."},
        "priceRange": "$$",
        "location": {
            "isOnlineOnly": False,
            "city": "Austin",
            "coordinates": {"type": "Point", "coordinates": north_of_origin(2)},
        },
        "businessHours": WEEKDAY_HOURS,
        "features": ["Free WiFi"],
        "metrics": {"viewCount": 50, "favoriteCount": 5, "ratingAverage": 4.2, "ratingCount": 12},
        "completionPercentage": 80,
        "createdAt": (NOW - timedelta(days=200)).isoformat(),
        "updatedAt": (NOW - timedelta(days=100)).isoformat(),
    }
    document.update(overrides)
    return document


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def make_business() -> Callable[..., BusinessRecord]:
    """Factory for validated business records."""
    def _make(business_id: str = "biz-1", **overrides: Any) -> BusinessRecord:
        return BusinessRecord.model_validate(business_document(business_id, **overrides))

    return _make


@pytest.fixture
def seeded_documents() -> List[Dict[str, Any]]:
    """A small mixed catalogue around the origin."""
    return [
        business_document(
            "near-cafe",
            businessName="Golden Fork Cafe",
            priceRange="$",
            location={"coordinates": {"type": "Point", "coordinates": north_of_origin(1)}},
            metrics={"viewCount": 900, "favoriteCount": 80, "ratingAverage": 4.8, "ratingCount": 60},
        ),
        business_document(
            "mid-bakery",
            businessName="Sunrise Bakery",
            subIndustry="Bakery",
            industryTags=["bread", "pastries"],
            location={"coordinates": {"type": "Point", "coordinates": north_of_origin(5)}},
            features=["Outdoor seating"],
            metrics={"viewCount": 300, "favoriteCount": 20, "ratingAverage": 4.1, "ratingCount": 25},
        ),
        business_document(
            "far-gym",
            businessName="Iron Temple Gym",
            industry="Health & Wellness",
            subIndustry="Gym",
            industryTags=["fitness"],
            priceRange="$$$",
            location={"coordinates": {"type": "Point", "coordinates": north_of_origin(12)}},
            metrics={"viewCount": 40, "favoriteCount": 2, "ratingAverage": 3.9, "ratingCount": 8},
        ),
        business_document(
            "online-shop",
            businessName="Pixel Prints",
            businessType="Online business",
            industry="Retail",
            subIndustry="Printing",
            location={"isOnlineOnly": True},
            businessHours=[],
            metrics={"viewCount": 150, "favoriteCount": 10, "ratingAverage": 4.5, "ratingCount": 30},
        ),
    ]


@pytest.fixture
def memory_store(seeded_documents) -> InMemoryBusinessStore:
    return InMemoryBusinessStore(seeded_documents)


@pytest.fixture
def service(memory_store) -> DiscoveryService:
    return DiscoveryService(memory_store)


@pytest.fixture
def test_settings() -> Settings:
    return Settings(store_backend="memory", reporting_timezone="UTC", candidate_pool_size=500)


@pytest.fixture
def client(memory_store, test_settings):
    """TestClient wired to the in-memory store and a fixed clock."""
    app.dependency_overrides[get_store] = lambda: memory_store
    app.dependency_overrides[get_app_settings] = lambda: test_settings
    app.dependency_overrides[get_clock] = lambda: (lambda: NOW)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
