"""Explore API router for the Business Discovery Engine."""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from discovery.dependencies import Clock, get_clock, get_discovery_service
from discovery.exceptions import StorageError
from discovery.models.query import (
    ExploreQuery,
    NearbyQuery,
    OnTheRiseQuery,
    TopPicksQuery,
    parse_query,
)
from discovery.models.results import DiscoveryResponse
from discovery.services.orchestrator import DiscoveryService

router = APIRouter(prefix="/api/explore", tags=["explore"])


def split_csv(values: Optional[List[str]]) -> Optional[List[str]]:
    """Accept repeated parameters as well as comma-separated values."""
    if not values:
        return None
    return [part.strip() for value in values for part in value.split(",") if part.strip()]


def envelope(response: DiscoveryResponse) -> Dict[str, Any]:
    return {"success": True, "data": response.model_dump(mode="json", exclude_unset=True)}


@router.get("/nearby")
async def nearby_businesses(
    longitude: Optional[float] = Query(None, description="Search center longitude (required)"),
    latitude: Optional[float] = Query(None, description="Search center latitude (required)"),
    maxDistance: Optional[float] = Query(None, description="Radius in meters, 100 to 100000 (default 10000)"),
    limit: Optional[int] = Query(None, description="Maximum results, 1 to 50 (default 20)"),
    category: Optional[str] = Query(None, description="Industry, sub-industry or tag"),
    rating: Optional[float] = Query(None, description="Minimum average rating, 1 to 5"),
    priceRange: Optional[List[str]] = Query(None, description="One or more of $, $$, $$$, $$$$"),
    openedStatus: Optional[str] = Query(None, description="open, closed or any"),
    businessType: Optional[str] = Query(None, description="Business type"),
    features: Optional[List[str]] = Query(None, description="Any of these features"),
    service: DiscoveryService = Depends(get_discovery_service),
    clock: Clock = Depends(get_clock),
) -> Dict[str, Any]:
    """
    Find businesses within a radius of a location, nearest first.

    - **longitude** / **latitude**: Search center
    - **maxDistance**: Radius in meters
    - **features**: Matches if any requested feature appears in the business's features
    """
    query = parse_query(NearbyQuery, {
        "longitude": longitude,
        "latitude": latitude,
        "maxDistance": maxDistance,
        "limit": limit,
        "category": category,
        "rating": rating,
        "priceRange": split_csv(priceRange),
        "openedStatus": openedStatus,
        "businessType": businessType,
        "features": split_csv(features),
    })

    try:
        response = await service.nearby(query, now=clock())
    except StorageError:
        raise HTTPException(status_code=500, detail="Error searching businesses")

    return envelope(response)


@router.get("/top-picks")
async def top_picks(
    longitude: Optional[float] = Query(None, description="Search center longitude"),
    latitude: Optional[float] = Query(None, description="Search center latitude"),
    maxDistance: Optional[float] = Query(None, description="Radius in meters, 1000 to 100000 (default 25000)"),
    limit: Optional[int] = Query(None, description="Maximum results, 1 to 30 (default 15)"),
    category: Optional[str] = Query(None, description="Industry, sub-industry or tag"),
    priceRange: Optional[List[str]] = Query(None, description="One or more of $, $$, $$$, $$$$"),
    service: DiscoveryService = Depends(get_discovery_service),
    clock: Clock = Depends(get_clock),
) -> Dict[str, Any]:
    """
    Highly rated, popular businesses ranked by top-pick score.

    Only businesses rated 4.0 or higher with at least 10 views are eligible.
    """
    query = parse_query(TopPicksQuery, {
        "longitude": longitude,
        "latitude": latitude,
        "maxDistance": maxDistance,
        "limit": limit,
        "category": category,
        "priceRange": split_csv(priceRange),
    })

    try:
        response = await service.top_picks(query, now=clock())
    except StorageError:
        raise HTTPException(status_code=500, detail="Error searching businesses")

    return envelope(response)


@router.get("/on-the-rise")
async def on_the_rise(
    longitude: Optional[float] = Query(None, description="Search center longitude"),
    latitude: Optional[float] = Query(None, description="Search center latitude"),
    maxDistance: Optional[float] = Query(None, description="Radius in meters, 1000 to 100000 (default 25000)"),
    limit: Optional[int] = Query(None, description="Maximum results, 1 to 30 (default 15)"),
    category: Optional[str] = Query(None, description="Industry, sub-industry or tag"),
    priceRange: Optional[List[str]] = Query(None, description="One or more of $, $$, $$$, $$$$"),
    daysBack: Optional[int] = Query(None, description="Lookback window in days, 1 to 365 (default 30)"),
    service: DiscoveryService = Depends(get_discovery_service),
    clock: Clock = Depends(get_clock),
) -> Dict[str, Any]:
    """
    Businesses created or updated within the lookback window, ranked by rise score.
    """
    query = parse_query(OnTheRiseQuery, {
        "longitude": longitude,
        "latitude": latitude,
        "maxDistance": maxDistance,
        "limit": limit,
        "category": category,
        "priceRange": split_csv(priceRange),
        "daysBack": daysBack,
    })

    try:
        response = await service.on_the_rise(query, now=clock())
    except StorageError:
        raise HTTPException(status_code=500, detail="Error searching businesses")

    return envelope(response)


@router.get("/businesses")
async def explore_businesses(
    longitude: Optional[float] = Query(None, description="Search center longitude"),
    latitude: Optional[float] = Query(None, description="Search center latitude"),
    maxDistance: Optional[float] = Query(None, description="Radius in meters, 1000 to 200000 (default 50000)"),
    limit: Optional[int] = Query(None, description="Results per page, 1 to 50 (default 20)"),
    page: Optional[int] = Query(None, description="Page number (default 1)"),
    sortBy: Optional[str] = Query(
        None,
        description="relevance, distance, rating, popularity, newest or alphabetical",
    ),
    search: Optional[str] = Query(None, description="Free-text search"),
    category: Optional[str] = Query(None, description="Industry, sub-industry or tag"),
    rating: Optional[float] = Query(None, description="Minimum average rating, 1 to 5"),
    priceRange: Optional[List[str]] = Query(None, description="One or more of $, $$, $$$, $$$$"),
    openedStatus: Optional[str] = Query(None, description="open, closed or any"),
    businessType: Optional[str] = Query(None, description="Business type"),
    features: Optional[List[str]] = Query(None, description="Any of these features"),
    service: DiscoveryService = Depends(get_discovery_service),
    clock: Clock = Depends(get_clock),
) -> Dict[str, Any]:
    """
    Search businesses with every filter, sort key and pagination.

    - **search**: Full-text search over name, description, industry and tags
    - **sortBy**: relevance uses text score when searching, otherwise rating then views
    - **page** / **limit**: Pagination
    """
    query = parse_query(ExploreQuery, {
        "longitude": longitude,
        "latitude": latitude,
        "maxDistance": maxDistance,
        "limit": limit,
        "page": page,
        "sortBy": sortBy,
        "search": search,
        "category": category,
        "rating": rating,
        "priceRange": split_csv(priceRange),
        "openedStatus": openedStatus,
        "businessType": businessType,
        "features": split_csv(features),
    })

    try:
        response = await service.explore(query, now=clock())
    except StorageError:
        raise HTTPException(status_code=500, detail="Error searching businesses")

    return envelope(response)
