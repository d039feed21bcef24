"""The four discovery operations: nearby, top picks, on the rise and explore."""

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional
from zoneinfo import ZoneInfo

from discovery.models.query import (
    ExploreQuery,
    NearbyQuery,
    OnTheRiseQuery,
    SortBy,
    TopPicksQuery,
)
from discovery.models.results import DiscoveryResponse, Pagination
from discovery.services.assembler import ResultAssembler
from discovery.services.filters import compose_filters, recency_clause
from discovery.services.scoring import is_new_business, rise_score, top_pick_gate, top_pick_score
from discovery.services.storage import (
    BusinessStore,
    FieldSort,
    GeoDistanceSort,
    RelevanceSort,
    SortSpec,
)

logger = logging.getLogger(__name__)

# Stored-field orders that approximate the computed scores
TOP_PICKS_PROXY_SORT: List[SortSpec] = [
    FieldSort("metrics.ratingAverage"),
    FieldSort("metrics.viewCount"),
    FieldSort("metrics.favoriteCount"),
]
ON_THE_RISE_PROXY_SORT: List[SortSpec] = [
    FieldSort("metrics.viewCount"),
    FieldSort("updatedAt"),
    FieldSort("createdAt"),
]
DEFAULT_SORT: List[SortSpec] = [
    FieldSort("metrics.ratingAverage"),
    FieldSort("metrics.viewCount"),
]


def _resolve_now(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def explore_sort(query: ExploreQuery, text_scored: bool) -> List[SortSpec]:
    """Store sort for an explore request."""
    sort_by = query.sortBy
    origin = query.origin

    if sort_by == SortBy.RATING:
        return [FieldSort("metrics.ratingAverage"), FieldSort("metrics.ratingCount")]
    if sort_by == SortBy.POPULARITY:
        return [FieldSort("metrics.viewCount"), FieldSort("metrics.favoriteCount")]
    if sort_by == SortBy.NEWEST:
        return [FieldSort("createdAt")]
    if sort_by == SortBy.ALPHABETICAL:
        return [FieldSort("businessName.keyword", descending=False)]
    if sort_by == SortBy.DISTANCE and origin is not None:
        return [GeoDistanceSort(origin)]

    # relevance, or distance without a search center
    if text_scored:
        return [RelevanceSort(), *DEFAULT_SORT]
    return list(DEFAULT_SORT)


class DiscoveryService:
    """Stateless entry point for discovery queries."""

    def __init__(
        self,
        store: BusinessStore,
        tz: Optional[ZoneInfo] = None,
        candidate_pool_size: int = 500,
    ):
        self.tz = tz
        self.assembler = ResultAssembler(store, tz=tz, candidate_pool_size=candidate_pool_size)

    async def nearby(self, query: NearbyQuery, now: Optional[datetime] = None) -> DiscoveryResponse:
        """Businesses within the radius, nearest first."""
        now = _resolve_now(now)
        origin = query.origin
        composed = compose_filters(query, now, self.tz)

        page = await self.assembler.fetch_sorted(
            composed,
            sort=[GeoDistanceSort(origin)],
            offset=0,
            limit=query.limit,
            now=now,
            origin=origin,
        )
        logger.info(
            f"nearby: {len(page.results)} businesses within {query.radius_km:g} km "
            f"of ({origin.latitude}, {origin.longitude})"
        )

        return DiscoveryResponse(
            businesses=page.results,
            searchCenter=origin,
            maxDistance=query.radius_km,
            totalFound=len(page.results),
            sortedBy=SortBy.DISTANCE.value,
            appliedFilters=query.applied_filters(),
        )

    async def top_picks(self, query: TopPicksQuery, now: Optional[datetime] = None) -> DiscoveryResponse:
        """Eligible businesses ranked by top-pick score."""
        now = _resolve_now(now)
        origin = query.origin
        composed = compose_filters(query, now, self.tz, extra=top_pick_gate())

        page = await self.assembler.fetch_ranked(
            composed,
            proxy_sort=TOP_PICKS_PROXY_SORT,
            scorer=lambda record: {"topPickScore": top_pick_score(record)},
            score_field="topPickScore",
            limit=query.limit,
            now=now,
            origin=origin,
        )
        logger.info(f"top-picks: {len(page.results)} businesses")

        return DiscoveryResponse(
            businesses=page.results,
            searchCenter=origin,
            maxDistance=query.radius_km if origin is not None else None,
            totalFound=page.total,
            sortedBy="topPicks",
            appliedFilters=query.applied_filters(),
        )

    async def on_the_rise(self, query: OnTheRiseQuery, now: Optional[datetime] = None) -> DiscoveryResponse:
        """Recently created or updated businesses ranked by rise score."""
        now = _resolve_now(now)
        origin = query.origin
        window_start = now - timedelta(days=query.daysBack)
        composed = compose_filters(query, now, self.tz, extra=[recency_clause(now, query.daysBack)])

        def score(record):
            return {
                "riseScore": rise_score(record, now),
                "isNewBusiness": is_new_business(record, window_start),
            }

        page = await self.assembler.fetch_ranked(
            composed,
            proxy_sort=ON_THE_RISE_PROXY_SORT,
            scorer=score,
            score_field="riseScore",
            limit=query.limit,
            now=now,
            origin=origin,
        )
        logger.info(f"on-the-rise: {len(page.results)} businesses active in the last {query.daysBack} days")

        return DiscoveryResponse(
            businesses=page.results,
            searchCenter=origin,
            maxDistance=query.radius_km if origin is not None else None,
            totalFound=page.total,
            sortedBy="onTheRise",
            appliedFilters=query.applied_filters(),
            daysBack=query.daysBack,
        )

    async def explore(self, query: ExploreQuery, now: Optional[datetime] = None) -> DiscoveryResponse:
        """Filtered, sorted, paginated search."""
        now = _resolve_now(now)
        origin = query.origin
        composed = compose_filters(query, now, self.tz)
        offset = (query.page - 1) * query.limit

        page = await self.assembler.fetch_sorted(
            composed,
            sort=explore_sort(query, composed.text_scored),
            offset=offset,
            limit=query.limit,
            now=now,
            origin=origin,
        )
        logger.info(
            f"explore: page {query.page} of {page.total} businesses sorted by {query.sortBy.value}"
        )

        return DiscoveryResponse(
            businesses=page.results,
            searchCenter=origin,
            maxDistance=query.radius_km if origin is not None else None,
            totalFound=page.total,
            pagination=Pagination.build(page.total, query.page, query.limit),
            sortedBy=query.sortBy.value,
            appliedFilters=query.applied_filters(),
        )
