"""Turns store hits into ranked, enriched, paginated results.

Two retrieval strategies:

* ``fetch_sorted``: the sort key is a stored field (or native geo distance or
  text relevance), so the store sorts and paginates.
* ``fetch_ranked``: the sort key is a computed score. The store returns a
  pre-filtered candidate pool ordered by proxy fields; candidates are scored,
  sorted by score in memory and truncated. The sort is stable, so equal
  scores keep the proxy order, which itself ends with the id tiebreaker.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
from zoneinfo import ZoneInfo

from discovery.models.business import BusinessRecord
from discovery.models.query import GeoOrigin
from discovery.models.results import RankedResult
from discovery.services.filters import ComposedQuery
from discovery.services.geo import distance_to
from discovery.services.hours import is_open_at
from discovery.services.storage import ID_TIEBREAKER, BusinessStore, SortSpec, StoreQuery

logger = logging.getLogger(__name__)

# Scorer returns the computed fields for one record; the sort field must be one of them
Scorer = Callable[[BusinessRecord], Dict[str, Any]]


@dataclass
class AssembledPage:
    results: List[RankedResult]
    total: int


class ResultAssembler:
    """Runs store queries and enriches the hits."""

    def __init__(
        self,
        store: BusinessStore,
        tz: Optional[ZoneInfo] = None,
        candidate_pool_size: int = 500,
    ):
        self.store = store
        self.tz = tz
        self.candidate_pool_size = candidate_pool_size

    def enrich(
        self,
        record: BusinessRecord,
        origin: Optional[GeoOrigin],
        now: datetime,
        computed: Optional[Dict[str, Any]] = None,
    ) -> RankedResult:
        """Attach distance, open-state and any computed scores to a record copy."""
        distance = None
        if origin is not None:
            raw_distance = distance_to(origin, record)
            if raw_distance is None:
                online_only = record.location is not None and record.location.isOnlineOnly
                if not online_only:
                    logger.warning(f"Business {record.id} has no usable coordinates; distance left empty")
            else:
                distance = round(raw_distance, 2)

        data = record.model_dump()
        data.update(
            distance=distance,
            distanceUnit="km" if distance is not None else None,
            isCurrentlyOpen=is_open_at(record.businessHours, now, self.tz),
        )
        data.update(computed or {})
        return RankedResult(**data)

    async def fetch_sorted(
        self,
        composed: ComposedQuery,
        sort: List[SortSpec],
        offset: int,
        limit: int,
        now: datetime,
        origin: Optional[GeoOrigin] = None,
    ) -> AssembledPage:
        """Store-sorted, store-paginated retrieval."""
        result = await self.store.search(
            StoreQuery(composed=composed, sort=[*sort, ID_TIEBREAKER], offset=offset, size=limit)
        )
        results = [self.enrich(hit.record, origin, now) for hit in result.hits]
        return AssembledPage(results=results, total=result.total)

    async def fetch_ranked(
        self,
        composed: ComposedQuery,
        proxy_sort: List[SortSpec],
        scorer: Scorer,
        score_field: str,
        limit: int,
        now: datetime,
        origin: Optional[GeoOrigin] = None,
    ) -> AssembledPage:
        """
        Rank a candidate pool by a computed score.

        Args:
            composed: Filters selecting the candidates
            proxy_sort: Stored-field order used to pick the candidate pool
            scorer: Computes the score fields for a record
            score_field: Key in the scorer's output to sort by, descending
            limit: Number of results to keep
            now: Reference instant
            origin: Search center for distances

        Returns:
            The top ``limit`` results; total is the number returned
        """
        result = await self.store.search(
            StoreQuery(
                composed=composed,
                sort=[*proxy_sort, ID_TIEBREAKER],
                offset=0,
                size=self.candidate_pool_size,
            )
        )
        if result.total > self.candidate_pool_size:
            logger.info(
                f"Ranking {self.candidate_pool_size} of {result.total} candidates by {score_field}"
            )

        scored = [(hit.record, scorer(hit.record)) for hit in result.hits]
        scored.sort(key=lambda pair: pair[1][score_field], reverse=True)

        results = [
            self.enrich(record, origin, now, computed)
            for record, computed in scored[:limit]
        ]
        return AssembledPage(results=results, total=len(results))
