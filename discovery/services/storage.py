"""Read-only query capability over business records.

``ElasticsearchBusinessStore`` is the production backend: it relies on the
index's ``geo_point`` mapping for radius filtering and distance sorting and on
BM25 for text relevance. ``InMemoryBusinessStore`` evaluates the same composed
queries over a list of records, for local development and tests.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from elasticsearch import AsyncElasticsearch
from pydantic import ValidationError

from discovery.exceptions import StorageError
from discovery.models.business import BusinessRecord
from discovery.models.query import GeoOrigin
from discovery.services.filters import ComposedQuery, to_es_query
from discovery.services.geo import distance_to

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldSort:
    """Sort on a stored field; missing values always sort last."""

    path: str
    descending: bool = True

    def to_es(self) -> Dict[str, Any]:
        return {self.path: {"order": "desc" if self.descending else "asc", "missing": "_last"}}

    def value(self, hit: "StoreHit") -> Any:
        value: Any = hit.record
        for part in self.path.removesuffix(".keyword").split("."):
            value = getattr(value, part, None)
            if value is None:
                return None
        # keyword subfields are lowercase-normalized in the index
        if self.path.endswith(".keyword") and isinstance(value, str):
            return value.lower()
        return value


@dataclass(frozen=True)
class RelevanceSort:
    """Sort by full-text relevance, best first."""

    descending: bool = True

    def to_es(self) -> Any:
        return "_score"

    def value(self, hit: "StoreHit") -> Optional[float]:
        return hit.relevance


@dataclass(frozen=True)
class GeoDistanceSort:
    """Sort by distance from an origin, nearest first."""

    origin: GeoOrigin
    descending: bool = False

    def to_es(self) -> Dict[str, Any]:
        return {
            "_geo_distance": {
                "location.coordinates": {"lat": self.origin.latitude, "lon": self.origin.longitude},
                "order": "asc",
                "unit": "km",
                "distance_type": "arc",
            }
        }

    def value(self, hit: "StoreHit") -> Optional[float]:
        return distance_to(self.origin, hit.record)


SortSpec = Union[FieldSort, RelevanceSort, GeoDistanceSort]

# Final tiebreaker on every sort so pages are stable
ID_TIEBREAKER = FieldSort("id", descending=False)

# index.max_result_window default
MAX_RESULT_WINDOW = 10000


@dataclass
class StoreQuery:
    """A single read against the store."""

    composed: ComposedQuery
    sort: List[SortSpec] = field(default_factory=list)
    offset: int = 0
    size: int = 20


@dataclass
class StoreHit:
    record: BusinessRecord
    relevance: Optional[float] = None


@dataclass
class StoreResult:
    hits: List[StoreHit]
    total: int


def parse_record(source: Dict[str, Any], doc_id: Optional[str] = None) -> Optional[BusinessRecord]:
    """
    Build a BusinessRecord from a stored document.

    Returns None (and logs) when the document cannot be read at all.
    """
    source = dict(source)
    source["id"] = str(source.get("id") or doc_id or "")
    if not source["id"]:
        logger.warning("Skipping business document without an id")
        return None
    try:
        return BusinessRecord.model_validate(source)
    except ValidationError as e:
        logger.warning(f"Skipping malformed business document {source['id']}: {e.error_count()} errors")
        return None


class BusinessStore:
    """Interface of the storage collaborator."""

    async def search(self, query: StoreQuery) -> StoreResult:
        raise NotImplementedError

    async def ping(self) -> str:
        """Short status string for health checks."""
        raise NotImplementedError


class ElasticsearchBusinessStore(BusinessStore):
    """Business store backed by an Elasticsearch index."""

    def __init__(self, client: AsyncElasticsearch, index: str, max_result_window: int = MAX_RESULT_WINDOW):
        self.client = client
        self.index = index
        self.max_result_window = max_result_window

    def build_search(self, query: StoreQuery) -> Dict[str, Any]:
        """
        Keyword arguments for AsyncElasticsearch.search.

        The window is clipped to max_result_window; a window starting beyond it
        only counts matches.
        """
        offset = min(query.offset, self.max_result_window)
        size = max(0, min(query.size, self.max_result_window - offset))
        return {
            "index": self.index,
            "query": to_es_query(query.composed),
            "sort": [spec.to_es() for spec in query.sort],
            "from_": offset if size else 0,
            "size": size,
            "track_total_hits": True,
        }

    async def search(self, query: StoreQuery) -> StoreResult:
        """
        Execute a composed query.

        Raises:
            StorageError: if Elasticsearch rejects or fails the request
        """
        try:
            response = await self.client.search(**self.build_search(query))
        except Exception as e:
            logger.exception(f"Business search failed on index {self.index}")
            raise StorageError(f"Error searching businesses: {e}", cause=e) from e

        hits = []
        for hit in response["hits"]["hits"]:
            record = parse_record(hit.get("_source", {}), hit.get("_id"))
            if record is not None:
                hits.append(StoreHit(record=record, relevance=hit.get("_score")))

        total = response["hits"]["total"]["value"]
        return StoreResult(hits=hits, total=total)

    async def ping(self) -> str:
        try:
            await self.client.info()
            return "connected"
        except Exception as e:
            return f"error: {str(e)}"


class InMemoryBusinessStore(BusinessStore):
    """Business store over records held in memory."""

    def __init__(self, records: Iterable[Union[BusinessRecord, Dict[str, Any]]] = ()):
        self.records: List[BusinessRecord] = []
        for record in records:
            if isinstance(record, BusinessRecord):
                self.records.append(record)
                continue
            parsed = parse_record(record)
            if parsed is not None:
                self.records.append(parsed)

    @classmethod
    def from_ndjson(cls, path: Union[str, Path]) -> "InMemoryBusinessStore":
        """Load records from an NDJSON file, one business per line."""
        documents = []
        with open(path, "r") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    documents.append(json.loads(line))
                except json.JSONDecodeError:
                    logger.warning(f"Skipping unreadable line in {path}")
        logger.info(f"Loaded {len(documents)} businesses from {path}")
        return cls(documents)

    @staticmethod
    def _sort(hits: List[StoreHit], sort: List[SortSpec]) -> List[StoreHit]:
        # Apply keys from least to most significant; list.sort is stable
        ordered = list(hits)
        for spec in reversed(sort):
            present = [hit for hit in ordered if spec.value(hit) is not None]
            missing = [hit for hit in ordered if spec.value(hit) is None]
            present.sort(key=spec.value, reverse=spec.descending)
            ordered = present + missing
        return ordered

    async def search(self, query: StoreQuery) -> StoreResult:
        composed = query.composed
        hits = []
        for record in self.records:
            if not composed.matches(record):
                continue
            relevance = composed.text.relevance(record) if composed.text is not None else None
            hits.append(StoreHit(record=record, relevance=relevance))

        ordered = self._sort(hits, query.sort)
        window = ordered[query.offset:query.offset + query.size]
        return StoreResult(hits=window, total=len(hits))

    async def ping(self) -> str:
        return f"in-memory ({len(self.records)} businesses)"
