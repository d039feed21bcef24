"""Filter composition for discovery queries.

A validated query is turned into a ``ComposedQuery``: a list of typed filter
clauses plus an optional geo radius and full-text term. Every clause knows how
to render itself as Elasticsearch query DSL and how to evaluate itself against
a single record, so the same composition drives both store backends.

All clauses are ANDed. The only OR is inside ``CategoryClause``, which matches
against industry, sub-industry or any industry tag.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo

from discovery.models.business import BusinessRecord
from discovery.models.query import DiscoveryQuery, GeoOrigin, OpenedStatus
from discovery.services.geo import distance_to
from discovery.services.hours import is_open_at, local_day_and_time

# Fields searched by the full-text clause, with boosts
TEXT_SEARCH_FIELDS = [
    "businessName^3",
    "industry^2",
    "subIndustry^2",
    "industryTags^2",
    "description.short^1.5",
    "description.full",
]

TOKEN_PATTERN = re.compile(r"\w+")


def _escape_wildcard(value: str) -> str:
    return re.sub(r"([\\*?])", r"\\\1", value)


def _contains_query(es_field: str, value: str) -> Dict[str, Any]:
    """Case-insensitive substring match on a keyword field."""
    return {
        "wildcard": {
            es_field: {
                "value": f"*{_escape_wildcard(value)}*",
                "case_insensitive": True,
            }
        }
    }


def _contains(haystack: Optional[str], needle: str) -> bool:
    return bool(haystack) and needle.lower() in haystack.lower()


def _resolve(record: BusinessRecord, path: str) -> Any:
    value: Any = record
    for part in path.split("."):
        value = getattr(value, part, None)
        if value is None:
            return None
    return value


class FilterClause:
    """A single conjunctive filter."""

    def to_query(self) -> Dict[str, Any]:
        raise NotImplementedError

    def matches(self, record: BusinessRecord) -> bool:
        raise NotImplementedError


@dataclass(frozen=True)
class CategoryClause(FilterClause):
    term: str

    def to_query(self) -> Dict[str, Any]:
        return {
            "bool": {
                "should": [
                    _contains_query("industry.keyword", self.term),
                    _contains_query("subIndustry.keyword", self.term),
                    _contains_query("industryTags.keyword", self.term),
                ],
                "minimum_should_match": 1,
            }
        }

    def matches(self, record: BusinessRecord) -> bool:
        return (
            _contains(record.industry, self.term)
            or _contains(record.subIndustry, self.term)
            or any(_contains(tag, self.term) for tag in record.industryTags)
        )


@dataclass(frozen=True)
class MinimumClause(FilterClause):
    """Numeric floor on a stored field, e.g. a minimum rating."""

    path: str
    minimum: float

    def to_query(self) -> Dict[str, Any]:
        return {"range": {self.path: {"gte": self.minimum}}}

    def matches(self, record: BusinessRecord) -> bool:
        value = _resolve(record, self.path)
        return value is not None and value >= self.minimum


@dataclass(frozen=True)
class PriceRangeClause(FilterClause):
    tiers: Tuple[str, ...]

    def to_query(self) -> Dict[str, Any]:
        if len(self.tiers) == 1:
            return {"term": {"priceRange": self.tiers[0]}}
        return {"terms": {"priceRange": list(self.tiers)}}

    def matches(self, record: BusinessRecord) -> bool:
        return record.priceRange in self.tiers


@dataclass(frozen=True)
class BusinessTypeClause(FilterClause):
    business_type: str

    def to_query(self) -> Dict[str, Any]:
        return {"term": {"businessType": self.business_type}}

    def matches(self, record: BusinessRecord) -> bool:
        return record.businessType == self.business_type


@dataclass(frozen=True)
class FeaturesClause(FilterClause):
    """Matches when any requested feature is a substring of any stored feature."""

    features: Tuple[str, ...]

    def to_query(self) -> Dict[str, Any]:
        return {
            "bool": {
                "should": [_contains_query("features.keyword", feature) for feature in self.features],
                "minimum_should_match": 1,
            }
        }

    def matches(self, record: BusinessRecord) -> bool:
        return any(
            _contains(stored, wanted)
            for wanted in self.features
            for stored in record.features
        )


@dataclass(frozen=True)
class OpenNowClause(FilterClause):
    """Today's schedule entry covers the reference time (or, negated, does not)."""

    at: datetime
    tz: Optional[ZoneInfo] = None
    negate: bool = False

    def to_query(self) -> Dict[str, Any]:
        day, current_time = local_day_and_time(self.at, self.tz)
        open_now = {
            "nested": {
                "path": "businessHours",
                "query": {
                    "bool": {
                        "filter": [
                            {"term": {"businessHours.day": day}},
                            {"range": {"businessHours.open": {"lte": current_time}}},
                            {"range": {"businessHours.close": {"gte": current_time}}},
                        ],
                        # entries without the flag count as open
                        "must_not": [{"term": {"businessHours.isClosed": True}}],
                    }
                },
            }
        }
        if self.negate:
            return {"bool": {"must_not": [open_now]}}
        return open_now

    def matches(self, record: BusinessRecord) -> bool:
        return is_open_at(record.businessHours, self.at, self.tz) != self.negate


@dataclass(frozen=True)
class RecencyClause(FilterClause):
    """Created or updated on or after a cutoff."""

    since: datetime

    def to_query(self) -> Dict[str, Any]:
        cutoff = self.since.isoformat()
        return {
            "bool": {
                "should": [
                    {"range": {"createdAt": {"gte": cutoff}}},
                    {"range": {"updatedAt": {"gte": cutoff}}},
                ],
                "minimum_should_match": 1,
            }
        }

    def matches(self, record: BusinessRecord) -> bool:
        return any(
            stamp is not None and stamp >= self.since
            for stamp in (record.createdAt, record.updatedAt)
        )


@dataclass(frozen=True)
class GeoRadiusClause(FilterClause):
    """Within a radius of the origin; online-only businesses never match."""

    origin: GeoOrigin
    radius_km: float

    def to_query(self) -> Dict[str, Any]:
        return {
            "geo_distance": {
                "distance": f"{self.radius_km * 1000:g}m",
                "location.coordinates": {
                    "lat": self.origin.latitude,
                    "lon": self.origin.longitude,
                },
            }
        }

    def online_only_exclusion(self) -> Dict[str, Any]:
        return {"term": {"location.isOnlineOnly": True}}

    def matches(self, record: BusinessRecord) -> bool:
        if record.location is not None and record.location.isOnlineOnly:
            return False
        distance = distance_to(self.origin, record)
        return distance is not None and distance <= self.radius_km


@dataclass(frozen=True)
class TextSearchClause(FilterClause):
    """Full-text term, scored by the store's relevance model."""

    term: str

    def to_query(self) -> Dict[str, Any]:
        return {
            "multi_match": {
                "query": self.term,
                "fields": TEXT_SEARCH_FIELDS,
                "fuzziness": "AUTO",
            }
        }

    def relevance(self, record: BusinessRecord) -> float:
        """Boost-weighted count of query tokens found in the searchable fields."""
        tokens = [token.lower() for token in TOKEN_PATTERN.findall(self.term)]
        if not tokens:
            return 0.0

        score = 0.0
        for spec in TEXT_SEARCH_FIELDS:
            path, _, boost = spec.partition("^")
            value = _resolve(record, path)
            if value is None:
                continue
            text = " ".join(value) if isinstance(value, list) else str(value)
            words = {word.lower() for word in TOKEN_PATTERN.findall(text)}
            score += sum(1 for token in tokens if token in words) * float(boost or 1)
        return score

    def matches(self, record: BusinessRecord) -> bool:
        return self.relevance(record) > 0


@dataclass
class ComposedQuery:
    """Everything the store needs to select candidates."""

    filters: List[FilterClause] = field(default_factory=list)
    geo: Optional[GeoRadiusClause] = None
    text: Optional[TextSearchClause] = None

    @property
    def text_scored(self) -> bool:
        return self.text is not None

    def matches(self, record: BusinessRecord) -> bool:
        clauses: List[FilterClause] = list(self.filters)
        if self.geo is not None:
            clauses.append(self.geo)
        if self.text is not None:
            clauses.append(self.text)
        return all(clause.matches(record) for clause in clauses)


def compose_filters(
    query: DiscoveryQuery,
    now: datetime,
    tz: Optional[ZoneInfo] = None,
    extra: Sequence[FilterClause] = (),
) -> ComposedQuery:
    """
    Translate a validated query into filter clauses.

    Args:
        query: Any discovery query model; filters it does not carry are skipped
        now: Reference instant for open-state filtering
        tz: Reporting timezone for open-state filtering
        extra: Operation-specific clauses (quality gate, recency window)

    Returns:
        The composed query
    """
    clauses: List[FilterClause] = []

    if query.category:
        clauses.append(CategoryClause(query.category))

    rating = getattr(query, "rating", None)
    if rating is not None:
        clauses.append(MinimumClause("metrics.ratingAverage", rating))

    if query.priceRange:
        clauses.append(PriceRangeClause(tuple(tier.value for tier in query.priceRange)))

    business_type = getattr(query, "businessType", None)
    if business_type is not None:
        clauses.append(BusinessTypeClause(business_type.value))

    features = getattr(query, "features", None)
    if features:
        clauses.append(FeaturesClause(tuple(features)))

    opened_status = getattr(query, "openedStatus", OpenedStatus.ANY)
    if opened_status == OpenedStatus.OPEN:
        clauses.append(OpenNowClause(now, tz))
    elif opened_status == OpenedStatus.CLOSED:
        clauses.append(OpenNowClause(now, tz, negate=True))

    clauses.extend(extra)

    origin = query.origin
    geo = GeoRadiusClause(origin, query.radius_km) if origin is not None else None

    search = getattr(query, "search", None)
    text = TextSearchClause(search) if search else None

    return ComposedQuery(filters=clauses, geo=geo, text=text)


def recency_clause(now: datetime, days_back: int) -> RecencyClause:
    return RecencyClause(now - timedelta(days=days_back))


def to_es_query(composed: ComposedQuery) -> Dict[str, Any]:
    """Render a composed query as an Elasticsearch bool query."""
    filter_clauses = [clause.to_query() for clause in composed.filters]
    must_clauses = []
    must_not_clauses = []

    if composed.geo is not None:
        filter_clauses.append(composed.geo.to_query())
        must_not_clauses.append(composed.geo.online_only_exclusion())

    if composed.text is not None:
        must_clauses.append(composed.text.to_query())

    if not (filter_clauses or must_clauses or must_not_clauses):
        return {"match_all": {}}

    query: Dict[str, Any] = {}
    if must_clauses:
        query["must"] = must_clauses
    if filter_clauses:
        query["filter"] = filter_clauses
    if must_not_clauses:
        query["must_not"] = must_not_clauses
    return {"bool": query}
