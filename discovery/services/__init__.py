"""Services for the Business Discovery Engine."""

from discovery.services.assembler import ResultAssembler
from discovery.services.filters import ComposedQuery, compose_filters, to_es_query
from discovery.services.geo import haversine_km
from discovery.services.hours import is_open_at
from discovery.services.orchestrator import DiscoveryService
from discovery.services.scoring import rise_score, top_pick_score
from discovery.services.storage import (
    BusinessStore,
    ElasticsearchBusinessStore,
    InMemoryBusinessStore,
)

__all__ = [
    "ResultAssembler",
    "ComposedQuery",
    "compose_filters",
    "to_es_query",
    "haversine_km",
    "is_open_at",
    "DiscoveryService",
    "rise_score",
    "top_pick_score",
    "BusinessStore",
    "ElasticsearchBusinessStore",
    "InMemoryBusinessStore",
]
