"""Dependency injection for the Business Discovery Engine."""

from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncGenerator, Callable, Optional
from zoneinfo import ZoneInfo

from elasticsearch import AsyncElasticsearch
from fastapi import Depends

from discovery.config import Settings, get_settings
from discovery.services.orchestrator import DiscoveryService
from discovery.services.storage import (
    BusinessStore,
    ElasticsearchBusinessStore,
    InMemoryBusinessStore,
)

# Global client instances
_es_client: Optional[AsyncElasticsearch] = None
_memory_store: Optional[InMemoryBusinessStore] = None

Clock = Callable[[], datetime]


async def init_es_client() -> AsyncElasticsearch:
    """Initialize the Elasticsearch async client."""
    global _es_client

    if _es_client is not None:
        return _es_client

    settings = get_settings()

    # Build connection kwargs
    kwargs = {}

    if settings.es_cloud_id:
        kwargs["cloud_id"] = settings.es_cloud_id
    elif settings.elasticsearch_url:
        kwargs["hosts"] = [settings.elasticsearch_url]
    else:
        kwargs["hosts"] = [settings.es_url]

    # Authentication
    if settings.es_api_key:
        kwargs["api_key"] = settings.es_api_key
    elif settings.es_username and settings.es_password:
        kwargs["basic_auth"] = (settings.es_username, settings.es_password)

    kwargs["verify_certs"] = settings.es_verify_certs
    kwargs["request_timeout"] = settings.es_request_timeout

    _es_client = AsyncElasticsearch(**kwargs)

    return _es_client


async def close_es_client() -> None:
    """Close the Elasticsearch client connection."""
    global _es_client

    if _es_client is not None:
        await _es_client.close()
        _es_client = None


async def get_es_client() -> AsyncGenerator[AsyncElasticsearch, None]:
    """Dependency to get the ES client."""
    global _es_client

    if _es_client is None:
        await init_es_client()

    yield _es_client


def get_app_settings() -> Settings:
    """Dependency to get application settings."""
    return get_settings()


def get_memory_store(settings: Settings) -> InMemoryBusinessStore:
    """Shared in-memory store, loaded once from the configured NDJSON file."""
    global _memory_store

    if _memory_store is None:
        if settings.memory_store_path and Path(settings.memory_store_path).exists():
            _memory_store = InMemoryBusinessStore.from_ndjson(settings.memory_store_path)
        else:
            _memory_store = InMemoryBusinessStore()

    return _memory_store


async def get_store(
    settings: Settings = Depends(get_app_settings),
) -> AsyncGenerator[BusinessStore, None]:
    """Dependency to get the configured business store."""
    if settings.store_backend == "memory":
        yield get_memory_store(settings)
        return

    async for es in get_es_client():
        yield ElasticsearchBusinessStore(es, settings.businesses_index)


def get_discovery_service(
    store: BusinessStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
) -> DiscoveryService:
    """Dependency to get a discovery service bound to the current store."""
    return DiscoveryService(
        store,
        tz=ZoneInfo(settings.reporting_timezone),
        candidate_pool_size=settings.candidate_pool_size,
    )


def get_clock() -> Clock:
    """Dependency providing the reference clock; tests override it."""
    return lambda: datetime.now(timezone.utc)
