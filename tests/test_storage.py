"""Tests for the business stores."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from discovery.exceptions import StorageError
from discovery.models.query import ExploreQuery, GeoOrigin
from discovery.services.filters import ComposedQuery, MinimumClause
from discovery.services.orchestrator import DiscoveryService
from discovery.services.storage import (
    ID_TIEBREAKER,
    ElasticsearchBusinessStore,
    FieldSort,
    GeoDistanceSort,
    InMemoryBusinessStore,
    RelevanceSort,
    StoreQuery,
    parse_record,
)

ORIGIN = GeoOrigin(latitude=30.2672, longitude=-97.7431)


def es_response(hits, total=None):
    return {
        "hits": {
            "total": {"value": len(hits) if total is None else total, "relation": "eq"},
            "hits": hits,
        }
    }


@pytest.fixture
def es_client():
    client = MagicMock()
    client.search = AsyncMock(return_value=es_response([]))
    client.info = AsyncMock(return_value={"version": {"number": "8.12.0"}})
    return client


class TestSortSpecs:
    """Sort specs rendered for Elasticsearch."""

    def test_field_sort_missing_last(self) -> None:
        assert FieldSort("metrics.ratingAverage").to_es() == {
            "metrics.ratingAverage": {"order": "desc", "missing": "_last"}
        }
        assert ID_TIEBREAKER.to_es() == {"id": {"order": "asc", "missing": "_last"}}

    def test_geo_distance_sort(self) -> None:
        sort = GeoDistanceSort(ORIGIN).to_es()["_geo_distance"]

        assert sort["location.coordinates"] == {"lat": 30.2672, "lon": -97.7431}
        assert sort["order"] == "asc"
        assert sort["unit"] == "km"

    def test_relevance_sort(self) -> None:
        assert RelevanceSort().to_es() == "_score"


class TestParseRecord:
    """Tests for parse_record."""

    def test_falls_back_to_document_id(self) -> None:
        record = parse_record({"businessName": "No Id"}, "doc-7")
        assert record.id == "doc-7"

    def test_skips_document_without_any_id(self) -> None:
        assert parse_record({"businessName": "Nobody"}) is None

    def test_unparseable_timestamp_is_dropped(self) -> None:
        record = parse_record({"id": "legacy", "createdAt": "not a date"})

        assert record.id == "legacy"
        assert record.createdAt is None

    def test_malformed_leaf_fields_degrade(self) -> None:
        record = parse_record({
            "id": "legacy",
            "businessName": 1999,
            "description": "Family run since 1999",
            "location": {"postalCode": 78701, "isOnlineOnly": "sometimes",
                         "coordinates": {"type": "Point", "coordinates": "30.2,-97.7"}},
            "businessHours": [{"day": "Monday", "open": 900, "close": 1700, "isClosed": None}],
            "metrics": {"viewCount": "n/a", "favoriteCount": "12", "ratingAverage": None},
            "industryTags": {"coffee": True},
            "completionPercentage": "most",
        })

        assert record.businessName == "1999"
        assert record.description.short == "Family run since 1999"
        assert record.location.postalCode == "78701"
        assert record.location.isOnlineOnly is False
        assert record.lat_lon() is None
        assert record.businessHours[0].open is None
        assert record.businessHours[0].isClosed is False
        assert record.metrics.viewCount == 0
        assert record.metrics.favoriteCount == 12
        assert record.metrics.ratingAverage == 0
        assert record.industryTags == []
        assert record.completionPercentage == 0

    def test_lat_lon_object_is_accepted(self) -> None:
        record = parse_record({"id": "latlon", "location": {"coordinates": {"lat": 30.2672, "lon": -97.7431}}})
        assert record.lat_lon() == (30.2672, -97.7431)

    def test_lenient_with_nulls(self) -> None:
        record = parse_record({"id": "sparse", "metrics": None, "features": None, "businessHours": "n/a"})

        assert record.metrics.viewCount == 0
        assert record.features == []
        assert record.businessHours == []


class TestElasticsearchBusinessStore:
    """Tests for ElasticsearchBusinessStore with a mocked client."""

    def test_build_search(self, es_client) -> None:
        store = ElasticsearchBusinessStore(es_client, "businesses")
        query = StoreQuery(
            composed=ComposedQuery(filters=[MinimumClause("metrics.viewCount", 10)]),
            sort=[FieldSort("metrics.viewCount"), ID_TIEBREAKER],
            offset=40,
            size=20,
        )

        kwargs = store.build_search(query)

        assert kwargs["index"] == "businesses"
        assert kwargs["query"] == {"bool": {"filter": [{"range": {"metrics.viewCount": {"gte": 10}}}]}}
        assert kwargs["sort"][-1] == {"id": {"order": "asc", "missing": "_last"}}
        assert kwargs["from_"] == 40
        assert kwargs["size"] == 20
        assert kwargs["track_total_hits"] is True

    def test_window_is_clipped_to_result_window(self, es_client) -> None:
        store = ElasticsearchBusinessStore(es_client, "businesses")

        straddling = store.build_search(StoreQuery(composed=ComposedQuery(), offset=9990, size=30))
        beyond = store.build_search(StoreQuery(composed=ComposedQuery(), offset=14950, size=50))

        assert (straddling["from_"], straddling["size"]) == (9990, 10)
        assert (beyond["from_"], beyond["size"]) == (0, 0)
        assert beyond["track_total_hits"] is True

    async def test_deep_explore_page_is_empty_not_an_error(self, es_client) -> None:
        es_client.search.return_value = es_response([], total=12000)
        service = DiscoveryService(ElasticsearchBusinessStore(es_client, "businesses"))

        response = await service.explore(ExploreQuery(page=300, limit=50))

        assert response.businesses == []
        assert response.totalFound == 12000
        assert response.pagination.currentPage == 300
        assert response.pagination.hasNextPage is False
        assert es_client.search.call_args.kwargs["size"] == 0

    async def test_search_parses_hits(self, es_client) -> None:
        es_client.search.return_value = es_response(
            [
                {"_id": "a", "_score": 2.5, "_source": {"id": "a", "businessName": "Alpha"}},
                {"_id": "b", "_score": 1.0, "_source": {"businessName": "Bravo"}},
            ],
            total=57,
        )
        store = ElasticsearchBusinessStore(es_client, "businesses")

        result = await store.search(StoreQuery(composed=ComposedQuery()))

        assert [hit.record.id for hit in result.hits] == ["a", "b"]
        assert result.hits[0].relevance == 2.5
        assert result.total == 57

    async def test_malformed_fields_keep_the_hit(self, es_client) -> None:
        es_client.search.return_value = es_response(
            [
                {"_id": "ok", "_source": {"id": "ok"}},
                {"_id": "bad", "_source": {"id": "bad", "updatedAt": "yesterday-ish"}},
            ]
        )
        store = ElasticsearchBusinessStore(es_client, "businesses")

        result = await store.search(StoreQuery(composed=ComposedQuery()))

        assert [hit.record.id for hit in result.hits] == ["ok", "bad"]
        assert result.hits[1].record.updatedAt is None

    async def test_client_failure_raises_storage_error(self, es_client) -> None:
        es_client.search.side_effect = ConnectionError("cluster unavailable")
        store = ElasticsearchBusinessStore(es_client, "businesses")

        with pytest.raises(StorageError) as exc_info:
            await store.search(StoreQuery(composed=ComposedQuery()))

        assert isinstance(exc_info.value.cause, ConnectionError)

    async def test_ping(self, es_client) -> None:
        store = ElasticsearchBusinessStore(es_client, "businesses")
        assert await store.ping() == "connected"

        es_client.info.side_effect = ConnectionError("down")
        assert (await store.ping()).startswith("error:")


class TestInMemoryBusinessStore:
    """Tests for InMemoryBusinessStore."""

    async def test_filters_sorts_and_windows(self, memory_store) -> None:
        query = StoreQuery(
            composed=ComposedQuery(filters=[MinimumClause("metrics.ratingAverage", 4.0)]),
            sort=[FieldSort("metrics.viewCount"), ID_TIEBREAKER],
            offset=1,
            size=2,
        )

        result = await memory_store.search(query)

        # near-cafe (900 views) is skipped by the offset
        assert [hit.record.id for hit in result.hits] == ["mid-bakery", "online-shop"]
        assert result.total == 3

    async def test_missing_values_sort_last(self) -> None:
        store = InMemoryBusinessStore([
            {"id": "b", "createdAt": None},
            {"id": "a", "createdAt": "2024-01-01T00:00:00Z"},
            {"id": "c", "createdAt": "2024-05-01T00:00:00Z"},
        ])
        query = StoreQuery(composed=ComposedQuery(), sort=[FieldSort("createdAt"), ID_TIEBREAKER])

        result = await store.search(query)

        assert [hit.record.id for hit in result.hits] == ["c", "a", "b"]

    async def test_ties_broken_by_id(self) -> None:
        store = InMemoryBusinessStore([
            {"id": "z", "metrics": {"viewCount": 5}},
            {"id": "m", "metrics": {"viewCount": 5}},
            {"id": "a", "metrics": {"viewCount": 5}},
        ])
        query = StoreQuery(composed=ComposedQuery(), sort=[FieldSort("metrics.viewCount"), ID_TIEBREAKER])

        result = await store.search(query)

        assert [hit.record.id for hit in result.hits] == ["a", "m", "z"]

    async def test_alphabetical_ignores_case(self) -> None:
        store = InMemoryBusinessStore([
            {"id": "1", "businessName": "bravo"},
            {"id": "2", "businessName": "Alpha"},
            {"id": "3", "businessName": "Charlie"},
        ])
        query = StoreQuery(
            composed=ComposedQuery(),
            sort=[FieldSort("businessName.keyword", descending=False), ID_TIEBREAKER],
        )

        result = await store.search(query)

        assert [hit.record.businessName for hit in result.hits] == ["Alpha", "bravo", "Charlie"]

    def test_from_ndjson_skips_bad_lines(self, tmp_path) -> None:
        path = tmp_path / "businesses.ndjson"
        path.write_text(
            json.dumps({"id": "one"}) + "\n"
            + "{not json\n"
            + "\n"
            + json.dumps({"id": "two", "createdAt": "garbage"}) + "\n"
        )

        store = InMemoryBusinessStore.from_ndjson(path)

        assert [record.id for record in store.records] == ["one"]

    async def test_ping(self, memory_store) -> None:
        assert await memory_store.ping() == "in-memory (4 businesses)"
