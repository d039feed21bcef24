"""Tests for filter composition and DSL translation."""

from datetime import timedelta

import pytest

from discovery.models.query import ExploreQuery, GeoOrigin, NearbyQuery, TopPicksQuery
from discovery.services.filters import (
    CategoryClause,
    ComposedQuery,
    FeaturesClause,
    GeoRadiusClause,
    MinimumClause,
    OpenNowClause,
    PriceRangeClause,
    RecencyClause,
    TextSearchClause,
    compose_filters,
    recency_clause,
    to_es_query,
)

ORIGIN = GeoOrigin(latitude=30.2672, longitude=-97.7431)


class TestClauseMatching:
    """In-memory evaluation of individual clauses."""

    def test_category_matches_industry_sub_industry_or_tag(self, make_business) -> None:
        business = make_business(industry="Food & Beverage", subIndustry="Cafe", industryTags=["Espresso"])

        assert CategoryClause("food").matches(business)
        assert CategoryClause("CAFE").matches(business)
        assert CategoryClause("espresso").matches(business)
        assert not CategoryClause("gym").matches(business)

    def test_price_range_any_of(self, make_business) -> None:
        clause = PriceRangeClause(("$", "$$"))

        assert clause.matches(make_business(priceRange="$"))
        assert clause.matches(make_business(priceRange="$$"))
        assert not clause.matches(make_business(priceRange="$$$"))
        assert not clause.matches(make_business(priceRange=None))

    def test_features_substring_case_insensitive(self, make_business) -> None:
        business = make_business(features=["Free WiFi", "Parking"])

        assert FeaturesClause(("wifi",)).matches(business)
        assert FeaturesClause(("pool", "parking")).matches(business)
        assert not FeaturesClause(("pool",)).matches(business)

    def test_minimum_rating(self, make_business) -> None:
        clause = MinimumClause("metrics.ratingAverage", 4.0)

        assert clause.matches(make_business(metrics={"ratingAverage": 4.0}))
        assert not clause.matches(make_business(metrics={"ratingAverage": 3.9}))

    def test_geo_radius_excludes_online_only(self, make_business) -> None:
        clause = GeoRadiusClause(ORIGIN, 10)
        online = make_business(location={"isOnlineOnly": True})

        assert clause.matches(make_business())
        assert not clause.matches(online)
        assert not clause.matches(make_business(location=None))

    def test_open_now_and_negation(self, make_business, now) -> None:
        business = make_business()
        closed_monday = make_business(businessHours=[{"day": "Monday", "isClosed": True}])

        assert OpenNowClause(now).matches(business)
        assert not OpenNowClause(now, negate=True).matches(business)
        assert OpenNowClause(now, negate=True).matches(closed_monday)

    def test_recency_created_or_updated(self, make_business, now) -> None:
        clause = recency_clause(now, 30)

        assert clause.matches(make_business(createdAt=now - timedelta(days=2)))
        assert clause.matches(make_business(updatedAt=now - timedelta(days=2)))
        assert not clause.matches(
            make_business(createdAt=now - timedelta(days=40), updatedAt=now - timedelta(days=40))
        )

    def test_text_search_relevance(self, make_business) -> None:
        business = make_business(businessName="Golden Fork Cafe", industryTags=["brunch"])

        assert TextSearchClause("golden").relevance(business) == pytest.approx(3.0)
        assert TextSearchClause("golden brunch").relevance(business) == pytest.approx(5.0)
        assert not TextSearchClause("sushi").matches(business)


class TestDslTranslation:
    """Elasticsearch query DSL produced by each clause."""

    def test_empty_composition_is_match_all(self) -> None:
        assert to_es_query(ComposedQuery()) == {"match_all": {}}

    def test_category_wildcards(self) -> None:
        query = CategoryClause("food").to_query()
        should = query["bool"]["should"]

        assert query["bool"]["minimum_should_match"] == 1
        assert [next(iter(clause["wildcard"])) for clause in should] == [
            "industry.keyword",
            "subIndustry.keyword",
            "industryTags.keyword",
        ]
        assert should[0]["wildcard"]["industry.keyword"] == {"value": "*food*", "case_insensitive": True}

    def test_wildcard_characters_are_escaped(self) -> None:
        query = FeaturesClause(("50*off?",)).to_query()
        value = query["bool"]["should"][0]["wildcard"]["features.keyword"]["value"]

        assert value == "*50\\*off\\?*"

    def test_price_range_term_or_terms(self) -> None:
        assert PriceRangeClause(("$",)).to_query() == {"term": {"priceRange": "$"}}
        assert PriceRangeClause(("$", "$$")).to_query() == {"terms": {"priceRange": ["$", "$$"]}}

    def test_minimum_range(self) -> None:
        assert MinimumClause("metrics.viewCount", 10).to_query() == {
            "range": {"metrics.viewCount": {"gte": 10}}
        }

    def test_open_now_nested_query(self, now) -> None:
        query = OpenNowClause(now).to_query()
        filters = query["nested"]["query"]["bool"]["filter"]

        assert query["nested"]["path"] == "businessHours"
        assert {"term": {"businessHours.day": "Monday"}} in filters
        assert {"range": {"businessHours.open": {"lte": "12:00"}}} in filters
        assert {"range": {"businessHours.close": {"gte": "12:00"}}} in filters
        assert query["nested"]["query"]["bool"]["must_not"] == [{"term": {"businessHours.isClosed": True}}]

    def test_entry_without_closed_flag_counts_as_open(self, make_business, now) -> None:
        business = make_business(businessHours=[{"day": "Monday", "open": "09:00", "close": "17:00"}])
        bool_query = OpenNowClause(now).to_query()["nested"]["query"]["bool"]

        assert OpenNowClause(now).matches(business)
        assert {"term": {"businessHours.isClosed": False}} not in bool_query["filter"]

    def test_closed_is_negated_open(self, now) -> None:
        query = OpenNowClause(now, negate=True).to_query()

        assert query == {"bool": {"must_not": [OpenNowClause(now).to_query()]}}

    def test_recency_should(self, now) -> None:
        query = RecencyClause(now - timedelta(days=30)).to_query()
        cutoff = (now - timedelta(days=30)).isoformat()

        assert query["bool"]["should"] == [
            {"range": {"createdAt": {"gte": cutoff}}},
            {"range": {"updatedAt": {"gte": cutoff}}},
        ]

    def test_geo_distance_in_meters(self) -> None:
        query = GeoRadiusClause(ORIGIN, 10).to_query()

        assert query == {
            "geo_distance": {
                "distance": "10000m",
                "location.coordinates": {"lat": 30.2672, "lon": -97.7431},
            }
        }

    def test_text_search_multi_match(self) -> None:
        query = TextSearchClause("pizza").to_query()

        assert query["multi_match"]["query"] == "pizza"
        assert query["multi_match"]["fuzziness"] == "AUTO"
        assert "businessName^3" in query["multi_match"]["fields"]


class TestComposeFilters:
    """Tests for compose_filters."""

    def test_nearby_composition(self, now) -> None:
        query = NearbyQuery(
            latitude=30.2672,
            longitude=-97.7431,
            maxDistance=5000,
            category="food",
            rating=4,
            priceRange=["$", "$$"],
            openedStatus="open",
            businessType="Small business",
            features=["wifi"],
        )

        composed = compose_filters(query, now)
        es_query = to_es_query(composed)["bool"]

        assert composed.geo == GeoRadiusClause(ORIGIN, 5.0)
        assert composed.text is None
        assert len(es_query["filter"]) == 7
        assert es_query["must_not"] == [{"term": {"location.isOnlineOnly": True}}]
        assert "must" not in es_query

    def test_no_origin_means_no_geo_filter(self, now) -> None:
        composed = compose_filters(TopPicksQuery(), now)

        assert composed.geo is None
        assert to_es_query(composed) == {"match_all": {}}

    def test_any_opened_status_adds_nothing(self, now) -> None:
        composed = compose_filters(ExploreQuery(openedStatus="any"), now)
        assert composed.filters == []

    def test_search_goes_to_must(self, now) -> None:
        composed = compose_filters(ExploreQuery(search="coffee"), now)
        es_query = to_es_query(composed)

        assert composed.text_scored
        assert es_query["bool"]["must"][0]["multi_match"]["query"] == "coffee"

    def test_extra_clauses_are_appended(self, now) -> None:
        composed = compose_filters(TopPicksQuery(category="cafe"), now, extra=[recency_clause(now, 7)])

        assert isinstance(composed.filters[0], CategoryClause)
        assert isinstance(composed.filters[-1], RecencyClause)
