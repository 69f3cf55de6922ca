import pytest

from listings.models import ALL_CITIES, AdFilters, AdRecord, parse_number
from listings.query import (
    apply_filters,
    build_cursor_query,
    build_offset_query,
    dedupe_by_external_id,
    next_cursor,
    parse_cursor,
    parse_limit,
    parse_offset,
    studio_clause,
)


class RecordingQuery:
    """Stands in for the PostgREST builder and remembers every call."""

    def __init__(self):
        self.calls = []

    def __getattr__(self, name):
        def _record(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self

        return _record


def _fetch(store, filters):
    return store.fetch(apply_filters(store.ads_query(), filters))


def test_filters_from_params_normalize_bad_input():
    filters = AdFilters.from_params(
        {"city": "  Все города ", "rooms": "three", "price_min": "abc", "price_max": "nan"}
    )
    assert filters.is_empty()


def test_filters_from_params_keep_valid_values():
    filters = AdFilters.from_params({"city": "Калининград", "rooms": "STUDIO", "price_min": "20000", "price_max": "45000.5"})
    assert filters.city == "Калининград"
    assert filters.rooms == "studio"
    assert filters.price_min == 20000
    assert filters.price_max == 45000.5


@pytest.mark.parametrize("raw,expected", [("20 000", 20000), ("1,5", 1.5), ("", None), ("inf", None), (None, None)])
def test_parse_number(raw, expected):
    assert parse_number(raw) == expected


def test_published_is_always_enforced(store):
    for params in ({}, {"city": "Калининград"}, {"rooms": "studio"}, {"price_min": "1", "price_max": "1000000"}):
        rows = _fetch(store, AdFilters.from_params(params))
        assert rows
        assert all(row["is_published"] is True for row in rows)


@pytest.mark.parametrize("sentinel", [ALL_CITIES, "all", "ALL", ""])
def test_city_sentinel_means_no_city_filter(store, sentinel):
    unfiltered = _fetch(store, AdFilters())
    assert _fetch(store, AdFilters.from_params({"city": sentinel})) == unfiltered
    assert {row["city"] for row in unfiltered} == {"Калининград", "Светлогорск", "Зеленоградск"}


def test_city_filter_is_exact(store):
    rows = _fetch(store, AdFilters.from_params({"city": "Светлогорск"}))
    assert [row["id"] for row in rows] == [4]


def test_studio_filter_matches_markers_case_insensitively(store):
    rows = _fetch(store, AdFilters.from_params({"rooms": "studio"}))
    assert sorted(row["id"] for row in rows) == [1, 3, 5]
    assert all(AdRecord.model_validate(row).is_studio() for row in rows)


def test_numeric_rooms_filter_is_exact(store):
    rows = _fetch(store, AdFilters.from_params({"rooms": "2"}))
    assert sorted(row["id"] for row in rows) == [2, 8, 9, 11]
    assert all(row["rooms"] == "2" for row in rows)


def test_price_bounds_are_inclusive(store):
    rows = _fetch(store, AdFilters.from_params({"price_min": "25000", "price_max": "30000"}))
    assert sorted(row["id"] for row in rows) == [3, 4, 5]


def test_price_filter_excludes_ads_without_price(store):
    rows = _fetch(store, AdFilters.from_params({"price_min": "0"}))
    assert 9 not in {row["id"] for row in rows}


def test_non_numeric_price_is_ignored(store):
    assert _fetch(store, AdFilters.from_params({"price_min": "дёшево"})) == _fetch(store, AdFilters())


def test_cursor_query_issues_data_service_calls():
    query = build_cursor_query(
        RecordingQuery(),
        AdFilters.from_params({"city": "Калининград", "rooms": "studio", "price_min": "20000"}),
        limit=2,
        cursor=40,
    )
    assert query.calls == [
        ("eq", ("is_published", True), {}),
        ("eq", ("city", "Калининград"), {}),
        ("or_", (studio_clause(),), {}),
        ("gte", ("price", 20000), {}),
        ("order", ("id",), {"desc": True}),
        ("limit", (2,), {}),
        ("lt", ("id", 40), {}),
    ]


def test_offset_query_issues_range():
    query = build_offset_query(RecordingQuery(), AdFilters.from_params({"rooms": "1"}), limit=50, offset=100)
    assert query.calls[-2:] == [
        ("order", ("created_at",), {"desc": True}),
        ("range", (100, 149), {}),
    ]
    assert ("eq", ("rooms", "1"), {}) in query.calls


def test_studio_clause():
    assert studio_clause() == "rooms.ilike.*studio*,rooms.ilike.*студ*"


def test_dedupe_keeps_first_occurrence():
    records = [
        {"id": 3, "external_id": "a"},
        {"id": 2, "external_id": "b"},
        {"id": 1, "external_id": "a"},
    ]
    assert [r["id"] for r in dedupe_by_external_id(records)] == [3, 2]


def test_dedupe_works_on_models(ad_rows):
    ads = [AdRecord.model_validate(row) for row in ad_rows]
    unique = dedupe_by_external_id(ads)
    assert len(unique) == len(ads) - 1
    assert [ad.id for ad in unique if ad.external_id == "zel_rent:301"] == [8]


def test_next_cursor():
    assert next_cursor([]) is None
    assert next_cursor([{"id": 9}, {"id": 4}]) == 4


@pytest.mark.parametrize("raw,expected", [(None, 20), ("", 20), ("0", 20), ("-5", 20), ("abc", 20), ("7", 7), ("500", 100)])
def test_parse_limit(raw, expected):
    assert parse_limit(raw, default=20, maximum=100) == expected


def test_parse_offset_and_cursor():
    assert parse_offset("-1") == 0
    assert parse_offset("x") == 0
    assert parse_offset("40") == 40
    assert parse_cursor("12345") == 12345
    assert parse_cursor("null") is None
    assert parse_cursor("") is None
    assert parse_cursor("0") == 0
    assert parse_cursor("-3") == -3
