import itertools

import pytest

from census_geojson.common.deep_merge import deep_merge_with
from census_geojson.common.errors import DecodeError
from census_geojson.pipeline.merge import (
    identifier_from_feature,
    identifier_from_record,
    is_fully_merged,
    key_features,
    key_stats_records,
    merge_geo_and_stats,
)

GEOMETRY = {"type": "Polygon", "coordinates": [[[0, 0], [1, 0], [1, 1], [0, 0]]]}


def test_merge_joins_matching_entries_and_drops_geo_only():
    stats = [{"01000": {"properties": {"B01001_001E": 4874747}}}]
    geo = [
        {"01000": {"properties": {"NAME": "Alabama"}, "geometry": GEOMETRY}},
        {"02000": {"properties": {"NAME": "Alaska"}, "geometry": GEOMETRY}},
    ]

    merged = merge_geo_and_stats(stats, geo, "B01001_001E", None, "NAME")

    assert merged == [{"properties": {"B01001_001E": 4874747, "NAME": "Alabama"}, "geometry": GEOMETRY}]


def test_merge_drops_stats_only_entries():
    stats = [{"01001": {"properties": {"POP": 1, "AGEGROUP": 29}}}]
    assert merge_geo_and_stats(stats, [], "POP", "AGEGROUP", "STATEFP") == []


def test_merge_accepts_predicate_indicator_when_value_is_null():
    stats = [{"01001": {"properties": {"POP": None, "AGEGROUP": 29}}}]
    geo = [{"01001": {"properties": {"STATEFP": "01"}}}]
    merged = merge_geo_and_stats(stats, geo, "POP", "AGEGROUP", "STATEFP")
    assert merged == [{"properties": {"POP": None, "AGEGROUP": 29, "STATEFP": "01"}}]


def test_merge_geo_scalars_win_on_conflict():
    stats = [{"01": {"properties": {"NAME": "Alabama", "POP": 5}}}]
    geo = [{"01": {"properties": {"NAME": "Alabama State", "STATEFP": "01"}}}]
    merged = merge_geo_and_stats(stats, geo, "POP", None, "STATEFP")
    assert merged[0]["properties"]["NAME"] == "Alabama State"


def test_merge_is_idempotent_under_the_filter():
    stats = [{"01001": {"properties": {"POP": 10, "AGEGROUP": 29}}}]
    geo = [{"01001": {"type": "Feature", "properties": {"STATEFP": "01"}, "geometry": GEOMETRY}}]
    merged = merge_geo_and_stats(stats, geo, "POP", "AGEGROUP", "STATEFP")

    assert all(is_fully_merged(feature, "POP", "AGEGROUP", "STATEFP") for feature in merged)
    again = merge_geo_and_stats([{str(i): f} for i, f in enumerate(merged)], [], "POP", "AGEGROUP", "STATEFP")
    assert again == merged


def test_deep_merge_is_order_independent_for_disjoint_keys():
    a = {"properties": {"POP": 1}}
    b = {"properties": {"NAME": "Autauga"}, "geometry": GEOMETRY}
    c = {"properties": {"STATEFP": "01"}, "type": "Feature"}

    expected = deep_merge_with(a, b, c)
    for order in itertools.permutations([a, b, c]):
        assert deep_merge_with(*order) == expected
    assert deep_merge_with(deep_merge_with(a, b), c) == deep_merge_with(a, deep_merge_with(b, c))


def test_deep_merge_does_not_mutate_inputs():
    a = {"properties": {"POP": 1}}
    b = {"properties": {"NAME": "Autauga"}}
    deep_merge_with(a, b)
    assert a == {"properties": {"POP": 1}}
    assert b == {"properties": {"NAME": "Autauga"}}


def test_deep_merge_scalar_replaces_mapping():
    assert deep_merge_with({"a": {"b": 1}}, {"a": 2}) == {"a": 2}
    assert deep_merge_with({"a": 2}, {"a": {"b": 1}}) == {"a": {"b": 1}}


def test_identifier_from_record_uses_trailing_geography_columns():
    record = {"B01001_001E": 55869, "AGEGROUP": 29, "state": "01", "county": "001"}
    assert identifier_from_record(record, 2, ["STATEFP", "COUNTYFP"]) == "01001"


def test_identifier_from_record_validates_column_count():
    record = {"B01001_001E": 55869, "state": "01", "county": "001"}
    with pytest.raises(DecodeError):
        identifier_from_record(record, 3, ["STATEFP", "COUNTYFP"])
    with pytest.raises(DecodeError):
        identifier_from_record(record, 0, ["STATEFP", "COUNTYFP"])


def test_identifier_from_feature_concatenates_id_properties():
    feature = {"properties": {"STATEFP": "01", "COUNTYFP": "001", "NAME": "Autauga"}}
    assert identifier_from_feature(feature, ["STATEFP", "COUNTYFP"]) == "01001"
    assert identifier_from_feature({"properties": {"STATEFP": "01"}}, ["STATEFP", "COUNTYFP"]) == "01"


def test_key_helpers_wrap_payloads():
    records = [{"POP": 3, "state": "01"}]
    assert key_stats_records(records, 1, ["STATEFP"]) == [{"01": {"properties": {"POP": 3, "state": "01"}}}]
    feature = {"properties": {"STATEFP": "01"}}
    assert key_features([feature], ["STATEFP"]) == [{"01": feature}]
