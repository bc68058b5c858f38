"""Join statistics records onto boundary features by a shared GEOID."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from census_geojson.common.deep_merge import deep_merge_with
from census_geojson.common.errors import DecodeError

Entry = Mapping[str, Mapping[str, Any]]


def identifier_from_record(record: Mapping[str, Any], vars_count: int, ids: list[str]) -> str:
    """GEOID of a statistics record: its trailing geography columns, concatenated.

    The statistics API appends the geography columns after the requested
    values and predicates, so everything past ``vars_count`` is identity.
    """
    id_columns = len(record) - vars_count
    if id_columns < 1 or (ids and id_columns > len(ids)):
        raise DecodeError(
            f"Statistics record has {len(record)} fields; expected {vars_count} variables "
            f"followed by 1..{len(ids) or '?'} geography columns"
        )
    return "".join(str(value) for value in list(record.values())[-id_columns:])


def identifier_from_feature(feature: Mapping[str, Any], ids: list[str]) -> str:
    properties = feature.get("properties") or {}
    return "".join("" if properties.get(name) is None else str(properties[name]) for name in ids)


def key_stats_records(records: Iterable[Mapping[str, Any]], vars_count: int, ids: list[str]) -> list[dict]:
    return [{identifier_from_record(record, vars_count, ids): {"properties": dict(record)}} for record in records]


def key_features(features: Iterable[Mapping[str, Any]], ids: list[str]) -> list[dict]:
    return [{identifier_from_feature(feature, ids): feature} for feature in features]


def is_fully_merged(
    feature: Mapping[str, Any],
    stats_key: str | None,
    predicate_key: str | None,
    geo_key: str | None,
) -> bool:
    """True when a merged feature carries fields from both the statistics and the boundary side."""
    properties = feature.get("properties") or {}

    def present(key: str | None) -> bool:
        return key is not None and properties.get(key) is not None

    return (present(stats_key) or present(predicate_key)) and present(geo_key)


def merge_geo_and_stats(
    stats_entries: Iterable[Entry],
    geo_entries: Iterable[Entry],
    stats_key: str | None,
    predicate_key: str | None,
    geo_key: str | None,
) -> list[dict[str, Any]]:
    """Deep-merge entries sharing an identifier and keep only the joined ones.

    Boundary files can be a superset of the statistics returned, so groups
    that only one side contributed to are dropped rather than padded.
    """
    grouped: dict[str, list[Mapping[str, Any]]] = {}
    for entries in (stats_entries, geo_entries):
        for entry in entries:
            for identifier, payload in entry.items():
                grouped.setdefault(identifier, []).append(payload)

    merged = (deep_merge_with(*payloads) for payloads in grouped.values())
    return [feature for feature in merged if is_fully_merged(feature, stats_key, predicate_key, geo_key)]
