from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from census_geojson.common.errors import DecodeError, TransportError
from census_geojson.common.http import HttpRequestError
from census_geojson.common.models import RequestConfig
from census_geojson.fetch.geo_fetch import extract_features, fetch_geojson
from census_geojson.fetch.stats_fetch import fetch_stats

FIXTURES = Path(__file__).resolve().parent.parent / "fixtures"

CONFIG = RequestConfig(
    vintage=2019,
    source_path=("pep", "charagegroups"),
    values=("B01001_001E",),
    predicates=(("AGEGROUP", "29"),),
    geo_hierarchy=(("state", "01"), ("county", "*")),
    stats_key="k3y",
)


class FakeHttpClient:
    def __init__(self, payload=None, error: Exception | None = None):
        self.payload = payload
        self.error = error
        self.calls: list[tuple[str, dict]] = []

    def get_json(self, url: str, **kwargs):
        self.calls.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return self.payload

    def close(self):
        return None


def _load(name: str):
    return json.loads((FIXTURES / name).read_text(encoding="utf-8"))


@pytest.mark.integration
def test_fetch_stats_decodes_rows_as_one_unit():
    client = FakeHttpClient(_load("stats_county_2019.json"))

    result = asyncio.run(fetch_stats(CONFIG, client, base_url="https://stats.example.test/data"))

    assert result.ok
    records = result.unwrap()
    assert [r["county"] for r in records] == ["001", "003", "005"]
    assert records[0] == {"B01001_001E": 55869, "AGEGROUP": 29, "state": "01", "county": "001"}
    url, kwargs = client.calls[0]
    assert url.startswith("https://stats.example.test/data/2019/pep/charagegroups?get=B01001_001E")
    assert kwargs == {"source_type": "stats"}


@pytest.mark.integration
def test_fetch_stats_returns_transport_error_as_value():
    client = FakeHttpClient(error=HttpRequestError("HTTP status: 404"))

    result = asyncio.run(fetch_stats(CONFIG, client))

    assert not result.ok
    assert isinstance(result.error, TransportError)
    with pytest.raises(HttpRequestError):
        result.unwrap()


@pytest.mark.integration
def test_fetch_stats_returns_decode_error_as_value():
    client = FakeHttpClient({"error": "unexpected object"})
    result = asyncio.run(fetch_stats(CONFIG, client))
    assert isinstance(result.error, DecodeError)

    ragged = FakeHttpClient([["B01001_001E", "AGEGROUP", "state", "county"], ["1", "29", "01"]])
    assert isinstance(asyncio.run(fetch_stats(CONFIG, ragged)).error, DecodeError)


@pytest.mark.integration
def test_fetch_geojson_passes_features_through():
    client = FakeHttpClient(_load("geo_county_2019.json"))

    result = asyncio.run(fetch_geojson(CONFIG, client, base_url="https://geo.example.test/GeoJSON"))

    features = result.unwrap()
    assert len(features) == 4
    assert features[0]["properties"]["NAME"] == "Autauga"
    assert features[0]["geometry"] == {"type": "Point", "coordinates": [-86.64, 32.53]}
    assert client.calls[0][0] == "https://geo.example.test/GeoJSON/500k/2019/01/county.json"


@pytest.mark.integration
def test_fetch_geojson_returns_errors_as_values():
    failing = FakeHttpClient(error=HttpRequestError("HTTP status: 404"))
    assert isinstance(asyncio.run(fetch_geojson(CONFIG, failing)).error, TransportError)

    malformed = FakeHttpClient({"type": "FeatureCollection"})
    assert isinstance(asyncio.run(fetch_geojson(CONFIG, malformed)).error, DecodeError)


def test_extract_features_requires_properties():
    with pytest.raises(DecodeError, match=r"features\[1\]"):
        extract_features({"features": [{"properties": {}}, {"geometry": None}]})
    with pytest.raises(DecodeError):
        extract_features([])
