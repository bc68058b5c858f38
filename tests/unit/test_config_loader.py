from pathlib import Path

import pytest
import yaml

from census_geojson.common.config_loader import (
    DEFAULT_SETTINGS,
    Settings,
    load_request_config,
    load_settings,
    request_config_from_mapping,
)
from census_geojson.common.errors import ConfigError, InvalidConfig
from census_geojson.common.models import RequestConfig


def test_load_settings_without_files_uses_built_in_defaults():
    settings = load_settings()
    assert settings == Settings.defaults()
    assert settings.stats_base_url == "https://api.census.gov/data"
    assert settings.rate_limits["reference"] == 1.0


def test_load_settings_with_repo_example_overlay():
    settings = load_settings(overlay_path=Path("config") / "settings.local.example.yml")
    assert settings.reference_map_url == "https://mirror.example.org/census-geojson/index.json"
    assert settings.retry.max_attempts == 3
    assert settings.retry.max_wait == 30.0
    assert settings.rate_limits == {"stats": 2.0, "geo": 5.0, "reference": 1.0}


def test_load_settings_reads_a_full_settings_file(tmp_path: Path):
    path = tmp_path / "settings.yml"
    path.write_text(yaml.safe_dump(DEFAULT_SETTINGS), encoding="utf-8")
    assert load_settings(path) == Settings.defaults()


def test_load_settings_applies_overlay_values(tmp_path: Path):
    overlay = tmp_path / "settings.local.yml"
    overlay.write_text(
        """endpoints:
  stats_base_url: "https://stats.example.test/data/"
http:
  retry:
    max_attempts: 2
""",
        encoding="utf-8",
    )

    settings = load_settings(overlay_path=overlay)

    assert settings.stats_base_url == "https://stats.example.test/data"
    assert settings.retry.max_attempts == 2
    assert settings.retry.max_wait == 30.0
    assert settings.geojson_base_url == Settings.defaults().geojson_base_url


def test_load_settings_ignores_empty_overlay_file(tmp_path: Path):
    overlay = tmp_path / "empty.yml"
    overlay.write_text("", encoding="utf-8")
    assert load_settings(overlay_path=overlay) == Settings.defaults()


def test_load_settings_rejects_non_mapping_overlay(tmp_path: Path):
    overlay = tmp_path / "bad.yml"
    overlay.write_text("- not\n- a\n- mapping\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_settings(overlay_path=overlay)


def test_load_settings_rejects_unknown_keys_unless_allowed(tmp_path: Path):
    overlay = tmp_path / "extra.yml"
    overlay.write_text("http:\n  proxy: socks5://localhost\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="Unknown keys in http"):
        load_settings(overlay_path=overlay)
    assert load_settings(overlay_path=overlay, allow_unknown=True) == Settings.defaults()


def test_request_config_from_camel_case_mapping():
    config = request_config_from_mapping(
        {
            "vintage": "2019",
            "sourcePath": ["acs", "acs5"],
            "values": ["B01001_001E"],
            "predicates": {"AGEGROUP": 29},
            "geoHierarchy": {
                "state": "01",
                "american indian area/alaska native area (reservation or statistical entity only)": ["0010", "0020"],
            },
            "statsKey": "abc",
        }
    )

    assert config.vintage == 2019
    assert config.source_path == ("acs", "acs5")
    assert config.predicates == (("AGEGROUP", "29"),)
    assert config.geo_hierarchy == (
        ("state", "01"),
        ("american-indian-area!alaska-native-area-_reservation-or-statistical-entity-only_", "0010,0020"),
    )
    assert config.stats_key == "abc"


def test_request_config_from_snake_case_pairs_and_passthrough():
    config = request_config_from_mapping(
        {
            "vintage": 2017,
            "source_path": "timeseries",
            "values": "POP",
            "geo_hierarchy": [["state", "*"]],
            "geo_resolution": "20m",
        }
    )
    assert config.source_path == ("timeseries",)
    assert config.values == ("POP",)
    assert config.geo_resolution == "20m"
    assert request_config_from_mapping(config) is config


def test_request_config_from_mapping_rejects_bad_input():
    with pytest.raises(InvalidConfig, match="Missing keys"):
        request_config_from_mapping({"vintage": 2019, "sourcePath": ["acs"]})
    with pytest.raises(InvalidConfig, match="Unknown keys"):
        request_config_from_mapping({"vintage": 2019, "sourcePath": ["acs"], "geoHierarchy": {"state": "*"}, "x": 1})
    with pytest.raises(InvalidConfig):
        request_config_from_mapping({"vintage": "latest", "sourcePath": ["acs"], "geoHierarchy": {"state": "*"}})
    with pytest.raises(InvalidConfig):
        request_config_from_mapping(["not", "a", "mapping"])


def test_load_request_config_from_repo_example():
    config = load_request_config(Path("config") / "requests" / "acs5_county_population.yml")
    assert isinstance(config, RequestConfig)
    assert config.geo_hierarchy == (("state", "01"), ("county", "*"))
    assert config.values == ("NAME", "B01001_001E")
