"""Configuration loading and validation."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from census_geojson.common.constants import (
    DEFAULT_GEO_RESOLUTION,
    GEOJSON_BASE_URL,
    REFERENCE_MAP_URL,
    STATS_BASE_URL,
)
from census_geojson.common.deep_merge import deep_merge_with
from census_geojson.common.errors import ConfigError, InvalidConfig
from census_geojson.common.fs import read_yaml
from census_geojson.common.http import DEFAULT_RATE_LIMITS, HttpClient, RetryConfig, TimeoutConfig
from census_geojson.common.keys import strs_to_keys
from census_geojson.common.models import RequestConfig
from census_geojson.common.schema import canonical_request_mapping, validate_settings_config

DEFAULT_SETTINGS: dict[str, Any] = {
    "endpoints": {
        "stats_base_url": STATS_BASE_URL,
        "geojson_base_url": GEOJSON_BASE_URL,
        "reference_map_url": REFERENCE_MAP_URL,
    },
    "http": {
        "timeout": {"connect": 20.0, "read": 120.0},
        "retry": {"max_attempts": 5, "multiplier": 1.0, "max_wait": 30.0},
        "rate_limits": dict(DEFAULT_RATE_LIMITS),
    },
}


@dataclass(frozen=True)
class Settings:
    stats_base_url: str = STATS_BASE_URL
    geojson_base_url: str = GEOJSON_BASE_URL
    reference_map_url: str = REFERENCE_MAP_URL
    timeout: TimeoutConfig = field(default_factory=TimeoutConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    rate_limits: dict[str, float] = field(default_factory=lambda: dict(DEFAULT_RATE_LIMITS))

    @classmethod
    def defaults(cls) -> "Settings":
        return settings_from_mapping(DEFAULT_SETTINGS)

    def http_client(self) -> HttpClient:
        return HttpClient(timeout=self.timeout, retry=self.retry, rate_limits=self.rate_limits)


def settings_from_mapping(cfg: Mapping[str, Any]) -> Settings:
    endpoints = cfg["endpoints"]
    http = cfg["http"]
    return Settings(
        stats_base_url=str(endpoints["stats_base_url"]).rstrip("/"),
        geojson_base_url=str(endpoints["geojson_base_url"]).rstrip("/"),
        reference_map_url=str(endpoints["reference_map_url"]),
        timeout=TimeoutConfig(
            connect=float(http["timeout"]["connect"]),
            read=float(http["timeout"]["read"]),
        ),
        retry=RetryConfig(
            max_attempts=int(http["retry"]["max_attempts"]),
            multiplier=float(http["retry"]["multiplier"]),
            max_wait=float(http["retry"]["max_wait"]),
        ),
        rate_limits={str(k): float(v) for k, v in http["rate_limits"].items()},
    )


def _read_overlay(overlay_path: Path | None) -> dict | None:
    if overlay_path is None or not overlay_path.exists():
        return None
    overlay = read_yaml(overlay_path)
    if overlay is None:
        return None
    if not isinstance(overlay, Mapping):
        raise ConfigError(f"Overlay config {overlay_path} must be a mapping")
    return overlay


def load_settings(
    path: Path | None = None,
    *,
    overlay_path: Path | None = None,
    allow_unknown: bool = False,
) -> Settings:
    base = DEFAULT_SETTINGS if path is None else read_yaml(path)
    if not isinstance(base, Mapping):
        raise ConfigError(f"Settings file {path} must be a mapping")
    overlay = _read_overlay(overlay_path)
    cfg = deep_merge_with(base, overlay) if overlay else deep_merge_with(base)
    return settings_from_mapping(validate_settings_config(cfg, allow_unknown=allow_unknown))


def _pairs(obj: Any, ctx: str) -> list[tuple[str, Any]]:
    if obj is None:
        return []
    if isinstance(obj, Mapping):
        return list(obj.items())
    if isinstance(obj, (list, tuple)):
        pairs: list[tuple[str, Any]] = []
        for item in obj:
            if isinstance(item, Mapping) and len(item) == 1:
                pairs.extend(item.items())
            elif isinstance(item, (list, tuple)) and len(item) == 2:
                pairs.append((item[0], item[1]))
            else:
                raise InvalidConfig(f"{ctx} entries must be name/value pairs, got {item!r}")
        return pairs
    raise InvalidConfig(f"{ctx} must be a mapping or a list of pairs")


def _geo_value(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return ",".join(str(v) for v in value)
    return str(value)


def _string_list(value: Any, ctx: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if isinstance(value, (list, tuple)):
        return tuple(str(v) for v in value)
    raise InvalidConfig(f"{ctx} must be a string or a list of strings")


def request_config_from_mapping(obj: Mapping[str, Any] | RequestConfig) -> RequestConfig:
    """Normalise a user supplied request mapping into a ``RequestConfig``.

    Accepts the camelCase shape used by the JavaScript client (``sourcePath``,
    ``geoHierarchy``, ``statsKey``) as well as snake_case keys. Geography level
    names may be given in Census API spelling and are translated to internal
    keys here, once.
    """
    if isinstance(obj, RequestConfig):
        return obj

    cfg = canonical_request_mapping(obj)

    try:
        vintage = int(cfg["vintage"])
    except (TypeError, ValueError) as exc:
        raise InvalidConfig(f"vintage must be a year, got {cfg['vintage']!r}") from exc

    source_path = _string_list(cfg["source_path"], "source_path")
    geo_hierarchy = tuple(
        (strs_to_keys(str(level)), _geo_value(value))
        for level, value in _pairs(cfg["geo_hierarchy"], "geo_hierarchy")
    )
    predicates = tuple(
        (str(name), str(value)) for name, value in _pairs(cfg.get("predicates"), "predicates")
    )

    return RequestConfig(
        vintage=vintage,
        source_path=source_path,
        values=_string_list(cfg.get("values"), "values"),
        predicates=predicates,
        geo_hierarchy=geo_hierarchy,
        stats_key=str(cfg.get("stats_key") or ""),
        geo_resolution=str(cfg.get("geo_resolution") or DEFAULT_GEO_RESOLUTION),
    )


def load_request_config(path: Path) -> RequestConfig:
    return request_config_from_mapping(read_yaml(path))
