"""Minimal strict schemas for YAML config validation."""

from __future__ import annotations

from collections.abc import Mapping

from census_geojson.common.constants import SOURCE_TYPES
from census_geojson.common.errors import ConfigError, InvalidConfig


def _assert_mapping(obj: object, ctx: str, error_cls: type[ConfigError] = ConfigError) -> None:
    if not isinstance(obj, Mapping):
        raise error_cls(f"{ctx} must be a mapping, got {type(obj).__name__}")


def _assert_required_keys(obj: Mapping, required: set[str], ctx: str, error_cls: type[ConfigError] = ConfigError) -> None:
    missing = required - set(obj)
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise error_cls(f"Missing keys in {ctx}: {missing_str}")


def _assert_no_unknown_keys(obj: Mapping, known: set[str], ctx: str, allow_unknown: bool) -> None:
    if allow_unknown:
        return
    unknown = set(obj) - known
    if unknown:
        unknown_str = ", ".join(sorted(unknown))
        raise ConfigError(f"Unknown keys in {ctx}: {unknown_str}")


def _assert_positive_number(value: object, ctx: str) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigError(f"{ctx} must be a positive number, got {value!r}")


def validate_settings_config(cfg: object, *, allow_unknown: bool = False) -> dict:
    _assert_mapping(cfg, "settings")
    _assert_required_keys(cfg, {"endpoints", "http"}, "settings")
    _assert_no_unknown_keys(cfg, {"endpoints", "http"}, "settings", allow_unknown)

    endpoints = cfg["endpoints"]
    _assert_mapping(endpoints, "endpoints")
    endpoint_keys = {"stats_base_url", "geojson_base_url", "reference_map_url"}
    _assert_required_keys(endpoints, endpoint_keys, "endpoints")
    _assert_no_unknown_keys(endpoints, endpoint_keys, "endpoints", allow_unknown)
    for key in endpoint_keys:
        if not str(endpoints[key]).startswith(("http://", "https://")):
            raise ConfigError(f"endpoints.{key} must be an http(s) URL")

    http = cfg["http"]
    _assert_mapping(http, "http")
    _assert_required_keys(http, {"timeout", "retry", "rate_limits"}, "http")
    _assert_no_unknown_keys(http, {"timeout", "retry", "rate_limits"}, "http", allow_unknown)

    _assert_mapping(http["timeout"], "http.timeout")
    _assert_required_keys(http["timeout"], {"connect", "read"}, "http.timeout")
    for key in ("connect", "read"):
        _assert_positive_number(http["timeout"][key], f"http.timeout.{key}")

    _assert_mapping(http["retry"], "http.retry")
    _assert_required_keys(http["retry"], {"max_attempts", "multiplier", "max_wait"}, "http.retry")
    if not isinstance(http["retry"]["max_attempts"], int) or http["retry"]["max_attempts"] < 1:
        raise ConfigError("http.retry.max_attempts must be an integer >= 1")

    rate_limits = http["rate_limits"]
    _assert_mapping(rate_limits, "http.rate_limits")
    _assert_no_unknown_keys(rate_limits, set(SOURCE_TYPES), "http.rate_limits", allow_unknown)
    for source_type, rate in rate_limits.items():
        _assert_positive_number(rate, f"http.rate_limits.{source_type}")

    return dict(cfg)


REQUEST_KEY_ALIASES = {
    "vintage": "vintage",
    "sourcePath": "source_path",
    "source_path": "source_path",
    "values": "values",
    "predicates": "predicates",
    "geoHierarchy": "geo_hierarchy",
    "geo_hierarchy": "geo_hierarchy",
    "statsKey": "stats_key",
    "stats_key": "stats_key",
    "geoResolution": "geo_resolution",
    "geo_resolution": "geo_resolution",
}


def canonical_request_mapping(obj: object) -> dict:
    """Rename camelCase request keys to their snake_case form and check required ones."""
    _assert_mapping(obj, "request config", InvalidConfig)
    out: dict = {}
    unknown = []
    for key, value in obj.items():
        canonical = REQUEST_KEY_ALIASES.get(key)
        if canonical is None:
            unknown.append(str(key))
            continue
        if canonical in out:
            raise InvalidConfig(f"request config sets {canonical} twice")
        out[canonical] = value
    if unknown:
        raise InvalidConfig(f"Unknown keys in request config: {', '.join(sorted(unknown))}")
    _assert_required_keys(out, {"vintage", "source_path", "geo_hierarchy"}, "request config", InvalidConfig)
    return out
