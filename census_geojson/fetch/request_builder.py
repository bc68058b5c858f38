"""URL construction for the Census statistics API and the boundary file repository."""

from __future__ import annotations

from urllib.parse import quote

from census_geojson.common.constants import GEOJSON_BASE_URL, STATS_BASE_URL
from census_geojson.common.keys import keys_to_strs
from census_geojson.common.models import RequestConfig

_VALUE_SAFE = "*,:"
_LEVEL_SAFE = "/"


def _geo_clause(level: str, value: str) -> str:
    return f"{quote(keys_to_strs(level), safe=_LEVEL_SAFE)}:{quote(value, safe=_VALUE_SAFE)}"


def build_stats_url(config: RequestConfig, base_url: str = STATS_BASE_URL) -> str:
    """Compose a Census statistics API query for ``config``.

    All coarser geography levels go into one ``in=`` clause separated by an
    escaped space; the finest level is the single ``for=`` clause.
    """
    path = "/".join(quote(segment, safe="") for segment in config.source_path)
    url = f"{base_url.rstrip('/')}/{config.vintage}/{path}"
    url += "?get=" + ",".join(quote(value, safe="") for value in config.values)

    for name, value in config.predicates:
        url += f"&{quote(name, safe='')}={quote(value, safe=_VALUE_SAFE)}"

    *coarser, finest = config.geo_hierarchy
    if coarser:
        url += "&in=" + "%20".join(_geo_clause(level, value) for level, value in coarser)
    url += "&for=" + _geo_clause(*finest)

    return url + "&key=" + quote(config.stats_key, safe="")


def build_geojson_url(config: RequestConfig, base_url: str = GEOJSON_BASE_URL) -> str:
    """Locate the boundary file matching the finest geography level of ``config``.

    Files below state level are partitioned per state, so a hierarchy rooted
    at a single concrete state resolves into that state's directory.
    """
    parts = [base_url.rstrip("/"), quote(config.geo_resolution, safe=""), str(config.vintage)]
    coarsest_level, coarsest_value = config.geo_hierarchy[0]
    if (
        len(config.geo_hierarchy) > 1
        and coarsest_level == "state"
        and coarsest_value not in ("*", "")
        and "," not in coarsest_value
    ):
        parts.append(quote(coarsest_value, safe=""))
    parts.append(f"{quote(config.finest_level, safe='!')}.json")
    return "/".join(parts)


def redact_stats_key(url: str) -> str:
    head, sep, _key = url.rpartition("&key=")
    if not sep:
        return url
    return f"{head}&key=REDACTED"
