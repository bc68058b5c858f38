"""Process-wide cache of the geography reference map.

The reference map tells, per geography level and vintage, which boundary
properties concatenate into that level's GEOID. It is static, so it is fetched
once per process and reused; a failed fetch leaves the cache empty so a later
call can retry.
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from typing import Any

import yaml

from census_geojson.common.constants import REFERENCE_MAP_URL
from census_geojson.common.errors import DecodeError, InvalidConfig
from census_geojson.common.http import HttpClient, fetch_text_async
from census_geojson.common.models import RequestConfig

ID_FIELD_KEYS = ("id-fields", "id<-json")


class ReferenceMapCache:
    def __init__(self, url: str = REFERENCE_MAP_URL) -> None:
        self.url = url
        self._value: dict[str, Any] | None = None
        self._write_lock = threading.Lock()

    @property
    def is_populated(self) -> bool:
        return self._value is not None

    def clear(self) -> None:
        with self._write_lock:
            self._value = None

    def _parse(self, text: str) -> dict[str, Any]:
        try:
            document = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise DecodeError(f"Reference map at {self.url} is not valid YAML/JSON: {exc}") from exc
        if not isinstance(document, Mapping):
            raise DecodeError(f"Reference map at {self.url} must be a mapping")
        return dict(document)

    def _store(self, value: dict[str, Any]) -> dict[str, Any]:
        with self._write_lock:
            # Concurrent cold-start fetches return the same document; keep the first.
            if self._value is None:
                self._value = value
            return self._value

    async def resolve(self, client: HttpClient) -> dict[str, Any]:
        cached = self._value
        if cached is not None:
            return cached
        text = await fetch_text_async(client, self.url, source_type="reference")
        return self._store(self._parse(text))


_CACHES: dict[str, ReferenceMapCache] = {}
_CACHES_LOCK = threading.Lock()


def cache_for_url(url: str) -> ReferenceMapCache:
    with _CACHES_LOCK:
        cache = _CACHES.get(url)
        if cache is None:
            cache = ReferenceMapCache(url)
            _CACHES[url] = cache
        return cache


REFERENCE_MAP_CACHE = cache_for_url(REFERENCE_MAP_URL)


def _vintage_entry(level_entry: Mapping[Any, Any], vintage: int) -> Any:
    for key in (str(vintage), vintage):
        if key in level_entry:
            return level_entry[key]
    return None


def lookup_id_fields(reference_map: Mapping[str, Any], config: RequestConfig) -> list[str]:
    """Ordered property names composing the GEOID of ``config``'s finest level."""
    level = config.finest_level
    level_entry = reference_map.get(level)
    if not isinstance(level_entry, Mapping):
        raise InvalidConfig(f"Geography level {level!r} is not in the reference map")

    vintage_entry = _vintage_entry(level_entry, config.vintage)
    if not isinstance(vintage_entry, Mapping):
        raise InvalidConfig(f"No boundaries for {level!r} in vintage {config.vintage}")

    for key in ID_FIELD_KEYS:
        ids = vintage_entry.get(key)
        if ids is None:
            continue
        if not isinstance(ids, (list, tuple)) or not ids or not all(isinstance(name, str) and name for name in ids):
            raise DecodeError(
                f"Reference map id fields for {level!r} in vintage {config.vintage} must be a list of names, got {ids!r}"
            )
        return list(ids)
    raise InvalidConfig(f"Reference map has no id fields for {level!r} in vintage {config.vintage}")
