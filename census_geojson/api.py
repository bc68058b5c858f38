"""Library entrypoints for Census statistics and statistics-enriched boundaries."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping
from typing import Any

from census_geojson.common.config_loader import Settings, request_config_from_mapping
from census_geojson.common.http import HttpClient
from census_geojson.common.ids import generate_run_id
from census_geojson.common.logging import default_logger
from census_geojson.common.models import RequestConfig
from census_geojson.fetch.reference_map import ReferenceMapCache
from census_geojson.fetch.stats_fetch import fetch_stats
from census_geojson.pipeline.fusion import geojson_with_stats

ConfigLike = RequestConfig | Mapping[str, Any]


async def fetch_census_stats(
    config: ConfigLike,
    *,
    keywords: bool = False,
    settings: Settings | None = None,
    http_client: HttpClient | None = None,
    logger: logging.Logger | None = None,
) -> list[dict[str, Any]]:
    request = request_config_from_mapping(config)
    settings = settings or Settings.defaults()

    owns_client = http_client is None
    client = http_client or settings.http_client()
    try:
        result = await fetch_stats(
            request,
            client,
            base_url=settings.stats_base_url,
            keywords=keywords,
            logger=logger or default_logger(),
            run_id=generate_run_id(),
        )
    finally:
        if owns_client:
            client.close()
    return result.unwrap()


async def fetch_geojson_with_stats(
    config: ConfigLike,
    *,
    settings: Settings | None = None,
    http_client: HttpClient | None = None,
    cache: ReferenceMapCache | None = None,
    logger: logging.Logger | None = None,
) -> dict[str, Any]:
    request = request_config_from_mapping(config)
    settings = settings or Settings.defaults()

    owns_client = http_client is None
    client = http_client or settings.http_client()
    try:
        return await geojson_with_stats(
            request,
            client,
            settings=settings,
            cache=cache,
            logger=logger or default_logger(),
            run_id=generate_run_id(),
        )
    finally:
        if owns_client:
            client.close()


def get_census_stats(
    config: ConfigLike,
    *,
    keywords: bool = False,
    as_json: bool = False,
    settings: Settings | None = None,
    http_client: HttpClient | None = None,
    logger: logging.Logger | None = None,
) -> list[dict[str, Any]] | str:
    """Query the statistics API and return one dict per row.

    With ``as_json=True`` the records are returned as a JSON string instead.
    Without ``logger``, events go to stderr as JSON lines through
    ``default_logger()``; pass a ``build_logger(...)`` logger to add a log file.
    """
    records = asyncio.run(
        fetch_census_stats(
            config,
            keywords=keywords,
            settings=settings,
            http_client=http_client,
            logger=logger,
        )
    )
    if as_json:
        return json.dumps(records, ensure_ascii=False)
    return records


def get_geojson_with_stats(
    config: ConfigLike,
    *,
    settings: Settings | None = None,
    http_client: HttpClient | None = None,
    cache: ReferenceMapCache | None = None,
    logger: logging.Logger | None = None,
) -> dict[str, Any]:
    """Return the statistics merged into their boundary features as a FeatureCollection.

    Logging follows `get_census_stats`.
    """
    return asyncio.run(
        fetch_geojson_with_stats(
            config,
            settings=settings,
            http_client=http_client,
            cache=cache,
            logger=logger,
        )
    )
