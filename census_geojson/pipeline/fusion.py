"""Fetch statistics and boundaries concurrently and fuse them into one FeatureCollection."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

from census_geojson.common.config_loader import Settings
from census_geojson.common.errors import PipelineError
from census_geojson.common.http import HttpClient
from census_geojson.common.keys import strs_to_keys
from census_geojson.common.logging import default_logger, log_event
from census_geojson.common.models import RequestConfig
from census_geojson.common.time_utils import elapsed_ms
from census_geojson.fetch.geo_fetch import fetch_geojson
from census_geojson.fetch.reference_map import ReferenceMapCache, cache_for_url, lookup_id_fields
from census_geojson.fetch.stats_fetch import fetch_stats
from census_geojson.pipeline.merge import key_features, key_stats_records, merge_geo_and_stats


def indicator_keys(config: RequestConfig, ids: list[str]) -> tuple[str | None, str | None, str | None]:
    """Fields whose presence proves a feature received both statistics and boundary data."""
    stats_key = strs_to_keys(config.values[0]) if config.values else None
    predicate_key = strs_to_keys(config.predicates[0][0]) if config.predicates else None
    geo_key = ids[0] if ids else None
    return stats_key, predicate_key, geo_key


async def geojson_with_stats(
    config: RequestConfig,
    client: HttpClient,
    *,
    settings: Settings | None = None,
    cache: ReferenceMapCache | None = None,
    logger: logging.Logger | None = None,
    run_id: str | None = None,
) -> dict[str, Any]:
    """Return ``config``'s statistics merged into the matching boundary features.

    Both fetches always run to completion; if either failed, its error is
    raised here (statistics first) instead of returning a partial collection.
    """
    settings = settings or Settings.defaults()
    logger = logger or default_logger()
    cache = cache or cache_for_url(settings.reference_map_url)
    started = time.monotonic()
    log_event(logger, "fusion start", run_id=run_id, stage="fusion", event="FUSION_START")

    try:
        reference_map = await cache.resolve(client)
        ids = lookup_id_fields(reference_map, config)
        vars_count = config.vars_count

        outcomes = await asyncio.gather(
            fetch_stats(
                config,
                client,
                base_url=settings.stats_base_url,
                keywords=True,
                logger=logger,
                run_id=run_id,
            ),
            fetch_geojson(
                config,
                client,
                base_url=settings.geojson_base_url,
                logger=logger,
                run_id=run_id,
            ),
            return_exceptions=True,
        )
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome
        stats_result, geo_result = outcomes
        records = stats_result.unwrap()
        features = geo_result.unwrap()

        merged = merge_geo_and_stats(
            key_stats_records(records, vars_count, ids),
            key_features(features, ids),
            *indicator_keys(config, ids),
        )
    except PipelineError as exc:
        log_event(
            logger,
            f"fusion failed: {exc}",
            run_id=run_id,
            stage="fusion",
            event="FUSION_FAIL",
            status="error",
            error_code=exc.error_code,
            duration_ms=elapsed_ms(started),
        )
        raise

    log_event(
        logger,
        "fusion end",
        run_id=run_id,
        stage="fusion",
        event="FUSION_END",
        status="ok",
        duration_ms=elapsed_ms(started),
        rows_in=len(records) + len(features),
        rows_out=len(merged),
    )
    return {"type": "FeatureCollection", "features": merged}
