"""Statistics fetch stage: query the Census API and decode its rows."""

from __future__ import annotations

import logging
import time
from typing import Any

from census_geojson.common.constants import STATS_BASE_URL
from census_geojson.common.errors import DecodeError, PipelineError
from census_geojson.common.http import HttpClient, fetch_json_async
from census_geojson.common.logging import default_logger, log_event
from census_geojson.common.models import FetchResult, RequestConfig
from census_geojson.common.time_utils import elapsed_ms
from census_geojson.fetch.request_builder import build_stats_url, redact_stats_key
from census_geojson.pipeline.row_decoder import decode_rows, stats_parse_range


def _decode_stats_payload(payload: Any, config: RequestConfig, keywords: bool) -> list[dict[str, Any]]:
    if not isinstance(payload, list):
        raise DecodeError(f"Expected an array of rows from the statistics API, got {type(payload).__name__}")
    return list(decode_rows(payload, stats_parse_range(config), keywords=keywords))


async def fetch_stats(
    config: RequestConfig,
    client: HttpClient,
    *,
    base_url: str = STATS_BASE_URL,
    keywords: bool = False,
    logger: logging.Logger | None = None,
    run_id: str | None = None,
) -> FetchResult[list[dict[str, Any]]]:
    """Fetch and decode one statistics query.

    Transport and decode failures come back inside the ``FetchResult`` rather
    than being raised, so the caller decides when to surface them.
    """
    logger = logger or default_logger()
    url = build_stats_url(config, base_url)
    safe_url = redact_stats_key(url)
    started = time.monotonic()
    log_event(logger, "stats fetch start", run_id=run_id, stage="fetch", source="stats", event="FETCH_START", url=safe_url)

    try:
        payload = await fetch_json_async(client, url, source_type="stats")
        records = _decode_stats_payload(payload, config, keywords)
    except PipelineError as exc:
        log_event(
            logger,
            f"stats fetch failed: {exc}",
            run_id=run_id,
            stage="fetch",
            source="stats",
            event="FETCH_FAIL",
            status="error",
            error_code=exc.error_code,
            duration_ms=elapsed_ms(started),
            url=safe_url,
        )
        return FetchResult.failure(exc)

    log_event(
        logger,
        "stats fetch end",
        run_id=run_id,
        stage="fetch",
        source="stats",
        event="FETCH_END",
        status="ok",
        duration_ms=elapsed_ms(started),
        rows_in=len(payload),
        rows_out=len(records),
    )
    return FetchResult.success(records)
