"""Boundary fetch stage: load a GeoJSON FeatureCollection and pass its features through."""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from typing import Any

from census_geojson.common.constants import GEOJSON_BASE_URL
from census_geojson.common.errors import DecodeError, PipelineError
from census_geojson.common.http import HttpClient, fetch_json_async
from census_geojson.common.logging import default_logger, log_event
from census_geojson.common.models import FetchResult, RequestConfig
from census_geojson.common.time_utils import elapsed_ms
from census_geojson.fetch.request_builder import build_geojson_url


def extract_features(payload: Any) -> list[dict[str, Any]]:
    if not isinstance(payload, Mapping):
        raise DecodeError(f"Expected a FeatureCollection object, got {type(payload).__name__}")
    features = payload.get("features")
    if not isinstance(features, list):
        raise DecodeError("FeatureCollection has no features array")

    out: list[dict[str, Any]] = []
    for idx, feature in enumerate(features):
        if not isinstance(feature, Mapping) or not isinstance(feature.get("properties"), Mapping):
            raise DecodeError(f"features[{idx}] has no properties mapping")
        out.append(dict(feature))
    return out


async def fetch_geojson(
    config: RequestConfig,
    client: HttpClient,
    *,
    base_url: str = GEOJSON_BASE_URL,
    logger: logging.Logger | None = None,
    run_id: str | None = None,
) -> FetchResult[list[dict[str, Any]]]:
    logger = logger or default_logger()
    url = build_geojson_url(config, base_url)
    started = time.monotonic()
    log_event(logger, "geo fetch start", run_id=run_id, stage="fetch", source="geo", event="FETCH_START", url=url)

    try:
        payload = await fetch_json_async(client, url, source_type="geo")
        features = extract_features(payload)
    except PipelineError as exc:
        log_event(
            logger,
            f"geo fetch failed: {exc}",
            run_id=run_id,
            stage="fetch",
            source="geo",
            event="FETCH_FAIL",
            status="error",
            error_code=exc.error_code,
            duration_ms=elapsed_ms(started),
            url=url,
        )
        return FetchResult.failure(exc)

    log_event(
        logger,
        "geo fetch end",
        run_id=run_id,
        stage="fetch",
        source="geo",
        event="FETCH_END",
        status="ok",
        duration_ms=elapsed_ms(started),
        rows_out=len(features),
    )
    return FetchResult.success(features)
