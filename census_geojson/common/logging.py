"""JSON logging with stable schema."""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any

from census_geojson.common.constants import JSON_LOG_FIELDS
from census_geojson.common.fs import ensure_dir
from census_geojson.common.time_utils import utc_timestamp_iso

LOGGER_NAMESPACE = "census_geojson"
_DEFAULT_LOCK = threading.Lock()


class JsonLineFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": utc_timestamp_iso(),
            "run_id": getattr(record, "run_id", None),
            "stage": getattr(record, "stage", None),
            "source": getattr(record, "source", None),
            "event": getattr(record, "event", None),
            "status": getattr(record, "status", None),
            "duration_ms": getattr(record, "duration_ms", None),
            "rows_in": getattr(record, "rows_in", None),
            "rows_out": getattr(record, "rows_out", None),
            "error_code": getattr(record, "error_code", None),
            "url": getattr(record, "url", None),
            "message": record.getMessage(),
        }
        for field in JSON_LOG_FIELDS:
            payload.setdefault(field, None)
        return json.dumps(payload, ensure_ascii=False)


def build_logger(run_id: str, level: str = "INFO", log_path: Path | None = None) -> logging.Logger:
    logger = logging.getLogger(f"{LOGGER_NAMESPACE}.{run_id}")
    logger.setLevel(level.upper())
    logger.handlers.clear()
    # Has its own handlers; the namespace logger would print every line twice.
    logger.propagate = False

    stream = logging.StreamHandler()
    stream.setFormatter(JsonLineFormatter())
    logger.addHandler(stream)

    if log_path is not None:
        ensure_dir(log_path.parent)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(JsonLineFormatter())
        logger.addHandler(file_handler)

    return logger


def default_logger() -> logging.Logger:
    """Namespace logger used when the caller passes none; JSON lines on stderr.

    The handler is attached once per process. Callers wanting a log file or a
    different level pass a logger from `build_logger` instead.
    """
    logger = logging.getLogger(LOGGER_NAMESPACE)
    with _DEFAULT_LOCK:
        if not logger.handlers:
            stream = logging.StreamHandler()
            stream.setFormatter(JsonLineFormatter())
            logger.addHandler(stream)
            logger.setLevel(logging.INFO)
    return logger


def log_event(logger: logging.Logger, message: str, **event_fields: Any) -> None:
    logger.info(message, extra=event_fields)
