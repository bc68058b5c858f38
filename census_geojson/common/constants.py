"""Application constants."""

USER_AGENT = "census-geojson/0.3 (+research; contact: configured-email)"

STATS_BASE_URL = "https://api.census.gov/data"
GEOJSON_BASE_URL = "https://raw.githubusercontent.com/loganpowell/census-geojson/master/GeoJSON"
REFERENCE_MAP_URL = "https://raw.githubusercontent.com/loganpowell/census-geojson/master/src/census/geojson/index.json"

DEFAULT_GEO_RESOLUTION = "500k"

SOURCE_TYPES = ("stats", "geo", "reference")

JSON_LOG_FIELDS = (
    "timestamp",
    "run_id",
    "stage",
    "source",
    "event",
    "status",
    "duration_ms",
    "rows_in",
    "rows_out",
    "error_code",
    "url",
    "message",
)
