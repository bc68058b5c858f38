"""Decode the Census API's header-plus-rows response into records.

The statistics API answers with an array of arrays: the first inner array
names the columns and every following one is a data row of the same width,
all values as strings. ``RowDecoder`` keeps the header as explicit state and
zips each later row against it.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, Sequence
from typing import Any

from census_geojson.common.errors import DecodeError
from census_geojson.common.keys import strs_to_keys
from census_geojson.common.models import RequestConfig

_NUMBER = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
_INTEGER = re.compile(r"^[+-]?\d+$")


def is_numeric(value: str) -> bool:
    return bool(_NUMBER.match(value.strip()))


def parse_if_number(value: Any) -> Any:
    if not isinstance(value, str) or not is_numeric(value):
        return value
    text = value.strip()
    if _INTEGER.match(text):
        return int(text)
    return float(text)


def stats_parse_range(config: RequestConfig) -> tuple[int, int]:
    """Columns holding requested values and predicates, which come first in every row."""
    return 0, config.vars_count


class RowDecoder:
    def __init__(self, parse_range: tuple[int, int] = (0, 0), *, keywords: bool = False) -> None:
        self.parse_range = parse_range
        self.keywords = keywords
        self.header: list[str] | None = None

    def _check_row(self, row: object) -> Sequence[Any]:
        if not isinstance(row, (list, tuple)):
            raise DecodeError(f"Expected a row as a list, got {type(row).__name__}")
        return row

    def feed(self, row: Sequence[Any]) -> dict[str, Any] | None:
        row = self._check_row(row)
        if self.header is None:
            names = [str(name) for name in row]
            self.header = [strs_to_keys(name) for name in names] if self.keywords else names
            return None

        if len(row) != len(self.header):
            raise DecodeError(f"Row has {len(row)} fields but the header has {len(self.header)}")

        start, end = self.parse_range
        values = [
            parse_if_number(value) if start <= idx < end else value
            for idx, value in enumerate(row)
        ]
        return dict(zip(self.header, values))


def decode_rows(
    rows: Iterable[Sequence[Any]],
    parse_range: tuple[int, int] = (0, 0),
    *,
    keywords: bool = False,
) -> Iterator[dict[str, Any]]:
    if not isinstance(rows, (list, tuple)) and not isinstance(rows, Iterator):
        raise DecodeError(f"Expected rows as a list, got {type(rows).__name__}")
    decoder = RowDecoder(parse_range, keywords=keywords)
    for row in rows:
        record = decoder.feed(row)
        if record is not None:
            yield record
