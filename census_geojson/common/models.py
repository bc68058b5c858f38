"""Data models used across the pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from census_geojson.common.constants import DEFAULT_GEO_RESOLUTION
from census_geojson.common.errors import InvalidConfig, PipelineError

T = TypeVar("T")


def _is_multi_value(value: str) -> bool:
    return "," in value


@dataclass(frozen=True)
class RequestConfig:
    """One statistics query plus the boundaries it should be joined onto.

    Geography level names are held in internal key form (see
    ``census_geojson.common.keys``); the request builders translate them back
    to the remote vocabulary.
    """

    vintage: int
    source_path: tuple[str, ...]
    values: tuple[str, ...]
    predicates: tuple[tuple[str, str], ...]
    geo_hierarchy: tuple[tuple[str, str], ...]
    stats_key: str = field(default="", repr=False)
    geo_resolution: str = DEFAULT_GEO_RESOLUTION

    def __post_init__(self) -> None:
        if isinstance(self.vintage, bool) or not isinstance(self.vintage, int) or self.vintage <= 0:
            raise InvalidConfig(f"vintage must be a positive year, got {self.vintage!r}")
        if not self.values:
            raise InvalidConfig("values must name at least one statistic to request")
        if not self.source_path:
            raise InvalidConfig("source_path must name at least one segment")
        if not self.geo_hierarchy:
            raise InvalidConfig("geo_hierarchy must have at least one level")
        for level, value in self.geo_hierarchy[:-1]:
            if _is_multi_value(value):
                raise InvalidConfig(
                    f"only the finest geography level may name multiple values; {level!r} has {value!r}"
                )
        names = [name for name, _ in self.predicates]
        if len(set(names)) != len(names):
            raise InvalidConfig("predicate names must be unique")

    @property
    def predicate_map(self) -> dict[str, str]:
        return dict(self.predicates)

    @property
    def finest_level(self) -> str:
        return self.geo_hierarchy[-1][0]

    @property
    def vars_count(self) -> int:
        return len(self.values) + len(self.predicates)


@dataclass(frozen=True)
class FetchResult(Generic[T]):
    """Outcome of one fetch stage: either decoded data or the error that stopped it."""

    value: T | None = None
    error: PipelineError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]

    @classmethod
    def success(cls, value: T) -> "FetchResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: PipelineError) -> "FetchResult[Any]":
        return cls(error=error)
