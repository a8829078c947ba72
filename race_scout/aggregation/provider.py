"""
Aggregated-statistics provider interface and converters.

The provider is an external collaborator (a SQL-backed analytics service in
production, an in-memory fake in tests).  It supplies two shapes:

  - ``PerformanceMetric`` rows: one user's aggregates grouped by
    series+track, series, or track (``MetricGrouping``).
  - ``SeriesTrackAggregate``: all drivers' aggregates for one pair, or
    ``None`` when the pair has no races at all.

The converters in this module turn those shapes into the scoring models.
Global numbers are trusted only with at least ``BatchConfig.min_sample_races``
sample races; below that the documented defaults are substituted.

    sample races          data_quality
    >= high_quality_races       HIGH
    >= moderate_quality_races   MODERATE
    otherwise                   DEFAULT
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, Optional, Sequence

from pydantic import BaseModel, ConfigDict, field_validator

from race_scout.config import BatchConfig
from race_scout.models.history import LicenseClass, OverallStats, SeriesTrackHistory, UserHistory
from race_scout.models.opportunity import DEFAULT_GLOBAL_STATS, GlobalStats
from race_scout.taxonomy.scoring_taxonomy import GlobalStatsQuality, MetricGrouping


class PerformanceMetric(BaseModel):
    """One row of a user's grouped performance aggregates.

    ``series_id`` / ``track_id`` are ``None`` for the dimension that was
    grouped away (e.g. ``track_id`` is ``None`` when grouped by series).
    """

    model_config = ConfigDict(frozen=True)

    series_id: Optional[int] = None
    series_name: Optional[str] = None
    track_id: Optional[int] = None
    track_name: Optional[str] = None
    race_count: int
    avg_starting_position: float = 0.0
    avg_finishing_position: float = 0.0
    position_delta: float = 0.0
    avg_incidents: float = 0.0
    consistency: float = 0.0
    last_race_date: Optional[datetime] = None

    @field_validator("race_count")
    @classmethod
    def validate_race_count(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"race_count must be non-negative, got {v}.")
        return v


class SeriesTrackAggregate(BaseModel):
    """All drivers' recent race aggregates for one (series, track) pair.

    ``attrition_rate`` is a fraction in [0, 1] of starters without a finishing
    position.  Any aggregate may be ``None`` when the query had no data.
    """

    model_config = ConfigDict(frozen=True)

    total_races: int = 0
    avg_incidents: Optional[float] = None
    avg_strength_of_field: Optional[float] = None
    consistency_metric: Optional[float] = None
    attrition_rate: Optional[float] = None


class StatisticsProvider(ABC):
    """Source of aggregated racing statistics.

    Implementations perform their own I/O and may raise on failure; the batch
    aggregator isolates those failures per request.
    """

    @abstractmethod
    async def get_performance_metrics(
        self,
        user_id: str,
        group_by: MetricGrouping,
    ) -> list[PerformanceMetric]:
        """Return the user's metrics grouped by ``group_by``."""

    @abstractmethod
    async def get_global_series_track_stats(
        self,
        series_id: int,
        track_id: int,
    ) -> Optional[SeriesTrackAggregate]:
        """Return global aggregates for the pair, or ``None`` with no data."""


# ── Converters ────────────────────────────────────────────────────────────────


def _finite_or(value: Optional[float], default: float) -> float:
    if value is None or not math.isfinite(value):
        return default
    return float(value)


def data_quality_for(total_races: int, config: BatchConfig) -> GlobalStatsQuality:
    if total_races >= config.high_quality_races:
        return GlobalStatsQuality.HIGH
    if total_races >= config.moderate_quality_races:
        return GlobalStatsQuality.MODERATE
    return GlobalStatsQuality.DEFAULT


def global_stats_from_aggregate(
    aggregate: Optional[SeriesTrackAggregate],
    config: Optional[BatchConfig] = None,
) -> GlobalStats:
    """Convert a provider aggregate into ``GlobalStats``.

    Fewer than ``min_sample_races`` races (or no aggregate) yields
    ``DEFAULT_GLOBAL_STATS``.  Missing or non-finite fields fall back to their
    defaults individually.  SOF variability and race length are not tracked
    by the provider and always take their defaults.
    """
    config = config or BatchConfig()
    if aggregate is None or aggregate.total_races < config.min_sample_races:
        return DEFAULT_GLOBAL_STATS

    defaults = DEFAULT_GLOBAL_STATS
    return GlobalStats(
        avg_incidents_per_race=_finite_or(aggregate.avg_incidents, defaults.avg_incidents_per_race),
        avg_finish_position_std_dev=_finite_or(
            aggregate.consistency_metric, defaults.avg_finish_position_std_dev
        ),
        avg_strength_of_field=_finite_or(
            aggregate.avg_strength_of_field, defaults.avg_strength_of_field
        ),
        strength_of_field_variability=defaults.strength_of_field_variability,
        attrition_rate=_finite_or(aggregate.attrition_rate, defaults.attrition_rate / 100.0) * 100.0,
        avg_race_length=defaults.avg_race_length,
        data_quality=data_quality_for(aggregate.total_races, config),
    )


def overall_stats_from_metrics(metrics: Iterable[PerformanceMetric]) -> OverallStats:
    """Race-count-weighted means across metric rows.

    Non-finite ``consistency`` values count as 0.
    """
    total_races = 0
    incidents = 0.0
    delta = 0.0
    consistency = 0.0
    for m in metrics:
        total_races += m.race_count
        incidents += m.avg_incidents * m.race_count
        delta += m.position_delta * m.race_count
        consistency += (m.consistency if math.isfinite(m.consistency) else 0.0) * m.race_count

    if total_races == 0:
        return OverallStats()
    return OverallStats(
        total_races=total_races,
        avg_incidents_per_race=incidents / total_races,
        avg_position_delta=delta / total_races,
        overall_consistency=consistency / total_races,
    )


def history_from_metrics(metrics: Iterable[PerformanceMetric]) -> list[SeriesTrackHistory]:
    """``SeriesTrackHistory`` per series+track row; rows missing either id are skipped."""
    return [
        SeriesTrackHistory(
            series_id=m.series_id,
            track_id=m.track_id,
            race_count=m.race_count,
            avg_starting_position=m.avg_starting_position,
            avg_finishing_position=m.avg_finishing_position,
            avg_position_delta=m.position_delta,
            avg_incidents=m.avg_incidents,
            finish_position_std_dev=m.consistency,
            last_race_date=m.last_race_date,
        )
        for m in metrics
        if m.series_id is not None and m.track_id is not None
    ]


def user_history_from_metrics(
    user_id: str,
    series_track_metrics: Sequence[PerformanceMetric],
    series_metrics: Sequence[PerformanceMetric],
    license_classes: Sequence[LicenseClass] = (),
) -> UserHistory:
    """Assemble a ``UserHistory`` from per-pair and per-series metric rows."""
    return UserHistory(
        user_id=user_id,
        series_track_history=history_from_metrics(series_track_metrics),
        overall_stats=overall_stats_from_metrics(series_metrics),
        license_classes=list(license_classes),
    )
