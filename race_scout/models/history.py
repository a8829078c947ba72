"""
User history models: a driver's aggregated record, as consumed by scoring.

``UserHistory`` bundles three independent views of one driver:

  - ``series_track_history`` : one ``SeriesTrackHistory`` per (series, track)
    pair the driver has raced; absence means "no personal data".
  - ``overall_stats``        : ``OverallStats`` spanning every series.
  - ``license_classes``      : at most one ``LicenseClass`` per category.

All models are frozen; the aggregation layer builds a fresh ``UserHistory``
per request.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from race_scout.taxonomy.scoring_taxonomy import Category, LicenseLevel


class SeriesTrackHistory(BaseModel):
    """A driver's aggregated record on one (series, track) pair.

    Attributes:
        series_id: Series identifier.
        track_id: Track identifier.
        race_count: Number of official races on this exact pair.
        avg_starting_position: Mean grid position.
        avg_finishing_position: Mean finishing position.
        avg_position_delta: Mean positions gained (positive = gained).
        avg_incidents: Mean incident points per race.
        finish_position_std_dev: Standard deviation of finishing position.
        last_race_date: UTC datetime of the most recent race, if known.
    """

    model_config = ConfigDict(frozen=True)

    series_id: int
    track_id: int
    race_count: int
    avg_starting_position: float = 0.0
    avg_finishing_position: float = 0.0
    avg_position_delta: float = 0.0
    avg_incidents: float = 0.0
    finish_position_std_dev: float = 0.0
    last_race_date: Optional[datetime] = None

    @field_validator("race_count")
    @classmethod
    def validate_race_count(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"race_count must be non-negative, got {v}.")
        return v


class OverallStats(BaseModel):
    """A driver's aggregate across every series and track.

    Attributes:
        total_races: Total official races.
        avg_incidents_per_race: Race-weighted mean incidents.
        avg_position_delta: Race-weighted mean positions gained.
        overall_consistency: Race-weighted finishing std-dev (lower is better).
    """

    model_config = ConfigDict(frozen=True)

    total_races: int = 0
    avg_incidents_per_race: float = 0.0
    avg_position_delta: float = 0.0
    overall_consistency: float = 0.0

    @field_validator("total_races")
    @classmethod
    def validate_total_races(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"total_races must be non-negative, got {v}.")
        return v


class LicenseClass(BaseModel):
    """A driver's license in one category.

    Attributes:
        category: Racing discipline.
        level: License tier.
        safety_rating: Safety Rating, typically 0.0–4.99.
        i_rating: iRating for this category.
    """

    model_config = ConfigDict(frozen=True)

    category: Category
    level: LicenseLevel
    safety_rating: float
    i_rating: float


class UserHistory(BaseModel):
    """Everything the scoring engine knows about one driver.

    Attributes:
        user_id: Opaque user identifier.
        series_track_history: Per-pair records; may be empty.
        overall_stats: Cross-series aggregate.
        license_classes: Licenses, at most one per category.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str
    series_track_history: list[SeriesTrackHistory] = []
    overall_stats: OverallStats = OverallStats()
    license_classes: list[LicenseClass] = []

    @model_validator(mode="after")
    def validate_one_license_per_category(self) -> "UserHistory":
        seen: set[Category] = set()
        for lic in self.license_classes:
            if lic.category in seen:
                raise ValueError(
                    f"Duplicate license for category '{lic.category}'; "
                    "at most one license per category is allowed."
                )
            seen.add(lic.category)
        return self

    def history_for(self, series_id: int, track_id: int) -> Optional[SeriesTrackHistory]:
        """Return the record for the exact (series, track) pair, or ``None``."""
        for h in self.series_track_history:
            if h.series_id == series_id and h.track_id == track_id:
                return h
        return None

    def license_for(self, category: Category) -> Optional[LicenseClass]:
        """Return the license held in ``category``, or ``None``."""
        for lic in self.license_classes:
            if lic.category == category:
                return lic
        return None

    def series_race_count(self, series_id: int) -> int:
        """Races in ``series_id`` across every track."""
        return sum(h.race_count for h in self.series_track_history if h.series_id == series_id)

    def track_race_count(self, track_id: int) -> int:
        """Races at ``track_id`` across every series."""
        return sum(h.race_count for h in self.series_track_history if h.track_id == track_id)
