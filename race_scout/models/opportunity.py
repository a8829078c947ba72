"""
Racing opportunity models: what the scoring engine is asked to rate.

``Opportunity`` describes one series running at one track in one race week,
together with its recurring ``TimeSlot`` list and a ``GlobalStats`` snapshot
of how that series/track pair behaves across all drivers.

All models are frozen: an opportunity is built once by the statistics
provider and passed by value into every scoring call.

Statistic fields are plain floats and deliberately accept NaN/Infinity:
the scoring engine substitutes documented defaults for non-finite values
instead of rejecting the whole opportunity.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from race_scout.taxonomy.scoring_taxonomy import Category, GlobalStatsQuality, LicenseLevel


class TimeSlot(BaseModel):
    """A recurring session start for an opportunity.

    Attributes:
        hour: Start hour of day, 0–23 (UTC).
        day_of_week: 0–6, Sunday = 0.
        strength_of_field: Typical SOF for sessions in this slot.
        participant_count: Typical number of registered drivers.
    """

    model_config = ConfigDict(frozen=True)

    hour: int
    day_of_week: int
    strength_of_field: float = 0.0
    participant_count: int = 0

    @field_validator("hour")
    @classmethod
    def validate_hour(cls, v: int) -> int:
        if not 0 <= v <= 23:
            raise ValueError(f"hour must be in [0, 23], got {v}.")
        return v

    @field_validator("day_of_week")
    @classmethod
    def validate_day_of_week(cls, v: int) -> int:
        if not 0 <= v <= 6:
            raise ValueError(f"day_of_week must be in [0, 6] (Sunday = 0), got {v}.")
        return v


class GlobalStats(BaseModel):
    """Aggregate behaviour of a series/track pair across all drivers.

    Attributes:
        avg_incidents_per_race: Mean incident points per driver per race.
        avg_finish_position_std_dev: Mean finishing-position standard deviation.
        avg_strength_of_field: Mean SOF (iRating) of the field.
        strength_of_field_variability: Spread of SOF across sessions.
        attrition_rate: Percentage of starters who do not finish (0–100).
        avg_race_length: Mean race duration in minutes.
        data_quality: Sample quality grade of these numbers.
    """

    model_config = ConfigDict(frozen=True)

    avg_incidents_per_race: float = 2.5
    avg_finish_position_std_dev: float = 8.0
    avg_strength_of_field: float = 1500.0
    strength_of_field_variability: float = 300.0
    attrition_rate: float = 15.0
    avg_race_length: float = 60.0
    data_quality: GlobalStatsQuality = GlobalStatsQuality.MODERATE


DEFAULT_GLOBAL_STATS = GlobalStats(data_quality=GlobalStatsQuality.DEFAULT)
"""Substituted whenever a pair has too few samples or its fetch failed."""


class Opportunity(BaseModel):
    """One series at one track in one race week.

    Attributes:
        series_id: Series identifier.
        series_name: Display name of the series.
        track_id: Track (configuration) identifier.
        track_name: Display name of the track.
        license_required: Minimum license tier to enter.
        category: Racing discipline of the series.
        season_year: Season year, e.g. ``2025``.
        season_quarter: Season quarter, 1–4.
        race_week_num: Week number within the season.
        race_length: Race duration in minutes. Zero or negative values are
            accepted and scored as very short races.
        has_open_setup: ``True`` when car setups are open (not fixed).
        time_slots: Recurring session starts; may be empty.
        global_stats: Global statistics snapshot for this pair.
        repeat_minutes: Session repeat interval, or ``None`` for a fixed schedule.
    """

    model_config = ConfigDict(frozen=True)

    series_id: int
    series_name: str
    track_id: int
    track_name: str
    license_required: LicenseLevel = LicenseLevel.ROOKIE
    category: Category
    season_year: int
    season_quarter: int
    race_week_num: int
    race_length: float
    has_open_setup: bool = False
    time_slots: list[TimeSlot] = []
    global_stats: GlobalStats = GlobalStats()
    repeat_minutes: Optional[int] = None

    @field_validator("season_quarter")
    @classmethod
    def validate_season_quarter(cls, v: int) -> int:
        if not 1 <= v <= 4:
            raise ValueError(f"season_quarter must be in [1, 4], got {v}.")
        return v

    @property
    def pair(self) -> tuple[int, int]:
        """``(series_id, track_id)`` key of this opportunity."""
        return (self.series_id, self.track_id)
