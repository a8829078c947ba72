"""
Shared pytest fixtures for the race-scout test suite.

Provides:
  - ``make_opportunity``: factory for ``Opportunity`` with sensible defaults
    (series 100 at track 50, sports car, 20 minutes, no time slots).
  - ``make_history``: factory for ``UserHistory`` from compact arguments.
  - Sample domain objects built from those factories.

The builders themselves live in ``factories.py`` so test modules can import
them directly.
"""

from __future__ import annotations

from typing import Callable

import pytest

from factories import build_history, build_opportunity
from race_scout.models.history import LicenseClass, SeriesTrackHistory, UserHistory
from race_scout.models.opportunity import Opportunity, TimeSlot
from race_scout.taxonomy.scoring_taxonomy import Category, LicenseLevel


# ── Factories ─────────────────────────────────────────────────────────────────

@pytest.fixture
def make_opportunity() -> Callable[..., Opportunity]:
    return build_opportunity


@pytest.fixture
def make_history() -> Callable[..., UserHistory]:
    return build_history


# ── Sample domain objects ─────────────────────────────────────────────────────

@pytest.fixture
def sports_car_license() -> LicenseClass:
    """A mid-level sports car license: C 3.0, 1500 iRating."""
    return LicenseClass(
        category=Category.SPORTS_CAR,
        level=LicenseLevel.C,
        safety_rating=3.0,
        i_rating=1500.0,
    )


@pytest.fixture
def empty_history() -> UserHistory:
    """A brand new user: no races, no licenses."""
    return build_history()


@pytest.fixture
def veteran_history(sports_car_license: LicenseClass) -> UserHistory:
    """12 races on (100, 50) plus 8 elsewhere in the same series."""
    return build_history(
        records=[
            SeriesTrackHistory(
                series_id=100, track_id=50, race_count=12,
                avg_position_delta=2.0, avg_incidents=1.5, finish_position_std_dev=3.0,
            ),
            SeriesTrackHistory(
                series_id=100, track_id=60, race_count=8,
                avg_position_delta=0.5, avg_incidents=3.0, finish_position_std_dev=5.0,
            ),
        ],
        total_races=40,
        avg_incidents=2.0,
        avg_position_delta=1.0,
        overall_consistency=4.0,
        licenses=[sports_car_license],
    )


@pytest.fixture
def evening_slots() -> list[TimeSlot]:
    return [
        TimeSlot(hour=19, day_of_week=5, strength_of_field=1600, participant_count=24),
        TimeSlot(hour=14, day_of_week=6, strength_of_field=1550, participant_count=30),
    ]
