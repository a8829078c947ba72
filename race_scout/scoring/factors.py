"""
The eight scoring factors: pure functions of (opportunity, user history).

Every factor returns an int in [0, 100] where higher is always better, so
``fatigue_risk``, ``attrition_risk`` and ``time_volatility`` score 100 for the
*least* risky opportunity.

Personal-data factors (performance, safety, consistency) are computed in two
steps: an ``estimate_*`` function picks a data source and returns the raw
expected value together with the confidence label of the source it used, and
a ``*_score`` function maps the raw value onto 0–100.  The engine uses the
labels for its data-confidence report, so the report always mirrors the
branch actually taken.

Non-finite inputs never propagate: each factor substitutes a documented
default and logs the substitution at DEBUG.

    value                              default
    expected position delta            0.0 (at confidence 0.2)
    expected incidents per race        2.5
    finish-position std-dev            8.0
    strength-of-field variability      300
    attrition rate (%)                 15
    race length (min)                  60
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

from race_scout.config import ScoringConfig
from race_scout.models.history import SeriesTrackHistory, UserHistory
from race_scout.models.opportunity import Opportunity
from race_scout.scoring.confidence import CONSISTENCY_HIGH_AT, confidence_level, is_trusted
from race_scout.taxonomy.scoring_taxonomy import ConfidenceLevel, LicenseLevel
from race_scout.utils.math_utils import clamp as _clamp, round_half_up

logger = logging.getLogger(__name__)

DEFAULT_POSITION_DELTA = 0.0
DEFAULT_DELTA_CONFIDENCE = 0.2
DEFAULT_INCIDENTS = 2.5
DEFAULT_STD_DEV = 8.0
DEFAULT_SOF_VARIABILITY = 300.0
DEFAULT_ATTRITION_RATE = 15.0
DEFAULT_RACE_LENGTH = 60.0

# Cross-series performance estimate needs this many overall races.
CROSS_SERIES_MIN_RACES = 5


@dataclass(frozen=True)
class Estimate:
    """A raw expected value and the confidence label of its data source."""

    value:  float
    source: ConfidenceLevel


# ── Helpers ───────────────────────────────────────────────────────────────────


def _finite(value: float, default: float, name: str) -> float:
    """Return ``value`` if finite, else ``default`` (logged at DEBUG)."""
    if math.isfinite(value):
        return value
    logger.debug("Non-finite %s (%r); using default %s", name, value, default)
    return default


def _to_int_score(value: float) -> int:
    return int(_clamp(round_half_up(value), 0, 100))


def license_bonus(level: Optional[LicenseLevel]) -> int:
    """Expected-delta bonus for a license tier: Rookie −2 … Pro +3, none 0."""
    if level is None:
        return 0
    return level.group - 3


def race_length_factor(race_length: float) -> float:
    """Incident multiplier for an unfamiliar race of ``race_length`` minutes.

    ``clamp(1 + log2(length / 20) * 0.5, 0.8, 2.0)``: 20 minutes is neutral,
    each doubling adds half the base rate.  Non-positive lengths take the
    floor of 0.8; non-finite lengths are treated as 60 minutes.
    """
    length = _finite(race_length, DEFAULT_RACE_LENGTH, "race_length")
    if length <= 0:
        return 0.8
    return _clamp(1.0 + math.log2(length / 20.0) * 0.5, 0.8, 2.0)


# ── 1. Performance ────────────────────────────────────────────────────────────


def estimate_position_delta(
    opportunity: Opportunity,
    history: UserHistory,
    record: Optional[SeriesTrackHistory],
) -> tuple[float, float, ConfidenceLevel]:
    """Expected positions gained, with a 0–1 confidence and its source label.

    Sources, first match wins:
        1. ≥3 races on the exact pair → personal average delta, confidence 1.0.
        2. ≥5 overall races and a license in the category → overall delta
           plus ``clamp((iRating − avg SOF) / 200, −5, 5)``, confidence
           ``min(total / 10, 0.8)``.
        3. License tier bonus (−2 … +3, 0 without a license), confidence 0.3.
    """
    if record is not None and is_trusted(record.race_count):
        delta, confidence, source = record.avg_position_delta, 1.0, ConfidenceLevel.HIGH
    else:
        lic = history.license_for(opportunity.category)
        total = history.overall_stats.total_races
        if lic is not None and is_trusted(total, high_at=CROSS_SERIES_MIN_RACES):
            sof_adjustment = _clamp(
                (lic.i_rating - opportunity.global_stats.avg_strength_of_field) / 200.0,
                -5.0, 5.0,
            )
            delta = history.overall_stats.avg_position_delta + sof_adjustment
            confidence = min(total / 10.0, 0.8)
            source = ConfidenceLevel.ESTIMATED
        else:
            delta = float(license_bonus(lic.level if lic else None))
            confidence, source = 0.3, ConfidenceLevel.NO_DATA

    if not math.isfinite(delta):
        logger.debug("Non-finite expected position delta; using default")
        return DEFAULT_POSITION_DELTA, DEFAULT_DELTA_CONFIDENCE, ConfidenceLevel.NO_DATA
    return delta, confidence, source


def performance_score(expected_delta: float, confidence: float) -> int:
    """Map a delta in [−10, 10] to 0–100, shrunk toward 50 by ``1 − confidence``."""
    base = (_clamp(expected_delta, -10.0, 10.0) + 10.0) / 20.0 * 100.0
    return _to_int_score(base * confidence + 50.0 * (1.0 - confidence))


def performance_factor(opportunity: Opportunity, history: UserHistory) -> int:
    record = history.history_for(opportunity.series_id, opportunity.track_id)
    delta, confidence, _ = estimate_position_delta(opportunity, history, record)
    return performance_score(delta, confidence)


# ── 2. Safety ─────────────────────────────────────────────────────────────────


def estimate_incidents(
    opportunity: Opportunity,
    history: UserHistory,
    record: Optional[SeriesTrackHistory],
) -> Estimate:
    """Expected incidents per race.

    Familiar pairs (≥3 exact races) use the personal average unchanged, so
    race length has no effect.  Otherwise the global rate is scaled by
    ``race_length_factor`` and, when the user has ≥3 overall races and a
    license in the category, blended with their overall rate adjusted by
    ``(3.0 − SR) * 0.5`` at personal weight ``min(total / 10, 0.7)``.
    A non-finite result falls back to 2.5 incidents labelled NO_DATA.
    """
    if record is not None and is_trusted(record.race_count):
        incidents, source = record.avg_incidents, ConfidenceLevel.HIGH
    else:
        global_rate = max(
            0.0,
            _finite(
                opportunity.global_stats.avg_incidents_per_race,
                DEFAULT_INCIDENTS,
                "global avg_incidents_per_race",
            ),
        )
        global_rate *= race_length_factor(opportunity.race_length)

        lic = history.license_for(opportunity.category)
        total = history.overall_stats.total_races
        if lic is not None and is_trusted(total):
            sr_adjustment = (3.0 - lic.safety_rating) * 0.5
            personal_weight = min(total / 10.0, 0.7)
            personal = _clamp(
                history.overall_stats.avg_incidents_per_race + sr_adjustment, 0.0, math.inf
            )
            incidents = personal * personal_weight + global_rate * (1.0 - personal_weight)
            source = ConfidenceLevel.ESTIMATED
        else:
            sr_adjustment = (3.0 - lic.safety_rating) * 0.5 if lic is not None else 0.0
            incidents = _clamp(global_rate + sr_adjustment, 0.0, math.inf)
            source = ConfidenceLevel.NO_DATA

    if not math.isfinite(incidents):
        logger.debug("Non-finite expected incidents; using default")
        return Estimate(DEFAULT_INCIDENTS, ConfidenceLevel.NO_DATA)
    return Estimate(incidents, source)


def safety_score(incidents: float, config: ScoringConfig) -> int:
    """``(1 − incidents / ceiling) * 100`` with the high-incident penalty.

    Incidents in (threshold, ceiling] lose a further
    ``floor((incidents − threshold) * slope)`` points.
    """
    ceiling = config.incident_ceiling
    score = round_half_up((1.0 - _clamp(incidents, 0.0, ceiling) / ceiling) * 100.0)
    if config.high_incident_threshold < incidents <= ceiling:
        score -= math.floor(
            (incidents - config.high_incident_threshold) * config.high_incident_penalty_slope
        )
    return _to_int_score(score)


def safety_factor(
    opportunity: Opportunity,
    history: UserHistory,
    config: Optional[ScoringConfig] = None,
) -> int:
    record = history.history_for(opportunity.series_id, opportunity.track_id)
    estimate = estimate_incidents(opportunity, history, record)
    return safety_score(estimate.value, config or ScoringConfig())


# ── 3. Consistency ────────────────────────────────────────────────────────────


def estimate_finish_std_dev(
    opportunity: Opportunity,
    history: UserHistory,
    record: Optional[SeriesTrackHistory],
) -> Estimate:
    """Expected finishing-position standard deviation.

    ≥5 exact races → personal std-dev.  Otherwise the global std-dev blended
    with the exact-pair std-dev at weight ``min(race_count / 5, 0.6)``; with
    no exact record the global value is used alone.
    """
    source = confidence_level(record.race_count if record else 0, high_at=CONSISTENCY_HIGH_AT)
    if source is ConfidenceLevel.HIGH:
        std_dev = record.finish_position_std_dev
    else:
        global_sd = _finite(
            opportunity.global_stats.avg_finish_position_std_dev,
            DEFAULT_STD_DEV,
            "global avg_finish_position_std_dev",
        )
        personal_weight = min(record.race_count / 5.0, 0.6) if record else 0.0
        if personal_weight > 0:
            std_dev = (
                record.finish_position_std_dev * personal_weight
                + global_sd * (1.0 - personal_weight)
            )
        else:
            std_dev = global_sd
    return Estimate(_finite(std_dev, DEFAULT_STD_DEV, "finish std-dev"), source)


def consistency_score(std_dev: float) -> int:
    """``(1 − sd / 15) * 100``, sd clamped to [0, 15]."""
    return _to_int_score((1.0 - _clamp(std_dev, 0.0, 15.0) / 15.0) * 100.0)


def consistency_factor(opportunity: Opportunity, history: UserHistory) -> int:
    record = history.history_for(opportunity.series_id, opportunity.track_id)
    return consistency_score(estimate_finish_std_dev(opportunity, history, record).value)


# ── 4. Predictability ─────────────────────────────────────────────────────────


def predictability_factor(opportunity: Opportunity, history: UserHistory) -> int:
    """Lower SOF variability is more predictable.

    A user whose iRating sits more than 300 from the average SOF adds
    ``min(200, (gap − 300) / 2)`` to the variability.
    """
    gs = opportunity.global_stats
    variability = _finite(
        gs.strength_of_field_variability, DEFAULT_SOF_VARIABILITY, "SOF variability"
    )
    lic = history.license_for(opportunity.category)
    if lic is not None:
        gap = abs(lic.i_rating - gs.avg_strength_of_field)
        if math.isfinite(gap) and gap > 300:
            variability += min(200.0, (gap - 300.0) / 2.0)
    return _to_int_score((1.0 - _clamp(variability, 0.0, 2000.0) / 2000.0) * 100.0)


# ── 5. Familiarity ────────────────────────────────────────────────────────────


def _exact_experience_score(races: int) -> float:
    if races <= 0:
        return 0.0
    if races == 1:
        return 30.0
    if races <= 4:
        return 30.0 + (races - 1) / 3.0 * 30.0
    if races <= 9:
        return 100.0
    # 10+ exact races alone must clear 80 after the 0.6 weight.
    return 133.0


def _series_experience_score(races: int) -> float:
    if races <= 0:
        return 0.0
    if races <= 3:
        return 20.0
    if races <= 10:
        return 20.0 + (races - 3) / 7.0 * 40.0
    if races <= 20:
        return 60.0 + (races - 10) / 10.0 * 30.0
    return 90.0


def _track_experience_score(races: int) -> float:
    if races <= 0:
        return 0.0
    if races <= 3:
        return 15.0
    if races <= 10:
        return 15.0 + (races - 3) / 7.0 * 35.0
    if races <= 20:
        return 50.0 + (races - 10) / 10.0 * 30.0
    return 80.0


def familiarity_factor(opportunity: Opportunity, history: UserHistory) -> int:
    """60% exact pair, 25% same series any track, 15% same track any series."""
    record = history.history_for(opportunity.series_id, opportunity.track_id)
    weighted = (
        _exact_experience_score(record.race_count if record else 0) * 0.60
        + _series_experience_score(history.series_race_count(opportunity.series_id)) * 0.25
        + _track_experience_score(history.track_race_count(opportunity.track_id)) * 0.15
    )
    return _to_int_score(min(100.0, weighted))


# ── 6–8. Opportunity-only factors ─────────────────────────────────────────────


def fatigue_risk_factor(opportunity: Opportunity) -> int:
    length = _finite(opportunity.race_length, DEFAULT_RACE_LENGTH, "race_length")
    if length <= 30:
        score = 90
    elif length <= 60:
        score = 70
    elif length <= 120:
        score = 50
    else:
        score = 30
    if opportunity.has_open_setup:
        score -= 15
    return _to_int_score(score)


def attrition_risk_factor(opportunity: Opportunity) -> int:
    rate = _finite(opportunity.global_stats.attrition_rate, DEFAULT_ATTRITION_RATE, "attrition_rate")
    return _to_int_score((1.0 - _clamp(rate, 0.0, 50.0) / 50.0) * 100.0)


def time_volatility_factor(opportunity: Opportunity) -> int:
    """Mean per-slot stability; 50 when the opportunity has no time slots.

    Per slot, from 100: −30 late night (22:00–06:59), −20 early morning
    (03:00–07:59), +10 Friday from 18:00, +15 Saturday or Sunday, −25 under
    10 participants.  Each slot is clamped to [0, 100] before averaging.
    """
    if not opportunity.time_slots:
        return 50

    slot_scores: list[float] = []
    for slot in opportunity.time_slots:
        value = 100
        if slot.hour >= 22 or slot.hour <= 6:
            value -= 30
        if 3 <= slot.hour <= 7:
            value -= 20
        if slot.day_of_week == 5 and slot.hour >= 18:
            value += 10
        if slot.day_of_week in (0, 6):
            value += 15
        if slot.participant_count < 10:
            value -= 25
        slot_scores.append(_clamp(value, 0, 100))

    return _to_int_score(sum(slot_scores) / len(slot_scores))
