"""
Scoring engine: one (opportunity, user history, mode) triple in, one ``Score`` out.

The engine is pure and synchronous.  It performs no I/O, holds no mutable
state, and can be shared across threads and tasks.  ``mode`` is only a lookup
into the weight table, so factor scores are identical across modes.

Risk levels
-----------
    iRating risk       : HIGH   if performance < 40 or predictability < 30
                         MEDIUM if performance < 60 or predictability < 60
    Safety Rating risk : HIGH   if safety < 40 or attrition_risk < 30
                         MEDIUM if safety < 60 or attrition_risk < 60
    otherwise LOW.

Priority score (ordering only, never displayed)
-----------------------------------------------
    50
    + 30 if ≥3 races on the exact pair
    + 10 / 5 / 5 for HIGH confidence on performance / safety / consistency
    + 15 (≥10) or 10 (≥5) races in the series on any track
    + 10 (≥10) or  5 (≥5) races at the track in any series
    capped at 100.
"""

from __future__ import annotations

import logging
from typing import Optional

from race_scout.config import ScoringConfig
from race_scout.models.history import UserHistory
from race_scout.models.opportunity import Opportunity
from race_scout.models.score import DataConfidence, FactorScores, Score
from race_scout.scoring import factors as f
from race_scout.scoring.confidence import confidence_level, is_trusted
from race_scout.scoring.weights import get_mode_weights, weighted_overall
from race_scout.taxonomy.scoring_taxonomy import ConfidenceLevel, RecommendationMode, RiskLevel

logger = logging.getLogger(__name__)


class ScoringEngine:
    """Scores racing opportunities against a user's history.

    Args:
        config: Safety calibration and default mode.  ``None`` uses the
            built-in ``ScoringConfig()`` defaults.
    """

    def __init__(self, config: Optional[ScoringConfig] = None) -> None:
        self.config = config or ScoringConfig()

    def score(
        self,
        opportunity: Opportunity,
        user_history: UserHistory,
        mode: RecommendationMode | str | None = None,
    ) -> Score:
        """Score one opportunity.

        Args:
            opportunity:  The race to rate.
            user_history: The user's aggregated history; may be empty.
            mode:         Weighting profile.  ``None`` uses ``config.default_mode``.

        Returns:
            A fully populated ``Score``.  Never raises for numeric input.

        Raises:
            ValueError: If ``mode`` is not a known ``RecommendationMode`` value.
        """
        weights = get_mode_weights(mode or self.config.default_mode)
        record = user_history.history_for(opportunity.series_id, opportunity.track_id)

        delta, delta_confidence, performance_source = f.estimate_position_delta(
            opportunity, user_history, record
        )
        incidents = f.estimate_incidents(opportunity, user_history, record)
        std_dev = f.estimate_finish_std_dev(opportunity, user_history, record)

        factors = FactorScores(
            performance=f.performance_score(delta, delta_confidence),
            safety=f.safety_score(incidents.value, self.config),
            consistency=f.consistency_score(std_dev.value),
            predictability=f.predictability_factor(opportunity, user_history),
            familiarity=f.familiarity_factor(opportunity, user_history),
            fatigue_risk=f.fatigue_risk_factor(opportunity),
            attrition_risk=f.attrition_risk_factor(opportunity),
            time_volatility=f.time_volatility_factor(opportunity),
        )

        exact_races = record.race_count if record else 0
        data_confidence = DataConfidence(
            performance=performance_source,
            safety=incidents.source,
            consistency=std_dev.source,
            familiarity=confidence_level(exact_races),
            global_stats=opportunity.global_stats.data_quality,
        )

        return Score(
            overall=weighted_overall(factors, weights),
            factors=factors,
            i_rating_risk=i_rating_risk(factors),
            safety_rating_risk=safety_rating_risk(factors),
            data_confidence=data_confidence,
            priority_score=priority_score(opportunity, user_history, data_confidence),
            reasoning=build_reasoning(factors, opportunity),
        )


def i_rating_risk(factors: FactorScores) -> RiskLevel:
    if factors.performance < 40 or factors.predictability < 30:
        return RiskLevel.HIGH
    if factors.performance < 60 or factors.predictability < 60:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def safety_rating_risk(factors: FactorScores) -> RiskLevel:
    if factors.safety < 40 or factors.attrition_risk < 30:
        return RiskLevel.HIGH
    if factors.safety < 60 or factors.attrition_risk < 60:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def priority_score(
    opportunity: Opportunity,
    user_history: UserHistory,
    data_confidence: DataConfidence,
) -> int:
    """Ordering bias toward familiar content; see module docstring."""
    record = user_history.history_for(opportunity.series_id, opportunity.track_id)
    priority = 50

    if record is not None and is_trusted(record.race_count):
        priority += 30

    if data_confidence.performance is ConfidenceLevel.HIGH:
        priority += 10
    if data_confidence.safety is ConfidenceLevel.HIGH:
        priority += 5
    if data_confidence.consistency is ConfidenceLevel.HIGH:
        priority += 5

    series_races = user_history.series_race_count(opportunity.series_id)
    if series_races >= 10:
        priority += 15
    elif series_races >= 5:
        priority += 10

    track_races = user_history.track_race_count(opportunity.track_id)
    if track_races >= 10:
        priority += 10
    elif track_races >= 5:
        priority += 5

    return min(100, priority)


def build_reasoning(factors: FactorScores, opportunity: Opportunity) -> tuple[str, ...]:
    """Explanation strings in fixed evaluation order (never sorted)."""
    reasons: list[str] = []

    if factors.performance >= 70:
        reasons.append("Strong expected performance based on your history")
    elif factors.performance <= 30:
        reasons.append("Challenging track/series combination for your skill level")

    if factors.safety >= 70:
        reasons.append("Low incident risk based on series safety record")
    elif factors.safety <= 30:
        reasons.append("High incident risk - proceed with caution")

    if factors.familiarity >= 70:
        reasons.append("High familiarity with this series/track combination")
    elif factors.familiarity == 0:
        reasons.append("New series/track combination - consider practice first")

    if factors.fatigue_risk <= 30:
        reasons.append(f"Long race ({opportunity.race_length:g} min) may cause fatigue")

    if opportunity.has_open_setup:
        reasons.append("Open setup series requires additional preparation time")

    return tuple(reasons)


def score(
    opportunity: Opportunity,
    user_history: UserHistory,
    mode: RecommendationMode | str = RecommendationMode.BALANCED,
    config: Optional[ScoringConfig] = None,
) -> Score:
    """Convenience wrapper: ``ScoringEngine(config).score(...)``."""
    return ScoringEngine(config).score(opportunity, user_history, mode)
