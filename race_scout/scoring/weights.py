"""
Mode weight table.

Each ``RecommendationMode`` selects one fixed weight vector over the eight
factors.  Every vector is non-negative and sums to 1.0, so the weighted
overall score stays on the same 0–100 scale as the factors.

    factor            balanced  irating_push  safety_recovery
    performance         0.15       0.25          0.05
    safety              0.15       0.10          0.30
    consistency         0.15       0.10          0.20
    predictability      0.10       0.15          0.15
    familiarity         0.15       0.20          0.15
    fatigue_risk        0.10       0.05          0.05
    attrition_risk      0.10       0.10          0.05
    time_volatility     0.10       0.05          0.05
"""

from __future__ import annotations

from dataclasses import dataclass

from race_scout.models.score import FACTOR_NAMES, FactorScores
from race_scout.taxonomy.scoring_taxonomy import RecommendationMode
from race_scout.utils.math_utils import round_half_up


@dataclass(frozen=True)
class ModeWeights:
    """Weight per factor for one mode."""

    performance:     float
    safety:          float
    consistency:     float
    predictability:  float
    familiarity:     float
    fatigue_risk:    float
    attrition_risk:  float
    time_volatility: float

    def as_dict(self) -> dict[str, float]:
        return {name: getattr(self, name) for name in FACTOR_NAMES}

    @property
    def total(self) -> float:
        return sum(self.as_dict().values())


MODE_WEIGHTS: dict[RecommendationMode, ModeWeights] = {
    RecommendationMode.BALANCED: ModeWeights(
        performance=0.15,
        safety=0.15,
        consistency=0.15,
        predictability=0.10,
        familiarity=0.15,
        fatigue_risk=0.10,
        attrition_risk=0.10,
        time_volatility=0.10,
    ),
    RecommendationMode.IRATING_PUSH: ModeWeights(
        performance=0.25,
        safety=0.10,
        consistency=0.10,
        predictability=0.15,
        familiarity=0.20,
        fatigue_risk=0.05,
        attrition_risk=0.10,
        time_volatility=0.05,
    ),
    RecommendationMode.SAFETY_RECOVERY: ModeWeights(
        performance=0.05,
        safety=0.30,
        consistency=0.20,
        predictability=0.15,
        familiarity=0.15,
        fatigue_risk=0.05,
        attrition_risk=0.05,
        time_volatility=0.05,
    ),
}


def get_mode_weights(mode: RecommendationMode | str) -> ModeWeights:
    """Look up the weight vector for ``mode``.

    Raises:
        ValueError: If ``mode`` is not a known ``RecommendationMode`` value.
    """
    return MODE_WEIGHTS[RecommendationMode(mode)]


def weighted_overall(factors: FactorScores, weights: ModeWeights) -> int:
    """Σ factor × weight rounded half up, clamped to [0, 100]."""
    total = sum(
        getattr(factors, name) * getattr(weights, name) for name in FACTOR_NAMES
    )
    return max(0, min(100, round_half_up(total)))
