"""
Score output models.

``Score`` is the result of one scoring call: an overall 0–100 rating, the
eight factor scores it was blended from, two risk levels, a per-factor data
confidence report, a priority score used only for ordering, and
human-readable reasoning.

Scores are never persisted. They are frozen dataclasses so that two calls
with identical inputs compare equal field-for-field.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from race_scout.taxonomy.scoring_taxonomy import ConfidenceLevel, GlobalStatsQuality, RiskLevel

FACTOR_NAMES: tuple[str, ...] = (
    "performance",
    "safety",
    "consistency",
    "predictability",
    "familiarity",
    "fatigue_risk",
    "attrition_risk",
    "time_volatility",
)


@dataclass(frozen=True)
class FactorScores:
    """The eight independent factor scores, each an int in [0, 100].

    Higher is always better: ``fatigue_risk``, ``attrition_risk`` and
    ``time_volatility`` are scored so that 100 means *least* risk.
    """

    performance:     int
    safety:          int
    consistency:     int
    predictability:  int
    familiarity:     int
    fatigue_risk:    int
    attrition_risk:  int
    time_volatility: int

    def as_dict(self) -> dict[str, int]:
        return {name: getattr(self, name) for name in FACTOR_NAMES}


@dataclass(frozen=True)
class DataConfidence:
    """Which data source backs each personal-data factor."""

    performance: ConfidenceLevel
    safety:      ConfidenceLevel
    consistency: ConfidenceLevel
    familiarity: ConfidenceLevel
    global_stats: GlobalStatsQuality


@dataclass(frozen=True)
class Score:
    """Complete scoring result for one (opportunity, user history, mode) triple.

    Attributes:
        overall:            Weighted 0–100 score under the requested mode.
        factors:            The eight mode-independent factor scores.
        i_rating_risk:      iRating exposure.
        safety_rating_risk: Safety Rating exposure.
        data_confidence:    Per-factor data confidence report.
        priority_score:     0–100; biases ordering toward familiar content.
        reasoning:          Ordered human-readable explanation strings.
    """

    overall:            int
    factors:            FactorScores
    i_rating_risk:      RiskLevel
    safety_rating_risk: RiskLevel
    data_confidence:    DataConfidence
    priority_score:     int
    reasoning:          tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly representation (enums become their string values)."""
        payload = asdict(self)
        payload["i_rating_risk"] = self.i_rating_risk.value
        payload["safety_rating_risk"] = self.safety_rating_risk.value
        payload["reasoning"] = list(self.reasoning)
        payload["data_confidence"] = {
            key: val.value for key, val in asdict(self.data_confidence).items()
        }
        return payload
