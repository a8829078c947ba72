"""
Scoring taxonomy for race recommendations.

Four small vocabularies describe every scored opportunity:
  - ``RecommendationMode`` : the *why*, which goal the user is racing for.
  - ``RiskLevel``          : the *how risky*, iRating / Safety Rating exposure.
  - ``ConfidenceLevel``    : the *how sure*, how much personal data backs a factor.
  - ``GlobalStatsQuality`` : the *how solid*, sample quality of global statistics.

``Category`` and ``LicenseLevel`` mirror the external license data shape.
License classification policy itself lives outside this package; only the
ordering of license tiers is needed here.  ``MetricGrouping`` names the
grouping keys of the statistics provider's performance query.

This module has NO imports from any other ``race_scout`` package.
"""

from enum import StrEnum


class RecommendationMode(StrEnum):
    """Goal profile selecting the factor weight vector."""

    BALANCED = "balanced"
    """Even weighting across all eight factors."""

    IRATING_PUSH = "irating_push"
    """Performance and familiarity heavy; for users chasing iRating."""

    SAFETY_RECOVERY = "safety_recovery"
    """Safety and consistency heavy; for users rebuilding Safety Rating."""


class RiskLevel(StrEnum):
    """Exposure level for iRating or Safety Rating."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ConfidenceLevel(StrEnum):
    """How much personal data backs a factor."""

    HIGH = "high"
    """Enough personal races on the exact combination to trust them directly."""

    ESTIMATED = "estimated"
    """Some personal data, blended with global or cross-series estimates."""

    NO_DATA = "no_data"
    """No usable personal data; global statistics only."""


class GlobalStatsQuality(StrEnum):
    """Sample quality of the global statistics for a series/track pair."""

    HIGH = "high"
    MODERATE = "moderate"
    DEFAULT = "default"
    """Too few sample races; documented default numbers were substituted."""


class Category(StrEnum):
    """Racing discipline a license (and a series) belongs to."""

    OVAL = "oval"
    SPORTS_CAR = "sports_car"
    FORMULA_CAR = "formula_car"
    DIRT_OVAL = "dirt_oval"
    DIRT_ROAD = "dirt_road"


class LicenseLevel(StrEnum):
    """License tier, lowest to highest."""

    ROOKIE = "Rookie"
    D = "D"
    C = "C"
    B = "B"
    A = "A"
    PRO = "Pro"

    @property
    def group(self) -> int:
        """1-based license group (Rookie = 1 … Pro = 6)."""
        return _LICENSE_GROUPS[self]


_LICENSE_GROUPS: dict[LicenseLevel, int] = {
    LicenseLevel.ROOKIE: 1,
    LicenseLevel.D:      2,
    LicenseLevel.C:      3,
    LicenseLevel.B:      4,
    LicenseLevel.A:      5,
    LicenseLevel.PRO:    6,
}


class MetricGrouping(StrEnum):
    """How the statistics provider groups a user's performance metrics."""

    SERIES_TRACK = "series_track"
    SERIES = "series"
    TRACK = "track"
