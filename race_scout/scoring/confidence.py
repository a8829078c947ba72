"""
Confidence classification for personal racing data.

One rule decides whether personal data on a (series, track) pair is
trustworthy enough to replace global or cross-series estimates:

    observations >= high_at (3)  → HIGH       (trust personal data)
    observations >= 1            → ESTIMATED  (blend with estimates)
    otherwise                    → NO_DATA

Consistency needs a larger sample for a meaningful standard deviation and
uses the same rule with ``high_at=CONSISTENCY_HIGH_AT`` (5).
"""

from __future__ import annotations

from race_scout.taxonomy.scoring_taxonomy import ConfidenceLevel

HIGH_CONFIDENCE_RACES = 3
CONSISTENCY_HIGH_AT = 5


def confidence_level(
    observation_count: int,
    high_at: int = HIGH_CONFIDENCE_RACES,
) -> ConfidenceLevel:
    """Classify an observation count.

    Args:
        observation_count: Number of races backing a statistic.
        high_at:           Minimum count for ``HIGH`` (default 3).

    Returns:
        ``HIGH``, ``ESTIMATED`` or ``NO_DATA``.
    """
    if observation_count >= high_at:
        return ConfidenceLevel.HIGH
    if observation_count >= 1:
        return ConfidenceLevel.ESTIMATED
    return ConfidenceLevel.NO_DATA


def is_trusted(observation_count: int, high_at: int = HIGH_CONFIDENCE_RACES) -> bool:
    """``True`` when ``observation_count`` classifies as ``HIGH``."""
    return confidence_level(observation_count, high_at) is ConfidenceLevel.HIGH
