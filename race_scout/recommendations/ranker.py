"""
Recommendation ranker: scores a set of opportunities for one user and orders
them for display.

Usage flow
----------
1. score_opportunities(opportunities, history, mode, engine, cache)
   -> list[ScoredOpportunity]   (one per opportunity, input order)

2. rank_opportunities(scored, min_score, max_results, priority_margin)
   -> list[ScoredOpportunity]   (filtered, ordered, truncated)

3. build_recommendations(...) optionally narrows to one category, runs 1–2
   and attaches an ExperienceSummary and RecommendationMetadata;
   compare_modes(...) runs 1–2 once per mode.

4. analyze_opportunity(...) scores one (series, track) pair, or returns None.

Ordering
--------
Two opportunities whose priority scores differ by more than
``priority_margin`` are ordered by priority; otherwise by overall score.
Remaining ties fall back to ``(series_id, track_id)`` so the order is
deterministic.  The margin comparison is not transitive, so with three or
more close priorities the final order depends on the sort's merge sequence;
it is still fully determined by the input order.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from functools import cmp_to_key
from typing import Any, Optional, Sequence

from race_scout.cache.keys import score_key
from race_scout.cache.ttl_cache import CacheStats, TTLCache
from race_scout.config import RankingConfig
from race_scout.models.history import UserHistory
from race_scout.models.opportunity import Opportunity
from race_scout.models.score import Score
from race_scout.scoring.engine import ScoringEngine
from race_scout.taxonomy.scoring_taxonomy import Category, ConfidenceLevel, RecommendationMode

logger = logging.getLogger(__name__)

_TOP_EXPERIENCE = 5


@dataclass(frozen=True)
class ScoredOpportunity:
    """An opportunity paired with its score.

    Attributes:
        opportunity: The scored opportunity.
        score:       Its ``Score`` under the requested mode.
        from_cache:  ``True`` when the score was served from the cache.
    """

    opportunity: Opportunity
    score:       Score
    from_cache:  bool = False

    @property
    def pair(self) -> tuple[int, int]:
        return self.opportunity.pair

    def to_dict(self) -> dict[str, Any]:
        opp = self.opportunity
        return {
            "series_id":   opp.series_id,
            "series_name": opp.series_name,
            "track_id":    opp.track_id,
            "track_name":  opp.track_name,
            "race_length": opp.race_length,
            "score":       self.score.to_dict(),
        }


@dataclass(frozen=True)
class ExperienceSummary:
    """A user's racing footprint.

    ``most_raced_series`` / ``most_raced_tracks`` hold up to five
    ``(id, race_count)`` tuples, most raced first.
    """

    total_races:            int
    series_with_experience: int
    tracks_with_experience: int
    most_raced_series:      list[tuple[int, int]] = field(default_factory=list)
    most_raced_tracks:      list[tuple[int, int]] = field(default_factory=list)


@dataclass(frozen=True)
class RecommendationMetadata:
    """Confidence breakdown of a recommendation list plus cache status.

    A recommendation counts as high confidence when both performance and
    safety are HIGH, as estimated when either is ESTIMATED, else as no data.
    ``cache_status`` is ``"hit"`` when the cache hit rate exceeds 0.5.
    """

    total_opportunities:   int
    returned:              int
    high_confidence_count: int
    estimated_count:       int
    no_data_count:         int
    cache_status:          str
    cache_hit_rate:        float


@dataclass(frozen=True)
class Recommendations:
    mode:            RecommendationMode
    recommendations: list[ScoredOpportunity]
    experience:      ExperienceSummary
    metadata:        RecommendationMetadata


# ── Scoring ───────────────────────────────────────────────────────────────────


def score_opportunities(
    opportunities: Sequence[Opportunity],
    user_history:  UserHistory,
    mode:          RecommendationMode | str,
    engine:        Optional[ScoringEngine] = None,
    cache:         Optional[TTLCache] = None,
    ttl_s:         float = 60.0,
) -> list[ScoredOpportunity]:
    """Score every opportunity, optionally through ``cache`` keyed on the inputs."""
    engine = engine or ScoringEngine()
    mode = RecommendationMode(mode)
    scored: list[ScoredOpportunity] = []

    for opp in opportunities:
        if cache is None:
            scored.append(ScoredOpportunity(opp, engine.score(opp, user_history, mode)))
            continue

        key = score_key(opp, user_history, mode, engine.config)
        cached = cache.get(key)
        if cached is not None:
            scored.append(ScoredOpportunity(opp, cached, from_cache=True))
            continue
        result = engine.score(opp, user_history, mode)
        cache.set(key, result, ttl_s)
        scored.append(ScoredOpportunity(opp, result))

    return scored


# ── Ranking ───────────────────────────────────────────────────────────────────


def _comparator(priority_margin: int):
    def compare(a: ScoredOpportunity, b: ScoredOpportunity) -> int:
        priority_diff = b.score.priority_score - a.score.priority_score
        if abs(priority_diff) > priority_margin:
            return priority_diff
        overall_diff = b.score.overall - a.score.overall
        if overall_diff:
            return overall_diff
        return (a.pair > b.pair) - (a.pair < b.pair)

    return compare


def rank_opportunities(
    scored:          Sequence[ScoredOpportunity],
    min_score:       int = 0,
    max_results:     int = 20,
    priority_margin: int = 5,
) -> list[ScoredOpportunity]:
    """Drop scores below ``min_score``, order, and keep the first ``max_results``."""
    eligible = [s for s in scored if s.score.overall >= min_score]
    ordered = sorted(eligible, key=cmp_to_key(_comparator(priority_margin)))
    return ordered[:max_results]


# ── Reporting ─────────────────────────────────────────────────────────────────


def experience_summary(user_history: UserHistory) -> ExperienceSummary:
    series_counts: Counter[int] = Counter()
    track_counts: Counter[int] = Counter()
    for h in user_history.series_track_history:
        series_counts[h.series_id] += h.race_count
        track_counts[h.track_id] += h.race_count

    def top(counts: Counter[int]) -> list[tuple[int, int]]:
        return sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))[:_TOP_EXPERIENCE]

    return ExperienceSummary(
        total_races=user_history.overall_stats.total_races,
        series_with_experience=len(series_counts),
        tracks_with_experience=len(track_counts),
        most_raced_series=top(series_counts),
        most_raced_tracks=top(track_counts),
    )


def build_metadata(
    recommendations:     Sequence[ScoredOpportunity],
    total_opportunities: int,
    cache_stats:         Optional[CacheStats] = None,
) -> RecommendationMetadata:
    high = estimated = no_data = 0
    for rec in recommendations:
        dc = rec.score.data_confidence
        if dc.performance is ConfidenceLevel.HIGH and dc.safety is ConfidenceLevel.HIGH:
            high += 1
        elif ConfidenceLevel.ESTIMATED in (dc.performance, dc.safety):
            estimated += 1
        else:
            no_data += 1

    hit_rate = cache_stats.hit_rate if cache_stats is not None else 0.0
    return RecommendationMetadata(
        total_opportunities=total_opportunities,
        returned=len(recommendations),
        high_confidence_count=high,
        estimated_count=estimated,
        no_data_count=no_data,
        cache_status="hit" if hit_rate > 0.5 else "miss",
        cache_hit_rate=hit_rate,
    )


def filter_by_category(
    opportunities: Sequence[Opportunity],
    category:      Category | str,
) -> list[Opportunity]:
    """Opportunities in ``category``, input order kept.

    Raises:
        ValueError: If ``category`` is not a known ``Category`` value.
    """
    wanted = Category(category)
    return [opp for opp in opportunities if opp.category == wanted]


def build_recommendations(
    opportunities: Sequence[Opportunity],
    user_history:  UserHistory,
    mode:          RecommendationMode | str,
    engine:        Optional[ScoringEngine] = None,
    config:        Optional[RankingConfig] = None,
    cache:         Optional[TTLCache] = None,
    ttl_s:         float = 60.0,
    category:      Category | str | None = None,
) -> Recommendations:
    """Score, rank and summarise ``opportunities`` for one user.

    With ``category`` set, only opportunities in that discipline are scored;
    ``metadata.total_opportunities`` still counts the unfiltered input.
    """
    config = config or RankingConfig()
    mode = RecommendationMode(mode)
    candidates = (
        filter_by_category(opportunities, category) if category is not None else opportunities
    )
    scored = score_opportunities(candidates, user_history, mode, engine, cache, ttl_s)
    ranked = rank_opportunities(
        scored, config.min_score, config.max_results, config.priority_margin
    )
    metadata = build_metadata(
        ranked, len(opportunities), cache.stats() if cache is not None else None
    )
    logger.info(
        "Recommendations [%s] for user %s: %d of %d opportunities | high=%d est=%d none=%d",
        mode, user_history.user_id, len(ranked), len(opportunities),
        metadata.high_confidence_count, metadata.estimated_count, metadata.no_data_count,
    )
    return Recommendations(
        mode=mode,
        recommendations=ranked,
        experience=experience_summary(user_history),
        metadata=metadata,
    )


def compare_modes(
    opportunities:   Sequence[Opportunity],
    user_history:    UserHistory,
    engine:          Optional[ScoringEngine] = None,
    top_n:           int = 10,
    priority_margin: int = 5,
) -> dict[RecommendationMode, list[ScoredOpportunity]]:
    """Top ``top_n`` opportunities under each mode."""
    engine = engine or ScoringEngine()
    return {
        mode: rank_opportunities(
            score_opportunities(opportunities, user_history, mode, engine),
            min_score=0,
            max_results=top_n,
            priority_margin=priority_margin,
        )
        for mode in RecommendationMode
    }


def analyze_opportunity(
    opportunities: Sequence[Opportunity],
    user_history:  UserHistory,
    series_id:     int,
    track_id:      int,
    mode:          RecommendationMode | str,
    engine:        Optional[ScoringEngine] = None,
) -> Optional[ScoredOpportunity]:
    """Score the single opportunity for ``(series_id, track_id)``.

    Returns ``None`` when no opportunity matches the pair.
    """
    mode = RecommendationMode(mode)
    for opp in opportunities:
        if opp.pair == (series_id, track_id):
            engine = engine or ScoringEngine()
            return ScoredOpportunity(opp, engine.score(opp, user_history, mode))
    logger.debug("No opportunity for series %s at track %s", series_id, track_id)
    return None
