"""
Cache key spaces and their TTLs.

    key space              format                                  TTL (CacheConfig)
    global_stats           global_stats:{series}:{track}           global_stats_ttl_s
    user_performance       user_performance:{user}:{group_by}      user_performance_ttl_s
    batch_global_stats     batch_global_stats:{s:t,s:t,...}        batch_ttl_s
    score                  score:{sha256 of inputs}                score_ttl_s

Score keys hash the full canonical input, so a cached score is never served
for a changed opportunity, history, mode or scoring calibration.
"""

from __future__ import annotations

import hashlib
import json
from typing import Iterable, Optional

from race_scout.config import CacheConfig, ScoringConfig
from race_scout.models.history import UserHistory
from race_scout.models.opportunity import Opportunity
from race_scout.taxonomy.scoring_taxonomy import RecommendationMode

GLOBAL_STATS = "global_stats"
USER_PERFORMANCE = "user_performance"
BATCH_GLOBAL_STATS = "batch_global_stats"
SCORE = "score"


def global_stats_key(series_id: int, track_id: int) -> str:
    return f"{GLOBAL_STATS}:{series_id}:{track_id}"


def user_performance_key(user_id: str, group_by: str = "series_track") -> str:
    return f"{USER_PERFORMANCE}:{user_id}:{group_by}"


def batch_global_stats_key(pairs: Iterable[tuple[int, int]]) -> str:
    """Order-independent key for a set of (series_id, track_id) pairs."""
    joined = ",".join(f"{s}:{t}" for s, t in sorted(set(pairs)))
    return f"{BATCH_GLOBAL_STATS}:{joined}"


def score_key(
    opportunity: Opportunity,
    user_history: UserHistory,
    mode: RecommendationMode | str,
    scoring_config: Optional[ScoringConfig] = None,
) -> str:
    """Hash of every input that can change a score, engine calibration included."""
    payload = {
        "opportunity": opportunity.model_dump(mode="json"),
        "user_history": user_history.model_dump(mode="json"),
        "mode": RecommendationMode(mode).value,
        "scoring_config": (scoring_config or ScoringConfig()).model_dump(mode="json"),
    }
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return f"{SCORE}:{hashlib.sha256(canonical.encode('utf-8')).hexdigest()}"


def ttl_for(key: str, config: CacheConfig) -> float:
    """TTL in seconds for ``key`` according to its key space.

    Raises:
        ValueError: If ``key`` does not belong to a known key space.
    """
    space = key.split(":", 1)[0]
    table = {
        GLOBAL_STATS:       config.global_stats_ttl_s,
        USER_PERFORMANCE:   config.user_performance_ttl_s,
        BATCH_GLOBAL_STATS: config.batch_ttl_s,
        SCORE:              config.score_ttl_s,
    }
    if space not in table:
        raise ValueError(f"Unknown cache key space '{space}' in key '{key}'.")
    return table[space]
