"""
Tests for race_scout/cache/keys.py.

What we test
------------
  - Key formats for each key space.
  - Batch keys are order- and duplicate-independent.
  - Score keys change with any input and are stable for equal inputs.
  - ttl_for() maps each key space to its configured TTL.
"""

from __future__ import annotations

import pytest

from factories import build_history, build_opportunity
from race_scout.cache.keys import (
    batch_global_stats_key,
    global_stats_key,
    score_key,
    ttl_for,
    user_performance_key,
)
from race_scout.config import CacheConfig, ScoringConfig
from race_scout.taxonomy.scoring_taxonomy import RecommendationMode


class TestKeyFormats:
    def test_global_stats(self):
        assert global_stats_key(100, 50) == "global_stats:100:50"

    def test_user_performance_default_grouping(self):
        assert user_performance_key("driver-1") == "user_performance:driver-1:series_track"

    def test_user_performance_series_grouping(self):
        assert user_performance_key("driver-1", "series") == "user_performance:driver-1:series"

    def test_batch_key_sorted(self):
        assert batch_global_stats_key([(2, 9), (1, 5), (1, 3)]) == (
            "batch_global_stats:1:3,1:5,2:9"
        )

    def test_batch_key_order_and_duplicates_ignored(self):
        a = batch_global_stats_key([(1, 1), (2, 2), (1, 1)])
        b = batch_global_stats_key([(2, 2), (1, 1)])
        assert a == b


class TestScoreKey:
    def test_prefix(self):
        key = score_key(build_opportunity(), build_history(), RecommendationMode.BALANCED)
        assert key.startswith("score:")
        assert len(key) == len("score:") + 64

    def test_stable_for_equal_inputs(self):
        a = score_key(build_opportunity(), build_history(), "balanced")
        b = score_key(build_opportunity(), build_history(), RecommendationMode.BALANCED)
        assert a == b

    def test_changes_with_mode(self):
        opp, history = build_opportunity(), build_history()
        assert score_key(opp, history, "balanced") != score_key(opp, history, "irating_push")

    def test_changes_with_opportunity(self):
        history = build_history()
        assert score_key(build_opportunity(), history, "balanced") != score_key(
            build_opportunity(race_length=45.0), history, "balanced"
        )

    def test_changes_with_history(self):
        opp = build_opportunity()
        assert score_key(opp, build_history(), "balanced") != score_key(
            opp, build_history(total_races=3), "balanced"
        )

    def test_changes_with_scoring_config(self):
        opp, history = build_opportunity(), build_history()
        assert score_key(opp, history, "balanced") == score_key(
            opp, history, "balanced", ScoringConfig()
        )
        assert score_key(opp, history, "balanced") != score_key(
            opp, history, "balanced", ScoringConfig(incident_ceiling=20.0)
        )

    def test_unknown_mode_raises(self):
        with pytest.raises(ValueError):
            score_key(build_opportunity(), build_history(), "hotlap")


class TestTtlFor:
    @pytest.mark.parametrize(
        "key, attr",
        [
            ("global_stats:1:2", "global_stats_ttl_s"),
            ("user_performance:u:series", "user_performance_ttl_s"),
            ("batch_global_stats:1:2,3:4", "batch_ttl_s"),
            ("score:abc", "score_ttl_s"),
        ],
    )
    def test_key_space_ttls(self, key, attr):
        config = CacheConfig()
        assert ttl_for(key, config) == getattr(config, attr)

    def test_defaults(self):
        config = CacheConfig()
        assert ttl_for("user_performance:u:series_track", config) == 300
        assert ttl_for("global_stats:1:2", config) == 600

    def test_unknown_space(self):
        with pytest.raises(ValueError, match="Unknown cache key space"):
            ttl_for("leaderboard:1", CacheConfig())
