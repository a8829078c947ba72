"""
Tests for race_scout/config.py.

What we test
------------
Sub-config validation:
  - Defaults are valid; bad values raise ValidationError.

load_config():
  - Reads config/default.toml; missing files raise FileNotFoundError.
  - local.toml beside the config file overrides it (deep merge).
  - RACE_SCOUT_* environment variables override both.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from race_scout.config import (
    AppConfig,
    BatchConfig,
    CacheConfig,
    LoggingConfig,
    RankingConfig,
    ScoringConfig,
    _deep_merge,
    load_config,
)
from race_scout.taxonomy.scoring_taxonomy import RecommendationMode

_ENV_VARS = (
    "RACE_SCOUT_LOG_LEVEL",
    "RACE_SCOUT_DEFAULT_MODE",
    "RACE_SCOUT_BATCH_WIDTH",
    "RACE_SCOUT_DEBUG",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


class TestSubConfigs:
    def test_defaults_valid(self):
        config = AppConfig()
        assert config.scoring.incident_ceiling == 12.0
        assert config.cache.global_stats_ttl_s == 600
        assert config.batch.batch_width == 10
        assert config.ranking.max_results == 20

    def test_threshold_must_sit_below_ceiling(self):
        with pytest.raises(ValidationError):
            ScoringConfig(incident_ceiling=8.0, high_incident_threshold=8.0)

    def test_ceiling_positive(self):
        with pytest.raises(ValidationError):
            ScoringConfig(incident_ceiling=0.0)

    def test_unknown_mode(self):
        with pytest.raises(ValidationError):
            ScoringConfig(default_mode="sprint")

    def test_cache_ttl_positive(self):
        with pytest.raises(ValidationError):
            CacheConfig(score_ttl_s=0)

    def test_batch_width_at_least_one(self):
        with pytest.raises(ValidationError):
            BatchConfig(batch_width=0)

    def test_quality_thresholds_ordered(self):
        with pytest.raises(ValidationError):
            BatchConfig(moderate_quality_races=60, high_quality_races=50)

    def test_min_score_range(self):
        with pytest.raises(ValidationError):
            RankingConfig(min_score=101)

    def test_log_level_normalised(self):
        assert LoggingConfig(level="debug").level == "DEBUG"
        with pytest.raises(ValidationError):
            LoggingConfig(level="chatty")


class TestLoadConfig:
    def test_repo_default_toml(self):
        config = load_config()
        assert config.scoring.default_mode is RecommendationMode.BALANCED
        assert config.cache.sweep_interval_s == 300

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.toml")

    def test_explicit_path(self, tmp_path):
        path = _write(tmp_path / "custom.toml", """
[project]
debug = true

[scoring]
incident_ceiling = 20.0

[batch]
batch_width = 4
""")
        config = load_config(path)
        assert config.debug is True
        assert config.scoring.incident_ceiling == 20.0
        assert config.scoring.high_incident_threshold == 8.0
        assert config.batch.batch_width == 4

    def test_local_override(self, tmp_path):
        path = _write(tmp_path / "default.toml", "[ranking]\nmax_results = 20\nmin_score = 10\n")
        _write(tmp_path / "local.toml", "[ranking]\nmax_results = 5\n")
        config = load_config(path)
        assert config.ranking.max_results == 5
        assert config.ranking.min_score == 10

    def test_env_overrides(self, tmp_path, monkeypatch):
        path = _write(tmp_path / "default.toml", "[batch]\nbatch_width = 4\n")
        monkeypatch.setenv("RACE_SCOUT_LOG_LEVEL", "warning")
        monkeypatch.setenv("RACE_SCOUT_DEFAULT_MODE", "irating_push")
        monkeypatch.setenv("RACE_SCOUT_BATCH_WIDTH", "16")
        monkeypatch.setenv("RACE_SCOUT_DEBUG", "yes")
        config = load_config(path)
        assert config.logging.level == "WARNING"
        assert config.scoring.default_mode is RecommendationMode.IRATING_PUSH
        assert config.batch.batch_width == 16
        assert config.debug is True

    def test_invalid_value_raises(self, tmp_path):
        path = _write(tmp_path / "default.toml", "[cache]\nscore_ttl_s = -1\n")
        with pytest.raises(ValidationError):
            load_config(path)


class TestDeepMerge:
    def test_nested(self):
        merged = _deep_merge({"a": {"x": 1, "y": 2}, "b": 1}, {"a": {"y": 3}, "c": 4})
        assert merged == {"a": {"x": 1, "y": 3}, "b": 1, "c": 4}

    def test_base_untouched(self):
        base = {"a": {"x": 1}}
        _deep_merge(base, {"a": {"x": 2}})
        assert base == {"a": {"x": 1}}
