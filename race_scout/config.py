"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``      : committed static defaults
  2. ``config/local.toml``        : optional local overrides (gitignored)
  3. ``.env``                     : local secrets and env overrides (gitignored)
  4. Environment variables        : ``RACE_SCOUT_*`` prefix

Entry point: ``load_config(config_path=None) -> AppConfig``

The scoring engine, cache, batch aggregator and CLI all receive their
section of an ``AppConfig`` instance explicitly; there are no module-level
engine or cache singletons to configure behind the caller's back.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from race_scout.taxonomy.scoring_taxonomy import RecommendationMode

# ── Sub-config models ─────────────────────────────────────────────────────────


class ScoringConfig(BaseModel):
    """Scoring engine calibration.

    The incident ceiling maps expected incidents onto the 0–100 safety scale;
    incidents in (``high_incident_threshold``, ``incident_ceiling``] take an
    extra ``floor((incidents - threshold) * slope)`` point penalty.
    """

    model_config = ConfigDict(frozen=True)

    default_mode: RecommendationMode = RecommendationMode.BALANCED
    incident_ceiling: float = 12.0
    high_incident_threshold: float = 8.0
    high_incident_penalty_slope: float = 0.5

    @field_validator("incident_ceiling", "high_incident_penalty_slope")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if not v > 0:
            raise ValueError(f"Value must be > 0, got {v}.")
        return v

    @model_validator(mode="after")
    def validate_threshold_below_ceiling(self) -> "ScoringConfig":
        if not 0 <= self.high_incident_threshold < self.incident_ceiling:
            raise ValueError(
                f"high_incident_threshold ({self.high_incident_threshold}) must be in "
                f"[0, incident_ceiling={self.incident_ceiling})."
            )
        return self


class CacheConfig(BaseModel):
    """TTL table (seconds) per cache key space, and the sweep interval."""

    model_config = ConfigDict(frozen=True)

    user_performance_ttl_s: float = 5 * 60
    global_stats_ttl_s: float = 10 * 60
    batch_ttl_s: float = 10 * 60
    score_ttl_s: float = 60
    sweep_interval_s: float = 5 * 60

    @field_validator(
        "user_performance_ttl_s", "global_stats_ttl_s", "batch_ttl_s",
        "score_ttl_s", "sweep_interval_s",
    )
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if not v > 0:
            raise ValueError(f"Cache durations must be > 0 seconds, got {v}.")
        return v


class BatchConfig(BaseModel):
    """Batch aggregation parameters.

    ``min_sample_races`` is the minimum number of global sample races before
    provider numbers are trusted over the documented defaults.
    """

    model_config = ConfigDict(frozen=True)

    batch_width: int = 10
    min_sample_races: int = 10
    moderate_quality_races: int = 20
    high_quality_races: int = 50
    prefetch_limit: int = 20

    @field_validator("batch_width", "prefetch_limit")
    @classmethod
    def validate_at_least_one(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"Value must be >= 1, got {v}.")
        return v

    @model_validator(mode="after")
    def validate_quality_ordering(self) -> "BatchConfig":
        if not 0 <= self.min_sample_races <= self.moderate_quality_races <= self.high_quality_races:
            raise ValueError(
                "Expected 0 <= min_sample_races <= moderate_quality_races <= high_quality_races, "
                f"got {self.min_sample_races}, {self.moderate_quality_races}, "
                f"{self.high_quality_races}."
            )
        return self


class RankingConfig(BaseModel):
    """Recommendation list shaping."""

    model_config = ConfigDict(frozen=True)

    max_results: int = 20
    min_score: int = 0
    priority_margin: int = 5
    compare_top_n: int = 10

    @field_validator("min_score")
    @classmethod
    def validate_min_score(cls, v: int) -> int:
        if not 0 <= v <= 100:
            raise ValueError(f"min_score must be in [0, 100], got {v}.")
        return v

    @field_validator("max_results", "compare_top_n", "priority_margin")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"Value must be non-negative, got {v}.")
        return v


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = ""
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class AppConfig(BaseModel):
    """Complete application configuration, the single source of truth.

    Constructed by ``load_config()`` which merges TOML + .env + env vars.
    ``AppConfig()`` with no arguments gives the built-in defaults.
    """

    model_config = ConfigDict(frozen=True)

    scoring: ScoringConfig = ScoringConfig()
    cache: CacheConfig = CacheConfig()
    batch: BatchConfig = BatchConfig()
    ranking: RankingConfig = RankingConfig()
    logging: LoggingConfig = LoggingConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

_PROJECT_ROOT = Path(__file__).parent.parent


def _find_project_root() -> Path:
    """Walk up from this file to find the project root (contains pyproject.toml)."""
    candidate = Path(__file__).parent
    for _ in range(5):
        if (candidate / "pyproject.toml").exists():
            return candidate
        candidate = candidate.parent
    return _PROJECT_ROOT


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and merge application configuration.

    Args:
        config_path: Explicit path to a TOML config file. Defaults to
            ``<project_root>/config/default.toml``.

    Returns:
        Fully validated ``AppConfig`` instance.

    Raises:
        FileNotFoundError: If the specified ``config_path`` does not exist.
        pydantic.ValidationError: If merged config values fail validation.
    """
    root = _find_project_root()

    # 1. Load .env file (silently skip if missing)
    load_dotenv(dotenv_path=root / ".env", override=False)

    # 2. Load TOML config
    if config_path is None:
        config_path = root / "config" / "default.toml"

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            "Create config/default.toml or pass --config explicitly."
        )

    with open(config_path, "rb") as f:
        raw: dict[str, Any] = tomllib.load(f)

    # Also merge local.toml if present (gitignored local overrides)
    local_config_path = config_path.parent / "local.toml"
    if local_config_path.exists():
        with open(local_config_path, "rb") as f:
            local_raw: dict[str, Any] = tomllib.load(f)
        raw = _deep_merge(raw, local_raw)

    # 3. Apply RACE_SCOUT_* environment variable overrides
    raw = _apply_env_overrides(raw)

    # 4. Build and validate AppConfig
    return _build_app_config(raw)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base``."""
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply RACE_SCOUT_* env vars to the raw config dict.

    Supported overrides:
      RACE_SCOUT_LOG_LEVEL     → raw["logging"]["level"]
      RACE_SCOUT_DEFAULT_MODE  → raw["scoring"]["default_mode"]
      RACE_SCOUT_BATCH_WIDTH   → raw["batch"]["batch_width"]
      RACE_SCOUT_DEBUG         → raw["debug"]
    """
    if log_level := os.environ.get("RACE_SCOUT_LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if mode := os.environ.get("RACE_SCOUT_DEFAULT_MODE"):
        raw.setdefault("scoring", {})["default_mode"] = mode

    if batch_width := os.environ.get("RACE_SCOUT_BATCH_WIDTH"):
        raw.setdefault("batch", {})["batch_width"] = int(batch_width)

    if debug := os.environ.get("RACE_SCOUT_DEBUG"):
        raw["debug"] = debug.lower() in ("1", "true", "yes")

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Map raw TOML dict to ``AppConfig`` model structure."""
    # Flatten top-level keys that may be nested under [project]
    project = raw.pop("project", {})

    return AppConfig(
        scoring=ScoringConfig(**raw.get("scoring", {})),
        cache=CacheConfig(**raw.get("cache", {})),
        batch=BatchConfig(**raw.get("batch", {})),
        ranking=RankingConfig(**raw.get("ranking", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        debug=raw.get("debug", project.get("debug", False)),
    )
