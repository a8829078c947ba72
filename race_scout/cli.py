"""
race-scout CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Validate inputs.
  4. Score / rank.
  5. Report result to stdout.

Input files are JSON objects of the form::

    {
      "user_history":  { "user_id": "...", "series_track_history": [...], ... },
      "opportunities": [ { "series_id": 100, "track_id": 50, ... }, ... ]
    }

Install and run::

    pip install -e .
    race-scout --help
    race-scout validate-config
    race-scout score data/week.json --mode safety_recovery --max-results 5
    race-scout score data/week.json --category oval
    race-scout analyze data/week.json --series 100 --track 50
    race-scout compare-modes data/week.json --top-n 3
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer

app = typer.Typer(
    name="race-scout",
    help="race-scout: score and rank racing opportunities against your history.",
    add_completion=False,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from race_scout.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config):
    """Set up logging from config."""
    from race_scout.utils.logging import configure_logging
    configure_logging(config.logging)


def _load_input_or_exit(input_path: str):
    """Parse and validate an input file into ``(UserHistory, [Opportunity])``."""
    from pydantic import ValidationError

    from race_scout.models.history import UserHistory
    from race_scout.models.opportunity import Opportunity

    path = Path(input_path)
    if not path.exists():
        typer.echo(f"[ERROR] Input file not found: {path}", err=True)
        raise typer.Exit(code=1)

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        typer.echo(f"[ERROR] JSON parse error: {exc}", err=True)
        raise typer.Exit(code=1)

    if not isinstance(raw, dict) or "user_history" not in raw or "opportunities" not in raw:
        typer.echo(
            "[ERROR] Input must be an object with 'user_history' and 'opportunities'.",
            err=True,
        )
        raise typer.Exit(code=1)

    try:
        history = UserHistory.model_validate(raw["user_history"])
        opportunities = [Opportunity.model_validate(o) for o in raw["opportunities"]]
    except ValidationError as exc:
        typer.echo(f"[ERROR] Input validation failed:\n{exc}", err=True)
        raise typer.Exit(code=1)

    return history, opportunities


def _parse_mode_or_exit(mode: Optional[str], default):
    from race_scout.taxonomy.scoring_taxonomy import RecommendationMode

    if mode is None:
        return default
    try:
        return RecommendationMode(mode)
    except ValueError:
        valid = ", ".join(m.value for m in RecommendationMode)
        typer.echo(f"[ERROR] Unknown mode '{mode}'. Valid modes: {valid}", err=True)
        raise typer.Exit(code=1)


def _parse_category_or_exit(category: Optional[str]):
    from race_scout.taxonomy.scoring_taxonomy import Category

    if category is None:
        return None
    try:
        return Category(category)
    except ValueError:
        valid = ", ".join(c.value for c in Category)
        typer.echo(f"[ERROR] Unknown category '{category}'. Valid categories: {valid}", err=True)
        raise typer.Exit(code=1)


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file (default: config/default.toml).",
    ),
    show_full: bool = typer.Option(
        False,
        "--full",
        help="Print full config including all fields.",
    ),
) -> None:
    """Validate the configuration file and print parsed values."""
    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Default mode:     {config.scoring.default_mode}")
    typer.echo(f"  Incident ceiling: {config.scoring.incident_ceiling}")
    typer.echo(f"  Batch width:      {config.batch.batch_width}")
    typer.echo(f"  Global stats TTL: {config.cache.global_stats_ttl_s}s")
    typer.echo(f"  Max results:      {config.ranking.max_results}")
    typer.echo(f"  Log level:        {config.logging.level}")
    typer.echo(f"  Debug mode:       {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(config.model_dump(mode="json"), indent=2, default=str))

    typer.echo("")
    typer.echo("[OK] Config valid.")


@app.command("score")
def score(
    input_path: str = typer.Argument(..., help="JSON file with user_history and opportunities."),
    mode: Optional[str] = typer.Option(
        None,
        "--mode",
        help="balanced | irating_push | safety_recovery (default from config).",
    ),
    max_results: Optional[int] = typer.Option(
        None,
        "--max-results",
        help="Override ranking.max_results from config.",
    ),
    category: Optional[str] = typer.Option(
        None,
        "--category",
        help="Only score opportunities in this category (e.g. sports_car, oval).",
    ),
    as_json: bool = typer.Option(
        False,
        "--json",
        help="Print the ranked list as JSON instead of a table.",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Score and rank every opportunity in INPUT_PATH for its user."""
    from race_scout.cache.ttl_cache import TTLCache
    from race_scout.recommendations.ranker import build_recommendations
    from race_scout.scoring.engine import ScoringEngine

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    selected_mode = _parse_mode_or_exit(mode, config.scoring.default_mode)
    selected_category = _parse_category_or_exit(category)
    history, opportunities = _load_input_or_exit(input_path)

    ranking = config.ranking
    if max_results is not None:
        ranking = ranking.model_copy(update={"max_results": max_results})

    result = build_recommendations(
        opportunities,
        history,
        selected_mode,
        engine=ScoringEngine(config.scoring),
        config=ranking,
        cache=TTLCache(),
        ttl_s=config.cache.score_ttl_s,
        category=selected_category,
    )

    if as_json:
        typer.echo(json.dumps([r.to_dict() for r in result.recommendations], indent=2))
        return

    typer.echo(
        f"Mode: {result.mode} | {result.metadata.returned} of "
        f"{result.metadata.total_opportunities} opportunities"
    )
    typer.echo("")
    typer.echo(f"  {'#':>3}  {'Overall':>7}  {'Prio':>4}  {'iR':<6}  {'SR':<6}  Series @ Track")
    for rank, rec in enumerate(result.recommendations, start=1):
        s = rec.score
        typer.echo(
            f"  {rank:>3}  {s.overall:>7}  {s.priority_score:>4}  "
            f"{s.i_rating_risk.value:<6}  {s.safety_rating_risk.value:<6}  "
            f"{rec.opportunity.series_name} @ {rec.opportunity.track_name}"
        )
        for reason in s.reasoning:
            typer.echo(f"         - {reason}")

    md = result.metadata
    typer.echo("")
    typer.echo(
        f"  Confidence: high={md.high_confidence_count} "
        f"estimated={md.estimated_count} no_data={md.no_data_count}"
    )
    typer.echo(f"  Experience: {result.experience.total_races} races, "
               f"{result.experience.series_with_experience} series, "
               f"{result.experience.tracks_with_experience} tracks")


@app.command("compare-modes")
def compare_modes(
    input_path: str = typer.Argument(..., help="JSON file with user_history and opportunities."),
    top_n: Optional[int] = typer.Option(
        None,
        "--top-n",
        help="Override ranking.compare_top_n from config.",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Show the top opportunities under every recommendation mode."""
    from race_scout.recommendations.ranker import compare_modes as _compare_modes
    from race_scout.scoring.engine import ScoringEngine

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    history, opportunities = _load_input_or_exit(input_path)

    by_mode = _compare_modes(
        opportunities,
        history,
        engine=ScoringEngine(config.scoring),
        top_n=top_n if top_n is not None else config.ranking.compare_top_n,
        priority_margin=config.ranking.priority_margin,
    )

    for mode, ranked in by_mode.items():
        typer.echo(f"[{mode}]")
        if not ranked:
            typer.echo("  (no opportunities)")
        for rank, rec in enumerate(ranked, start=1):
            typer.echo(
                f"  {rank:>3}. {rec.score.overall:>3}  "
                f"{rec.opportunity.series_name} @ {rec.opportunity.track_name}"
            )
        typer.echo("")


@app.command("analyze")
def analyze(
    input_path: str = typer.Argument(..., help="JSON file with user_history and opportunities."),
    series_id: int = typer.Option(..., "--series", help="Series ID to analyze."),
    track_id: int = typer.Option(..., "--track", help="Track ID to analyze."),
    mode: Optional[str] = typer.Option(
        None,
        "--mode",
        help="balanced | irating_push | safety_recovery (default from config).",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Print the full score breakdown for one series/track opportunity."""
    from race_scout.recommendations.ranker import analyze_opportunity
    from race_scout.scoring.engine import ScoringEngine

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    selected_mode = _parse_mode_or_exit(mode, config.scoring.default_mode)
    history, opportunities = _load_input_or_exit(input_path)

    result = analyze_opportunity(
        opportunities,
        history,
        series_id,
        track_id,
        selected_mode,
        engine=ScoringEngine(config.scoring),
    )
    if result is None:
        typer.echo(
            f"[ERROR] No opportunity for series {series_id} at track {track_id}.", err=True
        )
        raise typer.Exit(code=1)

    s = result.score
    typer.echo(f"{result.opportunity.series_name} @ {result.opportunity.track_name}")
    typer.echo(f"  Mode:       {selected_mode}")
    typer.echo(f"  Overall:    {s.overall}")
    typer.echo(f"  Priority:   {s.priority_score}")
    typer.echo(f"  iR risk:    {s.i_rating_risk.value}")
    typer.echo(f"  SR risk:    {s.safety_rating_risk.value}")
    typer.echo("")
    for name, value in s.factors.as_dict().items():
        typer.echo(f"  {name:<16} {value:>3}")
    typer.echo("")
    dc = s.data_confidence
    typer.echo(
        f"  Data: performance={dc.performance.value} safety={dc.safety.value} "
        f"consistency={dc.consistency.value} familiarity={dc.familiarity.value} "
        f"global={dc.global_stats.value}"
    )
    for reason in s.reasoning:
        typer.echo(f"  - {reason}")


# ── Entry point ───────────────────────────────────────────────────────────────

if __name__ == "__main__":
    app()
