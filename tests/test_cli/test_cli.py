"""
Tests for race_scout/cli.py.

What we test
------------
  - validate-config succeeds on the repo config and fails on a missing file.
  - score ranks an input file (table and JSON output), honours --mode and
    --max-results and --category, and rejects unknown modes, unknown
    categories and malformed input.
  - analyze prints one opportunity's breakdown; a missing pair exits 1.
  - compare-modes prints one section per mode.
"""

from __future__ import annotations

import json
import logging

import pytest
from typer.testing import CliRunner

from factories import build_history, build_opportunity
from race_scout.cli import app
from race_scout.models.history import SeriesTrackHistory

runner = CliRunner()


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def quiet_config(tmp_path):
    path = tmp_path / "quiet.toml"
    path.write_text('[logging]\nlevel = "WARNING"\n', encoding="utf-8")
    return str(path)


@pytest.fixture
def input_file(tmp_path):
    history = build_history(
        records=[SeriesTrackHistory(
            series_id=100, track_id=50, race_count=12,
            avg_position_delta=2.0, avg_incidents=1.5, finish_position_std_dev=3.0,
        )],
        total_races=12,
    )
    opportunities = [
        build_opportunity(),
        build_opportunity(series_id=200, series_name="Formula Sprint", track_id=7),
        build_opportunity(series_id=300, series_name="Endurance Cup", track_id=8,
                          race_length=180.0),
    ]
    payload = {
        "user_history": history.model_dump(mode="json"),
        "opportunities": [o.model_dump(mode="json") for o in opportunities],
    }
    path = tmp_path / "week.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return str(path)


class TestValidateConfig:
    def test_repo_config(self):
        result = runner.invoke(app, ["validate-config"])
        assert result.exit_code == 0
        assert "[OK] Config valid." in result.output

    def test_full_dump(self, quiet_config):
        result = runner.invoke(app, ["validate-config", "--config", quiet_config, "--full"])
        assert result.exit_code == 0
        assert '"batch_width": 10' in result.output

    def test_missing_config(self, tmp_path):
        result = runner.invoke(app, ["validate-config", "--config", str(tmp_path / "x.toml")])
        assert result.exit_code == 1
        assert "[ERROR]" in result.output


class TestScore:
    def test_table(self, input_file, quiet_config):
        result = runner.invoke(app, ["score", input_file, "--config", quiet_config])
        assert result.exit_code == 0
        assert "Mode: balanced | 3 of 3 opportunities" in result.output
        assert "GT Sprint Series @ Okayama International Circuit" in result.output

    def test_json_output(self, input_file, quiet_config):
        result = runner.invoke(
            app,
            ["score", input_file, "--json", "--max-results", "2", "--config", quiet_config],
        )
        assert result.exit_code == 0
        ranked = json.loads(result.output)
        assert len(ranked) == 2
        assert (ranked[0]["series_id"], ranked[0]["track_id"]) == (100, 50)
        assert set(ranked[0]["score"]["factors"]) >= {"performance", "time_volatility"}

    def test_mode_option(self, input_file, quiet_config):
        result = runner.invoke(
            app, ["score", input_file, "--mode", "safety_recovery", "--config", quiet_config],
        )
        assert result.exit_code == 0
        assert "Mode: safety_recovery" in result.output

    def test_unknown_mode(self, input_file, quiet_config):
        result = runner.invoke(
            app, ["score", input_file, "--mode", "flat_out", "--config", quiet_config],
        )
        assert result.exit_code == 1
        assert "Unknown mode" in result.output

    def test_missing_input(self, tmp_path, quiet_config):
        result = runner.invoke(
            app, ["score", str(tmp_path / "none.json"), "--config", quiet_config],
        )
        assert result.exit_code == 1

    def test_input_without_sections(self, tmp_path, quiet_config):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"opportunities": []}), encoding="utf-8")
        result = runner.invoke(app, ["score", str(path), "--config", quiet_config])
        assert result.exit_code == 1
        assert "user_history" in result.output

    def test_invalid_opportunity(self, tmp_path, quiet_config):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({
            "user_history": {"user_id": "u"},
            "opportunities": [{"series_id": 1}],
        }), encoding="utf-8")
        result = runner.invoke(app, ["score", str(path), "--config", quiet_config])
        assert result.exit_code == 1
        assert "Input validation failed" in result.output

    def test_category_filter(self, input_file, quiet_config):
        result = runner.invoke(
            app, ["score", input_file, "--category", "oval", "--config", quiet_config],
        )
        assert result.exit_code == 0
        assert "Mode: balanced | 0 of 3 opportunities" in result.output

    def test_category_matching_all(self, input_file, quiet_config):
        result = runner.invoke(
            app,
            ["score", input_file, "--category", "sports_car", "--json", "--config", quiet_config],
        )
        assert result.exit_code == 0
        assert len(json.loads(result.output)) == 3

    def test_unknown_category(self, input_file, quiet_config):
        result = runner.invoke(
            app, ["score", input_file, "--category", "karting", "--config", quiet_config],
        )
        assert result.exit_code == 1
        assert "Unknown category" in result.output


class TestCompareModes:
    def test_sections_per_mode(self, input_file, quiet_config):
        result = runner.invoke(
            app, ["compare-modes", input_file, "--top-n", "1", "--config", quiet_config],
        )
        assert result.exit_code == 0
        for mode in ("[balanced]", "[irating_push]", "[safety_recovery]"):
            assert mode in result.output


class TestAnalyze:
    def test_breakdown(self, input_file, quiet_config):
        result = runner.invoke(
            app,
            ["analyze", input_file, "--series", "100", "--track", "50", "--config", quiet_config],
        )
        assert result.exit_code == 0
        assert "GT Sprint Series @ Okayama International Circuit" in result.output
        assert "familiarity" in result.output
        assert "Mode:       balanced" in result.output

    def test_missing_pair(self, input_file, quiet_config):
        result = runner.invoke(
            app,
            ["analyze", input_file, "--series", "100", "--track", "999", "--config", quiet_config],
        )
        assert result.exit_code == 1
        assert "No opportunity for series 100 at track 999" in result.output
