"""
Unit tests for CLI module.

Tests command-line interface functionality using Click's testing utilities.
"""

import json

import pytest
from click.testing import CliRunner

from perpetuity.cli import __version__, main
from perpetuity.serialization import SCHEMA_VERSION, save_config


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def runner():
    """Create CLI test runner."""
    return CliRunner()


@pytest.fixture
def legacy_config(tmp_path, legacy_input):
    """Perpetual single-run config file."""
    path = tmp_path / "legacy.json"
    save_config(legacy_input, path)
    return path


@pytest.fixture
def finite_config(tmp_path, finite_legacy_input):
    """Single-run config that depletes after 36 years."""
    path = tmp_path / "finite.json"
    save_config(finite_legacy_input, path)
    return path


@pytest.fixture
def analysis_config(tmp_path, analysis_input):
    path = tmp_path / "analysis.json"
    save_config(analysis_input, path)
    return path


@pytest.fixture
def estates_json(tmp_path):
    path = tmp_path / "estates.json"
    path.write_text(json.dumps([2_000_000, 500_000, 800_000, 3_000_000]))
    return path


AGGREGATE_ARGS = ["-r", "5", "-p", "30000", "-b", "2"]


# ============================================================================
# MAIN COMMAND TESTS
# ============================================================================

class TestMainCommand:
    """Test main CLI entry point."""

    def test_main_help(self, runner):
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "Perpetuity" in result.output
        for command in ("check", "simulate", "aggregate", "config", "info"):
            assert command in result.output

    def test_main_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_log_level_option(self, runner):
        result = runner.invoke(main, ["--log-level", "debug", "--help"])
        assert result.exit_code == 0


# ============================================================================
# CHECK COMMAND TESTS
# ============================================================================

class TestCheckCommand:
    """Test closed-form perpetuity check."""

    def test_perpetual(self, runner):
        result = runner.invoke(main, ["-q", "check", "-f", "1000000", "-r", "5", "-p", "10000", "-b", "2"])
        assert result.exit_code == 0
        assert result.output.strip() == "Perpetual"

    def test_not_perpetual(self, runner):
        result = runner.invoke(main, ["-q", "check", "-f", "1000000", "-r", "5", "-p", "30000", "-b", "2"])
        assert result.exit_code == 0
        assert result.output.strip() == "Not perpetual"

    def test_table_output(self, runner):
        result = runner.invoke(main, ["check", "-f", "1000000", "-r", "5", "-p", "10000", "-b", "2"])
        assert result.exit_code == 0
        assert "Perpetuity Check" in result.output

    def test_invalid_generation_length(self, runner):
        result = runner.invoke(main, ["check", "-f", "1000000", "-r", "5", "-p", "10000", "-g", "0"])
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_missing_required(self, runner):
        result = runner.invoke(main, ["check", "-f", "1000000"])
        assert result.exit_code != 0


# ============================================================================
# SIMULATE COMMAND TESTS
# ============================================================================

class TestSimulateCommand:
    """Test simulate command."""

    def test_simulate_help(self, runner):
        result = runner.invoke(main, ["simulate", "--help"])
        assert result.exit_code == 0
        assert "--config" in result.output
        assert "--preset" in result.output

    def test_single_run_quiet(self, runner, legacy_config):
        result = runner.invoke(main, ["-q", "simulate", "-c", str(legacy_config)])
        assert result.exit_code == 0
        assert result.output.strip() == "Perpetual Legacy"

    def test_finite_run(self, runner, finite_config):
        result = runner.invoke(main, ["-q", "simulate", "-c", str(finite_config)])
        assert result.exit_code == 0
        assert result.output.strip() == "Finite Legacy for 36 years"

    def test_cap_years_override(self, runner, finite_config):
        result = runner.invoke(main, ["-q", "simulate", "-c", str(finite_config), "--cap-years", "10"])
        assert result.exit_code == 0
        assert result.output.strip() == "Finite Legacy for 10 years"

    def test_analysis_saves_result(self, runner, analysis_config, tmp_path):
        output = tmp_path / "out" / "result.json"
        result = runner.invoke(main, ["simulate", "-c", str(analysis_config), "-o", str(output)])
        assert result.exit_code == 0
        assert "Percentile Runs" in result.output
        data = json.loads(output.read_text())
        assert data["type"] == "LegacyOutcome"
        assert data["aggregate"]["success_rate_percent"] == 80

    def test_generations_csv(self, runner, tmp_path):
        config = tmp_path / "taxed.json"
        runner.invoke(main, ["config", "create", str(config), "--template", "legacy"])
        csv_path = tmp_path / "generations.csv"
        result = runner.invoke(main, [
            "-q", "simulate", "-c", str(config),
            "--cap-years", "200", "--generations-csv", str(csv_path),
        ])
        assert result.exit_code == 0
        lines = csv_path.read_text().splitlines()
        assert lines[0].startswith("generation,year,")
        assert lines[1].startswith("1,30,")

    def test_rejects_aggregate_config(self, runner, tmp_path):
        config = tmp_path / "agg.json"
        runner.invoke(main, ["config", "create", str(config), "--template", "aggregate"])
        result = runner.invoke(main, ["simulate", "-c", str(config)])
        assert result.exit_code == 1
        assert "perpetuity aggregate" in result.output

    def test_invalid_config(self, runner, tmp_path):
        config = tmp_path / "bad.json"
        config.write_text(json.dumps({"schema_version": SCHEMA_VERSION, "type": "LegacyInput"}))
        result = runner.invoke(main, ["simulate", "-c", str(config)])
        assert result.exit_code == 1
        assert "Error loading config" in result.output

    def test_missing_config(self, runner):
        result = runner.invoke(main, ["simulate", "-c", "does-not-exist.json"])
        assert result.exit_code != 0


# ============================================================================
# AGGREGATE COMMAND TESTS
# ============================================================================

class TestAggregateCommand:
    """Test success-rate command."""

    def test_json_list(self, runner, estates_json):
        result = runner.invoke(main, ["-q", "aggregate", "-e", str(estates_json), *AGGREGATE_ARGS])
        assert result.exit_code == 0
        assert result.output.strip() == "50%"

    def test_json_object(self, runner, tmp_path):
        path = tmp_path / "estates.json"
        path.write_text(json.dumps({"estates": [2_000_000, 3_000_000]}))
        result = runner.invoke(main, ["-q", "aggregate", "-e", str(path), *AGGREGATE_ARGS])
        assert result.exit_code == 0
        assert result.output.strip() == "100%"

    def test_csv(self, runner, tmp_path):
        path = tmp_path / "estates.csv"
        path.write_text("estate\n2000000\n500000\n800000\n3000000\n")
        result = runner.invoke(main, ["-q", "aggregate", "-e", str(path), *AGGREGATE_ARGS])
        assert result.exit_code == 0
        assert result.output.strip() == "50%"

    def test_inflation_deflates_estates(self, runner, estates_json):
        result = runner.invoke(main, [
            "-q", "aggregate", "-e", str(estates_json), *AGGREGATE_ARGS,
            "--inflation", "3", "--years", "20",
        ])
        assert result.exit_code == 0
        assert result.output.strip() == "25%"

    def test_saves_result(self, runner, estates_json, tmp_path):
        output = tmp_path / "agg.json"
        result = runner.invoke(main, ["aggregate", "-e", str(estates_json), *AGGREGATE_ARGS, "-o", str(output)])
        assert result.exit_code == 0
        assert "Success Rate" in result.output
        assert json.loads(output.read_text())["success_count"] == 2

    def test_empty_batch(self, runner, tmp_path):
        path = tmp_path / "empty.json"
        path.write_text("[]")
        result = runner.invoke(main, ["aggregate", "-e", str(path), *AGGREGATE_ARGS])
        assert result.exit_code == 1
        assert "Error" in result.output


# ============================================================================
# CONFIG COMMAND TESTS
# ============================================================================

class TestConfigCommand:
    """Test config subcommands."""

    @pytest.mark.parametrize("template,type_name", [
        ("legacy", "LegacyInput"),
        ("analysis", "AnalysisInput"),
        ("aggregate", "AggregateInput"),
    ])
    def test_create_then_validate(self, runner, tmp_path, template, type_name):
        path = tmp_path / f"{template}.json"
        result = runner.invoke(main, ["config", "create", str(path), "--template", template])
        assert result.exit_code == 0
        assert json.loads(path.read_text())["type"] == type_name

        result = runner.invoke(main, ["-q", "config", "validate", str(path)])
        assert result.exit_code == 0
        assert "Configuration is valid" in result.output

    def test_validate_invalid(self, runner, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"type": "LegacyInput", "eol_nominal_estate": "lots"}))
        result = runner.invoke(main, ["config", "validate", str(path)])
        assert result.exit_code == 1
        assert "validation failed" in result.output

    def test_show_json(self, runner, legacy_config):
        result = runner.invoke(main, ["config", "show", str(legacy_config), "--format", "json"])
        assert result.exit_code == 0
        assert json.loads(result.output)["type"] == "LegacyInput"

    def test_show_table(self, runner, analysis_config):
        result = runner.invoke(main, ["config", "show", str(analysis_config)])
        assert result.exit_code == 0
        assert "Configuration" in result.output


# ============================================================================
# INFO COMMAND TESTS
# ============================================================================

class TestInfoCommand:
    def test_info(self, runner):
        result = runner.invoke(main, ["info"])
        assert result.exit_code == 0
        assert "System Information" in result.output
        assert __version__ in result.output
