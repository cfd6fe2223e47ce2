"""
Unit tests for serialization.py module.

Tests tagged outcome dictionaries, config files and result files.
"""

import json

import pytest

from perpetuity.aggregator import AggregateResult
from perpetuity.config import AggregateInput, AnalysisInput, LegacyInput
from perpetuity.legacy import analyze_legacy
from perpetuity.serialization import (
    SCHEMA_VERSION,
    aggregate_to_dict,
    legacy_outcome_to_dict,
    load_config,
    load_result,
    outcome_from_dict,
    outcome_to_dict,
    save_config,
    save_result,
)
from perpetuity.simulation import Finite, GenerationSnapshot, NotModeled, Perpetual


@pytest.fixture
def snapshot() -> GenerationSnapshot:
    return GenerationSnapshot(
        generation=1,
        year=2085,
        estate_value_nominal=30_000_000.0,
        estate_tax=2_000_000.0,
        net_to_heirs=28_000_000.0,
        fund_real=12_000_000.0,
        living_beneficiaries=6.5,
    )


class TestOutcomeDicts:
    """Test tagged outcome conversion."""

    def test_perpetual(self):
        data = outcome_to_dict(Perpetual(1_000_000.0, 2.0))
        assert data["kind"] == "perpetual"
        assert data["years"] is None
        assert data["label"] == "Perpetual Legacy"
        assert outcome_from_dict(data) == Perpetual(1_000_000.0, 2.0)

    def test_finite_with_generations(self, snapshot):
        outcome = Finite(years=120, fund_left_real=0.0, last_living_count=14.0,
                         cause="depletion", generations=(snapshot,))
        data = outcome_to_dict(outcome)
        assert data["kind"] == "finite"
        assert data["cause"] == "depletion"
        assert data["generations"][0]["year"] == 2085
        assert outcome_from_dict(data) == outcome

    def test_not_modeled(self):
        data = outcome_to_dict(NotModeled("no beneficiaries"))
        assert data == {
            "kind": "not_modeled",
            "reason": "no beneficiaries",
            "label": "Not modeled",
            "years": None,
            "fund_left_real": 0.0,
            "last_living_count": 0.0,
        }
        assert outcome_from_dict(data) == NotModeled("no beneficiaries")

    def test_strict_json(self):
        json.dumps(outcome_to_dict(Finite(10, 0.0, 1.0, "extinction")), allow_nan=False)

    def test_unknown_kind(self):
        with pytest.raises(ValueError, match="Unknown outcome kind"):
            outcome_from_dict({"kind": "eternal"})

    def test_unsupported_type(self):
        with pytest.raises(TypeError):
            outcome_to_dict("perpetual")


class TestAggregateDict:
    def test_infinite_minimum_written_as_null(self):
        result = AggregateResult(
            prob_perpetual=0.0,
            success_count=0,
            n_paths=3,
            min_estate_required=float("inf"),
            safe_min_estate=float("inf"),
            estate_percentiles={50: 1.0},
        )
        data = aggregate_to_dict(result)
        assert data["min_estate_required"] is None
        assert data["safe_min_estate"] is None
        assert data["estate_percentiles"] == {"50": 1.0}
        json.dumps(data, allow_nan=False)


class TestConfigFiles:
    """Test config save/load."""

    def test_legacy_roundtrip(self, legacy_input, tmp_path):
        path = tmp_path / "nested" / "legacy.json"
        save_config(legacy_input, path)
        data = json.loads(path.read_text())
        assert data["schema_version"] == SCHEMA_VERSION
        assert data["type"] == "LegacyInput"
        assert load_config(path) == legacy_input

    def test_analysis_roundtrip(self, analysis_input, tmp_path):
        path = tmp_path / "analysis.json"
        save_config(analysis_input, path)
        assert load_config(path) == analysis_input

    def test_aggregate_roundtrip(self, tmp_path):
        agg = AggregateInput(
            estates_after_tax=[1.0, 2.0],
            real_return_rate=0.05,
            per_beneficiary_real_annual=1.0,
            starting_beneficiary_count=1,
            total_fertility_rate=2.0,
        )
        path = tmp_path / "aggregate.json"
        save_config(agg, path)
        assert load_config(path) == agg

    def test_untyped_files_inferred(self, legacy_input, analysis_input, tmp_path):
        legacy_path = tmp_path / "legacy.json"
        legacy_path.write_text(json.dumps(
            {"schema_version": SCHEMA_VERSION, **legacy_input.model_dump(mode="json")}
        ))
        analysis_path = tmp_path / "analysis.json"
        analysis_path.write_text(json.dumps(
            {"schema_version": SCHEMA_VERSION, **analysis_input.model_dump(mode="json")}
        ))
        assert isinstance(load_config(legacy_path), LegacyInput)
        assert isinstance(load_config(analysis_path), AnalysisInput)

    def test_schema_mismatch_warns(self, legacy_input, tmp_path):
        path = tmp_path / "old.json"
        path.write_text(json.dumps(
            {"schema_version": "0.0.1", "type": "LegacyInput", **legacy_input.model_dump(mode="json")}
        ))
        with pytest.warns(UserWarning, match="schema version"):
            assert load_config(path) == legacy_input

    def test_unknown_type(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"schema_version": SCHEMA_VERSION, "type": "Portfolio"}))
        with pytest.raises(ValueError, match="Unknown config type"):
            load_config(path)


class TestResultFiles:
    """Test result save/load."""

    def test_outcome_roundtrip(self, tmp_path):
        outcome = Finite(36, 0.0, 2.0, "depletion")
        path = tmp_path / "outcome.json"
        save_result(outcome, path)
        data = load_result(path)
        assert data["type"] == "SimulationOutcome"
        assert data["outcome"] == outcome

    def test_legacy_outcome(self, analysis_input, tmp_path):
        report = analyze_legacy(analysis_input)
        path = tmp_path / "report.json"
        save_result(report, path)
        data = load_result(path)
        assert data["type"] == "LegacyOutcome"
        assert data["card_label"] == "Perpetual Legacy"
        assert data["aggregate"]["success_rate_percent"] == 80
        assert set(data["percentile_outcomes"]) == {"p10", "p50", "p90"}
        assert data == json.loads(json.dumps(legacy_outcome_to_dict(report) | {
            "type": "LegacyOutcome", "schema_version": SCHEMA_VERSION,
        }))
