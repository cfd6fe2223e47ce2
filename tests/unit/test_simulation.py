"""
Unit tests for simulation.py module.

Tests the oracle short-circuit, chunked exits, outcome variants and
generation snapshots.
"""

import pytest

from perpetuity.cohorts import ChunkResult, Cohort, initial_cohorts
from perpetuity.exceptions import ValidationError
from perpetuity.simulation import (
    ChunkedSimulator,
    Finite,
    NominalContext,
    NotModeled,
    Perpetual,
)


def _fake_engine(growth_per_chunk, calls):
    """Engine that multiplies the fund each chunk without touching cohorts."""
    def engine(cohorts, fund_real, **kwargs):
        calls.append(kwargs["years"])
        return ChunkResult(tuple(cohorts), fund_real * growth_per_chunk, kwargs["years"], False)
    return engine


class TestOutcomes:
    """Test the outcome variants."""

    def test_perpetual(self):
        outcome = Perpetual(fund_left_real=1.0, last_living_count=2.0)
        assert outcome.is_perpetual
        assert outcome.years is None
        assert outcome.label == "Perpetual Legacy"

    def test_finite(self):
        outcome = Finite(years=36, fund_left_real=0.0, last_living_count=2.0, cause="depletion")
        assert not outcome.is_perpetual
        assert outcome.label == "Finite Legacy for 36 years"

    def test_not_modeled(self):
        outcome = NotModeled(reason="no beneficiaries")
        assert not outcome.is_perpetual
        assert outcome.years is None
        assert outcome.fund_left_real == 0.0
        assert outcome.label == "Not modeled"


class TestOracleShortCircuit:
    """Scenario B: the oracle accepts and no engine step runs."""

    def test_zero_engine_steps(self, counting_engine, run_kwargs):
        simulator = ChunkedSimulator(counting_engine)
        run_kwargs["per_beneficiary_real"] = 10_000.0
        outcome = simulator.run(
            initial_cohorts([0, 0], 2, 35),
            1_000_000.0,
            cap_years=10_000,
            starting_beneficiary_count=2,
            **run_kwargs,
        )
        assert counting_engine.calls == []
        assert isinstance(outcome, Perpetual)
        assert outcome.reason == "oracle"
        assert outcome.fund_left_real == 1_000_000.0
        assert outcome.last_living_count == 2

    def test_short_horizon_always_simulates(self, counting_engine, run_kwargs):
        simulator = ChunkedSimulator(counting_engine)
        run_kwargs["per_beneficiary_real"] = 10_000.0
        outcome = simulator.run(
            initial_cohorts([0, 0], 2, 35), 1_000_000.0, cap_years=50, **run_kwargs
        )
        assert counting_engine.calls == [10, 10, 10, 10, 10]
        assert isinstance(outcome, Finite)
        assert outcome.cause == "horizon"
        assert outcome.years == 50


class TestChunkedRun:
    """Test depletion, trend and horizon exits."""

    def test_scenario_a_is_finite(self, run_kwargs):
        """Childless adult heirs drawing 6% from a 5% fund run dry in year 37."""
        outcome = ChunkedSimulator().run(
            (Cohort(1.0, 40, False), Cohort(1.0, 40, False)),
            1_000_000.0,
            starting_beneficiary_count=2,
            **run_kwargs,
        )
        assert isinstance(outcome, Finite)
        assert outcome.cause == "depletion"
        assert outcome.years == 36
        assert outcome.fund_left_real == 0.0
        assert outcome.last_living_count == 2.0

    def test_extinction_cause(self, run_kwargs):
        run_kwargs.update(per_beneficiary_real=1.0, total_fertility_rate=0.0)
        outcome = ChunkedSimulator().run(
            (Cohort(1.0, 80, False),), 1e9, cap_years=1_000, **run_kwargs
        )
        assert isinstance(outcome, Finite)
        assert outcome.cause == "extinction"
        assert outcome.years == 10

    def test_years_are_exact_within_chunk(self, run_kwargs):
        calls = []

        def engine(cohorts, fund_real, **kwargs):
            calls.append(kwargs["years"])
            if len(calls) == 3:
                return ChunkResult(tuple(cohorts), 0.0, 3, True, "depletion")
            return ChunkResult(tuple(cohorts), fund_real, kwargs["years"], False)

        outcome = ChunkedSimulator(engine).run(
            (Cohort(1.0, 30),), 1_000.0, cap_years=1_000, **run_kwargs
        )
        assert outcome.years == 23

    def test_trend_exit(self, run_kwargs):
        """A fund compounding above 3% a year past year 1,000 is perpetual."""
        calls = []
        simulator = ChunkedSimulator(_fake_engine(1.5, calls))
        outcome = simulator.run(
            (Cohort(1.0, 30),), 100_000.0, cap_years=10_000, **run_kwargs
        )
        assert isinstance(outcome, Perpetual)
        assert outcome.reason == "trend"
        assert len(calls) == 102

    def test_slow_growth_runs_to_horizon(self, run_kwargs):
        calls = []
        simulator = ChunkedSimulator(_fake_engine(1.01, calls))
        outcome = simulator.run(
            (Cohort(1.0, 30),), 100_000.0, cap_years=10_000, **run_kwargs
        )
        assert isinstance(outcome, Finite)
        assert outcome.cause == "horizon"
        assert outcome.years == 10_000
        assert len(calls) == 1_000

    def test_no_trend_exit_below_full_horizon(self, run_kwargs):
        calls = []
        simulator = ChunkedSimulator(_fake_engine(1.5, calls))
        outcome = simulator.run(
            (Cohort(1.0, 30),), 1_000_000.0, cap_years=1_500, **run_kwargs
        )
        assert isinstance(outcome, Finite)
        assert outcome.cause == "horizon"
        assert len(calls) == 150

    def test_last_chunk_is_truncated(self, run_kwargs):
        calls = []
        ChunkedSimulator(_fake_engine(1.0, calls)).run(
            (Cohort(1.0, 30),), 1.0, cap_years=25, **run_kwargs
        )
        assert calls == [10, 10, 5]

    def test_zero_cap(self, counting_engine, run_kwargs):
        outcome = ChunkedSimulator(counting_engine).run(
            (Cohort(1.0, 30),), 1_000.0, cap_years=0, **run_kwargs
        )
        assert counting_engine.calls == []
        assert outcome == Finite(0, 1_000.0, 1.0, "horizon")

    def test_deterministic(self, run_kwargs):
        simulator = ChunkedSimulator()
        args = (initial_cohorts([0, 0], 2, 35), 1_000_000.0)
        first = simulator.run(*args, cap_years=300, **run_kwargs)
        second = simulator.run(*args, cap_years=300, **run_kwargs)
        assert first == second


class TestValidation:
    """Test input validation."""

    def test_negative_cap_rejected(self, run_kwargs):
        with pytest.raises(ValidationError):
            ChunkedSimulator().run((Cohort(1.0, 30),), 1.0, cap_years=-10, **run_kwargs)

    def test_fractional_cap_rejected(self, run_kwargs):
        with pytest.raises(ValidationError):
            ChunkedSimulator().run((Cohort(1.0, 30),), 1.0, cap_years=10.5, **run_kwargs)

    def test_nan_fund_rejected(self, run_kwargs):
        with pytest.raises(ValidationError):
            ChunkedSimulator().run((Cohort(1.0, 30),), float("nan"), **run_kwargs)

    def test_chunk_years_positive(self):
        with pytest.raises(ValidationError):
            ChunkedSimulator(chunk_years=0)

    @pytest.mark.parametrize("chunk_years", [7, 30, 400])
    def test_chunk_years_must_hit_trend_checkpoints(self, chunk_years):
        with pytest.raises(ValidationError, match="must divide"):
            ChunkedSimulator(chunk_years=chunk_years)

    @pytest.mark.parametrize("chunk_years", [1, 5, 20, 50, 100])
    def test_dividing_chunk_years_accepted(self, chunk_years):
        assert ChunkedSimulator(chunk_years=chunk_years).chunk_years == chunk_years


class TestGenerationSnapshots:
    """Test per-generation estate snapshots."""

    def test_snapshots_recorded(self, run_kwargs):
        calls = []
        simulator = ChunkedSimulator(_fake_engine(1.0, calls), tax_fn=lambda *args: 0.0)
        outcome = simulator.run(
            (Cohort(1.0, 30),),
            1_000_000.0,
            cap_years=100,
            nominal=NominalContext(inflation_rate_percent=0.0, years_from_base_year=0),
            **run_kwargs,
        )
        assert [g.year for g in outcome.generations] == [30, 60, 90]
        assert [g.generation for g in outcome.generations] == [1, 2, 3]
        assert all(g.net_to_heirs == g.estate_value_nominal for g in outcome.generations)

    def test_snapshots_apply_estate_tax(self, run_kwargs):
        calls = []
        simulator = ChunkedSimulator(_fake_engine(1.0, calls))
        outcome = simulator.run(
            (Cohort(1.0, 30),),
            100_000_000.0,
            cap_years=40,
            nominal=NominalContext(inflation_rate_percent=0.0, years_from_base_year=0),
            **run_kwargs,
        )
        (snapshot,) = outcome.generations
        assert snapshot.estate_tax > 0
        assert snapshot.net_to_heirs == pytest.approx(
            snapshot.estate_value_nominal - snapshot.estate_tax
        )

    def test_at_most_ten_snapshots(self, run_kwargs):
        calls = []
        simulator = ChunkedSimulator(_fake_engine(1.0, calls), tax_fn=lambda *args: 0.0)
        outcome = simulator.run(
            (Cohort(1.0, 30),),
            1_000.0,
            cap_years=1_000,
            nominal=NominalContext(inflation_rate_percent=2.0, years_from_base_year=10),
            **run_kwargs,
        )
        assert len(outcome.generations) == 10

    def test_no_snapshots_without_nominal_context(self, run_kwargs):
        calls = []
        outcome = ChunkedSimulator(_fake_engine(1.0, calls)).run(
            (Cohort(1.0, 30),), 1_000.0, cap_years=100, **run_kwargs
        )
        assert outcome.generations == ()
