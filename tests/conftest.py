"""
Pytest configuration and fixtures for the Perpetuity test suite.

Fixtures provide the standard lineages, oracle parameters and run
configurations shared across unit and integration tests.
"""

from typing import List

import pytest

from perpetuity.cohorts import ChunkResult, FertilityWindow, advance_years
from perpetuity.config import AnalysisInput, LegacyInput, PercentileRun
from perpetuity.oracle import SustainabilityParameters


# ---------------------------------------------------------------------------
# Oracle Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def scenario_a_params() -> SustainabilityParameters:
    """
    $1M fund paying $30k to each of 2 heirs at 5% real, TFR 2.1.

    Distribution rate 6% vs safe threshold ~4.43%: not perpetual.
    """
    return SustainabilityParameters(
        real_return_rate=0.05,
        total_fertility_rate=2.1,
        generation_length_years=30,
        per_beneficiary_annual_real=30_000,
        initial_fund_real=1_000_000,
        starting_beneficiary_count=2,
    )


@pytest.fixture
def scenario_b_params(scenario_a_params) -> SustainabilityParameters:
    """Same as scenario A with $10k per heir: distribution rate 2%, perpetual."""
    from dataclasses import replace
    return replace(scenario_a_params, per_beneficiary_annual_real=10_000)


# ---------------------------------------------------------------------------
# Engine Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def window() -> FertilityWindow:
    """Standard fertility window (25-35 inclusive)."""
    return FertilityWindow(25, 35)


@pytest.fixture
def run_kwargs(window) -> dict:
    """Keyword arguments shared by ChunkedSimulator.run calls (scenario A)."""
    return dict(
        return_rate=0.05,
        per_beneficiary_real=30_000.0,
        death_age=90,
        min_distribution_age=21,
        total_fertility_rate=2.1,
        fertility_window=window,
        generation_length=30,
    )


class CountingEngine:
    """Wraps `advance_years` and records every call."""

    def __init__(self, engine=advance_years):
        self.engine = engine
        self.calls: List[int] = []

    def __call__(self, cohorts, fund_real, **kwargs) -> ChunkResult:
        self.calls.append(kwargs["years"])
        return self.engine(cohorts, fund_real, **kwargs)


@pytest.fixture
def counting_engine() -> CountingEngine:
    """Instrumented cohort engine."""
    return CountingEngine()


# ---------------------------------------------------------------------------
# Config Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def legacy_input() -> LegacyInput:
    """
    Perpetual legacy: $1M real (no inflation) paying $10k to 2 newborn heirs
    at 5% real.
    """
    return LegacyInput(
        eol_nominal_estate=1_000_000,
        years_from_base_year=0,
        nominal_return_rate=5.0,
        inflation_rate_percent=0.0,
        per_beneficiary_real_annual=10_000,
        starting_beneficiary_count=2,
        total_fertility_rate=2.1,
        initial_beneficiary_ages=(0, 0),
    )


@pytest.fixture
def finite_legacy_input() -> LegacyInput:
    """
    Finite legacy: $1M paying $30k to 2 childless heirs aged 30, simulated
    over 1,000 years. The fund runs dry after 36 full years.
    """
    return LegacyInput(
        eol_nominal_estate=1_000_000,
        years_from_base_year=0,
        nominal_return_rate=5.0,
        inflation_rate_percent=0.0,
        per_beneficiary_real_annual=30_000,
        starting_beneficiary_count=2,
        total_fertility_rate=0.0,
        initial_beneficiary_ages=(30, 30),
        cap_years=1_000,
    )


@pytest.fixture
def analysis_input(legacy_input) -> AnalysisInput:
    """
    Three-percentile analysis where every illustrative path is perpetual.

    Safe minimum estate is ~$451k, so 4 of the 5 estates qualify (80%).
    """
    return AnalysisInput(
        assumptions=legacy_input,
        p25=PercentileRun(eol_nominal_estate=800_000, nominal_return_rate=5.0),
        p50=PercentileRun(eol_nominal_estate=1_000_000, nominal_return_rate=5.0),
        p75=PercentileRun(eol_nominal_estate=2_000_000, nominal_return_rate=5.0),
        estates_after_tax=[400_000, 500_000, 800_000, 1_000_000, 2_000_000],
    )
