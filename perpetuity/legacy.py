"""
Legacy analysis for Perpetuity.

Purpose
-------
Glue between the retirement engine's output and the perpetuity models:

- `run_legacy` turns one end-of-life estate into a simulated legacy
  (deflate, convert the return to real, backfill the heirs, simulate).
- `analyze_legacy` runs the three illustrative percentile paths and the
  empirical success rate over every path, and assembles the card shown to
  the user.

Percentile mapping
------------------
The illustrative runs are fed from the P25/P50/P75 estates of the retirement
engine but reported under the keys ``p10``/``p50``/``p90``:

    p10 <- P25 estate    p50 <- P50 estate    p90 <- P75 estate

Example
-------
>>> from perpetuity.config import LegacyInput
>>> result = run_legacy(LegacyInput(
...     eol_nominal_estate=1_000_000, nominal_return_rate=5.0,
...     inflation_rate_percent=0.0, per_beneficiary_real_annual=10_000,
...     starting_beneficiary_count=2, total_fertility_rate=2.1,
...     initial_beneficiary_ages=(0, 0),
... ))
>>> result.outcome.label
'Perpetual Legacy'
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Tuple

from .aggregator import AggregateResult, empirical_success_rate
from .backfill import backfill
from .cohorts import FertilityWindow, initial_cohorts
from .config import AnalysisInput, LegacyInput, PercentileRun
from .oracle import SustainabilityParameters
from .simulation import (
    ChunkedSimulator,
    Finite,
    NominalContext,
    NotModeled,
    SimulationOutcome,
)
from .utils import deflate, format_years, implied_real_cagr, real_return

__all__ = [
    "LegacyRunResult",
    "PercentileOutcome",
    "LegacyOutcome",
    "ProgressCallback",
    "PERCENTILE_KEYS",
    "implied_nominal_return",
    "percentile_run",
    "legacy_parameters",
    "run_legacy",
    "analyze_legacy",
]

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int, int], None]
"""Called as (percentile_key, completed_runs, total_runs)."""

PERCENTILE_KEYS: Tuple[Tuple[str, str], ...] = (
    ("p10", "p25"),
    ("p50", "p50"),
    ("p90", "p75"),
)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LegacyRunResult:
    """
    One simulated legacy and the inputs it was actually run with.

    Attributes
    ----------
    outcome : Perpetual | Finite | NotModeled
    initial_fund_real : float
        Estate deflated to base-year dollars.
    real_return_rate : float
        Annual real return (decimal).
    adjusted_ages : tuple of int
        Starting ages after backfill.
    adjusted_count : int
        Beneficiary count after backfill (oracle head count).
    """

    outcome: SimulationOutcome
    initial_fund_real: float
    real_return_rate: float
    adjusted_ages: Tuple[int, ...] = ()
    adjusted_count: int = 0


@dataclass(frozen=True)
class PercentileOutcome:
    """Summary of one illustrative run."""

    years: Optional[int]
    fund_left_real: float
    is_perpetual: bool

    @classmethod
    def from_outcome(cls, outcome: SimulationOutcome) -> "PercentileOutcome":
        return cls(
            years=outcome.years,
            fund_left_real=outcome.fund_left_real,
            is_perpetual=outcome.is_perpetual,
        )


@dataclass(frozen=True)
class LegacyOutcome:
    """
    Full legacy analysis.

    `outcome` is the median run; `years`, `fund_left_real` and
    `last_living_count` mirror it. `aggregate` carries the headline
    probability over every path.
    """

    outcome: SimulationOutcome
    percentile_outcomes: Dict[str, PercentileOutcome]
    aggregate: Optional[AggregateResult]
    card_label: str
    runs: Dict[str, LegacyRunResult] = field(default_factory=dict)

    @property
    def years(self) -> Optional[int]:
        return self.outcome.years

    @property
    def fund_left_real(self) -> float:
        return self.outcome.fund_left_real

    @property
    def last_living_count(self) -> float:
        return self.outcome.last_living_count

    @property
    def prob_perpetual(self) -> float:
        return self.aggregate.prob_perpetual if self.aggregate is not None else 0.0


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def implied_nominal_return(
    start_balance: float,
    end_real: float,
    years: float,
    inflation_pct: float,
) -> float:
    """
    Nominal return (percent) implied by growing *start_balance* into the
    real balance *end_real* over *years* years.

    Examples
    --------
    >>> round(implied_nominal_return(100.0, 121.0, 2, 0.0), 6)
    10.0
    """
    real = implied_real_cagr(start_balance, end_real, years)
    return ((1.0 + real) * (1.0 + inflation_pct / 100.0) - 1.0) * 100.0


def percentile_run(
    end_real: float,
    *,
    start_balance: float,
    years: float,
    inflation_pct: float,
) -> PercentileRun:
    """Build a percentile path from its real end balance and implied return."""
    nominal_return = implied_nominal_return(start_balance, end_real, years, inflation_pct)
    return PercentileRun(
        eol_nominal_estate=end_real * (1.0 + inflation_pct / 100.0) ** years,
        nominal_return_rate=nominal_return,
    )


def _not_modeled_reason(inp: LegacyInput, valid_ages: Tuple[int, ...], fund_real: float) -> Optional[str]:
    if inp.starting_beneficiary_count <= 0:
        return "no beneficiaries"
    if inp.per_beneficiary_real_annual <= 0:
        return "zero distribution"
    if not valid_ages:
        return "no living beneficiaries"
    if fund_real <= 0:
        return "no estate"
    return None


def legacy_parameters(inp: LegacyInput) -> SustainabilityParameters:
    """
    Oracle parameters of *inp* after deflation and backfill.

    The same parameters drive the percentile runs and the success rate, so
    both judge perpetuity with one head count and one return.
    """
    valid_ages = tuple(a for a in inp.initial_beneficiary_ages if a < inp.death_age)
    _, adjusted_count = backfill(
        valid_ages,
        inp.starting_beneficiary_count,
        inp.fertility_window[1],
        inp.generation_length_years,
        inp.total_fertility_rate,
    )
    return SustainabilityParameters(
        real_return_rate=real_return(inp.nominal_return_rate, inp.inflation_rate_percent),
        total_fertility_rate=inp.total_fertility_rate,
        generation_length_years=inp.generation_length_years,
        per_beneficiary_annual_real=inp.per_beneficiary_real_annual,
        initial_fund_real=deflate(
            inp.eol_nominal_estate, inp.inflation_rate_percent, inp.years_from_base_year
        ),
        starting_beneficiary_count=adjusted_count,
    )


# ---------------------------------------------------------------------------
# Runs
# ---------------------------------------------------------------------------

def run_legacy(inp: LegacyInput, simulator: Optional[ChunkedSimulator] = None) -> LegacyRunResult:
    """
    Simulate the legacy described by *inp*.

    Parameters
    ----------
    inp : LegacyInput
        Validated run configuration.
    simulator : ChunkedSimulator, optional
        Defaults to a fresh `ChunkedSimulator()`.

    Returns
    -------
    LegacyRunResult
        `outcome` is `NotModeled` when there are no beneficiaries, no
        payout, no heir younger than `death_age`, or no estate.
    """
    simulator = simulator or ChunkedSimulator()
    fund_real = deflate(inp.eol_nominal_estate, inp.inflation_rate_percent, inp.years_from_base_year)
    rate = real_return(inp.nominal_return_rate, inp.inflation_rate_percent)
    valid_ages = tuple(a for a in inp.initial_beneficiary_ages if a < inp.death_age)

    reason = _not_modeled_reason(inp, valid_ages, fund_real)
    if reason is not None:
        logger.info("Legacy not modeled: %s", reason)
        return LegacyRunResult(NotModeled(reason), fund_real, rate)

    window = FertilityWindow(*inp.fertility_window)
    ages, count = backfill(
        valid_ages,
        inp.starting_beneficiary_count,
        window.end,
        inp.generation_length_years,
        inp.total_fertility_rate,
    )
    outcome = simulator.run(
        initial_cohorts(ages, count, window.end),
        fund_real,
        return_rate=rate,
        per_beneficiary_real=inp.per_beneficiary_real_annual,
        death_age=inp.death_age,
        min_distribution_age=inp.min_distribution_age,
        total_fertility_rate=inp.total_fertility_rate,
        fertility_window=window,
        generation_length=inp.generation_length_years,
        cap_years=inp.cap_years,
        starting_beneficiary_count=count,
        nominal=NominalContext(
            inflation_rate_percent=inp.inflation_rate_percent,
            years_from_base_year=inp.years_from_base_year,
            marital_status=inp.marital_status,
        ),
    )
    logger.info(
        "Legacy of %.0f real over %d heirs at %.2f%% real: %s",
        fund_real, count, rate * 100, outcome.label,
    )
    return LegacyRunResult(outcome, fund_real, rate, ages, count)


def _card_label(outcomes: Dict[str, SimulationOutcome]) -> str:
    if all(o.is_perpetual for o in outcomes.values()):
        return "Perpetual Legacy"
    median = outcomes["p50"]
    if isinstance(median, (Finite, NotModeled)):
        return median.label
    return "Finite Legacy"


def analyze_legacy(
    analysis: AnalysisInput,
    simulator: Optional[ChunkedSimulator] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> LegacyOutcome:
    """
    Percentile simulations plus the empirical success rate.

    Parameters
    ----------
    analysis : AnalysisInput
        Shared assumptions, the P25/P50/P75 paths and every post-tax estate.
    simulator : ChunkedSimulator, optional
        Shared by the three runs.
    on_progress : callable, optional
        Called after each percentile run.

    Returns
    -------
    LegacyOutcome
    """
    simulator = simulator or ChunkedSimulator()
    base = analysis.assumptions
    runs: Dict[str, LegacyRunResult] = {}

    for done, (key, source) in enumerate(PERCENTILE_KEYS, start=1):
        path: PercentileRun = getattr(analysis, source)
        inp = base.model_copy(update={
            "eol_nominal_estate": path.eol_nominal_estate,
            "nominal_return_rate": path.nominal_return_rate,
        })
        runs[key] = run_legacy(inp, simulator)
        if on_progress is not None:
            on_progress(key, done, len(PERCENTILE_KEYS))

    outcomes = {key: run.outcome for key, run in runs.items()}

    aggregate: Optional[AggregateResult] = None
    if not isinstance(outcomes["p50"], NotModeled):
        median_inp = base.model_copy(update={
            "eol_nominal_estate": analysis.p50.eol_nominal_estate,
            "nominal_return_rate": analysis.p50.nominal_return_rate,
        })
        aggregate = empirical_success_rate(
            analysis.estates_after_tax,
            legacy_parameters(median_inp),
            inflation_rate_percent=base.inflation_rate_percent,
            years_from_base_year=base.years_from_base_year,
        )

    label = _card_label(outcomes)
    logger.info(
        "Legacy analysis: %s (median %s, success rate %s)",
        label,
        format_years(outcomes["p50"].years),
        f"{aggregate.success_rate_percent}%" if aggregate is not None else "n/a",
    )
    return LegacyOutcome(
        outcome=outcomes["p50"],
        percentile_outcomes={k: PercentileOutcome.from_outcome(o) for k, o in outcomes.items()},
        aggregate=aggregate,
        card_label=label,
        runs=runs,
    )
