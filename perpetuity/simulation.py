"""Chunked perpetuity simulator for Perpetuity

Runs the cohort engine in 10-year chunks for up to `cap_years` years and
turns the result into an explicit outcome variant:

- `Perpetual`  : the oracle accepted the configuration up front, or the fund
                 kept compounding above 3% a year past year 1,000.
- `Finite`     : the lineage died out, the fund ran dry, or the horizon ended.
- `NotModeled` : degenerate input; no simulation was attempted.

Exit paths
----------
1. Oracle pre-check (only when `cap_years >= 10,000`): O(1), zero engine steps.
2. Depletion or extinction inside a chunk: returns with the years completed.
3. Trend exit: after the chunk starting at year 1,000, the annualized real
   growth of the fund since that checkpoint exceeds 3%.

Typical usage
-------------
>>> simulator = ChunkedSimulator()
>>> outcome = simulator.run(
...     initial_cohorts=initial_cohorts([0, 0], 2, 35),
...     initial_fund_real=1_000_000.0,
...     return_rate=0.05,
...     per_beneficiary_real=30_000.0,
...     death_age=90,
...     min_distribution_age=21,
...     total_fertility_rate=2.1,
...     fertility_window=FertilityWindow(25, 35),
...     generation_length=30,
...     cap_years=10_000,
...     starting_beneficiary_count=2,
... )
>>> outcome.is_perpetual
False
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple, Union

from .cohorts import (
    ChunkResult,
    Cohort,
    FertilityWindow,
    advance_years,
    births_per_year,
    consolidate,
    living_count,
)
from .constants import (
    CHUNK_YEARS,
    EARLY_EXIT_CHECK_YEAR,
    EARLY_EXIT_GROWTH_RATE,
    MAX_GENERATION_SNAPSHOTS,
    PERPETUAL_HORIZON_YEARS,
    TREND_SNAPSHOT_YEAR,
)
from .estate import EstateTaxFn, estate_tax
from .exceptions import ValidationError
from .oracle import SustainabilityParameters, is_perpetual
from .utils import check_finite, check_non_negative, format_years, inflate

__all__ = [
    "GenerationSnapshot",
    "NominalContext",
    "Perpetual",
    "Finite",
    "NotModeled",
    "SimulationOutcome",
    "ChunkedSimulator",
]

logger = logging.getLogger(__name__)

HORIZON = "horizon"


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class GenerationSnapshot:
    """Estate view of the fund at a generation boundary."""

    generation: int
    year: int
    estate_value_nominal: float
    estate_tax: float
    net_to_heirs: float
    fund_real: float
    living_beneficiaries: float


@dataclass(frozen=True)
class NominalContext:
    """
    Calendar context needed to value the fund in nominal dollars.

    Attributes
    ----------
    inflation_rate_percent : float
        Annual inflation, in percent.
    years_from_base_year : int
        Years between the base year and the start of the legacy.
    marital_status : str
        Estate tax filing status of each generation's estate.
    base_year : int
        Calendar year of the real-dollar base.
    """

    inflation_rate_percent: float
    years_from_base_year: int
    marital_status: str = "single"
    base_year: int = 2025


@dataclass(frozen=True)
class Perpetual:
    """Payouts are expected to continue indefinitely."""

    fund_left_real: float
    last_living_count: float
    reason: str = "oracle"
    generations: Tuple[GenerationSnapshot, ...] = ()

    @property
    def years(self) -> Optional[int]:
        return None

    @property
    def is_perpetual(self) -> bool:
        return True

    @property
    def label(self) -> str:
        return "Perpetual Legacy"


@dataclass(frozen=True)
class Finite:
    """
    Payouts stop after `years` years.

    `cause` is "extinction" (nobody left), "depletion" (fund exhausted) or
    "horizon" (the run reached `cap_years` with money left).
    """

    years: int
    fund_left_real: float
    last_living_count: float
    cause: str
    generations: Tuple[GenerationSnapshot, ...] = ()

    @property
    def is_perpetual(self) -> bool:
        return False

    @property
    def label(self) -> str:
        return f"Finite Legacy for {format_years(self.years)}"


@dataclass(frozen=True)
class NotModeled:
    """Degenerate input: the legacy was not simulated."""

    reason: str

    @property
    def years(self) -> Optional[int]:
        return None

    @property
    def fund_left_real(self) -> float:
        return 0.0

    @property
    def last_living_count(self) -> float:
        return 0.0

    @property
    def is_perpetual(self) -> bool:
        return False

    @property
    def label(self) -> str:
        return "Not modeled"


SimulationOutcome = Union[Perpetual, Finite, NotModeled]

ChunkEngine = Callable[..., ChunkResult]


# ---------------------------------------------------------------------------
# Simulator
# ---------------------------------------------------------------------------

class ChunkedSimulator:
    """
    Orchestrates the cohort engine in fixed-size chunks.

    Parameters
    ----------
    engine : callable, default advance_years
        Chunk transition with the `advance_years` signature. Injectable so
        callers can instrument or replace it.
    tax_fn : callable, default estate_tax
        Estate tax collaborator for generation snapshots.
    chunk_years : int, default 10
        Years per engine call. Must divide the year-100 and year-1000
        checkpoints of the trend exit.

    Notes
    -----
    The simulator holds no run state; every `run` call works on its own
    immutable cohort tuples, so one instance can serve many runs.
    """

    def __init__(
        self,
        engine: ChunkEngine = advance_years,
        *,
        tax_fn: EstateTaxFn = estate_tax,
        chunk_years: int = CHUNK_YEARS,
    ):
        if chunk_years <= 0:
            raise ValidationError(f"chunk_years must be positive, got {chunk_years}.")
        if TREND_SNAPSHOT_YEAR % chunk_years or EARLY_EXIT_CHECK_YEAR % chunk_years:
            raise ValidationError(
                f"chunk_years must divide {TREND_SNAPSHOT_YEAR} and {EARLY_EXIT_CHECK_YEAR}, got {chunk_years}."
            )
        self.engine = engine
        self.tax_fn = tax_fn
        self.chunk_years = chunk_years

    def run(
        self,
        initial_cohorts: Sequence[Cohort],
        initial_fund_real: float,
        *,
        return_rate: float,
        per_beneficiary_real: float,
        death_age: int,
        min_distribution_age: int,
        total_fertility_rate: float,
        fertility_window: FertilityWindow,
        generation_length: float,
        cap_years: int = PERPETUAL_HORIZON_YEARS,
        starting_beneficiary_count: Optional[float] = None,
        nominal: Optional[NominalContext] = None,
    ) -> SimulationOutcome:
        """
        Simulate payouts until the lineage or the fund runs out, or `cap_years`.

        Parameters
        ----------
        initial_cohorts : sequence of Cohort
            Starting lineage (see `cohorts.initial_cohorts`).
        initial_fund_real : float
            Fund in real dollars.
        return_rate : float
            Annual real return.
        per_beneficiary_real : float
            Real payout per eligible beneficiary per year.
        death_age, min_distribution_age : int
            Demographic bounds.
        total_fertility_rate : float
            Lifetime children per beneficiary.
        fertility_window : FertilityWindow
            Inclusive ages at which children are born.
        generation_length : float
            Years per generation (oracle and snapshots).
        cap_years : int
            Simulation horizon.
        starting_beneficiary_count : float, optional
            Head count for the oracle; defaults to the living size of
            `initial_cohorts`.
        nominal : NominalContext, optional
            When given, per-generation estate snapshots are recorded.

        Returns
        -------
        Perpetual or Finite
        """
        check_finite("initial_fund_real", initial_fund_real)
        check_finite("return_rate", return_rate)
        check_finite("per_beneficiary_real", per_beneficiary_real)
        check_finite("total_fertility_rate", total_fertility_rate)
        check_non_negative("cap_years", cap_years)
        if int(cap_years) != cap_years:
            raise ValidationError(f"cap_years must be a whole number of years, got {cap_years}.")
        cap_years = int(cap_years)

        cohorts: Tuple[Cohort, ...] = tuple(initial_cohorts)
        if starting_beneficiary_count is None:
            starting_beneficiary_count = living_count(cohorts)

        params = SustainabilityParameters(
            real_return_rate=return_rate,
            total_fertility_rate=total_fertility_rate,
            generation_length_years=generation_length,
            per_beneficiary_annual_real=per_beneficiary_real,
            initial_fund_real=initial_fund_real,
            starting_beneficiary_count=starting_beneficiary_count,
        )
        if cap_years >= PERPETUAL_HORIZON_YEARS and is_perpetual(params):
            logger.debug("Oracle accepted configuration; skipping simulation")
            return Perpetual(
                fund_left_real=initial_fund_real,
                last_living_count=starting_beneficiary_count,
                reason="oracle",
            )

        births = births_per_year(total_fertility_rate, fertility_window)
        fund = float(initial_fund_real)
        years = 0
        fund_at_snapshot = 0.0
        fund_at_check = 0.0
        generations: List[GenerationSnapshot] = []
        next_generation_year = generation_length

        for t in range(0, cap_years, self.chunk_years):
            result = self.engine(
                cohorts,
                fund,
                return_rate=return_rate,
                per_beneficiary_real=per_beneficiary_real,
                death_age=death_age,
                min_distribution_age=min_distribution_age,
                total_fertility_rate=total_fertility_rate,
                fertility_window=fertility_window,
                births_per_year=births,
                years=min(self.chunk_years, cap_years - t),
            )
            cohorts = consolidate(result.cohorts)
            fund = result.fund_real
            years += result.years_completed

            if result.depleted:
                logger.debug("Run ended by %s after %d years", result.cause, years)
                return Finite(
                    years=years,
                    fund_left_real=0.0,
                    last_living_count=living_count(cohorts),
                    cause=result.cause,
                    generations=tuple(generations),
                )

            if nominal is not None and years >= next_generation_year and len(generations) < MAX_GENERATION_SNAPSHOTS:
                generations.append(
                    self._snapshot(len(generations) + 1, years, fund, cohorts, nominal)
                )
                next_generation_year += generation_length

            if t == TREND_SNAPSHOT_YEAR and fund_at_snapshot == 0:
                fund_at_snapshot = fund
            if t == EARLY_EXIT_CHECK_YEAR and fund_at_check == 0:
                fund_at_check = fund

            if (
                t > EARLY_EXIT_CHECK_YEAR
                and cap_years >= PERPETUAL_HORIZON_YEARS
                and fund_at_snapshot > 0
                and fund_at_check > 0
                and fund > fund_at_check
            ):
                growth = (fund / fund_at_check) ** (1.0 / (t - EARLY_EXIT_CHECK_YEAR)) - 1.0
                if growth > EARLY_EXIT_GROWTH_RATE:
                    logger.debug(
                        "Fund growing %.2f%%/yr at year %d; concluding perpetual", growth * 100, t
                    )
                    return Perpetual(
                        fund_left_real=fund,
                        last_living_count=living_count(cohorts),
                        reason="trend",
                        generations=tuple(generations),
                    )

        return Finite(
            years=years,
            fund_left_real=fund,
            last_living_count=living_count(cohorts),
            cause=HORIZON,
            generations=tuple(generations),
        )

    # -------------------- Helpers --------------------
    def _snapshot(
        self,
        generation: int,
        year: int,
        fund_real: float,
        cohorts: Sequence[Cohort],
        nominal: NominalContext,
    ) -> GenerationSnapshot:
        elapsed = nominal.years_from_base_year + year
        estate_nominal = inflate(fund_real, nominal.inflation_rate_percent, elapsed)
        tax = self.tax_fn(estate_nominal, nominal.marital_status, nominal.base_year + elapsed, True)
        return GenerationSnapshot(
            generation=generation,
            year=year,
            estate_value_nominal=estate_nominal,
            estate_tax=tax,
            net_to_heirs=estate_nominal - tax,
            fund_real=fund_real,
            living_beneficiaries=living_count(cohorts),
        )
