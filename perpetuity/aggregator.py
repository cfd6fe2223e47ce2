"""
Empirical success rate for Perpetuity.

Purpose
-------
Turns a batch of N independent end-of-life estates (one per Monte Carlo path
of the retirement engine) into the headline probability that the legacy is
perpetual. This figure, not the three illustrative percentile simulations, is
what users see as the success rate.

Method
------
Every estate is tested with the oracle's own predicate, vectorized:

    perpetual_i  ⇔  F_i > 0  and  (b · N_0) / F_i < θ_safe
    p = #{perpetual_i} / N

so the aggregate and the per-percentile "perpetual" labels share one formula
and cannot drift apart through rounding. The smallest qualifying estate,
``safe_min_estate = (b · N_0) / θ_safe``, is reported for display.

Estates may be given pre-tax (an estate tax collaborator is applied) and in
nominal dollars (deflated to the real base year before testing).

Example
-------
>>> result = empirical_success_rate(
...     [2_000_000.0, 500_000.0, 800_000.0, 3_000_000.0],
...     params,  # $30,000 to each of 2 heirs, 5% real, TFR 2.1
... )
>>> result.success_count
2
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence

import numpy as np

from .config import AggregateInput
from .constants import DEFAULT_ESTATE_PERCENTILES
from .estate import EstateTaxFn, estate_tax
from .exceptions import ValidationError
from .oracle import (
    SustainabilityParameters,
    annual_distribution,
    minimum_estate_required,
    safe_minimum_estate,
    safe_threshold,
)
from .utils import ensure_1d

__all__ = [
    "AggregateResult",
    "perpetual_mask",
    "empirical_success_rate",
    "after_tax_estates",
    "aggregate_from_input",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AggregateResult:
    """
    Probability of a perpetual legacy over a batch of estates.

    Attributes
    ----------
    prob_perpetual : float
        Share of estates passing the oracle (0.0 to 1.0).
    success_count : int
        Number of qualifying estates.
    n_paths : int
        Batch size N.
    min_estate_required : float
        Estate sustaining the distribution with no margin (+inf when the
        lineage outgrows any return).
    safe_min_estate : float
        Smallest estate passing the oracle.
    estate_percentiles : dict
        Percentile -> estate value (real, after tax) of the tested batch.
    """

    prob_perpetual: float
    success_count: int
    n_paths: int
    min_estate_required: float
    safe_min_estate: float
    estate_percentiles: Dict[int, float] = field(default_factory=dict)

    @property
    def success_rate_percent(self) -> int:
        """Headline percentage, rounded half-up."""
        return int(np.floor(self.prob_perpetual * 100 + 0.5))


def perpetual_mask(estates_real: np.ndarray, params: SustainabilityParameters) -> np.ndarray:
    """
    Oracle predicate applied to every estate.

    Parameters
    ----------
    estates_real : np.ndarray
        Real, after-tax estates (1-D).
    params : SustainabilityParameters
        Oracle parameters; `initial_fund_real` is ignored.

    Returns
    -------
    np.ndarray of bool
    """
    estates = np.asarray(estates_real, dtype=float)
    threshold = safe_threshold(params)
    distribution = annual_distribution(params)
    positive = estates > 0
    with np.errstate(divide="ignore", invalid="ignore"):
        rates = np.where(positive, distribution / np.where(positive, estates, 1.0), np.inf)
    return positive & (rates < threshold)


def after_tax_estates(
    estates_nominal: Sequence[float],
    *,
    marital_status: str = "single",
    year_of_death: int,
    extend_tax_cuts: bool = True,
    tax_fn: EstateTaxFn = estate_tax,
) -> np.ndarray:
    """Apply the estate tax collaborator to each pre-tax nominal estate."""
    arr = ensure_1d(estates_nominal, name="estates")
    return np.array(
        [e - tax_fn(float(e), marital_status, year_of_death, extend_tax_cuts) for e in arr],
        dtype=float,
    )


def empirical_success_rate(
    estates: Sequence[float],
    params: SustainabilityParameters,
    *,
    inflation_rate_percent: Optional[float] = None,
    years_from_base_year: float = 0.0,
    percentiles: Sequence[int] = DEFAULT_ESTATE_PERCENTILES,
) -> AggregateResult:
    """
    Share of post-tax estates that sustain the distribution forever.

    Parameters
    ----------
    estates : sequence of float
        Post-tax estates, one per independent path. Nominal when
        *inflation_rate_percent* is given, otherwise already real.
    params : SustainabilityParameters
        Oracle parameters shared with the percentile simulations.
    inflation_rate_percent : float, optional
        Annual inflation used to deflate nominal estates.
    years_from_base_year : float
        Years between the real-dollar base year and the estates.
    percentiles : sequence of int
        Percentiles of the tested estates to report.

    Returns
    -------
    AggregateResult

    Raises
    ------
    ValidationError
        If the batch is empty or contains non-finite values.
    """
    arr = ensure_1d(estates, name="estates")
    if arr.size == 0:
        raise ValidationError("estates must contain at least one path.")

    if inflation_rate_percent is not None:
        arr = arr / (1.0 + inflation_rate_percent / 100.0) ** years_from_base_year

    mask = perpetual_mask(arr, params)
    success = int(mask.sum())
    prob = success / arr.size

    result = AggregateResult(
        prob_perpetual=prob,
        success_count=success,
        n_paths=int(arr.size),
        min_estate_required=minimum_estate_required(params),
        safe_min_estate=safe_minimum_estate(params),
        estate_percentiles={int(p): float(np.percentile(arr, p)) for p in percentiles},
    )
    logger.debug(
        "Success rate: %d / %d estates above safe minimum %.2f -> %d%%",
        success, arr.size, result.safe_min_estate, result.success_rate_percent,
    )
    return result


def aggregate_from_input(agg: AggregateInput) -> AggregateResult:
    """Success rate for a validated `AggregateInput`."""
    params = SustainabilityParameters(
        real_return_rate=agg.real_return_rate,
        total_fertility_rate=agg.total_fertility_rate,
        generation_length_years=agg.generation_length_years,
        per_beneficiary_annual_real=agg.per_beneficiary_real_annual,
        initial_fund_real=0.0,
        starting_beneficiary_count=agg.starting_beneficiary_count,
    )
    return empirical_success_rate(
        agg.estates_after_tax,
        params,
        inflation_rate_percent=agg.inflation_rate_percent,
        years_from_base_year=agg.years_from_base_year,
    )
