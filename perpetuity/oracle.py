"""
Closed-form sustainability check for Perpetuity.

Purpose
-------
Decides in O(1) whether a fund can pay a constant real distribution to every
beneficiary forever, given a real return and a lineage that grows or shrinks
at a constant rate.

Mathematical Framework
----------------------
Population growth is linearized around replacement fertility (TFR = 2.0):

    g = (TFR - 2.0) / L

where L is the generation length in years. The fund is sustainable when the
distribution rate stays below the real return net of population growth, with
a 5% safety haircut:

    d = (b · N_0) / F_0
    θ = r - g
    θ_safe = 0.95 · θ
    perpetual  ⇔  d < θ_safe          (strict: equality is not perpetual)

Equivalently, the smallest fund that qualifies is

    F_min = (b · N_0) / θ_safe

which is what the empirical aggregator compares estates against. Both sides
are computed from the helpers in this module so the two never drift.

Example
-------
>>> params = SustainabilityParameters(
...     real_return_rate=0.05,
...     total_fertility_rate=2.1,
...     generation_length_years=30,
...     per_beneficiary_annual_real=10_000,
...     initial_fund_real=1_000_000,
...     starting_beneficiary_count=2,
... )
>>> is_perpetual(params)
True
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Dict

from .constants import REPLACEMENT_FERTILITY_RATE, SAFETY_MARGIN
from .exceptions import ConfigurationError
from .utils import check_finite

__all__ = [
    "SustainabilityParameters",
    "population_growth_rate",
    "perpetual_threshold",
    "safe_threshold",
    "annual_distribution",
    "distribution_rate",
    "is_perpetual",
    "minimum_estate_required",
    "safe_minimum_estate",
    "describe",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SustainabilityParameters:
    """
    Immutable inputs of the sustainability oracle.

    Parameters
    ----------
    real_return_rate : float
        Annual real (inflation-adjusted) return, e.g. 0.05.
    total_fertility_rate : float
        Lifetime children per beneficiary.
    generation_length_years : float
        Years between generations (must be > 0).
    per_beneficiary_annual_real : float
        Constant real payout per eligible beneficiary per year.
    initial_fund_real : float
        Fund balance in real dollars.
    starting_beneficiary_count : float
        Number of beneficiaries at the start.
    """

    real_return_rate: float
    total_fertility_rate: float
    generation_length_years: float
    per_beneficiary_annual_real: float
    initial_fund_real: float
    starting_beneficiary_count: float

    def __post_init__(self):
        for name in (
            "real_return_rate",
            "total_fertility_rate",
            "generation_length_years",
            "per_beneficiary_annual_real",
            "initial_fund_real",
            "starting_beneficiary_count",
        ):
            check_finite(name, getattr(self, name))
        if self.generation_length_years <= 0:
            raise ConfigurationError(
                f"generation_length_years must be positive, got {self.generation_length_years}. "
                f"Population growth is measured per generation."
            )

    def with_fund(self, initial_fund_real: float) -> "SustainabilityParameters":
        """Return a copy evaluated against a different fund balance."""
        return replace(self, initial_fund_real=initial_fund_real)


# ---------------------------------------------------------------------------
# Formulas
# ---------------------------------------------------------------------------

def population_growth_rate(params: SustainabilityParameters) -> float:
    """Linear lineage growth rate g = (TFR - 2) / L."""
    return (params.total_fertility_rate - REPLACEMENT_FERTILITY_RATE) / params.generation_length_years


def perpetual_threshold(params: SustainabilityParameters) -> float:
    """Highest sustainable distribution rate θ = r - g (no margin)."""
    return params.real_return_rate - population_growth_rate(params)


def safe_threshold(params: SustainabilityParameters) -> float:
    """Perpetual threshold after the 5% safety haircut."""
    return perpetual_threshold(params) * SAFETY_MARGIN


def annual_distribution(params: SustainabilityParameters) -> float:
    """Total first-year payout b · N_0."""
    return params.per_beneficiary_annual_real * params.starting_beneficiary_count


def distribution_rate(params: SustainabilityParameters) -> float:
    """Payout as a fraction of the fund; +inf when the fund is not positive."""
    if params.initial_fund_real <= 0:
        return math.inf
    return annual_distribution(params) / params.initial_fund_real


def is_perpetual(params: SustainabilityParameters) -> bool:
    """
    Closed-form perpetuity test: distribution rate strictly below the safe
    threshold.

    A non-positive fund is never perpetual.

    Returns
    -------
    bool
        True if the configuration is expected to pay out indefinitely.
    """
    if params.initial_fund_real <= 0:
        logger.debug("Perpetual check: fund %.2f is not positive", params.initial_fund_real)
        return False
    result = distribution_rate(params) < safe_threshold(params)
    if logger.isEnabledFor(logging.DEBUG):
        info = describe(params)
        logger.debug(
            "Perpetual check: distribution %.4f%% vs safe threshold %.4f%% "
            "(real return %.4f%%, population growth %.4f%%) -> %s",
            info["distribution_rate"] * 100,
            info["safe_threshold"] * 100,
            params.real_return_rate * 100,
            info["population_growth_rate"] * 100,
            "perpetual" if result else "not perpetual",
        )
    return result


def minimum_estate_required(params: SustainabilityParameters) -> float:
    """
    Smallest fund sustaining the distribution with no safety margin.

    Returns +inf when the perpetual threshold is not positive (no fund can
    outgrow the lineage).
    """
    threshold = perpetual_threshold(params)
    if threshold <= 0:
        return math.inf
    return annual_distribution(params) / threshold


def safe_minimum_estate(params: SustainabilityParameters) -> float:
    """
    Smallest fund passing the oracle, the reciprocal of the safe threshold.

    Any fund strictly above this value is perpetual under `is_perpetual`.
    """
    threshold = safe_threshold(params)
    if threshold <= 0:
        return math.inf
    return annual_distribution(params) / threshold


def describe(params: SustainabilityParameters) -> Dict[str, float]:
    """Intermediate quantities of the check, for logging and reports."""
    return {
        "population_growth_rate": population_growth_rate(params),
        "perpetual_threshold": perpetual_threshold(params),
        "safe_threshold": safe_threshold(params),
        "annual_distribution": annual_distribution(params),
        "distribution_rate": distribution_rate(params),
        "safe_minimum_estate": safe_minimum_estate(params),
    }
