"""
Federal estate tax for Perpetuity.

The retirement engine normally supplies post-tax estates. This module is the
default collaborator used when pre-tax estates are given, and for valuing the
fund at each generation boundary.

    exemption(year) = base[status] · 1.026^(year - 2026)   for year > 2026
    tax = 0.40 · max(0, estate - exemption(year))
"""

from __future__ import annotations

from typing import Callable, Literal

from .constants import (
    ESTATE_EXEMPTION_INDEXING_RATE,
    ESTATE_TAX_BASE_YEAR,
    ESTATE_TAX_EXEMPTION,
    ESTATE_TAX_RATE,
)
from .exceptions import ValidationError
from .utils import check_finite

__all__ = [
    "MaritalStatus",
    "EstateTaxFn",
    "estate_exemption",
    "estate_tax",
    "net_estate",
]

MaritalStatus = Literal["single", "married"]

EstateTaxFn = Callable[[float, str, int, bool], float]
"""Signature of an estate tax collaborator: (estate, status, year, extend_tax_cuts) -> tax."""


def estate_exemption(marital_status: str, year: int) -> float:
    """Exemption for a death in *year*, indexed for inflation after the base year."""
    if marital_status not in ESTATE_TAX_EXEMPTION:
        raise ValidationError(
            f"marital_status must be one of {sorted(ESTATE_TAX_EXEMPTION)}, got {marital_status!r}."
        )
    base = ESTATE_TAX_EXEMPTION[marital_status]
    if year > ESTATE_TAX_BASE_YEAR:
        return base * (1.0 + ESTATE_EXEMPTION_INDEXING_RATE) ** (year - ESTATE_TAX_BASE_YEAR)
    return base


def estate_tax(
    nominal_estate: float,
    marital_status: str = "single",
    year: int = ESTATE_TAX_BASE_YEAR,
    extend_tax_cuts: bool = True,
) -> float:
    """
    Estate tax owed on a nominal estate.

    Parameters
    ----------
    nominal_estate : float
        Gross estate in dollars of the year of death.
    marital_status : {"single", "married"}
        Married estates get the doubled (portable) exemption.
    year : int
        Year of death.
    extend_tax_cuts : bool
        Kept for collaborator compatibility. The current exemption is
        permanent, so the flag does not change the result.

    Returns
    -------
    float
        Tax owed (0 at or below the exemption).
    """
    check_finite("nominal_estate", nominal_estate)
    exemption = estate_exemption(marital_status, year)
    if nominal_estate <= exemption:
        return 0.0
    return (nominal_estate - exemption) * ESTATE_TAX_RATE


def net_estate(
    nominal_estate: float,
    marital_status: str = "single",
    year: int = ESTATE_TAX_BASE_YEAR,
    extend_tax_cuts: bool = True,
    tax_fn: EstateTaxFn = estate_tax,
) -> float:
    """Estate left to heirs after *tax_fn*."""
    return nominal_estate - tax_fn(nominal_estate, marital_status, year, extend_tax_cuts)
