"""
Cohort engine for Perpetuity.

Purpose
-------
Advances a lineage of same-age beneficiary cohorts and the fund that pays
them, one year at a time. Each cohort is a fractional head count, so a
lineage with a total fertility rate of 2.1 grows smoothly instead of in
whole children.

Yearly step
-----------
The order below is fixed; changing it changes every result:

    1. Drop cohorts with age >= death_age.
    2. Nobody alive            -> stop (extinction).
    3. F <- F · (1 + r)
    4. F <- F - b · Σ size[age >= min_distribution_age]
    5. F < 0                   -> F = 0, stop (depletion).
    6. Every cohort ages one year.
    7. Cohorts in the fertility window with births left spawn a newborn
       cohort of size parent.size · min(births_per_year, TFR - births so far).

Key components
--------------
- Cohort: frozen record (size, age, can_reproduce, cumulative_births).
- FertilityWindow: inclusive (start, end) ages.
- step_year / advance_years: one-year and N-year transitions. Both return
  new tuples; the input cohorts are never modified.
- consolidate: merges cohorts with identical state, keeping the cohort count
  bounded over long horizons.

Example
-------
>>> cohorts = initial_cohorts([30], starting_count=1, fertility_window_end=35)
>>> result = advance_years(
...     cohorts, 1_000_000.0,
...     return_rate=0.04, per_beneficiary_real=20_000.0,
...     death_age=90, min_distribution_age=21,
...     total_fertility_rate=2.1, fertility_window=FertilityWindow(25, 35),
...     births_per_year=0.21, years=10,
... )
>>> result.years_completed
10
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple

from .exceptions import ConfigurationError, ValidationError
from .utils import check_finite

__all__ = [
    "Cohort",
    "FertilityWindow",
    "ChunkResult",
    "EXTINCTION",
    "DEPLETION",
    "births_per_year",
    "initial_cohorts",
    "living_count",
    "eligible_count",
    "step_year",
    "advance_years",
    "consolidate",
]

EXTINCTION = "extinction"
DEPLETION = "depletion"


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Cohort:
    """
    Group of same-age beneficiaries modeled as one fractional-count unit.

    Parameters
    ----------
    size : float
        Number of people in the cohort (may be fractional, >= 0).
    age : int
        Age in whole years.
    can_reproduce : bool
        Whether the cohort may spawn children in the fertility window.
    cumulative_births : float
        Children per member produced so far (0 <= value <= TFR).
    """

    size: float
    age: int
    can_reproduce: bool = True
    cumulative_births: float = 0.0

    def __post_init__(self):
        if not self.size >= 0:
            raise ValidationError(f"Cohort size must be non-negative, got {self.size}.")
        if self.age < 0:
            raise ValidationError(f"Cohort age must be non-negative, got {self.age}.")
        if not self.cumulative_births >= 0:
            raise ValidationError(
                f"Cohort cumulative_births must be non-negative, got {self.cumulative_births}."
            )

    def aged(self) -> "Cohort":
        return replace(self, age=self.age + 1)


class FertilityWindow(NamedTuple):
    """Inclusive age range during which a cohort can have children."""

    start: int
    end: int

    def contains(self, age: int) -> bool:
        return self.start <= age <= self.end


@dataclass(frozen=True)
class ChunkResult:
    """
    Outcome of advancing a lineage by up to N years.

    Attributes
    ----------
    cohorts : tuple of Cohort
        Living cohorts after the last step.
    fund_real : float
        Fund balance after the last completed year (0 after depletion).
    years_completed : int
        Fully completed years; the terminal year is not counted.
    depleted : bool
        True when the run hit extinction or depletion.
    cause : str, optional
        "extinction" or "depletion" when depleted, otherwise None.
    """

    cohorts: Tuple[Cohort, ...]
    fund_real: float
    years_completed: int
    depleted: bool
    cause: Optional[str] = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def births_per_year(total_fertility_rate: float, window: FertilityWindow) -> float:
    """Children per member per year: TFR spread evenly over the window span."""
    span = window.end - window.start
    if span <= 0:
        return 0.0
    return total_fertility_rate / span


def initial_cohorts(
    ages: Sequence[int],
    starting_count: float,
    fertility_window_end: int,
) -> Tuple[Cohort, ...]:
    """
    Build the starting lineage.

    One cohort of size 1 per stated age; a stated age past the fertility
    window cannot reproduce. Without stated ages, a single age-0 cohort of
    *starting_count* members is used (nothing when the count is not positive).
    """
    if len(ages) > 0:
        return tuple(
            Cohort(size=1.0, age=int(age), can_reproduce=int(age) <= fertility_window_end)
            for age in ages
        )
    if starting_count > 0:
        return (Cohort(size=float(starting_count), age=0),)
    return ()


def living_count(cohorts: Iterable[Cohort]) -> float:
    """Total members across cohorts."""
    return sum(c.size for c in cohorts)


def eligible_count(cohorts: Iterable[Cohort], min_distribution_age: int) -> float:
    """Members old enough to receive a distribution."""
    return sum(c.size for c in cohorts if c.age >= min_distribution_age)


def consolidate(cohorts: Iterable[Cohort]) -> Tuple[Cohort, ...]:
    """
    Merge cohorts whose state differs only in size.

    Cohorts with equal (age, can_reproduce, cumulative_births) evolve
    identically, so summing their sizes leaves every future payout and birth
    unchanged. First-seen order is preserved.
    """
    merged: Dict[Tuple[int, bool, float], float] = {}
    for c in cohorts:
        key = (c.age, c.can_reproduce, c.cumulative_births)
        merged[key] = merged.get(key, 0.0) + c.size
    return tuple(
        Cohort(size=size, age=age, can_reproduce=can_reproduce, cumulative_births=births)
        for (age, can_reproduce, births), size in merged.items()
    )


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------

def step_year(
    cohorts: Sequence[Cohort],
    fund_real: float,
    *,
    return_rate: float,
    per_beneficiary_real: float,
    death_age: int,
    min_distribution_age: int,
    total_fertility_rate: float,
    fertility_window: FertilityWindow,
    births_per_year: float,
) -> Tuple[Tuple[Cohort, ...], float, Optional[str]]:
    """
    Advance the lineage and the fund by one year.

    Returns
    -------
    (cohorts, fund_real, cause)
        *cause* is None when the year completed, otherwise "extinction" or
        "depletion" and the year does not count.
    """
    alive = tuple(c for c in cohorts if c.age < death_age)

    if living_count(alive) == 0:
        return alive, fund_real, EXTINCTION

    fund = fund_real * (1.0 + return_rate)
    payout = per_beneficiary_real * eligible_count(alive, min_distribution_age)
    fund -= payout

    if fund < 0:
        return alive, 0.0, DEPLETION

    aged = [c.aged() for c in alive]

    newborns: List[Cohort] = []
    parents: List[Cohort] = []
    for c in aged:
        if (
            c.can_reproduce
            and fertility_window.contains(c.age)
            and c.cumulative_births < total_fertility_rate
        ):
            births = min(births_per_year, total_fertility_rate - c.cumulative_births)
            children = c.size * births
            if children > 0:
                newborns.append(Cohort(size=children, age=0))
            c = replace(c, cumulative_births=c.cumulative_births + births)
        parents.append(c)

    return tuple(parents + newborns), fund, None


def advance_years(
    cohorts: Sequence[Cohort],
    fund_real: float,
    *,
    return_rate: float,
    per_beneficiary_real: float,
    death_age: int,
    min_distribution_age: int,
    total_fertility_rate: float,
    fertility_window: FertilityWindow,
    births_per_year: float,
    years: int,
) -> ChunkResult:
    """
    Advance the lineage by up to *years* years, stopping at the first
    extinction or depletion.

    Raises
    ------
    ValidationError
        If a rate or balance is not finite or *years* is negative.
    ConfigurationError
        If the fertility window is inverted.
    """
    check_finite("fund_real", fund_real)
    check_finite("return_rate", return_rate)
    check_finite("per_beneficiary_real", per_beneficiary_real)
    check_finite("births_per_year", births_per_year)
    if years < 0:
        raise ValidationError(f"years must be non-negative, got {years}.")
    if fertility_window.start > fertility_window.end:
        raise ConfigurationError(
            f"fertility window start ({fertility_window.start}) must be <= end ({fertility_window.end})."
        )

    current: Tuple[Cohort, ...] = tuple(cohorts)
    fund = float(fund_real)
    completed = 0

    for _ in range(years):
        current, fund, cause = step_year(
            current,
            fund,
            return_rate=return_rate,
            per_beneficiary_real=per_beneficiary_real,
            death_age=death_age,
            min_distribution_age=min_distribution_age,
            total_fertility_rate=total_fertility_rate,
            fertility_window=fertility_window,
            births_per_year=births_per_year,
        )
        if cause is not None:
            return ChunkResult(current, fund, completed, True, cause)
        completed += 1

    return ChunkResult(current, fund, completed, False, None)
