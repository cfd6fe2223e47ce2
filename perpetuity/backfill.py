"""
Generation backfill for Perpetuity.

Purpose
-------
An heir who is already past the fertility window cannot have children in the
model, so a lineage that starts with only such heirs would be judged finite
purely because of their age. In reality those heirs usually already have
descendants. The backfiller replaces each such heir with the implied younger
generation:

    while age > fertility_window_end:
        age  <- age - generation_length
        size <- size · TFR

Each stated age starts with an equal share of the beneficiary count. Ages
already inside or below the window pass through unchanged.

Example
-------
>>> backfill([70], total_count=1, fertility_window_end=35,
...          generation_length=30, total_fertility_rate=2.0)
((10,), 4)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from .exceptions import ConfigurationError, ValidationError
from .utils import check_finite, check_non_negative, round_half_up

__all__ = [
    "BackfilledCohort",
    "backfill_cohorts",
    "backfill",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BackfilledCohort:
    """
    Starting cohort after backfill.

    Attributes
    ----------
    age : int
        Age of the implied generation (<= fertility window end).
    size : float
        Implied head count.
    generation : int
        Generations stepped down from the stated heir (0 = the heir).
    """

    age: int
    size: float
    generation: int


def backfill_cohorts(
    initial_ages: Sequence[int],
    total_count: float,
    fertility_window_end: int,
    generation_length: int,
    total_fertility_rate: float,
) -> Tuple[BackfilledCohort, ...]:
    """
    Replace heirs past the fertility window with their implied descendants.

    Parameters
    ----------
    initial_ages : sequence of int
        Ages of the stated heirs.
    total_count : float
        Number of stated beneficiaries, shared equally across the ages.
    fertility_window_end : int
        Last fertile age.
    generation_length : int
        Years stepped down per generation (must be > 0).
    total_fertility_rate : float
        Size multiplier per generation.

    Returns
    -------
    tuple of BackfilledCohort
        One entry per stated age, each with ``age <= fertility_window_end``.

    Raises
    ------
    ConfigurationError
        If ``generation_length <= 0`` (the descent would never terminate).
    ValidationError
        If a count, rate or age is negative or not finite.
    """
    if generation_length <= 0:
        raise ConfigurationError(
            f"generation_length must be positive, got {generation_length}."
        )
    check_non_negative("total_count", total_count)
    check_non_negative("total_fertility_rate", total_fertility_rate)
    check_finite("fertility_window_end", fertility_window_end)

    if len(initial_ages) == 0:
        return ()

    share = total_count / len(initial_ages)
    result: List[BackfilledCohort] = []

    for age in initial_ages:
        check_non_negative("initial age", age)
        current_age = int(age)
        size = share
        generation = 0
        while current_age > fertility_window_end:
            current_age -= generation_length
            size *= total_fertility_rate
            generation += 1
            logger.debug(
                "Backfill gen %d: parent age %d -> child age %d, size %.2f",
                generation, current_age + generation_length, current_age, size,
            )
        result.append(BackfilledCohort(age=current_age, size=size, generation=generation))

    return tuple(result)


def backfill(
    initial_ages: Sequence[int],
    total_count: float,
    fertility_window_end: int,
    generation_length: int,
    total_fertility_rate: float,
) -> Tuple[Tuple[int, ...], int]:
    """
    Backfilled starting ages and beneficiary count.

    Returns
    -------
    (adjusted_ages, adjusted_count)
        *adjusted_count* is the sum of the implied sizes rounded half-up,
        never below 1. With no stated ages the count is the rounded
        *total_count* (also at least 1).
    """
    cohorts = backfill_cohorts(
        initial_ages, total_count, fertility_window_end, generation_length, total_fertility_rate
    )
    if not cohorts:
        return (), max(1, round_half_up(total_count))

    total = sum(c.size for c in cohorts)
    ages = tuple(c.age for c in cohorts)
    count = max(1, round_half_up(total))
    logger.debug(
        "Backfill: %s -> ages %s, %.2f beneficiaries (rounded %d)",
        list(initial_ages), list(ages), total, count,
    )
    return ages, count
