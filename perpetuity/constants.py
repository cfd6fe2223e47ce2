"""
Global constants for Perpetuity.

Purpose
-------
Centralizes the model constants and default run parameters used throughout
the Perpetuity codebase. Using constants instead of hardcoded values keeps the
oracle, the simulator and the aggregator on the same numbers.

Usage
-----
>>> from perpetuity.constants import SAFETY_MARGIN, CHUNK_YEARS
>>>
>>> safe_threshold = perpetual_threshold * SAFETY_MARGIN

Categories
----------
- Sustainability: replacement fertility, safety margin
- Simulation: chunk size, early-exit checkpoints, perpetual horizon
- Demographics: default death age, distribution age, fertility window
- Estate tax: exemptions, rate, exemption indexing
"""

from typing import Dict, Tuple

__all__ = [
    # Sustainability
    "REPLACEMENT_FERTILITY_RATE",
    "SAFETY_MARGIN",
    # Simulation
    "CHUNK_YEARS",
    "PERPETUAL_HORIZON_YEARS",
    "TREND_SNAPSHOT_YEAR",
    "EARLY_EXIT_CHECK_YEAR",
    "EARLY_EXIT_GROWTH_RATE",
    "MAX_GENERATION_SNAPSHOTS",
    # Demographics
    "DEFAULT_GENERATION_LENGTH",
    "DEFAULT_DEATH_AGE",
    "DEFAULT_MIN_DISTRIBUTION_AGE",
    "DEFAULT_FERTILITY_WINDOW",
    "DEFAULT_INITIAL_AGES",
    # Estate tax
    "ESTATE_TAX_EXEMPTION",
    "ESTATE_TAX_RATE",
    "ESTATE_TAX_BASE_YEAR",
    "ESTATE_EXEMPTION_INDEXING_RATE",
    # Reporting
    "DEFAULT_ESTATE_PERCENTILES",
]


# =============================================================================
# Sustainability
# =============================================================================

REPLACEMENT_FERTILITY_RATE: float = 2.0
"""Total fertility rate at which a lineage neither grows nor shrinks."""

SAFETY_MARGIN: float = 0.95
"""Haircut applied to the perpetual threshold (5% model uncertainty)."""


# =============================================================================
# Simulation
# =============================================================================

CHUNK_YEARS: int = 10
"""Years advanced per CohortEngine call."""

PERPETUAL_HORIZON_YEARS: int = 10_000
"""Horizon at or above which a run may be concluded perpetual early."""

TREND_SNAPSHOT_YEAR: int = 100
"""Chunk start at which the first fund snapshot is taken."""

EARLY_EXIT_CHECK_YEAR: int = 1_000
"""Chunk start from which the fund growth trend is evaluated."""

EARLY_EXIT_GROWTH_RATE: float = 0.03
"""Annualized real fund growth above which a run is concluded perpetual."""

MAX_GENERATION_SNAPSHOTS: int = 10
"""Maximum number of per-generation estate snapshots kept for a run."""


# =============================================================================
# Demographics
# =============================================================================

DEFAULT_GENERATION_LENGTH: int = 30
"""Default years between a parent and child generation."""

DEFAULT_DEATH_AGE: int = 90
"""Default age at which a cohort is removed from the lineage."""

DEFAULT_MIN_DISTRIBUTION_AGE: int = 21
"""Default minimum age to receive distributions."""

DEFAULT_FERTILITY_WINDOW: Tuple[int, int] = (25, 35)
"""Default (start, end) ages of the fertility window, inclusive."""

DEFAULT_INITIAL_AGES: Tuple[int, ...] = (0,)
"""Default ages of the stated beneficiaries."""


# =============================================================================
# Estate Tax
# =============================================================================

ESTATE_TAX_EXEMPTION: Dict[str, float] = {
    "single": 13_990_000.0,
    "married": 27_980_000.0,
}
"""Federal estate tax exemption by marital status (base year dollars)."""

ESTATE_TAX_RATE: float = 0.40
"""Flat rate on the estate above the exemption."""

ESTATE_TAX_BASE_YEAR: int = 2026
"""Last year the exemption is not indexed; indexing starts the year after."""

ESTATE_EXEMPTION_INDEXING_RATE: float = 0.026
"""Annual inflation indexing applied to the exemption after the base year."""


# =============================================================================
# Reporting
# =============================================================================

DEFAULT_ESTATE_PERCENTILES: Tuple[int, ...] = (10, 25, 50, 75, 90)
"""Estate distribution percentiles reported by the aggregator."""
