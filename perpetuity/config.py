"""
Configuration management module for Perpetuity.

Purpose
-------
Centralized configuration using Pydantic models for type-safe parameter
management, validation, and serialization of legacy runs. Malformed input
(NaN, negative horizons, inverted fertility windows) fails here, before any
simulation starts.

Design Principles
-----------------
- Type-safe: Pydantic enforces types and validates ranges
- Immutable: Frozen models prevent accidental mutation
- Finite: NaN and infinity are rejected on every float field
- Serializable: Easy conversion to/from JSON for config files
- Environment-aware: AppSettings reads PERPETUITY_* variables and .env files

Example
-------
>>> from perpetuity.config import LegacyInput
>>> legacy = LegacyInput(
...     eol_nominal_estate=5_000_000,
...     years_from_base_year=30,
...     nominal_return_rate=7.0,
...     inflation_rate_percent=2.5,
...     per_beneficiary_real_annual=50_000,
...     starting_beneficiary_count=2,
...     total_fertility_rate=2.1,
... )
>>> legacy.fertility_window
(25, 35)
>>> restored = LegacyInput.model_validate_json(legacy.model_dump_json())
"""

from __future__ import annotations

from typing import Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    DEFAULT_DEATH_AGE,
    DEFAULT_FERTILITY_WINDOW,
    DEFAULT_GENERATION_LENGTH,
    DEFAULT_INITIAL_AGES,
    DEFAULT_MIN_DISTRIBUTION_AGE,
    PERPETUAL_HORIZON_YEARS,
)

__all__ = [
    "LegacyInput",
    "PercentileRun",
    "AnalysisInput",
    "AggregateInput",
    "GenerationalPreset",
    "PRESETS",
    "apply_preset",
    "AppSettings",
]


_MODEL_CONFIG = ConfigDict(frozen=True, extra="forbid", allow_inf_nan=False)


# ---------------------------------------------------------------------------
# Single legacy run
# ---------------------------------------------------------------------------

class LegacyInput(BaseModel):
    """
    Inputs of a single legacy run.

    Attributes
    ----------
    eol_nominal_estate : float
        Post-tax estate at death, in nominal dollars of the year of death.
    years_from_base_year : int
        Years between the real-dollar base year and the death.
    nominal_return_rate : float
        Annual nominal return of the inherited fund, in percent.
    inflation_rate_percent : float
        Annual inflation, in percent.
    per_beneficiary_real_annual : float
        Constant real payout per eligible beneficiary per year.
    starting_beneficiary_count : int
        Number of stated beneficiaries. Zero or negative is degenerate
        (reported as not modeled, not rejected).
    total_fertility_rate : float
        Lifetime children per beneficiary.
    generation_length_years : int
        Years per generation (default 30).
    death_age : int
        Age at which beneficiaries leave the lineage (default 90).
    min_distribution_age : int
        Minimum age to receive payouts (default 21).
    cap_years : int
        Simulation horizon (default 10,000).
    initial_beneficiary_ages : tuple of int
        Ages of the stated beneficiaries (default (0,)).
    fertility_window : (int, int)
        Inclusive fertile ages (default (25, 35)).
    marital_status : {"single", "married"}
        Estate tax status for generation snapshots.
    """

    model_config = _MODEL_CONFIG

    eol_nominal_estate: float = Field(
        description="Post-tax estate at death (nominal dollars)"
    )
    years_from_base_year: int = Field(
        default=0,
        ge=0,
        description="Years from the real-dollar base year to the death"
    )
    nominal_return_rate: float = Field(
        gt=-100,
        description="Annual nominal return (percent)"
    )
    inflation_rate_percent: float = Field(
        gt=-100,
        description="Annual inflation (percent)"
    )
    per_beneficiary_real_annual: float = Field(
        description="Real payout per eligible beneficiary per year"
    )
    starting_beneficiary_count: int = Field(
        description="Number of stated beneficiaries"
    )
    total_fertility_rate: float = Field(
        ge=0,
        le=20,
        description="Lifetime children per beneficiary"
    )
    generation_length_years: int = Field(
        default=DEFAULT_GENERATION_LENGTH,
        gt=0,
        le=100,
        description="Years per generation"
    )
    death_age: int = Field(
        default=DEFAULT_DEATH_AGE,
        ge=1,
        le=150,
        description="Age at which beneficiaries leave the lineage"
    )
    min_distribution_age: int = Field(
        default=DEFAULT_MIN_DISTRIBUTION_AGE,
        ge=0,
        le=150,
        description="Minimum age to receive payouts"
    )
    cap_years: int = Field(
        default=PERPETUAL_HORIZON_YEARS,
        ge=0,
        le=PERPETUAL_HORIZON_YEARS,
        description="Simulation horizon in years"
    )
    initial_beneficiary_ages: Tuple[int, ...] = Field(
        default=DEFAULT_INITIAL_AGES,
        description="Ages of the stated beneficiaries"
    )
    fertility_window: Tuple[int, int] = Field(
        default=DEFAULT_FERTILITY_WINDOW,
        description="Inclusive (start, end) fertile ages"
    )
    marital_status: Literal["single", "married"] = Field(
        default="single",
        description="Estate tax filing status"
    )

    @field_validator("initial_beneficiary_ages")
    @classmethod
    def validate_ages(cls, v):
        """Ensure ages are non-negative."""
        if any(age < 0 for age in v):
            raise ValueError(f"initial_beneficiary_ages must be non-negative, got {list(v)}")
        return v

    @field_validator("fertility_window")
    @classmethod
    def validate_fertility_window(cls, v):
        """Ensure start <= end and both ages are non-negative."""
        start, end = v
        if start < 0:
            raise ValueError(f"fertility_window start must be non-negative, got {start}")
        if start > end:
            raise ValueError(f"fertility_window start ({start}) must be <= end ({end})")
        return v


# ---------------------------------------------------------------------------
# Three-percentile analysis
# ---------------------------------------------------------------------------

class PercentileRun(BaseModel):
    """Estate and return of one illustrative percentile path."""

    model_config = _MODEL_CONFIG

    eol_nominal_estate: float = Field(
        description="Post-tax estate at death (nominal dollars)"
    )
    nominal_return_rate: float = Field(
        gt=-100,
        description="Annual nominal return for this path (percent)"
    )


class AnalysisInput(BaseModel):
    """
    Inputs of a full legacy analysis.

    `assumptions` holds the shared lineage and payout parameters (its estate
    and return describe the median path). `p25`/`p50`/`p75` are the
    illustrative percentile paths, and `estates_after_tax` is the full batch
    of post-tax nominal estates for the headline probability.
    """

    model_config = _MODEL_CONFIG

    assumptions: LegacyInput
    p25: PercentileRun
    p50: PercentileRun
    p75: PercentileRun
    estates_after_tax: List[float] = Field(
        min_length=1,
        description="Post-tax nominal estates, one per Monte Carlo path"
    )


class AggregateInput(BaseModel):
    """
    Inputs of a standalone success-rate computation.

    Estates are post-tax. When `inflation_rate_percent` is set they are
    treated as nominal and deflated over `years_from_base_year`.
    """

    model_config = _MODEL_CONFIG

    estates_after_tax: List[float] = Field(min_length=1)
    real_return_rate: float = Field(
        gt=-1,
        description="Annual real return (decimal)"
    )
    per_beneficiary_real_annual: float = Field(gt=0)
    starting_beneficiary_count: int = Field(ge=1)
    total_fertility_rate: float = Field(ge=0, le=20)
    generation_length_years: int = Field(default=DEFAULT_GENERATION_LENGTH, gt=0, le=100)
    inflation_rate_percent: Optional[float] = Field(default=None, gt=-100)
    years_from_base_year: int = Field(default=0, ge=0)


# ---------------------------------------------------------------------------
# Presets
# ---------------------------------------------------------------------------

class GenerationalPreset(BaseModel):
    """Named bundle of lineage assumptions."""

    model_config = _MODEL_CONFIG

    per_beneficiary_real_annual: float = Field(gt=0)
    starting_beneficiary_count: int = Field(ge=1)
    total_fertility_rate: float = Field(ge=0)
    generation_length_years: int = Field(gt=0)
    fertility_window: Tuple[int, int]


PRESETS: Dict[str, GenerationalPreset] = {
    "conservative": GenerationalPreset(
        per_beneficiary_real_annual=75_000,
        starting_beneficiary_count=2,
        total_fertility_rate=1.5,
        generation_length_years=32,
        fertility_window=(27, 37),
    ),
    "moderate": GenerationalPreset(
        per_beneficiary_real_annual=100_000,
        starting_beneficiary_count=2,
        total_fertility_rate=2.1,
        generation_length_years=30,
        fertility_window=(25, 35),
    ),
    "aggressive": GenerationalPreset(
        per_beneficiary_real_annual=150_000,
        starting_beneficiary_count=3,
        total_fertility_rate=2.5,
        generation_length_years=28,
        fertility_window=(23, 33),
    ),
}


def apply_preset(legacy: LegacyInput, name: str) -> LegacyInput:
    """Return *legacy* with the lineage assumptions of preset *name*."""
    if name not in PRESETS:
        raise KeyError(f"Unknown preset {name!r}; choose from {sorted(PRESETS)}")
    data = legacy.model_dump()
    data.update(PRESETS[name].model_dump())
    return LegacyInput.model_validate(data)


# ---------------------------------------------------------------------------
# Application Settings (Environment Variables)
# ---------------------------------------------------------------------------

class AppSettings(BaseSettings):
    """
    Global application settings loaded from environment variables.

    Environment variables are prefixed with PERPETUITY_
    (e.g., PERPETUITY_LOG_LEVEL=DEBUG).

    Attributes
    ----------
    debug : bool
        Enable debug mode (forces DEBUG logging).
    log_level : str
        Logging level: "DEBUG", "INFO", "WARNING", "ERROR".
    default_cap_years : int
        Horizon used by the CLI when a config omits cap_years.
    service_poll_seconds : float
        How often the simulation worker checks for shutdown while idle.

    Examples
    --------
    >>> settings = AppSettings()
    >>> settings.log_level
    'WARNING'
    """

    model_config = SettingsConfigDict(
        env_prefix="PERPETUITY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    debug: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging level"
    )
    default_cap_years: int = Field(
        default=PERPETUAL_HORIZON_YEARS,
        ge=0,
        le=PERPETUAL_HORIZON_YEARS,
        description="Default simulation horizon"
    )
    service_poll_seconds: float = Field(
        default=0.1,
        gt=0,
        le=10,
        description="Worker idle poll interval in seconds"
    )

    @property
    def effective_log_level(self) -> str:
        return "DEBUG" if self.debug else self.log_level
