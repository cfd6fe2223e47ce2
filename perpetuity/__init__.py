"""
Perpetuity — Generational Wealth Perpetuity Simulator

Estimates whether an end-of-life estate can pay a constant real amount to
every eligible heir of a growing lineage forever, and if not, for how long.

Modules
-------
- oracle      : Closed-form perpetuity test (distribution rate vs safe threshold)
- cohorts     : Yearly cohort engine (mortality, returns, payouts, births)
- simulation  : Chunked simulator and Perpetual / Finite / NotModeled outcomes
- backfill    : Implied younger generations for heirs past the fertility window
- aggregator  : Empirical success rate over a batch of estates
- legacy      : Single runs and the three-percentile legacy analysis
- service     : Background simulation service with typed requests
- estate      : Federal estate tax collaborator
- config      : Pydantic models, presets and application settings
- utils       : Shared utilities (validation, rates, rounding, reporting)
"""

from .aggregator import AggregateResult, empirical_success_rate
from .backfill import backfill
from .cohorts import Cohort, FertilityWindow, advance_years, initial_cohorts
from .config import AggregateInput, AnalysisInput, AppSettings, LegacyInput, PercentileRun, PRESETS
from .exceptions import (
    ConfigurationError,
    DuplicateRequestError,
    PerpetuityError,
    ServiceError,
    ServiceStoppedError,
    ValidationError,
)
from .legacy import LegacyOutcome, analyze_legacy, run_legacy
from .oracle import SustainabilityParameters, is_perpetual
from .service import AggregateRequest, LegacyRequest, SimulationService
from .simulation import ChunkedSimulator, Finite, NotModeled, Perpetual
from . import utils

__all__ = [
    # Oracle
    "SustainabilityParameters",
    "is_perpetual",
    # Engine
    "Cohort",
    "FertilityWindow",
    "advance_years",
    "initial_cohorts",
    "ChunkedSimulator",
    "Perpetual",
    "Finite",
    "NotModeled",
    # Lineage and batch
    "backfill",
    "AggregateResult",
    "empirical_success_rate",
    # Analysis
    "LegacyInput",
    "PercentileRun",
    "AnalysisInput",
    "AggregateInput",
    "AppSettings",
    "PRESETS",
    "LegacyOutcome",
    "run_legacy",
    "analyze_legacy",
    # Service
    "SimulationService",
    "LegacyRequest",
    "AggregateRequest",
    # Exceptions
    "PerpetuityError",
    "ConfigurationError",
    "ValidationError",
    "ServiceError",
    "ServiceStoppedError",
    "DuplicateRequestError",
    "utils",
]

__version__ = "0.1.0"
