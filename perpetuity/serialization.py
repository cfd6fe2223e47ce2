"""
Serialization module for Perpetuity.

Purpose
-------
JSON persistence for run configurations and results, so analyses can be
kept under version control, shared, and replayed from the CLI.

Supports serialization of:
- LegacyInput (single run) and AnalysisInput (three percentiles + batch)
- Simulation outcomes (Perpetual / Finite / NotModeled)
- AggregateResult and full LegacyOutcome reports

Design Principles
-----------------
- Type-safe: configs round-trip through the Pydantic models
- Tagged: outcomes carry an explicit "kind", never an infinity sentinel
- Strict JSON: non-finite floats are written as null
- Versioned: every file carries `schema_version`; mismatches warn

Example
-------
>>> from pathlib import Path
>>> save_config(legacy_input, Path("legacy.json"))
>>> loaded = load_config(Path("legacy.json"))
>>> loaded == legacy_input
True
"""

from __future__ import annotations

import json
import math
import warnings
from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel

from .aggregator import AggregateResult
from .config import AggregateInput, AnalysisInput, LegacyInput
from .legacy import LegacyOutcome
from .simulation import Finite, GenerationSnapshot, NotModeled, Perpetual, SimulationOutcome
from .types import AggregateResultDict, LegacyOutcomeDict, OutcomeDict

__all__ = [
    "SCHEMA_VERSION",
    "outcome_to_dict",
    "outcome_from_dict",
    "aggregate_to_dict",
    "legacy_outcome_to_dict",
    "save_config",
    "load_config",
    "save_result",
    "load_result",
]


# ---------------------------------------------------------------------------
# Schema Version
# ---------------------------------------------------------------------------

SCHEMA_VERSION = "0.1.0"

AnyConfig = Union[LegacyInput, AnalysisInput, AggregateInput]


def _finite_or_none(value: float) -> Optional[float]:
    return float(value) if math.isfinite(value) else None


def _check_schema(data: Dict[str, Any]) -> None:
    schema_version = data.get("schema_version", "0.0.0")
    if schema_version != SCHEMA_VERSION:
        warnings.warn(
            f"Config schema version {schema_version} differs from current "
            f"version {SCHEMA_VERSION}. May encounter compatibility issues.",
            UserWarning,
        )


# ---------------------------------------------------------------------------
# Outcome Serialization
# ---------------------------------------------------------------------------

def outcome_to_dict(outcome: SimulationOutcome) -> OutcomeDict:
    """
    Convert a simulation outcome to its tagged dictionary form.

    Parameters
    ----------
    outcome : Perpetual | Finite | NotModeled

    Returns
    -------
    OutcomeDict
    """
    data: Dict[str, Any] = {
        "label": outcome.label,
        "years": outcome.years,
        "fund_left_real": float(outcome.fund_left_real),
        "last_living_count": float(outcome.last_living_count),
    }
    if isinstance(outcome, Perpetual):
        data["kind"] = "perpetual"
        data["reason"] = outcome.reason
    elif isinstance(outcome, Finite):
        data["kind"] = "finite"
        data["cause"] = outcome.cause
    elif isinstance(outcome, NotModeled):
        data["kind"] = "not_modeled"
        data["reason"] = outcome.reason
    else:
        raise TypeError(f"Unsupported outcome type: {type(outcome).__name__}")

    generations = getattr(outcome, "generations", ())
    if generations:
        data["generations"] = [
            {
                "generation": g.generation,
                "year": g.year,
                "estate_value_nominal": g.estate_value_nominal,
                "estate_tax": g.estate_tax,
                "net_to_heirs": g.net_to_heirs,
                "fund_real": g.fund_real,
                "living_beneficiaries": g.living_beneficiaries,
            }
            for g in generations
        ]
    return data  # type: ignore[return-value]


def outcome_from_dict(data: Dict[str, Any]) -> SimulationOutcome:
    """
    Rebuild an outcome from `outcome_to_dict` output.

    Raises
    ------
    ValueError
        If `kind` is missing or unknown.
    """
    kind = data.get("kind")
    generations = tuple(GenerationSnapshot(**g) for g in data.get("generations", []))

    if kind == "perpetual":
        return Perpetual(
            fund_left_real=data["fund_left_real"],
            last_living_count=data["last_living_count"],
            reason=data.get("reason", "oracle"),
            generations=generations,
        )
    if kind == "finite":
        return Finite(
            years=int(data["years"]),
            fund_left_real=data["fund_left_real"],
            last_living_count=data["last_living_count"],
            cause=data["cause"],
            generations=generations,
        )
    if kind == "not_modeled":
        return NotModeled(reason=data.get("reason", ""))
    raise ValueError(f"Unknown outcome kind: {kind!r}")


def aggregate_to_dict(result: AggregateResult) -> AggregateResultDict:
    """Convert an AggregateResult to a JSON-safe dictionary."""
    return {
        "prob_perpetual": result.prob_perpetual,
        "success_rate_percent": result.success_rate_percent,
        "success_count": result.success_count,
        "n_paths": result.n_paths,
        "min_estate_required": _finite_or_none(result.min_estate_required),
        "safe_min_estate": _finite_or_none(result.safe_min_estate),
        "estate_percentiles": {str(p): v for p, v in result.estate_percentiles.items()},
    }


def legacy_outcome_to_dict(report: LegacyOutcome) -> LegacyOutcomeDict:
    """Convert a full legacy analysis to a JSON-safe dictionary."""
    return {
        "card_label": report.card_label,
        "outcome": outcome_to_dict(report.outcome),
        "percentile_outcomes": {
            key: {
                "years": p.years,
                "fund_left_real": p.fund_left_real,
                "is_perpetual": p.is_perpetual,
            }
            for key, p in report.percentile_outcomes.items()
        },
        "aggregate": aggregate_to_dict(report.aggregate) if report.aggregate is not None else None,
    }


# ---------------------------------------------------------------------------
# Config Files
# ---------------------------------------------------------------------------

def save_config(config: AnyConfig, path: Path) -> None:
    """
    Save a run configuration to JSON.

    Parameters
    ----------
    config : LegacyInput | AnalysisInput | AggregateInput
    path : Path
        Output file path.
    """
    data = {
        "schema_version": SCHEMA_VERSION,
        "type": type(config).__name__,
        **config.model_dump(mode="json"),
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(data, f, indent=2)


_CONFIG_TYPES: Dict[str, type] = {
    "LegacyInput": LegacyInput,
    "AnalysisInput": AnalysisInput,
    "AggregateInput": AggregateInput,
}


def load_config(path: Path) -> AnyConfig:
    """
    Load a run configuration from JSON.

    The model is chosen by the file's `type` field; files without one are
    read as an `AnalysisInput` when they have `assumptions`, otherwise as a
    `LegacyInput`.

    Raises
    ------
    pydantic.ValidationError
        If the file does not describe a valid configuration.
    """
    with open(path, "r") as f:
        data = json.load(f)

    _check_schema(data)
    data.pop("schema_version", None)
    type_name = data.pop("type", None)
    if type_name is None:
        type_name = "AnalysisInput" if "assumptions" in data else "LegacyInput"
    if type_name not in _CONFIG_TYPES:
        raise ValueError(f"Unknown config type {type_name!r}; expected one of {sorted(_CONFIG_TYPES)}")

    model: type[BaseModel] = _CONFIG_TYPES[type_name]
    return model.model_validate(data)


# ---------------------------------------------------------------------------
# Result Files
# ---------------------------------------------------------------------------

def save_result(
    result: Union[LegacyOutcome, AggregateResult, SimulationOutcome],
    path: Path,
) -> None:
    """Save a simulation result (report, aggregate or single outcome) to JSON."""
    if isinstance(result, LegacyOutcome):
        body: Dict[str, Any] = {"type": "LegacyOutcome", **legacy_outcome_to_dict(result)}
    elif isinstance(result, AggregateResult):
        body = {"type": "AggregateResult", **aggregate_to_dict(result)}
    else:
        body = {"type": "SimulationOutcome", **outcome_to_dict(result)}

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump({"schema_version": SCHEMA_VERSION, **body}, f, indent=2)


def load_result(path: Path) -> Dict[str, Any]:
    """
    Load a result file as plain data.

    Single outcomes are rebuilt under the `outcome` key; reports and
    aggregates are returned as dictionaries.
    """
    with open(path, "r") as f:
        data = json.load(f)

    _check_schema(data)
    if data.get("type") == "SimulationOutcome":
        data["outcome"] = outcome_from_dict(data)
    return data
