"""
Type definitions for Perpetuity.

Purpose
-------
TypedDict definitions for the serialized forms of simulation results, as
written by `perpetuity.serialization` and read back by callers that only
need plain data (the CLI, JSON consumers).

Type Definitions
----------------
GenerationSnapshotDict
    Estate view at a generation boundary.
OutcomeDict
    Tagged outcome: {"kind": "perpetual" | "finite" | "not_modeled", ...}
PercentileOutcomeDict
    {"years", "fund_left_real", "is_perpetual"} of one illustrative run.
AggregateResultDict
    Success rate over a batch of estates.
LegacyOutcomeDict
    Full analysis: median outcome, percentile summaries, aggregate, label.
"""

from typing import Dict, List, Literal, Optional

from typing_extensions import NotRequired, TypedDict

__all__ = [
    "OutcomeKind",
    "GenerationSnapshotDict",
    "OutcomeDict",
    "PercentileOutcomeDict",
    "AggregateResultDict",
    "LegacyOutcomeDict",
]

OutcomeKind = Literal["perpetual", "finite", "not_modeled"]


class GenerationSnapshotDict(TypedDict):
    generation: int
    year: int
    estate_value_nominal: float
    estate_tax: float
    net_to_heirs: float
    fund_real: float
    living_beneficiaries: float


class OutcomeDict(TypedDict):
    """
    Serialized `Perpetual`, `Finite` or `NotModeled`.

    `years` is null unless the outcome is finite. `cause` is only present
    on finite outcomes and `reason` on the other two.
    """

    kind: OutcomeKind
    label: str
    years: Optional[int]
    fund_left_real: float
    last_living_count: float
    cause: NotRequired[str]
    reason: NotRequired[str]
    generations: NotRequired[List[GenerationSnapshotDict]]


class PercentileOutcomeDict(TypedDict):
    years: Optional[int]
    fund_left_real: float
    is_perpetual: bool


class AggregateResultDict(TypedDict):
    prob_perpetual: float
    success_rate_percent: int
    success_count: int
    n_paths: int
    min_estate_required: Optional[float]
    safe_min_estate: Optional[float]
    estate_percentiles: Dict[str, float]


class LegacyOutcomeDict(TypedDict):
    card_label: str
    outcome: OutcomeDict
    percentile_outcomes: Dict[str, PercentileOutcomeDict]
    aggregate: Optional[AggregateResultDict]
