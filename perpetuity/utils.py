"""General utilities for Perpetuity

Contents
--------
- Validation helpers (finite, non-negative, positive)
- Rate conversions (nominal ↔ real, deflation of nominal balances)
- Rounding helpers
- Reporting helpers (summary_frame, format_currency, format_years)
"""

from __future__ import annotations

import math
from typing import Iterable, Mapping, Optional, Sequence

import numpy as np
import pandas as pd

from .exceptions import ValidationError

__all__ = [
    # Validation
    "check_finite",
    "check_non_negative",
    "check_positive",
    "ensure_1d",
    # Rates
    "real_return",
    "deflate",
    "inflate",
    "implied_real_cagr",
    # Rounding
    "round_half_up",
    # Reporting
    "summary_frame",
    "format_currency",
    "format_years",
]

# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------

def check_finite(name: str, value: float) -> None:
    """Raise if *value* is NaN or infinite."""
    if not math.isfinite(value):
        raise ValidationError(f"{name} must be finite (got {value}).")


def check_non_negative(name: str, value: float) -> None:
    """Raise if *value* is negative (strict) or not finite."""
    check_finite(name, value)
    if value < 0:
        raise ValidationError(f"{name} must be non-negative (got {value}).")


def check_positive(name: str, value: float) -> None:
    """Raise if *value* is not strictly positive."""
    check_finite(name, value)
    if value <= 0:
        raise ValidationError(f"{name} must be positive (got {value}).")


def ensure_1d(a: Sequence[float] | np.ndarray, *, name: str = "array") -> np.ndarray:
    """Convert input to a 1-D float NumPy array with helpful error messages."""
    arr = np.asarray(a, dtype=float)
    if arr.ndim != 1:
        raise ValidationError(f"{name} must be 1-D, got shape {arr.shape}.")
    if not np.isfinite(arr).all():
        raise ValidationError(f"{name} must contain only finite values.")
    return arr


# ---------------------------------------------------------------------------
# Rate conversions
# ---------------------------------------------------------------------------

def real_return(nominal_pct: float, inflation_pct: float) -> float:
    """Convert a nominal annual return to a real one (Fisher relation).

    Both inputs are percentages: real_return(7.0, 2.5) -> 0.0439...
    """
    check_finite("nominal_pct", nominal_pct)
    check_finite("inflation_pct", inflation_pct)
    return (1.0 + nominal_pct / 100.0) / (1.0 + inflation_pct / 100.0) - 1.0


def deflate(nominal: float, inflation_pct: float, years: float) -> float:
    """Express a nominal amount *years* ahead in base-year (real) dollars."""
    return float(nominal / (1.0 + inflation_pct / 100.0) ** years)


def inflate(real: float, inflation_pct: float, years: float) -> float:
    """Express a base-year (real) amount in nominal dollars *years* ahead."""
    return float(real * (1.0 + inflation_pct / 100.0) ** years)


def implied_real_cagr(start_balance: float, end_real: float, years: float) -> float:
    """Real compound annual growth rate implied by a start and end balance.

    Returns 0.0 when the growth is undefined (non-positive balances or no
    elapsed time).
    """
    if start_balance <= 0 or end_real <= 0 or years <= 0:
        return 0.0
    return float((end_real / start_balance) ** (1.0 / years) - 1.0)


# ---------------------------------------------------------------------------
# Rounding
# ---------------------------------------------------------------------------

def round_half_up(x: float) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3)."""
    return int(math.floor(x + 0.5))


# ---------------------------------------------------------------------------
# Reporting helpers
# ---------------------------------------------------------------------------

def summary_frame(rows: Iterable[Mapping[str, object]], *, index: Optional[str] = None) -> pd.DataFrame:
    """Build a DataFrame from an iterable of row mappings.

    Returns an empty frame when there are no rows.
    """
    rows = list(rows)
    if not rows:
        return pd.DataFrame()
    df = pd.DataFrame(rows)
    if index is not None and index in df.columns:
        df = df.set_index(index)
    return df


def format_currency(value: float, decimals: int = 0, symbol: str = "$") -> str:
    """
    Format a dollar amount with thousands separators.

    Examples
    --------
    >>> format_currency(1_000_000)
    '$1,000,000'
    >>> format_currency(1234.5, decimals=2)
    '$1,234.50'
    """
    return f"{symbol}{value:,.{decimals}f}"


def format_years(years: Optional[int]) -> str:
    """Human label for a finite horizon; None means perpetual."""
    if years is None:
        return "Perpetual"
    return f"{years:,} year" + ("" if years == 1 else "s")
