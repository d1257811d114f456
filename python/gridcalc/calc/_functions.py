"""Range function registry and builtin reducers.

Every supported function reduces one rectangular range to a number.  The
evaluator resolves the range, coerces each value with :func:`coerce_float`
and hands the reducer a flat list of floats (NaN for non-numeric text).
The four-coordinate form, ``(start_col, start_row, end_col, end_row)``,
lives on :meth:`FormulaEvaluator.reduce_range`.
"""

from __future__ import annotations

import math
import re
from typing import Any, Callable

Reducer = Callable[[list[float]], float]

# Leading float prefix, the way a lenient float parse reads "12abc" as 12.
_FLOAT_PREFIX_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def coerce_float(value: Any) -> float:
    """Coerce a stored cell value to float.

    Numbers pass through, text is parsed from its leading numeric prefix,
    and anything without one (``""``, ``"N/A"``, ``"abc"``) becomes NaN.
    """
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    if value is None:
        return math.nan
    m = _FLOAT_PREFIX_RE.match(str(value).lstrip())
    if m is None:
        return math.nan
    return float(m.group(0))


# ---------------------------------------------------------------------------
# Builtin reducers.  NaN inputs poison SUM/AVERAGE/MIN/MAX unless the
# evaluator filtered them out first.
# ---------------------------------------------------------------------------


def _reduce_sum(values: list[float]) -> float:
    total = 0.0
    for v in values:
        total += v
    return total


def _reduce_average(values: list[float]) -> float:
    if not values:
        return math.nan
    return _reduce_sum(values) / len(values)


def _reduce_min(values: list[float]) -> float:
    if not values:
        return 0.0
    if any(math.isnan(v) for v in values):
        return math.nan
    return min(values)


def _reduce_max(values: list[float]) -> float:
    if not values:
        return 0.0
    if any(math.isnan(v) for v in values):
        return math.nan
    return max(values)


def _reduce_count(values: list[float]) -> float:
    """COUNT - counts numeric values only."""
    return float(sum(1 for v in values if not math.isnan(v)))


SUPPORTED_FUNCTIONS: dict[str, Reducer] = {
    "SUM": _reduce_sum,
    "AVERAGE": _reduce_average,
    "MIN": _reduce_min,
    "MAX": _reduce_max,
    "COUNT": _reduce_count,
}


def is_supported(func_name: str) -> bool:
    """Check if a function name is one of the builtin reducers."""
    return func_name.upper() in SUPPORTED_FUNCTIONS


class FunctionRegistry:
    """Registry of range reducers.

    Starts with the builtins and can be extended with custom reducers.
    """

    def __init__(self) -> None:
        self._functions: dict[str, Reducer] = dict(SUPPORTED_FUNCTIONS)

    def register(self, name: str, func: Reducer) -> None:
        key = name.upper()
        if not re.fullmatch(r"[A-Z]+", key):
            raise ValueError(f"Function names are letters only, got {name!r}")
        self._functions[key] = func

    def get(self, name: str) -> Reducer | None:
        return self._functions.get(name.upper())

    def has(self, name: str) -> bool:
        return name.upper() in self._functions

    @property
    def supported_functions(self) -> frozenset[str]:
        return frozenset(self._functions.keys())
