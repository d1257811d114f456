"""FormulaEvaluator: substitution-based evaluation of one formula body.

A body is evaluated in two passes.  If it contains a range function call
such as ``SUM(A1:A3)``, that call is reduced and replaced by its number;
otherwise every cell reference is replaced by the referenced cell's stored
value.  The substituted text then goes to the restricted arithmetic
evaluator.  Only one function call per formula is reduced and there is no
nesting, so no general parser is needed.

Failures never raise to callers: they come back as the ``"N/A"`` or ``""``
sentinels.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Any

from gridcalc._errors import (
    ArithmeticEvaluationFailure,
    MalformedAddress,
    NonNumericResult,
    UnknownFunction,
)
from gridcalc._store import BLANK, NA, CellStore, CellValue
from gridcalc._utils import format_address, parse_address
from gridcalc.calc._arith import ArithmeticBackend, evaluate_arithmetic
from gridcalc.calc._functions import FunctionRegistry, coerce_float
from gridcalc.calc._parser import CELL_REF_RE, canonical_ref, find_function_call

logger = logging.getLogger(__name__)

# Integral results are shown as ints while they are exactly representable.
_MAX_EXACT_INT = 2**53


def format_operand(value: Any) -> str:
    """Text a stored value contributes when substituted into an expression."""
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        return repr(value)
    return str(value)


def normalize_number(value: float) -> int | float:
    """Return integral floats as int (``8.0`` -> ``8``)."""
    if value.is_integer() and abs(value) < _MAX_EXACT_INT:
        return int(value)
    return value


class FormulaEvaluator:
    """Evaluates formula bodies against a :class:`CellStore`.

    Usage::

        evaluator = FormulaEvaluator(store)
        evaluator.evaluate("A1+A2")      # -> 8
        evaluator.evaluate("SUM(A1:A3)") # -> 6
        evaluator.evaluate("FOO(A1:A2)") # -> "N/A"
    """

    def __init__(
        self,
        store: CellStore,
        functions: FunctionRegistry | None = None,
        skip_non_numeric: bool = False,
        arithmetic: ArithmeticBackend | None = None,
    ) -> None:
        self._store = store
        self._functions = functions if functions is not None else FunctionRegistry()
        self._skip_non_numeric = skip_non_numeric
        self._arithmetic = arithmetic if arithmetic is not None else evaluate_arithmetic

    @property
    def functions(self) -> FunctionRegistry:
        return self._functions

    def evaluate(self, expression: str) -> CellValue:
        """Evaluate a formula body (no leading ``=``).

        Returns a number, ``"N/A"`` when the body is not valid arithmetic
        or names an unknown function, or ``""`` when the result is NaN.
        """
        expr = expression.strip().upper()
        try:
            substituted = self.substitute(expr)
            result = self._arithmetic(substituted)
        except UnknownFunction as e:
            logger.warning("Cannot evaluate %r: %s", expression, e)
            return NA
        except NonNumericResult as e:
            logger.debug("No numeric result for %r: %s", expression, e)
            return BLANK
        except (ArithmeticEvaluationFailure, MalformedAddress) as e:
            logger.debug("Cannot evaluate %r: %s", expression, e)
            return NA
        return normalize_number(result)

    # ------------------------------------------------------------------
    # Substitution
    # ------------------------------------------------------------------

    def substitute(self, expr: str) -> str:
        """Replace the function call, or else the cell references, in *expr*.

        References outside a function call are left as they are, which makes
        the arithmetic step reject bodies like ``SUM(A1:A2)+B1``.
        """
        call = find_function_call(expr)
        if call is not None:
            if not self._functions.has(call.name):
                raise UnknownFunction(call.name)
            start = parse_address(call.start)
            end = parse_address(call.end)
            value = self.reduce_range(
                call.name, start.column, start.row, end.column, end.row
            )
            begin, finish = call.span
            return expr[:begin] + format_operand(value) + expr[finish:]

        return CELL_REF_RE.sub(self._replace_reference, expr)

    def _replace_reference(self, m: re.Match[str]) -> str:
        return format_operand(self._store.value(canonical_ref(m.group(0))))

    # ------------------------------------------------------------------
    # Range reduction
    # ------------------------------------------------------------------

    def range_values(
        self, start_col: int, start_row: int, end_col: int, end_row: int
    ) -> list[float]:
        """Coerced values of the inclusive rectangle, row-major.

        Empty when start lies after end on either axis.
        """
        return [
            coerce_float(self._store.value(format_address(col, row)))
            for row in range(start_row, end_row + 1)
            for col in range(start_col, end_col + 1)
        ]

    def reduce_range(
        self, name: str, start_col: int, start_row: int, end_col: int, end_row: int
    ) -> float:
        """Apply the reducer registered as *name* to a rectangular range."""
        reducer = self._functions.get(name)
        if reducer is None:
            raise UnknownFunction(name)
        values = self.range_values(start_col, start_row, end_col, end_row)
        if self._skip_non_numeric:
            values = [v for v in values if not math.isnan(v)]
        try:
            return float(reducer(values))
        except Exception as e:
            logger.debug("Error reducing %s: %s", name, e)
            raise ArithmeticEvaluationFailure(f"{name} failed: {e}") from e
