"""Exception types raised by the address codec and the formula engine."""

from __future__ import annotations


class GridcalcError(Exception):
    """Base class for all gridcalc errors."""


class MalformedAddress(GridcalcError, ValueError):
    """A cell address lacks its letter run or its digit run."""

    def __init__(self, text: str) -> None:
        super().__init__(f"Malformed cell address: {text!r}")
        self.text = text


class FormulaError(GridcalcError):
    """Base class for failures while evaluating a formula body."""


class UnknownFunction(FormulaError):
    """A range function call names a function that is not registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown function: {name}")
        self.name = name


class ArithmeticEvaluationFailure(FormulaError):
    """The substituted expression is not valid arithmetic."""


class NonNumericResult(FormulaError):
    """Evaluation succeeded but produced no usable number (NaN)."""
