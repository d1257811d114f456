"""gridcalc.calc - Formula evaluation engine for gridcalc spreadsheets."""

from gridcalc.calc._arith import FormulasArithmetic, evaluate_arithmetic
from gridcalc.calc._evaluator import FormulaEvaluator
from gridcalc.calc._functions import SUPPORTED_FUNCTIONS, FunctionRegistry, is_supported
from gridcalc.calc._graph import DependencyGraph, textual_dependents
from gridcalc.calc._parser import all_references, expand_range, find_function_call
from gridcalc.calc._protocol import CalcEngine, CellDelta, RecalcResult

__all__ = [
    "CalcEngine",
    "CellDelta",
    "DependencyGraph",
    "FormulaEvaluator",
    "FormulasArithmetic",
    "FunctionRegistry",
    "RecalcResult",
    "SUPPORTED_FUNCTIONS",
    "all_references",
    "evaluate_arithmetic",
    "expand_range",
    "find_function_call",
    "is_supported",
    "textual_dependents",
]
