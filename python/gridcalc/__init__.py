"""gridcalc - a small spreadsheet formula engine.

Usage::

    from gridcalc import Spreadsheet

    sheet = Spreadsheet(on_cell_propagated=lambda label, value: print(label, value))
    sheet.set_cell("A1", "5")
    sheet.set_cell("A2", "3")
    sheet.set_cell("A3", "=A1+A2")        # -> 8
    sheet.set_cell("B1", "=SUM(A1:A3)")   # -> 16
    sheet.set_cell("A1", "10")            # prints "A3 13" then "B1 26"
"""

from gridcalc._config import EngineConfig
from gridcalc._errors import (
    ArithmeticEvaluationFailure,
    FormulaError,
    GridcalcError,
    MalformedAddress,
    NonNumericResult,
    UnknownFunction,
)
from gridcalc._spreadsheet import Spreadsheet
from gridcalc._store import BLANK, NA, CellRecord, CellStore
from gridcalc._utils import (
    CellAddress,
    column_labels,
    format_address,
    next_column_label,
    parse_address,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "ArithmeticEvaluationFailure",
    "BLANK",
    "CellAddress",
    "CellRecord",
    "CellStore",
    "EngineConfig",
    "FormulaError",
    "GridcalcError",
    "MalformedAddress",
    "NA",
    "NonNumericResult",
    "Spreadsheet",
    "UnknownFunction",
    "column_labels",
    "format_address",
    "next_column_label",
    "parse_address",
]
