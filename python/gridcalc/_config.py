"""Engine configuration."""

from __future__ import annotations

from dataclasses import dataclass

PROPAGATION_GRAPH = "graph"
PROPAGATION_SUBSTRING = "substring"

ARITHMETIC_BUILTIN = "builtin"
ARITHMETIC_FORMULAS = "formulas"


@dataclass(frozen=True)
class EngineConfig:
    """Settings for a :class:`~gridcalc.Spreadsheet`.

    ``propagation`` selects how dependents are found after an edit:
    ``"graph"`` walks an explicit reference graph transitively, while
    ``"substring"`` re-evaluates every formula whose text contains the
    changed label, one level deep.

    ``skip_non_numeric`` drops non-numeric range values before reducing
    instead of letting them poison the result to NaN.

    ``arithmetic`` picks the evaluator for substituted expressions:
    the builtin restricted evaluator or the ``formulas`` library.

    ``rows`` and ``columns`` size the grid a host renders; they back
    :meth:`Spreadsheet.row_numbers`, :meth:`Spreadsheet.column_labels` and
    :attr:`Spreadsheet.shape`.  Addresses beyond them are still accepted.
    """

    rows: int = 100
    columns: int = 100
    propagation: str = PROPAGATION_GRAPH
    skip_non_numeric: bool = False
    arithmetic: str = ARITHMETIC_BUILTIN

    def __post_init__(self) -> None:
        if self.rows < 1 or self.columns < 1:
            raise ValueError(
                f"Grid size must be at least 1x1, got {self.rows}x{self.columns}"
            )
        if self.propagation not in (PROPAGATION_GRAPH, PROPAGATION_SUBSTRING):
            raise ValueError(f"Unknown propagation mode: {self.propagation!r}")
        if self.arithmetic not in (ARITHMETIC_BUILTIN, ARITHMETIC_FORMULAS):
            raise ValueError(f"Unknown arithmetic backend: {self.arithmetic!r}")
