"""CalcEngine protocol and result dataclasses."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Protocol, runtime_checkable

from gridcalc._store import CellValue

# Host callback: (label, new value) for each cell recomputed by propagation.
PropagationCallback = Callable[[str, CellValue], None]


@dataclass(frozen=True)
class CellDelta:
    """A single cell's value change from propagation."""

    cell_ref: str  # canonical "A1"
    old_value: CellValue | None
    new_value: CellValue
    formula: str | None = None  # the formula that produced new_value


@dataclass(frozen=True)
class RecalcResult:
    """Result of propagating one cell edit."""

    changed: str  # label of the edited cell
    recalculated: tuple[str, ...]  # cells re-evaluated, in order
    deltas: tuple[CellDelta, ...]  # cells whose value changed
    total_formula_cells: int = 0
    max_chain_depth: int = 0  # longest dependency chain from the edited cell

    @property
    def propagated_cells(self) -> int:
        return len(self.deltas)

    @property
    def propagation_ratio(self) -> float:
        if self.total_formula_cells == 0:
            return 0.0
        return self.propagated_cells / self.total_formula_cells


@runtime_checkable
class CalcEngine(Protocol):
    """What the presentation layer needs from a formula engine."""

    def on_cell_committed(self, address: str, raw_text: str) -> CellValue:
        """Store a user edit and return the value to display for that cell."""
        ...

    def get_column_labels(self, count: int) -> list[str]:
        """Column header labels for a grid *count* columns wide."""
        ...

    def propagate(self, address: str) -> RecalcResult:
        """Recompute the cells that read *address*, notifying the host."""
        ...
