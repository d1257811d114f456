"""Spreadsheet: the engine object a grid UI commits cell edits to."""

from __future__ import annotations

import logging
import threading
from typing import Any

from gridcalc._config import PROPAGATION_SUBSTRING, EngineConfig
from gridcalc._errors import MalformedAddress
from gridcalc._store import CellRecord, CellStore, CellValue
from gridcalc._utils import CellAddress, column_labels, normalize_label
from gridcalc.calc._arith import get_backend
from gridcalc.calc._evaluator import FormulaEvaluator
from gridcalc.calc._functions import FunctionRegistry
from gridcalc.calc._graph import DependencyGraph, textual_dependents
from gridcalc.calc._protocol import CellDelta, PropagationCallback, RecalcResult

logger = logging.getLogger(__name__)


def _values_differ(a: Any, b: Any, tolerance: float = 1e-10) -> bool:
    """Check if two cell values differ beyond tolerance."""
    if a is None and b is None:
        return False
    if a is None or b is None:
        return True
    numeric = (int, float)
    if isinstance(a, numeric) and isinstance(b, numeric):
        return abs(float(a) - float(b)) > tolerance
    return a != b


class Spreadsheet:
    """Cell store plus formula evaluation and dependency propagation.

    Usage::

        sheet = Spreadsheet(on_cell_propagated=render)
        sheet.set_cell("A1", "5")
        sheet.set_cell("A2", "3")
        sheet.set_cell("A3", "=A1+A2")   # -> 8
        sheet.set_cell("A1", "10")       # render("A3", 13) is called

    Every edit and the propagation it triggers run under one lock, so a
    multi-threaded host never sees half-propagated values.
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        on_cell_propagated: PropagationCallback | None = None,
        functions: FunctionRegistry | None = None,
    ) -> None:
        self._config = config if config is not None else EngineConfig()
        self._store = CellStore()
        self._graph = DependencyGraph()
        self._evaluator = FormulaEvaluator(
            self._store,
            functions=functions,
            skip_non_numeric=self._config.skip_non_numeric,
            arithmetic=get_backend(self._config.arithmetic),
        )
        self._on_cell_propagated = on_cell_propagated
        self._lock = threading.RLock()

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def store(self) -> CellStore:
        return self._store

    @property
    def graph(self) -> DependencyGraph:
        return self._graph

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    def set_cell(self, address: str | CellAddress, raw_text: str | None) -> CellValue:
        """Store a user edit, evaluate it, propagate, and return its value.

        Text starting with ``=`` is a formula: its body is uppercased and
        evaluated against the store as it is before this edit lands.  Any
        other text is stored exactly as given.
        """
        label = normalize_label(address)
        text = "" if raw_text is None else raw_text
        stripped = text.strip()

        with self._lock:
            if stripped.startswith("="):
                body = stripped[1:].strip().upper()
                record = CellRecord(value=self._evaluator.evaluate(body), formula=body)
                self._graph.add_formula(label, body)
            else:
                record = CellRecord(value=text)
                self._graph.remove_formula(label)
            self._store.set(label, record)
            logger.debug("Committed %s=%r -> %r", label, text, record.value)

            self.propagate(label)
            return self._store.value(label)

    def on_cell_committed(self, address: str, raw_text: str) -> CellValue:
        """Presentation-layer entry point; same as :meth:`set_cell`."""
        return self.set_cell(address, raw_text)

    def evaluate(self, expression: str) -> CellValue:
        """Evaluate a formula body against the current store without storing it."""
        body = expression.strip()
        if body.startswith("="):
            body = body[1:]
        with self._lock:
            return self._evaluator.evaluate(body)

    # ------------------------------------------------------------------
    # Propagation
    # ------------------------------------------------------------------

    def propagate(self, address: str | CellAddress) -> RecalcResult:
        """Re-evaluate the formula cells that read *address*.

        In ``"graph"`` mode the walk follows the dependency graph
        transitively in dependency order.  In ``"substring"`` mode every
        formula whose text contains the label is re-evaluated once, with no
        cascade.  The propagation callback fires for every re-evaluated cell.
        """
        label = normalize_label(address)
        with self._lock:
            if self._config.propagation == PROPAGATION_SUBSTRING:
                targets = textual_dependents(self._store.formulas(), label)
                depth = 1 if targets else 0
            else:
                targets = self._graph.affected_cells({label})
                depth = self._graph.max_depth({label})

            deltas: list[CellDelta] = []
            for cell in targets:
                old = self._store.get(cell)
                if old is None or old.formula is None:
                    continue
                new_value = self._evaluator.evaluate(old.formula)
                self._store.set(cell, CellRecord(value=new_value, formula=old.formula))
                if _values_differ(old.value, new_value):
                    deltas.append(CellDelta(
                        cell_ref=cell,
                        old_value=old.value,
                        new_value=new_value,
                        formula=old.formula,
                    ))
                self._notify(cell, new_value)

            if targets:
                logger.debug("Propagated %s to %s", label, ", ".join(targets))

            return RecalcResult(
                changed=label,
                recalculated=tuple(targets),
                deltas=tuple(deltas),
                total_formula_cells=len(self._graph.formulas),
                max_chain_depth=depth,
            )

    def recalculate(self) -> dict[str, CellValue]:
        """Re-evaluate every formula cell; returns label -> value.

        Graph mode follows dependency order; substring mode rescans the
        store in insertion order.
        """
        with self._lock:
            if self._config.propagation == PROPAGATION_SUBSTRING:
                order = list(self._store.formulas())
            else:
                order = self._graph.evaluation_order()

            results: dict[str, CellValue] = {}
            for cell in order:
                formula = self._graph.formulas[cell]
                value = self._evaluator.evaluate(formula)
                self._store.set(cell, CellRecord(value=value, formula=formula))
                results[cell] = value
                self._notify(cell, value)
            return results

    def _notify(self, label: str, value: CellValue) -> None:
        if self._on_cell_propagated is None:
            return
        try:
            self._on_cell_propagated(label, value)
        except Exception:
            logger.exception("Propagation callback failed for %s", label)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def value(self, address: str | CellAddress) -> CellValue:
        """Stored value of a cell; 0 for a cell never set."""
        label = normalize_label(address)
        with self._lock:
            return self._store.value(label)

    def formula(self, address: str | CellAddress) -> str | None:
        """Stored formula body of a cell, or None for literals and unset cells."""
        label = normalize_label(address)
        with self._lock:
            record = self._store.get(label)
        return None if record is None else record.formula

    def column_labels(self, count: int | None = None) -> list[str]:
        """Column labels, defaulting to the configured column count."""
        return column_labels(self._config.columns if count is None else count)

    def get_column_labels(self, count: int) -> list[str]:
        return column_labels(count)

    def row_numbers(self, count: int | None = None) -> list[int]:
        """Row numbers from 1, defaulting to the configured row count."""
        return list(range(1, (self._config.rows if count is None else count) + 1))

    @property
    def shape(self) -> tuple[int, int]:
        """Configured grid size as ``(rows, columns)``."""
        return self._config.rows, self._config.columns

    def reset(self) -> None:
        """Drop every stored record and formula."""
        with self._lock:
            self._store.clear()
            self._graph.clear()

    def __getitem__(self, address: str | CellAddress) -> CellValue:
        return self.value(address)

    def __contains__(self, address: object) -> bool:
        if not isinstance(address, (str, CellAddress)):
            return False
        try:
            label = normalize_label(address)
        except MalformedAddress:
            return False
        with self._lock:
            return label in self._store

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def __repr__(self) -> str:
        with self._lock:
            return (
                f"<Spreadsheet cells={len(self._store)} "
                f"formulas={len(self._graph.formulas)} "
                f"propagation={self._config.propagation}>"
            )
