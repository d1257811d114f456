"""Dependency graph for formula cells with cycle-tolerant ordering."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable, Mapping

from gridcalc._errors import MalformedAddress
from gridcalc._utils import parse_address
from gridcalc.calc._parser import parse_range_references, parse_references

logger = logging.getLogger(__name__)

# (start_col, start_row, end_col, end_row); empty when start lies past end
Rect = tuple[int, int, int, int]


class DependencyGraph:
    """Tracks formula cell dependencies for evaluation ordering.

    Single references are kept as explicit edges.  Ranges are kept as
    rectangles and matched by position, so ``SUM(A1:A300000)`` costs one
    entry rather than one edge per cell.  All cell references use canonical
    ``"A1"`` labels.
    """

    __slots__ = ("dependencies", "dependents", "formulas", "ranges")

    def __init__(self) -> None:
        # cell -> set of cells it reads from by single reference
        self.dependencies: dict[str, set[str]] = {}
        # cell -> set of cells that read from it (reverse edges)
        self.dependents: dict[str, set[str]] = {}
        # cell -> formula body, in registration order
        self.formulas: dict[str, str] = {}
        # cell -> rectangles it reads through range arguments
        self.ranges: dict[str, list[Rect]] = {}

    def add_formula(self, cell_ref: str, formula: str) -> None:
        """Register (or re-register) a formula cell and its dependencies."""
        self.remove_formula(cell_ref)
        self.formulas[cell_ref] = formula

        refs = parse_references(formula)
        self.dependencies[cell_ref] = set(refs)
        for ref in refs:
            self.dependents.setdefault(ref, set()).add(cell_ref)

        rects: list[Rect] = []
        for rng in parse_range_references(formula):
            start, end = rng.split(":")
            try:
                first, last = parse_address(start), parse_address(end)
            except MalformedAddress as e:
                # A range bound like A0 reads nothing.
                logger.debug("Unreadable range in %s=%r: %s", cell_ref, formula, e)
                continue
            rects.append((first.column, first.row, last.column, last.row))
        if rects:
            self.ranges[cell_ref] = rects

    def remove_formula(self, cell_ref: str) -> None:
        """Forget a cell's formula and its outgoing edges."""
        self.formulas.pop(cell_ref, None)
        self.ranges.pop(cell_ref, None)
        for ref in self.dependencies.pop(cell_ref, set()):
            readers = self.dependents.get(ref)
            if readers is not None:
                readers.discard(cell_ref)
                if not readers:
                    del self.dependents[ref]

    def clear(self) -> None:
        self.dependencies.clear()
        self.dependents.clear()
        self.formulas.clear()
        self.ranges.clear()

    def readers(self, cell_ref: str) -> set[str]:
        """Formula cells that read *cell_ref*, directly or through a range."""
        found = set(self.dependents.get(cell_ref, ()))
        if not self.ranges:
            return found
        try:
            addr = parse_address(cell_ref)
        except MalformedAddress:
            return found
        col, row = addr.column, addr.row
        for reader, rects in self.ranges.items():
            for c1, r1, c2, r2 in rects:
                if c1 <= col <= c2 and r1 <= row <= r2:
                    found.add(reader)
                    break
        return found

    def evaluation_order(self, cells: Iterable[str] | None = None) -> list[str]:
        """Formula cells in dependency order (Kahn's algorithm).

        Restricted to *cells* when given.  Cells on a cycle cannot be
        ordered; they are appended once each in registration order.
        """
        position = {cell: i for i, cell in enumerate(self.formulas)}
        if cells is None:
            targets = set(self.formulas)
        else:
            targets = {c for c in cells if c in self.formulas}
        if not targets:
            return []

        # Reverse edges and in-degrees within the target cells only
        readers_of = {cell: self.readers(cell) & targets for cell in targets}
        in_degree = dict.fromkeys(targets, 0)
        for readers in readers_of.values():
            for dep in readers:
                in_degree[dep] += 1

        queue: deque[str] = deque(
            sorted((c for c in targets if in_degree[c] == 0), key=position.__getitem__)
        )
        order: list[str] = []
        while queue:
            cell = queue.popleft()
            order.append(cell)
            for dep in sorted(readers_of[cell], key=position.__getitem__):
                in_degree[dep] -= 1
                if in_degree[dep] == 0:
                    queue.append(dep)

        if len(order) != len(targets):
            stuck = sorted(targets - set(order), key=position.__getitem__)
            logger.warning("Circular reference involving: %s", ", ".join(stuck))
            order.extend(stuck)

        return order

    def affected_cells(self, changed_cells: set[str]) -> list[str]:
        """Find all formula cells affected by changes, in evaluation order.

        Uses BFS over readers.  The changed cells themselves are not
        included.
        """
        affected: set[str] = set()
        queue: deque[str] = deque(changed_cells)
        visited: set[str] = set(changed_cells)

        while queue:
            cell = queue.popleft()
            for dep in self.readers(cell):
                if dep not in visited:
                    visited.add(dep)
                    queue.append(dep)
                    affected.add(dep)

        return self.evaluation_order(affected)

    def max_depth(self, roots: set[str]) -> int:
        """Longest dependency chain from root cells through formula cells.

        Chains are capped at the number of formula cells so cycles end.
        """
        if not roots:
            return 0

        limit = len(self.formulas)
        depth: dict[str, int] = {r: 0 for r in roots}
        queue: deque[str] = deque(roots)
        max_d = 0

        while queue:
            cell = queue.popleft()
            new_depth = depth[cell] + 1
            if new_depth > limit:
                continue
            for dep in self.readers(cell):
                if dep not in depth or new_depth > depth[dep]:
                    depth[dep] = new_depth
                    max_d = max(max_d, new_depth)
                    queue.append(dep)

        return max_d


def textual_dependents(formulas: Mapping[str, str], label: str) -> list[str]:
    """Formula cells whose text contains *label* as a plain substring.

    This reproduces the substring dependency rule: ``A1`` also matches
    formulas mentioning ``A10`` or ``AA1``.  Order follows *formulas*.
    """
    return [cell for cell, formula in formulas.items() if label in formula]
