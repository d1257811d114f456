"""Formula parser: regex-based reference, range and function-call extraction."""

from __future__ import annotations

import re
from dataclasses import dataclass

from gridcalc._errors import MalformedAddress
from gridcalc._utils import a1_to_rowcol, normalize_label, rowcol_to_a1

# ---------------------------------------------------------------------------
# Regex patterns (formula bodies are uppercased before matching)
# ---------------------------------------------------------------------------

# Single cell ref: letters immediately followed by digits
_CELL_REF = r"[A-Z]+\d+"
CELL_REF_RE = re.compile(_CELL_REF)

# Range: A1:B5
_RANGE_REF_RE = re.compile(rf"({_CELL_REF}):({_CELL_REF})")

# One range function call: SUM(A1:A3)
FUNCTION_CALL_RE = re.compile(rf"([A-Z]+)\(({_CELL_REF}):({_CELL_REF})\)")


@dataclass(frozen=True)
class FunctionCall:
    """A ``NAME(START:END)`` call found in a formula body."""

    name: str
    start: str
    end: str
    span: tuple[int, int]


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


def canonical_ref(ref: str) -> str:
    """Canonical label for a reference token (``A01`` -> ``A1``).

    Tokens that are not valid addresses (row 0) come back uppercased.
    """
    try:
        return normalize_label(ref)
    except MalformedAddress:
        return ref.upper()


def find_function_call(formula: str) -> FunctionCall | None:
    """First ``NAME(ADDR:ADDR)`` call in *formula*, or None."""
    m = FUNCTION_CALL_RE.search(formula.upper())
    if m is None:
        return None
    return FunctionCall(
        name=m.group(1), start=m.group(2), end=m.group(3), span=m.span()
    )


def parse_references(formula: str) -> list[str]:
    """Extract single cell references, excluding those that bound a range.

    Returns unique labels in order of first appearance.
    """
    clean = formula.upper()
    range_spans = [(m.start(), m.end()) for m in _RANGE_REF_RE.finditer(clean)]
    refs: list[str] = []
    seen: set[str] = set()

    for m in CELL_REF_RE.finditer(clean):
        pos = m.start()
        if any(s <= pos < e for s, e in range_spans):
            continue
        ref = canonical_ref(m.group(0))
        if ref not in seen:
            refs.append(ref)
            seen.add(ref)

    return refs


def parse_range_references(formula: str) -> list[str]:
    """Extract ``"A1:B5"`` range references in order of first appearance."""
    ranges: list[str] = []
    seen: set[str] = set()
    for m in _RANGE_REF_RE.finditer(formula.upper()):
        rng = f"{m.group(1)}:{m.group(2)}"
        if rng not in seen:
            ranges.append(rng)
            seen.add(rng)
    return ranges


# ---------------------------------------------------------------------------
# Range expansion
# ---------------------------------------------------------------------------


def expand_range(range_ref: str) -> list[str]:
    """Expand ``"A1:B2"`` into ``["A1", "B1", "A2", "B2"]`` (row-major).

    Bounds are not reordered: if the start lies after the end on either
    axis, the range is empty.  Raises MalformedAddress for a bad bound.
    """
    parts = range_ref.split(":")
    if len(parts) != 2:
        raise ValueError(f"Invalid range: {range_ref!r}")

    start_row, start_col = a1_to_rowcol(parts[0])
    end_row, end_col = a1_to_rowcol(parts[1])
    return [
        rowcol_to_a1(r, c)
        for r in range(start_row, end_row + 1)
        for c in range(start_col, end_col + 1)
    ]


def all_references(formula: str) -> list[str]:
    """All cell labels a formula reads: single refs plus expanded ranges."""
    refs: list[str] = []
    seen: set[str] = set()

    for ref in parse_references(formula):
        if ref not in seen:
            refs.append(ref)
            seen.add(ref)

    for rng in parse_range_references(formula):
        for ref in expand_range(rng):
            if ref not in seen:
                refs.append(ref)
                seen.add(ref)

    return refs
