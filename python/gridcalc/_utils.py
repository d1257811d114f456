"""Cell address codec: labels like ``AB12`` <-> (column, row) pairs.

Columns use bijective base-26 numbering (A..Z, AA, AB, ...) so there is no
"zero" letter.  Column indices are 0-based, rows are 1-based.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from gridcalc._errors import MalformedAddress

_ADDRESS_RE = re.compile(r"([A-Z]+)(\d+)")
_LABEL_RE = re.compile(r"[A-Z]+")


def column_label(index: int) -> str:
    """0-based column index -> label (0 -> A, 25 -> Z, 26 -> AA)."""
    if index < 0:
        raise ValueError(f"Column index must be >= 0, got {index}")
    n = index + 1
    letters: list[str] = []
    while n > 0:
        letters.append(chr(ord("A") + (n - 1) % 26))
        n = (n - 1) // 26
    return "".join(reversed(letters))


def column_index(label: str) -> int:
    """Column label -> 0-based index (A -> 0, AA -> 26)."""
    normalized = label.strip().upper()
    if not _LABEL_RE.fullmatch(normalized):
        raise ValueError(f"Invalid column label: {label!r}")
    n = 0
    for ch in normalized:
        n = n * 26 + (ord(ch) - ord("A") + 1)
    return n - 1


def column_labels(count: int) -> list[str]:
    """The first *count* column labels in grid order."""
    return [column_label(i) for i in range(max(count, 0))]


def next_column_label(label: str, labels: list[str]) -> str:
    """Label following *label* in *labels*, wrapping around after the last one."""
    try:
        idx = labels.index(label)
    except ValueError:
        return labels[0]
    return labels[idx + 1] if idx < len(labels) - 1 else labels[0]


@dataclass(frozen=True, order=True)
class CellAddress:
    """Structural cell identity: 0-based column, 1-based row."""

    column: int
    row: int

    @property
    def label(self) -> str:
        return format_address(self.column, self.row)

    @classmethod
    def from_label(cls, text: str) -> CellAddress:
        return parse_address(text)

    def __str__(self) -> str:
        return self.label


def parse_address(text: str) -> CellAddress:
    """Split ``"B12"`` into ``CellAddress(column=1, row=12)``.

    Raises MalformedAddress if the letter run or the digit run is missing,
    or if the row is 0.  The row is not checked against any grid size.
    """
    m = _ADDRESS_RE.fullmatch(text.strip().upper()) if isinstance(text, str) else None
    if m is None:
        raise MalformedAddress(str(text))
    row = int(m.group(2))
    if row < 1:
        raise MalformedAddress(text)
    return CellAddress(column=column_index(m.group(1)), row=row)


def format_address(column: int, row: int) -> str:
    """(0-based column, 1-based row) -> ``"A1"`` label."""
    return f"{column_label(column)}{row}"


def a1_to_rowcol(text: str) -> tuple[int, int]:
    """``"B12"`` -> ``(12, 1)`` (row, 0-based column)."""
    addr = parse_address(text)
    return addr.row, addr.column


def rowcol_to_a1(row: int, col: int) -> str:
    """Inverse of :func:`a1_to_rowcol`."""
    return format_address(col, row)


def normalize_label(address: str | CellAddress) -> str:
    """Canonical label for a string or CellAddress, validating strings."""
    if isinstance(address, CellAddress):
        return address.label
    return parse_address(address).label
