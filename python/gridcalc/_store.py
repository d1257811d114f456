"""Cell store: label -> CellRecord, created lazily on first edit."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Union

CellValue = Union[int, float, str]

# Sentinels shown for cells whose formula yields no usable number.
NA = "N/A"
BLANK = ""


@dataclass(frozen=True)
class CellRecord:
    """Stored state of one cell.

    ``formula`` is the uppercased formula body without the leading ``=``,
    or None for a literal.  ``value`` is the literal text as entered, or the
    last value computed from the formula.
    """

    value: CellValue
    formula: str | None = None

    @property
    def is_formula(self) -> bool:
        return self.formula is not None


class CellStore:
    """Mapping of canonical labels (``"A1"``) to :class:`CellRecord`.

    Keys are never removed by edits; only :meth:`clear` empties the store.
    """

    __slots__ = ("_records",)

    def __init__(self) -> None:
        self._records: dict[str, CellRecord] = {}

    def get(self, label: str) -> CellRecord | None:
        return self._records.get(label)

    def value(self, label: str) -> CellValue:
        """Stored value of *label*, or 0 for a cell never set."""
        record = self._records.get(label)
        return 0 if record is None else record.value

    def set(self, label: str, record: CellRecord) -> None:
        self._records[label] = record

    def formulas(self) -> dict[str, str]:
        """label -> formula body for every formula cell, in insertion order."""
        return {
            label: rec.formula
            for label, rec in self._records.items()
            if rec.formula is not None
        }

    def clear(self) -> None:
        self._records.clear()

    def __contains__(self, label: object) -> bool:
        return label in self._records

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"<CellStore cells={len(self._records)}>"
