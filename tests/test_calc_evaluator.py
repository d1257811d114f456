"""Tests for gridcalc.calc FormulaEvaluator."""

from __future__ import annotations

import logging
import math

import pytest

from gridcalc._errors import UnknownFunction
from gridcalc._store import BLANK, NA, CellRecord, CellStore
from gridcalc.calc._evaluator import FormulaEvaluator, format_operand, normalize_number
from gridcalc.calc._functions import FunctionRegistry


def _store(**values: object) -> CellStore:
    """Build a store of literal cells: _store(A1="5", A2="3")."""
    store = CellStore()
    for label, value in values.items():
        store.set(label, CellRecord(value=value))  # type: ignore[arg-type]
    return store


class TestReferences:
    def test_sum_of_refs(self) -> None:
        ev = FormulaEvaluator(_store(A1="5", A2="3"))
        result = ev.evaluate("A1+A2")
        assert result == 8
        assert isinstance(result, int)

    def test_lowercase_normalized(self) -> None:
        ev = FormulaEvaluator(_store(A1="5", A2="3"))
        assert ev.evaluate("a1*a2") == 15

    def test_missing_ref_is_zero(self) -> None:
        ev = FormulaEvaluator(CellStore())
        assert ev.evaluate("Z99+1") == 1

    def test_token_exact_replacement(self) -> None:
        ev = FormulaEvaluator(_store(A1="1", A10="100"))
        assert ev.evaluate("A10+A1") == 101

    def test_repeated_ref(self) -> None:
        ev = FormulaEvaluator(_store(B2="4"))
        assert ev.evaluate("B2*B2-B2") == 12

    def test_numeric_stored_values(self) -> None:
        store = CellStore()
        store.set("A1", CellRecord(value=0.5, formula="1/2"))
        store.set("A2", CellRecord(value=-3, formula="0-3"))
        ev = FormulaEvaluator(store)
        assert ev.evaluate("A1*4") == 2
        assert ev.evaluate("5-A2") == 8

    def test_fractional_result(self) -> None:
        ev = FormulaEvaluator(_store(A1="5", A2="3"))
        assert ev.evaluate("A1/A2") == pytest.approx(5 / 3)

    def test_constant_formula(self) -> None:
        assert FormulaEvaluator(CellStore()).evaluate("42") == 42


class TestSentinels:
    def test_ref_to_na_is_na(self) -> None:
        ev = FormulaEvaluator(_store(A1=NA))
        assert ev.evaluate("A1+1") == NA

    def test_ref_to_text_is_na(self) -> None:
        ev = FormulaEvaluator(_store(A1="hello"))
        assert ev.evaluate("A1+1") == NA

    def test_ref_to_blank_drops_out(self) -> None:
        """An empty value substitutes as nothing, leaving ``+1``."""
        ev = FormulaEvaluator(_store(A1=BLANK))
        assert ev.evaluate("A1+1") == 1

    def test_lone_blank_ref_is_blank(self) -> None:
        ev = FormulaEvaluator(_store(A1=BLANK))
        assert ev.evaluate("A1") == BLANK

    def test_division_by_zero_is_na(self) -> None:
        ev = FormulaEvaluator(_store(A1="5"))
        assert ev.evaluate("A1/B1") == NA

    def test_zero_over_zero_is_blank(self) -> None:
        assert FormulaEvaluator(CellStore()).evaluate("A1/B1") == BLANK

    def test_stray_letters_are_na(self) -> None:
        assert FormulaEvaluator(CellStore()).evaluate("HELLO") == NA

    def test_parentheses_unsupported(self) -> None:
        assert FormulaEvaluator(CellStore()).evaluate("(1+2)*3") == NA


class TestRangeFunctions:
    def test_sum(self) -> None:
        ev = FormulaEvaluator(_store(A1="1", A2="2", A3="3"))
        assert ev.evaluate("SUM(A1:A3)") == 6

    def test_sum_embedded(self) -> None:
        ev = FormulaEvaluator(_store(A1="1", A2="2", A3="3"))
        assert ev.evaluate("SUM(A1:A3)*2") == 12

    def test_refs_outside_call_not_substituted(self) -> None:
        ev = FormulaEvaluator(_store(A1="1", A2="2", B1="3"))
        assert ev.evaluate("SUM(A1:A2)+B1") == NA

    def test_block_range(self) -> None:
        ev = FormulaEvaluator(_store(A1="1", B1="2", A2="3", B2="4"))
        assert ev.evaluate("SUM(A1:B2)") == 10

    def test_missing_cells_are_zero(self) -> None:
        ev = FormulaEvaluator(_store(A1="4"))
        assert ev.evaluate("SUM(A1:A5)") == 4

    def test_reversed_range_is_empty(self) -> None:
        ev = FormulaEvaluator(_store(A1="1", A2="2", A3="3"))
        assert ev.evaluate("SUM(A3:A1)") == 0

    def test_text_poisons_sum(self) -> None:
        ev = FormulaEvaluator(_store(A1="1", A2="abc", A3="3"))
        assert ev.evaluate("SUM(A1:A3)") == BLANK

    def test_text_skipped_when_configured(self) -> None:
        ev = FormulaEvaluator(_store(A1="1", A2="abc", A3="3"), skip_non_numeric=True)
        assert ev.evaluate("SUM(A1:A3)") == 4

    def test_numeric_prefix_counts(self) -> None:
        ev = FormulaEvaluator(_store(A1="10kg", A2="5"))
        assert ev.evaluate("SUM(A1:A2)") == 15

    def test_average(self) -> None:
        ev = FormulaEvaluator(_store(A1="1", A2="2", A3="6"))
        assert ev.evaluate("AVERAGE(A1:A3)") == 3

    def test_min_max_count(self) -> None:
        ev = FormulaEvaluator(_store(A1="4", A2="-2", A3="9"))
        assert ev.evaluate("MIN(A1:A3)") == -2
        assert ev.evaluate("MAX(A1:A3)") == 9
        assert ev.evaluate("COUNT(A1:A3)") == 3

    def test_bad_range_bound_is_na(self) -> None:
        assert FormulaEvaluator(CellStore()).evaluate("SUM(A0:A3)") == NA

    def test_unknown_function(self, caplog: pytest.LogCaptureFixture) -> None:
        ev = FormulaEvaluator(_store(A1="1", A2="2"))
        with caplog.at_level(logging.WARNING, logger="gridcalc.calc._evaluator"):
            assert ev.evaluate("FOO(A1:A2)") == NA
        assert "Unknown function: FOO" in caplog.text

    def test_custom_reducer(self) -> None:
        reg = FunctionRegistry()
        reg.register("PRODUCT", math.prod)
        ev = FormulaEvaluator(_store(A1="2", A2="3", A3="4"), functions=reg)
        assert ev.evaluate("PRODUCT(A1:A3)") == 24

    def test_failing_reducer_is_na(self) -> None:
        def boom(values: list[float]) -> float:
            raise RuntimeError("boom")

        reg = FunctionRegistry()
        reg.register("BOOM", boom)
        ev = FormulaEvaluator(CellStore(), functions=reg)
        assert ev.evaluate("BOOM(A1:A2)") == NA


class TestReduceRange:
    def test_four_argument_contract(self) -> None:
        ev = FormulaEvaluator(_store(A1="1", A2="2", A3="3"))
        assert ev.reduce_range("SUM", 0, 1, 0, 3) == 6.0

    def test_range_values(self) -> None:
        ev = FormulaEvaluator(_store(A1="1", B1="x"))
        values = ev.range_values(0, 1, 1, 2)
        assert values[0] == 1.0
        assert math.isnan(values[1])
        assert values[2:] == [0.0, 0.0]

    def test_unknown(self) -> None:
        with pytest.raises(UnknownFunction):
            FormulaEvaluator(CellStore()).reduce_range("NOPE", 0, 1, 0, 1)


class TestHelpers:
    def test_format_operand(self) -> None:
        assert format_operand(3) == "3"
        assert format_operand(0.1) == "0.1"
        assert format_operand(math.nan) == "NaN"
        assert format_operand("N/A") == "N/A"

    def test_normalize_number(self) -> None:
        assert normalize_number(8.0) == 8
        assert isinstance(normalize_number(8.0), int)
        assert normalize_number(2.5) == 2.5
        assert isinstance(normalize_number(1e20), float)
