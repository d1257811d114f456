"""Restricted arithmetic evaluation for fully substituted formula bodies.

The builtin evaluator is a tokenizer plus a recursive descent parser over
numeric literals and ``+ - * /`` (with unary sign).  ``*`` and ``/`` bind
tighter than ``+`` and ``-``; equal precedence associates left to right.
There is no grouping and no names, so nothing in a cell can execute code.

When the ``formulas`` library is installed (via ``gridcalc[formulas]``) it
can be selected instead as the expression backend.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Any, Callable

from gridcalc._config import ARITHMETIC_BUILTIN, ARITHMETIC_FORMULAS
from gridcalc._errors import ArithmeticEvaluationFailure, NonNumericResult

logger = logging.getLogger(__name__)

ArithmeticBackend = Callable[[str], float]

# NaN is what a poisoned range reduction is written back as.
_TOKEN_RE = re.compile(
    r"\s*(?:(?P<num>(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|NaN)|(?P<op>[-+*/]))"
)


# ---------------------------------------------------------------------------
# Tokenizer
# ---------------------------------------------------------------------------


def tokenize(expr: str) -> list[tuple[str, Any]]:
    """Split *expr* into ``("num", float)`` and ``("op", str)`` tokens."""
    text = expr.rstrip()
    tokens: list[tuple[str, Any]] = []
    pos = 0
    while pos < len(text):
        m = _TOKEN_RE.match(text, pos)
        if m is None:
            bad = text[pos:].lstrip()[:1]
            raise ArithmeticEvaluationFailure(
                f"Unexpected character {bad!r} in {expr!r}"
            )
        if m.group("num") is not None:
            tokens.append(("num", float(m.group("num"))))
        else:
            tokens.append(("op", m.group("op")))
        pos = m.end()
    return tokens


# ---------------------------------------------------------------------------
# Recursive descent
# ---------------------------------------------------------------------------


def _divide(left: float, right: float) -> float:
    if right == 0:
        # 0/0 is NaN; anything else over zero has no finite value.
        if left == 0 or math.isnan(left):
            return math.nan
        raise ArithmeticEvaluationFailure("Division by zero")
    return left / right


class _Parser:
    """expr := term (('+'|'-') term)*; term := unary (('*'|'/') unary)*;
    unary := ('+'|'-') unary | number"""

    __slots__ = ("_tokens", "_pos")

    def __init__(self, tokens: list[tuple[str, Any]]) -> None:
        self._tokens = tokens
        self._pos = 0

    def parse(self) -> float:
        value = self._expr()
        if self._pos != len(self._tokens):
            raise ArithmeticEvaluationFailure(
                f"Unexpected token {self._tokens[self._pos][1]!r}"
            )
        return value

    def _peek_op(self, ops: str) -> str | None:
        if self._pos < len(self._tokens):
            kind, val = self._tokens[self._pos]
            if kind == "op" and val in ops:
                return val
        return None

    def _expr(self) -> float:
        value = self._term()
        op = self._peek_op("+-")
        while op is not None:
            self._pos += 1
            rhs = self._term()
            value = value + rhs if op == "+" else value - rhs
            op = self._peek_op("+-")
        return value

    def _term(self) -> float:
        value = self._unary()
        op = self._peek_op("*/")
        while op is not None:
            self._pos += 1
            rhs = self._unary()
            value = value * rhs if op == "*" else _divide(value, rhs)
            op = self._peek_op("*/")
        return value

    def _unary(self) -> float:
        if self._pos >= len(self._tokens):
            raise ArithmeticEvaluationFailure("Unexpected end of expression")
        kind, val = self._tokens[self._pos]
        self._pos += 1
        if kind == "num":
            return val
        if val == "-":
            return -self._unary()
        if val == "+":
            return self._unary()
        raise ArithmeticEvaluationFailure(f"Unexpected operator {val!r}")


def _check_result(value: float, expr: str) -> float:
    if math.isnan(value):
        raise NonNumericResult(f"{expr!r} is not a number")
    if math.isinf(value):
        raise ArithmeticEvaluationFailure(f"{expr!r} has no finite value")
    return value


def evaluate_arithmetic(expr: str) -> float:
    """Evaluate a substituted expression such as ``"5+3*2"``.

    Raises NonNumericResult for empty input or a NaN result, and
    ArithmeticEvaluationFailure for anything that is not valid arithmetic
    or has no finite value.
    """
    tokens = tokenize(expr)
    if not tokens:
        raise NonNumericResult("Empty expression")
    return _check_result(_Parser(tokens).parse(), expr)


# ---------------------------------------------------------------------------
# formulas library backend
# ---------------------------------------------------------------------------


def _normalize_formulas_result(raw: Any) -> Any:
    """Convert a ``formulas`` library result to a plain Python value."""
    if raw is None:
        return None
    # numpy array with single element
    if hasattr(raw, "shape") and hasattr(raw, "flat"):
        try:
            if raw.size == 1:
                raw = raw.flat[0]
        except (ValueError, TypeError, IndexError):
            pass
    # numpy scalar types
    if hasattr(raw, "item"):
        try:
            return raw.item()
        except (ValueError, TypeError):
            pass
    return raw


class FormulasArithmetic:
    """Arithmetic backend delegating to the ``formulas`` Excel engine."""

    def __init__(self) -> None:
        try:
            import formulas
        except ImportError as exc:
            raise ValueError(
                "The 'formulas' arithmetic backend requires the formulas "
                "package (pip install gridcalc[formulas])"
            ) from exc
        self._fm = formulas
        self._compiled_cache: dict[str, Any] = {}

    def __call__(self, expr: str) -> float:
        stripped = expr.strip()
        if not stripped:
            raise NonNumericResult("Empty expression")

        compiled = self._compiled_cache.get(stripped)
        if compiled is None:
            try:
                result = self._fm.Parser().ast(f"={stripped}")
                compiled = result[1].compile()
            except Exception as e:
                logger.debug("formulas: cannot compile %r: %s", stripped, e)
                raise ArithmeticEvaluationFailure(f"Cannot compile {stripped!r}") from e
            self._compiled_cache[stripped] = compiled

        try:
            value = _normalize_formulas_result(compiled())
        except Exception as e:
            logger.debug("formulas: error evaluating %r: %s", stripped, e)
            raise ArithmeticEvaluationFailure(f"Cannot evaluate {stripped!r}") from e

        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ArithmeticEvaluationFailure(f"{stripped!r} gave {value!r}")
        return _check_result(float(value), stripped)


def get_backend(name: str) -> ArithmeticBackend:
    """Arithmetic backend for an ``EngineConfig.arithmetic`` value."""
    if name == ARITHMETIC_BUILTIN:
        return evaluate_arithmetic
    if name == ARITHMETIC_FORMULAS:
        return FormulasArithmetic()
    raise ValueError(f"Unknown arithmetic backend: {name!r}")
