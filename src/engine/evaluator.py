"""Formula evaluator.

`evaluate` walks the AST once against a flat context (`name or cell key -> value`). It is pure: the
context is only read, and every failure becomes a `FormulaError` value.

Context lookup:
    - names: exact key first, then a case-insensitive match; missing names are #NAME?,
    - cells: canonical key (`B2`) first, then a case-insensitive match; missing cells are blank.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Mapping
from typing import Any

from src.engine.functions import get_function
from src.engine.nodes import (
    BinaryOpNode,
    BooleanNode,
    CellRefNode,
    ErrorNode,
    FunctionCallNode,
    NameNode,
    Node,
    NumberNode,
    RangeNode,
    StringNode,
    UnaryOpNode,
)
from src.engine.values import (
    CellRef,
    ErrorCode,
    FormulaError,
    FormulaValue,
    RangeValue,
    Value,
    checked,
    to_number,
    to_text,
)

logger = logging.getLogger(__name__)

# Upper bound on the cells a single range may expand to.
MAX_RANGE_CELLS = 10_000

EvaluationContext = Mapping[str, Any]

_MISSING = object()


def _lookup(context: EvaluationContext, key: str) -> Any:
    if key in context:
        return context[key]
    folded = key.casefold()
    for candidate, value in context.items():
        if isinstance(candidate, str) and candidate.casefold() == folded:
            return value
    return _MISSING


def _from_context(value: Any) -> Value:
    if value is None or isinstance(value, (bool, int, float, str, FormulaError)):
        return value
    return FormulaError(ErrorCode.wrong_type, f"unsupported context value of type {type(value).__name__}")


# --- comparisons ---------------------------------------------------------------------------------

def _type_rank(value: FormulaValue) -> int:
    """Spreadsheet ordering across types: numbers < text < booleans."""

    if isinstance(value, bool):
        return 2
    if isinstance(value, str):
        return 1
    return 0


def _blank_as(other: FormulaValue) -> FormulaValue:
    if isinstance(other, bool):
        return False
    if isinstance(other, str):
        return ""
    return 0.0


def _compare(left: FormulaValue, right: FormulaValue) -> int:
    if left is None:
        left = _blank_as(right)
    if right is None:
        right = _blank_as(left)

    left_rank, right_rank = _type_rank(left), _type_rank(right)
    if left_rank != right_rank:
        return -1 if left_rank < right_rank else 1

    if isinstance(left, str) and isinstance(right, str):
        a, b = left.casefold(), right.casefold()
    else:
        a, b = float(left), float(right)
    return (a > b) - (a < b)


_COMPARATORS: dict[str, Callable[[int], bool]] = {
    "=": lambda c: c == 0,
    "<>": lambda c: c != 0,
    "<": lambda c: c < 0,
    ">": lambda c: c > 0,
    "<=": lambda c: c <= 0,
    ">=": lambda c: c >= 0,
}


# --- arithmetic ----------------------------------------------------------------------------------

def _power(base: float, exponent: float) -> Value:
    try:
        return checked(math.pow(base, exponent))
    except ZeroDivisionError:
        return FormulaError(ErrorCode.div_zero, "zero raised to a negative power")
    except (OverflowError, ValueError):
        return FormulaError(ErrorCode.bad_number, "invalid power")


def _divide(left: float, right: float) -> Value:
    if right == 0:
        return FormulaError(ErrorCode.div_zero, "division by zero")
    return checked(left / right)


_ARITHMETIC: dict[str, Callable[[float, float], Value]] = {
    "+": lambda a, b: checked(a + b),
    "-": lambda a, b: checked(a - b),
    "*": lambda a, b: checked(a * b),
    "/": _divide,
    "^": _power,
}


class _Evaluator:
    def __init__(self, context: EvaluationContext) -> None:
        self.context = context
        self.handlers: dict[type, Callable[[Any], Value]] = {
            NumberNode: lambda node: checked(node.value),
            StringNode: lambda node: node.value,
            BooleanNode: lambda node: node.value,
            ErrorNode: lambda node: FormulaError(node.code),
            CellRefNode: lambda node: self.cell(node.ref),
            NameNode: self.name_ref,
            RangeNode: self.range_ref,
            FunctionCallNode: self.call,
            BinaryOpNode: self.binary,
            UnaryOpNode: self.unary,
        }

    def eval(self, node: Node) -> Value:
        return self.handlers[type(node)](node)

    def cell(self, ref: CellRef) -> Value:
        value = _lookup(self.context, ref.key)
        return None if value is _MISSING else _from_context(value)

    def name_ref(self, node: NameNode) -> Value:
        value = _lookup(self.context, node.name)
        if value is _MISSING:
            return FormulaError(ErrorCode.unknown_name, f"unknown name {node.name!r}")
        return _from_context(value)

    def range_ref(self, node: RangeNode) -> Value:
        start, end = node.start, node.end

        if isinstance(start, NameNode) and isinstance(end, NameNode):
            if start.name.casefold() != end.name.casefold():
                return FormulaError(ErrorCode.bad_reference, "a name range must start and end on the same name")
            value = self.name_ref(start)
            if isinstance(value, FormulaError):
                return value
            return RangeValue(rows=((value,),))

        if not (isinstance(start, CellRefNode) and isinstance(end, CellRefNode)):
            return FormulaError(ErrorCode.bad_reference, "cannot mix names and cell references in a range")

        top, bottom = sorted((start.ref.row, end.ref.row))
        left, right = sorted((start.ref.col, end.ref.col))
        if (bottom - top + 1) * (right - left + 1) > MAX_RANGE_CELLS:
            return FormulaError(ErrorCode.bad_reference, "range is too large")

        rows = tuple(
            tuple(self.cell(CellRef(col=col, row=row)) for col in range(left, right + 1))
            for row in range(top, bottom + 1)
        )
        return RangeValue(rows=rows)

    def call(self, node: FunctionCallNode) -> Value:
        spec = get_function(node.name)
        if spec is None:
            return FormulaError(ErrorCode.unknown_name, f"unknown function {node.name}")
        if not spec.min_args <= len(node.args) <= spec.max_args:
            return FormulaError(ErrorCode.wrong_type, f"wrong number of arguments for {node.name}")

        if spec.lazy:
            return spec.impl([lambda arg=arg: self.eval(arg) for arg in node.args])
        return spec.impl([self.eval(arg) for arg in node.args])

    def binary(self, node: BinaryOpNode) -> Value:
        left = _single(self.eval(node.left))
        if isinstance(left, FormulaError):
            return left
        right = _single(self.eval(node.right))
        if isinstance(right, FormulaError):
            return right

        if node.operator == "&":
            left_text, right_text = to_text(left), to_text(right)
            if isinstance(left_text, FormulaError):
                return left_text
            if isinstance(right_text, FormulaError):
                return right_text
            return left_text + right_text

        comparator = _COMPARATORS.get(node.operator)
        if comparator is not None:
            return comparator(_compare(left, right))

        left_number, right_number = to_number(left), to_number(right)
        if isinstance(left_number, FormulaError):
            return left_number
        if isinstance(right_number, FormulaError):
            return right_number
        return _ARITHMETIC[node.operator](left_number, right_number)

    def unary(self, node: UnaryOpNode) -> Value:
        number = to_number(_single(self.eval(node.operand)))
        if isinstance(number, FormulaError):
            return number
        if node.operator == "-":
            return -number
        if node.operator == "%":
            return number / 100
        return number


def _single(value: Value) -> Value:
    """Collapse a 1x1 range to its value; larger ranges cannot be used as a single value."""

    if isinstance(value, RangeValue):
        if value.height == 1 and value.width == 1:
            return value.rows[0][0]
        return FormulaError(ErrorCode.wrong_type, "range used where a single value is expected")
    return value


def evaluate(node: Node, context: EvaluationContext | None = None) -> FormulaValue | FormulaError:
    """Evaluate a parsed formula.

    Returns:
        A number, string, boolean or blank (`None`), or a `FormulaError`. Never raises for bad data.
    """

    try:
        result = _single(_Evaluator(context or {}).eval(node))
    except RecursionError:
        logger.debug("evaluation aborted: formula nested too deeply")
        return FormulaError(ErrorCode.error, "formula is nested too deeply")
    return result
