"""Built-in spreadsheet functions.

Every function receives its already evaluated arguments, except the lazy ones (`IF`, `IFERROR`) which
receive zero-argument callables so that the branch not taken is never evaluated.

Aggregates follow spreadsheet conventions: inside a range, text, booleans and blanks are skipped;
given directly, booleans count as 1/0 and numeric text is parsed. Errors propagate.
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, DecimalException, localcontext
from types import MappingProxyType

from src.engine.values import (
    ErrorCode,
    FormulaError,
    RangeValue,
    Value,
    checked,
    to_bool,
    to_number,
    to_text,
)

Thunk = Callable[[], Value]

_WHITESPACE_RUN_RE = re.compile(r" +")

# Finite floats stay below 1e309, so rounding to more than this many tens gives 0.
_ROUND_MAX_MAGNITUDE = 330
# Enough digits for any finite float quantized within the range above.
_ROUND_PRECISION = 800


@dataclass(frozen=True)
class FunctionSpec:
    name: str
    min_args: int
    max_args: int
    impl: Callable[[Sequence], Value]
    lazy: bool = False


# --- helpers -------------------------------------------------------------------------------------

def _numbers(args: Sequence[Value]) -> Iterator[float | FormulaError]:
    """Numbers of the arguments, aggregate style. Yields the first error and stops."""

    for arg in args:
        if isinstance(arg, RangeValue):
            for item in arg.values():
                if isinstance(item, FormulaError):
                    yield item
                    return
                if isinstance(item, (int, float)) and not isinstance(item, bool):
                    yield float(item)
        elif arg is None:
            continue
        else:
            number = to_number(arg)
            yield number
            if isinstance(number, FormulaError):
                return


def _collect(args: Sequence[Value]) -> list[float] | FormulaError:
    numbers: list[float] = []
    for number in _numbers(args):
        if isinstance(number, FormulaError):
            return number
        numbers.append(number)
    return numbers


def _scalar(value: Value) -> Value:
    """Single value of a 1x1 range; any other range is #VALUE!."""

    if isinstance(value, RangeValue):
        if value.height == 1 and value.width == 1:
            return value.rows[0][0]
        return FormulaError(ErrorCode.wrong_type, "range used where a single value is expected")
    return value


def _number_arg(value: Value) -> float | FormulaError:
    return to_number(_scalar(value))


def _text_arg(value: Value) -> str | FormulaError:
    return to_text(_scalar(value))


# --- math ----------------------------------------------------------------------------------------

def _sum(args: Sequence[Value]) -> Value:
    numbers = _collect(args)
    if isinstance(numbers, FormulaError):
        return numbers
    return checked(sum(numbers))


def _average(args: Sequence[Value]) -> Value:
    numbers = _collect(args)
    if isinstance(numbers, FormulaError):
        return numbers
    if not numbers:
        return FormulaError(ErrorCode.div_zero, "AVERAGE of no numbers")
    return checked(sum(numbers) / len(numbers))


def _min(args: Sequence[Value]) -> Value:
    numbers = _collect(args)
    if isinstance(numbers, FormulaError):
        return numbers
    return min(numbers) if numbers else 0.0


def _max(args: Sequence[Value]) -> Value:
    numbers = _collect(args)
    if isinstance(numbers, FormulaError):
        return numbers
    return max(numbers) if numbers else 0.0


def _count(args: Sequence[Value]) -> Value:
    count = 0
    for arg in args:
        if isinstance(arg, RangeValue):
            count += sum(
                1
                for item in arg.values()
                if isinstance(item, (int, float)) and not isinstance(item, bool)
            )
        elif arg is not None and not isinstance(arg, FormulaError):
            if not isinstance(to_number(arg), FormulaError):
                count += 1
    return float(count)


def _counta(args: Sequence[Value]) -> Value:
    count = 0
    for arg in args:
        items = arg.values() if isinstance(arg, RangeValue) else (arg,)
        count += sum(1 for item in items if item is not None and item != "")
    return float(count)


def _round(args: Sequence[Value]) -> Value:
    number = _number_arg(args[0])
    if isinstance(number, FormulaError):
        return number
    digits = _number_arg(args[1]) if len(args) > 1 else 0.0
    if isinstance(digits, FormulaError):
        return digits
    if not (math.isfinite(number) and math.isfinite(digits)):
        return FormulaError(ErrorCode.bad_number, "ROUND of a non-finite number")

    places = int(digits)
    value = Decimal(repr(number))
    if places >= -value.as_tuple().exponent:
        return number
    if places < -_ROUND_MAX_MAGNITUDE:
        return 0.0

    try:
        with localcontext() as ctx:
            ctx.prec = _ROUND_PRECISION
            rounded = value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)
    except DecimalException:
        return FormulaError(ErrorCode.bad_number, "ROUND out of range")
    return checked(float(rounded))


def _abs(args: Sequence[Value]) -> Value:
    number = _number_arg(args[0])
    if isinstance(number, FormulaError):
        return number
    return abs(number)


# --- logic ---------------------------------------------------------------------------------------

def _logicals(args: Sequence[Value]) -> list[bool] | FormulaError:
    values: list[bool] = []
    for arg in args:
        if isinstance(arg, RangeValue):
            for item in arg.values():
                if isinstance(item, FormulaError):
                    return item
                if isinstance(item, (bool, int, float)):
                    values.append(bool(item))
            continue
        value = to_bool(arg)
        if isinstance(value, FormulaError):
            return value
        values.append(value)
    if not values:
        return FormulaError(ErrorCode.wrong_type, "no logical values")
    return values


def _and(args: Sequence[Value]) -> Value:
    values = _logicals(args)
    return values if isinstance(values, FormulaError) else all(values)


def _or(args: Sequence[Value]) -> Value:
    values = _logicals(args)
    return values if isinstance(values, FormulaError) else any(values)


def _not(args: Sequence[Value]) -> Value:
    value = to_bool(_scalar(args[0]))
    return value if isinstance(value, FormulaError) else not value


def _if(thunks: Sequence[Thunk]) -> Value:
    condition = to_bool(_scalar(thunks[0]()))
    if isinstance(condition, FormulaError):
        return condition
    if condition:
        return thunks[1]()
    return thunks[2]() if len(thunks) > 2 else False


def _iferror(thunks: Sequence[Thunk]) -> Value:
    value = _scalar(thunks[0]())
    return thunks[1]() if isinstance(value, FormulaError) else value


# --- lookup --------------------------------------------------------------------------------------

def _lookup_equal(a: Value, b: Value) -> bool:
    if isinstance(a, str) and isinstance(b, str):
        return a.casefold() == b.casefold()
    if isinstance(a, bool) or isinstance(b, bool):
        return a is b
    if isinstance(a, (int, float)) and isinstance(b, (int, float)):
        return float(a) == float(b)
    return False


def _lookup_not_after(candidate: Value, target: Value) -> bool:
    """`candidate <= target` for values of the same kind (approximate match)."""

    if isinstance(candidate, str) and isinstance(target, str):
        return candidate.casefold() <= target.casefold()
    if isinstance(candidate, bool) or isinstance(target, bool):
        return False
    if isinstance(candidate, (int, float)) and isinstance(target, (int, float)):
        return float(candidate) <= float(target)
    return False


def _vlookup(args: Sequence[Value]) -> Value:
    target = _scalar(args[0])
    if isinstance(target, FormulaError):
        return target

    table = args[1]
    if isinstance(table, FormulaError):
        return table
    if not isinstance(table, RangeValue):
        return FormulaError(ErrorCode.wrong_type, "VLOOKUP table must be a range")

    column = _number_arg(args[2])
    if isinstance(column, FormulaError):
        return column
    column_index = int(column)
    if column_index < 1:
        return FormulaError(ErrorCode.wrong_type, "VLOOKUP column index must be at least 1")
    if column_index > table.width:
        return FormulaError(ErrorCode.bad_reference, "VLOOKUP column index outside the table")

    approximate = to_bool(_scalar(args[3])) if len(args) > 3 else True
    if isinstance(approximate, FormulaError):
        return approximate

    found: tuple | None = None
    for row in table.rows:
        key = row[0]
        if approximate:
            if _lookup_not_after(key, target):
                found = row
            elif found is not None:
                break
        elif _lookup_equal(key, target):
            found = row
            break

    if found is None:
        return FormulaError(ErrorCode.not_available, "VLOOKUP value not found")
    return found[column_index - 1]


# --- text ----------------------------------------------------------------------------------------

def _concat(args: Sequence[Value]) -> Value:
    parts: list[str] = []
    for arg in args:
        items = arg.values() if isinstance(arg, RangeValue) else (arg,)
        for item in items:
            text = to_text(item)
            if isinstance(text, FormulaError):
                return text
            parts.append(text)
    return "".join(parts)


def _text_function(transform: Callable[[str], Value]) -> Callable[[Sequence[Value]], Value]:
    def impl(args: Sequence[Value]) -> Value:
        text = _text_arg(args[0])
        return text if isinstance(text, FormulaError) else transform(text)

    return impl


def _trim(text: str) -> str:
    return _WHITESPACE_RUN_RE.sub(" ", text.strip(" "))


_UNBOUNDED = 255

FUNCTIONS: Mapping[str, FunctionSpec] = MappingProxyType({
    spec.name: spec
    for spec in (
        FunctionSpec("SUM", 1, _UNBOUNDED, _sum),
        FunctionSpec("AVERAGE", 1, _UNBOUNDED, _average),
        FunctionSpec("COUNT", 1, _UNBOUNDED, _count),
        FunctionSpec("COUNTA", 1, _UNBOUNDED, _counta),
        FunctionSpec("MIN", 1, _UNBOUNDED, _min),
        FunctionSpec("MAX", 1, _UNBOUNDED, _max),
        FunctionSpec("ROUND", 1, 2, _round),
        FunctionSpec("ABS", 1, 1, _abs),
        FunctionSpec("IF", 2, 3, _if, lazy=True),
        FunctionSpec("IFERROR", 2, 2, _iferror, lazy=True),
        FunctionSpec("AND", 1, _UNBOUNDED, _and),
        FunctionSpec("OR", 1, _UNBOUNDED, _or),
        FunctionSpec("NOT", 1, 1, _not),
        FunctionSpec("VLOOKUP", 3, 4, _vlookup),
        FunctionSpec("CONCAT", 1, _UNBOUNDED, _concat),
        FunctionSpec("CONCATENATE", 1, _UNBOUNDED, _concat),
        FunctionSpec("LEN", 1, 1, _text_function(lambda text: float(len(text)))),
        FunctionSpec("UPPER", 1, 1, _text_function(str.upper)),
        FunctionSpec("LOWER", 1, 1, _text_function(str.lower)),
        FunctionSpec("TRIM", 1, 1, _text_function(_trim)),
    )
})


def get_function(name: str) -> FunctionSpec | None:
    return FUNCTIONS.get(name.upper())
