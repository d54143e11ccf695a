"""Formula values, typed errors and coercions.

Evaluation never raises for bad data: it returns a `FormulaError` value instead, tagged by an
`ErrorCode`. Callers tell results and errors apart with `isinstance` (or `is_error`), never by
inspecting messages.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Union


class ErrorCode(StrEnum):
    """Spreadsheet error codes."""

    div_zero = "#DIV/0!"
    wrong_type = "#VALUE!"
    bad_reference = "#REF!"
    unknown_name = "#NAME?"
    not_available = "#N/A"
    bad_number = "#NUM!"
    null = "#NULL!"
    error = "#ERROR!"


@dataclass(frozen=True)
class FormulaError:
    """An evaluation error. A value, never raised."""

    code: ErrorCode
    message: str = field(default="", compare=False)

    def __str__(self) -> str:
        return str(self.code)


FormulaValue = Union[float, int, str, bool, None]


@dataclass(frozen=True)
class RangeValue:
    """A rectangular block of values produced by a range reference, row-major."""

    rows: tuple[tuple[FormulaValue | FormulaError, ...], ...]

    def values(self) -> Iterator[FormulaValue | FormulaError]:
        for row in self.rows:
            yield from row

    @property
    def height(self) -> int:
        return len(self.rows)

    @property
    def width(self) -> int:
        return len(self.rows[0]) if self.rows else 0


Value = Union[FormulaValue, FormulaError, RangeValue]


def is_error(value: object) -> bool:
    return isinstance(value, FormulaError)


# --- Cell references ---------------------------------------------------------------------------

_CELL_REF_RE = re.compile(r"(\$?)([A-Za-z]{1,3})(\$?)(\d+)")


@dataclass(frozen=True)
class CellRef:
    """An `A1`-style reference. `col` and `row` are 0-based."""

    col: int
    row: int
    col_absolute: bool = False
    row_absolute: bool = False

    @property
    def key(self) -> str:
        """Canonical context key, e.g. `B2` (anchors dropped)."""

        return f"{column_letters(self.col)}{self.row + 1}"


def column_index(letters: str) -> int:
    """`A` -> 0, `Z` -> 25, `AA` -> 26."""

    index = 0
    for char in letters.upper():
        index = index * 26 + (ord(char) - ord("A") + 1)
    return index - 1


def column_letters(index: int) -> str:
    """Inverse of `column_index`."""

    letters = ""
    n = index
    while n >= 0:
        letters = chr(n % 26 + ord("A")) + letters
        n = n // 26 - 1
    return letters


def parse_cell_ref(text: str) -> CellRef | None:
    """Parse `B2` / `$B$2`; return `None` for anything else (including row 0)."""

    match = _CELL_REF_RE.fullmatch(text.strip())
    if not match:
        return None
    row = int(match.group(4))
    if row < 1:
        return None
    return CellRef(
        col=column_index(match.group(2)),
        row=row - 1,
        col_absolute=bool(match.group(1)),
        row_absolute=bool(match.group(3)),
    )


# --- Coercions -----------------------------------------------------------------------------------

def format_number(value: float) -> str:
    """Text form of a number: integral values without a trailing `.0`."""

    if math.isfinite(value) and float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def to_number(value: Value) -> float | FormulaError:
    """Coerce to a float. Blank is 0, booleans are 1/0, numeric text is parsed, other text is #VALUE!."""

    if isinstance(value, FormulaError):
        return value
    if isinstance(value, RangeValue):
        return FormulaError(ErrorCode.wrong_type, "range used where a single value is expected")
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        number = float(value)
        if not math.isfinite(number):
            return FormulaError(ErrorCode.bad_number, "not a finite number")
        return number
    text = value.strip()
    try:
        number = float(text)
    except ValueError:
        return FormulaError(ErrorCode.wrong_type, f"not a number: {value!r}")
    if not math.isfinite(number):
        return FormulaError(ErrorCode.wrong_type, f"not a number: {value!r}")
    return number


def to_text(value: Value) -> str | FormulaError:
    if isinstance(value, FormulaError):
        return value
    if isinstance(value, RangeValue):
        return FormulaError(ErrorCode.wrong_type, "range used where a single value is expected")
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (int, float)):
        return format_number(value)
    return value


def to_bool(value: Value) -> bool | FormulaError:
    if isinstance(value, FormulaError):
        return value
    if isinstance(value, RangeValue):
        return FormulaError(ErrorCode.wrong_type, "range used where a single value is expected")
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    upper = value.strip().upper()
    if upper == "TRUE":
        return True
    if upper == "FALSE":
        return False
    return FormulaError(ErrorCode.wrong_type, f"not a logical value: {value!r}")


def checked(number: float) -> float | FormulaError:
    """Reject results that are not finite numbers."""

    if math.isfinite(number):
        return number
    return FormulaError(ErrorCode.bad_number, "result is not a finite number")
