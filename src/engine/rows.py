"""Row context integration.

Ingested spreadsheet rows mix plain values and formula cells (`"=quantity*price"`). `process_row`
resolves them in two passes:
    1) every non-formula cell is coerced (numeric text -> float) and added to the context,
    2) formula cells are evaluated in key order; each success is added to the context, so a formula
       may use the result of a formula to its left. There is no dependency graph and no cycle
       detection: a formula referring to a later formula fails and yields `None`.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from src.engine.evaluator import evaluate
from src.engine.parser import FormulaSyntaxError, normalize_formula, parse_formula
from src.engine.values import FormulaError, FormulaValue, column_index
from src.intent.normalize import normalize_phrase

logger = logging.getLogger(__name__)

SKU_FORMULA_TEMPLATES: Mapping[str, str] = MappingProxyType({
    "margin": "=(retailPrice-costPrice)/retailPrice*100",
    "totalValue": "=quantity*retailPrice",
    "totalCost": "=quantity*costPrice",
    "profit": "=quantity*(retailPrice-costPrice)",
    "markupPercent": "=(retailPrice-costPrice)/costPrice*100",
})

BUDGET_FORMULA_TEMPLATES: Mapping[str, str] = MappingProxyType({
    "remainingBudget": "=totalBudget-allocatedBudget",
    "utilizationPercent": "=allocatedBudget/totalBudget*100",
    "targetValue": "=targetUnits*averagePrice",
    "gmroiTarget": "=grossMargin/averageInventory",
})

# Column header spellings mapped onto canonical context names (compared after folding).
COLUMN_ALIASES: Mapping[str, tuple[str, ...]] = MappingProxyType({
    "retailPrice": (
        "retail", "retail_price", "retailprice", "retail price", "rrp", "price", "giá bán", "giá bán lẻ",
    ),
    "costPrice": ("cost", "cost_price", "costprice", "cost price", "wholesale", "giá vốn", "giá nhập"),
    "quantity": ("qty", "quantity", "order_qty", "orderqty", "order quantity", "units", "số lượng"),
    "margin": ("margin", "margin %", "margin_pct", "profit margin", "biên lợi nhuận"),
})

_FOLDED_COLUMN_ALIASES = MappingProxyType({
    canonical: frozenset(normalize_phrase(alias) for alias in aliases)
    for canonical, aliases in COLUMN_ALIASES.items()
})

_CURRENCY_RE = re.compile(r"[$€£¥₫,\s]")
_NUMERIC_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")
_CELL_KEY_RE = re.compile(r"([A-Za-z]+)(\d+)")

# Header row offset used when reporting spreadsheet row numbers.
HEADER_ROWS = 1


@dataclass(frozen=True)
class FormulaOutcome:
    """Result of evaluating one formula; `error` holds the error code or the syntax error message."""

    success: bool
    value: FormulaValue
    formula: str
    error: str | None = None


@dataclass(frozen=True)
class BatchOutcome:
    results: tuple[FormulaOutcome, ...]
    success_count: int
    error_count: int


@dataclass(frozen=True)
class DetectedFormula:
    """A formula cell. `row`/`col` are 0-based and parsed from `A1`-style keys (0 otherwise)."""

    cell: str
    formula: str
    row: int
    col: int


@dataclass(frozen=True)
class RowFormula:
    """A formula cell of a data row; `row` is the 1-based spreadsheet row below the header."""

    row: int
    column: str
    formula: str


def is_formula(value: Any) -> bool:
    return isinstance(value, str) and value.strip().startswith("=")


def _parse_number(text: str) -> float | None:
    if not _NUMERIC_RE.fullmatch(text):
        return None
    number = float(text)
    return number if math.isfinite(number) else None


def clean_numeric(value: Any) -> float | None:
    """Read a cell as a number, ignoring currency symbols and thousands separators (`"$1,200"`)."""

    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str):
        return _parse_number(_CURRENCY_RE.sub("", value))
    return None


def _coerce_cell(value: Any) -> Any:
    if isinstance(value, str):
        number = _parse_number(value.strip())
        return value if number is None else number
    return value


def create_context(row: Mapping[str, Any]) -> dict[str, FormulaValue]:
    """Build an evaluation context from a raw data row.

    Well-known columns are exposed under canonical names (`retailPrice`, `costPrice`, `quantity`,
    `margin`) when their value is numeric; the first matching column wins. Every column is also exposed
    under its own key, as a cleaned number when possible, else as its original value. Formula cells
    are left out.
    """

    context: dict[str, FormulaValue] = {}

    for canonical, aliases in _FOLDED_COLUMN_ALIASES.items():
        for key, value in row.items():
            if normalize_phrase(str(key)) not in aliases:
                continue
            number = clean_numeric(value)
            if number is not None:
                context[canonical] = number
                break

    for key, value in row.items():
        number = clean_numeric(value)
        if number is not None:
            context[key] = number
        elif value is None or isinstance(value, bool) or (isinstance(value, str) and not is_formula(value)):
            context[key] = value

    return context


def evaluate_formula(formula: str, context: Mapping[str, Any] | None = None) -> FormulaOutcome:
    """Parse and evaluate a formula; never raises."""

    normalized = normalize_formula(formula)
    try:
        node = parse_formula(normalized)
    except FormulaSyntaxError as exc:
        logger.debug("formula rejected formula=%s reason=%s", normalized, exc)
        return FormulaOutcome(success=False, value=None, formula=normalized, error=str(exc))

    value = evaluate(node, context or {})
    if isinstance(value, FormulaError):
        return FormulaOutcome(success=False, value=None, formula=normalized, error=str(value.code))
    return FormulaOutcome(success=True, value=value, formula=normalized)


def evaluate_batch(formulas: Iterable[str], context: Mapping[str, Any] | None = None) -> BatchOutcome:
    """Evaluate independent formulas against one shared, read-only context."""

    results = tuple(evaluate_formula(formula, context) for formula in formulas)
    success_count = sum(1 for result in results if result.success)
    return BatchOutcome(
        results=results,
        success_count=success_count,
        error_count=len(results) - success_count,
    )


def process_row(
        row: Mapping[str, Any],
        extra_context: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Replace the formula cells of a row by their values (`None` on failure), keeping key order."""

    context: dict[str, Any] = dict(extra_context or {})
    output: dict[str, Any] = {}

    for key, value in row.items():
        if not is_formula(value):
            coerced = _coerce_cell(value)
            output[key] = coerced
            context[key] = coerced

    for key, value in row.items():
        if not is_formula(value):
            continue
        outcome = evaluate_formula(value, context)
        output[key] = outcome.value if outcome.success else None
        if outcome.success and outcome.value is not None:
            context[key] = outcome.value

    return {key: output[key] for key in row}


def detect_formulas(data: Mapping[str, Any]) -> list[DetectedFormula]:
    """List formula cells of a `{"A1": ..., "B2": ...}` mapping."""

    formulas: list[DetectedFormula] = []
    for key, value in data.items():
        if not is_formula(value):
            continue
        match = _CELL_KEY_RE.fullmatch(str(key))
        formulas.append(
            DetectedFormula(
                cell=key,
                formula=value,
                row=int(match.group(2)) - 1 if match else 0,
                col=column_index(match.group(1)) if match else 0,
            )
        )
    return formulas


def detect_formulas_in_rows(rows: Iterable[Mapping[str, Any]]) -> list[RowFormula]:
    """List formula cells of parsed data rows, numbered as spreadsheet rows (the header is row 1)."""

    return [
        RowFormula(row=index + 1 + HEADER_ROWS, column=column, formula=value)
        for index, row in enumerate(rows)
        for column, value in row.items()
        if is_formula(value)
    ]


def calculate_margin(retail_price: float, cost_price: float) -> float:
    """Margin % of a price pair; 0 when the retail price is not positive."""

    if retail_price <= 0:
        return 0.0
    outcome = evaluate_formula(
        SKU_FORMULA_TEMPLATES["margin"],
        {"retailPrice": retail_price, "costPrice": cost_price},
    )
    return outcome.value if outcome.success and isinstance(outcome.value, float) else 0.0


def calculate_remaining_budget(total_budget: float, allocated_budget: float) -> float:
    outcome = evaluate_formula(
        BUDGET_FORMULA_TEMPLATES["remainingBudget"],
        {"totalBudget": total_budget, "allocatedBudget": allocated_budget},
    )
    return outcome.value if outcome.success and isinstance(outcome.value, float) else 0.0
