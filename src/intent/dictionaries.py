"""Vietnamese dictionaries for operations, fields, comparators and numbers.

These mappings drive the tokenizer and should remain small and deterministic. Lookups are done on the
folded form (see `normalize_vietnamese`), and when an alias is listed under several canonical names
the first entry wins (e.g. "cộng" is SUM, not ADD; "lợi nhuận" is margin, not profit).
"""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from src.intent.normalize import normalize_phrase, normalize_vietnamese
from src.intent.schema import Comparator, LogicalOperator, Operation

OPERATION_KEYWORDS: Mapping[Operation, tuple[str, ...]] = MappingProxyType({
    Operation.sum: ("tổng", "cộng", "tổng cộng", "tính tổng", "cộng tất cả", "tổng số"),
    Operation.average: ("trung bình", "tb", "bình quân", "trung bình cộng"),
    Operation.count_numbers: ("đếm", "số lượng", "count", "đếm số"),
    Operation.max: ("lớn nhất", "max", "cao nhất", "tối đa", "maximum"),
    Operation.min: ("nhỏ nhất", "min", "thấp nhất", "tối thiểu", "minimum"),
    Operation.condition: ("nếu", "điều kiện", "kiểm tra", "nếu như"),
    Operation.lookup: ("tìm", "tra cứu", "lookup", "tìm kiếm"),
    Operation.multiply: ("nhân", "x", "*", "lần"),
    Operation.divide: ("chia", "/", "phần"),
    Operation.subtract: ("trừ", "-", "hiệu"),
    Operation.add: ("cộng", "+", "thêm"),
    Operation.percentage: ("phần trăm", "%", "tỷ lệ", "percent"),
})

FIELD_ALIASES: Mapping[str, tuple[str, ...]] = MappingProxyType({
    "retailPrice": (
        "giá bán", "giá retail", "retail price", "gia ban", "giá bán lẻ", "retail", "rrp",
        "giá niêm yết",
    ),
    "costPrice": (
        "giá gốc", "giá vốn", "cost price", "gia goc", "giá nhập", "cost", "wholesale", "giá sỉ",
    ),
    "quantity": ("số lượng", "qty", "quantity", "so luong", "sl", "đơn hàng", "order quantity"),
    "margin": (
        "margin", "biên lợi nhuận", "lợi nhuận", "bien loi nhuan", "tỷ suất lợi nhuận",
        "profit margin",
    ),
    "totalValue": ("tổng giá trị", "total value", "tong gia tri", "giá trị đơn hàng", "value"),
    "profit": ("lợi nhuận", "profit", "loi nhuan", "tiền lời", "thu nhập"),
    "budget": ("ngân sách", "budget", "ngan sach", "kinh phí"),
    "allocation": ("phân bổ", "allocation", "phan bo", "chia"),
})

COMPARISON_SYNONYMS: Mapping[Comparator, tuple[str, ...]] = MappingProxyType({
    ">": ("lớn hơn", "cao hơn", "nhiều hơn", "trên", ">", "greater than"),
    "<": ("nhỏ hơn", "thấp hơn", "ít hơn", "dưới", "<", "less than"),
    ">=": ("lớn hơn hoặc bằng", "từ", ">=", "ít nhất"),
    "<=": ("nhỏ hơn hoặc bằng", "đến", "<=", "nhiều nhất"),
    "=": ("bằng", "=", "là", "equal"),
    "<>": ("khác", "không bằng", "<>", "khác với"),
})

LOGICAL_SYNONYMS: Mapping[LogicalOperator, tuple[str, ...]] = MappingProxyType({
    "AND": ("và", "and", "đồng thời", "cùng với"),
    "OR": ("hoặc", "or", "hay"),
    "NOT": ("không", "not", "phủ định"),
})

NUMBER_WORDS: Mapping[str, int] = MappingProxyType({
    "không": 0,
    "một": 1,
    "hai": 2,
    "ba": 3,
    "bốn": 4,
    "năm": 5,
    "sáu": 6,
    "bảy": 7,
    "tám": 8,
    "chín": 9,
    "mười": 10,
    "trăm": 100,
    "nghìn": 1000,
    "ngàn": 1000,
    "triệu": 1_000_000,
    "tỷ": 1_000_000_000,
})

# Connectives inside spoken numbers ("một trăm lẻ năm").
_NUMBER_FILLERS = frozenset({"lẻ", "linh"})

_NUMERIC_LITERAL_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")
_DOT_GROUPED_RE = re.compile(r"\d{1,3}(?:\.\d{3}){2,}")
_COMPARISON_VALUE_RE = re.compile(r"^[\d.,]+")


def _first_wins(entries: Mapping[Any, tuple[str, ...]]) -> Mapping[str, Any]:
    table: dict[str, Any] = {}
    for canonical, aliases in entries.items():
        for alias in aliases:
            table.setdefault(normalize_phrase(alias), canonical)
    return MappingProxyType(table)


# Folded alias -> canonical name, built once at import time.
OPERATION_LOOKUP: Mapping[str, Operation] = _first_wins(OPERATION_KEYWORDS)
FIELD_LOOKUP: Mapping[str, str] = _first_wins(FIELD_ALIASES)
COMPARISON_LOOKUP: Mapping[str, Comparator] = _first_wins(COMPARISON_SYNONYMS)
LOGICAL_LOOKUP: Mapping[str, LogicalOperator] = _first_wins(LOGICAL_SYNONYMS)


@dataclass(frozen=True)
class ComparisonMatch:
    """A comparison phrase found in text, with the numeric literal that follows it."""

    op: Comparator
    value: str


# Longest phrases first so "lớn hơn hoặc bằng" wins over "lớn hơn".
_COMPARISON_PHRASES: tuple[tuple[str, Comparator], ...] = tuple(
    sorted(
        ((phrase, op) for op, phrases in COMPARISON_SYNONYMS.items() for phrase in phrases),
        key=lambda item: (-len(item[0]), item[0]),
    )
)


def find_field_name(text: str) -> str | None:
    """Return the canonical field name whose alias equals the whole text, if any."""

    return FIELD_LOOKUP.get(normalize_phrase(text))


def find_operation(text: str) -> Operation | None:
    """Return the first operation whose keyword occurs anywhere in the text."""

    folded = normalize_vietnamese(text)
    for operation, keywords in OPERATION_KEYWORDS.items():
        if any(normalize_vietnamese(keyword) in folded for keyword in keywords):
            return operation
    return None


def parse_vietnamese_number(text: str) -> float | None:
    """Parse a numeric literal or a Vietnamese number phrase.

    Numeric literals accept `,` thousands separators ("1,000") and dot grouping ("1.000.000").
    Number words are accumulated left to right ("ba trăm" -> 300); unknown words are skipped.

    Returns:
        The value, or `None` when nothing positive could be read (so "không" alone is not a number).
    """

    value = unicodedata.normalize("NFC", text or "").strip().lower()
    if not value:
        return None

    literal = value.replace(",", "")
    if _DOT_GROUPED_RE.fullmatch(literal):
        literal = literal.replace(".", "")
    if _NUMERIC_LITERAL_RE.fullmatch(literal):
        return float(literal)

    current = 0
    for word in value.split():
        if word in _NUMBER_FILLERS:
            continue
        number = NUMBER_WORDS.get(word)
        if number is None:
            continue
        if number >= 100:
            current = (current or 1) * number
        elif number >= 10:
            current = current * 10 + number
        else:
            current += number

    return float(current) if current > 0 else None


def extract_comparison(text: str) -> ComparisonMatch | None:
    """Find a comparison phrase immediately followed by a number ("lớn hơn 100" -> (">", "100"))."""

    lowered = unicodedata.normalize("NFC", text or "").lower()
    for phrase, op in _COMPARISON_PHRASES:
        start = lowered.find(phrase)
        while start != -1:
            rest = lowered[start + len(phrase):].strip()
            match = _COMPARISON_VALUE_RE.match(rest)
            if match:
                return ComparisonMatch(op=op, value=match.group(0))
            start = lowered.find(phrase, start + 1)
    return None
