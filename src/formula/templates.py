"""Per-intent formula templates used by the builder."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from src.formula.template import FormulaTemplate
from src.intent.schema import IntentType

# Slots filled by dedicated passes of the builder rather than by field lookup.
SYNTHETIC_SLOTS = frozenset({"range", "condition", "trueValue", "falseValue", "expression"})


@dataclass(frozen=True)
class IntentTemplate:
    template: FormulaTemplate
    required_fields: tuple[str, ...]
    description: str


def _entry(template: str, required_fields: tuple[str, ...], description: str) -> IntentTemplate:
    return IntentTemplate(
        template=FormulaTemplate.parse(template),
        required_fields=required_fields,
        description=description,
    )


FORMULA_TEMPLATES: Mapping[IntentType, IntentTemplate] = MappingProxyType({
    IntentType.calculate_margin: _entry(
        "=(${retailPrice}-${costPrice})/${retailPrice}*100",
        ("retailPrice", "costPrice"),
        "Tính margin % = (Giá bán - Giá vốn) / Giá bán × 100",
    ),
    IntentType.calculate_total: _entry(
        "=${quantity}*${retailPrice}",
        ("quantity", "retailPrice"),
        "Tính tổng giá trị = Số lượng × Giá bán",
    ),
    IntentType.calculate_profit: _entry(
        "=${quantity}*(${retailPrice}-${costPrice})",
        ("quantity", "retailPrice", "costPrice"),
        "Tính lợi nhuận = Số lượng × (Giá bán - Giá vốn)",
    ),
    IntentType.calculate_markup: _entry(
        "=(${retailPrice}-${costPrice})/${costPrice}*100",
        ("retailPrice", "costPrice"),
        "Tính markup % = (Giá bán - Giá vốn) / Giá vốn × 100",
    ),
    IntentType.sum_range: _entry("=SUM(${range})", ("range",), "Tính tổng dãy ô"),
    IntentType.average_range: _entry("=AVERAGE(${range})", ("range",), "Tính trung bình dãy ô"),
    IntentType.count_range: _entry("=COUNT(${range})", ("range",), "Đếm số ô có giá trị"),
    IntentType.conditional: _entry(
        "=IF(${condition}, ${trueValue}, ${falseValue})",
        ("condition", "trueValue", "falseValue"),
        "Công thức điều kiện",
    ),
    IntentType.compare: _entry(
        "=${field1}${operator}${field2}",
        ("field1", "operator", "field2"),
        "So sánh hai giá trị",
    ),
    IntentType.lookup: _entry(
        "=VLOOKUP(${lookupValue}, ${tableRange}, ${columnIndex}, FALSE)",
        ("lookupValue", "tableRange", "columnIndex"),
        "Tra cứu giá trị",
    ),
    IntentType.custom_formula: _entry("=${expression}", ("expression",), "Công thức tùy chỉnh"),
    IntentType.unknown: _entry("", (), "Không xác định được loại công thức"),
})
