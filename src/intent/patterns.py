"""Static catalog of intent patterns.

Each pattern is scored by the detector: every regex that matches the raw or folded input adds to the
confidence. Order matters: when two patterns tie, the one listed first wins.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from src.formula.template import FormulaTemplate
from src.intent.schema import IntentType, TokenType


@dataclass(frozen=True)
class TokenRequirement:
    """At least `count` tokens of `type` must be present."""

    type: TokenType
    count: int = 1


@dataclass(frozen=True)
class IntentPattern:
    type: IntentType
    patterns: tuple[re.Pattern[str], ...]
    template: FormulaTemplate
    description: str
    required_tokens: tuple[TokenRequirement, ...] = ()


def _pattern(
        type_: IntentType,
        regexes: tuple[str, ...],
        template: str,
        description: str,
        required_tokens: tuple[TokenRequirement, ...] = (),
) -> IntentPattern:
    return IntentPattern(
        type=type_,
        patterns=tuple(re.compile(regex, re.IGNORECASE) for regex in regexes),
        template=FormulaTemplate.parse(template),
        description=description,
        required_tokens=required_tokens,
    )


INTENT_PATTERNS: tuple[IntentPattern, ...] = (
    _pattern(
        IntentType.calculate_margin,
        (
            r"(?:tính|tìm|xác định)?\s*(?:margin|biên lợi nhuận|tỷ suất lợi nhuận|biên)",
            r"margin\s*(?:của|cho|với)?",
            r"(?:giá bán|retail).*(?:giá vốn|cost).*(?:margin|lợi nhuận)",
        ),
        "=(retailPrice-costPrice)/retailPrice*100",
        "Tính margin % = (Giá bán - Giá vốn) / Giá bán × 100",
        required_tokens=(TokenRequirement(TokenType.field, count=2),),
    ),
    _pattern(
        IntentType.calculate_total,
        (
            r"(?:tính|tìm)?\s*(?:tổng giá trị|total value|tổng tiền|giá trị)",
            r"(?:số lượng|quantity).*(?:nhân|×|x|\*).*(?:giá|price)",
            r"(?:giá|price).*(?:nhân|×|x|\*).*(?:số lượng|quantity)",
        ),
        "=quantity*retailPrice",
        "Tính tổng giá trị = Số lượng × Giá bán",
    ),
    _pattern(
        IntentType.calculate_profit,
        (
            r"(?:tính|tìm)?\s*(?:lợi nhuận|profit|tiền lời|lãi)",
            r"(?:doanh thu|revenue).*(?:trừ|-).*(?:chi phí|cost)",
        ),
        "=quantity*(retailPrice-costPrice)",
        "Tính lợi nhuận = Số lượng × (Giá bán - Giá vốn)",
    ),
    _pattern(
        IntentType.calculate_markup,
        (
            r"(?:tính|tìm)?\s*(?:markup|hệ số giá|tỷ lệ đánh giá|tỷ lệ markup)",
            r"(?:giá bán|retail).*(?:so với|trên).*(?:giá vốn|cost)",
        ),
        "=(retailPrice-costPrice)/costPrice*100",
        "Tính markup % = (Giá bán - Giá vốn) / Giá vốn × 100",
    ),
    _pattern(
        IntentType.sum_range,
        (
            r"(?:tính|tìm)?\s*(?:tổng|cộng|sum)\s+(?:của\s+)?(?:cột\s+)?",
            r"(?:cộng|tổng)\s+(?:tất cả|hết)",
        ),
        "=SUM(${range})",
        "Tính tổng một dãy ô",
    ),
    _pattern(
        IntentType.average_range,
        (
            r"(?:tính|tìm)?\s*(?:trung bình|tb|average|bình quân)\s+(?:của\s+)?",
            r"(?:giá trị\s+)?trung bình",
        ),
        "=AVERAGE(${range})",
        "Tính trung bình một dãy ô",
    ),
    _pattern(
        IntentType.count_range,
        (
            r"(?:đếm|count)\s+(?:số\s+)?(?:lượng\s+)?",
            r"(?:có\s+)?bao nhiêu",
        ),
        "=COUNT(${range})",
        "Đếm số ô có giá trị",
    ),
    _pattern(
        IntentType.conditional,
        (
            r"(?:nếu|if)\s+",
            r"(?:khi|when)\s+.*(?:thì|then)",
            r"(?:điều kiện|condition)",
        ),
        "=IF(${condition}, ${trueValue}, ${falseValue})",
        "Công thức điều kiện IF",
    ),
    _pattern(
        IntentType.compare,
        (
            r"(?:so sánh|compare)",
            r"(?:lớn hơn|nhỏ hơn|bằng|khác)",
        ),
        "=${field1}${operator}${field2}",
        "So sánh hai giá trị",
    ),
    _pattern(
        IntentType.lookup,
        (
            r"(?:tìm|tra cứu|lookup|tìm kiếm)\s+",
            r"(?:vlookup|hlookup)",
        ),
        "=VLOOKUP(${value}, ${range}, ${column}, FALSE)",
        "Tra cứu giá trị trong bảng",
    ),
)
