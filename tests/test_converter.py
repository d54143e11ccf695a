"""Tests for the natural-language to formula converter."""

from __future__ import annotations

from src.formula.converter import FormulaConverter
from src.formula.schema import ConvertOptions
from src.intent.schema import IntentType

_MARGIN_REQUEST = "tính margin từ giá bán và giá vốn"


def test_convert_margin_request() -> None:
    result = FormulaConverter().convert(_MARGIN_REQUEST)

    assert result.success
    assert result.formula == "=(retailPrice-costPrice)/retailPrice*100"
    assert result.intent.type == IntentType.calculate_margin
    assert result.formula_result.is_valid
    assert result.alternative_intents is None
    assert result.execution_time_ms >= 0


def test_convert_with_context() -> None:
    result = FormulaConverter().convert(
        _MARGIN_REQUEST,
        ConvertOptions(context={"retailPrice": 150, "costPrice": 60}),
    )

    assert result.formula == "=(150-60)/150*100"


def test_convert_unrecognized_input_fails() -> None:
    result = FormulaConverter().convert("asdkjfh 293u4")

    assert not result.success
    assert result.formula == ""
    assert result.intent.type == IntentType.unknown


def test_convert_with_unresolved_placeholders_fails() -> None:
    result = FormulaConverter().convert("nếu giá bán lớn hơn 100")

    assert result.intent.type == IntentType.conditional
    assert not result.success


def test_alternatives_exclude_the_best_intent() -> None:
    result = FormulaConverter().convert(
        "nếu giá bán lớn hơn 100",
        ConvertOptions(return_alternatives=True),
    )

    assert result.alternative_intents is not None
    assert [intent.type for intent in result.alternative_intents] == [IntentType.compare]


def test_alternatives_respect_the_limit() -> None:
    converter = FormulaConverter(max_alternatives=1)
    result = converter.convert("nếu giá bán lớn hơn 100", ConvertOptions(return_alternatives=True))
    assert result.alternative_intents is not None
    assert len(result.alternative_intents) <= 1

    result = FormulaConverter().convert(
        "nếu giá bán lớn hơn 100",
        ConvertOptions(return_alternatives=True, max_alternatives=1),
    )
    assert result.alternative_intents is not None
    assert len(result.alternative_intents) == 1


def test_quick_convert() -> None:
    converter = FormulaConverter()

    assert converter.quick_convert(_MARGIN_REQUEST, {"retailPrice": 150, "costPrice": 60}) == "=(150-60)/150*100"
    assert converter.quick_convert("asdkjfh 293u4") is None


def test_batch_convert_keeps_input_order() -> None:
    results = FormulaConverter().batch_convert([_MARGIN_REQUEST, "tính tổng số lượng"])

    assert [result.intent.type for result in results] == [
        IntentType.calculate_margin,
        IntentType.sum_range,
    ]


def test_can_convert() -> None:
    converter = FormulaConverter()

    unknown = converter.can_convert("asdkjfh 293u4")
    assert not unknown.can_convert
    assert unknown.confidence == 0.0
    assert unknown.reason == "Không nhận dạng được ý định từ đầu vào"

    known = converter.can_convert(_MARGIN_REQUEST)
    assert known.can_convert
    assert known.confidence == 1.0
    assert known.reason is None


def test_suggest() -> None:
    converter = FormulaConverter()

    suggestions = converter.suggest("tính tổng số lượng")
    assert [suggestion.formula for suggestion in suggestions] == ["=SUM(quantity:quantity)"]

    assert len(converter.suggest("nếu giá bán lớn hơn 100")) == 2
    assert len(converter.suggest("nếu giá bán lớn hơn 100", limit=1)) == 1
    assert converter.suggest("asdkjfh 293u4") == []


def test_get_templates() -> None:
    templates = FormulaConverter().get_templates()

    assert {template.type for template in templates} >= {
        IntentType.calculate_margin,
        IntentType.sum_range,
        IntentType.lookup,
    }


def test_suggest_with_zero_limit() -> None:
    assert FormulaConverter().suggest("tính tổng số lượng", limit=0) == []
