"""Tests for `${name}` formula templates."""

from __future__ import annotations

from src.formula.template import FormulaTemplate, Slot, find_unresolved


def test_parse_splits_literals_and_slots() -> None:
    template = FormulaTemplate.parse("=(${retailPrice}-${costPrice})/${retailPrice}*100")

    assert template.segments == (
        "=(",
        Slot("retailPrice"),
        "-",
        Slot("costPrice"),
        ")/",
        Slot("retailPrice"),
        "*100",
    )
    assert template.slot_names == ("retailPrice", "costPrice")


def test_render_substitutes_known_slots_only() -> None:
    template = FormulaTemplate.parse("=IF(${condition}, ${trueValue}, ${falseValue})")

    assert template.render({"condition": "A1>1"}) == "=IF(A1>1, ${trueValue}, ${falseValue})"


def test_render_does_not_rescan_substituted_values() -> None:
    template = FormulaTemplate.parse("=${a}+${b}")

    assert template.render({"a": "${b}", "b": "2"}) == "=${b}+2"


def test_find_unresolved() -> None:
    assert find_unresolved("=${field1}>${field2}") == ["${field1}", "${field2}"]
    assert find_unresolved("=SUM(A1:A3)") == []
