"""Tests for the Vietnamese operation/field/comparator dictionaries and number parsing."""

from __future__ import annotations

import unicodedata

import pytest

from src.intent.dictionaries import (
    FIELD_ALIASES,
    FIELD_LOOKUP,
    ComparisonMatch,
    extract_comparison,
    find_field_name,
    find_operation,
    parse_vietnamese_number,
)
from src.intent.schema import Operation


def test_find_field_name_matches_with_and_without_diacritics() -> None:
    assert find_field_name("Giá Bán") == "retailPrice"
    assert find_field_name("gia von") == "costPrice"
    assert find_field_name("SL") == "quantity"
    assert find_field_name("xyz") is None


def test_find_field_name_first_entry_wins() -> None:
    # "lợi nhuận" is listed for both margin and profit.
    assert find_field_name("lợi nhuận") == "margin"
    assert find_field_name("profit") == "profit"


def test_find_operation_substring_match() -> None:
    assert find_operation("tính tổng doanh thu") == Operation.sum
    assert find_operation("trung bình giá") == Operation.average
    assert find_operation("hello") is None


def test_find_operation_prefers_earlier_operation() -> None:
    # "cộng" is a keyword of both SUM and ADD.
    assert find_operation("cộng") == Operation.sum


def test_parse_vietnamese_number_literals() -> None:
    assert parse_vietnamese_number("100") == 100.0
    assert parse_vietnamese_number("1,000") == 1000.0
    assert parse_vietnamese_number("1.000.000") == 1_000_000.0
    assert parse_vietnamese_number("2.5") == 2.5
    assert parse_vietnamese_number("0") == 0.0


def test_parse_vietnamese_number_words() -> None:
    assert parse_vietnamese_number("ba") == 3.0
    assert parse_vietnamese_number("ba trăm") == 300.0
    assert parse_vietnamese_number("mười hai") == 12.0
    assert parse_vietnamese_number("một trăm lẻ năm") == 105.0
    assert parse_vietnamese_number("hai nghìn") == 2000.0


def test_parse_vietnamese_number_rejects_non_numbers() -> None:
    assert parse_vietnamese_number("") is None
    assert parse_vietnamese_number("abc") is None
    assert parse_vietnamese_number("không") is None


def test_extract_comparison_reads_operator_and_value() -> None:
    assert extract_comparison("giá bán lớn hơn 100") == ComparisonMatch(op=">", value="100")
    assert extract_comparison("ít nhất 5") == ComparisonMatch(op=">=", value="5")


def test_extract_comparison_prefers_longest_phrase() -> None:
    assert extract_comparison("lớn hơn hoặc bằng 10") == ComparisonMatch(op=">=", value="10")
    assert extract_comparison("nhỏ hơn hoặc bằng 1,5") == ComparisonMatch(op="<=", value="1,5")


def test_extract_comparison_requires_a_number() -> None:
    assert extract_comparison("xin chào") is None
    assert extract_comparison("lớn hơn giá vốn") is None


def test_catalogs_are_read_only() -> None:
    with pytest.raises(TypeError):
        FIELD_ALIASES["budget"] = ("x",)  # type: ignore[index]
    with pytest.raises(TypeError):
        FIELD_LOOKUP["x"] = "y"  # type: ignore[index]


def test_decomposed_text_is_understood() -> None:
    assert parse_vietnamese_number(unicodedata.normalize("NFD", "ba trăm")) == 300.0
    assert extract_comparison(unicodedata.normalize("NFD", "lớn hơn 100")) == ComparisonMatch(op=">", value="100")
