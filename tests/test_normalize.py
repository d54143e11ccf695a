"""Tests for Vietnamese folding and word splitting."""

from __future__ import annotations

from src.intent.normalize import normalize_phrase, normalize_vietnamese, split_words


def test_normalize_vietnamese_drops_diacritics_and_case() -> None:
    assert normalize_vietnamese("Giá Bán") == "gia ban"
    assert normalize_vietnamese("Đơn hàng") == "don hang"
    assert normalize_vietnamese("  Lợi Nhuận  ") == "loi nhuan"


def test_normalize_vietnamese_handles_empty_input() -> None:
    assert normalize_vietnamese("") == ""
    assert normalize_vietnamese("   ") == ""


def test_normalize_phrase_collapses_inner_whitespace() -> None:
    assert normalize_phrase("giá    bán\tlẻ") == "gia ban le"


def test_split_words_keeps_ranges_and_grouped_numbers_whole() -> None:
    words = split_words("tổng A1:B10, 1,000 (x)")

    assert [word.text for word in words] == ["tổng", "A1:B10", ",", "1,000", "(", "x", ")"]
    assert [word.start for word in words] == [0, 5, 11, 13, 19, 20, 21]


def test_split_words_end_offset() -> None:
    words = split_words("giá bán")

    assert words[1].text == "bán"
    assert words[1].end == 7
