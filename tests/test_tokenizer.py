"""Tests for the Vietnamese tokenizer."""

from __future__ import annotations

from src.intent.schema import FieldToken, Operation, TokenType
from src.intent.tokenizer import extract_fields, extract_numbers, extract_operations, tokenize


def _types(text: str) -> list[TokenType]:
    return [token.type for token in tokenize(text).tokens]


def test_tokenize_margin_request() -> None:
    result = tokenize("tính margin từ giá bán và giá vốn")

    assert _types(result.original_text) == [
        TokenType.text,
        TokenType.field,
        TokenType.comparison,
        TokenType.field,
        TokenType.logical,
        TokenType.field,
    ]
    assert extract_fields(result.tokens) == ["margin", "retailPrice", "costPrice"]
    assert result.normalized_text == "tinh margin tu gia ban va gia von"


def test_multi_word_field_is_merged_with_original_span() -> None:
    result = tokenize("tính margin từ Giá Bán và giá vốn")
    token = result.tokens[3]

    assert isinstance(token, FieldToken)
    assert token.field_name == "retailPrice"
    assert token.value == "Giá Bán"
    assert token.normalized == "gia ban"
    assert token.position == 15
    assert token.length == 7


def test_operation_and_field_extraction() -> None:
    tokens = tokenize("tính tổng số lượng").tokens

    assert extract_operations(tokens) == [Operation.sum]
    assert extract_fields(tokens) == ["quantity"]


def test_numbers_keep_grouping_and_decimals() -> None:
    tokens = tokenize("lớn hơn 1,000 và 2.5").tokens

    assert extract_numbers(tokens) == [1000.0, 2.5]


def test_number_words_are_numbers() -> None:
    tokens = tokenize("nhân ba").tokens

    assert [token.type for token in tokens] == [TokenType.operation, TokenType.number]
    assert extract_numbers(tokens) == [3.0]


def test_lone_zero_word_is_logical_not() -> None:
    assert _types("không") == [TokenType.logical]


def test_cell_range_and_punctuation() -> None:
    assert _types("tổng A1:A10") == [TokenType.operation, TokenType.range]
    assert _types("giá bán, giá vốn") == [TokenType.field, TokenType.punctuation, TokenType.field]


def test_tokens_do_not_overlap() -> None:
    tokens = tokenize("nếu số lượng lớn hơn 100 thì tính tổng giá bán").tokens

    for previous, current in zip(tokens, tokens[1:]):
        assert current.position >= previous.end


def test_empty_input_has_no_tokens() -> None:
    assert tokenize("").tokens == ()
    assert tokenize("   ").tokens == ()


def test_tokenize_is_deterministic() -> None:
    for text in ("tính margin từ giá bán và giá vốn", "nếu giá bán lớn hơn 100", "", "ba trăm   x"):
        assert tokenize(text) == tokenize(text)
