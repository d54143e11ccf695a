"""Tests for the formula lexer and recursive-descent parser."""

from __future__ import annotations

import pytest

from src.engine.lexer import TokenKind, tokenize_formula
from src.engine.nodes import (
    BinaryOpNode,
    BooleanNode,
    CellRefNode,
    ErrorNode,
    FunctionCallNode,
    NameNode,
    NumberNode,
    RangeNode,
    StringNode,
    UnaryOpNode,
)
from src.engine.parser import FormulaSyntaxError, normalize_formula, parse_formula
from src.engine.values import CellRef, ErrorCode


def test_tokenize_formula_range() -> None:
    kinds = [token.kind for token in tokenize_formula("A1:B2")]

    assert kinds == [TokenKind.cell, TokenKind.colon, TokenKind.cell, TokenKind.end]


def test_tokenize_formula_rejects_unknown_characters() -> None:
    with pytest.raises(FormulaSyntaxError):
        tokenize_formula("1 @ 2")
    with pytest.raises(FormulaSyntaxError):
        tokenize_formula('"abc')


def test_normalize_formula() -> None:
    assert normalize_formula("  1+1 ") == "=1+1"
    assert normalize_formula("=A1") == "=A1"


def test_operator_precedence() -> None:
    assert parse_formula("=1+2*3") == BinaryOpNode(
        "+",
        NumberNode(1.0),
        BinaryOpNode("*", NumberNode(2.0), NumberNode(3.0)),
    )


def test_leading_equals_is_optional() -> None:
    assert parse_formula("1+2*3") == parse_formula("=1+2*3")


def test_binary_operators_are_left_associative() -> None:
    assert parse_formula("=8-2-1") == BinaryOpNode(
        "-",
        BinaryOpNode("-", NumberNode(8.0), NumberNode(2.0)),
        NumberNode(1.0),
    )


def test_unary_minus_binds_tighter_than_power() -> None:
    assert parse_formula("=-2^2") == BinaryOpNode(
        "^",
        UnaryOpNode("-", NumberNode(2.0)),
        NumberNode(2.0),
    )


def test_percent_is_postfix() -> None:
    assert parse_formula("=50%") == UnaryOpNode("%", NumberNode(50.0))


def test_comparison_has_lowest_precedence() -> None:
    node = parse_formula("=a+1>=b&c")

    assert isinstance(node, BinaryOpNode)
    assert node.operator == ">="
    assert node.right == BinaryOpNode("&", NameNode("b"), NameNode("c"))


def test_function_call_with_range() -> None:
    assert parse_formula("=sum(A1:B2, 3)") == FunctionCallNode(
        "SUM",
        (
            RangeNode(CellRefNode(CellRef(col=0, row=0)), CellRefNode(CellRef(col=1, row=1))),
            NumberNode(3.0),
        ),
    )


def test_function_call_without_arguments() -> None:
    assert parse_formula("=ROUND()") == FunctionCallNode("ROUND", ())


def test_absolute_cell_reference() -> None:
    assert parse_formula("=$B$2") == CellRefNode(
        CellRef(col=1, row=1, col_absolute=True, row_absolute=True)
    )


def test_literals() -> None:
    assert parse_formula('="say ""hi"""') == StringNode('say "hi"')
    assert parse_formula("=true") == BooleanNode(True)
    assert parse_formula("=#N/A") == ErrorNode(ErrorCode.not_available)
    assert parse_formula("=1.5e3") == NumberNode(1500.0)


def test_names_and_name_ranges() -> None:
    assert parse_formula("=retailPrice") == NameNode("retailPrice")
    assert parse_formula("=quantity:quantity") == RangeNode(NameNode("quantity"), NameNode("quantity"))


@pytest.mark.parametrize(
    "formula",
    ["", "=", "=1+", "=(1", "=1)", '="abc', "=1 2", "=SUM(1,", "=A1:"],
)
def test_malformed_formulas_raise(formula: str) -> None:
    with pytest.raises(FormulaSyntaxError):
        parse_formula(formula)


def test_syntax_error_is_a_value_error() -> None:
    assert issubclass(FormulaSyntaxError, ValueError)
