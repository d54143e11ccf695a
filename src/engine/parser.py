"""Recursive-descent formula parser.

Precedence, loosest first:
    comparison (= <> < > <= >=)  <  concatenation (&)  <  + -  <  * /  <  ^  <  unary + -  <  postfix %

All binary operators are left-associative. `parse_formula` is the only function of the engine that
raises; evaluation reports problems as `FormulaError` values.
"""

from __future__ import annotations

from src.engine.lexer import FormulaSyntaxError, FormulaToken, TokenKind, tokenize_formula
from src.engine.nodes import (
    BinaryOpNode,
    BooleanNode,
    CellRefNode,
    ErrorNode,
    FunctionCallNode,
    NameNode,
    Node,
    NumberNode,
    RangeNode,
    StringNode,
    UnaryOpNode,
)
from src.engine.values import ErrorCode, parse_cell_ref

__all__ = ["FormulaSyntaxError", "normalize_formula", "parse_formula"]

_COMPARISON_OPERATORS = frozenset({"=", "<>", "<", ">", "<=", ">="})
_ADDITIVE_OPERATORS = frozenset({"+", "-"})
_MULTIPLICATIVE_OPERATORS = frozenset({"*", "/"})


def normalize_formula(text: str) -> str:
    """Trim the formula and make sure it starts with `=`."""

    value = (text or "").strip()
    return value if value.startswith("=") else f"={value}"


class _Parser:
    def __init__(self, tokens: list[FormulaToken]) -> None:
        self.tokens = tokens
        self.pos = 0

    # --- token helpers ---

    def peek(self, offset: int = 0) -> FormulaToken:
        return self.tokens[min(self.pos + offset, len(self.tokens) - 1)]

    def advance(self) -> FormulaToken:
        token = self.peek()
        self.pos += 1
        return token

    def at_operator(self, operators: frozenset[str] | str) -> bool:
        token = self.peek()
        if token.kind != TokenKind.operator:
            return False
        return token.text in operators if isinstance(operators, frozenset) else token.text == operators

    def expect(self, kind: TokenKind) -> FormulaToken:
        token = self.peek()
        if token.kind != kind:
            raise FormulaSyntaxError(f"expected {kind}, got {token.text or 'end of formula'!r}", token.position)
        return self.advance()

    # --- grammar ---

    def parse(self) -> Node:
        node = self.comparison()
        token = self.peek()
        if token.kind != TokenKind.end:
            raise FormulaSyntaxError(f"unexpected {token.text!r}", token.position)
        return node

    def comparison(self) -> Node:
        node = self.concatenation()
        while self.at_operator(_COMPARISON_OPERATORS):
            operator = self.advance().text
            node = BinaryOpNode(operator, node, self.concatenation())
        return node

    def concatenation(self) -> Node:
        node = self.additive()
        while self.at_operator("&"):
            self.advance()
            node = BinaryOpNode("&", node, self.additive())
        return node

    def additive(self) -> Node:
        node = self.multiplicative()
        while self.at_operator(_ADDITIVE_OPERATORS):
            operator = self.advance().text
            node = BinaryOpNode(operator, node, self.multiplicative())
        return node

    def multiplicative(self) -> Node:
        node = self.power()
        while self.at_operator(_MULTIPLICATIVE_OPERATORS):
            operator = self.advance().text
            node = BinaryOpNode(operator, node, self.power())
        return node

    def power(self) -> Node:
        node = self.unary()
        while self.at_operator("^"):
            self.advance()
            node = BinaryOpNode("^", node, self.unary())
        return node

    def unary(self) -> Node:
        if self.at_operator(_ADDITIVE_OPERATORS):
            operator = self.advance().text
            return UnaryOpNode(operator, self.unary())
        return self.postfix()

    def postfix(self) -> Node:
        node = self.primary()
        while self.at_operator("%"):
            self.advance()
            node = UnaryOpNode("%", node)
        return node

    def primary(self) -> Node:
        token = self.peek()

        if token.kind == TokenKind.number:
            self.advance()
            return NumberNode(float(token.text))

        if token.kind == TokenKind.string:
            self.advance()
            return StringNode(token.text[1:-1].replace('""', '"'))

        if token.kind == TokenKind.error:
            self.advance()
            return ErrorNode(ErrorCode(token.text.upper()))

        if token.kind == TokenKind.cell:
            self.advance()
            start = self._cell(token)
            if self.peek().kind != TokenKind.colon:
                return start
            self.advance()
            return RangeNode(start, self._cell(self.expect(TokenKind.cell)))

        if token.kind == TokenKind.identifier:
            return self._identifier()

        if token.kind == TokenKind.lparen:
            self.advance()
            node = self.comparison()
            self.expect(TokenKind.rparen)
            return node

        if token.kind == TokenKind.end:
            raise FormulaSyntaxError("unexpected end of formula", token.position)
        raise FormulaSyntaxError(f"unexpected {token.text!r}", token.position)

    def _identifier(self) -> Node:
        token = self.advance()

        if self.peek().kind == TokenKind.lparen:
            self.advance()
            return FunctionCallNode(token.text.upper(), self._arguments())

        if self.peek().kind == TokenKind.colon:
            self.advance()
            end = self.expect(TokenKind.identifier)
            return RangeNode(NameNode(token.text), NameNode(end.text))

        upper = token.text.upper()
        if upper in ("TRUE", "FALSE"):
            return BooleanNode(upper == "TRUE")
        return NameNode(token.text)

    def _arguments(self) -> tuple[Node, ...]:
        if self.peek().kind == TokenKind.rparen:
            self.advance()
            return ()

        args = [self.comparison()]
        while self.peek().kind == TokenKind.comma:
            self.advance()
            args.append(self.comparison())
        self.expect(TokenKind.rparen)
        return tuple(args)

    @staticmethod
    def _cell(token: FormulaToken) -> CellRefNode:
        ref = parse_cell_ref(token.text)
        if ref is None:
            raise FormulaSyntaxError(f"invalid cell reference {token.text!r}", token.position)
        return CellRefNode(ref)


def parse_formula(text: str) -> Node:
    """Parse formula text (with or without the leading `=`) into an AST.

    Raises:
        FormulaSyntaxError: If the text is empty or malformed.
    """

    body = normalize_formula(text)[1:]
    if not body.strip():
        raise FormulaSyntaxError("empty formula")

    try:
        return _Parser(tokenize_formula(body)).parse()
    except RecursionError as exc:
        raise FormulaSyntaxError("formula is nested too deeply") from exc
