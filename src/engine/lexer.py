"""Formula lexer.

A single master regex is matched at the current position; named groups tell the token kind.
Alternatives are ordered: strings and error literals first, then numbers, cell references and names.
"""

from __future__ import annotations

import re
from enum import StrEnum
from typing import NamedTuple


class FormulaSyntaxError(ValueError):
    """Raised when formula text cannot be tokenized or parsed."""

    def __init__(self, message: str, position: int | None = None) -> None:
        super().__init__(message if position is None else f"{message} at position {position}")
        self.position = position


class TokenKind(StrEnum):
    number = "NUMBER"
    string = "STRING"
    error = "ERROR"
    cell = "CELL"
    identifier = "IDENTIFIER"
    operator = "OPERATOR"
    lparen = "LPAREN"
    rparen = "RPAREN"
    comma = "COMMA"
    colon = "COLON"
    end = "EOF"


class FormulaToken(NamedTuple):
    kind: TokenKind
    text: str
    position: int


_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
    |(?P<string>"(?:[^"]|"")*")
    |(?P<error>(?i:\#(?:DIV/0!|VALUE!|REF!|NAME\?|N/A|NUM!|NULL!|ERROR!)))
    |(?P<number>(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)
    |(?P<cell>\$?[A-Za-z]{1,3}\$?\d+(?![\w.(]))
    |(?P<identifier>[^\W\d][\w.]*)
    |(?P<operator><>|<=|>=|[-+*/^&=<>%])
    |(?P<lparen>\()
    |(?P<rparen>\))
    |(?P<comma>,)
    |(?P<colon>:)
    """,
    re.VERBOSE,
)


def tokenize_formula(body: str) -> list[FormulaToken]:
    """Tokenize a formula body (the text after `=`). The last token is always EOF.

    Raises:
        FormulaSyntaxError: On an unexpected character or an unterminated string.
    """

    tokens: list[FormulaToken] = []
    pos = 0
    while pos < len(body):
        match = _TOKEN_RE.match(body, pos)
        if match is None:
            if body[pos] == '"':
                raise FormulaSyntaxError("unterminated string", pos)
            raise FormulaSyntaxError(f"unexpected character {body[pos]!r}", pos)

        kind = match.lastgroup
        if kind != "ws":
            tokens.append(FormulaToken(TokenKind[kind], match.group(0), pos))
        pos = match.end()

    tokens.append(FormulaToken(TokenKind.end, "", len(body)))
    return tokens
