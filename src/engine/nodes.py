"""Formula AST.

Nodes are immutable and produced only by `src.engine.parser`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from src.engine.values import CellRef, ErrorCode


@dataclass(frozen=True)
class NumberNode:
    value: float


@dataclass(frozen=True)
class StringNode:
    value: str


@dataclass(frozen=True)
class BooleanNode:
    value: bool


@dataclass(frozen=True)
class ErrorNode:
    code: ErrorCode


@dataclass(frozen=True)
class CellRefNode:
    ref: CellRef


@dataclass(frozen=True)
class NameNode:
    """A bare identifier such as `retailPrice`, resolved from the context by name."""

    name: str


@dataclass(frozen=True)
class RangeNode:
    """`A1:B3` (two cell references) or `quantity:quantity` (two names)."""

    start: CellRefNode | NameNode
    end: CellRefNode | NameNode


@dataclass(frozen=True)
class FunctionCallNode:
    name: str
    args: tuple[Node, ...]


@dataclass(frozen=True)
class BinaryOpNode:
    operator: str
    left: Node
    right: Node


@dataclass(frozen=True)
class UnaryOpNode:
    """Prefix `-`/`+`, or postfix `%`."""

    operator: str
    operand: Node


Node = Union[
    NumberNode,
    StringNode,
    BooleanNode,
    ErrorNode,
    CellRefNode,
    NameNode,
    RangeNode,
    FunctionCallNode,
    BinaryOpNode,
    UnaryOpNode,
]
