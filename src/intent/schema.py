"""Token and intent schema (Pydantic models).

This schema is the contract between the tokenizer, the intent detector and the formula builder.
Tokens are a discriminated union on `type`: each variant carries only the payload that makes sense
for it (an operation name, a canonical field name, a numeric value, an operator).
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

# Below this confidence an intent is not trusted to produce a formula.
MIN_CONFIDENCE = 0.3


class TokenType(StrEnum):
    """Classes a tokenized word can fall into."""

    operation = "OPERATION"
    field = "FIELD"
    number = "NUMBER"
    comparison = "COMPARISON"
    logical = "LOGICAL"
    range = "RANGE"
    text = "TEXT"
    punctuation = "PUNCTUATION"


class Operation(StrEnum):
    """Spreadsheet operations recognized in natural-language input."""

    sum = "SUM"
    average = "AVERAGE"
    count_numbers = "COUNT"
    max = "MAX"
    min = "MIN"
    condition = "IF"
    lookup = "VLOOKUP"
    multiply = "MULTIPLY"
    divide = "DIVIDE"
    subtract = "SUBTRACT"
    add = "ADD"
    percentage = "PERCENTAGE"


class IntentType(StrEnum):
    """Supported intent families."""

    calculate_margin = "CALCULATE_MARGIN"
    calculate_total = "CALCULATE_TOTAL"
    calculate_profit = "CALCULATE_PROFIT"
    calculate_markup = "CALCULATE_MARKUP"
    sum_range = "SUM_RANGE"
    average_range = "AVERAGE_RANGE"
    count_range = "COUNT_RANGE"
    conditional = "CONDITIONAL"
    compare = "COMPARE"
    lookup = "LOOKUP"
    custom_formula = "CUSTOM_FORMULA"
    unknown = "UNKNOWN"


Comparator = Literal[">", "<", ">=", "<=", "=", "<>"]
LogicalOperator = Literal["AND", "OR", "NOT"]


class _TokenBase(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    value: str
    normalized: str
    position: int = Field(ge=0)
    length: int = Field(ge=0)

    @property
    def end(self) -> int:
        return self.position + self.length


class OperationToken(_TokenBase):
    type: Literal[TokenType.operation] = TokenType.operation
    operation: Operation


class FieldToken(_TokenBase):
    type: Literal[TokenType.field] = TokenType.field
    field_name: str


class NumberToken(_TokenBase):
    type: Literal[TokenType.number] = TokenType.number
    numeric_value: float


class ComparisonToken(_TokenBase):
    type: Literal[TokenType.comparison] = TokenType.comparison
    operator: Comparator


class LogicalToken(_TokenBase):
    type: Literal[TokenType.logical] = TokenType.logical
    operator: LogicalOperator


class RangeToken(_TokenBase):
    type: Literal[TokenType.range] = TokenType.range


class TextToken(_TokenBase):
    type: Literal[TokenType.text] = TokenType.text


class PunctuationToken(_TokenBase):
    type: Literal[TokenType.punctuation] = TokenType.punctuation


Token = Annotated[
    Union[
        OperationToken,
        FieldToken,
        NumberToken,
        ComparisonToken,
        LogicalToken,
        RangeToken,
        TextToken,
        PunctuationToken,
    ],
    Field(discriminator="type"),
]

_TOKEN_ADAPTER: TypeAdapter[Token] = TypeAdapter(Token)


class TokenizerResult(BaseModel):
    """Ordered tokens of one input plus its original and folded text."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    tokens: tuple[Token, ...]
    original_text: str
    normalized_text: str


class DetectedIntent(BaseModel):
    """A classified natural-language request.

    `confidence` is a heuristic score in [0, 1], not a probability.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    type: IntentType
    confidence: float = Field(ge=0.0, le=1.0)
    fields: tuple[str, ...] = ()
    operations: tuple[Operation, ...] = ()
    numbers: tuple[float, ...] = ()
    raw_input: str
    suggested_formula: str | None = None
    description: str | None = None

    @property
    def success(self) -> bool:
        """Whether the intent is confident enough to build a formula from."""

        return self.confidence >= MIN_CONFIDENCE


def token_from_obj(obj: Any) -> Token:
    """Validate and parse a Token from an arbitrary decoded JSON object."""

    return _TOKEN_ADAPTER.validate_python(obj)
