"""Vietnamese tokenizer.

Raw input is split into words (see `split_words`) and each word is classified against the static
dictionaries. Multi-word field aliases such as "giá bán" are then merged into a single FIELD token.

Classification precedence per word:
    NUMBER -> OPERATION -> FIELD -> COMPARISON -> LOGICAL -> RANGE -> PUNCTUATION -> TEXT
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from src.intent.dictionaries import (
    COMPARISON_LOOKUP,
    FIELD_LOOKUP,
    LOGICAL_LOOKUP,
    OPERATION_LOOKUP,
    parse_vietnamese_number,
)
from src.intent.normalize import PUNCTUATION_CHARS, Word, normalize_vietnamese, split_words
from src.intent.schema import (
    ComparisonToken,
    FieldToken,
    LogicalToken,
    NumberToken,
    Operation,
    OperationToken,
    PunctuationToken,
    RangeToken,
    TextToken,
    Token,
    TokenizerResult,
)

_RANGE_RE = re.compile(r"[a-z]+\d+:[a-z]+\d+", re.IGNORECASE)
_MERGE_WINDOWS = (3, 2)


def _classify(word: Word) -> Token:
    folded = normalize_vietnamese(word.text)
    common = {
        "value": word.text,
        "normalized": folded,
        "position": word.start,
        "length": len(word.text),
    }

    number = parse_vietnamese_number(word.text)
    if number is not None:
        return NumberToken(numeric_value=number, **common)

    operation = OPERATION_LOOKUP.get(folded)
    if operation is not None:
        return OperationToken(operation=operation, **common)

    field_name = FIELD_LOOKUP.get(folded)
    if field_name is not None:
        return FieldToken(field_name=field_name, **common)

    comparator = COMPARISON_LOOKUP.get(folded)
    if comparator is not None:
        return ComparisonToken(operator=comparator, **common)

    logical = LOGICAL_LOOKUP.get(folded)
    if logical is not None:
        return LogicalToken(operator=logical, **common)

    if _RANGE_RE.fullmatch(word.text):
        return RangeToken(**common)

    if word.text in PUNCTUATION_CHARS:
        return PunctuationToken(**common)

    return TextToken(**common)


def _merge_field_windows(text: str, tokens: list[Token]) -> list[Token]:
    """Greedily merge 3- then 2-token windows that spell a multi-word field alias."""

    merged: list[Token] = []
    idx = 0
    while idx < len(tokens):
        for size in _MERGE_WINDOWS:
            window = tokens[idx: idx + size]
            if len(window) < size:
                continue
            phrase = " ".join(token.normalized for token in window)
            field_name = FIELD_LOOKUP.get(phrase)
            if field_name is None:
                continue

            start = window[0].position
            end = window[-1].end
            merged.append(
                FieldToken(
                    value=text[start:end],
                    normalized=phrase,
                    position=start,
                    length=end - start,
                    field_name=field_name,
                )
            )
            idx += size
            break
        else:
            merged.append(tokens[idx])
            idx += 1

    return merged


def tokenize(text: str) -> TokenizerResult:
    """Tokenize raw user input.

    Never raises: empty or unrecognizable input simply yields TEXT tokens (or no tokens at all).
    """

    source = text or ""
    words = split_words(source)
    tokens = _merge_field_windows(source, [_classify(word) for word in words])
    return TokenizerResult(
        tokens=tuple(tokens),
        original_text=source,
        normalized_text=normalize_vietnamese(source),
    )


def extract_fields(tokens: Iterable[Token]) -> list[str]:
    """Canonical field names of FIELD tokens, in input order."""

    return [token.field_name for token in tokens if isinstance(token, FieldToken)]


def extract_operations(tokens: Iterable[Token]) -> list[Operation]:
    """Operations of OPERATION tokens, in input order."""

    return [token.operation for token in tokens if isinstance(token, OperationToken)]


def extract_numbers(tokens: Iterable[Token]) -> list[float]:
    """Numeric values of NUMBER tokens, in input order."""

    return [token.numeric_value for token in tokens if isinstance(token, NumberToken)]
