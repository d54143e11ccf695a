"""Pattern-based intent detector.

Confidence for a pattern is computed as follows:
    - +0.4 for every regex matching the raw or the folded input; no match at all scores 0,
    - +0.2 when the pattern declares token requirements and all of them hold,
    - +0.2 when the input mentions at least one known field,
    - the total is clamped to 1.0.

When no pattern reaches `MIN_CONFIDENCE`, a formula is composed directly from the first detected
operation and the detected fields (the "custom formula" path).
"""

from __future__ import annotations

import logging
import unicodedata
from collections.abc import Sequence

from src.engine.values import format_number
from src.intent.normalize import normalize_vietnamese
from src.intent.patterns import INTENT_PATTERNS, IntentPattern
from src.intent.schema import (
    MIN_CONFIDENCE,
    DetectedIntent,
    IntentType,
    Operation,
    TokenizerResult,
)
from src.intent.tokenizer import extract_fields, extract_numbers, extract_operations, tokenize

logger = logging.getLogger(__name__)

REGEX_SCORE = 0.4
REQUIRED_TOKENS_BONUS = 0.2
FIELD_BONUS = 0.2

# Only results strictly above this are returned by `detect_all_intents`.
ALTERNATIVE_FLOOR = 0.1

_CUSTOM_DESCRIPTION = "Công thức tùy chỉnh"
_UNKNOWN_CONFIDENCE = 0.2

_FUNCTION_OPERATIONS = frozenset({Operation.sum, Operation.average})
_INFIX_OPERATORS: dict[Operation, str] = {
    Operation.multiply: "*",
    Operation.add: "+",
    Operation.subtract: "-",
    Operation.divide: "/",
}


def _score(pattern: IntentPattern, text: str, folded: str, tokens: TokenizerResult) -> float:
    matches = sum(1 for regex in pattern.patterns if regex.search(text) or regex.search(folded))
    if matches == 0:
        return 0.0

    score = matches * REGEX_SCORE

    if pattern.required_tokens and all(
            sum(1 for token in tokens.tokens if token.type == req.type) >= req.count
            for req in pattern.required_tokens
    ):
        score += REQUIRED_TOKENS_BONUS

    if extract_fields(tokens.tokens):
        score += FIELD_BONUS

    return min(score, 1.0)


def _suggest(pattern: IntentPattern, fields: Sequence[str], numbers: Sequence[float]) -> str:
    values: dict[str, str] = {}
    if fields:
        values["range"] = f"{fields[0]}:{fields[0]}"
    if numbers:
        values["value"] = format_number(numbers[0])
    return pattern.template.render(values)


class _Analysis:
    """Everything the detector derives from one input."""

    def __init__(self, text: str) -> None:
        self.text = text or ""
        # Patterns are written precomposed (NFC).
        self.composed = unicodedata.normalize("NFC", self.text)
        self.folded = normalize_vietnamese(self.text)
        self.tokens = tokenize(self.text)
        self.fields = tuple(extract_fields(self.tokens.tokens))
        self.operations = tuple(extract_operations(self.tokens.tokens))
        self.numbers = tuple(extract_numbers(self.tokens.tokens))

    def score(self, pattern: IntentPattern) -> float:
        return _score(pattern, self.composed, self.folded, self.tokens)

    def intent_for(self, pattern: IntentPattern, confidence: float) -> DetectedIntent:
        return DetectedIntent(
            type=pattern.type,
            confidence=confidence,
            fields=self.fields,
            operations=self.operations,
            numbers=self.numbers,
            raw_input=self.text,
            suggested_formula=_suggest(pattern, self.fields, self.numbers),
            description=pattern.description,
        )


def _custom_formula(analysis: _Analysis) -> DetectedIntent:
    """Compose a formula from the first operation and the fields, or give up with UNKNOWN."""

    formula: str | None = None
    confidence = _UNKNOWN_CONFIDENCE

    if analysis.operations and analysis.fields:
        op = analysis.operations[0]
        if op in _FUNCTION_OPERATIONS:
            formula = f"={op.value}({', '.join(analysis.fields)})"
            confidence = 0.5
        elif op in _INFIX_OPERATORS:
            formula = "=" + _INFIX_OPERATORS[op].join(analysis.fields)
            confidence = 0.5
        else:
            formula = f"={op.value}({', '.join(analysis.fields)})"
            confidence = 0.4

    return DetectedIntent(
        type=IntentType.custom_formula if formula is not None else IntentType.unknown,
        confidence=confidence,
        fields=analysis.fields,
        operations=analysis.operations,
        numbers=analysis.numbers,
        raw_input=analysis.text,
        suggested_formula=formula,
        description=_CUSTOM_DESCRIPTION,
    )


def detect_intent(text: str) -> DetectedIntent:
    """Detect the single best intent for the input.

    The first pattern with the highest confidence wins. Below `MIN_CONFIDENCE` the custom-formula path
    is used instead. Never raises on arbitrary input.
    """

    analysis = _Analysis(text)

    best: IntentPattern | None = None
    best_confidence = 0.0
    for pattern in INTENT_PATTERNS:
        confidence = analysis.score(pattern)
        if confidence > best_confidence:
            best, best_confidence = pattern, confidence

    if best is None or best_confidence < MIN_CONFIDENCE:
        intent = _custom_formula(analysis)
    else:
        intent = analysis.intent_for(best, best_confidence)

    logger.debug(
        "detected type=%s confidence=%.2f fields=%s operations=%s",
        intent.type,
        intent.confidence,
        ",".join(intent.fields),
        ",".join(intent.operations),
    )
    return intent


def detect_all_intents(text: str) -> list[DetectedIntent]:
    """Score every pattern and return those above `ALTERNATIVE_FLOOR`, best first.

    The sort is stable, so equally scored patterns keep their catalog order.
    """

    analysis = _Analysis(text)
    results = [
        analysis.intent_for(pattern, confidence)
        for pattern in INTENT_PATTERNS
        if (confidence := analysis.score(pattern)) > ALTERNATIVE_FLOOR
    ]
    return sorted(results, key=lambda intent: intent.confidence, reverse=True)
