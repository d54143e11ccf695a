"""Natural-language to formula conversion.

`FormulaConverter` wires the detector and the builder together. It holds no state besides its
defaults, so one instance can be shared freely; it is built by `create_app` (or by the caller).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from time import monotonic
from typing import Any

from src.formula.builder import build_formula, list_templates
from src.formula.schema import (
    BuildOptions,
    CanConvertResult,
    ConvertOptions,
    ConvertResult,
    Suggestion,
    TemplateInfo,
)
from src.intent.detector import detect_all_intents, detect_intent
from src.intent.schema import MIN_CONFIDENCE, IntentType

logger = logging.getLogger(__name__)

DEFAULT_MAX_ALTERNATIVES = 3
DEFAULT_SUGGESTION_LIMIT = 5


class FormulaConverter:
    """Convert Vietnamese requests such as "tính margin từ giá bán và giá vốn" into formulas."""

    def __init__(
            self,
            *,
            max_alternatives: int = DEFAULT_MAX_ALTERNATIVES,
            suggestion_limit: int = DEFAULT_SUGGESTION_LIMIT,
    ) -> None:
        self.max_alternatives = max_alternatives
        self.suggestion_limit = suggestion_limit

    def convert(self, text: str, options: ConvertOptions | None = None) -> ConvertResult:
        """Detect the intent of `text` and build its formula.

        `success` requires a valid formula and an intent confidence of at least `MIN_CONFIDENCE`.
        """

        started = monotonic()
        options = options or ConvertOptions()

        intent = detect_intent(text)

        alternatives = None
        if options.return_alternatives:
            limit = options.max_alternatives or self.max_alternatives
            alternatives = tuple(detect_all_intents(text)[1: limit + 1])

        formula_result = build_formula(
            intent,
            BuildOptions(
                context=options.context,
                prefer_cell_references=options.prefer_cell_references,
            ),
        )
        success = formula_result.is_valid and intent.confidence >= MIN_CONFIDENCE

        elapsed_ms = (monotonic() - started) * 1000
        logger.info(
            "converted type=%s confidence=%.2f success=%s latency_ms=%d",
            intent.type,
            intent.confidence,
            success,
            int(elapsed_ms),
        )

        return ConvertResult(
            success=success,
            formula=formula_result.formula,
            intent=intent,
            formula_result=formula_result,
            alternative_intents=alternatives,
            execution_time_ms=elapsed_ms,
        )

    def quick_convert(self, text: str, context: Mapping[str, Any] | None = None) -> str | None:
        """Return just the formula, or `None` when the conversion did not succeed."""

        result = self.convert(text, ConvertOptions(context=dict(context) if context else None))
        return result.formula if result.success else None

    def batch_convert(
            self,
            texts: Iterable[str],
            options: ConvertOptions | None = None,
    ) -> list[ConvertResult]:
        return [self.convert(text, options) for text in texts]

    def can_convert(self, text: str) -> CanConvertResult:
        intent = detect_intent(text)

        if intent.type == IntentType.unknown:
            return CanConvertResult(
                can_convert=False,
                confidence=0.0,
                reason="Không nhận dạng được ý định từ đầu vào",
            )

        if intent.confidence < MIN_CONFIDENCE:
            return CanConvertResult(
                can_convert=False,
                confidence=intent.confidence,
                reason="Độ tin cậy thấp - đầu vào không rõ ràng",
            )

        return CanConvertResult(can_convert=True, confidence=intent.confidence)

    def suggest(self, partial_text: str, limit: int | None = None) -> list[Suggestion]:
        """Suggest formulas for a partial input, best first.

        Candidates whose formula is empty (or just `=`) are dropped after the limit is applied, so fewer
        than `limit` suggestions may be returned.
        """

        limit = self.suggestion_limit if limit is None else limit
        candidates = detect_all_intents(partial_text)[: max(limit, 0)]

        suggestions: list[Suggestion] = []
        for intent in candidates:
            result = build_formula(intent)
            if not result.formula or result.formula == "=":
                continue
            suggestions.append(
                Suggestion(
                    formula=result.formula,
                    description=result.description,
                    confidence=intent.confidence,
                )
            )
        return suggestions

    def get_templates(self) -> list[TemplateInfo]:
        return list_templates()
