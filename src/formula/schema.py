"""Builder and converter schema (Pydantic models)."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.intent.schema import DetectedIntent, IntentType


class BuildOptions(BaseModel):
    """How placeholders are resolved.

    `context` maps field names (or the special keys `range`, `condition`, `trueValue`, `falseValue`)
    to values. With `prefer_cell_references` a context field is written by name instead of by value.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    context: dict[str, Any] | None = None
    prefer_cell_references: bool = False


class ConvertOptions(BuildOptions):
    return_alternatives: bool = False
    max_alternatives: int | None = Field(default=None, ge=1)


class FormulaResult(BaseModel):
    """A built formula.

    `is_valid` requires both a syntactically sane formula and no leftover `${...}` placeholders.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    formula: str
    is_valid: bool
    description: str
    variables: tuple[str, ...] = ()
    warnings: tuple[str, ...] | None = None


class ConvertResult(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    success: bool
    formula: str
    intent: DetectedIntent
    formula_result: FormulaResult
    alternative_intents: tuple[DetectedIntent, ...] | None = None
    execution_time_ms: float = Field(ge=0.0)


class CanConvertResult(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    can_convert: bool
    confidence: float = Field(ge=0.0, le=1.0)
    reason: str | None = None


class Suggestion(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    formula: str
    description: str
    confidence: float = Field(ge=0.0, le=1.0)


class TemplateInfo(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    type: IntentType
    template: str
    description: str
