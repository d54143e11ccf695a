"""Template-driven formula builder.

The builder turns a `DetectedIntent` into a formula string by filling the slots of the intent's
template. Slots are resolved in passes, and the first pass that provides a value for a slot wins:
    1) field slots, from `options.context` or the standard field names,
    2) `${range}`, from the first detected field or `context["range"]`,
    3) IF slots (`condition`, `trueValue`, `falseValue`) for CONDITIONAL intents,
    4) `${expression}` for CUSTOM_FORMULA intents, from the detector's suggested formula.

Problems never raise: they are reported through `FormulaResult.is_valid` and `warnings`.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any

from src.engine.values import format_number
from src.formula.schema import BuildOptions, FormulaResult, TemplateInfo
from src.formula.template import find_unresolved
from src.formula.templates import FORMULA_TEMPLATES, SYNTHETIC_SLOTS
from src.intent.schema import DetectedIntent, IntentType

logger = logging.getLogger(__name__)

# Field names that are written as bare identifiers when nothing else is known.
STANDARD_FIELDS = ("retailPrice", "costPrice", "quantity", "margin", "profit")

_CONDITIONAL_SLOTS = ("condition", "trueValue", "falseValue")
_TRAILING_OPERATOR_RE = re.compile(r"[+\-*/]$")


def _context_literal(value: Any) -> str | None:
    """Render a context value for a formula; only numbers and strings are usable."""

    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return format_number(value)
    if isinstance(value, str):
        return value
    return None


def _missing_fields(
        intent: DetectedIntent,
        required_fields: tuple[str, ...],
        context: Mapping[str, Any],
) -> list[str]:
    available = set(intent.fields) | set(context)
    return [
        field
        for field in required_fields
        if field not in SYNTHETIC_SLOTS and field not in available
    ]


def _field_values(options: BuildOptions) -> dict[str, str]:
    field_map = {name: name for name in STANDARD_FIELDS}
    for key, value in (options.context or {}).items():
        if key in SYNTHETIC_SLOTS:
            continue
        literal = _context_literal(value)
        if literal is not None:
            field_map[key] = key if options.prefer_cell_references else literal
    return field_map


class _SlotResolution:
    """Slot values and the variables they reference, collected pass by pass."""

    def __init__(self, slot_names: tuple[str, ...]) -> None:
        self.slot_names = slot_names
        self.values: dict[str, str] = {}
        self.variables: list[str] = []

    def wants(self, slot: str) -> bool:
        return slot in self.slot_names and slot not in self.values

    def fill(self, slot: str, value: str, variable: str | None = None) -> None:
        self.values[slot] = value
        if variable is not None and variable not in self.variables:
            self.variables.append(variable)


def _resolve_fields(slots: _SlotResolution, options: BuildOptions) -> None:
    for field, replacement in _field_values(options).items():
        if slots.wants(field):
            slots.fill(field, replacement, variable=field)


def _resolve_range(slots: _SlotResolution, intent: DetectedIntent, context: Mapping[str, Any]) -> None:
    if not slots.wants("range"):
        return
    if intent.fields:
        first = intent.fields[0]
        slots.fill("range", f"{first}:{first}", variable=first)
    elif context.get("range"):
        slots.fill("range", str(context["range"]))


def _resolve_conditional(
        slots: _SlotResolution,
        intent: DetectedIntent,
        context: Mapping[str, Any],
) -> None:
    if intent.type != IntentType.conditional:
        return

    for slot in _CONDITIONAL_SLOTS:
        value = context.get(slot)
        if value and slots.wants(slot):
            literal = _context_literal(value)
            slots.fill(slot, literal if literal is not None else str(value))

    if slots.wants("condition") and intent.fields and intent.numbers:
        field = intent.fields[0]
        slots.fill("condition", f"{field}>={format_number(intent.numbers[0])}", variable=field)


def _resolve_expression(slots: _SlotResolution, intent: DetectedIntent) -> None:
    if intent.type != IntentType.custom_formula or not slots.wants("expression"):
        return
    if intent.suggested_formula:
        slots.fill("expression", intent.suggested_formula.removeprefix("="))


def validate_formula_syntax(formula: str) -> bool:
    """Cheap structural check of a built formula.

    The formula must start with `=`, have balanced parentheses that never close more than they open,
    contain no `//` or `**`, and not end with an arithmetic operator.
    """

    if not formula.startswith("="):
        return False

    depth = 0
    for char in formula:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                return False
    if depth != 0:
        return False

    if "//" in formula or "**" in formula:
        return False
    return not _TRAILING_OPERATOR_RE.search(formula)


def build_formula(intent: DetectedIntent, options: BuildOptions | None = None) -> FormulaResult:
    """Build a formula for the intent.

    Returns:
        A `FormulaResult`. Missing fields produce a warning only; leftover placeholders make the result
        invalid and are listed in `warnings`.
    """

    options = options or BuildOptions()
    entry = FORMULA_TEMPLATES.get(intent.type)
    if entry is None or not entry.template.source:
        return FormulaResult(
            formula="",
            is_valid=False,
            description="Không thể xây dựng công thức từ đầu vào này",
            warnings=("Loại intent không được hỗ trợ",),
        )

    context = options.context or {}
    warnings: list[str] = []

    missing = _missing_fields(intent, entry.required_fields, context)
    if missing and intent.type != IntentType.custom_formula:
        warnings.append(f"Thiếu trường: {', '.join(missing)}")

    slots = _SlotResolution(entry.template.slot_names)
    _resolve_fields(slots, options)
    _resolve_range(slots, intent, context)
    _resolve_conditional(slots, intent, context)
    _resolve_expression(slots, intent)

    formula = entry.template.render(slots.values)

    unresolved = find_unresolved(formula)
    if unresolved:
        warnings.append(f"Còn placeholder chưa thay thế: {', '.join(unresolved)}")

    is_valid = validate_formula_syntax(formula) and not unresolved
    logger.debug("built type=%s valid=%s formula=%s", intent.type, is_valid, formula)

    return FormulaResult(
        formula=formula,
        is_valid=is_valid,
        description=entry.description,
        variables=tuple(slots.variables),
        warnings=tuple(warnings) or None,
    )


def build_with_cell_references(intent: DetectedIntent, cell_map: Mapping[str, str]) -> FormulaResult:
    """Build a formula and rewrite field names into cell references (e.g. `retailPrice` -> `B2`).

    Names are only replaced as whole identifiers, in a single pass, so `price` never rewrites the
    inside of `retailPrice` and an inserted reference is never rewritten again.
    """

    result = build_formula(intent, BuildOptions(prefer_cell_references=True))
    if not result.is_valid or not cell_map:
        return result

    names = sorted(cell_map, key=len, reverse=True)
    pattern = re.compile(
        r"(?<![A-Za-z0-9_])(" + "|".join(re.escape(name) for name in names) + r")(?![A-Za-z0-9_])"
    )
    formula = pattern.sub(lambda match: cell_map[match.group(1)], result.formula)
    return result.model_copy(update={"formula": formula})


def get_template(intent_type: IntentType) -> TemplateInfo | None:
    entry = FORMULA_TEMPLATES.get(intent_type)
    if entry is None:
        return None
    return TemplateInfo(type=intent_type, template=entry.template.source, description=entry.description)


def list_templates() -> list[TemplateInfo]:
    """All templates that can actually produce a formula (UNKNOWN is skipped)."""

    return [
        TemplateInfo(type=intent_type, template=entry.template.source, description=entry.description)
        for intent_type, entry in FORMULA_TEMPLATES.items()
        if entry.template.source
    ]
