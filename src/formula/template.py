"""`${name}` formula templates.

A template is parsed once into literal text and named slots. Rendering substitutes slots by name, so a
substituted value is never re-scanned for placeholders and slot names never need regex escaping.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass

_SLOT_RE = re.compile(r"\$\{([^}]+)\}")

# Leftover placeholders in an already rendered formula.
UNRESOLVED_RE = _SLOT_RE


@dataclass(frozen=True)
class Slot:
    """A named placeholder inside a template."""

    name: str

    def __str__(self) -> str:
        return "${" + self.name + "}"


Segment = str | Slot


@dataclass(frozen=True)
class FormulaTemplate:
    """An immutable template split into literal and slot segments."""

    source: str
    segments: tuple[Segment, ...]

    @classmethod
    def parse(cls, source: str) -> FormulaTemplate:
        segments: list[Segment] = []
        cursor = 0
        for match in _SLOT_RE.finditer(source):
            if match.start() > cursor:
                segments.append(source[cursor: match.start()])
            segments.append(Slot(match.group(1)))
            cursor = match.end()
        if cursor < len(source):
            segments.append(source[cursor:])
        return cls(source=source, segments=tuple(segments))

    @property
    def slot_names(self) -> tuple[str, ...]:
        """Distinct slot names in order of first appearance."""

        names: list[str] = []
        for segment in self.segments:
            if isinstance(segment, Slot) and segment.name not in names:
                names.append(segment.name)
        return tuple(names)

    def render(self, values: Mapping[str, str]) -> str:
        """Substitute every slot present in `values`; unknown slots are kept as `${name}`."""

        return "".join(
            values.get(segment.name, str(segment)) if isinstance(segment, Slot) else segment
            for segment in self.segments
        )


def find_unresolved(formula: str) -> list[str]:
    """Return leftover `${...}` placeholders of a rendered formula, in order."""

    return [match.group(0) for match in UNRESOLVED_RE.finditer(formula)]
