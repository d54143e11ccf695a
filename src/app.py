"""Application composition root.

This module wires configuration into the formula converter used by the command-line surface and by
any host that embeds the library.
"""

from __future__ import annotations

from dataclasses import dataclass

from src.config.settings import Settings
from src.formula.converter import FormulaConverter


@dataclass(frozen=True)
class App:
    """Shared application dependencies."""

    settings: Settings
    converter: FormulaConverter


def create_app(settings: Settings) -> App:
    """Create the application container."""

    converter = FormulaConverter(
        max_alternatives=settings.max_alternatives,
        suggestion_limit=settings.suggestion_limit,
    )
    return App(settings=settings, converter=converter)
