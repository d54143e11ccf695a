"""Command-line entry point.

Usage:
    python -m src.cli convert "tính margin từ giá bán và giá vốn" --context '{"retailPrice": 150}'
    python -m src.cli suggest "tính tổng" --limit 3
    python -m src.cli templates
    python -m src.cli eval "=(retailPrice-costPrice)/retailPrice*100" --context '{"retailPrice": 100, "costPrice": 40}'
    python -m src.cli row '{"quantity": 10, "price": 50, "total": "=quantity*price"}'

Every command prints one JSON document on stdout. The exit code is 0 on success and 1 when the
conversion or evaluation did not succeed (for `row`: when any formula cell resolved to null).
"""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Sequence
from dataclasses import asdict
from typing import Any

from dotenv import load_dotenv

from src.app import App, create_app
from src.config.logging import configure_logging
from src.config.settings import load_settings
from src.engine.rows import evaluate_formula, is_formula, process_row
from src.formula.schema import ConvertOptions


def _json_object(text: str) -> dict[str, Any]:
    try:
        value = json.loads(text)
    except json.JSONDecodeError as exc:
        raise argparse.ArgumentTypeError(f"invalid JSON: {exc}") from exc
    if not isinstance(value, dict):
        raise argparse.ArgumentTypeError("expected a JSON object")
    return value


def _print(payload: Any) -> None:
    sys.stdout.write(json.dumps(payload, ensure_ascii=False, indent=2) + "\n")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Convert Vietnamese requests into spreadsheet formulas.")
    commands = parser.add_subparsers(dest="command", required=True)

    convert = commands.add_parser("convert", help="Convert a natural-language request into a formula.")
    convert.add_argument("text", help="Request, e.g. 'tính margin từ giá bán và giá vốn'.")
    convert.add_argument("--context", type=_json_object, help="JSON object with field values.")
    convert.add_argument(
        "--cell-references",
        action="store_true",
        default=None,
        help="Write context fields by name instead of by value.",
    )
    convert.add_argument("--alternatives", action="store_true", help="Also return alternative intents.")

    suggest = commands.add_parser("suggest", help="Suggest formulas for a partial request.")
    suggest.add_argument("text")
    suggest.add_argument("--limit", type=int, help="Maximum number of suggestions.")

    commands.add_parser("templates", help="List the available formula templates.")

    evaluate = commands.add_parser("eval", help="Evaluate a formula.")
    evaluate.add_argument("formula")
    evaluate.add_argument("--context", type=_json_object, help="JSON object with name/cell values.")

    row = commands.add_parser("row", help="Resolve the formula cells of a data row.")
    row.add_argument("row", type=_json_object, help="JSON object of column -> value.")
    row.add_argument("--context", type=_json_object, help="Extra values visible to the formulas.")

    return parser


def run(app: App, args: argparse.Namespace) -> int:
    """Execute a parsed command and print its JSON result."""

    if args.command == "convert":
        prefer_cell_references = args.cell_references
        if prefer_cell_references is None:
            prefer_cell_references = app.settings.prefer_cell_references
        result = app.converter.convert(
            args.text,
            ConvertOptions(
                context=args.context,
                prefer_cell_references=prefer_cell_references,
                return_alternatives=args.alternatives,
            ),
        )
        _print(result.model_dump(mode="json"))
        return 0 if result.success else 1

    if args.command == "suggest":
        suggestions = app.converter.suggest(args.text, limit=args.limit)
        _print([suggestion.model_dump(mode="json") for suggestion in suggestions])
        return 0

    if args.command == "templates":
        _print([template.model_dump(mode="json") for template in app.converter.get_templates()])
        return 0

    if args.command == "eval":
        outcome = evaluate_formula(args.formula, args.context)
        _print(asdict(outcome))
        return 0 if outcome.success else 1

    if args.command == "row":
        result = process_row(args.row, args.context)
        _print(result)
        failed = any(is_formula(value) and result[key] is None for key, value in args.row.items())
        return 1 if failed else 0

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point."""

    args = _build_parser().parse_args(argv)

    load_dotenv(".env")
    settings = load_settings()
    configure_logging(settings.log_level)

    return run(create_app(settings), args)


if __name__ == "__main__":
    sys.exit(main())
