"""Command-line helpers for checking meeting requests offline."""

from __future__ import annotations

import argparse
import json
import sys
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path

from pydantic import ValidationError

from .cost import RateTable, calculate_expense
from .lifecycle import editable_fields, visible_fields
from .models import MeetingRecord, MeetingStatus
from .security import RoleName
from .settings import WorkflowSettings, configure_logging
from .validation import Phase, ValidationEngine


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="meeting-workflow",
        description="Validate meeting requests and preview their computed fields.",
    )
    parser.add_argument(
        "--log-level", default=None, help="Override the configured log level."
    )
    commands = parser.add_subparsers(dest="command", required=True)

    validate = commands.add_parser("validate", help="Validate a meeting JSON file.")
    validate.add_argument("record_json", type=Path, help="Path to a MeetingRecord JSON file.")
    validate.add_argument(
        "--phase", type=int, choices=[1, 2], default=1, help="Rule set to run."
    )
    validate.add_argument(
        "--today",
        type=date.fromisoformat,
        default=None,
        help="Reference day for the no-backdating rule (YYYY-MM-DD).",
    )

    expense = commands.add_parser("expense", help="Compute the travel expense.")
    expense.add_argument("--distance", required=True, help="Distance in kilometres.")
    expense.add_argument("--mode", required=True, help="Travel mode, e.g. Car.")
    expense.add_argument("--rates", type=Path, default=None, help="Rate table YAML file.")

    fields = commands.add_parser("fields", help="Show visible and editable fields.")
    fields.add_argument(
        "--status", required=True, choices=[status.value for status in MeetingStatus]
    )
    fields.add_argument(
        "--role", required=True, choices=[role.value for role in RoleName]
    )
    fields.add_argument(
        "--was-approved",
        action="store_true",
        help="Treat a completed meeting as one that had been approved.",
    )
    return parser


def _load_record(path: Path) -> MeetingRecord:
    try:
        raw_data = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        msg = f"Input file not found: {path}"
        raise FileNotFoundError(msg) from exc

    try:
        payload = json.loads(raw_data)
    except json.JSONDecodeError as exc:
        msg = f"Invalid JSON in input file: {path}"
        raise ValueError(msg) from exc

    return MeetingRecord.model_validate(payload)


def _run_validate(args: argparse.Namespace) -> int:
    record = _load_record(args.record_json)
    issue = ValidationEngine.default().validate(
        record, Phase(args.phase), reference_date=args.today
    )
    if issue is not None:
        print(f"{issue.field}: {issue.reason}")
        return 1
    print("OK")
    return 0


def _run_expense(args: argparse.Namespace) -> int:
    rates = RateTable.from_file(args.rates) if args.rates is not None else None
    try:
        distance = Decimal(args.distance)
    except InvalidOperation as exc:
        raise ValueError(f"Distance must be a number; got {args.distance!r}") from exc
    print(calculate_expense(distance, args.mode, rates))
    return 0


def _run_fields(args: argparse.Namespace) -> int:
    status = MeetingStatus(args.status)
    output = {
        "visible": sorted(visible_fields(status, was_approved=args.was_approved)),
        "editable": sorted(editable_fields(status, RoleName(args.role))),
    }
    print(json.dumps(output, indent=2))
    return 0


_COMMANDS = {
    "validate": _run_validate,
    "expense": _run_expense,
    "fields": _run_fields,
}


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    level = args.log_level or WorkflowSettings.load().log_level
    configure_logging(level)

    try:
        return _COMMANDS[args.command](args)
    except ValidationError as exc:
        print("Error: meeting record is malformed.", file=sys.stderr)
        print(str(exc), file=sys.stderr)
        return 1
    except (FileNotFoundError, ValueError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
