"""The taskval command: validate task definitions and optionally file them as issues."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Optional, Sequence

from .commands import (
    BeadsJSON,
    Creator,
    format_dry_run_output,
    format_json_output,
    format_text_output,
)
from .executor import BdError, CommandFailed, execute_commands, pre_flight_check
from .models import Severity, ValidationError, ValidationResult
from .validate import Mode, validate

_JSON_ESCAPES = (
    ("<", "\\u003c"),
    (">", "\\u003e"),
    ("&", "\\u0026"),
    ("\u2028", "\\u2028"),
    ("\u2029", "\\u2029"),
)

_EPILOG = """\
Exit codes:
  0  Validation passed (no errors)
  1  Validation failed (errors found)
  2  Usage, internal, or bd error
"""


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="taskval",
        description="taskval — Structured Task Template Spec validator",
        usage="taskval [flags] <file.json>\n       taskval [flags] -          (read from stdin)",
        epilog=_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--mode",
        default="graph",
        help="Validation mode: 'task' for a single task node, 'graph' for a full task graph",
    )
    parser.add_argument(
        "--output",
        default="text",
        help="Output format: 'text' for human/LLM-readable, 'json' for machine-readable",
    )
    parser.add_argument(
        "--create-beads",
        action="store_true",
        help="On validation success, create Beads issues via bd CLI",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show bd commands that would be executed (requires --create-beads)",
    )
    parser.add_argument(
        "--epic-title",
        default="",
        help="Override the auto-generated epic title (graph mode only)",
    )
    parser.add_argument("files", nargs="*", help=argparse.SUPPRESS)
    return parser


def _error(message: str) -> None:
    print(message, file=sys.stderr)


def read_input(args: Sequence[str]) -> tuple[bytes, str]:
    """Read the single input named in args ('-' is stdin); return (data, filename).

    Raises ValueError when the arguments are wrong or the input cannot be read.
    """
    if not args:
        raise ValueError(
            "no input file specified. Use 'taskval <file.json>' or 'taskval -' for stdin"
        )
    if len(args) > 1:
        raise ValueError(f"expected exactly one input file, got {len(args)}")

    filename = args[0]
    if filename == "-":
        try:
            return sys.stdin.buffer.read(), "-"
        except OSError as exc:
            raise ValueError(f"reading stdin: {exc}") from exc
    try:
        return Path(filename).read_bytes(), filename
    except OSError as exc:
        raise ValueError(f"reading file '{filename}': {exc}") from exc


def wrap_text(text: str, indent: int, width: int) -> str:
    """Wrap text to width, indenting continuation lines by indent spaces."""
    max_len = width - indent
    if len(text) <= max_len:
        return text

    lines: list[str] = []
    current = ""
    for word in text.split():
        if not current:
            current = word
        elif len(current) + 1 + len(word) > max_len:
            lines.append(current)
            current = word
        else:
            current += " " + word
    if current:
        lines.append(current)

    if len(lines) <= 1:
        return text
    pad = " " * indent
    return lines[0] + "\n" + pad + ("\n" + pad).join(lines[1:])


def _format_error(number: int, error: ValidationError) -> list[str]:
    lines = [
        "",
        f"  {number}. [{error.severity.value}] Rule {error.rule}",
        f"     Path:    {error.path}",
        f"     Problem: {wrap_text(error.message, 14, 80)}",
    ]
    if error.suggestion:
        lines.append(f"     Fix:     {wrap_text(error.suggestion, 14, 80)}")
    if error.context:
        context = error.context
        if len(context) > 120:
            context = context[:117] + "..."
        lines.append(f"     Value:   {json.dumps(context, ensure_ascii=False)}")
    return lines


def format_validation_text(result: ValidationResult) -> str:
    """Render a validation result as readable text, grouped by severity."""
    stats = result.stats
    if result.valid and stats.warning_count == 0 and stats.info_count == 0:
        return (
            "VALIDATION PASSED\n"
            f"  Tasks validated: {stats.total_tasks}\n"
            "  No errors or warnings.\n"
        )

    lines = [
        "VALIDATION PASSED (with warnings)" if result.valid else "VALIDATION FAILED",
        "",
        f"Summary: {stats.error_count} error(s), {stats.warning_count} warning(s), "
        f"{stats.info_count} info(s) across {stats.total_tasks} task(s)",
    ]
    sections = (
        (Severity.ERROR, stats.error_count, "--- ERRORS (must fix) ---"),
        (Severity.WARNING, stats.warning_count, "--- WARNINGS (should fix) ---"),
        (Severity.INFO, stats.info_count, "--- INFO ---"),
    )
    for severity, count, heading in sections:
        if count == 0:
            continue
        lines.extend(["", heading])
        for number, error in enumerate(result.errors, start=1):
            if error.severity is severity:
                lines.extend(_format_error(number, error))
    return "\n".join(lines) + "\n"


def combined_output(result: ValidationResult, beads: Optional[BeadsJSON]) -> dict[str, Any]:
    """Return the JSON document of a run: validation findings plus any creation summary."""
    out = result.to_dict()
    if beads is not None:
        out["beads"] = beads.to_dict()
    return out


def _write_json(result: ValidationResult, beads: Optional[BeadsJSON]) -> None:
    text = json.dumps(combined_output(result, beads), indent=2, ensure_ascii=False)
    for char, escaped in _JSON_ESCAPES:
        text = text.replace(char, escaped)
    sys.stdout.write(text + "\n")


def _create_beads(
    result: ValidationResult,
    mode: Mode,
    dry_run: bool,
    epic_title: str,
    filename: str,
    output: str,
) -> int:
    graph = result.graph
    if graph is None:
        _error("Internal error: validation passed but no parsed graph available")
        return 2

    if not dry_run:
        try:
            pre_flight_check()
        except BdError as exc:
            _error(f"Error: {exc}")
            return 2

    creator = Creator(dry_run=dry_run, epic_title=epic_title, filename=filename)
    try:
        if mode is Mode.SINGLE_TASK:
            if not graph.tasks:
                _error("Internal error: graph has no tasks")
                return 2
            cmds = creator.build_single_task_commands(graph.tasks[0])
        else:
            cmds = creator.build_graph_commands(graph)
    except (ValueError, TypeError) as exc:
        _error(f"Error building commands: {exc}")
        return 2

    if dry_run:
        sys.stdout.write(format_dry_run_output(cmds))
        if output == "json":
            _write_json(result, None)
        return 0

    try:
        creation = execute_commands(cmds)
    except CommandFailed as exc:
        _error(f"Error: {exc}")
        if output == "text":
            sys.stdout.write(format_text_output(exc.result))
        return 2
    except BdError as exc:
        _error(f"Error: {exc}")
        return 2

    if output == "text":
        sys.stdout.write(format_text_output(creation))
    else:
        _write_json(result, format_json_output(creation))
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the command; return 0 when valid, 1 when invalid, 2 on any other failure."""
    try:
        options = _parser().parse_args(argv)
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else 2

    if options.mode == "task":
        mode = Mode.SINGLE_TASK
    elif options.mode == "graph":
        mode = Mode.TASK_GRAPH
    else:
        _error(f"Error: invalid mode '{options.mode}'. Must be 'task' or 'graph'.")
        return 2

    if options.output not in ("text", "json"):
        _error(f"Error: invalid output format '{options.output}'. Must be 'text' or 'json'.")
        return 2

    if options.dry_run and not options.create_beads:
        _error("Error: --dry-run requires --create-beads.")
        return 2

    try:
        data, filename = read_input(options.files)
    except ValueError as exc:
        _error(f"Error: {exc}")
        return 2

    try:
        result = validate(data, mode)
    except ValueError as exc:
        _error(f"Internal error: {exc}")
        return 2

    if options.output == "text":
        sys.stdout.write(format_validation_text(result))

    if not result.valid:
        if options.output == "json":
            _write_json(result, None)
        return 1

    if options.create_beads:
        return _create_beads(
            result, mode, options.dry_run, options.epic_title, filename, options.output
        )
    if options.output == "json":
        _write_json(result, None)
    return 0


if __name__ == "__main__":
    sys.exit(main())