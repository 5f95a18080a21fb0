"""Project validation runner used by the command line entry point."""

from __future__ import annotations

import json
import sys
from pathlib import Path

from clipdeck.storage import PROJECT_FILE_NAME
from clipdeck.validation import ValidationReport, validate_project


def resolve_project_path(target: str, projects_dir: str | Path) -> Path:
    """Map a CLI argument to a project.json path.

    Anything that looks like a path (``.json`` suffix, a separator, a
    leading ``.``, ``/`` or ``~``) is used as one; a bare word is a project
    name under *projects_dir*.
    """
    looks_like_path = (
        target.endswith(".json")
        or "/" in target
        or "\\" in target
        or target.startswith((".", "~"))
    )
    if looks_like_path:
        return Path(target).expanduser().resolve()
    return Path(projects_dir).expanduser() / target / PROJECT_FILE_NAME


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


def print_report(report: ValidationReport) -> None:
    sections = [
        ("STRUCTURE ERRORS", report.structure_errors),
        ("INTEGRITY ERRORS", report.integrity_errors),
        ("WARNINGS", report.warnings),
    ]
    for title, entries in sections:
        if not entries:
            continue
        print(f"{title} ({len(entries)}):")
        for entry in entries:
            print(f"  - {entry}")
        print()

    warning_count = len(report.warnings)
    if report.is_valid:
        suffix = f" ({_plural(warning_count, 'warning')})" if warning_count else ""
        print(f"Result: VALID{suffix}")
    else:
        print(
            f"Result: INVALID ({_plural(report.error_count, 'error')}, "
            f"{_plural(warning_count, 'warning')})"
        )


def run_validate(target: str, projects_dir: str | Path) -> int:
    """Validate a project file and print the report.

    Returns 0 when there are no structure or integrity errors, 1 otherwise
    (including unreadable files and invalid JSON). Warnings never fail.
    """
    file_path = resolve_project_path(target, projects_dir)
    print(f"Validating: {file_path}\n")

    try:
        raw = file_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        print(f"File not found: {file_path}", file=sys.stderr)
        return 1
    except (OSError, UnicodeDecodeError) as e:
        print(f"Error reading file: {e}", file=sys.stderr)
        return 1

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        print(f"Invalid JSON: {e}", file=sys.stderr)
        return 1

    report = validate_project(data, file_path.parent)
    print_report(report)
    return 0 if report.is_valid else 1
