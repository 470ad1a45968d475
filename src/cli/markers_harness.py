# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""CLI harness listing the markers and anchors found in a source tree."""

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, TextIO

import pathspec
from rich.console import Console
from rich.logging import RichHandler
from rich.style import Style
from rich.table import Table

from srcmark import DEFAULT_DELIMITER, Marker, MarkerError, Markers, Position, Reporter

logger = logging.getLogger(__name__)

TABLE_COLUMN_RATIOS: dict[str, int] = {
    "name": 2,
    "method": 2,
    "line": 1,
    "column": 1,
    "offset": 1,
    "args": 5,
}


def configure_logging(level: int = logging.INFO) -> None:
    """Configure application logging with Rich handler.

    Args:
        level: Logging severity threshold.
    """
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser instance.
    """
    parser = argparse.ArgumentParser(prog="srcmark")
    subparsers = parser.add_subparsers(dest="command", required=True)
    for command in ("anchors", "markers"):
        command_parser = subparsers.add_parser(command)
        command_parser.add_argument(
            "--path", required=True, help="Source file or directory to scan."
        )
        command_parser.add_argument(
            "--glob",
            default="*",
            help="File name pattern applied when --path is a directory.",
        )
        command_parser.add_argument(
            "--delimiter",
            default=DEFAULT_DELIMITER.decode("utf-8"),
            help="Marker comment prefix.",
        )
        command_parser.add_argument(
            "--format",
            choices=("table", "json"),
            default="table",
            help="Output format.",
        )
        command_parser.add_argument(
            "--output",
            required=False,
            help="Optional output file path for raw JSON when --format json is used.",
        )
    return parser


def run(argv: list[str], stdout: TextIO, stderr: TextIO) -> int:
    """Run CLI command.

    Args:
        argv: CLI arguments.
        stdout: Standard output stream.
        stderr: Standard error stream.

    Returns:
        Exit code.
    """
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit:
        logger.warning(f"Argument parsing failed (argv={argv})")
        return 2
    if not args.delimiter:
        stderr.write("delimiter must not be empty\n")
        return 2

    root_path = Path(args.path)
    if not root_path.exists():
        logger.warning(f"Path does not exist (path={root_path})")
        stderr.write(f"Path does not exist: {root_path}\n")
        return 2

    try:
        files = discover_files(root_path=root_path, pattern=args.glob)
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning(f"Failed to read .gitignore files (error={exc})")
        stderr.write(f"Failed to read .gitignore files: {exc}\n")
        return 2

    reporter = Reporter()
    markers = Markers(delimiter=args.delimiter.encode("utf-8"), reporter=reporter)
    try:
        for file_path in files:
            markers.extract(str(file_path))
        anchors = markers.anchors()
    except MarkerError as exc:
        logger.warning(f"Marker processing failed (path={root_path} error={exc})")
        stderr.write(f"{exc}\n")
        return 2
    logger.info(
        f"Marker scan completed (path={root_path} files={len(files)} "
        f"markers={len(markers.markers)} anchors={len(anchors)})"
    )

    if args.command == "anchors":
        rows = [_anchor_row(name, position) for name, position in sorted(anchors.items())]
    else:
        rows = [_marker_row(marker) for marker in markers.markers]
    payload = {"rows": rows, "issues": [asdict(issue) for issue in reporter.issues]}

    for issue in reporter.issues:
        stderr.write(f"marker_issue: {issue}\n")
    if args.format == "json":
        if args.output:
            try:
                _write_json_file(payload=payload, output_path=Path(args.output))
            except OSError as exc:
                logger.warning(
                    f"Failed to write JSON output file (output_path={args.output} error={exc})"
                )
                stderr.write(f"Failed to write JSON output file: {args.output}\n")
                return 2
        else:
            _write_json(payload=payload, stdout=stdout)
    else:
        _write_table(rows=rows, stdout=stdout)
    return 1 if reporter.failed else 0


def discover_files(root_path: Path, pattern: str) -> list[Path]:
    """List the files to scan beneath a root, honouring .gitignore files.

    Args:
        root_path: Single file or directory.
        pattern: File name glob applied within directories.

    Returns:
        Sorted file paths.
    """
    if root_path.is_file():
        return [root_path]
    ignored = load_ignore_spec(root_path)
    files: list[Path] = []
    for file_path in sorted(root_path.rglob(pattern)):
        relative = file_path.relative_to(root_path)
        if ".git" in relative.parts or not file_path.is_file():
            continue
        if ignored.match_file(relative.as_posix()):
            continue
        files.append(file_path)
    return files


def load_ignore_spec(root_path: Path) -> pathspec.GitIgnoreSpec:
    """Compile every .gitignore beneath a scan root into one spec.

    Patterns from nested .gitignore files are rebased onto the scan root so
    a single spec answers for all root-relative paths.

    Args:
        root_path: Directory being scanned.

    Returns:
        Spec matching the root-relative POSIX paths to skip.

    Raises:
        OSError: If a .gitignore file cannot be read.
        UnicodeDecodeError: If a .gitignore file is not valid UTF-8.
    """
    patterns: list[str] = []
    for ignore_file in sorted(root_path.rglob(".gitignore")):
        directory = ignore_file.parent.relative_to(root_path)
        if ".git" in directory.parts:
            continue
        lines = ignore_file.read_text(encoding="utf-8").splitlines()
        patterns.extend(_rebase_pattern(line, directory.as_posix()) for line in lines)
    logger.debug(f"Loaded ignore patterns (root={root_path} patterns={len(patterns)})")
    return pathspec.GitIgnoreSpec.from_lines(patterns)


def _anchor_row(name: str, position: Position) -> dict[str, Any]:
    row: dict[str, Any] = {"name": name}
    row.update(asdict(position))
    return row


def _marker_row(marker: Marker) -> dict[str, Any]:
    return {
        "method": marker.method,
        "filename": marker.line.file.name,
        "line": marker.line.number,
        "args": [str(arg) for arg in marker.args],
    }


def _write_json(payload: dict[str, Any], stdout: TextIO) -> None:
    """Print the JSON payload to the output stream.

    Args:
        payload: Rows and issues to serialize.
        stdout: Standard output stream.
    """
    console = Console(file=stdout, force_terminal=False, color_system="truecolor")
    console.print(
        json.dumps(payload, indent=2, sort_keys=True),
        markup=False,
        highlight=False,
        soft_wrap=True,
    )


def _write_json_file(payload: dict[str, Any], output_path: Path) -> None:
    """Write raw JSON payload to an output file.

    Args:
        payload: Rows and issues to serialize.
        output_path: Destination file; parent directories are created.

    Raises:
        OSError: If directory creation or file writing fails.
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")


def _write_table(rows: list[dict[str, Any]], stdout: TextIO) -> None:
    """Write rows grouped by file as Rich tables.

    Args:
        rows: Anchor or marker rows.
        stdout: Standard output stream.
    """
    console = Console(file=stdout, force_terminal=False, color_system="truecolor")
    rows_by_file: dict[str, list[dict[str, Any]]] = {}
    for row in rows:
        rows_by_file.setdefault(row["filename"], []).append(row)

    for filename in sorted(rows_by_file):
        console.rule(filename, style=Style(color="cyan"), characters="-")
        file_rows = rows_by_file[filename]
        columns = [key for key in file_rows[0] if key != "filename"]
        table = Table(show_header=True, show_lines=True, expand=True)
        for column in columns:
            table.add_column(
                column,
                ratio=TABLE_COLUMN_RATIOS.get(column, 1),
                justify="right" if column in ("line", "column", "offset") else "left",
                overflow="fold",
            )
        for row in file_rows:
            table.add_row(*[_cell(row[column]) for column in columns])
        console.print(table)


def _cell(value: Any) -> str:
    if isinstance(value, list):
        return ", ".join(str(item) for item in value)
    return str(value)


def _rebase_pattern(line: str, directory: str) -> str:
    """Rewrite a pattern from a nested .gitignore relative to the scan root.

    A pattern containing an inner slash is anchored to its own directory;
    any other pattern matches at every depth below that directory.
    """
    stripped = line.strip()
    if directory == "." or not stripped or stripped.startswith("#"):
        return line
    negated = stripped.startswith("!")
    body = stripped[1:] if negated else stripped
    if "/" in body.rstrip("/"):
        rebased = f"{directory}/{body.lstrip('/')}"
    else:
        rebased = f"{directory}/**/{body}"
    return f"!{rebased}" if negated else rebased


def main() -> None:
    """Run the CLI application and exit."""
    configure_logging()
    exit_code = run(sys.argv[1:], stdout=sys.stdout, stderr=sys.stderr)
    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
