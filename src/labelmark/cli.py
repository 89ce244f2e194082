"""Command-line interface for labelmark conversions."""
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import traceback
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from .labelmark import convert, plain_text, render_text, sanitize_html
from .resources import load_cheatsheet

COMMANDS = "svg, html, plain, lines, cheatsheet"


@dataclass
class CliError(Exception):
    code: str
    message: str
    hint: Optional[str] = None
    exit_code: int = 1
    file: Optional[str] = None
    retryable: bool = False


class UsageError(Exception):
    pass


class FriendlyArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:  # pragma: no cover - argparse callback
        raise UsageError(message)


def _add_input_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("input", nargs="?", help="File holding the label markup")
    parser.add_argument("--text", help="Raw label markup")


def _build_parser() -> argparse.ArgumentParser:
    parser = FriendlyArgumentParser(
        prog="labelmark",
        description="Convert label markup to SVG text runs, sanitized HTML or plain text.",
    )
    parser.add_argument("--error-format", choices=["text", "json"], default="text")
    parser.add_argument("--debug", action="store_true")

    subparsers = parser.add_subparsers(dest="command")

    svg_parser = subparsers.add_parser("svg", help="Emit an SVG <text> element")
    _add_input_arguments(svg_parser)
    svg_parser.add_argument("-o", "--output", help="Output file path")

    html_parser = subparsers.add_parser("html", help="Emit sanitized HTML")
    _add_input_arguments(html_parser)

    plain_parser = subparsers.add_parser("plain", help="Emit plain text")
    _add_input_arguments(plain_parser)
    plain_parser.add_argument("--max-length", type=int, help="Truncate with '...' past this length")

    lines_parser = subparsers.add_parser("lines", help="Emit laid-out lines as JSON")
    _add_input_arguments(lines_parser)

    subparsers.add_parser("cheatsheet", help="Print supported markup reference")

    return parser


def _read_input(path: Optional[str], text: Optional[str]) -> str:
    if path and text is not None:
        raise CliError(
            "E_ARGS",
            "--text cannot be combined with file input",
            hint="Use either FILE or --text.",
            exit_code=2,
        )

    if text is not None:
        return text

    if path:
        input_path = Path(path)
        if not input_path.exists():
            raise CliError(
                "E_IO_READ",
                f"input file not found: {input_path}",
                exit_code=2,
                file=str(input_path),
            )
        try:
            return input_path.read_text(encoding="utf-8")
        except OSError as exc:
            raise CliError(
                "E_IO_READ",
                f"failed to read input file: {input_path}",
                hint=str(exc),
                exit_code=2,
                file=str(input_path),
            )

    if sys.stdin.isatty():
        raise CliError(
            "E_ARGS",
            "no input provided",
            hint="Use a subcommand with FILE, --text, or pipe stdin.",
            exit_code=2,
        )

    return sys.stdin.read()


def _write_text(path: Path, content: str) -> None:
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise CliError(
            "E_IO_WRITE",
            f"failed to write output file: {path}",
            hint=str(exc),
            exit_code=4,
            file=str(path),
            retryable=True,
        )


def _error_from_exception(exc: Exception) -> CliError:
    if isinstance(exc, CliError):
        return exc
    if isinstance(exc, ValueError):
        return CliError(
            "E_ARGS",
            str(exc),
            hint="Check option values and retry.",
            exit_code=2,
        )
    return CliError(
        "E_INTERNAL",
        str(exc) or exc.__class__.__name__,
        hint="Re-run with --debug to see traceback.",
        exit_code=1,
    )


def _emit_error(err: CliError, *, error_format: str) -> None:
    if error_format == "json":
        payload = {
            "ok": False,
            "code": err.code,
            "message": err.message,
            "file": err.file,
            "hint": err.hint,
            "retryable": err.retryable,
        }
        sys.stderr.write(json.dumps(payload) + "\n")
        return

    sys.stderr.write(f"error[{err.code}]: {err.message}\n")
    if err.hint:
        sys.stderr.write(f"hint: {err.hint}\n")


def _write_stdout(content: str) -> None:
    sys.stdout.write(content)
    if not content.endswith("\n"):
        sys.stdout.write("\n")


def _handle_svg(args: argparse.Namespace) -> int:
    source = _read_input(args.input, args.text)
    svg_text = ET.tostring(render_text(source), encoding="unicode")
    if not args.output:
        _write_stdout(svg_text)
        return 0
    output_path = Path(args.output)
    _write_text(output_path, svg_text)
    print(f"Wrote {output_path}")
    return 0


def _handle_html(args: argparse.Namespace) -> int:
    _write_stdout(sanitize_html(_read_input(args.input, args.text)))
    return 0


def _handle_plain(args: argparse.Namespace) -> int:
    source = _read_input(args.input, args.text)
    _write_stdout(plain_text(source, max_length=args.max_length))
    return 0


def _handle_lines(args: argparse.Namespace) -> int:
    lines = convert(_read_input(args.input, args.text))
    _write_stdout(json.dumps([line.to_dict() for line in lines], ensure_ascii=False, indent=2))
    return 0


def main(argv: Optional[Iterable[str]] = None) -> int:
    raw_argv = list(argv) if argv is not None else sys.argv[1:]
    parser = _build_parser()

    if not raw_argv:
        err = CliError(
            "E_ARGS",
            "missing subcommand",
            hint=f"Use one of: {COMMANDS}.",
            exit_code=2,
        )
        _emit_error(err, error_format="text")
        return err.exit_code

    debug_enabled = "--debug" in raw_argv or os.getenv("LABELMARK_DEBUG") == "1"
    logging.basicConfig(
        level=logging.DEBUG if debug_enabled else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    error_format = "text"
    if "--error-format" in raw_argv:
        idx = raw_argv.index("--error-format")
        if idx + 1 < len(raw_argv):
            error_format = raw_argv[idx + 1]

    try:
        args = parser.parse_args(raw_argv)
        error_format = args.error_format

        if args.command == "svg":
            return _handle_svg(args)
        if args.command == "html":
            return _handle_html(args)
        if args.command == "plain":
            return _handle_plain(args)
        if args.command == "lines":
            return _handle_lines(args)
        if args.command == "cheatsheet":
            print(load_cheatsheet())
            return 0

        raise CliError(
            "E_ARGS",
            "missing subcommand",
            hint=f"Use one of: {COMMANDS}.",
            exit_code=2,
        )
    except UsageError as exc:
        err = CliError(
            "E_ARGS",
            str(exc),
            hint=f"Use subcommands: {COMMANDS}.",
            exit_code=2,
        )
        _emit_error(err, error_format=error_format)
        return err.exit_code
    except Exception as exc:  # pragma: no cover - exercised in integration tests
        err = _error_from_exception(exc)
        _emit_error(err, error_format=error_format)
        if debug_enabled:
            traceback.print_exc(file=sys.stderr)
        return err.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
