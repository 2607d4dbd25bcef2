"""Command-line entry point: ``deferscope FILE``."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .api import dump_ir, validate_source
from .errors import DeferscopeError
from .operators import to_string
from .builtins import error_to_value
from .run import run
from .run_types import RunConfig
from . import constants


def _format_drain(record) -> str:
    return (
        f"  [{record.activation}] frame {record.frame_id} "
        f"({record.frame_kind.value}, {record.mode.value}): "
        f"{record.pending.value} -> {record.outcome.value}, "
        f"{record.executed} run, {record.failures} failed"
    )


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="deferscope",
        description="Run JavaScript/TypeScript with scope-exit deferred actions",
    )
    parser.add_argument("file", help="Source file to run")
    parser.add_argument(
        "--language",
        "-l",
        default=constants.DEFAULT_LANGUAGE,
        choices=constants.SUPPORTED_DETERMINISTIC_LANGUAGES,
        help="Source language (default: javascript)",
    )
    parser.add_argument(
        "--ir-only",
        action="store_true",
        help="Print the lowered IR without validating it and exit",
    )
    parser.add_argument(
        "--check-only", action="store_true", help="Run static validation and exit"
    )
    parser.add_argument(
        "--no-top-level-await",
        action="store_true",
        help="Treat the module body as a synchronous context",
    )
    parser.add_argument("--trace", action="store_true", help="Print every frame drain")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(name)s: %(message)s",
    )

    source = Path(args.file).read_text(encoding="utf-8")
    try:
        if args.ir_only:
            print(dump_ir(source, args.language))
            return 0
        if args.check_only:
            defers = validate_source(
                source, args.language, allow_top_level_await=not args.no_top_level_await
            )
            print(f"OK: {len(defers)} deferred actions")
            return 0
        result = run(
            source,
            RunConfig(
                language=args.language,
                allow_top_level_await=not args.no_top_level_await,
                record_trace=args.trace,
                verbose=args.verbose,
            ),
        )
    except DeferscopeError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    for line in result.output:
        print(line)
    if args.trace:
        print("═══ Drains ═══")
        for record in result.trace.drains:
            print(_format_drain(record))
    for rejection in result.unhandled_rejections:
        print(
            f"Unhandled rejection: {to_string(error_to_value(rejection))}",
            file=sys.stderr,
        )
    if result.error is not None:
        print(f"Uncaught {to_string(result.error_value)}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
