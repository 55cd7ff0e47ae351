"""Run a stellang script, a one-line program, or the interactive prompt."""

from __future__ import annotations

import argparse
import logging
import os
from typing import Sequence

from . import __version__
from .evaluator import DEFAULT_MAX_CALL_DEPTH, Interpreter
from .repl import run_file, run_repl, run_source

_LOG_LEVEL_DEFAULT = os.environ.get("STELLANG_LOG_LEVEL", "WARNING").upper()


def _positive_int(text: str) -> int:
    value = int(text)
    if value < 1:
        raise argparse.ArgumentTypeError("must be at least 1")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="stel", description=__doc__)
    parser.add_argument("path", nargs="?", help="script to run; omit for the interactive prompt")
    parser.add_argument("-c", "--command", help="program passed in as a string")
    parser.add_argument(
        "--log-level",
        default=_LOG_LEVEL_DEFAULT,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        help="logging verbosity (default from STELLANG_LOG_LEVEL)",
    )
    parser.add_argument(
        "--max-call-depth",
        type=_positive_int,
        default=DEFAULT_MAX_CALL_DEPTH,
        help="nested call limit before RecursionError",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    interpreter = Interpreter(max_call_depth=args.max_call_depth)
    if args.command is not None:
        return run_source(args.command, interpreter)
    if args.path is not None:
        return run_file(args.path, interpreter)
    return run_repl(interpreter)


if __name__ == "__main__":
    raise SystemExit(main())
