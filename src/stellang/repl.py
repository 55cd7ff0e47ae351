"""Interactive loop and script runner."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TextIO

from .errors import ExceptionKind, StelException, make_error
from .evaluator import Interpreter
from .values import display

logger = logging.getLogger(__name__)

PROMPT = ">>> "
_EXIT_COMMANDS = frozenset({"exit", "quit"})


def _report(exc: StelException, stderr: TextIO) -> None:
    stderr.write(f"Error: {exc.value.format()}\n")
    stderr.flush()


def run_source(source: str, interpreter: Interpreter, stderr: TextIO | None = None) -> int:
    """Evaluate a whole program; returns the process exit code."""
    err = sys.stderr if stderr is None else stderr
    try:
        interpreter.run(source)
    except StelException as exc:
        logger.debug("program failed:\n%s", exc.value.format_chain())
        _report(exc, err)
        return 1
    return 0


def run_file(path: str | Path, interpreter: Interpreter | None = None, stderr: TextIO | None = None) -> int:
    err = sys.stderr if stderr is None else stderr
    try:
        source = Path(path).read_text(encoding="utf-8")
    except FileNotFoundError:
        _report(make_error(ExceptionKind.FILE_NOT_FOUND_ERROR, f"No such file: {path}"), err)
        return 1
    except (OSError, UnicodeDecodeError) as exc:
        _report(make_error(ExceptionKind.OS_ERROR, f"{path}: {exc}"), err)
        return 1
    return run_source(source, interpreter or Interpreter(), err)


def run_repl(
    interpreter: Interpreter | None = None,
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
    stderr: TextIO | None = None,
) -> int:
    """Read-eval-print loop. Every line is evaluated in one persistent environment."""
    in_stream = sys.stdin if stdin is None else stdin
    out_stream = sys.stdout if stdout is None else stdout
    err_stream = sys.stderr if stderr is None else stderr
    if interpreter is None:
        interpreter = Interpreter(stdout=out_stream, stdin=in_stream)

    while True:
        out_stream.write(PROMPT)
        out_stream.flush()
        line = in_stream.readline()
        if line == "":
            out_stream.write("\n")
            return 0
        source = line.strip()
        if not source:
            continue
        if source in _EXIT_COMMANDS:
            return 0
        try:
            result = interpreter.run(source)
        except StelException as exc:
            _report(exc, err_stream)
            continue
        if result is not None:
            out_stream.write(display(result) + "\n")
