from __future__ import annotations

import contextlib
import io
import tempfile
import unittest
from pathlib import Path

from stellang import Interpreter, __version__
from stellang.__main__ import build_parser, main
from stellang.repl import PROMPT, run_file, run_repl, run_source


class ReplTests(unittest.TestCase):
    def _run(self, text: str) -> tuple[int, str, str]:
        out, err = io.StringIO(), io.StringIO()
        code = run_repl(stdin=io.StringIO(text), stdout=out, stderr=err)
        return code, out.getvalue(), err.getvalue()

    def test_results_are_echoed_and_state_persists(self) -> None:
        code, out, err = self._run("1 + 2\nlet x = 5\nx * 2\n")
        self.assertEqual(code, 0)
        self.assertEqual(out, f"{PROMPT}3\n{PROMPT}{PROMPT}10\n{PROMPT}\n")
        self.assertEqual(err, "")

    def test_errors_are_reported_and_the_loop_continues(self) -> None:
        code, out, err = self._run("1 / 0\n\"ok\"\n")
        self.assertEqual(code, 0)
        self.assertEqual(err, "Error: ZeroDivisionError(division by zero)\n")
        self.assertIn("ok\n", out)

    def test_syntax_errors_do_not_end_the_session(self) -> None:
        code, out, err = self._run("let = 1\n2\n")
        self.assertEqual(code, 0)
        self.assertTrue(err.startswith("Error: SyntaxError("))
        self.assertIn("2\n", out)

    def test_excessive_nesting_does_not_end_the_session(self) -> None:
        depth = 100000
        code, out, err = self._run("(" * depth + "1" + ")" * depth + "\n7\n")
        self.assertEqual(code, 0)
        self.assertEqual(err, "Error: RecursionError(maximum recursion depth exceeded)\n")
        self.assertIn("7\n", out)

    def test_non_ascii_digits_are_reported(self) -> None:
        code, out, err = self._run("²\n8\n")
        self.assertEqual(code, 0)
        self.assertTrue(err.startswith("Error: SyntaxError("))
        self.assertIn("8\n", out)

    def test_blank_lines_are_skipped_and_exit_stops(self) -> None:
        code, out, _ = self._run("\n   \nexit\n99\n")
        self.assertEqual(code, 0)
        self.assertEqual(out, PROMPT * 3)

    def test_print_goes_to_the_session_output(self) -> None:
        _, out, _ = self._run('print("hi", [1])\nquit\n')
        self.assertEqual(out, f'{PROMPT}hi [1]\n{PROMPT}')


class ScriptRunnerTests(unittest.TestCase):
    def test_run_source_exit_codes(self) -> None:
        err = io.StringIO()
        self.assertEqual(run_source("let x = 1", Interpreter(), err), 0)
        self.assertEqual(run_source('throw KeyError("k")', Interpreter(), err), 1)
        self.assertEqual(err.getvalue(), "Error: KeyError(k)\n")

    def test_run_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "hello.stel"
            path.write_text('let name = "file"\nprint("hello", name)\n', encoding="utf-8")
            out = io.StringIO()
            self.assertEqual(run_file(path, Interpreter(stdout=out)), 0)
            self.assertEqual(out.getvalue(), "hello file\n")

    def test_missing_file_is_reported(self) -> None:
        err = io.StringIO()
        with tempfile.TemporaryDirectory() as tmp:
            missing = Path(tmp) / "absent.stel"
            self.assertEqual(run_file(missing, stderr=err), 1)
        self.assertTrue(err.getvalue().startswith("Error: FileNotFoundError("))


class CommandLineTests(unittest.TestCase):
    def test_command_option(self) -> None:
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            self.assertEqual(main(["-c", "print(1 + 1)"]), 0)
        self.assertEqual(out.getvalue(), "2\n")

    def test_command_failure_exit_code(self) -> None:
        err = io.StringIO()
        with contextlib.redirect_stderr(err):
            self.assertEqual(main(["-c", "1 / 0"]), 1)
        self.assertIn("ZeroDivisionError", err.getvalue())

    def test_script_path(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "prog.stel"
            path.write_text("fn sq(n) { n * n }\nprint(sq(7))\n", encoding="utf-8")
            out = io.StringIO()
            with contextlib.redirect_stdout(out):
                self.assertEqual(main([str(path)]), 0)
        self.assertEqual(out.getvalue(), "49\n")

    def test_max_call_depth_option(self) -> None:
        err = io.StringIO()
        with contextlib.redirect_stderr(err):
            code = main(["--max-call-depth", "3", "-c", "fn down(n) { down(n + 1) }\ndown(0)"])
        self.assertEqual(code, 1)
        self.assertIn("RecursionError", err.getvalue())

    def test_invalid_max_call_depth_is_rejected(self) -> None:
        with contextlib.redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit) as ctx:
                build_parser().parse_args(["--max-call-depth", "0"])
        self.assertEqual(ctx.exception.code, 2)

    def test_version(self) -> None:
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            with self.assertRaises(SystemExit) as ctx:
                main(["--version"])
        self.assertEqual(ctx.exception.code, 0)
        self.assertIn(__version__, out.getvalue())


if __name__ == "__main__":
    unittest.main()
