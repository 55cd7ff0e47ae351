from __future__ import annotations

import unittest

from stellang import ExceptionKind, ExceptionValue, StelException, evaluate, evaluate_with_errors, is_subkind
from stellang.errors import from_python_exception, make_error, parent_kind


class TryCatchTests(unittest.TestCase):
    def test_runtime_errors_are_catchable_by_kind(self) -> None:
        cases = [
            ("1 / 0", "ZeroDivisionError"),
            ("[1][3]", "IndexError"),
            ('{"a": 1}["b"]', "KeyError"),
            ("nope", "NameError"),
            ('"a" + 1', "TypeError"),
            ('int("x")', "ValueError"),
        ]
        for body, kind in cases:
            with self.subTest(body=body):
                self.assertEqual(evaluate(f"try {{ {body} }} catch e {{ e.kind }}"), kind)

    def test_thrown_values(self) -> None:
        self.assertEqual(evaluate('try { throw ValueError("bad") } catch e { e.message }'), "bad")
        self.assertEqual(evaluate('try { throw "oops" } catch e { [e.kind, e.message] }'), ["Exception", "oops"])
        self.assertEqual(evaluate("try { throw KeyError } catch e { [e.kind, e.args] }"), ["KeyError", ()])

    def test_throwing_a_non_exception_is_type_error(self) -> None:
        self.assertEqual(evaluate("try { throw 5 } catch e { e.kind }"), "TypeError")
        self.assertEqual(evaluate('try { throw ValueError("x") from 5 } catch e { e.kind }'), "TypeError")

    def test_catch_without_a_variable(self) -> None:
        self.assertEqual(evaluate('try { throw "x" } catch { "handled" }'), "handled")

    def test_try_is_an_expression(self) -> None:
        self.assertEqual(evaluate("let r = try { 5 } catch e { 0 }; r"), 5)
        self.assertEqual(evaluate("let r = try { 1 / 0 } catch e { 0 }; r"), 0)

    def test_catch_variable_stays_bound_after_the_handler(self) -> None:
        self.assertEqual(evaluate('try { throw "x" } catch e { 1 }\ne.message'), "x")

    def test_errors_propagate_out_of_functions(self) -> None:
        source = "fn f() { [1][5] }\ntry { f() } catch e { e.kind }"
        self.assertEqual(evaluate(source), "IndexError")

    def test_uncaught_exception_surfaces_as_stel_exception(self) -> None:
        with self.assertRaises(StelException) as ctx:
            evaluate('throw ValueError("boom")')
        self.assertIs(ctx.exception.kind, ExceptionKind.VALUE_ERROR)
        self.assertEqual(ctx.exception.value.args, ["boom"])
        self.assertEqual(str(ctx.exception), "ValueError(boom)")

    def test_evaluate_with_errors_returns_the_exception_value(self) -> None:
        out = evaluate_with_errors('throw IndexError("i")')
        self.assertEqual(out, ExceptionValue(ExceptionKind.INDEX_ERROR, ["i"]))
        self.assertEqual(evaluate_with_errors("1 + 1"), 2)

    def test_concatenating_a_string_with_an_exception_uses_its_message(self) -> None:
        source = 'try { throw ValueError("bad input") } catch error { "Error: " + error }'
        self.assertEqual(evaluate(source), "Error: bad input")


class ExceptionChainingTests(unittest.TestCase):
    def test_implicit_context_from_a_failing_handler(self) -> None:
        source = """
        try {
            try { 1 / 0 } catch e { throw ValueError("wrapped") }
        } catch outer {
            [outer.kind, outer.context.kind, outer.suppress_context]
        }
        """
        self.assertEqual(evaluate(source), ["ValueError", "ZeroDivisionError", False])

    def test_explicit_cause_suppresses_context(self) -> None:
        source = """
        try {
            try { 1 / 0 } catch e { throw ValueError("wrapped") from e }
        } catch outer {
            [outer.cause.kind, outer.suppress_context]
        }
        """
        self.assertEqual(evaluate(source), ["ZeroDivisionError", True])

    def test_from_null_clears_the_cause(self) -> None:
        source = 'try { throw ValueError("x") from null } catch e { [e.cause, e.suppress_context] }'
        self.assertEqual(evaluate(source), [None, True])

    def test_rethrowing_the_caught_value_keeps_context_empty(self) -> None:
        source = """
        try {
            try { throw KeyError("k") } catch e { throw e }
        } catch outer {
            outer.context
        }
        """
        self.assertIsNone(evaluate(source))

    def test_notes_travel_with_the_value(self) -> None:
        source = 'let e = ValueError("x")\ne.add_note("first")\ntry { throw e } catch c { c.notes }'
        self.assertEqual(evaluate(source), ["first"])

    def test_exceptions_are_ordinary_values(self) -> None:
        self.assertEqual(evaluate('let e = KeyError("k"); [e.kind, str(e)]'), ["KeyError", "KeyError(k)"])
        self.assertIs(evaluate('ValueError("a") == ValueError("a")'), True)
        self.assertIs(evaluate('ValueError("a") == TypeError("a")'), False)


class ExceptionKindTests(unittest.TestCase):
    def test_hierarchy(self) -> None:
        self.assertTrue(is_subkind(ExceptionKind.ZERO_DIVISION_ERROR, ExceptionKind.ARITHMETIC_ERROR))
        self.assertTrue(is_subkind(ExceptionKind.KEY_ERROR, ExceptionKind.LOOKUP_ERROR))
        self.assertTrue(is_subkind(ExceptionKind.FILE_NOT_FOUND_ERROR, ExceptionKind.OS_ERROR))
        self.assertTrue(is_subkind(ExceptionKind.VALUE_ERROR, ExceptionKind.BASE_EXCEPTION))
        self.assertTrue(is_subkind(ExceptionKind.TYPE_ERROR, ExceptionKind.TYPE_ERROR))
        self.assertFalse(is_subkind(ExceptionKind.ARITHMETIC_ERROR, ExceptionKind.ZERO_DIVISION_ERROR))
        self.assertFalse(is_subkind(ExceptionKind.KEYBOARD_INTERRUPT, ExceptionKind.EXCEPTION))

    def test_every_kind_reaches_the_root(self) -> None:
        for kind in ExceptionKind:
            with self.subTest(kind=kind.value):
                self.assertTrue(is_subkind(kind, ExceptionKind.BASE_EXCEPTION))
        self.assertIsNone(parent_kind(ExceptionKind.BASE_EXCEPTION))

    def test_every_kind_has_a_constructor(self) -> None:
        for kind in ExceptionKind:
            with self.subTest(kind=kind.value):
                self.assertEqual(evaluate(f'{kind.value}("m").kind'), kind.value)


class ExceptionFormattingTests(unittest.TestCase):
    def test_format(self) -> None:
        self.assertEqual(ExceptionValue(ExceptionKind.VALUE_ERROR, ["a", "b"]).format(), "ValueError(a, b)")
        self.assertEqual(ExceptionValue(ExceptionKind.KEY_ERROR).format(), "KeyError()")

    def test_format_chain_with_cause_and_notes(self) -> None:
        root = ExceptionValue(ExceptionKind.KEY_ERROR, ["k"])
        top = ExceptionValue(ExceptionKind.VALUE_ERROR, ["bad"]).with_cause(root)
        top.add_note("while loading config")
        self.assertEqual(
            top.format_chain(),
            "KeyError(k)\n"
            "The above exception was the direct cause of the following exception:\n"
            "ValueError(bad)\n"
            "while loading config",
        )

    def test_format_chain_with_context(self) -> None:
        root = ExceptionValue(ExceptionKind.KEY_ERROR, ["k"])
        top = ExceptionValue(ExceptionKind.TYPE_ERROR, ["t"]).with_context(root)
        self.assertEqual(
            top.format_chain(),
            "KeyError(k)\nDuring handling of the above exception, another exception occurred:\nTypeError(t)",
        )

    def test_host_exception_translation(self) -> None:
        self.assertIs(from_python_exception(ZeroDivisionError("x")).kind, ExceptionKind.ZERO_DIVISION_ERROR)
        self.assertIs(from_python_exception(FileNotFoundError("f")).kind, ExceptionKind.FILE_NOT_FOUND_ERROR)
        self.assertIs(from_python_exception(RecursionError()).kind, ExceptionKind.RECURSION_ERROR)
        self.assertIs(from_python_exception(LookupError("?")).kind, ExceptionKind.SYSTEM_ERROR)
        existing = make_error(ExceptionKind.VALUE_ERROR, "v")
        self.assertIs(from_python_exception(existing), existing)


if __name__ == "__main__":
    unittest.main()
