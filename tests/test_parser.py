from __future__ import annotations

import unittest

from stellang.ast import (
    ArrayLiteral,
    Assign,
    AssignAttr,
    AssignIndex,
    BinaryOp,
    Block,
    ClassDef,
    ClassInit,
    Destructure,
    EnumInit,
    FieldAccess,
    FnCall,
    FnDef,
    GetAttr,
    Ident,
    Import,
    Index,
    Integer,
    Let,
    ListComp,
    MapLiteral,
    Match,
    MatchArm,
    MethodCall,
    Program,
    Return,
    SetLiteral,
    String,
    StructInit,
    Throw,
    TupleLiteral,
    TypedLet,
    UnaryOp,
)
from stellang.errors import ExceptionKind
from stellang.parser import ParseError, parse, parse_program


class ParserPrecedenceTests(unittest.TestCase):
    def test_multiplication_binds_tighter_than_addition(self) -> None:
        self.assertEqual(
            parse("1 + 2 * 3"),
            BinaryOp("+", Integer(1), BinaryOp("*", Integer(2), Integer(3))),
        )

    def test_power_is_right_associative(self) -> None:
        self.assertEqual(
            parse("2 ** 3 ** 2"),
            BinaryOp("**", Integer(2), BinaryOp("**", Integer(3), Integer(2))),
        )

    def test_subtraction_is_left_associative(self) -> None:
        self.assertEqual(
            parse("5 - 2 - 1"),
            BinaryOp("-", BinaryOp("-", Integer(5), Integer(2)), Integer(1)),
        )

    def test_comparisons_do_not_chain(self) -> None:
        self.assertEqual(
            parse("1 < 2 < 3"),
            BinaryOp("<", BinaryOp("<", Integer(1), Integer(2)), Integer(3)),
        )

    def test_compound_comparison_operators(self) -> None:
        self.assertEqual(parse("a is not b"), BinaryOp("is not", Ident("a"), Ident("b")))
        self.assertEqual(parse("a not in b"), BinaryOp("not in", Ident("a"), Ident("b")))
        self.assertEqual(parse("a in b"), BinaryOp("in", Ident("a"), Ident("b")))

    def test_logical_operators_sit_below_equality(self) -> None:
        self.assertEqual(
            parse("a == 1 or b and c"),
            BinaryOp(
                "or",
                BinaryOp("==", Ident("a"), Integer(1)),
                BinaryOp("and", Ident("b"), Ident("c")),
            ),
        )

    def test_bitwise_levels(self) -> None:
        self.assertEqual(
            parse("1 | 2 ^ 3 & 4 << 1"),
            BinaryOp(
                "|",
                Integer(1),
                BinaryOp("^", Integer(2), BinaryOp("&", Integer(3), BinaryOp("<<", Integer(4), Integer(1)))),
            ),
        )

    def test_unary_operators(self) -> None:
        self.assertEqual(parse("-x"), UnaryOp("-", Ident("x")))
        self.assertEqual(parse("not x"), UnaryOp("not", Ident("x")))
        self.assertEqual(parse("!x"), UnaryOp("not", Ident("x")))
        self.assertEqual(parse("~x"), UnaryOp("~", Ident("x")))


class ParserFormsTests(unittest.TestCase):
    def test_empty_source_parses_to_none(self) -> None:
        self.assertIsNone(parse(""))
        self.assertIsNone(parse("  # only a comment"))

    def test_multiple_statements_form_a_block(self) -> None:
        self.assertEqual(parse("1; 2"), Block((Integer(1), Integer(2))))
        self.assertEqual(parse_program("1\n2"), Program((Integer(1), Integer(2))))

    def test_assignment_targets(self) -> None:
        self.assertEqual(parse("x = 1"), Assign("x", Integer(1)))
        self.assertEqual(parse("xs[0] = 1"), AssignIndex(Ident("xs"), Integer(0), Integer(1)))
        self.assertEqual(parse("p.x = 1"), AssignAttr(Ident("p"), "x", Integer(1)))
        self.assertEqual(parse("self.x = 1"), AssignAttr(Ident("self"), "x", Integer(1)))
        self.assertEqual(parse("a = b = 2"), Assign("a", Assign("b", Integer(2))))

    def test_invalid_assignment_target_is_rejected(self) -> None:
        for source in ["1 = 2", "f() = 1", "a + b = 3"]:
            with self.subTest(source=source):
                with self.assertRaises(ParseError):
                    parse(source)

    def test_destructuring_assignment(self) -> None:
        self.assertEqual(parse("a, b = pair"), Destructure(("a", "b"), Ident("pair")))

    def test_postfix_chain(self) -> None:
        self.assertEqual(parse("xs[0]"), Index(Ident("xs"), Integer(0)))
        self.assertEqual(parse("f(1, 2)"), FnCall(Ident("f"), (Integer(1), Integer(2))))
        self.assertEqual(parse("obj.m(1)"), MethodCall(Ident("obj"), "m", (Integer(1),)))
        self.assertEqual(parse("obj.f"), GetAttr(Ident("obj"), "f"))
        self.assertEqual(parse("self.f"), FieldAccess(Ident("self"), "f"))
        self.assertEqual(
            parse('"a,b".split(",")[0]'),
            Index(MethodCall(String("a,b"), "split", (String(","),)), Integer(0)),
        )

    def test_call_and_index_do_not_continue_across_newlines(self) -> None:
        self.assertEqual(parse("f\n(1)"), Block((Ident("f"), Integer(1))))
        self.assertEqual(parse("xs\n[1]"), Block((Ident("xs"), ArrayLiteral((Integer(1),)))))

    def test_parenthesized_forms(self) -> None:
        self.assertEqual(parse("()"), TupleLiteral(()))
        self.assertEqual(parse("(1,)"), TupleLiteral((Integer(1),)))
        self.assertEqual(parse("(1, 2)"), TupleLiteral((Integer(1), Integer(2))))
        self.assertEqual(parse("(1)"), Integer(1))

    def test_brace_forms(self) -> None:
        self.assertEqual(parse("{}"), MapLiteral(()))
        self.assertEqual(parse('{"a": 1}'), MapLiteral(((String("a"), Integer(1)),)))
        self.assertEqual(parse("{1, 2}"), SetLiteral((Integer(1), Integer(2))))
        self.assertEqual(parse("{ let x = 1 }"), Block((Let("x", Integer(1)),)))
        self.assertEqual(parse("{ x }"), Block((Ident("x"),)))

    def test_deeply_nested_bare_blocks(self) -> None:
        depth = 30
        node = parse("{ " * depth + "1" + " }" * depth)
        for _ in range(depth):
            self.assertIsInstance(node, Block)
            self.assertEqual(len(node.body), 1)
            node = node.body[0]
        self.assertEqual(node, Integer(1))

    def test_error_inside_deeply_nested_blocks(self) -> None:
        depth = 30
        with self.assertRaises(ParseError):
            parse("{ " * depth + "1 +" + " }" * depth)

    def test_list_comprehension(self) -> None:
        self.assertEqual(
            parse("[x * x for x in xs]"),
            ListComp(BinaryOp("*", Ident("x"), Ident("x")), "x", Ident("xs")),
        )

    def test_typed_let_and_annotated_function(self) -> None:
        self.assertEqual(parse("let x: list[int] = []"), TypedLet("x", "list[int]", ArrayLiteral(())))
        node = parse("fn add(a: int, b: int) -> int { return a + b }")
        self.assertIsInstance(node, FnDef)
        self.assertEqual(node.params, ("a", "b"))
        self.assertEqual(node.body, Block((Return(BinaryOp("+", Ident("a"), Ident("b"))),)))

    def test_bare_return(self) -> None:
        node = parse("fn f() { return }")
        self.assertEqual(node.body, Block((Return(),)))

    def test_duplicate_parameters_are_rejected(self) -> None:
        with self.assertRaises(ParseError):
            parse("fn f(a, a) { a }")

    def test_class_definition(self) -> None:
        node = parse("class B extends A { x = 1 fn m(self) { 1 } }")
        self.assertIsInstance(node, ClassDef)
        self.assertEqual(node.name, "B")
        self.assertEqual(node.bases, ("A",))
        self.assertEqual(node.body[0], Assign("x", Integer(1)))
        self.assertIsInstance(node.body[1], FnDef)
        self.assertEqual(parse("class C(A, B) { }").bases, ("A", "B"))

    def test_struct_and_enum_construction(self) -> None:
        self.assertEqual(parse("new P(1)"), ClassInit("P", (Integer(1),)))
        self.assertEqual(parse("new P { x: 1 }"), StructInit("P", (("x", Integer(1)),)))
        self.assertEqual(parse("Color::Red"), EnumInit("Color", "Red"))

    def test_throw_with_cause(self) -> None:
        self.assertEqual(parse("throw e from c"), Throw(Ident("e"), Ident("c")))
        self.assertEqual(parse('throw "x"'), Throw(String("x")))

    def test_import_forms(self) -> None:
        self.assertEqual(parse("import math"), Import("math"))
        self.assertEqual(parse('import "lib/util.stel"'), Import("lib/util.stel"))

    def test_match_arms_with_optional_commas(self) -> None:
        expected = Match(
            Ident("x"),
            (MatchArm(Integer(1), String("a")), MatchArm(Ident("_"), String("b"))),
        )
        self.assertEqual(parse('match x { 1 => "a", _ => "b" }'), expected)
        self.assertEqual(parse('match x {\n 1 => "a"\n _ => "b"\n}'), expected)


class ParserErrorTests(unittest.TestCase):
    def test_parse_error_is_a_syntax_error_with_span(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            parse("let = 1")
        err = ctx.exception
        self.assertIs(err.kind, ExceptionKind.SYNTAX_ERROR)
        self.assertEqual((err.start, err.end), (4, 5))
        self.assertEqual(err.expected, ("NAME",))
        self.assertIn("at span [4, 5)", str(err))

    def test_unclosed_block_reports_eof(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            parse("if x { 1")
        self.assertEqual(ctx.exception.found, "EOF")

    def test_decorators_and_async_are_rejected(self) -> None:
        sources = {
            "@deco\nfn f() { 1 }": "Decorators",
            "async fn f() { 1 }": "async",
            "let x = await f()": "await",
        }
        for source, needle in sources.items():
            with self.subTest(source=source):
                with self.assertRaises(ParseError) as ctx:
                    parse(source)
                self.assertIn(needle, ctx.exception.message)


if __name__ == "__main__":
    unittest.main()
