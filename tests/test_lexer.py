from __future__ import annotations

import unittest

from stellang import evaluate_with_errors
from stellang.errors import ExceptionKind, ExceptionValue
from stellang.lexer import KEYWORDS, LexError, tokenize


def _kinds(source: str) -> list[tuple[str, str]]:
    return [(tok.kind, tok.text) for tok in tokenize(source)[:-1]]


class LexerTests(unittest.TestCase):
    def test_stream_ends_with_eof(self) -> None:
        tokens = tokenize("")
        self.assertEqual(len(tokens), 1)
        self.assertEqual(tokens[0].kind, "EOF")

    def test_numbers_strings_and_names(self) -> None:
        self.assertEqual(
            _kinds('let x = 12 + 3.5 "hi"'),
            [
                ("KEYWORD", "let"),
                ("NAME", "x"),
                ("OP", "="),
                ("INT", "12"),
                ("OP", "+"),
                ("FLOAT", "3.5"),
                ("STRING", "hi"),
            ],
        )

    def test_imaginary_and_bytes_literals(self) -> None:
        self.assertEqual(_kinds('2j b"ab"'), [("IMAG", "2"), ("BYTES", "ab")])

    def test_multi_character_operators_use_maximal_munch(self) -> None:
        ops = ["**", "//", "==", "!=", "<=", ">=", "<<", ">>", "=>", "->", "::"]
        for op in ops:
            with self.subTest(op=op):
                self.assertEqual(_kinds(f"a {op} b")[1], ("OP", op))
        self.assertEqual(_kinds("a<b"), [("NAME", "a"), ("OP", "<"), ("NAME", "b")])

    def test_punctuation(self) -> None:
        kinds = [kind for kind, _ in _kinds("( ) [ ] { } , ; : . @")]
        self.assertEqual(kinds, ["LPAREN", "RPAREN", "LBRACK", "RBRACK", "LBRACE", "RBRACE", "COMMA", "SEMI", "COLON", "DOT", "AT"])

    def test_keywords_are_recognized(self) -> None:
        for word in sorted(KEYWORDS):
            with self.subTest(word=word):
                self.assertEqual(_kinds(word), [("KEYWORD", word)])
        self.assertEqual(_kinds("letter"), [("NAME", "letter")])

    def test_comments_and_whitespace_are_skipped(self) -> None:
        self.assertEqual(_kinds("1 # one\n  2 # two"), [("INT", "1"), ("INT", "2")])

    def test_strings_have_no_escape_processing(self) -> None:
        self.assertEqual(_kinds(r'"a\nb"'), [("STRING", r"a\nb")])

    def test_tokens_record_lines_and_spans(self) -> None:
        tokens = tokenize("a\n  bb")
        self.assertEqual((tokens[0].line, tokens[1].line), (1, 2))
        self.assertEqual((tokens[1].pos, tokens[1].end), (4, 6))

    def test_dot_after_integer_without_digits_stays_separate(self) -> None:
        self.assertEqual(_kinds("1.x"), [("INT", "1"), ("DOT", "."), ("NAME", "x")])

    def test_unterminated_string_is_syntax_error(self) -> None:
        with self.assertRaises(LexError) as ctx:
            tokenize('"abc')
        self.assertIs(ctx.exception.kind, ExceptionKind.SYNTAX_ERROR)
        self.assertEqual(ctx.exception.pos, 0)

    def test_unknown_character_is_syntax_error(self) -> None:
        with self.assertRaises(LexError) as ctx:
            tokenize("1 $ 2")
        self.assertIs(ctx.exception.kind, ExceptionKind.SYNTAX_ERROR)
        self.assertEqual(ctx.exception.pos, 2)

    def test_malformed_numbers_are_value_errors(self) -> None:
        for source in ["12abc", "9223372036854775808"]:
            with self.subTest(source=source):
                with self.assertRaises(LexError) as ctx:
                    tokenize(source)
                self.assertIs(ctx.exception.kind, ExceptionKind.VALUE_ERROR)

    def test_non_ascii_digits_do_not_start_numbers(self) -> None:
        for source in ["²", "٣"]:
            with self.subTest(source=source):
                with self.assertRaises(LexError) as ctx:
                    tokenize(source)
                self.assertIs(ctx.exception.kind, ExceptionKind.SYNTAX_ERROR)
                self.assertEqual(ctx.exception.pos, 0)

    def test_non_ascii_digit_after_a_number_is_a_value_error(self) -> None:
        with self.assertRaises(LexError) as ctx:
            tokenize("1²")
        self.assertIs(ctx.exception.kind, ExceptionKind.VALUE_ERROR)

    def test_non_ascii_digits_surface_as_language_errors(self) -> None:
        out = evaluate_with_errors("²")
        self.assertIsInstance(out, ExceptionValue)
        self.assertIs(out.kind, ExceptionKind.SYNTAX_ERROR)
        out = evaluate_with_errors("3.5²")
        self.assertIsInstance(out, ExceptionValue)
        self.assertIs(out.kind, ExceptionKind.VALUE_ERROR)

    def test_largest_int64_literal_is_accepted(self) -> None:
        self.assertEqual(_kinds("9223372036854775807"), [("INT", "9223372036854775807")])

    def test_non_ascii_bytes_literal_is_rejected(self) -> None:
        with self.assertRaises(LexError):
            tokenize('b"é"')


if __name__ == "__main__":
    unittest.main()
