"""Tokenization for the stellang scripting language."""

from __future__ import annotations

from dataclasses import dataclass

from .errors import ExceptionKind, ExceptionValue, StelException


@dataclass(frozen=True)
class Token:
    kind: str
    text: str
    pos: int
    end: int
    line: int = 1


class LexError(StelException):
    """Malformed source text, reported with the offending index."""

    def __init__(self, message: str, pos: int, *, kind: ExceptionKind = ExceptionKind.SYNTAX_ERROR) -> None:
        super().__init__(ExceptionValue(kind=kind, args=[f"{message} at index {pos}"]))
        self.message = message
        self.pos = pos


KEYWORDS = frozenset(
    {
        "let",
        "const",
        "if",
        "else",
        "while",
        "for",
        "in",
        "fn",
        "return",
        "break",
        "continue",
        "match",
        "try",
        "catch",
        "throw",
        "import",
        "class",
        "extends",
        "struct",
        "enum",
        "and",
        "or",
        "not",
        "is",
        "true",
        "false",
        "null",
        "new",
        "from",
        "async",
        "await",
    }
)

_SINGLE_TOKENS = {
    "(": "LPAREN",
    ")": "RPAREN",
    "[": "LBRACK",
    "]": "RBRACK",
    "{": "LBRACE",
    "}": "RBRACE",
    ",": "COMMA",
    ";": "SEMI",
    ":": "COLON",
    ".": "DOT",
    "@": "AT",
}

# Longest first: maximal munch.
_MULTI_OPS = ("**", "//", "==", "!=", "<=", ">=", "<<", ">>", "=>", "->", "::")
_SINGLE_OPS = set("+-*/%<>=!&|^~")

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


def _is_digit(ch: str) -> bool:
    return "0" <= ch <= "9"


def _is_ident_start(ch: str) -> bool:
    return ch == "_" or ch.isalpha()


def _is_ident_continue(ch: str) -> bool:
    return ch == "_" or ch.isalnum()


def _scan_while(source: str, start: int, predicate) -> tuple[str, int]:
    i = start
    while i < len(source) and predicate(source[i]):
        i += 1
    return source[start:i], i


def _scan_number(source: str, start: int) -> tuple[str, str, int]:
    i = start
    while i < len(source) and _is_digit(source[i]):
        i += 1
    kind = "INT"
    if i + 1 < len(source) and source[i] == "." and _is_digit(source[i + 1]):
        kind = "FLOAT"
        i += 1
        while i < len(source) and _is_digit(source[i]):
            i += 1
    if i < len(source) and source[i] in {"j", "J"}:
        kind = "IMAG"
        i += 1
        text = source[start : i - 1]
    else:
        text = source[start:i]
    if i < len(source) and _is_ident_continue(source[i]):
        raise LexError(f"Invalid numeric literal {source[start : i + 1]!r}", start, kind=ExceptionKind.VALUE_ERROR)
    if kind == "INT":
        try:
            value = int(text)
        except ValueError:
            raise LexError(f"Invalid numeric literal {text!r}", start, kind=ExceptionKind.VALUE_ERROR) from None
        if not _INT64_MIN <= value <= _INT64_MAX:
            raise LexError(f"Integer literal {text} out of range", start, kind=ExceptionKind.VALUE_ERROR)
    return kind, text, i


def _scan_string(source: str, start: int) -> tuple[str, int]:
    assert source[start] == '"'
    end = source.find('"', start + 1)
    if end < 0:
        raise LexError("Unterminated string literal", start)
    return source[start + 1 : end], end + 1


def tokenize(source: str) -> list[Token]:
    tokens: list[Token] = []
    i = 0
    line = 1

    while i < len(source):
        ch = source[i]

        if ch == "\n":
            line += 1
            i += 1
            continue

        if ch.isspace():
            i += 1
            continue

        if ch == "#":
            while i < len(source) and source[i] != "\n":
                i += 1
            continue

        if ch == '"':
            value, end = _scan_string(source, i)
            tokens.append(Token("STRING", value, i, end, line))
            line += value.count("\n")
            i = end
            continue

        if ch == "b" and i + 1 < len(source) and source[i + 1] == '"':
            value, end = _scan_string(source, i + 1)
            if not value.isascii():
                raise LexError("Bytes literal may only contain ASCII characters", i)
            tokens.append(Token("BYTES", value, i, end, line))
            line += value.count("\n")
            i = end
            continue

        if _is_digit(ch):
            kind, text, end = _scan_number(source, i)
            tokens.append(Token(kind, text, i, end, line))
            i = end
            continue

        if _is_ident_start(ch):
            ident, end = _scan_while(source, i, _is_ident_continue)
            kind = "KEYWORD" if ident in KEYWORDS else "NAME"
            tokens.append(Token(kind, ident, i, end, line))
            i = end
            continue

        multi = next((op for op in _MULTI_OPS if source.startswith(op, i)), None)
        if multi is not None:
            tokens.append(Token("OP", multi, i, i + len(multi), line))
            i += len(multi)
            continue

        if ch in _SINGLE_TOKENS:
            tokens.append(Token(_SINGLE_TOKENS[ch], ch, i, i + 1, line))
            i += 1
            continue

        if ch in _SINGLE_OPS:
            tokens.append(Token("OP", ch, i, i + 1, line))
            i += 1
            continue

        raise LexError(f"Unexpected character {ch!r}", i)

    tokens.append(Token("EOF", "", len(source), len(source), line))
    return tokens
