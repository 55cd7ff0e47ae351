"""Recursive-descent parser for the stellang scripting language."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final, NoReturn

from .ast import (
    ArrayLiteral,
    Assign,
    AssignAttr,
    AssignIndex,
    BinaryOp,
    Block,
    Bool,
    Break,
    BytesLit,
    ClassDef,
    ClassInit,
    Const,
    Continue,
    Destructure,
    EnumDef,
    EnumInit,
    Expr,
    FieldAccess,
    Float,
    FnCall,
    FnDef,
    For,
    GetAttr,
    Ident,
    If,
    Imaginary,
    Import,
    Index,
    Integer,
    Let,
    ListComp,
    MapLiteral,
    Match,
    MatchArm,
    MethodCall,
    Null,
    Program,
    Return,
    SetLiteral,
    String,
    StructDef,
    StructInit,
    Throw,
    TryCatch,
    TupleLiteral,
    TypedLet,
    UnaryOp,
    While,
)
from .errors import ExceptionKind, ExceptionValue, StelException
from .lexer import Token, tokenize

# Tightest binding last; each level is left-associative.
_BINARY_LEVELS: Final[tuple[tuple[str, ...], ...]] = (
    ("|",),
    ("^",),
    ("&",),
    ("<<", ">>"),
    ("+", "-"),
    ("*", "/", "%", "//"),
)
_COMPARISON_OPS: Final = frozenset({"<", ">", "<=", ">="})
_UNARY_OPS: Final = frozenset({"-", "~", "!"})
_STATEMENT_KEYWORDS: Final = frozenset(
    {"let", "const", "if", "while", "for", "fn", "return", "break", "continue", "match", "try", "throw", "import", "class", "struct", "enum"}
)
_EXPR_START: Final = ("INT", "FLOAT", "IMAG", "STRING", "BYTES", "NAME", "LPAREN", "LBRACK", "LBRACE")


class ParseError(StelException):
    def __init__(
        self,
        message: str,
        start: int,
        end: int,
        expected: tuple[str, ...] = (),
        found: str | None = None,
    ) -> None:
        self.message = message
        self.start = start
        self.end = end
        self.expected = expected
        self.found = found
        super().__init__(ExceptionValue(kind=ExceptionKind.SYNTAX_ERROR, args=[self._render()]))

    def _render(self) -> str:
        expected_text = ""
        if self.expected:
            expected_text = f"; expected {', '.join(self.expected)}"
        found_text = ""
        if self.found is not None:
            found_text = f"; found {self.found}"
        return f"{self.message} at span [{self.start}, {self.end}){expected_text}{found_text}"

    def __str__(self) -> str:
        return self._render()


@dataclass
class _Parser:
    tokens: list[Token]
    index: int = 0
    # Brace parses by start index, so backtracking never re-parses nested braces.
    _brace_memo: dict[int, tuple[Expr, int] | ParseError] = field(default_factory=dict)

    def parse_program(self) -> Program:
        statements: list[Expr] = []
        self._consume_separators()
        while self._peek().kind != "EOF":
            statements.append(self._parse_statement())
            self._consume_separators()
        return Program(statements=tuple(statements))

    # -- token helpers -------------------------------------------------

    def _peek(self) -> Token:
        return self.tokens[self.index]

    def _peek_next(self) -> Token:
        if self.index + 1 < len(self.tokens):
            return self.tokens[self.index + 1]
        return self.tokens[-1]

    def _previous(self) -> Token:
        return self.tokens[self.index - 1]

    def _advance(self) -> Token:
        tok = self.tokens[self.index]
        if tok.kind != "EOF":
            self.index += 1
        return tok

    def _expect(self, kind: str) -> Token:
        tok = self._peek()
        if tok.kind != kind:
            self._error(tok, expected=(kind,))
        return self._advance()

    def _expect_op(self, text: str) -> Token:
        tok = self._peek()
        if tok.kind != "OP" or tok.text != text:
            self._error(tok, expected=(repr(text),))
        return self._advance()

    def _expect_keyword(self, word: str) -> Token:
        if not self._is_keyword(word):
            self._error(expected=(repr(word),))
        return self._advance()

    def _expect_name(self) -> str:
        return self._expect("NAME").text

    def _is_op(self, *texts: str) -> bool:
        tok = self._peek()
        return tok.kind == "OP" and tok.text in texts

    def _is_keyword(self, *words: str) -> bool:
        tok = self._peek()
        return tok.kind == "KEYWORD" and tok.text in words

    def _match(self, kind: str) -> bool:
        if self._peek().kind == kind:
            self._advance()
            return True
        return False

    def _on_same_line(self) -> bool:
        return self.index == 0 or self._peek().line == self._previous().line

    def _error(self, tok: Token | None = None, *, message: str | None = None, expected: tuple[str, ...] = ()) -> NoReturn:
        token = tok if tok is not None else self._peek()
        detail = message if message is not None else "Unexpected token"
        normalized_expected = tuple(dict.fromkeys(expected))
        if token.kind == "EOF":
            found = "EOF"
        elif token.text:
            found = f"{token.kind}({token.text})"
        else:
            found = token.kind
        raise ParseError(detail, token.pos, token.end, expected=normalized_expected, found=found)

    def _consume_separators(self) -> None:
        while self._peek().kind == "SEMI":
            self._advance()

    def _reject_unsupported(self) -> None:
        tok = self._peek()
        if tok.kind == "AT":
            self._error(tok, message="Decorators are not supported")
        if tok.kind == "KEYWORD" and tok.text in {"async", "await"}:
            self._error(tok, message=f"'{tok.text}' is not supported")

    # -- statements ----------------------------------------------------

    def _parse_statement(self) -> Expr:
        self._reject_unsupported()
        tok = self._peek()
        if tok.kind == "KEYWORD":
            handler = {
                "let": self._parse_let,
                "const": self._parse_const,
                "if": self._parse_if,
                "while": self._parse_while,
                "for": self._parse_for,
                "fn": self._parse_fn_def,
                "return": self._parse_return,
                "match": self._parse_match,
                "try": self._parse_try_catch,
                "throw": self._parse_throw,
                "import": self._parse_import,
                "class": self._parse_class,
                "struct": self._parse_struct,
                "enum": self._parse_enum,
            }.get(tok.text)
            if handler is not None:
                return handler()
            if tok.text == "break":
                self._advance()
                return Break()
            if tok.text == "continue":
                self._advance()
                return Continue()
        return self._parse_expression()

    def _parse_block(self) -> Block:
        self._expect("LBRACE")
        body: list[Expr] = []
        self._consume_separators()
        while self._peek().kind not in {"RBRACE", "EOF"}:
            body.append(self._parse_statement())
            self._consume_separators()
        self._expect("RBRACE")
        return Block(body=tuple(body))

    def _parse_type(self) -> str:
        tok = self._peek()
        if tok.kind not in {"NAME", "KEYWORD"}:
            self._error(tok, message="Expected a type name", expected=("NAME",))
        name = self._advance().text
        if self._match("LBRACK"):
            params = [self._parse_type()]
            while self._match("COMMA"):
                params.append(self._parse_type())
            self._expect("RBRACK")
            return f"{name}[{', '.join(params)}]"
        return name

    def _parse_let(self) -> Expr:
        self._expect_keyword("let")
        name = self._expect_name()
        type_name = None
        if self._match("COLON"):
            type_name = self._parse_type()
        self._expect_op("=")
        value = self._parse_expression()
        if type_name is not None:
            return TypedLet(name=name, type_name=type_name, value=value)
        return Let(name=name, value=value)

    def _parse_const(self) -> Expr:
        self._expect_keyword("const")
        name = self._expect_name()
        if self._match("COLON"):
            self._parse_type()
        self._expect_op("=")
        return Const(name=name, value=self._parse_expression())

    def _parse_if(self) -> Expr:
        self._expect_keyword("if")
        cond = self._parse_logical_or()
        then_branch = self._parse_block()
        else_branch: Expr | None = None
        if self._is_keyword("else"):
            self._advance()
            if self._is_keyword("if"):
                else_branch = self._parse_if()
            else:
                else_branch = self._parse_block()
        return If(cond=cond, then_branch=then_branch, else_branch=else_branch)

    def _parse_while(self) -> Expr:
        self._expect_keyword("while")
        cond = self._parse_logical_or()
        return While(cond=cond, body=self._parse_block())

    def _parse_for(self) -> Expr:
        self._expect_keyword("for")
        var = self._expect_name()
        self._expect_keyword("in")
        iterable = self._parse_logical_or()
        return For(var=var, iterable=iterable, body=self._parse_block())

    def _parse_fn_def(self) -> FnDef:
        self._expect_keyword("fn")
        name = self._expect_name()
        self._expect("LPAREN")
        params: list[str] = []
        while self._peek().kind != "RPAREN":
            param = self._expect_name()
            if param in params:
                self._error(self._previous(), message=f"Duplicate parameter {param!r}")
            params.append(param)
            if self._match("COLON"):
                self._parse_type()
            if not self._match("COMMA"):
                break
        self._expect("RPAREN")
        if self._is_op("->"):
            self._advance()
            self._parse_type()
        self._consume_separators()
        return FnDef(name=name, params=tuple(params), body=self._parse_block())

    def _parse_return(self) -> Expr:
        ret = self._expect_keyword("return")
        tok = self._peek()
        if tok.kind in {"SEMI", "RBRACE", "EOF"} or tok.line != ret.line:
            return Return()
        return Return(value=self._parse_expression())

    def _parse_match(self) -> Expr:
        self._expect_keyword("match")
        subject = self._parse_logical_or()
        self._expect("LBRACE")
        arms: list[MatchArm] = []
        while self._peek().kind not in {"RBRACE", "EOF"}:
            pattern = self._parse_logical_or()
            self._expect_op("=>")
            result = self._parse_statement()
            arms.append(MatchArm(pattern=pattern, result=result))
            while self._peek().kind in {"COMMA", "SEMI"}:
                self._advance()
        self._expect("RBRACE")
        return Match(subject=subject, arms=tuple(arms))

    def _parse_try_catch(self) -> Expr:
        self._expect_keyword("try")
        try_block = self._parse_block()
        self._expect_keyword("catch")
        catch_var = None
        if self._peek().kind == "NAME":
            catch_var = self._advance().text
        return TryCatch(try_block=try_block, catch_var=catch_var, catch_block=self._parse_block())

    def _parse_throw(self) -> Expr:
        self._expect_keyword("throw")
        value = self._parse_logical_or()
        cause = None
        if self._is_keyword("from"):
            self._advance()
            cause = self._parse_logical_or()
        return Throw(value=value, cause=cause)

    def _parse_import(self) -> Expr:
        self._expect_keyword("import")
        tok = self._peek()
        if tok.kind == "STRING":
            self._advance()
            return Import(module=tok.text)
        parts = [self._expect_name()]
        while self._match("DOT"):
            parts.append(self._expect_name())
        return Import(module=".".join(parts))

    def _parse_class(self) -> Expr:
        self._expect_keyword("class")
        name = self._expect_name()
        bases: list[str] = []
        if self._is_keyword("extends"):
            self._advance()
            bases.append(self._expect_name())
        elif self._match("LPAREN"):
            while self._peek().kind != "RPAREN":
                bases.append(self._expect_name())
                if not self._match("COMMA"):
                    break
            self._expect("RPAREN")
        self._expect("LBRACE")
        body: list[Expr] = []
        self._consume_separators()
        while self._peek().kind not in {"RBRACE", "EOF"}:
            if self._is_keyword("fn"):
                body.append(self._parse_fn_def())
            elif self._is_keyword("let"):
                body.append(self._parse_let())
            elif self._peek().kind == "NAME":
                field_name = self._advance().text
                if self._match("COLON"):
                    self._parse_type()
                self._expect_op("=")
                body.append(Assign(name=field_name, value=self._parse_expression()))
            else:
                self._error(message="Class body may only contain methods and field defaults", expected=("fn", "NAME"))
            self._consume_separators()
        self._expect("RBRACE")
        return ClassDef(name=name, bases=tuple(bases), body=tuple(body))

    def _parse_name_list(self) -> tuple[str, ...]:
        self._expect("LBRACE")
        names: list[str] = []
        while self._peek().kind == "NAME":
            names.append(self._advance().text)
            if self._match("COLON"):
                self._parse_type()
            if not self._match("COMMA"):
                break
        self._expect("RBRACE")
        return tuple(names)

    def _parse_struct(self) -> Expr:
        self._expect_keyword("struct")
        name = self._expect_name()
        return StructDef(name=name, fields=self._parse_name_list())

    def _parse_enum(self) -> Expr:
        self._expect_keyword("enum")
        name = self._expect_name()
        return EnumDef(name=name, variants=self._parse_name_list())

    # -- expressions ---------------------------------------------------

    def _parse_expression(self) -> Expr:
        left = self._parse_logical_or()
        if self._is_op("="):
            eq_tok = self._advance()
            value = self._parse_expression()
            if isinstance(left, Ident):
                return Assign(name=left.name, value=value)
            if isinstance(left, Index):
                return AssignIndex(collection=left.collection, index=left.index, value=value)
            if isinstance(left, GetAttr):
                return AssignAttr(obj=left.obj, name=left.name, value=value)
            if isinstance(left, FieldAccess):
                return AssignAttr(obj=left.obj, name=left.field, value=value)
            self._error(eq_tok, message="Invalid assignment target")
        return left

    def _parse_logical_or(self) -> Expr:
        node = self._parse_logical_and()
        while self._is_keyword("or"):
            self._advance()
            node = BinaryOp(op="or", left=node, right=self._parse_logical_and())
        return node

    def _parse_logical_and(self) -> Expr:
        node = self._parse_equality()
        while self._is_keyword("and"):
            self._advance()
            node = BinaryOp(op="and", left=node, right=self._parse_equality())
        return node

    def _parse_equality(self) -> Expr:
        node = self._parse_comparison()
        while self._is_op("==", "!="):
            op = self._advance().text
            node = BinaryOp(op=op, left=node, right=self._parse_comparison())
        return node

    def _parse_comparison(self) -> Expr:
        node = self._parse_binary(0)
        while True:
            tok = self._peek()
            if tok.kind == "OP" and tok.text in _COMPARISON_OPS:
                op = self._advance().text
            elif self._is_keyword("is"):
                self._advance()
                op = "is"
                if self._is_keyword("not"):
                    self._advance()
                    op = "is not"
            elif self._is_keyword("in"):
                self._advance()
                op = "in"
            elif self._is_keyword("not") and self._peek_next().kind == "KEYWORD" and self._peek_next().text == "in":
                self._advance()
                self._advance()
                op = "not in"
            else:
                return node
            node = BinaryOp(op=op, left=node, right=self._parse_binary(0))

    def _parse_binary(self, level: int) -> Expr:
        if level == len(_BINARY_LEVELS):
            return self._parse_power()
        ops = _BINARY_LEVELS[level]
        node = self._parse_binary(level + 1)
        while self._is_op(*ops):
            op = self._advance().text
            node = BinaryOp(op=op, left=node, right=self._parse_binary(level + 1))
        return node

    def _parse_power(self) -> Expr:
        base = self._parse_unary()
        if self._is_op("**"):
            self._advance()
            # Right-associative.
            return BinaryOp(op="**", left=base, right=self._parse_power())
        return base

    def _parse_unary(self) -> Expr:
        if self._is_keyword("not"):
            self._advance()
            return UnaryOp(op="not", operand=self._parse_unary())
        tok = self._peek()
        if tok.kind == "OP" and tok.text in _UNARY_OPS:
            self._advance()
            op = "not" if tok.text == "!" else tok.text
            return UnaryOp(op=op, operand=self._parse_unary())
        return self._parse_postfix()

    def _parse_args(self) -> tuple[Expr, ...]:
        self._expect("LPAREN")
        args: list[Expr] = []
        while self._peek().kind != "RPAREN":
            args.append(self._parse_expression())
            if not self._match("COMMA"):
                break
        self._expect("RPAREN")
        return tuple(args)

    def _parse_postfix(self) -> Expr:
        expr = self._parse_primary()
        while True:
            tok = self._peek()
            if tok.kind == "LPAREN" and self._on_same_line():
                expr = FnCall(callable=expr, args=self._parse_args())
            elif tok.kind == "LBRACK" and self._on_same_line():
                self._advance()
                index = self._parse_expression()
                self._expect("RBRACK")
                expr = Index(collection=expr, index=index)
            elif tok.kind == "DOT":
                self._advance()
                name_tok = self._peek()
                if name_tok.kind not in {"NAME", "KEYWORD"}:
                    self._error(name_tok, expected=("NAME",))
                name = self._advance().text
                if self._peek().kind == "LPAREN" and self._on_same_line():
                    expr = MethodCall(obj=expr, method=name, args=self._parse_args())
                elif isinstance(expr, Ident) and expr.name == "self":
                    expr = FieldAccess(obj=expr, field=name)
                else:
                    expr = GetAttr(obj=expr, name=name)
            elif tok.kind == "OP" and tok.text == "::" and isinstance(expr, Ident):
                self._advance()
                expr = EnumInit(enum=expr.name, variant=self._expect_name())
            else:
                return expr

    def _destructure_names(self) -> list[str] | None:
        """Lookahead for ``a, b, ... =`` starting at the current NAME token."""
        i = self.index
        names = [self.tokens[i].text]
        i += 1
        while self.tokens[i].kind == "COMMA" and self.tokens[i + 1].kind == "NAME":
            names.append(self.tokens[i + 1].text)
            i += 2
        tok = self.tokens[i]
        if len(names) > 1 and tok.kind == "OP" and tok.text == "=":
            self.index = i + 1
            return names
        return None

    def _parse_primary(self) -> Expr:
        self._reject_unsupported()
        tok = self._peek()

        if tok.kind == "INT":
            self._advance()
            return Integer(value=int(tok.text))

        if tok.kind == "FLOAT":
            self._advance()
            return Float(value=float(tok.text))

        if tok.kind == "IMAG":
            self._advance()
            return Imaginary(value=float(tok.text))

        if tok.kind == "STRING":
            self._advance()
            return String(value=tok.text)

        if tok.kind == "BYTES":
            self._advance()
            return BytesLit(value=tok.text.encode("ascii"))

        if tok.kind == "NAME":
            names = self._destructure_names()
            if names is not None:
                return Destructure(names=tuple(names), value=self._parse_expression())
            self._advance()
            return Ident(name=tok.text)

        if tok.kind == "KEYWORD":
            if tok.text in {"true", "false"}:
                self._advance()
                return Bool(value=tok.text == "true")
            if tok.text == "null":
                self._advance()
                return Null()
            if tok.text == "new":
                return self._parse_new()
            if tok.text == "if":
                return self._parse_if()
            if tok.text == "match":
                return self._parse_match()
            if tok.text == "try":
                return self._parse_try_catch()

        if tok.kind == "LPAREN":
            return self._parse_paren()

        if tok.kind == "LBRACK":
            return self._parse_array()

        if tok.kind == "LBRACE":
            return self._parse_brace()

        self._error(tok, expected=_EXPR_START)

    def _parse_new(self) -> Expr:
        self._expect_keyword("new")
        name = self._expect_name()
        if self._peek().kind == "LPAREN":
            return ClassInit(name=name, args=self._parse_args())
        self._expect("LBRACE")
        fields: list[tuple[str, Expr]] = []
        while self._peek().kind != "RBRACE":
            field_name = self._expect_name()
            self._expect("COLON")
            fields.append((field_name, self._parse_expression()))
            if not self._match("COMMA"):
                break
        self._expect("RBRACE")
        return StructInit(name=name, fields=tuple(fields))

    def _parse_paren(self) -> Expr:
        self._expect("LPAREN")
        if self._match("RPAREN"):
            return TupleLiteral(items=())
        first = self._parse_expression()
        if not self._match("COMMA"):
            self._expect("RPAREN")
            return first
        items = [first]
        while self._peek().kind != "RPAREN":
            items.append(self._parse_expression())
            if not self._match("COMMA"):
                break
        self._expect("RPAREN")
        return TupleLiteral(items=tuple(items))

    def _parse_array(self) -> Expr:
        self._expect("LBRACK")
        if self._match("RBRACK"):
            return ArrayLiteral(items=())
        first = self._parse_expression()
        if self._is_keyword("for"):
            self._advance()
            var = self._expect_name()
            self._expect_keyword("in")
            iterable = self._parse_logical_or()
            self._expect("RBRACK")
            return ListComp(element=first, var=var, iterable=iterable)
        items = [first]
        while self._match("COMMA"):
            if self._peek().kind == "RBRACK":
                break
            items.append(self._parse_expression())
        self._expect("RBRACK")
        return ArrayLiteral(items=tuple(items))

    def _parse_brace(self) -> Expr:
        start = self.index
        cached = self._brace_memo.get(start)
        if isinstance(cached, ParseError):
            raise cached
        if cached is not None:
            node, self.index = cached
            return node
        try:
            node = self._parse_brace_form()
        except ParseError as exc:
            self._brace_memo[start] = exc
            raise
        self._brace_memo[start] = (node, self.index)
        return node

    def _parse_brace_form(self) -> Expr:
        """``{}`` and ``{k: v}`` are dicts, ``{a, b}`` is a set, anything else is a block."""
        following = self._peek_next()
        if following.kind == "RBRACE":
            self._advance()
            self._advance()
            return MapLiteral(pairs=())
        if following.kind == "KEYWORD" and following.text in _STATEMENT_KEYWORDS:
            return self._parse_block()

        save = self.index
        self._advance()
        try:
            first = self._parse_logical_or()
        except ParseError:
            self.index = save
            return self._parse_block()

        if self._match("COLON"):
            pairs = [(first, self._parse_expression())]
            while self._match("COMMA"):
                if self._peek().kind == "RBRACE":
                    break
                key = self._parse_logical_or()
                self._expect("COLON")
                pairs.append((key, self._parse_expression()))
            self._expect("RBRACE")
            return MapLiteral(pairs=tuple(pairs))

        if self._match("COMMA"):
            items = [first]
            while self._peek().kind != "RBRACE":
                items.append(self._parse_logical_or())
                if not self._match("COMMA"):
                    break
            self._expect("RBRACE")
            return SetLiteral(items=tuple(items))

        self.index = save
        return self._parse_block()


def parse_tokens(tokens: list[Token]) -> Expr | None:
    program = _Parser(tokens=tokens).parse_program()
    if not program.statements:
        return None
    if len(program.statements) == 1:
        return program.statements[0]
    return Block(body=program.statements)


def parse(source: str) -> Expr | None:
    """Parse source into a single root expression, a Block of statements, or None."""
    return parse_tokens(tokenize(source))


def parse_program(source: str) -> Program:
    tokens = tokenize(source)
    parser = _Parser(tokens=tokens)
    return parser.parse_program()
