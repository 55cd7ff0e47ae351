"""AST nodes for the stellang scripting language."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class Integer:
    value: int


@dataclass(frozen=True)
class Float:
    value: float


@dataclass(frozen=True)
class Imaginary:
    value: float


@dataclass(frozen=True)
class String:
    value: str


@dataclass(frozen=True)
class BytesLit:
    value: bytes


@dataclass(frozen=True)
class Bool:
    value: bool


@dataclass(frozen=True)
class Null:
    pass


@dataclass(frozen=True)
class Ident:
    name: str


@dataclass(frozen=True)
class BinaryOp:
    op: str
    left: "Expr"
    right: "Expr"


@dataclass(frozen=True)
class UnaryOp:
    op: str
    operand: "Expr"


@dataclass(frozen=True)
class Assign:
    name: str
    value: "Expr"


@dataclass(frozen=True)
class AssignIndex:
    collection: "Expr"
    index: "Expr"
    value: "Expr"


@dataclass(frozen=True)
class AssignAttr:
    obj: "Expr"
    name: str
    value: "Expr"


@dataclass(frozen=True)
class Destructure:
    names: tuple[str, ...]
    value: "Expr"


@dataclass(frozen=True)
class Block:
    body: tuple["Expr", ...]


@dataclass(frozen=True)
class If:
    cond: "Expr"
    then_branch: Block
    else_branch: "Expr | None" = None


@dataclass(frozen=True)
class While:
    cond: "Expr"
    body: Block


@dataclass(frozen=True)
class For:
    var: str
    iterable: "Expr"
    body: Block


@dataclass(frozen=True)
class MatchArm:
    pattern: "Expr"
    result: "Expr"


@dataclass(frozen=True)
class Match:
    subject: "Expr"
    arms: tuple[MatchArm, ...]


@dataclass(frozen=True)
class TryCatch:
    try_block: Block
    catch_var: str | None
    catch_block: Block


@dataclass(frozen=True)
class Throw:
    value: "Expr"
    cause: "Expr | None" = None


@dataclass(frozen=True)
class Return:
    value: "Expr | None" = None


@dataclass(frozen=True)
class Break:
    pass


@dataclass(frozen=True)
class Continue:
    pass


@dataclass(frozen=True)
class Let:
    name: str
    value: "Expr"


@dataclass(frozen=True)
class Const:
    name: str
    value: "Expr"


@dataclass(frozen=True)
class TypedLet:
    name: str
    type_name: str
    value: "Expr"


@dataclass(frozen=True)
class FnDef:
    name: str
    params: tuple[str, ...]
    body: Block


@dataclass(frozen=True)
class ClassDef:
    name: str
    bases: tuple[str, ...]
    body: tuple["Expr", ...]


@dataclass(frozen=True)
class StructDef:
    name: str
    fields: tuple[str, ...]


@dataclass(frozen=True)
class EnumDef:
    name: str
    variants: tuple[str, ...]


@dataclass(frozen=True)
class FnCall:
    callable: "Expr"
    args: tuple["Expr", ...]


@dataclass(frozen=True)
class Index:
    collection: "Expr"
    index: "Expr"


@dataclass(frozen=True)
class GetAttr:
    obj: "Expr"
    name: str


@dataclass(frozen=True)
class FieldAccess:
    obj: "Expr"
    field: str


@dataclass(frozen=True)
class MethodCall:
    obj: "Expr"
    method: str
    args: tuple["Expr", ...]


@dataclass(frozen=True)
class ClassInit:
    name: str
    args: tuple["Expr", ...]


@dataclass(frozen=True)
class StructInit:
    name: str
    fields: tuple[tuple[str, "Expr"], ...]


@dataclass(frozen=True)
class EnumInit:
    enum: str
    variant: str


@dataclass(frozen=True)
class ArrayLiteral:
    items: tuple["Expr", ...]


@dataclass(frozen=True)
class ListComp:
    element: "Expr"
    var: str
    iterable: "Expr"


@dataclass(frozen=True)
class MapLiteral:
    pairs: tuple[tuple["Expr", "Expr"], ...]


@dataclass(frozen=True)
class SetLiteral:
    items: tuple["Expr", ...]


@dataclass(frozen=True)
class TupleLiteral:
    items: tuple["Expr", ...]


@dataclass(frozen=True)
class Import:
    module: str


@dataclass(frozen=True)
class Program:
    statements: tuple["Expr", ...]


Expr = Union[
    Integer, Float, Imaginary, String, BytesLit, Bool, Null, Ident,
    BinaryOp, UnaryOp, Assign, AssignIndex, AssignAttr, Destructure, Block,
    If, While, For, Match, TryCatch, Throw, Return, Break, Continue,
    Let, Const, TypedLet, FnDef, ClassDef, StructDef, EnumDef,
    FnCall, Index, GetAttr, FieldAccess, MethodCall, ClassInit, StructInit, EnumInit,
    ArrayLiteral, ListComp, MapLiteral, SetLiteral, TupleLiteral, Import,
]
