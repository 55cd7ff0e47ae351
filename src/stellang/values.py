"""Runtime value model, truthiness and display form for the stellang evaluator."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from .ast import Block
from .errors import ExceptionKind, ExceptionValue, make_error


class ClassKind(str, Enum):
    CLASS = "class"
    STRUCT = "struct"
    ENUM = "enum"


@dataclass(eq=False)
class Function:
    """User-defined function: a name, positional parameters and a body block."""

    name: str
    params: tuple[str, ...]
    body: Block

    @property
    def takes_self(self) -> bool:
        return bool(self.params) and self.params[0] == "self"


@dataclass(eq=False)
class Class:
    name: str
    kind: ClassKind = ClassKind.CLASS
    methods: dict[str, Function] = field(default_factory=dict)
    fields: dict[str, Any] = field(default_factory=dict)
    base: "Class | None" = None
    variants: tuple[str, ...] = ()

    def mro(self) -> list["Class"]:
        """Linearized hierarchy, derived first."""
        chain: list[Class] = []
        current: Class | None = self
        while current is not None and current not in chain:
            chain.append(current)
            current = current.base
        return chain

    def find_method(self, name: str) -> Function | None:
        for cls in self.mro():
            method = cls.methods.get(name)
            if method is not None:
                return method
        return None

    def find_field(self, name: str) -> tuple[bool, Any]:
        for cls in self.mro():
            if name in cls.fields:
                return True, cls.fields[name]
        return False, None

    def field_defaults(self) -> dict[str, Any]:
        merged: dict[str, Any] = {}
        for cls in reversed(self.mro()):
            merged.update(cls.fields)
        return merged

    def is_subclass(self, other: "Class") -> bool:
        return other in self.mro()


@dataclass(eq=False)
class Instance:
    cls: Class
    fields: dict[str, Any] = field(default_factory=dict)

    @property
    def class_name(self) -> str:
        return self.cls.name


@dataclass(frozen=True)
class EnumVariant:
    enum_name: str
    variant: str


@dataclass(eq=False)
class BoundMethod:
    instance: Instance
    function: Function


@dataclass(eq=False)
class BuiltinMethod:
    """Produced by attribute lookup on a non-instance value; resolved at call time."""

    obj: Any
    method_name: str


@dataclass(eq=False)
class BuiltinFunction:
    name: str
    fn: Callable[..., Any]


_MUTABLE_TYPES = (list, dict, set, bytearray, Instance, ExceptionValue)


def type_name(value: object) -> str:
    if value is None:
        return "NoneType"
    if value is NotImplemented:
        return "NotImplementedType"
    if value is Ellipsis:
        return "ellipsis"
    if isinstance(value, ExceptionValue):
        return str(value.kind)
    if isinstance(value, Instance):
        return value.class_name
    if isinstance(value, Class):
        return "type"
    if isinstance(value, EnumVariant):
        return value.enum_name
    if isinstance(value, Function):
        return "function"
    if isinstance(value, BoundMethod):
        return "method"
    if isinstance(value, (BuiltinMethod, BuiltinFunction)):
        return "builtin_function_or_method"
    return type(value).__name__


def is_number(value: object) -> bool:
    """Arithmetic operand check; bools are deliberately excluded."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_truthy(value: object) -> bool:
    if value is None or value is False:
        return False
    if isinstance(value, bool):
        return True
    if isinstance(value, float):
        return value != 0.0 and not math.isnan(value)
    if isinstance(value, (int, complex)):
        return value != 0
    if isinstance(value, (str, bytes, bytearray, list, tuple, dict, set, frozenset, range)):
        return len(value) > 0
    return True


def is_hashable(value: object) -> bool:
    if isinstance(value, _MUTABLE_TYPES):
        return False
    if isinstance(value, tuple):
        return all(is_hashable(item) for item in value)
    return True


def ensure_hashable(value: object) -> object:
    if not is_hashable(value):
        raise make_error(ExceptionKind.TYPE_ERROR, f"unhashable type: '{type_name(value)}'")
    return value


def is_same(left: object, right: object) -> bool:
    """``is``: identity for mutable values, typed value equality otherwise."""
    if isinstance(left, _MUTABLE_TYPES) or isinstance(right, _MUTABLE_TYPES):
        return left is right
    if isinstance(left, (Class, Function, BoundMethod, BuiltinMethod, BuiltinFunction)):
        return left is right
    return type(left) is type(right) and bool(left == right)


def _display_float(value: float) -> str:
    if math.isfinite(value) and value.is_integer():
        return str(int(value))
    return repr(value)


def _join(items) -> str:
    return ", ".join(display(item) for item in items)


def display(value: object) -> str:
    """Render a value the way ``print`` and the REPL show it."""
    if value is None:
        return "None"
    if value is NotImplemented:
        return "NotImplemented"
    if value is Ellipsis:
        return "Ellipsis"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _display_float(value)
    if isinstance(value, complex):
        return repr(value)
    if isinstance(value, str):
        return value
    if isinstance(value, bytes):
        return f"b[{', '.join(str(b) for b in value)}]"
    if isinstance(value, bytearray):
        return f"bytearray([{', '.join(str(b) for b in value)}])"
    if isinstance(value, list):
        return f"[{_join(value)}]"
    if isinstance(value, tuple):
        if len(value) == 1:
            return f"({display(value[0])},)"
        return f"({_join(value)})"
    if isinstance(value, dict):
        return "{" + ", ".join(f"{display(k)}: {display(v)}" for k, v in value.items()) + "}"
    if isinstance(value, frozenset):
        if not value:
            return "frozenset()"
        return f"frozenset({{{_join(sorted(value, key=sort_key))}}})"
    if isinstance(value, set):
        if not value:
            return "set()"
        return f"{{{_join(sorted(value, key=sort_key))}}}"
    if isinstance(value, range):
        if value.step != 1:
            return f"range({value.start}, {value.stop}, {value.step})"
        return f"range({value.start}, {value.stop})"
    if isinstance(value, ExceptionValue):
        return value.format()
    if isinstance(value, Class):
        return f"<{value.kind.value} {value.name}>"
    if isinstance(value, Instance):
        if value.cls.kind is ClassKind.STRUCT:
            body = ", ".join(f"{name}: {display(v)}" for name, v in value.fields.items())
            return f"{value.class_name} {{ {body} }}"
        return f"<{value.class_name} instance>"
    if isinstance(value, EnumVariant):
        return f"{value.enum_name}::{value.variant}"
    if isinstance(value, Function):
        return f"<function {value.name}>"
    if isinstance(value, BoundMethod):
        return f"<bound method {value.instance.class_name}.{value.function.name}>"
    if isinstance(value, BuiltinMethod):
        return f"<built-in method {value.method_name} of {type_name(value.obj)}>"
    if isinstance(value, BuiltinFunction):
        return f"<built-in function {value.name}>"
    return str(value)


def sort_key(value: object) -> str:
    return display(value)
