"""Tree-walking evaluator for the stellang scripting language."""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import MutableMapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import PurePath
from typing import Any, Final, Iterator, TextIO, overload

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
from .builtins import BUILTIN_FUNCTIONS, FROZEN_NAMES, call_method, get_attribute, iterate
from .errors import (
    BreakSignal,
    ContinueSignal,
    ExceptionKind,
    ExceptionValue,
    ReturnSignal,
    StelError,
    StelException,
    from_python_exception,
    make_error,
)
from .operators import binary_op, unary_op
from .parser import parse_program
from .values import (
    BoundMethod,
    BuiltinFunction,
    BuiltinMethod,
    Class,
    ClassKind,
    EnumVariant,
    Function,
    Instance,
    display,
    ensure_hashable,
    is_truthy,
    type_name,
)

logger = logging.getLogger(__name__)

_PROGRAM_CACHE_MAX: Final[int] = max(1, int(os.environ.get("STELLANG_PROGRAM_CACHE_MAX", "256")))
DEFAULT_MAX_CALL_DEPTH: Final[int] = max(1, int(os.environ.get("STELLANG_MAX_CALL_DEPTH", "1000")))
# Host frames consumed by one language-level call, with room to spare.
_HOST_FRAMES_PER_CALL: Final[int] = 40


@lru_cache(maxsize=_PROGRAM_CACHE_MAX)
def _parse_program_cached(source: str) -> Program:
    logger.debug("program cache miss (%d chars)", len(source))
    return parse_program(source)


@contextmanager
def _host_recursion_headroom(max_call_depth: int) -> Iterator[None]:
    previous = sys.getrecursionlimit()
    wanted = max_call_depth * _HOST_FRAMES_PER_CALL + 1000
    if wanted > previous:
        sys.setrecursionlimit(wanted)
    try:
        yield
    finally:
        sys.setrecursionlimit(previous)


class Scope(MutableMapping[str, object]):
    """Flat name table of one call frame, with the set of names bound by ``const``."""

    def __init__(self, data: dict[str, object] | None = None, constants: set[str] | None = None) -> None:
        self.data: dict[str, object] = {} if data is None else data
        self.constants: set[str] = set() if constants is None else constants

    def __getitem__(self, key: str) -> object:
        return self.data[key]

    def __setitem__(self, key: str, value: object) -> None:
        self.data[key] = value

    def __delitem__(self, key: str) -> None:
        del self.data[key]
        self.constants.discard(key)

    def __iter__(self):
        return iter(self.data)

    def __len__(self) -> int:
        return len(self.data)

    def __contains__(self, key: object) -> bool:
        return key in self.data

    def clone(self) -> "Scope":
        # Shallow: rebinding in the clone is private, containers stay shared.
        return Scope(data=dict(self.data), constants=set(self.constants))


@dataclass
class Interpreter:
    """Evaluation state: the global frame, the function and class tables and the I/O streams."""

    stdout: TextIO = field(default_factory=lambda: sys.stdout)
    stdin: TextIO = field(default_factory=lambda: sys.stdin)
    max_call_depth: int = DEFAULT_MAX_CALL_DEPTH
    globals: Scope = field(default_factory=Scope)
    functions: dict[str, Function] = field(default_factory=dict)
    classes: dict[str, Class] = field(default_factory=dict)
    depth: int = 0

    # -- entry points --------------------------------------------------

    def run(self, source: str) -> object:
        """Parse and evaluate ``source`` in the global frame. Language errors raise StelException."""
        with _host_recursion_headroom(self.max_call_depth):
            try:
                program = _parse_program_cached(source)
            except (RecursionError, MemoryError) as exc:
                raise from_python_exception(exc) from exc
            return self.run_program(program)

    def run_program(self, program: Program) -> object:
        self.depth = 0
        with _host_recursion_headroom(self.max_call_depth):
            try:
                return self._eval_statements(program.statements, self.globals)
            except ReturnSignal as signal:
                return signal.value
            except (BreakSignal, ContinueSignal) as signal:
                raise make_error(ExceptionKind.SYNTAX_ERROR, f"'{signal.kind.value}' outside loop") from None
            except StelError:
                raise
            except (RecursionError, MemoryError, OverflowError, OSError) as exc:
                raise from_python_exception(exc) from exc

    # -- helpers -------------------------------------------------------

    def _eval_statements(self, statements: tuple[Expr, ...], env: Scope) -> object:
        result: object = None
        for stmt in statements:
            result = self._eval(stmt, env)
        return result

    def _lookup(self, name: str, env: Scope) -> object:
        if name in env:
            return env[name]
        if name in self.functions:
            return self.functions[name]
        if name in self.classes:
            return self.classes[name]
        if name in FROZEN_NAMES:
            return FROZEN_NAMES[name]
        if name in BUILTIN_FUNCTIONS:
            return BUILTIN_FUNCTIONS[name]
        raise make_error(ExceptionKind.NAME_ERROR, f"name '{name}' is not defined")

    def _check_writable(self, name: str, env: Scope) -> None:
        if name in FROZEN_NAMES:
            raise make_error(ExceptionKind.TYPE_ERROR, f"cannot assign to {name}")
        if name in env.constants:
            raise make_error(ExceptionKind.TYPE_ERROR, f"cannot reassign constant '{name}'")

    def _bind(self, name: str, value: object, env: Scope, *, const: bool = False) -> None:
        self._check_writable(name, env)
        env[name] = value
        if const:
            env.constants.add(name)

    def _lookup_class(self, name: str, env: Scope) -> Class:
        value = env.get(name, self.classes.get(name))
        if value is None:
            raise make_error(ExceptionKind.NAME_ERROR, f"name '{name}' is not defined")
        if not isinstance(value, Class):
            raise make_error(ExceptionKind.TYPE_ERROR, f"'{name}' is not a class")
        return value

    def _loop_body(self, body: Block, env: Scope) -> tuple[object, bool]:
        """Run one iteration; the flag is True when the loop should stop."""
        try:
            return self._eval_statements(body.body, env), False
        except BreakSignal:
            return None, True
        except ContinueSignal:
            return None, False

    # -- calls ---------------------------------------------------------

    def call_function(self, fn: Function, args: list[Any], caller_env: Scope, instance: Instance | None = None) -> object:
        params = fn.params
        frame = caller_env.clone()
        if instance is not None:
            frame["self"] = instance
            if fn.takes_self:
                params = params[1:]
        if len(args) != len(params):
            raise make_error(
                ExceptionKind.TYPE_ERROR,
                f"{fn.name}() takes {len(params)} positional arguments but {len(args)} were given",
            )
        for param, arg in zip(params, args):
            frame[param] = arg
            frame.constants.discard(param)
        if self.depth >= self.max_call_depth:
            raise make_error(ExceptionKind.RECURSION_ERROR, "maximum recursion depth exceeded")
        self.depth += 1
        try:
            return self._eval_statements(fn.body.body, frame)
        except ReturnSignal as signal:
            return signal.value
        except (BreakSignal, ContinueSignal) as signal:
            raise make_error(ExceptionKind.SYNTAX_ERROR, f"'{signal.kind.value}' outside loop") from None
        finally:
            self.depth -= 1

    def instantiate(self, cls: Class, args: list[Any], env: Scope) -> Instance:
        if cls.kind is ClassKind.ENUM:
            raise make_error(ExceptionKind.TYPE_ERROR, f"cannot instantiate enum '{cls.name}'")
        if cls.kind is ClassKind.STRUCT:
            if len(args) != len(cls.fields):
                raise make_error(
                    ExceptionKind.TYPE_ERROR,
                    f"{cls.name}() takes {len(cls.fields)} positional arguments but {len(args)} were given",
                )
            return Instance(cls=cls, fields=dict(zip(cls.fields, args)))
        instance = Instance(cls=cls, fields=cls.field_defaults())
        init = cls.find_method("__init__")
        if init is not None:
            self.call_function(init, args, env, instance=instance)
        elif args:
            raise make_error(ExceptionKind.TYPE_ERROR, f"{cls.name}() takes no arguments")
        return instance

    def call_value(self, callee: object, args: list[Any], env: Scope) -> object:
        if isinstance(callee, Function):
            return self.call_function(callee, args, env)
        if isinstance(callee, BoundMethod):
            return self.call_function(callee.function, args, env, instance=callee.instance)
        if isinstance(callee, BuiltinMethod):
            return call_method(callee.obj, callee.method_name, args)
        if isinstance(callee, BuiltinFunction):
            return callee.fn(self, args)
        if isinstance(callee, Class):
            return self.instantiate(callee, args, env)
        raise make_error(ExceptionKind.TYPE_ERROR, f"'{type_name(callee)}' object is not callable")

    # -- attributes ----------------------------------------------------

    def _get_attribute(self, obj: object, name: str) -> object:
        if isinstance(obj, Instance):
            if name in obj.fields:
                return obj.fields[name]
            found, value = obj.cls.find_field(name)
            if found:
                return value
            method = obj.cls.find_method(name)
            if method is not None:
                return BoundMethod(instance=obj, function=method)
            raise make_error(ExceptionKind.ATTRIBUTE_ERROR, f"'{obj.class_name}' object has no attribute '{name}'")
        if isinstance(obj, Class):
            if obj.kind is ClassKind.ENUM:
                if name in obj.variants:
                    return EnumVariant(enum_name=obj.name, variant=name)
                raise make_error(ExceptionKind.ATTRIBUTE_ERROR, f"enum '{obj.name}' has no variant '{name}'")
            found, value = obj.find_field(name)
            if found:
                return value
            method = obj.find_method(name)
            if method is not None:
                return method
            raise make_error(ExceptionKind.ATTRIBUTE_ERROR, f"type object '{obj.name}' has no attribute '{name}'")
        return get_attribute(obj, name)

    def _set_attribute(self, obj: object, name: str, value: object) -> None:
        if not isinstance(obj, Instance):
            raise make_error(ExceptionKind.ATTRIBUTE_ERROR, f"'{type_name(obj)}' object has no attribute '{name}'")
        if obj.cls.kind is ClassKind.STRUCT and name not in obj.cls.fields:
            raise make_error(ExceptionKind.ATTRIBUTE_ERROR, f"struct '{obj.class_name}' has no field '{name}'")
        obj.fields[name] = value

    # -- indexing ------------------------------------------------------

    def _index(self, collection: object, index: object) -> object:
        if isinstance(collection, dict):
            key = ensure_hashable(index)
            if key not in collection:
                raise make_error(ExceptionKind.KEY_ERROR, display(key))
            return collection[key]
        if isinstance(collection, (list, tuple, str, bytes, bytearray, range)):
            if not isinstance(index, int) or isinstance(index, bool):
                raise make_error(ExceptionKind.TYPE_ERROR, f"{type_name(collection)} indices must be integers, not {type_name(index)}")
            if not 0 <= index < len(collection):
                raise make_error(ExceptionKind.INDEX_ERROR, f"{type_name(collection)} index out of range")
            return collection[index]
        raise make_error(ExceptionKind.TYPE_ERROR, f"'{type_name(collection)}' object is not subscriptable")

    def _assign_index(self, collection: object, index: object, value: object) -> None:
        if isinstance(collection, dict):
            collection[ensure_hashable(index)] = value
            return
        if isinstance(collection, (list, bytearray)):
            if not isinstance(index, int) or isinstance(index, bool):
                raise make_error(ExceptionKind.TYPE_ERROR, f"{type_name(collection)} indices must be integers, not {type_name(index)}")
            if not 0 <= index < len(collection):
                raise make_error(ExceptionKind.INDEX_ERROR, f"{type_name(collection)} assignment index out of range")
            if isinstance(collection, bytearray):
                if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value <= 255:
                    raise make_error(ExceptionKind.VALUE_ERROR, "byte must be in range(0, 256)")
            collection[index] = value
            return
        raise make_error(ExceptionKind.TYPE_ERROR, f"'{type_name(collection)}' object does not support item assignment")

    # -- definitions ---------------------------------------------------

    def _make_function(self, node: FnDef) -> Function:
        for param in node.params:
            if param in FROZEN_NAMES:
                raise make_error(ExceptionKind.TYPE_ERROR, f"cannot assign to {param}")
        return Function(name=node.name, params=node.params, body=node.body)

    def _define_class(self, node: ClassDef, env: Scope) -> None:
        base = self._lookup_class(node.bases[0], env) if node.bases else None
        if base is not None and base.kind is not ClassKind.CLASS:
            raise make_error(ExceptionKind.TYPE_ERROR, f"cannot inherit from {base.kind.value} '{base.name}'")
        cls = Class(name=node.name, base=base)
        for member in node.body:
            if isinstance(member, FnDef):
                cls.methods[member.name] = self._make_function(member)
            elif isinstance(member, (Assign, Let, TypedLet)):
                cls.fields[member.name] = self._eval(member.value, env)
            else:
                raise make_error(ExceptionKind.SYNTAX_ERROR, "class body may only contain methods and field defaults")
        self.classes[node.name] = cls
        logger.debug("defined class %s (base=%s)", node.name, base.name if base is not None else None)

    def _struct_init(self, node: StructInit, env: Scope) -> Instance:
        cls = self._lookup_class(node.name, env)
        if cls.kind is ClassKind.ENUM:
            raise make_error(ExceptionKind.TYPE_ERROR, f"cannot instantiate enum '{cls.name}'")
        fields = cls.field_defaults()
        for name, expr in node.fields:
            if cls.kind is ClassKind.STRUCT and name not in cls.fields:
                raise make_error(ExceptionKind.ATTRIBUTE_ERROR, f"struct '{cls.name}' has no field '{name}'")
            fields[name] = self._eval(expr, env)
        return Instance(cls=cls, fields=fields)

    # -- exceptions ----------------------------------------------------

    def _coerce_exception(self, value: object) -> ExceptionValue:
        if isinstance(value, ExceptionValue):
            return value
        if isinstance(value, str):
            return ExceptionValue(kind=ExceptionKind.EXCEPTION, args=[value])
        if isinstance(value, BuiltinFunction):
            # A bare constructor such as ``throw ValueError``.
            kind = next((k for k in ExceptionKind if k.value == value.name), None)
            if kind is not None:
                return ExceptionValue(kind=kind)
        raise make_error(ExceptionKind.TYPE_ERROR, "exceptions must derive from BaseException")

    def _eval_try(self, node: TryCatch, env: Scope) -> object:
        try:
            return self._eval_statements(node.try_block.body, env)
        except (StelException, RecursionError) as exc:
            caught = from_python_exception(exc).value
        logger.debug("caught %s", caught.format())
        try:
            if node.catch_var is not None:
                self._bind(node.catch_var, caught, env)
            return self._eval_statements(node.catch_block.body, env)
        except StelException as inner:
            if inner.value is not caught and inner.value.context is None:
                inner.value.with_context(caught)
            raise

    # -- dispatch ------------------------------------------------------

    def _eval(self, expr: Expr, env: Scope) -> object:
        if isinstance(expr, Integer):
            return expr.value

        if isinstance(expr, Float):
            return expr.value

        if isinstance(expr, Imaginary):
            return complex(0.0, expr.value)

        if isinstance(expr, String):
            return expr.value

        if isinstance(expr, BytesLit):
            return expr.value

        if isinstance(expr, Bool):
            return expr.value

        if isinstance(expr, Null):
            return None

        if isinstance(expr, Ident):
            return self._lookup(expr.name, env)

        if isinstance(expr, BinaryOp):
            if expr.op == "and":
                return is_truthy(self._eval(expr.left, env)) and is_truthy(self._eval(expr.right, env))
            if expr.op == "or":
                return is_truthy(self._eval(expr.left, env)) or is_truthy(self._eval(expr.right, env))
            left = self._eval(expr.left, env)
            right = self._eval(expr.right, env)
            return binary_op(expr.op, left, right)

        if isinstance(expr, UnaryOp):
            return unary_op(expr.op, self._eval(expr.operand, env))

        if isinstance(expr, (Let, TypedLet)):
            self._bind(expr.name, self._eval(expr.value, env), env)
            return None

        if isinstance(expr, Const):
            self._bind(expr.name, self._eval(expr.value, env), env, const=True)
            return None

        if isinstance(expr, Assign):
            value = self._eval(expr.value, env)
            self._bind(expr.name, value, env)
            return value

        if isinstance(expr, AssignIndex):
            collection = self._eval(expr.collection, env)
            index = self._eval(expr.index, env)
            value = self._eval(expr.value, env)
            self._assign_index(collection, index, value)
            return value

        if isinstance(expr, AssignAttr):
            obj = self._eval(expr.obj, env)
            value = self._eval(expr.value, env)
            self._set_attribute(obj, expr.name, value)
            return value

        if isinstance(expr, Destructure):
            value = self._eval(expr.value, env)
            items = iterate(value)
            if len(items) < len(expr.names):
                raise make_error(
                    ExceptionKind.VALUE_ERROR,
                    f"not enough values to unpack (expected {len(expr.names)}, got {len(items)})",
                )
            if len(items) > len(expr.names):
                raise make_error(ExceptionKind.VALUE_ERROR, f"too many values to unpack (expected {len(expr.names)})")
            for name, item in zip(expr.names, items):
                self._bind(name, item, env)
            return value

        if isinstance(expr, Block):
            return self._eval_statements(expr.body, env)

        if isinstance(expr, If):
            if is_truthy(self._eval(expr.cond, env)):
                return self._eval_statements(expr.then_branch.body, env)
            if expr.else_branch is not None:
                return self._eval(expr.else_branch, env)
            return None

        if isinstance(expr, While):
            result: object = None
            while is_truthy(self._eval(expr.cond, env)):
                result, stop = self._loop_body(expr.body, env)
                if stop:
                    break
            return result

        if isinstance(expr, For):
            result = None
            for item in iterate(self._eval(expr.iterable, env)):
                self._bind(expr.var, item, env)
                result, stop = self._loop_body(expr.body, env)
                if stop:
                    break
            return result

        if isinstance(expr, Match):
            subject = self._eval(expr.subject, env)
            for arm in expr.arms:
                if isinstance(arm.pattern, Ident) and arm.pattern.name == "_":
                    return self._eval(arm.result, env)
                if subject == self._eval(arm.pattern, env):
                    return self._eval(arm.result, env)
            return None

        if isinstance(expr, TryCatch):
            return self._eval_try(expr, env)

        if isinstance(expr, Throw):
            exc = self._coerce_exception(self._eval(expr.value, env))
            if expr.cause is not None:
                cause = self._eval(expr.cause, env)
                if cause is not None and not isinstance(cause, ExceptionValue):
                    raise make_error(ExceptionKind.TYPE_ERROR, "exception causes must derive from BaseException")
                exc.with_cause(cause)
            raise StelException(exc)

        if isinstance(expr, Return):
            value = None if expr.value is None else self._eval(expr.value, env)
            raise ReturnSignal(value)

        if isinstance(expr, Break):
            raise BreakSignal()

        if isinstance(expr, Continue):
            raise ContinueSignal()

        if isinstance(expr, FnDef):
            self.functions[expr.name] = self._make_function(expr)
            return None

        if isinstance(expr, ClassDef):
            self._define_class(expr, env)
            return None

        if isinstance(expr, StructDef):
            self.classes[expr.name] = Class(
                name=expr.name, kind=ClassKind.STRUCT, fields={name: None for name in expr.fields}
            )
            logger.debug("defined struct %s", expr.name)
            return None

        if isinstance(expr, EnumDef):
            self.classes[expr.name] = Class(name=expr.name, kind=ClassKind.ENUM, variants=expr.variants)
            logger.debug("defined enum %s", expr.name)
            return None

        if isinstance(expr, FnCall):
            callee = expr.callable
            if isinstance(callee, Ident) and callee.name in self.functions:
                fn = self.functions[callee.name]
                return self.call_function(fn, [self._eval(arg, env) for arg in expr.args], env)
            target = self._eval(callee, env)
            return self.call_value(target, [self._eval(arg, env) for arg in expr.args], env)

        if isinstance(expr, Index):
            collection = self._eval(expr.collection, env)
            return self._index(collection, self._eval(expr.index, env))

        if isinstance(expr, (GetAttr, FieldAccess)):
            obj = self._eval(expr.obj, env)
            return self._get_attribute(obj, expr.name if isinstance(expr, GetAttr) else expr.field)

        if isinstance(expr, MethodCall):
            obj = self._eval(expr.obj, env)
            args = [self._eval(arg, env) for arg in expr.args]
            if isinstance(obj, (Instance, Class)):
                return self.call_value(self._get_attribute(obj, expr.method), args, env)
            return call_method(obj, expr.method, args)

        if isinstance(expr, ClassInit):
            cls = self._lookup_class(expr.name, env)
            return self.instantiate(cls, [self._eval(arg, env) for arg in expr.args], env)

        if isinstance(expr, StructInit):
            return self._struct_init(expr, env)

        if isinstance(expr, EnumInit):
            cls = self._lookup_class(expr.enum, env)
            if cls.kind is not ClassKind.ENUM:
                raise make_error(ExceptionKind.TYPE_ERROR, f"'{cls.name}' is not an enum")
            return self._get_attribute(cls, expr.variant)

        if isinstance(expr, ArrayLiteral):
            return [self._eval(item, env) for item in expr.items]

        if isinstance(expr, TupleLiteral):
            return tuple(self._eval(item, env) for item in expr.items)

        if isinstance(expr, SetLiteral):
            return {ensure_hashable(self._eval(item, env)) for item in expr.items}

        if isinstance(expr, MapLiteral):
            result_map: dict[Any, Any] = {}
            for key_expr, value_expr in expr.pairs:
                key = ensure_hashable(self._eval(key_expr, env))
                result_map[key] = self._eval(value_expr, env)
            return result_map

        if isinstance(expr, ListComp):
            scope = env.clone()
            out = []
            for item in iterate(self._eval(expr.iterable, env)):
                self._bind(expr.var, item, scope)
                out.append(self._eval(expr.element, scope))
            return out

        if isinstance(expr, Import):
            name = PurePath(expr.module).stem if "/" in expr.module or expr.module.endswith(".stel") else expr.module.split(".")[0]
            logger.debug("import %r bound as empty module %r", expr.module, name)
            self._bind(name, {}, env)
            return None

        raise make_error(ExceptionKind.SYSTEM_ERROR, f"Unsupported expression node: {type(expr).__name__}")


class EvaluationEnvironment(MutableMapping[str, object]):
    """Persistent evaluation environment for stateful evaluate() calls."""

    def __init__(self, data: MutableMapping[str, object] | None = None, *, interpreter: Interpreter | None = None) -> None:
        self.interpreter = Interpreter() if interpreter is None else interpreter
        if data is not None:
            self.interpreter.globals.data.update(data)

    def __getitem__(self, key: str) -> object:
        return self.interpreter.globals[key]

    def __setitem__(self, key: str, value: object) -> None:
        self.interpreter.globals[key] = value

    def __delitem__(self, key: str) -> None:
        del self.interpreter.globals[key]

    def __iter__(self):
        return iter(self.interpreter.globals)

    def __len__(self) -> int:
        return len(self.interpreter.globals)

    def values(self) -> dict[str, object]:
        return dict(self.interpreter.globals.data)


@dataclass
class StatefulEvaluate:
    """Callable wrapper that evaluates source in a persistent environment."""

    env: EvaluationEnvironment

    def __call__(self, source: str):
        result, _ = evaluate(source, self.env)
        return result


@overload
def evaluate(source: str) -> object:
    ...


@overload
def evaluate(source: str, env: MutableMapping[str, object]) -> object:
    ...


@overload
def evaluate(source: str, env: EvaluationEnvironment) -> tuple[object, EvaluationEnvironment]:
    ...


@overload
def evaluate(env: EvaluationEnvironment) -> StatefulEvaluate:
    ...


@overload
def evaluate(env: MutableMapping[str, object]) -> StatefulEvaluate:
    ...


def evaluate(
    source_or_env: str | EvaluationEnvironment | MutableMapping[str, object],
    env: MutableMapping[str, object] | EvaluationEnvironment | None = None,
):
    """Parse and evaluate stellang source, with optional persistent environment support.

    Language-level failures raise ``StelException``; use ``evaluate_with_errors``
    to receive the ``ExceptionValue`` as an ordinary result instead.
    """
    if isinstance(source_or_env, str):
        if isinstance(env, EvaluationEnvironment):
            result = env.interpreter.run(source_or_env)
            return result, env

        interpreter = Interpreter()
        if env is not None:
            interpreter.globals.data.update(env)
        return interpreter.run(source_or_env)

    if env is not None:
        raise TypeError("evaluate(env) form takes exactly one argument")

    if isinstance(source_or_env, EvaluationEnvironment):
        return StatefulEvaluate(source_or_env)

    if isinstance(source_or_env, MutableMapping):
        return StatefulEvaluate(EvaluationEnvironment(source_or_env))

    raise TypeError("evaluate() expects either source text, an EvaluationEnvironment, or a mapping")


def evaluate_with_errors(source: str, env: EvaluationEnvironment | None = None) -> object:
    """Evaluate ``source``; a lexical, syntactic or runtime failure is returned as its ExceptionValue."""
    try:
        if env is None:
            return evaluate(source)
        result, _ = evaluate(source, env)
        return result
    except StelException as exc:
        return exc.value
