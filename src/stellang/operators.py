"""Binary and unary operator semantics."""

from __future__ import annotations

import math
from typing import Any, Callable, Final

from .errors import ExceptionKind, ExceptionValue, make_error
from .values import ensure_hashable, is_number, is_same, is_truthy, type_name

_SEQUENCE_TYPES = (str, list, tuple, bytes, bytearray)
_SET_TYPES = (set, frozenset)
_ORDERED_TYPES = (str, list, tuple, bytes)


def _unsupported(op: str, left: object, right: object):
    return make_error(
        ExceptionKind.TYPE_ERROR,
        f"unsupported operand type(s) for {op}: '{type_name(left)}' and '{type_name(right)}'",
    )


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_numeric(value: object) -> bool:
    return is_number(value) or isinstance(value, complex)


def _repeat(seq: Any, count: int) -> Any:
    if count < 0:
        raise make_error(ExceptionKind.VALUE_ERROR, "negative repetition count")
    return seq * count


def _add(left: Any, right: Any) -> Any:
    if _is_numeric(left) and _is_numeric(right):
        return left + right
    if isinstance(left, str) and isinstance(right, str):
        return left + right
    if isinstance(left, str) and isinstance(right, ExceptionValue):
        return left + right.message
    if isinstance(left, ExceptionValue) and isinstance(right, str):
        return left.message + right
    if isinstance(left, list) and isinstance(right, list):
        return left + right
    if isinstance(left, tuple) and isinstance(right, tuple):
        return left + right
    if isinstance(left, (bytes, bytearray)) and isinstance(right, (bytes, bytearray)):
        return left + right
    raise _unsupported("+", left, right)


def _sub(left: Any, right: Any) -> Any:
    if _is_numeric(left) and _is_numeric(right):
        return left - right
    if isinstance(left, _SET_TYPES) and isinstance(right, _SET_TYPES):
        return left - right
    raise _unsupported("-", left, right)


def _mul(left: Any, right: Any) -> Any:
    if _is_numeric(left) and _is_numeric(right):
        return left * right
    if isinstance(left, _SEQUENCE_TYPES) and _is_int(right):
        return _repeat(left, right)
    if _is_int(left) and isinstance(right, _SEQUENCE_TYPES):
        return _repeat(right, left)
    raise _unsupported("*", left, right)


def _truediv(left: Any, right: Any) -> Any:
    if not (_is_numeric(left) and _is_numeric(right)):
        raise _unsupported("/", left, right)
    if right == 0:
        raise make_error(ExceptionKind.ZERO_DIVISION_ERROR, "division by zero")
    return left / right


def _floordiv(left: Any, right: Any) -> Any:
    if not (is_number(left) and is_number(right)):
        raise _unsupported("//", left, right)
    if right == 0:
        raise make_error(ExceptionKind.ZERO_DIVISION_ERROR, "integer division or modulo by zero")
    return left // right


def _mod(left: Any, right: Any) -> Any:
    if not (is_number(left) and is_number(right)):
        raise _unsupported("%", left, right)
    if right == 0:
        raise make_error(ExceptionKind.ZERO_DIVISION_ERROR, "modulo by zero")
    return left % right


def _pow(left: Any, right: Any) -> Any:
    if isinstance(left, complex) or isinstance(right, complex):
        if _is_numeric(left) and _is_numeric(right):
            return complex(left) ** complex(right)
        raise _unsupported("**", left, right)
    if not (is_number(left) and is_number(right)):
        raise _unsupported("**", left, right)
    base = float(left)
    exponent = float(right)
    if base == 0.0 and exponent < 0:
        raise make_error(ExceptionKind.ZERO_DIVISION_ERROR, "0.0 cannot be raised to a negative power")
    if base < 0 and math.isfinite(exponent) and not exponent.is_integer():
        # Results stay real.
        return math.nan
    return base**exponent


def _bitwise(op: str, fn: Callable[[Any, Any], Any]) -> Callable[[Any, Any], Any]:
    def apply(left: Any, right: Any) -> Any:
        if _is_int(left) and _is_int(right):
            return fn(left, right)
        if isinstance(left, _SET_TYPES) and isinstance(right, _SET_TYPES):
            return fn(left, right)
        raise _unsupported(op, left, right)

    return apply


def _shift(op: str, fn: Callable[[int, int], int]) -> Callable[[Any, Any], Any]:
    def apply(left: Any, right: Any) -> Any:
        if not (_is_int(left) and _is_int(right)):
            raise _unsupported(op, left, right)
        if right < 0:
            raise make_error(ExceptionKind.VALUE_ERROR, "negative shift count")
        return fn(left, right)

    return apply


def _ordering(op: str, fn: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    def apply(left: Any, right: Any) -> bool:
        comparable = (
            (is_number(left) and is_number(right))
            or (isinstance(left, _ORDERED_TYPES) and type(left) is type(right))
            or (isinstance(left, _SET_TYPES) and isinstance(right, _SET_TYPES))
        )
        if not comparable:
            raise make_error(
                ExceptionKind.TYPE_ERROR,
                f"'{op}' not supported between instances of '{type_name(left)}' and '{type_name(right)}'",
            )
        try:
            return bool(fn(left, right))
        except TypeError as exc:
            # Mismatched element types inside lists or tuples.
            raise make_error(ExceptionKind.TYPE_ERROR, str(exc)) from exc

    return apply


def contains(container: Any, item: Any) -> bool:
    if isinstance(container, str):
        if not isinstance(item, str):
            raise make_error(ExceptionKind.TYPE_ERROR, "'in <string>' requires string as left operand")
        return item in container
    if isinstance(container, (list, tuple)):
        return item in container
    if isinstance(container, (dict, set, frozenset)):
        return ensure_hashable(item) in container
    if isinstance(container, (bytes, bytearray)):
        if _is_int(item):
            if not 0 <= item <= 255:
                raise make_error(ExceptionKind.VALUE_ERROR, "byte must be in range(0, 256)")
            return item in container
        if isinstance(item, (bytes, bytearray)):
            return item in container
        raise make_error(ExceptionKind.TYPE_ERROR, "a bytes-like object is required")
    if isinstance(container, range):
        return item in container
    raise make_error(ExceptionKind.TYPE_ERROR, f"argument of type '{type_name(container)}' is not iterable")


BINARY_OPS: Final[dict[str, Callable[[Any, Any], Any]]] = {
    "+": _add,
    "-": _sub,
    "*": _mul,
    "/": _truediv,
    "//": _floordiv,
    "%": _mod,
    "**": _pow,
    "&": _bitwise("&", lambda a, b: a & b),
    "|": _bitwise("|", lambda a, b: a | b),
    "^": _bitwise("^", lambda a, b: a ^ b),
    "<<": _shift("<<", lambda a, b: a << b),
    ">>": _shift(">>", lambda a, b: a >> b),
    "<": _ordering("<", lambda a, b: a < b),
    ">": _ordering(">", lambda a, b: a > b),
    "<=": _ordering("<=", lambda a, b: a <= b),
    ">=": _ordering(">=", lambda a, b: a >= b),
    "==": lambda a, b: bool(a == b),
    "!=": lambda a, b: not bool(a == b),
    "is": is_same,
    "is not": lambda a, b: not is_same(a, b),
    "in": lambda a, b: contains(b, a),
    "not in": lambda a, b: not contains(b, a),
    "and": lambda a, b: is_truthy(a) and is_truthy(b),
    "or": lambda a, b: is_truthy(a) or is_truthy(b),
}


def binary_op(op: str, left: Any, right: Any) -> Any:
    fn = BINARY_OPS.get(op)
    if fn is None:
        raise make_error(ExceptionKind.SYNTAX_ERROR, f"Unknown binary operator {op!r}")
    try:
        return fn(left, right)
    except OverflowError as exc:
        raise make_error(ExceptionKind.OVERFLOW_ERROR, str(exc)) from exc


def unary_op(op: str, value: Any) -> Any:
    if op == "not":
        return not is_truthy(value)
    if op == "-":
        if _is_numeric(value):
            return -value
        raise make_error(ExceptionKind.TYPE_ERROR, f"bad operand type for unary -: '{type_name(value)}'")
    if op == "~":
        if _is_int(value):
            return ~value
        raise make_error(ExceptionKind.TYPE_ERROR, f"bad operand type for unary ~: '{type_name(value)}'")
    raise make_error(ExceptionKind.SYNTAX_ERROR, f"Unknown unary operator {op!r}")
