"""Built-in method tables, built-in functions and exception constructors."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Callable, Final, Protocol, TextIO

from .errors import ExceptionKind, ExceptionValue, make_error
from .values import (
    BuiltinFunction,
    BuiltinMethod,
    display,
    ensure_hashable,
    is_number,
    is_truthy,
    sort_key,
    type_name,
)


class _Streams(Protocol):
    stdout: TextIO
    stdin: TextIO


@dataclass(frozen=True)
class _Method:
    fn: Callable[..., Any]
    min_args: int = 0
    max_args: int = 0


FROZEN_NAMES: Final[dict[str, Any]] = {
    "True": True,
    "False": False,
    "None": None,
    "__debug__": True,
    "NotImplemented": NotImplemented,
    "Ellipsis": Ellipsis,
}

EXCEPTION_ATTRIBUTES: Final = frozenset({"kind", "args", "message", "cause", "context", "notes", "suppress_context"})


def _type_error(message: str):
    return make_error(ExceptionKind.TYPE_ERROR, message)


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _require_str(owner: str, value: object) -> str:
    if not isinstance(value, str):
        raise _type_error(f"{owner} argument must be str, not {type_name(value)}")
    return value


def _require_int(owner: str, value: object) -> int:
    if not _is_int(value):
        raise _type_error(f"{owner} argument must be int, not {type_name(value)}")
    return value


def iterate(value: object) -> list[Any]:
    """Snapshot of the items a ``for`` loop or a constructor walks over."""
    if isinstance(value, (list, tuple, range, bytes, bytearray, set, frozenset)):
        return list(value)
    if isinstance(value, str):
        return list(value)
    if isinstance(value, dict):
        return list(value.keys())
    raise _type_error(f"'{type_name(value)}' object is not iterable")


def _hashable_items(value: object) -> list[Any]:
    return [ensure_hashable(item) for item in iterate(value)]


# -- str ---------------------------------------------------------------


def _expand_escapes(text: str) -> str:
    return text.replace("\\n", "\n").replace("\\t", "\t").replace("\\r", "\r")


def _str_strip(s: str, chars: object = None) -> str:
    if chars is None:
        return _expand_escapes(s).strip()
    return s.strip(_require_str("strip()", chars))


def _str_split(s: str, sep: object = None) -> list[str]:
    if sep is None:
        if s == "":
            return [""]
        return _expand_escapes(s).split()
    sep = _require_str("split()", sep)
    if sep == "":
        raise make_error(ExceptionKind.VALUE_ERROR, "empty separator")
    return s.split(sep)


def _str_join(s: str, items: object) -> str:
    if not isinstance(items, (list, tuple)):
        raise _type_error(f"can only join a list or tuple, not {type_name(items)}")
    for position, item in enumerate(items):
        if not isinstance(item, str):
            raise _type_error(f"sequence item {position}: expected str instance, {type_name(item)} found")
    return s.join(items)


def _str_replace(s: str, old: object, new: object, count: object = -1) -> str:
    return s.replace(_require_str("replace()", old), _require_str("replace()", new), _require_int("replace()", count))


def _str_affix(check: str) -> Callable[[str, object], bool]:
    def apply(s: str, affix: object) -> bool:
        if isinstance(affix, tuple) and all(isinstance(item, str) for item in affix):
            return getattr(s, check)(affix)
        return getattr(s, check)(_require_str(f"{check}()", affix))

    return apply


def _str_istitle(s: str) -> bool:
    words = s.split()
    if not words:
        return False

    def titled(word: str) -> bool:
        return word[:1].isupper() and word[1:] == word[1:].lower()

    return titled(words[0]) and all(titled(word) or word == word.lower() for word in words[1:])


_STR_METHODS: Final[dict[str, _Method]] = {
    "len": _Method(lambda s: len(s.encode("utf-8"))),
    "upper": _Method(str.upper),
    "lower": _Method(str.lower),
    "strip": _Method(_str_strip, 0, 1),
    "split": _Method(_str_split, 0, 1),
    "join": _Method(_str_join, 1, 1),
    "replace": _Method(_str_replace, 2, 3),
    "find": _Method(lambda s, sub: s.find(_require_str("find()", sub)), 1, 1),
    "count": _Method(lambda s, sub: s.count(_require_str("count()", sub)), 1, 1),
    "startswith": _Method(_str_affix("startswith"), 1, 1),
    "endswith": _Method(_str_affix("endswith"), 1, 1),
    "isalnum": _Method(str.isalnum),
    "isalpha": _Method(str.isalpha),
    "isdigit": _Method(str.isdigit),
    "islower": _Method(str.islower),
    "isupper": _Method(str.isupper),
    "isspace": _Method(lambda s: _expand_escapes(s).isspace()),
    "istitle": _Method(_str_istitle),
}


# -- list --------------------------------------------------------------


def _list_append(xs: list, value: object) -> None:
    xs.append(value)


def _list_pop(xs: list, index: object = None) -> Any:
    if not xs:
        raise make_error(ExceptionKind.INDEX_ERROR, "pop from empty list")
    if index is None:
        return xs.pop()
    index = _require_int("pop()", index)
    if not 0 <= index < len(xs):
        raise make_error(ExceptionKind.INDEX_ERROR, "pop index out of range")
    return xs.pop(index)


def _list_extend(xs: list, other: object) -> None:
    xs.extend(iterate(other))


def _list_insert(xs: list, index: object, value: object) -> None:
    xs.insert(_require_int("insert()", index), value)


def _list_remove(xs: list, value: object) -> None:
    if value not in xs:
        raise make_error(ExceptionKind.VALUE_ERROR, "list.remove(x): x not in list")
    xs.remove(value)


def _sequence_index(kind: str) -> Callable[[Any, object], int]:
    def apply(seq: Any, value: object) -> int:
        if value not in seq:
            raise make_error(ExceptionKind.VALUE_ERROR, f"{kind}.index(x): x not in {kind}")
        return seq.index(value)

    return apply


def _list_clear(xs: list) -> None:
    xs.clear()


def _list_reverse(xs: list) -> None:
    xs.reverse()


def _list_sort(xs: list) -> None:
    xs.sort(key=sort_key)


_LIST_METHODS: Final[dict[str, _Method]] = {
    "len": _Method(len),
    "append": _Method(_list_append, 1, 1),
    "pop": _Method(_list_pop, 0, 1),
    "extend": _Method(_list_extend, 1, 1),
    "insert": _Method(_list_insert, 2, 2),
    "remove": _Method(_list_remove, 1, 1),
    "clear": _Method(_list_clear),
    "copy": _Method(list.copy),
    "index": _Method(_sequence_index("list"), 1, 1),
    "count": _Method(lambda xs, value: xs.count(value), 1, 1),
    "reverse": _Method(_list_reverse),
    "sort": _Method(_list_sort),
}

_TUPLE_METHODS: Final[dict[str, _Method]] = {
    "len": _Method(len),
    "count": _Method(lambda xs, value: xs.count(value), 1, 1),
    "index": _Method(_sequence_index("tuple"), 1, 1),
}


# -- dict --------------------------------------------------------------

_MISSING = object()


def _dict_get(d: dict, key: object, default: object = None) -> Any:
    return d.get(ensure_hashable(key), default)


def _dict_pop(d: dict, key: object, default: object = _MISSING) -> Any:
    ensure_hashable(key)
    if key in d:
        return d.pop(key)
    if default is _MISSING:
        raise make_error(ExceptionKind.KEY_ERROR, display(key))
    return default


def _dict_update(d: dict, other: object) -> None:
    if not isinstance(other, dict):
        raise _type_error(f"update() argument must be dict, not {type_name(other)}")
    d.update(other)


def _dict_clear(d: dict) -> None:
    d.clear()


_DICT_METHODS: Final[dict[str, _Method]] = {
    "len": _Method(len),
    "keys": _Method(lambda d: list(d.keys())),
    "values": _Method(lambda d: list(d.values())),
    "items": _Method(lambda d: [(k, v) for k, v in d.items()]),
    "get": _Method(_dict_get, 1, 2),
    "pop": _Method(_dict_pop, 1, 2),
    "update": _Method(_dict_update, 1, 1),
    "clear": _Method(_dict_clear),
    "copy": _Method(dict.copy),
}


# -- set / frozenset ---------------------------------------------------


def _set_add(s: set, value: object) -> None:
    s.add(ensure_hashable(value))


def _set_remove(s: set, value: object) -> None:
    ensure_hashable(value)
    if value not in s:
        raise make_error(ExceptionKind.KEY_ERROR, display(value))
    s.remove(value)


def _set_discard(s: set, value: object) -> None:
    s.discard(ensure_hashable(value))


def _set_pop(s: set) -> Any:
    if not s:
        raise make_error(ExceptionKind.KEY_ERROR, "pop from an empty set")
    return s.pop()


def _set_clear(s: set) -> None:
    s.clear()


def _set_op(name: str) -> Callable[[Any, object], Any]:
    def apply(s: Any, other: object) -> Any:
        return getattr(s, name)(_hashable_items(other))

    return apply


_FROZENSET_METHODS: Final[dict[str, _Method]] = {
    "len": _Method(len),
    "union": _Method(_set_op("union"), 1, 1),
    "intersection": _Method(_set_op("intersection"), 1, 1),
    "difference": _Method(_set_op("difference"), 1, 1),
    "symmetric_difference": _Method(_set_op("symmetric_difference"), 1, 1),
    "issubset": _Method(_set_op("issubset"), 1, 1),
    "issuperset": _Method(_set_op("issuperset"), 1, 1),
    "isdisjoint": _Method(_set_op("isdisjoint"), 1, 1),
    "copy": _Method(lambda s: s.copy()),
}

_SET_METHODS: Final[dict[str, _Method]] = {
    **_FROZENSET_METHODS,
    "add": _Method(_set_add, 1, 1),
    "remove": _Method(_set_remove, 1, 1),
    "discard": _Method(_set_discard, 1, 1),
    "pop": _Method(_set_pop),
    "clear": _Method(_set_clear),
}


# -- bytes / bytearray -------------------------------------------------


def _bytes_decode(data: bytes | bytearray, encoding: object = "utf-8") -> str:
    encoding = _require_str("decode()", encoding)
    if encoding.lower().replace("_", "-") not in {"utf-8", "utf8"}:
        raise make_error(ExceptionKind.EXCEPTION, f"unsupported encoding: {encoding}")
    try:
        return bytes(data).decode("utf-8")
    except UnicodeDecodeError as exc:
        raise make_error(ExceptionKind.UNICODE_DECODE_ERROR, str(exc)) from exc


def _check_byte(value: object) -> int:
    value = _require_int("byte", value)
    if not 0 <= value <= 255:
        raise make_error(ExceptionKind.VALUE_ERROR, "byte must be in range(0, 256)")
    return value


def _bytearray_append(data: bytearray, value: object) -> None:
    data.append(_check_byte(value))


def _bytearray_pop(data: bytearray) -> int:
    if not data:
        raise make_error(ExceptionKind.INDEX_ERROR, "pop from empty bytearray")
    return data.pop()


_BYTES_METHODS: Final[dict[str, _Method]] = {
    "len": _Method(len),
    "hex": _Method(lambda data: data.hex()),
    "decode": _Method(_bytes_decode, 0, 1),
}

_BYTEARRAY_METHODS: Final[dict[str, _Method]] = {
    **_BYTES_METHODS,
    "append": _Method(_bytearray_append, 1, 1),
    "pop": _Method(_bytearray_pop),
}


# -- exceptions --------------------------------------------------------


def _exception_add_note(exc: ExceptionValue, note: object) -> None:
    exc.add_note(_require_str("add_note()", note))


def _exception_with_cause(exc: ExceptionValue, cause: object) -> ExceptionValue:
    if cause is not None and not isinstance(cause, ExceptionValue):
        raise _type_error("exception cause must be None or derive from BaseException")
    return exc.with_cause(cause)


_EXCEPTION_METHODS: Final[dict[str, _Method]] = {
    "add_note": _Method(_exception_add_note, 1, 1),
    "with_cause": _Method(_exception_with_cause, 1, 1),
}


def exception_attribute(exc: ExceptionValue, name: str) -> Any:
    if name == "kind":
        return str(exc.kind)
    if name == "args":
        return tuple(exc.args)
    if name == "message":
        return exc.message
    if name == "notes":
        return exc.notes
    return getattr(exc, name)


def _method_table(obj: object) -> dict[str, _Method]:
    if isinstance(obj, str):
        return _STR_METHODS
    if isinstance(obj, list):
        return _LIST_METHODS
    if isinstance(obj, tuple):
        return _TUPLE_METHODS
    if isinstance(obj, dict):
        return _DICT_METHODS
    if isinstance(obj, set):
        return _SET_METHODS
    if isinstance(obj, frozenset):
        return _FROZENSET_METHODS
    if isinstance(obj, bytearray):
        return _BYTEARRAY_METHODS
    if isinstance(obj, bytes):
        return _BYTES_METHODS
    if isinstance(obj, ExceptionValue):
        return _EXCEPTION_METHODS
    return {}


def get_attribute(obj: object, name: str) -> Any:
    """Attribute lookup on a non-instance value: exception fields, else a bound built-in method."""
    if isinstance(obj, ExceptionValue) and name in EXCEPTION_ATTRIBUTES:
        return exception_attribute(obj, name)
    return BuiltinMethod(obj=obj, method_name=name)


def call_method(obj: object, name: str, args: list[Any]) -> Any:
    method = _method_table(obj).get(name)
    if method is None:
        raise make_error(ExceptionKind.ATTRIBUTE_ERROR, f"'{type_name(obj)}' object has no attribute '{name}'")
    if not method.min_args <= len(args) <= method.max_args:
        if method.min_args == method.max_args:
            expected = str(method.min_args)
        else:
            expected = f"{method.min_args} to {method.max_args}"
        raise _type_error(f"{type_name(obj)}.{name}() takes {expected} arguments ({len(args)} given)")
    return method.fn(obj, *args)


# -- built-in functions ------------------------------------------------


def _check_count(name: str, args: list[Any], low: int, high: int) -> None:
    if not low <= len(args) <= high:
        raise _type_error(f"{name}() takes {low} to {high} arguments ({len(args)} given)")


def _print(interp: _Streams, args: list[Any]) -> None:
    try:
        interp.stdout.write(" ".join(display(arg) for arg in args) + "\n")
    except OSError as exc:
        raise make_error(ExceptionKind.OS_ERROR, str(exc)) from exc


def _input(interp: _Streams, args: list[Any]) -> str:
    _check_count("input", args, 0, 1)
    try:
        if args:
            interp.stdout.write(display(args[0]))
            interp.stdout.flush()
        line = interp.stdin.readline()
    except OSError as exc:
        raise make_error(ExceptionKind.OS_ERROR, str(exc)) from exc
    if line == "":
        raise make_error(ExceptionKind.EOF_ERROR, "EOF when reading a line")
    return line.rstrip("\r\n")


def _range(interp: _Streams, args: list[Any]) -> range:
    _check_count("range", args, 1, 3)
    bounds = [_require_int("range()", arg) for arg in args]
    if len(bounds) == 3 and bounds[2] == 0:
        raise make_error(ExceptionKind.VALUE_ERROR, "range() arg 3 must not be zero")
    return range(*bounds)


def _collection(name: str, build: Callable[[list[Any]], Any], hashable: bool = False):
    def construct(interp: _Streams, args: list[Any]) -> Any:
        _check_count(name, args, 0, 1)
        if not args:
            return build([])
        items = _hashable_items(args[0]) if hashable else iterate(args[0])
        return build(items)

    return construct


def _dict(interp: _Streams, args: list[Any]) -> dict:
    _check_count("dict", args, 0, 1)
    if not args:
        return {}
    source = args[0]
    if isinstance(source, dict):
        return dict(source)
    result: dict[Any, Any] = {}
    for item in iterate(source):
        if not isinstance(item, (list, tuple)) or len(item) != 2:
            raise _type_error("dict() sequence elements must be pairs")
        result[ensure_hashable(item[0])] = item[1]
    return result


def _byte_values(name: str, args: list[Any]) -> list[int]:
    _check_count(name, args, 0, 2)
    if not args:
        return []
    source = args[0]
    if isinstance(source, str):
        encoding = _require_str(f"{name}()", args[1]) if len(args) > 1 else "utf-8"
        if encoding.lower().replace("_", "-") not in {"utf-8", "utf8"}:
            raise make_error(ExceptionKind.EXCEPTION, f"unsupported encoding: {encoding}")
        return list(source.encode("utf-8"))
    if _is_int(source):
        if source < 0:
            raise make_error(ExceptionKind.VALUE_ERROR, "negative count")
        return [0] * source
    return [_check_byte(item) for item in iterate(source)]


def _str(interp: _Streams, args: list[Any]) -> str:
    _check_count("str", args, 0, 1)
    return display(args[0]) if args else ""


def _int(interp: _Streams, args: list[Any]) -> int:
    _check_count("int", args, 0, 2)
    if not args:
        return 0
    value = args[0]
    if len(args) == 2 and not isinstance(value, str):
        raise _type_error("int() can't convert non-string with explicit base")
    if isinstance(value, str):
        base = _require_int("int()", args[1]) if len(args) == 2 else 10
        try:
            return int(value.strip(), base)
        except ValueError as exc:
            raise make_error(ExceptionKind.VALUE_ERROR, f"invalid literal for int() with base {base}: '{value}'") from exc
    if isinstance(value, float):
        if math.isnan(value):
            raise make_error(ExceptionKind.VALUE_ERROR, "cannot convert float NaN to integer")
        if math.isinf(value):
            raise make_error(ExceptionKind.OVERFLOW_ERROR, "cannot convert float infinity to integer")
        return int(value)
    if isinstance(value, int):
        return int(value)
    raise _type_error(f"int() argument must be a string or a number, not '{type_name(value)}'")


def _float(interp: _Streams, args: list[Any]) -> float:
    _check_count("float", args, 0, 1)
    if not args:
        return 0.0
    value = args[0]
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError as exc:
            raise make_error(ExceptionKind.VALUE_ERROR, f"could not convert string to float: '{value}'") from exc
    if isinstance(value, (int, float)):
        try:
            return float(value)
        except OverflowError as exc:
            raise make_error(ExceptionKind.OVERFLOW_ERROR, "int too large to convert to float") from exc
    raise _type_error(f"float() argument must be a string or a number, not '{type_name(value)}'")


def _bool(interp: _Streams, args: list[Any]) -> bool:
    _check_count("bool", args, 0, 1)
    return is_truthy(args[0]) if args else False


def _complex(interp: _Streams, args: list[Any]) -> complex:
    _check_count("complex", args, 0, 2)
    for arg in args:
        if not (is_number(arg) or isinstance(arg, complex)):
            raise _type_error(f"complex() argument must be a number, not '{type_name(arg)}'")
    return complex(*args)


def _exception_constructor(kind: ExceptionKind) -> Callable[[_Streams, list[Any]], ExceptionValue]:
    def construct(interp: _Streams, args: list[Any]) -> ExceptionValue:
        return ExceptionValue(kind=kind, args=[display(arg) for arg in args])

    return construct


def _make_builtins() -> dict[str, BuiltinFunction]:
    table: dict[str, Callable[[_Streams, list[Any]], Any]] = {
        "print": _print,
        "input": _input,
        "range": _range,
        "list": _collection("list", list),
        "tuple": _collection("tuple", tuple),
        "set": _collection("set", set, hashable=True),
        "frozenset": _collection("frozenset", frozenset, hashable=True),
        "dict": _dict,
        "bytes": lambda interp, args: bytes(_byte_values("bytes", args)),
        "bytearray": lambda interp, args: bytearray(_byte_values("bytearray", args)),
        "str": _str,
        "int": _int,
        "float": _float,
        "bool": _bool,
        "complex": _complex,
    }
    for kind in ExceptionKind:
        table[kind.value] = _exception_constructor(kind)
    return {name: BuiltinFunction(name=name, fn=fn) for name, fn in table.items()}


BUILTIN_FUNCTIONS: Final[dict[str, BuiltinFunction]] = _make_builtins()
