"""Structured exception values and the unwind channel used by the evaluator."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Final


class ExceptionKind(str, Enum):
    BASE_EXCEPTION = "BaseException"
    EXCEPTION = "Exception"
    ARITHMETIC_ERROR = "ArithmeticError"
    ASSERTION_ERROR = "AssertionError"
    ATTRIBUTE_ERROR = "AttributeError"
    BUFFER_ERROR = "BufferError"
    EOF_ERROR = "EOFError"
    FLOATING_POINT_ERROR = "FloatingPointError"
    GENERATOR_EXIT = "GeneratorExit"
    IMPORT_ERROR = "ImportError"
    MODULE_NOT_FOUND_ERROR = "ModuleNotFoundError"
    LOOKUP_ERROR = "LookupError"
    INDEX_ERROR = "IndexError"
    KEY_ERROR = "KeyError"
    KEYBOARD_INTERRUPT = "KeyboardInterrupt"
    MEMORY_ERROR = "MemoryError"
    NAME_ERROR = "NameError"
    NOT_IMPLEMENTED_ERROR = "NotImplementedError"
    OS_ERROR = "OSError"
    OVERFLOW_ERROR = "OverflowError"
    RECURSION_ERROR = "RecursionError"
    REFERENCE_ERROR = "ReferenceError"
    RUNTIME_ERROR = "RuntimeError"
    STOP_ITERATION = "StopIteration"
    STOP_ASYNC_ITERATION = "StopAsyncIteration"
    SYNTAX_ERROR = "SyntaxError"
    INDENTATION_ERROR = "IndentationError"
    TAB_ERROR = "TabError"
    SYSTEM_ERROR = "SystemError"
    SYSTEM_EXIT = "SystemExit"
    TYPE_ERROR = "TypeError"
    UNBOUND_LOCAL_ERROR = "UnboundLocalError"
    UNICODE_ERROR = "UnicodeError"
    UNICODE_ENCODE_ERROR = "UnicodeEncodeError"
    UNICODE_DECODE_ERROR = "UnicodeDecodeError"
    UNICODE_TRANSLATE_ERROR = "UnicodeTranslateError"
    VALUE_ERROR = "ValueError"
    ZERO_DIVISION_ERROR = "ZeroDivisionError"
    WARNING = "Warning"
    USER_WARNING = "UserWarning"
    DEPRECATION_WARNING = "DeprecationWarning"
    PENDING_DEPRECATION_WARNING = "PendingDeprecationWarning"
    SYNTAX_WARNING = "SyntaxWarning"
    RUNTIME_WARNING = "RuntimeWarning"
    FUTURE_WARNING = "FutureWarning"
    IMPORT_WARNING = "ImportWarning"
    UNICODE_WARNING = "UnicodeWarning"
    BYTES_WARNING = "BytesWarning"
    RESOURCE_WARNING = "ResourceWarning"
    ENCODING_WARNING = "EncodingWarning"
    BLOCKING_IO_ERROR = "BlockingIOError"
    CHILD_PROCESS_ERROR = "ChildProcessError"
    CONNECTION_ERROR = "ConnectionError"
    BROKEN_PIPE_ERROR = "BrokenPipeError"
    CONNECTION_ABORTED_ERROR = "ConnectionAbortedError"
    CONNECTION_REFUSED_ERROR = "ConnectionRefusedError"
    CONNECTION_RESET_ERROR = "ConnectionResetError"
    FILE_EXISTS_ERROR = "FileExistsError"
    FILE_NOT_FOUND_ERROR = "FileNotFoundError"
    INTERRUPTED_ERROR = "InterruptedError"
    IS_A_DIRECTORY_ERROR = "IsADirectoryError"
    NOT_A_DIRECTORY_ERROR = "NotADirectoryError"
    PERMISSION_ERROR = "PermissionError"
    PROCESS_LOOKUP_ERROR = "ProcessLookupError"
    TIMEOUT_ERROR = "TimeoutError"

    def __str__(self) -> str:
        return self.value


K = ExceptionKind

_PARENTS: Final[dict[ExceptionKind, ExceptionKind | None]] = {
    K.BASE_EXCEPTION: None,
    K.EXCEPTION: K.BASE_EXCEPTION,
    K.GENERATOR_EXIT: K.BASE_EXCEPTION,
    K.KEYBOARD_INTERRUPT: K.BASE_EXCEPTION,
    K.SYSTEM_EXIT: K.BASE_EXCEPTION,
    K.ARITHMETIC_ERROR: K.EXCEPTION,
    K.FLOATING_POINT_ERROR: K.ARITHMETIC_ERROR,
    K.OVERFLOW_ERROR: K.ARITHMETIC_ERROR,
    K.ZERO_DIVISION_ERROR: K.ARITHMETIC_ERROR,
    K.ASSERTION_ERROR: K.EXCEPTION,
    K.ATTRIBUTE_ERROR: K.EXCEPTION,
    K.BUFFER_ERROR: K.EXCEPTION,
    K.EOF_ERROR: K.EXCEPTION,
    K.IMPORT_ERROR: K.EXCEPTION,
    K.MODULE_NOT_FOUND_ERROR: K.IMPORT_ERROR,
    K.LOOKUP_ERROR: K.EXCEPTION,
    K.INDEX_ERROR: K.LOOKUP_ERROR,
    K.KEY_ERROR: K.LOOKUP_ERROR,
    K.MEMORY_ERROR: K.EXCEPTION,
    K.NAME_ERROR: K.EXCEPTION,
    K.UNBOUND_LOCAL_ERROR: K.NAME_ERROR,
    K.OS_ERROR: K.EXCEPTION,
    K.BLOCKING_IO_ERROR: K.OS_ERROR,
    K.CHILD_PROCESS_ERROR: K.OS_ERROR,
    K.CONNECTION_ERROR: K.OS_ERROR,
    K.BROKEN_PIPE_ERROR: K.CONNECTION_ERROR,
    K.CONNECTION_ABORTED_ERROR: K.CONNECTION_ERROR,
    K.CONNECTION_REFUSED_ERROR: K.CONNECTION_ERROR,
    K.CONNECTION_RESET_ERROR: K.CONNECTION_ERROR,
    K.FILE_EXISTS_ERROR: K.OS_ERROR,
    K.FILE_NOT_FOUND_ERROR: K.OS_ERROR,
    K.INTERRUPTED_ERROR: K.OS_ERROR,
    K.IS_A_DIRECTORY_ERROR: K.OS_ERROR,
    K.NOT_A_DIRECTORY_ERROR: K.OS_ERROR,
    K.PERMISSION_ERROR: K.OS_ERROR,
    K.PROCESS_LOOKUP_ERROR: K.OS_ERROR,
    K.TIMEOUT_ERROR: K.OS_ERROR,
    K.REFERENCE_ERROR: K.EXCEPTION,
    K.RUNTIME_ERROR: K.EXCEPTION,
    K.NOT_IMPLEMENTED_ERROR: K.RUNTIME_ERROR,
    K.RECURSION_ERROR: K.RUNTIME_ERROR,
    K.STOP_ITERATION: K.EXCEPTION,
    K.STOP_ASYNC_ITERATION: K.EXCEPTION,
    K.SYNTAX_ERROR: K.EXCEPTION,
    K.INDENTATION_ERROR: K.SYNTAX_ERROR,
    K.TAB_ERROR: K.INDENTATION_ERROR,
    K.SYSTEM_ERROR: K.EXCEPTION,
    K.TYPE_ERROR: K.EXCEPTION,
    K.VALUE_ERROR: K.EXCEPTION,
    K.UNICODE_ERROR: K.VALUE_ERROR,
    K.UNICODE_ENCODE_ERROR: K.UNICODE_ERROR,
    K.UNICODE_DECODE_ERROR: K.UNICODE_ERROR,
    K.UNICODE_TRANSLATE_ERROR: K.UNICODE_ERROR,
    K.WARNING: K.EXCEPTION,
    K.USER_WARNING: K.WARNING,
    K.DEPRECATION_WARNING: K.WARNING,
    K.PENDING_DEPRECATION_WARNING: K.WARNING,
    K.SYNTAX_WARNING: K.WARNING,
    K.RUNTIME_WARNING: K.WARNING,
    K.FUTURE_WARNING: K.WARNING,
    K.IMPORT_WARNING: K.WARNING,
    K.UNICODE_WARNING: K.WARNING,
    K.BYTES_WARNING: K.WARNING,
    K.RESOURCE_WARNING: K.WARNING,
    K.ENCODING_WARNING: K.WARNING,
}


def parent_kind(kind: ExceptionKind) -> ExceptionKind | None:
    return _PARENTS[kind]


def is_subkind(kind: ExceptionKind, ancestor: ExceptionKind) -> bool:
    """True when ``kind`` is ``ancestor`` or derives from it."""
    current: ExceptionKind | None = kind
    while current is not None:
        if current is ancestor:
            return True
        current = _PARENTS[current]
    return False


@dataclass(eq=False)
class ExceptionValue:
    """A language-level exception. First-class: it can be caught, stored and re-thrown."""

    kind: ExceptionKind
    args: list[str] = field(default_factory=list)
    context: "ExceptionValue | None" = None
    cause: "ExceptionValue | None" = None
    suppress_context: bool = False
    notes: list[str] = field(default_factory=list)

    def with_context(self, ctx: "ExceptionValue") -> "ExceptionValue":
        self.context = ctx
        return self

    def with_cause(self, cause: "ExceptionValue | None") -> "ExceptionValue":
        self.cause = cause
        self.suppress_context = True
        return self

    def add_note(self, note: str) -> None:
        self.notes.append(note)

    @property
    def message(self) -> str:
        if not self.args:
            return ""
        if len(self.args) == 1:
            return self.args[0]
        return ", ".join(self.args)

    def format(self) -> str:
        return f"{self.kind}({', '.join(self.args)})"

    def format_chain(self) -> str:
        """Render the exception with its cause/context chain, innermost first."""
        lines: list[str] = []
        if self.cause is not None:
            lines.append(self.cause.format_chain())
            lines.append("The above exception was the direct cause of the following exception:")
        elif self.context is not None and not self.suppress_context:
            lines.append(self.context.format_chain())
            lines.append("During handling of the above exception, another exception occurred:")
        lines.append(self.format())
        lines.extend(self.notes)
        return "\n".join(lines)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ExceptionValue):
            return NotImplemented
        return self.kind is other.kind and self.args == other.args

    __hash__ = None  # type: ignore[assignment]


class StelError(Exception):
    """Base class for structured stellang errors."""


class StelException(StelError):
    """Carries a language exception value through the host call stack."""

    def __init__(self, value: ExceptionValue) -> None:
        super().__init__(value.format())
        self.value = value

    @property
    def kind(self) -> ExceptionKind:
        return self.value.kind


def make_error(kind: ExceptionKind, message: str | None = None) -> StelException:
    args = [] if message is None else [message]
    return StelException(ExceptionValue(kind=kind, args=args))


class SignalKind(str, Enum):
    RETURN = "return"
    BREAK = "break"
    CONTINUE = "continue"


class ControlSignal(StelError):
    """Out-of-band control flow travelling through the exception channel."""

    kind: ClassVar[SignalKind]


class ReturnSignal(ControlSignal):
    kind = SignalKind.RETURN

    def __init__(self, value: object = None) -> None:
        super().__init__("return")
        self.value = value


class BreakSignal(ControlSignal):
    kind = SignalKind.BREAK

    def __init__(self) -> None:
        super().__init__("break")


class ContinueSignal(ControlSignal):
    kind = SignalKind.CONTINUE

    def __init__(self) -> None:
        super().__init__("continue")


_HOST_KINDS: Final[tuple[tuple[type[BaseException], ExceptionKind], ...]] = (
    (RecursionError, K.RECURSION_ERROR),
    (ZeroDivisionError, K.ZERO_DIVISION_ERROR),
    (OverflowError, K.OVERFLOW_ERROR),
    (MemoryError, K.MEMORY_ERROR),
    (UnicodeDecodeError, K.UNICODE_DECODE_ERROR),
    (UnicodeEncodeError, K.UNICODE_ENCODE_ERROR),
    (FileNotFoundError, K.FILE_NOT_FOUND_ERROR),
    (PermissionError, K.PERMISSION_ERROR),
    (IsADirectoryError, K.IS_A_DIRECTORY_ERROR),
    (EOFError, K.EOF_ERROR),
    (OSError, K.OS_ERROR),
)


def from_python_exception(err: BaseException) -> StelException:
    """Translate a host exception raised during evaluation into a language exception."""
    if isinstance(err, StelException):
        return err
    for host_type, kind in _HOST_KINDS:
        if isinstance(err, host_type):
            message = str(err) or None
            if kind is K.RECURSION_ERROR:
                message = "maximum recursion depth exceeded"
            return make_error(kind, message)
    return make_error(K.SYSTEM_ERROR, f"{type(err).__name__}: {err}")
