"""stellang public API."""

from .errors import (
    ExceptionKind,
    ExceptionValue,
    StelError,
    StelException,
    is_subkind,
)
from .evaluator import EvaluationEnvironment, Interpreter, StatefulEvaluate, evaluate, evaluate_with_errors
from .lexer import LexError, Token, tokenize
from .parser import ParseError, parse, parse_program
from .values import display, is_truthy

__version__ = "0.1.0"

__all__ = [
    "EvaluationEnvironment",
    "ExceptionKind",
    "ExceptionValue",
    "Interpreter",
    "LexError",
    "ParseError",
    "StatefulEvaluate",
    "StelError",
    "StelException",
    "Token",
    "__version__",
    "display",
    "evaluate",
    "evaluate_with_errors",
    "is_subkind",
    "is_truthy",
    "parse",
    "parse_program",
    "tokenize",
]
