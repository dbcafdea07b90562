"""rukt public API."""

from .builtins import DEFAULT_BUILTINS, Builtin, BuiltinRegistry, Shape
from .errors import (
    ArgumentMismatch,
    BuiltinFailure,
    DuplicateBinding,
    EngineError,
    EvaluationError,
    ParseError,
    RecursionLimitExceeded,
    TranscriptionError,
    UnboundName,
    UnsupportedOperator,
    ValueKindError,
)
from .evaluator import Evaluator, evaluate_expression
from .expander import Expansion, Session, expand, expand_source
from .lexer import tokenize
from .parser import parse_block, parse_expression, parse_pattern
from .tokens import Delimiter, Group, Ident, Literal, LiteralKind, Punct, render
from .values import Function, Repetition

__all__ = [
    "ArgumentMismatch",
    "Builtin",
    "BuiltinFailure",
    "BuiltinRegistry",
    "DEFAULT_BUILTINS",
    "Delimiter",
    "DuplicateBinding",
    "EngineError",
    "EvaluationError",
    "Evaluator",
    "Expansion",
    "Function",
    "Group",
    "Ident",
    "Literal",
    "LiteralKind",
    "ParseError",
    "Punct",
    "RecursionLimitExceeded",
    "Repetition",
    "Session",
    "Shape",
    "TranscriptionError",
    "UnboundName",
    "UnsupportedOperator",
    "ValueKindError",
    "evaluate_expression",
    "expand",
    "expand_source",
    "parse_block",
    "parse_expression",
    "parse_pattern",
    "render",
    "tokenize",
]
