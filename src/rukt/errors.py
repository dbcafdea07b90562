"""Structured error types for parse and evaluation failures."""

from __future__ import annotations


class EngineError(Exception):
    """Base class for structured rukt errors."""


class ParseError(EngineError):
    """Unexpected token, unterminated group or malformed pattern."""

    def __init__(
        self,
        message: str,
        start: int = -1,
        end: int = -1,
        expected: tuple[str, ...] = (),
        found: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.start = start
        self.end = end
        self.expected = expected
        self.found = found

    def __str__(self) -> str:
        expected_text = ""
        if self.expected:
            expected_text = f"; expected {', '.join(self.expected)}"
        found_text = ""
        if self.found is not None:
            found_text = f"; found {self.found}"
        return f"{self.message} at span [{self.start}, {self.end}){expected_text}{found_text}"


class EvaluationError(EngineError):
    """Generic failure after a successful parse."""


class DuplicateBinding(EvaluationError):
    """Name already bound in the current frame."""


class UnboundName(EvaluationError):
    """Name not bound in any enclosing frame."""


class UnsupportedOperator(EvaluationError):
    """No registered builtin matches the operator for the given operands."""


class ArgumentMismatch(EvaluationError):
    """Wrong arity or fragment kind at a call site or destructuring."""


class BuiltinFailure(EvaluationError):
    """A builtin's own precondition was violated."""


class RecursionLimitExceeded(EvaluationError):
    """Frame depth went past the configured limit."""


class ValueKindError(EvaluationError):
    """A value was used where its kind is not allowed."""


class TranscriptionError(EvaluationError):
    """Repetitions in a token template could not be expanded."""
