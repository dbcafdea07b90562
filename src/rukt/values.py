"""Runtime value model: token trees, repetition captures and functions."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Union

from .errors import ValueKindError
from .tokens import FALSE, TRUE, Token, TokenTree, render

if TYPE_CHECKING:
    from .ast import Block, PatternItem
    from .environment import Frame


@dataclass(frozen=True)
class Repetition:
    """Captures made inside a pattern repetition, one entry per iteration."""

    items: tuple["Value", ...]


@dataclass(frozen=True, eq=False)
class Function:
    name: str
    params: tuple["PatternItem", ...]
    body: "Block"
    closure: "Frame" = field(repr=False)


Value = Union[TokenTree, Repetition, Function]


class ValueKind(str, Enum):
    TOKENS = "tokens"
    REPETITION = "repetition"
    FUNCTION = "function"


def kind_of(value: object) -> ValueKind:
    if isinstance(value, Repetition):
        return ValueKind.REPETITION
    if isinstance(value, Function):
        return ValueKind.FUNCTION
    if isinstance(value, tuple):
        return ValueKind.TOKENS
    raise TypeError(f"unsupported runtime value {type(value).__name__}")


def as_tokens(value: Value, *, where: str) -> TokenTree:
    """Return value as a token tree, rejecting repetitions and functions."""
    kind = kind_of(value)
    if kind is ValueKind.TOKENS:
        return value  # type: ignore[return-value]
    if kind is ValueKind.REPETITION:
        raise ValueKindError(f"{where} is a repetition capture; expand it inside $( ... ) in a token tree")
    raise ValueKindError(f"{where} is a function and cannot be used as a token value")


def truth_value(tokens: TokenTree, *, where: str = "condition") -> bool:
    """`true` is true; `false` and the empty sequence are false."""
    if not tokens:
        return False
    if len(tokens) == 1:
        tok: Token = tokens[0]
        if tok == TRUE:
            return True
        if tok == FALSE:
            return False
    raise ValueKindError(f"{where} must evaluate to true or false, got {render(tokens)!r}")
