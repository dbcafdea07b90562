"""Builtin operators and functions.

Integers are unsuffixed integer literal tokens read as i32. Arithmetic runs
on int32 jax kernels that return the wrapped result together with an
overflow flag; any overflow is reported as a BuiltinFailure.

Boolean results are the identifier tokens `true` and `false`.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Callable, Final

import jax
import jax.numpy as jnp
from jax import lax

from .errors import ArgumentMismatch, BuiltinFailure, UnsupportedOperator
from .tokens import (
    FALSE,
    I32_MAX,
    I32_MIN,
    TRUE,
    Ident,
    Literal,
    LiteralKind,
    TokenTree,
    bool_token,
    integer_token,
    integer_value,
    is_identifier_text,
    render,
    string_literal,
    string_value,
    unwrap_group,
)

logger = logging.getLogger(__name__)

_USE_JITTED_KERNELS: Final[bool] = os.environ.get("RUKT_DISABLE_JITTED_KERNELS", "0") != "1"


class Shape(str, Enum):
    ANY = "any tokens"
    INTEGER = "an integer literal"
    BOOLEAN = "true or false"
    IDENT = "an identifier"
    PREFIX = "an identifier, a string literal or nothing"
    IDENT_PART = "an identifier or an integer literal"


def accepts(shape: Shape, tokens: TokenTree) -> bool:
    if shape is Shape.ANY:
        return True
    if shape is Shape.PREFIX and not tokens:
        return True
    if len(tokens) != 1:
        return False
    tok = tokens[0]
    if shape is Shape.INTEGER:
        return integer_value(tok) is not None
    if shape is Shape.BOOLEAN:
        return tok in (TRUE, FALSE)
    if shape is Shape.IDENT:
        return isinstance(tok, Ident)
    if shape is Shape.PREFIX:
        return isinstance(tok, Ident) or string_value(tok) is not None
    if shape is Shape.IDENT_PART:
        return isinstance(tok, Ident) or (isinstance(tok, Literal) and tok.kind is LiteralKind.INTEGER)
    raise AssertionError(f"unknown shape {shape!r}")


@dataclass(frozen=True)
class Builtin:
    name: str
    arity: int
    shapes: tuple[Shape, ...]
    fn: Callable[..., TokenTree]
    doc: str = ""

    def accepts(self, args: tuple[TokenTree, ...]) -> bool:
        return len(args) == self.arity and all(accepts(shape, arg) for shape, arg in zip(self.shapes, args))


class BuiltinRegistry:
    """Read-only operator and function tables."""

    def __init__(self, operators: Iterable[Builtin], functions: Iterable[Builtin]) -> None:
        by_symbol: dict[tuple[str, int], list[Builtin]] = {}
        for builtin in operators:
            by_symbol.setdefault((builtin.name, builtin.arity), []).append(builtin)
        self.operators = MappingProxyType({key: tuple(items) for key, items in by_symbol.items()})
        self.functions = MappingProxyType({builtin.name: builtin for builtin in functions})

    def apply_operator(self, op: str, operands: tuple[TokenTree, ...]) -> TokenTree:
        for builtin in self.operators.get((op, len(operands)), ()):
            if builtin.accepts(operands):
                return builtin.fn(*operands)
        shown = " ".join(f"`{render(operand)}`" for operand in operands)
        raise UnsupportedOperator(f"Operator {op!r} does not support operands {shown}")

    def has_function(self, name: str) -> bool:
        return name in self.functions

    def call(self, name: str, args: tuple[TokenTree, ...]) -> TokenTree:
        builtin = self.functions[name]
        if len(args) != builtin.arity:
            raise ArgumentMismatch(f"{name}() takes {builtin.arity} arguments, got {len(args)}")
        for idx, (shape, arg) in enumerate(zip(builtin.shapes, args), start=1):
            if not accepts(shape, arg):
                raise ArgumentMismatch(f"argument {idx} of {name}() must be {shape.value}, got `{render(arg)}`")
        return builtin.fn(*args)


# -- integer kernels ---------------------------------------------------------


def _add_kernel(a: jnp.ndarray, b: jnp.ndarray) -> tuple[jnp.ndarray, jnp.ndarray]:
    r = lax.add(a, b)
    return r, ((a ^ r) & (b ^ r)) < 0


def _sub_kernel(a: jnp.ndarray, b: jnp.ndarray) -> tuple[jnp.ndarray, jnp.ndarray]:
    r = lax.sub(a, b)
    return r, ((a ^ b) & (a ^ r)) < 0


def _mul_kernel(a: jnp.ndarray, b: jnp.ndarray) -> tuple[jnp.ndarray, jnp.ndarray]:
    r = lax.mul(a, b)
    divisor = jnp.where(a == 0, jnp.int32(1), a)
    overflow = (a != 0) & ((lax.div(r, divisor) != b) | ((a == -1) & (b == I32_MIN)))
    return r, overflow


def _div_kernel(a: jnp.ndarray, b: jnp.ndarray) -> tuple[jnp.ndarray, jnp.ndarray]:
    return lax.div(a, b), (a == I32_MIN) & (b == -1)


def _rem_kernel(a: jnp.ndarray, b: jnp.ndarray) -> tuple[jnp.ndarray, jnp.ndarray]:
    return lax.rem(a, b), (a == I32_MIN) & (b == -1)


def _neg_kernel(a: jnp.ndarray) -> tuple[jnp.ndarray, jnp.ndarray]:
    return lax.neg(a), a == I32_MIN


_INTEGER_KERNELS: Final[dict[str, Callable[..., tuple[jnp.ndarray, jnp.ndarray]]]] = {
    "add": _add_kernel,
    "sub": _sub_kernel,
    "mul": _mul_kernel,
    "div": _div_kernel,
    "rem": _rem_kernel,
    "neg": _neg_kernel,
}

_COMPARISON_KERNELS: Final[dict[str, Callable[[jnp.ndarray, jnp.ndarray], jnp.ndarray]]] = {
    "<": lax.lt,
    "<=": lax.le,
    ">": lax.gt,
    ">=": lax.ge,
}

_JITTED_INTEGER_KERNELS: dict[str, Callable[..., tuple[jnp.ndarray, jnp.ndarray]]] = {}
_JITTED_COMPARISON_KERNELS: dict[str, Callable[[jnp.ndarray, jnp.ndarray], jnp.ndarray]] = {}


def _integer_kernel(name: str) -> Callable[..., tuple[jnp.ndarray, jnp.ndarray]]:
    if not _USE_JITTED_KERNELS:
        return _INTEGER_KERNELS[name]
    fn = _JITTED_INTEGER_KERNELS.get(name)
    if fn is None:
        logger.debug("compiling integer kernel %s", name)
        fn = jax.jit(_INTEGER_KERNELS[name])
        _JITTED_INTEGER_KERNELS[name] = fn
    return fn


def _comparison_kernel(op: str) -> Callable[[jnp.ndarray, jnp.ndarray], jnp.ndarray]:
    if not _USE_JITTED_KERNELS:
        return _COMPARISON_KERNELS[op]
    fn = _JITTED_COMPARISON_KERNELS.get(op)
    if fn is None:
        logger.debug("compiling comparison kernel %s", op)
        fn = jax.jit(_COMPARISON_KERNELS[op])
        _JITTED_COMPARISON_KERNELS[op] = fn
    return fn


def _i32_operand(tokens: TokenTree) -> jnp.ndarray:
    value = integer_value(tokens[0])
    assert value is not None
    if not I32_MIN <= value <= I32_MAX:
        raise BuiltinFailure(f"integer literal {value} is out of range for i32")
    return jnp.int32(value)


_OVERFLOW_VERBS: Final[dict[str, str]] = {
    "add": "add",
    "sub": "subtract",
    "mul": "multiply",
    "div": "divide",
    "rem": "calculate the remainder",
    "neg": "negate",
}


def _integer_binary(kernel_name: str, symbol: str) -> Callable[[TokenTree, TokenTree], TokenTree]:
    def run(left: TokenTree, right: TokenTree) -> TokenTree:
        a = _i32_operand(left)
        b = _i32_operand(right)
        if kernel_name == "div" and int(b) == 0:
            raise BuiltinFailure("attempt to divide by zero")
        if kernel_name == "rem" and int(b) == 0:
            raise BuiltinFailure("attempt to calculate the remainder with a divisor of zero")
        result, overflow = _integer_kernel(kernel_name)(a, b)
        if bool(overflow):
            raise BuiltinFailure(
                f"attempt to {_OVERFLOW_VERBS[kernel_name]} with overflow: {int(a)} {symbol} {int(b)}"
            )
        return (integer_token(int(result)),)

    return run


def _integer_compare(op: str) -> Callable[[TokenTree, TokenTree], TokenTree]:
    def run(left: TokenTree, right: TokenTree) -> TokenTree:
        return (bool_token(bool(_comparison_kernel(op)(_i32_operand(left), _i32_operand(right)))),)

    return run


def _negate(operand: TokenTree) -> TokenTree:
    # -2147483648 is written as the negation of an out-of-range literal
    if integer_value(operand[0]) == I32_MAX + 1:
        return (integer_token(I32_MIN),)
    a = _i32_operand(operand)
    result, overflow = _integer_kernel("neg")(a)
    if bool(overflow):
        raise BuiltinFailure(f"attempt to negate with overflow: -({int(a)})")
    return (integer_token(int(result)),)


def _not(operand: TokenTree) -> TokenTree:
    return (bool_token(operand[0] == FALSE),)


def _and(left: TokenTree, right: TokenTree) -> TokenTree:
    return (bool_token(left[0] == TRUE and right[0] == TRUE),)


def _or(left: TokenTree, right: TokenTree) -> TokenTree:
    return (bool_token(left[0] == TRUE or right[0] == TRUE),)


# -- named functions ---------------------------------------------------------


def _starts_with(ident: TokenTree, prefix: TokenTree) -> TokenTree:
    if not prefix:
        prefix_text = ""
    elif isinstance(prefix[0], Ident):
        prefix_text = prefix[0].text
    else:
        prefix_text = string_value(prefix[0]) or ""
    name = ident[0]
    assert isinstance(name, Ident)
    return (bool_token(name.text.startswith(prefix_text)),)


def _has_prefix(seq: TokenTree, prefix: TokenTree) -> TokenTree:
    items = unwrap_group(seq)
    head = unwrap_group(prefix)
    return (bool_token(len(head) <= len(items) and items[: len(head)] == head),)


def _len(seq: TokenTree) -> TokenTree:
    return (integer_token(len(unwrap_group(seq))),)


def _is_empty(seq: TokenTree) -> TokenTree:
    return (bool_token(not unwrap_group(seq)),)


def _is_ident(seq: TokenTree) -> TokenTree:
    return (bool_token(len(seq) == 1 and isinstance(seq[0], Ident)),)


def _is_literal(seq: TokenTree) -> TokenTree:
    return (bool_token(len(seq) == 1 and (isinstance(seq[0], Literal) or seq[0] in (TRUE, FALSE))),)


def _stringify(seq: TokenTree) -> TokenTree:
    return (string_literal(render(seq)),)


def _concat_ident(left: TokenTree, right: TokenTree) -> TokenTree:
    text = left[0].text + right[0].text  # type: ignore[union-attr]
    if not is_identifier_text(text):
        raise BuiltinFailure(f"{text!r} is not a valid identifier")
    return (Ident(text),)


def _default_registry() -> BuiltinRegistry:
    I, B, A = Shape.INTEGER, Shape.BOOLEAN, Shape.ANY
    operators = [
        Builtin("+", 2, (I, I), _integer_binary("add", "+"), "integer addition"),
        Builtin("-", 2, (I, I), _integer_binary("sub", "-"), "integer subtraction"),
        Builtin("*", 2, (I, I), _integer_binary("mul", "*"), "integer multiplication"),
        Builtin("/", 2, (I, I), _integer_binary("div", "/"), "integer division, truncating toward zero"),
        Builtin("%", 2, (I, I), _integer_binary("rem", "%"), "remainder with the sign of the dividend"),
        Builtin("<", 2, (I, I), _integer_compare("<"), "integer less-than"),
        Builtin("<=", 2, (I, I), _integer_compare("<="), "integer less-or-equal"),
        Builtin(">", 2, (I, I), _integer_compare(">"), "integer greater-than"),
        Builtin(">=", 2, (I, I), _integer_compare(">="), "integer greater-or-equal"),
        Builtin("==", 2, (A, A), lambda left, right: (bool_token(left == right),), "structural token equality"),
        Builtin("!=", 2, (A, A), lambda left, right: (bool_token(left != right),), "structural token inequality"),
        Builtin("&&", 2, (B, B), _and, "boolean and; both sides are always evaluated"),
        Builtin("||", 2, (B, B), _or, "boolean or; both sides are always evaluated"),
        Builtin("-", 1, (I,), _negate, "integer negation"),
        Builtin("!", 1, (B,), _not, "boolean not"),
    ]
    functions = [
        Builtin("starts_with", 2, (Shape.IDENT, Shape.PREFIX), _starts_with, "identifier text prefix test"),
        Builtin("has_prefix", 2, (A, A), _has_prefix, "token sequence prefix test"),
        Builtin("len", 1, (A,), _len, "number of tokens"),
        Builtin("is_empty", 1, (A,), _is_empty, "true for an empty sequence or empty group"),
        Builtin("is_ident", 1, (A,), _is_ident, "true for exactly one identifier"),
        Builtin("is_literal", 1, (A,), _is_literal, "true for exactly one literal"),
        Builtin("stringify", 1, (A,), _stringify, "string literal of the rendered tokens"),
        Builtin("concat_ident", 2, (Shape.IDENT_PART, Shape.IDENT_PART), _concat_ident, "join two tokens into an identifier"),
    ]
    return BuiltinRegistry(operators, functions)


DEFAULT_BUILTINS: Final[BuiltinRegistry] = _default_registry()
