"""Tree-walking evaluator for rukt statements and expressions."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from typing import Final

from .ast import (
    Atom,
    Block,
    BlockStmt,
    Call,
    Discard,
    Empty,
    Expand,
    Expr,
    ExprStmt,
    FunctionDef,
    GroupItem,
    GroupPattern,
    If,
    Infix,
    Let,
    Name,
    NamePattern,
    Prefix,
    Quote,
    Stmt,
    Use,
)
from .builtins import DEFAULT_BUILTINS, BuiltinRegistry
from .environment import Environment, Frame
from .errors import ArgumentMismatch, ParseError, RecursionLimitExceeded, UnboundName, ValueKindError
from .matcher import match_pattern
from .parser import parse_expression
from .tokens import COMMA, Group, Token, TokenTree, render, span_of
from .transcriber import transcribe
from .values import Function, Value, as_tokens, truth_value

logger = logging.getLogger(__name__)

DEFAULT_RECURSION_LIMIT: Final[int] = max(1, int(os.environ.get("RUKT_RECURSION_LIMIT", "64")))


class Evaluator:
    """Runs statements against an Environment and collects `expand` output.

    `imports` holds values exported by earlier expansions; they are reachable
    through `use` and as a fallback for names bound nowhere in scope.
    """

    def __init__(
        self,
        env: Environment | None = None,
        *,
        builtins: BuiltinRegistry = DEFAULT_BUILTINS,
        imports: Mapping[str, Value] | None = None,
        recursion_limit: int | None = None,
    ) -> None:
        self.env = env if env is not None else Environment()
        self.builtins = builtins
        self.imports = dict(imports or {})
        self.recursion_limit = DEFAULT_RECURSION_LIMIT if recursion_limit is None else recursion_limit
        self.output: list[Token] = []

    # -- entry points -------------------------------------------------------

    def run(self, block: Block) -> TokenTree:
        """Execute block in the current frame and return its tail value."""
        try:
            return self.exec_block(block)
        except RecursionError as exc:
            raise RecursionLimitExceeded("Nesting is too deep to evaluate") from exc

    def evaluate(self, expr: Expr) -> TokenTree:
        try:
            return self.eval_expr(expr)
        except RecursionError as exc:
            raise RecursionLimitExceeded("Nesting is too deep to evaluate") from exc

    # -- frames -------------------------------------------------------------

    def _push(self, parent: Frame | None = None) -> None:
        if self.env.depth >= self.recursion_limit:
            raise RecursionLimitExceeded(f"Recursion limit of {self.recursion_limit} frames exceeded")
        self.env.push_frame(parent)

    def _run_scoped(self, block: Block) -> TokenTree:
        self._push()
        try:
            return self.exec_block(block)
        finally:
            self.env.pop_frame(export_to_parent=True)

    def _resolve(self, name: str) -> Value | None:
        value = self.env.get(name)
        if value is None:
            value = self.imports.get(name)
        return value

    # -- statements ---------------------------------------------------------

    def exec_block(self, block: Block) -> TokenTree:
        tail: TokenTree = ()
        for stmt in block.statements:
            if isinstance(stmt, ExprStmt) and stmt.tail:
                tail = self.eval_expr(stmt.expr)
            else:
                self.exec_statement(stmt)
        return tail

    def exec_statement(self, stmt: Stmt) -> None:
        if isinstance(stmt, Let):
            self._exec_let(stmt)
            return
        if isinstance(stmt, Expand):
            self.output.extend(transcribe(stmt.template, self._resolve))
            return
        if isinstance(stmt, FunctionDef):
            self.env.bind(stmt.name, Function(stmt.name, stmt.params, stmt.body, self.env.current))
            if stmt.exported:
                self.env.mark_exported(stmt.name)
            return
        if isinstance(stmt, Use):
            value = self.imports.get(stmt.name)
            if value is None:
                raise UnboundName(f"No exported value named {stmt.name!r}")
            self.env.bind(stmt.alias or stmt.name, value)
            return
        if isinstance(stmt, BlockStmt):
            self._run_scoped(stmt.block)
            return
        if isinstance(stmt, ExprStmt):
            self.eval_expr(stmt.expr)
            return
        raise TypeError(f"Unsupported statement node: {type(stmt).__name__}")

    def _exec_let(self, stmt: Let) -> None:
        value = self.eval_expr(stmt.value)
        pattern = stmt.pattern
        if isinstance(pattern, Discard):
            return
        if isinstance(pattern, NamePattern):
            self.env.bind_all({pattern.name: value}, exported=stmt.exported)
            return
        assert isinstance(pattern, GroupPattern)
        captures = match_pattern((GroupItem(pattern.delimiter, pattern.items),), value)
        if captures is None:
            raise ArgumentMismatch(
                f"`{render(value)}` does not match the pattern "
                f"{pattern.delimiter.open} ... {pattern.delimiter.close}"
            )
        self.env.bind_all(captures, exported=stmt.exported)

    # -- expressions --------------------------------------------------------

    def eval_expr(self, expr: Expr) -> TokenTree:
        if isinstance(expr, Atom):
            return (expr.token,)
        if isinstance(expr, Empty):
            return ()
        if isinstance(expr, Name):
            value = self._resolve(expr.value)
            if value is None:
                raise UnboundName(f"Unbound name {expr.value!r}")
            return as_tokens(value, where=f"{expr.value!r}")
        if isinstance(expr, Quote):
            group = expr.group
            return (Group(group.delimiter, transcribe(group.tokens, self._resolve), group.pos, group.end),)
        if isinstance(expr, Prefix):
            return self.builtins.apply_operator(expr.op, (self.eval_expr(expr.right),))
        if isinstance(expr, Infix):
            left = self.eval_expr(expr.left)
            right = self.eval_expr(expr.right)
            return self.builtins.apply_operator(expr.op, (left, right))
        if isinstance(expr, Call):
            return self._eval_call(expr)
        if isinstance(expr, If):
            return self._eval_if(expr)
        raise TypeError(f"Unsupported expression node: {type(expr).__name__}")

    def _eval_if(self, expr: If) -> TokenTree:
        condition = self.eval_expr(expr.condition)
        branch = expr.then if truth_value(condition, where="if condition") else expr.orelse
        if branch is None:
            return ()
        if isinstance(branch, If):
            return self._eval_if(branch)
        return self._run_scoped(branch)

    def _eval_call(self, expr: Call) -> TokenTree:
        target = self._resolve(expr.func)
        args = tuple(self.eval_expr(arg) for arg in expr.args)
        if isinstance(target, Function):
            return self._call_function(target, args)
        if self.builtins.has_function(expr.func):
            return self.builtins.call(expr.func, args)
        if target is None:
            raise UnboundName(f"Unbound function {expr.func!r}")
        raise ValueKindError(f"{expr.func!r} is not a function")

    def _call_function(self, func: Function, args: tuple[TokenTree, ...]) -> TokenTree:
        joined: list[Token] = []
        for idx, arg in enumerate(args):
            if idx:
                joined.append(COMMA)
            joined.extend(arg)
        captures = match_pattern(func.params, tuple(joined))
        if captures is None:
            raise ArgumentMismatch(f"Arguments `{render(joined)}` do not match the parameters of {func.name}()")
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("call %s(%s) at depth %d", func.name, render(joined), self.env.depth)
        self._push(parent=func.closure)
        try:
            self.env.bind_all(captures)
            return self.exec_block(func.body)
        finally:
            self.env.pop_frame(export_to_parent=False)


def evaluate_expression(
    tokens: TokenTree,
    *,
    imports: Mapping[str, Value] | None = None,
    builtins: BuiltinRegistry = DEFAULT_BUILTINS,
) -> TokenTree:
    """Evaluate a single expression in a fresh environment."""
    tokens = tuple(tokens)
    try:
        expr = parse_expression(tokens)
    except RecursionError as exc:
        raise ParseError("Nesting is too deep to parse", *span_of(tokens)) from exc
    return Evaluator(builtins=builtins, imports=imports).evaluate(expr)
