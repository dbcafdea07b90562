"""Top-level expansion: run a whole program and collect its output tokens."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from functools import lru_cache
from types import MappingProxyType
from typing import Final

from .ast import Block
from .builtins import DEFAULT_BUILTINS, BuiltinRegistry
from .errors import ParseError
from .evaluator import Evaluator
from .lexer import tokenize
from .parser import parse_block
from .tokens import TokenTree, render, span_of
from .values import Value

logger = logging.getLogger(__name__)

_PROGRAM_CACHE_MAX: Final[int] = max(1, int(os.environ.get("RUKT_PROGRAM_CACHE_MAX", "256")))


def _parse(tokens: TokenTree) -> Block:
    try:
        return parse_block(tokens)
    except RecursionError as exc:
        raise ParseError("Nesting is too deep to parse", *span_of(tokens)) from exc


@lru_cache(maxsize=_PROGRAM_CACHE_MAX)
def _parse_source_cached(source: str) -> Block:
    return _parse(tokenize(source))


@dataclass(frozen=True)
class Expansion:
    tokens: TokenTree
    exports: Mapping[str, Value] = field(default_factory=dict)

    def render(self) -> str:
        return render(self.tokens)


def _run(
    block: Block,
    *,
    imports: Mapping[str, Value] | None,
    builtins: BuiltinRegistry,
    recursion_limit: int | None,
) -> Expansion:
    logger.debug("expanding %d statements with %d imports", len(block.statements), len(imports or {}))
    evaluator = Evaluator(builtins=builtins, imports=imports, recursion_limit=recursion_limit)
    tail = evaluator.run(block)
    output = tuple(evaluator.output) + tail
    exports = MappingProxyType(evaluator.env.root.exported_values())
    logger.debug("expanded %d statements into %d tokens, %d exports", len(block.statements), len(output), len(exports))
    return Expansion(tokens=output, exports=exports)


def expand(
    input_tokens: TokenTree,
    *,
    imports: Mapping[str, Value] | None = None,
    builtins: BuiltinRegistry = DEFAULT_BUILTINS,
    recursion_limit: int | None = None,
) -> Expansion:
    """Parse input_tokens as a statement block and run it in a fresh root frame.

    The output holds every `expand { ... }` body in execution order followed
    by the block's tail value. Any failure raises; nothing partial is returned.
    """
    block = _parse(tuple(input_tokens))
    return _run(block, imports=imports, builtins=builtins, recursion_limit=recursion_limit)


def expand_source(
    source: str,
    *,
    imports: Mapping[str, Value] | None = None,
    builtins: BuiltinRegistry = DEFAULT_BUILTINS,
    recursion_limit: int | None = None,
) -> Expansion:
    return _run(_parse_source_cached(source), imports=imports, builtins=builtins, recursion_limit=recursion_limit)


class Session:
    """Chains expansions so later programs see earlier `pub` exports."""

    def __init__(
        self,
        *,
        builtins: BuiltinRegistry = DEFAULT_BUILTINS,
        recursion_limit: int | None = None,
    ) -> None:
        self.builtins = builtins
        self.recursion_limit = recursion_limit
        self.exports: dict[str, Value] = {}

    def expand(self, input_tokens: TokenTree) -> Expansion:
        result = expand(
            input_tokens,
            imports=self.exports,
            builtins=self.builtins,
            recursion_limit=self.recursion_limit,
        )
        self.exports.update(result.exports)
        return result

    def expand_source(self, source: str) -> Expansion:
        result = expand_source(
            source,
            imports=self.exports,
            builtins=self.builtins,
            recursion_limit=self.recursion_limit,
        )
        self.exports.update(result.exports)
        return result

    def clear(self) -> None:
        self.exports.clear()
