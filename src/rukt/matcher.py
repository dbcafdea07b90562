"""Backtracking matcher for macro_rules-style patterns.

Matching walks a pattern item by item over the set of input positions the
items so far can reach. For every position only the first path to reach it
is kept, in preference order: a repetition prefers the longest span it can
cover and a ``tts`` capture the shortest. The first complete match in that
order wins.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from functools import partial

from .ast import CaptureItem, FragmentKind, GroupItem, PatternItem, RepeatItem, TokenItem
from .parser import pattern_names
from .tokens import Delimiter, Group, Ident, Literal, LiteralKind, Punct, Token, TokenTree
from .values import Repetition, Value

Captures = dict[str, Value]
_Path = tuple[Callable[[], Captures], ...]

_EXPR_STOP = {",", ";", "=>"}


def _is_punct(tok: Token, text: str) -> bool:
    return isinstance(tok, Punct) and tok.text == text


def _fragment_spans(kind: FragmentKind, tokens: TokenTree, start: int) -> Iterator[int]:
    """End indices a capture of kind may take when starting at start."""
    remaining = len(tokens) - start

    if kind is FragmentKind.TOKENS:
        yield from range(start, len(tokens) + 1)
        return

    if kind is FragmentKind.VIS:
        if remaining and isinstance(tokens[start], Ident) and tokens[start].text == "pub":
            nxt = start + 1
            if nxt < len(tokens) and isinstance(tokens[nxt], Group) and tokens[nxt].delimiter is Delimiter.PARENTHESIS:
                yield nxt + 1
            yield nxt
        yield start
        return

    if not remaining:
        return
    tok = tokens[start]

    if kind is FragmentKind.TT:
        yield start + 1
    elif kind is FragmentKind.IDENT:
        if isinstance(tok, Ident) and tok.text != "_":
            yield start + 1
    elif kind is FragmentKind.LITERAL:
        if isinstance(tok, Literal) or (isinstance(tok, Ident) and tok.text in {"true", "false"}):
            yield start + 1
        elif (
            _is_punct(tok, "-")
            and remaining > 1
            and isinstance(tokens[start + 1], Literal)
            and tokens[start + 1].kind in {LiteralKind.INTEGER, LiteralKind.FLOAT}
        ):
            yield start + 2
    elif kind is FragmentKind.LIFETIME:
        if _is_punct(tok, "'") and remaining > 1 and isinstance(tokens[start + 1], Ident):
            yield start + 2
    elif kind is FragmentKind.BLOCK:
        if isinstance(tok, Group) and tok.delimiter is Delimiter.BRACE:
            yield start + 1
    elif kind is FragmentKind.PATH:
        i = start + 1 if _is_punct(tok, "::") else start
        if i >= len(tokens) or not isinstance(tokens[i], Ident):
            return
        i += 1
        while i + 1 < len(tokens) and _is_punct(tokens[i], "::") and isinstance(tokens[i + 1], Ident):
            i += 2
        yield i
    elif kind is FragmentKind.EXPR:
        i = start
        while i < len(tokens) and not (isinstance(tokens[i], Punct) and tokens[i].text in _EXPR_STOP):
            i += 1
        if i > start:
            yield i


def _no_captures() -> Captures:
    return {}


def _capture(name: str, tokens: TokenTree, start: int, end: int) -> Callable[[], Captures]:
    return lambda: {name: tokens[start:end]}


def _force(path: _Path) -> Captures:
    caps: Captures = {}
    for part in path:
        caps.update(part())
    return caps


def _item_ends(item: PatternItem, tokens: TokenTree, ti: int) -> Iterator[tuple[int, Callable[[], Captures]]]:
    if isinstance(item, TokenItem):
        if ti < len(tokens) and tokens[ti] == item.token:
            yield ti + 1, _no_captures
        return

    if isinstance(item, GroupItem):
        if ti >= len(tokens):
            return
        tok = tokens[ti]
        if not isinstance(tok, Group) or tok.delimiter is not item.delimiter:
            return
        path = _sequence_ends(item.items, tok.tokens, 0).get(len(tok.tokens))
        if path is not None:
            yield ti + 1, partial(_force, path)
        return

    if isinstance(item, CaptureItem):
        for end in _fragment_spans(item.kind, tokens, ti):
            yield end, _no_captures if item.name == "_" else _capture(item.name, tokens, ti, end)
        return

    yield from _repeat_ends(item, tokens, ti)


def _repeat_ends(item: RepeatItem, tokens: TokenTree, ti: int) -> Iterator[tuple[int, Callable[[], Captures]]]:
    # back[end] = (position before the last iteration, that iteration's path)
    back: dict[int, tuple[int, _Path] | None] = {ti: None}
    level = [ti]
    while level:
        next_level: list[int] = []
        for pos in level:
            first = pos == ti
            if item.op == "?" and not first:
                continue
            start = pos
            if not first and item.separator is not None:
                if pos >= len(tokens) or tokens[pos] != item.separator:
                    continue
                start = pos + 1
            for end, path in _sequence_ends(item.items, tokens, start).items():
                # an iteration has to make progress or the loop never ends
                if end > pos and end not in back:
                    back[end] = (pos, path)
                    next_level.append(end)
        level = next_level

    for end in sorted(back, reverse=True):
        if item.op == "+" and end == ti:
            continue
        yield end, partial(_collect, item, back, end)


def _collect(item: RepeatItem, back: dict[int, tuple[int, _Path] | None], end: int) -> Captures:
    iterations: list[Captures] = []
    link = back[end]
    while link is not None:
        pos, path = link
        iterations.append(_force(path))
        link = back[pos]
    iterations.reverse()
    out: Captures = {}
    for name in pattern_names(item.items):
        if name == "_":
            continue
        out[name] = Repetition(tuple(it[name] for it in iterations))
    return out


def _sequence_ends(items: tuple[PatternItem, ...], tokens: TokenTree, start: int) -> dict[int, _Path]:
    """Every end position items can reach from start, with the preferred path to each.

    Paths are kept in preference order and only the first path reaching a
    position survives, so the walk is bounded by the number of positions.
    """
    frontier: dict[int, _Path] = {start: ()}
    for item in items:
        advanced: dict[int, _Path] = {}
        for ti, path in frontier.items():
            for end, part in _item_ends(item, tokens, ti):
                if end not in advanced:
                    advanced[end] = path + (part,)
        if not advanced:
            return {}
        frontier = advanced
    return frontier


def match_pattern(items: tuple[PatternItem, ...], tokens: TokenTree) -> Captures | None:
    """Captures of the first complete match of items against tokens, or None."""
    tokens = tuple(tokens)
    path = _sequence_ends(items, tokens, 0).get(len(tokens))
    if path is None:
        return None
    return _force(path)
