"""Substitution of bound values into token templates."""

from __future__ import annotations

from collections.abc import Callable

from .errors import TranscriptionError
from .tokens import Delimiter, Group, Ident, Punct, Token, TokenTree
from .values import Repetition, Value, as_tokens

Resolver = Callable[[str], "Value | None"]

_REPEAT_OPS = {"*", "+", "?"}


def _is_dollar(tok: Token) -> bool:
    return isinstance(tok, Punct) and tok.text == "$"


def _references(tokens: TokenTree) -> list[str]:
    names: list[str] = []
    for idx, tok in enumerate(tokens):
        if isinstance(tok, Group):
            names.extend(_references(tok.tokens))
        elif _is_dollar(tok) and idx + 1 < len(tokens) and isinstance(tokens[idx + 1], Ident):
            names.append(tokens[idx + 1].text)
    return list(dict.fromkeys(names))


def _split_repetition(template: TokenTree, i: int) -> tuple[Group, Token | None, str, int] | None:
    body = template[i + 1]
    assert isinstance(body, Group)
    after = template[i + 2] if i + 2 < len(template) else None
    if isinstance(after, Punct) and after.text in _REPEAT_OPS:
        return body, None, after.text, i + 3
    op = template[i + 3] if i + 3 < len(template) else None
    if (
        after is not None
        and not isinstance(after, Group)
        and not _is_dollar(after)
        and isinstance(op, Punct)
        and op.text in {"*", "+"}
    ):
        return body, after, op.text, i + 4
    return None


def _expand_repetition(
    body: Group,
    separator: Token | None,
    op: str,
    resolve: Resolver,
    repeating: dict[str, Repetition],
) -> list[Token]:
    lengths = {name: len(rep.items) for name, rep in repeating.items()}
    counts = set(lengths.values())
    if len(counts) != 1:
        detail = ", ".join(f"${name} repeats {count} times" for name, count in lengths.items())
        raise TranscriptionError(f"Inconsistent repetition lengths: {detail}")
    count = counts.pop()
    if op == "?" and count > 1:
        raise TranscriptionError(f"'?' repetition allows at most one iteration, got {count}")
    if op == "+" and count == 0:
        raise TranscriptionError("'+' repetition requires at least one iteration")

    out: list[Token] = []
    for k in range(count):
        if k and separator is not None:
            out.append(separator)

        def overlay(name: str, k: int = k) -> Value | None:
            if name in repeating:
                return repeating[name].items[k]
            return resolve(name)

        out.extend(transcribe(body.tokens, overlay))
    return out


def transcribe(template: TokenTree, resolve: Resolver) -> TokenTree:
    """Substitute `$name` and `$( ... ) sep op` in template.

    Unbound `$name` references, and repetitions that reference no repeating
    capture, are kept as literal tokens.
    """
    out: list[Token] = []
    i = 0
    while i < len(template):
        tok = template[i]

        if isinstance(tok, Group):
            out.append(Group(tok.delimiter, transcribe(tok.tokens, resolve), tok.pos, tok.end))
            i += 1
            continue

        if _is_dollar(tok) and i + 1 < len(template):
            nxt = template[i + 1]
            if isinstance(nxt, Ident):
                value = resolve(nxt.text)
                if value is not None:
                    out.extend(as_tokens(value, where=f"${nxt.text}"))
                    i += 2
                    continue
            elif isinstance(nxt, Group) and nxt.delimiter is Delimiter.PARENTHESIS:
                split = _split_repetition(template, i)
                if split is not None:
                    body, separator, op, end = split
                    repeating = {}
                    for name in _references(body.tokens):
                        value = resolve(name)
                        if isinstance(value, Repetition):
                            repeating[name] = value
                    if repeating:
                        out.extend(_expand_repetition(body, separator, op, resolve, repeating))
                        i = end
                        continue

        out.append(tok)
        i += 1
    return tuple(out)
