"""Token model shared by every stage: identifiers, literals, punctuation and groups."""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from .errors import ParseError


class Delimiter(str, Enum):
    PARENTHESIS = "()"
    BRACKET = "[]"
    BRACE = "{}"

    @property
    def open(self) -> str:
        return self.value[0]

    @property
    def close(self) -> str:
        return self.value[1]


class LiteralKind(str, Enum):
    INTEGER = "integer"
    FLOAT = "float"
    STRING = "string"
    CHARACTER = "character"
    BYTE = "byte"
    BYTE_STRING = "byte_string"


@dataclass(frozen=True)
class Ident:
    text: str
    pos: int = field(default=-1, compare=False, repr=False)
    end: int = field(default=-1, compare=False, repr=False)


@dataclass(frozen=True)
class Literal:
    text: str
    kind: LiteralKind
    pos: int = field(default=-1, compare=False, repr=False)
    end: int = field(default=-1, compare=False, repr=False)


@dataclass(frozen=True)
class Punct:
    text: str
    pos: int = field(default=-1, compare=False, repr=False)
    end: int = field(default=-1, compare=False, repr=False)


@dataclass(frozen=True)
class Group:
    delimiter: Delimiter
    tokens: tuple["Token", ...]
    pos: int = field(default=-1, compare=False, repr=False)
    end: int = field(default=-1, compare=False, repr=False)


# Delimiter markers of a flat token stream, consumed by build_trees().
@dataclass(frozen=True)
class Open:
    delimiter: Delimiter
    pos: int = -1
    end: int = -1


@dataclass(frozen=True)
class Close:
    delimiter: Delimiter
    pos: int = -1
    end: int = -1


Token = Union[Ident, Literal, Punct, Group]
TokenTree = tuple[Token, ...]

TRUE: Ident = Ident("true")
FALSE: Ident = Ident("false")
COMMA: Punct = Punct(",")

I32_MIN = -(2**31)
I32_MAX = 2**31 - 1

_INTEGER_RE = re.compile(
    r"""
    ^
    -?
    (?:
        0x_*[0-9a-fA-F][0-9a-fA-F_]*
      | 0o_*[0-7][0-7_]*
      | 0b_*[01][01_]*
      | [0-9][0-9_]*
    )
    $
    """,
    re.VERBOSE,
)

_SIMPLE_ESCAPES = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "0": "\0",
    "\\": "\\",
    '"': '"',
    "'": "'",
}


def build_trees(stream: Iterable[Token | Open | Close]) -> TokenTree:
    """Group a flat stream into Group tokens, rejecting malformed nesting."""
    stack: list[tuple[Open | None, list[Token]]] = [(None, [])]
    for item in stream:
        if isinstance(item, Open):
            stack.append((item, []))
            continue
        if isinstance(item, Close):
            opener, items = stack[-1]
            if opener is None:
                raise ParseError(
                    "Unmatched closing delimiter",
                    item.pos,
                    item.end,
                    found=item.delimiter.close,
                )
            if opener.delimiter is not item.delimiter:
                raise ParseError(
                    "Mismatched closing delimiter",
                    item.pos,
                    item.end,
                    expected=(opener.delimiter.close,),
                    found=item.delimiter.close,
                )
            stack.pop()
            stack[-1][1].append(Group(opener.delimiter, tuple(items), opener.pos, item.end))
            continue
        stack[-1][1].append(item)

    if len(stack) > 1:
        opener = stack[-1][0]
        assert opener is not None
        raise ParseError(
            "Unterminated delimited group",
            opener.pos,
            opener.end,
            expected=(opener.delimiter.close,),
            found="EOF",
        )
    return tuple(stack[0][1])


def flatten(tokens: Iterable[Token]) -> list[Token | Open | Close]:
    """Inverse of build_trees()."""
    out: list[Token | Open | Close] = []
    for tok in tokens:
        if isinstance(tok, Group):
            out.append(Open(tok.delimiter, tok.pos, tok.pos + 1 if tok.pos >= 0 else -1))
            out.extend(flatten(tok.tokens))
            out.append(Close(tok.delimiter, tok.end - 1 if tok.end >= 0 else -1, tok.end))
        else:
            out.append(tok)
    return out


def describe(tok: Token | None) -> str:
    """Short token description used in error messages."""
    if tok is None:
        return "EOF"
    if isinstance(tok, Ident):
        return f"IDENT({tok.text})"
    if isinstance(tok, Literal):
        return f"LITERAL({tok.text})"
    if isinstance(tok, Punct):
        return f"PUNCT({tok.text})"
    return f"GROUP({tok.delimiter.value})"


def _render_token(tok: Token) -> str:
    if isinstance(tok, Group):
        inner = render(tok.tokens)
        if tok.delimiter is Delimiter.BRACE:
            return f"{{ {inner} }}" if inner else "{}"
        return f"{tok.delimiter.open}{inner}{tok.delimiter.close}"
    return tok.text


def _needs_space(prev: Token, tok: Token) -> bool:
    if isinstance(prev, Punct) and prev.text in {"$", "'"}:
        return False
    if isinstance(tok, Punct) and tok.text in {",", ";"}:
        return False
    return True


def render(tokens: Iterable[Token]) -> str:
    """Stable textual rendering of a token sequence."""
    parts: list[str] = []
    prev: Token | None = None
    for tok in tokens:
        if prev is not None and _needs_space(prev, tok):
            parts.append(" ")
        parts.append(_render_token(tok))
        prev = tok
    return "".join(parts)


def span_of(tokens: TokenTree) -> tuple[int, int]:
    if not tokens:
        return (-1, -1)
    return (tokens[0].pos, tokens[-1].end)


def integer_value(tok: Token) -> int | None:
    """Value of an unsuffixed integer literal, or None."""
    if not isinstance(tok, Literal) or tok.kind is not LiteralKind.INTEGER:
        return None
    if not _INTEGER_RE.match(tok.text):
        return None
    text = tok.text.replace("_", "")
    negative = text.startswith("-")
    if negative:
        text = text[1:]
    if text[:2] in {"0x", "0o", "0b"}:
        value = int(text, 0)
    else:
        value = int(text, 10)
    return -value if negative else value


def integer_token(value: int) -> Literal:
    return Literal(str(value), LiteralKind.INTEGER)


def bool_token(value: bool) -> Ident:
    return TRUE if value else FALSE


def is_identifier_text(text: str) -> bool:
    return text.isidentifier() and text != "_"


def string_value(tok: Token) -> str | None:
    """Decoded content of a string literal, or None for other tokens."""
    if not isinstance(tok, Literal) or tok.kind is not LiteralKind.STRING:
        return None
    text = tok.text
    if text.startswith("r"):
        hashes = len(text) - len(text.lstrip("r#")) - 1
        return text[2 + hashes : len(text) - 1 - hashes]
    body = text[1:-1]
    out: list[str] = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch != "\\":
            out.append(ch)
            i += 1
            continue
        esc = body[i + 1]
        if esc in _SIMPLE_ESCAPES:
            out.append(_SIMPLE_ESCAPES[esc])
            i += 2
        elif esc == "x":
            out.append(chr(int(body[i + 2 : i + 4], 16)))
            i += 4
        elif esc == "u":
            close = body.index("}", i)
            out.append(chr(int(body[i + 3 : close].replace("_", ""), 16)))
            i = close + 1
        elif esc == "\n":
            # line continuation skips leading whitespace of the next line
            i += 2
            while i < len(body) and body[i] in " \t\n\r":
                i += 1
        else:
            out.append(esc)
            i += 2
    return "".join(out)


def string_literal(text: str) -> Literal:
    escaped = text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n").replace("\t", "\\t")
    return Literal(f'"{escaped}"', LiteralKind.STRING)


def unwrap_group(tokens: TokenTree) -> TokenTree:
    """Contents of a single delimited group, or the tokens unchanged."""
    if len(tokens) == 1 and isinstance(tokens[0], Group):
        return tokens[0].tokens
    return tokens
