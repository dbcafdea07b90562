"""Tokenization of Rust-like source text into the token model."""

from __future__ import annotations

from .errors import ParseError
from .tokens import Close, Delimiter, Ident, Literal, LiteralKind, Open, Punct, Token, TokenTree, build_trees

_OPENERS = {
    "(": Delimiter.PARENTHESIS,
    "[": Delimiter.BRACKET,
    "{": Delimiter.BRACE,
}
_CLOSERS = {
    ")": Delimiter.PARENTHESIS,
    "]": Delimiter.BRACKET,
    "}": Delimiter.BRACE,
}

_RADIX_DIGITS = {
    "x": "0123456789abcdefABCDEF",
    "o": "01234567",
    "b": "01",
}

# Longest first so that scanning can stop at the first prefix match.
_MULTI_PUNCT = (
    "...",
    "..=",
    "<<=",
    ">>=",
    "::",
    "==",
    "!=",
    "<=",
    ">=",
    "&&",
    "||",
    "=>",
    "->",
    "..",
    "+=",
    "-=",
    "*=",
    "/=",
    "%=",
    "^=",
    "&=",
    "|=",
    "<<",
    ">>",
)
_SINGLE_PUNCT = set("+-*/%^!&|=<>@.,;:#$?~")
_WHITESPACE = {" ", "\t", "\n", "\r", "\f", "\v"}
_ESCAPABLE = set("nrt0\\\"'")


def _is_ident_start(ch: str) -> bool:
    return ch == "_" or ch.isalpha()


def _is_ident_continue(ch: str) -> bool:
    return ch == "_" or ch.isalnum()


def _scan_while(source: str, start: int, predicate) -> int:
    i = start
    while i < len(source) and predicate(source[i]):
        i += 1
    return i


def _skip_block_comment(source: str, start: int) -> int:
    depth = 0
    i = start
    while i < len(source):
        if source.startswith("/*", i):
            depth += 1
            i += 2
            continue
        if source.startswith("*/", i):
            depth -= 1
            i += 2
            if depth == 0:
                return i
            continue
        i += 1
    raise ParseError("Unterminated block comment", start, len(source), expected=("*/",), found="EOF")


def _scan_escape(source: str, start: int) -> int:
    # start points at the backslash
    if start + 1 >= len(source):
        raise ParseError("Escape sequence is incomplete at end of input", start, len(source))
    esc = source[start + 1]
    if esc in _ESCAPABLE or esc == "\n":
        return start + 2
    if esc == "x":
        digits = source[start + 2 : start + 4]
        if len(digits) != 2 or not all(ch in "0123456789abcdefABCDEF" for ch in digits):
            raise ParseError("Invalid \\x escape", start, start + 4)
        return start + 4
    if esc == "u":
        if start + 2 >= len(source) or source[start + 2] != "{":
            raise ParseError("Invalid \\u escape", start, start + 3, expected=("{",))
        close = source.find("}", start + 3)
        if close == -1:
            raise ParseError("Unterminated \\u escape", start, len(source), expected=("}",), found="EOF")
        return close + 1
    raise ParseError(f"Unknown escape sequence \\{esc}", start, start + 2)


def _scan_quoted(source: str, start: int, quote: str) -> int:
    # start points at the opening quote; returns index past the closing quote
    i = start + 1
    while i < len(source):
        ch = source[i]
        if ch == quote:
            return i + 1
        if ch == "\\":
            i = _scan_escape(source, i)
            continue
        i += 1
    raise ParseError("Unterminated literal", start, len(source), expected=(quote,), found="EOF")


def _scan_raw_string(source: str, start: int) -> int:
    # start points at the first '#' or '"' after the r prefix
    i = _scan_while(source, start, lambda ch: ch == "#")
    hashes = i - start
    if i >= len(source) or source[i] != '"':
        raise ParseError("Invalid raw string literal", start, i, expected=('"',))
    terminator = '"' + "#" * hashes
    close = source.find(terminator, i + 1)
    if close == -1:
        raise ParseError("Unterminated raw string literal", start, len(source), expected=(terminator,), found="EOF")
    return close + len(terminator)


def _scan_number(source: str, start: int) -> tuple[int, LiteralKind]:
    i = start
    kind = LiteralKind.INTEGER
    if source.startswith(("0x", "0o", "0b"), i):
        end = _scan_while(source, i + 2, lambda ch: ch == "_" or ch.isalnum())
        first = source[i + 2 : end].lstrip("_")[:1]
        if not first or first not in _RADIX_DIGITS[source[i + 1]]:
            raise ParseError(
                "Integer literal has no digits after its radix prefix",
                start,
                end,
                found=repr(source[start:end]),
            )
        return end, kind

    i = _scan_while(source, i, lambda ch: ch.isdigit() or ch == "_")
    # 1.5 is a float; 1..2 and 1.foo() are not
    if (
        i + 1 < len(source)
        and source[i] == "."
        and source[i + 1].isdigit()
    ):
        kind = LiteralKind.FLOAT
        i = _scan_while(source, i + 1, lambda ch: ch.isdigit() or ch == "_")
    if i < len(source) and source[i] in {"e", "E"}:
        j = i + 1
        if j < len(source) and source[j] in {"+", "-"}:
            j += 1
        if j < len(source) and source[j].isdigit():
            kind = LiteralKind.FLOAT
            i = _scan_while(source, j, lambda ch: ch.isdigit() or ch == "_")

    suffix_end = _scan_while(source, i, _is_ident_continue)
    if source[i:suffix_end] in {"f32", "f64"}:
        kind = LiteralKind.FLOAT
    return suffix_end, kind


def tokenize_flat(source: str) -> list[Token | Open | Close]:
    """Scan source text into a flat stream of tokens and delimiter markers."""
    out: list[Token | Open | Close] = []
    i = 0

    while i < len(source):
        ch = source[i]

        if ch in _WHITESPACE:
            i += 1
            continue

        if source.startswith("//", i):
            i = _scan_while(source, i, lambda c: c not in {"\n", "\r"})
            continue

        if source.startswith("/*", i):
            i = _skip_block_comment(source, i)
            continue

        if ch in _OPENERS:
            out.append(Open(_OPENERS[ch], i, i + 1))
            i += 1
            continue

        if ch in _CLOSERS:
            out.append(Close(_CLOSERS[ch], i, i + 1))
            i += 1
            continue

        if source.startswith(("r\"", "r#\""), i) or source.startswith("r##", i):
            end = _scan_raw_string(source, i + 1)
            out.append(Literal(source[i:end], LiteralKind.STRING, i, end))
            i = end
            continue

        if source.startswith(("br\"", "br#"), i):
            end = _scan_raw_string(source, i + 2)
            out.append(Literal(source[i:end], LiteralKind.BYTE_STRING, i, end))
            i = end
            continue

        if source.startswith("b\"", i):
            end = _scan_quoted(source, i + 1, '"')
            out.append(Literal(source[i:end], LiteralKind.BYTE_STRING, i, end))
            i = end
            continue

        if source.startswith("b'", i):
            end = _scan_quoted(source, i + 1, "'")
            out.append(Literal(source[i:end], LiteralKind.BYTE, i, end))
            i = end
            continue

        if source.startswith("r#", i) and i + 2 < len(source) and _is_ident_start(source[i + 2]):
            end = _scan_while(source, i + 2, _is_ident_continue)
            out.append(Ident(source[i:end], i, end))
            i = end
            continue

        if _is_ident_start(ch):
            end = _scan_while(source, i, _is_ident_continue)
            out.append(Ident(source[i:end], i, end))
            i = end
            continue

        if ch.isdigit():
            end, kind = _scan_number(source, i)
            out.append(Literal(source[i:end], kind, i, end))
            i = end
            continue

        if ch == '"':
            end = _scan_quoted(source, i, '"')
            out.append(Literal(source[i:end], LiteralKind.STRING, i, end))
            i = end
            continue

        if ch == "'":
            # 'a' and '\n' are characters, 'a on its own is a lifetime
            if i + 1 < len(source) and source[i + 1] == "\\":
                end = _scan_quoted(source, i, "'")
                out.append(Literal(source[i:end], LiteralKind.CHARACTER, i, end))
                i = end
                continue
            if i + 2 < len(source) and source[i + 2] == "'":
                out.append(Literal(source[i : i + 3], LiteralKind.CHARACTER, i, i + 3))
                i += 3
                continue
            if i + 1 < len(source) and _is_ident_start(source[i + 1]):
                out.append(Punct("'", i, i + 1))
                i += 1
                continue
            raise ParseError("Invalid character literal", i, i + 1, found=repr(ch))

        punct = next((p for p in _MULTI_PUNCT if source.startswith(p, i)), None)
        if punct is not None:
            out.append(Punct(punct, i, i + len(punct)))
            i += len(punct)
            continue

        if ch in _SINGLE_PUNCT:
            out.append(Punct(ch, i, i + 1))
            i += 1
            continue

        raise ParseError("Unexpected character", i, i + 1, found=repr(ch))

    return out


def tokenize(source: str) -> TokenTree:
    """Scan source text into token trees."""
    return build_trees(tokenize_flat(source))
