"""AST nodes for statements, expressions and patterns."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from .tokens import Delimiter, Group, Token, TokenTree


class FragmentKind(str, Enum):
    TT = "tt"
    IDENT = "ident"
    LITERAL = "literal"
    LIFETIME = "lifetime"
    PATH = "path"
    VIS = "vis"
    BLOCK = "block"
    EXPR = "expr"
    TOKENS = "tts"


# Pattern items


@dataclass(frozen=True)
class TokenItem:
    token: Token


@dataclass(frozen=True)
class GroupItem:
    delimiter: Delimiter
    items: tuple["PatternItem", ...]


@dataclass(frozen=True)
class CaptureItem:
    name: str
    kind: FragmentKind


@dataclass(frozen=True)
class RepeatItem:
    items: tuple["PatternItem", ...]
    separator: Token | None
    op: str


PatternItem = Union[TokenItem, GroupItem, CaptureItem, RepeatItem]


@dataclass(frozen=True)
class Discard:
    pass


@dataclass(frozen=True)
class NamePattern:
    name: str


@dataclass(frozen=True)
class GroupPattern:
    delimiter: Delimiter
    items: tuple[PatternItem, ...]


LetPattern = Union[Discard, NamePattern, GroupPattern]


# Expressions


@dataclass(frozen=True)
class Atom:
    token: Token


@dataclass(frozen=True)
class Empty:
    pass


@dataclass(frozen=True)
class Name:
    value: str
    pos: int = field(default=-1, compare=False)
    end: int = field(default=-1, compare=False)


@dataclass(frozen=True)
class Quote:
    group: Group


@dataclass(frozen=True)
class Prefix:
    op: str
    right: "Expr"


@dataclass(frozen=True)
class Infix:
    op: str
    left: "Expr"
    right: "Expr"


@dataclass(frozen=True)
class Call:
    func: str
    args: tuple["Expr", ...]
    pos: int = field(default=-1, compare=False)
    end: int = field(default=-1, compare=False)


@dataclass(frozen=True)
class If:
    condition: "Expr"
    then: "Block"
    orelse: "Block | If | None" = None


Expr = Union[Atom, Empty, Name, Quote, Prefix, Infix, Call, If]


# Statements


@dataclass(frozen=True)
class Let:
    pattern: LetPattern
    value: Expr
    exported: bool = False


@dataclass(frozen=True)
class Expand:
    template: TokenTree


@dataclass(frozen=True)
class FunctionDef:
    name: str
    params: tuple[PatternItem, ...]
    body: "Block"
    exported: bool = False


@dataclass(frozen=True)
class Use:
    name: str
    alias: str | None = None


@dataclass(frozen=True)
class BlockStmt:
    block: "Block"


@dataclass(frozen=True)
class ExprStmt:
    expr: Expr
    tail: bool = False


Stmt = Union[Let, Expand, FunctionDef, Use, BlockStmt, ExprStmt]


@dataclass(frozen=True)
class Block:
    statements: tuple[Stmt, ...]

    @property
    def tail(self) -> Expr | None:
        if self.statements:
            last = self.statements[-1]
            if isinstance(last, ExprStmt) and last.tail:
                return last.expr
        return None
