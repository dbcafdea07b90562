"""Parser for rukt statements, expressions and matcher patterns."""

from __future__ import annotations

from dataclasses import dataclass

from .ast import (
    Atom,
    Block,
    BlockStmt,
    Call,
    CaptureItem,
    Discard,
    Empty,
    Expand,
    Expr,
    ExprStmt,
    FragmentKind,
    FunctionDef,
    GroupItem,
    GroupPattern,
    If,
    Infix,
    Let,
    LetPattern,
    Name,
    NamePattern,
    PatternItem,
    Prefix,
    Quote,
    RepeatItem,
    Stmt,
    TokenItem,
    Use,
)
from .errors import ParseError
from .tokens import Delimiter, Group, Ident, Literal, Punct, Token, TokenTree, describe

_BINARY_PRECEDENCE = {
    "||": 1,
    "&&": 2,
    "==": 3,
    "!=": 3,
    "<": 3,
    "<=": 3,
    ">": 3,
    ">=": 3,
    "+": 4,
    "-": 4,
    "*": 5,
    "/": 5,
    "%": 5,
}
_PREFIX_OPS = {"!", "-"}
_REPEAT_OPS = {"*", "+", "?"}
_KEYWORDS = {"let", "pub", "fn", "use", "as", "expand", "if", "else", "quote"}
_FRAGMENT_KINDS = {kind.value: kind for kind in FragmentKind}


@dataclass
class _Parser:
    tokens: TokenTree
    end_pos: int = -1
    index: int = 0

    # -- token access -------------------------------------------------------

    def _peek(self, offset: int = 0) -> Token | None:
        idx = self.index + offset
        if idx < len(self.tokens):
            return self.tokens[idx]
        return None

    def _advance(self) -> Token:
        tok = self.tokens[self.index]
        self.index += 1
        return tok

    def _at_end(self) -> bool:
        return self.index >= len(self.tokens)

    def _error(self, tok: Token | None = None, *, message: str | None = None, expected: tuple[str, ...] = ()) -> None:
        token = tok if tok is not None else self._peek()
        detail = message if message is not None else "Unexpected token"
        if token is None:
            raise ParseError(detail, self.end_pos, self.end_pos, expected=tuple(dict.fromkeys(expected)), found="EOF")
        raise ParseError(detail, token.pos, token.end, expected=tuple(dict.fromkeys(expected)), found=describe(token))

    def _is_punct(self, text: str, offset: int = 0) -> bool:
        tok = self._peek(offset)
        return isinstance(tok, Punct) and tok.text == text

    def _is_keyword(self, text: str, offset: int = 0) -> bool:
        tok = self._peek(offset)
        return isinstance(tok, Ident) and tok.text == text

    def _is_group(self, delimiter: Delimiter, offset: int = 0) -> bool:
        tok = self._peek(offset)
        return isinstance(tok, Group) and tok.delimiter is delimiter

    def _expect_punct(self, text: str) -> Punct:
        tok = self._peek()
        if not (isinstance(tok, Punct) and tok.text == text):
            self._error(tok, expected=(f"'{text}'",))
        return self._advance()

    def _expect_ident(self, *, what: str = "identifier") -> Ident:
        tok = self._peek()
        if not isinstance(tok, Ident) or tok.text in _KEYWORDS or tok.text == "_":
            self._error(tok, expected=(what,))
        return self._advance()

    def _expect_group(self, delimiter: Delimiter) -> Group:
        tok = self._peek()
        if not (isinstance(tok, Group) and tok.delimiter is delimiter):
            self._error(tok, expected=(f"'{delimiter.open} ... {delimiter.close}'",))
        return self._advance()

    def _sub(self, group: Group) -> "_Parser":
        return _Parser(group.tokens, end_pos=max(group.end - 1, -1))

    # -- statements ---------------------------------------------------------

    def parse_block(self) -> Block:
        statements: list[Stmt] = []
        while not self._at_end():
            if self._is_punct(";"):
                self._advance()
                continue
            statements.append(self._parse_statement())
        return Block(statements=tuple(statements))

    def _parse_statement(self) -> Stmt:
        tok = self._peek()

        if self._is_keyword("pub"):
            self._advance()
            if self._is_group(Delimiter.PARENTHESIS):
                self._advance()
            if self._is_keyword("let"):
                return self._parse_let(exported=True)
            if self._is_keyword("fn"):
                return self._parse_function(exported=True)
            self._error(expected=("'let'", "'fn'"))

        if self._is_keyword("let"):
            return self._parse_let(exported=False)

        if self._is_keyword("fn"):
            return self._parse_function(exported=False)

        if self._is_keyword("use"):
            return self._parse_use()

        if self._is_keyword("expand"):
            self._advance()
            body = self._expect_group(Delimiter.BRACE)
            self._skip_semicolon()
            return Expand(template=body.tokens)

        if isinstance(tok, Group) and tok.delimiter is Delimiter.BRACE:
            self._advance()
            block = self._sub(tok).parse_block()
            self._skip_semicolon()
            return BlockStmt(block=block)

        if self._is_keyword("if"):
            expr = self._parse_if(value=False)
            if self._is_punct(";"):
                self._advance()
                return ExprStmt(expr=expr, tail=False)
            return ExprStmt(expr=expr, tail=self._at_end())

        expr = self._parse_expression()
        if self._at_end():
            return ExprStmt(expr=expr, tail=True)
        self._expect_punct(";")
        return ExprStmt(expr=expr, tail=False)

    def _skip_semicolon(self) -> None:
        if self._is_punct(";"):
            self._advance()

    def _parse_let(self, *, exported: bool) -> Let:
        self._advance()
        pattern = self._parse_let_pattern()
        self._expect_punct("=")
        value = self._parse_expression()
        self._expect_punct(";")
        return Let(pattern=pattern, value=value, exported=exported)

    def _parse_let_pattern(self) -> LetPattern:
        tok = self._peek()
        if isinstance(tok, Ident) and tok.text == "_":
            self._advance()
            return Discard()
        if isinstance(tok, Group):
            self._advance()
            return GroupPattern(delimiter=tok.delimiter, items=parse_pattern(tok.tokens, end_pos=tok.end))
        name = self._expect_ident(what="pattern")
        return NamePattern(name=name.text)

    def _parse_function(self, *, exported: bool) -> FunctionDef:
        self._advance()
        name = self._expect_ident(what="function name")
        params = self._expect_group(Delimiter.PARENTHESIS)
        body = self._expect_group(Delimiter.BRACE)
        self._skip_semicolon()
        return FunctionDef(
            name=name.text,
            params=parse_pattern(params.tokens, end_pos=params.end),
            body=self._sub(body).parse_block(),
            exported=exported,
        )

    def _parse_use(self) -> Use:
        self._advance()
        name = self._expect_ident()
        alias = None
        if self._is_keyword("as"):
            self._advance()
            alias = self._expect_ident().text
        self._expect_punct(";")
        return Use(name=name.text, alias=alias)

    # -- expressions --------------------------------------------------------

    def parse_expression_only(self) -> Expr:
        expr = self._parse_expression()
        if not self._at_end():
            self._error(expected=("end of expression",))
        return expr

    def _parse_expression(self, min_prec: int = 1, *, no_brace: bool = False) -> Expr:
        left = self._parse_unary(no_brace=no_brace)
        while True:
            tok = self._peek()
            if not isinstance(tok, Punct):
                break
            prec = _BINARY_PRECEDENCE.get(tok.text)
            if prec is None or prec < min_prec:
                break
            self._advance()
            # Left-associative: the right operand only takes tighter operators.
            right = self._parse_expression(prec + 1, no_brace=no_brace)
            left = Infix(op=tok.text, left=left, right=right)
        return left

    def _can_start_operand(self, tok: Token | None) -> bool:
        if tok is None:
            return False
        if isinstance(tok, Punct):
            return tok.text in _PREFIX_OPS
        return True

    def _parse_unary(self, *, no_brace: bool) -> Expr:
        tok = self._peek()
        if isinstance(tok, Punct) and tok.text in _PREFIX_OPS and self._can_start_operand(self._peek(1)):
            self._advance()
            return Prefix(op=tok.text, right=self._parse_unary(no_brace=no_brace))
        return self._parse_primary(no_brace=no_brace)

    def _parse_primary(self, *, no_brace: bool) -> Expr:
        tok = self._peek()
        if tok is None:
            self._error(expected=("expression",))

        if isinstance(tok, Literal):
            self._advance()
            return Atom(token=tok)

        if isinstance(tok, Punct):
            if tok.text == ";":
                self._error(tok, expected=("expression",))
            # Bare punctuation is a literal token: `let op = +;`
            self._advance()
            return Atom(token=tok)

        if isinstance(tok, Group):
            if tok.delimiter is Delimiter.PARENTHESIS:
                self._advance()
                if not tok.tokens:
                    return Empty()
                return self._sub(tok).parse_expression_only()
            if tok.delimiter is Delimiter.BRACE and no_brace:
                self._error(tok, message="Missing condition before block", expected=("expression",))
            self._advance()
            return Quote(group=tok)

        assert isinstance(tok, Ident)
        if tok.text in {"true", "false"}:
            self._advance()
            return Atom(token=tok)
        if tok.text == "if":
            return self._parse_if(value=True)
        if tok.text == "quote":
            self._advance()
            nxt = self._peek()
            if not isinstance(nxt, Group):
                self._error(nxt, expected=("delimited group",))
            self._advance()
            return Quote(group=nxt)

        name = self._expect_ident(what="expression")
        if self._is_group(Delimiter.PARENTHESIS):
            group = self._advance()
            assert isinstance(group, Group)
            args = self._sub(group)._parse_arguments()
            return Call(func=name.text, args=args, pos=name.pos, end=group.end)
        return Name(value=name.text, pos=name.pos, end=name.end)

    def _parse_arguments(self) -> tuple[Expr, ...]:
        args: list[Expr] = []
        while not self._at_end():
            args.append(self._parse_expression())
            if self._at_end():
                break
            self._expect_punct(",")
        return tuple(args)

    def _parse_if(self, *, value: bool) -> If:
        self._advance()
        condition = self._parse_expression(no_brace=True)
        then_group = self._expect_group(Delimiter.BRACE)
        then = self._sub(then_group).parse_block()

        if not self._is_keyword("else"):
            if value:
                self._error(message="'if' used as a value requires an 'else' branch", expected=("'else'",))
            return If(condition=condition, then=then)

        self._advance()
        if self._is_keyword("if"):
            return If(condition=condition, then=then, orelse=self._parse_if(value=value))
        else_group = self._expect_group(Delimiter.BRACE)
        return If(condition=condition, then=then, orelse=self._sub(else_group).parse_block())


# -- patterns ---------------------------------------------------------------


@dataclass
class _PatternParser:
    tokens: TokenTree
    end_pos: int = -1
    index: int = 0

    def _peek(self) -> Token | None:
        if self.index < len(self.tokens):
            return self.tokens[self.index]
        return None

    def _error(self, tok: Token | None, message: str, expected: tuple[str, ...] = ()) -> None:
        if tok is None:
            raise ParseError(message, self.end_pos, self.end_pos, expected=expected, found="EOF")
        raise ParseError(message, tok.pos, tok.end, expected=expected, found=describe(tok))

    def parse(self) -> tuple[PatternItem, ...]:
        items: list[PatternItem] = []
        while self.index < len(self.tokens):
            tok = self.tokens[self.index]
            self.index += 1
            if isinstance(tok, Punct) and tok.text == "$":
                items.append(self._parse_dollar(tok))
            elif isinstance(tok, Group):
                inner = _PatternParser(tok.tokens, end_pos=tok.end).parse()
                items.append(GroupItem(delimiter=tok.delimiter, items=inner))
            else:
                items.append(TokenItem(token=tok))
        return tuple(items)

    def _parse_dollar(self, dollar: Punct) -> PatternItem:
        tok = self._peek()
        if isinstance(tok, Ident):
            self.index += 1
            colon = self._peek()
            if not (isinstance(colon, Punct) and colon.text == ":"):
                self._error(colon, f"Missing fragment specifier for ${tok.text}", expected=("':'",))
            self.index += 1
            kind_tok = self._peek()
            if not isinstance(kind_tok, Ident) or kind_tok.text not in _FRAGMENT_KINDS:
                self._error(kind_tok, "Invalid fragment specifier", expected=tuple(_FRAGMENT_KINDS))
            self.index += 1
            return CaptureItem(name=tok.text, kind=_FRAGMENT_KINDS[kind_tok.text])

        if isinstance(tok, Group) and tok.delimiter is Delimiter.PARENTHESIS:
            self.index += 1
            body = _PatternParser(tok.tokens, end_pos=tok.end).parse()
            nxt = self._peek()
            if isinstance(nxt, Punct) and nxt.text in _REPEAT_OPS:
                self.index += 1
                return RepeatItem(items=body, separator=None, op=nxt.text)
            if nxt is None or isinstance(nxt, Group) or (isinstance(nxt, Punct) and nxt.text == "$"):
                self._error(nxt, "Expected repetition separator or operator", expected=("'*'", "'+'", "'?'"))
            self.index += 1
            op = self._peek()
            if not (isinstance(op, Punct) and op.text in {"*", "+"}):
                self._error(op, "Expected repetition operator after separator", expected=("'*'", "'+'"))
            self.index += 1
            return RepeatItem(items=body, separator=nxt, op=op.text)

        self._error(tok, "Expected fragment capture or repetition after '$'", expected=("identifier", "'( ... )'"))
        raise AssertionError("unreachable")


def pattern_names(items: tuple[PatternItem, ...]) -> list[str]:
    """Capture names declared at the top level of items (nested groups included)."""
    names: list[str] = []
    for item in items:
        if isinstance(item, CaptureItem):
            names.append(item.name)
        elif isinstance(item, (GroupItem, RepeatItem)):
            names.extend(pattern_names(item.items))
    return names


def parse_pattern(tokens: TokenTree, *, end_pos: int = -1) -> tuple[PatternItem, ...]:
    """Parse macro_rules-style matcher tokens into pattern items."""
    items = _PatternParser(tokens, end_pos=end_pos).parse()
    seen: set[str] = set()
    for name in pattern_names(items):
        if name == "_":
            continue
        if name in seen:
            raise ParseError(f"Duplicate matcher binding ${name}", end_pos, end_pos)
        seen.add(name)
    return items


def parse_block(tokens: TokenTree) -> Block:
    return _Parser(tuple(tokens), end_pos=tokens[-1].end if tokens else -1).parse_block()


def parse_expression(tokens: TokenTree) -> Expr:
    return _Parser(tuple(tokens), end_pos=tokens[-1].end if tokens else -1).parse_expression_only()
