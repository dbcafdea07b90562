from __future__ import annotations

import unittest

from rukt.ast import (
    Atom,
    BlockStmt,
    Call,
    CaptureItem,
    Discard,
    Empty,
    Expand,
    ExprStmt,
    FragmentKind,
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
    RepeatItem,
    TokenItem,
    Use,
)
from rukt.errors import ParseError
from rukt.lexer import tokenize
from rukt.parser import parse_block, parse_expression, parse_pattern
from rukt.tokens import Delimiter, Group, Ident, Literal, LiteralKind, Punct


def _expr(source: str):
    return parse_expression(tokenize(source))


def _block(source: str):
    return parse_block(tokenize(source))


def _int(text: str) -> Atom:
    return Atom(Literal(text, LiteralKind.INTEGER))


class ExpressionPrecedenceTests(unittest.TestCase):
    def test_multiplication_binds_tighter(self) -> None:
        self.assertEqual(_expr("1 + 2 * 3"), Infix("+", _int("1"), Infix("*", _int("2"), _int("3"))))

    def test_left_associative(self) -> None:
        self.assertEqual(_expr("10 - 3 - 2"), Infix("-", Infix("-", _int("10"), _int("3")), _int("2")))

    def test_parentheses_group(self) -> None:
        self.assertEqual(_expr("(1 + 2) * 3"), Infix("*", Infix("+", _int("1"), _int("2")), _int("3")))

    def test_and_binds_tighter_than_or(self) -> None:
        expr = _expr("true || false && false")
        self.assertIsInstance(expr, Infix)
        assert isinstance(expr, Infix)
        self.assertEqual(expr.op, "||")
        self.assertEqual(expr.right, Infix("&&", Atom(Ident("false")), Atom(Ident("false"))))

    def test_comparison_below_arithmetic(self) -> None:
        expr = _expr("1 + 1 == 2")
        self.assertIsInstance(expr, Infix)
        assert isinstance(expr, Infix)
        self.assertEqual(expr.op, "==")

    def test_prefix_operators(self) -> None:
        self.assertEqual(_expr("!true"), Prefix("!", Atom(Ident("true"))))
        self.assertEqual(_expr("7 % -2"), Infix("%", _int("7"), Prefix("-", _int("2"))))

    def test_bare_punctuation_is_a_literal_token(self) -> None:
        self.assertEqual(_expr("+"), Atom(Punct("+")))
        self.assertEqual(_expr("-"), Atom(Punct("-")))
        self.assertEqual(_expr("$"), Atom(Punct("$")))


class ExpressionPrimaryTests(unittest.TestCase):
    def test_empty_parentheses(self) -> None:
        self.assertEqual(_expr("()"), Empty())

    def test_brackets_and_quote_are_literal_groups(self) -> None:
        self.assertEqual(_expr("[a b]"), Quote(Group(Delimiter.BRACKET, (Ident("a"), Ident("b")))))
        self.assertEqual(_expr("quote(a b)"), Quote(Group(Delimiter.PARENTHESIS, (Ident("a"), Ident("b")))))
        self.assertIsInstance(_expr("{ x: 1 }"), Quote)

    def test_call_arguments(self) -> None:
        expr = _expr("f(1, 2 + 3)")
        self.assertEqual(expr, Call("f", (_int("1"), Infix("+", _int("2"), _int("3")))))

    def test_call_without_arguments(self) -> None:
        self.assertEqual(_expr("f()"), Call("f", ()))

    def test_name(self) -> None:
        self.assertEqual(_expr("value"), Name("value"))

    def test_if_value_needs_else(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            _block("let x = if true { 1 };")
        self.assertIn("'else'", str(ctx.exception))

    def test_else_if_chain(self) -> None:
        expr = _expr("if a { 1 } else if b { 2 } else { 3 }")
        self.assertIsInstance(expr, If)
        assert isinstance(expr, If)
        self.assertIsInstance(expr.orelse, If)

    def test_trailing_tokens_rejected(self) -> None:
        with self.assertRaises(ParseError):
            _expr("1 2")


class StatementSyntaxTests(unittest.TestCase):
    def test_let_forms(self) -> None:
        block = _block("let op = +; let _ = 1; pub(crate) let [$x:tt] = [1];")
        self.assertEqual(block.statements[0], Let(NamePattern("op"), Atom(Punct("+"))))
        self.assertEqual(block.statements[1], Let(Discard(), _int("1")))
        third = block.statements[2]
        self.assertIsInstance(third, Let)
        assert isinstance(third, Let)
        self.assertTrue(third.exported)
        self.assertEqual(third.pattern, GroupPattern(Delimiter.BRACKET, (CaptureItem("x", FragmentKind.TT),)))

    def test_function_definition(self) -> None:
        (stmt,) = _block("pub fn f($x:tt) { x }").statements
        self.assertIsInstance(stmt, FunctionDef)
        assert isinstance(stmt, FunctionDef)
        self.assertTrue(stmt.exported)
        self.assertEqual(stmt.params, (CaptureItem("x", FragmentKind.TT),))
        self.assertEqual(stmt.body.tail, Name("x"))

    def test_use(self) -> None:
        block = _block("use foo; use foo as bar;")
        self.assertEqual(block.statements, (Use("foo"), Use("foo", "bar")))

    def test_expand_keeps_template_tokens(self) -> None:
        (stmt,) = _block("expand { a $b }").statements
        self.assertEqual(stmt, Expand(tokenize("a $b")))

    def test_nested_block(self) -> None:
        (stmt,) = _block("{ let y = 1; }").statements
        self.assertIsInstance(stmt, BlockStmt)

    def test_tail_expression(self) -> None:
        block = _block("1; 2")
        self.assertEqual(block.statements[0], ExprStmt(_int("1"), tail=False))
        self.assertEqual(block.tail, _int("2"))

    def test_if_statement_at_end_is_tail(self) -> None:
        block = _block("if x { 1 } else { 2 }")
        self.assertIsInstance(block.tail, If)

    def test_missing_semicolon(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            _block("let x = 1")
        self.assertEqual(ctx.exception.found, "EOF")
        self.assertIn("';'", ctx.exception.expected)

    def test_missing_expression_reports_span(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            _block("let x = ;")
        self.assertEqual(str(ctx.exception), "Unexpected token at span [8, 9); expected expression; found PUNCT(;)")

    def test_keyword_is_not_a_pattern(self) -> None:
        with self.assertRaises(ParseError):
            _block("let fn = 1;")

    def test_pub_needs_let_or_fn(self) -> None:
        with self.assertRaises(ParseError):
            _block("pub use x;")

    def test_no_method_call_syntax(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            _block("[1 2 3].starts_with(1 2)")
        self.assertEqual(ctx.exception.found, "PUNCT(.)")


class PatternSyntaxTests(unittest.TestCase):
    def test_repetition_with_separator(self) -> None:
        (item,) = parse_pattern(tokenize("$($name:ident: $op:tt),*"))
        self.assertEqual(
            item,
            RepeatItem(
                items=(
                    CaptureItem("name", FragmentKind.IDENT),
                    TokenItem(Punct(":")),
                    CaptureItem("op", FragmentKind.TT),
                ),
                separator=Punct(","),
                op="*",
            ),
        )

    def test_nested_group(self) -> None:
        items = parse_pattern(tokenize("[$a:tts] ?"))
        self.assertEqual(items, (GroupItem(Delimiter.BRACKET, (CaptureItem("a", FragmentKind.TOKENS),)), TokenItem(Punct("?"))))

    def test_missing_fragment_specifier(self) -> None:
        with self.assertRaises(ParseError):
            parse_pattern(tokenize("$x"))

    def test_invalid_fragment_specifier(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            parse_pattern(tokenize("$x:foo"))
        self.assertIn("tt", ctx.exception.expected)

    def test_repetition_needs_operator(self) -> None:
        with self.assertRaises(ParseError):
            parse_pattern(tokenize("$(a)"))
        with self.assertRaises(ParseError):
            parse_pattern(tokenize("$(a),"))

    def test_duplicate_capture(self) -> None:
        with self.assertRaises(ParseError):
            parse_pattern(tokenize("$x:tt $x:tt"))

    def test_discard_may_repeat(self) -> None:
        self.assertEqual(len(parse_pattern(tokenize("$_:tt $_:tt"))), 2)


if __name__ == "__main__":
    unittest.main()
