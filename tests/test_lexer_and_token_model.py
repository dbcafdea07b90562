from __future__ import annotations

import unittest

from rukt.errors import ParseError
from rukt.lexer import tokenize, tokenize_flat
from rukt.tokens import (
    Delimiter,
    Group,
    Ident,
    Literal,
    LiteralKind,
    Punct,
    build_trees,
    describe,
    flatten,
    integer_value,
    render,
    string_literal,
    string_value,
    unwrap_group,
)


class LexerTokenKindTests(unittest.TestCase):
    def test_identifiers_punctuation_and_literals(self) -> None:
        tokens = tokenize("a::b == 1.5 'x' \"s\" 42")
        self.assertEqual(
            tokens,
            (
                Ident("a"),
                Punct("::"),
                Ident("b"),
                Punct("=="),
                Literal("1.5", LiteralKind.FLOAT),
                Literal("'x'", LiteralKind.CHARACTER),
                Literal('"s"', LiteralKind.STRING),
                Literal("42", LiteralKind.INTEGER),
            ),
        )

    def test_multi_character_operators_are_single_tokens(self) -> None:
        texts = [tok.text for tok in tokenize("&& || <= >= != => -> ..= ... <<=")]
        self.assertEqual(texts, ["&&", "||", "<=", ">=", "!=", "=>", "->", "..=", "...", "<<="])

    def test_range_is_not_a_float(self) -> None:
        self.assertEqual(
            tokenize("1..2"),
            (Literal("1", LiteralKind.INTEGER), Punct(".."), Literal("2", LiteralKind.INTEGER)),
        )

    def test_numeric_suffixes(self) -> None:
        self.assertEqual(tokenize("1f32")[0].kind, LiteralKind.FLOAT)
        self.assertEqual(tokenize("7u8")[0], Literal("7u8", LiteralKind.INTEGER))
        self.assertEqual(tokenize("0xff")[0], Literal("0xff", LiteralKind.INTEGER))

    def test_lifetime_is_quote_and_ident(self) -> None:
        self.assertEqual(tokenize("'a"), (Punct("'"), Ident("a")))

    def test_byte_and_raw_strings(self) -> None:
        kinds = [tok.kind for tok in tokenize("b'x' b\"xy\" r#\"q\"q\"#")]
        self.assertEqual(kinds, [LiteralKind.BYTE, LiteralKind.BYTE_STRING, LiteralKind.STRING])

    def test_comments_are_skipped(self) -> None:
        self.assertEqual(tokenize("x /* a /* nested */ comment */ y // tail"), (Ident("x"), Ident("y")))

    def test_groups_and_spans(self) -> None:
        tokens = tokenize("ab (c)")
        self.assertEqual(tokens, (Ident("ab"), Group(Delimiter.PARENTHESIS, (Ident("c"),))))
        self.assertEqual((tokens[0].pos, tokens[0].end), (0, 2))
        self.assertEqual((tokens[1].pos, tokens[1].end), (3, 6))

    def test_equality_ignores_spans(self) -> None:
        self.assertEqual(Ident("a", 0, 1), Ident("a", 10, 11))
        self.assertEqual(hash(Punct("+", 3, 4)), hash(Punct("+")))


class LexerErrorTests(unittest.TestCase):
    def test_mismatched_closing_delimiter(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            tokenize("(]")
        self.assertEqual(ctx.exception.message, "Mismatched closing delimiter")
        self.assertIn("expected )", str(ctx.exception))

    def test_unterminated_group(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            tokenize("{ a")
        self.assertEqual(ctx.exception.message, "Unterminated delimited group")
        self.assertEqual(ctx.exception.found, "EOF")

    def test_unmatched_closing_delimiter(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            tokenize("a )")
        self.assertEqual((ctx.exception.start, ctx.exception.end), (2, 3))

    def test_unterminated_string(self) -> None:
        with self.assertRaises(ParseError):
            tokenize('"abc')

    def test_unexpected_character(self) -> None:
        with self.assertRaises(ParseError):
            tokenize("a ` b")

    def test_radix_prefix_needs_a_digit(self) -> None:
        for source in ("0x", "0x_", "0o_ + 1", "0b__", "0xg1"):
            with self.subTest(source=source), self.assertRaises(ParseError):
                tokenize(source)
        self.assertEqual(tokenize("0x_1f")[0], Literal("0x_1f", LiteralKind.INTEGER))


class TokenTreeHelperTests(unittest.TestCase):
    def test_flatten_inverts_build_trees(self) -> None:
        tokens = tokenize("a [b {c}] (d)")
        self.assertEqual(build_trees(flatten(tokens)), tokens)
        self.assertEqual(build_trees(tokenize_flat("a [b {c}] (d)")), tokens)

    def test_render_spacing(self) -> None:
        self.assertEqual(render(tokenize("const A: u32 = $a ;")), "const A : u32 = $a;")
        self.assertEqual(render(tokenize("{ a [b, c] (d) }")), "{ a [b, c] (d) }")
        self.assertEqual(render(tokenize("{}")), "{}")
        self.assertEqual(render(tokenize("&'a str")), "& 'a str")

    def test_integer_value(self) -> None:
        self.assertEqual(integer_value(Literal("1_000", LiteralKind.INTEGER)), 1000)
        self.assertEqual(integer_value(Literal("0x1F", LiteralKind.INTEGER)), 31)
        self.assertEqual(integer_value(Literal("-12", LiteralKind.INTEGER)), -12)
        self.assertIsNone(integer_value(Literal("5u8", LiteralKind.INTEGER)))
        self.assertIsNone(integer_value(Literal("1.5", LiteralKind.FLOAT)))
        self.assertIsNone(integer_value(Ident("one")))
        self.assertIsNone(integer_value(Literal("0x_", LiteralKind.INTEGER)))
        self.assertEqual(integer_value(Literal("0b_1_0", LiteralKind.INTEGER)), 2)

    def test_string_value_and_literal(self) -> None:
        self.assertEqual(string_value(Literal('"a\\nb"', LiteralKind.STRING)), "a\nb")
        self.assertEqual(string_value(Literal('r#"x"y"#', LiteralKind.STRING)), 'x"y')
        self.assertIsNone(string_value(Ident("a")))
        quoted = string_literal('say "hi"')
        self.assertEqual(quoted.text, '"say \\"hi\\""')
        self.assertEqual(string_value(quoted), 'say "hi"')

    def test_unwrap_group(self) -> None:
        (group,) = tokenize("[a b]")
        self.assertEqual(unwrap_group((group,)), (Ident("a"), Ident("b")))
        self.assertEqual(unwrap_group((Ident("a"), group)), (Ident("a"), group))

    def test_describe(self) -> None:
        self.assertEqual(describe(Ident("x")), "IDENT(x)")
        self.assertEqual(describe(Punct(";")), "PUNCT(;)")
        self.assertEqual(describe(None), "EOF")
        self.assertEqual(describe(Group(Delimiter.BRACE, ())), "GROUP({})")


if __name__ == "__main__":
    unittest.main()
