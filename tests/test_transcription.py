from __future__ import annotations

import unittest

from rukt.errors import TranscriptionError, ValueKindError
from rukt.lexer import tokenize
from rukt.tokens import Ident
from rukt.transcriber import transcribe
from rukt.values import Repetition


def _t(source: str):
    return tokenize(source)


def _rep(*sources: str) -> Repetition:
    return Repetition(tuple(_t(source) for source in sources))


class SubstitutionTests(unittest.TestCase):
    def test_bound_and_unbound_names(self) -> None:
        result = transcribe(_t("$a $b"), {"a": _t("1")}.get)
        self.assertEqual(result, _t("1 $b"))

    def test_substitutes_inside_groups(self) -> None:
        result = transcribe(_t("f($a, [$a])"), {"a": _t("x y")}.get)
        self.assertEqual(result, _t("f(x y, [x y])"))

    def test_lone_dollar_is_literal(self) -> None:
        self.assertEqual(transcribe(_t("a $ 1"), {}.get), _t("a $ 1"))

    def test_repetition_value_needs_repetition_syntax(self) -> None:
        with self.assertRaises(ValueKindError):
            transcribe(_t("$x"), {"x": _rep("1")}.get)


class RepetitionExpansionTests(unittest.TestCase):
    def test_separator(self) -> None:
        result = transcribe(_t("$($x),*"), {"x": _rep("1", "2", "3")}.get)
        self.assertEqual(result, _t("1, 2, 3"))

    def test_plain_values_repeat_alongside(self) -> None:
        env = {"x": _rep("a", "b"), "t": _t("u8")}
        self.assertEqual(transcribe(_t("$($x: $t;)*"), env.get), _t("a: u8; b: u8;"))

    def test_nested_repetition(self) -> None:
        x = Repetition((_rep("a", "b"), _rep("c")))
        self.assertEqual(transcribe(_t("$([$($x)*])*"), {"x": x}.get), _t("[a b] [c]"))

    def test_no_repeating_capture_is_literal(self) -> None:
        self.assertEqual(transcribe(_t("$(a)*"), {}.get), _t("$(a)*"))
        self.assertEqual(transcribe(_t("$($y)*"), {"y": _t("1")}.get), _t("$(1)*"))

    def test_lengths_must_agree(self) -> None:
        env = {"a": _rep("1", "2"), "b": _rep("3")}
        with self.assertRaises(TranscriptionError):
            transcribe(_t("$($a $b)*"), env.get)

    def test_repetition_operators(self) -> None:
        with self.assertRaises(TranscriptionError):
            transcribe(_t("$($x)?"), {"x": _rep("1", "2")}.get)
        with self.assertRaises(TranscriptionError):
            transcribe(_t("$($x)+"), {"x": Repetition(())}.get)
        self.assertEqual(transcribe(_t("$($x)?"), {"x": _rep("1")}.get), _t("1"))
        self.assertEqual(transcribe(_t("$($x)*"), {"x": Repetition(())}.get), ())

    def test_template_is_not_rescanned(self) -> None:
        result = transcribe(_t("$d x"), {"d": _t("$"), "x": _t("1")}.get)
        self.assertEqual(result, (tokenize("$")[0], Ident("x")))


if __name__ == "__main__":
    unittest.main()
