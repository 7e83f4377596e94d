"""
Тесты лексера выражений.
"""

import pytest

from incl.expressions import ExpressionLexer, LexerError


class TestExpressionLexer:
    """Разбиение выражений на токены."""

    def setup_method(self):
        self.lexer = ExpressionLexer()

    def _types(self, text):
        return [(t.type, t.value) for t in self.lexer.tokenize(text)]

    def test_comparison_with_member_access(self):
        assert self._types("user.age >= 18") == [
            ("IDENTIFIER", "user"),
            ("SYMBOL", "."),
            ("IDENTIFIER", "age"),
            ("OPERATOR", ">="),
            ("NUMBER", "18"),
            ("EOF", ""),
        ]

    def test_long_operators_win_over_short(self):
        values = [t.value for t in self.lexer.tokenize("a === b !== c && d || !e")]
        assert values == ["a", "===", "b", "!==", "c", "&&", "d", "||", "!", "e", ""]

    def test_keywords_are_recognized(self):
        types = [t.type for t in self.lexer.tokenize("true && typeof x")]
        assert types == ["KEYWORD", "OPERATOR", "KEYWORD", "IDENTIFIER", "EOF"]

    def test_strings_are_decoded(self):
        tokens = self.lexer.tokenize("'it\\'s' + \"a\\tb\"")
        assert tokens[0].value == "it's"
        assert tokens[2].value == "a\tb"

    def test_positions_point_into_source(self):
        tokens = self.lexer.tokenize("  x  ==  1")
        assert [t.position for t in tokens[:3]] == [2, 5, 9]

    def test_unknown_character(self):
        with pytest.raises(LexerError) as exc:
            self.lexer.tokenize("a # b")
        assert exc.value.position == 2

    def test_unterminated_string(self):
        with pytest.raises(LexerError, match="Unterminated string"):
            self.lexer.tokenize("'abc")
