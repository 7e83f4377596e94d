"""
Тесты парсера выражений и заголовков циклов.
"""

import pytest

from incl.context import UNDEFINED
from incl.expressions import ExpressionParser, ParseError
from incl.expressions.model import (
    Binary,
    Conditional,
    CountedLoop,
    ExprType,
    ForEachLoop,
    Literal,
    Logical,
    Member,
    Unary,
)


class TestExpressionParser:
    """Приоритеты операторов и форма AST."""

    def setup_method(self):
        self.parser = ExpressionParser()

    def test_and_binds_tighter_than_or(self):
        expr = self.parser.parse("a || b && c")
        assert isinstance(expr, Logical)
        assert expr.operator == "||"
        assert isinstance(expr.right, Logical)
        assert expr.right.operator == "&&"

    def test_multiplication_binds_tighter_than_addition(self):
        expr = self.parser.parse("1 + 2 * 3")
        assert isinstance(expr, Binary)
        assert expr.operator == "+"
        assert isinstance(expr.right, Binary)
        assert expr.right.operator == "*"

    def test_member_chain(self):
        expr = self.parser.parse("page.meta['title']")
        assert isinstance(expr, Member)
        assert expr.computed
        assert isinstance(expr.obj, Member)
        assert not expr.obj.computed

    def test_ternary(self):
        expr = self.parser.parse("a ? 'x' : 'y'")
        assert expr.get_type() == ExprType.CONDITIONAL
        assert isinstance(expr, Conditional)

    def test_keyword_literals(self):
        assert self.parser.parse("undefined").value is UNDEFINED
        assert self.parser.parse("null").value is None
        assert self.parser.parse("true").value is True

    def test_unary_typeof(self):
        expr = self.parser.parse("typeof x === 'string'")
        assert isinstance(expr, Binary)
        assert isinstance(expr.left, Unary)
        assert expr.left.operator == "typeof"

    def test_array_literal(self):
        expr = self.parser.parse("[1, 'a', x]")
        assert expr.get_type() == ExprType.ARRAY
        assert len(expr.items) == 3

    def test_in_operator(self):
        expr = self.parser.parse("'a' in obj")
        assert isinstance(expr, Binary)
        assert expr.operator == "in"

    @pytest.mark.parametrize("text", ["", "a +", "(a", "a b", "a ? b", "x.1"])
    def test_invalid_expressions(self, text):
        with pytest.raises(ParseError):
            self.parser.parse(text)


class TestLoopHeader:
    """Заголовки @@for."""

    def setup_method(self):
        self.parser = ExpressionParser()

    def test_counted_loop(self):
        header = self.parser.parse_loop_header("var i = 0; i < 3; i++")
        assert isinstance(header, CountedLoop)
        assert header.var == "i"
        assert isinstance(header.init, Literal)
        assert header.update.operator == "++"

    def test_counted_loop_with_compound_update(self):
        header = self.parser.parse_loop_header("let n = 10; n > 0; n -= 3")
        assert header.update.operator == "-="
        assert header.update.value.value == 3

    def test_for_of(self):
        header = self.parser.parse_loop_header("const item of items")
        assert isinstance(header, ForEachLoop)
        assert (header.var, header.mode) == ("item", "of")

    def test_for_in_without_declaration(self):
        header = self.parser.parse_loop_header("key in obj")
        assert isinstance(header, ForEachLoop)
        assert header.mode == "in"

    def test_missing_separator(self):
        with pytest.raises(ParseError):
            self.parser.parse_loop_header("i = 0 i < 3")
