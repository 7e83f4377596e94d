"""
Интерпретатор выражений для директив @@if и @@for.

Лексер → парсер (AST) → вычислитель над явной областью видимости.
"""

from __future__ import annotations

from .evaluator import (
    MAX_LOOP_ITERATIONS,
    ExpressionError,
    ExpressionEvaluator,
    evaluate_condition,
    evaluate_expression,
    is_truthy,
    render_loop,
)
from .lexer import ExpressionLexer, LexerError, Token
from .parser import ExpressionParser, ParseError

__all__ = [
    "MAX_LOOP_ITERATIONS",
    "ExpressionError",
    "ExpressionEvaluator",
    "ExpressionLexer",
    "ExpressionParser",
    "LexerError",
    "ParseError",
    "Token",
    "evaluate_condition",
    "evaluate_expression",
    "is_truthy",
    "render_loop",
]
