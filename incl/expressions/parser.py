"""
Парсер выражений и заголовков циклов с рекурсивным спуском.

Грамматика выражений (по убыванию приоритета снизу вверх):
expression     → ternary
ternary        → or ("?" expression ":" expression)?
or             → and ("||" and)*
and            → equality ("&&" equality)*
equality       → relational (("==" | "!=" | "===" | "!==") relational)*
relational     → additive (("<" | "<=" | ">" | ">=" | "in") additive)*
additive       → multiplicative (("+" | "-") multiplicative)*
multiplicative → unary (("*" | "/" | "%") unary)*
unary          → ("!" | "-" | "+" | "typeof") unary | postfix
postfix        → primary ("." IDENTIFIER | "[" expression "]")*
primary        → NUMBER | STRING | true | false | null | undefined
               | IDENTIFIER | "(" expression ")" | "[" list? "]"

Заголовки циклов:
counted  → decl? IDENTIFIER "=" expression ";" expression? ";" update?
foreach  → decl? IDENTIFIER ("of" | "in") expression
update   → IDENTIFIER ("++" | "--" | ("+=" | "-=" | "=") expression)
         | ("++" | "--") IDENTIFIER
decl     → "var" | "let" | "const"
"""

from __future__ import annotations

from typing import List, Optional

from ..context import UNDEFINED
from .lexer import ExpressionLexer, Token
from .model import (
    ArrayLiteral,
    Binary,
    Conditional,
    CountedLoop,
    Expr,
    ForEachLoop,
    Group,
    Identifier,
    Literal,
    Logical,
    LoopHeader,
    LoopUpdate,
    Member,
    Unary,
)


class ParseError(ValueError):
    """Ошибка парсинга выражения."""

    def __init__(self, message: str, position: int):
        self.message = message
        self.position = position
        super().__init__(f"Parse error at position {position}: {message}")


_EQUALITY_OPS = ("===", "!==", "==", "!=")
_RELATIONAL_OPS = ("<=", ">=", "<", ">")
_KEYWORD_LITERALS = {
    "true": True,
    "false": False,
    "null": None,
    "undefined": UNDEFINED,
}


class ExpressionParser:
    """
    Парсер выражений с рекурсивным спуском.

    Преобразует строку в AST, соблюдая приоритеты операторов.
    Один экземпляр можно использовать многократно.
    """

    def __init__(self):
        self.lexer = ExpressionLexer()
        self._tokens: List[Token] = []
        self._position = 0

    # ======= Публичный API =======

    def parse(self, text: str) -> Expr:
        """
        Парсит строку выражения в AST.

        Raises:
            ParseError: При синтаксической ошибке
            LexerError: При ошибке токенизации
        """
        self._reset(text)
        if self._is_at_end():
            raise ParseError("Empty expression", 0)

        result = self._parse_expression()
        self._expect_end()
        return result

    def parse_loop_header(self, text: str) -> LoopHeader:
        """
        Парсит заголовок цикла @@for без внешних скобок.

        Raises:
            ParseError: При синтаксической ошибке
        """
        self._reset(text)
        if self._is_at_end():
            raise ParseError("Empty loop header", 0)

        self._match_keyword("var", "let", "const")
        var = self._consume_identifier("Expected loop variable")

        if self._match_keyword("of", "in"):
            mode = self._previous().value
            iterable = self._parse_expression()
            self._expect_end()
            return ForEachLoop(var=var.value, mode=mode, iterable=iterable)

        if not self._match_operator("="):
            raise ParseError("Expected '=', 'of' or 'in' after loop variable", self._current_position())
        init = self._parse_expression()
        self._consume_symbol(";", "Expected ';' after loop initializer")

        test: Optional[Expr] = None
        if not self._check_symbol(";"):
            test = self._parse_expression()
        self._consume_symbol(";", "Expected ';' after loop condition")

        update: Optional[LoopUpdate] = None
        if not self._is_at_end():
            update = self._parse_update()
        self._expect_end()

        return CountedLoop(var=var.value, init=init, test=test, update=update)

    # ======= Выражения =======

    def _parse_expression(self) -> Expr:
        return self._parse_ternary()

    def _parse_ternary(self) -> Expr:
        test = self._parse_or()
        if self._match_operator("?"):
            consequent = self._parse_expression()
            if not self._match_operator(":"):
                raise ParseError("Expected ':' in conditional expression", self._current_position())
            alternate = self._parse_expression()
            return Conditional(test=test, consequent=consequent, alternate=alternate)
        return test

    def _parse_or(self) -> Expr:
        left = self._parse_and()
        while self._match_operator("||"):
            right = self._parse_and()
            left = Logical(operator="||", left=left, right=right)
        return left

    def _parse_and(self) -> Expr:
        left = self._parse_equality()
        while self._match_operator("&&"):
            right = self._parse_equality()
            left = Logical(operator="&&", left=left, right=right)
        return left

    def _parse_equality(self) -> Expr:
        left = self._parse_relational()
        while self._match_operator(*_EQUALITY_OPS):
            op = self._previous().value
            right = self._parse_relational()
            left = Binary(operator=op, left=left, right=right)
        return left

    def _parse_relational(self) -> Expr:
        left = self._parse_additive()
        while True:
            if self._match_operator(*_RELATIONAL_OPS):
                op = self._previous().value
            elif self._match_keyword("in"):
                op = "in"
            else:
                return left
            right = self._parse_additive()
            left = Binary(operator=op, left=left, right=right)

    def _parse_additive(self) -> Expr:
        left = self._parse_multiplicative()
        while self._match_operator("+", "-"):
            op = self._previous().value
            right = self._parse_multiplicative()
            left = Binary(operator=op, left=left, right=right)
        return left

    def _parse_multiplicative(self) -> Expr:
        left = self._parse_unary()
        while self._match_operator("*", "/", "%"):
            op = self._previous().value
            right = self._parse_unary()
            left = Binary(operator=op, left=left, right=right)
        return left

    def _parse_unary(self) -> Expr:
        if self._match_operator("!", "-", "+"):
            op = self._previous().value
            return Unary(operator=op, operand=self._parse_unary())
        if self._match_keyword("typeof"):
            return Unary(operator="typeof", operand=self._parse_unary())
        return self._parse_postfix()

    def _parse_postfix(self) -> Expr:
        expr = self._parse_primary()
        while True:
            if self._match_symbol("."):
                current = self._current_token()
                # после точки допустимы и ключевые слова: obj.in, obj.of
                if current.type not in ("IDENTIFIER", "KEYWORD"):
                    raise ParseError("Expected property name after '.'", current.position)
                self._advance()
                expr = Member(obj=expr, prop=Literal(current.value), computed=False)
            elif self._match_symbol("["):
                prop = self._parse_expression()
                self._consume_symbol("]", "Expected ']' after index expression")
                expr = Member(obj=expr, prop=prop, computed=True)
            else:
                return expr

    def _parse_primary(self) -> Expr:
        current = self._current_token()

        if current.type == "NUMBER":
            self._advance()
            return Literal(_parse_number(current.value))

        if current.type == "STRING":
            self._advance()
            return Literal(current.value)

        if current.type == "KEYWORD" and current.value in _KEYWORD_LITERALS:
            self._advance()
            return Literal(_KEYWORD_LITERALS[current.value])

        if current.type == "IDENTIFIER":
            self._advance()
            return Identifier(current.value)

        if self._match_symbol("("):
            expr = self._parse_expression()
            self._consume_symbol(")", "Expected ')' after grouped expression")
            return Group(expr=expr)

        if self._match_symbol("["):
            items: List[Expr] = []
            if not self._check_symbol("]"):
                items.append(self._parse_expression())
                while self._match_symbol(","):
                    items.append(self._parse_expression())
            self._consume_symbol("]", "Expected ']' after array items")
            return ArrayLiteral(items=items)

        if current.type == "EOF":
            raise ParseError("Unexpected end of expression", current.position)
        raise ParseError(f"Unexpected token '{current.value}'", current.position)

    def _parse_update(self) -> LoopUpdate:
        if self._match_operator("++", "--"):
            op = self._previous().value
            var = self._consume_identifier(f"Expected variable after '{op}'")
            return LoopUpdate(var=var.value, operator=op)

        var = self._consume_identifier("Expected loop update")
        if self._match_operator("++", "--"):
            return LoopUpdate(var=var.value, operator=self._previous().value)
        if self._match_operator("+=", "-=", "="):
            op = self._previous().value
            return LoopUpdate(var=var.value, operator=op, value=self._parse_expression())
        raise ParseError("Expected '++', '--', '+=', '-=' or '=' in loop update", self._current_position())

    # ======= Работа с токенами =======

    def _reset(self, text: str) -> None:
        self._tokens = self.lexer.tokenize(text)
        self._position = 0

    def _current_token(self) -> Token:
        if self._position >= len(self._tokens):
            return Token(type="EOF", value="", position=len(self._tokens))
        return self._tokens[self._position]

    def _previous(self) -> Token:
        return self._tokens[self._position - 1]

    def _current_position(self) -> int:
        return self._current_token().position

    def _is_at_end(self) -> bool:
        return self._current_token().type == "EOF"

    def _advance(self) -> Token:
        if not self._is_at_end():
            self._position += 1
        return self._previous() if self._position > 0 else self._current_token()

    def _expect_end(self) -> None:
        if not self._is_at_end():
            current = self._current_token()
            raise ParseError(f"Unexpected token '{current.value}'", current.position)

    def _match_operator(self, *ops: str) -> bool:
        current = self._current_token()
        if current.type == "OPERATOR" and current.value in ops:
            self._advance()
            return True
        return False

    def _match_keyword(self, *keywords: str) -> bool:
        current = self._current_token()
        if current.type == "KEYWORD" and current.value in keywords:
            self._advance()
            return True
        return False

    def _check_symbol(self, symbol: str) -> bool:
        current = self._current_token()
        return current.type == "SYMBOL" and current.value == symbol

    def _match_symbol(self, symbol: str) -> bool:
        if self._check_symbol(symbol):
            self._advance()
            return True
        return False

    def _consume_symbol(self, symbol: str, error_message: str) -> Token:
        if self._check_symbol(symbol):
            return self._advance()
        raise ParseError(error_message, self._current_position())

    def _consume_identifier(self, error_message: str) -> Token:
        current = self._current_token()
        if current.type == "IDENTIFIER":
            return self._advance()
        raise ParseError(error_message, current.position)


def _parse_number(raw: str) -> float | int:
    if any(c in raw for c in ".eE"):
        return float(raw)
    return int(raw)


__all__ = ["ParseError", "ExpressionParser"]
