"""
Лексер выражений директив @@if и @@for.

Разбивает строку выражения на значимые элементы:
- Числа и строковые литералы
- Ключевые слова (true, false, null, undefined, typeof, in, of, var, let, const)
- Идентификаторы (имена переменных контекста)
- Операторы (сравнения, логические, арифметические, присваивания)
- Символы (скобки, точка, запятая, точка с запятой)
- Пробелы (игнорируются)
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, List


@dataclass
class Token:
    """
    Токен выражения.

    Attributes:
        type: Тип токена (NUMBER, STRING, KEYWORD, IDENTIFIER, OPERATOR, SYMBOL, EOF)
        value: Значение токена (для STRING — уже раскодированная строка)
        position: Позиция в исходной строке
    """
    type: str
    value: str
    position: int

    def __repr__(self):
        return f"Token({self.type}, '{self.value}', pos={self.position})"


class LexerError(ValueError):
    """Ошибка токенизации выражения."""

    def __init__(self, message: str, position: int):
        self.message = message
        self.position = position
        super().__init__(f"{message} at position {position}")


_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "0": "\0",
    "b": "\b",
    "f": "\f",
    "v": "\v",
}


def _decode_string(raw: str) -> str:
    """Снимает кавычки и раскрывает escape-последовательности."""
    body = raw[1:-1]
    out: List[str] = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == "\\" and i + 1 < len(body):
            nxt = body[i + 1]
            out.append(_ESCAPES.get(nxt, nxt))
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


class ExpressionLexer:
    """
    Лексер для разбиения строки выражения на токены.
    """

    # Спецификация токенов: (regex_pattern, token_type, ignore_flag)
    # Порядок важен: длинные операторы раньше коротких.
    TOKEN_SPECS = [
        (r'\s+', 'WHITESPACE', True),

        (r'(?:\d+\.\d*|\.\d+|\d+)(?:[eE][+-]?\d+)?', 'NUMBER', False),
        (r"'(?:\\.|[^'\\])*'", 'STRING', False),
        (r'"(?:\\.|[^"\\])*"', 'STRING', False),

        (r'===|!==|==|!=|<=|>=|&&|\|\||\+\+|--|\+=|-=', 'OPERATOR', False),
        (r'[<>!+\-*/%=?:]', 'OPERATOR', False),

        (r'[()\[\].,;]', 'SYMBOL', False),

        (r'[A-Za-z_$][\w$]*', 'IDENTIFIER', False),

        # Неизвестный символ (ошибка)
        (r'.', 'UNKNOWN', False),
    ]

    KEYWORDS = {
        'true', 'false', 'null', 'undefined', 'typeof',
        'in', 'of', 'var', 'let', 'const',
    }

    def __init__(self):
        self._compiled_patterns = [
            (re.compile(pattern, re.DOTALL), token_type, ignore)
            for pattern, token_type, ignore in self.TOKEN_SPECS
        ]

    def tokenize(self, text: str) -> List[Token]:
        """
        Разбивает строку на токены.

        Returns:
            Список токенов, включая EOF в конце

        Raises:
            LexerError: При обнаружении неизвестного символа или незакрытой строки
        """
        tokens: List[Token] = []
        position = 0

        while position < len(text):
            for pattern, token_type, ignore in self._compiled_patterns:
                match = pattern.match(text, position)
                if not match:
                    continue

                value = match.group(0)
                if not ignore:
                    if token_type == 'UNKNOWN':
                        if value in "'\"":
                            raise LexerError("Unterminated string literal", position)
                        raise LexerError(f"Unexpected character '{value}'", position)

                    if token_type == 'STRING':
                        value = _decode_string(value)
                    elif token_type == 'IDENTIFIER' and value in self.KEYWORDS:
                        token_type = 'KEYWORD'

                    tokens.append(Token(type=token_type, value=value, position=position))

                position = match.end()
                break

        tokens.append(Token(type='EOF', value='', position=position))
        return tokens

    def tokenize_stream(self, text: str) -> Iterator[Token]:
        """Генератор для ленивой токенизации."""
        for token in self.tokenize(text):
            yield token


__all__ = ["Token", "LexerError", "ExpressionLexer"]
