"""
Модели данных для выражений директив.

Узлы AST выражений (@@if) и заголовков циклов (@@for).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Union


class ExprType(Enum):
    """Типы узлов выражений."""
    LITERAL = "literal"
    ARRAY = "array"
    IDENTIFIER = "identifier"
    MEMBER = "member"
    UNARY = "unary"
    BINARY = "binary"
    LOGICAL = "logical"
    CONDITIONAL = "conditional"
    GROUP = "group"  # для явной группировки в скобках


@dataclass
class Expr(ABC):
    """Базовый абстрактный класс для всех узлов выражений."""

    @abstractmethod
    def get_type(self) -> ExprType:
        """Возвращает тип узла."""
        pass

    def __str__(self) -> str:
        return self._to_string()

    @abstractmethod
    def _to_string(self) -> str:
        pass


@dataclass
class Literal(Expr):
    """Литерал: число, строка, true/false, null или undefined."""
    value: Any

    def get_type(self) -> ExprType:
        return ExprType.LITERAL

    def _to_string(self) -> str:
        if isinstance(self.value, str):
            return repr(self.value)
        if self.value is True:
            return "true"
        if self.value is False:
            return "false"
        if self.value is None:
            return "null"
        return str(self.value)


@dataclass
class ArrayLiteral(Expr):
    """Литерал массива: [a, b, c]"""
    items: List[Expr] = field(default_factory=list)

    def get_type(self) -> ExprType:
        return ExprType.ARRAY

    def _to_string(self) -> str:
        return "[" + ", ".join(str(i) for i in self.items) + "]"


@dataclass
class Identifier(Expr):
    """
    Имя переменной контекста.

    Разрешается в области видимости без префикса.
    """
    name: str

    def get_type(self) -> ExprType:
        return ExprType.IDENTIFIER

    def _to_string(self) -> str:
        return self.name


@dataclass
class Member(Expr):
    """
    Доступ к свойству: obj.name или obj[expr]
    """
    obj: Expr
    prop: Expr
    computed: bool = False

    def get_type(self) -> ExprType:
        return ExprType.MEMBER

    def _to_string(self) -> str:
        if self.computed:
            return f"{self.obj}[{self.prop}]"
        return f"{self.obj}.{self.prop.value if isinstance(self.prop, Literal) else self.prop}"


@dataclass
class Unary(Expr):
    """Унарная операция: !x, -x, +x, typeof x"""
    operator: str
    operand: Expr

    def get_type(self) -> ExprType:
        return ExprType.UNARY

    def _to_string(self) -> str:
        sep = " " if self.operator == "typeof" else ""
        return f"{self.operator}{sep}{self.operand}"


@dataclass
class Binary(Expr):
    """
    Бинарная операция: left op right

    Сравнения, арифметика и оператор in.
    """
    operator: str
    left: Expr
    right: Expr

    def get_type(self) -> ExprType:
        return ExprType.BINARY

    def _to_string(self) -> str:
        return f"{self.left} {self.operator} {self.right}"


@dataclass
class Logical(Expr):
    """
    Логическая операция с коротким вычислением: && или ||

    Результат — значение одного из операндов, а не bool.
    """
    operator: str
    left: Expr
    right: Expr

    def get_type(self) -> ExprType:
        return ExprType.LOGICAL

    def _to_string(self) -> str:
        return f"{self.left} {self.operator} {self.right}"


@dataclass
class Conditional(Expr):
    """Тернарный оператор: test ? consequent : alternate"""
    test: Expr
    consequent: Expr
    alternate: Expr

    def get_type(self) -> ExprType:
        return ExprType.CONDITIONAL

    def _to_string(self) -> str:
        return f"{self.test} ? {self.consequent} : {self.alternate}"


@dataclass
class Group(Expr):
    """Группа в скобках: (expr)"""
    expr: Expr

    def get_type(self) -> ExprType:
        return ExprType.GROUP

    def _to_string(self) -> str:
        return f"({self.expr})"


# ---- Заголовки циклов ----

@dataclass
class LoopUpdate:
    """
    Шаг счётного цикла: i++, i--, i += e, i -= e, i = e
    """
    var: str
    operator: str            # "++" | "--" | "+=" | "-=" | "="
    value: Optional[Expr] = None

    def __str__(self) -> str:
        if self.operator in ("++", "--"):
            return f"{self.var}{self.operator}"
        return f"{self.var} {self.operator} {self.value}"


@dataclass
class CountedLoop:
    """
    Счётный цикл: (var i = init; test; update)
    """
    var: str
    init: Expr
    test: Optional[Expr]
    update: Optional[LoopUpdate]

    def __str__(self) -> str:
        test = "" if self.test is None else f" {self.test}"
        update = "" if self.update is None else f" {self.update}"
        return f"({self.var} = {self.init};{test};{update})"


@dataclass
class ForEachLoop:
    """
    Перебор коллекции: (var x of items) — значения, (var k in obj) — ключи.
    """
    var: str
    mode: str                # "of" | "in"
    iterable: Expr

    def __str__(self) -> str:
        return f"({self.var} {self.mode} {self.iterable})"


LoopHeader = Union[CountedLoop, ForEachLoop]


__all__ = [
    "ExprType",
    "Expr",
    "Literal",
    "ArrayLiteral",
    "Identifier",
    "Member",
    "Unary",
    "Binary",
    "Logical",
    "Conditional",
    "Group",
    "LoopUpdate",
    "CountedLoop",
    "ForEachLoop",
    "LoopHeader",
]
