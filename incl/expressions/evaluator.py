"""
Вычислитель выражений директив.

Проходит по AST и вычисляет значение в явной области видимости
(контекст данных + переменные цикла). Никакой генерации кода.

Семантика повторяет язык шаблонов (JavaScript-подобный):
- неизвестный идентификатор — ошибка (строгий поиск);
- отсутствующее свойство существующего значения — UNDEFINED;
- доступ к свойству null/undefined — ошибка;
- ложные значения: "", 0, NaN, null, undefined, false
  (пустые списки и словари истинны).
"""

from __future__ import annotations

import logging
import math
from collections import ChainMap
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping, cast

from ..context import UNDEFINED, get_property, stringify
from ..directives.extractor import find_closing, iter_directives
from ..errors import EvaluationError
from .lexer import LexerError
from .model import (
    ArrayLiteral,
    Binary,
    Conditional,
    CountedLoop,
    Expr,
    ExprType,
    ForEachLoop,
    Group,
    Identifier,
    Literal,
    Logical,
    LoopHeader,
    Member,
    Unary,
)
from .parser import ExpressionParser, ParseError

logger = logging.getLogger(__name__)

# Верхняя граница числа итераций одного @@for
MAX_LOOP_ITERATIONS = 10000


class ExpressionError(Exception):
    """Ошибка при вычислении выражения (до привязки к тексту директивы)."""
    pass


def is_truthy(value: Any) -> bool:
    """Истинность значения по правилам языка шаблонов."""
    if value is None or value is UNDEFINED or value is False:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return not (value == 0 or (isinstance(value, float) and math.isnan(value)))
    if isinstance(value, str):
        return value != ""
    return True


def type_name(value: Any) -> str:
    """Аналог typeof."""
    if value is UNDEFINED:
        return "undefined"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    return "object"


class ExpressionEvaluator:
    """
    Вычислитель выражений.

    Принимает AST выражения и возвращает его значение в области видимости scope.
    """

    def __init__(self, scope: Mapping[str, Any]):
        """
        Args:
            scope: Область видимости — контекст данных, возможно с переменными цикла
        """
        self.scope = scope

    def evaluate(self, expr: Expr) -> Any:
        """
        Вычисляет значение выражения.

        Raises:
            ExpressionError: При ошибке вычисления
        """
        expr_type = expr.get_type()

        if expr_type == ExprType.LITERAL:
            return cast(Literal, expr).value
        elif expr_type == ExprType.ARRAY:
            return [self.evaluate(item) for item in cast(ArrayLiteral, expr).items]
        elif expr_type == ExprType.IDENTIFIER:
            return self._evaluate_identifier(cast(Identifier, expr))
        elif expr_type == ExprType.MEMBER:
            return self._evaluate_member(cast(Member, expr))
        elif expr_type == ExprType.GROUP:
            return self.evaluate(cast(Group, expr).expr)
        elif expr_type == ExprType.UNARY:
            return self._evaluate_unary(cast(Unary, expr))
        elif expr_type == ExprType.BINARY:
            return self._evaluate_binary(cast(Binary, expr))
        elif expr_type == ExprType.LOGICAL:
            return self._evaluate_logical(cast(Logical, expr))
        elif expr_type == ExprType.CONDITIONAL:
            node = cast(Conditional, expr)
            branch = node.consequent if is_truthy(self.evaluate(node.test)) else node.alternate
            return self.evaluate(branch)
        else:
            raise ExpressionError(f"Unknown expression type: {expr_type}")

    def _evaluate_identifier(self, expr: Identifier) -> Any:
        if expr.name not in self.scope:
            raise ExpressionError(f"{expr.name} is not defined")
        return self.scope[expr.name]

    def _evaluate_member(self, expr: Member) -> Any:
        obj = self.evaluate(expr.obj)
        prop = self.evaluate(expr.prop)
        if obj is None or obj is UNDEFINED:
            raise ExpressionError(f"Cannot read properties of {stringify_value(obj)} (reading '{stringify(prop)}')")
        return get_property(obj, prop)

    def _evaluate_unary(self, expr: Unary) -> Any:
        # typeof на необъявленном имени не ошибка: это обычная проверка в шаблонах
        if expr.operator == "typeof" and expr.operand.get_type() == ExprType.IDENTIFIER:
            if cast(Identifier, expr.operand).name not in self.scope:
                return "undefined"
        value = self.evaluate(expr.operand)
        if expr.operator == "!":
            return not is_truthy(value)
        if expr.operator == "typeof":
            return type_name(value)
        number = to_number(value)
        return -number if expr.operator == "-" else number

    def _evaluate_logical(self, expr: Logical) -> Any:
        left = self.evaluate(expr.left)
        if expr.operator == "&&":
            return self.evaluate(expr.right) if is_truthy(left) else left
        return left if is_truthy(left) else self.evaluate(expr.right)

    def _evaluate_binary(self, expr: Binary) -> Any:
        left = self.evaluate(expr.left)
        right = self.evaluate(expr.right)
        op = expr.operator

        if op == "===":
            return strict_equals(left, right)
        if op == "!==":
            return not strict_equals(left, right)
        if op == "==":
            return loose_equals(left, right)
        if op == "!=":
            return not loose_equals(left, right)
        if op in ("<", "<=", ">", ">="):
            return _compare(op, left, right)
        if op == "in":
            return _contains(left, right)
        if op == "+":
            if isinstance(left, str) or isinstance(right, str):
                return stringify_value(left) + stringify_value(right)
            return to_number(left) + to_number(right)
        return _arithmetic(op, to_number(left), to_number(right))


# ---- Приведение типов и сравнения ----

def stringify_value(value: Any) -> str:
    """Строковое представление внутри выражений: null и undefined видны явно."""
    if value is None:
        return "null"
    if value is UNDEFINED:
        return "undefined"
    return stringify(value)


def to_number(value: Any) -> float:
    if isinstance(value, bool):
        return 1 if value else 0
    if isinstance(value, (int, float)):
        return value
    if value is None:
        return 0
    if value is UNDEFINED:
        return math.nan
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        try:
            number = float(text)
        except ValueError:
            return math.nan
        return int(number) if number.is_integer() and "." not in text and "e" not in text.lower() else number
    return math.nan


def strict_equals(left: Any, right: Any) -> bool:
    if left is UNDEFINED or right is UNDEFINED:
        return left is right
    if left is None or right is None:
        return left is right
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if isinstance(left, (int, float)) and isinstance(right, (int, float)):
        return left == right
    if type(left) is not type(right):
        return False
    if isinstance(left, (list, dict)):
        return left is right
    return left == right


def loose_equals(left: Any, right: Any) -> bool:
    nullish = (None, UNDEFINED)
    if left in nullish or right in nullish:
        return left in nullish and right in nullish
    if isinstance(left, (list, dict)) or isinstance(right, (list, dict)):
        if isinstance(left, (list, dict)) and isinstance(right, (list, dict)):
            return left is right
        other = right if isinstance(left, (list, dict)) else left
        container = left if isinstance(left, (list, dict)) else right
        return loose_equals(stringify_value(container), other)
    if isinstance(left, str) and isinstance(right, str):
        return left == right
    return to_number(left) == to_number(right)


def _compare(op: str, left: Any, right: Any) -> bool:
    if isinstance(left, str) and isinstance(right, str):
        a, b = left, right
    else:
        a, b = to_number(left), to_number(right)
        if isinstance(a, float) and math.isnan(a) or isinstance(b, float) and math.isnan(b):
            return False
    if op == "<":
        return a < b
    if op == "<=":
        return a <= b
    if op == ">":
        return a > b
    return a >= b


def _contains(key: Any, container: Any) -> bool:
    if isinstance(container, Mapping):
        return stringify(key) in container
    if isinstance(container, (list, tuple)):
        index = to_number(key)
        return isinstance(index, (int, float)) and not math.isnan(index) and 0 <= index < len(container)
    raise ExpressionError(f"Cannot use 'in' operator to search for '{stringify(key)}' in {stringify_value(container)}")


def _arithmetic(op: str, a: float, b: float) -> float:
    if op == "-":
        return a - b
    if op == "*":
        return a * b
    if op == "/":
        if b == 0:
            if a == 0 or (isinstance(a, float) and math.isnan(a)):
                return math.nan
            return math.inf if a > 0 else -math.inf
        result = a / b
        return int(result) if isinstance(a, int) and isinstance(b, int) and result.is_integer() else result
    if op == "%":
        if b == 0:
            return math.nan
        return math.fmod(a, b) if isinstance(a, float) or isinstance(b, float) else int(math.fmod(a, b))
    raise ExpressionError(f"Unknown operator: {op}")


# ---- Точки входа директив ----

def evaluate_expression(text: str, scope: Mapping[str, Any]) -> Any:
    """
    Парсит и вычисляет выражение.

    Raises:
        ParseError, LexerError: При синтаксической ошибке
        ExpressionError: При ошибке вычисления
    """
    expr = ExpressionParser().parse(text)
    return ExpressionEvaluator(scope).evaluate(expr)


def evaluate_condition(args: str, scope: Mapping[str, Any]) -> bool:
    """
    Вычисляет условие директивы @@if.

    Raises:
        EvaluationError: При любой ошибке разбора или вычисления;
            несёт исходный текст условия
    """
    try:
        return is_truthy(evaluate_expression(args, scope))
    except (ParseError, LexerError, ExpressionError) as e:
        raise EvaluationError(str(e), args) from e


def render_loop(header: str, body: str, scope: Mapping[str, Any], *, prefix: str = "@@", suffix: str = "") -> str:
    """
    Разворачивает директиву @@for.

    Тело повторяется на каждой итерации; плейсхолдеры ${expr} вычисляются
    в области видимости итерации. Вложенные @@for разворачиваются в той же
    области видимости. Прочие директивы в теле не трогаются —
    их обработают следующие проходы.

    Raises:
        EvaluationError: При ошибке; несёт синтезированный текст цикла
    """
    loop_text = f"for({header}) {{ {body} }}"
    try:
        loop = _NestedLoop(ExpressionParser().parse_loop_header(header), _compile_body(body, prefix, suffix))
        result = _render_loop(loop, scope)
        logger.debug(f"Loop ({header}) rendered {len(result)} chars")
        return result
    except (ParseError, LexerError, ExpressionError) as e:
        raise EvaluationError(str(e), loop_text) from e


def _iterate(header: LoopHeader, scope: Mapping[str, Any]) -> Iterator[Mapping[str, Any]]:
    """Порождает области видимости итераций; scope не изменяется."""
    if isinstance(header, ForEachLoop):
        collection = ExpressionEvaluator(scope).evaluate(header.iterable)
        for count, value in enumerate(_collection_values(collection, header.mode)):
            if count >= MAX_LOOP_ITERATIONS:
                raise ExpressionError(f"Loop exceeded {MAX_LOOP_ITERATIONS} iterations")
            yield ChainMap({header.var: value}, scope)
        return

    counted = cast(CountedLoop, header)
    local: Dict[str, Any] = {counted.var: ExpressionEvaluator(scope).evaluate(counted.init)}
    iteration_scope = ChainMap(local, scope)
    evaluator = ExpressionEvaluator(iteration_scope)
    count = 0

    while counted.test is None or is_truthy(evaluator.evaluate(counted.test)):
        if count >= MAX_LOOP_ITERATIONS:
            raise ExpressionError(f"Loop exceeded {MAX_LOOP_ITERATIONS} iterations")
        # тело видит снимок значения переменной
        yield ChainMap(dict(local), scope)
        count += 1
        update = counted.update
        if update is None:
            continue
        if update.var not in local:
            raise ExpressionError(f"Loop update must modify the loop variable '{counted.var}'")
        current = local[update.var]
        if update.operator == "++":
            local[update.var] = to_number(current) + 1
        elif update.operator == "--":
            local[update.var] = to_number(current) - 1
        else:
            value = evaluator.evaluate(update.value)
            if update.operator == "+=":
                if isinstance(current, str) or isinstance(value, str):
                    local[update.var] = stringify_value(current) + stringify_value(value)
                else:
                    local[update.var] = to_number(current) + to_number(value)
            elif update.operator == "-=":
                local[update.var] = to_number(current) - to_number(value)
            else:
                local[update.var] = value


def _collection_values(collection: Any, mode: str) -> List[Any]:
    if mode == "in":
        if isinstance(collection, Mapping):
            return list(collection.keys())
        if isinstance(collection, (list, tuple, str)):
            return [str(i) for i in range(len(collection))]
        if collection is None or collection is UNDEFINED:
            return []
        raise ExpressionError(f"Cannot enumerate keys of {type_name(collection)}")

    if isinstance(collection, Mapping):
        return list(collection.values())
    if isinstance(collection, (list, tuple)):
        return list(collection)
    if isinstance(collection, str):
        return list(collection)
    raise ExpressionError(f"{stringify_value(collection)} is not iterable")


@dataclass
class _NestedLoop:
    """Разобранный цикл: заголовок и скомпилированное тело."""
    header: LoopHeader
    body: List[Any]


def _compile_body(body: str, prefix: str, suffix: str) -> List[Any]:
    """
    Делит тело цикла на литералы, разобранные выражения ${...} и вложенные циклы.

    Тело разбирается один раз и переиспользуется на всех итерациях.
    Возвращает список из строк, узлов Expr и _NestedLoop.
    """
    segments: List[Any] = []
    last = 0
    for inst in iter_directives(body, "for", kind="operator", prefix=prefix, suffix=suffix):
        start, end = inst.span
        segments.extend(_compile_placeholders(body[last:start]))
        header = ExpressionParser().parse_loop_header(inst.args)
        segments.append(_NestedLoop(header, _compile_body(inst.body, prefix, suffix)))
        last = end
    segments.extend(_compile_placeholders(body[last:]))
    return segments


def _compile_placeholders(text: str) -> List[Any]:
    segments: List[Any] = []
    parser = ExpressionParser()
    pos = 0
    while True:
        start = text.find("${", pos)
        if start < 0:
            break
        close = find_closing(text, start + 1, "{", "}", quote_aware=True)
        if close < 0:
            raise ExpressionError("Unterminated ${ placeholder in loop body")
        segments.append(text[pos:start])
        segments.append(parser.parse(text[start + 2:close]))
        pos = close + 1
    segments.append(text[pos:])
    return segments


def _render_loop(loop: _NestedLoop, scope: Mapping[str, Any]) -> str:
    return "".join(_render_segments(loop.body, s) for s in _iterate(loop.header, scope))


def _render_segments(segments: List[Any], scope: Mapping[str, Any]) -> str:
    evaluator = ExpressionEvaluator(scope)
    out: List[str] = []
    for segment in segments:
        if isinstance(segment, str):
            out.append(segment)
        elif isinstance(segment, _NestedLoop):
            out.append(_render_loop(segment, scope))
        else:
            out.append(stringify_value(evaluator.evaluate(segment)))
    return "".join(out)


__all__ = [
    "MAX_LOOP_ITERATIONS",
    "ExpressionError",
    "ExpressionEvaluator",
    "is_truthy",
    "type_name",
    "to_number",
    "strict_equals",
    "loose_equals",
    "evaluate_expression",
    "evaluate_condition",
    "render_loop",
]
