from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Literal, Mapping, Optional, Protocol, Tuple

from .errors import ParameterWarning


# ---- Aliases for clarity ----
DirectiveKind = Literal["operator", "function"]
DataContext = Dict[str, Any]


class TextFilter(Protocol):
    """Opaque text transform registered by name in EngineOptions.filters."""

    def __call__(self, text: str, options: Optional[Mapping[str, Any]] = None) -> str: ...


# ---- Directives ----

@dataclass(frozen=True)
class DirectiveInstance:
    """
    Одно вхождение директивы в тексте.

    Создаётся экстрактором и сразу же передаётся обработчику.
    """
    kind: DirectiveKind
    name: str
    args: str                  # сырой текст аргументов
    body: str = ""             # тело блока (только для operator)
    span: Tuple[int, int] = (0, 0)  # позиции начала/конца в сканируемом тексте
    before: str = ""           # пробелы/табы непосредственно перед префиксом


# ---- Resolution units ----

@dataclass(frozen=True)
class ResolutionUnit:
    """
    Минимальная идентичность обрабатываемого текста.

    path — абсолютный путь файла (для проверки циклов и @file),
    base — корневая директория файла верхнего уровня.
    """
    path: Path
    base: Path
    contents: str

    def with_contents(self, contents: str) -> ResolutionUnit:
        return replace(self, contents=contents)


@dataclass(frozen=True)
class ResolvedUnit:
    """Результат обработки: развёрнутый текст и накопленные предупреждения."""
    unit: ResolutionUnit
    warnings: Tuple[ParameterWarning, ...] = field(default_factory=tuple)

    @property
    def contents(self) -> str:
        return self.unit.contents

    @property
    def path(self) -> Path:
        return self.unit.path


# ---- Resolution state ----

@dataclass(frozen=True)
class ResolutionFrame:
    """
    State of one step of a resolution.

    A new frame is created for every included unit; nothing is shared between
    top-level calls except the warnings list of the call itself.
    """
    unit: ResolutionUnit
    data: Mapping[str, Any]            # data context of the unit
    base_context: Mapping[str, Any]    # configured context (+ webRoot) of the top-level call
    stack: Tuple[Path, ...] = ()       # files being resolved, outermost first
    warnings: List[ParameterWarning] = field(default_factory=list)

    @property
    def current_file(self) -> Path:
        return self.unit.path

    def child(self, unit: ResolutionUnit, data: Mapping[str, Any]) -> ResolutionFrame:
        return replace(self, unit=unit, data=data, stack=self.stack + (unit.path,))


__all__ = [
    "DirectiveKind",
    "DataContext",
    "TextFilter",
    "DirectiveInstance",
    "ResolutionUnit",
    "ResolvedUnit",
    "ResolutionFrame",
]
