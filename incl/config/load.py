"""
Загрузчик конфигурации движка из YAML.

Файл incl.yaml (или явно указанный путь) содержит те же ключи, что и
EngineOptions; фильтры задаются строками 'module:attribute'.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from ..context import deep_merge
from ..errors import ConfigError, IncludeUserError
from ..filters import load_filters
from .model import OPTION_KEYS, EngineOptions

CONFIG_FILE = "incl.yaml"

_yaml = YAML(typ="safe")


def _read_yaml_map(path: Path) -> dict:
    """Читает YAML файл и возвращает словарь."""
    try:
        raw = _yaml.load(path.read_text(encoding="utf-8")) or {}
    except YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}")
    if not isinstance(raw, dict):
        raise ConfigError(f"YAML must be a mapping: {path}")
    return raw


def read_data_file(path: Path) -> Any:
    """
    Читает файл данных: JSON, либо YAML для .yaml/.yml.

    Raises:
        ValueError: При ошибке разбора (json.JSONDecodeError или обёрнутая ошибка YAML)
    """
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in (".yaml", ".yml"):
        try:
            return _yaml.load(text)
        except YAMLError as e:
            raise ValueError(f"Invalid YAML in {path}: {e}")
    return json.loads(text)


def find_config(start: Path) -> Optional[Path]:
    """Ищет incl.yaml в start и выше по дереву каталогов."""
    current = start.resolve()
    if current.is_file():
        current = current.parent
    for directory in (current, *current.parents):
        candidate = directory / CONFIG_FILE
        if candidate.is_file():
            return candidate
    return None


def load_context_file(path: Path) -> Dict[str, Any]:
    """
    Загружает файл контекста (JSON или YAML) для --context.

    Raises:
        ConfigError: Если файла нет или верхний уровень — не словарь
    """
    if not path.is_file():
        raise ConfigError(f"Context file not found: {path}")
    try:
        data = read_data_file(path)
    except ValueError as e:
        raise ConfigError(f"Cannot parse context file {path}: {e}")
    if not isinstance(data, dict):
        raise ConfigError(f"Context file must contain a mapping: {path}")
    return data


def options_from_mapping(raw: Mapping[str, Any], *, base_dir: Optional[Path] = None) -> EngineOptions:
    """
    Строит EngineOptions из сырого словаря конфигурации.

    Относительный basepath разрешается от base_dir (каталога файла конфигурации).
    """
    unknown = sorted(set(raw) - set(OPTION_KEYS))
    if unknown:
        raise ConfigError(f"unknown option(s): {', '.join(unknown)}")

    values = dict(raw)
    if "filters" in values and values["filters"] not in (None, False):
        if not isinstance(values["filters"], Mapping):
            raise ConfigError("filters must be a mapping of name -> 'module:attribute'")
        try:
            values["filters"] = load_filters(values["filters"])
        except IncludeUserError as e:
            raise ConfigError(e.message)

    basepath = values.get("basepath")
    if base_dir is not None and isinstance(basepath, str) and not basepath.startswith("@"):
        if not Path(basepath).expanduser().is_absolute():
            values["basepath"] = str((base_dir / basepath).resolve())

    return EngineOptions.from_dict(values)


def load_options(
    config_path: Optional[Path] = None,
    *,
    overrides: Optional[Mapping[str, Any]] = None,
    extra_context: Optional[Mapping[str, Any]] = None,
) -> EngineOptions:
    """
    Загружает конфигурацию движка.

    Args:
        config_path: Путь к YAML-конфигурации (None — только значения по умолчанию)
        overrides: Значения, перекрывающие файл (например, флаги CLI)
        extra_context: Контекст, сливаемый поверх контекста из файла

    Raises:
        ConfigError: При ошибке чтения или валидации
    """
    raw: Dict[str, Any] = {}
    base_dir: Optional[Path] = None
    if config_path is not None:
        if not config_path.is_file():
            raise ConfigError(f"Config file not found: {config_path}")
        raw = _read_yaml_map(config_path)
        base_dir = config_path.resolve().parent

    for key, value in (overrides or {}).items():
        if value is not None:
            raw[key] = value

    if extra_context:
        context = raw.get("context") or {}
        if not isinstance(context, Mapping):
            raise ConfigError("context must be a mapping")
        raw["context"] = deep_merge(context, extra_context)

    return options_from_mapping(raw, base_dir=base_dir)


__all__ = [
    "CONFIG_FILE",
    "read_data_file",
    "find_config",
    "load_context_file",
    "options_from_mapping",
    "load_options",
]
