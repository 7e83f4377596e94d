"""
Data context helpers.

A data context is a plain ``dict`` of names to values (str, numbers, bool,
None, lists, nested dicts). Contexts are never mutated once handed to the
driver: every include and loop item gets a freshly merged copy.

Coercion rules, shared by the variable resolver and the expression
evaluator:

* a missing name or property is ``UNDEFINED``, distinct from ``""`` and None;
* ``stringify`` renders None/UNDEFINED as ``""``, booleans as
  ``true``/``false``, integral floats without ``.0``, lists comma-joined and
  dicts as compact JSON.
"""

from __future__ import annotations

import copy
import json
import math
import os
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional

from .types import DataContext


class _Undefined:
    """Sentinel for absent values."""

    _instance: Optional[_Undefined] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "undefined"

    def __reduce__(self):
        return (_Undefined, ())

    def __deepcopy__(self, memo):
        return self


UNDEFINED = _Undefined()

# Reserved context entries
CONTENT_KEY = "content"
WEB_ROOT_KEY = "webRoot"


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Merges ``override`` into a copy of ``base``.

    Nested mappings are merged key by key; every other value (lists
    included) from ``override`` replaces the one in ``base``. Neither input
    is modified and the result shares no mutable values with them.
    """
    result: Dict[str, Any] = copy.deepcopy(dict(base))
    for key, value in override.items():
        current = result.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            result[key] = deep_merge(current, value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def derive_context(base: Mapping[str, Any], *overrides: Optional[Mapping[str, Any]]) -> DataContext:
    """Builds a derived context: ``base`` deep-merged with each non-empty override in order."""
    result: DataContext = copy.deepcopy(dict(base))
    for override in overrides:
        if override:
            result = deep_merge(result, override)
    return result


def get_property(value: Any, key: Any) -> Any:
    """
    Reads one property of ``value``.

    Mappings are indexed by key, lists and strings by integer index;
    ``length`` works for all three. Anything missing is UNDEFINED.
    """
    if isinstance(value, Mapping):
        if key in value:
            return value[key]
        if isinstance(key, (int, float)) and not isinstance(key, bool):
            skey = _number_key(key)
            if skey in value:
                return value[skey]
        if key == "length":
            return len(value)
        return UNDEFINED

    if isinstance(value, (list, tuple, str)):
        if key == "length":
            return len(value)
        index = _as_index(key)
        if index is not None and 0 <= index < len(value):
            return value[index]
        return UNDEFINED

    return UNDEFINED


def lookup_path(data: Mapping[str, Any], segments: Iterable[str]) -> Any:
    """Walks ``segments`` through nested mappings and lists; UNDEFINED when a step is missing."""
    current: Any = data
    for segment in segments:
        if current is None or current is UNDEFINED:
            return UNDEFINED
        current = get_property(current, segment)
    return current


def lookup_dotted(data: Mapping[str, Any], dotted: str) -> Any:
    """``lookup_path`` for an ``a.b.0.c`` style reference."""
    return lookup_path(data, [s for s in dotted.strip().split(".") if s])


def format_number(value: float) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer():
        return str(int(value))
    return repr(value)


def stringify(value: Any) -> str:
    """Renders a context value as template text."""
    if value is None or value is UNDEFINED:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return format_number(value)
    if isinstance(value, (list, tuple)):
        return ",".join(stringify(v) for v in value)
    if isinstance(value, Mapping):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"), default=str)
    return str(value)


def compute_web_root(path: Path, base: Path) -> str:
    """
    Relative path from the file's directory to its base, with forward slashes.

    Returns "." when the file lives directly in the base directory.
    """
    rel = os.path.relpath(str(base), str(Path(path).parent))
    rel = rel.replace("\\", "/")
    return "." if rel in ("", ".") else rel


def _as_index(key: Any) -> Optional[int]:
    if isinstance(key, bool):
        return None
    if isinstance(key, int):
        return key
    if isinstance(key, float) and key.is_integer():
        return int(key)
    if isinstance(key, str) and key.isdigit():
        return int(key)
    return None


def _number_key(key: float) -> str:
    return format_number(key)


__all__ = [
    "UNDEFINED",
    "CONTENT_KEY",
    "WEB_ROOT_KEY",
    "deep_merge",
    "derive_context",
    "get_property",
    "lookup_path",
    "lookup_dotted",
    "format_number",
    "stringify",
    "compute_web_root",
]
