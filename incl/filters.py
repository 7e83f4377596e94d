"""
Filter pipeline for included content.

An include may wrap its path in a chain of filter calls:

    @@include(trim(markdown('notes.md')))

Names are taken from the chain outermost first and composed right to left,
so the innermost filter (``markdown``) runs first and ``trim`` last. The
first ``{...}`` JSON object of the call text, if any, is handed to the
innermost filter as its options.
"""

from __future__ import annotations

import importlib
import json
import logging
import re
from functools import reduce
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from .directives.extractor import find_closing
from .errors import FilterError
from .types import TextFilter

logger = logging.getLogger(__name__)

_CHAIN_HEAD = re.compile(r"^\s*((?:[A-Za-z_$][\w$]*\s*\(\s*)+)")
_CHAIN_NAME = re.compile(r"([A-Za-z_$][\w$]*)\s*\(")

Composed = Callable[[str], str]


def parse_filter_chain(call_text: str) -> List[str]:
    """
    Returns filter names of a call chain, outermost first.

    Examples:
        >>> parse_filter_chain("trim(upper('a.txt'))")
        ['trim', 'upper']
        >>> parse_filter_chain("'a.txt'")
        []
    """
    if not call_text.rstrip().endswith(")"):
        return []
    head = _CHAIN_HEAD.match(call_text)
    if not head:
        return []
    return _CHAIN_NAME.findall(head.group(1))


def split_filter_chain(call_text: str) -> Tuple[List[str], str]:
    """
    Separates the filter chain from the wrapped arguments.

    Examples:
        >>> split_filter_chain("trim(upper('a.txt', {}))")
        (['trim', 'upper'], "'a.txt', {}")
    """
    names = parse_filter_chain(call_text)
    if not names:
        return [], call_text
    head = _CHAIN_HEAD.match(call_text)
    inner = call_text[head.end():].rstrip()
    for _ in names:
        if not inner.endswith(")"):
            return [], call_text
        inner = inner[:-1].rstrip()
    return names, inner


def parse_filter_options(call_text: str) -> Optional[Dict[str, Any]]:
    """Parses the first JSON object of the call text, if any."""
    start = call_text.find("{")
    if start < 0:
        return None
    end = find_closing(call_text, start, "{", "}", quote_aware=True)
    if end < 0:
        raise FilterError(f"Unterminated filter options: {call_text}")
    raw = call_text[start:end + 1]
    try:
        options = json.loads(raw)
    except json.JSONDecodeError as e:
        raise FilterError(f"Invalid filter options {raw}: {e}")
    if not isinstance(options, dict):
        raise FilterError(f"Filter options must be a JSON object: {raw}")
    return options


def _compose(f: Composed, g: Composed) -> Composed:
    def composed(text: str) -> str:
        return f(g(text))
    return composed


def compose_filters(
    names: List[str],
    filters: Mapping[str, TextFilter],
    options: Optional[Mapping[str, Any]] = None,
) -> Composed:
    """
    Composes named filters into one function.

    Raises:
        FilterError: If a name is not registered
    """
    missing = [name for name in names if name not in filters]
    if missing:
        available = ", ".join(sorted(filters)) or "none"
        raise FilterError(f"Unknown filter '{missing[0]}' (available: {available})")

    funcs: List[Composed] = [filters[name] for name in names]
    if options is not None:
        innermost = filters[names[-1]]
        funcs[-1] = lambda text: innermost(text, options)
    return reduce(_compose, funcs)


def apply_filters(content: str, call_text: str, filters: Mapping[str, TextFilter]) -> str:
    """
    Applies the filter chain of an include call to ``content``.

    Content is returned unchanged when the call text has no chain.
    """
    names = parse_filter_chain(call_text)
    if not names:
        return content

    pipeline = compose_filters(names, filters, parse_filter_options(call_text))
    logger.debug(f"Applying filters {' <- '.join(names)}")
    return pipeline(str(content))


def resolve_filter(ref: Any, name: str = "") -> TextFilter:
    """
    Resolves a filter reference from configuration.

    Accepts a callable or a ``"package.module:attribute"`` string.
    """
    if callable(ref):
        return ref
    if not isinstance(ref, str) or ":" not in ref:
        raise FilterError(f"Filter '{name}' must be a callable or 'module:attribute', got {ref!r}")

    module_name, _, attr_path = ref.partition(":")
    try:
        target: Any = importlib.import_module(module_name)
    except ImportError as e:
        raise FilterError(f"Cannot import module for filter '{name}': {module_name} ({e})")
    for attr in attr_path.split("."):
        try:
            target = getattr(target, attr)
        except AttributeError:
            raise FilterError(f"Filter '{name}': {module_name} has no attribute '{attr_path}'")
    if not callable(target):
        raise FilterError(f"Filter '{name}' is not callable: {ref}")
    return target


def load_filters(raw: Optional[Mapping[str, Any]]) -> Dict[str, TextFilter]:
    """Resolves every entry of a ``name -> callable | 'module:attr'`` mapping."""
    if not raw:
        return {}
    return {str(name): resolve_filter(ref, str(name)) for name, ref in raw.items()}


__all__ = [
    "parse_filter_chain",
    "split_filter_chain",
    "parse_filter_options",
    "compose_filters",
    "apply_filters",
    "resolve_filter",
    "load_filters",
]
