"""
Variable resolver.

Replaces ``<prefix>name(.path)*<suffix>`` tokens with values looked up in
the data context. This is a structural lookup only; expressions are the
evaluator's business.

Rules:
- ``name`` absent from the context → the token stays as is (it may be a
  directive such as ``@@include``);
- a missing path segment → empty string;
- lists and dicts at the end of the path → the token stays as is, so that
  ``@@items`` can still be consumed as an include/loop parameter;
- other values → ``stringify``.
"""

from __future__ import annotations

import logging
import re
from functools import lru_cache
from typing import Any, Mapping, Pattern

from .context import UNDEFINED, lookup_path, stringify

logger = logging.getLogger(__name__)


@lru_cache(maxsize=32)
def _variable_pattern(prefix: str, suffix: str) -> Pattern[str]:
    return re.compile(
        re.escape(prefix)
        + r"([A-Za-z_$][\w$]*(?:\.[\w$]+)*)"
        + re.escape(suffix)
    )


def replace_variables(text: str, data: Mapping[str, Any], *, prefix: str = "@@", suffix: str = "") -> str:
    """Substitutes every variable token of ``text`` found in ``data``."""
    pattern = _variable_pattern(prefix, suffix)

    def _substitute(match: re.Match) -> str:
        segments = match.group(1).split(".")
        if segments[0] not in data:
            return match.group(0)

        value = lookup_path(data, segments)
        if value is UNDEFINED:
            logger.debug(f"Variable '{match.group(1)}' has no value, rendered empty")
            return ""
        if isinstance(value, (list, tuple, Mapping)):
            return match.group(0)
        return stringify(value)

    return pattern.sub(_substitute, text)


__all__ = ["replace_variables"]
