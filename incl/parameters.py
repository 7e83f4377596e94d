"""
Parameter handler for ``@@include`` and ``@@loop``.

The second argument of an include is turned into a value:

* nothing → ``{}``;
* ``'data/file.json'`` → contents of that file, relative to the unit's
  base (``.yaml``/``.yml`` files are read as YAML);
* ``@@name`` or ``@@name.path`` → value from the current data context;
* anything else → a JSON literal (object or array).

Missing files, unknown context references and malformed JSON do not stop
the resolution: a ParameterWarning is logged and recorded, and the result
is None.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, List, Mapping, Optional

from .config.load import read_data_file
from .context import UNDEFINED, lookup_dotted
from .errors import (
    MalformedJSONWarning,
    MissingContextPropertyWarning,
    MissingFileWarning,
    ParameterWarning,
)

logger = logging.getLogger(__name__)

WarningSink = List[ParameterWarning]


def report(sink: Optional[WarningSink], warning: ParameterWarning) -> None:
    """Logs a non-fatal condition and records it for the caller."""
    logger.warning(str(warning))
    if sink is not None:
        sink.append(warning)


def _is_quoted(value: str) -> bool:
    return len(value) >= 2 and value[0] in "'\"" and value[-1] == value[0]


def _context_reference(value: str, prefix: str, suffix: str) -> Optional[str]:
    pattern = re.escape(prefix) + r"\s*([A-Za-z_$][\w$]*(?:\.[\w$]+)*)\s*" + re.escape(suffix)
    m = re.fullmatch(pattern, value)
    return m.group(1) if m else None


def resolve_parameter(
    value: Optional[str],
    *,
    data: Mapping[str, Any],
    base: Path,
    prefix: str = "@@",
    suffix: str = "",
    sink: Optional[WarningSink] = None,
    origin: Optional[str] = None,
) -> Any:
    """
    Resolves the raw parameter text of an include.

    Args:
        value: Raw parameter text (None or empty for no parameter)
        data: Current data context, for ``@@name`` references
        base: Base directory of the unit, for JSON file parameters
        prefix: Directive prefix
        suffix: Directive suffix
        sink: Collector of non-fatal warnings
        origin: File being resolved, for diagnostics

    Returns:
        The parameter value, ``{}`` when absent, None when degraded
    """
    text = (value or "").strip()
    if not text:
        return {}

    if _is_quoted(text):
        json_file = Path(base) / text[1:-1]
        if not json_file.is_file():
            report(sink, MissingFileWarning(f"JSON file not exists: {json_file}", origin))
            return None
        try:
            return read_data_file(json_file)
        except ValueError as e:
            report(sink, MalformedJSONWarning(f"Cannot parse {json_file}: {e}", origin))
            return None

    if prefix in text:
        reference = _context_reference(text, prefix, suffix)
        if reference is not None:
            found = lookup_dotted(data, reference)
            if found is UNDEFINED:
                report(sink, MissingContextPropertyWarning(f'"{reference}" property not exists in context', origin))
                return None
            return found

    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        report(sink, MalformedJSONWarning(f"{e}: {text}", origin))
        return None


__all__ = ["WarningSink", "report", "resolve_parameter"]
