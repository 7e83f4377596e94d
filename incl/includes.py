"""
Handlers of the ``@@include`` and ``@@loop`` functions.

Both read a file relative to the base of the current unit, reindent it,
run it through the filter chain of the call and resolve it recursively
with a data context derived from the parameter. ``@@loop`` does the same
once per element of its array parameter and concatenates the results.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, List, Mapping, Optional, Sequence

from .config.model import EngineOptions
from .errors import IncludeNotFoundError, IncludeRecursionError, IncludeUserError, MalformedJSONWarning
from .filters import apply_filters, split_filter_chain
from .indent import set_indent
from .parameters import report, resolve_parameter
from .types import DirectiveInstance, ResolutionFrame, ResolutionUnit

logger = logging.getLogger(__name__)

_PATH_ARGS = re.compile(r"""^\s*(["'])(.*?)\1\s*(?:,\s*(.*?))?\s*$""", re.DOTALL)

# (parent frame, included unit, parameter) -> resolved text
NestedResolver = Callable[[ResolutionFrame, ResolutionUnit, Optional[Mapping[str, Any]]], str]


@dataclass(frozen=True)
class IncludeCall:
    """Parsed arguments of an include or loop call."""
    path: str
    param: Optional[str] = None
    filters: Sequence[str] = ()


def parse_include_args(args: str) -> Optional[IncludeCall]:
    """
    Splits the argument text of an include call.

    Returns None when the text has no quoted path.

    Examples:
        >>> parse_include_args("'a.html', {\\"x\\": 1}")
        IncludeCall(path='a.html', param='{"x": 1}', filters=())
    """
    names, inner = split_filter_chain(args)
    m = _PATH_ARGS.match(inner)
    if not m:
        return None
    param = m.group(3)
    return IncludeCall(path=m.group(2), param=param or None, filters=tuple(names))


def _same_file(a: Path, b: Path) -> bool:
    return str(a).lower() == str(b).lower()


class IncludeResolver:
    """
    Resolves include and loop directives of one engine.

    The resolver holds only the engine options and the callback that
    resolves an included unit; all per-call state travels in the frame.
    """

    def __init__(self, options: EngineOptions, resolve_nested: NestedResolver):
        self.options = options
        self._resolve_nested = resolve_nested

    # ---- Directive handlers ----

    def include(self, inst: DirectiveInstance, frame: ResolutionFrame) -> Optional[str]:
        call = parse_include_args(inst.args)
        if call is None:
            logger.debug(f"Unparseable include arguments left as is: {inst.args!r}")
            return None

        target = self._target(frame, call.path)
        self._check_recursion(frame, target)
        content = self._prepare(self._read(target, frame), inst)

        param = self._parameter(call, frame)
        if param is not None and not isinstance(param, Mapping):
            report(frame.warnings, MalformedJSONWarning(
                f"include parameter must be an object, got {type(param).__name__}", str(frame.current_file)
            ))
            param = None

        logger.debug(f"Including {target} into {frame.current_file}")
        unit = ResolutionUnit(path=target, base=frame.unit.base, contents=content)
        return self._resolve_nested(frame, unit, param)

    def loop(self, inst: DirectiveInstance, frame: ResolutionFrame) -> Optional[str]:
        call = parse_include_args(inst.args)
        if call is None:
            logger.debug(f"Unparseable loop arguments left as is: {inst.args!r}")
            return None

        items = self._parameter(call, frame)
        if not items:
            return ""
        if isinstance(items, Mapping):
            items = list(items.values())
        elif not isinstance(items, (list, tuple)):
            report(frame.warnings, MalformedJSONWarning(
                f"loop parameter must be an array, got {type(items).__name__}", str(frame.current_file)
            ))
            return ""

        target = self._target(frame, call.path)
        self._check_recursion(frame, target)
        content = self._prepare(self._read(target, frame), inst)

        logger.debug(f"Looping {target} over {len(items)} item(s) in {frame.current_file}")
        unit = ResolutionUnit(path=target, base=frame.unit.base, contents=content)
        parts: List[str] = []
        for item in items:
            parts.append(self._resolve_nested(frame, unit, item if isinstance(item, Mapping) else None))
        return "".join(parts)

    # ---- Helpers ----

    def _target(self, frame: ResolutionFrame, rel: str) -> Path:
        base = self.options.file_base(frame.current_file)
        return Path(os.path.abspath(os.path.join(base, rel)))

    def _check_recursion(self, frame: ResolutionFrame, target: Path) -> None:
        current = frame.current_file
        if _same_file(target, current):
            raise IncludeRecursionError(str(current))
        for i, seen in enumerate(frame.stack):
            if _same_file(target, seen):
                chain = [str(p) for p in frame.stack[i:]] + [str(target)]
                raise IncludeRecursionError(str(target), chain)

    def _read(self, target: Path, frame: ResolutionFrame) -> str:
        try:
            return target.read_text(encoding="utf-8")
        except OSError:
            raise IncludeNotFoundError(str(target), str(frame.current_file))
        except UnicodeDecodeError as e:
            raise IncludeUserError(f"Cannot decode {target} as UTF-8: {e}", str(frame.current_file))

    def _prepare(self, content: str, inst: DirectiveInstance) -> str:
        if self.options.indent:
            content = set_indent(inst.before, len(inst.before), content)
        if self.options.filters is not None:
            content = apply_filters(content, inst.args, self.options.filters)
        return content

    def _parameter(self, call: IncludeCall, frame: ResolutionFrame) -> Any:
        return resolve_parameter(
            call.param,
            data=frame.data,
            base=frame.unit.base,
            prefix=self.options.prefix,
            suffix=self.options.suffix,
            sink=frame.warnings,
            origin=str(frame.current_file),
        )


__all__ = ["IncludeCall", "IncludeResolver", "NestedResolver", "parse_include_args"]
