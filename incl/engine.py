"""
Resolution driver.

Expands every directive of a unit in a fixed order of passes:

1. commented-out includes (``<!-- @@include(...) -->``) are removed;
2. ``@@if (cond) { ... }`` blocks are kept or dropped;
3. ``@@for (header) { ... }`` blocks are unrolled;
4. ``@@name`` variables are substituted;
5. ``@@include(...)`` calls are resolved recursively;
6. ``@@loop(...)`` calls are resolved recursively, once per item.

Each included unit gets its own data context: the configured context
deep-merged with the include parameter, plus ``content`` holding the
raw text of the unit. The parent's data is not inherited.
"""

from __future__ import annotations

import logging
import os
import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping, Optional, Pattern

from .config.model import EngineOptions
from .context import CONTENT_KEY, WEB_ROOT_KEY, compute_web_root, derive_context
from .directives.extractor import replace_function, replace_operator
from .errors import IncludeUserError
from .expressions.evaluator import evaluate_condition, render_loop
from .includes import IncludeResolver
from .types import DataContext, DirectiveInstance, ResolutionFrame, ResolutionUnit, ResolvedUnit
from .variables import replace_variables

logger = logging.getLogger(__name__)


@lru_cache(maxsize=32)
def _commented_include_pattern(prefix: str, suffix: str) -> Pattern[str]:
    return re.compile(
        r"<!--(.*)" + re.escape(prefix) + r"[ ]*include([\s\S]*?)[ ]*" + re.escape(suffix) + r"-->"
    )


def strip_commented_includes(text: str, *, prefix: str = "@@", suffix: str = "") -> str:
    """Removes HTML comments wrapping an include directive."""
    return _commented_include_pattern(prefix, suffix).sub("", text)


def _unit_data(base_context: Mapping[str, Any], params: Optional[Mapping[str, Any]], contents: str) -> DataContext:
    data = derive_context(base_context, params)
    data[CONTENT_KEY] = contents
    return data


class IncludeEngine:
    """
    Expands include directives according to EngineOptions.

    The engine keeps no state between calls; it may be shared freely.
    """

    def __init__(self, options: Optional[EngineOptions] = None):
        self.options = options or EngineOptions()
        self.includes = IncludeResolver(self.options, self._resolve_nested)

    def resolve_unit(self, unit: ResolutionUnit, data: Optional[Mapping[str, Any]] = None) -> ResolvedUnit:
        """
        Expands a top-level unit.

        Args:
            unit: Text with its absolute path and base directory
            data: Extra data merged over the configured context

        Returns:
            Expanded unit together with the warnings raised on the way

        Raises:
            IncludeUserError: On recursion, missing include targets,
                unknown filters or failed expressions
        """
        base_context = dict(self.options.context)
        if not self.options.has_custom_web_root:
            base_context[WEB_ROOT_KEY] = compute_web_root(unit.path, unit.base)

        frame = ResolutionFrame(
            unit=unit,
            data=_unit_data(base_context, data, unit.contents),
            base_context=base_context,
            stack=(unit.path,),
        )
        logger.debug(f"Resolving {unit.path} (base {unit.base})")
        result = self._resolve_frame(frame)
        return ResolvedUnit(unit=unit.with_contents(result), warnings=tuple(frame.warnings))

    def resolve(self, unit: ResolutionUnit, data: Optional[Mapping[str, Any]] = None) -> str:
        return self.resolve_unit(unit, data).contents

    # ---- Passes ----

    def _resolve_frame(self, frame: ResolutionFrame) -> str:
        opts = self.options
        text = frame.unit.contents
        try:
            text = strip_commented_includes(text, prefix=opts.prefix, suffix=opts.suffix)
            text = self._resolve_conditions(text, frame)
            text = replace_operator(
                text, "for", lambda inst: self._unroll(inst, frame), prefix=opts.prefix, suffix=opts.suffix
            )
            text = replace_variables(text, frame.data, prefix=opts.prefix, suffix=opts.suffix)
            text = replace_function(
                text, "include", lambda inst: self.includes.include(inst, frame), prefix=opts.prefix, suffix=opts.suffix
            )
            text = replace_function(
                text, "loop", lambda inst: self.includes.loop(inst, frame), prefix=opts.prefix, suffix=opts.suffix
            )
        except IncludeUserError as e:
            if e.path is None:
                e.path = str(frame.current_file)
            raise
        return text

    def _resolve_conditions(self, text: str, frame: ResolutionFrame) -> str:
        def handle(inst: DirectiveInstance) -> str:
            if not evaluate_condition(inst.args, frame.data):
                return ""
            return self._resolve_conditions(inst.body, frame)

        return replace_operator(text, "if", handle, prefix=self.options.prefix, suffix=self.options.suffix)

    def _unroll(self, inst: DirectiveInstance, frame: ResolutionFrame) -> str:
        return render_loop(inst.args, inst.body, frame.data, prefix=self.options.prefix, suffix=self.options.suffix)

    def _resolve_nested(
        self,
        parent: ResolutionFrame,
        unit: ResolutionUnit,
        params: Optional[Mapping[str, Any]],
    ) -> str:
        child = parent.child(unit, _unit_data(parent.base_context, params, unit.contents))
        return self._resolve_frame(child)


# ---- Functional API ----

def resolve_unit(
    unit: ResolutionUnit,
    options: Optional[EngineOptions] = None,
    data: Optional[Mapping[str, Any]] = None,
) -> ResolvedUnit:
    """Expands ``unit`` with a fresh engine."""
    return IncludeEngine(options).resolve_unit(unit, data)


def resolve(
    unit: ResolutionUnit,
    options: Optional[EngineOptions] = None,
    data: Optional[Mapping[str, Any]] = None,
) -> str:
    """Expands ``unit`` and returns only the text."""
    return IncludeEngine(options).resolve(unit, data)


def make_unit(path: Path, contents: str, base: Optional[Path] = None) -> ResolutionUnit:
    """Builds a unit with an absolute path; base defaults to the file's directory."""
    abs_path = Path(os.path.abspath(Path(path).expanduser()))
    return ResolutionUnit(
        path=abs_path,
        base=Path(os.path.abspath(Path(base).expanduser())) if base is not None else abs_path.parent,
        contents=contents,
    )


__all__ = [
    "IncludeEngine",
    "make_unit",
    "resolve",
    "resolve_unit",
    "strip_commented_includes",
]
