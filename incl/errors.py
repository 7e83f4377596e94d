"""
Errors and warnings of the include engine.

Fatal errors inherit from IncludeUserError: they abort the resolution of the
whole top-level unit and are shown to the user as a clean message.

Non-fatal conditions (missing parameter files, unknown context references,
malformed JSON parameters) are ParameterWarning subclasses. They are logged
and collected, and resolution continues with an empty value.

Programming errors and bugs should NOT inherit from IncludeUserError;
they propagate with full tracebacks.
"""

from __future__ import annotations

from typing import Optional, Sequence


class IncludeUserError(Exception):
    """
    Base class for all user-facing errors of the engine.

    These errors indicate problems in templates, parameters or configuration
    that the user can fix.
    """

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.path = path


class EvaluationError(IncludeUserError):
    """A conditional or loop expression failed to evaluate."""

    def __init__(self, message: str, expression: str, path: Optional[str] = None):
        super().__init__(f"{message}: {expression}", path)
        self.expression = expression


class IncludeRecursionError(IncludeUserError, RecursionError):
    """A file includes itself, directly or through other includes."""

    def __init__(self, path: str, chain: Sequence[str] = ()):
        self.chain = tuple(chain)
        if len(self.chain) > 1:
            message = f"recursion detected in file: {path} (chain: {' -> '.join(self.chain)})"
        else:
            message = f"recursion detected in file: {path}"
        super().__init__(message, path)


class IncludeNotFoundError(IncludeUserError):
    """Include target does not exist or cannot be read."""

    def __init__(self, target: str, path: Optional[str] = None):
        super().__init__(f"included file not found: {target}", path)
        self.target = target


class FilterError(IncludeUserError):
    """Unknown filter name in a call chain or invalid filter options."""
    pass


class ConfigError(IncludeUserError):
    """Invalid engine configuration."""
    pass


# ---- Non-fatal conditions ----

class ParameterWarning(UserWarning):
    """
    Base class for degraded include parameters.

    The parameter resolves to an empty value; the rest of the document
    is still rendered.
    """

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.path = path

    def __str__(self) -> str:
        if self.path:
            return f"{self.message} (in {self.path})"
        return self.message


class MissingFileWarning(ParameterWarning):
    """Referenced JSON parameter file does not exist."""
    pass


class MissingContextPropertyWarning(ParameterWarning):
    """Parameter references an undefined context variable."""
    pass


class MalformedJSONWarning(ParameterWarning):
    """Parameter could not be parsed as JSON (or is not a usable collection)."""
    pass


__all__ = [
    "IncludeUserError",
    "EvaluationError",
    "IncludeRecursionError",
    "IncludeNotFoundError",
    "FilterError",
    "ConfigError",
    "ParameterWarning",
    "MissingFileWarning",
    "MissingContextPropertyWarning",
    "MalformedJSONWarning",
]
