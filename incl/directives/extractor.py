"""
Directive extractor.

Locates occurrences of a named directive in text and replaces each one with
the value returned by a handler. Two shapes are recognized:

* operator:  ``<prefix>NAME (args) { body }<suffix>``
* function:  ``<prefix>NAME(args)<suffix>``

Arguments are balanced by parenthesis depth (quoted strings are skipped),
operator bodies by brace depth, so nested blocks of the same name stay
inside their parent's body.

Matches are processed leftmost first and never overlap. Handler output is
not scanned again within the same pass.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Iterator, List, Optional, Pattern

from ..types import DirectiveInstance, DirectiveKind

logger = logging.getLogger(__name__)

Handler = Callable[[DirectiveInstance], Optional[str]]

_QUOTES = "'\"`"


def find_closing(text: str, open_pos: int, open_ch: str, close_ch: str, *, quote_aware: bool = False) -> int:
    """
    Returns the index of the bracket closing the one at ``open_pos``, or -1.

    Args:
        text: Scanned text
        open_pos: Index of the opening bracket
        open_ch: Opening bracket character
        close_ch: Closing bracket character
        quote_aware: Skip brackets inside '...', "..." and `...` literals
    """
    depth = 0
    quote: Optional[str] = None
    i = open_pos
    n = len(text)
    while i < n:
        ch = text[i]
        if quote is not None:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = None
        elif quote_aware and ch in _QUOTES:
            quote = ch
        elif ch == open_ch:
            depth += 1
        elif ch == close_ch:
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1


def _start_pattern(prefix: str, name: str) -> Pattern[str]:
    # "@@if" must not match "@@iffy"
    return re.compile(re.escape(prefix) + r"[ ]*" + re.escape(name) + r"(?![\w$])")


def _skip_ws(text: str, pos: int) -> int:
    while pos < len(text) and text[pos].isspace():
        pos += 1
    return pos


def _leading_whitespace(text: str, start: int) -> str:
    i = start
    while i > 0 and text[i - 1] in " \t":
        i -= 1
    return text[i:start]


def _consume_suffix(text: str, pos: int, suffix: str) -> int:
    if not suffix:
        return pos
    k = _skip_ws(text, pos)
    if text.startswith(suffix, k):
        return k + len(suffix)
    return pos


def iter_directives(
    text: str,
    name: str,
    *,
    kind: DirectiveKind,
    prefix: str = "@@",
    suffix: str = "",
) -> Iterator[DirectiveInstance]:
    """
    Lazily yields directive instances of ``name`` in ``text``.

    Unbalanced occurrences are treated as literal text; scanning continues
    right after the prefix.
    """
    pattern = _start_pattern(prefix, name)
    pos = 0

    while True:
        m = pattern.search(text, pos)
        if not m:
            return

        start = m.start()
        open_paren = _skip_ws(text, m.end()) if kind == "operator" else m.end()
        if open_paren >= len(text) or text[open_paren] != "(":
            pos = m.end()
            continue

        close_paren = find_closing(text, open_paren, "(", ")", quote_aware=True)
        if close_paren < 0:
            logger.debug(f"Unbalanced arguments for '{name}' at {start}, left as text")
            pos = m.end()
            continue

        args = text[open_paren + 1:close_paren]
        body = ""
        end = close_paren + 1

        if kind == "operator":
            open_brace = _skip_ws(text, end)
            if open_brace >= len(text) or text[open_brace] != "{":
                pos = m.end()
                continue
            close_brace = find_closing(text, open_brace, "{", "}")
            if close_brace < 0:
                logger.debug(f"Unbalanced body for '{name}' at {start}, left as text")
                pos = m.end()
                continue
            body = text[open_brace + 1:close_brace]
            end = close_brace + 1

        end = _consume_suffix(text, end, suffix)

        yield DirectiveInstance(
            kind=kind,
            name=name,
            args=args,
            body=body,
            span=(start, end),
            before=_leading_whitespace(text, start),
        )
        pos = end


def replace_directives(
    text: str,
    name: str,
    handler: Handler,
    *,
    kind: DirectiveKind,
    prefix: str = "@@",
    suffix: str = "",
) -> str:
    """
    Replaces each directive of ``name`` with the handler's result.

    A handler returning None keeps the original directive text.
    """
    parts: List[str] = []
    last = 0
    for inst in iter_directives(text, name, kind=kind, prefix=prefix, suffix=suffix):
        start, end = inst.span
        parts.append(text[last:start])
        replacement = handler(inst)
        parts.append(text[start:end] if replacement is None else replacement)
        last = end
    if not parts:
        return text
    parts.append(text[last:])
    return "".join(parts)


def replace_operator(text: str, name: str, handler: Handler, *, prefix: str = "@@", suffix: str = "") -> str:
    """Block form: ``@@name(args) { body }``."""
    return replace_directives(text, name, handler, kind="operator", prefix=prefix, suffix=suffix)


def replace_function(text: str, name: str, handler: Handler, *, prefix: str = "@@", suffix: str = "") -> str:
    """Call form: ``@@name(args)``."""
    return replace_directives(text, name, handler, kind="function", prefix=prefix, suffix=suffix)


__all__ = [
    "Handler",
    "find_closing",
    "iter_directives",
    "replace_directives",
    "replace_operator",
    "replace_function",
]
