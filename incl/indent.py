"""
Indentation normalizer for included content.
"""

from __future__ import annotations

import re

_LINE_BREAK = re.compile(r"(\r\n|\n|\r)")


def set_indent(before: str, length: int, content: str) -> str:
    """
    Reindents multi-line ``content`` to the column of the directive.

    Every line after the first is prefixed with the last ``length``
    characters of ``before`` (the whitespace captured right before the
    directive). Line endings are kept as they are.

    Examples:
        >>> set_indent("    ", 4, "a\\nb\\nc")
        'a\\n    b\\n    c'
    """
    if length <= 0 or not content:
        return content
    indent = before[-length:]

    parts = _LINE_BREAK.split(content)
    # parts: line, sep, line, sep, ..., line
    out = [parts[0]]
    for i in range(1, len(parts), 2):
        out.append(parts[i])
        out.append(indent + parts[i + 1])
    return "".join(out)


__all__ = ["set_indent"]
