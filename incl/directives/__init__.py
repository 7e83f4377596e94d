"""
Поиск и замена директив в тексте.
"""

from __future__ import annotations

from .extractor import (
    Handler,
    find_closing,
    iter_directives,
    replace_directives,
    replace_function,
    replace_operator,
)

__all__ = [
    "Handler",
    "find_closing",
    "iter_directives",
    "replace_directives",
    "replace_function",
    "replace_operator",
]
