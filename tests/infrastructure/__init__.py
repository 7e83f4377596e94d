"""
Shared test infrastructure for the include engine.

Modules:
- file_utils: creating source trees in temporary directories
"""

from .file_utils import write, write_tree

__all__ = ["write", "write_tree"]
