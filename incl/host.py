"""
Host entry points: expand a text, a file or a whole directory tree.

process_tree selects source files with gitwildmatch patterns (pathspec),
expands each of them with the tree root as base and writes the result to
the same relative path under the destination directory.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path, PurePosixPath
from typing import Any, List, Mapping, Optional, Sequence

import pathspec

from .config.model import EngineOptions
from .engine import IncludeEngine, make_unit
from .errors import IncludeNotFoundError, IncludeUserError
from .types import ResolvedUnit

logger = logging.getLogger(__name__)

DEFAULT_PATTERNS = ("*.html",)


def process_text(
    text: str,
    path: Path,
    options: Optional[EngineOptions] = None,
    base: Optional[Path] = None,
    data: Optional[Mapping[str, Any]] = None,
) -> ResolvedUnit:
    """
    Expands ``text`` as if it were the contents of ``path``.

    The file itself does not need to exist; it only anchors relative
    includes, recursion checks and webRoot.
    """
    unit = make_unit(path, text, base)
    return IncludeEngine(options).resolve_unit(unit, data)


def process_file(
    path: Path,
    options: Optional[EngineOptions] = None,
    base: Optional[Path] = None,
    data: Optional[Mapping[str, Any]] = None,
) -> ResolvedUnit:
    """Reads a UTF-8 file and expands it."""
    path = Path(path)
    return process_text(_read_source(path), path, options, base, data)


def _read_source(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError:
        raise IncludeNotFoundError(str(path))
    except UnicodeDecodeError as e:
        raise IncludeUserError(f"Cannot decode {path} as UTF-8: {e}", str(path))


class _Selector:
    """Allow/exclude gitwildmatch patterns over paths relative to the tree root."""

    def __init__(self, patterns: Sequence[str], exclude: Sequence[str]):
        self.allow = pathspec.PathSpec.from_lines("gitwildmatch", list(patterns))
        self.block = pathspec.PathSpec.from_lines("gitwildmatch", list(exclude)) if exclude else None

    def __call__(self, rel_posix: str) -> bool:
        if not self.allow.match_file(rel_posix):
            return False
        return not (self.block is not None and self.block.match_file(rel_posix))


def iter_sources(src: Path, patterns: Sequence[str] = DEFAULT_PATTERNS, exclude: Sequence[str] = ()) -> List[Path]:
    """Lists selected files under ``src`` in a stable order."""
    selector = _Selector(patterns, exclude)
    found: List[Path] = []
    for dirpath, dirnames, filenames in os.walk(src):
        dirnames.sort()
        for name in sorted(filenames):
            file_path = Path(dirpath) / name
            rel = PurePosixPath(file_path.relative_to(src).as_posix())
            if selector(str(rel)):
                found.append(file_path)
    return found


def process_tree(
    src: Path,
    dest: Path,
    options: Optional[EngineOptions] = None,
    patterns: Sequence[str] = DEFAULT_PATTERNS,
    exclude: Sequence[str] = (),
) -> List[Path]:
    """
    Expands every selected file of ``src`` into ``dest``.

    Returns:
        Written output paths, in processing order

    Raises:
        IncludeUserError: The first fatal error aborts the build
    """
    src = Path(os.path.abspath(src))
    dest = Path(os.path.abspath(dest))
    engine = IncludeEngine(options)

    written: List[Path] = []
    for source in iter_sources(src, patterns, exclude):
        if dest in source.parents:
            continue
        result = engine.resolve_unit(make_unit(source, _read_source(source), src))
        target = dest / source.relative_to(src)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(result.contents, encoding="utf-8")
        logger.info(f"{source.relative_to(src).as_posix()} -> {target}")
        written.append(target)

    logger.debug(f"Built {len(written)} file(s) from {src}")
    return written


__all__ = ["DEFAULT_PATTERNS", "iter_sources", "process_file", "process_text", "process_tree"]
