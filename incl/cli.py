from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from .config.load import find_config, load_context_file, load_options
from .config.model import EngineOptions
from .context import deep_merge
from .errors import IncludeUserError
from .host import DEFAULT_PATTERNS, process_file, process_tree
from .version import tool_version

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="incl",
        description="Recursive text include engine (@@include, @@loop, @@if, @@for)",
        add_help=True,
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {tool_version()}")
    sub = p.add_subparsers(dest="cmd", required=True)

    # Общие аргументы для render/build
    def add_common(sp: argparse.ArgumentParser) -> None:
        sp.add_argument(
            "--config",
            type=Path,
            help="путь к incl.yaml (по умолчанию ищется от обрабатываемого пути вверх)",
        )
        sp.add_argument(
            "--context",
            type=Path,
            action="append",
            metavar="FILE",
            help="JSON/YAML файл с данными контекста (можно указать несколько)",
        )
        sp.add_argument("--prefix", help="префикс директив (по умолчанию @@)")
        sp.add_argument("--suffix", help="суффикс директив (по умолчанию пусто)")
        sp.add_argument(
            "--basepath",
            help="@file | @root | <dir>: от чего разрешаются относительные пути include",
        )
        sp.add_argument(
            "--indent",
            action="store_true",
            default=None,
            help="сдвигать вложенное содержимое на отступ директивы",
        )
        sp.add_argument("-v", "--verbose", action="store_true", help="подробный лог (DEBUG)")

    sp_render = sub.add_parser("render", help="Развернуть один файл")
    sp_render.add_argument("file", type=Path, help="исходный файл")
    sp_render.add_argument("-o", "--output", type=Path, help="куда записать результат (по умолчанию stdout)")
    add_common(sp_render)

    sp_build = sub.add_parser("build", help="Развернуть дерево файлов в каталог назначения")
    sp_build.add_argument("src", type=Path, help="исходный каталог (он же base)")
    sp_build.add_argument("dest", type=Path, help="каталог назначения")
    sp_build.add_argument(
        "--pattern",
        action="append",
        metavar="GLOB",
        help=f"gitwildmatch-шаблон отбора файлов (по умолчанию {', '.join(DEFAULT_PATTERNS)})",
    )
    sp_build.add_argument(
        "--exclude",
        action="append",
        metavar="GLOB",
        help="gitwildmatch-шаблон исключения (например partials/)",
    )
    add_common(sp_build)

    return p


def _setup_logging(verbose: bool) -> None:
    root = logging.getLogger("incl")
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    if not root.handlers:
        h = logging.StreamHandler(sys.stderr)
        h.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
        root.addHandler(h)


def _options(ns: argparse.Namespace, start: Path) -> EngineOptions:
    config_path: Optional[Path] = ns.config or find_config(start)
    if config_path is not None:
        logger.debug(f"Using config {config_path}")

    extra: Dict[str, Any] = {}
    for ctx_file in ns.context or []:
        extra = deep_merge(extra, load_context_file(ctx_file))

    overrides = {
        "prefix": ns.prefix,
        "suffix": ns.suffix,
        "basepath": ns.basepath,
        "indent": ns.indent,
    }
    return load_options(config_path, overrides=overrides, extra_context=extra)


def main(argv: list[str] | None = None) -> int:
    ns = _build_parser().parse_args(argv)
    _setup_logging(bool(ns.verbose))

    try:
        if ns.cmd == "render":
            options = _options(ns, ns.file.parent)
            result = process_file(ns.file, options)
            if ns.output is not None:
                ns.output.parent.mkdir(parents=True, exist_ok=True)
                ns.output.write_text(result.contents, encoding="utf-8")
            else:
                sys.stdout.write(result.contents)
            return 0

        if ns.cmd == "build":
            if not ns.src.is_dir():
                raise IncludeUserError(f"Source directory not found: {ns.src}")
            options = _options(ns, ns.src)
            written = process_tree(
                ns.src,
                ns.dest,
                options,
                patterns=tuple(ns.pattern or DEFAULT_PATTERNS),
                exclude=tuple(ns.exclude or ()),
            )
            sys.stderr.write(f"Built {len(written)} file(s) into {ns.dest}\n")
            return 0

    except IncludeUserError as e:
        where = f" [{e.path}]" if e.path else ""
        sys.stderr.write(f"{str(e).rstrip()}{where}\n")
        return 2

    return 2


if __name__ == "__main__":
    raise SystemExit(main())
