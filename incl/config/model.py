"""
Engine options.

Immutable configuration shared by every step of a resolution. Defaults:
``basepath="@file"``, ``prefix="@@"``, ``suffix=""``, empty context,
no filters, no reindentation.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, fields
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union

from ..errors import ConfigError
from ..types import TextFilter

BASEPATH_FILE = "@file"
BASEPATH_ROOT = "@root"

OPTION_KEYS = ("basepath", "prefix", "suffix", "context", "filters", "indent")


@dataclass(frozen=True)
class EngineOptions:
    """
    Read-only engine configuration.

    basepath is normalized on creation: "@file" is kept as is, "@root"
    becomes the current working directory, any other value an absolute path.
    """
    basepath: str = BASEPATH_FILE
    prefix: str = "@@"
    suffix: str = ""
    context: Mapping[str, Any] = field(default_factory=dict)
    filters: Optional[Mapping[str, TextFilter]] = None
    indent: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.prefix, str) or not self.prefix:
            raise ConfigError(f"prefix must be a non-empty string, got {self.prefix!r}")
        if not isinstance(self.suffix, str):
            raise ConfigError(f"suffix must be a string, got {self.suffix!r}")
        if not isinstance(self.context, Mapping):
            raise ConfigError(f"context must be a mapping, got {type(self.context).__name__}")

        basepath = str(self.basepath or BASEPATH_FILE)
        if basepath == BASEPATH_ROOT:
            basepath = str(Path.cwd())
        elif basepath != BASEPATH_FILE:
            basepath = str(Path(basepath).expanduser().resolve())
        object.__setattr__(self, "basepath", basepath)

        object.__setattr__(self, "context", MappingProxyType(copy.deepcopy(dict(self.context))))

        filters = self.filters
        if filters is False or filters is None:
            object.__setattr__(self, "filters", None)
        elif isinstance(filters, Mapping):
            for name, func in filters.items():
                if not callable(func):
                    raise ConfigError(f"filter '{name}' is not callable")
            object.__setattr__(self, "filters", MappingProxyType(dict(filters)))
        else:
            raise ConfigError(f"filters must be a mapping or false, got {type(filters).__name__}")

        object.__setattr__(self, "indent", bool(self.indent))

    @classmethod
    def from_dict(cls, raw: Union[str, Mapping[str, Any], None]) -> EngineOptions:
        """
        Builds options from a plain mapping.

        A bare string is shorthand for the prefix.

        Raises:
            ConfigError: On unknown keys
        """
        if raw is None:
            return cls()
        if isinstance(raw, str):
            return cls(prefix=raw)
        if not isinstance(raw, Mapping):
            raise ConfigError(f"options must be a mapping, got {type(raw).__name__}")

        unknown = sorted(set(raw) - set(OPTION_KEYS))
        if unknown:
            raise ConfigError(f"unknown option(s): {', '.join(unknown)}")
        values = {k: raw[k] for k in OPTION_KEYS if k in raw and raw[k] is not None}
        return cls(**values)

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def file_base(self, file_path: Path) -> Path:
        """Directory that relative include paths of ``file_path`` resolve against."""
        if self.basepath == BASEPATH_FILE:
            return Path(file_path).parent
        return Path(self.basepath)

    @property
    def has_custom_web_root(self) -> bool:
        return bool(self.context.get("webRoot"))


__all__ = ["EngineOptions", "BASEPATH_FILE", "BASEPATH_ROOT", "OPTION_KEYS"]
