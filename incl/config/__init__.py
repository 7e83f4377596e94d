from __future__ import annotations

from .load import (
    CONFIG_FILE,
    find_config,
    load_context_file,
    load_options,
    options_from_mapping,
    read_data_file,
)
from .model import BASEPATH_FILE, BASEPATH_ROOT, EngineOptions

__all__ = [
    "CONFIG_FILE",
    "BASEPATH_FILE",
    "BASEPATH_ROOT",
    "EngineOptions",
    "find_config",
    "load_context_file",
    "load_options",
    "options_from_mapping",
    "read_data_file",
]
