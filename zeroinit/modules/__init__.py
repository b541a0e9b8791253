"""Module fetching and descriptor parsing.

Usage::

    from zeroinit.modules import load_all_modules

    modules = await load_all_modules(sources, config)
    for name, module in modules.items():
        print(name, module.parameters)
"""

from zeroinit.modules.loader import (
    DESCRIPTOR_FILENAME,
    FetchResult,
    fetch_module,
    module_cache_path,
    parse_module_config,
)
from zeroinit.modules.orchestrator import fetch_all_modules, load_all_modules

__all__ = [
    "DESCRIPTOR_FILENAME",
    "FetchResult",
    "fetch_all_modules",
    "fetch_module",
    "load_all_modules",
    "module_cache_path",
    "parse_module_config",
]
