"""
Build configuration for nexekit.
"""

from .parser import (
    DEFAULT_CACHE_DIR,
    DEFAULT_CONFIG_FILE,
    BuildOptions,
    TimeoutConfig,
    build_options,
    parse_config,
)

__all__ = [
    "DEFAULT_CACHE_DIR",
    "DEFAULT_CONFIG_FILE",
    "BuildOptions",
    "TimeoutConfig",
    "build_options",
    "parse_config",
]
