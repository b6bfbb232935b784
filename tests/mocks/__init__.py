"""
Mock implementations for testing nexekit components.

This package provides mock implementations of external dependencies and
system interactions to enable isolated, deterministic testing.
"""

from .filesystem import MemoryFiles
from .toolchain import FakeBuildRunner

__all__ = [
    "MemoryFiles",
    "FakeBuildRunner",
]
