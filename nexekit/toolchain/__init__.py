"""
Node.js source toolchain acquisition and build drivers.
"""

from .drivers import PosixDriver, ToolchainDriver, WindowsDriver, select_driver
from .fetcher import (
    DEFAULT_DIST_URL,
    LATEST,
    ArtifactFetcher,
    build_download_url,
    normalize_version,
)
from .resolver import ToolchainDescriptor, find_source_tree, resolve_toolchain
from .downloader import AcquireResult, ToolchainDownloader

__all__ = [
    "ToolchainDriver",
    "WindowsDriver",
    "PosixDriver",
    "select_driver",
    "DEFAULT_DIST_URL",
    "LATEST",
    "ArtifactFetcher",
    "build_download_url",
    "normalize_version",
    "ToolchainDescriptor",
    "find_source_tree",
    "resolve_toolchain",
    "AcquireResult",
    "ToolchainDownloader",
]
