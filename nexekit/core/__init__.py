"""
Core functionality for nexekit.

This package contains the foundational modules that other components depend on.
"""

from .cancellation import CancellationToken, Deadline

from .exceptions import (
    NexeKitError,
    ConfigError,
    InvalidVersionError,
    FetchError,
    ChecksumError,
    ExtractionError,
    BundleError,
    PatchError,
    BuildError,
    PackagingError,
    OperationCancelled,
)

from .locking import LockManager, LockTimeout

from .platform import PlatformInfo, detect_platform, clear_platform_cache

__all__ = [
    "CancellationToken",
    "Deadline",
    "NexeKitError",
    "ConfigError",
    "InvalidVersionError",
    "FetchError",
    "ChecksumError",
    "ExtractionError",
    "BundleError",
    "PatchError",
    "BuildError",
    "PackagingError",
    "OperationCancelled",
    "LockManager",
    "LockTimeout",
    "PlatformInfo",
    "detect_platform",
    "clear_platform_cache",
]
