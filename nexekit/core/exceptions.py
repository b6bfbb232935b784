"""
Centralized exception hierarchy for nexekit.

Every stage of the build pipeline fails with exactly one of these types so
callers can tell which step went wrong without parsing messages.
"""

from filelock import Timeout as LockTimeout


# ============================================================================
# Base Exceptions
# ============================================================================


class NexeKitError(Exception):
    """Base exception for all nexekit errors."""

    pass


# ============================================================================
# Configuration Exceptions
# ============================================================================


class ConfigError(NexeKitError):
    """Configuration parsing or validation error."""

    pass


class InvalidVersionError(ConfigError):
    """Runtime version is neither 'latest' nor a dotted release number."""

    def __init__(self, version: str):
        self.version = version
        super().__init__(
            f"Invalid runtime version: {version!r} "
            "(expected 'latest' or a dotted release number such as '4.2.1')"
        )


# ============================================================================
# Toolchain Acquisition Exceptions
# ============================================================================


class FetchError(NexeKitError):
    """Network or filesystem failure while acquiring the source archive."""

    pass


class ChecksumError(FetchError):
    """Downloaded archive does not match its expected digest."""

    pass


class ExtractionError(NexeKitError):
    """Source archive could not be unpacked."""

    pass


# ============================================================================
# Pipeline Exceptions
# ============================================================================


class BundleError(NexeKitError):
    """The application bundler failed to produce a bundle."""

    pass


class PatchError(NexeKitError):
    """A source file could not be read, transformed or written."""

    def __init__(self, message: str, target: str = ""):
        self.target = target
        if target:
            message = f"{target}: {message}"
        super().__init__(message)


class BuildError(NexeKitError):
    """The native build toolchain failed."""

    pass


class PackagingError(NexeKitError):
    """The release binary could not be copied to the output path."""

    pass


class OperationCancelled(NexeKitError):
    """The operation was cancelled before it completed."""

    pass


__all__ = [
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
    "LockTimeout",
]
