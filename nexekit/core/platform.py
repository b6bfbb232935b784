"""
Host platform detection for nexekit.

The build pipeline only needs to know which native toolchain family the host
uses: Windows (vcbuild) or POSIX (configure/make), and on POSIX whether the
system make is BSD make, in which case GNU make is invoked as ``gmake``.

Usage:
    from nexekit.core.platform import detect_platform

    host = detect_platform()
    if host.is_windows:
        ...
"""

import functools
import os
import platform
import sys
from dataclasses import dataclass


@dataclass(frozen=True)
class PlatformInfo:
    """
    Host platform information.

    Attributes:
        os: Normalized OS name ('windows', 'linux', 'macos', 'freebsd', ...)
        arch: Machine architecture as reported by the interpreter
    """

    os: str
    arch: str

    @property
    def is_windows(self) -> bool:
        return self.os == "windows"

    @property
    def is_posix(self) -> bool:
        return not self.is_windows

    @property
    def is_bsd(self) -> bool:
        """True for BSD-derived systems whose default make is not GNU make."""
        return self.os.endswith("bsd")

    def platform_string(self) -> str:
        """
        Get canonical platform string.

        Example:
            >>> PlatformInfo("linux", "x86_64").platform_string()
            'linux-x86_64'
        """
        return f"{self.os}-{self.arch}"

    def __str__(self) -> str:
        return self.platform_string()


@functools.lru_cache(maxsize=1)
def detect_platform() -> PlatformInfo:
    """
    Detect current host platform.

    This function is cached - it only runs detection once per process.
    """
    return PlatformInfo(os=_detect_os(), arch=platform.machine().lower() or "unknown")


def _detect_os() -> str:
    """
    Detect operating system.

    Returns:
        'windows', 'macos', 'linux', or the lowercased ``sys.platform`` with
        trailing digits removed (e.g. 'freebsd', 'openbsd')
    """
    if os.name == "nt" or sys.platform.startswith(("win", "cygwin")):
        return "windows"
    if sys.platform == "darwin":
        return "macos"
    if sys.platform.startswith("linux"):
        return "linux"
    return sys.platform.lower().rstrip("0123456789")


def clear_platform_cache() -> None:
    """Clear platform detection cache (useful for testing)."""
    detect_platform.cache_clear()


__all__ = ["PlatformInfo", "detect_platform", "clear_platform_cache"]
