"""
Native toolchain drivers.

A driver encapsulates everything that differs between the Windows and POSIX
ways of turning a Node.js source tree into a binary: how the archive is
unpacked, which build commands run, and where the release binary lands.
One driver is selected per process from the host platform.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from nexekit.core.cancellation import CancellationToken
from nexekit.core.exceptions import BuildError, ExtractionError
from nexekit.core.filesystem import extract_archive
from nexekit.core.platform import PlatformInfo, detect_platform
from nexekit.core.process import run_command

logger = logging.getLogger(__name__)


class ToolchainDriver(ABC):
    """
    Abstract base class for native toolchain drivers.

    Subclasses are frozen dataclasses so that two drivers configured the same
    way compare equal.
    """

    release_binary_path: str

    @abstractmethod
    def extract(
        self,
        archive: Path,
        destination: Path,
        timeout: Optional[float] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> None:
        """
        Unpack a source archive into destination.

        Raises:
            ExtractionError: If unpacking fails
        """
        pass

    @abstractmethod
    def build_commands(self) -> List[List[str]]:
        """Commands run in order, from the source root, to build the runtime."""
        pass

    def build(
        self,
        root: Path,
        timeout: Optional[float] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> None:
        """
        Run the build commands in the source tree.

        The timeout applies to each command separately.

        Raises:
            BuildError: If any command is missing, fails or times out
        """
        for cmd in self.build_commands():
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            run_command(
                cmd,
                cwd=root,
                error_cls=BuildError,
                timeout=timeout,
                cancel_token=cancel_token,
            )

    def release_binary(self, root: Path) -> Path:
        """Path of the binary the build produces."""
        return Path(root) / self.release_binary_path


@dataclass(frozen=True)
class WindowsDriver(ToolchainDriver):
    """Builds with vcbuild.bat; extracts in-process."""

    release_binary_path: str = "Release/node.exe"

    def extract(self, archive, destination, timeout=None, cancel_token=None):
        logger.info(f"Extracting {archive}")
        extract_archive(archive, destination, timeout=timeout, cancel_token=cancel_token)

    def build_commands(self) -> List[List[str]]:
        # Batch files must run through cmd.exe
        return [["cmd", "/c", "vcbuild.bat", "nosign", "release", "x64"]]


@dataclass(frozen=True)
class PosixDriver(ToolchainDriver):
    """Builds with ./configure and make; extracts with the system tar."""

    make_tool: str = "make"
    jobs: Optional[int] = None
    release_binary_path: str = "out/Release/node"

    def extract(self, archive, destination, timeout=None, cancel_token=None):
        Path(destination).mkdir(parents=True, exist_ok=True)
        run_command(
            ["tar", "-xf", str(archive), "-C", str(destination)],
            error_cls=ExtractionError,
            timeout=timeout,
            cancel_token=cancel_token,
        )

    def build_commands(self) -> List[List[str]]:
        make = [self.make_tool]
        if self.jobs:
            make.append(f"-j{self.jobs}")
        return [["./configure"], make]


def select_driver(
    platform_info: Optional[PlatformInfo] = None, jobs: Optional[int] = None
) -> ToolchainDriver:
    """
    Select the toolchain driver for a host platform.

    Args:
        platform_info: Host platform (detected if None)
        jobs: Parallel make jobs (POSIX only)

    Example:
        >>> select_driver(PlatformInfo("freebsd", "amd64"))
        PosixDriver(make_tool='gmake', jobs=None, release_binary_path='out/Release/node')
    """
    platform_info = platform_info or detect_platform()

    if platform_info.is_windows:
        driver = WindowsDriver()
    else:
        make_tool = "gmake" if platform_info.is_bsd else "make"
        driver = PosixDriver(make_tool=make_tool, jobs=jobs)

    logger.debug(f"Selected {driver} for {platform_info}")
    return driver


__all__ = ["ToolchainDriver", "WindowsDriver", "PosixDriver", "select_driver"]
