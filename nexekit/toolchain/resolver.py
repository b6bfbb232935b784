"""
Locate an extracted Node.js source tree and describe how to build it.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from nexekit.core.cancellation import CancellationToken
from nexekit.toolchain.drivers import ToolchainDriver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolchainDescriptor:
    """
    Handle over an extracted runtime source tree and its build capability.

    Attributes:
        root: Root of the extracted source tree
        version: Runtime version identifier the tree was fetched for
        release_binary: Where the build leaves the finished executable
        driver: Platform driver that knows how to build the tree
    """

    root: Path
    version: str
    release_binary: Path
    driver: ToolchainDriver

    def build(
        self,
        timeout: Optional[float] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> None:
        """
        Build the runtime in place.

        Raises:
            BuildError: If the native toolchain fails
        """
        self.driver.build(self.root, timeout=timeout, cancel_token=cancel_token)


def find_source_tree(version_dir: Path) -> Optional[Path]:
    """
    Find the extracted source directory inside a version's cache directory.

    Entries are scanned in sorted order and the last directory wins. Hidden
    entries are ignored. Which directory is chosen when several exist is an
    implementation detail; a version directory normally holds exactly one.

    Returns:
        Path to the source tree, or None if nothing has been extracted yet
    """
    version_dir = Path(version_dir)
    if not version_dir.is_dir():
        return None

    candidates = sorted(
        entry
        for entry in version_dir.iterdir()
        if entry.is_dir() and not entry.name.startswith(".")
    )
    if len(candidates) > 1:
        logger.warning(
            f"Multiple source trees in {version_dir}, using {candidates[-1].name}"
        )
    return candidates[-1] if candidates else None


def resolve_toolchain(
    version_dir: Path, version: str, driver: ToolchainDriver
) -> Optional[ToolchainDescriptor]:
    """
    Build a descriptor for the source tree in version_dir, if one exists.

    Example:
        >>> descriptor = resolve_toolchain(Path(".nexekit/4.2.1"), "4.2.1", driver)
        >>> descriptor.root
        PosixPath('.nexekit/4.2.1/node-v4.2.1')
    """
    root = find_source_tree(version_dir)
    if root is None:
        return None

    return ToolchainDescriptor(
        root=root,
        version=version,
        release_binary=driver.release_binary(root),
        driver=driver,
    )


__all__ = ["ToolchainDescriptor", "find_source_tree", "resolve_toolchain"]
