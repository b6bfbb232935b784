"""
Toolchain acquisition: fetch, extract and resolve a Node.js source tree.

Each step reuses what is already on disk:
1. If a source tree already exists under the version's cache directory, it is
   used directly (no network access).
2. Otherwise the archive is fetched (skipped if already downloaded).
3. The archive is extracted and the resulting tree resolved.

Callers that mutate the tree afterwards hold the version lock from
``lock_manager`` for the whole operation; see the pipeline's acquire stage.
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from nexekit.core.cancellation import CancellationToken
from nexekit.core.exceptions import ExtractionError, FetchError
from nexekit.core.locking import LockManager
from nexekit.toolchain.drivers import ToolchainDriver, select_driver
from nexekit.toolchain.fetcher import ArtifactFetcher, normalize_version
from nexekit.toolchain.resolver import ToolchainDescriptor, resolve_toolchain

logger = logging.getLogger(__name__)


@dataclass
class AcquireResult:
    """Result of a toolchain acquisition."""

    descriptor: ToolchainDescriptor
    """Descriptor of the resolved source tree"""

    was_cached: bool
    """Whether the source tree was already extracted (no fetch or extract)"""

    elapsed: float
    """Seconds spent acquiring"""


class ToolchainDownloader:
    """
    Acquires Node.js source trees into a cache directory.

    Example:
        >>> downloader = ToolchainDownloader(Path(".nexekit"))
        >>> result = downloader.acquire("4.2.1")
        >>> print(result.descriptor.root)
    """

    def __init__(
        self,
        cache_dir: Path,
        fetcher: Optional[ArtifactFetcher] = None,
        driver: Optional[ToolchainDriver] = None,
        extract_timeout: Optional[float] = None,
    ):
        """
        Initialize toolchain downloader.

        Args:
            cache_dir: Cache directory; each version gets a subdirectory
            fetcher: Archive fetcher (default: nodejs.org, no verification)
            driver: Platform driver (default: selected from the host)
            extract_timeout: Time limit for extraction in seconds
        """
        self.cache_dir = Path(cache_dir).absolute()
        self.fetcher = fetcher or ArtifactFetcher()
        self.driver = driver or select_driver()
        self.extract_timeout = extract_timeout
        self.lock_manager = LockManager(self.cache_dir)

    def version_dir(self, version: str) -> Path:
        return self.cache_dir / normalize_version(version)

    def acquire(
        self, version: str, cancel_token: Optional[CancellationToken] = None
    ) -> AcquireResult:
        """
        Fetch, extract and resolve the source tree for a version.

        Args:
            version: 'latest' or a dotted release number
            cancel_token: Optional cancellation token

        Returns:
            AcquireResult with the toolchain descriptor

        Raises:
            InvalidVersionError: If the version is malformed
            FetchError: If the archive cannot be downloaded or stored
            ExtractionError: If the archive cannot be unpacked
        """
        start = time.time()
        version = normalize_version(version)
        version_dir = self.cache_dir / version

        try:
            version_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FetchError(f"Cannot create cache directory {version_dir}: {e}") from e

        descriptor = resolve_toolchain(version_dir, version, self.driver)
        if descriptor is not None:
            logger.info(f"Using cached source tree: {descriptor.root}")
            return AcquireResult(descriptor, was_cached=True, elapsed=time.time() - start)

        archive = self.fetcher.fetch(version, version_dir, cancel_token=cancel_token)

        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

        logger.info(f"Extracting {archive.name} into {version_dir}")
        self.driver.extract(
            archive,
            version_dir,
            timeout=self.extract_timeout,
            cancel_token=cancel_token,
        )

        descriptor = resolve_toolchain(version_dir, version, self.driver)
        if descriptor is None:
            raise ExtractionError(
                f"Extracting {archive.name} produced no source directory in {version_dir}"
            )

        logger.info(f"Source tree ready: {descriptor.root}")
        return AcquireResult(descriptor, was_cached=False, elapsed=time.time() - start)


__all__ = ["AcquireResult", "ToolchainDownloader"]
