"""
Node.js source archive fetcher.

Resolves a runtime version to its source tarball on the distribution server
and downloads it into the version's cache directory, at most once.

URL scheme:
    latest  -> {prefix}/node-latest.tar.gz
    4.2.1   -> {prefix}/v4.2.1/node-v4.2.1.tar.gz
"""

import logging
import re
from pathlib import Path
from typing import Callable, Optional

from nexekit.core.cancellation import CancellationToken
from nexekit.core.download import (
    DownloadProgress,
    download_file,
    fetch_text,
    verify_checksum,
)
from nexekit.core.exceptions import FetchError, InvalidVersionError
from nexekit.core.verification import parse_hash_text

logger = logging.getLogger(__name__)

DEFAULT_DIST_URL = "https://nodejs.org/dist"
LATEST = "latest"
CHECKSUM_FILE = "SHASUMS256.txt"

_RELEASE_PATTERN = re.compile(r"^\d+(\.\d+)*$")


def normalize_version(version: str) -> str:
    """
    Validate a runtime version identifier.

    Accepts 'latest' or a dotted release number, optionally prefixed with 'v'.

    Raises:
        InvalidVersionError: If the version has any other form

    Example:
        >>> normalize_version("v4.2.1")
        '4.2.1'
    """
    candidate = (version or "").strip()
    if candidate == LATEST:
        return candidate
    if candidate.startswith("v"):
        candidate = candidate[1:]
    if not _RELEASE_PATTERN.match(candidate):
        raise InvalidVersionError(version)
    return candidate


def build_download_url(version: str, prefix: str = DEFAULT_DIST_URL) -> str:
    """
    Build the source archive URL for a version.

    Example:
        >>> build_download_url("latest", "http://nodejs.org/dist")
        'http://nodejs.org/dist/node-latest.tar.gz'
        >>> build_download_url("4.2.1", "http://nodejs.org/dist")
        'http://nodejs.org/dist/v4.2.1/node-v4.2.1.tar.gz'
    """
    prefix = prefix.rstrip("/")
    if version == LATEST:
        return f"{prefix}/node-{version}.tar.gz"
    return f"{prefix}/v{version}/node-v{version}.tar.gz"


def archive_name(version: str) -> str:
    """Name of the cached archive file for a version."""
    return f"node-{version}.tar.gz"


class ArtifactFetcher:
    """
    Downloads Node.js source archives into a cache directory.

    Example:
        >>> fetcher = ArtifactFetcher(progress_callback=print)
        >>> archive = fetcher.fetch("4.2.1", Path(".nexekit/4.2.1"))
    """

    def __init__(
        self,
        dist_url: str = DEFAULT_DIST_URL,
        verify: bool = False,
        sha256: Optional[str] = None,
        timeout: Optional[float] = None,
        progress_callback: Optional[Callable[[DownloadProgress], None]] = None,
    ):
        """
        Initialize fetcher.

        Args:
            dist_url: Distribution server prefix
            verify: Look up the expected digest in the release's SHASUMS256.txt
            sha256: Explicit expected digest (takes precedence over verify)
            timeout: Overall time limit for one archive download in seconds
            progress_callback: Optional callback for download progress
        """
        self.dist_url = dist_url.rstrip("/")
        self.verify = verify
        self.sha256 = sha256
        self.timeout = timeout
        self.progress_callback = progress_callback

    def url_for(self, version: str) -> str:
        return build_download_url(version, self.dist_url)

    def expected_sha256(self, version: str) -> Optional[str]:
        """
        Determine the expected archive digest for a version, if any.

        Raises:
            FetchError: If the published checksum list cannot be fetched or
                does not list the archive
        """
        if self.sha256:
            return self.sha256
        if not self.verify:
            return None
        if version == LATEST:
            logger.warning(
                "Checksum verification is not available for 'latest'; "
                "pin a release number to verify the download"
            )
            return None

        url = f"{self.dist_url}/v{version}/{CHECKSUM_FILE}"
        hashes = parse_hash_text(fetch_text(url), source=url)
        published_name = f"node-v{version}.tar.gz"
        if published_name not in hashes:
            raise FetchError(f"{published_name} is not listed in {url}")
        return hashes[published_name]

    def fetch(
        self,
        version: str,
        version_dir: Path,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Path:
        """
        Ensure the source archive for a version is present in version_dir.

        An existing archive is reused as-is unless an expected digest is known
        and does not match, in which case it is discarded and downloaded again.

        Returns:
            Path to the archive

        Raises:
            FetchError: On network, directory creation or write failure
            ChecksumError: If the downloaded archive fails verification
        """
        destination = Path(version_dir) / archive_name(version)
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FetchError(f"Cannot create cache directory {destination.parent}: {e}") from e

        expected = self.expected_sha256(version)

        if destination.exists():
            if expected is None:
                logger.info(f"Archive already downloaded: {destination}")
                return destination
            if verify_checksum(destination, expected):
                logger.info(f"Archive already downloaded and verified: {destination}")
                return destination
            logger.warning(f"Cached archive fails checksum, re-downloading: {destination}")
            try:
                destination.unlink()
            except OSError as e:
                raise FetchError(f"Cannot remove corrupt archive {destination}: {e}") from e

        return download_file(
            url=self.url_for(version),
            destination=destination,
            expected_sha256=expected,
            progress_callback=self.progress_callback,
            total_timeout=self.timeout,
            cancel_token=cancel_token,
        )


__all__ = [
    "DEFAULT_DIST_URL",
    "LATEST",
    "ArtifactFetcher",
    "archive_name",
    "build_download_url",
    "normalize_version",
]
