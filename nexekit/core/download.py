"""
Network download manager with progress tracking, retry logic and checksum
verification.

Downloads stream into a ``.part`` file next to the destination and are
renamed into place only once the body is complete (and its digest verified,
when one is known), so an existing destination file is always a finished
download.
"""

import hashlib
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Optional

import requests
from requests.exceptions import RequestException

from nexekit import __version__
from nexekit.core.cancellation import CancellationToken, Deadline
from nexekit.core.exceptions import ChecksumError, FetchError
from nexekit.core.verification import compute_file_hash, hashes_match

logger = logging.getLogger(__name__)

# Some corporate proxies reject requests without a client identifier.
USER_AGENT = f"nexekit/{__version__}"

CHUNK_SIZE = 65536


@dataclass
class DownloadProgress:
    """Progress information for a download."""

    bytes_downloaded: int
    total_bytes: int
    percentage: float
    speed_bps: float  # bytes per second
    eta_seconds: float  # estimated time remaining

    def __str__(self) -> str:
        """Format progress for display."""
        return format_progress(self)


def default_headers() -> Dict[str, str]:
    return {"User-Agent": USER_AGENT}


def download_file(
    url: str,
    destination: Path,
    expected_sha256: Optional[str] = None,
    progress_callback: Optional[Callable[[DownloadProgress], None]] = None,
    timeout: int = 30,
    max_retries: int = 3,
    total_timeout: Optional[float] = None,
    cancel_token: Optional[CancellationToken] = None,
) -> Path:
    """
    Download file from URL to destination with retry logic and checksum verification.

    Args:
        url: URL to download from
        destination: Local path to save file
        expected_sha256: Expected SHA256 hash (verified before the rename)
        progress_callback: Optional callback for progress updates
        timeout: Socket timeout in seconds for connect and each read
        max_retries: Maximum number of attempts for transient network errors
        total_timeout: Overall limit in seconds for the whole transfer
        cancel_token: Optional token checked between chunks

    Returns:
        Path to downloaded file

    Raises:
        FetchError: If the download fails after retries, times out, or the
            destination cannot be written
        ChecksumError: If checksum doesn't match expected value
        OperationCancelled: If cancel_token is cancelled mid-transfer

    Example:
        >>> download_file(
        ...     "https://nodejs.org/dist/v4.2.1/node-v4.2.1.tar.gz",
        ...     Path("cache/4.2.1/node-4.2.1.tar.gz"),
        ...     progress_callback=lambda p: print(p),
        ... )
    """
    if not url:
        raise ValueError("URL cannot be empty")

    destination = Path(destination)
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FetchError(
            f"Cannot create download directory {destination.parent}: {e}"
        ) from e

    deadline = Deadline(total_timeout)

    for attempt in range(max_retries):
        try:
            return _download_with_progress(
                url=url,
                destination=destination,
                expected_sha256=expected_sha256,
                progress_callback=progress_callback,
                timeout=timeout,
                deadline=deadline,
                cancel_token=cancel_token,
            )
        except RequestException as e:
            if attempt == max_retries - 1 or deadline.expired:
                raise FetchError(
                    f"Download of {url} failed after {attempt + 1} attempt(s): {e}"
                ) from e

            # Exponential backoff
            backoff_seconds = 2**attempt
            logger.warning(
                f"Download attempt {attempt + 1} failed: {e}. "
                f"Retrying in {backoff_seconds}s..."
            )
            if cancel_token is not None:
                if cancel_token.wait(backoff_seconds):
                    cancel_token.raise_if_cancelled()
            else:
                time.sleep(backoff_seconds)

    raise FetchError(f"Download of {url} failed for unknown reason")


def _download_with_progress(
    url: str,
    destination: Path,
    expected_sha256: Optional[str],
    progress_callback: Optional[Callable[[DownloadProgress], None]],
    timeout: int,
    deadline: Deadline,
    cancel_token: Optional[CancellationToken],
) -> Path:
    """
    Perform download with streaming and progress updates.

    This is an internal function called by download_file().
    """
    logger.info(f"Downloading {url}")

    response = requests.get(
        url,
        headers=default_headers(),
        stream=True,
        timeout=timeout,
        allow_redirects=True,
    )
    response.raise_for_status()

    content_length = response.headers.get("content-length")
    total_size = int(content_length) if content_length else 0

    hasher = hashlib.sha256() if expected_sha256 else None
    partial = destination.with_name(destination.name + ".part")

    downloaded = 0
    start_time = time.time()
    last_progress_time = 0.0

    try:
        with response, open(partial, "wb") as f:
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled()
                if deadline.expired:
                    raise FetchError(
                        f"Download of {url} timed out after {deadline.timeout}s"
                    )
                if not chunk:
                    continue

                f.write(chunk)
                downloaded += len(chunk)
                if hasher:
                    hasher.update(chunk)

                # Report progress (max once per 0.5 seconds to avoid spam)
                current_time = time.time()
                if progress_callback and (
                    current_time - last_progress_time >= 0.5
                    or downloaded == total_size
                ):
                    progress_callback(
                        _make_progress(downloaded, total_size, current_time - start_time)
                    )
                    last_progress_time = current_time
    except RequestException:
        # RequestException subclasses OSError; let download_file() retry it
        partial.unlink(missing_ok=True)
        raise
    except OSError as e:
        partial.unlink(missing_ok=True)
        raise FetchError(f"Cannot write {partial}: {e}") from e
    except BaseException:
        partial.unlink(missing_ok=True)
        raise

    if hasher and not hashes_match(hasher.hexdigest(), expected_sha256):
        partial.unlink(missing_ok=True)
        raise ChecksumError(
            f"Checksum mismatch for {destination.name}: "
            f"expected {expected_sha256}, got {hasher.hexdigest()}"
        )

    try:
        partial.replace(destination)
    except OSError as e:
        raise FetchError(f"Cannot move download into place at {destination}: {e}") from e

    logger.info(f"Download complete: {destination}")
    return destination


def _make_progress(downloaded: int, total_size: int, elapsed: float) -> DownloadProgress:
    speed = downloaded / elapsed if elapsed > 0 else 0
    remaining = total_size - downloaded if total_size > 0 else 0
    return DownloadProgress(
        bytes_downloaded=downloaded,
        total_bytes=total_size if total_size > 0 else downloaded,
        percentage=(downloaded / total_size * 100) if total_size > 0 else 0,
        speed_bps=speed,
        eta_seconds=remaining / speed if speed > 0 else 0,
    )


def fetch_text(url: str, timeout: int = 30) -> str:
    """
    Fetch a small text resource (e.g. a SHASUMS256.txt file).

    Raises:
        FetchError: If the request fails
    """
    try:
        response = requests.get(url, headers=default_headers(), timeout=timeout)
        response.raise_for_status()
    except RequestException as e:
        raise FetchError(f"Failed to fetch {url}: {e}") from e
    return response.text


def verify_checksum(file_path: Path, expected_sha256: str) -> bool:
    """
    Verify file SHA256 checksum.

    Raises:
        FileNotFoundError: If file doesn't exist
    """
    return hashes_match(compute_file_hash(file_path, "sha256"), expected_sha256)


def format_progress(progress: DownloadProgress) -> str:
    """
    Format progress for display.

    Example:
        >>> progress = DownloadProgress(52428800, 104857600, 50.0, 1048576, 50)
        >>> print(format_progress(progress))
        50.0/100.0 MB (50.0%) at 1.0 MB/s ETA: 50s
    """
    mb_downloaded = progress.bytes_downloaded / 1024 / 1024
    mb_total = progress.total_bytes / 1024 / 1024
    speed_mbps = progress.speed_bps / 1024 / 1024

    if progress.percentage > 0:
        return (
            f"{mb_downloaded:.1f}/{mb_total:.1f} MB "
            f"({progress.percentage:.1f}%) "
            f"at {speed_mbps:.1f} MB/s "
            f"ETA: {progress.eta_seconds:.0f}s"
        )
    # Unknown total size
    return f"{mb_downloaded:.1f} MB at {speed_mbps:.1f} MB/s"


__all__ = [
    "DownloadProgress",
    "USER_AGENT",
    "download_file",
    "fetch_text",
    "verify_checksum",
    "format_progress",
]
