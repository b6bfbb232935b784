"""
File system utilities for nexekit.

This module provides:
- In-process archive extraction (tar.gz, tar.xz, tar.bz2) with path validation
- Atomic writes (temp file + rename)
- Safe recursive deletion restricted to a required prefix
"""

import logging
import shutil
import sys
import tarfile
import tempfile
from pathlib import Path
from typing import Callable, Optional, Union

from nexekit.core.cancellation import CancellationToken, Deadline
from nexekit.core.exceptions import ExtractionError, NexeKitError

logger = logging.getLogger(__name__)


class FilesystemError(NexeKitError):
    """Base exception for filesystem operations."""

    pass


class InsecureArchiveError(ExtractionError):
    """Archive contains insecure paths (directory traversal attempt)."""

    pass


_TAR_MODES = {
    (".tar.gz", ".tgz"): "r:gz",
    (".tar.xz",): "r:xz",
    (".tar.bz2", ".tbz2"): "r:bz2",
}


# ============================================================================
# Archive Extraction
# ============================================================================


def _validate_archive_path(path: str, destination: Path) -> None:
    """
    Validate that an archive member path is safe to extract.

    Raises:
        InsecureArchiveError: If path attempts directory traversal
    """
    member_path = (destination / path).resolve()

    if not member_path.is_relative_to(destination.resolve()):
        raise InsecureArchiveError(
            f"Archive member '{path}' attempts directory traversal. "
            "This is a security risk and extraction has been blocked."
        )


def extract_archive(
    archive_path: Union[str, Path],
    destination: Union[str, Path],
    progress_callback: Optional[Callable[[int, int], None]] = None,
    timeout: Optional[float] = None,
    cancel_token: Optional[CancellationToken] = None,
) -> None:
    """
    Extract a tar archive to a destination directory.

    Validates all member paths to prevent directory traversal attacks.
    Members are extracted one at a time; the deadline and the cancellation
    token are checked before each one.

    Args:
        archive_path: Path to the archive file (.tar.gz, .tgz, .tar.xz, .tar.bz2)
        destination: Directory to extract to
        progress_callback: Optional callback(current, total) for progress
        timeout: Seconds before extraction is abandoned (None = no limit)
        cancel_token: Optional token checked between members

    Raises:
        ExtractionError: If the archive is missing, unsupported, corrupt or
            extraction times out
        InsecureArchiveError: If archive contains malicious paths
        OperationCancelled: If cancel_token was cancelled

    Example:
        >>> extract_archive('node-4.2.1.tar.gz', 'cache/4.2.1')
    """
    archive_path = Path(archive_path)
    destination = Path(destination)
    deadline = Deadline(timeout)

    if not archive_path.exists():
        raise ExtractionError(f"Archive not found: {archive_path}")

    archive_name = archive_path.name.lower()
    mode = next(
        (m for suffixes, m in _TAR_MODES.items() if archive_name.endswith(suffixes)),
        None,
    )
    if mode is None:
        raise ExtractionError(
            f"Unsupported archive format: {archive_path.name}. "
            "Supported: .tar.gz, .tar.xz, .tar.bz2"
        )

    try:
        destination.mkdir(parents=True, exist_ok=True)
        _extract_tar(
            archive_path, destination, mode, progress_callback, deadline, cancel_token
        )
    except InsecureArchiveError:
        raise
    except (OSError, tarfile.TarError, EOFError) as e:
        raise ExtractionError(f"Failed to extract {archive_path}: {e}") from e


def _extract_tar(
    archive_path: Path,
    destination: Path,
    mode: str,
    progress_callback: Optional[Callable[[int, int], None]],
    deadline: Deadline,
    cancel_token: Optional[CancellationToken],
) -> None:
    """Extract a tar archive with specified compression."""
    with tarfile.open(archive_path, mode) as tar:
        members = tar.getmembers()
        total = len(members)

        for member in members:
            _validate_archive_path(member.name, destination)

        for index, member in enumerate(members, 1):
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            if deadline.expired:
                raise ExtractionError(
                    f"Extracting {archive_path} timed out after {deadline.timeout}s"
                )

            # Extract with filter for security (Python 3.12+)
            if sys.version_info >= (3, 12):
                tar.extract(member, destination, filter="data")
            else:
                tar.extract(member, destination)

            if progress_callback:
                progress_callback(index, total)


# ============================================================================
# Safe File Operations
# ============================================================================


def atomic_write(
    file_path: Union[str, Path], content: Union[str, bytes], encoding: str = "utf-8"
) -> None:
    """
    Write file atomically using temp file + rename.

    If the write fails, the original file (if any) remains unchanged.

    Example:
        >>> atomic_write('lib/nexe.js', 'console.log("hi");')
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    # Temp file in same directory so the rename stays on one filesystem
    temp_fd, temp_path_str = tempfile.mkstemp(
        dir=file_path.parent, prefix=f".{file_path.name}.", suffix=".tmp"
    )
    temp_path = Path(temp_path_str)

    try:
        if isinstance(content, str):
            # newline="" keeps line endings exactly as given
            with open(temp_fd, "w", encoding=encoding, newline="") as f:
                f.write(content)
        else:
            with open(temp_fd, "wb") as f:
                f.write(content)

        if file_path.exists():
            shutil.copymode(file_path, temp_path)
        temp_path.replace(file_path)

    except Exception:
        temp_path.unlink(missing_ok=True)
        raise


def safe_rmtree(
    path: Union[str, Path], require_prefix: Optional[Union[str, Path]] = None
) -> None:
    """
    Safely remove a directory tree with safeguards.

    Args:
        path: Directory to remove
        require_prefix: If specified, path must be under this directory

    Raises:
        ValueError: If path is not under require_prefix
        FilesystemError: If deletion fails
    """
    path = Path(path).resolve()

    if require_prefix is not None:
        require_prefix = Path(require_prefix).resolve()
        if not path.is_relative_to(require_prefix):
            raise ValueError(
                f"Refusing to delete '{path}': not under required prefix '{require_prefix}'"
            )

    if not path.exists():
        return

    if not path.is_dir():
        raise FilesystemError(f"Path is not a directory: {path}")

    try:
        shutil.rmtree(path)
    except OSError as e:
        raise FilesystemError(f"Failed to remove directory '{path}': {e}") from e


def directory_size(path: Union[str, Path]) -> int:
    """Total size in bytes of all files under path."""
    return sum(f.stat().st_size for f in Path(path).rglob("*") if f.is_file())


__all__ = [
    "FilesystemError",
    "InsecureArchiveError",
    "extract_archive",
    "atomic_write",
    "safe_rmtree",
    "directory_size",
]
