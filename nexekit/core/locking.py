"""
Concurrent access control for nexekit caches.

The cache directory holds, per runtime version, the downloaded archive and
the extracted source tree that the build pipeline patches in place. Both are
shared mutable state, so every pipeline run holds an advisory file lock on
its version for as long as it touches that state.

Usage:
    from nexekit.core.locking import LockManager

    lock_manager = LockManager(cache_dir)
    with lock_manager.version_lock("4.2.1", timeout=600):
        # Fetch, extract and patch the 4.2.1 tree
        pass
"""

import logging
from contextlib import contextmanager
from pathlib import Path

from filelock import FileLock, Timeout as LockTimeout

logger = logging.getLogger(__name__)


class LockManager:
    """
    Manages locks for nexekit cache resources.

    Uses file-based locking with the `filelock` library for cross-platform,
    cross-process locking and automatic release on process death.

    Attributes:
        lock_dir: Directory where lock files are stored
    """

    def __init__(self, lock_dir: Path):
        """
        Initialize lock manager.

        Args:
            lock_dir: Directory for lock files (created on first lock)
        """
        self.lock_dir = Path(lock_dir)

    def lock_path(self, version: str) -> Path:
        safe_id = version.replace("/", "-").replace("\\", "-").replace(":", "-")
        return self.lock_dir / f"{safe_id}.lock"

    @contextmanager
    def version_lock(self, version: str, timeout: float = 600):
        """
        Acquire lock for one runtime version's cache.

        Args:
            version: Runtime version identifier (e.g. 'latest', '4.2.1')
            timeout: Maximum wait time in seconds (-1 waits forever)

        Yields:
            None

        Raises:
            LockTimeout: If lock can't be acquired within timeout
            OSError: If the lock directory cannot be created
        """
        self.lock_dir.mkdir(parents=True, exist_ok=True)
        lock_path = self.lock_path(version)
        lock = FileLock(lock_path, timeout=timeout)

        try:
            with lock:
                logger.debug(f"Acquired version lock: {lock_path}")
                yield
                logger.debug(f"Released version lock: {lock_path}")
        except LockTimeout as e:
            logger.error(
                f"Could not acquire cache lock for {version} after {timeout}s. "
                "Another nexekit process may be building this version."
            )
            raise LockTimeout(str(lock_path)) from e


__all__ = ["LockManager", "LockTimeout"]
