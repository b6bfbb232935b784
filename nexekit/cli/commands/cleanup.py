"""
Cleanup command implementation.

Removes cached source archives and trees from the cache directory. Each
version is removed under its lock so a running build is never pulled out
from under.
"""

import logging
from pathlib import Path

from nexekit.cli.utils import load_config_values
from nexekit.config.parser import DEFAULT_CACHE_DIR
from nexekit.core.filesystem import directory_size, safe_rmtree
from nexekit.core.locking import LockManager
from nexekit.toolchain.fetcher import normalize_version

logger = logging.getLogger(__name__)


def cached_versions(cache_dir: Path) -> list:
    """Names of version directories present in the cache."""
    if not cache_dir.is_dir():
        return []
    return sorted(
        entry.name
        for entry in cache_dir.iterdir()
        if entry.is_dir() and not entry.name.startswith(".")
    )


def run(args) -> int:
    """
    Run the cleanup command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    file_values = load_config_values(args.config)
    cache_dir = Path(args.temp or file_values.get("cache_dir") or DEFAULT_CACHE_DIR)
    cache_dir = cache_dir.absolute()

    if args.runtime:
        versions = [normalize_version(args.runtime)]
    else:
        versions = cached_versions(cache_dir)

    if not versions or not cache_dir.is_dir():
        logger.info(f"Nothing to clean in {cache_dir}")
        return 0

    lock_manager = LockManager(cache_dir)
    freed = 0

    for version in versions:
        version_dir = cache_dir / version
        if not version_dir.is_dir():
            logger.info(f"Version {version} is not cached")
            continue

        size = directory_size(version_dir)
        if args.dry_run:
            logger.info(f"Would remove {version_dir} ({size / 1024 / 1024:.1f} MB)")
            continue

        with lock_manager.version_lock(version, timeout=args.lock_timeout):
            safe_rmtree(version_dir, require_prefix=cache_dir)
        freed += size
        logger.info(f"Removed {version_dir} ({size / 1024 / 1024:.1f} MB)")

    if not args.dry_run:
        logger.info(f"Freed {freed / 1024 / 1024:.1f} MB")
    return 0
