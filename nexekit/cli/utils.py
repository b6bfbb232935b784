"""
Shared utilities for CLI commands.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from nexekit.config.parser import DEFAULT_CONFIG_FILE, parse_config
from nexekit.core.download import DownloadProgress

logger = logging.getLogger(__name__)

BAR_LENGTH = 40


# ============================================================================
# Configuration Management
# ============================================================================


def load_config_values(config_file: Optional[Path]) -> Dict[str, Any]:
    """
    Load configuration file values.

    An explicitly given file must exist; otherwise ./nexekit.yaml is used
    when present.

    Raises:
        ConfigError: If the file is missing (when explicit) or invalid
    """
    if config_file is not None:
        return parse_config(Path(config_file))

    default = Path.cwd() / DEFAULT_CONFIG_FILE
    if default.exists():
        logger.debug(f"Using configuration file {default}")
        return parse_config(default)

    logger.debug("No configuration file found")
    return {}


# ============================================================================
# Output Formatting
# ============================================================================


def format_eta(eta_seconds: float) -> str:
    """
    Format ETA with h/m/s for large values.

    Example:
        >>> format_eta(3725)
        '1h 2m 5s'
    """
    if not eta_seconds or eta_seconds <= 0:
        return "..."

    eta_secs = int(eta_seconds)
    if eta_secs >= 3600:
        return f"{eta_secs // 3600}h {(eta_secs % 3600) // 60}m {eta_secs % 60}s"
    if eta_secs >= 60:
        return f"{eta_secs // 60}m {eta_secs % 60}s"
    return f"{eta_secs}s"


def show_download_progress(progress: DownloadProgress) -> None:
    """Draw a single-line download progress bar on stdout."""
    if progress.percentage > 0:
        filled = int(BAR_LENGTH * min(progress.percentage, 100) / 100)
        bar = "=" * filled + "-" * (BAR_LENGTH - filled)
        speed_mbps = progress.speed_bps / (1024 * 1024) if progress.speed_bps else 0
        line = (
            f"\r  Downloading: [{bar}] {progress.percentage:.1f}% | "
            f"{speed_mbps:.1f} MB/s | ETA: {format_eta(progress.eta_seconds)}"
        )
    else:
        line = f"\r  Downloading: {progress}"

    print(line, end="", flush=True)
    if progress.total_bytes and progress.bytes_downloaded >= progress.total_bytes:
        print()
