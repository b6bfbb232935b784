"""
Hash verification for downloaded source archives.

Node.js publishes a ``SHASUMS256.txt`` next to every release; this module
computes file digests and parses that SHA256SUMS format.
"""

import hashlib
import logging
import secrets
from pathlib import Path

logger = logging.getLogger(__name__)

SUPPORTED_ALGORITHMS = ("sha256", "sha512")


def compute_file_hash(file_path: Path, algorithm: str = "sha256") -> str:
    """
    Compute cryptographic hash of file.

    Args:
        file_path: Path to file
        algorithm: Hash algorithm ('sha256', 'sha512')

    Returns:
        Hex string of hash

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If algorithm is not supported
    """
    if algorithm not in SUPPORTED_ALGORITHMS:
        raise ValueError(f"Unsupported hash algorithm: {algorithm}")
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")

    hasher = hashlib.new(algorithm)
    with open(file_path, "rb") as f:
        while chunk := f.read(65536):
            hasher.update(chunk)
    return hasher.hexdigest()


def hashes_match(actual: str, expected: str) -> bool:
    """Case-insensitive, constant-time digest comparison."""
    return secrets.compare_digest(
        actual.strip().lower().encode("utf-8"),
        expected.strip().lower().encode("utf-8"),
    )


def parse_hash_text(text: str, source: str = "hash list") -> dict[str, str]:
    """
    Parse SHA256SUMS-formatted text.

    Supports formats:
    - hash  filename
    - hash *filename

    Args:
        text: File content
        source: Name used in log messages

    Returns:
        Dict of filename -> hash

    Example:
        >>> parse_hash_text("abc123  node-v4.2.1.tar.gz\\n")
        {'node-v4.2.1.tar.gz': 'abc123'}
    """
    hashes = {}

    for line_num, line in enumerate(text.splitlines(), 1):
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        parts = line.split(maxsplit=1)
        if len(parts) != 2:
            logger.warning(f"Skipping invalid line {line_num} in {source}: {line}")
            continue

        hash_value, filename = parts[0], parts[1].strip()
        if filename.startswith("*"):
            filename = filename[1:].strip()

        # Reject traversal and absolute paths
        if ".." in filename or filename.startswith(("/", "\\")):
            logger.warning(f"Skipping suspicious filename at line {line_num}: {filename}")
            continue

        hashes[filename] = hash_value

    return hashes


__all__ = ["compute_file_hash", "hashes_match", "parse_hash_text"]
