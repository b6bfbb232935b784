"""YAML configuration parser for nexekit.

This module parses nexekit.yaml build configuration files and merges them
with command-line overrides into a validated BuildOptions.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from nexekit.core.exceptions import ConfigError
from nexekit.toolchain.fetcher import DEFAULT_DIST_URL, LATEST, normalize_version

DEFAULT_CONFIG_FILE = "nexekit.yaml"
DEFAULT_CACHE_DIR = ".nexekit"

_PATH_KEYS = ("entry", "output", "cache_dir")
_KNOWN_KEYS = {
    "version",
    "entry",
    "output",
    "runtime",
    "cache_dir",
    "suppress_cli_flags",
    "dist_url",
    "verify_checksum",
    "sha256",
    "make_jobs",
    "bundler",
    "timeouts",
}


@dataclass
class TimeoutConfig:
    """Per-stage time limits in seconds (None = unlimited)."""

    download: Optional[float] = None
    extract: Optional[float] = None
    bundle: Optional[float] = None
    build: Optional[float] = None
    lock: float = 600


@dataclass
class BuildOptions:
    """Complete configuration of one build."""

    entry_path: Path
    output_path: Path
    runtime_version: str = LATEST
    cache_dir: Path = Path(DEFAULT_CACHE_DIR)
    suppress_cli_flags: bool = False
    dist_url: str = DEFAULT_DIST_URL
    verify_checksum: bool = True
    sha256: Optional[str] = None
    make_jobs: Optional[int] = None
    bundler_command: Optional[List[str]] = None
    timeouts: TimeoutConfig = field(default_factory=TimeoutConfig)


def parse_config(config_path: Path) -> Dict[str, Any]:
    """
    Parse a nexekit.yaml configuration file.

    Relative paths in the file are resolved against the file's directory.

    Args:
        config_path: Path to nexekit.yaml

    Returns:
        Validated configuration values keyed as in the file

    Raises:
        ConfigError: If configuration is invalid
    """
    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax: {e}")

    if data is None:
        raise ConfigError("Configuration file is empty")
    if not isinstance(data, dict):
        raise ConfigError("Configuration file must contain a mapping")

    if data.get("version", 1) != 1:
        raise ConfigError(f"Unsupported version: {data['version']} (expected 1)")

    unknown = sorted(set(data) - _KNOWN_KEYS)
    if unknown:
        raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")

    base_dir = config_path.parent
    for key in _PATH_KEYS:
        if data.get(key) is not None:
            data[key] = base_dir / Path(str(data[key]))

    return data


def build_options(
    file_values: Optional[Dict[str, Any]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> BuildOptions:
    """
    Merge file values and overrides (which win) into BuildOptions.

    Keys in both mappings use the configuration file names; None values in
    overrides are ignored.

    Raises:
        ConfigError: If a required value is missing or a value is invalid
    """
    values = dict(file_values or {})
    for key, value in (overrides or {}).items():
        if value is None:
            continue
        if key == "timeouts":
            merged = dict(values.get("timeouts") or {})
            merged.update({k: v for k, v in value.items() if v is not None})
            value = merged
        values[key] = value

    for required in ("entry", "output"):
        if not values.get(required):
            raise ConfigError(f"Missing required setting: {required}")

    return BuildOptions(
        entry_path=Path(values["entry"]),
        output_path=Path(values["output"]),
        runtime_version=normalize_version(str(values.get("runtime", LATEST))),
        cache_dir=Path(values.get("cache_dir") or DEFAULT_CACHE_DIR),
        suppress_cli_flags=_parse_bool(values, "suppress_cli_flags", False),
        dist_url=str(values.get("dist_url") or DEFAULT_DIST_URL),
        verify_checksum=_parse_bool(values, "verify_checksum", True),
        sha256=_parse_sha256(values.get("sha256")),
        make_jobs=_parse_jobs(values.get("make_jobs")),
        bundler_command=_parse_bundler(values.get("bundler")),
        timeouts=_parse_timeouts(values.get("timeouts")),
    )


def _parse_bool(values: Dict[str, Any], key: str, default: bool) -> bool:
    value = values.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(f"{key} must be true or false, got {value!r}")
    return value


def _parse_sha256(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip().lower()
    if len(value) != 64 or any(c not in "0123456789abcdef" for c in value):
        raise ConfigError(f"sha256 must be a 64-character hex digest, got {value!r}")
    return value


def _parse_jobs(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigError(f"make_jobs must be a positive integer, got {value!r}")
    return value


def _parse_bundler(data: Any) -> Optional[List[str]]:
    """Parse bundler configuration: a mapping with a 'command' list or string."""
    if data is None:
        return None
    if not isinstance(data, dict) or "command" not in data:
        raise ConfigError("bundler must be a mapping with a 'command' entry")

    command = data["command"]
    if isinstance(command, str):
        command = command.split()
    if not isinstance(command, list) or not command:
        raise ConfigError("bundler.command must be a non-empty list of arguments")
    return [str(arg) for arg in command]


def _parse_timeouts(data: Any) -> TimeoutConfig:
    """Parse timeouts section."""
    if data is None:
        return TimeoutConfig()
    if not isinstance(data, dict):
        raise ConfigError("timeouts must be a mapping")

    valid = {"download", "extract", "bundle", "build", "lock"}
    unknown = sorted(set(data) - valid)
    if unknown:
        raise ConfigError(f"Unknown timeouts: {', '.join(unknown)}")

    parsed = {}
    for name, value in data.items():
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
            raise ConfigError(f"timeouts.{name} must be a positive number, got {value!r}")
        parsed[name] = float(value)

    return TimeoutConfig(**parsed)
