"""
Application bundler adapters.

A bundler turns an entry script into one self-contained source text covering
the application's whole module graph. nexekit does not resolve JavaScript
modules itself; it either embeds a dependency-free entry file as-is or
delegates to an external bundler command.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Sequence

from nexekit.core.cancellation import CancellationToken
from nexekit.core.exceptions import BundleError
from nexekit.core.process import run_command

logger = logging.getLogger(__name__)

ENTRY_PLACEHOLDER = "{entry}"


class Bundler(ABC):
    """
    Abstract base class for bundlers.

    Implementations must be deterministic for a fixed input tree and must
    not modify files on disk.
    """

    @abstractmethod
    def bundle(
        self, entry_path: Path, cancel_token: Optional[CancellationToken] = None
    ) -> str:
        """
        Produce the bundled source for an entry script.

        Raises:
            BundleError: If bundling fails
        """
        pass


class EntryFileBundler(Bundler):
    """Uses the entry file's own content as the bundle."""

    def bundle(self, entry_path, cancel_token=None):
        entry_path = Path(entry_path)
        logger.info(f"bundle {entry_path}")
        try:
            return entry_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise BundleError(f"Cannot read entry file {entry_path}: {e}") from e


class CommandBundler(Bundler):
    """
    Runs an external bundler and takes its standard output as the bundle.

    The command is a list of arguments in which ``{entry}`` is replaced by
    the entry path; if no argument contains it, the entry path is appended.

    Example:
        >>> bundler = CommandBundler(["npx", "esbuild", "{entry}", "--bundle",
        ...                           "--platform=node"])
        >>> source = bundler.bundle(Path("app/index.js"))
    """

    def __init__(self, command: Sequence[str], timeout: Optional[float] = None):
        if not command:
            raise ValueError("Bundler command cannot be empty")
        self.command = list(command)
        self.timeout = timeout

    def command_for(self, entry_path: Path) -> List[str]:
        if any(ENTRY_PLACEHOLDER in arg for arg in self.command):
            return [arg.replace(ENTRY_PLACEHOLDER, str(entry_path)) for arg in self.command]
        return self.command + [str(entry_path)]

    def bundle(self, entry_path, cancel_token=None):
        entry_path = Path(entry_path)
        if not entry_path.is_file():
            raise BundleError(f"Entry file not found: {entry_path}")

        result = run_command(
            self.command_for(entry_path),
            error_cls=BundleError,
            timeout=self.timeout,
            cancel_token=cancel_token,
            capture_output=True,
        )
        if not result.stdout:
            raise BundleError(f"Bundler produced no output for {entry_path}")
        return result.stdout


def create_bundler(
    command: Optional[Sequence[str]] = None, timeout: Optional[float] = None
) -> Bundler:
    """Return a CommandBundler when a command is configured, else EntryFileBundler."""
    if command:
        return CommandBundler(command, timeout=timeout)
    return EntryFileBundler()


__all__ = ["Bundler", "EntryFileBundler", "CommandBundler", "create_bundler"]
