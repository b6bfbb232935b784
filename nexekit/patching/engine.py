"""
Idempotent source patching.

A PatchDescriptor pairs a detection predicate with a transform over a file's
text. Applying a patch is a no-op when the predicate already holds, and the
transform must make the predicate hold, so re-running a build against an
already-patched source tree never applies an edit twice.

Patches read and write through a FileAccess so they can be exercised against
in-memory files as well as a real source tree.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from nexekit.core.exceptions import PatchError
from nexekit.core.filesystem import atomic_write

logger = logging.getLogger(__name__)


class FileAccess(ABC):
    """Reads and writes text files addressed by relative target paths."""

    @abstractmethod
    def read_text(self, target: str) -> str:
        pass

    @abstractmethod
    def write_text(self, target: str, content: str) -> None:
        pass


class LocalFiles(FileAccess):
    """
    FileAccess rooted at a directory on disk.

    Line endings are preserved exactly and writes are atomic.
    """

    def __init__(self, root: Path):
        self.root = Path(root)

    def path_for(self, target: str) -> Path:
        return self.root / target

    def read_text(self, target: str) -> str:
        with open(self.path_for(target), "r", encoding="utf-8", newline="") as f:
            return f.read()

    def write_text(self, target: str, content: str) -> None:
        atomic_write(self.path_for(target), content)


@dataclass(frozen=True)
class PatchDescriptor:
    """
    Declarative, stateless description of one source edit.

    Attributes:
        target: File path relative to the source tree root
        is_applied: Returns True if content already carries the edit
        transform: Returns content with the edit applied; raises PatchError
            if the content lacks the structure the edit is anchored on
        description: Human-readable summary for logs
    """

    target: str
    is_applied: Callable[[str], bool]
    transform: Callable[[str], str]
    description: str = ""


@dataclass(frozen=True)
class PatchResult:
    """Outcome of applying one patch."""

    target: str
    applied: bool
    """False when the patch was already present and nothing was written"""


def apply_patch(patch: PatchDescriptor, files: FileAccess) -> PatchResult:
    """
    Apply a patch unless it is already present.

    Args:
        patch: Patch to apply
        files: File access for the source tree

    Returns:
        PatchResult; ``applied`` is False when no write happened

    Raises:
        PatchError: If the target cannot be read or written, its anchor is
            missing, or the transform does not produce patched content
    """
    label = patch.description or patch.target

    try:
        content = files.read_text(patch.target)
    except (OSError, UnicodeDecodeError) as e:
        raise PatchError(f"cannot read file: {e}", target=patch.target) from e

    if patch.is_applied(content):
        logger.info(f"Already patched: {label}")
        return PatchResult(target=patch.target, applied=False)

    try:
        patched = patch.transform(content)
    except PatchError as e:
        if e.target:
            raise
        raise PatchError(str(e), target=patch.target) from e

    if not patch.is_applied(patched):
        raise PatchError(
            "transform did not produce patched content", target=patch.target
        )

    try:
        files.write_text(patch.target, patched)
    except OSError as e:
        raise PatchError(f"cannot write file: {e}", target=patch.target) from e

    logger.info(f"Patched: {label}")
    return PatchResult(target=patch.target, applied=True)


__all__ = [
    "FileAccess",
    "LocalFiles",
    "PatchDescriptor",
    "PatchResult",
    "apply_patch",
]
