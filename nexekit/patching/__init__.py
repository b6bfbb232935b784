"""
Idempotent patching of the Node.js source tree.
"""

from .engine import (
    FileAccess,
    LocalFiles,
    PatchDescriptor,
    PatchResult,
    apply_patch,
)
from .node import (
    BUNDLE_MODULE,
    BUNDLE_TARGET,
    bootstrap_patch,
    cli_flags_patch,
    embed_bundle,
    gyp_patch,
    sanitize_bundle,
)

__all__ = [
    "FileAccess",
    "LocalFiles",
    "PatchDescriptor",
    "PatchResult",
    "apply_patch",
    "BUNDLE_MODULE",
    "BUNDLE_TARGET",
    "bootstrap_patch",
    "cli_flags_patch",
    "embed_bundle",
    "gyp_patch",
    "sanitize_bundle",
]
