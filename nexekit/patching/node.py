"""
Patches that embed an application bundle into the Node.js source tree.

The bundle is compiled into the runtime as the built-in module ``nexe``
(``lib/nexe.js``):

- node.gyp lists it among the library files baked into the binary,
- src/node.js evaluates it on startup in place of a user script,
- optionally, src/node.cc stops parsing runtime CLI flags so every argument
  reaches the application.
"""

import re

from nexekit.core.exceptions import PatchError
from nexekit.patching.engine import FileAccess, PatchDescriptor

BUNDLE_MODULE = "nexe"
BUNDLE_TARGET = f"lib/{BUNDLE_MODULE}.js"

GYP_TARGET = "node.gyp"
GYP_ANCHOR = "'lib/fs.js',"

BOOTSTRAP_TARGET = "src/node.js"
BOOTSTRAP_ANCHOR = re.compile(r"\(function\(process\) \{")

MAIN_CC_TARGET = "src/node.cc"
# Lines of the option parsing loop; present in src/node.cc up to v0.11.6
OPTIONS_START_LINE = "  // TODO use parse opts"
OPTIONS_END_LINE = "  option_end_index = i;"
OPTIONS_FIXED_LINE = "  option_end_index = 1;"

_NON_ASCII = re.compile(r"[^\x00-\x7F]")


def sanitize_bundle(source: str) -> str:
    """
    Remove every non-ASCII character from bundled source.

    Example:
        >>> sanitize_bundle('console.log("h\\u00e9llo");')
        'console.log("hllo");'
    """
    return _NON_ASCII.sub("", source)


def embed_bundle(source: str, files: FileAccess) -> str:
    """
    Write the sanitized bundle into the source tree as the ``nexe`` module.

    Returns:
        The sanitized source that was written

    Raises:
        PatchError: If the module file cannot be written
    """
    sanitized = sanitize_bundle(source)
    try:
        files.write_text(BUNDLE_TARGET, sanitized)
    except OSError as e:
        raise PatchError(f"cannot write bundle: {e}", target=BUNDLE_TARGET) from e
    return sanitized


# ============================================================================
# node.gyp
# ============================================================================


def _gyp_is_applied(content: str) -> bool:
    return f"{BUNDLE_MODULE}.js" in content


def _gyp_transform(content: str) -> str:
    if GYP_ANCHOR not in content:
        raise PatchError(f"library list entry {GYP_ANCHOR} not found")
    return content.replace(GYP_ANCHOR, f"{GYP_ANCHOR} '{BUNDLE_TARGET}', ", 1)


def gyp_patch() -> PatchDescriptor:
    """Add the bundle module to the library files compiled into the binary."""
    return PatchDescriptor(
        target=GYP_TARGET,
        is_applied=_gyp_is_applied,
        transform=_gyp_transform,
        description=f"add {BUNDLE_TARGET} to {GYP_TARGET}",
    )


# ============================================================================
# src/node.js
# ============================================================================


def _bootstrap_is_applied(content: str) -> bool:
    return BUNDLE_MODULE in content


def _bootstrap_transform(content: str) -> str:
    injection = (
        "(function(process) {\n"
        f"  process._eval = 'require(\"{BUNDLE_MODULE}\");';\n"
        '  process.argv.unshift("node");\n'
    )
    patched, count = BOOTSTRAP_ANCHOR.subn(lambda _: injection, content, count=1)
    if count == 0:
        raise PatchError("bootstrap function opener '(function(process) {' not found")
    return patched


def bootstrap_patch() -> PatchDescriptor:
    """Make the runtime evaluate the bundle module on startup."""
    return PatchDescriptor(
        target=BOOTSTRAP_TARGET,
        is_applied=_bootstrap_is_applied,
        transform=_bootstrap_transform,
        description=f"run {BUNDLE_MODULE} from {BOOTSTRAP_TARGET}",
    )


# ============================================================================
# src/node.cc
# ============================================================================


def _cli_flags_is_applied(content: str) -> bool:
    return f"//{OPTIONS_START_LINE}" in content


def _cli_flags_transform(content: str) -> str:
    lines = content.split("\n")

    try:
        start = lines.index(OPTIONS_START_LINE)
        end = lines.index(OPTIONS_END_LINE)
    except ValueError:
        raise PatchError(
            "option parsing loop not found (expected lines "
            f"{OPTIONS_START_LINE.strip()!r} and {OPTIONS_END_LINE.strip()!r}); "
            "this runtime version is not supported by flag suppression"
        ) from None

    if end < start:
        raise PatchError("option parsing loop anchors are out of order")

    for i in range(start, end):
        lines[i] = "//" + lines[i]
    lines[end] = OPTIONS_FIXED_LINE

    return "\n".join(lines)


def cli_flags_patch() -> PatchDescriptor:
    """Stop the runtime from consuming its own command line flags."""
    return PatchDescriptor(
        target=MAIN_CC_TARGET,
        is_applied=_cli_flags_is_applied,
        transform=_cli_flags_transform,
        description=f"disable runtime flag parsing in {MAIN_CC_TARGET}",
    )


__all__ = [
    "BUNDLE_MODULE",
    "BUNDLE_TARGET",
    "sanitize_bundle",
    "embed_bundle",
    "gyp_patch",
    "bootstrap_patch",
    "cli_flags_patch",
]
