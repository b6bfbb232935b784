"""
Build pipeline stages.

Each stage takes the PipelineContext produced by the previous stage and
returns it with its own result filled in. Stages raise on failure; the
orchestrator stops at the first error.
"""

import logging
import shutil

from nexekit.core.exceptions import PackagingError
from nexekit.patching.engine import apply_patch
from nexekit.patching.node import (
    BUNDLE_TARGET,
    bootstrap_patch,
    cli_flags_patch,
    embed_bundle,
    gyp_patch,
)
from nexekit.pipeline.context import PipelineContext

logger = logging.getLogger(__name__)


def acquire_toolchain(ctx: PipelineContext) -> PipelineContext:
    """Lock the version's cache, then fetch, extract and resolve its source tree."""
    options = ctx.options
    ctx.exit_stack.enter_context(
        ctx.downloader.lock_manager.version_lock(
            options.runtime_version, timeout=options.timeouts.lock
        )
    )

    result = ctx.downloader.acquire(options.runtime_version, ctx.cancel_token)
    ctx.toolchain = result.descriptor
    ctx.toolchain_was_cached = result.was_cached
    return ctx


def bundle_application(ctx: PipelineContext) -> PipelineContext:
    """Bundle the application's entry script into one source text."""
    ctx.bundle_source = ctx.bundler.bundle(ctx.options.entry_path, ctx.cancel_token)
    return ctx


def embed_application(ctx: PipelineContext) -> PipelineContext:
    """Write the ASCII-sanitized bundle into the source tree."""
    ctx.bundle_path = ctx.toolchain.root / BUNDLE_TARGET
    logger.info(f"bundle -> {ctx.bundle_path}")
    embed_bundle(ctx.bundle_source, ctx.source_files())
    return ctx


def patch_config(ctx: PipelineContext) -> PipelineContext:
    ctx.patches.append(apply_patch(gyp_patch(), ctx.source_files()))
    return ctx


def patch_entry_point(ctx: PipelineContext) -> PipelineContext:
    ctx.patches.append(apply_patch(bootstrap_patch(), ctx.source_files()))
    return ctx


def patch_cli_flags(ctx: PipelineContext) -> PipelineContext:
    ctx.patches.append(apply_patch(cli_flags_patch(), ctx.source_files()))
    return ctx


def build_runtime(ctx: PipelineContext) -> PipelineContext:
    """Run the native build in the patched source tree."""
    ctx.toolchain.build(timeout=ctx.options.timeouts.build, cancel_token=ctx.cancel_token)
    return ctx


def package_binary(ctx: PipelineContext) -> PipelineContext:
    """Copy the release binary to the configured output path."""
    binary = ctx.toolchain.release_binary
    output = ctx.options.output_path

    if not binary.is_file():
        raise PackagingError(f"Build produced no binary at {binary}")

    try:
        output.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise PackagingError(f"Cannot create output directory {output.parent}: {e}") from e

    logger.info(f"cp {binary} {output}")
    try:
        shutil.copy2(binary, output)
    except OSError as e:
        raise PackagingError(f"Cannot copy {binary} to {output}: {e}") from e

    ctx.output_path = output
    return ctx
