"""
Build orchestration.

Runs the pipeline stages strictly in order, one at a time:

    AcquireToolchain -> BundleApplication -> EmbedBundle -> PatchConfig
    -> PatchEntryPoint -> [PatchCliFlags] -> Build -> Package

The first failing stage aborts the run and its error propagates to the
caller. Nothing is rolled back: files already patched stay patched, and the
next run recognizes them as such.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Type

from nexekit.bundling.bundler import Bundler, create_bundler
from nexekit.config.parser import BuildOptions
from nexekit.core.cancellation import CancellationToken
from nexekit.core.download import DownloadProgress
from nexekit.core.exceptions import (
    BuildError,
    BundleError,
    FetchError,
    LockTimeout,
    NexeKitError,
    PackagingError,
    PatchError,
)
from nexekit.pipeline import stages
from nexekit.pipeline.context import PipelineContext
from nexekit.toolchain.downloader import ToolchainDownloader
from nexekit.toolchain.drivers import select_driver
from nexekit.toolchain.fetcher import ArtifactFetcher

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Stage:
    """
    One pipeline step.

    Attributes:
        name: Stage name used in logs
        run: Maps the context to the context for the next stage
        error_cls: Type unexpected exceptions are wrapped in
        condition: Optional predicate; the stage is skipped when it is False
    """

    name: str
    run: Callable[[PipelineContext], PipelineContext]
    error_cls: Type[NexeKitError]
    condition: Optional[Callable[[PipelineContext], bool]] = None

    def enabled(self, ctx: PipelineContext) -> bool:
        return self.condition is None or self.condition(ctx)


DEFAULT_STAGES = (
    Stage("AcquireToolchain", stages.acquire_toolchain, FetchError),
    Stage("BundleApplication", stages.bundle_application, BundleError),
    Stage("EmbedBundle", stages.embed_application, PatchError),
    Stage("PatchConfig", stages.patch_config, PatchError),
    Stage("PatchEntryPoint", stages.patch_entry_point, PatchError),
    Stage(
        "PatchCliFlags",
        stages.patch_cli_flags,
        PatchError,
        condition=lambda ctx: ctx.options.suppress_cli_flags,
    ),
    Stage("Build", stages.build_runtime, BuildError),
    Stage("Package", stages.package_binary, PackagingError),
)


class BuildPipeline:
    """
    Sequential, short-circuiting stage runner.

    Example:
        >>> pipeline = BuildPipeline()
        >>> ctx = pipeline.run(context)
        >>> print(ctx.output_path)
    """

    def __init__(self, stages: Sequence[Stage] = DEFAULT_STAGES):
        self.stages = tuple(stages)

    def run(self, ctx: PipelineContext) -> PipelineContext:
        """
        Run every enabled stage in order.

        Returns:
            The context after the last stage

        Raises:
            NexeKitError: The error of the first stage that failed
        """
        start = time.time()
        with ctx.exit_stack:
            for index, stage in enumerate(self.stages, 1):
                if not stage.enabled(ctx):
                    logger.debug(f"Skipping {stage.name}")
                    continue

                ctx.cancel_token.raise_if_cancelled()
                logger.info(f"[{index}/{len(self.stages)}] {stage.name}")
                ctx = self._run_stage(stage, ctx)
                ctx.completed_stages.append(stage.name)

        logger.info(f"Pipeline finished in {time.time() - start:.1f}s")
        return ctx

    def _run_stage(self, stage: Stage, ctx: PipelineContext) -> PipelineContext:
        try:
            return stage.run(ctx)
        except (NexeKitError, LockTimeout) as e:
            logger.debug(f"{stage.name} failed: {e}")
            raise
        except Exception as e:
            logger.debug(f"{stage.name} failed: {e}")
            raise stage.error_cls(f"{stage.name} failed: {e}") from e


def create_context(
    options: BuildOptions,
    bundler: Optional[Bundler] = None,
    downloader: Optional[ToolchainDownloader] = None,
    cancel_token: Optional[CancellationToken] = None,
    progress_callback: Optional[Callable[[DownloadProgress], None]] = None,
) -> PipelineContext:
    """Wire the default collaborators for a set of build options."""
    if downloader is None:
        fetcher = ArtifactFetcher(
            dist_url=options.dist_url,
            verify=options.verify_checksum,
            sha256=options.sha256,
            timeout=options.timeouts.download,
            progress_callback=progress_callback,
        )
        downloader = ToolchainDownloader(
            options.cache_dir,
            fetcher=fetcher,
            driver=select_driver(jobs=options.make_jobs),
            extract_timeout=options.timeouts.extract,
        )
    if bundler is None:
        bundler = create_bundler(options.bundler_command, timeout=options.timeouts.bundle)

    return PipelineContext(
        options=options,
        downloader=downloader,
        bundler=bundler,
        cancel_token=cancel_token or CancellationToken(),
    )


def compile_executable(
    options: BuildOptions,
    bundler: Optional[Bundler] = None,
    downloader: Optional[ToolchainDownloader] = None,
    cancel_token: Optional[CancellationToken] = None,
    progress_callback: Optional[Callable[[DownloadProgress], None]] = None,
) -> PipelineContext:
    """
    Compile an application into a standalone executable.

    Args:
        options: Build options
        bundler: Bundler override (default from options)
        downloader: Toolchain downloader override (default from options)
        cancel_token: Token that aborts the build when cancelled
        progress_callback: Receives archive download progress

    Returns:
        Final pipeline context; ``output_path`` holds the executable

    Raises:
        NexeKitError: The error of the first stage that failed
    """
    ctx = create_context(options, bundler, downloader, cancel_token, progress_callback)
    return BuildPipeline().run(ctx)


__all__ = [
    "Stage",
    "DEFAULT_STAGES",
    "BuildPipeline",
    "create_context",
    "compile_executable",
]
