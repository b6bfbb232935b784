"""
Tests for the stage runner.
"""

from unittest.mock import Mock, patch

import pytest

from nexekit.bundling.bundler import CommandBundler, EntryFileBundler
from nexekit.core.cancellation import CancellationToken
from nexekit.core.exceptions import (
    BuildError,
    BundleError,
    FetchError,
    OperationCancelled,
)
from nexekit.core.platform import PlatformInfo
from nexekit.pipeline.context import PipelineContext
from nexekit.pipeline.orchestrator import (
    DEFAULT_STAGES,
    BuildPipeline,
    Stage,
    create_context,
)
from nexekit.toolchain.drivers import PosixDriver


@pytest.fixture
def ctx(build_options):
    return PipelineContext(options=build_options, downloader=Mock(), bundler=Mock())


def recording_stage(name, log, error_cls=BuildError, condition=None):
    def run(ctx):
        log.append(name)
        return ctx

    return Stage(name, run, error_cls, condition)


class TestBuildPipeline:
    """Test BuildPipeline.run."""

    def test_default_stage_order(self):
        assert [stage.name for stage in DEFAULT_STAGES] == [
            "AcquireToolchain",
            "BundleApplication",
            "EmbedBundle",
            "PatchConfig",
            "PatchEntryPoint",
            "PatchCliFlags",
            "Build",
            "Package",
        ]

    def test_runs_stages_in_order(self, ctx):
        log = []
        pipeline = BuildPipeline([recording_stage(n, log) for n in ("a", "b", "c")])

        result = pipeline.run(ctx)

        assert log == ["a", "b", "c"]
        assert result.completed_stages == ["a", "b", "c"]

    def test_short_circuits_on_failure(self, ctx):
        """Test no stage runs after the first failure and its error propagates."""
        log = []

        def fail(ctx):
            raise BundleError("bundler exited with 1")

        pipeline = BuildPipeline(
            [
                recording_stage("first", log),
                Stage("failing", fail, BundleError),
                recording_stage("never", log),
            ]
        )

        with pytest.raises(BundleError, match="bundler exited with 1"):
            pipeline.run(ctx)

        assert log == ["first"]
        assert ctx.completed_stages == ["first"]

    def test_unexpected_errors_wrapped(self, ctx):
        """Test foreign exceptions surface as the stage's error type."""

        def broken(ctx):
            raise KeyError("toolchain")

        pipeline = BuildPipeline([Stage("AcquireToolchain", broken, FetchError)])

        with pytest.raises(FetchError, match="AcquireToolchain failed") as exc_info:
            pipeline.run(ctx)

        assert isinstance(exc_info.value.__cause__, KeyError)

    def test_condition_skips_stage(self, ctx):
        log = []
        pipeline = BuildPipeline(
            [
                recording_stage("always", log),
                recording_stage("optional", log, condition=lambda c: False),
            ]
        )

        result = pipeline.run(ctx)

        assert log == ["always"]
        assert result.completed_stages == ["always"]

    def test_cancelled_before_start(self, ctx):
        log = []
        ctx.cancel_token.cancel("shutdown")

        with pytest.raises(OperationCancelled):
            BuildPipeline([recording_stage("a", log)]).run(ctx)

        assert log == []

    def test_cancelled_between_stages(self, ctx):
        """Test cancellation requested by one stage stops the next."""
        log = []

        def cancel(ctx):
            ctx.cancel_token.cancel("signal")
            return ctx

        pipeline = BuildPipeline(
            [Stage("cancel", cancel, BuildError), recording_stage("after", log)]
        )

        with pytest.raises(OperationCancelled):
            pipeline.run(ctx)

        assert log == []

    def test_exit_stack_closed_after_failure(self, ctx):
        """Test resources registered by stages are released when a stage fails."""
        released = Mock()

        def hold(ctx):
            ctx.exit_stack.callback(released)
            return ctx

        def fail(ctx):
            raise BuildError("make failed")

        pipeline = BuildPipeline(
            [Stage("hold", hold, FetchError), Stage("fail", fail, BuildError)]
        )

        with pytest.raises(BuildError):
            pipeline.run(ctx)

        released.assert_called_once()


class TestCreateContext:
    """Test create_context wiring."""

    def test_default_collaborators(self, build_options):
        build_options.make_jobs = 6
        build_options.sha256 = "ab" * 32
        build_options.timeouts.download = 120

        with patch(
            "nexekit.toolchain.drivers.detect_platform",
            return_value=PlatformInfo("linux", "x86_64"),
        ):
            ctx = create_context(build_options)

        downloader = ctx.downloader
        assert downloader.cache_dir == build_options.cache_dir
        assert downloader.driver == PosixDriver(make_tool="make", jobs=6)
        assert downloader.fetcher.sha256 == "ab" * 32
        assert downloader.fetcher.timeout == 120
        assert isinstance(ctx.bundler, EntryFileBundler)
        assert isinstance(ctx.cancel_token, CancellationToken)

    def test_bundler_command(self, build_options):
        build_options.bundler_command = ["esbuild", "{entry}"]
        build_options.timeouts.bundle = 45

        ctx = create_context(build_options)

        assert isinstance(ctx.bundler, CommandBundler)
        assert ctx.bundler.timeout == 45

    def test_overrides_kept(self, build_options):
        downloader, bundler, token = Mock(), Mock(), CancellationToken()

        ctx = create_context(build_options, bundler, downloader, token)

        assert ctx.downloader is downloader
        assert ctx.bundler is bundler
        assert ctx.cancel_token is token
