"""
State carried through the build pipeline.
"""

from contextlib import ExitStack
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from nexekit.bundling.bundler import Bundler
from nexekit.config.parser import BuildOptions
from nexekit.core.cancellation import CancellationToken
from nexekit.patching.engine import LocalFiles, PatchResult
from nexekit.toolchain.downloader import ToolchainDownloader
from nexekit.toolchain.resolver import ToolchainDescriptor


@dataclass
class PipelineContext:
    """
    Everything one pipeline run needs and produces.

    The collaborators and options are set up front; each stage fills in its
    result (toolchain, bundle, patches, output) for the stages after it.
    Locks taken by a stage are registered on ``exit_stack`` and released
    when the pipeline finishes.
    """

    options: BuildOptions
    downloader: ToolchainDownloader
    bundler: Bundler
    cancel_token: CancellationToken = field(default_factory=CancellationToken)

    toolchain: Optional[ToolchainDescriptor] = None
    toolchain_was_cached: bool = False
    bundle_source: Optional[str] = None
    bundle_path: Optional[Path] = None
    patches: List[PatchResult] = field(default_factory=list)
    output_path: Optional[Path] = None

    completed_stages: List[str] = field(default_factory=list)
    exit_stack: ExitStack = field(default_factory=ExitStack, repr=False)

    def source_files(self) -> LocalFiles:
        """File access rooted at the acquired source tree."""
        if self.toolchain is None:
            raise RuntimeError("No toolchain acquired yet")
        return LocalFiles(self.toolchain.root)
