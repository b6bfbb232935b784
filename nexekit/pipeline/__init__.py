"""
Build orchestration pipeline.
"""

from .context import PipelineContext
from .orchestrator import (
    DEFAULT_STAGES,
    BuildPipeline,
    Stage,
    compile_executable,
    create_context,
)

__all__ = [
    "PipelineContext",
    "DEFAULT_STAGES",
    "BuildPipeline",
    "Stage",
    "compile_executable",
    "create_context",
]
