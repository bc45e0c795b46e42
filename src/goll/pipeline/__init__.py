"""Step pipeline: folder loading, prompt routing, result artifacts."""

from .base import (  # noqa: F401
    MODE_CHAIN,
    MODE_RECURSIVE,
    PipelineStep,
    ProgressIndicator,
    RunReport,
    StepOutcome,
)
from .runner import PipelineRunner  # noqa: F401
from .steps import list_subfolders, load_step_config, resolve_prompt  # noqa: F401

__all__ = [
    "MODE_CHAIN",
    "MODE_RECURSIVE",
    "PipelineRunner",
    "PipelineStep",
    "ProgressIndicator",
    "RunReport",
    "StepOutcome",
    "list_subfolders",
    "load_step_config",
    "resolve_prompt",
]
