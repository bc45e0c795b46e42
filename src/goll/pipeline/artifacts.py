"""Artifacts written by a run: forwarded prompts and per-step result logs."""
from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

from goll.errors import ArtifactWriteError
from goll.llm.types import GenerationResult

from .base import PipelineStep
from .steps import PROMPT_FILE

LOG_PREFIX = "output_"
LOG_SUFFIX = ".log"
LOG_TIME_FORMAT = "%Y-%m-%d_%H-%M-%S"


def _write(path: Path, text: str) -> None:
    try:
        path.write_text(text, encoding="utf-8")
    except OSError as e:
        raise ArtifactWriteError(f"error writing {path.name}: {e}", str(path)) from e


def write_forwarded_prompt(folder: Path, text: str) -> Path:
    """Overwrite ``folder/prompt.txt`` with the previous step's output."""
    path = folder / PROMPT_FILE
    _write(path, text)
    return path


def format_tps(tps: float | None) -> str:
    return "n/a" if tps is None else f"{tps:.2f}"


def format_result_log(step: PipelineStep, result: GenerationResult) -> str:
    config_json = json.dumps(step.config.snapshot(), indent=2, ensure_ascii=False)
    return (
        f"Prompt ({step.prompt_source}): {step.prompt}\n\n"
        f"Response: {result.response}\n\n"
        f"Generated {result.eval_count} tokens in {result.eval_seconds:.2f} seconds\n"
        f"Prompt tokens: {result.prompt_eval_count}\n"
        f"Total duration: {result.total_seconds:.2f} seconds\n"
        f"Tokens per second: {format_tps(result.tokens_per_second)}\n"
        f"Using model config: {config_json}\n"
    )


def _log_path(folder: Path, now: datetime) -> Path:
    stem = LOG_PREFIX + now.strftime(LOG_TIME_FORMAT)
    path = folder / (stem + LOG_SUFFIX)
    n = 1
    # Same-second reruns against one folder must not clobber earlier logs
    while path.exists():
        path = folder / f"{stem}_{n}{LOG_SUFFIX}"
        n += 1
    return path


def write_result_log(
    step: PipelineStep,
    result: GenerationResult,
    now: datetime | None = None,
) -> Path:
    path = _log_path(step.path, now or datetime.now())
    _write(path, format_result_log(step, result))
    return path


__all__ = [
    "write_forwarded_prompt",
    "write_result_log",
    "format_result_log",
    "format_tps",
    "LOG_TIME_FORMAT",
]
