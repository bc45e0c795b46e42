"""Pipeline data structures.

A run is an ordered list of steps. Each step is resolved (config + prompt),
requested, then routed (log written, output forwarded in chain mode).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Protocol

from goll.llm.types import GenerationResult, StepConfig

MODE_CHAIN = "chain"
MODE_RECURSIVE = "recursive"

SOURCE_OVERRIDE = "override"
SOURCE_FORWARDED = "forwarded"
SOURCE_FILE = "file"


@dataclass(frozen=True, slots=True)
class PipelineStep:
    name: str  # folder identifier relative to the folder root
    path: Path
    index: int
    total: int
    config: StepConfig
    prompt: str
    prompt_source: str  # override | forwarded | file

    @property
    def is_last(self) -> bool:
        return self.index == self.total - 1


@dataclass(slots=True)
class StepOutcome:
    step: PipelineStep
    result: GenerationResult
    cleaned_output: str
    log_path: Path
    latency_ms: int
    forwarded_to: Path | None = None


@dataclass(slots=True)
class RunReport:
    mode: str
    steps: List[str]
    outcomes: List[StepOutcome] = field(default_factory=list)

    @property
    def completed(self) -> int:
        return len(self.outcomes)


class ProgressIndicator(Protocol):  # pragma: no cover - interface
    def start(self) -> None:
        ...

    async def stop(self) -> None:
        ...


__all__ = [
    "MODE_CHAIN",
    "MODE_RECURSIVE",
    "SOURCE_OVERRIDE",
    "SOURCE_FORWARDED",
    "SOURCE_FILE",
    "PipelineStep",
    "StepOutcome",
    "RunReport",
    "ProgressIndicator",
]
