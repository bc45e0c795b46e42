"""Typed pipeline lifecycle events.

Each event is a dataclass published on ``goll.eventbus`` under its class
name. ``on(handler)`` subscribes to all of them; handler(name, payload).
Importing this module registers the collector that turns events into
run metrics.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Optional

from goll import eventbus, metrics

Listener = Callable[[str, Dict[str, Any]], None]


@dataclass(slots=True)
class PipelineEvent:
    @property
    def name(self) -> str:
        return type(self).__name__

    def payload(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class RunStarted(PipelineEvent):
    mode: str  # chain | recursive
    steps: list[str]
    prompt_override: bool = False


@dataclass(slots=True)
class StepStarted(PipelineEvent):
    step: str
    index: int
    total: int
    model: str
    prompt_source: str  # override | forwarded | file
    model_config: Optional[dict] = None


@dataclass(slots=True)
class PromptForwarded(PipelineEvent):
    step: str
    next_step: str
    path: str  # prompt.txt that was overwritten
    chars: int


@dataclass(slots=True)
class StepCompleted(PipelineEvent):
    step: str
    index: int
    mode: str
    model: str
    response: str  # raw, reasoning included
    eval_count: int
    eval_seconds: float
    tokens_per_second: Optional[float]
    latency_ms: int
    log_path: str


@dataclass(slots=True)
class StepFailed(PipelineEvent):
    step: str
    index: int
    error_type: str
    message: Optional[str] = None


@dataclass(slots=True)
class RunFinished(PipelineEvent):
    mode: str
    completed: int
    total: int
    status: str  # ok | error | cancelled


def _collect_metrics(name: str, payload: Dict[str, Any]) -> None:
    if name == "StepCompleted":
        metrics.inc("steps_completed_total", {"mode": payload["mode"]})
        if payload.get("tokens_per_second") is not None:
            metrics.observe("tokens_per_second", payload["tokens_per_second"])
    elif name == "StepFailed":
        metrics.inc("step_failures_total", {"error_type": payload["error_type"]})
    elif name == "PromptForwarded":
        metrics.inc("prompts_forwarded_total")


def emit(event: PipelineEvent) -> None:
    eventbus.emit(event.name, event.payload())


def on(listener: Listener) -> Callable[[], None]:
    """Subscribe to every pipeline event; returns the unsubscribe callable."""
    return eventbus.subscribe_all(listener)


def reset_listeners_for_tests() -> None:  # pragma: no cover
    eventbus.reset_for_tests()
    eventbus.subscribe_all(_collect_metrics)


eventbus.subscribe_all(_collect_metrics)


__all__ = [
    "PipelineEvent",
    "RunStarted",
    "StepStarted",
    "PromptForwarded",
    "StepCompleted",
    "StepFailed",
    "RunFinished",
    "emit",
    "on",
    "reset_listeners_for_tests",
]
