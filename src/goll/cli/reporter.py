"""Console progress output driven by pipeline events."""
from __future__ import annotations

import json
import sys
from typing import Any, Callable, Dict, List, TextIO

from goll import eventbus, metrics
from goll.pipeline.artifacts import format_tps


class ConsoleReporter:
    """Prints per-step progress to ``stream`` (stdout by default)."""

    def __init__(self, stream: TextIO | None = None, verbose: bool = False) -> None:
        self._stream = stream or sys.stdout
        self._verbose = verbose
        self._unsubs: List[Callable[[], None]] = []

    def attach(self) -> "ConsoleReporter":
        handlers = {
            "StepStarted": self._on_step_started,
            "PromptForwarded": self._on_prompt_forwarded,
            "StepCompleted": self._on_step_completed,
        }
        for name, handler in handlers.items():
            self._unsubs.append(eventbus.subscribe(name, handler))
        return self

    def detach(self) -> None:
        for unsub in self._unsubs:
            unsub()
        self._unsubs.clear()

    def _print(self, text: str = "") -> None:
        print(text, file=self._stream, flush=True)

    def _on_step_started(self, p: Dict[str, Any]) -> None:
        self._print(
            f"Generating response using folder: {p['step']} "
            f"({p['index'] + 1}/{p['total']}, prompt from {p['prompt_source']})"
        )
        if self._verbose and p.get("model_config"):
            cfg = json.dumps(p["model_config"], indent=2, ensure_ascii=False)
            self._print(f"  With Model Config: {cfg}")

    def _on_prompt_forwarded(self, p: Dict[str, Any]) -> None:
        self._print(f"Response written to {p['path']}")

    def _on_step_completed(self, p: Dict[str, Any]) -> None:
        self._print()
        self._print(f"Response: {p['response']}")
        self._print()
        self._print(
            f"Generated {p['eval_count']} tokens in {p['eval_seconds']:.2f} seconds"
        )
        self._print(f"Tokens per second: {format_tps(p['tokens_per_second'])}")
        self._print(f"Output written to {p['log_path']}")
        self._print(f"{p['step']} completed successfully")
        self._print()

    def print_metrics(self) -> None:
        snap = metrics.snapshot()
        self._print("Metrics:")
        for name, value in sorted(snap["counters"].items()):
            self._print(f"  {name} = {value:g}")
        for name, h in sorted(snap["histograms"].items()):
            self._print(
                f"  {name} count={h['count']} p50={h['p50']:.2f} max={h['max']:.2f}"
            )


__all__ = ["ConsoleReporter"]
