"""In-process metrics for a single CLI run.

Counters and value samples keyed by ``name{label=value,...}``. Nothing is
exported; ``goll -v`` prints a snapshot when the run ends.

API:
    inc(name, labels=None, value=1)
    observe(name, value, labels=None)
    counter(name, labels=None) -> float
    snapshot() -> dict (copy for safe reading)

Metric names in use:
    - generation_requests_total{status}      # ok | error
    - generation_cancelled_total{reason}     # interrupted | timeout
    - generation_latency_ms
    - tokens_per_second
    - steps_completed_total{mode}            # chain | recursive
    - step_failures_total{error_type}
    - prompts_forwarded_total
    - events_emitted_total{event}
    - handler_exceptions_total{event}
"""
from __future__ import annotations

from collections import defaultdict
from statistics import median
from threading import RLock
from time import time
from typing import Any, DefaultDict, Dict, List

Labels = Dict[str, Any] | None


def metric_key(name: str, labels: Labels = None) -> str:
    """Canonical key; labels sorted so spelling order never splits a series."""
    if not labels:
        return name
    parts = sorted(f"{k}={v}" for k, v in labels.items())
    return f"{name}{{{','.join(parts)}}}"


class Registry:
    def __init__(self) -> None:
        self._counters: DefaultDict[str, float] = defaultdict(float)
        self._samples: DefaultDict[str, List[float]] = defaultdict(list)
        self._lock = RLock()

    def inc(self, name: str, labels: Labels = None, value: float = 1.0) -> None:
        with self._lock:
            self._counters[metric_key(name, labels)] += value

    def observe(self, name: str, value: float, labels: Labels = None) -> None:
        with self._lock:
            self._samples[metric_key(name, labels)].append(value)

    def counter(self, name: str, labels: Labels = None) -> float:
        with self._lock:
            return self._counters.get(metric_key(name, labels), 0.0)

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            counters = dict(self._counters)
            samples = {k: list(v) for k, v in self._samples.items() if v}
        return {
            "ts": time(),
            "counters": counters,
            "histograms": {k: _summarize(v) for k, v in samples.items()},
        }

    def clear(self) -> None:
        with self._lock:
            self._counters.clear()
            self._samples.clear()


def _summarize(values: List[float]) -> Dict[str, float]:
    return {
        "count": len(values),
        "min": min(values),
        "max": max(values),
        "p50": median(values),
        "last": values[-1],
    }


_REGISTRY = Registry()


def inc(name: str, labels: Labels = None, value: float = 1.0) -> None:
    _REGISTRY.inc(name, labels, value)


def observe(name: str, value: float, labels: Labels = None) -> None:
    _REGISTRY.observe(name, value, labels)


def counter(name: str, labels: Labels = None) -> float:
    return _REGISTRY.counter(name, labels)


def snapshot() -> Dict[str, Any]:
    return _REGISTRY.snapshot()


def reset_for_tests() -> None:  # pragma: no cover
    _REGISTRY.clear()


__all__ = [
    "Registry",
    "metric_key",
    "inc",
    "observe",
    "counter",
    "snapshot",
    "reset_for_tests",
]
