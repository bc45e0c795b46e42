"""Pytest configuration ensuring the src package is importable.

Adds ``src`` to sys.path explicitly so tests run without an editable install.
"""
from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent
SRC = ROOT / "src"
if SRC.exists() and str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


@pytest.fixture(autouse=True)
def _isolate_globals():  # noqa: D401
    """Ensure process-wide state does not leak between tests.

    - Reset metrics, event bus subscribers and any-event listeners
    - Drop GOLL env overrides
    """
    from goll import eventbus, metrics
    from goll.events import reset_listeners_for_tests

    saved = {k: v for k, v in os.environ.items() if k.startswith("GOLL")}
    for k in saved:
        os.environ.pop(k)
    metrics.reset_for_tests()
    eventbus.reset_for_tests()
    reset_listeners_for_tests()
    try:
        yield
    finally:
        for k in [k for k in os.environ if k.startswith("GOLL")]:
            os.environ.pop(k)
        os.environ.update(saved)


def make_step(
    folder: Path,
    model: str = "m",
    system: str = "sys",
    prompt: str | None = None,
    options: dict | None = None,
    fmt=None,
    format_file=None,
) -> Path:
    """Create a step folder with config.json, system.txt and optional extras."""
    folder.mkdir(parents=True, exist_ok=True)
    cfg: dict = {"model": model}
    if options is not None:
        cfg["options"] = options
    if fmt is not None:
        cfg["format"] = fmt
    (folder / "config.json").write_text(json.dumps(cfg), encoding="utf-8")
    (folder / "system.txt").write_text(system, encoding="utf-8")
    if prompt is not None:
        (folder / "prompt.txt").write_text(prompt, encoding="utf-8")
    if format_file is not None:
        (folder / "format.json").write_text(json.dumps(format_file), encoding="utf-8")
    return folder


def reply(response: str = "ok", model: str = "m", **extra) -> dict:
    body = {
        "model": model,
        "created_at": "2024-05-01T10:00:00.123456789Z",
        "response": response,
        "done": True,
        "total_duration": 2_000_000_000,
        "load_duration": 1_000_000,
        "prompt_eval_count": 7,
        "prompt_eval_duration": 5_000_000,
        "eval_count": 50,
        "eval_duration": 1_000_000_000,
    }
    body.update(extra)
    return body


@pytest.fixture
def step_factory():
    return make_step


@pytest.fixture
def reply_body():
    return reply
