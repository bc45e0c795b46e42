"""Step folder loading.

Folder layout::

    <folder>/config.json   required  {model, options, format?}
    <folder>/system.txt    required  system prompt
    <folder>/prompt.txt    required unless overridden / forwarded into
    <folder>/format.json   optional  schema, used only if config has none

Every failure here is a ``ConfigLoadError`` naming the offending file.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, List

from pydantic import ValidationError

from goll.errors import ConfigLoadError
from goll.llm.types import StepConfig

from .base import (
    MODE_RECURSIVE,
    SOURCE_FILE,
    SOURCE_FORWARDED,
    SOURCE_OVERRIDE,
)

CONFIG_FILE = "config.json"
SYSTEM_FILE = "system.txt"
PROMPT_FILE = "prompt.txt"
FORMAT_FILE = "format.json"


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ConfigLoadError(f"error reading {path.name}: not found", str(path)) from e
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigLoadError(f"error reading {path.name}: {e}", str(path)) from e


def _read_json(path: Path) -> Any:
    text = _read_text(path)
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigLoadError(f"error unmarshalling {path.name}: {e}", str(path)) from e


def load_step_config(folder: Path) -> StepConfig:
    """Read config.json + system.txt (+ format.json) into a StepConfig."""
    config_path = folder / CONFIG_FILE
    raw = _read_json(config_path)
    if not isinstance(raw, dict):
        raise ConfigLoadError(
            f"error unmarshalling {CONFIG_FILE}: expected an object",
            str(config_path),
        )
    data = dict(raw)
    data["system"] = _read_text(folder / SYSTEM_FILE)

    if data.get("format") in (None, "", {}):
        format_path = folder / FORMAT_FILE
        if format_path.is_file():
            data["format"] = _read_json(format_path)

    try:
        return StepConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigLoadError(
            f"invalid {CONFIG_FILE}: {e}", str(config_path)
        ) from e


def read_prompt(folder: Path) -> str:
    return _read_text(folder / PROMPT_FILE)


def resolve_prompt(
    folder: Path,
    *,
    mode: str,
    index: int,
    prompt_override: str | None,
) -> tuple[str, str]:
    """Return (prompt, source) for a step; first applicable rule wins.

    1. recursive mode + override -> override for every step
    2. chain mode, first step + override -> override
    3. prompt.txt (written by the previous step when chaining)
    """
    if prompt_override and (mode == MODE_RECURSIVE or index == 0):
        return prompt_override, SOURCE_OVERRIDE
    source = SOURCE_FILE
    if mode != MODE_RECURSIVE and index > 0:
        source = SOURCE_FORWARDED
    return read_prompt(folder), source


def list_subfolders(parent: Path) -> List[Path]:
    """Immediate, non-hidden subdirectories of ``parent`` sorted by name."""
    if not parent.is_dir():
        raise ConfigLoadError(f"folder {parent} does not exist", str(parent))
    subs = sorted(
        (p for p in parent.iterdir() if p.is_dir() and not p.name.startswith(".")),
        key=lambda p: p.name,
    )
    if not subs:
        raise ConfigLoadError(f"folder {parent} has no subfolders", str(parent))
    return subs


__all__ = [
    "CONFIG_FILE",
    "SYSTEM_FILE",
    "PROMPT_FILE",
    "FORMAT_FILE",
    "load_step_config",
    "read_prompt",
    "resolve_prompt",
    "list_subfolders",
]
