"""Settings loading & validation.

Precedence (last wins):
    settings file (JSON, or YAML by suffix)
    -> settings.local.yaml next to it (optional)
    -> ENV (GOLL__*, e.g. GOLL__TIMEOUT=60, GOLL__LOGGING__LEVEL=debug)

The settings file path comes from the caller, else ``$GOLL_SETTINGS``,
else ``settings.json`` in the working directory. Unknown keys are rejected.
"""
from __future__ import annotations

import json
import logging
import os
import pathlib
from typing import Any, Dict, Mapping

import yaml
from pydantic import ValidationError

from goll.errors import GollError

from .schemas.settings import ToolSettings

DEFAULT_SETTINGS_FILE = "settings.json"
LOCAL_OVERRIDES_FILE = "settings.local.yaml"
SETTINGS_ENV = "GOLL_SETTINGS"
ENV_PREFIX = "GOLL__"

logger = logging.getLogger(__name__)


class ConfigError(GollError):
    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(
            message,
            error_type="settings",
            details={"path": path} if path else None,
        )
        self.path = path


def _load_document(path: pathlib.Path) -> Dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"error reading {path}: {e}", str(path)) from e
    try:
        if path.suffix.lower() in {".yaml", ".yml"}:
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"error parsing {path}: {e}", str(path)) from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain an object", str(path))
    return data


def _load_optional(path: pathlib.Path) -> Dict[str, Any]:
    return _load_document(path) if path.is_file() else {}


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Return a new dict: ``override`` layered onto ``base``, nested dicts merged."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _cast_env_value(value: str) -> Any:
    if value.lower() in {"true", "false"}:
        return value.lower() == "true"
    try:
        return int(value)
    except ValueError:
        try:
            return float(value)
        except ValueError:
            return value


def env_overrides(environ: Mapping[str, str] | None = None) -> Dict[str, Any]:
    """Nested overrides from GOLL__SECTION__KEY=value variables."""
    environ = os.environ if environ is None else environ
    overrides: Dict[str, Any] = {}
    for env_key in sorted(environ):
        if not env_key.startswith(ENV_PREFIX):
            continue
        *parents, leaf = env_key[len(ENV_PREFIX) :].lower().split("__")
        node = overrides
        for part in parents:
            node = node.setdefault(part, {})
        node[leaf] = _cast_env_value(environ[env_key])
        logger.debug("settings override from env: %s", env_key)
    return overrides


def resolve_settings_path(path: str | os.PathLike | None = None) -> pathlib.Path:
    """Resolve the settings file path honoring env var changes."""
    if path:
        return pathlib.Path(path)
    return pathlib.Path(os.getenv(SETTINGS_ENV, DEFAULT_SETTINGS_FILE))


def load_settings(path: str | os.PathLike | None = None) -> ToolSettings:
    settings_path = resolve_settings_path(path)
    if not settings_path.exists():
        raise ConfigError(
            f"settings file not found: {settings_path}", str(settings_path)
        )
    layers = (
        _load_document(settings_path),
        _load_optional(settings_path.parent / LOCAL_OVERRIDES_FILE),
        env_overrides(),
    )
    merged: Dict[str, Any] = {}
    for layer in layers:
        merged = deep_merge(merged, layer)
    try:
        settings = ToolSettings.model_validate(merged)
    except ValidationError as e:
        raise ConfigError(
            f"invalid settings in {settings_path}: {e}", str(settings_path)
        ) from e
    logger.debug(
        "settings loaded from %s (api=%s, folders=%s, timeout=%ss)",
        settings_path,
        settings.api_base_url,
        settings.folder_base_path,
        settings.timeout,
    )
    return settings


__all__ = [
    "ConfigError",
    "load_settings",
    "resolve_settings_path",
    "deep_merge",
    "env_overrides",
]
