"""Config subsystem public API.

Provides:
    load_settings(path) -> ToolSettings (path from caller, env or default)
    ConfigError         -> raised on read / parse / validation failure
"""

from .loader import (  # noqa: F401
    ConfigError,
    load_settings,
    resolve_settings_path,
)
from .schemas.observability import LoggingConfig  # noqa: F401
from .schemas.settings import ReasoningConfig, ToolSettings  # noqa: F401

__all__ = [
    "ConfigError",
    "LoggingConfig",
    "ReasoningConfig",
    "ToolSettings",
    "load_settings",
    "resolve_settings_path",
]
