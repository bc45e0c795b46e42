"""Process-wide settings schema (settings.json).

Only ``api_base_url`` is required. Key names match the settings file
written for earlier releases of the tool so existing files keep loading.
"""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator

from .observability import LoggingConfig


class ReasoningConfig(BaseModel):
    """Markers delimiting reasoning blocks stripped before forwarding."""

    open_tag: str = "<think>"
    close_tag: str = "</think>"

    model_config = ConfigDict(extra="forbid")

    @field_validator("open_tag", "close_tag")
    @classmethod
    def _non_empty(cls, v: str) -> str:  # noqa: D401
        if not v:
            raise ValueError("reasoning markers must be non-empty")
        return v


class ToolSettings(BaseModel):
    api_base_url: str
    folder_base_path: str = "."
    # Per-request timeout in seconds; <= 0 disables the bound.
    timeout: int = 300
    logging: LoggingConfig = LoggingConfig()
    reasoning: ReasoningConfig = ReasoningConfig()

    model_config = ConfigDict(extra="forbid")

    @field_validator("api_base_url")
    @classmethod
    def _strip_base(cls, v: str) -> str:  # noqa: D401
        v = v.strip()
        if not v:
            raise ValueError("api_base_url is required")
        return v.rstrip("/")


__all__ = ["ToolSettings", "ReasoningConfig", "LoggingConfig"]
