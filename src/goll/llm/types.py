"""Generation wire and configuration types.

ModelOptions / OutputFormatSchema / StepConfig mirror a step folder's
``config.json``; GenerationRequest / GenerationResult mirror the
``POST /generate`` body and reply. All models are frozen: a request is
built fresh for every call and never mutated afterwards.
"""
from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Servers emit RFC3339 with nanoseconds; datetime keeps microseconds.
_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


class ModelOptions(BaseModel):
    """Sampling options sent as ``options``.

    The first four are always serialized (a zero is meaningful to the
    server). The rest are sent only when set. Options not listed here
    (num_gpu, num_thread, typical_p, ...) are passed to the server as given.
    """

    # Size of the context window used to generate the next token.
    num_ctx: int = Field(2048, gt=0)
    # How far back to look to prevent repetition (0 = off, -1 = num_ctx).
    repeat_last_n: int = Field(64, ge=-1)
    repeat_penalty: float = Field(1.1, ge=0.0)
    temperature: float = Field(0.8, ge=0.0)
    top_k: Optional[int] = Field(None, gt=0)
    top_p: Optional[float] = Field(None, gt=0.0, le=1.0)
    min_p: Optional[float] = Field(None, ge=0.0, le=1.0)
    mirostat: Optional[int] = Field(None, ge=0, le=2)
    mirostat_eta: Optional[float] = None
    mirostat_tau: Optional[float] = None
    num_predict: Optional[int] = None
    seed: Optional[int] = None
    stop: Optional[List[str]] = None

    model_config = ConfigDict(extra="allow", frozen=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class OutputFormatSchema(BaseModel):
    """Structured-output JSON schema (``format``).

    Keys beyond type/properties/required (e.g. ``additionalProperties``)
    are passed through untouched.
    """

    type: str = Field(min_length=1)
    properties: Dict[str, Any] = Field(default_factory=dict)
    required: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow", frozen=True)


# "json" asks the server for free-form JSON without a schema.
OutputFormat = Union[OutputFormatSchema, Literal["json"]]


class StepConfig(BaseModel):
    """Per-folder configuration; the user prompt is not part of it."""

    model: str = Field(min_length=1)
    options: ModelOptions = ModelOptions()
    system: str = ""
    format: Optional[OutputFormat] = None

    # Unrelated top-level keys in config.json are tolerated
    model_config = ConfigDict(extra="ignore", frozen=True)

    @field_validator("options", mode="before")
    @classmethod
    def _null_options(cls, v: Any) -> Any:  # noqa: D401
        return {} if v is None else v

    @field_validator("format", mode="before")
    @classmethod
    def _empty_format(cls, v: Any) -> Any:  # noqa: D401
        # An empty string / object means "no schema"
        if v == "" or v == {}:
            return None
        return v

    def snapshot(self) -> Dict[str, Any]:
        """Effective configuration as logged with each result."""
        data: Dict[str, Any] = {
            "model": self.model,
            "system": self.system,
            "options": self.options.to_wire(),
        }
        if self.format is not None:
            data["format"] = _format_wire(self.format)
        return data


def _format_wire(fmt: Optional[OutputFormat]) -> Any:
    if fmt is None:
        return ""
    if isinstance(fmt, OutputFormatSchema):
        return fmt.model_dump()
    return fmt


class GenerationRequest(BaseModel):
    model: str
    options: ModelOptions
    prompt: str
    system: str = ""
    stream: Literal[False] = False
    format: Optional[OutputFormat] = None
    raw: Literal[False] = False

    model_config = ConfigDict(frozen=True)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "model": self.model,
            "options": self.options.to_wire(),
            "prompt": self.prompt,
            "stream": self.stream,
            "system": self.system,
            "format": _format_wire(self.format),
            "raw": self.raw,
        }


class GenerationResult(BaseModel):
    """Parsed ``/generate`` reply. Durations are nanoseconds."""

    model: str
    created_at: datetime
    response: str
    done: bool
    total_duration: int = 0
    load_duration: int = 0
    prompt_eval_count: int = 0
    prompt_eval_duration: int = 0
    eval_count: int = 0
    eval_duration: int = 0

    model_config = ConfigDict(extra="ignore", frozen=True)

    @field_validator("created_at", mode="before")
    @classmethod
    def _trim_nanos(cls, v: Any) -> Any:  # noqa: D401
        if isinstance(v, str):
            return _FRACTION_RE.sub(r"\1", v)
        return v

    @property
    def eval_seconds(self) -> float:
        return self.eval_duration / 1e9

    @property
    def total_seconds(self) -> float:
        return self.total_duration / 1e9

    @property
    def tokens_per_second(self) -> float | None:
        """Output tokens per second; None when eval_duration is zero."""
        if self.eval_duration <= 0:
            return None
        return self.eval_count / self.eval_seconds


__all__ = [
    "ModelOptions",
    "OutputFormatSchema",
    "OutputFormat",
    "StepConfig",
    "GenerationRequest",
    "GenerationResult",
]
