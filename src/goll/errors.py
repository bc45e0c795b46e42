"""Central error taxonomy and base exception types.

Every error raised by goll carries an ``error_type`` from the closed set
below so the CLI, metrics and logs speak the same vocabulary.

Phases:
    settings      -> settings file / env override problems
    step.resolve  -> folder artifacts (config.json, system.txt, prompt.txt)
    step.request  -> the generation exchange
    step.route    -> forwarding output and writing result logs
"""
from __future__ import annotations

from typing import Any, Dict, Optional

_ALLOWED_ERROR_TYPES = {
    # settings
    "settings",
    # step.resolve
    "config-load",
    # step.request
    "upstream-status",
    "upstream-unreachable",
    "decode",
    "cancelled",
    "timeout",
    # step.route
    "artifact-write",
    # run
    "step-failed",
}


def validate_error_type(code: str) -> str:
    assert (
        code in _ALLOWED_ERROR_TYPES
    ), f"Unknown error_type '{code}' (not in taxonomy)"
    return code


class GollError(Exception):
    """Base exception for all goll errors.

    Attributes:
        message: Human-readable error message
        error_type: Taxonomy code (see ``_ALLOWED_ERROR_TYPES``)
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        error_type: str = "step-failed",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_type = validate_error_type(error_type)
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.error_type,
            "message": self.message,
            "details": self.details,
        }


class ConfigLoadError(GollError):
    """Raised when a step folder artifact is missing or malformed."""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        details = dict(details or {})
        if path is not None:
            details["path"] = path
        super().__init__(message, error_type="config-load", details=details)
        self.path = path


class ArtifactWriteError(GollError):
    """Raised when a forwarded prompt or result log cannot be written."""

    def __init__(self, message: str, path: str) -> None:
        super().__init__(
            message, error_type="artifact-write", details={"path": path}
        )
        self.path = path


class CancellationError(GollError):
    """Work was cancelled before it completed.

    ``reason`` is ``interrupted`` (signal / caller cancelled the shared
    token) or ``timeout`` (the per-request bound elapsed).
    """

    def __init__(
        self,
        reason: str = "interrupted",
        timeout_seconds: Optional[float] = None,
    ) -> None:
        if reason == "timeout":
            message = f"request timed out after {timeout_seconds} seconds"
            error_type = "timeout"
        else:
            message = "cancelled by interrupt"
            error_type = "cancelled"
        details: Dict[str, Any] = {"reason": reason}
        if timeout_seconds is not None:
            details["timeout_seconds"] = timeout_seconds
        super().__init__(message, error_type=error_type, details=details)
        self.reason = reason
        self.timeout_seconds = timeout_seconds

    @property
    def timed_out(self) -> bool:
        return self.reason == "timeout"


class StepFailedError(GollError):
    """A pipeline step failed; the run was aborted at this step.

    The underlying error is available as ``cause`` (and ``__cause__``).
    """

    def __init__(self, step: str, index: int, cause: Exception) -> None:
        cause_type = getattr(cause, "error_type", type(cause).__name__)
        super().__init__(
            f"step {index} ({step}) failed: {cause}",
            error_type="step-failed",
            details={"step": step, "index": index, "cause_type": cause_type},
        )
        self.step = step
        self.index = index
        self.cause = cause
        self.__cause__ = cause


def map_exception(e: BaseException) -> str:
    """Return the taxonomy code for an arbitrary exception."""
    if isinstance(e, StepFailedError):
        return map_exception(e.cause)
    code = getattr(e, "error_type", None)
    if isinstance(code, str) and code in _ALLOWED_ERROR_TYPES:
        return code
    name = e.__class__.__name__.lower()
    if "timeout" in name:
        return "timeout"
    if "cancel" in name or "interrupt" in name:
        return "cancelled"
    if isinstance(e, OSError):
        return "artifact-write"
    return "step-failed"


__all__ = [
    "GollError",
    "ConfigLoadError",
    "ArtifactWriteError",
    "CancellationError",
    "StepFailedError",
    "validate_error_type",
    "map_exception",
]
