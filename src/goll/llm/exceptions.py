"""Generation exchange exception hierarchy."""
from __future__ import annotations

from goll.errors import GollError


class GenerationError(GollError):
    """Base for failures of a single /generate exchange."""


class UpstreamStatusError(GenerationError):
    """The server answered with a non-200 status; the body is ignored."""

    def __init__(self, status_code: int, url: str) -> None:
        super().__init__(
            f"error response status code: {status_code}",
            error_type="upstream-status",
            details={"status_code": status_code, "url": url},
        )
        self.status_code = status_code


class DecodeError(GenerationError):
    """The 200 reply body is not a valid generation result."""

    def __init__(self, message: str, url: str) -> None:
        super().__init__(
            f"error decoding response body: {message}",
            error_type="decode",
            details={"url": url},
        )


class UpstreamConnectionError(GenerationError):
    """Transport-level failure (connection refused, reset, DNS, ...)."""

    def __init__(self, url: str, cause: Exception) -> None:
        super().__init__(
            f"error sending POST request to {url}: {cause}",
            error_type="upstream-unreachable",
            details={"url": url, "cause_type": type(cause).__name__},
        )


__all__ = [
    "GenerationError",
    "UpstreamStatusError",
    "DecodeError",
    "UpstreamConnectionError",
]
