"""Generation layer exports.

Request assembly, the httpx client and reasoning post-processing. Nothing
here touches the filesystem.
"""

from .client import GenerationClient, send  # noqa: F401
from .exceptions import (  # noqa: F401
    DecodeError,
    GenerationError,
    UpstreamConnectionError,
    UpstreamStatusError,
)
from .postproc import strip_reasoning  # noqa: F401
from .request_builder import build_request  # noqa: F401
from .types import (  # noqa: F401
    GenerationRequest,
    GenerationResult,
    ModelOptions,
    OutputFormatSchema,
    StepConfig,
)

__all__ = [
    "GenerationClient",
    "send",
    "GenerationError",
    "UpstreamStatusError",
    "DecodeError",
    "UpstreamConnectionError",
    "strip_reasoning",
    "build_request",
    "GenerationRequest",
    "GenerationResult",
    "ModelOptions",
    "OutputFormatSchema",
    "StepConfig",
]
