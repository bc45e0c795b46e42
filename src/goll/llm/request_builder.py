"""StepConfig + prompt -> GenerationRequest."""
from __future__ import annotations

from .types import GenerationRequest, StepConfig


def build_request(config: StepConfig, prompt: str) -> GenerationRequest:
    """Assemble the payload for one step.

    Pure: no I/O, no validation of prompt availability (done when the step
    is resolved). ``stream`` and ``raw`` are always false.
    """
    return GenerationRequest(
        model=config.model,
        options=config.options,
        prompt=prompt,
        system=config.system,
        format=config.format,
    )


__all__ = ["build_request"]
