"""goll: chain prompts through a local LLM generate API, one folder per step."""

__version__ = "0.3.0"

__all__ = ["__version__"]
