"""Command line front end."""

from .app import main  # noqa: F401

__all__ = ["main"]
