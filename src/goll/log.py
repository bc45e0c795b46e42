"""Logging setup for the CLI.

Logs go to stderr so stdout carries only step results. Two formats:
``text`` (human readable) and ``json`` (one object per line).
"""
from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from goll.config.schemas.observability import LoggingConfig

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}

TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


class JSONFormatter(logging.Formatter):
    """Formats log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)

        extra = getattr(record, "_extra", None)
        if extra:
            entry["extra"] = extra

        return json.dumps(entry, default=str)


def setup_logging(
    cfg: LoggingConfig | None = None, verbose: bool = False
) -> logging.Logger:
    """Configure the root logger once per process.

    ``verbose`` forces DEBUG regardless of the configured level.
    Returns the package logger.
    """
    cfg = cfg or LoggingConfig()
    level = logging.DEBUG if verbose else _LEVELS.get(cfg.level, logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    if cfg.format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # Silence noisy third-party loggers
    for noisy in ("httpx", "httpcore", "asyncio"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logger = logging.getLogger("goll")
    logger.debug("logging initialized", extra={"_extra": {"level": cfg.level}})
    return logger


__all__ = ["setup_logging", "JSONFormatter"]
