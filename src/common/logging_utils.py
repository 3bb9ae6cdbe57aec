"""Centralized logging helpers.

Keeps handler setup in one place and provides small utilities for
structured DEBUG records so call sites stay short.
"""
from __future__ import annotations

import logging
import os
import sys
import time
from typing import Any, Dict, Optional

from constants import Constants


def configure_logging(level: Optional[str] = None) -> None:
    """Configure the root logger once.

    The level comes from the argument, then DEPSYNC_LOG_LEVEL, then INFO.
    Calling this again only adjusts the level.
    """
    level_name = (level or os.environ.get(Constants.ENV_LOG_LEVEL) or "INFO").upper()
    level_value = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    if not any(getattr(h, "_depsync", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(Constants.LOG_FORMAT))
        handler._depsync = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    root.setLevel(level_value)


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True when DEBUG records would be emitted by logger."""
    return logger.isEnabledFor(logging.DEBUG)


def extra_context(**fields: Any) -> Dict[str, Any]:
    """Build the ``extra`` mapping for a structured log record.

    None values are dropped so records stay compact.
    """
    return {"context": {k: v for k, v in fields.items() if v is not None}}


class Timer:
    """Context manager measuring wall-clock duration."""

    def __init__(self) -> None:
        self._start = 0.0
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self._end = time.perf_counter()

    def duration_ms(self) -> int:
        """Elapsed milliseconds, up to now if still running."""
        end = self._end if self._end is not None else time.perf_counter()
        return int((end - self._start) * 1000)


def safe_url(url: str) -> str:
    """Strip credentials and query strings from a URL before logging it."""
    if not url:
        return url
    base = url.split("?", 1)[0]
    if "://" in base and "@" in base.split("://", 1)[1].split("/", 1)[0]:
        scheme, rest = base.split("://", 1)
        host_part, _, path = rest.partition("/")
        host = host_part.rsplit("@", 1)[1]
        base = f"{scheme}://{host}/{path}" if path else f"{scheme}://{host}"
    return base
