"""
Structured console output for the driver pipeline.

The Printer renders log events as a message followed by key=value pairs,
e.g. ``Trying to download a driver. url=https://...``, and forwards them to
the standard logging machinery so callers keep full control over handlers.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(message)s"


def format_args(**kwargs: Any) -> str:
    return " ".join(f"{key}={value}" for key, value in kwargs.items())


class Printer:
    """Logger facade accepting key/value arguments."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger("falco_driver")

    def _log(self, level: int, msg: str, kwargs: dict[str, Any]) -> None:
        if kwargs:
            msg = f"{msg} {format_args(**kwargs)}"
        self.logger.log(level, msg, extra={"kv": kwargs})

    def debug(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.DEBUG, msg, kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.INFO, msg, kwargs)

    def warn(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.WARNING, msg, kwargs)

    def error(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.ERROR, msg, kwargs)


def setup_logging(level: str = "info") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT, stream=sys.stderr)
