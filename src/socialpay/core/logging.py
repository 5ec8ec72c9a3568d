"""
Logging setup for SocialPay.

Every module logs through a child of the ``socialpay`` logger, so a host
application can route or silence the whole package from one place.
"""

from __future__ import annotations

import json
import logging
import sys
from typing import IO

LOGGER_NAME = "socialpay"

TEXT_FORMAT = "[%(asctime)s] %(levelname)s [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class JsonFormatter(logging.Formatter):
    """One JSON object per record; messages are escaped by ``json.dumps``."""

    def __init__(self) -> None:
        super().__init__(datefmt=DATE_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def configure_logging(
    level: int | str = logging.INFO,
    json_format: bool = False,
    stream: IO[str] | None = None,
) -> logging.Logger:
    """
    Attach a single stream handler to the ``socialpay`` logger.

    Calling it again replaces the handler instead of stacking a second one.
    Records stop at ``socialpay`` and are not passed to the root logger.

    Args:
        level: Logging level (e.g. logging.INFO or "DEBUG")
        json_format: Emit JSON lines instead of plain text
        stream: Destination, stdout by default
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    for existing in list(logger.handlers):
        logger.removeHandler(existing)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(JsonFormatter() if json_format else logging.Formatter(TEXT_FORMAT, DATE_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    """``socialpay.<name>``, or the package logger itself."""
    return logging.getLogger(f"{LOGGER_NAME}.{name}" if name else LOGGER_NAME)
