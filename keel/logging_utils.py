"""Logging helpers for keel."""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def configure_logging(level: str = "WARNING") -> None:
    """Send keel logs to stderr so stdout stays clean for results."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        handlers=[handler],
        force=True,
    )
