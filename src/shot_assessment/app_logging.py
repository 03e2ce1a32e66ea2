"""Logging configuration helpers."""

import logging
import sys
from typing import TextIO


def configure_logging(stream: TextIO | None = None) -> None:
    """Configure application logging with a single stream handler."""
    logger = logging.getLogger("shot_assessment")
    logger.setLevel(logging.INFO)
    if logger.handlers:
        return
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter("%(levelname)s: %(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.propagate = False
