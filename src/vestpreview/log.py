"""Logging setup. Modules log through `logging.getLogger(__name__)`."""

import logging
import sys
from typing import Optional, TextIO

DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"


def configure_logging(level: str = "INFO", stream: Optional[TextIO] = None) -> None:
    """
    Configure the root logger once at startup.

    Args:
        level: Logging level name (e.g. "INFO", "DEBUG")
        stream: Output stream (defaults to sys.stderr)
    """
    if stream is None:
        stream = sys.stderr

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))

    root.handlers.clear()
    root.addHandler(handler)
