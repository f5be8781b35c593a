"""Console logging configuration backed by ``rich``."""

from __future__ import annotations

import logging

from rich.logging import RichHandler


def configure_logging(level: str = "INFO") -> None:
    """Route ``nlinterface`` loggers through a rich console handler."""
    handler = RichHandler(rich_tracebacks=True, show_path=False)
    handler.setFormatter(logging.Formatter("%(message)s"))

    root = logging.getLogger("nlinterface")
    root.handlers = [handler]
    root.setLevel(level.upper())
    root.propagate = False
